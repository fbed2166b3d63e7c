"""Mutable text buffer with a range-based style attribute overlay."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterator, Mapping

    from richmark.images import ImageRequest


@dataclass(frozen=True)
class Span:
    """A half-open range ``[start, end)`` of buffer offsets."""

    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start


@dataclass
class StyleSpan:
    """One overlay entry: attributes applied to a range."""

    start: int
    end: int
    attributes: dict[str, Any]

    @property
    def span(self) -> Span:
        return Span(self.start, self.end)


@dataclass(eq=False)
class Anchor:
    """A range that follows buffer edits until released."""

    start: int
    end: int
    released: bool = False

    @property
    def span(self) -> Span:
        return Span(self.start, self.end)


def _remap(s: int, e: int, start: int, end: int, new_len: int) -> tuple[int, int]:
    """Map the range ``[s, e)`` through replacing ``[start, end)`` with ``new_len`` chars.

    A range covering the first replaced character absorbs the replacement;
    a range starting inside the replaced region is pushed past it.
    """
    delta = new_len - (end - start)
    if e <= start and not (s == e == start == end):
        return s, e
    if s >= end:
        return s + delta, e + delta
    if s <= start:
        return s, e + delta if e >= end else start + new_len
    new_s = start + new_len
    return new_s, e + delta if e >= end else new_s


@dataclass
class RichTextBuffer:
    """A character sequence plus an ordered, overlapping style overlay.

    Every edit re-maps the overlay and all tracked anchors, so ranges taken
    from the live buffer after an edit are always valid.

    ``lock`` serializes a rule pass against image completions arriving
    from other threads.
    """

    text: str = ""
    spans: list[StyleSpan] = field(default_factory=list)
    image_requests: list[ImageRequest] = field(default_factory=list)
    _anchors: list[Anchor] = field(default_factory=list, repr=False)
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    def __len__(self) -> int:
        return len(self.text)

    def substring(self, span: Span) -> str:
        return self.text[span.start : span.end]

    # --- Mutation ---

    def replace(self, span: Span, text: str) -> None:
        """Replace the characters in ``span`` with ``text``."""
        start, end = self._clip(span)
        new_len = len(text)
        self.text = self.text[:start] + text + self.text[end:]

        remapped: list[StyleSpan] = []
        for entry in self.spans:
            s, e = _remap(entry.start, entry.end, start, end, new_len)
            if s < e:
                entry.start, entry.end = s, e
                remapped.append(entry)
        self.spans = remapped

        for anchor in self._anchors:
            anchor.start, anchor.end = _remap(anchor.start, anchor.end, start, end, new_len)
        self._validate()

    def delete(self, span: Span) -> None:
        if span.length > 0:
            self.replace(span, "")

    def insert(self, index: int, text: str) -> None:
        self.replace(Span(index, index), text)

    def add_attributes(self, span: Span, attributes: Mapping[str, Any]) -> None:
        """Add ``attributes`` over ``span``; later writes win per key."""
        start, end = self._clip(span)
        if start < end and attributes:
            self.spans.append(StyleSpan(start, end, dict(attributes)))

    def remove_attribute(self, key: str, span: Span) -> None:
        """Remove ``key`` from every overlay entry within ``span``."""
        start, end = self._clip(span)
        result: list[StyleSpan] = []
        for entry in self.spans:
            if key not in entry.attributes or entry.end <= start or entry.start >= end:
                result.append(entry)
                continue
            if entry.start < start:
                result.append(StyleSpan(entry.start, start, dict(entry.attributes)))
            inner = {k: v for k, v in entry.attributes.items() if k != key}
            if inner:
                result.append(StyleSpan(max(entry.start, start), min(entry.end, end), inner))
            if entry.end > end:
                result.append(StyleSpan(end, entry.end, dict(entry.attributes)))
        self.spans = result

    # --- Queries ---

    def attributes_at(self, index: int) -> dict[str, Any]:
        """Merged attributes at ``index``, later overlay entries winning."""
        merged: dict[str, Any] = {}
        for entry in self.spans:
            if entry.start <= index < entry.end:
                merged.update(entry.attributes)
        return merged

    def runs(self, span: Span) -> Iterator[tuple[Span, dict[str, Any]]]:
        """Yield maximal sub-ranges of ``span`` with uniform merged attributes."""
        start, end = self._clip(span)
        if start >= end:
            return
        bounds = {start, end}
        for entry in self.spans:
            if start < entry.start < end:
                bounds.add(entry.start)
            if start < entry.end < end:
                bounds.add(entry.end)
        edges = sorted(bounds)

        run_start = edges[0]
        run_attrs = self.attributes_at(run_start)
        for edge in edges[1:-1]:
            attrs = self.attributes_at(edge)
            if attrs != run_attrs:
                yield Span(run_start, edge), run_attrs
                run_start, run_attrs = edge, attrs
        yield Span(run_start, end), run_attrs

    def ranges_with(self, key: str) -> list[tuple[Span, Any]]:
        """Return the maximal ranges carrying ``key`` together with its value."""
        found: list[tuple[Span, Any]] = []
        for run, attrs in self.runs(Span(0, len(self.text))):
            if key not in attrs:
                continue
            if found and found[-1][0].end == run.start and found[-1][1] == attrs[key]:
                found[-1] = (Span(found[-1][0].start, run.end), attrs[key])
            else:
                found.append((run, attrs[key]))
        return found

    # --- Anchors and image resolution ---

    def track(self, span: Span) -> Anchor:
        """Return an anchor that follows ``span`` through later edits."""
        start, end = self._clip(span)
        anchor = Anchor(start, end)
        self._anchors.append(anchor)
        return anchor

    def release(self, anchor: Anchor) -> None:
        anchor.released = True
        if anchor in self._anchors:
            self._anchors.remove(anchor)

    @property
    def outstanding_images(self) -> list[ImageRequest]:
        return [r for r in self.image_requests if not r.done]

    @property
    def is_settled(self) -> bool:
        """True once every image resolution issued for this buffer has completed."""
        return not self.outstanding_images

    # --- Internals ---

    def _clip(self, span: Span) -> tuple[int, int]:
        size = len(self.text)
        start = min(max(span.start, 0), size)
        end = min(max(span.end, start), size)
        return start, end

    def _validate(self) -> None:
        """Keep every overlay range within the current buffer bounds."""
        size = len(self.text)
        valid: list[StyleSpan] = []
        for entry in self.spans:
            entry.start = min(max(entry.start, 0), size)
            entry.end = min(max(entry.end, entry.start), size)
            if entry.start < entry.end:
                valid.append(entry)
        self.spans = valid
