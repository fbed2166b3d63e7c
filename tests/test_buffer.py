"""Tests for buffer.py: edits, overlay remapping, runs and anchors."""

from __future__ import annotations

from richmark.buffer import RichTextBuffer, Span
from richmark.images import ImageRequest


# === replace() / delete() ===


def test_replace_shifts_following_spans() -> None:
    """An edit before a styled range moves the range by the length change."""
    buf = RichTextBuffer("abc def")
    buf.add_attributes(Span(4, 7), {"bold": "bold"})
    buf.replace(Span(0, 3), "x")
    assert buf.text == "x def"
    assert buf.ranges_with("bold") == [(Span(2, 5), "bold")]


def test_delete_inside_span_shrinks_it() -> None:
    buf = RichTextBuffer("**bold**")
    buf.add_attributes(Span(0, 8), {"bold": "bold"})
    buf.delete(Span(6, 8))
    buf.delete(Span(0, 2))
    assert buf.text == "bold"
    assert buf.ranges_with("bold") == [(Span(0, 4), "bold")]


def test_deleting_whole_span_drops_it() -> None:
    buf = RichTextBuffer("a**b")
    buf.add_attributes(Span(1, 3), {"x": 1})
    buf.delete(Span(1, 3))
    assert buf.text == "ab"
    assert buf.spans == []


def test_edit_before_span_leaves_it_untouched() -> None:
    buf = RichTextBuffer("abcdef")
    buf.add_attributes(Span(0, 2), {"k": "v"})
    buf.replace(Span(4, 6), "")
    assert buf.ranges_with("k") == [(Span(0, 2), "v")]


# === add_attributes() / remove_attribute() ===


def test_later_writes_win_per_key() -> None:
    buf = RichTextBuffer("abcd")
    buf.add_attributes(Span(0, 4), {"k": "first"})
    buf.add_attributes(Span(1, 3), {"k": "second"})
    assert buf.attributes_at(0) == {"k": "first"}
    assert buf.attributes_at(1) == {"k": "second"}
    assert buf.attributes_at(3) == {"k": "first"}


def test_add_attributes_clips_to_buffer() -> None:
    buf = RichTextBuffer("abc")
    buf.add_attributes(Span(1, 99), {"k": "v"})
    assert buf.ranges_with("k") == [(Span(1, 3), "v")]


def test_remove_attribute_splits_entries() -> None:
    """Removing a key from the middle keeps it on both sides."""
    buf = RichTextBuffer("abcdef")
    buf.add_attributes(Span(0, 6), {"bold": "b", "other": "o"})
    buf.remove_attribute("bold", Span(2, 4))
    assert buf.ranges_with("bold") == [(Span(0, 2), "b"), (Span(4, 6), "b")]
    assert buf.ranges_with("other") == [(Span(0, 6), "o")]


# === runs() / ranges_with() ===


def test_runs_are_maximal_and_uniform() -> None:
    buf = RichTextBuffer("abcdef")
    buf.add_attributes(Span(1, 3), {"a": 1})
    buf.add_attributes(Span(2, 5), {"b": 2})
    runs = list(buf.runs(Span(0, 6)))
    assert runs == [
        (Span(0, 1), {}),
        (Span(1, 2), {"a": 1}),
        (Span(2, 3), {"a": 1, "b": 2}),
        (Span(3, 5), {"b": 2}),
        (Span(5, 6), {}),
    ]


def test_ranges_with_merges_adjacent_equal_values() -> None:
    buf = RichTextBuffer("abcd")
    buf.add_attributes(Span(0, 2), {"k": "v"})
    buf.add_attributes(Span(2, 4), {"k": "v"})
    assert buf.ranges_with("k") == [(Span(0, 4), "v")]


# === track() / release() ===


def test_anchor_follows_edits() -> None:
    """A tracked range stays on the same characters across edits around it."""
    buf = RichTextBuffer("![alt](u) tail")
    anchor = buf.track(Span(2, 5))
    buf.insert(0, "xx ")
    assert buf.substring(anchor.span) == "alt"
    buf.delete(Span(0, 5))
    assert buf.substring(anchor.span) == "alt"
    assert anchor.span == Span(0, 3)


def test_released_anchor_stops_moving() -> None:
    buf = RichTextBuffer("abc")
    anchor = buf.track(Span(1, 2))
    buf.release(anchor)
    buf.insert(0, "zz")
    assert anchor.released
    assert anchor.span == Span(1, 2)


# === is_settled ===


def test_settled_tracks_image_requests() -> None:
    buf = RichTextBuffer("x")
    assert buf.is_settled
    request = ImageRequest(locator="https://example.com/a.png")
    buf.image_requests.append(request)
    assert not buf.is_settled
    assert buf.outstanding_images == [request]
    request.future.set_result(None)
    assert buf.is_settled


# === lock ===


def test_lock_is_reentrant_and_ignored_by_equality() -> None:
    buf = RichTextBuffer("abc")
    with buf.lock, buf.lock:
        buf.insert(0, "x")
    assert buf == RichTextBuffer("xabc")
