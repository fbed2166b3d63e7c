"""Links, bare-URL autolinks and images."""

from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx

from richmark.buffer import Span
from richmark.escaping import unescape_text
from richmark.images import ImageRequest, null_resolver
from richmark.rules import PatternRule
from richmark.styles import IMAGE, IMAGE_ALT, IMAGE_CONTENT, LINK, LINK_TARGET

if TYPE_CHECKING:
    from collections.abc import Sequence

    from richmark.buffer import Anchor, RichTextBuffer
    from richmark.images import ImageResolver
    from richmark.rules import Formatter, RuleMatch
    from richmark.styles import StyleConfig

logger = logging.getLogger(__name__)

# Process-wide default allow-list, read when rules are built.
ALLOWED_SCHEMES: list[str] = ["http", "https"]

# Stands in for a resolved image in the text.
IMAGE_PLACEHOLDER = "\ufffc"

_URL_SAFE = ":/?#[]@!$&'()*+,;=%~"


def _schemes(allowed_schemes: Sequence[str] | None) -> str:
    schemes = ALLOWED_SCHEMES if allowed_schemes is None else allowed_schemes
    return "|".join(re.escape(s) for s in schemes if s)


def link_pattern(allowed_schemes: Sequence[str] | None = None) -> str:
    """``[text](scheme://url)``; empty when no scheme is allowed."""
    schemes = _schemes(allowed_schemes)
    if not schemes:
        return ""
    return rf"(?<!!)\[(?P<text>[^\]]+)\]\((?P<url>(?:{schemes})://[^)]+)\)"


def image_pattern(allowed_schemes: Sequence[str] | None = None) -> str:
    """``![alt](scheme://url)``; empty when no scheme is allowed."""
    schemes = _schemes(allowed_schemes)
    if not schemes:
        return ""
    return rf"!\[(?P<alt>[^\]]+)\]\((?P<url>(?:{schemes})://[^)]+)\)"


def autolink_pattern(allowed_schemes: Sequence[str] | None = None) -> str:
    """A bare URL not preceded by a word character, ``/`` or ``(``."""
    schemes = _schemes(allowed_schemes)
    if not schemes:
        return ""
    return (
        rf"(?<![\w/(\[])(?P<url>(?:{schemes})://[^\s<>()\[\]]*[^\s<>()\[\].,;:!?'\"])"
    )


def validated_url(raw: str) -> str | None:
    """Unescape ``raw`` and return it if httpx can parse it, percent-quoting once on failure."""
    candidate = unescape_text(raw)
    for attempt in (candidate, quote(candidate, safe=_URL_SAFE)):
        try:
            httpx.URL(attempt)
        except httpx.InvalidURL:
            continue
        return attempt
    logger.warning("Unparseable link URL %r, leaving link text unstyled", raw)
    return None


def format_link(buffer: RichTextBuffer, span: Span, config: StyleConfig) -> None:
    if config.link is not None:
        buffer.add_attributes(span, {LINK: config.link})


def format_image(buffer: RichTextBuffer, span: Span, config: StyleConfig) -> None:
    if config.image is not None:
        buffer.add_attributes(span, {IMAGE: config.image})


def format_image_alt(buffer: RichTextBuffer, span: Span, config: StyleConfig) -> None:
    if config.image_alt is not None:
        buffer.add_attributes(span, {IMAGE_ALT: config.image_alt})


def link_rule(
    formatter: Formatter = format_link,
    *,
    allowed_schemes: Sequence[str] | None = None,
) -> PatternRule | None:
    """Replace ``[text](url)`` with ``text`` carrying ``linkTarget``."""

    def _handler(match: RuleMatch, buffer: RichTextBuffer, config: StyleConfig) -> None:
        whole = match.span()
        text = match.span("text")
        target = validated_url(match.text("url"))
        buffer.delete(Span(text.end, whole.end))
        if target is not None:
            buffer.add_attributes(text, {LINK_TARGET: target})
            formatter(buffer, text, config)
        buffer.delete(Span(whole.start, text.start))

    return PatternRule.build("link", link_pattern(allowed_schemes), _handler, re.MULTILINE)


def autolink_rule(
    formatter: Formatter = format_link,
    *,
    allowed_schemes: Sequence[str] | None = None,
) -> PatternRule | None:
    """Attach ``linkTarget`` to bare URLs in place."""

    def _handler(match: RuleMatch, buffer: RichTextBuffer, config: StyleConfig) -> None:
        # Link text that is itself a URL keeps its explicit target.
        if LINK_TARGET in buffer.attributes_at(match.span("url").start):
            return
        target = validated_url(match.text("url"))
        if target is not None:
            buffer.add_attributes(match.span("url"), {LINK_TARGET: target})
            formatter(buffer, match.span("url"), config)

    return PatternRule.build("autolink", autolink_pattern(allowed_schemes), _handler)


def _finish_image(  # noqa: PLR0913
    buffer: RichTextBuffer,
    region: Anchor,
    alt: Anchor,
    content: Any | None,  # noqa: ANN401
    config: StyleConfig,
    image_formatter: Formatter,
    alt_formatter: Formatter,
) -> None:
    """Replace a pending image region, located through its live anchors."""
    if content is not None:
        buffer.replace(region.span, IMAGE_PLACEHOLDER)
        placeholder = Span(region.start, region.start + len(IMAGE_PLACEHOLDER))
        buffer.add_attributes(placeholder, {IMAGE_CONTENT: content})
        image_formatter(buffer, placeholder, config)
        return

    buffer.delete(Span(alt.end, region.end))
    buffer.delete(Span(region.start, alt.start))
    alt_formatter(buffer, alt.span, config)


def image_rule(
    image_formatter: Formatter = format_image,
    alt_formatter: Formatter = format_image_alt,
    *,
    resolver: ImageResolver = null_resolver,
    allowed_schemes: Sequence[str] | None = None,
) -> PatternRule | None:
    """Resolve ``![alt](url)`` through ``resolver``.

    Success replaces the region with a single placeholder carrying
    ``imageContent``; absence leaves the alt text. Completion may happen
    after the pass, so every request is recorded on the buffer.
    """

    def _handler(match: RuleMatch, buffer: RichTextBuffer, config: StyleConfig) -> None:
        locator = unescape_text(match.text("url"))
        request = ImageRequest(locator=locator)
        buffer.image_requests.append(request)
        region = buffer.track(match.span())
        alt = buffer.track(match.span("alt"))

        def _on_complete(content: Any | None) -> None:  # noqa: ANN401
            if not request.claim():
                logger.warning("Image resolver completed %s more than once, ignoring", locator)
                return
            # Completions from other threads wait for a running pass to finish.
            with buffer.lock:
                try:
                    _finish_image(
                        buffer, region, alt, content, config, image_formatter, alt_formatter
                    )
                finally:
                    buffer.release(region)
                    buffer.release(alt)
                    request.future.set_result(content)

        try:
            resolver(locator, _on_complete)
        except Exception:  # noqa: BLE001
            logger.warning("Image resolver raised for %s", locator, exc_info=True)
            if not request.done:
                _on_complete(None)

    return PatternRule.build("image", image_pattern(allowed_schemes), _handler, re.MULTILINE)
