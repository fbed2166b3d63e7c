"""Line-anchored block constructs: headers, lists, numbered lists, quotes.

The level of a construct is the length of its ``level`` group: the ``#`` or
``>`` run for headers and quotes, the indentation for lists. Lead markup is
styled in place, never removed.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from richmark.buffer import Span
from richmark.rules import PatternRule
from richmark.styles import HEADER, LIST, ORDERED_LIST, QUOTE, level_key

if TYPE_CHECKING:
    from collections.abc import Callable

    from richmark.buffer import RichTextBuffer
    from richmark.rules import LevelFormatter, RuleMatch
    from richmark.styles import StyleConfig

# Lead whitespace is [ \t] so a construct never spills onto the next line.
HEADER_PATTERN = r"^(?P<level>#{{1,{max}}})[ \t]+(?P<text>.+)$"
SHORT_HEADER_PATTERN = r"^(?P<level>#{{1,{max}}})[ \t]*(?P<text>[^#\s].*)$"
LIST_PATTERN = r"^(?P<level> {{0,{max}}})[*+\-][ \t]+(?P<text>.+)$"
SHORT_LIST_PATTERN = r"^(?P<level> {{0,{max}}})[*+\-][ \t]+(?P<text>[^*+\-\s].*)$"
NUMBERED_LIST_PATTERN = r"^(?P<level> {{0,{max}}})[0-9]+\.[ \t]+(?P<text>.+)$"
QUOTE_PATTERN = r"^(?P<level>>{{1,{max}}})[ \t]+(?P<text>.+)$"
SHORT_QUOTE_PATTERN = r"^(?P<level>>{{1,{max}}})[ \t]*(?P<text>[^>\s].*)$"


def _pattern(template: str, max_level: int | None) -> str:
    """Fill the repetition bound of the level group; None leaves it open."""
    return template.format(max=max_level if max_level and max_level > 0 else "")


def level_formatter(kind: str) -> LevelFormatter:
    """Formatter writing ``kind[level]`` with the configured table value."""

    def _format(buffer: RichTextBuffer, span: Span, level: int, config: StyleConfig) -> None:
        value = config.table(kind).lookup(level)
        if value is not None:
            buffer.add_attributes(span, {level_key(kind, level): value})

    return _format


def lead_rule(
    name: str,
    template: str,
    *,
    lead_formatter: LevelFormatter,
    text_formatter: LevelFormatter | None,
    max_level: int | None = None,
) -> PatternRule | None:
    """Build a line-anchored rule styling the text and the lead markup separately."""

    def _handler(match: RuleMatch, buffer: RichTextBuffer, config: StyleConfig) -> None:
        level = match.level()
        text = match.span("text")
        if text_formatter is not None:
            text_formatter(buffer, text, level, config)
        lead = Span(match.span("level").start, text.start)
        lead_formatter(buffer, lead, level, config)

    return PatternRule.build(name, _pattern(template, max_level), _handler, re.MULTILINE)


def _builder(name: str, template: str, kind: str) -> Callable[..., PatternRule | None]:
    def _build(
        *,
        lead_formatter: LevelFormatter | None = None,
        text_formatter: LevelFormatter | None = None,
        max_level: int | None = None,
    ) -> PatternRule | None:
        default = level_formatter(kind)
        return lead_rule(
            name,
            template,
            lead_formatter=lead_formatter or default,
            text_formatter=text_formatter or default,
            max_level=max_level,
        )

    _build.__doc__ = f"Build the {name} rule; formatters default to ``{kind}[level]`` styling."
    return _build


header_rule = _builder("header", HEADER_PATTERN, HEADER)
short_header_rule = _builder("short-header", SHORT_HEADER_PATTERN, HEADER)
list_rule = _builder("list", LIST_PATTERN, LIST)
short_list_rule = _builder("short-list", SHORT_LIST_PATTERN, LIST)
numbered_list_rule = _builder("numbered-list", NUMBERED_LIST_PATTERN, ORDERED_LIST)
quote_rule = _builder("quote", QUOTE_PATTERN, QUOTE)
short_quote_rule = _builder("short-quote", SHORT_QUOTE_PATTERN, QUOTE)
