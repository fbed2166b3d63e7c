"""Enclosing-delimiter constructs: bold, italic, strike and monospace."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

from richmark.escaping import format_monospace
from richmark.rules import PatternRule
from richmark.styles import BOLD, BOLD_ITALIC, ITALIC, STRIKE

if TYPE_CHECKING:
    from richmark.buffer import RichTextBuffer, Span
    from richmark.rules import Formatter, RuleMatch
    from richmark.styles import StyleConfig

MONOSPACE_PATTERN = r"(?P<open>`+)(?P<body>\s*.*?[^`]\s*)(?P<close>(?P=open))(?!`)"


def enclosed_pattern(delimiter: str, context: str) -> str:
    """Pattern for a one- or two-character delimiter run around a single-line body.

    The opening run must follow start of line, whitespace, ``>`` (or its
    ``&gt;`` entity) or one of the ``context`` characters, and the body may
    not start with whitespace.
    """
    d = re.escape(delimiter)
    ctx = re.escape(context)
    return (
        rf"(?:^|(?<=&gt;)|(?<=[\s>{ctx}]))"
        rf"(?P<open>{d}{{1,2}})(?!\s)(?P<body>[^{d}\r\n]+)(?P<close>(?P=open))"
    )


STRONG_PATTERN = enclosed_pattern("*", "_~`")
ITALIC_PATTERN = enclosed_pattern("_", "*~`")
STRIKE_PATTERN = enclosed_pattern("~", "_*`")


def _combine(
    buffer: RichTextBuffer,
    span: Span,
    key: str,
    value: Any,  # noqa: ANN401
    partner: str,
    combined: Any,  # noqa: ANN401
) -> None:
    """Apply ``key``, or the combined style where ``partner`` is already present."""
    for run, attrs in list(buffer.runs(span)):
        if partner in attrs and combined is not None:
            buffer.remove_attribute(partner, run)
            buffer.add_attributes(run, {BOLD_ITALIC: combined})
        elif BOLD_ITALIC in attrs:
            continue
        elif value is not None:
            buffer.add_attributes(run, {key: value})


def format_bold(buffer: RichTextBuffer, span: Span, config: StyleConfig) -> None:
    _combine(buffer, span, BOLD, config.bold, ITALIC, config.bold_italic)


def format_italic(buffer: RichTextBuffer, span: Span, config: StyleConfig) -> None:
    _combine(buffer, span, ITALIC, config.italic, BOLD, config.bold_italic)


def format_strike(buffer: RichTextBuffer, span: Span, config: StyleConfig) -> None:
    if config.strike is not None:
        buffer.add_attributes(span, {STRIKE: config.strike})


def enclosed_rule(
    name: str, pattern: str, formatter: Formatter, flags: int = 0
) -> PatternRule | None:
    """Build a rule that strips both delimiter runs and styles the body.

    The closing run goes first so the body range is still valid when the
    formatter runs.
    """

    def _handler(match: RuleMatch, buffer: RichTextBuffer, config: StyleConfig) -> None:
        buffer.delete(match.span("close"))
        formatter(buffer, match.span("body"), config)
        buffer.delete(match.span("open"))

    return PatternRule.build(name, pattern, _handler, flags)


def strong_rule(formatter: Formatter = format_bold) -> PatternRule | None:
    return enclosed_rule("strong", STRONG_PATTERN, formatter, re.MULTILINE)


def italic_rule(formatter: Formatter = format_italic) -> PatternRule | None:
    return enclosed_rule("italic", ITALIC_PATTERN, formatter, re.MULTILINE)


def strike_rule(formatter: Formatter = format_strike) -> PatternRule | None:
    return enclosed_rule("strike", STRIKE_PATTERN, formatter, re.MULTILINE)


def monospace_rule(formatter: Formatter = format_monospace) -> PatternRule | None:
    """Backtick spans styled without code protection; use instead of code escaping."""
    return enclosed_rule("monospace", MONOSPACE_PATTERN, formatter)
