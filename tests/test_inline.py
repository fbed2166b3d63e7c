"""Tests for inline.py: bold, italic, strike, monospace and their combination."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from richmark.buffer import RichTextBuffer, Span
from richmark.inline import italic_rule, monospace_rule, strike_rule, strong_rule
from richmark.rules import RuleSet, apply_rules
from richmark.styles import BOLD, BOLD_ITALIC, ITALIC, MONOSPACE, STRIKE, StyleConfig

if TYPE_CHECKING:
    from richmark.rules import PatternRule


def _run(
    text: str, *rules: PatternRule | None, config: StyleConfig | None = None
) -> RichTextBuffer:
    buf = RichTextBuffer(text)
    apply_rules(RuleSet(rules), buf, config or StyleConfig())
    return buf


def _emphasis(text: str) -> RichTextBuffer:
    return _run(text, strong_rule(), italic_rule(), strike_rule())


# === strong_rule() / italic_rule() / strike_rule() ===


@pytest.mark.parametrize("text", ["**bold**", "*bold*"])
def test_strong_strips_delimiters(text: str) -> None:
    buf = _emphasis(text)
    assert buf.text == "bold"
    assert buf.ranges_with(BOLD) == [(Span(0, 4), "bold")]


def test_italic_and_strike() -> None:
    buf = _emphasis("a _it_ and ~~gone~~")
    assert buf.text == "a it and gone"
    assert buf.ranges_with(ITALIC) == [(Span(2, 4), "italic")]
    assert buf.ranges_with(STRIKE) == [(Span(9, 13), "strike")]


# === bold italic combination ===


@pytest.mark.parametrize("text", ["*__x__*", "__*x*__"])
def test_nested_bold_italic_combine(text: str) -> None:
    """Either nesting order yields one combined range and no single styles."""
    buf = _emphasis(text)
    assert buf.text == "x"
    assert buf.ranges_with(BOLD_ITALIC) == [(Span(0, 1), "bold italic")]
    assert buf.ranges_with(BOLD) == []
    assert buf.ranges_with(ITALIC) == []


def test_partial_overlap_combines_only_the_overlap() -> None:
    buf = _emphasis("**a _b_ c**")
    assert buf.text == "a b c"
    assert buf.ranges_with(BOLD_ITALIC) == [(Span(2, 3), "bold italic")]
    assert buf.ranges_with(BOLD) == [(Span(0, 2), "bold"), (Span(3, 5), "bold")]


# === delimiter boundaries ===


def test_mismatched_delimiters_stay_literal() -> None:
    assert _emphasis("**open*").spans == []


def test_opening_needs_preceding_boundary() -> None:
    """Delimiters inside a word are not emphasis."""
    buf = _emphasis("snake_case_name")
    assert buf.text == "snake_case_name"
    assert buf.spans == []


def test_body_may_not_start_with_whitespace() -> None:
    assert _emphasis("a * b * c").spans == []


def test_emphasis_does_not_span_lines() -> None:
    assert _emphasis("*one\ntwo*").spans == []


def test_emphasis_after_quote_marker() -> None:
    buf = _emphasis(">*quoted*")
    assert buf.text == ">quoted"
    assert buf.ranges_with(BOLD) == [(Span(1, 7), "bold")]


def test_emphasis_at_each_line_start() -> None:
    buf = _emphasis("*a*\n*b*")
    assert buf.text == "a\nb"
    assert buf.ranges_with(BOLD) == [(Span(0, 1), "bold"), (Span(2, 3), "bold")]


def test_disabled_style_still_strips_delimiters() -> None:
    buf = _run("*x*", strong_rule(), config=StyleConfig(bold=None))
    assert buf.text == "x"
    assert buf.spans == []


# === monospace_rule() ===


def test_monospace_rule() -> None:
    buf = _run("run `ls -l` now", monospace_rule())
    assert buf.text == "run ls -l now"
    assert buf.ranges_with(MONOSPACE) == [(Span(4, 9), "bold cyan")]
