"""Reversible escaping: hide characters from later rules behind hex tokens.

An escaped character ``\\X`` becomes the marker followed by the lowercase
UTF-16 hex code of ``X`` (``\\*`` -> ``\\002a``; characters outside the BMP
take a surrogate pair, ``\\d83dde00``). Code-span bodies are encoded as bare
4-digit groups between their untouched fences.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from richmark.buffer import Span
from richmark.rules import PatternRule, RuleSet, apply_rules
from richmark.styles import MONOSPACE, StyleConfig

if TYPE_CHECKING:
    from richmark.buffer import RichTextBuffer
    from richmark.rules import Formatter, RuleMatch

ESCAPING = r"\\(?P<char>.)"
CODE_ESCAPING = r"(?<!\\)(?:\\\\)*+(?P<open>`+)(?P<body>.*?[^`].*?)(?P<close>(?P=open))(?!`)"
UNESCAPING = r"\\(?P<code>d[89ab][0-9a-f]{2}d[c-f][0-9a-f]{2}|[0-9a-f]{4})"

_HEX_RUN = re.compile(r"(?:[0-9a-f]{4})+")
_UNESCAPING_RE = re.compile(UNESCAPING)
_BACKSLASH_TOKEN = "\\005c"


def encode_text(text: str) -> str:
    """Encode every character of ``text`` as 4-digit UTF-16 hex groups."""
    return text.encode("utf-16-be", "surrogatepass").hex()


def decode_hex_run(run: str) -> str:
    """Decode a run of 4-digit groups; anything else is returned unchanged."""
    if not _HEX_RUN.fullmatch(run):
        return run
    return bytes.fromhex(run).decode("utf-16-be", "surrogatepass")


def unescape_text(text: str) -> str:
    """Replace every escape token in ``text`` with the character it encodes."""
    return _UNESCAPING_RE.sub(lambda m: decode_hex_run(m.group("code")), text)


def _escape(match: RuleMatch, buffer: RichTextBuffer, _config: StyleConfig) -> None:
    char = match.span("char")
    buffer.replace(char, encode_text(match.text("char")))


def _escape_code(match: RuleMatch, buffer: RichTextBuffer, _config: StyleConfig) -> None:
    buffer.replace(match.span("body"), encode_text(match.text("body")))


def _unescape(match: RuleMatch, buffer: RichTextBuffer, _config: StyleConfig) -> None:
    buffer.replace(match.span(), decode_hex_run(match.text("code")))


def format_monospace(buffer: RichTextBuffer, span: Span, config: StyleConfig) -> None:
    if config.monospace is not None:
        buffer.add_attributes(span, {MONOSPACE: config.monospace})


def escaping_rule() -> PatternRule | None:
    """Rule hiding the character after each escape marker."""
    return PatternRule.build("escaping", ESCAPING, _escape)


def code_escaping_rule() -> PatternRule | None:
    """Rule hiding the body of every unescaped backtick code span."""
    return PatternRule.build("code-escaping", CODE_ESCAPING, _escape_code)


def unescaping_rule() -> PatternRule | None:
    """Rule restoring every escape token; register it last."""
    return PatternRule.build("unescaping", UNESCAPING, _unescape, re.DOTALL)


def code_unescaping_rule(formatter: Formatter = format_monospace) -> PatternRule | None:
    """Rule stripping code fences, decoding the body and styling it.

    Backslashes in the body are written back as their escape token, so the
    unescaping rule registered after this one must run for them to show.
    """

    def _handler(match: RuleMatch, buffer: RichTextBuffer, config: StyleConfig) -> None:
        body = match.span("body")
        decoded = decode_hex_run(match.text("body")).replace("\\", _BACKSLASH_TOKEN)
        buffer.delete(match.span("close"))
        buffer.replace(body, decoded)
        formatter(buffer, Span(body.start, body.start + len(decoded)), config)
        buffer.delete(match.span("open"))

    return PatternRule.build("code-unescaping", CODE_ESCAPING, _handler)


def _run_single(rule: PatternRule | None, buffer: RichTextBuffer) -> None:
    apply_rules(RuleSet([rule]), buffer, StyleConfig())


def protect(buffer: RichTextBuffer) -> None:
    """Hide every escaped character in ``buffer``."""
    _run_single(escaping_rule(), buffer)


def protect_code_spans(buffer: RichTextBuffer) -> None:
    """Hide the body of every code span in ``buffer``, keeping the fences."""
    _run_single(code_escaping_rule(), buffer)


def unescape(buffer: RichTextBuffer) -> None:
    """Restore every escape token in ``buffer``."""
    _run_single(unescaping_rule(), buffer)
