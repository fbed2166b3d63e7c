"""Tests for escaping.py: escape tokens, code-span protection, unescaping."""

from __future__ import annotations

import re

import pytest

from richmark.buffer import RichTextBuffer
from richmark.escaping import (
    decode_hex_run,
    encode_text,
    protect,
    protect_code_spans,
    unescape,
    unescape_text,
)


def _roundtrip(text: str) -> str:
    buf = RichTextBuffer(text)
    protect(buf)
    unescape(buf)
    return buf.text


# === encode_text() / decode_hex_run() ===


def test_encode_text_uses_utf16_hex() -> None:
    assert encode_text("*") == "002a"
    assert encode_text("ab") == "00610062"
    assert encode_text("\U0001f600") == "d83dde00"


def test_decode_hex_run_leaves_non_hex_alone() -> None:
    assert decode_hex_run("002a") == "*"
    assert decode_hex_run("d83dde00") == "\U0001f600"
    assert decode_hex_run("not hex") == "not hex"
    assert decode_hex_run("002") == "002"


# === protect() ===


def test_protect_hides_escaped_character() -> None:
    buf = RichTextBuffer(r"a \*b\* c")
    protect(buf)
    assert buf.text == r"a \002ab\002a c"
    assert "*" not in buf.text


@pytest.mark.parametrize(
    "text",
    [
        r"\*",
        r"\*\*\_",
        r"x \# not a header",
        "\\\U0001f600 wide",
        r"\[text\](url)",
    ],
)
def test_protect_then_unescape_restores_escaped_characters(text: str) -> None:
    """The round trip yields the text with each escape marker consumed."""
    assert _roundtrip(text) == re.sub(r"\\(.)", r"\1", text)


def test_roundtrip_is_identity_without_markers() -> None:
    assert _roundtrip("plain *text* here") == "plain *text* here"


# === unescape() ===


def test_unescape_twice_equals_once() -> None:
    buf = RichTextBuffer(r"\002a bold \005f and \d83dde00")
    unescape(buf)
    once = buf.text
    unescape(buf)
    assert buf.text == once == "* bold _ and \U0001f600"


def test_unescape_on_plain_text_is_noop() -> None:
    buf = RichTextBuffer("nothing to see, 0041 stays")
    unescape(buf)
    assert buf.text == "nothing to see, 0041 stays"


def test_unescape_text_matches_buffer_unescape() -> None:
    assert unescape_text(r"a\002ab") == "a*b"


# === protect_code_spans() ===


def test_protect_code_spans_encodes_body_and_keeps_fences() -> None:
    buf = RichTextBuffer("see `*x*` and ``a`b``")
    protect_code_spans(buf)
    assert buf.text == f"see `{encode_text('*x*')}` and ``{encode_text('a`b')}``"


def test_escaped_backtick_does_not_open_code_span() -> None:
    buf = RichTextBuffer(r"\`*x*`")
    protect_code_spans(buf)
    assert buf.text == r"\`*x*`"
