"""Convert a styled buffer into Rich ``Text``.

Style values are handed to Rich as they are, so they must be style strings
or ``rich.style.Style`` objects. ``linkTarget`` becomes a Rich link and a
resolved image shows as a glyph; image payloads themselves are not drawn.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.style import Style
from rich.text import Text

from richmark.links import IMAGE_PLACEHOLDER
from richmark.parser import parse
from richmark.styles import IMAGE_CONTENT, LINK_TARGET

if TYPE_CHECKING:
    from richmark.buffer import RichTextBuffer
    from richmark.rules import RuleSet
    from richmark.styles import StyleConfig

IMAGE_GLYPH = "▣"


def to_rich_text(buffer: RichTextBuffer) -> Text:
    """Build a Rich ``Text`` with every overlay entry applied in write order."""
    with buffer.lock:
        text = Text(buffer.text.replace(IMAGE_PLACEHOLDER, IMAGE_GLYPH))
        for entry in buffer.spans:
            for key, value in entry.attributes.items():
                if key == IMAGE_CONTENT or value is None:
                    continue
                style = Style(link=value) if key == LINK_TARGET else value
                text.stylize(style, entry.start, entry.end)
    return text


def render_markdown(
    text: str,
    rules: RuleSet | None = None,
    config: StyleConfig | None = None,
) -> Text:
    """Parse ``text`` and convert the result to Rich ``Text``."""
    if not text:
        return Text()
    return to_rich_text(parse(text, rules, config))
