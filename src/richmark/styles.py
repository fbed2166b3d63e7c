"""Style attribute keys and the per-call style configuration."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# Attribute keys written into the buffer overlay. Values are supplied by the
# host and never interpreted by the rules.
BOLD = "bold"
ITALIC = "italic"
BOLD_ITALIC = "boldItalic"
STRIKE = "strike"
MONOSPACE = "monospace"
LINK = "link"
LINK_TARGET = "linkTarget"
IMAGE = "image"
IMAGE_ALT = "imageAlt"
IMAGE_CONTENT = "imageContent"

HEADER = "header"
LIST = "list"
ORDERED_LIST = "orderedList"
QUOTE = "quote"


def level_key(kind: str, level: int) -> str:
    """Return the attribute key for a leveled construct, e.g. ``header[2]``."""
    return f"{kind}[{level}]"


@dataclass(frozen=True)
class LevelAttributeTable:
    """Style values indexed by nesting level.

    Levels past the end of the table use the last entry. An empty table
    disables formatting for the construct.
    """

    entries: tuple[Any, ...] = ()

    @classmethod
    def of(cls, *entries: Any) -> LevelAttributeTable:  # noqa: ANN401
        return cls(tuple(entries))

    def __len__(self) -> int:
        return len(self.entries)

    def lookup(self, level: int) -> Any | None:  # noqa: ANN401
        """Return the value for ``level``, or None when the table is empty."""
        if not self.entries:
            return None
        if 0 <= level < len(self.entries):
            return self.entries[level]
        return self.entries[-1]


# Header levels count the `#` run, so index 0 is only reached by callers that
# use their own level scheme.
DEFAULT_HEADERS = LevelAttributeTable.of(
    "bold",
    "bold underline",
    "bold",
    "bold italic",
    "italic",
    "italic",
    "dim italic",
)
DEFAULT_LISTS = LevelAttributeTable.of("default")
DEFAULT_ORDERED_LISTS = LevelAttributeTable.of("default")
DEFAULT_QUOTES = LevelAttributeTable.of("italic", "dim italic")


@dataclass(frozen=True)
class StyleConfig:
    """Immutable style configuration handed to every rule invocation.

    Single values style inline constructs, links and images; tables style
    leveled block constructs. A ``None`` value disables that style.
    """

    bold: Any = "bold"
    italic: Any = "italic"
    bold_italic: Any = "bold italic"
    strike: Any = "strike"
    monospace: Any = "bold cyan"
    link: Any = "underline blue"
    image: Any = "magenta"
    image_alt: Any = "dim italic"
    headers: LevelAttributeTable = field(default_factory=lambda: DEFAULT_HEADERS)
    lists: LevelAttributeTable = field(default_factory=lambda: DEFAULT_LISTS)
    ordered_lists: LevelAttributeTable = field(default_factory=lambda: DEFAULT_ORDERED_LISTS)
    quotes: LevelAttributeTable = field(default_factory=lambda: DEFAULT_QUOTES)

    def table(self, kind: str) -> LevelAttributeTable:
        """Return the level table for a block construct kind."""
        tables = {
            HEADER: self.headers,
            LIST: self.lists,
            ORDERED_LIST: self.ordered_lists,
            QUOTE: self.quotes,
        }
        return tables[kind]
