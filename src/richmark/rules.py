"""Pattern rules and the rule engine that applies them to a buffer."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeAlias

from richmark.buffer import RichTextBuffer, Span

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator

    from richmark.styles import StyleConfig

logger = logging.getLogger(__name__)

Handler: TypeAlias = "Callable[[RuleMatch, RichTextBuffer, StyleConfig], int | None]"
Formatter: TypeAlias = "Callable[[RichTextBuffer, Span, StyleConfig], None]"
LevelFormatter: TypeAlias = "Callable[[RichTextBuffer, Span, int, StyleConfig], None]"


def compile_pattern(pattern: str, flags: int = 0) -> re.Pattern[str] | None:
    """Compile ``pattern``, returning None (and logging) if it is empty or invalid."""
    if not pattern:
        logger.warning("Empty rule pattern, skipping rule")
        return None
    try:
        return re.compile(pattern, flags)
    except re.error as e:
        logger.warning("Invalid rule pattern %r: %s", pattern, e)
        return None


@dataclass(frozen=True)
class RuleMatch:
    """A located match with named ranges, valid at the moment of matching."""

    match: re.Match[str]

    def span(self, name: str | int = 0) -> Span:
        start, end = self.match.span(name)
        return Span(start, end)

    def text(self, name: str | int = 0) -> str:
        return self.match.group(name) or ""

    def level(self, name: str = "level") -> int:
        """Nesting level: the length of the named group."""
        return self.span(name).length


@dataclass(frozen=True)
class PatternRule:
    """A compiled pattern plus the handler that mutates the buffer per match.

    The handler may return the offset where scanning should resume; ``None``
    means the end of its match shifted by the handler's length change.
    """

    name: str
    pattern: re.Pattern[str]
    handler: Handler

    @classmethod
    def build(cls, name: str, pattern: str, handler: Handler, flags: int = 0) -> PatternRule | None:
        """Compile and build a rule, or None if the pattern is unusable."""
        compiled = compile_pattern(pattern, flags)
        if compiled is None:
            logger.warning("Rule %s unavailable", name)
            return None
        return cls(name=name, pattern=compiled, handler=handler)

    def apply(self, buffer: RichTextBuffer, config: StyleConfig) -> int:
        """Run this rule over ``buffer`` left to right; return the match count."""
        count = 0
        cursor = 0
        while cursor <= len(buffer):
            found = self.pattern.search(buffer.text, cursor)
            if found is None:
                break
            before = len(buffer)
            consumed = self.handler(RuleMatch(found), buffer, config)
            if consumed is None:
                consumed = found.end() + len(buffer) - before
            # A handler that neither moved forward nor shrank the buffer would
            # be handed the same match again.
            if consumed <= found.start() and len(buffer) >= before:
                consumed = found.start() + 1
            cursor = consumed
            count += 1
        return count


class RuleSet:
    """Ordered rules; registration order is precedence."""

    def __init__(self, rules: Iterable[PatternRule | None] = ()) -> None:
        self._rules: list[PatternRule] = []
        self._frozen = False
        for rule in rules:
            self.add(rule)

    def add(self, rule: PatternRule | None) -> RuleSet:
        """Append ``rule``; None (a rule that failed to build) is ignored."""
        if self._frozen:
            msg = "RuleSet is frozen once parsing has started"
            raise RuntimeError(msg)
        if rule is not None:
            self._rules.append(rule)
        return self

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def names(self) -> list[str]:
        return [r.name for r in self._rules]

    def __iter__(self) -> Iterator[PatternRule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)


def apply_rules(rules: RuleSet, buffer: RichTextBuffer, config: StyleConfig) -> None:
    """Apply every rule in order; a failing rule is logged and abandoned."""
    rules.freeze()
    with buffer.lock:
        for rule in rules:
            try:
                count = rule.apply(buffer, config)
            except Exception:  # noqa: BLE001
                logger.warning(
                    "Rule %s failed, skipping the rest of it", rule.name, exc_info=True
                )
                continue
            logger.debug("Rule %s matched %d time(s)", rule.name, count)
