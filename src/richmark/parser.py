"""Parse entry point and the default rule set."""

from __future__ import annotations

from typing import TYPE_CHECKING

from richmark.blocks import header_rule, list_rule, numbered_list_rule, quote_rule
from richmark.buffer import RichTextBuffer
from richmark.escaping import (
    code_escaping_rule,
    code_unescaping_rule,
    escaping_rule,
    unescaping_rule,
)
from richmark.images import null_resolver
from richmark.inline import italic_rule, strike_rule, strong_rule
from richmark.links import autolink_rule, image_rule, link_rule
from richmark.rules import RuleSet, apply_rules
from richmark.styles import StyleConfig

if TYPE_CHECKING:
    from collections.abc import Sequence

    from richmark.images import ImageResolver


def build_default_rules(
    *,
    allowed_schemes: Sequence[str] | None = None,
    image_resolver: ImageResolver | None = None,
    max_level: int | None = None,
) -> RuleSet:
    """Build the standard rule list.

    Code spans and escapes are protected before anything that could match
    their punctuation; links come before emphasis so underscores in URLs
    survive; unescaping runs last.
    """
    return RuleSet(
        [
            code_escaping_rule(),
            escaping_rule(),
            header_rule(max_level=max_level),
            quote_rule(max_level=max_level),
            list_rule(max_level=max_level),
            numbered_list_rule(max_level=max_level),
            image_rule(
                resolver=image_resolver or null_resolver,
                allowed_schemes=allowed_schemes,
            ),
            link_rule(allowed_schemes=allowed_schemes),
            autolink_rule(allowed_schemes=allowed_schemes),
            strong_rule(),
            italic_rule(),
            strike_rule(),
            code_unescaping_rule(),
            unescaping_rule(),
        ]
    )


def parse(
    text: str,
    rules: RuleSet | None = None,
    config: StyleConfig | None = None,
) -> RichTextBuffer:
    """Convert markdown-flavoured ``text`` into a styled buffer.

    Never raises for malformed input; missing styling is the only failure
    signal. Images resolved asynchronously keep mutating the returned buffer
    until ``buffer.is_settled``.
    """
    if rules is None:
        rules = build_default_rules()
    buffer = RichTextBuffer(text)
    apply_rules(rules, buffer, config or StyleConfig())
    return buffer
