"""CLI entry point and subcommand definitions."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Console

from richmark.config import ConfigError, get_config_path, load_allowed_schemes, load_style_config
from richmark.images import REQUEST_TIMEOUT, HttpImageResolver, wait_settled
from richmark.parser import build_default_rules, parse
from richmark.render import to_rich_text

if TYPE_CHECKING:
    from richmark.rules import RuleSet
    from richmark.styles import StyleConfig

logger = logging.getLogger(__name__)


def _read_source(name: str | None) -> str:
    """Read the document from FILE, or stdin when omitted or ``-``."""
    if name is None or name == "-":
        return sys.stdin.read()
    try:
        return Path(name).read_text()
    except OSError as e:
        print(f"Cannot read {name}: {e.strerror}", file=sys.stderr)
        sys.exit(1)


def _load_config(args: argparse.Namespace) -> tuple[StyleConfig, list[str] | None]:
    path: Path = args.config or get_config_path()
    try:
        return load_style_config(path), load_allowed_schemes(path)
    except ConfigError as e:
        print(str(e), file=sys.stderr)
        sys.exit(1)


def _build_rules(args: argparse.Namespace, allowed_schemes: list[str] | None) -> RuleSet:
    resolver = HttpImageResolver(timeout=args.image_timeout) if args.fetch_images else None
    return build_default_rules(allowed_schemes=allowed_schemes, image_resolver=resolver)


def _cmd_render(args: argparse.Namespace) -> None:
    """Parse a document and print it styled to the terminal."""
    source = _read_source(args.file)
    config, allowed_schemes = _load_config(args)
    rules = _build_rules(args, allowed_schemes)

    async def _render() -> None:
        # Parsed inside the loop so the HTTP resolver can schedule fetches.
        buffer = parse(source, rules, config)
        if not await wait_settled(buffer, args.image_timeout):
            logger.warning(
                "%d image(s) still pending after %.1fs, printing alt text",
                len(buffer.outstanding_images),
                args.image_timeout,
            )
        Console().print(to_rich_text(buffer))

    asyncio.run(_render())


def _cmd_view(args: argparse.Namespace) -> None:
    """Open the document in the Textual viewer.

    Imports are deferred to avoid loading Textual for ``render``.
    """
    from richmark.tui.viewer import MarkdownViewer  # noqa: PLC0415

    source = _read_source(args.file)
    config, allowed_schemes = _load_config(args)
    app = MarkdownViewer(
        source,
        rules=_build_rules(args, allowed_schemes),
        config=config,
        image_timeout=args.image_timeout,
        sub_title=args.file if args.file not in (None, "-") else "stdin",
    )
    app.run()


def _add_common(sub: argparse.ArgumentParser) -> None:
    sub.add_argument("file", nargs="?", help="Markdown file (default: stdin)")
    sub.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub.add_argument("--config", type=Path, help="Style file (default: XDG styles.toml)")
    sub.add_argument(
        "--fetch-images", action="store_true", help="Resolve image URLs over HTTP"
    )
    sub.add_argument(
        "--image-timeout",
        type=float,
        default=REQUEST_TIMEOUT,
        help=f"Seconds to wait for images (default: {REQUEST_TIMEOUT:g})",
    )


def main(argv: list[str] | None = None) -> None:
    """Parse arguments and dispatch to the appropriate subcommand."""
    parser = argparse.ArgumentParser(
        prog="richmark",
        description="Style markdown-flavoured text for the terminal",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # render
    _add_common(subparsers.add_parser("render", help="Print styled text"))

    # view
    _add_common(subparsers.add_parser("view", help="Open the styled text in a viewer"))

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    dispatch = {
        "render": _cmd_render,
        "view": _cmd_view,
    }
    dispatch[args.command](args)
