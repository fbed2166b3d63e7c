"""Read-only Textual viewer for a parsed document."""

from __future__ import annotations

from typing import TYPE_CHECKING, ClassVar

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import VerticalScroll
from textual.widgets import Footer, Header, Static

from richmark.images import wait_settled
from richmark.parser import parse
from richmark.render import to_rich_text

if TYPE_CHECKING:
    from textual.binding import BindingType

    from richmark.buffer import RichTextBuffer
    from richmark.rules import RuleSet
    from richmark.styles import StyleConfig

DEFAULT_IMAGE_TIMEOUT = 30.0  # seconds


class MarkdownViewer(App[None]):
    """Show a markdown document styled by the rule engine.

    Parsing happens on mount so asynchronous image resolvers run on the
    app's event loop; the view refreshes once they settle.
    """

    TITLE = "richmark"

    CSS = """
    #document {
        padding: 1 2;
    }
    """

    BINDINGS: ClassVar[list[BindingType]] = [
        Binding("q", "quit", "Quit", show=True),
    ]

    def __init__(
        self,
        source: str,
        *,
        rules: RuleSet | None = None,
        config: StyleConfig | None = None,
        image_timeout: float | None = DEFAULT_IMAGE_TIMEOUT,
        sub_title: str | None = None,
    ) -> None:
        super().__init__()
        self._source = source
        self._rules = rules
        self._config = config
        self._image_timeout = image_timeout
        self.buffer: RichTextBuffer | None = None
        self.document = Text()
        if sub_title:
            self.sub_title = sub_title

    def compose(self) -> ComposeResult:
        yield Header()
        with VerticalScroll():
            yield Static(id="document")
        yield Footer()

    def on_mount(self) -> None:
        """Parse the source and wait for outstanding images in a worker."""
        self.buffer = parse(self._source, self._rules, self._config)
        self._show()
        if not self.buffer.is_settled:
            self.run_worker(self._await_images(), exclusive=True)

    async def _await_images(self) -> None:
        if self.buffer is None:
            return
        if not await wait_settled(self.buffer, self._image_timeout):
            pending = len(self.buffer.outstanding_images)
            self.notify(f"{pending} image(s) did not load", severity="warning")
        self._show()

    def _show(self) -> None:
        if self.buffer is None:
            return
        self.document = to_rich_text(self.buffer)
        self.query_one("#document", Static).update(self.document)
