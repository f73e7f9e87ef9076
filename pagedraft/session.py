"""Editor session: the live document and everything derived from it.

A session is an ordinary value owned by the host. It holds the document and
selection, routes commands through the dispatcher, and keeps statistics and
pagination current through the change notifier. Host capabilities (height
measurement, text prompts, resize events, printing) are injected.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from .commands import Command, SetLink, apply, is_active
from .constants import EditorConstants
from .export import ExportArtifact, export_html
from .html_io import parse_html
from .model import Document, Position, Selection
from .notifier import ChangeNotifier, Stage
from .pagination import MeasureHeight, PageDescriptor, PaginationEngine
from .stats import DocumentStats, StatsAggregator

logger = logging.getLogger(__name__)

PromptText = Callable[[str], Optional[str]]
# Subscribe a resize listener; returns the function that unsubscribes it
ResizeSource = Callable[[Callable[[], None]], Callable[[], None]]
PrintTrigger = Callable[[], Any]


class EditorSession:
    """One editing session, from `init` to `teardown`."""

    def __init__(
        self,
        measure_height: MeasureHeight,
        prompt_text: Optional[PromptText] = None,
        resize_source: Optional[ResizeSource] = None,
        print_trigger: Optional[PrintTrigger] = None,
        initial_content: str = EditorConstants.DEFAULT_CONTENT,
    ):
        self._prompt_text = prompt_text
        self._resize_source = resize_source
        self._print_trigger = print_trigger
        self._initial_content = initial_content
        self._unsubscribe_resize: Optional[Callable[[], None]] = None
        self.active = False

        self.document = Document.empty()
        self.selection = Selection.caret()
        self.notifier = ChangeNotifier()
        self.stats_aggregator = StatsAggregator()
        self.pagination = PaginationEngine(measure_height)
        self.notifier.subscribe(Stage.STATS, self.stats_aggregator.recompute)
        self.notifier.subscribe(Stage.PAGINATION, lambda document: self.pagination.recompute())

    # --- Lifecycle ---

    def init(self) -> "EditorSession":
        """Seed the document from the initial content and start listening for resizes."""
        if self.active:
            return self
        self.document = parse_html(self._initial_content)
        self.selection = Selection.caret()
        if self._resize_source is not None:
            self._unsubscribe_resize = self._resize_source(self.on_resize)
        self.active = True
        self.notifier.notify(self.document)
        return self

    def teardown(self) -> None:
        """Release the resize subscription. Safe to call more than once."""
        unsubscribe, self._unsubscribe_resize = self._unsubscribe_resize, None
        self.active = False
        if unsubscribe is not None:
            unsubscribe()

    def __enter__(self) -> "EditorSession":
        return self.init()

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.teardown()
        return False

    # --- Editing ---

    def dispatch(self, command: Command) -> bool:
        """Apply a command to the session.

        Returns:
            True if the document changed (subscribers have been notified).
        """
        document, selection = apply(self.document, self.selection, command)
        self.selection = selection
        if document is self.document or document == self.document:
            return False
        self.document = document
        logger.debug(f"Committed {command!r}")
        self.notifier.notify(document)
        return True

    def set_selection(self, selection: Selection) -> bool:
        """Move the selection; out-of-range selections are ignored."""
        if not selection.is_valid(self.document):
            logger.debug(f"Ignoring out-of-range selection {selection!r}")
            return False
        self.selection = selection
        return True

    def select_all(self) -> None:
        blocks = self.document.textblocks()
        end = Position(len(blocks) - 1, len(blocks[-1].text))
        self.selection = Selection(Position(), end)

    def prompt_link(self) -> bool:
        """Ask the host for a URL and link the selection to it."""
        if self._prompt_text is None:
            return False
        href = self._prompt_text(EditorConstants.LINK_PROMPT)
        return self.dispatch(SetLink(href))

    def is_active(self, name: Optional[str] = None, **attrs) -> bool:
        return is_active(self.document, self.selection, name, **attrs)

    # --- Derived state ---

    def on_resize(self) -> None:
        self.pagination.recompute()

    @property
    def stats(self) -> DocumentStats:
        return self.stats_aggregator.stats

    @property
    def word_count(self) -> int:
        return self.stats_aggregator.word_count

    @property
    def char_count(self) -> int:
        return self.stats_aggregator.char_count

    @property
    def page_count(self) -> int:
        return self.pagination.page_count

    @property
    def pages(self) -> tuple[PageDescriptor, ...]:
        return self.pagination.pages

    # --- Output ---

    def export(self) -> ExportArtifact:
        return export_html(self.document)

    def print_document(self) -> Any:
        """Hand the current state to the print trigger."""
        if self._print_trigger is None:
            return False, "Printing is not available"
        # Derived state is current: notifications run before dispatch returns
        return self._print_trigger()
