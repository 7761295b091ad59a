"""The currently loaded trace and its view.

A :class:`Session` is either empty or holds exactly one document.
Loading parses and reconstructs the new document completely before
anything is replaced, so a parse error leaves the previous document,
forest and view untouched.

Every view operation derives a new :class:`~tptree.visibility.ViewState`
and recomputes the visible projection from it; the virtualizer is
re-measured whenever the number of visible rows changes or the active
view is switched.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

from tptree.analysis import PerformanceReport, analyze
from tptree.config import ViewerConfig
from tptree.exceptions import TraceError, TraceParseError
from tptree.reconstruct import reconstruct
from tptree.source import parse_document, read_document
from tptree.types import CallNode, Forest, TraceDocument
from tptree.visibility import VIEW_TREE, ViewState, collapse_all, expand_all
from tptree.window import VirtualItem, Virtualizer, VisibleRows

logger = logging.getLogger(__name__)

NO_EVENTS_MESSAGE = "No events to display"
NO_MATCHES_MESSAGE = "No matching events found"


class Session:
    """Holder of the current document and interactive view state.

    Parameters:
        config: Row geometry for the virtualizer.
    """

    def __init__(self, config: Optional[ViewerConfig] = None) -> None:
        self._config = config or ViewerConfig()
        self._document: Optional[TraceDocument] = None
        self._forest = Forest()
        self._state = ViewState()
        self._report: Optional[PerformanceReport] = None
        self._rows = VisibleRows()
        self.error: Optional[str] = None
        self.virtualizer = Virtualizer(
            estimate_size=self._config.row_height,
            overscan=self._config.overscan,
        )

    # --- Document lifecycle ---

    @property
    def is_loaded(self) -> bool:
        return self._document is not None

    @property
    def document(self) -> Optional[TraceDocument]:
        return self._document

    @property
    def forest(self) -> Forest:
        return self._forest

    def load(self, raw: Union[str, bytes]) -> TraceDocument:
        """Parse *raw* and make it the current document.

        Raises:
            TraceParseError: If *raw* is not a valid trace.  The error
                message is also kept in :attr:`error`, and the current
                document is left as it was.
        """
        try:
            document = parse_document(raw)
        except TraceParseError as e:
            self.error = str(e)
            logger.warning("failed to load trace: %s", e)
            raise
        self._install(document)
        return document

    def load_file(self, path: Union[str, Path]) -> TraceDocument:
        """Like :meth:`load`, reading from *path* (``"-"`` for stdin).

        A missing or unreadable file is recorded in :attr:`error` the same
        way as a parse error, and :class:`TraceNotFoundError` is re-raised.
        """
        try:
            document = read_document(path)
        except TraceError as e:
            self.error = str(e)
            logger.warning("failed to load trace %s: %s", path, e)
            raise
        self._install(document)
        return document

    def _install(self, document: TraceDocument) -> None:
        forest = reconstruct(document.events)
        self._document = document
        self._forest = forest
        self._report = None
        self.error = None
        self._apply(ViewState.for_forest(forest), remeasure=True)
        logger.info(
            "loaded trace version=%s with %d events, %d nodes",
            document.version,
            len(document.events),
            len(forest),
        )

    def reset(self) -> None:
        """Discard the current document and return to the empty state."""
        self._document = None
        self._forest = Forest()
        self._report = None
        self.error = None
        self._apply(ViewState(), remeasure=True)
        logger.info("session reset")

    # --- View state ---

    @property
    def state(self) -> ViewState:
        return self._state

    def _apply(self, state: ViewState, remeasure: bool = False) -> None:
        self._state = state
        self._rows = VisibleRows(state.project(self._forest))
        if len(self._rows) != self.virtualizer.count:
            self.virtualizer.set_count(len(self._rows))
        elif remeasure:
            self.virtualizer.measure()

    def set_search(self, search: str) -> None:
        self._apply(self._state.with_search(search))

    def set_filtered_only(self, filtered_only: bool) -> None:
        self._apply(self._state.with_filtered_only(filtered_only))

    def toggle(self, node_id: str) -> None:
        self._apply(self._state.toggled(node_id))

    def expand_all(self) -> None:
        self._apply(self._state.with_expanded(expand_all(self._forest)))

    def collapse_all(self) -> None:
        self._apply(self._state.with_expanded(collapse_all()))

    def switch_view(self, view: str) -> None:
        """Switch between the tree and performance views."""
        state = self._state.with_view(view)
        self._apply(state, remeasure=state.active_view == VIEW_TREE)

    def select(self, node_id: Optional[str]) -> None:
        """Select *node_id*; used by tree rows and by report entries alike."""
        self._state = self._state.with_selected(node_id)

    @property
    def selected(self) -> Optional[CallNode]:
        """The selected node, or None if nothing visible is selected."""
        if self._state.selected is None:
            return None
        index = self._rows.index_of(self._state.selected)
        return None if index is None else self._rows[index]

    # --- Derived data ---

    @property
    def rows(self) -> VisibleRows:
        return self._rows

    def window(self, scroll_offset: int, viewport_size: Optional[int] = None) -> list[tuple[VirtualItem, CallNode]]:
        """Rows to materialise for the given scroll position."""
        if viewport_size is None:
            viewport_size = self._config.viewport_size
        items = self.virtualizer.virtual_items(scroll_offset, viewport_size)
        return [(item, self._rows[item.index]) for item in items]

    @property
    def report(self) -> PerformanceReport:
        """Performance analysis of the whole forest, computed once per document."""
        if self._report is None:
            self._report = analyze(self._forest)
        return self._report

    @property
    def empty_message(self) -> Optional[str]:
        if self._rows:
            return None
        return NO_MATCHES_MESSAGE if self._state.is_filtering else NO_EVENTS_MESSAGE
