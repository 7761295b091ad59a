"""Windowed rendering of the visible rows.

Only the rows intersecting the viewport, plus an overscan margin on
each side, are ever materialised.  :func:`compute_window` answers that
for rows of uniform height; :class:`Virtualizer` does the same over
per-row sizes, starting from an estimate and refined by measurements.
"""

from __future__ import annotations

import bisect
import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from tptree.config import DEFAULT_OVERSCAN, DEFAULT_ROW_HEIGHT
from tptree.types import CallNode

logger = logging.getLogger(__name__)

ALIGNMENTS = ("start", "center", "end")


@dataclass(frozen=True)
class Window:
    """Rows ``[lo, hi)`` to materialise and the top offset of each."""

    lo: int
    hi: int
    offsets: tuple[int, ...]

    def __len__(self) -> int:
        return self.hi - self.lo


@dataclass(frozen=True)
class VirtualItem:
    index: int
    start: int
    size: int

    @property
    def end(self) -> int:
        return self.start + self.size


def compute_window(
    count: int,
    row_height: int = DEFAULT_ROW_HEIGHT,
    scroll_offset: int = 0,
    viewport_size: int = 0,
    overscan: int = DEFAULT_OVERSCAN,
) -> Window:
    """Return the window of rows to render for uniformly sized rows.

    Parameters:
        count: Number of visible rows.
        row_height: Height of every row; must be positive.
        scroll_offset: Distance scrolled from the top.
        viewport_size: Height of the viewport.
        overscan: Extra rows to include before and after the viewport.
    """
    if row_height <= 0:
        raise ValueError("row_height must be positive")
    if count <= 0:
        return Window(0, 0, ())

    overscan = max(0, overscan)
    scroll_offset = max(0, scroll_offset)
    first = min(count - 1, scroll_offset // row_height)
    end = scroll_offset + max(0, viewport_size)
    # Last row whose top lies above the bottom edge of the viewport.
    last = max(first, min(count - 1, -(-end // row_height) - 1))

    lo = max(0, first - overscan)
    hi = min(count, last + 1 + overscan)
    return Window(lo, hi, tuple(i * row_height for i in range(lo, hi)))


class Virtualizer:
    """Row offset bookkeeping for a scrollable list of *count* rows.

    Sizes start at *estimate_size* and can be corrected with
    :meth:`resize` once a row has been measured.  Offsets are prefix
    sums, computed on demand and cached until the count or a size
    changes, or :meth:`measure` is called.

    Parameters:
        count: Number of rows.
        estimate_size: Assumed size of rows that have not been measured.
        overscan: Extra rows materialised beyond each edge of the viewport.
    """

    def __init__(
        self,
        count: int = 0,
        estimate_size: int = DEFAULT_ROW_HEIGHT,
        overscan: int = DEFAULT_OVERSCAN,
    ) -> None:
        if estimate_size <= 0:
            raise ValueError("estimate_size must be positive")
        self._count = max(0, count)
        self._estimate = estimate_size
        self._overscan = max(0, overscan)
        self._sizes: dict[int, int] = {}
        self._offsets: Optional[list[int]] = None
        self.measure_count = 0

    @property
    def count(self) -> int:
        return self._count

    @property
    def overscan(self) -> int:
        return self._overscan

    def set_count(self, count: int) -> None:
        """Change the number of rows, re-measuring if it differs."""
        count = max(0, count)
        if count != self._count:
            self._count = count
            self.measure()

    def measure(self) -> None:
        """Drop all measured sizes and cached offsets."""
        self._sizes.clear()
        self._offsets = None
        self.measure_count += 1
        logger.debug("virtualizer re-measured (%d rows)", self._count)

    def resize(self, index: int, size: int) -> None:
        """Record the measured *size* of row *index*."""
        if not 0 <= index < self._count:
            raise IndexError(f"row index {index} out of range")
        if size <= 0:
            raise ValueError("size must be positive")
        if self._sizes.get(index) != size:
            self._sizes[index] = size
            self._offsets = None

    def size_of(self, index: int) -> int:
        return self._sizes.get(index, self._estimate)

    def _ensure_offsets(self) -> list[int]:
        if self._offsets is None:
            offsets = [0] * (self._count + 1)
            total = 0
            for i in range(self._count):
                total += self.size_of(i)
                offsets[i + 1] = total
            self._offsets = offsets
        return self._offsets

    @property
    def total_size(self) -> int:
        return self._ensure_offsets()[-1]

    def start_of(self, index: int) -> int:
        return self._ensure_offsets()[index]

    def range(self, scroll_offset: int, viewport_size: int) -> tuple[int, int]:
        """Return ``(lo, hi)``: the rows to materialise, overscan included."""
        if self._count == 0:
            return (0, 0)
        offsets = self._ensure_offsets()
        scroll_offset = max(0, scroll_offset)
        first = min(self._count - 1, bisect.bisect_right(offsets, scroll_offset) - 1)
        end = scroll_offset + max(0, viewport_size)
        last = max(first, min(self._count - 1, bisect.bisect_left(offsets, end) - 1))
        return (max(0, first - self._overscan), min(self._count, last + 1 + self._overscan))

    def virtual_items(self, scroll_offset: int, viewport_size: int) -> list[VirtualItem]:
        lo, hi = self.range(scroll_offset, viewport_size)
        offsets = self._ensure_offsets()
        return [VirtualItem(i, offsets[i], offsets[i + 1] - offsets[i]) for i in range(lo, hi)]

    def offset_for_index(self, index: int, viewport_size: int, align: str = "start") -> int:
        """Scroll offset that brings row *index* into view.

        Parameters:
            index: Row to reveal.
            viewport_size: Height of the viewport.
            align: ``"start"``, ``"center"`` or ``"end"`` of the viewport.
        """
        if align not in ALIGNMENTS:
            raise ValueError(f"align must be one of {ALIGNMENTS}")
        if not 0 <= index < self._count:
            raise IndexError(f"row index {index} out of range")
        start = self.start_of(index)
        size = self.size_of(index)
        if align == "center":
            offset = start + size // 2 - viewport_size // 2
        elif align == "end":
            offset = start + size - viewport_size
        else:
            offset = start
        max_offset = max(0, self.total_size - viewport_size)
        return min(max(0, offset), max_offset)


class VisibleRows(Sequence[CallNode]):
    """Index-addressable view over a visible projection.

    Parameters:
        nodes: The projection, as returned by :func:`tptree.visibility.project`.
    """

    def __init__(self, nodes: Sequence[CallNode] = ()) -> None:
        self._nodes = tuple(nodes)
        self._positions: Optional[dict[str, int]] = None

    def __len__(self) -> int:
        return len(self._nodes)

    def __getitem__(self, index):  # type: ignore[override]
        return self._nodes[index]

    def slice(self, start: int, stop: int) -> tuple[CallNode, ...]:
        return self._nodes[start:stop]

    def index_of(self, node_id: str) -> Optional[int]:
        """Row index of *node_id*, or None if it is not visible."""
        if self._positions is None:
            self._positions = {node.id: i for i, node in enumerate(self._nodes)}
        return self._positions.get(node_id)
