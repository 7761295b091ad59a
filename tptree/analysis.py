"""Aggregate performance statistics over a call forest.

:func:`analyze` always looks at the complete forest, regardless of what
is expanded or filtered in the tree view.  Calls are grouped by
``Class#method``; only calls with a positive duration take part in the
grouping and in the slow-call list, but every node counts towards the
totals.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from operator import attrgetter
from typing import Optional

from tptree.config import HIGH_VARIANCE_FACTOR, HOTSPOT_FRACTION, TOP_METHODS, TOP_SLOW_CALLS
from tptree.types import CallNode, DictAccessMixin, Forest

logger = logging.getLogger(__name__)

UNKNOWN_CLASS = "Unknown"


def method_key(node: CallNode) -> str:
    """Grouping key of *node*: ``Class#method``, with ``Unknown`` for no class."""
    return f"{node.defined_class or UNKNOWN_CLASS}#{node.method_name}"


@dataclass
class MethodStat(DictAccessMixin):
    """Timing statistics for every call sharing one ``Class#method`` key.

    Attributes:
        method_name:  The method's name.
        class_name:   The defining class, or None if unknown.
        total_time:   Sum of call durations, in seconds.
        call_count:   Number of calls with a positive duration.
        average_time: ``total_time / call_count``.
        max_time:     Longest single call.
        min_time:     Shortest single call.
        node_ids:     Ids of the contributing nodes, in encounter order.
    """

    _ALIASES = {"class": "class_name", "method": "method_name"}

    method_name: str
    class_name: Optional[str]
    total_time: float = 0.0
    call_count: int = 0
    average_time: float = 0.0
    max_time: float = 0.0
    min_time: float = float("inf")
    node_ids: list[str] = field(default_factory=list)

    @property
    def key(self) -> str:
        return f"{self.class_name or UNKNOWN_CLASS}#{self.method_name}"

    @property
    def example_node_id(self) -> Optional[str]:
        """A node to jump to when this entry is selected."""
        return self.node_ids[0] if self.node_ids else None

    @property
    def high_variance(self) -> bool:
        return self.max_time > self.average_time * HIGH_VARIANCE_FACTOR

    def add(self, node: CallNode) -> None:
        duration = node.duration
        self.total_time += duration
        self.call_count += 1
        self.max_time = max(self.max_time, duration)
        self.min_time = min(self.min_time, duration)
        self.average_time = self.total_time / self.call_count
        self.node_ids.append(node.id)


@dataclass(frozen=True)
class PerformanceReport(DictAccessMixin):
    """Result of :func:`analyze`.

    Attributes:
        by_total_time:   Top methods by summed duration.
        by_average_time: Top methods by mean duration.
        by_call_count:   Top methods by number of calls.
        slow_calls:      Individual calls with the longest durations.
        total_time:      Sum of all node durations.
        total_calls:     Number of nodes in the forest.
        methods:         Every group, untruncated, in first-seen order.
    """

    by_total_time: tuple[MethodStat, ...] = ()
    by_average_time: tuple[MethodStat, ...] = ()
    by_call_count: tuple[MethodStat, ...] = ()
    slow_calls: tuple[CallNode, ...] = ()
    total_time: float = 0.0
    total_calls: int = 0
    methods: tuple[MethodStat, ...] = ()

    @property
    def average_call_time(self) -> float:
        if not self.total_calls:
            return 0.0
        return self.total_time / self.total_calls

    def is_hotspot(self, node: CallNode) -> bool:
        return is_hotspot(node, self.total_time)


def is_hotspot(node: CallNode, total_time: float) -> bool:
    """Whether a single call took more than 10% of the total recorded time."""
    return (node.duration or 0) > total_time * HOTSPOT_FRACTION


def percent_of_total(value: float, total: float) -> float:
    if not total:
        return 0.0
    return value / total * 100


def _qualifies(node: CallNode) -> bool:
    return node.duration is not None and node.duration > 0


def analyze(forest: Forest) -> PerformanceReport:
    """Compute method statistics and rankings for the whole *forest*.

    Rankings are stable: entries that tie keep first-encountered order.
    """
    groups: dict[str, MethodStat] = {}
    timed: list[CallNode] = []
    total_time = 0.0
    total_calls = 0

    for node in forest.walk():
        total_calls += 1
        total_time += node.duration or 0
        if not _qualifies(node):
            continue
        timed.append(node)
        key = method_key(node)
        stats = groups.get(key)
        if stats is None:
            stats = groups[key] = MethodStat(
                method_name=node.method_name,
                class_name=node.defined_class,
            )
        stats.add(node)

    methods = tuple(groups.values())
    report = PerformanceReport(
        by_total_time=_top(methods, "total_time", TOP_METHODS),
        by_average_time=_top(
            [s for s in methods if s.call_count >= 1], "average_time", TOP_METHODS
        ),
        by_call_count=_top(methods, "call_count", TOP_METHODS),
        slow_calls=_top(timed, "duration", TOP_SLOW_CALLS),
        total_time=total_time,
        total_calls=total_calls,
        methods=methods,
    )
    logger.debug(
        "analyzed %d calls: %d methods, %.6fs total", total_calls, len(methods), total_time
    )
    return report


def _top(items, attribute: str, limit: int) -> tuple:
    # sorted() is stable with reverse=True, so ties keep their order.
    return tuple(sorted(items, key=attrgetter(attribute), reverse=True)[:limit])
