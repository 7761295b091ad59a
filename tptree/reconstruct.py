"""Rebuilding the call tree from a flat event stream.

The tracer emits one event when a method is entered (``call``), one
when it returns (``return``), and a single ``call_return`` for a call
that made no traced calls of its own.  Every event carries the
call-stack depth at which it happened.

:func:`reconstruct` walks the events once.  It keeps a stack of nodes
that may still receive children and, for each ``(depth, method_name)``
call key, the most recent call still waiting for its return.  Nodes on
the stack at the same depth or deeper than an incoming call are popped
first: that frame has unwound, so it can no longer take children or a
return.
"""

from __future__ import annotations

import logging
from typing import Iterable

from tptree.types import EVENT_CALL, EVENT_RETURN, CallNode, Forest, TraceEvent

logger = logging.getLogger(__name__)


def node_id_for(index: int) -> str:
    """Id of the node created from the event at position *index*."""
    return f"node-{index}"


def reconstruct(events: Iterable[TraceEvent]) -> Forest:
    """Build a :class:`Forest` from an ordered sequence of events.

    ``return`` events never produce nodes; a matching one merges its
    ``return_value``, ``end_time`` and ``duration`` into the open call
    with the same call key.  A ``return`` with no open call is dropped.
    A ``call`` that never returns stays in the tree without a return
    value or duration.

    Only one pending call is tracked per call key: a later ``call`` to
    the same method at the same depth replaces an earlier one that has
    not been popped yet, and only the later one can be matched.

    Parameters:
        events: The event stream, in emission order.

    Returns:
        The forest; roots in first-seen order, children in call order.
    """
    roots: list[CallNode] = []
    nodes: dict[str, CallNode] = {}
    stack: list[CallNode] = []
    pending: dict[tuple[int, str], CallNode] = {}

    calls = 0
    merged = 0
    dropped = 0

    for index, event in enumerate(events):
        if event.event == EVENT_RETURN:
            node = pending.pop(event.call_key, None)
            if node is None:
                dropped += 1
                continue
            node.return_value = event.return_value
            node.end_time = event.end_time
            node.duration = event.duration
            merged += 1
            continue

        node = CallNode.from_event(node_id_for(index), event)
        nodes[node.id] = node

        while stack and stack[-1].level >= node.level:
            popped = stack.pop()
            # Only drop the entry if it still belongs to the popped node.
            if pending.get(popped.call_key) is popped:
                del pending[popped.call_key]

        if stack:
            parent = stack[-1]
            parent.children.append(node)
            node.parent_id = parent.id
        else:
            roots.append(node)

        if event.event == EVENT_CALL:
            pending[node.call_key] = node
            calls += 1

        stack.append(node)

    logger.debug(
        "reconstructed %d nodes in %d roots (%d returns dropped, %d calls unmatched)",
        len(nodes),
        len(roots),
        dropped,
        calls - merged,
    )
    return Forest(roots, nodes)
