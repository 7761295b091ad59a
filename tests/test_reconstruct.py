from __future__ import annotations

import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT))

from tptree.reconstruct import reconstruct
from tptree.types import Parameter, TraceEvent


def call(name, depth, **kwargs):
    return TraceEvent(event="call", method_name=name, depth=depth, **kwargs)


def ret(name, depth, value=None, **kwargs):
    return TraceEvent(event="return", method_name=name, depth=depth, return_value=value, **kwargs)


def leaf(name, depth, value=None, **kwargs):
    return TraceEvent(event="call_return", method_name=name, depth=depth, return_value=value, **kwargs)


def shape(forest):
    return [(n.method_name, n.depth) for n in forest.walk()]


class ReconstructTests(unittest.TestCase):
    def test_nested_call_and_return(self) -> None:
        forest = reconstruct([call("a", 0), call("b", 1), ret("b", 1, 5), ret("a", 0, 5)])
        self.assertEqual(len(forest.roots), 1)
        root = forest.roots[0]
        self.assertEqual(root.method_name, "a")
        self.assertEqual([c.method_name for c in root.children], ["b"])
        self.assertEqual(root.return_value, 5)
        self.assertEqual(root.children[0].return_value, 5)

    def test_call_returns_become_sibling_roots(self) -> None:
        forest = reconstruct([leaf("x", 0, 1), leaf("y", 0, 2)])
        self.assertEqual([n.method_name for n in forest.roots], ["x", "y"])
        self.assertEqual([n.return_value for n in forest.roots], [1, 2])
        self.assertTrue(all(not n.children for n in forest.roots))

    def test_preorder_matches_call_order_for_nested_trace(self) -> None:
        events = [
            call("main", 0),
            call("load", 1),
            leaf("read", 2, "data"),
            call("parse", 2),
            leaf("token", 3, 1),
            leaf("token", 3, 2),
            ret("parse", 2, []),
            ret("load", 1, {}),
            call("render", 1),
            call("render", 2),
            ret("render", 2, "inner"),
            ret("render", 1, "outer"),
            ret("main", 0, 0),
            leaf("exit", 0),
        ]
        forest = reconstruct(events)
        expected = [(e.method_name, e.depth) for e in events if e.event != "return"]
        self.assertEqual(shape(forest), expected)
        self.assertEqual(len(forest), len(expected))

    def test_return_merges_into_the_call_node(self) -> None:
        params = (Parameter(type="req", name="id", value=7),)
        forest = reconstruct([
            call("find", 0, parameters=params, start_time=10.0),
            ret("find", 0, {"id": 7}, end_time=10.5, duration=0.5),
        ])
        self.assertEqual(len(forest), 1)
        node = forest.roots[0]
        self.assertEqual(node.parameters, params)
        self.assertEqual(node.return_value, {"id": 7})
        self.assertEqual(node.start_time, 10.0)
        self.assertEqual(node.end_time, 10.5)
        self.assertEqual(node.duration, 0.5)
        self.assertEqual(node.kind_label, "Call with Return")

    def test_call_return_is_a_childless_node_at_any_depth(self) -> None:
        forest = reconstruct([call("a", 0), leaf("b", 1, 3), leaf("c", 1), ret("a", 0)])
        root = forest.roots[0]
        self.assertEqual([c.method_name for c in root.children], ["b", "c"])
        for child in root.children:
            self.assertEqual(child.children, [])
            self.assertEqual(child.kind_label, "Leaf Call")

    def test_unmatched_trailing_return_is_dropped(self) -> None:
        events = [call("a", 0), leaf("b", 1), ret("a", 0, 1)]
        baseline = reconstruct(events)
        forest = reconstruct(events + [ret("ghost", 0, 99), ret("a", 3, 42)])
        self.assertEqual(shape(forest), shape(baseline))
        self.assertEqual(forest.roots[0].return_value, 1)

    def test_unmatched_call_keeps_no_return_data(self) -> None:
        forest = reconstruct([call("a", 0), leaf("b", 1, 2)])
        node = forest.roots[0]
        self.assertIsNone(node.return_value)
        self.assertIsNone(node.duration)
        self.assertEqual(node.kind_label, "Call")

    def test_same_key_call_replaces_the_pending_entry(self) -> None:
        forest = reconstruct([call("f", 0), call("f", 0), ret("f", 0, 1)])
        first, second = forest.roots
        self.assertIsNone(first.return_value)
        self.assertEqual(second.return_value, 1)

    def test_unwound_call_can_no_longer_take_a_return(self) -> None:
        forest = reconstruct([call("a", 0), call("b", 1), call("c", 0), ret("b", 1, 9)])
        a, c = forest.roots
        self.assertIsNone(a.children[0].return_value)
        self.assertEqual(c.children, [])

    def test_recursive_calls_match_by_depth(self) -> None:
        forest = reconstruct([
            call("fact", 0), call("fact", 1), leaf("fact", 2, 1),
            ret("fact", 1, 2), ret("fact", 0, 6),
        ])
        outer = forest.roots[0]
        inner = outer.children[0]
        self.assertEqual(outer.return_value, 6)
        self.assertEqual(inner.return_value, 2)
        self.assertEqual(inner.children[0].return_value, 1)

    def test_ids_parents_and_levels(self) -> None:
        forest = reconstruct([call("a", 0), call("b", 1), leaf("c", 2), ret("b", 1), ret("a", 0)])
        ids = [n.id for n in forest.walk()]
        self.assertEqual(ids, ["node-0", "node-1", "node-2"])
        c = forest.node("node-2")
        self.assertEqual(c.parent_id, "node-1")
        self.assertEqual([n.id for n in forest.ancestors(c)], ["node-1", "node-0"])
        self.assertIsNone(forest.parent(forest.roots[0]))
        self.assertTrue(all(n.level == n.depth for n in forest.walk()))

    def test_shallower_call_after_gap_attaches_to_nearest_shallower_ancestor(self) -> None:
        forest = reconstruct([call("a", 0), call("b", 3), call("c", 2)])
        a = forest.roots[0]
        self.assertEqual([n.method_name for n in a.children], ["b", "c"])

    def test_empty_event_list(self) -> None:
        forest = reconstruct([])
        self.assertEqual(forest.roots, [])
        self.assertEqual(len(forest), 0)
        self.assertFalse(forest)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
