from __future__ import annotations

import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT))

from tptree.reconstruct import reconstruct
from tptree.types import TraceEvent
from tptree.visibility import (
    ViewState,
    collapse_all,
    expand_all,
    initial_expanded,
    matches,
    project,
    selected_node,
    toggle,
)


def ev(kind, name, depth, cls=None):
    return TraceEvent(event=kind, method_name=name, depth=depth, defined_class=cls)


def sample_forest():
    # App#run
    #   Loader#load
    #     Parser#parse
    #       Lexer#next_token
    #   Renderer#render
    # App#shutdown
    return reconstruct([
        ev("call", "run", 0, "App"),
        ev("call", "load", 1, "Loader"),
        ev("call", "parse", 2, "Parser"),
        ev("call_return", "next_token", 3, "Lexer"),
        ev("return", "parse", 2),
        ev("return", "load", 1),
        ev("call_return", "render", 1, "Renderer"),
        ev("return", "run", 0),
        ev("call_return", "shutdown", 0, "App"),
    ])


def names(nodes):
    return [n.method_name for n in nodes]


class ProjectTests(unittest.TestCase):
    def setUp(self) -> None:
        self.forest = sample_forest()

    def test_initial_state_opens_only_roots(self) -> None:
        expanded = initial_expanded(self.forest)
        self.assertEqual(expanded, {"node-0", "node-8"})
        visible = project(self.forest, expanded)
        self.assertEqual(names(visible), ["run", "load", "render", "shutdown"])

    def test_projection_is_deterministic(self) -> None:
        expanded = expand_all(self.forest)
        first = project(self.forest, expanded, "p", True)
        second = project(self.forest, expanded, "p", True)
        self.assertEqual(len(first), len(second))
        for a, b in zip(first, second):
            self.assertIs(a, b)

    def test_expanding_only_adds_and_collapsing_removes_the_same_rows(self) -> None:
        before = project(self.forest, initial_expanded(self.forest))
        opened = toggle(initial_expanded(self.forest), "node-1")
        after = project(self.forest, opened)
        self.assertEqual(names(after), ["run", "load", "parse", "render", "shutdown"])
        self.assertTrue(set(map(id, before)) <= set(map(id, after)))
        closed = project(self.forest, toggle(opened, "node-1"))
        self.assertEqual([n.id for n in closed], [n.id for n in before])

    def test_collapsed_subtree_hides_matching_descendants(self) -> None:
        visible = project(self.forest, initial_expanded(self.forest), "lexer", True)
        self.assertEqual(visible, ())
        visible = project(self.forest, expand_all(self.forest), "lexer", True)
        self.assertEqual(names(visible), ["next_token"])

    def test_filter_matches_method_or_class_ignoring_case(self) -> None:
        expanded = expand_all(self.forest)
        self.assertEqual(names(project(self.forest, expanded, "APP", True)), ["run", "shutdown"])
        self.assertEqual(names(project(self.forest, expanded, "Pars", True)), ["parse"])

    def test_search_without_filtered_only_keeps_every_row(self) -> None:
        expanded = expand_all(self.forest)
        self.assertEqual(len(project(self.forest, expanded, "zzz", False)), 6)

    def test_empty_search_matches_everything(self) -> None:
        expanded = expand_all(self.forest)
        self.assertEqual(len(project(self.forest, expanded, "", True)), len(self.forest))
        node = self.forest.roots[0]
        self.assertTrue(matches(node, ""))

    def test_expand_all_and_collapse_all(self) -> None:
        self.assertEqual(expand_all(self.forest), {"node-0", "node-1", "node-2"})
        self.assertEqual(names(project(self.forest, collapse_all())), ["run", "shutdown"])

    def test_selection_resolves_only_against_visible_rows(self) -> None:
        visible = project(self.forest, initial_expanded(self.forest))
        self.assertEqual(selected_node(visible, "node-1").method_name, "load")
        self.assertIsNone(selected_node(visible, "node-3"))
        self.assertIsNone(selected_node(visible, None))


class ViewStateTests(unittest.TestCase):
    def test_updates_return_new_records(self) -> None:
        forest = sample_forest()
        state = ViewState.for_forest(forest)
        searched = state.with_search("load").with_filtered_only(True)
        self.assertEqual(state.search, "")
        self.assertFalse(state.filtered_only)
        self.assertTrue(searched.is_filtering)
        self.assertEqual(names(searched.project(forest)), ["load"])
        self.assertIn("node-1", state.toggled("node-1").expanded)
        self.assertNotIn("node-1", state.expanded)

    def test_unknown_view_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            ViewState().with_view("flamegraph")
        self.assertEqual(ViewState().with_view("performance").active_view, "performance")


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
