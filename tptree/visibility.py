"""Computing which nodes of the forest are currently visible.

The visible projection is a pure function of the forest and the view
state: the set of expanded node ids, the search term, and whether rows
that do not match the search are hidden.  Nothing here keeps state
between calls; :class:`ViewState` is an immutable record and every
update returns a new one.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import AbstractSet, Optional, Sequence

from tptree.types import CallNode, Forest

VIEW_TREE = "tree"
VIEW_PERFORMANCE = "performance"
VIEWS = (VIEW_TREE, VIEW_PERFORMANCE)


def matches(node: CallNode, search: str) -> bool:
    """Whether *node*'s method or class name contains *search*, ignoring case.

    An empty search term matches every node.
    """
    if not search:
        return True
    needle = search.lower()
    if needle in node.method_name.lower():
        return True
    return node.defined_class is not None and needle in node.defined_class.lower()


def project(
    forest: Forest,
    expanded: AbstractSet[str],
    search: str = "",
    filtered_only: bool = False,
) -> tuple[CallNode, ...]:
    """Return the visible nodes of *forest* in depth-first order.

    A node is included unless *filtered_only* is set and it does not
    match *search*.  The children of a node are visited only when its id
    is in *expanded*; a collapsed node hides its whole subtree, even
    descendants that match the search.
    """
    result: list[CallNode] = []
    stack = list(reversed(forest.roots))
    while stack:
        node = stack.pop()
        if not filtered_only or matches(node, search):
            result.append(node)
        if node.children and node.id in expanded:
            stack.extend(reversed(node.children))
    return tuple(result)


def initial_expanded(forest: Forest) -> frozenset[str]:
    """Expansion state for a freshly loaded forest: only the roots are open."""
    return frozenset(node.id for node in forest.roots)


def expand_all(forest: Forest) -> frozenset[str]:
    return frozenset(node.id for node in forest.walk() if node.children)


def collapse_all() -> frozenset[str]:
    return frozenset()


def toggle(expanded: AbstractSet[str], node_id: str) -> frozenset[str]:
    """Return *expanded* with *node_id* added, or removed if already present."""
    if node_id in expanded:
        return frozenset(expanded - {node_id})
    return frozenset(expanded | {node_id})


def selected_node(visible: Sequence[CallNode], selected: Optional[str]) -> Optional[CallNode]:
    """Resolve a selected id against the visible projection.

    A selection that is not currently visible (filtered out, collapsed,
    or from a previous document) resolves to None.
    """
    if selected is None:
        return None
    for node in visible:
        if node.id == selected:
            return node
    return None


@dataclass(frozen=True)
class ViewState:
    """Interactive state of the tree view.

    Attributes:
        expanded:      Ids of nodes whose children are shown.
        search:        Current search term.
        filtered_only: Hide rows that do not match :attr:`search`.
        selected:      Id of the selected node, if any.
        active_view:   ``"tree"`` or ``"performance"``.
    """

    expanded: frozenset[str] = frozenset()
    search: str = ""
    filtered_only: bool = False
    selected: Optional[str] = None
    active_view: str = VIEW_TREE

    @classmethod
    def for_forest(cls, forest: Forest) -> "ViewState":
        return cls(expanded=initial_expanded(forest))

    @property
    def is_filtering(self) -> bool:
        return bool(self.search) or self.filtered_only

    def project(self, forest: Forest) -> tuple[CallNode, ...]:
        return project(forest, self.expanded, self.search, self.filtered_only)

    def with_search(self, search: str) -> "ViewState":
        return replace(self, search=search)

    def with_filtered_only(self, filtered_only: bool) -> "ViewState":
        return replace(self, filtered_only=filtered_only)

    def with_expanded(self, expanded: AbstractSet[str]) -> "ViewState":
        return replace(self, expanded=frozenset(expanded))

    def toggled(self, node_id: str) -> "ViewState":
        return replace(self, expanded=toggle(self.expanded, node_id))

    def with_selected(self, node_id: Optional[str]) -> "ViewState":
        return replace(self, selected=node_id)

    def with_view(self, view: str) -> "ViewState":
        if view not in VIEWS:
            raise ValueError(f"Unknown view {view!r}; expected one of {VIEWS}")
        return replace(self, active_view=view)
