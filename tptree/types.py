"""Data types for the tptree call-tree viewer.

These dataclasses describe the two sides of reconstruction: the flat
trace events emitted by the Ruby tracer (``call``, ``return`` and
``call_return`` records) and the call nodes rebuilt from them, grouped in
a :class:`Forest`.

All types support both attribute and dictionary-style access, so that
``node.method_name`` and ``node['method_name']`` are interchangeable.
Common short aliases are also supported (e.g. ``node['method']``
resolves to ``node.method_name``, ``node['class']`` resolves to
``node.defined_class``).
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional, Union

from tptree.exceptions import SelectionError

EVENT_CALL = "call"
EVENT_RETURN = "return"
EVENT_CALL_RETURN = "call_return"
EVENT_KINDS = frozenset({EVENT_CALL, EVENT_RETURN, EVENT_CALL_RETURN})

# Ruby parameter-binding kinds, as reported by ``Method#parameters``.
PARAMETER_KINDS = frozenset({"req", "opt", "keyreq", "key", "rest", "keyrest", "block"})


@dataclass(frozen=True)
class Symbol:
    """A symbol-like atom (``:name`` in the traced program)."""

    name: str

    def __str__(self) -> str:
        return f":{self.name}"


# Parameter and return values: JSON-shaped data plus symbol atoms.
Value = Union[None, bool, int, float, str, Symbol, list["Value"], dict[str, "Value"]]


class DictAccessMixin:
    """Mixin providing dict-like access to dataclass fields.

    Subclasses may define ``_ALIASES`` as a class-level dict mapping
    short names to the actual field names.  For example::

        _ALIASES = {'method': 'method_name'}

    allows ``node['method']`` to resolve to ``node.method_name``.
    """

    _ALIASES: dict[str, str] = {}

    def _resolve_key(self, key: str) -> str:
        """Map *key* through ``_ALIASES``, falling back to *key* itself."""
        aliases = getattr(self.__class__, "_ALIASES", {})
        return aliases.get(key, key)

    def __getitem__(self, key: str) -> Any:
        resolved = self._resolve_key(key)
        try:
            return getattr(self, resolved)
        except AttributeError:
            raise KeyError(key) from None

    def get(self, key: str, default: Any = None) -> Any:
        """Return ``self[key]`` if *key* exists, else *default*."""
        try:
            return self[key]
        except KeyError:
            return default

    def __contains__(self, key: str) -> bool:
        resolved = self._resolve_key(key)
        return hasattr(self, resolved)

    def keys(self) -> list[str]:
        """Return the list of field names (like ``dict.keys()``)."""
        return [f.name for f in dataclasses.fields(self)]

    def values(self) -> list[Any]:
        """Return the list of field values (like ``dict.values()``)."""
        return [getattr(self, f.name) for f in dataclasses.fields(self)]

    def items(self) -> list[tuple[str, Any]]:
        """Return ``(name, value)`` pairs (like ``dict.items()``)."""
        return [(f.name, getattr(self, f.name)) for f in dataclasses.fields(self)]


@dataclass(frozen=True)
class Parameter(DictAccessMixin):
    """One bound parameter of a traced call.

    Attributes:
        type:  The binding kind (``req``, ``opt``, ``keyreq``, ``key``,
               ``rest``, ``keyrest`` or ``block``).
        name:  The parameter's identifier.
        value: The captured argument value (None when not captured).
    """

    _ALIASES = {"kind": "type"}

    type: str
    name: str
    value: Value = None


@dataclass(frozen=True)
class TraceEvent(DictAccessMixin):
    """A single record of the flat trace stream.

    Attributes:
        event:         ``call``, ``return`` or ``call_return``.
        method_name:   Name of the invoked method.
        depth:         Call-stack depth at the time of the event.
        defined_class: Owning class/module name, if known.
        parameters:    Bound parameters, or None when not captured.
        return_value:  The returned value (``return``/``call_return`` only).
        path:          Source file of the method definition.
        lineno:        Line number of the method definition.
        start_time:    Wall-clock start, in seconds.
        end_time:      Wall-clock end, in seconds.
        duration:      Elapsed seconds; absent on ``call`` events.
    """

    _ALIASES = {"method": "method_name", "class": "defined_class"}

    event: str
    method_name: str
    depth: int = 0
    defined_class: Optional[str] = None
    parameters: Optional[tuple[Parameter, ...]] = None
    return_value: Value = None
    path: Optional[str] = None
    lineno: Optional[int] = None
    start_time: Optional[float] = None
    end_time: Optional[float] = None
    duration: Optional[float] = None

    @property
    def call_key(self) -> tuple[int, str]:
        """The ``(depth, method_name)`` pair correlating a call with its return."""
        return (self.depth, self.method_name)


@dataclass(frozen=True)
class TraceDocument(DictAccessMixin):
    """A parsed trace file.

    Attributes:
        version:   Tracer format version (``"unknown"`` for bare arrays).
        timestamp: When the trace was written (ISO-8601 string).
        events:    The ordered event stream.
    """

    version: str
    timestamp: str
    events: tuple[TraceEvent, ...] = ()


@dataclass(eq=False)
class CallNode(DictAccessMixin):
    """One reconstructed call in the tree.

    Nodes are created by :func:`tptree.reconstruct.reconstruct` and are
    only mutated there, when a matching ``return`` merges its return
    value and timing into the node.  The parent owns the node through
    its ``children`` list; the child refers back to it by id only.

    Attributes:
        id:        Unique identifier (``node-<event index>``).
        children:  Child calls, in call order.
        parent_id: Id of the parent node, None for roots.
        level:     Display nesting level (equals ``depth``).
    """

    _ALIASES = {"method": "method_name", "class": "defined_class"}

    id: str
    event: str
    method_name: str
    depth: int = 0
    defined_class: Optional[str] = None
    parameters: Optional[tuple[Parameter, ...]] = None
    return_value: Value = None
    path: Optional[str] = None
    lineno: Optional[int] = None
    start_time: Optional[float] = None
    end_time: Optional[float] = None
    duration: Optional[float] = None
    children: list["CallNode"] = field(default_factory=list)
    parent_id: Optional[str] = None
    level: int = 0

    @classmethod
    def from_event(cls, node_id: str, event: TraceEvent) -> "CallNode":
        return cls(
            id=node_id,
            event=event.event,
            method_name=event.method_name,
            depth=event.depth,
            defined_class=event.defined_class,
            parameters=event.parameters,
            return_value=event.return_value,
            path=event.path,
            lineno=event.lineno,
            start_time=event.start_time,
            end_time=event.end_time,
            duration=event.duration,
            level=event.depth,
        )

    @property
    def call_key(self) -> tuple[int, str]:
        return (self.depth, self.method_name)

    @property
    def has_children(self) -> bool:
        return bool(self.children)

    @property
    def has_return_value(self) -> bool:
        return self.return_value is not None

    @property
    def kind_label(self) -> str:
        """Human-readable call kind, as shown in the details panel."""
        if self.event == EVENT_CALL_RETURN:
            return "Leaf Call"
        if self.has_return_value:
            return "Call with Return"
        return "Call"

    @property
    def location(self) -> Optional[str]:
        """``path:lineno`` of the method definition, if recorded."""
        if not self.path:
            return None
        if self.lineno:
            return f"{self.path}:{self.lineno}"
        return self.path

    def __repr__(self) -> str:
        return (
            f"CallNode(id={self.id!r}, method_name={self.method_name!r}, "
            f"depth={self.depth}, children={len(self.children)})"
        )


class Forest:
    """The reconstructed call forest: ordered roots plus an id index.

    Parent links are resolved through the index rather than stored as
    object references, so every node has exactly one owner (its parent's
    ``children`` list, or the root list).

    Parameters:
        roots: Root nodes in first-seen order.
        nodes: Mapping of every node id to its node.
    """

    def __init__(
        self,
        roots: Optional[list[CallNode]] = None,
        nodes: Optional[dict[str, CallNode]] = None,
    ) -> None:
        self._roots = roots or []
        self._nodes = nodes if nodes is not None else {n.id: n for n in _preorder(self._roots)}

    @property
    def roots(self) -> list[CallNode]:
        return self._roots

    def get(self, node_id: str) -> Optional[CallNode]:
        """Return the node with *node_id*, or None if it is not in the forest."""
        return self._nodes.get(node_id)

    def node(self, node_id: str) -> CallNode:
        """Return the node with *node_id*.

        Raises:
            SelectionError: If no such node exists.
        """
        try:
            return self._nodes[node_id]
        except KeyError:
            raise SelectionError(f"No node with id {node_id!r}") from None

    def parent(self, node: CallNode) -> Optional[CallNode]:
        if node.parent_id is None:
            return None
        return self._nodes.get(node.parent_id)

    def ancestors(self, node: CallNode) -> list[CallNode]:
        """Return the chain of ancestors of *node*, nearest first."""
        chain = []
        current = self.parent(node)
        while current is not None:
            chain.append(current)
            current = self.parent(current)
        return chain

    def walk(self) -> Iterator[CallNode]:
        """Yield every node in depth-first pre-order."""
        return _preorder(self._roots)

    def __len__(self) -> int:
        return len(self._nodes)

    def __iter__(self) -> Iterator[CallNode]:
        return iter(self._roots)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __bool__(self) -> bool:
        return bool(self._roots)


def _preorder(roots: list[CallNode]) -> Iterator[CallNode]:
    stack = list(reversed(roots))
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))
