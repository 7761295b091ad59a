"""Pretty-printers for durations, parameters and values.

Values are rendered the way a Ruby developer reads them: ``nil`` for
null, ``:name`` for symbols, strings always quoted.  Each printer comes
in a compact form, bounded in width for tree rows and report cards, and
a full form for the details panel.
"""

from __future__ import annotations

import json
import math
from typing import Iterable, Optional

from tptree.types import Parameter, Symbol, Value

NIL = "nil"
ELLIPSIS = "…"
INDENT = "  "
# Nesting beyond this is elided, so pathological values cannot exhaust the stack.
MAX_DEPTH = 32

COMPACT_PARAMETER_LIMIT = 3


def format_duration(seconds: Optional[float]) -> str:
    """Format a duration in seconds; ``""`` when there is none.

    >>> format_duration(0.0005), format_duration(0.25), format_duration(2.5)
    ('500.0μs', '250.0ms', '2.500s')
    """
    if seconds is None:
        return ""
    if seconds < 0.001:
        return f"{seconds * 1_000_000:.1f}μs"
    if seconds < 1.0:
        return f"{seconds * 1000:.1f}ms"
    return f"{seconds:.3f}s"


def format_number(value: float) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value.is_integer():
        return str(int(value))
    return repr(value)


def _truncate(text: str, max_length: int, tail: str = "...") -> str:
    if len(text) <= max_length:
        return text
    return text[: max(0, max_length - 3)] + tail


def format_value(value: Value, max_length: int = 50, _depth: int = 0) -> str:
    """One-line summary of *value*, at most about *max_length* characters.

    Collections show their first element and a count of the rest.
    """
    if value is None:
        return NIL
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return format_number(value)
    if isinstance(value, str):
        quoted = json.dumps(value, ensure_ascii=False)
        return _truncate(quoted, max_length, tail='..."')
    if isinstance(value, Symbol):
        return str(value)
    if _depth >= MAX_DEPTH:
        return ELLIPSIS
    if isinstance(value, (list, tuple)):
        if not value:
            return "[]"
        if len(value) == 1:
            return f"[{format_value(value[0], 20, _depth + 1)}]"
        return f"[{format_value(value[0], 15, _depth + 1)}, ... +{len(value) - 1} more]"
    if isinstance(value, dict):
        if not value:
            return "{}"
        keys = list(value)
        if len(keys) == 1:
            key = keys[0]
            formatted = f"{{{key}: {format_value(value[key], 20, _depth + 1)}}}"
            return f"{{{key}: ...}}" if len(formatted) > max_length else formatted
        return f"{{{keys[0]}: ..., +{len(keys) - 1} more}}"
    return _truncate(str(value), max_length)


def format_value_full(value: Value, max_depth: int = MAX_DEPTH, _depth: int = 0) -> str:
    """Multi-line rendering of *value*, one element per line, indented by level."""
    if value is None:
        return NIL
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return format_number(value)
    if isinstance(value, str):
        return f'"{value}"'
    if isinstance(value, Symbol):
        return str(value)
    if isinstance(value, (list, tuple, dict)) and _depth >= max_depth:
        return ELLIPSIS

    inner = INDENT * (_depth + 1)
    outer = INDENT * _depth
    if isinstance(value, (list, tuple)):
        if not value:
            return "[]"
        items = [format_value_full(v, max_depth, _depth + 1) for v in value]
        return "[\n" + ",\n".join(inner + item for item in items) + f"\n{outer}]"
    if isinstance(value, dict):
        if not value:
            return "{}"
        items = [
            f"{json.dumps(str(k), ensure_ascii=False)}: {format_value_full(v, max_depth, _depth + 1)}"
            for k, v in value.items()
        ]
        return "{\n" + ",\n".join(inner + item for item in items) + f"\n{outer}}}"
    return str(value)


def format_parameter(param: Parameter, max_length: Optional[int] = 30) -> str:
    """Render one parameter by binding kind; *max_length* None means full values."""

    def render(value: Value) -> str:
        if max_length is None:
            return format_value_full(value)
        return format_value(value, max_length)

    kind = param.type
    if kind in ("req", "opt"):
        return f"{param.name} = {render(param.value)}"
    if kind in ("keyreq", "key"):
        if param.value is None:
            return f"{param.name}:"
        return f"{param.name} = {render(param.value)}"
    if kind == "rest":
        return f"*{param.name}"
    if kind == "keyrest":
        return f"**{param.name}"
    if kind == "block":
        return f"&{param.name}"
    return str(param.name)


def format_parameters(parameters: Optional[Iterable[Parameter]]) -> str:
    """Compact parameter list for a tree row.

    More than three parameters collapse to the first two and a count.
    """
    if not parameters:
        return ""
    params = list(parameters)
    if len(params) > COMPACT_PARAMETER_LIMIT:
        first = ", ".join(format_parameter(p, 25) for p in params[:2])
        return f"{first}, ... +{len(params) - 2} more"
    return ", ".join(format_parameter(p, 30) for p in params)


def format_parameters_full(parameters: Optional[Iterable[Parameter]]) -> str:
    """Every parameter with its full value, one per line."""
    if not parameters:
        return ""
    return ",\n".join(format_parameter(p, None) for p in parameters)
