"""Loading trace documents from raw input.

The same entry point, :func:`parse_document`, is used whatever the
input came from (a file on disk, stdin, or pasted text).  Input is JSON
in one of two shapes:

.. code-block:: text

    {"version": "...", "timestamp": "...", "events": [<event>, ...]}
    [<event>, ...]

A bare array has no envelope, so its version is reported as
``"unknown"`` and its timestamp is the time of loading.
"""

from __future__ import annotations

import json
import logging
import math
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Union

from tptree.exceptions import TraceNotFoundError, TraceParseError
from tptree.types import EVENT_KINDS, Parameter, TraceDocument, TraceEvent

logger = logging.getLogger(__name__)

UNKNOWN_VERSION = "unknown"

_OPTIONAL_NUMBERS = ("start_time", "end_time", "duration")


def parse_document(raw: Union[str, bytes]) -> TraceDocument:
    """Parse raw JSON text into a :class:`TraceDocument`.

    Parameters:
        raw: UTF-8 bytes or an already decoded string.

    Returns:
        The parsed document.  A missing or null ``events`` field yields a
        document with no events.

    Raises:
        TraceParseError: If the input is not valid JSON, or does not have
            the envelope or bare-array shape, or an event is malformed.
    """
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise TraceParseError(f"Failed to decode input as UTF-8: {e}", detail=str(e)) from e

    try:
        data = json.loads(raw, parse_constant=_reject_constant)
    except json.JSONDecodeError as e:
        raise TraceParseError(f"Failed to parse JSON data: {e}", detail=str(e)) from e

    if isinstance(data, list):
        return TraceDocument(
            version=UNKNOWN_VERSION,
            timestamp=datetime.now(timezone.utc).isoformat(),
            events=_parse_events(data),
        )

    if isinstance(data, dict):
        events = data.get("events")
        if events is None:
            events = []
        elif not isinstance(events, list):
            raise TraceParseError(
                f"'events' must be an array, got {type(events).__name__}"
            )
        return TraceDocument(
            version=str(data.get("version") or UNKNOWN_VERSION),
            timestamp=str(data.get("timestamp") or ""),
            events=_parse_events(events),
        )

    raise TraceParseError(
        "Expected a trace document object or an array of events, "
        f"got {type(data).__name__}"
    )


def read_document(path: Union[str, Path]) -> TraceDocument:
    """Read and parse the trace at *path*; ``"-"`` reads standard input.

    Raises:
        TraceNotFoundError: If *path* does not exist or cannot be read.
        TraceParseError: If its contents are not a valid trace document.
    """
    if str(path) == "-":
        return parse_document(sys.stdin.buffer.read())

    file_path = Path(path)
    try:
        raw = file_path.read_bytes()
    except FileNotFoundError as e:
        raise TraceNotFoundError(f"Trace file not found: {file_path}") from e
    except OSError as e:
        raise TraceNotFoundError(f"Cannot read trace file {file_path}: {e}") from e
    logger.debug("read %d bytes from %s", len(raw), file_path)
    return parse_document(raw)


def _reject_constant(name: str) -> None:
    raise TraceParseError(
        f"Failed to parse JSON data: {name} is not a valid JSON value", detail=name
    )


# --- Event validation ---


def _parse_events(items: list) -> tuple[TraceEvent, ...]:
    return tuple(_parse_event(index, item) for index, item in enumerate(items))


def _fail(index: int, message: str) -> TraceParseError:
    return TraceParseError(f"Invalid event at index {index}: {message}")


def _is_number(value: Any) -> bool:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return False
    return math.isfinite(value)


def _optional_str(index: int, data: dict, key: str) -> Optional[str]:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise _fail(index, f"'{key}' must be a string or null")
    return value


def _parse_event(index: int, data: Any) -> TraceEvent:
    if not isinstance(data, dict):
        raise _fail(index, f"expected an object, got {type(data).__name__}")

    kind = data.get("event")
    if kind not in EVENT_KINDS:
        raise _fail(index, f"'event' must be one of {sorted(EVENT_KINDS)}, got {kind!r}")

    method_name = data.get("method_name")
    if not isinstance(method_name, str):
        raise _fail(index, "'method_name' must be a string")

    depth = data.get("depth", 0)
    if not isinstance(depth, int) or isinstance(depth, bool) or depth < 0:
        raise _fail(index, f"'depth' must be a non-negative integer, got {depth!r}")

    numbers = {}
    for key in _OPTIONAL_NUMBERS:
        value = data.get(key)
        if value is not None and not _is_number(value):
            raise _fail(index, f"'{key}' must be a number or null")
        numbers[key] = value

    lineno = data.get("lineno")
    if lineno is not None and (not isinstance(lineno, int) or isinstance(lineno, bool)):
        raise _fail(index, "'lineno' must be an integer or null")

    return TraceEvent(
        event=kind,
        method_name=method_name,
        depth=depth,
        defined_class=_optional_str(index, data, "defined_class"),
        parameters=_parse_parameters(index, data.get("parameters")),
        return_value=data.get("return_value"),
        path=_optional_str(index, data, "path"),
        lineno=lineno,
        **numbers,
    )


def _parse_parameters(index: int, data: Any) -> Optional[tuple[Parameter, ...]]:
    if data is None:
        return None
    if not isinstance(data, list):
        raise _fail(index, "'parameters' must be an array or null")

    parameters = []
    for item in data:
        if not isinstance(item, dict):
            raise _fail(index, "each parameter must be an object")
        name = item.get("name")
        kind = item.get("type")
        if not isinstance(name, str) or not isinstance(kind, str):
            raise _fail(index, "each parameter needs string 'type' and 'name'")
        parameters.append(Parameter(type=kind, name=name, value=item.get("value")))
    return tuple(parameters)
