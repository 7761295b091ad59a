"""tptree: call-tree viewer for Ruby method traces.

Rebuild the call tree from a flat trace, browse it in bounded windows,
and summarise where the time went.
"""
from tptree.analysis import MethodStat, PerformanceReport, analyze, is_hotspot
from tptree.config import ViewerConfig, load_config
from tptree.formatting import (
    format_duration,
    format_parameters,
    format_parameters_full,
    format_value,
    format_value_full,
)
from tptree.reconstruct import reconstruct
from tptree.session import Session
from tptree.source import parse_document, read_document
from tptree.types import (
    CallNode,
    Forest,
    Parameter,
    Symbol,
    TraceDocument,
    TraceEvent,
)
from tptree.visibility import ViewState, project
from tptree.window import Virtualizer, VisibleRows, Window, compute_window
from tptree.exceptions import (
    SelectionError,
    TraceError,
    TraceNotFoundError,
    TraceParseError,
)

__version__ = "0.1.0"
__all__ = [
    "analyze",
    "compute_window",
    "format_duration",
    "format_parameters",
    "format_parameters_full",
    "format_value",
    "format_value_full",
    "is_hotspot",
    "load_config",
    "parse_document",
    "project",
    "read_document",
    "reconstruct",
    "CallNode",
    "Forest",
    "MethodStat",
    "Parameter",
    "PerformanceReport",
    "Session",
    "Symbol",
    "TraceDocument",
    "TraceEvent",
    "ViewerConfig",
    "ViewState",
    "Virtualizer",
    "VisibleRows",
    "Window",
    "SelectionError",
    "TraceError",
    "TraceNotFoundError",
    "TraceParseError",
]
