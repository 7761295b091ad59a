"""Viewer configuration and fixed analysis constants.

Row geometry and terminal options can be overridden through the
environment; the analysis heuristics cannot.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

# Estimated height of one tree row, in pixels (or lines for the CLI).
DEFAULT_ROW_HEIGHT = 36
# Rows materialised beyond each edge of the viewport.
DEFAULT_OVERSCAN = 10
DEFAULT_VIEWPORT_ROWS = 40

TOP_METHODS = 10
TOP_SLOW_CALLS = 15
HOTSPOT_FRACTION = 0.1
HIGH_VARIANCE_FACTOR = 2

ROW_HEIGHT_ENV = "TPTREE_ROW_HEIGHT"
OVERSCAN_ENV = "TPTREE_OVERSCAN"
VIEWPORT_ROWS_ENV = "TPTREE_VIEWPORT_ROWS"
NO_COLOR_ENV = "NO_COLOR"


@dataclass(frozen=True)
class ViewerConfig:
    """Settings for the windowed tree view.

    Attributes:
        row_height:    Estimated size of one row.
        overscan:      Extra rows rendered above and below the viewport.
        viewport_rows: Number of rows the CLI shows per page.
        color:         Whether terminal output is colourised.
    """

    row_height: int = DEFAULT_ROW_HEIGHT
    overscan: int = DEFAULT_OVERSCAN
    viewport_rows: int = DEFAULT_VIEWPORT_ROWS
    color: bool = True

    @property
    def viewport_size(self) -> int:
        return self.viewport_rows * self.row_height


def _int_setting(environ: Mapping[str, str], name: str, default: int, minimum: int) -> int:
    raw = environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


def load_config(environ: Optional[Mapping[str, str]] = None) -> ViewerConfig:
    """Build a :class:`ViewerConfig` from environment variables.

    Parameters:
        environ: Mapping to read from; defaults to :data:`os.environ`.

    Raises:
        ValueError: If a variable is set to something that is not a
            valid integer in range.
    """
    if environ is None:
        environ = os.environ
    return ViewerConfig(
        row_height=_int_setting(environ, ROW_HEIGHT_ENV, DEFAULT_ROW_HEIGHT, 1),
        overscan=_int_setting(environ, OVERSCAN_ENV, DEFAULT_OVERSCAN, 0),
        viewport_rows=_int_setting(environ, VIEWPORT_ROWS_ENV, DEFAULT_VIEWPORT_ROWS, 1),
        # https://no-color.org: any non-empty value disables colour.
        color=not environ.get(NO_COLOR_ENV),
    )
