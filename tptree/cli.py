"""Console entry point: browse a trace's call tree or its performance report."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional

from colored import fg, style

from tptree.analysis import MethodStat, PerformanceReport, percent_of_total
from tptree.config import ViewerConfig, load_config
from tptree.exceptions import TraceError
from tptree.formatting import (
    format_duration,
    format_parameters,
    format_parameters_full,
    format_value,
    format_value_full,
)
from tptree.session import Session
from tptree.types import CallNode

logger = logging.getLogger("tptree")

DEPTH_COLORS = ("blue", "green", "yellow", "magenta", "cyan", "red")


class Palette:
    """ANSI escapes for the CLI, empty strings when colour is off."""

    def __init__(self, enabled: bool) -> None:
        self.enabled = enabled
        self.reset = style("reset") if enabled else ""

    def paint(self, text: str, color: str) -> str:
        if not self.enabled:
            return text
        return f"{fg(color)}{text}{self.reset}"

    def depth(self, text: str, depth: int) -> str:
        return self.paint(text, DEPTH_COLORS[depth % len(DEPTH_COLORS)])


def setup_logging(verbosity: int) -> None:
    """Send tptree's log records to stderr at a level chosen by ``-v`` flags."""
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(levelname)s:%(message)s"))
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tptree",
        description="Interactive visualization for Ruby method call trees",
    )
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="more logging (repeat for debug output)")
    parser.add_argument("--no-color", action="store_true", help="disable colours")
    commands = parser.add_subparsers(dest="command", required=True)

    tree = commands.add_parser("tree", help="print a window of the call tree")
    tree.add_argument("file", help="trace JSON file, or - for stdin")
    tree.add_argument("--search", default="", help="case-insensitive method/class filter")
    tree.add_argument("--filtered-only", action="store_true",
                      help="hide rows that do not match --search")
    expansion = tree.add_mutually_exclusive_group()
    expansion.add_argument("--expand-all", action="store_true")
    expansion.add_argument("--collapse-all", action="store_true")
    tree.add_argument("--toggle", action="append", default=[], metavar="ID",
                      help="toggle expansion of a node (repeatable)")
    tree.add_argument("--scroll", type=int, default=0, metavar="ROW",
                      help="first visible row")
    tree.add_argument("--rows", type=int, default=None, help="rows per page")
    tree.add_argument("--select", metavar="ID", help="show details of a node")

    stats = commands.add_parser("stats", help="print the performance report")
    stats.add_argument("file", help="trace JSON file, or - for stdin")
    return parser


# --- Tree view ---


def render_row(node: CallNode, expanded: bool, palette: Palette) -> str:
    guides = "│ " * node.depth
    if node.children:
        marker = "▾" if expanded else "▸"
    else:
        marker = "•"
    text = f"{guides}{palette.depth(marker, node.depth)} "
    text += palette.depth(node.method_name, node.depth)
    text += f"({format_parameters(node.parameters)})"
    if node.has_return_value:
        text += " → " + palette.paint(format_value(node.return_value, 30), "yellow")
    duration = format_duration(node.duration)
    if duration:
        text += " " + palette.paint(f"[{duration}]", "cyan")
    return text


def render_details(node: CallNode) -> list[str]:
    lines = [
        f"Method:   {node.method_name}",
        f"Id:       {node.id}",
        f"Type:     {node.kind_label}",
    ]
    if node.defined_class:
        lines.append(f"Class:    {node.defined_class}")
    lines.append(f"Depth:    {node.depth}")
    if node.duration:
        lines.append(f"Duration: {format_duration(node.duration)}")
    if node.parameters:
        lines.append(f"Parameters ({len(node.parameters)}):")
        lines.extend("  " + line for line in format_parameters_full(node.parameters).splitlines())
    if node.has_return_value:
        lines.append("Return Value:")
        lines.extend("  " + line for line in format_value_full(node.return_value).splitlines())
    if node.location:
        lines.append(f"Location: {node.location}")
    return lines


def run_tree(args: argparse.Namespace, session: Session, config: ViewerConfig, palette: Palette) -> int:
    if args.expand_all:
        session.expand_all()
    elif args.collapse_all:
        session.collapse_all()
    for node_id in args.toggle:
        session.toggle(node_id)
    session.set_search(args.search)
    session.set_filtered_only(args.filtered_only)

    document = session.document
    print(f"Version: {document.version}  Timestamp: {document.timestamp}")

    message = session.empty_message
    if message:
        print(message)
        return 0

    rows = args.rows or config.viewport_rows
    first = max(0, min(args.scroll, len(session.rows) - 1))
    scroll_offset = session.virtualizer.start_of(first)
    viewport = rows * config.row_height
    expanded = session.state.expanded
    shown = 0
    for item, node in session.window(scroll_offset, viewport):
        if item.end <= scroll_offset or item.start >= scroll_offset + viewport:
            continue  # overscan
        print(render_row(node, node.id in expanded, palette))
        shown += 1
    print(f"-- rows {first + 1}-{first + shown} of {len(session.rows)} --")

    if args.select:
        session.select(args.select)
        node = session.selected
        print()
        if node is None:
            print("Select a node to view details")
        else:
            print("\n".join(render_details(node)))
    return 0


# --- Performance view ---


def _stat_line(rank: int, stats: MethodStat, value: str, palette: Palette) -> str:
    flag = palette.paint(" [high variance]", "red") if stats.high_variance else ""
    return (
        f"  {rank:2d}. {stats.key:<40s} {stats.call_count:>6d}x  {value:>10s}"
        f"  (min {format_duration(stats.min_time)}, max {format_duration(stats.max_time)})"
        f"{flag}  -> {stats.example_node_id}"
    )


def render_report(report: PerformanceReport, palette: Palette) -> list[str]:
    lines = [
        f"Total Time:  {format_duration(report.total_time)}",
        f"Total Calls: {report.total_calls}",
        f"Avg Time:    {format_duration(report.average_call_time)}",
    ]
    if not report.methods:
        lines.append("No timed calls to analyze")
        return lines

    sections = (
        ("Top Methods by Total Time", report.by_total_time,
         lambda s: format_duration(s.total_time)),
        ("Top Methods by Average Time", report.by_average_time,
         lambda s: format_duration(s.average_time)),
        ("Most Called Methods", report.by_call_count,
         lambda s: f"{s.call_count} calls"),
    )
    for title, ranked, value in sections:
        lines.append("")
        lines.append(palette.paint(title, "blue"))
        lines.extend(_stat_line(i, s, value(s), palette) for i, s in enumerate(ranked, 1))

    lines.append("")
    lines.append(palette.paint("Slowest Individual Calls", "blue"))
    for rank, node in enumerate(report.slow_calls, 1):
        pct = percent_of_total(node.duration, report.total_time)
        hotspot = palette.paint(" [hotspot]", "red") if report.is_hotspot(node) else ""
        owner = f" ({node.defined_class})" if node.defined_class else ""
        lines.append(
            f"  {rank:2d}. {node.method_name}{owner}  {format_duration(node.duration)}"
            f"  {pct:5.1f}%  depth {node.depth}{hotspot}  -> {node.id}"
        )
    return lines


def run_stats(session: Session, palette: Palette) -> int:
    print("\n".join(render_report(session.report, palette)))
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Run the ``tptree`` command and return its exit status."""
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    try:
        config = load_config()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    palette = Palette(config.color and not args.no_color)

    session = Session(config)
    try:
        session.load_file(args.file)
    except TraceError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.command == "stats":
        return run_stats(session, palette)
    return run_tree(args, session, config, palette)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
