from __future__ import annotations

import io
import json
import sys
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT))

from tptree import cli

TRACE = {
    "version": "0.3.1",
    "timestamp": "2024-05-01T12:00:00Z",
    "events": [
        {"event": "call", "method_name": "checkout", "defined_class": "Cart", "depth": 0,
         "parameters": [{"type": "req", "name": "user", "value": {"id": 1}},
                        {"type": "key", "name": "coupon", "value": None}]},
        {"event": "call_return", "method_name": "total", "defined_class": "Cart", "depth": 1,
         "return_value": 99.5, "duration": 0.002},
        {"event": "call_return", "method_name": "charge", "defined_class": "Gateway", "depth": 1,
         "return_value": "ok", "duration": 0.3},
        {"event": "return", "method_name": "checkout", "depth": 0, "return_value": True,
         "duration": 0.35},
    ],
}


class CliTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.path = Path(self._tmp.name) / "trace.json"
        self.path.write_text(json.dumps(TRACE))

    def run_cli(self, *argv: str) -> tuple[int, str, str]:
        out, err = io.StringIO(), io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            code = cli.main(["--no-color", *argv])
        return code, out.getvalue(), err.getvalue()

    def test_tree_prints_visible_rows(self) -> None:
        code, out, _ = self.run_cli("tree", str(self.path))
        self.assertEqual(code, 0)
        self.assertIn("Version: 0.3.1", out)
        self.assertIn("▾ checkout(user = {id: 1}, coupon:) → true [350.0ms]", out)
        self.assertIn("│ • charge() → \"ok\" [300.0ms]", out)
        self.assertIn("rows 1-3 of 3", out)

    def test_tree_collapse_filter_and_select(self) -> None:
        code, out, _ = self.run_cli("tree", str(self.path), "--collapse-all", "--select", "node-0")
        self.assertEqual(code, 0)
        self.assertIn("▸ checkout", out)
        self.assertNotIn("charge", out)
        self.assertIn("Type:     Call with Return", out)
        self.assertIn("Class:    Cart", out)

        code, out, _ = self.run_cli("tree", str(self.path), "--search", "gate", "--filtered-only")
        self.assertIn("charge", out)
        self.assertNotIn("checkout(", out)

        code, out, _ = self.run_cli("tree", str(self.path), "--search", "zzz", "--filtered-only")
        self.assertIn("No matching events found", out)

    def test_stats(self) -> None:
        code, out, _ = self.run_cli("stats", str(self.path))
        self.assertEqual(code, 0)
        self.assertIn("Total Calls: 3", out)
        self.assertIn("Top Methods by Total Time", out)
        self.assertIn("Cart#checkout", out)
        self.assertIn("[hotspot]", out)

    def test_parse_error_exits_nonzero(self) -> None:
        self.path.write_text("{oops")
        code, out, err = self.run_cli("stats", str(self.path))
        self.assertEqual(code, 1)
        self.assertIn("Error:", err)

    def test_missing_file(self) -> None:
        code, _, err = self.run_cli("tree", str(self.path.with_name("missing.json")))
        self.assertEqual(code, 1)
        self.assertIn("not found", err)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
