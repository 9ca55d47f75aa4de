"""Preview payloads and the latest-wins preview scheduler."""

from __future__ import annotations

import tempfile
import threading
import unittest
from pathlib import Path

from wayfinder.preview.builder import PREVIEW_DIR_ENTRIES, PREVIEW_MAX_LINES, build_preview
from wayfinder.preview.highlighting import colorize_source, sanitize_terminal_text
from wayfinder.preview.scheduler import PreviewScheduler
from wayfinder.preview.types import Preview
from wayfinder.render.ansi import ANSI_ESCAPE_RE


class BuildPreviewTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_python_file_is_highlighted(self) -> None:
        path = self.root / "mod.py"
        path.write_text("def f():\n    return 1\n", encoding="utf-8")
        preview = build_preview(path, request_id=7)
        self.assertEqual(preview.path, path)
        self.assertEqual(preview.request_id, 7)
        self.assertIn("\x1b[", "".join(preview.lines))
        self.assertEqual(ANSI_ESCAPE_RE.sub("", preview.lines[0]), "def f():")

    def test_long_file_is_truncated(self) -> None:
        path = self.root / "long.txt"
        path.write_text("".join(f"line {idx}\n" for idx in range(PREVIEW_MAX_LINES + 20)), encoding="utf-8")
        preview = build_preview(path)
        self.assertTrue(preview.truncated)
        self.assertEqual(len(preview.lines), PREVIEW_MAX_LINES + 1)
        self.assertEqual(preview.lines[-1], "...")

    def test_binary_and_empty_files(self) -> None:
        binary = self.root / "blob.png"
        binary.write_bytes(b"\x89PNG\x00\x00data")
        self.assertEqual(build_preview(binary).lines, ("Non-text file", "Type: image/png"))
        empty = self.root / "empty"
        empty.write_bytes(b"")
        self.assertEqual(build_preview(empty).lines, ("<empty file>",))

    def test_directory_listing_is_capped(self) -> None:
        for idx in range(PREVIEW_DIR_ENTRIES + 3):
            (self.root / f"f{idx}").write_text("x", encoding="utf-8")
        preview = build_preview(self.root)
        self.assertTrue(preview.truncated)
        self.assertEqual(len(preview.lines), PREVIEW_DIR_ENTRIES + 1)
        self.assertTrue(all(line.startswith("[F] ") for line in preview.lines[:-1]))

    def test_empty_directory(self) -> None:
        self.assertEqual(build_preview(self.root).lines, ("Directory is empty",))

    def test_unreadable_path_becomes_error_preview(self) -> None:
        preview = build_preview(self.root / "missing.txt")
        self.assertTrue(preview.lines[0].startswith("Preview error:"))

    def test_control_bytes_are_escaped(self) -> None:
        self.assertEqual(sanitize_terminal_text("a\x1b[2Jb\x07"), "a\\x1b[2Jb\\x07")
        self.assertEqual(sanitize_terminal_text("tab\tok\n"), "tab\tok\n")

    def test_unknown_style_falls_back(self) -> None:
        out = colorize_source("x = 1\n", Path("x.py"), style="no-such-style")
        self.assertEqual(ANSI_ESCAPE_RE.sub("", out), "x = 1\n")


class PreviewSchedulerTests(unittest.TestCase):
    def test_only_latest_pending_request_is_built(self) -> None:
        started = threading.Event()
        release = threading.Event()
        built: list[Path] = []
        delivered: list[Preview] = []
        done = threading.Event()

        def slow_build(path: Path, style: str, request_id: int) -> Preview:
            built.append(path)
            if path.name == "first":
                started.set()
                release.wait(2.0)
            return Preview(path=path, title="Preview", lines=(), request_id=request_id)

        def deliver(preview: Preview) -> None:
            delivered.append(preview)
            if preview.path.name == "third":
                done.set()

        scheduler = PreviewScheduler(deliver, build=slow_build)
        scheduler.schedule(Path("/first"))
        self.assertTrue(started.wait(2.0))
        scheduler.schedule(Path("/second"))
        third_id = scheduler.schedule(Path("/third"))
        release.set()
        self.assertTrue(done.wait(2.0))
        scheduler.close()

        self.assertEqual([path.name for path in built], ["first", "third"])
        self.assertEqual(delivered[-1].request_id, third_id)

    def test_closed_scheduler_builds_nothing(self) -> None:
        built: list[Path] = []
        scheduler = PreviewScheduler(lambda preview: None, build=lambda *args: built.append(args[0]))
        scheduler.close()
        scheduler.schedule(Path("/x"))
        self.assertEqual(built, [])

    def test_build_failure_is_logged_and_worker_continues(self) -> None:
        delivered = threading.Event()
        attempted = threading.Event()

        def flaky(path: Path, style: str, request_id: int) -> Preview:
            if path.name == "bad":
                attempted.set()
                raise RuntimeError("boom")
            return Preview(path=path, title="Preview", lines=())

        scheduler = PreviewScheduler(lambda preview: delivered.set(), build=flaky)
        with self.assertLogs("wayfinder.preview.scheduler", level="ERROR"):
            scheduler.schedule(Path("/bad"))
            self.assertTrue(attempted.wait(2.0))
            scheduler.schedule(Path("/good"))
            self.assertTrue(delivered.wait(2.0))


if __name__ == "__main__":
    unittest.main()
