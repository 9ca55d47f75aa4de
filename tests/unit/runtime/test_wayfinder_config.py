"""Configuration loading and logging setup."""

from __future__ import annotations

import logging
import tempfile
import unittest
from pathlib import Path

from wayfinder.fs_model.types import SortMode
from wayfinder.runtime.config import WayfinderConfig, load_config
from wayfinder.runtime.logs import configure_logging


class LoadConfigTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "config.toml"

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def write(self, text: str) -> Path:
        self.path.write_text(text, encoding="utf-8")
        return self.path

    def test_missing_file_yields_defaults(self) -> None:
        config = load_config(self.path)
        self.assertEqual(config, WayfinderConfig())
        self.assertEqual(config.debounce_seconds, 0.03)
        self.assertEqual(config.sequence_timeout_seconds, 1.0)
        self.assertEqual(config.command_aliases["rm"], "delete")

    def test_values_are_read(self) -> None:
        self.write(
            """
debounce_ms = 80
sequence_timeout_ms = 500
show_hidden = true
sort = "mtime"
preview_style = "default"

[command_aliases]
DEL = "Delete"

[keymap]
x = "delete"
"""
        )
        config = load_config(self.path)
        self.assertEqual(config.debounce_ms, 80)
        self.assertEqual(config.sequence_timeout_seconds, 0.5)
        self.assertTrue(config.show_hidden)
        self.assertIs(config.sort, SortMode.MTIME)
        self.assertEqual(config.preview_style, "default")
        self.assertEqual(config.command_aliases["del"], "delete")
        self.assertEqual(config.command_aliases["cp"], "copy")
        self.assertEqual(dict(config.keymap), {"x": "delete"})

    def test_wrongly_typed_values_fall_back_with_warning(self) -> None:
        self.write('debounce_ms = "fast"\nmax_workers = 0\nshow_hidden = 1\nsort = "colour"\n')
        with self.assertLogs("wayfinder.runtime.config", level="WARNING") as logs:
            config = load_config(self.path)
        self.assertEqual(config.debounce_ms, 30)
        self.assertEqual(config.max_workers, 4)
        self.assertFalse(config.show_hidden)
        self.assertIs(config.sort, SortMode.NAME)
        self.assertEqual(len(logs.output), 4)

    def test_malformed_toml_yields_defaults(self) -> None:
        self.write("debounce_ms = [unclosed\n")
        with self.assertLogs("wayfinder.runtime.config", level="WARNING"):
            config = load_config(self.path)
        self.assertEqual(config, WayfinderConfig())

    def test_bad_table_rows_are_dropped(self) -> None:
        self.write('[keymap]\nx = 5\ny = "quit"\n')
        with self.assertLogs("wayfinder.runtime.config", level="WARNING"):
            config = load_config(self.path)
        self.assertEqual(dict(config.keymap), {"y": "quit"})

    def test_config_is_immutable(self) -> None:
        config = load_config(self.path)
        with self.assertRaises(TypeError):
            config.keymap["x"] = "quit"  # type: ignore[index]

    def test_with_overrides_ignores_none(self) -> None:
        config = WayfinderConfig()
        self.assertIs(config.with_overrides(show_hidden=None, sort=None), config)
        changed = config.with_overrides(show_hidden=True, debounce_ms=None)
        self.assertTrue(changed.show_hidden)
        self.assertEqual(changed.debounce_ms, config.debounce_ms)


class ConfigureLoggingTests(unittest.TestCase):
    def tearDown(self) -> None:
        logger = logging.getLogger("wayfinder")
        for handler in list(logger.handlers):
            logger.removeHandler(handler)
            handler.close()
        logger.setLevel(logging.NOTSET)
        logger.propagate = True

    def test_records_go_to_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            log_file = Path(tmp) / "logs" / "wayfinder.log"
            self.assertEqual(configure_logging(log_file, "INFO"), log_file)
            logging.getLogger("wayfinder.test").info("hello from test")
            for handler in logging.getLogger("wayfinder").handlers:
                handler.flush()
            self.assertIn("hello from test", log_file.read_text(encoding="utf-8"))
            self.tearDown()

    def test_reconfiguring_replaces_handlers(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            configure_logging(Path(tmp) / "a.log")
            configure_logging(Path(tmp) / "b.log")
            self.assertEqual(len(logging.getLogger("wayfinder").handlers), 1)
            self.tearDown()

    def test_unwritable_target_disables_logging(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            blocker = Path(tmp) / "file"
            blocker.write_text("x", encoding="utf-8")
            self.assertIsNone(configure_logging(blocker / "nested" / "x.log"))
        (handler,) = logging.getLogger("wayfinder").handlers
        self.assertIsInstance(handler, logging.NullHandler)


if __name__ == "__main__":
    unittest.main()
