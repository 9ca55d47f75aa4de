"""Mutating filesystem operations and their all-or-nothing guarantees."""

from __future__ import annotations

import errno
import os
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from wayfinder.errors import ErrorKind, FsOperationError
from wayfinder.fs_model import ops
from wayfinder.fs_model.ops import (
    STAGING_MARKER,
    copy_entries,
    delete_entries,
    make_directory,
    move_entries,
    rename_entry,
    touch_file,
)


class MutationTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def write(self, relative: str, text: str = "x") -> Path:
        path = self.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    def assert_no_staging_left(self) -> None:
        leftovers = [path for path in self.root.rglob("*") if path.name.startswith(STAGING_MARKER)]
        self.assertEqual(leftovers, [])


class CopyTests(MutationTestCase):
    def test_copy_file_to_new_name(self) -> None:
        source = self.write("a.txt", "hello")
        created = copy_entries([source], self.root / "b.txt")
        self.assertEqual(created, [self.root / "b.txt"])
        self.assertEqual((self.root / "b.txt").read_text(encoding="utf-8"), "hello")
        self.assertTrue(source.exists())
        self.assert_no_staging_left()

    def test_copy_directory_tree_into_directory(self) -> None:
        self.write("src/inner/file.txt", "deep")
        (self.root / "dst").mkdir()
        copy_entries([self.root / "src"], self.root / "dst", into_directory=True)
        self.assertEqual((self.root / "dst/src/inner/file.txt").read_text(encoding="utf-8"), "deep")

    def test_multiple_sources_land_inside_existing_directory(self) -> None:
        a = self.write("a")
        b = self.write("b")
        (self.root / "dst").mkdir()
        created = copy_entries([a, b], self.root / "dst")
        self.assertEqual(created, [self.root / "dst/a", self.root / "dst/b"])

    def test_existing_destination_is_refused_untouched(self) -> None:
        source = self.write("a", "new")
        target = self.write("b", "old")
        with self.assertRaises(FsOperationError) as ctx:
            copy_entries([source], target)
        self.assertIs(ctx.exception.kind, ErrorKind.ALREADY_EXISTS)
        self.assertEqual(target.read_text(encoding="utf-8"), "old")

    def test_partial_conflict_copies_nothing(self) -> None:
        a = self.write("a")
        b = self.write("b")
        self.write("dst/b", "keep")
        with self.assertRaises(FsOperationError):
            copy_entries([a, b], self.root / "dst")
        self.assertFalse((self.root / "dst/a").exists())
        self.assertEqual((self.root / "dst/b").read_text(encoding="utf-8"), "keep")

    def test_copy_directory_into_itself_is_refused(self) -> None:
        self.write("src/f")
        with self.assertRaises(FsOperationError):
            copy_entries([self.root / "src"], self.root / "src", into_directory=True)
        self.assertEqual(sorted(path.name for path in (self.root / "src").iterdir()), ["f"])

    def test_missing_destination_directory(self) -> None:
        source = self.write("a")
        with self.assertRaises(FsOperationError) as ctx:
            copy_entries([source], self.root / "nowhere", into_directory=True)
        self.assertIs(ctx.exception.kind, ErrorKind.NOT_FOUND)

    def test_commit_failure_rolls_back_earlier_copies(self) -> None:
        a = self.write("a")
        b = self.write("b")
        (self.root / "dst").mkdir()
        real_rename = os.rename
        calls = {"count": 0}

        def flaky_rename(src, dst):
            calls["count"] += 1
            if calls["count"] == 2:
                raise OSError(errno.EIO, "I/O error", str(dst))
            return real_rename(src, dst)

        with mock.patch.object(ops.os, "rename", side_effect=flaky_rename):
            with self.assertRaises(FsOperationError) as ctx:
                copy_entries([a, b], self.root / "dst")
        self.assertIs(ctx.exception.kind, ErrorKind.IO_ERROR)
        self.assertEqual(list((self.root / "dst").iterdir()), [])
        self.assert_no_staging_left()


class MoveTests(MutationTestCase):
    def test_move_file(self) -> None:
        source = self.write("a", "data")
        (self.root / "dst").mkdir()
        moved = move_entries([source], self.root / "dst")
        self.assertEqual(moved, [self.root / "dst/a"])
        self.assertFalse(source.exists())
        self.assertEqual((self.root / "dst/a").read_text(encoding="utf-8"), "data")

    def test_failure_moves_earlier_sources_back(self) -> None:
        a = self.write("a")
        b = self.write("b")
        (self.root / "dst").mkdir()
        real_rename = os.rename

        def fail_on_b(src, dst):
            if Path(src) == b:
                raise PermissionError(errno.EACCES, "Permission denied", str(src))
            return real_rename(src, dst)

        with mock.patch.object(ops.os, "rename", side_effect=fail_on_b):
            with self.assertRaises(FsOperationError) as ctx:
                move_entries([a, b], self.root / "dst")
        self.assertIs(ctx.exception.kind, ErrorKind.PERMISSION_DENIED)
        self.assertTrue(a.exists())
        self.assertTrue(b.exists())
        self.assertEqual(list((self.root / "dst").iterdir()), [])

    def exdev_between(self, pairs):
        """Return an ``os.rename`` stand-in failing with EXDEV for ``pairs``."""
        real_rename = os.rename
        blocked = {(Path(src), Path(dst)) for src, dst in pairs}

        def rename(src, dst):
            if (Path(src), Path(dst)) in blocked:
                raise OSError(errno.EXDEV, "Invalid cross-device link", str(src))
            return real_rename(src, dst)

        return rename

    def test_cross_device_rename_falls_back_to_copy(self) -> None:
        source = self.write("src/f", "payload")
        (self.root / "dst").mkdir()
        rename = self.exdev_between([(self.root / "src", self.root / "dst/src")])

        with mock.patch.object(ops.os, "rename", side_effect=rename):
            moved = move_entries([self.root / "src"], self.root / "dst", into_directory=True)
        self.assertEqual(moved, [self.root / "dst/src"])
        self.assertFalse(source.exists())
        self.assertEqual((self.root / "dst/src/f").read_text(encoding="utf-8"), "payload")
        self.assert_no_staging_left()

    def test_cross_device_purge_failure_keeps_the_copy(self) -> None:
        self.write("src/a", "first")
        self.write("src/b", "second")
        (self.root / "dst").mkdir()
        rename = self.exdev_between([(self.root / "src", self.root / "dst/src")])
        real_rmtree = shutil.rmtree

        def rmtree_fails_midway(path, *args, **kwargs):
            path = Path(path)
            if path.parent == self.root and path.name.startswith(STAGING_MARKER):
                (path / "a").unlink()
                raise PermissionError(errno.EACCES, "Permission denied", str(path / "b"))
            return real_rmtree(path, *args, **kwargs)

        with mock.patch.object(ops.os, "rename", side_effect=rename), mock.patch.object(
            ops.shutil, "rmtree", side_effect=rmtree_fails_midway
        ):
            with self.assertLogs("wayfinder.fs_model.ops", level="WARNING"):
                moved = move_entries([self.root / "src"], self.root / "dst", into_directory=True)

        self.assertEqual(moved, [self.root / "dst/src"])
        self.assertFalse((self.root / "src").exists())
        self.assertEqual((self.root / "dst/src/a").read_text(encoding="utf-8"), "first")
        self.assertEqual((self.root / "dst/src/b").read_text(encoding="utf-8"), "second")

    def test_cross_device_move_leaves_source_when_it_cannot_be_parked(self) -> None:
        source = self.write("src/f", "payload")
        (self.root / "dst").mkdir()
        real_rename = os.rename

        def rename(src, dst):
            if Path(src) == self.root / "src" and Path(dst) == self.root / "dst/src":
                raise OSError(errno.EXDEV, "Invalid cross-device link", str(src))
            if Path(src) == self.root / "src":
                raise PermissionError(errno.EACCES, "Permission denied", str(src))
            return real_rename(src, dst)

        with mock.patch.object(ops.os, "rename", side_effect=rename):
            with self.assertRaises(FsOperationError) as ctx:
                move_entries([self.root / "src"], self.root / "dst", into_directory=True)
        self.assertIs(ctx.exception.kind, ErrorKind.PERMISSION_DENIED)
        self.assertEqual(source.read_text(encoding="utf-8"), "payload")
        self.assertEqual(list((self.root / "dst").iterdir()), [])
        self.assert_no_staging_left()

    def test_failure_after_cross_device_move_restores_first_source(self) -> None:
        one = self.write("one/data", "1")
        two = self.write("two", "2")
        (self.root / "dst").mkdir()
        exdev = self.exdev_between(
            [(self.root / "one", self.root / "dst/one"), (self.root / "dst/one", self.root / "one")]
        )

        def rename(src, dst):
            if Path(src) == two:
                raise PermissionError(errno.EACCES, "Permission denied", str(src))
            return exdev(src, dst)

        with mock.patch.object(ops.os, "rename", side_effect=rename):
            with self.assertRaises(FsOperationError) as ctx:
                move_entries([self.root / "one", two], self.root / "dst", into_directory=True)
        self.assertIs(ctx.exception.kind, ErrorKind.PERMISSION_DENIED)
        self.assertEqual(one.read_text(encoding="utf-8"), "1")
        self.assertEqual(two.read_text(encoding="utf-8"), "2")
        self.assertEqual(list((self.root / "dst").iterdir()), [])
        self.assert_no_staging_left()


class DeleteTests(MutationTestCase):
    def test_delete_files_and_directories(self) -> None:
        f = self.write("f")
        self.write("d/inner/x")
        deleted = delete_entries([f, self.root / "d"])
        self.assertEqual(deleted, [f, self.root / "d"])
        self.assertEqual(list(self.root.iterdir()), [])

    def test_missing_target_deletes_nothing(self) -> None:
        f = self.write("f")
        with self.assertRaises(FsOperationError) as ctx:
            delete_entries([f, self.root / "missing"])
        self.assertIs(ctx.exception.kind, ErrorKind.NOT_FOUND)
        self.assertTrue(f.exists())

    def test_failure_restores_already_staged_targets(self) -> None:
        a = self.write("a")
        b = self.write("b")
        real_rename = os.rename

        def fail_on_b(src, dst):
            if Path(src) == b:
                raise PermissionError(errno.EACCES, "Permission denied", str(src))
            return real_rename(src, dst)

        with mock.patch.object(ops.os, "rename", side_effect=fail_on_b):
            with self.assertRaises(FsOperationError):
                delete_entries([a, b])
        self.assertTrue(a.exists())
        self.assertTrue(b.exists())
        self.assert_no_staging_left()

    def test_delete_symlink_keeps_target(self) -> None:
        target = self.write("real/keep")
        link = self.root / "link"
        os.symlink(self.root / "real", link)
        delete_entries([link])
        self.assertFalse(os.path.lexists(link))
        self.assertTrue(target.exists())


class SingleEntryTests(MutationTestCase):
    def test_rename(self) -> None:
        source = self.write("old", "v")
        final = rename_entry(source, "new")
        self.assertEqual(final, self.root / "new")
        self.assertEqual(final.read_text(encoding="utf-8"), "v")
        self.assertFalse(source.exists())

    def test_rename_onto_existing_name_is_refused(self) -> None:
        source = self.write("old")
        self.write("taken", "keep")
        with self.assertRaises(FsOperationError) as ctx:
            rename_entry(source, "taken")
        self.assertIs(ctx.exception.kind, ErrorKind.ALREADY_EXISTS)
        self.assertTrue(source.exists())

    def test_mkdir(self) -> None:
        created = make_directory(self.root, "fresh")
        self.assertTrue(created.is_dir())
        with self.assertRaises(FsOperationError) as ctx:
            make_directory(self.root, "fresh")
        self.assertIs(ctx.exception.kind, ErrorKind.ALREADY_EXISTS)

    def test_touch_creates_then_updates(self) -> None:
        created = touch_file(self.root, "notes.md")
        self.assertTrue(created.is_file())
        os.utime(created, (1_000_000, 1_000_000))
        touch_file(self.root, "notes.md")
        self.assertGreater(created.stat().st_mtime, 1_000_000)

    def test_touch_refuses_existing_directory(self) -> None:
        (self.root / "d").mkdir()
        with self.assertRaises(FsOperationError):
            touch_file(self.root, "d")

    def test_touch_in_missing_directory_reports_not_found(self) -> None:
        with self.assertRaises(FsOperationError) as ctx:
            touch_file(self.root / "missing", "x")
        self.assertIs(ctx.exception.kind, ErrorKind.NOT_FOUND)


if __name__ == "__main__":
    unittest.main()
