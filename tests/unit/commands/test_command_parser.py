"""Colon-command parsing and argument helpers."""

from __future__ import annotations

import unittest
from pathlib import Path

from wayfinder.commands import (
    Command,
    CommandName,
    merge_aliases,
    parse_command,
    resolve_destination,
    resolve_directory,
    validate_entry_name,
)
from wayfinder.errors import AppError, CommandError, ErrorKind


class ParseCommandTests(unittest.TestCase):
    def test_plain_and_argument_commands(self) -> None:
        self.assertEqual(parse_command("pwd"), Command(CommandName.PWD))
        self.assertEqual(parse_command("  mkdir   build "), Command(CommandName.MKDIR, "build"))
        self.assertEqual(parse_command("cd"), Command(CommandName.CD))

    def test_names_are_case_insensitive(self) -> None:
        self.assertEqual(parse_command("REFRESH"), Command(CommandName.REFRESH))

    def test_default_aliases(self) -> None:
        self.assertEqual(parse_command("rm").name, CommandName.DELETE)
        self.assertEqual(parse_command("cp /x").name, CommandName.COPY)
        self.assertEqual(parse_command("mv /x").name, CommandName.MOVE)
        self.assertEqual(parse_command("q").name, CommandName.QUIT)

    def test_custom_alias_table(self) -> None:
        aliases = merge_aliases({" Del ": "DELETE"})
        self.assertEqual(aliases["del"], "delete")
        self.assertEqual(parse_command("del", aliases).name, CommandName.DELETE)

    def test_quoted_argument_keeps_spaces(self) -> None:
        self.assertEqual(parse_command('touch "my notes.txt"').argument, "my notes.txt")
        self.assertEqual(parse_command("rename two words").argument, "two words")

    def test_unknown_command_message_is_the_text(self) -> None:
        with self.assertRaises(CommandError) as ctx:
            parse_command("bogus")
        self.assertEqual(ctx.exception.to_app_error(), AppError(ErrorKind.INVALID_COMMAND, "bogus"))

    def test_missing_and_unexpected_arguments(self) -> None:
        with self.assertRaises(CommandError) as ctx:
            parse_command("rename")
        self.assertEqual(ctx.exception.message, "usage: rename <name>")
        with self.assertRaises(CommandError) as ctx:
            parse_command("pwd now")
        self.assertEqual(ctx.exception.message, "pwd takes no argument")

    def test_empty_command(self) -> None:
        with self.assertRaises(CommandError):
            parse_command("   ")


class ArgumentHelperTests(unittest.TestCase):
    def test_validate_entry_name(self) -> None:
        self.assertEqual(validate_entry_name(" ok.txt "), "ok.txt")
        for bad in ("", ".", "..", "a/b", "nul\x00"):
            with self.subTest(name=bad), self.assertRaises(CommandError):
                validate_entry_name(bad)
        with self.assertRaises(CommandError):
            validate_entry_name("same", current="same")

    def test_resolve_destination(self) -> None:
        cwd = Path("/tmp/w")
        self.assertEqual(resolve_destination("out", cwd), (cwd / "out", False))
        self.assertEqual(resolve_destination("sub/", cwd), (cwd / "sub", True))
        self.assertEqual(resolve_destination("../up", cwd), (Path("/tmp/up"), False))
        self.assertEqual(resolve_destination("/abs/x", cwd), (Path("/abs/x"), False))

    def test_resolve_directory(self) -> None:
        cwd = Path("/tmp/w")
        self.assertEqual(resolve_directory(None, cwd), Path.home())
        self.assertEqual(resolve_directory("..", cwd), Path("/tmp"))
        self.assertEqual(resolve_directory("~", cwd), Path.home())


if __name__ == "__main__":
    unittest.main()
