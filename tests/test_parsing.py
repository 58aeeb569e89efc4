from __future__ import annotations

import pytest

from ybot.parsing import parse_command


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("!hello", ("hello", "")),
        ("!cmd", ("cmd", "")),
        ("!cmd ", ("cmd", "")),
        ("!cmd  ", ("cmd", " ")),
        ("!my_cmd a bunch of arguments", ("my_cmd", "a bunch of arguments")),
        ("!cmd\narg", ("cmd", "arg")),
        ("!🤖👍🏽 ➕ e\u0301", ("🤖👍🏽", "➕ e\u0301")),
        ("!roll 20", ("roll", "20")),
        ("!pick a;b;c", ("pick", "a;b;c")),
        ("!temp   5C", ("temp", "  5C")),
        ("!help\nmore", ("help", "more")),
        ("!fraktur\tZ", ("fraktur", "Z")),
        ("!HELLO there", ("HELLO", "there")),
        ("!ünïcode ok", ("ünïcode", "ok")),
    ],
)
def test_parse_command_splits_on_first_whitespace(text, expected) -> None:
    assert parse_command(text) == expected


@pytest.mark.parametrize(
    "text",
    ["", "!", "hello", " !hello", "! hello", "!\nhello", "?hello"],
)
def test_parse_command_rejects_non_commands(text) -> None:
    assert parse_command(text) is None


def test_parse_command_custom_prefix() -> None:
    assert parse_command(".mods x", prefix=".") == ("mods", "x")
    assert parse_command("!mods x", prefix=".") is None
