from __future__ import annotations

import pytest

from ybot.modules import FunModule
from ybot.modules.fun import (
    NO_CHANNEL_INFO,
    ROOM_ALLOW_PERMS,
    ROOM_DENY_PERMS,
    convert_temperature,
    format_server_info,
    roll_max,
)
from ybot.modules.transforms import frakturize, fullwidth, smallcaps
from ybot.transport import HTTPError
from ybot.types import ChannelKind, OverwriteKind, PermissionOverwrite, Permissions

from ._fakes import (
    ALICE,
    BOB,
    DM_ID,
    GENERAL_ID,
    GROUP_ID,
    SERVER_ID,
    make_message,
    make_server,
)


def test_frakturize() -> None:
    assert frakturize("a") == "\U0001d51e"
    assert frakturize("z") == "\U0001d537"
    assert frakturize("A") == "\U0001d504"
    # No regular Fraktur C, H, I, R and Z: those come out bold.
    assert frakturize("C") == "\U0001d56e"
    assert frakturize("Z") == "\U0001d585"
    assert frakturize("1 ?") == "1 ?"


def test_fullwidth() -> None:
    assert fullwidth("Hi!") == "Ｈｉ！"
    assert fullwidth("a b") == "ａ　ｂ"
    assert fullwidth("~") == "～"
    assert fullwidth("é\n") == "é\n"


def test_smallcaps() -> None:
    assert smallcaps("Hello") == "ʜello"
    assert smallcaps("QX") == "QX"
    assert smallcaps("SMALL") == "ꜱᴍᴀʟʟ"
    assert smallcaps("ШРЛΩ") == "ꟺᴘлꭥ"


@pytest.mark.parametrize(
    ("value", "scale", "expected"),
    [
        (5, "C", (41.0, "F")),
        (100, "c", (212.0, "F")),
        (32, "F", (0.0, "C")),
        (-40, "f", (-40.0, "C")),
    ],
)
def test_convert_temperature(value, scale, expected) -> None:
    converted, new_scale = convert_temperature(value, scale)

    assert converted == pytest.approx(expected[0])
    assert new_scale == expected[1]


@pytest.mark.parametrize(
    ("text", "expected"),
    [("", 100), ("20", 20), ("  6 sides", 6), ("0", 100), ("d20", 100), ("5x", 100)],
)
def test_roll_max(text, expected) -> None:
    assert roll_max(text) == expected


def test_format_server_info() -> None:
    text = format_server_info(make_server(), GENERAL_ID)

    assert text.startswith("```Server ID: 100,\n")
    assert "Icon: N/A," in text
    assert "- 500 'mods'" in text
    assert text.endswith(f"Channel ID: {GENERAL_ID}```")


@pytest.mark.anyio
async def test_temperature_reply(make_bot, rest) -> None:
    fun = FunModule()

    await fun.handle(make_bot(), make_message("!temp 5C"), FunModule.TEMPERATURE, "5C")
    await fun.handle(make_bot(), make_message("!temp x"), FunModule.TEMPERATURE, "x")

    reply, help_text = rest.sent_texts()
    assert reply == "5.00°C is **41.00**°F."
    assert help_text == fun.command_help_message(FunModule.TEMPERATURE)


@pytest.mark.anyio
async def test_roll_stays_in_range(make_bot, rest) -> None:
    fun = FunModule()

    for _ in range(20):
        await fun.handle(make_bot(), make_message("!roll 3"), FunModule.ROLL, "3")

    for text in rest.sent_texts():
        assert text in {f"{ALICE.mention} rolled **{n}**!" for n in range(3)}


@pytest.mark.anyio
async def test_pick(make_bot, rest) -> None:
    fun = FunModule()

    await fun.handle(make_bot(), make_message("!pick a;b"), FunModule.PICK, "a;;b")
    await fun.handle(make_bot(), make_message("!pick a"), FunModule.PICK, "a;")

    choice, help_text = rest.sent_texts()
    assert choice in {f"{ALICE.mention}: I pick a!", f"{ALICE.mention}: I pick b!"}
    assert help_text == fun.command_help_message(FunModule.PICK)


@pytest.mark.anyio
async def test_info_per_channel_kind(make_bot, rest) -> None:
    fun = FunModule()
    bot = make_bot()

    for channel_id in (GENERAL_ID, DM_ID, GROUP_ID, 999):
        message = make_message("!info", channel_id=channel_id)
        await fun.handle(bot, message, FunModule.INFO, "")

    public, private, group, unknown = rest.sent_texts()
    assert public.startswith("```Server ID: 100,")
    assert private.startswith("```PrivateChannel(")
    assert group.startswith("```Group(")
    assert unknown == NO_CHANNEL_INFO


@pytest.mark.anyio
async def test_transformed_reply_follows_command_edits(make_bot, rest) -> None:
    fun = FunModule()
    bot = make_bot()
    message = make_message("!fraktur abc")

    await fun.handle(bot, message, FunModule.FRAKTUR, "abc")
    reply = next(iter(rest.messages.values()))

    await fun.handle_message_update(bot, GENERAL_ID, message.id)

    [(channel_id, message_id, text)] = rest.called("edit_message")
    assert (channel_id, message_id) == (GENERAL_ID, reply.id)
    assert text == f"<@{ALICE.id}> said: {frakturize('abc')}"


@pytest.mark.anyio
async def test_unrelated_deletes_are_ignored(make_bot, rest) -> None:
    fun = FunModule()

    await fun.handle(make_bot(), make_message("!aesthetic hi"), FunModule.AESTHETIC, "hi")
    await fun.handle_message_delete(make_bot(), GENERAL_ID, 123)

    assert rest.called("edit_message") == []
    assert rest.called("get_message") == []


@pytest.mark.anyio
async def test_history_is_bounded() -> None:
    fun = FunModule()

    for i in range(100):
        await fun.remember_command_message(GENERAL_ID, i, ALICE.id, 1000 + i)

    assert await fun.find_command_message(GENERAL_ID, 0) is None
    found = await fun.find_command_message(GENERAL_ID, 99)
    assert found is not None and found.output == 1099


@pytest.mark.anyio
async def test_room_creates_private_voice_channel(make_bot, rest) -> None:
    fun = FunModule()
    message = make_message("!room", mentions=(BOB,), mention_roles=(500,))

    await fun.handle(make_bot(), message, FunModule.ROOM, "")

    [(server_id, name, kind)] = rest.called("create_channel")
    assert server_id == SERVER_ID
    assert name.startswith("🤖 - ybot - ")
    assert kind is ChannelKind.VOICE

    overwrites = [overwrite for _, overwrite in rest.called("create_permission")]
    assert overwrites == [
        PermissionOverwrite(OverwriteKind.ROLE, SERVER_ID, deny=ROOM_DENY_PERMS),
        PermissionOverwrite(OverwriteKind.MEMBER, ALICE.id, allow=ROOM_ALLOW_PERMS),
        PermissionOverwrite(OverwriteKind.MEMBER, BOB.id, allow=ROOM_ALLOW_PERMS),
        PermissionOverwrite(OverwriteKind.ROLE, 500, allow=ROOM_ALLOW_PERMS),
    ]
    assert ROOM_DENY_PERMS == Permissions.VOICE_CONNECT
    assert rest.sent() == []


@pytest.mark.anyio
async def test_room_outside_servers_and_without_mentions(make_bot, rest) -> None:
    fun = FunModule()

    await fun.handle(make_bot(), make_message("!room", channel_id=DM_ID), FunModule.ROOM, "")
    await fun.handle(make_bot(), make_message("!room"), FunModule.ROOM, "")

    private, no_mentions = rest.sent_texts()
    assert private == "Well, what do you expect me to do?"
    assert no_mentions == fun.command_help_message(FunModule.ROOM)
    assert rest.called("create_channel") == []


@pytest.mark.anyio
async def test_room_reports_creation_failure(make_bot, rest) -> None:
    rest.fail("create_channel", HTTPError(403, "Missing Permissions"))
    message = make_message("!room", mentions=(BOB,))

    await FunModule().handle(make_bot(), message, FunModule.ROOM, "")

    assert rest.sent_texts() == ["Couldn't create a new channel. :/"]
    assert rest.called("create_permission") == []
