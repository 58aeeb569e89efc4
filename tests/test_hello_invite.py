from __future__ import annotations

import pytest

from ybot.module import ModuleUnavailable
from ybot.modules import HelloModule, InviteModule
from ybot.modules.hello import EMOJIS

from ._fakes import ALICE, BOB, DM_ID, GENERAL_ID, make_message

pytestmark = pytest.mark.anyio


async def test_hello_greets_the_author(make_bot, rest) -> None:
    await HelloModule().handle(make_bot(), make_message("!hi"), HelloModule.HELLO, "")

    [text] = rest.sent_texts()
    greeting, emoji = text.rsplit(" ", 1)
    assert greeting == f"Hi, {ALICE.mention}!"
    assert emoji in EMOJIS


async def test_invite_requires_client_id() -> None:
    with pytest.raises(ModuleUnavailable, match="YALTER_BOT_CLIENT_ID"):
        InviteModule(None)


async def test_invite_sends_a_private_message(make_bot, rest) -> None:
    module = InviteModule("1234")
    message = make_message("!invite", author=BOB)

    await module.handle(make_bot(), message, InviteModule.INVITE, "")

    [(channel_id, text)] = rest.sent()
    assert channel_id == DM_ID + BOB.id
    assert text == (
        "Follow this link to invite the bot to your server: "
        "https://discord.com/oauth2/authorize?client_id=1234&scope=bot&permissions=52224"
    )
    assert GENERAL_ID not in [c for c, _ in rest.sent()]
