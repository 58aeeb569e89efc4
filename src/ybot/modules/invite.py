"""The !invite command."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..module import Command, Module, ModuleUnavailable

if TYPE_CHECKING:
    from ..client import BotClient
    from ..types import Message

INVITE_PERMISSIONS = 52224
INVITE_URL = (
    "https://discord.com/oauth2/authorize?client_id={client_id}"
    "&scope=bot&permissions={permissions}"
)


class InviteModule(Module):
    name = "Invite"
    description = "Provides the !invite command."

    INVITE = 0

    def __init__(self, client_id: str | None) -> None:
        if not client_id:
            raise ModuleUnavailable(
                "Please set the YALTER_BOT_CLIENT_ID environment variable"
            )
        super().__init__(
            [
                Command(
                    self.INVITE,
                    ("invite",),
                    "Sends you a PM with a link to invite the bot to your own server.",
                    "`!invite` - Get the invite link for the bot.",
                )
            ]
        )
        self.link = INVITE_URL.format(
            client_id=client_id, permissions=INVITE_PERMISSIONS
        )

    async def handle(
        self, bot: BotClient, message: Message, command_id: int, text: str
    ) -> None:
        await bot.send_pm(
            message.author.id,
            f"Follow this link to invite the bot to your server: {self.link}",
            error_channel_id=message.channel_id,
        )
