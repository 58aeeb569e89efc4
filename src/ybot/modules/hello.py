"""The !hello command."""

from __future__ import annotations

import random
from typing import TYPE_CHECKING

from ..module import Command, Module

if TYPE_CHECKING:
    from ..client import BotClient
    from ..types import Message

EMOJIS = (
    "👌", "👌🏻", "👌🏼", "👌🏽", "👌🏾", "👌🏿",
    "👍", "👍🏻", "👍🏼", "👍🏽", "👍🏾", "👍🏿",
    "🌝", "😄", "🔥", "💯", "🆒", "🚽", "🚾", "❤", "⚠", "✅",
)  # fmt: skip


class HelloModule(Module):
    name = "Hello"
    description = "Provides the !hello command."

    HELLO = 0

    def __init__(self) -> None:
        super().__init__(
            [
                Command(
                    self.HELLO,
                    ("hello", "hi"),
                    "Prints a greeting message.",
                    "`!hello` - Prints a greeting message.",
                )
            ]
        )

    async def handle(
        self, bot: BotClient, message: Message, command_id: int, text: str
    ) -> None:
        emoji = random.choice(EMOJIS)
        await bot.send(message.channel_id, f"Hi, {message.author.mention}! {emoji}")
