"""Various random commands."""

from __future__ import annotations

import random
import re
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING

import anyio

from ..logging import get_logger
from ..module import Command, Module, UnknownCommandError
from ..types import (
    ChannelKind,
    GroupRef,
    OverwriteKind,
    PermissionOverwrite,
    Permissions,
    PrivateChannelRef,
    PublicChannelRef,
)
from .transforms import frakturize, fullwidth, smallcaps

if TYPE_CHECKING:
    from ..client import BotClient
    from ..types import Message, Server

logger = get_logger(__name__)

COMMAND_MESSAGE_QUEUE_SIZE = 64
MAX_MESSAGE_LENGTH = 2000

TEMPERATURE_REGEX = re.compile(r"\s*([+-]?[0-9]+(\.[0-9]*)?)\s*([CcFf])")
ROLL_REGEX = re.compile(r"\s*([0-9]+)(\s|$)")
DEFAULT_ROLL_MAX = 100

ROOM_ALLOW_PERMS = (
    Permissions.VOICE_CONNECT
    | Permissions.VOICE_SPEAK
    | Permissions.MANAGE_CHANNELS
    | Permissions.MANAGE_ROLES
)
ROOM_DENY_PERMS = Permissions.VOICE_CONNECT

NO_CHANNEL_INFO = (
    "Huh, I couldn't get this channel's info for some reason. Try again I guess?"
)


@dataclass(frozen=True, slots=True)
class CommandMessage:
    """A command message and the reply the bot produced for it."""

    command: int
    author: int
    output: int


def convert_temperature(value: float, scale: str) -> tuple[float, str]:
    """Convert between Celsius and Fahrenheit; returns the value and new scale."""
    if scale.upper() == "C":
        return 9 * value / 5 + 32, "F"
    return 5 * (value - 32) / 9, "C"


def roll_max(text: str) -> int:
    match = ROLL_REGEX.match(text)
    if match is None:
        return DEFAULT_ROLL_MAX
    return int(match.group(1)) or DEFAULT_ROLL_MAX


def format_server_info(server: Server, channel_id: int) -> str:
    roles = "".join(f"\n- {role.id} '{role.name}'" for role in server.roles)
    return (
        f"```Server ID: {server.id},\n"
        f"Owner ID: {server.owner_id},\n"
        f"Member count: {server.member_count},\n"
        f"Icon: {server.icon or 'N/A'},\n"
        f"Roles:{roles or ' N/A'}\n"
        f"\n"
        f"Channel ID: {channel_id}```"
    )


class FunModule(Module):
    name = "Fun"
    description = "Various random commands."

    FRAKTUR = 0
    TEMPERATURE = 1
    ROLL = 2
    PICK = 3
    INFO = 4
    ROOM = 5
    AESTHETIC = 6
    SMALLCAPS = 7

    def __init__(self) -> None:
        super().__init__(
            [
                Command(
                    self.FRAKTUR,
                    ("fraktur",),
                    f"Prints the given text in {frakturize('fraktur')} "
                    "(gothic math symbols).",
                    "`!fraktur <text>` - Prints the given text in "
                    f"{frakturize('fraktur')} (gothic math symbols). Note that "
                    "there are no regular versions of letters 'C', 'H', 'I', "
                    "'R', 'Z'; those are replaced with their bold versions.",
                ),
                Command(
                    self.TEMPERATURE,
                    ("temperature", "temp"),
                    "Converts the temperature between Celsius and Fahrenheit.",
                    "`!temperature <number> <C or F>` - Converts the temperature "
                    "into another scale. For example, `!temp 5C` outputs 41.",
                ),
                Command(
                    self.ROLL,
                    ("roll",),
                    "Prints a random number.",
                    "`!roll [high]` - Prints a random number between 0 and 99, "
                    "or between 0 and high - 1, inclusive.",
                ),
                Command(
                    self.PICK,
                    ("pick", "choose"),
                    "Randomly picks one of the given options.",
                    "`!pick something;something else[;third option[;...]]` - "
                    "Randomly picks one of the given options.",
                ),
                Command(
                    self.INFO,
                    ("information", "info"),
                    "Prints out some information about the server.",
                    "`!information` - Prints out some information about the server.",
                ),
                Command(
                    self.ROOM,
                    ("room",),
                    "Makes private voice rooms.",
                    "`!room <user or role mention(-s)>` - Makes a private voice "
                    "room for you and mentioned users. The room is __NOT YET__ "
                    "automatically deleted after a certain amount of time when "
                    "everyone leaves it.",
                ),
                Command(
                    self.AESTHETIC,
                    ("aesthetic", "fullwidth"),
                    f"Prints the given text in {fullwidth('fullwidth')} characters.",
                    "`!aesthetic <text>` - Prints the given text in "
                    f"{fullwidth('fullwidth')} characters.",
                ),
                Command(
                    self.SMALLCAPS,
                    ("smallcaps",),
                    f"Converts capital letters to {smallcaps('SMALL CAPITAL')} letters.",
                    "`!smallcaps <text>` - Converts capital letters to "
                    f"{smallcaps('SMALL CAPITAL')} letters. Note that there are "
                    "no small capital versions of letters 'Q' and 'X'.",
                ),
            ]
        )
        self._history: dict[int, deque[CommandMessage]] = {}
        self._history_lock = anyio.Lock()

    async def handle(
        self, bot: BotClient, message: Message, command_id: int, text: str
    ) -> None:
        if command_id == self.FRAKTUR:
            await self._send_transformed(bot, message, frakturize(text))
        elif command_id == self.AESTHETIC:
            await self._send_transformed(bot, message, fullwidth(text))
        elif command_id == self.SMALLCAPS:
            await self._send_transformed(bot, message, smallcaps(text))
        elif command_id == self.TEMPERATURE:
            await self._handle_temperature(bot, message, text)
        elif command_id == self.ROLL:
            await self._handle_roll(bot, message, text)
        elif command_id == self.PICK:
            await self._handle_pick(bot, message, text)
        elif command_id == self.INFO:
            await self._handle_info(bot, message)
        elif command_id == self.ROOM:
            await self._handle_room(bot, message)
        else:
            raise UnknownCommandError(self.name, command_id)

    async def handle_message_update(
        self, bot: BotClient, channel_id: int, message_id: int
    ) -> None:
        await self._mark_orphaned_reply(bot, channel_id, message_id)

    async def handle_message_delete(
        self, bot: BotClient, channel_id: int, message_id: int
    ) -> None:
        await self._mark_orphaned_reply(bot, channel_id, message_id)

    async def remember_command_message(
        self, channel_id: int, command_id: int, author_id: int, output_id: int
    ) -> None:
        async with self._history_lock:
            queue = self._history.get(channel_id)
            if queue is None:
                queue = deque(maxlen=COMMAND_MESSAGE_QUEUE_SIZE)
                self._history[channel_id] = queue
            queue.append(CommandMessage(command_id, author_id, output_id))

    async def find_command_message(
        self, channel_id: int, command_id: int
    ) -> CommandMessage | None:
        async with self._history_lock:
            for entry in reversed(self._history.get(channel_id, ())):
                if entry.command == command_id:
                    return entry
        return None

    async def _mark_orphaned_reply(
        self, bot: BotClient, channel_id: int, message_id: int
    ) -> None:
        """Attribute a reply to its author once the command message changed."""
        entry = await self.find_command_message(channel_id, message_id)
        if entry is None:
            return
        output = await bot.get_message(channel_id, entry.output)
        if output is None:
            return
        text = f"<@{entry.author}> said: {output.content}"
        await bot.edit(channel_id, entry.output, text[:MAX_MESSAGE_LENGTH])

    async def _send_transformed(self, bot: BotClient, message: Message, reply: str) -> None:
        output = await bot.send_and_get(message.channel_id, reply)
        if output is not None:
            await self.remember_command_message(
                message.channel_id, message.id, message.author.id, output.id
            )

    async def _handle_temperature(
        self, bot: BotClient, message: Message, text: str
    ) -> None:
        match = TEMPERATURE_REGEX.match(text)
        if match is None:
            await bot.send(message.channel_id, self.command_help_message(self.TEMPERATURE))
            return

        value = float(match.group(1))
        scale = match.group(3).upper()
        converted, converted_scale = convert_temperature(value, scale)
        await bot.send(
            message.channel_id,
            f"{value:.2f}°{scale} is **{converted:.2f}**°{converted_scale}.",
        )

    async def _handle_roll(self, bot: BotClient, message: Message, text: str) -> None:
        number = random.randrange(roll_max(text))
        await bot.send(
            message.channel_id, f"{message.author.mention} rolled **{number}**!"
        )

    async def _handle_pick(self, bot: BotClient, message: Message, text: str) -> None:
        options = [option for option in text.split(";") if option]
        if len(options) < 2:
            await bot.send(message.channel_id, self.command_help_message(self.PICK))
            return
        choice = random.choice(options)
        await bot.send(
            message.channel_id, f"{message.author.mention}: I pick {choice}!"
        )

    async def _handle_info(self, bot: BotClient, message: Message) -> None:
        channel = await bot.state.find_channel(message.channel_id)
        if isinstance(channel, PublicChannelRef):
            reply = format_server_info(channel.server, channel.channel.id)
        elif isinstance(channel, PrivateChannelRef):
            reply = f"```{channel.channel!r}```"
        elif isinstance(channel, GroupRef):
            reply = f"```{channel.group!r}```"
        else:
            reply = NO_CHANNEL_INFO
        await bot.send(message.channel_id, reply)

    async def _handle_room(self, bot: BotClient, message: Message) -> None:
        channel = await bot.state.find_channel(message.channel_id)
        if channel is None:
            await bot.send(message.channel_id, NO_CHANNEL_INFO)
            return
        if not isinstance(channel, PublicChannelRef):
            await bot.send(message.channel_id, "Well, what do you expect me to do?")
            return
        if not message.mentions and not message.mention_roles:
            await bot.send(message.channel_id, self.command_help_message(self.ROOM))
            return

        server = channel.server
        name = f"🤖 - ybot - {random.getrandbits(64):x}"
        room = await bot.create_channel(server.id, name, ChannelKind.VOICE)
        if room is None:
            await bot.send(message.channel_id, "Couldn't create a new channel. :/")
            return
        logger.info("fun.room_created", server_id=server.id, channel_id=room.id)

        # The @everyone role shares its id with the server.
        overwrites = [
            PermissionOverwrite(
                OverwriteKind.ROLE, server.id, deny=ROOM_DENY_PERMS
            ),
            PermissionOverwrite(
                OverwriteKind.MEMBER, message.author.id, allow=ROOM_ALLOW_PERMS
            ),
        ]
        overwrites.extend(
            PermissionOverwrite(OverwriteKind.MEMBER, user.id, allow=ROOM_ALLOW_PERMS)
            for user in message.mentions
        )
        overwrites.extend(
            PermissionOverwrite(OverwriteKind.ROLE, role_id, allow=ROOM_ALLOW_PERMS)
            for role_id in message.mention_roles
        )
        for overwrite in overwrites:
            await bot.create_permission(room.id, overwrite)
