"""Main event loop: fold events into the mirror and route them to modules."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

import anyio
import structlog

from . import events
from .client import BotClient
from .gateway import ConnectionManager
from .logging import get_logger
from .module import find_command
from .parsing import parse_command
from .transport import AuthenticationError
from .types import (
    CommandInvocation,
    GroupRef,
    PrivateChannelRef,
    PublicChannelRef,
)

if TYPE_CHECKING:
    from anyio.abc import TaskGroup

    from .events import Event
    from .module import Module
    from .transport import Gateway, RestApi
    from .types import ChannelRef, Message

logger = get_logger(__name__)

__all__ = ["Dispatcher", "run_bot", "run_main_loop"]


def describe_message(channel: ChannelRef | None, message: Message) -> dict[str, str]:
    """Log fields describing where a message came from."""
    author = message.author.name
    if isinstance(channel, PublicChannelRef):
        return {
            "where": f"{channel.server.name} #{channel.channel.name}",
            "author": author,
        }
    if isinstance(channel, GroupRef):
        return {"where": f"Group {channel.group.display_name}", "author": author}
    if isinstance(channel, PrivateChannelRef):
        recipient = channel.channel.recipient.name
        if author == recipient:
            return {"where": "Private", "author": author}
        return {"where": f"Private to {recipient}", "author": author}
    return {"where": "Unknown Channel", "author": author}


class Dispatcher:
    """Routes gateway events to modules.

    Every command invocation and every hook fan-out runs as its own task in
    `task_group`. The dispatcher never waits for them, so the handling of one
    event can overlap with folding the next one into the mirror.
    """

    def __init__(self, bot: BotClient, task_group: TaskGroup) -> None:
        self._bot = bot
        self._task_group = task_group

    async def dispatch(self, event: Event) -> None:
        await self._bot.state.update(event)

        if isinstance(event, events.Ready):
            logger.info("state.resynced", servers=len(event.snapshot.servers))
        elif isinstance(event, events.MessageCreate):
            await self._on_message(event.message)
        elif isinstance(event, events.MessageUpdate):
            self._spawn(
                "message_update",
                self._fan_out_update,
                event.channel_id,
                event.message_id,
            )
        elif isinstance(event, events.MessageDelete):
            self._spawn(
                "message_delete",
                self._fan_out_delete,
                event.channel_id,
                event.message_id,
            )

    async def _on_message(self, message: Message) -> None:
        async with self._bot.state.read() as state:
            # Skip the message if it comes from us.
            if message.author.id == state.user.id:
                return
            channel = state.find_channel(message.channel_id)

        logger.info(
            "message.received",
            **describe_message(channel, message),
            content=message.content,
        )

        parsed = parse_command(message.content)
        if parsed is not None:
            name, text = parsed
            match = find_command(self._bot.modules, name)
            if match is not None:
                module_index, command_id = match
                invocation = CommandInvocation(
                    module_index=module_index,
                    command_id=command_id,
                    text=text,
                    message=message,
                )
                self._spawn("command", self._run_command, invocation)

        if message.attachments:
            self._spawn("attachment", self._fan_out_attachment, message)

    def _spawn(self, kind: str, func: Callable[..., Awaitable[None]], *args) -> None:
        self._task_group.start_soon(self._run_unit, kind, func, *args)

    async def _run_unit(
        self, kind: str, func: Callable[..., Awaitable[None]], *args
    ) -> None:
        try:
            await func(*args)
        except Exception:
            logger.exception("handler.failed", kind=kind)

    async def _run_command(self, invocation: CommandInvocation) -> None:
        module = self._bot.modules[invocation.module_index]
        structlog.contextvars.bind_contextvars(
            module=module.name,
            command_id=invocation.command_id,
            channel_id=invocation.message.channel_id,
        )
        await module.handle(
            self._bot, invocation.message, invocation.command_id, invocation.text
        )

    async def _fan_out_attachment(self, message: Message) -> None:
        await self._fan_out(
            lambda module: module.handle_attachment(self._bot, message)
        )

    async def _fan_out_update(self, channel_id: int, message_id: int) -> None:
        await self._fan_out(
            lambda module: module.handle_message_update(
                self._bot, channel_id, message_id
            )
        )

    async def _fan_out_delete(self, channel_id: int, message_id: int) -> None:
        await self._fan_out(
            lambda module: module.handle_message_delete(
                self._bot, channel_id, message_id
            )
        )

    async def _fan_out(self, call: Callable[[Module], Awaitable[None]]) -> None:
        for module in self._bot.modules:
            try:
                await call(module)
            except Exception:
                logger.exception("handler.hook_failed", module=module.name)


async def run_main_loop(connection: ConnectionManager, bot: BotClient) -> None:
    """Pump events until the gateway closes.

    Returns once the stream has ended and every spawned unit has finished.
    """
    fatal: AuthenticationError | None = None
    async with anyio.create_task_group() as task_group:
        dispatcher = Dispatcher(bot, task_group)
        try:
            while (event := await connection.receive_event()) is not None:
                await dispatcher.dispatch(event)
        except AuthenticationError as exc:
            fatal = exc
            task_group.cancel_scope.cancel()
    if fatal is not None:
        raise fatal
    logger.info("loop.finished", reconnects=connection.reconnects)


async def run_bot(
    gateway: Gateway,
    rest: RestApi,
    modules: list[Module],
    *,
    version: str = "",
) -> None:
    """Connect, then run the main loop until the gateway closes."""
    connection = ConnectionManager(gateway)
    state = await connection.start()
    bot = BotClient(rest, state, modules, version=version)
    logger.info("loop.config", modules=[m.name for m in modules])
    try:
        await run_main_loop(connection, bot)
    finally:
        with anyio.CancelScope(shield=True):
            await connection.close()
