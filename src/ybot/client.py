"""Outbound client shared by every handler unit."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from .logging import get_logger
from .transport import MAX_DELETE_BATCH, MessageTooLong, TransportError

if TYPE_CHECKING:
    from .module import Module
    from .state import SharedState
    from .transport import RestApi
    from .types import (
        ChannelKind,
        Member,
        Message,
        PermissionOverwrite,
        PublicChannel,
    )

logger = get_logger(__name__)

TOO_LONG_APOLOGY = "I tried sending a message but Discord told me it was too long. :("


class BotClient:
    """Façade over the REST API, the state mirror and the module registry.

    Every outbound call logs and swallows transport failures; the bot never
    goes down because a message couldn't be delivered.
    """

    def __init__(
        self,
        rest: RestApi,
        state: SharedState,
        modules: Sequence[Module],
        *,
        version: str = "",
    ) -> None:
        self._rest = rest
        self._state = state
        self._modules = tuple(modules)
        self.version = version

    @property
    def state(self) -> SharedState:
        return self._state

    @property
    def modules(self) -> tuple[Module, ...]:
        return self._modules

    async def send(self, channel_id: int, text: str) -> None:
        """Send a message to a channel."""
        await self.send_and_get(channel_id, text)

    async def send_and_get(self, channel_id: int, text: str) -> Message | None:
        """Send a message and return it, or None if sending failed."""
        try:
            return await self._rest.send_message(channel_id, text)
        except TransportError as exc:
            await self._handle_error(channel_id, exc, op="send_message")
            return None

    async def edit(self, channel_id: int, message_id: int, text: str) -> Message | None:
        try:
            return await self._rest.edit_message(channel_id, message_id, text)
        except TransportError as exc:
            await self._handle_error(channel_id, exc, op="edit_message")
            return None

    async def edit_or_send_new(
        self, channel_id: int, previous: Message | None, text: str
    ) -> Message | None:
        """Edit `previous` if there is one, otherwise post a new message."""
        if previous is not None:
            return await self.edit(previous.channel_id, previous.id, text)
        return await self.send_and_get(channel_id, text)

    async def send_pm(
        self, user_id: int, text: str, *, error_channel_id: int
    ) -> None:
        """Send a direct message, reporting failure in `error_channel_id`."""
        try:
            private = await self._rest.create_private_channel(user_id)
        except TransportError as exc:
            logger.warning(
                "client.create_private_channel_failed", user_id=user_id, error=str(exc)
            )
            await self.send(
                error_channel_id, f"Error creating a private channel: `{exc}`."
            )
            return
        try:
            await self._rest.send_message(private.id, text)
        except TransportError as exc:
            await self._handle_error(error_channel_id, exc, op="send_pm")

    async def send_file(
        self, channel_id: int, text: str, data: bytes, filename: str
    ) -> None:
        try:
            await self._rest.send_file(channel_id, text, data, filename)
        except TransportError as exc:
            await self._handle_error(channel_id, exc, op="send_file")

    async def broadcast_typing(self, channel_id: int) -> None:
        try:
            await self._rest.broadcast_typing(channel_id)
        except TransportError as exc:
            await self._handle_error(channel_id, exc, op="broadcast_typing")

    async def delete_messages(self, channel_id: int, message_ids: Sequence[int]) -> None:
        """Delete any number of messages, in batches the API accepts."""
        for start in range(0, len(message_ids), MAX_DELETE_BATCH):
            chunk = message_ids[start : start + MAX_DELETE_BATCH]
            try:
                await self._rest.delete_messages(channel_id, chunk)
            except TransportError as exc:
                await self._handle_error(channel_id, exc, op="delete_messages")

    async def get_message(self, channel_id: int, message_id: int) -> Message | None:
        try:
            return await self._rest.get_message(channel_id, message_id)
        except TransportError as exc:
            self._log_error(exc, op="get_message", channel_id=channel_id)
            return None

    async def get_messages(
        self, channel_id: int, *, limit: int, before: int | None = None
    ) -> list[Message] | None:
        try:
            return await self._rest.get_messages(channel_id, limit=limit, before=before)
        except TransportError as exc:
            self._log_error(exc, op="get_messages", channel_id=channel_id)
            return None

    async def get_member(self, server_id: int, user_id: int) -> Member | None:
        try:
            return await self._rest.get_member(server_id, user_id)
        except TransportError as exc:
            self._log_error(exc, op="get_member", server_id=server_id, user_id=user_id)
            return None

    async def create_channel(
        self, server_id: int, name: str, kind: ChannelKind
    ) -> PublicChannel | None:
        try:
            return await self._rest.create_channel(server_id, name, kind)
        except TransportError as exc:
            self._log_error(exc, op="create_channel", server_id=server_id)
            return None

    async def create_permission(
        self, channel_id: int, overwrite: PermissionOverwrite
    ) -> None:
        try:
            await self._rest.create_permission(channel_id, overwrite)
        except TransportError as exc:
            self._log_error(
                exc,
                op="create_permission",
                channel_id=channel_id,
                target_id=overwrite.target_id,
            )

    async def _handle_error(self, channel_id: int, exc: TransportError, *, op: str) -> None:
        self._log_error(exc, op=op, channel_id=channel_id)
        if isinstance(exc, MessageTooLong):
            # The apology is short enough that it can't recurse.
            await self.send(channel_id, TOO_LONG_APOLOGY)

    @staticmethod
    def _log_error(exc: TransportError, *, op: str, **fields: object) -> None:
        logger.warning(
            "client.request_failed",
            op=op,
            error_type=type(exc).__name__,
            error=str(exc),
            **fields,
        )
