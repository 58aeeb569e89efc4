"""Transport contract between the bot core and the messaging service."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from .events import Event
    from .types import (
        ChannelKind,
        Member,
        Message,
        PermissionOverwrite,
        PrivateChannel,
        PublicChannel,
        ReadySnapshot,
    )

# Discord's bulk delete endpoint accepts at most this many ids per call.
MAX_DELETE_BATCH = 100


class TransportError(Exception):
    """Base class for every failure reported by a transport."""


class AuthenticationError(TransportError):
    """The token was rejected. Never retried."""


class ConnectionDropped(TransportError):
    """The gateway connection went away and should be re-established."""


class ConnectionClosed(TransportError):
    """The peer terminated the session; the event stream is over."""


class HTTPError(TransportError):
    """A REST call was rejected or failed on the network."""

    def __init__(self, status: int, text: str = "", *, code: int = 0) -> None:
        super().__init__(f"{status} (error code: {code}): {text}")
        self.status = status
        self.code = code
        self.text = text


class MessageTooLong(HTTPError):
    """The message content exceeded the service's length limit."""


class Connection(Protocol):
    async def recv_event(self) -> Event:
        """Block until the next event arrives.

        Raises ConnectionDropped, ConnectionClosed or another TransportError.
        """
        ...

    async def close(self) -> None: ...


class Gateway(Protocol):
    async def connect(self) -> tuple[Connection, ReadySnapshot]:
        """Authenticate, open a connection and wait for the Ready handshake."""
        ...


class RestApi(Protocol):
    async def send_message(self, channel_id: int, content: str) -> Message: ...

    async def edit_message(
        self, channel_id: int, message_id: int, content: str
    ) -> Message: ...

    async def send_file(
        self, channel_id: int, content: str, data: bytes, filename: str
    ) -> Message: ...

    async def broadcast_typing(self, channel_id: int) -> None: ...

    async def get_message(self, channel_id: int, message_id: int) -> Message: ...

    async def get_messages(
        self, channel_id: int, *, limit: int, before: int | None = None
    ) -> list[Message]: ...

    async def get_member(self, server_id: int, user_id: int) -> Member: ...

    async def create_channel(
        self, server_id: int, name: str, kind: ChannelKind
    ) -> PublicChannel: ...

    async def create_permission(
        self, channel_id: int, overwrite: PermissionOverwrite
    ) -> None: ...

    async def delete_messages(
        self, channel_id: int, message_ids: Sequence[int]
    ) -> None:
        """Delete up to MAX_DELETE_BATCH messages in one call."""
        ...

    async def create_private_channel(self, user_id: int) -> PrivateChannel: ...
