"""Transport backed by Pycord.

Each gateway connection gets its own `discord.Client`, started with
`reconnect=False` so that drops surface to the ConnectionManager instead of
being retried inside the library.
"""

from __future__ import annotations

import asyncio
import contextlib
import io
from collections.abc import Callable, Iterator, Sequence
from typing import Any

import aiohttp
import discord

from . import events
from .logging import get_logger
from .transport import (
    AuthenticationError,
    ConnectionClosed,
    ConnectionDropped,
    HTTPError,
    MessageTooLong,
    TransportError,
)
from .types import (
    Attachment,
    ChannelKind,
    Group,
    Member,
    Message,
    PermissionOverwrite,
    PrivateChannel,
    PublicChannel,
    ReadySnapshot,
    Role,
    Server,
    User,
)

logger = get_logger(__name__)

__all__ = ["DiscordConnection", "DiscordTransport"]

READY_TIMEOUT = 60.0
# Close codes after which Discord won't accept the same token again.
FATAL_CLOSE_CODES = {4004, 4010, 4011, 4012, 4013, 4014}
NORMAL_CLOSE_CODE = 1000

EventSink = Callable[["events.Event | TransportError"], None]


def convert_user(user: discord.abc.User) -> User:
    return User(id=user.id, name=user.name, bot=user.bot)


def convert_message(message: discord.Message) -> Message:
    return Message(
        id=message.id,
        channel_id=message.channel.id,
        author=convert_user(message.author),
        content=message.content,
        attachments=tuple(
            Attachment(url=a.url, filename=a.filename, size=a.size)
            for a in message.attachments
        ),
        mentions=tuple(convert_user(u) for u in message.mentions),
        mention_roles=tuple(message.raw_role_mentions),
    )


def convert_channel(channel: discord.abc.GuildChannel) -> PublicChannel:
    if isinstance(channel, discord.TextChannel):
        kind = ChannelKind.TEXT
    elif isinstance(channel, discord.VoiceChannel):
        kind = ChannelKind.VOICE
    elif isinstance(channel, discord.CategoryChannel):
        kind = ChannelKind.CATEGORY
    else:
        kind = ChannelKind.OTHER
    return PublicChannel(
        id=channel.id, server_id=channel.guild.id, name=channel.name, kind=kind
    )


def convert_guild(guild: discord.Guild) -> Server:
    return Server(
        id=guild.id,
        name=guild.name,
        owner_id=guild.owner_id,
        member_count=guild.member_count or 0,
        icon=guild.icon.key if guild.icon else None,
        roles=tuple(Role(id=r.id, name=r.name) for r in guild.roles),
        channels=tuple(convert_channel(c) for c in guild.channels),
    )


def convert_private_channel(
    channel: discord.abc.PrivateChannel,
    *,
    recipient: discord.abc.User | None = None,
) -> PrivateChannel | Group | None:
    """Convert a DM or group channel; anything else gives None.

    `recipient` stands in for a DM channel whose recipient Pycord hasn't
    cached yet.
    """
    if isinstance(channel, discord.DMChannel):
        user = channel.recipient or recipient
        if user is None:
            return None
        return PrivateChannel(id=channel.id, recipient=convert_user(user))
    if isinstance(channel, discord.GroupChannel):
        return Group(
            id=channel.id,
            recipients=tuple(convert_user(u) for u in channel.recipients),
            name=channel.name,
        )
    return None


def private_channel_seen(
    channel: Any, recipient: discord.abc.User | None
) -> events.PrivateChannelCreate | None:
    private = convert_private_channel(channel, recipient=recipient)
    if private is None:
        return None
    return events.PrivateChannelCreate(private)


def build_snapshot(client: discord.Client) -> ReadySnapshot:
    assert client.user is not None
    private = (convert_private_channel(c) for c in client.private_channels)
    return ReadySnapshot(
        user=convert_user(client.user),
        servers=tuple(convert_guild(g) for g in client.guilds),
        private_channels=tuple(c for c in private if c is not None),
    )


def _is_content_too_long(exc: discord.HTTPException) -> bool:
    if exc.status != 400:
        return False
    text = exc.text.lower()
    if "string value is too long" in text:
        return True
    return "content" in text and "or fewer in length" in text


def _convert_http_error(exc: discord.HTTPException) -> HTTPError:
    error_cls = MessageTooLong if _is_content_too_long(exc) else HTTPError
    return error_cls(exc.status, exc.text, code=exc.code)


@contextlib.contextmanager
def _http_errors() -> Iterator[None]:
    try:
        yield
    except discord.HTTPException as exc:
        raise _convert_http_error(exc) from exc
    except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
        raise HTTPError(0, str(exc) or type(exc).__name__) from exc


def classify_termination(exc: BaseException | None) -> TransportError:
    """Turn the way a gateway task ended into a transport error."""
    if exc is None:
        return ConnectionClosed("the gateway session ended")
    if isinstance(exc, discord.LoginFailure):
        return AuthenticationError(str(exc))
    if isinstance(exc, discord.ConnectionClosed):
        if exc.code == NORMAL_CLOSE_CODE:
            return ConnectionClosed(f"closed with code {exc.code}")
        if exc.code in FATAL_CLOSE_CODES:
            return AuthenticationError(f"closed with code {exc.code}: {exc.reason}")
        return ConnectionDropped(f"closed with code {exc.code}: {exc.reason}")
    return ConnectionDropped(f"{type(exc).__name__}: {exc}")


class _GatewayClient(discord.Client):
    """Pycord client that forwards the events we care about to a sink."""

    def __init__(self, sink: EventSink, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._sink = sink
        self._ready_count = 0

    def _emit(self, build: Callable[[], events.Event | None]) -> None:
        try:
            event = build()
        except Exception as exc:  # noqa: BLE001
            self._sink(TransportError(f"couldn't decode event: {exc!r}"))
            return
        if event is not None:
            self._sink(event)

    async def on_ready(self) -> None:
        self._ready_count += 1
        # The first Ready is returned by connect() as the initial snapshot.
        # Later ones come from a fresh IDENTIFY inside the same session, after
        # Pycord has rebuilt its cache.
        if self._ready_count == 1:
            return
        logger.info("discord.reidentified", ready_count=self._ready_count)
        self._emit(lambda: events.Ready(build_snapshot(self)))

    async def on_message(self, message: discord.Message) -> None:
        # Bots get no DM channels in Ready; they show up with their first message.
        recipient = None if message.author == self.user else message.author
        self._emit(lambda: private_channel_seen(message.channel, recipient))
        self._emit(lambda: events.MessageCreate(convert_message(message)))

    async def on_private_channel_update(
        self, before: discord.GroupChannel, after: discord.GroupChannel
    ) -> None:
        self._emit(lambda: private_channel_seen(after, None))

    async def on_raw_message_edit(self, payload: discord.RawMessageUpdateEvent) -> None:
        self._emit(
            lambda: events.MessageUpdate(
                channel_id=payload.channel_id,
                message_id=payload.message_id,
                content=payload.data.get("content"),
            )
        )

    async def on_raw_message_delete(
        self, payload: discord.RawMessageDeleteEvent
    ) -> None:
        self._emit(
            lambda: events.MessageDelete(
                channel_id=payload.channel_id, message_id=payload.message_id
            )
        )

    async def on_raw_bulk_message_delete(
        self, payload: discord.RawBulkMessageDeleteEvent
    ) -> None:
        for message_id in sorted(payload.message_ids):
            self._emit(
                lambda message_id=message_id: events.MessageDelete(
                    channel_id=payload.channel_id, message_id=message_id
                )
            )

    async def on_guild_join(self, guild: discord.Guild) -> None:
        self._emit(lambda: events.ServerCreate(convert_guild(guild)))

    async def on_guild_update(self, before: discord.Guild, after: discord.Guild) -> None:
        self._emit(lambda: events.ServerUpdate(convert_guild(after)))

    async def on_guild_remove(self, guild: discord.Guild) -> None:
        self._emit(lambda: events.ServerDelete(guild.id))

    async def on_guild_channel_create(self, channel: discord.abc.GuildChannel) -> None:
        self._emit(lambda: events.ChannelCreate(convert_channel(channel)))

    async def on_guild_channel_update(
        self, before: discord.abc.GuildChannel, after: discord.abc.GuildChannel
    ) -> None:
        self._emit(lambda: events.ChannelUpdate(convert_channel(after)))

    async def on_guild_channel_delete(self, channel: discord.abc.GuildChannel) -> None:
        self._emit(lambda: events.ChannelDelete(channel.guild.id, channel.id))

    async def on_guild_role_create(self, role: discord.Role) -> None:
        self._emit(lambda: events.RoleCreate(role.guild.id, Role(role.id, role.name)))

    async def on_guild_role_update(self, before: discord.Role, after: discord.Role) -> None:
        self._emit(
            lambda: events.RoleUpdate(after.guild.id, Role(after.id, after.name))
        )

    async def on_guild_role_delete(self, role: discord.Role) -> None:
        self._emit(lambda: events.RoleDelete(role.guild.id, role.id))

    async def on_member_join(self, member: discord.Member) -> None:
        self._emit(lambda: events.MemberAdd(member.guild.id, convert_user(member)))

    async def on_member_remove(self, member: discord.Member) -> None:
        self._emit(lambda: events.MemberRemove(member.guild.id, convert_user(member)))


class _Terminated:
    __slots__ = ("error",)

    def __init__(self, error: TransportError) -> None:
        self.error = error


class DiscordConnection:
    """One live gateway session."""

    def __init__(
        self,
        client: discord.Client,
        task: asyncio.Task[None],
        queue: asyncio.Queue[Any],
    ) -> None:
        self._client = client
        self._task = task
        self._queue = queue
        task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task[None]) -> None:
        exc = None if task.cancelled() else task.exception()
        self._queue.put_nowait(_Terminated(classify_termination(exc)))

    async def recv_event(self) -> events.Event:
        item = await self._queue.get()
        if isinstance(item, _Terminated):
            # Keep the terminal error visible to every later call.
            self._queue.put_nowait(item)
            raise item.error
        if isinstance(item, TransportError):
            raise item
        return item

    async def close(self) -> None:
        if not self._client.is_closed():
            await self._client.close()
        if not self._task.done():
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task


class DiscordTransport:
    """Gateway and REST API on top of Pycord."""

    def __init__(self, token: str, *, ready_timeout: float = READY_TIMEOUT) -> None:
        self._token = token
        self._ready_timeout = ready_timeout
        self._client: discord.Client | None = None

    @staticmethod
    def _intents() -> discord.Intents:
        intents = discord.Intents.default()
        intents.message_content = True
        intents.guilds = True
        intents.members = True
        intents.messages = True
        return intents

    async def connect(self) -> tuple[DiscordConnection, ReadySnapshot]:
        queue: asyncio.Queue[Any] = asyncio.Queue()
        client = _GatewayClient(queue.put_nowait, intents=self._intents())

        try:
            await client.login(self._token)
        except discord.LoginFailure as exc:
            await client.close()
            raise AuthenticationError(str(exc)) from exc
        except (discord.HTTPException, aiohttp.ClientError, OSError) as exc:
            await client.close()
            raise ConnectionDropped(f"login failed: {exc}") from exc

        task = asyncio.create_task(
            client.connect(reconnect=False), name="discord-gateway"
        )
        ready = asyncio.create_task(client.wait_until_ready())
        done, _ = await asyncio.wait(
            {task, ready},
            timeout=self._ready_timeout,
            return_when=asyncio.FIRST_COMPLETED,
        )
        if ready not in done:
            ready.cancel()
            error: TransportError = ConnectionDropped("timed out waiting for Ready")
            if task.done():
                error = classify_termination(
                    None if task.cancelled() else task.exception()
                )
            connection = DiscordConnection(client, task, queue)
            await connection.close()
            raise error

        previous, self._client = self._client, client
        if previous is not None and not previous.is_closed():
            await previous.close()

        logger.debug("discord.connected", user=str(client.user))
        return DiscordConnection(client, task, queue), build_snapshot(client)

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed():
            await self._client.close()

    def _require_client(self) -> discord.Client:
        client = self._client
        if client is None or client.is_closed():
            raise HTTPError(0, "not connected")
        return client

    async def _messageable(self, channel_id: int) -> discord.abc.Messageable:
        client = self._require_client()
        channel = client.get_channel(channel_id)
        if channel is None:
            channel = await client.fetch_channel(channel_id)
        if not isinstance(channel, discord.abc.Messageable):
            raise HTTPError(0, f"channel {channel_id} can't hold messages")
        return channel

    async def _guild(self, server_id: int) -> discord.Guild:
        client = self._require_client()
        guild = client.get_guild(server_id)
        if guild is None:
            guild = await client.fetch_guild(server_id)
        return guild

    async def send_message(self, channel_id: int, content: str) -> Message:
        with _http_errors():
            channel = await self._messageable(channel_id)
            return convert_message(await channel.send(content))

    async def edit_message(self, channel_id: int, message_id: int, content: str) -> Message:
        with _http_errors():
            channel = await self._messageable(channel_id)
            message = await channel.fetch_message(message_id)
            edited = await message.edit(content=content)
            return convert_message(edited or message)

    async def send_file(
        self, channel_id: int, content: str, data: bytes, filename: str
    ) -> Message:
        with _http_errors():
            channel = await self._messageable(channel_id)
            sent = await channel.send(
                content=content or None,
                file=discord.File(io.BytesIO(data), filename=filename),
            )
            return convert_message(sent)

    async def broadcast_typing(self, channel_id: int) -> None:
        with _http_errors():
            channel = await self._messageable(channel_id)
            await channel.trigger_typing()

    async def get_message(self, channel_id: int, message_id: int) -> Message:
        with _http_errors():
            channel = await self._messageable(channel_id)
            return convert_message(await channel.fetch_message(message_id))

    async def get_messages(
        self, channel_id: int, *, limit: int, before: int | None = None
    ) -> list[Message]:
        with _http_errors():
            channel = await self._messageable(channel_id)
            before_obj = discord.Object(id=before) if before is not None else None
            return [
                convert_message(m)
                async for m in channel.history(limit=limit, before=before_obj)
            ]

    async def get_member(self, server_id: int, user_id: int) -> Member:
        with _http_errors():
            guild = await self._guild(server_id)
            member = await guild.fetch_member(user_id)
            return Member(
                user=convert_user(member),
                server_id=server_id,
                roles=tuple(r.id for r in member.roles),
                nick=member.nick,
            )

    async def create_channel(
        self, server_id: int, name: str, kind: ChannelKind
    ) -> PublicChannel:
        with _http_errors():
            guild = await self._guild(server_id)
            if kind is ChannelKind.VOICE:
                channel = await guild.create_voice_channel(name)
            elif kind is ChannelKind.TEXT:
                channel = await guild.create_text_channel(name)
            elif kind is ChannelKind.CATEGORY:
                channel = await guild.create_category(name)
            else:
                raise ValueError(f"can't create a channel of kind {kind}")
            return convert_channel(channel)

    async def create_permission(
        self, channel_id: int, overwrite: PermissionOverwrite
    ) -> None:
        client = self._require_client()
        with _http_errors():
            await client.http.edit_channel_permissions(
                channel_id,
                overwrite.target_id,
                str(int(overwrite.allow)),
                str(int(overwrite.deny)),
                int(overwrite.kind),
            )

    async def delete_messages(self, channel_id: int, message_ids: Sequence[int]) -> None:
        client = self._require_client()
        with _http_errors():
            if len(message_ids) == 1:
                await client.http.delete_message(channel_id, message_ids[0])
            elif message_ids:
                await client.http.delete_messages(channel_id, list(message_ids))

    async def create_private_channel(self, user_id: int) -> PrivateChannel:
        client = self._require_client()
        with _http_errors():
            user = client.get_user(user_id) or await client.fetch_user(user_id)
            dm = await user.create_dm()
            return PrivateChannel(id=dm.id, recipient=convert_user(user))
