"""Local mirror of servers, channels and users built from gateway events."""

from __future__ import annotations

import dataclasses
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import anyio

from . import events
from .types import (
    ChannelRef,
    Group,
    GroupRef,
    PrivateChannel,
    PrivateChannelRef,
    PublicChannelRef,
    ReadySnapshot,
    Server,
    User,
)

if TYPE_CHECKING:
    from .events import Event


class ConnectionState:
    """Snapshot of everything the gateway told us since the last Ready.

    Not thread-safe on its own; share it through SharedState.
    """

    def __init__(self, snapshot: ReadySnapshot) -> None:
        self._load(snapshot)

    def _load(self, snapshot: ReadySnapshot) -> None:
        self._user = snapshot.user
        self._servers: dict[int, Server] = {s.id: s for s in snapshot.servers}
        self._private: dict[int, PrivateChannel | Group] = {
            c.id: c for c in snapshot.private_channels
        }

    @classmethod
    def from_ready(cls, snapshot: ReadySnapshot) -> ConnectionState:
        return cls(snapshot)

    @property
    def user(self) -> User:
        return self._user

    @property
    def servers(self) -> list[Server]:
        return list(self._servers.values())

    def get_server(self, server_id: int) -> Server | None:
        return self._servers.get(server_id)

    def find_channel(self, channel_id: int) -> ChannelRef | None:
        """Resolve a channel id against the mirror."""
        private = self._private.get(channel_id)
        if isinstance(private, PrivateChannel):
            return PrivateChannelRef(private)
        if isinstance(private, Group):
            return GroupRef(private)

        for server in self._servers.values():
            for channel in server.channels:
                if channel.id == channel_id:
                    return PublicChannelRef(server, channel)
        return None

    def update(self, event: Event) -> None:
        """Fold a single event into the mirror.

        Message events never change the mirror.
        """
        if isinstance(event, events.Ready):
            self._load(event.snapshot)
        elif isinstance(event, (events.ServerCreate, events.ServerUpdate)):
            self._servers[event.server.id] = event.server
        elif isinstance(event, events.ServerDelete):
            self._servers.pop(event.server_id, None)
        elif isinstance(event, (events.ChannelCreate, events.ChannelUpdate)):
            channel = event.channel
            self._patch_server(
                channel.server_id,
                lambda s: dataclasses.replace(
                    s,
                    channels=(
                        *(c for c in s.channels if c.id != channel.id),
                        channel,
                    ),
                ),
            )
        elif isinstance(event, events.PrivateChannelCreate):
            self._private[event.channel.id] = event.channel
        elif isinstance(event, events.ChannelDelete):
            self._patch_server(
                event.server_id,
                lambda s: dataclasses.replace(
                    s,
                    channels=tuple(c for c in s.channels if c.id != event.channel_id),
                ),
            )
        elif isinstance(event, (events.RoleCreate, events.RoleUpdate)):
            role = event.role
            self._patch_server(
                event.server_id,
                lambda s: dataclasses.replace(
                    s,
                    roles=(*(r for r in s.roles if r.id != role.id), role),
                ),
            )
        elif isinstance(event, events.RoleDelete):
            self._patch_server(
                event.server_id,
                lambda s: dataclasses.replace(
                    s, roles=tuple(r for r in s.roles if r.id != event.role_id)
                ),
            )
        elif isinstance(event, events.MemberAdd):
            self._patch_server(
                event.server_id,
                lambda s: dataclasses.replace(s, member_count=s.member_count + 1),
            )
        elif isinstance(event, events.MemberRemove):
            self._patch_server(
                event.server_id,
                lambda s: dataclasses.replace(
                    s, member_count=max(s.member_count - 1, 0)
                ),
            )

    def _patch_server(self, server_id: int, change) -> None:
        server = self._servers.get(server_id)
        if server is not None:
            self._servers[server_id] = change(server)


class ReadWriteLock:
    """Many concurrent readers or one writer. Waiting writers block new readers."""

    def __init__(self) -> None:
        self._condition = anyio.Condition()
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    @asynccontextmanager
    async def read(self) -> AsyncIterator[None]:
        async with self._condition:
            while self._writer or self._waiting_writers:
                await self._condition.wait()
            self._readers += 1
        try:
            yield
        finally:
            with anyio.CancelScope(shield=True):
                async with self._condition:
                    self._readers -= 1
                    if self._readers == 0:
                        self._condition.notify_all()

    @asynccontextmanager
    async def write(self) -> AsyncIterator[None]:
        async with self._condition:
            self._waiting_writers += 1
            try:
                while self._writer or self._readers:
                    await self._condition.wait()
            finally:
                self._waiting_writers -= 1
            self._writer = True
        try:
            yield
        finally:
            with anyio.CancelScope(shield=True):
                async with self._condition:
                    self._writer = False
                    self._condition.notify_all()


class SharedState:
    """The connection state mirror behind a read-write lock.

    Handler units read it concurrently; only the dispatcher and the
    connection manager write.
    """

    def __init__(self, snapshot: ReadySnapshot) -> None:
        self._lock = ReadWriteLock()
        self._state = ConnectionState.from_ready(snapshot)

    @asynccontextmanager
    async def read(self) -> AsyncIterator[ConnectionState]:
        async with self._lock.read():
            yield self._state

    async def update(self, event: Event) -> None:
        async with self._lock.write():
            self._state.update(event)

    async def reset(self, snapshot: ReadySnapshot) -> None:
        """Throw away everything and start over from a fresh Ready snapshot."""
        async with self._lock.write():
            self._state = ConnectionState.from_ready(snapshot)

    async def current_user(self) -> User:
        async with self.read() as state:
            return state.user

    async def find_channel(self, channel_id: int) -> ChannelRef | None:
        async with self.read() as state:
            return state.find_channel(channel_id)
