"""Gateway events consumed by the dispatcher."""

from __future__ import annotations

from dataclasses import dataclass

from .types import (
    Group,
    Message,
    PrivateChannel,
    PublicChannel,
    ReadySnapshot,
    Role,
    Server,
    User,
)


@dataclass(frozen=True, slots=True)
class Ready:
    snapshot: ReadySnapshot


@dataclass(frozen=True, slots=True)
class MessageCreate:
    message: Message


@dataclass(frozen=True, slots=True)
class MessageUpdate:
    """A message was edited. Only identifiers are guaranteed."""

    channel_id: int
    message_id: int
    content: str | None = None


@dataclass(frozen=True, slots=True)
class MessageDelete:
    channel_id: int
    message_id: int


@dataclass(frozen=True, slots=True)
class ServerCreate:
    server: Server


@dataclass(frozen=True, slots=True)
class ServerUpdate:
    server: Server


@dataclass(frozen=True, slots=True)
class ServerDelete:
    server_id: int


@dataclass(frozen=True, slots=True)
class ChannelCreate:
    channel: PublicChannel


@dataclass(frozen=True, slots=True)
class ChannelUpdate:
    channel: PublicChannel


@dataclass(frozen=True, slots=True)
class ChannelDelete:
    server_id: int
    channel_id: int


@dataclass(frozen=True, slots=True)
class PrivateChannelCreate:
    """A DM or group channel the bot hadn't seen yet, or one that changed."""

    channel: PrivateChannel | Group


@dataclass(frozen=True, slots=True)
class RoleCreate:
    server_id: int
    role: Role


@dataclass(frozen=True, slots=True)
class RoleUpdate:
    server_id: int
    role: Role


@dataclass(frozen=True, slots=True)
class RoleDelete:
    server_id: int
    role_id: int


@dataclass(frozen=True, slots=True)
class MemberAdd:
    server_id: int
    user: User


@dataclass(frozen=True, slots=True)
class MemberRemove:
    server_id: int
    user: User


@dataclass(frozen=True, slots=True)
class Unknown:
    """Any gateway event the bot has no use for."""

    name: str


Event = (
    Ready
    | MessageCreate
    | MessageUpdate
    | MessageDelete
    | ServerCreate
    | ServerUpdate
    | ServerDelete
    | ChannelCreate
    | ChannelUpdate
    | ChannelDelete
    | PrivateChannelCreate
    | RoleCreate
    | RoleUpdate
    | RoleDelete
    | MemberAdd
    | MemberRemove
    | Unknown
)
