"""Type definitions for the bot's view of Discord."""

from __future__ import annotations

import enum
from dataclasses import dataclass


class ChannelKind(enum.Enum):
    """Kind of a server channel."""

    TEXT = "text"
    VOICE = "voice"
    CATEGORY = "category"
    OTHER = "other"


class OverwriteKind(enum.IntEnum):
    """Target of a permission overwrite, using Discord's numeric values."""

    ROLE = 0
    MEMBER = 1


class Permissions(enum.IntFlag):
    """The subset of Discord permission bits the bot manipulates."""

    NONE = 0
    MANAGE_CHANNELS = 1 << 4
    MANAGE_MESSAGES = 1 << 13
    VOICE_CONNECT = 1 << 20
    VOICE_SPEAK = 1 << 21
    MANAGE_ROLES = 1 << 28


@dataclass(frozen=True, slots=True)
class User:
    """A Discord user."""

    id: int
    name: str
    bot: bool = False

    @property
    def mention(self) -> str:
        return f"<@{self.id}>"


@dataclass(frozen=True, slots=True)
class Attachment:
    """A file attached to a message."""

    url: str
    filename: str
    size: int = 0


@dataclass(frozen=True, slots=True)
class Message:
    """Incoming message from Discord.

    Instances are immutable and shared between every handler unit spawned
    for the same event.
    """

    id: int
    channel_id: int
    author: User
    content: str
    attachments: tuple[Attachment, ...] = ()
    mentions: tuple[User, ...] = ()
    mention_roles: tuple[int, ...] = ()


@dataclass(frozen=True, slots=True)
class Role:
    """A server role."""

    id: int
    name: str


@dataclass(frozen=True, slots=True)
class PublicChannel:
    """A channel that belongs to a server."""

    id: int
    server_id: int
    name: str
    kind: ChannelKind = ChannelKind.TEXT


@dataclass(frozen=True, slots=True)
class PrivateChannel:
    """A direct message channel with a single recipient."""

    id: int
    recipient: User


@dataclass(frozen=True, slots=True)
class Group:
    """A group direct message channel."""

    id: int
    recipients: tuple[User, ...] = ()
    name: str | None = None

    @property
    def display_name(self) -> str:
        if self.name:
            return self.name
        if not self.recipients:
            return "Empty Group"
        return ", ".join(user.name for user in self.recipients)


@dataclass(frozen=True, slots=True)
class Server:
    """A Discord server (guild) as seen in the Ready snapshot."""

    id: int
    name: str
    owner_id: int
    member_count: int = 0
    icon: str | None = None
    roles: tuple[Role, ...] = ()
    channels: tuple[PublicChannel, ...] = ()


@dataclass(frozen=True, slots=True)
class Member:
    """A user's membership in a server."""

    user: User
    server_id: int
    roles: tuple[int, ...] = ()
    nick: str | None = None


@dataclass(frozen=True, slots=True)
class ReadySnapshot:
    """Authoritative state delivered when a gateway connection is established."""

    user: User
    servers: tuple[Server, ...] = ()
    private_channels: tuple[PrivateChannel | Group, ...] = ()


@dataclass(frozen=True, slots=True)
class PermissionOverwrite:
    """Allow/deny pair applied to a role or a member on a channel."""

    kind: OverwriteKind
    target_id: int
    allow: Permissions = Permissions.NONE
    deny: Permissions = Permissions.NONE


@dataclass(frozen=True, slots=True)
class PublicChannelRef:
    """Result of resolving a server channel."""

    server: Server
    channel: PublicChannel


@dataclass(frozen=True, slots=True)
class PrivateChannelRef:
    """Result of resolving a direct message channel."""

    channel: PrivateChannel


@dataclass(frozen=True, slots=True)
class GroupRef:
    """Result of resolving a group channel."""

    group: Group


ChannelRef = PublicChannelRef | PrivateChannelRef | GroupRef


@dataclass(frozen=True, slots=True)
class CommandInvocation:
    """A matched command waiting to be run by a handler unit."""

    module_index: int
    command_id: int
    text: str
    message: Message
