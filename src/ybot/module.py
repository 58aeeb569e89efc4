"""Capability contract implemented by every command module."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING, ClassVar

if TYPE_CHECKING:
    from .client import BotClient
    from .types import Message


class ModuleUnavailable(Exception):
    """A module can't be constructed, e.g. its configuration is missing."""


class UnknownCommandError(LookupError):
    """A module was asked about a command id it never declared.

    This is a programming error in the caller, never a runtime condition.
    """

    def __init__(self, module: str, command_id: int) -> None:
        super().__init__(f"{module}: invalid command id {command_id}")
        self.module = module
        self.command_id = command_id


@dataclass(frozen=True, slots=True)
class Command:
    """One command a module provides.

    `aliases` are lowercase; the first one is shown first in listings.
    """

    id: int
    aliases: tuple[str, ...]
    description: str
    help: str

    def __post_init__(self) -> None:
        if not self.aliases:
            raise ValueError(f"command {self.id} has no aliases")
        for alias in self.aliases:
            if alias != alias.lower():
                raise ValueError(f"command alias {alias!r} must be lowercase")


class Module(ABC):
    """A pluggable command handler.

    Subclasses set `name` and `description` and pass their commands to
    `__init__`. The command table is fixed once the module is constructed.
    """

    name: ClassVar[str]
    description: ClassVar[str]

    def __init__(self, commands: Iterable[Command] = ()) -> None:
        table: dict[int, Command] = {}
        for command in commands:
            if command.id in table:
                raise ValueError(f"{self.name}: duplicate command id {command.id}")
            table[command.id] = command
        self._commands = MappingProxyType(table)
        self._aliases = MappingProxyType({c.id: c.aliases for c in table.values()})

    def commands(self) -> Mapping[int, tuple[str, ...]]:
        """Map of command id -> aliases."""
        return self._aliases

    def command(self, command_id: int) -> Command:
        try:
            return self._commands[command_id]
        except KeyError:
            raise UnknownCommandError(self.name, command_id) from None

    def command_description(self, command_id: int) -> str:
        return self.command(command_id).description

    def command_help_message(self, command_id: int) -> str:
        return self.command(command_id).help

    @abstractmethod
    async def handle(
        self, bot: BotClient, message: Message, command_id: int, text: str
    ) -> None:
        """Run one command. All replies are sent from inside this call."""

    async def handle_attachment(self, bot: BotClient, message: Message) -> None:
        """Called for every message with at least one attachment."""

    async def handle_message_update(
        self, bot: BotClient, channel_id: int, message_id: int
    ) -> None:
        """Called when any message is edited."""

    async def handle_message_delete(
        self, bot: BotClient, channel_id: int, message_id: int
    ) -> None:
        """Called when any message is deleted."""

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name!r}>"


def find_command(modules: Sequence[Module], name: str) -> tuple[int, int] | None:
    """Find the (module index, command id) an alias refers to.

    Modules are scanned in registration order and the first match wins.
    """
    name = name.lower()
    for index, module in enumerate(modules):
        for command_id, aliases in module.commands().items():
            if name in aliases:
                return index, command_id
    return None
