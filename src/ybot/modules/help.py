"""Introspection commands: list modules, list commands, per-command help."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..module import Command, Module, UnknownCommandError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from ..client import BotClient
    from ..types import Message


@dataclass(frozen=True, slots=True)
class _Entry:
    module: Module
    command_id: int
    aliases: tuple[str, ...]

    @property
    def sort_key(self) -> tuple[str, str, str]:
        return (
            self.aliases[0],
            self.module.name,
            self.module.command_description(self.command_id),
        )

    def format_aliases(self) -> str:
        return ", ".join(f"`!{alias}`" for alias in self.aliases)


def _entries(modules: Iterable[Module]) -> list[_Entry]:
    entries = [
        _Entry(module, command_id, aliases)
        for module in modules
        for command_id, aliases in module.commands().items()
    ]
    entries.sort(key=lambda e: e.sort_key)
    return entries


def format_module_list(modules: Iterable[Module]) -> str:
    lines = ["List of available modules:"]
    lines.extend(f"- `{m.name}`: {m.description}" for m in modules)
    return "\n".join(lines)


def format_module(module: Module) -> str:
    lines = [f"`{module.name}`: {module.description}"]
    entries = _entries([module])
    if not entries:
        lines.append("There are no commands defined by this module.")
        return "\n".join(lines)

    lines.append("Command list:")
    lines.extend(
        f"- {e.format_aliases()}: {module.command_description(e.command_id)}"
        for e in entries
    )
    return "\n".join(lines)


def format_command_list(modules: Iterable[Module]) -> str:
    lines = ["Available commands:"]
    lines.extend(
        f"- {e.format_aliases()} (module `{e.module.name}`): "
        f"{e.module.command_description(e.command_id)}"
        for e in _entries(modules)
    )
    return "\n".join(lines)


def format_command_help(modules: Iterable[Module], name: str) -> str | None:
    """Help for every command bound to `name`, or None if nothing matches."""
    blocks = []
    for module in modules:
        for command_id, aliases in module.commands().items():
            if name not in aliases:
                continue
            others = "".join(f", `!{a}`" for a in aliases if a != name)
            blocks.append(
                f"`!{name}`{others}: {module.command_description(command_id)}\n"
                f"{module.command_help_message(command_id)}"
            )
    if not blocks:
        return None
    return "\n\n".join(blocks)


class ModulesModule(Module):
    name = "Modules"
    description = "A module for enumerating modules and printing information about them."

    MODULES = 0
    COMMANDS = 1
    COMMAND = 2

    def __init__(self) -> None:
        super().__init__(
            [
                Command(
                    self.MODULES,
                    ("modules", "module", "mods", "mod"),
                    "Information about modules.",
                    "`!modules` - lists all available modules;\n"
                    "`!modules <name>` - gets information about the specified "
                    "module and lists its commands.",
                ),
                Command(
                    self.COMMANDS,
                    ("commands", "cmds"),
                    "Lists all available commands.",
                    "`!commands` - lists all available commands.",
                ),
                Command(
                    self.COMMAND,
                    ("help", "command", "cmd"),
                    "Gets information about the specified command.",
                    "`!help <command>` - gets information about the specified command.",
                ),
            ]
        )

    async def handle(
        self, bot: BotClient, message: Message, command_id: int, text: str
    ) -> None:
        if command_id == self.MODULES:
            await self._handle_modules(bot, message, text)
        elif command_id == self.COMMANDS:
            await bot.send(message.channel_id, format_command_list(bot.modules))
        elif command_id == self.COMMAND:
            await self._handle_command(bot, message, text)
        else:
            raise UnknownCommandError(self.name, command_id)

    async def _handle_modules(self, bot: BotClient, message: Message, text: str) -> None:
        if not text:
            await bot.send(message.channel_id, format_module_list(bot.modules))
            return

        wanted = text.lower()
        for module in bot.modules:
            if module.name.lower() == wanted:
                await bot.send(message.channel_id, format_module(module))
                return

        await bot.send(message.channel_id, f"There is no module called `{text}`.")

    async def _handle_command(self, bot: BotClient, message: Message, text: str) -> None:
        text = text.removeprefix("!")

        if not text:
            await bot.send(
                message.channel_id,
                f"Bot version {bot.version} using **Pycord**.\n"
                "`!mods` - list modules!\n"
                "`!mod <name>` - list commands of a module!\n"
                "`!help <command>` - help for a command!\n"
                "\n"
                "Or simply:\n"
                "`!commands` - list all commands!",
            )
            return

        name = text.lower()
        reply = format_command_help(bot.modules, name)
        if reply is None:
            reply = f"Could not find the `!{name}` command in any of the modules!"
        await bot.send(message.channel_id, reply)
