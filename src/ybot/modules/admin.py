"""Server administration commands."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from ..logging import get_logger
from ..module import Command, Module, UnknownCommandError
from ..transport import MAX_DELETE_BATCH
from ..types import PublicChannelRef
from .admin_store import AdminStore

if TYPE_CHECKING:
    from pathlib import Path

    from ..client import BotClient
    from ..types import Message, Server

logger = get_logger(__name__)

PURGE_REGEX = re.compile(r"\s*([0-9]+)\s*$")
MAX_PURGE = 1000


class AdminModule(Module):
    name = "Admin"
    description = "Commands for server administrators."

    ADMIN_ROLES = 0
    ADD_ADMIN_ROLE = 1
    REMOVE_ADMIN_ROLE = 2
    PURGE = 3

    def __init__(self, state_path: Path) -> None:
        super().__init__(
            [
                Command(
                    self.ADMIN_ROLES,
                    ("adminroles",),
                    "Lists the admin roles of this server.",
                    "`!adminroles` - Lists the roles whose members can use admin commands.",
                ),
                Command(
                    self.ADD_ADMIN_ROLE,
                    ("addadminrole",),
                    "Makes roles admin roles.",
                    "`!addadminrole <role mention(-s)>` - Lets members of the "
                    "mentioned roles use admin commands. Only the server owner "
                    "can do this.",
                ),
                Command(
                    self.REMOVE_ADMIN_ROLE,
                    ("removeadminrole", "deladminrole"),
                    "Makes roles regular roles again.",
                    "`!removeadminrole <role mention(-s)>` - Takes admin commands "
                    "away from the mentioned roles. Only the server owner can do this.",
                ),
                Command(
                    self.PURGE,
                    ("purge",),
                    "Deletes recent messages.",
                    f"`!purge <count>` - Deletes the last `count` messages (at most "
                    f"{MAX_PURGE}) in this channel. Only admins can do this.",
                ),
            ]
        )
        self._store = AdminStore(state_path)

    @property
    def store(self) -> AdminStore:
        return self._store

    async def handle(
        self, bot: BotClient, message: Message, command_id: int, text: str
    ) -> None:
        # Validate before touching the network.
        self.command(command_id)

        channel = await bot.state.find_channel(message.channel_id)
        if not isinstance(channel, PublicChannelRef):
            await bot.send(message.channel_id, "This command only works on servers.")
            return
        server = channel.server

        if command_id == self.ADMIN_ROLES:
            await self._handle_list(bot, message, server)
        elif command_id in (self.ADD_ADMIN_ROLE, self.REMOVE_ADMIN_ROLE):
            await self._handle_change(bot, message, server, command_id)
        elif command_id == self.PURGE:
            await self._handle_purge(bot, message, server, text)
        else:
            raise UnknownCommandError(self.name, command_id)

    async def is_admin(self, bot: BotClient, server: Server, user_id: int) -> bool:
        if user_id == server.owner_id:
            return True
        admin_roles = await self._store.get_roles(server.id)
        if not admin_roles:
            return False
        member = await bot.get_member(server.id, user_id)
        if member is None:
            return False
        return any(role in admin_roles for role in member.roles)

    async def _handle_list(self, bot: BotClient, message: Message, server: Server) -> None:
        role_ids = await self._store.get_roles(server.id)
        if not role_ids:
            await bot.send(message.channel_id, "This server has no admin roles.")
            return
        names = {role.id: role.name for role in server.roles}
        lines = ["Admin roles:"]
        lines.extend(f"- {names.get(r, 'deleted role')} ({r})" for r in role_ids)
        await bot.send(message.channel_id, "\n".join(lines))

    async def _handle_change(
        self, bot: BotClient, message: Message, server: Server, command_id: int
    ) -> None:
        if message.author.id != server.owner_id:
            await bot.send(message.channel_id, "Only the server owner can do that.")
            return
        if not message.mention_roles:
            await bot.send(message.channel_id, self.command_help_message(command_id))
            return

        changed = 0
        for role_id in message.mention_roles:
            if command_id == self.ADD_ADMIN_ROLE:
                changed += await self._store.add_role(server.id, role_id)
            else:
                changed += await self._store.remove_role(server.id, role_id)

        logger.info(
            "admin.roles_changed",
            server_id=server.id,
            command_id=command_id,
            changed=changed,
        )
        verb = "Added" if command_id == self.ADD_ADMIN_ROLE else "Removed"
        await bot.send(message.channel_id, f"{verb} {changed} admin role(s).")

    async def _handle_purge(
        self, bot: BotClient, message: Message, server: Server, text: str
    ) -> None:
        match = PURGE_REGEX.match(text)
        if match is None:
            await bot.send(message.channel_id, self.command_help_message(self.PURGE))
            return
        count = min(int(match.group(1)), MAX_PURGE)

        if not await self.is_admin(bot, server, message.author.id):
            await bot.send(message.channel_id, "You need to be an admin to do that.")
            return

        to_delete = [message.id]
        before = message.id
        while len(to_delete) <= count:
            batch = await bot.get_messages(
                message.channel_id,
                limit=min(MAX_DELETE_BATCH, count + 1 - len(to_delete)),
                before=before,
            )
            if not batch:
                break
            to_delete.extend(m.id for m in batch)
            before = batch[-1].id

        await bot.delete_messages(message.channel_id, to_delete)
        logger.info(
            "admin.purged",
            server_id=server.id,
            channel_id=message.channel_id,
            deleted=len(to_delete) - 1,
        )
