"""Persistent admin role configuration."""

from __future__ import annotations

from pathlib import Path

import anyio
import msgspec

from ..logging import get_logger

logger = get_logger(__name__)


class AdminMemory(msgspec.Struct):
    """On-disk layout: server id (as a string) -> admin role ids."""

    admin_roles: dict[str, list[int]] = msgspec.field(default_factory=dict)


def _write_replacing(path: Path, memory: AdminMemory) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    scratch = path.with_name(f".{path.name}.tmp")
    scratch.write_bytes(msgspec.json.format(msgspec.json.encode(memory), indent=2))
    scratch.replace(path)


class AdminStore:
    """Admin roles per server.

    The file is re-read whenever its mtime changes, so edits made by hand
    while the bot runs are picked up on the next command.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = anyio.Lock()
        self._seen_mtime: int | None = None
        self._memory: AdminMemory | None = None

    @property
    def path(self) -> Path:
        return self._path

    def _mtime(self) -> int | None:
        try:
            return self._path.stat().st_mtime_ns
        except FileNotFoundError:
            return None

    def _current(self) -> AdminMemory:
        mtime = self._mtime()
        if self._memory is None or mtime != self._seen_mtime:
            self._memory = self._read(mtime)
            self._seen_mtime = mtime
        return self._memory

    def _read(self, mtime: int | None) -> AdminMemory:
        if mtime is None:
            return AdminMemory()
        try:
            return msgspec.json.decode(self._path.read_bytes(), type=AdminMemory)
        except (OSError, msgspec.DecodeError) as exc:
            logger.warning("admin.load_failed", path=str(self._path), error=str(exc))
            return AdminMemory()

    def _commit(self, memory: AdminMemory) -> None:
        _write_replacing(self._path, memory)
        self._seen_mtime = self._mtime()

    async def get_roles(self, server_id: int) -> list[int]:
        async with self._lock:
            return list(self._current().admin_roles.get(str(server_id), ()))

    async def add_role(self, server_id: int, role_id: int) -> bool:
        """Returns False if the role was already an admin role."""
        async with self._lock:
            memory = self._current()
            roles = memory.admin_roles.setdefault(str(server_id), [])
            if role_id in roles:
                return False
            roles.append(role_id)
            self._commit(memory)
            return True

    async def remove_role(self, server_id: int, role_id: int) -> bool:
        """Returns False if the role wasn't an admin role."""
        async with self._lock:
            memory = self._current()
            key = str(server_id)
            roles = memory.admin_roles.get(key, [])
            if role_id not in roles:
                return False
            roles.remove(role_id)
            if not roles:
                del memory.admin_roles[key]
            self._commit(memory)
            return True
