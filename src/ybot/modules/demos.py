"""Reports information about uploaded Half-Life demos."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import TYPE_CHECKING

import httpx

from ..logging import get_logger
from ..module import Module, UnknownCommandError

if TYPE_CHECKING:
    from ..client import BotClient
    from ..types import Attachment, Message

logger = get_logger(__name__)

DEMO_MAGIC = b"HLDEMO\x00\x00"
HEADER = struct.Struct("<8sii260s260sIi")
DIRECTORY_ENTRY = struct.Struct("<i64siifiii")
ENTRY_COUNT = struct.Struct("<i")
MAX_DIRECTORY_ENTRIES = 1024
MAX_DEMO_SIZE = 64 * 1024 * 1024
DOWNLOAD_TIMEOUT = 30.0


class DemoError(Exception):
    """The file isn't a demo we can read."""


@dataclass(frozen=True, slots=True)
class DemoEntry:
    type: int
    description: str
    track_time: float
    frame_count: int


@dataclass(frozen=True, slots=True)
class DemoInfo:
    demo_protocol: int
    net_protocol: int
    map_name: str
    game_dir: str
    entries: tuple[DemoEntry, ...]

    @property
    def time(self) -> float:
        # Entry 0 is the loading segment.
        return sum(e.track_time for e in self.entries if e.type != 0)

    def format(self) -> str:
        return (
            "```\n"
            f"Game: {self.game_dir}\n"
            f"Map:  {self.map_name}\n"
            f"Time: {self.time:.3f}s\n"
            "```"
        )


def _c_string(raw: bytes) -> str:
    return raw.split(b"\x00", 1)[0].decode("utf-8", errors="replace")


def parse_demo(data: bytes) -> DemoInfo:
    """Parse a GoldSrc demo header and directory, skipping the frames."""
    if len(data) < HEADER.size:
        raise DemoError("file is too short for a demo header")

    magic, demo_protocol, net_protocol, map_name, game_dir, _crc, dir_offset = (
        HEADER.unpack_from(data)
    )
    if magic != DEMO_MAGIC:
        raise DemoError("invalid demo magic")
    if not HEADER.size <= dir_offset <= len(data) - ENTRY_COUNT.size:
        raise DemoError(f"directory offset {dir_offset} is out of bounds")

    (count,) = ENTRY_COUNT.unpack_from(data, dir_offset)
    if not 0 <= count <= MAX_DIRECTORY_ENTRIES:
        raise DemoError(f"invalid directory entry count {count}")

    start = dir_offset + ENTRY_COUNT.size
    if start + count * DIRECTORY_ENTRY.size > len(data):
        raise DemoError("directory is truncated")

    entries = []
    for index in range(count):
        type_, description, _flags, _cd_track, track_time, frame_count, _offset, _length = (
            DIRECTORY_ENTRY.unpack_from(data, start + index * DIRECTORY_ENTRY.size)
        )
        entries.append(
            DemoEntry(type_, _c_string(description), track_time, frame_count)
        )

    return DemoInfo(
        demo_protocol=demo_protocol,
        net_protocol=net_protocol,
        map_name=_c_string(map_name),
        game_dir=_c_string(game_dir),
        entries=tuple(entries),
    )


class DemosModule(Module):
    name = "Demos"
    description = "Says information about uploaded demos."

    def __init__(self, http: httpx.AsyncClient | None = None) -> None:
        super().__init__()
        self._http = http

    async def handle(
        self, bot: BotClient, message: Message, command_id: int, text: str
    ) -> None:
        raise UnknownCommandError(self.name, command_id)

    async def handle_attachment(self, bot: BotClient, message: Message) -> None:
        for attachment in message.attachments:
            if not attachment.filename.lower().endswith(".dem"):
                continue
            try:
                info = parse_demo(await self._download(attachment))
            except (httpx.HTTPError, DemoError) as exc:
                logger.warning(
                    "demos.failed",
                    filename=attachment.filename,
                    error_type=type(exc).__name__,
                    error=str(exc),
                )
                continue
            await bot.send(message.channel_id, info.format())

    async def _download(self, attachment: Attachment) -> bytes:
        if attachment.size > MAX_DEMO_SIZE:
            raise DemoError(f"demo is too big ({attachment.size} bytes)")
        if self._http is not None:
            return await self._fetch(self._http, attachment.url)
        async with httpx.AsyncClient(
            timeout=DOWNLOAD_TIMEOUT, follow_redirects=True
        ) as client:
            return await self._fetch(client, attachment.url)

    @staticmethod
    async def _fetch(client: httpx.AsyncClient, url: str) -> bytes:
        response = await client.get(url)
        response.raise_for_status()
        return response.content
