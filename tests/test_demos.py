from __future__ import annotations

import httpx
import pytest

from ybot.modules import DemosModule
from ybot.modules.demos import (
    DEMO_MAGIC,
    DIRECTORY_ENTRY,
    ENTRY_COUNT,
    HEADER,
    DemoError,
    parse_demo,
)
from ybot.types import Attachment

from ._fakes import make_message

DEMO_URL = "https://cdn.example/attachments/run.dem"


def build_demo(
    entries=((0, "LOADING", 1.5), (1, "Playback", 12.25), (1, "Playback", 0.5)),
    *,
    map_name=b"c1a0",
    game_dir=b"valve",
    magic=DEMO_MAGIC,
) -> bytes:
    frames = b"\x00" * 32
    dir_offset = HEADER.size + len(frames)
    header = HEADER.pack(magic, 5, 48, map_name, game_dir, 0, dir_offset)
    directory = ENTRY_COUNT.pack(len(entries)) + b"".join(
        DIRECTORY_ENTRY.pack(type_, desc.encode(), 0, -1, time, 10, 0, 0)
        for type_, desc, time in entries
    )
    return header + frames + directory


def test_parse_demo() -> None:
    info = parse_demo(build_demo())

    assert info.map_name == "c1a0"
    assert info.game_dir == "valve"
    assert [e.description for e in info.entries] == ["LOADING", "Playback", "Playback"]
    # The loading segment doesn't count.
    assert info.time == pytest.approx(12.75)
    assert info.format() == "```\nGame: valve\nMap:  c1a0\nTime: 12.750s\n```"


@pytest.mark.parametrize(
    ("data", "message"),
    [
        (b"HLDEMO", "too short"),
        (build_demo(magic=b"NOTADEMO"), "magic"),
        (build_demo()[:-10], "truncated"),
    ],
)
def test_parse_demo_rejects_bad_files(data, message) -> None:
    with pytest.raises(DemoError, match=message):
        parse_demo(data)


def test_parse_demo_rejects_bad_offset() -> None:
    data = bytearray(build_demo())
    HEADER.pack_into(data, 0, DEMO_MAGIC, 5, 48, b"", b"", 0, len(data) + 10)

    with pytest.raises(DemoError, match="out of bounds"):
        parse_demo(bytes(data))


def _client(payload: bytes, status: int = 200) -> httpx.AsyncClient:
    def handler(request: httpx.Request) -> httpx.Response:
        assert str(request.url) == DEMO_URL
        return httpx.Response(status, content=payload)

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.anyio
async def test_demo_attachment_is_reported(make_bot, rest) -> None:
    module = DemosModule(_client(build_demo()))
    attachment = Attachment(url=DEMO_URL, filename="RUN.DEM", size=1024)

    await module.handle_attachment(make_bot(), make_message("", attachments=(attachment,)))

    assert rest.sent_texts() == [parse_demo(build_demo()).format()]


@pytest.mark.anyio
async def test_other_attachments_are_ignored(make_bot, rest) -> None:
    module = DemosModule(_client(b""))
    attachment = Attachment(url="https://cdn.example/cat.png", filename="cat.png")

    await module.handle_attachment(make_bot(), make_message("", attachments=(attachment,)))

    assert rest.calls == []


@pytest.mark.anyio
@pytest.mark.parametrize(("payload", "status"), [(b"garbage", 200), (b"", 404)])
async def test_broken_demos_are_logged_not_reported(make_bot, rest, payload, status) -> None:
    module = DemosModule(_client(payload, status))
    attachment = Attachment(url=DEMO_URL, filename="run.dem")

    await module.handle_attachment(make_bot(), make_message("", attachments=(attachment,)))

    assert rest.calls == []


def test_demos_has_no_commands() -> None:
    assert dict(DemosModule().commands()) == {}
