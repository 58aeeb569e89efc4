from __future__ import annotations

import anyio
import pytest

from ybot import events
from ybot.state import ConnectionState, SharedState
from ybot.types import (
    Group,
    GroupRef,
    PrivateChannel,
    PrivateChannelRef,
    PublicChannel,
    PublicChannelRef,
    Role,
)

from ._fakes import (
    BOB,
    DM_ID,
    GENERAL_ID,
    GROUP_ID,
    SERVER_ID,
    make_server,
    make_snapshot,
)


def test_ready_resolves_every_channel_kind() -> None:
    state = ConnectionState.from_ready(make_snapshot())

    public = state.find_channel(GENERAL_ID)
    assert isinstance(public, PublicChannelRef)
    assert public.server.id == SERVER_ID
    assert public.channel.name == "general"

    private = state.find_channel(DM_ID)
    assert isinstance(private, PrivateChannelRef)
    assert private.channel.recipient == BOB

    group = state.find_channel(GROUP_ID)
    assert isinstance(group, GroupRef)
    assert group.group.display_name == "friends"

    assert state.find_channel(999) is None


def test_second_ready_replaces_the_mirror() -> None:
    state = ConnectionState.from_ready(make_snapshot())
    other = make_server(101, channels=[(210, "elsewhere")])

    state.update(events.Ready(make_snapshot([other], private=[])))

    assert state.find_channel(GENERAL_ID) is None
    assert state.find_channel(DM_ID) is None
    assert state.find_channel(210) is not None
    assert [s.id for s in state.servers] == [101]


def test_channel_events_patch_the_server() -> None:
    state = ConnectionState.from_ready(make_snapshot())
    created = PublicChannel(id=250, server_id=SERVER_ID, name="new")

    state.update(events.ChannelCreate(created))
    assert state.find_channel(250) == PublicChannelRef(
        state.get_server(SERVER_ID), created
    )

    renamed = PublicChannel(id=250, server_id=SERVER_ID, name="renamed")
    state.update(events.ChannelUpdate(renamed))
    ref = state.find_channel(250)
    assert ref is not None and ref.channel.name == "renamed"
    assert len(state.get_server(SERVER_ID).channels) == 2

    state.update(events.ChannelDelete(SERVER_ID, 250))
    assert state.find_channel(250) is None


def test_role_and_member_events() -> None:
    state = ConnectionState.from_ready(make_snapshot())

    state.update(events.RoleCreate(SERVER_ID, Role(600, "new role")))
    assert Role(600, "new role") in state.get_server(SERVER_ID).roles

    state.update(events.RoleDelete(SERVER_ID, 600))
    assert all(r.id != 600 for r in state.get_server(SERVER_ID).roles)

    state.update(events.MemberAdd(SERVER_ID, BOB))
    assert state.get_server(SERVER_ID).member_count == 4
    state.update(events.MemberRemove(SERVER_ID, BOB))
    assert state.get_server(SERVER_ID).member_count == 3


def test_server_delete_and_unknown_server_updates() -> None:
    state = ConnectionState.from_ready(make_snapshot())

    # Patching a server we never heard of is a no-op.
    state.update(events.RoleCreate(12345, Role(1, "x")))
    assert state.get_server(12345) is None

    state.update(events.ServerDelete(SERVER_ID))
    assert state.get_server(SERVER_ID) is None
    assert state.find_channel(GENERAL_ID) is None


def test_message_events_leave_the_mirror_alone() -> None:
    state = ConnectionState.from_ready(make_snapshot())
    before = state.servers

    state.update(events.MessageDelete(GENERAL_ID, 1))
    state.update(events.MessageUpdate(GENERAL_ID, 1, "edited"))
    state.update(events.Unknown("TYPING_START"))

    assert state.servers == before


@pytest.mark.anyio
async def test_concurrent_readers_see_consistent_state() -> None:
    shared = SharedState(make_snapshot())
    replacement = make_snapshot([make_server(101, channels=[(210, "x")])], private=[])
    seen: list[tuple[bool, bool]] = []

    async def reader() -> None:
        for _ in range(50):
            async with shared.read() as state:
                old = state.find_channel(GENERAL_ID) is not None
                await anyio.sleep(0)
                new = state.find_channel(210) is not None
            seen.append((old, new))

    with anyio.fail_after(5):
        async with anyio.create_task_group() as tg:
            for _ in range(4):
                tg.start_soon(reader)
            await anyio.sleep(0)
            await shared.reset(replacement)

    # A reader sees either the old world or the new one, never a mix.
    assert set(seen) <= {(True, False), (False, True)}
    assert await shared.find_channel(210) is not None


@pytest.mark.anyio
async def test_shared_state_update_and_current_user(bot_user) -> None:
    shared = SharedState(make_snapshot())

    await shared.update(events.ServerDelete(SERVER_ID))

    assert await shared.find_channel(GENERAL_ID) is None
    assert await shared.current_user() == bot_user


def test_private_channels_learned_after_ready() -> None:
    state = ConnectionState.from_ready(make_snapshot(private=[]))
    assert state.find_channel(777) is None

    state.update(events.PrivateChannelCreate(PrivateChannel(id=777, recipient=BOB)))
    state.update(events.PrivateChannelCreate(Group(id=778, recipients=(BOB,))))

    assert state.find_channel(777) == PrivateChannelRef(PrivateChannel(777, BOB))
    assert isinstance(state.find_channel(778), GroupRef)

    # A later Ready without them forgets them again.
    state.update(events.Ready(make_snapshot(private=[])))
    assert state.find_channel(777) is None
