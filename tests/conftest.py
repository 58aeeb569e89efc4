from __future__ import annotations

import pytest

from ybot.client import BotClient
from ybot.state import SharedState

from ._fakes import (
    BOT_USER,
    FakeRestApi,
    make_snapshot,
)


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def rest() -> FakeRestApi:
    return FakeRestApi()


@pytest.fixture
def state() -> SharedState:
    return SharedState(make_snapshot())


@pytest.fixture
def bot_user():
    return BOT_USER


@pytest.fixture
def make_bot(rest: FakeRestApi, state: SharedState):
    def _make(modules=()) -> BotClient:
        return BotClient(rest, state, list(modules), version="1.2.3")

    return _make
