"""Gateway connection manager.

Owns the live connection, hands out events one at a time and
re-establishes the connection when it drops.
"""

from __future__ import annotations

import enum
from typing import TYPE_CHECKING

import anyio

from .logging import get_logger
from .state import SharedState
from .transport import (
    AuthenticationError,
    ConnectionClosed,
    ConnectionDropped,
    TransportError,
)

if TYPE_CHECKING:
    from .events import Event
    from .transport import Connection, Gateway
    from .types import ReadySnapshot

logger = get_logger(__name__)

__all__ = ["ConnectionManager", "ConnectionStatus", "StartupError"]

INITIAL_RETRY_DELAY = 1.0
MAX_RETRY_DELAY = 60.0


class StartupError(Exception):
    """The first connection could not be established."""


class ConnectionStatus(enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    CLOSED = "closed"


def _log_ready(snapshot: ReadySnapshot, *, reconnected: bool) -> None:
    logger.info(
        "gateway.ready",
        user=snapshot.user.name,
        servers=len(snapshot.servers),
        reconnected=reconnected,
    )


class ConnectionManager:
    """Blocking event source backed by a reconnecting gateway connection."""

    def __init__(
        self,
        gateway: Gateway,
        *,
        initial_retry_delay: float = INITIAL_RETRY_DELAY,
        max_retry_delay: float = MAX_RETRY_DELAY,
    ) -> None:
        self._gateway = gateway
        self._connection: Connection | None = None
        self._state: SharedState | None = None
        self._initial_retry_delay = initial_retry_delay
        self._max_retry_delay = max_retry_delay
        self.status = ConnectionStatus.DISCONNECTED
        self.reconnects = 0

    @property
    def state(self) -> SharedState:
        if self._state is None:
            raise RuntimeError("ConnectionManager.start() has not been called")
        return self._state

    async def start(self) -> SharedState:
        """Open the first connection and build the state mirror from it.

        Any failure here is fatal and raised as StartupError.
        """
        try:
            self._connection, snapshot = await self._gateway.connect()
        except TransportError as exc:
            raise StartupError(f"Connect failed: {exc}") from exc

        self._state = SharedState(snapshot)
        self.status = ConnectionStatus.CONNECTED
        _log_ready(snapshot, reconnected=False)
        return self._state

    async def receive_event(self) -> Event | None:
        """Return the next event, or None once the peer has closed the session.

        Dropped connections are re-established transparently; the caller only
        sees a gap between events.
        """
        if self._connection is None:
            raise RuntimeError("ConnectionManager.start() has not been called")

        while True:
            try:
                return await self._connection.recv_event()
            except ConnectionDropped as exc:
                logger.warning("gateway.connection_dropped", error=str(exc))
                await self._reconnect()
            except ConnectionClosed as exc:
                logger.info("gateway.closed", reason=str(exc))
                self.status = ConnectionStatus.CLOSED
                return None
            except AuthenticationError:
                raise
            except TransportError as exc:
                logger.warning(
                    "gateway.receive_error",
                    error_type=type(exc).__name__,
                    error=str(exc),
                )

    async def _reconnect(self) -> None:
        self.status = ConnectionStatus.RECONNECTING
        old = self._connection
        self._connection = None
        if old is not None:
            try:
                await old.close()
            except TransportError as exc:
                logger.debug("gateway.close_failed", error=str(exc))

        attempt = 0
        while True:
            if attempt:
                delay = min(
                    self._initial_retry_delay * 2 ** (attempt - 1),
                    self._max_retry_delay,
                )
                logger.info("gateway.reconnect_wait", attempt=attempt, delay=delay)
                await anyio.sleep(delay)
            attempt += 1
            try:
                connection, snapshot = await self._gateway.connect()
            except AuthenticationError:
                raise
            except TransportError as exc:
                logger.warning(
                    "gateway.reconnect_failed", attempt=attempt, error=str(exc)
                )
                continue
            break

        self._connection = connection
        await self.state.reset(snapshot)
        self.status = ConnectionStatus.CONNECTED
        self.reconnects += 1
        _log_ready(snapshot, reconnected=True)

    async def close(self) -> None:
        self.status = ConnectionStatus.CLOSED
        if self._connection is not None:
            connection, self._connection = self._connection, None
            await connection.close()
