from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, Protocol, Union

from websockets.asyncio.client import connect

from src.operator_console.config import settings
from src.operator_console.domain.models.session import ConnectionStatus
from src.operator_console.session.events import (
    CallStatusEvent,
    ConversationUpdateEvent,
    MalformedEvent,
    UnknownEvent,
    decode_event,
)

logger = logging.getLogger("transport")


class RealtimeConnection(Protocol):
    """The part of a websocket connection the transport relies on."""

    def __aiter__(self) -> AsyncIterator[Union[str, bytes]]:  # pragma: no cover - interface
        raise NotImplementedError

    async def close(self) -> None:  # pragma: no cover - interface
        raise NotImplementedError


Connector = Callable[[str], Awaitable[RealtimeConnection]]


async def websocket_connector(url: str) -> RealtimeConnection:
    return await connect(url)


def _ignore(*_: Any) -> None:
    return None


class RealtimeTransport:
    """One streaming connection to the voice agent, addressed by call handle.

    ``open(handle)`` replaces any previous connection; ``close()`` tears the
    current one down and waits for its reader to finish. Status goes to
    ``connecting`` as soon as a handle is given and only becomes ``connected``
    when the agent reports ``call_status: connected``; the socket being open is
    not enough. Any error or close drops back to ``disconnected`` and there is
    no reconnect: a fresh handle is needed.

    Callbacks run on the event loop and must not block.
    """

    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        connector: Optional[Connector] = None,
        on_status_change: Optional[Callable[[ConnectionStatus], None]] = None,
        on_call_ended: Optional[Callable[[], None]] = None,
        on_conversation_update: Optional[Callable[[ConversationUpdateEvent], None]] = None,
    ) -> None:
        self._base_url = (base_url or settings.voice_agent_ws_url).rstrip("/")
        self._connector = connector or websocket_connector
        self.on_status_change = on_status_change or _ignore
        self.on_call_ended = on_call_ended or _ignore
        self.on_conversation_update = on_conversation_update or _ignore
        self._status = ConnectionStatus.DISCONNECTED
        self._call_handle: Optional[str] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def call_handle(self) -> Optional[str]:
        return self._call_handle

    def url_for(self, call_handle: str) -> str:
        return f"{self._base_url}/{call_handle}"

    async def __aenter__(self) -> "RealtimeTransport":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def open(self, call_handle: Optional[str]) -> None:
        """Point the transport at ``call_handle``.

        The previous connection, if any, is closed first. ``None`` leaves the
        transport closed.
        """

        if call_handle == self._call_handle and self._task is not None:
            return
        await self.close()
        if not call_handle:
            return

        self._call_handle = call_handle
        self._set_status(ConnectionStatus.CONNECTING)
        url = self.url_for(call_handle)
        logger.info("Connecting to voice agent %s", url)
        self._task = asyncio.create_task(self._run(url))

    async def close(self) -> None:
        task, self._task = self._task, None
        self._call_handle = None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._set_status(ConnectionStatus.DISCONNECTED)

    async def _run(self, url: str) -> None:
        me = asyncio.current_task()
        connection: Optional[RealtimeConnection] = None
        try:
            connection = await self._connector(url)
            async for raw in connection:
                self._dispatch(raw)
            logger.info("Voice agent connection closed")
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Voice agent connection failed")
        finally:
            if connection is not None:
                try:
                    await connection.close()
                except Exception:
                    logger.debug("Error while closing voice agent connection", exc_info=True)
            # A newer open() owns the status once this reader is replaced.
            if self._task is me:
                self._task = None
                self._call_handle = None
                self._set_status(ConnectionStatus.DISCONNECTED)

    def _dispatch(self, raw: Union[str, bytes]) -> None:
        try:
            event = decode_event(raw)
        except MalformedEvent:
            logger.warning("Dropping malformed voice agent frame: %r", raw)
            return

        if isinstance(event, CallStatusEvent):
            if event.connected:
                self._set_status(ConnectionStatus.CONNECTED)
            elif event.ended:
                logger.info("Call ended by voice agent")
                self.on_call_ended()
        elif isinstance(event, ConversationUpdateEvent):
            self.on_conversation_update(event)
        elif isinstance(event, UnknownEvent):
            logger.debug("Ignoring voice agent frame: %r", event.payload)

    def _set_status(self, status: ConnectionStatus) -> None:
        if status == self._status:
            return
        self._status = status
        self.on_status_change(status)
