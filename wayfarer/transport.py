"""
WebSocket transport and the session pump.

Frames and user input are both processed on the one asyncio event loop, so
every frame is fully routed before the next one is looked at.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import logging
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Protocol, Union

import websockets
from websockets.exceptions import ConnectionClosed

from .engine.lines import LogLine, error_line, system_line
from .protocol import build_envelope
from .session import ClientSession

logger = logging.getLogger(__name__)

Frame = Union[str, bytes]
LineSink = Callable[[List[LogLine]], None]


class Transport(Protocol):
    async def connect(self, url: str) -> None: ...

    async def send(self, envelope: Dict[str, Any]) -> None: ...

    def __aiter__(self) -> AsyncIterator[Frame]: ...

    async def close(self) -> None: ...


class WebSocketTransport:
    """Thin wrapper over a websockets client connection."""

    def __init__(self) -> None:
        self._ws: Any = None

    @property
    def connected(self) -> bool:
        return self._ws is not None

    async def connect(self, url: str) -> None:
        logger.info("Connecting to %s", url)
        self._ws = await websockets.connect(url)
        logger.info("Connected to %s", url)

    async def send(self, envelope: Dict[str, Any]) -> None:
        if not self.connected:
            raise RuntimeError("Transport is not connected")
        await self._ws.send(json.dumps(envelope, ensure_ascii=False))

    def __aiter__(self) -> AsyncIterator[Frame]:
        return self._frames()

    async def _frames(self) -> AsyncIterator[Frame]:
        if not self.connected:
            return
        try:
            async for raw in self._ws:
                yield raw
        except ConnectionClosed as e:
            logger.info("Connection closed: %s", e)

    async def close(self) -> None:
        if not self.connected:
            return
        ws, self._ws = self._ws, None
        await ws.close()
        logger.info("Disconnected")


async def _pump_inputs(
    session: ClientSession,
    transport: Transport,
    sink: LineSink,
    inputs: AsyncIterator[str],
    close_when_done: bool,
) -> None:
    async for text in inputs:
        result = session.handle_input(text)
        if result.lines:
            sink(result.lines)
        for envelope in result.outbound:
            await transport.send(envelope)
    if close_when_done:
        await transport.close()


async def run_session(
    session: ClientSession,
    transport: Transport,
    url: str,
    sink: LineSink,
    inputs: Optional[AsyncIterator[str]] = None,
    close_when_inputs_end: bool = False,
) -> None:
    """
    Connect, handshake, then process frames until the connection closes.

    Args:
        session: The session that routes frames and input
        transport: Connected-on-demand transport
        url: Server URL
        sink: Receives each batch of lines, in order
        inputs: Optional async source of user input lines
        close_when_inputs_end: Close the connection once inputs are exhausted
    """
    await transport.connect(url)
    sink([system_line(f"Connected to {url}")])

    input_task: Optional[asyncio.Task] = None
    try:
        await transport.send(build_envelope("handshake", session.handshake_message()))
        if inputs is not None:
            input_task = asyncio.create_task(
                _pump_inputs(session, transport, sink, inputs, close_when_inputs_end)
            )

        async for raw in transport:
            sink(session.handle_frame(raw))
    finally:
        if input_task is not None:
            if not input_task.done():
                input_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await input_task
            elif not input_task.cancelled() and input_task.exception() is not None:
                logger.error("Input processing failed: %r", input_task.exception())
                sink([error_line(f"Input processing failed: {input_task.exception()!r}")])
        await transport.close()
        sink([system_line("Disconnected.")])
