"""
Global pytest configuration and shared fixtures.

Provides:
- Fresh ClientState / MessageRouter / ClientSession per test
- A combat router factory with a chosen display style
- A FakeTransport that replays scripted frames and records what was sent
"""

import asyncio
from typing import Any

import pytest

from tests.fixtures.messages import WORLD_ENTRY, message
from wayfarer.config import ClientConfig
from wayfarer.engine.systems.combat import CombatDisplayConfig
from wayfarer.engine.systems.router import MessageRouter
from wayfarer.engine.world import ClientState
from wayfarer.session import ClientSession

# ============================================================================
# State Fixtures
# ============================================================================


@pytest.fixture
def state() -> ClientState:
    return ClientState()


@pytest.fixture
def router(state) -> MessageRouter:
    return MessageRouter(state)


@pytest.fixture
def entered_router(router) -> MessageRouter:
    """Router whose state has already processed WORLD_ENTRY."""
    router.handle(message("world_entry", WORLD_ENTRY))
    return router


@pytest.fixture
def combat_router(state):
    """Factory: router with a specific combat display style, player id set."""

    def make(style: str = "compact", **options: Any) -> MessageRouter:
        state.player_id = "player-1"
        state.player_name = "Aria"
        return MessageRouter(state, combat_config=CombatDisplayConfig(style=style, **options))

    return make


@pytest.fixture
def config() -> ClientConfig:
    return ClientConfig()


@pytest.fixture
def session(config) -> ClientSession:
    return ClientSession(config)


# ============================================================================
# Transport Fixtures
# ============================================================================


class FakeTransport:
    """In-memory transport: yields scripted frames, records sent envelopes."""

    def __init__(self, frames: list[str], stay_open: bool = False):
        self.frames = list(frames)
        self.stay_open = stay_open
        self.sent: list[dict] = []
        self.url: str | None = None
        self.closed = False
        self._closed_event = asyncio.Event()

    async def connect(self, url: str) -> None:
        self.url = url

    async def send(self, envelope: dict) -> None:
        self.sent.append(envelope)

    def __aiter__(self):
        return self._frames()

    async def _frames(self):
        for raw in self.frames:
            await asyncio.sleep(0)
            yield raw
        # Like a live socket: no more frames until someone closes it
        if self.stay_open:
            await self._closed_event.wait()

    async def close(self) -> None:
        self.closed = True
        self._closed_event.set()


@pytest.fixture
def fake_transport():
    def make(frames: list[str], stay_open: bool = False) -> FakeTransport:
        return FakeTransport(frames, stay_open=stay_open)

    return make
