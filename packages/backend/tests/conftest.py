"""Test fixtures — an isolated relay (and app) per test.

Learn: Every test builds its own SmsRelay on the test's event loop, so
subscriber calls are marshalled exactly like in the server. Nothing
touches Redis; Redis-facing code is tested against fakes.

Deliveries hop through loop.call_soon_threadsafe, so tests await
`settle()` before asserting on what a subscriber received.
"""

import asyncio

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from smsrelay.config import Settings
from smsrelay.main import create_app
from smsrelay.relay import build_relay
from smsrelay.schemas.sms import FragmentBatch, RawFragment
from smsrelay.sources.base import MessageSource, Registration


# ─── Fakes ──────────────────────────────────────────────


class FakeRegistration(Registration):
    def __init__(self, source: "FakeSource", receiver):
        self.source = source
        self.receiver = receiver
        self.released = False

    async def unregister(self) -> None:
        self.source.unregister_calls += 1
        if self.source.fail_unregister:
            raise RuntimeError("receiver not registered")
        self.released = True
        self.source.active.remove(self)


class FakeSource(MessageSource):
    """Records every register/unregister call."""

    def __init__(self):
        self.register_calls = 0
        self.unregister_calls = 0
        self.fail_register = False
        self.fail_unregister = False
        self.active: list[FakeRegistration] = []
        self.filters = []

    @property
    def name(self) -> str:
        return "fake"

    async def register(self, filter, receiver) -> Registration:
        self.register_calls += 1
        if self.fail_register:
            raise PermissionError("RECEIVE_SMS not granted")
        self.filters.append(filter)
        registration = FakeRegistration(self, receiver)
        self.active.append(registration)
        return registration

    def push(self, batch: FragmentBatch) -> None:
        for registration in list(self.active):
            registration.receiver(batch)


class Collector:
    """Subscriber that remembers what it got."""

    def __init__(self):
        self.messages = []

    def __call__(self, message):
        self.messages.append(message)


# ─── Helpers ────────────────────────────────────────────


def make_batch(*fragments) -> FragmentBatch:
    """make_batch(("A", "x", 10), ("B", "y", 20))"""
    return FragmentBatch(fragments=[
        RawFragment(originating_address=s, body=b, delivery_timestamp=ts)
        for s, b, ts in fragments
    ])


async def settle(rounds: int = 5) -> None:
    """Let scheduled loop callbacks and drain tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


# ─── Fixtures ───────────────────────────────────────────


@pytest.fixture()
def test_settings():
    return Settings(environment="test", source="broadcast")


@pytest.fixture()
def fake_source():
    return FakeSource()


@pytest.fixture()
def collector():
    return Collector()


@pytest_asyncio.fixture()
async def relay(test_settings):
    """Broadcast-source relay delivering on the test loop."""
    r = build_relay(test_settings, loop=asyncio.get_running_loop())
    yield r
    await r.lifecycle.shutdown()


@pytest_asyncio.fixture()
async def fake_relay(test_settings, fake_source):
    """Relay wired to a FakeSource."""
    r = build_relay(test_settings, loop=asyncio.get_running_loop(), source=fake_source)
    yield r
    await r.lifecycle.shutdown()


@pytest_asyncio.fixture()
async def client(relay):
    """HTTP client against a fresh app using the test relay.

    Learn: ASGITransport doesn't run the lifespan, so the relay is put
    on app.state directly.
    """
    app = create_app()
    app.state.relay = relay

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture()
async def fake_client(fake_relay):
    """HTTP client against an app wired to the FakeSource relay."""
    app = create_app()
    app.state.relay = fake_relay

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
