"""Shared fixtures and options for the test suite."""

import asyncio
from typing import Optional

import msgspec
import pytest

from sparkscan_ws.transport.transport import BaseTransport

SPARK_ADDRESS = "sp1pgssx6rwqjer2xsmhe5x6mg6ng0cfu77q58vtcz9f0emuuzftnl7zvv6qujs5s"
TOKEN_ADDRESS = "btkn1daywtenlww42njymqzyegvcwuy3p9f26zknme0srxa7tagewvuys86h553"
PROCESSED_AT = "2025-06-01T12:30:00Z"


def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--run-live",
        action="store_true",
        default=False,
        help="Run live tests against the public SparkScan server",
    )


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers", "live: mark test as requiring live internet connection"
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip live tests unless explicitly enabled."""
    if config.getoption("--run-live"):
        return

    skip_live = pytest.mark.skip(reason="need --run-live option to run")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


class FakeTransport(BaseTransport):
    """In-memory transport recording commands; tests drive inbound events by hand."""

    def __init__(self, config=None):
        super().__init__(config)
        self.subscribed: list[str] = []
        self.unsubscribed: list[str] = []
        self.published: list[tuple[str, bytes]] = []
        self.connect_calls = 0
        self.fail_connect: Optional[Exception] = None
        self.fail_subscribe: Optional[Exception] = None
        self.subscribe_gate: Optional[asyncio.Event] = None

    async def connect(self) -> None:
        self.connect_calls += 1
        if self.fail_connect is not None:
            raise self.fail_connect
        self._connected = True

    async def disconnect(self) -> None:
        self._connected = False

    async def subscribe(self, channel: str) -> None:
        if self.subscribe_gate is not None:
            await self.subscribe_gate.wait()
        if self.fail_subscribe is not None:
            raise self.fail_subscribe
        self.subscribed.append(channel)

    async def unsubscribe(self, channel: str) -> None:
        self.unsubscribed.append(channel)

    async def publish(self, channel: str, data: bytes) -> None:
        self.published.append((channel, data))

    def push(self, channel: str, payload) -> None:
        data = payload if isinstance(payload, bytes) else msgspec.json.encode(payload)
        self._emit_publication(channel, data)

    def drop(self, reason: str = "connection reset", reconnect: bool = True) -> None:
        self._connected = False
        self._emit_disconnect(reason, reconnect)

    def server_unsubscribe(self, channel: str) -> None:
        self._emit_unsubscribe(channel)


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def balance_payload() -> dict:
    return {
        "address": SPARK_ADDRESS,
        "network": "MAINNET",
        "soft_balance": "1500",
        "hard_balance": "1000",
        "processed_at": PROCESSED_AT,
    }


@pytest.fixture
def transaction_payload() -> dict:
    return {
        "id": "0196f1c5-a6b8-7d34-9a21-6c1f0a1b2c3d",
        "network": "REGTEST",
        "type": "spark_transfer",
        "status": "confirmed",
        "processed_at": PROCESSED_AT,
        "amount_sats": "2500",
        "from_identifier": SPARK_ADDRESS,
        "to_identifier": SPARK_ADDRESS,
    }


async def settle(rounds: int = 5) -> None:
    """Lets scheduled tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


async def wait_until(predicate, timeout_s: float = 2.0, interval_s: float = 0.01) -> None:
    """Polls ``predicate`` instead of sleeping a fixed amount."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout_s
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(interval_s)
