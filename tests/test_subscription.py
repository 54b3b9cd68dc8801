"""Tests for subscriptions and the subscription manager."""

import asyncio

import msgspec
import pytest

from conftest import settle
from sparkscan_ws.client import SparkScanWsClient
from sparkscan_ws.errors import InvalidJsonError, NotConnectedError, SparkScanSubscriptionError
from sparkscan_ws.subscription import SparkScanSubscription, SubscriptionManager, SubscriptionState
from sparkscan_ws.topic import BalanceNetwork, Balances, Tokens, Transactions
from sparkscan_ws.types.balance import BalancePayload
from sparkscan_ws.coders.message_coder import decode_message
from sparkscan_ws.types.message import BalanceMessage, TransactionMessage


@pytest.fixture
def client(fake_transport) -> SparkScanWsClient:
    return SparkScanWsClient(transport=fake_transport)


class TestSparkScanSubscription:
    """Test subscription state and message delivery."""

    @pytest.mark.asyncio
    async def test_subscribe_while_connected(self, client, fake_transport):
        await client.connect()
        subscription = await client.subscribe(Balances())
        events = []
        subscription.on_subscribing(lambda: events.append("subscribing"))
        subscription.on_subscribed(lambda: events.append("subscribed"))

        await subscription.subscribe()

        assert subscription.is_subscribed()
        assert subscription.state is SubscriptionState.SUBSCRIBED
        assert fake_transport.subscribed == ["balances"]
        assert events == ["subscribing", "subscribed"]

    @pytest.mark.asyncio
    async def test_subscribe_before_connect_is_deferred(self, client, fake_transport):
        subscription = await client.subscribe(BalanceNetwork("mainnet"))
        await subscription.subscribe()
        assert subscription.state is SubscriptionState.SUBSCRIBING
        assert fake_transport.subscribed == []

        await client.connect()
        assert subscription.is_subscribed()
        assert fake_transport.subscribed == ["/balance/network/mainnet"]

    @pytest.mark.asyncio
    async def test_subscribe_is_idempotent(self, client, fake_transport):
        await client.connect()
        subscription = await client.subscribe(Tokens())
        await subscription.subscribe()
        await subscription.subscribe()
        assert fake_transport.subscribed == ["tokens"]

    @pytest.mark.asyncio
    async def test_rejected_subscribe(self, client, fake_transport):
        await client.connect()
        fake_transport.fail_subscribe = SparkScanSubscriptionError("permission denied (code 103)")
        subscription = await client.subscribe(Balances())
        errors = []
        subscription.on_error(errors.append)

        with pytest.raises(SparkScanSubscriptionError):
            await subscription.subscribe()

        assert subscription.state is SubscriptionState.UNSUBSCRIBED
        assert len(errors) == 1
        assert "permission denied" in errors[0]

    @pytest.mark.asyncio
    async def test_unsubscribe(self, client, fake_transport):
        await client.connect()
        subscription = await client.subscribe(Balances())
        unsubscribed = []
        subscription.on_unsubscribed(lambda: unsubscribed.append(True))
        await subscription.subscribe()

        await subscription.unsubscribe()
        await subscription.unsubscribe()

        assert subscription.state is SubscriptionState.UNSUBSCRIBED
        assert fake_transport.unsubscribed == ["balances"]
        assert unsubscribed == [True]

    @pytest.mark.asyncio
    async def test_unsubscribe_while_subscribe_in_flight(self, client, fake_transport):
        await client.connect()
        fake_transport.subscribe_gate = asyncio.Event()
        subscription = await client.subscribe(Balances())
        subscribed = []
        subscription.on_subscribed(lambda: subscribed.append(True))

        pending = asyncio.create_task(subscription.subscribe())
        await settle()
        assert subscription.state is SubscriptionState.SUBSCRIBING

        await subscription.unsubscribe()
        fake_transport.subscribe_gate.set()
        await pending

        assert subscription.state is SubscriptionState.UNSUBSCRIBED
        assert fake_transport.subscribed == ["balances"]
        assert fake_transport.unsubscribed == ["balances"]
        assert subscribed == []

    @pytest.mark.asyncio
    async def test_message_delivery(self, client, fake_transport, balance_payload):
        await client.connect()
        subscription = await client.subscribe(Balances())
        messages, raw = [], []
        subscription.on_message(messages.append)
        subscription.on_raw_publication(raw.append)
        await subscription.subscribe()

        fake_transport.push("balances", {"data": balance_payload})

        assert len(raw) == 1
        assert len(messages) == 1
        assert isinstance(messages[0], BalanceMessage)
        assert messages[0].network() == "Mainnet"

    @pytest.mark.asyncio
    async def test_decode_error_does_not_stop_stream(self, client, fake_transport, transaction_payload):
        await client.connect()
        subscription = await client.subscribe(Transactions())
        messages, decode_errors = [], []
        subscription.on_message(messages.append)
        subscription.on_decode_error(decode_errors.append)
        await subscription.subscribe()

        fake_transport.push("transactions", b"{broken")
        fake_transport.push("transactions", transaction_payload)

        assert len(decode_errors) == 1
        assert isinstance(decode_errors[0], InvalidJsonError)
        assert len(messages) == 1
        assert isinstance(messages[0], TransactionMessage)

    def test_handle_publication_without_handlers_skips_decoding(self, client):
        subscription = SparkScanSubscription(client, Balances())
        assert subscription.handle_publication(b"{broken") is None

    def test_handle_publication_returns_message(self, client, balance_payload):
        subscription = SparkScanSubscription(client, Balances())
        subscription.on_message(lambda message: None)
        message = subscription.handle_publication(msgspec.json.encode(balance_payload))
        assert isinstance(message, BalanceMessage)

    @pytest.mark.asyncio
    async def test_publish(self, client, fake_transport, balance_payload):
        subscription = await client.subscribe(Balances())
        message = BalanceMessage(data=msgspec.convert(balance_payload, BalancePayload))

        with pytest.raises(NotConnectedError):
            await subscription.publish(message)

        await client.connect()
        await subscription.publish(message)
        channel, data = fake_transport.published[0]
        assert channel == "balances"
        assert decode_message(data) == message

    @pytest.mark.asyncio
    async def test_server_unsubscribe(self, client, fake_transport):
        await client.connect()
        subscription = await client.subscribe(Balances())
        await subscription.subscribe()
        unsubscribed = []
        subscription.on_unsubscribed(lambda: unsubscribed.append(True))

        fake_transport.server_unsubscribe("balances")

        assert subscription.state is SubscriptionState.UNSUBSCRIBED
        assert unsubscribed == [True]


class TestSubscriptionManager:
    """Test the subscription collection."""

    @pytest.mark.asyncio
    async def test_bulk_operations(self, client, fake_transport):
        await client.connect()
        manager = SubscriptionManager()
        assert manager.is_empty()

        manager.add(SparkScanSubscription(client, Balances()))
        manager.add(SparkScanSubscription(client, Tokens()))
        assert len(manager) == 2
        assert Balances() in manager
        assert manager.get("tokens").topic == Tokens()

        await manager.subscribe_all()
        assert sorted(fake_transport.subscribed) == ["balances", "tokens"]
        assert all(subscription.is_subscribed() for subscription in manager)

        await manager.unsubscribe_all()
        assert sorted(fake_transport.unsubscribed) == ["balances", "tokens"]

        removed = manager.remove(Balances())
        assert removed is not None
        assert manager.remove(Balances()) is None
        assert list(manager.subscriptions) == ["tokens"]
