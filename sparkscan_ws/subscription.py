# Copyright (C) 2025, Ionic.

# This program is licensed under the Apache License 2.0.
# See LICENSE or go to <https://www.apache.org/licenses/LICENSE-2.0> for full license details.

"""Typed subscriptions and a collection manager for them."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Callable, Dict, Iterator, List, Optional, Union

from loguru import logger

from sparkscan_ws.coders.base_coder import CoderRegistry
from sparkscan_ws.coders.message_coder import DEFAULT_REGISTRY
from sparkscan_ws.errors import DecodeError, NotConnectedError, SparkScanWsError
from sparkscan_ws.topic import Topic
from sparkscan_ws.types.message import SparkScanMessage, encode_message

if TYPE_CHECKING:
    from sparkscan_ws.client import SparkScanWsClient

MessageHandler = Callable[[SparkScanMessage], None]
RawHandler = Callable[[bytes], None]
ErrorHandler = Callable[[str], None]
DecodeErrorHandler = Callable[[DecodeError], None]
StateHandler = Callable[[], None]


class SubscriptionState(Enum):
    UNSUBSCRIBED = "unsubscribed"
    SUBSCRIBING = "subscribing"
    SUBSCRIBED = "subscribed"


class SparkScanSubscription:
    """Subscription to a single topic delivering typed messages.

    Created by ``SparkScanWsClient.subscribe``; call ``subscribe()`` on it to
    start delivery. Handlers run synchronously, in registration order, on the
    task that receives the publication.
    """

    def __init__(self, client: SparkScanWsClient, topic: Topic, registry: Optional[CoderRegistry] = None):
        self._client = client
        self._topic = topic
        self._registry = registry or DEFAULT_REGISTRY
        self._state = SubscriptionState.UNSUBSCRIBED
        self._message_handlers: List[MessageHandler] = []
        self._raw_handlers: List[RawHandler] = []
        self._error_handlers: List[ErrorHandler] = []
        self._decode_error_handlers: List[DecodeErrorHandler] = []
        self._subscribing_handlers: List[StateHandler] = []
        self._subscribed_handlers: List[StateHandler] = []
        self._unsubscribed_handlers: List[StateHandler] = []

    @property
    def topic(self) -> Topic:
        return self._topic

    @property
    def channel(self) -> str:
        return self._topic.as_str()

    @property
    def state(self) -> SubscriptionState:
        return self._state

    def is_subscribed(self) -> bool:
        return self._state is SubscriptionState.SUBSCRIBED

    def on_subscribing(self, callback: StateHandler) -> None:
        self._subscribing_handlers.append(callback)

    def on_subscribed(self, callback: StateHandler) -> None:
        self._subscribed_handlers.append(callback)

    def on_unsubscribed(self, callback: StateHandler) -> None:
        self._unsubscribed_handlers.append(callback)

    def on_message(self, callback: MessageHandler) -> None:
        """Registers a handler for decoded messages.

        The handler receives the ``SparkScanMessage`` variant matching the
        subscription topic, e.g. ``BalanceMessage`` for ``Balances``.
        """
        self._message_handlers.append(callback)

    def on_raw_publication(self, callback: RawHandler) -> None:
        """Registers a handler for the raw publication bytes, before decoding."""
        self._raw_handlers.append(callback)

    def on_error(self, callback: ErrorHandler) -> None:
        """Registers a handler for subscription errors, e.g. a rejected subscribe command."""
        self._error_handlers.append(callback)

    def on_decode_error(self, callback: DecodeErrorHandler) -> None:
        """Registers a handler for publications that could not be decoded."""
        self._decode_error_handlers.append(callback)

    async def subscribe(self) -> None:
        """Activates the subscription.

        When the client is not connected yet, the subscription is activated as
        soon as the connection is established.
        """
        if self._state is SubscriptionState.SUBSCRIBED:
            return
        self._set_state(SubscriptionState.SUBSCRIBING)
        if not self._client.is_connected():
            logger.info(f"Client not connected, {self.channel} will be subscribed on connect")
            return
        await self._activate()

    async def unsubscribe(self) -> None:
        """Deactivates the subscription."""
        if self._state is SubscriptionState.UNSUBSCRIBED:
            return
        was_subscribed = self._state is SubscriptionState.SUBSCRIBED
        self._state = SubscriptionState.UNSUBSCRIBED
        if was_subscribed and self._client.is_connected():
            await self._client.transport.unsubscribe(self.channel)
        self._notify(self._unsubscribed_handlers)

    async def publish(self, message: SparkScanMessage) -> None:
        """Publishes a message to the subscription channel (requires server support)."""
        await self.publish_raw(encode_message(message))

    async def publish_raw(self, data: bytes) -> None:
        if not self._client.is_connected():
            raise NotConnectedError()
        await self._client.transport.publish(self.channel, data)

    def handle_publication(self, data: bytes) -> Optional[SparkScanMessage]:
        """Runs a raw publication through normalization, decoding and the handlers.

        Decode failures are logged and passed to the decode error handlers; they
        are never raised, so one malformed publication cannot end the stream.

        Returns:
            The decoded message, None if decoding failed or was not needed
        """
        for handler in self._raw_handlers:
            handler(data)

        if not self._message_handlers and not self._decode_error_handlers:
            return None

        try:
            message = self._registry.parse_message_for_topic(self._topic, data)
        except DecodeError as e:
            logger.error(f"Failed to parse message for topic {self._topic}: {e}")
            for handler in self._decode_error_handlers:
                handler(e)
            return None

        for handler in self._message_handlers:
            handler(message)
        return message

    async def _activate(self) -> None:
        try:
            await self._client.transport.subscribe(self.channel)
        except SparkScanWsError as e:
            self._state = SubscriptionState.UNSUBSCRIBED
            self._report_error(f"Failed to subscribe to {self.channel}: {e}")
            raise
        if self._state is not SubscriptionState.SUBSCRIBING:
            # unsubscribe() ran while the subscribe command was in flight
            logger.info(f"Unsubscribed from {self.channel} before the subscription completed")
            if self._client.is_connected():
                await self._client.transport.unsubscribe(self.channel)
            return
        self._set_state(SubscriptionState.SUBSCRIBED)

    def _connection_lost(self) -> None:
        # Active subscriptions are restored after reconnecting.
        if self._state is SubscriptionState.SUBSCRIBED:
            self._set_state(SubscriptionState.SUBSCRIBING)

    def _server_unsubscribed(self) -> None:
        if self._state is SubscriptionState.UNSUBSCRIBED:
            return
        self._state = SubscriptionState.UNSUBSCRIBED
        self._notify(self._unsubscribed_handlers)

    def _set_state(self, state: SubscriptionState) -> None:
        self._state = state
        if state is SubscriptionState.SUBSCRIBING:
            self._notify(self._subscribing_handlers)
        elif state is SubscriptionState.SUBSCRIBED:
            self._notify(self._subscribed_handlers)

    def _report_error(self, error: str) -> None:
        logger.error(error)
        for handler in self._error_handlers:
            handler(error)

    @staticmethod
    def _notify(handlers: List[StateHandler]) -> None:
        for handler in handlers:
            handler()

    def __repr__(self) -> str:
        return f"SparkScanSubscription(topic={self._topic!r}, state={self._state.value})"


class SubscriptionManager:
    """Subscription collection keyed by topic string, with bulk operations."""

    def __init__(self):
        self._subscriptions: Dict[str, SparkScanSubscription] = {}

    def add(self, subscription: SparkScanSubscription) -> None:
        self._subscriptions[subscription.channel] = subscription

    def get(self, topic: Union[Topic, str]) -> Optional[SparkScanSubscription]:
        return self._subscriptions.get(str(topic))

    def remove(self, topic: Union[Topic, str]) -> Optional[SparkScanSubscription]:
        return self._subscriptions.pop(str(topic), None)

    @property
    def subscriptions(self) -> Dict[str, SparkScanSubscription]:
        return dict(self._subscriptions)

    async def subscribe_all(self) -> None:
        for subscription in list(self._subscriptions.values()):
            await subscription.subscribe()

    async def unsubscribe_all(self) -> None:
        for subscription in list(self._subscriptions.values()):
            await subscription.unsubscribe()

    def is_empty(self) -> bool:
        return not self._subscriptions

    def __len__(self) -> int:
        return len(self._subscriptions)

    def __iter__(self) -> Iterator[SparkScanSubscription]:
        return iter(list(self._subscriptions.values()))

    def __contains__(self, topic: Union[Topic, str]) -> bool:
        return str(topic) in self._subscriptions
