# Copyright (C) 2025, Ionic.

# This program is licensed under the Apache License 2.0.
# See LICENSE or go to <https://www.apache.org/licenses/LICENSE-2.0> for full license details.

"""SparkScan WebSocket client: connection lifecycle and subscription routing."""

import asyncio
from typing import Callable, Dict, List, Optional, Union

import msgspec
from loguru import logger

from sparkscan_ws.coders.base_coder import CoderRegistry
from sparkscan_ws.coders.message_coder import DEFAULT_REGISTRY
from sparkscan_ws.config import SparkScanWsConfig
from sparkscan_ws.errors import (
    SparkScanSubscriptionError,
    SparkScanWsError,
    SubscriptionNotFoundError,
)
from sparkscan_ws.subscription import SparkScanSubscription, SubscriptionState
from sparkscan_ws.topic import Topic
from sparkscan_ws.transport.centrifugo.centrifugo_transport import CentrifugoTransport
from sparkscan_ws.transport.transport import BaseTransport

LifecycleHandler = Callable[[], None]
ErrorHandler = Callable[[str], None]


class ConnectionStats(msgspec.Struct, frozen=True):
    connected: bool
    reconnect_attempts: int
    last_error: Optional[str] = None


class SparkScanWsClient:
    """Client for the SparkScan real-time API.

    Usage::

        async with SparkScanWsClient() as client:
            subscription = await client.subscribe(Balances())
            subscription.on_message(print)
            await subscription.subscribe()
    """

    def __init__(
            self,
            url: Optional[str] = None,
            config: Optional[SparkScanWsConfig] = None,
            transport: Optional[BaseTransport] = None,
            registry: Optional[CoderRegistry] = None,
    ):
        if config is None:
            config = SparkScanWsConfig.new(url) if url else SparkScanWsConfig()
        elif url:
            config = msgspec.structs.replace(config, url=url)
        self._config = config
        self.transport = transport or CentrifugoTransport(config)
        self.transport.bind(self._handle_publication, self._handle_server_unsubscribe, self._handle_disconnect)
        self._registry = registry or DEFAULT_REGISTRY
        self._subscriptions: Dict[str, SparkScanSubscription] = {}
        self._connecting_handlers: List[LifecycleHandler] = []
        self._connected_handlers: List[LifecycleHandler] = []
        self._disconnected_handlers: List[LifecycleHandler] = []
        self._error_handlers: List[ErrorHandler] = []
        self._reconnect_attempts = 0
        self._last_error: Optional[str] = None
        self._reconnect_task: Optional[asyncio.Task] = None
        self._closed = False

    @classmethod
    def with_config(cls, config: SparkScanWsConfig) -> "SparkScanWsClient":
        return cls(config=config)

    @property
    def config(self) -> SparkScanWsConfig:
        return self._config

    def on_connecting(self, callback: LifecycleHandler) -> None:
        self._connecting_handlers.append(callback)

    def on_connected(self, callback: LifecycleHandler) -> None:
        self._connected_handlers.append(callback)

    def on_disconnected(self, callback: LifecycleHandler) -> None:
        self._disconnected_handlers.append(callback)

    def on_error(self, callback: ErrorHandler) -> None:
        self._error_handlers.append(callback)

    async def connect(self) -> None:
        """Connects to the server and activates pending subscriptions.

        Raises:
            SparkScanConnectionError: If the WebSocket could not be opened
            AuthError: If the server rejected the connection credentials
        """
        self._closed = False
        self._notify(self._connecting_handlers)
        try:
            await self.transport.connect()
        except SparkScanWsError as e:
            self._record_error(f"Failed to connect: {e}")
            raise
        self._reconnect_attempts = 0
        self._notify(self._connected_handlers)
        await self._restore_subscriptions()

    async def disconnect(self) -> None:
        """Disconnects; subscriptions are kept and restored by the next ``connect()``."""
        self._closed = True
        if self._reconnect_task is not None and not self._reconnect_task.done():
            self._reconnect_task.cancel()
        self._reconnect_task = None

        was_connected = self.transport.is_connected
        await self.transport.disconnect()
        for subscription in self._subscriptions.values():
            subscription._connection_lost()
        if was_connected:
            self._notify(self._disconnected_handlers)

    async def subscribe(self, topic: Topic) -> SparkScanSubscription:
        """Creates a subscription for ``topic``.

        The subscription starts unsubscribed; register handlers on it, then
        call its ``subscribe()``.

        Raises:
            SparkScanSubscriptionError: If a subscription to the topic already exists
        """
        channel = topic.as_str()
        if channel in self._subscriptions:
            raise SparkScanSubscriptionError(f"Subscription to {channel} already exists")
        subscription = SparkScanSubscription(self, topic, self._registry)
        self._subscriptions[channel] = subscription
        return subscription

    def get_subscription(self, topic: Union[Topic, str]) -> Optional[SparkScanSubscription]:
        return self._subscriptions.get(str(topic))

    async def remove_subscription(self, topic: Union[Topic, str]) -> None:
        """Unsubscribes and forgets the subscription to ``topic``."""
        subscription = self._subscriptions.pop(str(topic), None)
        if subscription is None:
            raise SubscriptionNotFoundError(str(topic))
        await subscription.unsubscribe()

    @property
    def subscriptions(self) -> Dict[str, SparkScanSubscription]:
        return dict(self._subscriptions)

    def is_connected(self) -> bool:
        return self.transport.is_connected

    def connection_stats(self) -> ConnectionStats:
        return ConnectionStats(
            connected=self.transport.is_connected,
            reconnect_attempts=self._reconnect_attempts,
            last_error=self._last_error,
        )

    async def __aenter__(self) -> "SparkScanWsClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.disconnect()

    def _handle_publication(self, channel: str, data: bytes) -> None:
        subscription = self._subscriptions.get(channel)
        if subscription is None:
            logger.debug(f"Publication for channel without subscription: {channel}")
            return
        subscription.handle_publication(data)

    def _handle_server_unsubscribe(self, channel: str) -> None:
        subscription = self._subscriptions.get(channel)
        if subscription is not None:
            subscription._server_unsubscribed()

    def _handle_disconnect(self, reason: Optional[str], reconnect: bool = True) -> None:
        self._record_error(f"Connection lost: {reason}")
        for subscription in self._subscriptions.values():
            subscription._connection_lost()
        self._notify(self._disconnected_handlers)

        if not reconnect:
            logger.warning(f"Server asked not to reconnect: {reason}")
            return
        if self._closed or not self._config.auto_reconnect or self._config.max_reconnect_attempts == 0:
            return
        if self._reconnect_task is None or self._reconnect_task.done():
            self._reconnect_task = asyncio.create_task(self._reconnect())

    async def _reconnect(self) -> None:
        max_attempts = self._config.max_reconnect_attempts
        for attempt in range(1, max_attempts + 1):
            await asyncio.sleep(self._config.reconnect_delay_seconds)
            if self._closed:
                return
            self._reconnect_attempts += 1
            logger.info(f"Reconnecting to {self._config.url}, attempt {attempt}/{max_attempts}")
            self._notify(self._connecting_handlers)
            try:
                await self.transport.connect()
            except SparkScanWsError as e:
                self._record_error(f"Reconnect attempt {attempt} failed: {e}")
                continue
            self._notify(self._connected_handlers)
            await self._restore_subscriptions()
            return
        self._record_error(f"Giving up after {max_attempts} reconnect attempts")

    async def _restore_subscriptions(self) -> None:
        for subscription in list(self._subscriptions.values()):
            if subscription.state is not SubscriptionState.SUBSCRIBING:
                continue
            try:
                await subscription._activate()
            except SparkScanWsError as e:
                logger.error(f"Could not restore subscription to {subscription.channel}: {e}")

    def _record_error(self, error: str) -> None:
        self._last_error = error
        logger.error(error)
        for handler in self._error_handlers:
            handler(error)

    @staticmethod
    def _notify(handlers: List[LifecycleHandler]) -> None:
        for handler in handlers:
            handler()
