# Copyright (C) 2025, Ionic.

# This program is licensed under the Apache License 2.0.
# See LICENSE or go to <https://www.apache.org/licenses/LICENSE-2.0> for full license details.

"""Abstract base class for real-time transports delivering channel publications."""

from abc import ABC, abstractmethod
from typing import Callable, Optional

from sparkscan_ws.config import SparkScanWsConfig

PublicationHandler = Callable[[str, bytes], None]
"""Receives the channel name and the raw publication bytes"""

UnsubscribeHandler = Callable[[str], None]

DisconnectHandler = Callable[[Optional[str], bool], None]
"""Receives the disconnect reason (None if the connection closed without one) and whether to reconnect"""


class BaseTransport(ABC):
    """Abstract base class for all transports used by the client.

       Each transport should inherit this class. The client binds its handlers
       before connecting; the transport invokes them from its receive loop.
    """

    def __init__(self, config: Optional[SparkScanWsConfig] = None):
        """Initializes the transport with optional configuration."""
        self.config = config or SparkScanWsConfig()
        self._connected = False
        self._on_publication: Optional[PublicationHandler] = None
        self._on_unsubscribe: Optional[UnsubscribeHandler] = None
        self._on_disconnect: Optional[DisconnectHandler] = None

    def bind(
            self,
            on_publication: PublicationHandler,
            on_unsubscribe: Optional[UnsubscribeHandler] = None,
            on_disconnect: Optional[DisconnectHandler] = None,
    ) -> None:
        """Registers the callbacks invoked for inbound events."""
        self._on_publication = on_publication
        self._on_unsubscribe = on_unsubscribe
        self._on_disconnect = on_disconnect

    @abstractmethod
    async def connect(self) -> None:
        """Establishes connection to the server."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Closes connection to the server."""
        pass

    @abstractmethod
    async def subscribe(self, channel: str) -> None:
        """Subscribes to a channel."""
        pass

    @abstractmethod
    async def unsubscribe(self, channel: str) -> None:
        """Unsubscribes from a channel."""
        pass

    @abstractmethod
    async def publish(self, channel: str, data: bytes) -> None:
        """Publishes JSON encoded data to a channel."""
        pass

    @property
    def is_connected(self) -> bool:
        """Checks if the transport is connected."""
        return self._connected

    async def health_check(self) -> bool:
        """Performs a health check on the transport."""
        return self.is_connected

    def _emit_publication(self, channel: str, data: bytes) -> None:
        if self._on_publication is not None:
            self._on_publication(channel, data)

    def _emit_unsubscribe(self, channel: str) -> None:
        if self._on_unsubscribe is not None:
            self._on_unsubscribe(channel)

    def _emit_disconnect(self, reason: Optional[str], reconnect: bool = True) -> None:
        if self._on_disconnect is not None:
            self._on_disconnect(reason, reconnect)
