# Copyright (C) 2025, Ionic.

# This program is licensed under the Apache License 2.0.
# See LICENSE or go to <https://www.apache.org/licenses/LICENSE-2.0> for full license details.

"""Exception hierarchy for the SparkScan WebSocket client."""
from __future__ import annotations


class SparkScanWsError(Exception):
    """Base class for every error raised by the SparkScan WebSocket client."""


class SparkScanConnectionError(SparkScanWsError):
    """The WebSocket connection could not be established or was lost."""


class SparkScanSubscriptionError(SparkScanWsError):
    """The server rejected or failed a subscription command."""


class NotConnectedError(SparkScanWsError):
    """An operation required an open connection."""

    def __init__(self, message: str = "Client is not connected"):
        super().__init__(message)


class SubscriptionNotFoundError(SparkScanWsError):
    def __init__(self, topic: str):
        self.topic = topic
        super().__init__(f"Subscription not found: {topic}")


class ConfigError(SparkScanWsError, ValueError):
    """Invalid client configuration."""


class AuthError(SparkScanWsError):
    """The server refused the connection credentials."""


class RateLimitError(SparkScanWsError):
    def __init__(self, message: str = "Rate limit exceeded"):
        super().__init__(message)


class UnknownMessageTypeError(SparkScanWsError):
    def __init__(self, message_type: str):
        self.message_type = message_type
        super().__init__(f"Unknown message type: {message_type}")


class UnrecognizedTopicError(SparkScanWsError, ValueError):
    """A topic string matched no known literal or path prefix."""

    def __init__(self, topic: str, reason: str | None = None):
        self.topic = topic
        detail = f"Unknown topic: {topic}"
        if reason:
            detail = f"{detail} ({reason})"
        super().__init__(detail)


class DecodeError(SparkScanWsError):
    """A single inbound message could not be turned into a typed message."""


class InvalidJsonError(DecodeError):
    """The raw bytes, or an embedded string layer, are not well-formed JSON."""


class SchemaViolationError(DecodeError):
    """The JSON value does not match the schema of its payload family."""


class InvalidShapeError(DecodeError):
    """A JSON object was required but another kind of value was received."""
