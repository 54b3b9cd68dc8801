# Copyright (C) 2025, Ionic.

# This program is licensed under the Apache License 2.0.
# See LICENSE or go to <https://www.apache.org/licenses/LICENSE-2.0> for full license details.

"""Client configuration."""

from __future__ import annotations

import os
from typing import Optional

import msgspec
from dotenv import load_dotenv

from sparkscan_ws.errors import ConfigError
from sparkscan_ws.utils.constants import DEFAULT_MAINNET_URL

load_dotenv()

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class SparkScanWsConfig(msgspec.Struct, frozen=True, kw_only=True):
    """Connection settings for ``SparkScanWsClient``.

    Instances are immutable; the ``with_*`` methods return modified copies.
    """

    url: str = DEFAULT_MAINNET_URL

    use_protobuf: bool = False
    """Protobuf client protocol instead of JSON (not supported by the bundled transport)"""

    connection_timeout: int = 30
    """Seconds to wait for the connection to be established"""

    auto_reconnect: bool = True

    max_reconnect_attempts: int = 5

    reconnect_delay: int = 1000
    """Milliseconds between reconnection attempts"""

    def __post_init__(self):
        if not self.url:
            raise ConfigError("WebSocket URL must not be empty")
        if not self.url.startswith(("ws://", "wss://")):
            raise ConfigError(f"WebSocket URL must use ws:// or wss://, got {self.url}")
        if self.connection_timeout <= 0:
            raise ConfigError(f"connection_timeout must be positive, got {self.connection_timeout}")
        if self.max_reconnect_attempts < 0:
            raise ConfigError(f"max_reconnect_attempts must not be negative, got {self.max_reconnect_attempts}")
        if self.reconnect_delay < 0:
            raise ConfigError(f"reconnect_delay must not be negative, got {self.reconnect_delay}")

    @classmethod
    def new(cls, url: str) -> SparkScanWsConfig:
        return cls(url=url)

    def with_protobuf(self, use_protobuf: bool) -> SparkScanWsConfig:
        return msgspec.structs.replace(self, use_protobuf=use_protobuf)

    def with_timeout(self, timeout_seconds: int) -> SparkScanWsConfig:
        return msgspec.structs.replace(self, connection_timeout=timeout_seconds)

    def with_auto_reconnect(self, auto_reconnect: bool) -> SparkScanWsConfig:
        return msgspec.structs.replace(self, auto_reconnect=auto_reconnect)

    def with_max_reconnect_attempts(self, max_attempts: int) -> SparkScanWsConfig:
        return msgspec.structs.replace(self, max_reconnect_attempts=max_attempts)

    def with_reconnect_delay(self, delay_ms: int) -> SparkScanWsConfig:
        return msgspec.structs.replace(self, reconnect_delay=delay_ms)

    @property
    def reconnect_delay_seconds(self) -> float:
        return self.reconnect_delay / 1000

    @classmethod
    def from_env(cls, url: Optional[str] = None) -> SparkScanWsConfig:
        """Builds a configuration from ``SPARKSCAN_WS_*`` environment variables.

        Variables that are not set keep their defaults. ``url`` takes precedence
        over ``SPARKSCAN_WS_URL``.
        """
        defaults = cls()
        return cls(
            url=url or os.getenv("SPARKSCAN_WS_URL") or defaults.url,
            use_protobuf=_env_bool("SPARKSCAN_WS_USE_PROTOBUF", defaults.use_protobuf),
            connection_timeout=_env_int("SPARKSCAN_WS_CONNECTION_TIMEOUT", defaults.connection_timeout),
            auto_reconnect=_env_bool("SPARKSCAN_WS_AUTO_RECONNECT", defaults.auto_reconnect),
            max_reconnect_attempts=_env_int("SPARKSCAN_WS_MAX_RECONNECT_ATTEMPTS", defaults.max_reconnect_attempts),
            reconnect_delay=_env_int("SPARKSCAN_WS_RECONNECT_DELAY", defaults.reconnect_delay),
        )


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ConfigError(f"{name} must be an integer, got {value!r}") from e


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be a boolean, got {value!r}")
