# Copyright (C) 2025, Ionic.

# This program is licensed under the Apache License 2.0.
# See LICENSE or go to <https://www.apache.org/licenses/LICENSE-2.0> for full license details.


"""Frames of the Centrifugo JSON client protocol."""

from typing import Any, Dict, Optional

import msgspec
from msgspec import Struct


class ConnectRequest(Struct, omit_defaults=True):
    name: str = ""
    version: str = ""
    token: str = ""


class SubscribeRequest(Struct):
    channel: str


class UnsubscribeRequest(Struct):
    channel: str


class PublishRequest(Struct):
    channel: str
    data: msgspec.Raw


class Command(Struct, omit_defaults=True):
    """Client command; exactly one method field is set."""
    id: int
    connect: Optional[ConnectRequest] = None
    subscribe: Optional[SubscribeRequest] = None
    unsubscribe: Optional[UnsubscribeRequest] = None
    publish: Optional[PublishRequest] = None


class ReplyError(Struct):
    """Error returned in reply to a command."""
    code: int
    message: str = ""
    temporary: bool = False


class ConnectResult(Struct):
    client: str = ""
    version: str = ""
    ping: int = 0
    """Server ping interval in seconds, 0 when the server does not ping"""
    pong: bool = False
    """Whether the server expects a pong for every ping"""


class Publication(Struct):
    data: msgspec.Raw
    offset: int = 0


class Disconnect(Struct):
    code: int
    reason: str = ""
    reconnect: bool = False


class Unsubscribe(Struct):
    code: int = 0
    reason: str = ""


class Push(Struct):
    """Asynchronous server message for a channel."""
    channel: str = ""
    pub: Optional[Publication] = None
    unsubscribe: Optional[Unsubscribe] = None
    disconnect: Optional[Disconnect] = None


class Reply(Struct):
    """Server frame: a command reply, a push, or an empty ping."""
    id: int = 0
    error: Optional[ReplyError] = None
    connect: Optional[ConnectResult] = None
    subscribe: Optional[Dict[str, Any]] = None
    unsubscribe: Optional[Dict[str, Any]] = None
    publish: Optional[Dict[str, Any]] = None
    push: Optional[Push] = None

    @property
    def is_error(self) -> bool:
        """Check if reply carries an error."""
        return self.error is not None

    @property
    def is_ping(self) -> bool:
        """Check if frame is an empty server ping."""
        return (
            self.id == 0
            and self.push is None
            and self.error is None
            and self.connect is None
        )
