# Copyright (C) 2025, Ionic.

# This program is licensed under the Apache License 2.0.
# See LICENSE or go to <https://www.apache.org/licenses/LICENSE-2.0> for full license details.

"""ReplyErrorEnum class, an enumeration of Centrifugo reply error codes"""
from __future__ import annotations

from enum import IntEnum

from sparkscan_ws.errors import (
    AuthError,
    RateLimitError,
    SparkScanSubscriptionError,
    SparkScanWsError,
)
from sparkscan_ws.transport.centrifugo.model import ReplyError


class ReplyErrorEnum(IntEnum):
    """
    Enumeration of error codes a Centrifugo server returns in command replies.
    """

    INTERNAL = 100
    """Internal server error, the command may be retried later"""

    UNAUTHORIZED = 101
    """The connection token or credentials were rejected"""

    UNKNOWN_CHANNEL = 102
    """The channel namespace does not exist on the server"""

    PERMISSION_DENIED = 103
    """The client is not allowed to perform the command on the channel"""

    METHOD_NOT_FOUND = 104
    """The server does not implement the command"""

    ALREADY_SUBSCRIBED = 105
    """The client already holds a subscription to the channel"""

    LIMIT_EXCEEDED = 106
    """A server-side limit was reached, e.g. the number of channels per connection"""

    BAD_REQUEST = 107
    """The command was malformed"""

    NOT_AVAILABLE = 108
    """The feature is disabled for the channel"""

    TOKEN_EXPIRED = 109
    """The connection or subscription token expired"""

    EXPIRED = 110
    """The client connection expired"""

    TOO_MANY_REQUESTS = 111
    """The client sent commands faster than the server allows"""

    UNRECOVERABLE_POSITION = 112
    """Missed publications could not be recovered from the channel history"""

    UNKNOWN_ERROR = -1
    """A code not listed above"""

    @classmethod
    def from_code(cls, code: int) -> ReplyErrorEnum:
        try:
            return cls(code)
        except ValueError:
            return cls.UNKNOWN_ERROR

    @classmethod
    def to_exception(cls, error: ReplyError, context: str = "") -> SparkScanWsError:
        """Maps a reply error onto the client exception hierarchy."""
        kind = cls.from_code(error.code)
        detail = f"{error.message or kind.name.lower()} (code {error.code})"
        if context:
            detail = f"{context}: {detail}"

        match kind:
            case ReplyErrorEnum.UNAUTHORIZED | ReplyErrorEnum.TOKEN_EXPIRED:
                return AuthError(detail)
            case ReplyErrorEnum.TOO_MANY_REQUESTS:
                return RateLimitError(detail)
            case _:
                return SparkScanSubscriptionError(detail)
