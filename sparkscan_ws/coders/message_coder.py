# Copyright (C) 2025, Ionic.

# This program is licensed under the Apache License 2.0.
# See LICENSE or go to <https://www.apache.org/licenses/LICENSE-2.0> for full license details.


"""Default coder set, the publication decoding entry point and message read-back."""

from __future__ import annotations
from typing import Any

import msgspec
from msgspec import Struct

from sparkscan_ws.coders.base_coder import CoderRegistry, StrictCoder
from sparkscan_ws.coders.transaction_coder import TransactionCoder
from sparkscan_ws.errors import InvalidJsonError, SchemaViolationError, UnknownMessageTypeError
from sparkscan_ws.topic import Topic, TopicFamily
from sparkscan_ws.types.message import (
    BalanceMessage,
    SparkScanMessage,
    TokenBalanceMessage,
    TokenMessage,
    TokenPriceMessage,
)


def default_registry() -> CoderRegistry:
    """Builds a registry with a coder for every topic family."""
    registry = CoderRegistry()
    registry.register(StrictCoder("balance", TopicFamily.BALANCE, BalanceMessage))
    registry.register(StrictCoder("token_balance", TopicFamily.TOKEN_BALANCE, TokenBalanceMessage))
    registry.register(StrictCoder("token_price", TopicFamily.TOKEN_PRICE, TokenPriceMessage))
    registry.register(StrictCoder("token", TopicFamily.TOKEN, TokenMessage))
    registry.register(TransactionCoder())
    return registry


DEFAULT_REGISTRY = default_registry()


def parse_message_for_topic(topic: Topic, data: bytes | str) -> SparkScanMessage:
    """Normalizes and decodes a raw publication received on ``topic``.

    Raises:
        InvalidJsonError: if the publication or an embedded JSON string is malformed
        SchemaViolationError: if a non-transaction payload does not match its schema
        InvalidShapeError: if a transaction payload is not a JSON object
    """
    return DEFAULT_REGISTRY.parse_message_for_topic(topic, data)


class MessageFrame(Struct, forbid_unknown_fields=True):
    """JSON form of an encoded message, before its payload is decoded."""
    type: str
    data: Any


_frame_decoder = msgspec.json.Decoder(MessageFrame)


def decode_message(data: bytes | str) -> SparkScanMessage:
    """Decodes a message produced by ``encode_message``.

    The payload goes through the same coder as a live publication of its
    family, so a transaction that only decodes through the fallback reads
    back as it was written.

    Raises:
        UnknownMessageTypeError: if the ``type`` tag names no known message
        SchemaViolationError: if the frame or payload does not match its schema
        InvalidJsonError: if the data is not JSON
    """
    try:
        frame = _frame_decoder.decode(data)
    except msgspec.ValidationError as e:
        raise SchemaViolationError(f"Invalid message frame: {e}") from e
    except msgspec.DecodeError as e:
        raise InvalidJsonError(f"Failed to decode message: {e}") from e

    coder = DEFAULT_REGISTRY.get_coder_for_message_type(frame.type)
    if coder is None:
        raise UnknownMessageTypeError(frame.type)
    return coder.decode(frame.data)
