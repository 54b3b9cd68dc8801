# Copyright (C) 2025, Ionic.

# This program is licensed under the Apache License 2.0.
# See LICENSE or go to <https://www.apache.org/licenses/LICENSE-2.0> for full license details.

"""Typed SparkScan messages.

Messages encode as ``{"type": <message type>, "data": <payload>}``.
"""
from __future__ import annotations

from typing import Optional, Union

import msgspec
from msgspec import Struct

from sparkscan_ws.types.balance import BalancePayload
from sparkscan_ws.types.token import TokenPayload
from sparkscan_ws.types.token_balance import TokenBalancePayload
from sparkscan_ws.types.token_price import TokenPricePayload
from sparkscan_ws.types.transaction import TransactionPayload


class SparkScanMessage(Struct, frozen=True, tag_field="type"):
    """Base class for every decoded message."""

    def message_type(self) -> str:
        """Returns the stable type tag, e.g. ``balance``."""
        return type(self).__struct_config__.tag

    def network(self) -> Optional[str]:
        """Returns the payload network as a display name, e.g. ``Mainnet``."""
        payload = getattr(self, "data", None)
        if payload is None:
            return None
        return payload.network.display_name


class BalanceMessage(SparkScanMessage, tag="balance"):
    data: BalancePayload


class TokenBalanceMessage(SparkScanMessage, tag="token_balance"):
    data: TokenBalancePayload


class TokenPriceMessage(SparkScanMessage, tag="token_price"):
    data: TokenPricePayload


class TokenMessage(SparkScanMessage, tag="token"):
    data: TokenPayload


class TransactionMessage(SparkScanMessage, tag="transaction"):
    data: TransactionPayload


AnyMessage = Union[BalanceMessage, TokenBalanceMessage, TokenPriceMessage, TokenMessage, TransactionMessage]

MESSAGE_TYPES: dict[str, type[SparkScanMessage]] = {
    message_cls.__struct_config__.tag: message_cls
    for message_cls in (BalanceMessage, TokenBalanceMessage, TokenPriceMessage, TokenMessage, TransactionMessage)
}

_encoder = msgspec.json.Encoder()


def encode_message(message: SparkScanMessage) -> bytes:
    """Encodes a message as ``{"type": ..., "data": ...}`` JSON.

    Read it back with ``sparkscan_ws.coders.message_coder.decode_message``.
    """
    return _encoder.encode(message)
