# Copyright (C) 2025, Ionic.

# This program is licensed under the Apache License 2.0.
# See LICENSE or go to <https://www.apache.org/licenses/LICENSE-2.0> for full license details.

"""Subscription topics and their wire-format strings.

Every topic is a small frozen struct. Topics without parameters serialize to a
bare lowercase name (``balances``); parameterized topics serialize to a path
(``/balance/network/mainnet``, ``/transaction/in/mainnet/sp1...``).
"""
from __future__ import annotations

from enum import Enum
from typing import ClassVar

from msgspec import Struct

from sparkscan_ws.errors import UnrecognizedTopicError


class TopicFamily(Enum):
    """Payload family a topic delivers; selects the decoder for its messages."""

    BALANCE = "balance"
    TOKEN_BALANCE = "token_balance"
    TOKEN_PRICE = "token_price"
    TRANSACTION = "transaction"
    TOKEN = "token"


class Topic(Struct, frozen=True):
    """Base class for all subscription topics."""

    family: ClassVar[TopicFamily]

    path: ClassVar[str]
    """Bare name for parameterless topics, path prefix (with trailing slash) otherwise"""

    def __post_init__(self):
        values = self.values
        # Only the last parameter may contain a slash, otherwise parsing would split it.
        for value in values[:-1]:
            if "/" in value:
                raise ValueError(f"{type(self).__name__} parameter {value!r} must not contain '/'")

    @property
    def values(self) -> tuple[str, ...]:
        return tuple(getattr(self, name) for name in self.__struct_fields__)

    def as_str(self) -> str:
        """Converts the topic to its subscription string."""
        values = self.values
        if not values:
            return self.path
        return self.path + "/".join(values)

    def __str__(self) -> str:
        return self.as_str()

    @classmethod
    def parse(cls, topic: str) -> Topic:
        """Parses a subscription string into a topic.

        Raises:
            UnrecognizedTopicError: if the string matches no known topic.
        """
        return parse_topic(topic)


class Balances(Topic):
    family = TopicFamily.BALANCE
    path = "balances"


class BalanceNetwork(Topic):
    family = TopicFamily.BALANCE
    path = "/balance/network/"
    network: str


class BalanceAddress(Topic):
    family = TopicFamily.BALANCE
    path = "/balance/address/"
    address: str


class TokenBalances(Topic):
    family = TopicFamily.TOKEN_BALANCE
    path = "token_balances"


class TokenBalanceNetwork(Topic):
    family = TopicFamily.TOKEN_BALANCE
    path = "/token_balance/network/"
    network: str


class TokenBalanceIdentifier(Topic):
    family = TopicFamily.TOKEN_BALANCE
    path = "/token_balance/identifier/"
    identifier: str


class TokenBalanceAddress(Topic):
    family = TopicFamily.TOKEN_BALANCE
    path = "/token_balance/address/"
    address: str


class TokenPrices(Topic):
    family = TopicFamily.TOKEN_PRICE
    path = "token_prices"


class TokenPriceNetwork(Topic):
    family = TopicFamily.TOKEN_PRICE
    path = "/token_price/network/"
    network: str


class TokenPriceIdentifier(Topic):
    family = TopicFamily.TOKEN_PRICE
    path = "/token_price/identifier/"
    identifier: str


class Transactions(Topic):
    family = TopicFamily.TRANSACTION
    path = "transactions"


class TransactionNetwork(Topic):
    family = TopicFamily.TRANSACTION
    path = "/transaction/network/"
    network: str


class TransactionIn(Topic):
    """Incoming transactions for a network and a field (address, bitcoin or lightning)."""
    family = TopicFamily.TRANSACTION
    path = "/transaction/in/"
    network: str
    field: str


class TransactionOut(Topic):
    """Outgoing transactions for a network and a field (address, bitcoin or lightning)."""
    family = TopicFamily.TRANSACTION
    path = "/transaction/out/"
    network: str
    field: str


class Tokens(Topic):
    family = TopicFamily.TOKEN
    path = "tokens"


class TokenIdentifier(Topic):
    family = TopicFamily.TOKEN
    path = "/token/identifier/"
    identifier: str


class TokenNetwork(Topic):
    family = TopicFamily.TOKEN
    path = "/token/network/"
    network: str


class TokenIssuer(Topic):
    family = TopicFamily.TOKEN
    path = "/token/issuer/"
    issuer: str


ALL_TOPIC_TYPES: tuple[type[Topic], ...] = (
    Balances, BalanceNetwork, BalanceAddress,
    TokenBalances, TokenBalanceNetwork, TokenBalanceIdentifier, TokenBalanceAddress,
    TokenPrices, TokenPriceNetwork, TokenPriceIdentifier,
    Transactions, TransactionNetwork, TransactionIn, TransactionOut,
    Tokens, TokenIdentifier, TokenNetwork, TokenIssuer,
)

# Literal topics are matched first, then prefixes in declaration order.
_LITERAL_TOPICS: dict[str, type[Topic]] = {
    topic_type.path: topic_type for topic_type in ALL_TOPIC_TYPES if not topic_type.__struct_fields__
}
_PREFIXED_TOPICS: tuple[type[Topic], ...] = tuple(
    topic_type for topic_type in ALL_TOPIC_TYPES if topic_type.__struct_fields__
)


def parse_topic(topic: str) -> Topic:
    """Parses a subscription string into a topic.

    Args:
        topic: Wire-format topic string

    Returns:
        The matching topic

    Raises:
        UnrecognizedTopicError: if the string matches no known literal or prefix,
            or a prefixed topic does not carry the expected number of parameters
    """
    literal = _LITERAL_TOPICS.get(topic)
    if literal is not None:
        return literal()

    for topic_type in _PREFIXED_TOPICS:
        if not topic.startswith(topic_type.path):
            continue

        rest = topic[len(topic_type.path):]
        field_count = len(topic_type.__struct_fields__)
        parts = rest.split("/", field_count - 1)
        if len(parts) != field_count:
            expected = topic_type.path + "/".join(topic_type.__struct_fields__)
            raise UnrecognizedTopicError(topic, f"expected {expected}")
        return topic_type(*parts)

    raise UnrecognizedTopicError(topic, "only predefined topics are supported")
