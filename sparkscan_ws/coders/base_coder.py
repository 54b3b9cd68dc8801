# Copyright (C) 2025, Ionic.

# This program is licensed under the Apache License 2.0.
# See LICENSE or go to <https://www.apache.org/licenses/LICENSE-2.0> for full license details.


"""Payload coders that turn normalized JSON into typed messages."""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Optional

import msgspec
from loguru import logger

from sparkscan_ws.coders.envelope import normalize
from sparkscan_ws.errors import SchemaViolationError
from sparkscan_ws.topic import Topic, TopicFamily
from sparkscan_ws.types.message import SparkScanMessage


class BaseCoder(ABC):
    """Abstract base class for payload coders.

    Each coder is responsible for:
    1. Declaring which topic family it decodes
    2. Turning a normalized JSON value into a typed payload
    3. Wrapping that payload in the matching message variant
    """

    def __init__(self, name: str, family: TopicFamily, message_cls: type[SparkScanMessage]):
        """Initialize the coder.

        Args:
            name: Human-readable name for this coder
            family: Topic family whose publications this coder decodes
            message_cls: Message variant produced by this coder
        """
        self.name = name
        self.family = family
        self.message_cls = message_cls
        self.payload_type = msgspec.structs.fields(message_cls)[0].type

    def can_handle(self, topic: Topic) -> bool:
        """Check if this coder decodes publications of the given topic.

        Args:
            topic: The topic the publication arrived on

        Returns:
            True if the topic belongs to this coder's family, False otherwise
        """
        return topic.family is self.family

    @abstractmethod
    def decode(self, value: Any) -> SparkScanMessage:
        """Decode a normalized JSON value into a message.

        Args:
            value: JSON value produced by the envelope normalizer

        Returns:
            The decoded message

        Raises:
            DecodeError: if the value cannot be decoded
        """
        pass


class StrictCoder(BaseCoder):
    """Validates the value against the payload schema, with no fallback."""

    def decode_payload(self, value: Any) -> Any:
        try:
            return msgspec.convert(value, self.payload_type)
        except msgspec.ValidationError as e:
            raise SchemaViolationError(f"{self.name}: {e}") from e

    def decode(self, value: Any) -> SparkScanMessage:
        return self.message_cls(data=self.decode_payload(value))


class CoderRegistry:
    """Registry mapping topic families to the coder that decodes them."""

    def __init__(self):
        self._coders: list[BaseCoder] = []
        self._family_to_coder: dict[TopicFamily, BaseCoder] = {}

    def register(self, coder: BaseCoder) -> None:
        """Register a coder, replacing any coder already registered for its family.

        Args:
            coder: The coder to register
        """
        previous = self._family_to_coder.get(coder.family)
        if previous is not None:
            logger.debug(f"Replacing coder {previous.name} with {coder.name} for {coder.family.value}")
            self._coders.remove(previous)
        self._coders.append(coder)
        self._family_to_coder[coder.family] = coder

    def get_coder_for_topic(self, topic: Topic) -> Optional[BaseCoder]:
        """Get the coder that decodes publications of a topic.

        Args:
            topic: The topic the publication arrived on

        Returns:
            The coder registered for the topic's family, None if there is none
        """
        coder = self._family_to_coder.get(topic.family)
        if coder is None or not coder.can_handle(topic):
            return None
        return coder

    def get_coder_for_message_type(self, message_type: str) -> Optional[BaseCoder]:
        """Get the coder producing messages tagged ``message_type``, e.g. ``balance``."""
        for coder in self._coders:
            if coder.message_cls.__struct_config__.tag == message_type:
                return coder
        return None

    def get_all_coders(self) -> list[BaseCoder]:
        return self._coders.copy()

    def decode(self, topic: Topic, value: Any) -> SparkScanMessage:
        """Decode a normalized JSON value received on a topic.

        Args:
            topic: The topic the publication arrived on
            value: JSON value produced by the envelope normalizer

        Returns:
            The decoded message

        Raises:
            DecodeError: if the value cannot be decoded for the topic's family
            LookupError: if no coder is registered for the topic's family
        """
        coder = self.get_coder_for_topic(topic)
        if coder is None:
            raise LookupError(f"No coder registered for {topic.family.value} topics")
        return coder.decode(value)

    def parse_message_for_topic(self, topic: Topic, data: bytes | str) -> SparkScanMessage:
        """Normalize and decode a raw publication.

        Args:
            topic: The topic the publication arrived on
            data: Raw publication bytes

        Returns:
            The decoded message

        Raises:
            DecodeError: if the publication cannot be decoded
        """
        logger.debug(f"Raw publication for topic {topic}: {data!r}")
        return self.decode(topic, normalize(data))
