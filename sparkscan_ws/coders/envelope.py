# Copyright (C) 2025, Ionic.

# This program is licensed under the Apache License 2.0.
# See LICENSE or go to <https://www.apache.org/licenses/LICENSE-2.0> for full license details.


"""Strips transport envelopes from inbound publications.

Publications reach subscribers in several shapes depending on how the server
relays them: the payload object itself, the payload JSON-encoded a second time
as a string, or the payload wrapped in a ``data``, ``payload`` or ``message``
field (holding either an object or a JSON string). The cascade below is tried
in order and the first match wins.

Only one envelope layer is removed. A ``data`` field holding a string that is
itself ``{"data": "..."}`` comes back with the inner envelope still in place.
"""

from __future__ import annotations
from typing import Any

import msgspec
from loguru import logger

from sparkscan_ws.errors import InvalidJsonError

ENVELOPE_KEYS = ("data", "payload", "message")

_decoder = msgspec.json.Decoder()


def _decode_json(data: bytes | str, layer: str) -> Any:
    try:
        return _decoder.decode(data)
    except msgspec.DecodeError as e:
        raise InvalidJsonError(f"Failed to decode JSON ({layer}): {e}") from e


def normalize(raw: bytes | str) -> Any:
    """Extracts the application payload from a raw publication.

    Args:
        raw: Publication bytes as delivered by the transport

    Returns:
        The unwrapped JSON value (usually a dict)

    Raises:
        InvalidJsonError: if the bytes or an embedded JSON string cannot be decoded
    """
    value = _decode_json(raw, "publication")

    if isinstance(value, str):
        logger.debug("Publication is a double-encoded JSON string")
        return _decode_json(value, "double-encoded string")

    if isinstance(value, dict):
        for key in ENVELOPE_KEYS:
            if key not in value:
                continue
            inner = value[key]
            if isinstance(inner, str):
                logger.debug(f"Publication wrapped in '{key}' as a JSON string")
                return _decode_json(inner, f"'{key}' field")
            return inner

    return value
