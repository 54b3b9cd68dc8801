# Copyright (C) 2025, Ionic.

# This program is licensed under the Apache License 2.0.
# See LICENSE or go to <https://www.apache.org/licenses/LICENSE-2.0> for full license details.

"""Shared field types for SparkScan payload schemas"""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Optional

import msgspec
from msgspec import Meta

_BECH32_CHARSET = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"


class Network(Enum):
    MAINNET = "MAINNET"
    REGTEST = "REGTEST"

    @property
    def display_name(self) -> str:
        """Capitalized form, e.g. ``Mainnet``."""
        return self.value.capitalize()


SparkAddress = Annotated[
    str,
    Meta(
        pattern=f"^(sp|spt|sprt|sps|spl)1[{_BECH32_CHARSET}]+$",
        description="Bech32m encoded Spark address",
    ),
]

TokenAddress = Annotated[
    str,
    Meta(
        pattern=f"^(btkn|btknt|btknrt|btkns|btknl)1[{_BECH32_CHARSET}]+$",
        description="Bech32m encoded token identifier",
    ),
]

DecimalString = Annotated[str, Meta(pattern=r"^-?[0-9]+(\.[0-9]+)?$")]
"""Arbitrary precision number carried as a string, e.g. satoshi balances"""

Rfc3339Timestamp = Annotated[datetime, Meta(tz=True)]


def parse_rfc3339(value: Any) -> Optional[datetime]:
    """Parses an RFC3339 timestamp string into a UTC datetime, None if it cannot be parsed."""
    if not isinstance(value, str):
        return None
    try:
        parsed = msgspec.convert(value, Rfc3339Timestamp)
    except msgspec.ValidationError:
        return None
    return parsed.astimezone(timezone.utc)
