# Copyright (C) 2025, Ionic.

# This program is licensed under the Apache License 2.0.
# See LICENSE or go to <https://www.apache.org/licenses/LICENSE-2.0> for full license details.

"""Token balance update payload"""
from __future__ import annotations

from datetime import datetime

from msgspec import Struct

from sparkscan_ws.types.common import DecimalString, Network, SparkAddress, TokenAddress


class TokenBalancePayload(Struct, frozen=True, forbid_unknown_fields=True):
    network: Network

    address: SparkAddress
    """Holder of the token balance"""

    token_address: TokenAddress

    balance: DecimalString
    """Balance in the token's base units"""

    processed_at: datetime
