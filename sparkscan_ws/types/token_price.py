# Copyright (C) 2025, Ionic.

# This program is licensed under the Apache License 2.0.
# See LICENSE or go to <https://www.apache.org/licenses/LICENSE-2.0> for full license details.

"""Token price update payload"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from msgspec import Struct

from sparkscan_ws.types.common import Network, TokenAddress


class TokenPricePayload(Struct, frozen=True, forbid_unknown_fields=True):
    network: Network

    address: TokenAddress
    """Token whose price changed"""

    processed_at: datetime

    price_sats: Optional[float] = None
    """Price of one whole token in sats, null when no pool quotes the token"""

    protocol: Optional[str] = None
    """Trading protocol the price was observed on"""
