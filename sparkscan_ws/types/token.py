# Copyright (C) 2025, Ionic.

# This program is licensed under the Apache License 2.0.
# See LICENSE or go to <https://www.apache.org/licenses/LICENSE-2.0> for full license details.

"""Token metadata payload"""
from __future__ import annotations

from datetime import datetime
from typing import Annotated, Optional

from msgspec import Meta, Struct

from sparkscan_ws.types.common import DecimalString, Network, TokenAddress


class TokenPayload(Struct, frozen=True, forbid_unknown_fields=True):
    network: Network

    address: TokenAddress

    ticker: str

    name: str

    decimals: Annotated[int, Meta(ge=0, le=255)]

    issuer_public_key: Optional[str] = None
    """Hex encoded public key of the issuer"""

    max_supply: Optional[DecimalString] = None
    """Zero means the supply is uncapped"""

    total_supply: Optional[DecimalString] = None

    is_freezable: Optional[bool] = None

    calculated_at: Optional[datetime] = None
    """When supply and holder statistics were last computed"""

    processed_at: Optional[datetime] = None
