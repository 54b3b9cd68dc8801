# Copyright (C) 2025, Ionic.

# This program is licensed under the Apache License 2.0.
# See LICENSE or go to <https://www.apache.org/licenses/LICENSE-2.0> for full license details.

"""Balance update payload"""
from __future__ import annotations

from datetime import datetime

from msgspec import Struct

from sparkscan_ws.types.common import DecimalString, Network, SparkAddress


class BalancePayload(Struct, frozen=True, forbid_unknown_fields=True):
    address: SparkAddress
    """Spark address whose balance changed"""

    network: Network

    soft_balance: DecimalString
    """Balance in sats including pending incoming transfers"""

    hard_balance: DecimalString
    """Balance in sats of settled funds only"""

    processed_at: datetime
