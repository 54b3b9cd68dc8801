# Copyright (C) 2025, Ionic.

# This program is licensed under the Apache License 2.0.
# See LICENSE or go to <https://www.apache.org/licenses/LICENSE-2.0> for full license details.

"""Transaction update payload"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from msgspec import Struct

from sparkscan_ws.types.common import Network


class TransactionType(Enum):
    SPARK_TRANSFER = "spark_transfer"
    SPARK_TO_LIGHTNING = "spark_to_lightning"
    LIGHTNING_TO_SPARK = "lightning_to_spark"
    BITCOIN_DEPOSIT = "bitcoin_deposit"
    BITCOIN_WITHDRAWAL = "bitcoin_withdrawal"
    TOKEN_MINT = "token_mint"
    TOKEN_TRANSFER = "token_transfer"
    TOKEN_MULTI_TRANSFER = "token_multi_transfer"
    TOKEN_BURN = "token_burn"
    UNKNOWN = "unknown"


class TransactionStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    SENT = "sent"
    FAILED = "failed"
    EXPIRED = "expired"


class TransactionPayload(Struct, frozen=True, forbid_unknown_fields=True):
    id: str
    """Transaction identifier, "unknown" when rebuilt from a partial record"""

    network: Network

    type: TransactionType

    status: TransactionStatus

    processed_at: datetime

    amount_sats: Optional[str] = None
    """Amount in sats as a decimal string, carried as received"""

    token_amount: Optional[str] = None

    token_address: Optional[str] = None
    """Token identifier (btkn1...) of token transactions, carried as received"""

    from_identifier: Optional[str] = None
    """Sender: Spark address, bitcoin address or a label such as "Lightning Network" """

    to_identifier: Optional[str] = None

    bitcoin_txid: Optional[str] = None

    token_io_details: Optional[dict[str, Any]] = None
    """
    Token inputs/outputs of a token transaction.

    For records rebuilt by the fallback decoder this holds the received value
    under "original" and every unrecognized top-level key under "unmapped_fields".
    """

    updated_at: Optional[datetime] = None

    expired_time: Optional[datetime] = None

    @property
    def is_token_transaction(self) -> bool:
        return self.type in (
            TransactionType.TOKEN_MINT,
            TransactionType.TOKEN_TRANSFER,
            TransactionType.TOKEN_MULTI_TRANSFER,
            TransactionType.TOKEN_BURN,
        )

    @property
    def unmapped_fields(self) -> dict[str, Any]:
        """Top-level keys preserved by the fallback decoder, empty for strictly decoded records."""
        if not self.token_io_details:
            return {}
        unmapped = self.token_io_details.get("unmapped_fields")
        return unmapped if isinstance(unmapped, dict) else {}


TRANSACTION_FIELDS: frozenset[str] = frozenset(TransactionPayload.__struct_fields__)
