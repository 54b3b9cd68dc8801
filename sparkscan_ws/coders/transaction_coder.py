"""Transaction coder: strict decoding with a best-effort fallback."""

from __future__ import annotations
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, TypeVar

from loguru import logger

from sparkscan_ws.coders.base_coder import StrictCoder
from sparkscan_ws.errors import InvalidShapeError, SchemaViolationError
from sparkscan_ws.topic import TopicFamily
from sparkscan_ws.types.common import Network, parse_rfc3339
from sparkscan_ws.types.message import TransactionMessage
from sparkscan_ws.types.transaction import (
    TRANSACTION_FIELDS,
    TransactionPayload,
    TransactionStatus,
    TransactionType,
)

UNKNOWN_TRANSACTION_ID = "unknown"

E = TypeVar("E", bound=Enum)


def _optional_str(obj: dict[str, Any], key: str) -> Optional[str]:
    value = obj.get(key)
    return value if isinstance(value, str) else None


def _enum_or_default(obj: dict[str, Any], key: str, enum_cls: type[E], default: E) -> E:
    value = obj.get(key)
    if not isinstance(value, str):
        return default
    try:
        return enum_cls(value)
    except ValueError:
        return default


def build_fallback_transaction_payload(obj: dict[str, Any]) -> TransactionPayload:
    """Builds a transaction payload from any JSON object without failing.

    Missing or unparseable required fields fall back to defaults: id "unknown",
    network REGTEST, type UNKNOWN, status PENDING, processed_at now (UTC).
    Optional string fields are copied through without validation. The received
    ``token_io_details`` is kept under ``original`` and every unrecognized
    top-level key under ``unmapped_fields``.

    Raises:
        InvalidShapeError: if ``obj`` is not a JSON object
    """
    if not isinstance(obj, dict):
        raise InvalidShapeError(f"Expected JSON object, got {type(obj).__name__}")

    token_io_details: dict[str, Any] = {}
    if "token_io_details" in obj:
        token_io_details["original"] = obj["token_io_details"]

    unmapped = {key: value for key, value in obj.items() if key not in TRANSACTION_FIELDS}
    if unmapped:
        token_io_details["unmapped_fields"] = unmapped

    transaction_id = _optional_str(obj, "id")
    return TransactionPayload(
        id=transaction_id if transaction_id is not None else UNKNOWN_TRANSACTION_ID,
        network=_enum_or_default(obj, "network", Network, Network.REGTEST),
        type=_enum_or_default(obj, "type", TransactionType, TransactionType.UNKNOWN),
        status=_enum_or_default(obj, "status", TransactionStatus, TransactionStatus.PENDING),
        processed_at=parse_rfc3339(obj.get("processed_at")) or datetime.now(timezone.utc),
        amount_sats=_optional_str(obj, "amount_sats"),
        token_amount=_optional_str(obj, "token_amount"),
        token_address=_optional_str(obj, "token_address"),
        from_identifier=_optional_str(obj, "from_identifier"),
        to_identifier=_optional_str(obj, "to_identifier"),
        bitcoin_txid=_optional_str(obj, "bitcoin_txid"),
        token_io_details=token_io_details or None,
        updated_at=parse_rfc3339(obj.get("updated_at")),
        expired_time=parse_rfc3339(obj.get("expired_time")),
    )


class TransactionCoder(StrictCoder):
    """Coder for transaction topics.

    Transactions are the audit trail, so a record that fails strict validation
    is rebuilt by ``build_fallback_transaction_payload`` instead of dropped.
    """

    def __init__(self):
        super().__init__("transaction", TopicFamily.TRANSACTION, TransactionMessage)

    def decode(self, value: Any) -> TransactionMessage:
        try:
            return super().decode(value)
        except SchemaViolationError as e:
            if not isinstance(value, dict):
                raise InvalidShapeError(f"Expected JSON object for transaction, got {type(value).__name__}") from e
            logger.warning(f"Strict transaction decode failed, using fallback: {e}")
            return TransactionMessage(data=build_fallback_transaction_payload(value))
