"""Tests for transaction decoding and the fallback builder."""

from datetime import datetime, timezone

import msgspec
import pytest

from conftest import PROCESSED_AT, SPARK_ADDRESS, TOKEN_ADDRESS
from sparkscan_ws.coders.message_coder import parse_message_for_topic
from sparkscan_ws.coders.transaction_coder import TransactionCoder, build_fallback_transaction_payload
from sparkscan_ws.errors import InvalidJsonError, InvalidShapeError, SchemaViolationError
from sparkscan_ws.topic import Balances, TransactionIn, TransactionNetwork, Transactions
from sparkscan_ws.types.common import Network
from sparkscan_ws.types.message import TransactionMessage
from sparkscan_ws.types.transaction import TransactionStatus, TransactionType


class TestStrictTransaction:
    """Test transactions that match the schema."""

    def test_valid(self, transaction_payload):
        message = parse_message_for_topic(Transactions(), msgspec.json.encode(transaction_payload))
        assert isinstance(message, TransactionMessage)
        assert message.data.id == transaction_payload["id"]
        assert message.data.type is TransactionType.SPARK_TRANSFER
        assert message.data.status is TransactionStatus.CONFIRMED
        assert message.data.token_io_details is None
        assert message.data.unmapped_fields == {}
        assert message.network() == "Regtest"
        assert not message.data.is_token_transaction

    def test_token_transaction(self, transaction_payload):
        transaction_payload.update(
            type="token_transfer",
            token_address=TOKEN_ADDRESS,
            token_amount="42",
            token_io_details={"inputs": [], "outputs": [{"amount": "42"}]},
        )
        message = parse_message_for_topic(TransactionNetwork("regtest"), msgspec.json.encode(transaction_payload))
        assert message.data.is_token_transaction
        assert message.data.token_io_details == {"inputs": [], "outputs": [{"amount": "42"}]}

    def test_wrapped_in_message_string(self, transaction_payload):
        raw = msgspec.json.encode({"message": msgspec.json.encode(transaction_payload).decode()})
        message = parse_message_for_topic(TransactionIn("regtest", SPARK_ADDRESS), raw)
        assert message.data.status is TransactionStatus.CONFIRMED


class TestTransactionFallback:
    """Test transactions that fail strict decoding."""

    def test_unknown_field_is_preserved(self, transaction_payload):
        transaction_payload["fee_sats"] = "12"
        message = parse_message_for_topic(Transactions(), msgspec.json.encode(transaction_payload))
        data = message.data
        assert data.id == transaction_payload["id"]
        assert data.type is TransactionType.SPARK_TRANSFER
        assert data.status is TransactionStatus.CONFIRMED
        assert data.processed_at == datetime(2025, 6, 1, 12, 30, tzinfo=timezone.utc)
        assert data.unmapped_fields == {"fee_sats": "12"}
        assert data.token_io_details == {"unmapped_fields": {"fee_sats": "12"}}

    def test_partial_record(self):
        message = parse_message_for_topic(Transactions(), b'{"status": "weird", "foo": 1}')
        data = message.data
        assert data.id == "unknown"
        assert data.network is Network.REGTEST
        assert data.type is TransactionType.UNKNOWN
        assert data.status is TransactionStatus.PENDING
        assert data.processed_at.tzinfo is not None
        assert data.unmapped_fields == {"foo": 1}

    def test_empty_object(self):
        before = datetime.now(timezone.utc)
        data = build_fallback_transaction_payload({})
        assert data.id == "unknown"
        assert data.processed_at >= before
        assert data.token_io_details is None
        assert data.amount_sats is None

    def test_original_token_io_details_kept(self, transaction_payload):
        transaction_payload["token_io_details"] = "not-an-object"
        message = parse_message_for_topic(Transactions(), msgspec.json.encode(transaction_payload))
        assert message.data.token_io_details == {"original": "not-an-object"}

    def test_optional_strings_copied_without_validation(self, transaction_payload):
        transaction_payload.update(amount_sats="lots", token_address="not-a-token", updated_at="yesterday")
        message = parse_message_for_topic(Transactions(), msgspec.json.encode(transaction_payload))
        assert message.data.amount_sats == "lots"
        assert message.data.token_address == "not-a-token"
        assert message.data.updated_at is None

    def test_non_string_optionals_dropped(self):
        data = build_fallback_transaction_payload({"id": 7, "amount_sats": 100, "network": "MAINNET"})
        assert data.id == "unknown"
        assert data.amount_sats is None
        assert data.network is Network.MAINNET
        assert data.unmapped_fields == {}

    def test_timestamps_normalized_to_utc(self):
        data = build_fallback_transaction_payload(
            {"processed_at": "2025-06-01T14:30:00+02:00", "expired_time": PROCESSED_AT}
        )
        assert data.processed_at == datetime(2025, 6, 1, 12, 30, tzinfo=timezone.utc)
        assert data.processed_at.utcoffset().total_seconds() == 0
        assert data.expired_time == datetime(2025, 6, 1, 12, 30, tzinfo=timezone.utc)

    @pytest.mark.parametrize("raw", [b"[1, 2]", b"42", b"null", b'"\\"text\\""'])
    def test_non_object_is_invalid_shape(self, raw):
        with pytest.raises(InvalidShapeError):
            parse_message_for_topic(Transactions(), raw)

    def test_builder_rejects_non_object(self):
        with pytest.raises(InvalidShapeError):
            build_fallback_transaction_payload(["id"])

    def test_malformed_json_is_not_rescued(self):
        with pytest.raises(InvalidJsonError):
            parse_message_for_topic(Transactions(), b'{"id": ')

    def test_coder_direct(self):
        message = TransactionCoder().decode({"id": "abc"})
        assert isinstance(message, TransactionMessage)
        assert message.data.id == "abc"

    def test_multi_transfer_keeps_io_details_and_unmapped_fields(self):
        io_details = {
            "inputs": [{"address": SPARK_ADDRESS, "amount": "70"}],
            "outputs": [{"address": SPARK_ADDRESS, "amount": "30"}, {"address": SPARK_ADDRESS, "amount": "40"}],
        }
        payload = {
            "id": "multi-1",
            "network": "MAINNET",
            "type": "token_multi_transfer",
            "status": "confirmed",
            "processed_at": PROCESSED_AT,
            "token_address": TOKEN_ADDRESS,
            "token_amount": "70",
            "token_io_details": io_details,
            "extra_key": 5,
        }
        message = parse_message_for_topic(Transactions(), msgspec.json.encode(payload))
        data = message.data
        assert data.type is TransactionType.TOKEN_MULTI_TRANSFER
        assert data.is_token_transaction
        assert data.token_io_details == {"original": io_details, "unmapped_fields": {"extra_key": 5}}
        assert data.unmapped_fields == {"extra_key": 5}


class TestIdentifierValidation:
    """Test that counterparty identifiers are carried as received while balance addresses are checked."""

    BAD_ADDRESS = "sp1NOT-VALID!!"

    def test_transaction_identifier_kept_verbatim(self, transaction_payload):
        transaction_payload["from_identifier"] = self.BAD_ADDRESS
        message = parse_message_for_topic(Transactions(), msgspec.json.encode(transaction_payload))
        assert message.data.from_identifier == self.BAD_ADDRESS
        assert message.data.type is TransactionType.SPARK_TRANSFER
        assert message.data.unmapped_fields == {}

    def test_balance_address_rejected(self, balance_payload):
        balance_payload["address"] = self.BAD_ADDRESS
        with pytest.raises(SchemaViolationError):
            parse_message_for_topic(Balances(), msgspec.json.encode(balance_payload))
