"""
Tests for FineBook data models.
"""

import json
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

from finebook.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from finebook.models.ledger import (
    BankDetails,
    Book,
    BookType,
    MSBDetails,
    MSBDigitalMethod,
    MSBPaymentType,
    MSBStatus,
    Transaction,
    TransactionCategory,
    TransactionType,
    UpiDetails,
    User,
)
from finebook.models.results import ErrorKind, LedgerErrorCode, LedgerResult
from finebook.services.storage import encode_collection


class TestMSBDetails:
    """Tests for the remittance payload."""

    def test_cash_details_creation(self, make_details):
        details = make_details()
        assert details.payment_type == MSBPaymentType.CASH
        assert details.cash_details.token_code == "TK-1001"
        assert details.status == MSBStatus.PENDING

    def test_status_defaults_to_pending(self, make_details):
        fields = make_details().model_dump(exclude={"status"})
        details = MSBDetails.model_validate(fields)
        assert details.status == MSBStatus.PENDING

    def test_upi_details_creation(self, make_details):
        details = make_details(
            payment_type=MSBPaymentType.DIGITAL,
            digital_method=MSBDigitalMethod.UPI,
            cash_details=None,
            upi_details=UpiDetails(upi_id="carol@upi", receiver_name="Carol"),
        )
        assert details.upi_details.upi_id == "carol@upi"

    def test_cash_payment_rejects_bank_details(self, make_details):
        with pytest.raises(ValueError, match="exactly cash_details"):
            make_details(
                bank_details=BankDetails(account_number="123", holder_name="Carol"),
            )

    def test_digital_payment_requires_method(self, make_details):
        with pytest.raises(ValueError, match="require a digital method"):
            make_details(
                payment_type=MSBPaymentType.DIGITAL,
                cash_details=None,
                upi_details=UpiDetails(upi_id="carol@upi", receiver_name="Carol"),
            )

    def test_bank_method_rejects_upi_details(self, make_details):
        with pytest.raises(ValueError, match="exactly bank_details"):
            make_details(
                payment_type=MSBPaymentType.DIGITAL,
                digital_method=MSBDigitalMethod.BANK,
                cash_details=None,
                upi_details=UpiDetails(upi_id="carol@upi", receiver_name="Carol"),
            )

    def test_exchange_rate_must_be_positive(self, make_details):
        with pytest.raises(ValueError):
            make_details(exchange_rate=Decimal("0"))


class TestLedgerModels:
    """Tests for users, books and transactions."""

    def test_models_are_frozen(self):
        book = Book(id="b1", name="Savings")
        with pytest.raises(ValidationError):
            book.name = "Other"

    def test_book_type_defaults_to_general(self):
        assert Book(id="b1", name="Savings").type == BookType.GENERAL

    def test_naive_dates_are_read_as_utc(self):
        transaction = Transaction(
            id="t1",
            amount=Decimal("10"),
            type=TransactionType.EXPENSE,
            date=datetime(2024, 1, 1, 12, 0),
        )
        assert transaction.date.tzinfo == timezone.utc

    def test_only_msb_transactions_carry_details(self, make_details):
        with pytest.raises(ValueError, match="Only MSB transactions"):
            Transaction(
                id="t1",
                amount=Decimal("60000"),
                type=TransactionType.INCOME,
                date=datetime(2024, 1, 1, tzinfo=timezone.utc),
                category=TransactionCategory.GENERAL,
                msb_details=make_details(),
            )

    def test_negative_amount_rejected(self):
        with pytest.raises(ValueError):
            Transaction(
                id="t1",
                amount=Decimal("-1"),
                type=TransactionType.EXPENSE,
                date=datetime(2024, 1, 1, tzinfo=timezone.utc),
            )

    @pytest.mark.parametrize("amount", ["1e400", "0.12345678901234567891"])
    def test_amount_must_survive_json_number(self, amount):
        with pytest.raises(ValidationError, match="stored exactly"):
            Transaction(
                id="t1",
                amount=Decimal(amount),
                type=TransactionType.INCOME,
                date=datetime(2024, 1, 1, tzinfo=timezone.utc),
            )

    @pytest.mark.parametrize("amount", ["100.50", "0.1", "1e300", "123456789012.345"])
    def test_storable_amounts_accepted(self, amount):
        transaction = Transaction(
            id="t1",
            amount=Decimal(amount),
            type=TransactionType.INCOME,
            date=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
        assert transaction.amount == Decimal(amount)

    def test_remittance_amounts_are_bounded(self, make_details):
        with pytest.raises(ValidationError):
            make_details(receiving_amount=Decimal("1e400"))

    def test_user_lookup_helpers(self):
        transaction = Transaction(
            id="t1",
            amount=Decimal("5"),
            type=TransactionType.INCOME,
            date=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
        general = Book(id="b1", name="Home", transactions=(transaction,))
        remit = Book(id="b2", name="Remit", type=BookType.MSB)
        user = User(id="u1", email="a@x.com", password="pw", books=(general, remit))

        assert user.find_book("b2") is remit
        assert user.books_of_type(BookType.MSB) == (remit,)
        assert user.find_transaction("t1") == (general, transaction)
        assert user.find_transaction("missing") == (None, None)

    def test_password_not_in_repr(self):
        user = User(id="u1", email="a@x.com", password="s3cret-value")
        assert "s3cret-value" not in repr(user)

    def test_durable_record_shape(self):
        """camelCase keys, numeric amounts, absent optionals omitted."""
        transaction = Transaction(
            id="t1",
            description="Rent",
            amount=Decimal("100.50"),
            type=TransactionType.EXPENSE,
            date=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
        user = User(
            id="u1",
            name="Alice",
            phone_number="555-0100",
            email="a@x.com",
            password="pw",
            books=(Book(id="b1", name="Home", transactions=(transaction,)),),
        )

        record = json.loads(encode_collection([user]))

        assert record[0]["phoneNumber"] == "555-0100"
        stored = record[0]["books"][0]["transactions"][0]
        assert stored["amount"] == 100.5
        assert stored["category"] == "GENERAL"
        assert stored["date"].startswith("2024-01-01T00:00:00")
        assert "lastModified" not in stored
        assert "msbDetails" not in stored

    def test_msb_details_record_keys(self, make_details):
        transaction = Transaction(
            id="t1",
            amount=Decimal("60000"),
            type=TransactionType.INCOME,
            date=datetime(2024, 1, 1, tzinfo=timezone.utc),
            category=TransactionCategory.MSB,
            msb_details=make_details(),
        )
        dumped = json.loads(transaction.model_dump_json(by_alias=True, exclude_none=True))
        details = dumped["msbDetails"]

        assert details["receivingAmount"] == 60000
        assert details["cashDetails"]["tokenCode"] == "TK-1001"
        assert details["status"] == "PENDING"
        assert "digitalMethod" not in details


class TestLedgerResult:
    """Tests for returned operation results."""

    def test_ok_result(self):
        result = LedgerResult.ok("id-1")
        assert result.success is True
        assert bool(result) is True
        assert result.kind is None

    def test_failure_kinds(self):
        assert LedgerResult.fail(
            LedgerErrorCode.DUPLICATE_EMAIL, "x"
        ).kind == ErrorKind.VALIDATION
        assert LedgerResult.fail(
            LedgerErrorCode.INVALID_CREDENTIALS, "x"
        ).kind == ErrorKind.AUTH
        assert LedgerResult.fail(
            LedgerErrorCode.LAST_BOOK_OF_TYPE, "x"
        ).kind == ErrorKind.GUARD

    def test_every_code_has_a_kind(self):
        for code in LedgerErrorCode:
            assert LedgerResult.fail(code, "x").kind is not None


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        event = AuditEvent(
            event_type=AuditEventType.BOOK_CREATED,
            description="Book created",
        )
        assert event.severity == AuditSeverity.INFO
        assert event.is_user_action is True

    def test_audit_event_to_log_dict(self):
        event = AuditEventBuilder.book_created("u1", "b1", "Savings", "GENERAL")
        log_dict = event.to_log_dict()
        assert "event_id" in log_dict
        assert log_dict["event_type"] == "book_created"
        assert log_dict["details"]["name"] == "Savings"
        assert log_dict["user_id"] == "u1"

    def test_storage_failure_event(self):
        event = AuditEventBuilder.storage_failed("save", "disk full")
        assert event.event_type == AuditEventType.STORAGE_SAVE_FAILED
        assert event.severity == AuditSeverity.ERROR
        assert event.is_user_action is False

    def test_failed_login_has_no_user(self):
        event = AuditEventBuilder.login(None, "a@x.com", succeeded=False)
        assert event.event_type == AuditEventType.LOGIN_FAILED
        assert event.entity_id is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
