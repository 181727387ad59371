"""
Pytest fixtures for the settlement test suite.

Provides:
- Structured logging configuration and log capture
- Invoice and reference data builders
- A deterministic clock and a recording payment submitter
"""

import json
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from io import StringIO

import pytest

from settlement_kernel.domain.clock import DeterministicClock
from settlement_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from settlement_modules.invoice_payment.models import (
    BankDetail,
    Counterparty,
    CurrencyRef,
    ExchangeRateRef,
    Invoice,
    InvoiceSide,
    LineItem,
    PaymentMethodDescriptor,
    PaymentType,
    ReferenceData,
)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture settlement logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            validate_allocation(...)
            logs = captured_logs()
            assert any(r["message"] == "payment_validation_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("settlement")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Reference data
# =============================================================================

CASH_METHOD = PaymentMethodDescriptor(method_id="pm-cash", name="Cash")
CHEQUE_METHOD = PaymentMethodDescriptor(
    method_id="pm-cheque", name="Cheque", requires_cheque_number=True,
)
TRANSFER_METHOD = PaymentMethodDescriptor(
    method_id="pm-transfer", name="Bank Transfer", requires_bank_details=True,
)


@pytest.fixture
def reference_data() -> ReferenceData:
    """USD system currency, a EUR rate, and cash / cheque / transfer types."""
    return ReferenceData(
        payment_types=(
            PaymentType("pt-cash", "Cash", code="CASH", method=CASH_METHOD),
            PaymentType("pt-cheque", "Cheque", code="CHQ", method=CHEQUE_METHOD),
            PaymentType("pt-transfer", "Transfer", code="TRF", method=TRANSFER_METHOD),
            PaymentType(
                "pt-retired", "Retired", code="OLD", method=CASH_METHOD, is_active=False,
            ),
            PaymentType(
                "pt-receipts", "Receipts only", code="RCP", method=CASH_METHOD,
                used_in_creditor_payments=False,
            ),
        ),
        bank_details=(
            BankDetail("bank-1", "First Bank", branch="Downtown"),
            BankDetail("bank-2", "Second Bank"),
        ),
        currencies=(
            CurrencyRef("usd", "USD", "US Dollar", "$", is_default=True),
            CurrencyRef("eur", "EUR", "Euro", "€"),
            CurrencyRef("gbp", "GBP", "Pound Sterling", "£"),
        ),
        exchange_rates=(
            ExchangeRateRef("rate-eur-usd", "eur", "usd", Decimal("1.10")),
        ),
    )


# =============================================================================
# Invoices
# =============================================================================


@pytest.fixture
def make_invoice():
    """
    Factory for invoices.

    ``items`` is a list of ``(line_total, already_paid)`` pairs; ids are
    ``line-1``, ``line-2``, ...  ``total_amount`` defaults to the sum of line
    totals and ``paid_amount`` to the sum of amounts already paid.
    """

    def _make(
        items=((Decimal("100.00"), Decimal("0")),),
        *,
        side=InvoiceSide.PURCHASE,
        invoice_date=date(2024, 3, 10),
        currency_id="usd",
        exchange_rate=Decimal("1"),
        exchange_rate_id=None,
        total_amount=None,
        paid_amount=None,
        offsettable_balance=Decimal("0"),
        account_id="acct-payable",
        currency_symbol="$",
    ) -> Invoice:
        line_items = tuple(
            LineItem(f"line-{n}", Decimal(total), Decimal(paid))
            for n, (total, paid) in enumerate(items, start=1)
        )
        return Invoice(
            invoice_id="inv-1",
            side=side,
            invoice_date=invoice_date,
            currency_id=currency_id,
            exchange_rate=exchange_rate,
            exchange_rate_id=exchange_rate_id,
            total_amount=(
                total_amount if total_amount is not None
                else sum((i.line_total for i in line_items), Decimal("0"))
            ),
            paid_amount=(
                paid_amount if paid_amount is not None
                else sum((i.already_paid for i in line_items), Decimal("0"))
            ),
            line_items=line_items,
            counterparty=Counterparty("vendor-1", "Acme Supplies", offsettable_balance),
            account_id=account_id,
            currency_symbol=currency_symbol,
        )

    return _make


@pytest.fixture
def invoice(make_invoice) -> Invoice:
    """Three lines with remaining balances 100, 50 and 0."""
    return make_invoice([
        (Decimal("100.00"), Decimal("0")),
        (Decimal("80.00"), Decimal("30.00")),
        (Decimal("40.00"), Decimal("40.00")),
    ])


# =============================================================================
# Collaborators
# =============================================================================


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock(datetime(2024, 3, 15, 9, 30, tzinfo=timezone.utc))


class RecordingSubmitter:
    """PaymentSubmitter that keeps every call and returns a canned response."""

    def __init__(self, response=None, error=None):
        self.calls = []
        self.response = response if response is not None else {"success": True}
        self.error = error

    def record_payment(self, invoice_id, side, payload):
        self.calls.append((invoice_id, side, payload))
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def submitter() -> RecordingSubmitter:
    return RecordingSubmitter()


@pytest.fixture
def failing_submitter() -> RecordingSubmitter:
    return RecordingSubmitter(error=ConnectionError("record-payment endpoint unavailable"))
