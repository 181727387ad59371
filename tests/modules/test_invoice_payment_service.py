"""
Tests for InvoicePaymentService.

Verifies wizard defaults, reference data filtering, and that the
submitter only ever receives a payload that passed every rule.
"""

from datetime import date
from decimal import Decimal

import pytest

from settlement_kernel.exceptions import InvalidWizardTransitionError
from settlement_modules.invoice_payment.config import InvoicePaymentConfig
from settlement_modules.invoice_payment.models import InvoiceSide
from settlement_modules.invoice_payment.service import (
    InvoicePaymentService,
    SubmissionStatus,
)


@pytest.fixture
def service(reference_data, submitter, clock) -> InvoicePaymentService:
    return InvoicePaymentService(InvoicePaymentConfig(), reference_data, submitter, clock)


class TestStart:

    def test_transaction_date_from_clock(self, service, invoice):
        wizard = service.start(invoice)
        assert wizard.details.transaction_date == date(2024, 3, 15)
        assert wizard.details.account_id == "acct-payable"

    def test_tolerance_from_config(self, reference_data, submitter, clock, invoice):
        config = InvoicePaymentConfig(overpayment_tolerance=Decimal("0.50"))
        service = InvoicePaymentService(config, reference_data, submitter, clock)
        assert service.start(invoice).tolerance == Decimal("0.50")


class TestOptions:

    def test_purchase_options_exclude_inactive_and_receipts(self, service):
        ids = [pt.payment_type_id for pt in service.payment_type_options()]
        assert ids == ["pt-cash", "pt-cheque", "pt-transfer"]

    def test_sales_options_include_receipts(self, service):
        ids = [pt.payment_type_id for pt in service.payment_type_options(InvoiceSide.SALES)]
        assert "pt-receipts" in ids
        assert "pt-retired" not in ids

    def test_bank_detail_options(self, service):
        assert [b.label for b in service.bank_detail_options()] == [
            "First Bank - Downtown", "Second Bank",
        ]


class TestSubmit:

    def test_successful_submission(self, service, invoice, submitter, captured_logs):
        wizard = service.start(invoice)
        wizard.select_payment_type("pt-cash")
        wizard.proceed()
        wizard.pay_all_items()

        outcome = service.submit(wizard)

        assert outcome.status is SubmissionStatus.SUBMITTED
        assert outcome.is_success
        assert outcome.payload.payment_amount == Decimal("150.00")
        assert outcome.response == {"success": True}
        assert submitter.calls == [("inv-1", InvoiceSide.PURCHASE, outcome.payload)]

        submitted = [r for r in captured_logs() if r["message"] == "invoice_payment_submitted"]
        assert submitted[0]["invoice_id"] == "inv-1"
        assert submitted[0]["payment_amount"] == "150.00"

    def test_rejected_submission_never_reaches_submitter(self, service, invoice, submitter):
        wizard = service.start(invoice)
        wizard.select_payment_type("pt-cash")
        wizard.proceed()

        outcome = service.submit(wizard)

        assert outcome.status is SubmissionStatus.REJECTED
        assert not outcome.is_success
        assert outcome.payload is None
        assert [i.code for i in outcome.issues] == ["ZERO_PAYMENT_AMOUNT"]
        assert submitter.calls == []

    def test_submit_from_details_step_raises(self, service, invoice):
        with pytest.raises(InvalidWizardTransitionError):
            service.submit(service.start(invoice))

    def test_submitter_failure_is_logged_and_reraised(
        self, reference_data, failing_submitter, clock, invoice, captured_logs,
    ):
        service = InvoicePaymentService(
            InvoicePaymentConfig(), reference_data, failing_submitter, clock,
        )
        wizard = service.start(invoice)
        wizard.select_payment_type("pt-cash")
        wizard.proceed()
        wizard.set_item_payment("line-1", Decimal("25"))

        with pytest.raises(ConnectionError):
            service.submit(wizard)

        failures = [
            r for r in captured_logs() if r["message"] == "invoice_payment_submission_failed"
        ]
        assert failures[0]["level"] == "ERROR"
        assert failures[0]["invoice_id"] == "inv-1"
        assert failures[0]["exc_type"] == "ConnectionError"


class TestIssueMessages:

    def test_messages_keyed_by_field(self, service, invoice):
        wizard = service.start(invoice)
        wizard.select_payment_type("pt-cheque")
        wizard.set_account("")
        wizard.validate()

        assert service.issue_messages(wizard) == {
            "chequeNumber": "Cheque number is required for this payment type",
            "accountId": "Payable account is required",
        }

    def test_insufficient_balance_uses_invoice_symbol(self, service, make_invoice):
        wizard = service.start(make_invoice(offsettable_balance=Decimal("30")))
        wizard.select_balance_offset()
        assert wizard.proceed()
        wizard.set_item_payment("line-1", Decimal("40"))
        wizard.validate()

        assert service.issue_messages(wizard) == {
            "depositAmount": (
                "Total payment amount ($40.00) cannot exceed available balance of $30.00"
            ),
        }

    def test_empty_balance_reported_first(self, service, make_invoice):
        wizard = service.start(make_invoice())
        wizard.select_balance_offset()
        wizard.proceed()
        wizard.set_item_payment("line-1", Decimal("40"))
        wizard.validate()

        assert service.issue_messages(wizard) == {
            "depositAmount": "No vendor deposit balance available",
        }

    def test_all_messages_keep_both_balance_issues(self, service, make_invoice):
        wizard = service.start(make_invoice())
        wizard.select_balance_offset()
        wizard.proceed()
        wizard.set_item_payment("line-1", Decimal("40"))
        wizard.validate()

        assert service.all_issue_messages(wizard) == {
            "depositAmount": [
                "No vendor deposit balance available",
                "Total payment amount ($40.00) cannot exceed available balance of $0.00",
            ],
        }

    def test_custom_templates(self, service, invoice):
        wizard = service.start(invoice)
        wizard.select_payment_type("pt-cash")
        wizard.proceed()
        wizard.validate()

        messages = service.issue_messages(
            wizard, templates={"ZERO_PAYMENT_AMOUNT": "Nothing to pay"},
        )
        assert messages == {"paymentAmount": "Nothing to pay"}
