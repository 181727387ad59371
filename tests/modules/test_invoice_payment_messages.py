"""Tests for validation issue message rendering."""

from datetime import date
from decimal import Decimal

import pytest

from settlement_modules.invoice_payment.messages import (
    DEFAULT_TEMPLATES,
    format_amount,
    render_issue,
    render_issue_lists,
    render_issues,
)
from settlement_modules.invoice_payment.models import (
    AccountRequired,
    BankDetailsRequired,
    ChequeNumberRequired,
    CurrencyRequired,
    ExchangeRateRequired,
    InsufficientBalance,
    InvoiceSide,
    ItemPaymentExceedsRemaining,
    NegativeItemPayment,
    NoOffsettableBalance,
    PaymentExceedsInvoiceBalance,
    PaymentIssue,
    PaymentMethodKind,
    PaymentTypeRequired,
    TransactionDateBeforeInvoiceDate,
    TransactionDateRequired,
    UnknownPaymentType,
    ZeroPaymentAmount,
)

ALL_ISSUE_TYPES = (
    NegativeItemPayment,
    ItemPaymentExceedsRemaining,
    PaymentTypeRequired,
    UnknownPaymentType,
    ChequeNumberRequired,
    BankDetailsRequired,
    NoOffsettableBalance,
    InsufficientBalance,
    ZeroPaymentAmount,
    PaymentExceedsInvoiceBalance,
    CurrencyRequired,
    ExchangeRateRequired,
    TransactionDateRequired,
    TransactionDateBeforeInvoiceDate,
    AccountRequired,
)


class TestFormatAmount:

    @pytest.mark.parametrize("amount,symbol,places,expected", [
        (Decimal("1234.5"), "$", 2, "$1,234.50"),
        (Decimal("0.005"), "", 2, "0.01"),
        (Decimal("99.994"), "€", 2, "€99.99"),
        (Decimal("1500"), "¥", 0, "¥1,500"),
    ])
    def test_formatting(self, amount, symbol, places, expected):
        assert format_amount(amount, symbol, places) == expected


class TestRenderIssue:

    def test_every_code_has_a_template(self):
        assert {t.code for t in ALL_ISSUE_TYPES} <= set(DEFAULT_TEMPLATES)

    def test_remaining_balance_message(self):
        issue = ItemPaymentExceedsRemaining("line-1", Decimal("120"), Decimal("100"))
        assert render_issue(issue, "$") == "Payment cannot exceed remaining balance of $100.00"

    def test_invoice_balance_message(self):
        issue = PaymentExceedsInvoiceBalance(Decimal("300"), Decimal("200"), Decimal("0.01"))
        assert render_issue(issue, "$") == (
            "Total payment amount ($300.00) cannot exceed balance of $200.00"
        )

    def test_insufficient_balance_shown_in_invoice_currency(self):
        issue = InsufficientBalance(
            payment_total=Decimal("600"),
            system_equivalent=Decimal("1200"),
            available_balance=Decimal("1000"),
            exchange_rate=Decimal("2"),
        )
        assert render_issue(issue, "€") == (
            "Total payment amount (€600.00) cannot exceed available balance of €500.00"
        )

    def test_counterparty_follows_side(self):
        issue = NoOffsettableBalance(Decimal("0"))
        assert render_issue(issue, side=InvoiceSide.PURCHASE) == "No vendor deposit balance available"
        assert render_issue(issue, side=InvoiceSide.SALES) == "No customer deposit balance available"

    def test_invoice_date_in_iso_form(self):
        issue = TransactionDateBeforeInvoiceDate(date(2024, 3, 1), date(2024, 3, 10))
        assert render_issue(issue) == (
            "Transaction date cannot be earlier than invoice date (2024-03-10)"
        )

    def test_account_message_per_side_and_method(self):
        direct = AccountRequired(PaymentMethodKind.DIRECT_PAYMENT, InvoiceSide.SALES)
        offset = AccountRequired(PaymentMethodKind.BALANCE_OFFSET, InvoiceSide.PURCHASE)
        assert render_issue(direct) == "Receivable account is required"
        assert render_issue(offset).startswith(
            "Payable account is required for account balance payments."
        )

    def test_exchange_rate_not_formatted_as_money(self):
        issue = ExchangeRateRequired(Decimal("0"))
        assert render_issue(issue, "$") == (
            "Exchange rate is required and must be greater than 0"
        )

    def test_override_template(self):
        issue = CurrencyRequired()
        assert render_issue(issue, templates={"CURRENCY_REQUIRED": "Pick a currency"}) == (
            "Pick a currency"
        )

    def test_missing_template_falls_back_to_code(self, captured_logs):
        class Unlisted(PaymentIssue):
            code = "UNLISTED"

        assert render_issue(Unlisted()) == "UNLISTED"
        warnings = [r for r in captured_logs() if r["message"] == "message_template_missing"]
        assert warnings[0]["issue_code"] == "UNLISTED"


class TestRenderIssues:

    def test_first_issue_per_field_wins(self):
        issues = (
            NoOffsettableBalance(Decimal("0")),
            InsufficientBalance(Decimal("10"), Decimal("10"), Decimal("0"), Decimal("1")),
            TransactionDateRequired(),
        )
        assert render_issues(issues, "$", side=InvoiceSide.PURCHASE) == {
            "depositAmount": "No vendor deposit balance available",
            "transactionDate": "Transaction date is required",
        }

    def test_item_fields_are_distinct(self):
        issues = (
            NegativeItemPayment("line-1", Decimal("-5")),
            NegativeItemPayment("line-2", Decimal("-1")),
        )
        assert render_issues(issues, "$") == {
            "itemPayment_line-1": "Payment for item line-1 cannot be negative (-$5.00)",
            "itemPayment_line-2": "Payment for item line-2 cannot be negative (-$1.00)",
        }

    def test_lists_keep_every_issue_per_field(self):
        issues = (
            NoOffsettableBalance(Decimal("0")),
            InsufficientBalance(Decimal("10"), Decimal("10"), Decimal("0"), Decimal("1")),
            TransactionDateRequired(),
        )
        assert render_issue_lists(issues, "$", side=InvoiceSide.PURCHASE) == {
            "depositAmount": [
                "No vendor deposit balance available",
                "Total payment amount ($10.00) cannot exceed available balance of $0.00",
            ],
            "transactionDate": ["Transaction date is required"],
        }

    def test_lists_empty_without_issues(self):
        assert render_issue_lists(()) == {}
