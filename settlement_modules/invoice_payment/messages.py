"""
Invoice Payment Messages (``settlement_modules.invoice_payment.messages``).

Responsibility
--------------
User-facing text for validation issues.  Templates are plain
``str.format`` strings keyed by issue code, so a caller can swap or
translate them without touching the validation engine.

Architecture position
---------------------
**Modules layer** -- presentation helper.  Pure; ZERO I/O.

Invariants enforced
-------------------
* Every issue code has a default template; no blocking condition is silent.
* Amounts are shown with the currency symbol and a fixed number of
  decimal places; dates ISO style.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import fields
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any

from settlement_kernel.logging_config import get_logger
from settlement_modules.invoice_payment.models import (
    AccountRequired,
    InsufficientBalance,
    InvoiceSide,
    PaymentIssue,
    PaymentMethodKind,
)

logger = get_logger("modules.invoice_payment.messages")

ACCOUNT_REQUIRED_FOR_BALANCE_OFFSET = "ACCOUNT_REQUIRED_FOR_BALANCE_OFFSET"

DEFAULT_TEMPLATES: Mapping[str, str] = {
    "NEGATIVE_ITEM_PAYMENT": "Payment for item {item_id} cannot be negative ({amount})",
    "ITEM_PAYMENT_EXCEEDS_REMAINING": "Payment cannot exceed remaining balance of {remaining_balance}",
    "PAYMENT_TYPE_REQUIRED": "Payment type is required",
    "UNKNOWN_PAYMENT_TYPE": "Payment type {payment_type_id} is not available",
    "CHEQUE_NUMBER_REQUIRED": "Cheque number is required for this payment type",
    "BANK_DETAILS_REQUIRED": "Bank details are required for this payment type",
    "NO_OFFSETTABLE_BALANCE": "No {counterparty} deposit balance available",
    "INSUFFICIENT_BALANCE": (
        "Total payment amount ({payment_total}) cannot exceed available "
        "balance of {available_in_invoice_currency}"
    ),
    "ZERO_PAYMENT_AMOUNT": "Enter a payment amount for at least one item",
    "PAYMENT_EXCEEDS_INVOICE_BALANCE": (
        "Total payment amount ({payment_total}) cannot exceed balance of {invoice_balance}"
    ),
    "CURRENCY_REQUIRED": "Currency is required",
    "EXCHANGE_RATE_REQUIRED": "Exchange rate is required and must be greater than 0",
    "TRANSACTION_DATE_REQUIRED": "Transaction date is required",
    "TRANSACTION_DATE_BEFORE_INVOICE_DATE": (
        "Transaction date cannot be earlier than invoice date ({invoice_date})"
    ),
    "ACCOUNT_REQUIRED": "{account} account is required",
    ACCOUNT_REQUIRED_FOR_BALANCE_OFFSET: (
        "{account} account is required for account balance payments. Please "
        "select an account or configure a linked account for account balance."
    ),
}

# Rates are shown as entered, not as money
_PLAIN_DECIMAL_FIELDS = frozenset({"exchange_rate"})


def format_amount(amount: Decimal, currency_symbol: str = "", places: int = 2) -> str:
    """``1234.5`` -> ``"$1,234.50"`` for symbol ``"$"``; the sign leads the symbol."""
    quantum = Decimal(1).scaleb(-places)
    rounded = amount.quantize(quantum, rounding=ROUND_HALF_UP)
    sign = "-" if rounded < 0 else ""
    return f"{sign}{currency_symbol}{abs(rounded):,.{places}f}"


def _template_key(issue: PaymentIssue) -> str:
    if isinstance(issue, AccountRequired) and issue.method_kind is PaymentMethodKind.BALANCE_OFFSET:
        return ACCOUNT_REQUIRED_FOR_BALANCE_OFFSET
    return issue.code


def _context(
    issue: PaymentIssue,
    currency_symbol: str,
    side: InvoiceSide | None,
    places: int,
) -> dict[str, Any]:
    context: dict[str, Any] = {}
    for f in fields(issue):
        value = getattr(issue, f.name)
        if isinstance(value, Decimal) and f.name not in _PLAIN_DECIMAL_FIELDS:
            value = format_amount(value, currency_symbol, places)
        elif isinstance(value, date):
            value = value.isoformat()
        elif isinstance(value, Enum):
            value = value.value
        context[f.name] = value

    if isinstance(issue, InsufficientBalance):
        context["available_in_invoice_currency"] = format_amount(
            issue.available_in_invoice_currency, currency_symbol, places,
        )
    if isinstance(issue, AccountRequired):
        side = issue.side
        context["account"] = side.account_label.capitalize()
    context["counterparty"] = side.counterparty_label if side is not None else "counterparty"
    return context


def render_issue(
    issue: PaymentIssue,
    currency_symbol: str = "",
    templates: Mapping[str, str] | None = None,
    *,
    side: InvoiceSide | None = None,
    places: int = 2,
) -> str:
    """Message text for one issue.

    ``templates`` overrides the defaults per key; keys missing from it fall
    back to ``DEFAULT_TEMPLATES``.
    """
    key = _template_key(issue)
    template = (templates or {}).get(key) or DEFAULT_TEMPLATES.get(key)
    if template is None:
        logger.warning("message_template_missing", extra={"issue_code": issue.code})
        return issue.code
    return template.format(**_context(issue, currency_symbol, side, places))


def render_issues(
    issues: Iterable[PaymentIssue],
    currency_symbol: str = "",
    templates: Mapping[str, str] | None = None,
    *,
    side: InvoiceSide | None = None,
    places: int = 2,
) -> dict[str, str]:
    """Field name -> message, first issue per field wins."""
    messages: dict[str, str] = {}
    for issue in issues:
        if issue.field not in messages:
            messages[issue.field] = render_issue(
                issue, currency_symbol, templates, side=side, places=places,
            )
    return messages


def render_issue_lists(
    issues: Iterable[PaymentIssue],
    currency_symbol: str = "",
    templates: Mapping[str, str] | None = None,
    *,
    side: InvoiceSide | None = None,
    places: int = 2,
) -> dict[str, list[str]]:
    """Field name -> every message for that field, in issue order."""
    messages: dict[str, list[str]] = {}
    for issue in issues:
        messages.setdefault(issue.field, []).append(
            render_issue(issue, currency_symbol, templates, side=side, places=places),
        )
    return messages
