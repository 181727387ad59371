"""
Invoice Payment Validation Engine (``settlement_engines.payment_validation``).

Responsibility
--------------
Pure validation of one invoice payment attempt.  Every applicable rule is
evaluated and every failure is reported, so the form can show all problems
together:

1.  item amount negative                      -> NegativeItemPayment
2.  item amount above its remaining balance   -> ItemPaymentExceedsRemaining
3.  direct payment without a known type       -> PaymentTypeRequired / UnknownPaymentType
4.  type's method needs a cheque number       -> ChequeNumberRequired
5.  type's method needs bank details          -> BankDetailsRequired
6.  balance offset: nothing to draw, or total
    (converted to system currency) above it   -> NoOffsettableBalance / InsufficientBalance
7.  payment total not positive                -> ZeroPaymentAmount
8.  direct payment above invoice balance
    plus tolerance                            -> PaymentExceedsInvoiceBalance
9.  currency / positive rate missing (not for
    balance offset, which uses the invoice's) -> CurrencyRequired / ExchangeRateRequired
10. transaction date missing or before the
    invoice date (day granularity)            -> TransactionDateRequired / TransactionDateBeforeInvoiceDate
11. account reference missing                 -> AccountRequired

Architecture position
---------------------
**Engines layer** -- pure functional core.  ZERO I/O, ZERO clock reads.
Consumes invoice payment value objects only.

Invariants enforced
-------------------
* No ``datetime.now()`` or ``date.today()`` calls; the transaction date is
  an argument.
* Deterministic: same inputs = same ``ValidationResult``, issues in rule
  order.
* Rules never short-circuit each other.

Failure modes
-------------
* Returns issues (not exceptions) for business rule violations.
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from enum import Enum

from settlement_engines.allocation import compute_allocation_total
from settlement_engines.tracer import traced_engine
from settlement_kernel.logging_config import get_logger
from settlement_modules.invoice_payment.models import (
    ZERO,
    AccountRequired,
    BalanceOffset,
    BankDetailsRequired,
    ChequeNumberRequired,
    CurrencyContext,
    CurrencyRequired,
    DirectPayment,
    ExchangeRateRequired,
    InsufficientBalance,
    Invoice,
    ItemPaymentExceedsRemaining,
    NegativeItemPayment,
    NoOffsettableBalance,
    PaymentDetails,
    PaymentExceedsInvoiceBalance,
    PaymentIssue,
    PaymentMethodSelection,
    PaymentTypeRequired,
    ReferenceData,
    TransactionDateBeforeInvoiceDate,
    TransactionDateRequired,
    UnknownPaymentType,
    ValidationResult,
    ZeroPaymentAmount,
    as_day,
)

logger = get_logger("engines.payment_validation")

DEFAULT_TOLERANCE = Decimal("0.01")


class ValidationScope(str, Enum):
    """Which rules run: the Details step, the Items step, or everything."""
    DETAILS = "details"  # rules 3-5, 9-11
    ITEMS = "items"  # rules 1, 2, 6-8
    FULL = "full"


# ---------------------------------------------------------------------------
# Item rules (1, 2)
# ---------------------------------------------------------------------------


def check_item_amounts(
    invoice: Invoice,
    allocation: Mapping[str, Decimal],
) -> list[PaymentIssue]:
    """Rules 1 and 2, checked against the amounts as given (not clamped)."""
    issues: list[PaymentIssue] = []
    for item in invoice.line_items:
        amount = allocation.get(item.item_id, ZERO)
        if amount < ZERO:
            issues.append(NegativeItemPayment(item_id=item.item_id, amount=amount))
        if amount > item.remaining_balance:
            issues.append(ItemPaymentExceedsRemaining(
                item_id=item.item_id,
                amount=amount,
                remaining_balance=item.remaining_balance,
            ))
    return issues


# ---------------------------------------------------------------------------
# Payment type rules (3-5)
# ---------------------------------------------------------------------------


def check_payment_type(
    method: PaymentMethodSelection,
    reference_data: ReferenceData,
) -> list[PaymentIssue]:
    """Rules 3-5; requirement flags come from the type's method descriptor."""
    if not isinstance(method, DirectPayment):
        return []

    if not method.payment_type_id:
        return [PaymentTypeRequired()]

    payment_type = reference_data.find_payment_type(method.payment_type_id)
    if payment_type is None:
        return [UnknownPaymentType(payment_type_id=method.payment_type_id)]

    issues: list[PaymentIssue] = []
    if payment_type.requires_cheque_number and not method.cheque_number.strip():
        issues.append(ChequeNumberRequired(payment_type_id=payment_type.payment_type_id))
    if payment_type.requires_bank_details and not method.bank_detail_id:
        issues.append(BankDetailsRequired(payment_type_id=payment_type.payment_type_id))
    return issues


# ---------------------------------------------------------------------------
# Amount rules (6-8)
# ---------------------------------------------------------------------------


def check_balance_offset(
    invoice: Invoice,
    payment_total: Decimal,
    method: PaymentMethodSelection,
    currency: CurrencyContext,
) -> list[PaymentIssue]:
    """Rule 6.  The counterparty balance is held in system currency."""
    if not isinstance(method, BalanceOffset):
        return []

    available = invoice.counterparty.offsettable_balance
    rate = currency.exchange_rate if currency.has_usable_rate else invoice.exchange_rate

    issues: list[PaymentIssue] = []
    if available <= ZERO:
        issues.append(NoOffsettableBalance(available_balance=available))

    system_equivalent = payment_total * rate
    if system_equivalent > available:
        issues.append(InsufficientBalance(
            payment_total=payment_total,
            system_equivalent=system_equivalent,
            available_balance=available,
            exchange_rate=rate,
        ))
    return issues


def check_payment_total(
    invoice: Invoice,
    payment_total: Decimal,
    method: PaymentMethodSelection,
    tolerance: Decimal,
) -> list[PaymentIssue]:
    """Rules 7 and 8."""
    issues: list[PaymentIssue] = []
    if payment_total <= ZERO:
        issues.append(ZeroPaymentAmount(payment_total=payment_total))

    # Balance offsets are bounded by the counterparty balance instead (rule 6)
    if isinstance(method, DirectPayment):
        invoice_balance = invoice.balance_amount
        if payment_total > invoice_balance + tolerance:
            issues.append(PaymentExceedsInvoiceBalance(
                payment_total=payment_total,
                invoice_balance=invoice_balance,
                tolerance=tolerance,
            ))
    return issues


# ---------------------------------------------------------------------------
# Detail rules (9-11)
# ---------------------------------------------------------------------------


def check_currency(
    method: PaymentMethodSelection,
    currency: CurrencyContext,
) -> list[PaymentIssue]:
    """Rule 9.  Balance offsets are pinned to the invoice currency and rate."""
    if isinstance(method, BalanceOffset):
        return []

    issues: list[PaymentIssue] = []
    if not currency.currency_id:
        issues.append(CurrencyRequired())
    if not currency.has_usable_rate:
        issues.append(ExchangeRateRequired(exchange_rate=currency.exchange_rate))
    return issues


def check_transaction_date(
    invoice: Invoice,
    details: PaymentDetails,
) -> list[PaymentIssue]:
    """Rule 10, compared by calendar day."""
    if details.transaction_date is None:
        return [TransactionDateRequired()]

    transaction_day = as_day(details.transaction_date)
    invoice_day = as_day(invoice.invoice_date)
    if transaction_day < invoice_day:
        return [TransactionDateBeforeInvoiceDate(
            transaction_date=transaction_day,
            invoice_date=invoice_day,
        )]
    return []


def check_account(
    invoice: Invoice,
    method: PaymentMethodSelection,
    details: PaymentDetails,
) -> list[PaymentIssue]:
    """Rule 11."""
    if details.account_id and details.account_id.strip():
        return []
    return [AccountRequired(method_kind=method.kind, side=invoice.side)]


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


@traced_engine(
    "payment_validation", "1.0",
    fingerprint_fields=("invoice", "allocation", "method", "currency", "details", "scope"),
)
def validate_allocation(
    invoice: Invoice,
    allocation: Mapping[str, Decimal],
    method: PaymentMethodSelection,
    currency: CurrencyContext,
    details: PaymentDetails,
    reference_data: ReferenceData,
    *,
    scope: ValidationScope = ValidationScope.FULL,
    tolerance: Decimal = DEFAULT_TOLERANCE,
) -> ValidationResult:
    """Validate a payment attempt and return every issue found.

    Args:
        invoice: Invoice being paid.
        allocation: Item id -> proposed amount for this payment.
        method: DirectPayment or BalanceOffset.
        currency: Payment currency and its rate to the system currency.
        details: Transaction date, account reference, description.
        reference_data: Pre-fetched payment types (for requirement flags).
        scope: Rule subset to run; FULL gates the final submission.
        tolerance: Absolute slack for rule 8.

    Returns:
        ValidationResult with issues in rule order (empty when valid).
    """
    run_items = scope in (ValidationScope.ITEMS, ValidationScope.FULL)
    run_details = scope in (ValidationScope.DETAILS, ValidationScope.FULL)

    issues: list[PaymentIssue] = []
    payment_total = ZERO

    if run_items:
        issues.extend(check_item_amounts(invoice, allocation))
    if run_details:
        issues.extend(check_payment_type(method, reference_data))
    if run_items:
        payment_total = compute_allocation_total(invoice.line_items, allocation)
        issues.extend(check_balance_offset(invoice, payment_total, method, currency))
        issues.extend(check_payment_total(invoice, payment_total, method, tolerance))
    if run_details:
        issues.extend(check_currency(method, currency))
        issues.extend(check_transaction_date(invoice, details))
        issues.extend(check_account(invoice, method, details))

    result = ValidationResult(issues=tuple(issues))

    logger.info("payment_validation_completed", extra={
        "invoice_id": invoice.invoice_id,
        "scope": scope.value,
        "method": method.kind.value,
        "payment_total": str(payment_total),
        "is_valid": result.is_valid,
        "issue_codes": sorted(result.codes),
    })
    return result
