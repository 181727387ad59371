"""
Invoice Payment Domain Models (``settlement_modules.invoice_payment.models``).

Responsibility
--------------
Frozen dataclass value objects for recording a payment against a purchase
or sales invoice: the invoice and its line items, pre-fetched reference
data (payment types, bank details, currencies, exchange rates), the
payment method selection, the currency context, and the validation issues
a payment attempt can produce.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Consumed by the
``allocation``, ``payment_validation`` and ``submission`` engines and by
the wizard and service in this package.

Invariants enforced
-------------------
* All models are ``frozen=True`` (immutable after construction).
* All monetary fields use ``Decimal`` -- NEVER ``float``.
* ``LineItem.remaining_balance`` and ``Invoice.balance_amount`` are clamped
  at zero.

Failure modes
-------------
* Construction with a ``float`` amount raises ``TypeError``.
* Negative line totals, paid amounts or invoice totals raise ``ValueError``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import ClassVar, Union

ZERO = Decimal("0")

# Line item id -> proposed payment amount for the current transaction.
Allocation = Mapping[str, Decimal]


def _require_decimal(name: str, value: object) -> None:
    if not isinstance(value, Decimal):
        raise TypeError(f"{name} must be Decimal, got {type(value).__name__}")


def as_day(value: date | datetime) -> date:
    """Calendar day of a date or datetime, dropping any time of day."""
    if isinstance(value, datetime):
        return value.date()
    return value


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class InvoiceSide(str, Enum):
    """Which ledger the invoice belongs to."""
    PURCHASE = "purchase"  # vendor invoice, payable account
    SALES = "sales"  # customer invoice, receivable account

    @property
    def counterparty_label(self) -> str:
        return "vendor" if self is InvoiceSide.PURCHASE else "customer"

    @property
    def account_label(self) -> str:
        return "payable" if self is InvoiceSide.PURCHASE else "receivable"


class PaymentMethodKind(str, Enum):
    """Discriminant of a payment method selection."""
    DIRECT_PAYMENT = "payment_type"
    BALANCE_OFFSET = "deposit_account"


# ---------------------------------------------------------------------------
# Invoice
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LineItem:
    """One product/charge row on an invoice.

    ``already_paid`` is the cumulative amount paid against this row by all
    earlier payments, as reported by the invoice.
    """
    item_id: str
    line_total: Decimal
    already_paid: Decimal = ZERO
    description: str = ""

    def __post_init__(self) -> None:
        _require_decimal("line_total", self.line_total)
        _require_decimal("already_paid", self.already_paid)
        if not self.item_id:
            raise ValueError("item_id is required")
        if self.line_total < ZERO:
            raise ValueError(f"line_total cannot be negative: {self.line_total}")
        if self.already_paid < ZERO:
            raise ValueError(f"already_paid cannot be negative: {self.already_paid}")

    @property
    def remaining_balance(self) -> Decimal:
        return max(ZERO, self.line_total - self.already_paid)

    @property
    def is_settled(self) -> bool:
        return self.remaining_balance == ZERO


@dataclass(frozen=True)
class Counterparty:
    """Vendor or customer of the invoice.

    ``offsettable_balance`` is the deposit/credit held for the counterparty,
    expressed in system currency.
    """
    party_id: str
    name: str = ""
    offsettable_balance: Decimal = ZERO

    def __post_init__(self) -> None:
        _require_decimal("offsettable_balance", self.offsettable_balance)


@dataclass(frozen=True)
class Invoice:
    """Read-only invoice snapshot as last returned by the API."""
    invoice_id: str
    side: InvoiceSide
    invoice_date: date
    currency_id: str
    exchange_rate: Decimal
    total_amount: Decimal
    paid_amount: Decimal
    line_items: tuple[LineItem, ...]
    counterparty: Counterparty
    account_id: str | None = None
    exchange_rate_id: str | None = None
    reference_number: str = ""
    currency_symbol: str = ""

    def __post_init__(self) -> None:
        _require_decimal("exchange_rate", self.exchange_rate)
        _require_decimal("total_amount", self.total_amount)
        _require_decimal("paid_amount", self.paid_amount)
        if self.total_amount < ZERO:
            raise ValueError(f"total_amount cannot be negative: {self.total_amount}")
        if self.paid_amount < ZERO:
            raise ValueError(f"paid_amount cannot be negative: {self.paid_amount}")
        if self.exchange_rate <= ZERO:
            raise ValueError(f"exchange_rate must be positive: {self.exchange_rate}")
        ids = [item.item_id for item in self.line_items]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Duplicate line item ids on invoice {self.invoice_id}")

    @property
    def balance_amount(self) -> Decimal:
        return max(ZERO, self.total_amount - self.paid_amount)

    def find_item(self, item_id: str) -> LineItem | None:
        for item in self.line_items:
            if item.item_id == item_id:
                return item
        return None


# ---------------------------------------------------------------------------
# Reference data
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PaymentMethodDescriptor:
    """Capability flags of a payment method (cash, cheque, transfer, ...)."""
    method_id: str
    name: str
    requires_cheque_number: bool = False
    requires_bank_details: bool = False


@dataclass(frozen=True)
class PaymentType:
    """A configured payment type, linked to the method that defines its fields."""
    payment_type_id: str
    name: str
    code: str = ""
    method: PaymentMethodDescriptor | None = None
    is_active: bool = True
    used_in_creditor_payments: bool = True
    used_in_debtor_payments: bool = True

    @property
    def requires_cheque_number(self) -> bool:
        return self.method is not None and self.method.requires_cheque_number

    @property
    def requires_bank_details(self) -> bool:
        return self.method is not None and self.method.requires_bank_details

    def allowed_for(self, side: InvoiceSide) -> bool:
        if not self.is_active:
            return False
        if side is InvoiceSide.PURCHASE:
            return self.used_in_creditor_payments
        return self.used_in_debtor_payments


@dataclass(frozen=True)
class BankDetail:
    bank_detail_id: str
    bank_name: str
    branch: str = ""

    @property
    def label(self) -> str:
        return f"{self.bank_name} - {self.branch}" if self.branch else self.bank_name


@dataclass(frozen=True)
class CurrencyRef:
    currency_id: str
    code: str
    name: str = ""
    symbol: str = ""
    is_default: bool = False


@dataclass(frozen=True)
class ExchangeRateRef:
    """Active rate: 1 unit of ``from_currency_id`` = ``rate`` units of ``to_currency_id``."""
    rate_id: str
    from_currency_id: str
    to_currency_id: str
    rate: Decimal

    def __post_init__(self) -> None:
        _require_decimal("rate", self.rate)
        if self.rate <= ZERO:
            raise ValueError(f"Exchange rate must be positive: {self.rate}")


@dataclass(frozen=True)
class ReferenceData:
    """Pre-fetched lookup collections.  Matching is by id only."""
    payment_types: tuple[PaymentType, ...] = ()
    bank_details: tuple[BankDetail, ...] = ()
    currencies: tuple[CurrencyRef, ...] = ()
    exchange_rates: tuple[ExchangeRateRef, ...] = ()

    def find_payment_type(self, payment_type_id: str | None) -> PaymentType | None:
        if not payment_type_id:
            return None
        for payment_type in self.payment_types:
            if payment_type.payment_type_id == payment_type_id:
                return payment_type
        return None

    def find_bank_detail(self, bank_detail_id: str | None) -> BankDetail | None:
        if not bank_detail_id:
            return None
        for bank_detail in self.bank_details:
            if bank_detail.bank_detail_id == bank_detail_id:
                return bank_detail
        return None

    def find_currency(self, currency_id: str | None) -> CurrencyRef | None:
        if not currency_id:
            return None
        for currency in self.currencies:
            if currency.currency_id == currency_id:
                return currency
        return None

    @property
    def default_currency(self) -> CurrencyRef | None:
        for currency in self.currencies:
            if currency.is_default:
                return currency
        return None


# ---------------------------------------------------------------------------
# Payment attempt inputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DirectPayment:
    """Settle with an external instrument described by a payment type."""
    payment_type_id: str | None = None
    cheque_number: str = ""
    bank_detail_id: str | None = None
    branch: str = ""

    kind: ClassVar[PaymentMethodKind] = PaymentMethodKind.DIRECT_PAYMENT


@dataclass(frozen=True)
class BalanceOffset:
    """Settle by drawing down the counterparty's deposit balance."""

    kind: ClassVar[PaymentMethodKind] = PaymentMethodKind.BALANCE_OFFSET


PaymentMethodSelection = Union[DirectPayment, BalanceOffset]


@dataclass(frozen=True)
class CurrencyContext:
    """Payment currency and its rate to the system currency.

    ``exchange_rate`` may be missing or non-positive while the user is still
    editing; validation reports that rather than construction failing.
    """
    currency_id: str | None
    exchange_rate: Decimal | None
    exchange_rate_id: str | None = None

    def __post_init__(self) -> None:
        if self.exchange_rate is not None:
            _require_decimal("exchange_rate", self.exchange_rate)

    @property
    def has_usable_rate(self) -> bool:
        return self.exchange_rate is not None and self.exchange_rate > ZERO

    def to_system(self, amount: Decimal) -> Decimal:
        if not self.has_usable_rate:
            raise ValueError(f"No usable exchange rate: {self.exchange_rate}")
        return amount * self.exchange_rate

    @classmethod
    def from_invoice(cls, invoice: Invoice) -> CurrencyContext:
        return cls(
            currency_id=invoice.currency_id,
            exchange_rate=invoice.exchange_rate,
            exchange_rate_id=invoice.exchange_rate_id,
        )


@dataclass(frozen=True)
class PaymentDetails:
    """Free-form metadata of the payment transaction."""
    transaction_date: date | datetime | None = None
    account_id: str | None = None
    description: str = ""


# ---------------------------------------------------------------------------
# Validation issues
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PaymentIssue:
    """A blocking condition found while validating a payment attempt.

    ``code`` identifies the condition; ``field`` names the form field the
    issue belongs to.  Message text lives in ``messages``.
    """
    code: ClassVar[str] = "PAYMENT_ISSUE"

    @property
    def field(self) -> str:
        return "form"


@dataclass(frozen=True)
class NegativeItemPayment(PaymentIssue):
    item_id: str
    amount: Decimal

    code: ClassVar[str] = "NEGATIVE_ITEM_PAYMENT"

    @property
    def field(self) -> str:
        return f"itemPayment_{self.item_id}"


@dataclass(frozen=True)
class ItemPaymentExceedsRemaining(PaymentIssue):
    item_id: str
    amount: Decimal
    remaining_balance: Decimal

    code: ClassVar[str] = "ITEM_PAYMENT_EXCEEDS_REMAINING"

    @property
    def field(self) -> str:
        return f"itemPayment_{self.item_id}"


@dataclass(frozen=True)
class PaymentTypeRequired(PaymentIssue):
    code: ClassVar[str] = "PAYMENT_TYPE_REQUIRED"

    @property
    def field(self) -> str:
        return "paymentTypeId"


@dataclass(frozen=True)
class UnknownPaymentType(PaymentIssue):
    payment_type_id: str

    code: ClassVar[str] = "UNKNOWN_PAYMENT_TYPE"

    @property
    def field(self) -> str:
        return "paymentTypeId"


@dataclass(frozen=True)
class ChequeNumberRequired(PaymentIssue):
    payment_type_id: str

    code: ClassVar[str] = "CHEQUE_NUMBER_REQUIRED"

    @property
    def field(self) -> str:
        return "chequeNumber"


@dataclass(frozen=True)
class BankDetailsRequired(PaymentIssue):
    payment_type_id: str

    code: ClassVar[str] = "BANK_DETAILS_REQUIRED"

    @property
    def field(self) -> str:
        return "bankDetailId"


@dataclass(frozen=True)
class NoOffsettableBalance(PaymentIssue):
    available_balance: Decimal

    code: ClassVar[str] = "NO_OFFSETTABLE_BALANCE"

    @property
    def field(self) -> str:
        return "depositAmount"


@dataclass(frozen=True)
class InsufficientBalance(PaymentIssue):
    payment_total: Decimal
    system_equivalent: Decimal
    available_balance: Decimal
    exchange_rate: Decimal

    code: ClassVar[str] = "INSUFFICIENT_BALANCE"

    @property
    def field(self) -> str:
        return "depositAmount"

    @property
    def available_in_invoice_currency(self) -> Decimal:
        return self.available_balance / self.exchange_rate


@dataclass(frozen=True)
class ZeroPaymentAmount(PaymentIssue):
    payment_total: Decimal

    code: ClassVar[str] = "ZERO_PAYMENT_AMOUNT"

    @property
    def field(self) -> str:
        return "paymentAmount"


@dataclass(frozen=True)
class PaymentExceedsInvoiceBalance(PaymentIssue):
    payment_total: Decimal
    invoice_balance: Decimal
    tolerance: Decimal

    code: ClassVar[str] = "PAYMENT_EXCEEDS_INVOICE_BALANCE"

    @property
    def field(self) -> str:
        return "paymentAmount"


@dataclass(frozen=True)
class CurrencyRequired(PaymentIssue):
    code: ClassVar[str] = "CURRENCY_REQUIRED"

    @property
    def field(self) -> str:
        return "currencyId"


@dataclass(frozen=True)
class ExchangeRateRequired(PaymentIssue):
    exchange_rate: Decimal | None

    code: ClassVar[str] = "EXCHANGE_RATE_REQUIRED"

    @property
    def field(self) -> str:
        return "exchangeRate"


@dataclass(frozen=True)
class TransactionDateRequired(PaymentIssue):
    code: ClassVar[str] = "TRANSACTION_DATE_REQUIRED"

    @property
    def field(self) -> str:
        return "transactionDate"


@dataclass(frozen=True)
class TransactionDateBeforeInvoiceDate(PaymentIssue):
    transaction_date: date
    invoice_date: date

    code: ClassVar[str] = "TRANSACTION_DATE_BEFORE_INVOICE_DATE"

    @property
    def field(self) -> str:
        return "transactionDate"


@dataclass(frozen=True)
class AccountRequired(PaymentIssue):
    method_kind: PaymentMethodKind
    side: InvoiceSide

    code: ClassVar[str] = "ACCOUNT_REQUIRED"

    @property
    def field(self) -> str:
        return "accountId"


@dataclass(frozen=True)
class ValidationResult:
    """Complete outcome of one validation pass.

    Always holds every issue found; re-validation replaces the whole result.
    """
    issues: tuple[PaymentIssue, ...] = field(default_factory=tuple)

    @property
    def is_valid(self) -> bool:
        return not self.issues

    @property
    def codes(self) -> frozenset[str]:
        return frozenset(issue.code for issue in self.issues)

    def has(self, issue_type: type[PaymentIssue]) -> bool:
        return any(isinstance(issue, issue_type) for issue in self.issues)

    def for_field(self, field_name: str) -> tuple[PaymentIssue, ...]:
        return tuple(issue for issue in self.issues if issue.field == field_name)

    def first_for_field(self, field_name: str) -> PaymentIssue | None:
        matches = self.for_field(field_name)
        return matches[0] if matches else None
