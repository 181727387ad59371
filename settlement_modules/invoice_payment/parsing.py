"""
Invoice payment input parsing (``settlement_modules.invoice_payment.parsing``).

Turns already-fetched API records (plain dicts, camelCase or snake_case
keys) into the frozen invoice payment model.  Pure; ZERO I/O.

Numbers go through ``str`` into ``Decimal`` so a JSON float such as
``0.1`` becomes ``Decimal("0.1")``, not its binary approximation.

Raises ``MissingFieldError``, ``InvalidAmountError`` or ``InvalidDateError``
on malformed records.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from settlement_kernel.exceptions import (
    InvalidAmountError,
    InvalidDateError,
    MissingFieldError,
)
from settlement_kernel.logging_config import get_logger
from settlement_modules.invoice_payment.models import (
    ZERO,
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

logger = get_logger("modules.invoice_payment.parsing")

_MISSING = object()


# -----------------------------------------------------------------------------
# Field access and coercion
# -----------------------------------------------------------------------------


def _get(data: Mapping[str, Any], *keys: str, default: Any = _MISSING) -> Any:
    """First non-None value among ``keys``."""
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return default


def _require(data: Mapping[str, Any], record_type: str, *keys: str) -> Any:
    value = _get(data, *keys)
    if value is _MISSING or value == "":
        raise MissingFieldError(record_type, keys[0])
    return value


def parse_decimal(value: Any, field: str) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise InvalidAmountError(field, value)
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidAmountError(field, value) from None
    if not result.is_finite():
        raise InvalidAmountError(field, value)
    return result


def parse_date(value: Any, field: str) -> date:
    """``date``, ``datetime`` or ISO 8601 string -> calendar day."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip().replace("Z", "+00:00")).date()
        except ValueError:
            raise InvalidDateError(field, value) from None
    raise InvalidDateError(field, value)


def _flag(data: Mapping[str, Any], *keys: str, default: bool) -> bool:
    return bool(_get(data, *keys, default=default))


# -----------------------------------------------------------------------------
# Invoice
# -----------------------------------------------------------------------------


def parse_line_items(data: Mapping[str, Any]) -> tuple[LineItem, ...]:
    """Line items with ``already_paid`` taken from ``itemPaidAmounts``.

    Items without an id are keyed ``item-<index>``; the line total falls
    back from ``lineTotal`` to ``totalAmount``.
    """
    paid_amounts = _get(data, "itemPaidAmounts", "item_paid_amounts", default={})
    items = []
    for index, raw in enumerate(_get(data, "items", "lineItems", "line_items", default=[])):
        item_id = str(_get(raw, "id", default="") or f"item-{index}")
        line_total = _get(raw, "lineTotal", "line_total", "totalAmount", "total_amount", default=ZERO)
        items.append(LineItem(
            item_id=item_id,
            line_total=parse_decimal(line_total, f"items[{index}].lineTotal"),
            already_paid=parse_decimal(
                paid_amounts.get(item_id, ZERO), f"itemPaidAmounts.{item_id}",
            ),
            description=str(_get(raw, "productName", "description", "name", default="")),
        ))
    return tuple(items)


def parse_counterparty(data: Mapping[str, Any], side: InvoiceSide) -> Counterparty:
    """Vendor (purchase) or customer (sales) with its deposit balance."""
    label = side.counterparty_label
    raw = _get(data, label, default={})
    party_id = _get(raw, "id", default=None) or _get(data, f"{label}Id", f"{label}_id", default="")
    return Counterparty(
        party_id=str(party_id),
        name=str(_get(raw, "name", default=None) or _get(data, f"{label}Name", default="")),
        offsettable_balance=parse_decimal(
            _get(raw, "deposit_balance", "depositBalance", default=ZERO),
            f"{label}.deposit_balance",
        ),
    )


def parse_invoice(data: Mapping[str, Any], side: InvoiceSide) -> Invoice:
    """Build an ``Invoice`` from an API invoice record."""
    record_type = f"{side.value}_invoice"
    invoice_id = str(_require(data, record_type, "id", "invoiceId", "invoice_id"))

    # A missing or zero rate means the invoice is in the system currency
    raw_rate = _get(data, "exchangeRateValue", "exchangeRate", "exchange_rate", default=None)
    exchange_rate = parse_decimal(raw_rate, "exchangeRateValue") if raw_rate is not None else Decimal("1")
    if exchange_rate == ZERO:
        exchange_rate = Decimal("1")

    account_keys = (
        ("accountPayableId", "account_payable_id") if side is InvoiceSide.PURCHASE
        else ("accountReceivableId", "account_receivable_id")
    )

    invoice = Invoice(
        invoice_id=invoice_id,
        side=side,
        invoice_date=parse_date(
            _require(data, record_type, "invoiceDate", "invoice_date"), "invoiceDate",
        ),
        currency_id=str(_require(data, record_type, "currencyId", "currency_id")),
        exchange_rate=exchange_rate,
        exchange_rate_id=_get(data, "exchangeRateId", "exchange_rate_id", default=None) or None,
        total_amount=parse_decimal(_get(data, "totalAmount", "total_amount", default=ZERO), "totalAmount"),
        paid_amount=parse_decimal(_get(data, "paidAmount", "paid_amount", default=ZERO), "paidAmount"),
        line_items=parse_line_items(data),
        counterparty=parse_counterparty(data, side),
        account_id=_get(data, *account_keys, default=None) or None,
        reference_number=str(_get(data, "invoiceRefNumber", "invoice_ref_number", default="")),
        currency_symbol=str(_get(data, "currencySymbol", "currency_symbol", default="")),
    )

    logger.debug("invoice_parsed", extra={
        "invoice_id": invoice.invoice_id,
        "side": side.value,
        "item_count": len(invoice.line_items),
        "balance_amount": str(invoice.balance_amount),
    })
    return invoice


# -----------------------------------------------------------------------------
# Reference data
# -----------------------------------------------------------------------------


def parse_payment_type(data: Mapping[str, Any]) -> PaymentType:
    raw_method = _get(data, "paymentMethod", "payment_method", default=None)
    method = None
    if raw_method is not None:
        method = PaymentMethodDescriptor(
            method_id=str(_get(raw_method, "id", default="")),
            name=str(_get(raw_method, "name", default="")),
            requires_cheque_number=_flag(
                raw_method, "requiresChequeNumber", "requires_cheque_number", default=False,
            ),
            requires_bank_details=_flag(
                raw_method, "requiresBankDetails", "requires_bank_details", default=False,
            ),
        )
    return PaymentType(
        payment_type_id=str(_require(data, "payment_type", "id")),
        name=str(_get(data, "name", default="")),
        code=str(_get(data, "code", default="")),
        method=method,
        is_active=_flag(data, "is_active", "isActive", default=True),
        used_in_creditor_payments=_flag(
            data, "used_in_credit_payments", "usedInCreditPayments", default=True,
        ),
        used_in_debtor_payments=_flag(
            data, "used_in_debtor_payments", "usedInDebtorPayments", default=True,
        ),
    )


def parse_bank_detail(data: Mapping[str, Any]) -> BankDetail:
    return BankDetail(
        bank_detail_id=str(_require(data, "bank_detail", "id")),
        bank_name=str(_get(data, "bankName", "bank_name", default="")),
        branch=str(_get(data, "branch", default="")),
    )


def parse_currency(data: Mapping[str, Any]) -> CurrencyRef:
    return CurrencyRef(
        currency_id=str(_require(data, "currency", "id")),
        code=str(_get(data, "code", default="")),
        name=str(_get(data, "name", default="")),
        symbol=str(_get(data, "symbol", default="")),
        is_default=_flag(data, "is_default", "isDefault", default=False),
    )


def parse_exchange_rate(data: Mapping[str, Any]) -> ExchangeRateRef:
    return ExchangeRateRef(
        rate_id=str(_require(data, "exchange_rate", "id")),
        from_currency_id=str(_require(data, "exchange_rate", "from_currency_id", "fromCurrencyId")),
        to_currency_id=str(_require(data, "exchange_rate", "to_currency_id", "toCurrencyId")),
        rate=parse_decimal(_require(data, "exchange_rate", "rate"), "rate"),
    )


def _records(data: Mapping[str, Any], *keys: str) -> Sequence[Mapping[str, Any]]:
    return _get(data, *keys, default=[])


def parse_reference_data(data: Mapping[str, Any]) -> ReferenceData:
    """Lookup collections; inactive exchange rates are left out."""
    rates = tuple(
        parse_exchange_rate(raw)
        for raw in _records(data, "exchangeRates", "exchange_rates")
        if _flag(raw, "is_active", "isActive", default=True)
    )
    reference_data = ReferenceData(
        payment_types=tuple(
            parse_payment_type(raw) for raw in _records(data, "paymentTypes", "payment_types")
        ),
        bank_details=tuple(
            parse_bank_detail(raw) for raw in _records(data, "bankDetails", "bank_details")
        ),
        currencies=tuple(parse_currency(raw) for raw in _records(data, "currencies")),
        exchange_rates=rates,
    )

    logger.debug("reference_data_parsed", extra={
        "payment_types": len(reference_data.payment_types),
        "bank_details": len(reference_data.bank_details),
        "currencies": len(reference_data.currencies),
        "exchange_rates": len(reference_data.exchange_rates),
    })
    return reference_data
