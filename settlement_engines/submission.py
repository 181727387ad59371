"""
Module: settlement_engines.submission
Responsibility:
    Turn a validated payment attempt into the immutable payload handed to
    the external "record payment" collaborator, and back again.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Never performs the
    submission itself.

Invariants enforced:
    - A payload is only built from a state with no FULL-scope validation
      issues.
    - Round trip: ``payload_inputs(payload)`` re-validates with no issues.
    - The per-item allocation in the payload is clamped and immutable.
    - ``exchange_rate_id`` is only carried for looked-up (non 1:1) rates.

Failure modes:
    - AllocationInvalidError when validation reports any issue; the error
      carries every issue.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

from settlement_engines.allocation import clamp_allocation, compute_allocation_total
from settlement_engines.payment_validation import (
    DEFAULT_TOLERANCE,
    ValidationScope,
    validate_allocation,
)
from settlement_engines.tracer import traced_engine
from settlement_kernel.exceptions import AllocationInvalidError
from settlement_kernel.logging_config import get_logger
from settlement_modules.invoice_payment.models import (
    ZERO,
    BalanceOffset,
    CurrencyContext,
    DirectPayment,
    Invoice,
    InvoiceSide,
    PaymentDetails,
    PaymentMethodKind,
    PaymentMethodSelection,
    ReferenceData,
    as_day,
)

logger = get_logger("engines.submission")


@dataclass(frozen=True)
class SubmissionPayload:
    """
    Exact value handed to the record-payment collaborator.

    Contract:
        Frozen; ``item_payments`` keeps line item order.
    Guarantees:
        - ``payment_amount`` equals the sum of ``item_payments`` amounts.
        - ``offset_amount`` is set only for balance offsets and equals
          ``payment_amount``.
    """

    invoice_id: str
    side: InvoiceSide
    payment_amount: Decimal
    item_payments: tuple[tuple[str, Decimal], ...]
    method_kind: PaymentMethodKind
    payment_type_id: str | None
    use_balance_offset: bool
    offset_amount: Decimal | None
    cheque_number: str | None
    bank_detail_id: str | None
    branch: str | None
    currency_id: str
    exchange_rate: Decimal
    exchange_rate_id: str | None
    description: str | None
    transaction_date: date
    account_id: str

    @property
    def allocation(self) -> dict[str, Decimal]:
        return dict(self.item_payments)

    def to_request(self) -> dict[str, Any]:
        """camelCase body of the record-payment REST call.

        Optional fields are omitted when empty; amounts are strings so no
        precision is lost on the wire.
        """
        purchase = self.side is InvoiceSide.PURCHASE
        body: dict[str, Any] = {
            "paymentAmount": str(self.payment_amount),
            "itemPayments": {k: str(v) for k, v in self.item_payments},
            "currencyId": self.currency_id,
            "exchangeRate": str(self.exchange_rate),
            "transactionDate": self.transaction_date.isoformat(),
            "payableAccountId" if purchase else "receivableAccountId": self.account_id,
        }
        if self.use_balance_offset:
            body["useVendorDeposit" if purchase else "useCustomerDeposit"] = True
            body["depositAmount"] = str(self.offset_amount)
        optional = {
            "paymentTypeId": self.payment_type_id,
            "chequeNumber": self.cheque_number,
            "bankDetailId": self.bank_detail_id,
            "branch": self.branch,
            "exchangeRateId": self.exchange_rate_id,
            "description": self.description,
        }
        body.update({k: v for k, v in optional.items() if v})
        return body


@traced_engine("submission", "1.0", fingerprint_fields=("invoice", "allocation", "method"))
def build_submission_payload(
    invoice: Invoice,
    allocation: Mapping[str, Decimal],
    method: PaymentMethodSelection,
    currency: CurrencyContext,
    details: PaymentDetails,
    reference_data: ReferenceData,
    *,
    tolerance: Decimal = DEFAULT_TOLERANCE,
) -> SubmissionPayload:
    """
    Build the submission payload for a payment attempt.

    Preconditions:
        FULL-scope ``validate_allocation`` reports no issues.

    Raises:
        AllocationInvalidError: validation reported issues.
    """
    result = validate_allocation(
        invoice, allocation, method, currency, details, reference_data,
        scope=ValidationScope.FULL, tolerance=tolerance,
    )
    if not result.is_valid:
        logger.warning("submission_payload_rejected", extra={
            "invoice_id": invoice.invoice_id,
            "issue_codes": sorted(result.codes),
        })
        raise AllocationInvalidError(invoice.invoice_id, result.issues)

    clamped = clamp_allocation(invoice.line_items, allocation)
    payment_amount = compute_allocation_total(invoice.line_items, allocation)

    if isinstance(method, BalanceOffset):
        # Balance offsets always use the invoice's own currency and rate
        currency_id = currency.currency_id or invoice.currency_id
        exchange_rate = currency.exchange_rate if currency.has_usable_rate else invoice.exchange_rate
        exchange_rate_id = currency.exchange_rate_id or invoice.exchange_rate_id
    else:
        currency_id = currency.currency_id
        exchange_rate = currency.exchange_rate
        exchange_rate_id = currency.exchange_rate_id

    direct = method if isinstance(method, DirectPayment) else None
    payload = SubmissionPayload(
        invoice_id=invoice.invoice_id,
        side=invoice.side,
        payment_amount=payment_amount,
        item_payments=tuple(clamped.items()),
        method_kind=method.kind,
        payment_type_id=direct.payment_type_id if direct else None,
        use_balance_offset=direct is None,
        offset_amount=None if direct else payment_amount,
        cheque_number=(direct.cheque_number or None) if direct else None,
        bank_detail_id=(direct.bank_detail_id or None) if direct else None,
        branch=(direct.branch or None) if direct else None,
        currency_id=currency_id,
        exchange_rate=exchange_rate,
        exchange_rate_id=exchange_rate_id or None,
        description=details.description.strip() or None,
        transaction_date=as_day(details.transaction_date),
        account_id=details.account_id,
    )

    logger.info("submission_payload_built", extra={
        "invoice_id": invoice.invoice_id,
        "method": method.kind.value,
        "payment_amount": str(payment_amount),
        "item_count": len(payload.item_payments),
        "currency_id": currency_id,
        "exchange_rate": str(exchange_rate),
    })
    return payload


def payload_inputs(
    payload: SubmissionPayload,
) -> tuple[dict[str, Decimal], PaymentMethodSelection, CurrencyContext, PaymentDetails]:
    """Rebuild ``(allocation, method, currency, details)`` from a payload."""
    if payload.use_balance_offset:
        method: PaymentMethodSelection = BalanceOffset()
    else:
        method = DirectPayment(
            payment_type_id=payload.payment_type_id,
            cheque_number=payload.cheque_number or "",
            bank_detail_id=payload.bank_detail_id,
            branch=payload.branch or "",
        )
    currency = CurrencyContext(
        currency_id=payload.currency_id,
        exchange_rate=payload.exchange_rate,
        exchange_rate_id=payload.exchange_rate_id,
    )
    details = PaymentDetails(
        transaction_date=payload.transaction_date,
        account_id=payload.account_id,
        description=payload.description or "",
    )
    return payload.allocation, method, currency, details


def offset_total_in_system_currency(payload: SubmissionPayload) -> Decimal:
    """Amount drawn from the counterparty balance, in system currency."""
    if payload.offset_amount is None:
        return ZERO
    return payload.offset_amount * payload.exchange_rate
