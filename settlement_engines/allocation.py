"""
Module: settlement_engines.allocation
Responsibility:
    Item-level payment allocation for a single invoice payment: clamp the
    amount entered against each line item into its remaining balance,
    total the clamped amounts, and derive the post-payment figures shown
    next to the entry grid.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Imports only invoice payment value objects and the tracer.

Invariants enforced:
    - Clamping: every amount used in a total lies in [0, remaining_balance].
      Clamping is idempotent: clamp(clamp(a)) == clamp(a).
    - The payment total is the sum of clamped per-item amounts and is never
      negative.
    - Purity: no clock access, no I/O, inputs never mutated.

Failure modes:
    - UnknownLineItemError when an amount is entered for an item id that is
      not on the invoice.

Usage:
    from settlement_engines.allocation import compute_allocation_total, enter_item_payment

    allocation = enter_item_payment(invoice, {}, "line-1", Decimal("120"))
    total = compute_allocation_total(invoice.line_items, allocation)
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from decimal import Decimal

from settlement_engines.tracer import traced_engine
from settlement_kernel.exceptions import UnknownLineItemError
from settlement_kernel.logging_config import get_logger
from settlement_modules.invoice_payment.models import ZERO, Invoice, LineItem

logger = get_logger("engines.allocation")


@dataclass(frozen=True)
class ItemAllocationLine:
    """
    Allocation outcome for one line item.

    Guarantees:
        - ``amount`` is the clamped amount.
        - ``remaining_after_payment == remaining_before_payment - amount``.
    """

    item_id: str
    line_total: Decimal
    already_paid: Decimal
    remaining_before_payment: Decimal
    amount: Decimal

    @property
    def remaining_after_payment(self) -> Decimal:
        return max(ZERO, self.remaining_before_payment - self.amount)

    @property
    def is_payable(self) -> bool:
        """False for settled items, whose entry field is disabled."""
        return self.remaining_before_payment > ZERO


@dataclass(frozen=True)
class AllocationSummary:
    """
    Derived figures of one payment attempt.

    Contract:
        Rebuilt from scratch on every call; holds no state between calls.
    Guarantees:
        - ``payment_total`` equals the sum of ``lines[i].amount``.
        - ``balance_after_payment == max(0, invoice_balance - payment_total)``.
    """

    lines: tuple[ItemAllocationLine, ...]
    payment_total: Decimal
    invoice_balance: Decimal
    balance_after_payment: Decimal
    system_equivalent: Decimal | None

    @property
    def allocated_item_count(self) -> int:
        return sum(1 for line in self.lines if line.amount > ZERO)


def clamp_amount(amount: Decimal, remaining_balance: Decimal) -> Decimal:
    """Constrain ``amount`` into ``[0, remaining_balance]``."""
    upper = max(ZERO, remaining_balance)
    return min(max(ZERO, amount), upper)


def clamp_allocation(
    line_items: Sequence[LineItem],
    allocation: Mapping[str, Decimal],
) -> dict[str, Decimal]:
    """Clamp every entry of ``allocation``, keyed in line item order.

    Items with no entry are absent from the result; entries for ids that
    are not among ``line_items`` are dropped.
    """
    clamped: dict[str, Decimal] = {}
    for item in line_items:
        if item.item_id in allocation:
            clamped[item.item_id] = clamp_amount(
                allocation[item.item_id], item.remaining_balance,
            )
    return clamped


def enter_item_payment(
    invoice: Invoice,
    allocation: Mapping[str, Decimal],
    item_id: str,
    amount: Decimal,
) -> dict[str, Decimal]:
    """Record the amount typed against one line item, clamped at entry.

    Returns a new mapping; ``allocation`` is not modified.

    Raises:
        UnknownLineItemError: ``item_id`` is not on the invoice.
    """
    item = invoice.find_item(item_id)
    if item is None:
        logger.warning("allocation_unknown_item", extra={
            "invoice_id": invoice.invoice_id,
            "item_id": item_id,
        })
        raise UnknownLineItemError(invoice.invoice_id, item_id)

    clamped = clamp_amount(amount, item.remaining_balance)
    if clamped != amount:
        logger.debug("allocation_amount_clamped", extra={
            "item_id": item_id,
            "entered": str(amount),
            "clamped": str(clamped),
            "remaining_balance": str(item.remaining_balance),
        })

    updated = dict(allocation)
    updated[item_id] = clamped
    return updated


@traced_engine("allocation", "1.0", fingerprint_fields=("line_items", "allocation"))
def compute_allocation_total(
    line_items: Sequence[LineItem],
    allocation: Mapping[str, Decimal],
) -> Decimal:
    """
    Sum of the proposed amounts after clamping each into its item's range.

    Args:
        line_items: Ordered line items of the invoice.
        allocation: Item id -> proposed amount; missing items count as zero.

    Returns:
        Non-negative payment total.
    """
    total = sum(clamp_allocation(line_items, allocation).values(), ZERO)

    logger.debug("allocation_total_computed", extra={
        "item_count": len(line_items),
        "entry_count": len(allocation),
        "payment_total": str(total),
    })
    return total


def pay_all_items(line_items: Sequence[LineItem]) -> dict[str, Decimal]:
    """Allocation paying every line item's full remaining balance."""
    return {item.item_id: item.remaining_balance for item in line_items}


def summarize_allocation(
    invoice: Invoice,
    allocation: Mapping[str, Decimal],
    exchange_rate: Decimal | None,
) -> AllocationSummary:
    """
    Totals and per-item figures for the entry grid.

    Args:
        invoice: Invoice being paid.
        allocation: Item id -> proposed amount.
        exchange_rate: Payment currency -> system currency rate, or None
            while the rate has not been entered.

    Returns:
        AllocationSummary; ``system_equivalent`` is None without a usable
        rate.
    """
    clamped = clamp_allocation(invoice.line_items, allocation)
    lines = tuple(
        ItemAllocationLine(
            item_id=item.item_id,
            line_total=item.line_total,
            already_paid=item.already_paid,
            remaining_before_payment=item.remaining_balance,
            amount=clamped.get(item.item_id, ZERO),
        )
        for item in invoice.line_items
    )
    payment_total = compute_allocation_total(invoice.line_items, allocation)
    invoice_balance = invoice.balance_amount

    system_equivalent = None
    if exchange_rate is not None and exchange_rate > ZERO:
        system_equivalent = payment_total * exchange_rate

    return AllocationSummary(
        lines=lines,
        payment_total=payment_total,
        invoice_balance=invoice_balance,
        balance_after_payment=max(ZERO, invoice_balance - payment_total),
        system_equivalent=system_equivalent,
    )
