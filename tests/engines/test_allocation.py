"""
Tests for the item allocation engine.

Covers:
- Clamping into [0, remaining balance]
- Payment total over clamped amounts
- Entry-time clamping and unknown items
- Pay-all and the allocation summary
"""

from decimal import Decimal

import pytest

from settlement_engines.allocation import (
    clamp_allocation,
    clamp_amount,
    compute_allocation_total,
    enter_item_payment,
    pay_all_items,
    summarize_allocation,
)
from settlement_kernel.exceptions import UnknownLineItemError


class TestClampAmount:

    def test_within_range_unchanged(self):
        assert clamp_amount(Decimal("40"), Decimal("100")) == Decimal("40")

    def test_above_remaining_clamped_down(self):
        assert clamp_amount(Decimal("120"), Decimal("100")) == Decimal("100")

    def test_negative_clamped_to_zero(self):
        assert clamp_amount(Decimal("-5"), Decimal("100")) == Decimal("0")

    def test_settled_item_always_zero(self):
        assert clamp_amount(Decimal("10"), Decimal("0")) == Decimal("0")

    def test_idempotent(self):
        once = clamp_amount(Decimal("150.75"), Decimal("99.99"))
        assert clamp_amount(once, Decimal("99.99")) == once


class TestComputeAllocationTotal:

    def test_sum_of_clamped_amounts(self, invoice):
        """Remaining [100, 50, 0], proposed [120, 50, 10] -> 150."""
        allocation = {
            "line-1": Decimal("120"),
            "line-2": Decimal("50"),
            "line-3": Decimal("10"),
        }
        assert compute_allocation_total(invoice.line_items, allocation) == Decimal("150")

    def test_missing_items_count_as_zero(self, invoice):
        total = compute_allocation_total(invoice.line_items, {"line-2": Decimal("20")})
        assert total == Decimal("20")

    def test_empty_allocation_is_zero(self, invoice):
        assert compute_allocation_total(invoice.line_items, {}) == Decimal("0")

    def test_unknown_ids_ignored(self, invoice):
        total = compute_allocation_total(
            invoice.line_items, {"line-1": Decimal("10"), "ghost": Decimal("500")},
        )
        assert total == Decimal("10")

    def test_negative_entries_never_reduce_total(self, invoice):
        total = compute_allocation_total(
            invoice.line_items, {"line-1": Decimal("-40"), "line-2": Decimal("5")},
        )
        assert total == Decimal("5")

    def test_inputs_not_mutated(self, invoice):
        allocation = {"line-1": Decimal("500")}
        compute_allocation_total(invoice.line_items, allocation)
        assert allocation == {"line-1": Decimal("500")}


class TestClampAllocation:

    def test_keyed_in_line_order(self, invoice):
        clamped = clamp_allocation(
            invoice.line_items,
            {"line-3": Decimal("1"), "line-1": Decimal("2")},
        )
        assert list(clamped) == ["line-1", "line-3"]
        assert clamped["line-3"] == Decimal("0")


class TestEnterItemPayment:

    def test_amount_clamped_on_entry(self, invoice):
        allocation = enter_item_payment(invoice, {}, "line-2", Decimal("75"))
        assert allocation == {"line-2": Decimal("50.00")}

    def test_returns_new_mapping(self, invoice):
        original = {"line-1": Decimal("10")}
        updated = enter_item_payment(invoice, original, "line-2", Decimal("5"))
        assert original == {"line-1": Decimal("10")}
        assert updated == {"line-1": Decimal("10"), "line-2": Decimal("5")}

    def test_unknown_item_raises(self, invoice):
        with pytest.raises(UnknownLineItemError) as exc_info:
            enter_item_payment(invoice, {}, "line-9", Decimal("5"))
        assert exc_info.value.item_id == "line-9"
        assert exc_info.value.code == "UNKNOWN_LINE_ITEM"

    def test_clamping_is_logged(self, invoice, captured_logs):
        enter_item_payment(invoice, {}, "line-1", Decimal("250"))
        clamped = [r for r in captured_logs() if r["message"] == "allocation_amount_clamped"]
        assert clamped
        assert clamped[0]["entered"] == "250"
        assert clamped[0]["clamped"] == "100.00"


class TestPayAllItems:

    def test_every_item_at_remaining_balance(self, invoice):
        assert pay_all_items(invoice.line_items) == {
            "line-1": Decimal("100.00"),
            "line-2": Decimal("50.00"),
            "line-3": Decimal("0"),
        }

    def test_total_equals_invoice_balance(self, invoice):
        allocation = pay_all_items(invoice.line_items)
        assert compute_allocation_total(invoice.line_items, allocation) == invoice.balance_amount


class TestSummarizeAllocation:

    def test_summary_figures(self, invoice):
        summary = summarize_allocation(
            invoice, {"line-1": Decimal("60"), "line-2": Decimal("80")}, Decimal("2"),
        )
        assert summary.payment_total == Decimal("110.00")
        assert summary.invoice_balance == Decimal("150.00")
        assert summary.balance_after_payment == Decimal("40.00")
        assert summary.system_equivalent == Decimal("220.00")
        assert summary.allocated_item_count == 2

    def test_per_item_lines(self, invoice):
        summary = summarize_allocation(invoice, {"line-1": Decimal("60")}, Decimal("1"))
        first, second, third = summary.lines
        assert first.remaining_after_payment == Decimal("40.00")
        assert second.amount == Decimal("0")
        assert second.remaining_after_payment == Decimal("50.00")
        assert not third.is_payable

    def test_no_system_equivalent_without_rate(self, invoice):
        assert summarize_allocation(invoice, {}, None).system_equivalent is None
        assert summarize_allocation(invoice, {}, Decimal("0")).system_equivalent is None
