"""
Invoice Payment Wizard (``settlement_modules.invoice_payment.wizard``).

Responsibility
--------------
Holds the draft of one payment attempt while it is being entered and
drives it through ``PAYMENT_ENTRY_WORKFLOW``: method selection, currency,
date, account and description on the details step; per-item amounts on
the items step.  Every derived figure (totals, issues, payload) is
recomputed from the draft by the pure engines on each call.

Architecture position
---------------------
**Modules layer** -- stateful coordinator over pure engines.  ZERO I/O;
the transaction date default is supplied by the caller.

Invariants enforced
-------------------
* Item amounts are clamped into ``[0, remaining_balance]`` on entry.
* A validation pass replaces the issue set; a step change clears it.
* Editing a field drops the stale issues bound to that field.
* Going back to details keeps the item allocation.
* Choosing a balance offset pins currency and rate to the invoice's.

Failure modes
-------------
* ``InvalidWizardTransitionError`` for an action the current step does not
  offer (e.g. ``proceed`` from items).
* ``MethodFieldNotApplicableError`` when editing a field the selected
  method does not use.
* ``UnknownLineItemError`` for an item id not on the invoice.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from types import MappingProxyType

from settlement_engines.allocation import (
    AllocationSummary,
    enter_item_payment,
    pay_all_items,
    summarize_allocation,
)
from settlement_engines.exchange import resolve_exchange_rate
from settlement_engines.payment_validation import (
    DEFAULT_TOLERANCE,
    ValidationScope,
    validate_allocation,
)
from settlement_engines.submission import SubmissionPayload, build_submission_payload
from settlement_kernel.domain.workflow import Transition, Workflow
from settlement_kernel.exceptions import (
    InvalidWizardTransitionError,
    MethodFieldNotApplicableError,
)
from settlement_kernel.logging_config import get_logger
from settlement_modules.invoice_payment.models import (
    BalanceOffset,
    CurrencyContext,
    DirectPayment,
    Invoice,
    PaymentDetails,
    PaymentIssue,
    PaymentMethodSelection,
    ReferenceData,
    ValidationResult,
)
from settlement_modules.invoice_payment.workflows import (
    DETAILS_VALID,
    PAYMENT_ENTRY_WORKFLOW,
    PAYMENT_VALID,
    WizardAction,
    WizardStep,
)

logger = get_logger("modules.invoice_payment.wizard")

# Guard name -> rule subset that must report no issues
_GUARD_SCOPES = {
    DETAILS_VALID.name: ValidationScope.DETAILS,
    PAYMENT_VALID.name: ValidationScope.FULL,
}


class PaymentWizard:
    """Two-step payment entry for a single invoice."""

    def __init__(
        self,
        invoice: Invoice,
        reference_data: ReferenceData,
        *,
        transaction_date: date | datetime | None = None,
        tolerance: Decimal = DEFAULT_TOLERANCE,
        workflow: Workflow = PAYMENT_ENTRY_WORKFLOW,
    ) -> None:
        self.invoice = invoice
        self.reference_data = reference_data
        self.tolerance = tolerance
        self.workflow = workflow

        self._step = WizardStep(workflow.initial_state)
        self._method: PaymentMethodSelection = DirectPayment()
        self._currency = CurrencyContext.from_invoice(invoice)
        self._details = PaymentDetails(
            transaction_date=transaction_date,
            account_id=invoice.account_id,
        )
        self._allocation: dict[str, Decimal] = {}
        self._issues: tuple[PaymentIssue, ...] = ()

        logger.info("payment_wizard_started", extra={
            "invoice_id": invoice.invoice_id,
            "side": invoice.side.value,
            "item_count": len(invoice.line_items),
            "invoice_balance": str(invoice.balance_amount),
        })

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def step(self) -> WizardStep:
        return self._step

    @property
    def method(self) -> PaymentMethodSelection:
        return self._method

    @property
    def currency(self) -> CurrencyContext:
        return self._currency

    @property
    def details(self) -> PaymentDetails:
        return self._details

    @property
    def allocation(self) -> Mapping[str, Decimal]:
        return MappingProxyType(self._allocation)

    @property
    def issues(self) -> tuple[PaymentIssue, ...]:
        """Issues of the latest validation pass, minus fields edited since."""
        return self._issues

    def available_actions(self) -> tuple[str, ...]:
        return self.workflow.actions_from(self._step.value)

    def summary(self) -> AllocationSummary:
        return summarize_allocation(
            self.invoice, self._allocation, self._currency.exchange_rate,
        )

    def validate(self, scope: ValidationScope | None = None) -> ValidationResult:
        """Run a validation pass and replace the issue set with its result.

        Without ``scope`` the rules of the current step run: the details
        subset on the details step, everything on the items step.
        """
        if scope is None:
            scope = (
                ValidationScope.DETAILS if self._step is WizardStep.DETAILS
                else ValidationScope.FULL
            )
        result = validate_allocation(
            self.invoice,
            self._allocation,
            self._method,
            self._currency,
            self._details,
            self.reference_data,
            scope=scope,
            tolerance=self.tolerance,
        )
        self._issues = result.issues
        return result

    # ------------------------------------------------------------------
    # Step transitions
    # ------------------------------------------------------------------

    def proceed(self) -> bool:
        """Details -> items.  Returns False (issues set) when the guard fails."""
        return self._fire(WizardAction.PROCEED)

    def back(self) -> None:
        """Items -> details.  Unconditional; the allocation is kept."""
        self._fire(WizardAction.BACK)

    def submit(self) -> SubmissionPayload | None:
        """Build the submission payload, or None with issues set."""
        if not self._fire(WizardAction.SUBMIT):
            return None
        return build_submission_payload(
            self.invoice,
            self._allocation,
            self._method,
            self._currency,
            self._details,
            self.reference_data,
            tolerance=self.tolerance,
        )

    def _require_transition(self, action: WizardAction) -> Transition:
        transition = self.workflow.find_transition(self._step.value, action.value)
        if transition is None:
            logger.warning("payment_wizard_invalid_action", extra={
                "invoice_id": self.invoice.invoice_id,
                "step": self._step.value,
                "action": action.value,
            })
            raise InvalidWizardTransitionError(self._step.value, action.value)
        return transition

    def _fire(self, action: WizardAction) -> bool:
        transition = self._require_transition(action)
        if transition.guard is not None:
            result = self.validate(_GUARD_SCOPES[transition.guard.name])
            if not result.is_valid:
                logger.info("payment_wizard_guard_failed", extra={
                    "invoice_id": self.invoice.invoice_id,
                    "action": action.value,
                    "guard": transition.guard.name,
                    "issue_codes": sorted(result.codes),
                })
                return False

        previous = self._step
        self._step = WizardStep(transition.to_state)
        self._issues = ()
        logger.info("payment_wizard_transition", extra={
            "invoice_id": self.invoice.invoice_id,
            "action": action.value,
            "from_step": previous.value,
            "to_step": self._step.value,
        })
        return True

    # ------------------------------------------------------------------
    # Item amounts
    # ------------------------------------------------------------------

    def set_item_payment(self, item_id: str, amount: Decimal) -> Decimal:
        """Enter an amount against one item; returns the clamped amount."""
        self._allocation = enter_item_payment(
            self.invoice, self._allocation, item_id, amount,
        )
        self._clear_field(f"itemPayment_{item_id}")
        return self._allocation[item_id]

    def pay_all_items(self) -> None:
        self._allocation = pay_all_items(self.invoice.line_items)
        self._clear_item_fields()

    def clear_items(self) -> None:
        self._allocation = {}
        self._clear_item_fields()

    # ------------------------------------------------------------------
    # Payment method
    # ------------------------------------------------------------------

    def select_direct_payment(self) -> None:
        self._method = DirectPayment()
        self._clear_method_fields()
        self.set_account(self.invoice.account_id)

    def select_balance_offset(self) -> None:
        """Draw down the counterparty balance at the invoice's currency and rate."""
        self._method = BalanceOffset()
        self._currency = CurrencyContext.from_invoice(self.invoice)
        self._clear_method_fields()
        self._clear_field("currencyId", "exchangeRate")
        self.set_account(self.invoice.account_id)

    def select_payment_type(self, payment_type_id: str | None) -> None:
        """Choose a payment type; cheque and bank fields start empty again."""
        self._method = DirectPayment(payment_type_id=payment_type_id)
        self._clear_field("paymentTypeId", "chequeNumber", "bankDetailId")

    def set_cheque_number(self, cheque_number: str) -> None:
        self._method = replace(self._direct("chequeNumber"), cheque_number=cheque_number)
        self._clear_field("chequeNumber")

    def select_bank_detail(self, bank_detail_id: str | None) -> None:
        """Choose a bank account; its branch fills the branch field."""
        direct = self._direct("bankDetailId")
        bank = self.reference_data.find_bank_detail(bank_detail_id)
        self._method = replace(
            direct,
            bank_detail_id=bank_detail_id or None,
            branch=bank.branch if bank is not None else "",
        )
        self._clear_field("bankDetailId")

    def set_branch(self, branch: str) -> None:
        self._method = replace(self._direct("branch"), branch=branch)

    def _direct(self, field_name: str) -> DirectPayment:
        if not isinstance(self._method, DirectPayment):
            raise MethodFieldNotApplicableError(field_name, self._method.kind.value)
        return self._method

    # ------------------------------------------------------------------
    # Currency
    # ------------------------------------------------------------------

    def set_currency(self, currency_id: str) -> None:
        """Choose the payment currency and look up its rate to the system currency.

        Without a default currency or loaded rates the current rate is kept.
        """
        self._direct("currencyId")
        default = self.reference_data.default_currency
        if default is None or not self.reference_data.exchange_rates:
            # Nothing to resolve against; the entered rate stays
            self._currency = replace(self._currency, currency_id=currency_id)
        else:
            resolved = resolve_exchange_rate(
                currency_id, default.currency_id, self.reference_data.exchange_rates,
            )
            self._currency = CurrencyContext(
                currency_id=currency_id,
                exchange_rate=resolved.rate,
                exchange_rate_id=resolved.rate_id,
            )
        self._clear_field("currencyId", "exchangeRate")

    def set_exchange_rate(self, exchange_rate: Decimal | None) -> None:
        self._direct("exchangeRate")
        self._currency = replace(self._currency, exchange_rate=exchange_rate)
        self._clear_field("exchangeRate")

    # ------------------------------------------------------------------
    # Details
    # ------------------------------------------------------------------

    def set_transaction_date(self, transaction_date: date | datetime | None) -> None:
        self._details = replace(self._details, transaction_date=transaction_date)
        self._clear_field("transactionDate")

    def set_account(self, account_id: str | None) -> None:
        self._details = replace(self._details, account_id=account_id)
        self._clear_field("accountId")

    def set_description(self, description: str) -> None:
        self._details = replace(self._details, description=description)

    # ------------------------------------------------------------------
    # Issue bookkeeping
    # ------------------------------------------------------------------

    def _clear_field(self, *field_names: str) -> None:
        self._issues = tuple(i for i in self._issues if i.field not in field_names)

    def _clear_item_fields(self) -> None:
        self._issues = tuple(
            i for i in self._issues if not i.field.startswith("itemPayment_")
        )

    def _clear_method_fields(self) -> None:
        self._clear_field(
            "paymentTypeId", "chequeNumber", "bankDetailId", "depositAmount",
        )
