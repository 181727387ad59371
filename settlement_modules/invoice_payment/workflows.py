"""
Invoice Payment Entry Workflow (``settlement_modules.invoice_payment.workflows``).

Responsibility
--------------
Declares the two-step state machine of the payment entry wizard: the
*details* step (method, currency, date, account) and the *items* step
(per-item allocation, totals, final validation).  Guards name the
validation scope that gates each transition; ``submits_payment=True``
marks the transition that produces the submission payload.

Architecture position
---------------------
**Modules layer** -- declarative workflow definition.  Imports canonical
Guard, Transition, Workflow from ``settlement_kernel.domain.workflow``.
Driven at runtime by ``PaymentWizard``.

Invariants enforced
-------------------
* ``Workflow``, ``Transition`` and ``Guard`` instances are frozen.
* Leaving the details step is gated; going back from items never is.

Audit relevance
---------------
Workflow definition logged at module-load time with state and transition
counts.
"""

from enum import Enum

from settlement_kernel.domain.workflow import Guard, Transition, Workflow
from settlement_kernel.logging_config import get_logger

logger = get_logger("modules.invoice_payment.workflows")


class WizardStep(str, Enum):
    DETAILS = "details"
    ITEMS = "items"


class WizardAction(str, Enum):
    PROCEED = "proceed"
    BACK = "back"
    SUBMIT = "submit"


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

DETAILS_VALID = Guard(
    name="details_valid",
    description="Payment type, currency, date and account rules report no issues",
)

PAYMENT_VALID = Guard(
    name="payment_valid",
    description="Every payment rule, item amounts included, reports no issues",
)


# -----------------------------------------------------------------------------
# Payment Entry Workflow
# -----------------------------------------------------------------------------

PAYMENT_ENTRY_WORKFLOW = Workflow(
    name="invoice_payment_entry",
    description="Two-step entry of a payment against invoice line items",
    initial_state=WizardStep.DETAILS.value,
    states=(WizardStep.DETAILS.value, WizardStep.ITEMS.value),
    transitions=(
        Transition(
            WizardStep.DETAILS.value, WizardStep.ITEMS.value,
            action=WizardAction.PROCEED.value, guard=DETAILS_VALID,
        ),
        Transition(
            WizardStep.ITEMS.value, WizardStep.DETAILS.value,
            action=WizardAction.BACK.value,
        ),
        Transition(
            WizardStep.ITEMS.value, WizardStep.ITEMS.value,
            action=WizardAction.SUBMIT.value, guard=PAYMENT_VALID,
            submits_payment=True,
        ),
    ),
)

logger.info(
    "invoice_payment_workflow_defined",
    extra={
        "workflow": PAYMENT_ENTRY_WORKFLOW.name,
        "states": len(PAYMENT_ENTRY_WORKFLOW.states),
        "transitions": len(PAYMENT_ENTRY_WORKFLOW.transitions),
        "guards": [DETAILS_VALID.name, PAYMENT_VALID.name],
    },
)
