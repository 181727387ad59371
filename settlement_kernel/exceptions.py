"""
Typed Exception Hierarchy for the settlement packages.

Business-rule failures in a payment attempt (missing payment type, amount
over balance, date before invoice date, ...) are NOT exceptions: they are
returned as ``PaymentIssue`` values so a form can show every problem at
once.  The classes below signal programming errors, bad configuration, or
malformed upstream data.

Every exception carries a class-level ``code`` (machine-readable, API-safe)
and stores its context as attributes so it survives structured logging:

    try:
        payload = build_submission_payload(...)
    except AllocationInvalidError as e:
        log.warning("payment_rejected", extra={"codes": e.codes})

Hierarchy:

    SettlementError (base)
    |
    +-- AllocationError
    |   +-- UnknownLineItemError
    |   +-- AllocationInvalidError
    |
    +-- WorkflowError
    |   +-- InvalidWizardTransitionError
    |   +-- MethodFieldNotApplicableError
    |
    +-- ConfigurationError
    |   +-- InvalidConfigurationError
    |
    +-- ParsingError
        +-- InvalidAmountError
        +-- InvalidDateError
        +-- MissingFieldError
"""

from __future__ import annotations

from typing import Any


class SettlementError(Exception):
    """
    Base exception for all settlement errors.

    All subclasses must have a ``code`` class attribute for
    machine-readable error identification.
    """

    code: str = "SETTLEMENT_ERROR"


# Allocation-related exceptions


class AllocationError(SettlementError):
    """Base exception for payment allocation errors."""

    code: str = "ALLOCATION_ERROR"


class UnknownLineItemError(AllocationError):
    """A payment amount was entered for an item that is not on the invoice."""

    code: str = "UNKNOWN_LINE_ITEM"

    def __init__(self, invoice_id: str, item_id: str):
        self.invoice_id = invoice_id
        self.item_id = item_id
        super().__init__(f"Line item '{item_id}' is not on invoice {invoice_id}")


class AllocationInvalidError(AllocationError):
    """A submission payload was requested for a state that fails validation."""

    code: str = "ALLOCATION_INVALID"

    def __init__(self, invoice_id: str, issues: tuple[Any, ...]):
        self.invoice_id = invoice_id
        self.issues = issues
        self.codes = sorted({issue.code for issue in issues})
        super().__init__(
            f"Payment for invoice {invoice_id} has {len(issues)} validation "
            f"issue(s): {', '.join(self.codes)}"
        )


# Workflow-related exceptions


class WorkflowError(SettlementError):
    """Base exception for payment entry workflow errors."""

    code: str = "WORKFLOW_ERROR"


class InvalidWizardTransitionError(WorkflowError):
    """The requested action is not available from the current step."""

    code: str = "INVALID_WIZARD_TRANSITION"

    def __init__(self, current_step: str, action: str):
        self.current_step = current_step
        self.action = action
        super().__init__(
            f"Action '{action}' is not allowed from step '{current_step}'"
        )


class MethodFieldNotApplicableError(WorkflowError):
    """A field was edited that the selected payment method does not use."""

    code: str = "METHOD_FIELD_NOT_APPLICABLE"

    def __init__(self, field: str, method_kind: str):
        self.field = field
        self.method_kind = method_kind
        super().__init__(
            f"Field '{field}' cannot be edited for method '{method_kind}'"
        )


# Configuration-related exceptions


class ConfigurationError(SettlementError):
    """Base exception for configuration errors."""

    code: str = "CONFIGURATION_ERROR"


class InvalidConfigurationError(ConfigurationError):
    """A configuration value failed validation."""

    code: str = "INVALID_CONFIGURATION"

    def __init__(self, key: str, value: Any, reason: str):
        self.key = key
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid configuration '{key}'={value!r}: {reason}")


# Parsing-related exceptions


class ParsingError(SettlementError):
    """Base exception for malformed upstream data."""

    code: str = "PARSING_ERROR"


class InvalidAmountError(ParsingError):
    """A numeric field could not be converted to Decimal."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, field: str, value: Any):
        self.field = field
        self.value = value
        super().__init__(f"Invalid amount for '{field}': {value!r}")


class MissingFieldError(ParsingError):
    """A required field is absent from upstream data."""

    code: str = "MISSING_FIELD"

    def __init__(self, record_type: str, field: str):
        self.record_type = record_type
        self.field = field
        super().__init__(f"{record_type} is missing required field '{field}'")


class InvalidDateError(ParsingError):
    """A date field is neither a date nor an ISO 8601 string."""

    code: str = "INVALID_DATE"

    def __init__(self, field: str, value: Any):
        self.field = field
        self.value = value
        super().__init__(f"Invalid date for '{field}': {value!r}")
