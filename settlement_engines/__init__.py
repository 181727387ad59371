"""
Module: settlement_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    invoice payment engines.  This is the canonical import surface for
    the invoice payment wizard and service.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Imports settlement_kernel and the invoice payment value objects only.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()`` or ``date.today()``.
      The transaction date is passed in by the caller.
    - Decimal-only arithmetic: all monetary amounts use ``Decimal``.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Engine entry points are traced via ``@traced_engine`` (see
    ``settlement_engines.tracer``), emitting SETTLEMENT_ENGINE_TRACE
    records with engine name, version, input fingerprint and duration.

Usage:
    from settlement_engines import compute_allocation_total, validate_allocation
    from settlement_engines.exchange import resolve_exchange_rate
"""

from settlement_kernel.logging_config import get_logger

logger = get_logger("engines")

from settlement_engines.allocation import (
    AllocationSummary,
    ItemAllocationLine,
    clamp_allocation,
    clamp_amount,
    compute_allocation_total,
    enter_item_payment,
    pay_all_items,
    summarize_allocation,
)
from settlement_engines.exchange import (
    ResolvedRate,
    find_active_rate,
    from_system_currency,
    resolve_exchange_rate,
    to_system_currency,
)
from settlement_engines.payment_validation import (
    DEFAULT_TOLERANCE,
    ValidationScope,
    validate_allocation,
)
from settlement_engines.submission import (
    SubmissionPayload,
    build_submission_payload,
    payload_inputs,
)
from settlement_engines.tracer import traced_engine

__all__ = [
    # Allocation
    "AllocationSummary",
    "ItemAllocationLine",
    "clamp_allocation",
    "clamp_amount",
    "compute_allocation_total",
    "enter_item_payment",
    "pay_all_items",
    "summarize_allocation",
    # Exchange
    "ResolvedRate",
    "find_active_rate",
    "from_system_currency",
    "resolve_exchange_rate",
    "to_system_currency",
    # Validation
    "DEFAULT_TOLERANCE",
    "ValidationScope",
    "validate_allocation",
    # Submission
    "SubmissionPayload",
    "build_submission_payload",
    "payload_inputs",
    # Tracer
    "traced_engine",
]
