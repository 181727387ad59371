"""
Pure domain layer.

Value objects with NO dependencies on:
- Network or transport
- Wall-clock time (except the injected ``Clock``)
- I/O

All domain objects are immutable and deterministic.
"""

from settlement_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from settlement_kernel.domain.workflow import Guard, Transition, Workflow

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "Guard",
    "Transition",
    "Workflow",
]
