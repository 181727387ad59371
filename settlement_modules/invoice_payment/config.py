"""
Invoice Payment Configuration Schema (``settlement_modules.invoice_payment.config``).

Responsibility
--------------
Declarative settings for the payment allocator: the absolute tolerance
that absorbs rounding when a direct payment is compared against the
invoice balance, and the display precision of amounts in messages.

Architecture position
---------------------
**Modules layer** -- configuration schema only.  Loaded at runtime via
``settlement_config.get_active_config()``; nothing else reads config files.

Invariants enforced
-------------------
* All monetary thresholds use ``Decimal`` (never ``float``).
* ``__post_init__`` rejects negative tolerances and out-of-range precision.

Failure modes
-------------
* ``InvalidConfigurationError`` at construction if a constraint is violated.
"""

from dataclasses import dataclass
from decimal import Decimal

from settlement_kernel.exceptions import InvalidConfigurationError
from settlement_kernel.logging_config import get_logger
from settlement_modules.invoice_payment.models import InvoiceSide

logger = get_logger("modules.invoice_payment.config")


@dataclass(frozen=True)
class InvoicePaymentConfig:
    """
    Configuration schema for invoice payment entry.

    Field defaults match the behaviour of the payment forms:

        config = InvoicePaymentConfig(overpayment_tolerance=Decimal("0.05"))
    """

    # Absolute slack allowed when a direct payment exceeds the invoice balance
    overpayment_tolerance: Decimal = Decimal("0.01")

    # Decimal places used when rendering amounts in messages
    amount_places: int = 2

    default_side: InvoiceSide = InvoiceSide.PURCHASE

    def __post_init__(self):
        if not isinstance(self.overpayment_tolerance, Decimal):
            raise InvalidConfigurationError(
                "overpayment_tolerance", self.overpayment_tolerance, "must be Decimal",
            )
        if self.overpayment_tolerance < 0:
            raise InvalidConfigurationError(
                "overpayment_tolerance", self.overpayment_tolerance, "cannot be negative",
            )
        if not 0 <= self.amount_places <= 8:
            raise InvalidConfigurationError(
                "amount_places", self.amount_places, "must be between 0 and 8",
            )
        if not isinstance(self.default_side, InvoiceSide):
            raise InvalidConfigurationError(
                "default_side", self.default_side, "must be an InvoiceSide",
            )

        logger.info(
            "invoice_payment_config_initialized",
            extra={
                "overpayment_tolerance": str(self.overpayment_tolerance),
                "amount_places": self.amount_places,
                "default_side": self.default_side.value,
            },
        )
