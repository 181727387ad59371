"""
Invoice Payment Module (``settlement_modules.invoice_payment``).

Responsibility
--------------
Recording a payment against a purchase or sales invoice: the invoice and
reference data model, the two-step entry workflow, issue messages, API
record parsing and the ``InvoicePaymentService`` facade.

Architecture position
---------------------
**Modules layer** -- value objects, workflow definition and glue.  All
allocation, exchange and validation arithmetic comes from
``settlement_engines``.

The wizard and service are imported from their own modules
(``settlement_modules.invoice_payment.wizard`` / ``.service``); they
depend on the engines, which in turn depend on the models re-exported
here.
"""

from settlement_modules.invoice_payment.models import (
    BalanceOffset,
    BankDetail,
    Counterparty,
    CurrencyContext,
    CurrencyRef,
    DirectPayment,
    ExchangeRateRef,
    Invoice,
    InvoiceSide,
    LineItem,
    PaymentDetails,
    PaymentIssue,
    PaymentMethodDescriptor,
    PaymentMethodKind,
    PaymentType,
    ReferenceData,
    ValidationResult,
)
from settlement_modules.invoice_payment.config import InvoicePaymentConfig
from settlement_modules.invoice_payment.workflows import (
    PAYMENT_ENTRY_WORKFLOW,
    WizardAction,
    WizardStep,
)

__all__ = [
    "BalanceOffset",
    "BankDetail",
    "Counterparty",
    "CurrencyContext",
    "CurrencyRef",
    "DirectPayment",
    "ExchangeRateRef",
    "Invoice",
    "InvoiceSide",
    "LineItem",
    "PaymentDetails",
    "PaymentIssue",
    "PaymentMethodDescriptor",
    "PaymentMethodKind",
    "PaymentType",
    "ReferenceData",
    "ValidationResult",
    "InvoicePaymentConfig",
    "PAYMENT_ENTRY_WORKFLOW",
    "WizardAction",
    "WizardStep",
]
