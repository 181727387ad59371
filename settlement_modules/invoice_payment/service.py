"""
Invoice Payment Module Service (``settlement_modules.invoice_payment.service``).

Responsibility
--------------
Entry point for recording a payment against a purchase or sales invoice:
opens a ``PaymentWizard`` with the configured defaults, exposes the
selectable reference data, renders issue messages and hands a validated
``SubmissionPayload`` to the external record-payment collaborator.

Architecture position
---------------------
**Modules layer** -- thin glue.  All computation is delegated to
``settlement_engines``; the network call belongs to the injected
``PaymentSubmitter``.

Invariants enforced
-------------------
* The submitter is only called with a payload that passed every rule.
* The only clock read happens here (default transaction date), through the
  injected ``Clock``.

Failure modes
-------------
* Validation failure -> ``SubmissionOutcome`` with status ``REJECTED`` and
  the issues; nothing is submitted.
* Submitter exception -> logged, then re-raised unchanged.

Usage::

    service = InvoicePaymentService(config, reference_data, submitter)
    wizard = service.start(invoice)
    wizard.select_payment_type("pt-cash")
    wizard.proceed()
    wizard.pay_all_items()
    outcome = service.submit(wizard)
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from settlement_engines.submission import SubmissionPayload
from settlement_kernel.domain.clock import Clock, SystemClock
from settlement_kernel.logging_config import LogContext, get_logger
from settlement_modules.invoice_payment.config import InvoicePaymentConfig
from settlement_modules.invoice_payment.messages import render_issue_lists, render_issues
from settlement_modules.invoice_payment.models import (
    BankDetail,
    Invoice,
    InvoiceSide,
    PaymentIssue,
    PaymentType,
    ReferenceData,
)
from settlement_modules.invoice_payment.wizard import PaymentWizard

logger = get_logger("modules.invoice_payment.service")


class PaymentSubmitter(Protocol):
    """External collaborator that records the payment (e.g. a REST client)."""

    def record_payment(
        self,
        invoice_id: str,
        side: InvoiceSide,
        payload: SubmissionPayload,
    ) -> Any:
        ...


class SubmissionStatus(str, Enum):
    SUBMITTED = "submitted"
    REJECTED = "rejected"


@dataclass(frozen=True)
class SubmissionOutcome:
    """Result of ``InvoicePaymentService.submit``."""
    status: SubmissionStatus
    payload: SubmissionPayload | None = None
    issues: tuple[PaymentIssue, ...] = ()
    response: Any = None

    @property
    def is_success(self) -> bool:
        return self.status is SubmissionStatus.SUBMITTED


class InvoicePaymentService:
    """
    Records payments against invoices through the payment wizard.

    Contract
    --------
    * ``submit`` returns a ``SubmissionOutcome``; business-rule failures are
      reported through it, never raised.

    Guarantees
    ----------
    * Clock is injectable for deterministic testing.
    * Reference data is matched by id only; nothing is fetched.
    """

    def __init__(
        self,
        config: InvoicePaymentConfig,
        reference_data: ReferenceData,
        submitter: PaymentSubmitter,
        clock: Clock | None = None,
    ):
        self._config = config
        self._reference_data = reference_data
        self._submitter = submitter
        self._clock = clock or SystemClock()

    @property
    def config(self) -> InvoicePaymentConfig:
        return self._config

    def start(self, invoice: Invoice) -> PaymentWizard:
        """Open the wizard: today's date, the invoice's account, currency and rate."""
        return PaymentWizard(
            invoice,
            self._reference_data,
            transaction_date=self._clock.today(),
            tolerance=self._config.overpayment_tolerance,
        )

    def payment_type_options(self, side: InvoiceSide | None = None) -> tuple[PaymentType, ...]:
        """Active payment types usable for creditor (purchase) or debtor (sales) payments."""
        side = side or self._config.default_side
        return tuple(
            pt for pt in self._reference_data.payment_types if pt.allowed_for(side)
        )

    def bank_detail_options(self) -> tuple[BankDetail, ...]:
        return self._reference_data.bank_details

    def issue_messages(
        self,
        wizard: PaymentWizard,
        templates: Mapping[str, str] | None = None,
    ) -> dict[str, str]:
        """Field -> message for the wizard's current issues."""
        return render_issues(
            wizard.issues,
            wizard.invoice.currency_symbol,
            templates,
            side=wizard.invoice.side,
            places=self._config.amount_places,
        )

    def all_issue_messages(
        self,
        wizard: PaymentWizard,
        templates: Mapping[str, str] | None = None,
    ) -> dict[str, list[str]]:
        """Field -> every message for the wizard's current issues."""
        return render_issue_lists(
            wizard.issues,
            wizard.invoice.currency_symbol,
            templates,
            side=wizard.invoice.side,
            places=self._config.amount_places,
        )

    def submit(self, wizard: PaymentWizard) -> SubmissionOutcome:
        """
        Validate the wizard's draft and record the payment.

        Preconditions:
            The wizard is on the items step.
        Raises:
            InvalidWizardTransitionError: the wizard is on the details step.
            Exception: anything the submitter raises, after logging.
        """
        invoice = wizard.invoice
        with LogContext.bind(invoice_id=invoice.invoice_id):
            payload = wizard.submit()
            if payload is None:
                logger.info("invoice_payment_rejected", extra={
                    "side": invoice.side.value,
                    "issue_codes": sorted({i.code for i in wizard.issues}),
                })
                return SubmissionOutcome(
                    status=SubmissionStatus.REJECTED,
                    issues=wizard.issues,
                )

            logger.info("invoice_payment_submitting", extra={
                "side": invoice.side.value,
                "method": payload.method_kind.value,
                "payment_amount": str(payload.payment_amount),
                "currency_id": payload.currency_id,
            })
            try:
                response = self._submitter.record_payment(
                    invoice.invoice_id, invoice.side, payload,
                )
            except Exception:
                logger.exception("invoice_payment_submission_failed", extra={
                    "side": invoice.side.value,
                    "payment_amount": str(payload.payment_amount),
                })
                raise

            logger.info("invoice_payment_submitted", extra={
                "side": invoice.side.value,
                "payment_amount": str(payload.payment_amount),
            })
            return SubmissionOutcome(
                status=SubmissionStatus.SUBMITTED,
                payload=payload,
                response=response,
            )
