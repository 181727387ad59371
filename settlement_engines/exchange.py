"""
Module: settlement_engines.exchange
Responsibility:
    Resolve the rate that converts a payment currency into the system
    currency from pre-fetched active rates, and convert amounts across
    that pair.

Architecture position:
    Engines -- pure calculation layer, zero I/O.  Rates are looked up by id
    within the collection handed in; nothing is fetched.

Invariants enforced:
    - The system currency always converts at exactly 1 with no rate id.
    - A looked-up rate is returned together with its id so the payload can
      reference the rate record; the 1:1 fallback never carries an id.

Failure modes:
    - ValueError when converting with a missing or non-positive rate.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal

from settlement_kernel.logging_config import get_logger
from settlement_modules.invoice_payment.models import ZERO, ExchangeRateRef

logger = get_logger("engines.exchange")

ONE = Decimal("1")


@dataclass(frozen=True)
class ResolvedRate:
    """Rate to the system currency, with the id of the record it came from."""

    rate: Decimal
    rate_id: str | None = None

    @property
    def is_identity(self) -> bool:
        return self.rate == ONE and self.rate_id is None


def find_active_rate(
    from_currency_id: str,
    to_currency_id: str,
    exchange_rates: Sequence[ExchangeRateRef],
) -> ExchangeRateRef | None:
    """First active rate for the pair, in the order supplied."""
    for rate in exchange_rates:
        if rate.from_currency_id == from_currency_id and rate.to_currency_id == to_currency_id:
            return rate
    return None


def resolve_exchange_rate(
    currency_id: str,
    system_currency_id: str,
    exchange_rates: Sequence[ExchangeRateRef],
) -> ResolvedRate:
    """
    Rate for paying in ``currency_id`` when the books are kept in
    ``system_currency_id``.

    Returns:
        1 (no id) for the system currency itself; the matching active rate
        with its id; otherwise 1 (no id) so the user can correct it by hand.
    """
    if currency_id == system_currency_id:
        return ResolvedRate(rate=ONE)

    match = find_active_rate(currency_id, system_currency_id, exchange_rates)
    if match is not None:
        return ResolvedRate(rate=match.rate, rate_id=match.rate_id)

    logger.warning("exchange_rate_not_found", extra={
        "from_currency_id": currency_id,
        "to_currency_id": system_currency_id,
        "fallback_rate": str(ONE),
    })
    return ResolvedRate(rate=ONE)


def _require_rate(rate: Decimal | None) -> Decimal:
    if rate is None or rate <= ZERO:
        raise ValueError(f"Exchange rate must be positive: {rate}")
    return rate


def to_system_currency(amount: Decimal, rate: Decimal | None) -> Decimal:
    """Invoice-currency units x rate = system-currency units."""
    return amount * _require_rate(rate)


def from_system_currency(amount: Decimal, rate: Decimal | None) -> Decimal:
    """System-currency units / rate = invoice-currency units."""
    return amount / _require_rate(rate)
