"""Tests for exchange rate resolution and conversion."""

from decimal import Decimal

import pytest

from settlement_engines.exchange import (
    ONE,
    find_active_rate,
    from_system_currency,
    resolve_exchange_rate,
    to_system_currency,
)
from settlement_modules.invoice_payment.models import ExchangeRateRef

RATES = (
    ExchangeRateRef("rate-eur-usd", "eur", "usd", Decimal("1.10")),
    ExchangeRateRef("rate-usd-eur", "usd", "eur", Decimal("0.91")),
    ExchangeRateRef("rate-eur-usd-old", "eur", "usd", Decimal("1.05")),
)


class TestResolveExchangeRate:

    def test_system_currency_is_identity(self):
        resolved = resolve_exchange_rate("usd", "usd", RATES)
        assert resolved.rate == ONE
        assert resolved.rate_id is None
        assert resolved.is_identity

    def test_matching_rate_carries_its_id(self):
        resolved = resolve_exchange_rate("eur", "usd", RATES)
        assert resolved.rate == Decimal("1.10")
        assert resolved.rate_id == "rate-eur-usd"
        assert not resolved.is_identity

    def test_missing_rate_falls_back_to_one(self, captured_logs):
        resolved = resolve_exchange_rate("gbp", "usd", RATES)
        assert resolved.rate == ONE
        assert resolved.rate_id is None

        warnings = [r for r in captured_logs() if r["message"] == "exchange_rate_not_found"]
        assert warnings[0]["level"] == "WARNING"
        assert warnings[0]["from_currency_id"] == "gbp"

    def test_direction_matters(self):
        assert find_active_rate("usd", "eur", RATES).rate_id == "rate-usd-eur"
        assert find_active_rate("gbp", "eur", RATES) is None

    def test_first_match_wins(self):
        assert find_active_rate("eur", "usd", RATES).rate == Decimal("1.10")


class TestConversion:

    def test_to_system_currency(self):
        assert to_system_currency(Decimal("600"), Decimal("2.0")) == Decimal("1200")

    def test_from_system_currency(self):
        assert from_system_currency(Decimal("1000"), Decimal("2.0")) == Decimal("500")

    @pytest.mark.parametrize("rate", [None, Decimal("0"), Decimal("-2")])
    def test_unusable_rate_rejected(self, rate):
        with pytest.raises(ValueError):
            to_system_currency(Decimal("1"), rate)
        with pytest.raises(ValueError):
            from_system_currency(Decimal("1"), rate)
