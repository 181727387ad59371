"""
Configuration Loader (``settlement_config.loader``).

Responsibility
--------------
Loads a YAML configuration set and parses it into typed, frozen settings.
Callers go through ``settlement_config.get_active_config()``; nothing else
reads configuration files.

Invariants enforced
-------------------
* Amounts are read through ``str`` into ``Decimal``; YAML floats never
  reach the settings.
* ``compute_checksum`` is deterministic for identical YAML content.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing ``config_id`` or an invalid value  -> ``InvalidConfigurationError``.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from settlement_kernel.exceptions import InvalidConfigurationError
from settlement_modules.invoice_payment.config import InvoicePaymentConfig
from settlement_modules.invoice_payment.models import InvoiceSide


@dataclass(frozen=True)
class SettlementConfig:
    """A loaded configuration set, identified by id, version and checksum."""
    config_id: str
    version: int
    checksum: str
    invoice_payment: InvoicePaymentConfig


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def _parse_decimal(key: str, value: Any) -> Decimal:
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise InvalidConfigurationError(key, value, "not a decimal number") from None


def parse_invoice_payment_config(data: dict[str, Any]) -> InvoicePaymentConfig:
    """Build ``InvoicePaymentConfig``; absent keys keep their defaults."""
    kwargs: dict[str, Any] = {}
    if "overpayment_tolerance" in data:
        kwargs["overpayment_tolerance"] = _parse_decimal(
            "overpayment_tolerance", data["overpayment_tolerance"],
        )
    if "amount_places" in data:
        places = data["amount_places"]
        if not isinstance(places, int) or isinstance(places, bool):
            raise InvalidConfigurationError("amount_places", places, "must be an integer")
        kwargs["amount_places"] = places
    if "default_side" in data:
        try:
            kwargs["default_side"] = InvoiceSide(data["default_side"])
        except ValueError:
            raise InvalidConfigurationError(
                "default_side", data["default_side"],
                f"must be one of {[s.value for s in InvoiceSide]}",
            ) from None
    return InvoicePaymentConfig(**kwargs)


def parse_settlement_config(data: dict[str, Any]) -> SettlementConfig:
    if not data.get("config_id"):
        raise InvalidConfigurationError("config_id", data.get("config_id"), "is required")
    return SettlementConfig(
        config_id=str(data["config_id"]),
        version=int(data.get("version", 1)),
        checksum=compute_checksum(data),
        invoice_payment=parse_invoice_payment_config(data.get("invoice_payment") or {}),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
