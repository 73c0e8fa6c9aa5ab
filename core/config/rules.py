"""
StayLedger Core Config - Operator-Configurable Rules
====================================================
Thresholds and lifetimes the operator may tune (minimum withdrawal,
minimum deposit, confirmation token lifetime, invoice prefix) come from
configuration, not from engine code.

Sources, lowest precedence first:
    1. StayRules defaults
    2. settings.STAY_RULES (when Django settings are configured)
    3. explicit overrides passed to load_rules()
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Optional


# ══════════════════════════════════════════════════════════════
# STAY RULES
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class StayRules:
    """
    Immutable rule set injected into every engine service.

    Amounts are integer minor units.
    """

    withdrawal_min_amount: int = 1000
    deposit_min_amount: int = 10000
    confirmation_ttl_seconds: int = 24 * 60 * 60
    confirmation_token_bytes: int = 32
    allow_past_check_in: bool = False
    invoice_prefix: str = "INV"

    def __post_init__(self) -> None:
        if self.withdrawal_min_amount < 1:
            raise ValueError("withdrawal_min_amount must be >= 1.")
        if self.deposit_min_amount < 1:
            raise ValueError("deposit_min_amount must be >= 1.")
        if self.confirmation_ttl_seconds <= 0:
            raise ValueError("confirmation_ttl_seconds must be > 0.")
        # token_urlsafe(16) is the smallest size still considered unguessable
        if self.confirmation_token_bytes < 16:
            raise ValueError("confirmation_token_bytes must be >= 16.")
        if not self.invoice_prefix:
            raise ValueError("invoice_prefix must be non-empty.")


DEFAULT_RULES = StayRules()


def _settings_overrides() -> Dict[str, Any]:
    from django.conf import settings

    if not settings.configured and not os.environ.get("DJANGO_SETTINGS_MODULE"):
        return {}
    return dict(getattr(settings, "STAY_RULES", {}) or {})


def load_rules(overrides: Optional[Dict[str, Any]] = None) -> StayRules:
    """
    Build the effective StayRules.

    Raises ValueError on unknown keys so a typo in settings fails loudly.
    """
    merged = _settings_overrides()
    merged.update(overrides or {})

    known = {f.name for f in fields(StayRules)}
    unknown = sorted(set(merged) - known)
    if unknown:
        raise ValueError(f"Unknown StayRules keys: {', '.join(unknown)}")

    return replace(DEFAULT_RULES, **merged)
