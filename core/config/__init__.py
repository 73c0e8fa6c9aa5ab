"""
StayLedger Core Config - Public API
===================================
Operator-configurable rules (minimums, token lifetime, invoice prefix).
"""

from core.config.rules import (
    DEFAULT_RULES,
    StayRules,
    load_rules,
)

__all__ = [
    "DEFAULT_RULES",
    "StayRules",
    "load_rules",
]
