"""
StayLedger Command Layer - Rejection Model
==========================================
Structured rejection reasons returned by engine policies.

A policy never raises. It returns None when the request may proceed, or
a RejectionReason naming the code, a human message and the policy that
refused. Every rejection is:
- Deterministic (same input gives the same rejection)
- Machine-readable (code)
- Human-readable (message)
"""

from __future__ import annotations

from dataclasses import dataclass


# ══════════════════════════════════════════════════════════════
# REJECTION REASON (frozen explanation structure)
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class RejectionReason:
    """
    Structured reason for refusing a request.

    Fields:
        code:        Machine-readable rejection code (e.g. 'AMOUNT_BELOW_MINIMUM').
        message:     Human-readable explanation.
        policy_name: Name of the policy that caused rejection.
    """

    code: str
    message: str
    policy_name: str

    def __post_init__(self):
        if not self.code or not isinstance(self.code, str):
            raise ValueError("code must be a non-empty string.")

        if not self.message or not isinstance(self.message, str):
            raise ValueError("message must be a non-empty string.")

        if not self.policy_name or not isinstance(self.policy_name, str):
            raise ValueError("policy_name must be a non-empty string.")

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "policy_name": self.policy_name,
        }


# ══════════════════════════════════════════════════════════════
# STANDARD REJECTION CODES
# ══════════════════════════════════════════════════════════════

class ReasonCode:
    """
    Known rejection codes.

    Convention: SCREAMING_SNAKE_CASE.
    """

    # ── Stay dates / occupancy ────────────────────────────────
    INVALID_STAY_DATES = "INVALID_STAY_DATES"
    CHECK_IN_IN_PAST = "CHECK_IN_IN_PAST"
    ROOM_INACTIVE = "ROOM_INACTIVE"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    SERVICE_INACTIVE = "SERVICE_INACTIVE"

    # ── Payment ───────────────────────────────────────────────
    PROOF_REQUIRED = "PROOF_REQUIRED"
    NOT_CHECKED_IN = "NOT_CHECKED_IN"
    ALREADY_CHECKED_IN = "ALREADY_CHECKED_IN"

    # ── Wallet ────────────────────────────────────────────────
    AMOUNT_BELOW_MINIMUM = "AMOUNT_BELOW_MINIMUM"
    INSUFFICIENT_CASH = "INSUFFICIENT_CASH"
    INSUFFICIENT_BONUS = "INSUFFICIENT_BONUS"
    BANK_INFO_INCOMPLETE = "BANK_INFO_INCOMPLETE"
