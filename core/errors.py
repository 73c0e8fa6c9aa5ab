"""
StayLedger Core - Error Taxonomy
================================
Every failure surfaced to a caller is a StayError subclass carrying a
machine-readable code and the context needed to explain it.

Operations are all-or-nothing: when one of these escapes an atomic unit,
nothing the unit wrote survives.

LedgerInvariantError is different from the rest. It means the wallet
arithmetic itself is broken, and the caller must stop, not retry.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from core.commands.rejection import RejectionReason


class StayError(Exception):
    """Base class for every domain failure."""

    code = "STAY_ERROR"

    def __init__(self, message: str, **context: Any) -> None:
        self.message = message
        self.context: Dict[str, Any] = dict(context)
        super().__init__(message)

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "context": {k: str(v) for k, v in sorted(self.context.items())},
        }

    @classmethod
    def from_rejection(cls, rejection: RejectionReason, **context: Any) -> "StayError":
        return cls(
            rejection.message,
            reason=rejection.code,
            policy=rejection.policy_name,
            **context,
        )


class ValidationError(StayError, ValueError):
    """Malformed or out-of-range input. Also a ValueError for dataclass guards."""

    code = "VALIDATION_FAILED"


class NotFoundError(StayError):
    code = "NOT_FOUND"


class RoomUnavailableError(StayError):
    """No free unit of the room for the requested nights."""

    code = "ROOM_UNAVAILABLE"


class InsufficientFundsError(StayError):
    code = "INSUFFICIENT_FUNDS"


class InvalidRuleError(StayError, ValueError):
    """Special price rule is malformed."""

    code = "INVALID_RULE"


class InvalidStateError(StayError):
    """Transition not permitted from the entity's current status."""

    code = "INVALID_STATE"


class TokenInvalidError(StayError):
    code = "TOKEN_INVALID"


class TokenExpiredError(StayError):
    code = "TOKEN_EXPIRED"


class LedgerInvariantError(StayError):
    """
    Wallet balances disagree with ledger arithmetic.

    Fatal. The unit that raised it is rolled back; the account must be
    investigated before further writes.
    """

    code = "LEDGER_INVARIANT_VIOLATED"

    def __init__(self, invariant: str, detail: str, user_id: Optional[str] = None) -> None:
        self.invariant = invariant
        self.detail = detail
        super().__init__(
            f"LEDGER INVARIANT FAILURE - {invariant}: {detail}",
            invariant=invariant,
            user_id=user_id,
        )


def raise_if_rejected(
    rejection: Optional[RejectionReason],
    error_cls: type = ValidationError,
    **context: Any,
) -> None:
    """Turn a policy rejection into the matching StayError."""
    if rejection is not None:
        raise error_cls.from_rejection(rejection, **context)
