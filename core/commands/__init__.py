"""
StayLedger Command Layer - Rejections
=====================================
Policies explain a refusal with a RejectionReason; services turn it into
the matching StayError (see core.errors.raise_if_rejected).
"""

from core.commands.rejection import (
    ReasonCode,
    RejectionReason,
)

__all__ = [
    "ReasonCode",
    "RejectionReason",
]
