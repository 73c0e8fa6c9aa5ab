"""
StayLedger Wallet Engine - Policies
===================================
Funds sufficiency, minimum amounts, proof and bank-detail guards.

Each policy returns None when the request may proceed, or a
RejectionReason explaining the refusal. Policies never raise.
"""

from typing import Optional

from core.commands.rejection import ReasonCode, RejectionReason
from core.primitives.ledger import WalletAccount
from core.primitives.withdrawal import BankInfo


def minimum_amount_policy(
    amount: int,
    minimum: int,
    label: str = "amount",
) -> Optional[RejectionReason]:
    """Amount must reach the configured minimum."""
    if amount < minimum:
        return RejectionReason(
            code=ReasonCode.AMOUNT_BELOW_MINIMUM,
            message=f"{label} {amount} is below the minimum of {minimum}.",
            policy_name="minimum_amount_policy",
        )
    return None


def sufficient_cash_policy(
    account: WalletAccount,
    amount: int,
    releasing_hold: int = 0,
) -> Optional[RejectionReason]:
    """
    Cash not reserved by other holds must cover the debit.

    releasing_hold is the part of the account's own hold this debit
    consumes (a withdrawal settling its reservation).
    """
    spendable = account.spendable_cash + releasing_hold
    if spendable < amount:
        return RejectionReason(
            code=ReasonCode.INSUFFICIENT_CASH,
            message=f"Spendable cash {spendable}, needs {amount}.",
            policy_name="sufficient_cash_policy",
        )
    return None


def sufficient_bonus_policy(
    account: WalletAccount,
    bonus_amount: int,
) -> Optional[RejectionReason]:
    if account.bonus_balance < bonus_amount:
        return RejectionReason(
            code=ReasonCode.INSUFFICIENT_BONUS,
            message=f"Bonus balance {account.bonus_balance}, needs {bonus_amount}.",
            policy_name="sufficient_bonus_policy",
        )
    return None


def proof_image_required_policy(proof_image: Optional[str]) -> Optional[RejectionReason]:
    """Bank transfers must carry a payment proof."""
    if not proof_image or not proof_image.strip():
        return RejectionReason(
            code=ReasonCode.PROOF_REQUIRED,
            message="A payment proof image is required.",
            policy_name="proof_image_required_policy",
        )
    return None


def bank_info_complete_policy(bank_info: Optional[BankInfo]) -> Optional[RejectionReason]:
    if bank_info is None:
        return RejectionReason(
            code=ReasonCode.BANK_INFO_INCOMPLETE,
            message="Bank details are required.",
            policy_name="bank_info_complete_policy",
        )
    missing = bank_info.missing_fields()
    if missing:
        return RejectionReason(
            code=ReasonCode.BANK_INFO_INCOMPLETE,
            message=f"Bank details missing: {', '.join(missing)}.",
            policy_name="bank_info_complete_policy",
        )
    return None
