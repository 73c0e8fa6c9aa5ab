"""
StayLedger Booking Engine - Payment Split Arithmetic
====================================================
Pure functions deciding how much of an amount comes from (or goes back
to) the cash balance, the bonus balance, and outside the wallet.

    use_bonus      bonus first, then cash
    use_main_only  cash only

Refunds mirror the payment: bonus goes back to bonus (up to what was
paid from bonus) before cash goes back to cash (up to what was paid from
cash). Anything paid outside the wallet is returned outside it.

No function here touches storage.
"""

from __future__ import annotations

from dataclasses import dataclass

from core.errors import InsufficientFundsError, ValidationError
from core.primitives.booking import Booking, PaymentOption
from core.primitives.ledger import WalletAccount


@dataclass(frozen=True)
class WalletSplit:
    cash: int = 0
    bonus: int = 0
    external: int = 0

    @property
    def wallet_total(self) -> int:
        return self.cash + self.bonus

    @property
    def total(self) -> int:
        return self.cash + self.bonus + self.external


def plan_wallet_payment(
    amount: int,
    account: WalletAccount,
    option: PaymentOption,
) -> WalletSplit:
    """
    Split `amount` across the wallet balances.

    Raises InsufficientFundsError when the wallet cannot cover it in full.
    """
    if amount < 0:
        raise ValidationError("payment amount must be >= 0.", amount=amount)
    if not isinstance(option, PaymentOption):
        raise ValidationError(f"Unknown payment option: {option!r}.")

    bonus = 0
    if option is PaymentOption.USE_BONUS:
        bonus = min(account.bonus_balance, amount)
    cash = amount - bonus

    if cash > account.spendable_cash:
        raise InsufficientFundsError(
            f"Wallet covers {account.spendable_cash + bonus} of {amount}.",
            user_id=account.user_id,
            option=option.value,
            cash_needed=cash,
            spendable_cash=account.spendable_cash,
        )
    return WalletSplit(cash=cash, bonus=bonus)


def plan_refund(booking: Booking, amount: int) -> WalletSplit:
    """Return `amount` of what the booking has paid, bonus first."""
    if amount < 0 or amount > booking.total_paid:
        raise ValidationError(
            f"refund {amount} exceeds what was paid ({booking.total_paid}).",
            booking_id=booking.booking_id,
        )
    bonus = min(amount, booking.paid_from_bonus)
    cash = min(amount - bonus, booking.paid_from_wallet)
    external = amount - bonus - cash
    return WalletSplit(cash=cash, bonus=bonus, external=external)


def plan_outstanding(
    amount: int,
    external_amount: int,
    account: WalletAccount,
    option: PaymentOption,
) -> WalletSplit:
    """
    Cover `amount` with money paid at the desk first, then the wallet.

    external_amount above what is owed is ignored.
    """
    if external_amount < 0:
        raise ValidationError("external_amount must be >= 0.", external_amount=external_amount)
    external = min(external_amount, amount)
    wallet = plan_wallet_payment(amount - external, account, option)
    return WalletSplit(cash=wallet.cash, bonus=wallet.bonus, external=external)
