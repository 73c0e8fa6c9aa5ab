"""
Tests - Withdrawal Engine (hold, token confirmation, staff decisions)
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from core.config.rules import StayRules
from core.errors import (
    InsufficientFundsError,
    InvalidStateError,
    NotFoundError,
    TokenExpiredError,
    TokenInvalidError,
    ValidationError,
)
from core.hotel_store.provider import InMemoryHotelRepository
from core.primitives.ledger import TransactionStatus, TransactionType
from core.primitives.withdrawal import BankInfo, WithdrawalStatus
from core.time.clock import FixedClock
from engines.wallet.services import WalletLedger
from engines.withdrawal.commands import (
    ConfirmWithdrawalRequest,
    CreateWithdrawalRequest,
    DecideWithdrawalRequest,
)
from engines.withdrawal.services import WithdrawalService


NOW = datetime(2026, 2, 26, 9, 0, 0, tzinfo=timezone.utc)
USER = "user-1"
ADMIN = "admin-1"
BANK = BankInfo(bank_name="Vietcombank", account_number="0123456789", account_name="NGUYEN VAN A")


def _setup(balance: int = 10_000, rules: StayRules = None):
    repo = InMemoryHotelRepository()
    clock = FixedClock(NOW)
    ledger = WalletLedger(repo, clock)
    if balance:
        ledger.apply_transaction(USER, TransactionType.DEPOSIT, balance)
    return WithdrawalService(repo, ledger, clock, rules or StayRules()), ledger, clock


def _create(svc, amount: int = 2000, bank: BankInfo = BANK):
    return svc.create_withdrawal(CreateWithdrawalRequest(user_id=USER, amount=amount, bank_info=bank))


def _decide(withdrawal_id: str, note: str = "") -> DecideWithdrawalRequest:
    return DecideWithdrawalRequest(withdrawal_id=withdrawal_id, admin_id=ADMIN, admin_signature="sig-admin", note=note)


def _confirmed(svc, amount: int = 2000):
    withdrawal = _create(svc, amount)
    issued = svc.request_confirmation(withdrawal.withdrawal_id)
    svc.confirm_withdrawal(ConfirmWithdrawalRequest(token=issued.token, user_signature="sig-user"))
    return withdrawal.withdrawal_id


# ══════════════════════════════════════════════════════════════
# CREATE
# ══════════════════════════════════════════════════════════════

class TestCreateWithdrawal:
    def test_below_minimum_rejected(self):
        svc, ledger, _ = _setup()
        with pytest.raises(ValidationError, match="below the minimum"):
            _create(svc, 500)
        assert ledger.balance(USER).held_balance == 0

    def test_creates_pending_and_holds_funds(self):
        svc, ledger, _ = _setup()
        withdrawal = _create(svc, 2000)
        assert withdrawal.status is WithdrawalStatus.PENDING
        assert withdrawal.confirmation_token is None
        account = ledger.balance(USER)
        assert account.cash_balance == 10_000
        assert account.held_balance == 2000
        assert account.spendable_cash == 8000
        assert ledger.history(USER).total == 1

    def test_hold_limits_further_requests(self):
        svc, _, _ = _setup()
        _create(svc, 7000)
        with pytest.raises(InsufficientFundsError):
            _create(svc, 4000)

    def test_more_than_balance_rejected(self):
        svc, _, _ = _setup(balance=1500)
        with pytest.raises(InsufficientFundsError):
            _create(svc, 2000)
        assert svc.list_withdrawals(USER) == ()

    def test_incomplete_bank_info_rejected(self):
        svc, _, _ = _setup()
        with pytest.raises(ValidationError, match="account_number"):
            _create(svc, bank=BankInfo(bank_name="ACB", account_number=" ", account_name="A"))

    def test_minimum_comes_from_rules(self):
        svc, _, _ = _setup(rules=StayRules(withdrawal_min_amount=5000))
        with pytest.raises(ValidationError):
            _create(svc, 2000)


# ══════════════════════════════════════════════════════════════
# CONFIRMATION TOKEN
# ══════════════════════════════════════════════════════════════

class TestConfirmation:
    def test_issue_token_moves_to_pending_confirmation(self):
        svc, _, _ = _setup()
        withdrawal = _create(svc)
        issued = svc.request_confirmation(withdrawal.withdrawal_id)
        assert issued.withdrawal.status is WithdrawalStatus.PENDING_CONFIRMATION
        assert len(issued.token) >= 43
        assert issued.withdrawal.token_expires_at == datetime(2026, 2, 27, 9, 0, 0, tzinfo=timezone.utc)

    def test_tokens_are_unique(self):
        svc, _, _ = _setup()
        tokens = {svc.request_confirmation(_create(svc).withdrawal_id).token for _ in range(4)}
        assert len(tokens) == 4

    def test_wrong_token_leaves_state_unchanged(self):
        svc, _, _ = _setup()
        withdrawal = _create(svc)
        issued = svc.request_confirmation(withdrawal.withdrawal_id)
        with pytest.raises(TokenInvalidError):
            svc.confirm_withdrawal(ConfirmWithdrawalRequest(token="forged", user_signature="sig"))
        current = svc.get_withdrawal(withdrawal.withdrawal_id)
        assert current == issued.withdrawal
        assert current.confirmed_at is None

    def test_empty_token_rejected(self):
        svc, _, _ = _setup()
        with pytest.raises(TokenInvalidError, match="missing"):
            svc.confirm_withdrawal(ConfirmWithdrawalRequest(token="", user_signature="sig"))

    def test_signature_required(self):
        with pytest.raises(ValidationError, match="user_signature"):
            ConfirmWithdrawalRequest(token="abc", user_signature=" ")

    def test_confirm_records_signature_and_clears_token(self):
        svc, _, clock = _setup()
        withdrawal = _create(svc)
        issued = svc.request_confirmation(withdrawal.withdrawal_id)
        clock.advance(hours=1)
        confirmed = svc.confirm_withdrawal(ConfirmWithdrawalRequest(token=issued.token, user_signature="sig-user"))
        assert confirmed.status is WithdrawalStatus.PENDING_CONFIRMATION
        assert confirmed.confirmed_at == clock.now_utc()
        assert confirmed.user_signature == "sig-user"
        assert confirmed.confirmation_token is None

    def test_consumed_token_rejected_and_confirmed_at_kept(self):
        svc, _, clock = _setup()
        withdrawal = _create(svc)
        issued = svc.request_confirmation(withdrawal.withdrawal_id)
        first = svc.confirm_withdrawal(ConfirmWithdrawalRequest(token=issued.token, user_signature="sig-user"))
        clock.advance(minutes=5)
        with pytest.raises(TokenInvalidError):
            svc.confirm_withdrawal(ConfirmWithdrawalRequest(token=issued.token, user_signature="sig-user"))
        assert svc.get_withdrawal(withdrawal.withdrawal_id).confirmed_at == first.confirmed_at

    def test_expired_token(self):
        svc, _, clock = _setup()
        withdrawal = _create(svc)
        issued = svc.request_confirmation(withdrawal.withdrawal_id)
        clock.advance(seconds=86_400)
        with pytest.raises(TokenExpiredError):
            svc.confirm_withdrawal(ConfirmWithdrawalRequest(token=issued.token, user_signature="sig"))
        assert svc.get_withdrawal(withdrawal.withdrawal_id).confirmed_at is None

    def test_token_valid_just_before_expiry(self):
        svc, _, clock = _setup(rules=StayRules(confirmation_ttl_seconds=60))
        withdrawal = _create(svc)
        issued = svc.request_confirmation(withdrawal.withdrawal_id)
        clock.advance(seconds=59)
        confirmed = svc.confirm_withdrawal(ConfirmWithdrawalRequest(token=issued.token, user_signature="sig"))
        assert confirmed.is_confirmed

    def test_reissue_after_expiry(self):
        svc, _, clock = _setup()
        withdrawal = _create(svc)
        old = svc.request_confirmation(withdrawal.withdrawal_id)
        clock.advance(days=2)
        new = svc.request_confirmation(withdrawal.withdrawal_id)
        assert new.token != old.token
        with pytest.raises(TokenInvalidError):
            svc.confirm_withdrawal(ConfirmWithdrawalRequest(token=old.token, user_signature="sig"))
        confirmed = svc.confirm_withdrawal(ConfirmWithdrawalRequest(token=new.token, user_signature="sig"))
        assert confirmed.is_confirmed

    def test_reissue_while_token_valid_rejected(self):
        svc, _, _ = _setup()
        withdrawal = _create(svc)
        svc.request_confirmation(withdrawal.withdrawal_id)
        with pytest.raises(InvalidStateError, match="still valid"):
            svc.request_confirmation(withdrawal.withdrawal_id)

    def test_reissue_after_confirmation_rejected(self):
        svc, _, clock = _setup()
        withdrawal_id = _confirmed(svc)
        clock.advance(days=2)
        with pytest.raises(InvalidStateError, match="already confirmed"):
            svc.request_confirmation(withdrawal_id)


# ══════════════════════════════════════════════════════════════
# STAFF DECISIONS
# ══════════════════════════════════════════════════════════════

class TestDecisions:
    def test_approve_before_confirmation_rejected(self):
        svc, ledger, _ = _setup()
        withdrawal = _create(svc)
        with pytest.raises(InvalidStateError):
            svc.approve_withdrawal(_decide(withdrawal.withdrawal_id))
        svc.request_confirmation(withdrawal.withdrawal_id)
        with pytest.raises(InvalidStateError, match="not been confirmed"):
            svc.approve_withdrawal(_decide(withdrawal.withdrawal_id))
        assert ledger.balance(USER).cash_balance == 10_000

    def test_approve_debits_and_consumes_hold(self):
        svc, ledger, _ = _setup()
        withdrawal_id = _confirmed(svc)
        approved = svc.approve_withdrawal(_decide(withdrawal_id, note="ok"))
        assert approved.status is WithdrawalStatus.APPROVED
        assert approved.processed_by == ADMIN
        assert approved.admin_signature == "sig-admin"
        account = ledger.balance(USER)
        assert (account.cash_balance, account.held_balance) == (8000, 0)

        rows = ledger.history(USER, TransactionType.WITHDRAWAL).items
        assert len(rows) == 1
        assert rows[0].amount == 2000
        assert rows[0].status is TransactionStatus.PENDING
        assert rows[0].reference.id == withdrawal_id
        ledger.verify(USER)

    def test_approve_with_full_balance_held(self):
        svc, ledger, _ = _setup(balance=2000)
        withdrawal_id = _confirmed(svc, 2000)
        svc.approve_withdrawal(_decide(withdrawal_id))
        assert ledger.balance(USER).balances() == (0, 0)

    def test_complete_marks_ledger_row(self):
        svc, ledger, _ = _setup()
        withdrawal_id = _confirmed(svc)
        svc.approve_withdrawal(_decide(withdrawal_id))
        completed = svc.complete_withdrawal(_decide(withdrawal_id, note="sent"))
        assert completed.status is WithdrawalStatus.COMPLETED
        assert completed.admin_note == "sent"
        row = ledger.history(USER, TransactionType.WITHDRAWAL).items[0]
        assert row.status is TransactionStatus.COMPLETED
        assert ledger.balance(USER).cash_balance == 8000

    def test_complete_requires_approved(self):
        svc, _, _ = _setup()
        withdrawal_id = _confirmed(svc)
        with pytest.raises(InvalidStateError):
            svc.complete_withdrawal(_decide(withdrawal_id))

    def test_reject_from_pending_releases_hold(self):
        svc, ledger, _ = _setup()
        withdrawal = _create(svc)
        rejected = svc.reject_withdrawal(_decide(withdrawal.withdrawal_id, note="bank mismatch"))
        assert rejected.status is WithdrawalStatus.REJECTED
        assert rejected.admin_note == "bank mismatch"
        assert ledger.balance(USER).held_balance == 0
        assert ledger.history(USER, TransactionType.WITHDRAWAL).total == 0

    def test_reject_voids_outstanding_token(self):
        svc, _, _ = _setup()
        withdrawal = _create(svc)
        issued = svc.request_confirmation(withdrawal.withdrawal_id)
        svc.reject_withdrawal(_decide(withdrawal.withdrawal_id))
        with pytest.raises(TokenInvalidError):
            svc.confirm_withdrawal(ConfirmWithdrawalRequest(token=issued.token, user_signature="sig"))

    def test_terminal_states_refuse_transitions(self):
        svc, _, _ = _setup()
        withdrawal_id = _confirmed(svc)
        svc.approve_withdrawal(_decide(withdrawal_id))
        with pytest.raises(InvalidStateError):
            svc.reject_withdrawal(_decide(withdrawal_id))
        with pytest.raises(InvalidStateError):
            svc.approve_withdrawal(_decide(withdrawal_id))
        svc.complete_withdrawal(_decide(withdrawal_id))
        with pytest.raises(InvalidStateError):
            svc.complete_withdrawal(_decide(withdrawal_id))

    def test_unknown_withdrawal(self):
        svc, _, _ = _setup()
        with pytest.raises(NotFoundError):
            svc.approve_withdrawal(_decide("missing"))
        with pytest.raises(NotFoundError):
            svc.get_withdrawal("missing")


class TestQueries:
    def test_list_by_user(self):
        svc, ledger, _ = _setup()
        ledger.apply_transaction("user-2", TransactionType.DEPOSIT, 5000)
        mine = _create(svc)
        svc.create_withdrawal(CreateWithdrawalRequest(user_id="user-2", amount=3000, bank_info=BANK))
        assert [w.withdrawal_id for w in svc.list_withdrawals(USER)] == [mine.withdrawal_id]
        assert len(svc.list_withdrawals()) == 2
