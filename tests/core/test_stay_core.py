"""
Tests for core - clock, stay windows, rules config, workflow, errors, primitives.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from core.commands.rejection import ReasonCode, RejectionReason
from core.config.rules import DEFAULT_RULES, StayRules, load_rules
from core.errors import (
    InsufficientFundsError,
    InvalidRuleError,
    InvalidStateError,
    LedgerInvariantError,
    StayError,
    ValidationError,
    raise_if_rejected,
)
from core.primitives.booking import Booking, BookingStatus, ContactInfo
from core.primitives.ledger import (
    TransactionType,
    WalletAccount,
    WalletTransaction,
    replay_balances,
    sign_of,
)
from core.primitives.reference import Reference, ReferenceKind
from core.primitives.room import Room
from core.primitives.workflow import build_workflow
from core.time.clock import FixedClock, SystemClock, get_default_clock, set_default_clock, today_utc
from core.time.temporal import StayWindow, actual_stay, expires_at, is_expired


T0 = datetime(2026, 6, 1, 23, 30, 0, tzinfo=timezone.utc)


# ── Clock ─────────────────────────────────────────────────────

class TestClock:
    def test_system_clock_is_utc(self):
        assert SystemClock().now_utc().tzinfo == timezone.utc

    def test_fixed_clock_rejects_naive(self):
        with pytest.raises(ValueError, match="timezone-aware"):
            FixedClock(datetime(2026, 1, 1))

    def test_fixed_clock_advances_forward_only(self):
        clock = FixedClock(T0)
        clock.advance(hours=1)
        assert clock.now_utc() == T0 + timedelta(hours=1)
        assert today_utc(clock) == date(2026, 6, 2)
        with pytest.raises(ValueError, match="backwards"):
            clock.advance(seconds=-1)

    def test_default_clock_override(self):
        original = get_default_clock()
        fixed = FixedClock(T0)
        try:
            set_default_clock(fixed)
            assert get_default_clock() is fixed
        finally:
            set_default_clock(original)


# ── Stay windows / expiry ─────────────────────────────────────

class TestStayWindow:
    def test_nights_are_half_open(self):
        window = StayWindow(date(2026, 6, 1), date(2026, 6, 3))
        assert list(window.nights()) == [date(2026, 6, 1), date(2026, 6, 2)]
        assert window.night_count() == 2

    def test_overlap_is_half_open(self):
        a = StayWindow(date(2026, 6, 1), date(2026, 6, 3))
        assert a.overlaps(StayWindow(date(2026, 6, 2), date(2026, 6, 4)))
        assert not a.overlaps(StayWindow(date(2026, 6, 3), date(2026, 6, 5)))
        assert not a.overlaps(StayWindow(date(2026, 5, 30), date(2026, 6, 1)))

    def test_rejects_empty_and_datetime(self):
        with pytest.raises(ValueError):
            StayWindow(date(2026, 6, 1), date(2026, 6, 1))
        with pytest.raises(ValueError, match="calendar dates"):
            StayWindow(T0, T0 + timedelta(days=1))

    def test_actual_stay_charges_at_least_one_night(self):
        assert actual_stay(date(2026, 6, 1), date(2026, 6, 1)).night_count() == 1
        assert actual_stay(date(2026, 6, 1), date(2026, 6, 4)).night_count() == 3

    def test_expiry_boundary(self):
        expiry = expires_at(T0, 60)
        assert not is_expired(expiry, T0 + timedelta(seconds=59))
        assert is_expired(expiry, T0 + timedelta(seconds=60))
        assert is_expired(None, T0)


# ── Rules config ──────────────────────────────────────────────

class TestStayRules:
    def test_defaults(self):
        assert DEFAULT_RULES.withdrawal_min_amount == 1000
        assert DEFAULT_RULES.confirmation_ttl_seconds == 86_400
        assert DEFAULT_RULES.invoice_prefix == "INV"

    def test_token_size_floor(self):
        with pytest.raises(ValueError, match="confirmation_token_bytes"):
            StayRules(confirmation_token_bytes=8)

    def test_overrides_applied(self):
        rules = load_rules({"withdrawal_min_amount": 5000})
        assert rules.withdrawal_min_amount == 5000
        assert rules.deposit_min_amount == DEFAULT_RULES.deposit_min_amount

    def test_unknown_key_fails_loudly(self):
        with pytest.raises(ValueError, match="withdraw_min"):
            load_rules({"withdraw_min": 1})

    def test_settings_layer(self, settings):
        settings.STAY_RULES = {"invoice_prefix": "HTL", "confirmation_ttl_seconds": 600}
        rules = load_rules({"confirmation_ttl_seconds": 300})
        assert rules.invoice_prefix == "HTL"
        assert rules.confirmation_ttl_seconds == 300


# ── Workflow ──────────────────────────────────────────────────

class TestWorkflow:
    WF = build_workflow("Thing", "draft", {"draft": ("live", "dead"), "live": ("dead",)})

    def test_terminal_states_derived(self):
        assert self.WF.is_terminal("dead")
        assert not self.WF.is_terminal("live")
        assert self.WF.allowed_next_states("draft") == frozenset({"live", "dead"})

    def test_require_transition(self):
        self.WF.require_transition("t1", "draft", "live")
        with pytest.raises(InvalidStateError, match="cannot move"):
            self.WF.require_transition("t1", "dead", "live")

    def test_require_state(self):
        with pytest.raises(InvalidStateError, match="expected one of live"):
            self.WF.require_state("t1", "draft", ("live",))


# ── Errors ────────────────────────────────────────────────────

class TestErrors:
    def test_context_and_dict(self):
        err = InsufficientFundsError("short", user_id="u1", needed=5)
        assert err.to_dict() == {
            "code": "INSUFFICIENT_FUNDS",
            "message": "short",
            "context": {"needed": "5", "user_id": "u1"},
        }

    def test_value_error_compatibility(self):
        assert issubclass(ValidationError, ValueError)
        assert issubclass(InvalidRuleError, ValueError)
        assert issubclass(InvalidStateError, StayError)

    def test_rejection_becomes_error(self):
        rejection = RejectionReason(
            code=ReasonCode.INSUFFICIENT_CASH, message="no cash", policy_name="sufficient_cash_policy",
        )
        with pytest.raises(InsufficientFundsError, match="no cash") as info:
            raise_if_rejected(rejection, InsufficientFundsError, user_id="u1")
        assert info.value.code == "INSUFFICIENT_FUNDS"
        assert info.value.context["reason"] == ReasonCode.INSUFFICIENT_CASH
        assert info.value.context["policy"] == "sufficient_cash_policy"
        raise_if_rejected(None)

    def test_ledger_invariant_message(self):
        err = LedgerInvariantError("REPLAY", "mismatch", user_id="u1")
        assert str(err) == "LEDGER INVARIANT FAILURE - REPLAY: mismatch"
        assert err.invariant == "REPLAY"


# ── Primitives ────────────────────────────────────────────────

def _booking(**overrides):
    fields = dict(
        booking_id="b1", guest_id="g1", hotel_id="h1", room_id="r1",
        check_in=date(2026, 6, 1), check_out=date(2026, 6, 3), adults=1, children=0,
        room_price=200, service_price=0, total_price=200, estimated_price=200,
        contact=ContactInfo("Guest", "g@example.com", "1"),
        status=BookingStatus.CONFIRMED, created_at=T0,
    )
    fields.update(overrides)
    return Booking(**fields)


class TestPrimitives:
    def test_booking_wallet_payments_bounded_by_price(self):
        assert _booking(paid_from_wallet=150, paid_from_bonus=50).wallet_paid == 200
        with pytest.raises(ValueError, match="exceed"):
            _booking(paid_from_wallet=150, paid_from_bonus=51)

    def test_booking_payable_follows_final_price(self):
        booking = _booking(final_price=300, paid_from_wallet=300)
        assert booking.payable == 300
        assert booking.total_paid == 300
        assert booking.occupies_inventory

    def test_room_capacity(self):
        room = Room(room_id="r1", hotel_id="h1", name="R", base_price=1, max_adults=2, max_children=1)
        assert room.fits(2, 1)
        assert not room.fits(2, 2)

    def test_reference_round_trip_from_columns(self):
        ref = Reference.withdrawal("w1")
        assert Reference.from_parts(ref.kind.value, ref.id) == ref
        assert Reference.from_parts("", "") is None
        assert ref.to_dict() == {"kind": "withdrawal_request", "id": "w1"}
        assert Reference.booking("b1").kind is ReferenceKind.BOOKING

    def test_ledger_signs(self):
        assert sign_of(TransactionType.REFUND) == 1
        assert sign_of(TransactionType.PAYMENT) == -1

    def test_transaction_consistency_check(self):
        tx = WalletTransaction(
            transaction_id="t1", user_id="u1", sequence=1, type=TransactionType.DEPOSIT,
            amount=100, bonus_amount=0, balance_before=0, balance_after=100,
            bonus_balance_before=0, bonus_balance_after=0, created_at=T0,
        )
        assert tx.is_consistent()
        assert replay_balances([tx]) == (100, 0)
        assert not WalletTransaction(
            transaction_id="t2", user_id="u1", sequence=2, type=TransactionType.PAYMENT,
            amount=100, bonus_amount=0, balance_before=100, balance_after=100,
            bonus_balance_before=0, bonus_balance_after=0, created_at=T0,
        ).is_consistent()

    def test_account_spendable(self):
        account = WalletAccount(user_id="u1", cash_balance=1000, held_balance=300)
        assert account.spendable_cash == 700
