"""
Tests - Concurrency (room inventory, wallet lost updates, token races)

Threads share one InMemoryHotelRepository; row locks and the unit of work
must serialize conflicting operations the way SELECT ... FOR UPDATE does.
"""

from __future__ import annotations

import threading
from datetime import date, datetime, timezone

import pytest

from adapters.wiring import build_services
from core.config.rules import StayRules
from core.errors import InsufficientFundsError, RoomUnavailableError, TokenInvalidError
from core.hotel_store.provider import InMemoryHotelRepository
from core.primitives.booking import ContactInfo
from core.primitives.ledger import TransactionType
from core.primitives.room import Room
from core.primitives.withdrawal import BankInfo
from core.time.clock import FixedClock
from engines.booking.commands import CreateBookingRequest
from engines.withdrawal.commands import ConfirmWithdrawalRequest, CreateWithdrawalRequest


NOW = datetime(2026, 5, 20, 9, 0, 0, tzinfo=timezone.utc)
CONTACT = ContactInfo(full_name="Guest", email="guest@example.com", phone="0900")


def _services(quantity: int = 1):
    room = Room(room_id="r1", hotel_id="h1", name="Room", base_price=100_000, quantity=quantity)
    repo = InMemoryHotelRepository(rooms=(room,))
    return build_services(repository=repo, clock=FixedClock(NOW), rules=StayRules())


def _run_concurrently(*calls):
    """Start every call at the same moment; return (results, errors) in call order."""
    barrier = threading.Barrier(len(calls))
    results = [None] * len(calls)
    errors = [None] * len(calls)

    def worker(index, call):
        barrier.wait()
        try:
            results[index] = call()
        except Exception as exc:  # collected for assertions
            errors[index] = exc

    threads = [threading.Thread(target=worker, args=(i, c)) for i, c in enumerate(calls)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)
    return results, errors


def _booking_call(services, guest, check_in, check_out):
    return lambda: services.create_booking(CreateBookingRequest(
        guest_id=guest, room_id="r1", check_in=check_in, check_out=check_out, contact=CONTACT,
    ))


class TestNoOverbooking:
    @pytest.mark.parametrize("attempt", range(10))
    def test_overlapping_stays_on_last_unit(self, attempt):
        services = _services(quantity=1)
        results, errors = _run_concurrently(
            _booking_call(services, "A", date(2026, 6, 1), date(2026, 6, 3)),
            _booking_call(services, "B", date(2026, 6, 2), date(2026, 6, 4)),
        )
        assert sum(r is not None for r in results) == 1
        assert sum(isinstance(e, RoomUnavailableError) for e in errors) == 1
        assert len(services.bookings.list_bookings()) == 1

    def test_many_guests_never_exceed_quantity(self):
        services = _services(quantity=3)
        calls = [
            _booking_call(services, f"g{i}", date(2026, 6, 1), date(2026, 6, 5))
            for i in range(12)
        ]
        results, errors = _run_concurrently(*calls)
        assert sum(r is not None for r in results) == 3
        assert all(isinstance(e, RoomUnavailableError) for e in errors if e is not None)
        room = services.repository.get_room("r1")
        assert services.availability.available_units(room, date(2026, 6, 1), date(2026, 6, 5)) == 0


class TestNoLostUpdates:
    def test_concurrent_debits_never_overdraw(self):
        services = _services()
        services.ledger.apply_transaction("u1", TransactionType.DEPOSIT, 1_000)
        calls = [
            (lambda: services.ledger.apply_transaction("u1", TransactionType.PAYMENT, 100))
            for _ in range(20)
        ]
        results, errors = _run_concurrently(*calls)
        assert sum(r is not None for r in results) == 10
        assert all(isinstance(e, InsufficientFundsError) for e in errors if e is not None)
        assert services.ledger.verify("u1").balances() == (0, 0)

    def test_concurrent_credits_all_recorded(self):
        services = _services()
        calls = [
            (lambda: services.ledger.apply_transaction("u1", TransactionType.DEPOSIT, 10))
            for _ in range(30)
        ]
        _, errors = _run_concurrently(*calls)
        assert errors == [None] * 30
        account = services.ledger.verify("u1")
        assert account.cash_balance == 300
        rows = services.repository.list_transactions("u1")
        assert [tx.sequence for tx in rows] == list(range(1, 31))

    def test_withdrawal_hold_and_payment_race(self):
        services = _services()
        services.ledger.apply_transaction("u1", TransactionType.DEPOSIT, 5_000)
        bank = BankInfo(bank_name="ACB", account_number="1", account_name="U")
        results, errors = _run_concurrently(
            lambda: services.create_withdrawal(CreateWithdrawalRequest("u1", 4_000, bank)),
            lambda: services.ledger.apply_transaction("u1", TransactionType.PAYMENT, 4_000),
        )
        assert sum(r is not None for r in results) == 1
        assert sum(isinstance(e, InsufficientFundsError) for e in errors) == 1
        account = services.ledger.verify("u1")
        assert account.cash_balance - account.held_balance == 1_000


class TestTokenSingleUse:
    def test_same_token_confirmed_once(self):
        services = _services()
        services.ledger.apply_transaction("u1", TransactionType.DEPOSIT, 5_000)
        bank = BankInfo(bank_name="ACB", account_number="1", account_name="U")
        withdrawal = services.create_withdrawal(CreateWithdrawalRequest("u1", 2_000, bank))
        token = services.request_withdrawal_confirmation(withdrawal.withdrawal_id).token
        confirm = ConfirmWithdrawalRequest(token=token, user_signature="sig")

        results, errors = _run_concurrently(
            lambda: services.confirm_withdrawal(confirm),
            lambda: services.confirm_withdrawal(confirm),
        )
        assert sum(r is not None for r in results) == 1
        assert sum(isinstance(e, TokenInvalidError) for e in errors) == 1
