"""
StayLedger Adapter Wiring
=========================
Builds every engine service around one repository, one clock and one
rule set, and exposes the guest/staff operations on a single object.

    services = build_services()                       # Django ORM, system clock
    services = build_services(InMemoryHotelRepository(rooms=...), FixedClock(...))

get_services() is the lazy process-wide instance for adapter runtime.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import date
from typing import Optional

from core.config.rules import StayRules, load_rules
from core.hotel_store.provider import HotelRepository
from core.primitives.booking import Booking
from core.primitives.pricing import SpecialPriceRule
from core.primitives.withdrawal import WithdrawalRequest
from core.time.clock import Clock, get_default_clock

from engines.availability.services import AvailabilityChecker
from engines.booking.commands import (
    CancelBookingRequest,
    CheckOutRequest,
    CreateBookingRequest,
    PayBookingRequest,
)
from engines.booking.services import BookingLifecycle
from engines.pricing.commands import UpsertSpecialPriceRuleRequest
from engines.pricing.services import PricingService
from engines.wallet.services import WalletLedger
from engines.wallet.services.deposits import DepositService
from engines.withdrawal.commands import (
    ConfirmWithdrawalRequest,
    CreateWithdrawalRequest,
    DecideWithdrawalRequest,
)
from engines.withdrawal.services import IssuedConfirmation, WithdrawalService


_SERVICES_LOCK = threading.Lock()
_SERVICES: Optional["StayServices"] = None


@dataclass(frozen=True)
class StayServices:
    repository: HotelRepository
    clock: Clock
    rules: StayRules
    pricing: PricingService
    availability: AvailabilityChecker
    ledger: WalletLedger
    deposits: DepositService
    withdrawals: WithdrawalService
    bookings: BookingLifecycle

    # ── Booking ───────────────────────────────────────────────

    def create_booking(self, request: CreateBookingRequest) -> Booking:
        return self.bookings.create_booking(request)

    def pay_booking(self, request: PayBookingRequest) -> Booking:
        return self.bookings.pay_booking(request)

    def check_out_booking(self, request: CheckOutRequest) -> Booking:
        return self.bookings.check_out(request)

    def cancel_booking(self, request: CancelBookingRequest) -> Booking:
        return self.bookings.cancel_booking(request)

    # ── Withdrawal ────────────────────────────────────────────

    def create_withdrawal(self, request: CreateWithdrawalRequest) -> WithdrawalRequest:
        return self.withdrawals.create_withdrawal(request)

    def request_withdrawal_confirmation(self, withdrawal_id: str) -> IssuedConfirmation:
        return self.withdrawals.request_confirmation(withdrawal_id)

    def confirm_withdrawal(self, request: ConfirmWithdrawalRequest) -> WithdrawalRequest:
        return self.withdrawals.confirm_withdrawal(request)

    def approve_withdrawal(self, request: DecideWithdrawalRequest) -> WithdrawalRequest:
        return self.withdrawals.approve_withdrawal(request)

    def reject_withdrawal(self, request: DecideWithdrawalRequest) -> WithdrawalRequest:
        return self.withdrawals.reject_withdrawal(request)

    # ── Pricing ───────────────────────────────────────────────

    def upsert_special_price_rule(self, request: UpsertSpecialPriceRuleRequest) -> SpecialPriceRule:
        return self.pricing.upsert_rule(request)

    def resolve_price(self, room_id: str, night: date) -> int:
        return self.pricing.resolve_price(room_id, night)


def build_services(
    repository: Optional[HotelRepository] = None,
    clock: Optional[Clock] = None,
    rules: Optional[StayRules] = None,
) -> StayServices:
    """
    Wire the engines together.

    Defaults: the Django ORM repository, the process default clock, and
    the rules from settings.STAY_RULES.
    """
    if repository is None:
        from core.hotel_store.db_provider import DbHotelRepository

        repository = DbHotelRepository()
    clock = clock or get_default_clock()
    rules = rules or load_rules()

    pricing = PricingService(repository, clock)
    availability = AvailabilityChecker(repository)
    ledger = WalletLedger(repository, clock)
    return StayServices(
        repository=repository,
        clock=clock,
        rules=rules,
        pricing=pricing,
        availability=availability,
        ledger=ledger,
        deposits=DepositService(repository, ledger, clock, rules),
        withdrawals=WithdrawalService(repository, ledger, clock, rules),
        bookings=BookingLifecycle(
            repository, ledger, pricing.resolver, availability, clock, rules,
        ),
    )


def get_services() -> StayServices:
    """
    Lazy singleton wiring for adapter runtime.
    """
    global _SERVICES
    with _SERVICES_LOCK:
        if _SERVICES is None:
            _SERVICES = build_services()
        return _SERVICES
