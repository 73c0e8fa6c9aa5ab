"""
StayLedger Booking Engine - Lifecycle Service
=============================================
Orchestrates a booking from reservation to checkout.

    pending -> pending_deposit -> awaiting_approval -> confirmed -> completed
    awaiting_approval -> pending_deposit   (staff reject a payment proof)
    any non-terminal  -> cancelled         (confirmed only before check-in)

Creation holds the room lock for the availability check and the insert,
so no more than `quantity` occupying bookings can overlap a night.

Every money movement goes through WalletLedger inside the same atomic
unit as the booking update; a failure anywhere leaves both untouched.

Lock order: room, booking, account.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from core.config.rules import StayRules
from core.errors import (
    InsufficientFundsError,
    InvalidStateError,
    NotFoundError,
    RoomUnavailableError,
    ValidationError,
    raise_if_rejected,
)
from core.primitives.booking import (
    Booking,
    BookingServiceLine,
    BookingStatus,
    PaymentMethod,
    PaymentStatus,
)
from core.primitives.ledger import TransactionType
from core.primitives.reference import Reference
from core.primitives.workflow import build_workflow
from core.time.clock import Clock, today_utc
from core.time.temporal import StayWindow, actual_stay

from engines.availability.services import AvailabilityChecker
from engines.booking.commands import (
    AddServiceRequest,
    CancelBookingRequest,
    CheckOutRequest,
    CreateBookingRequest,
    PayBookingRequest,
    ServiceSelection,
)
from engines.booking.policies import (
    capacity_policy,
    checked_in_policy,
    not_checked_in_policy,
    room_active_policy,
    service_active_policy,
    stay_dates_policy,
)
from engines.booking.settlement import plan_outstanding, plan_refund, plan_wallet_payment
from engines.pricing.services import PricingRuleResolver
from engines.wallet.policies import proof_image_required_policy
from engines.wallet.services import WalletLedger

logger = logging.getLogger("stay.booking")

_PENDING = BookingStatus.PENDING.value
_PENDING_DEPOSIT = BookingStatus.PENDING_DEPOSIT.value
_AWAITING = BookingStatus.AWAITING_APPROVAL.value
_CONFIRMED = BookingStatus.CONFIRMED.value
_COMPLETED = BookingStatus.COMPLETED.value
_CANCELLED = BookingStatus.CANCELLED.value

BOOKING_WORKFLOW = build_workflow(
    "Booking",
    _PENDING,
    {
        _PENDING: (_PENDING_DEPOSIT, _CANCELLED),
        _PENDING_DEPOSIT: (_AWAITING, _CANCELLED),
        _AWAITING: (_CONFIRMED, _PENDING_DEPOSIT, _CANCELLED),
        _CONFIRMED: (_COMPLETED, _CANCELLED),
    },
)


def invoice_number(prefix: str, booking_id: str, issued_at: datetime) -> str:
    suffix = booking_id.replace("-", "")[-6:].upper()
    return f"{prefix}-{issued_at:%Y%m%d%H%M%S}-{suffix}"


class BookingLifecycle:
    def __init__(
        self,
        repository,
        ledger: WalletLedger,
        resolver: PricingRuleResolver,
        availability: AvailabilityChecker,
        clock: Clock,
        rules: StayRules,
    ) -> None:
        self._repo = repository
        self._ledger = ledger
        self._resolver = resolver
        self._availability = availability
        self._clock = clock
        self._rules = rules

    # ── Helpers ───────────────────────────────────────────────

    def _service_lines(
        self,
        selections: Iterable[ServiceSelection],
        added_at: datetime,
    ) -> Tuple[BookingServiceLine, ...]:
        merged: Dict[str, int] = {}
        for selection in selections:
            merged[selection.service_id] = merged.get(selection.service_id, 0) + selection.quantity

        lines: List[BookingServiceLine] = []
        for service_id, quantity in merged.items():
            service = self._repo.get_service(service_id)
            if service is None:
                raise NotFoundError(f"service '{service_id}' not found.", service_id=service_id)
            raise_if_rejected(service_active_policy(service), ValidationError, service_id=service_id)
            lines.append(
                BookingServiceLine(
                    service_id=service.service_id,
                    name=service.name,
                    quantity=quantity,
                    unit_price=service.price,
                    added_at=added_at,
                )
            )
        return tuple(lines)

    def _rejected(self, booking_id: str, exc: Exception) -> None:
        logger.warning(f"Booking {booking_id} operation refused: {exc}")

    # ── Create ────────────────────────────────────────────────

    def create_booking(self, request: CreateBookingRequest) -> Booking:
        now = self._clock.now_utc()
        raise_if_rejected(
            stay_dates_policy(
                request.check_in,
                request.check_out,
                today_utc(self._clock),
                self._rules.allow_past_check_in,
            ),
            ValidationError,
            room_id=request.room_id,
        )

        with self._repo.atomic():
            room = self._repo.lock_room(request.room_id)
            raise_if_rejected(room_active_policy(room), RoomUnavailableError, room_id=room.room_id)
            raise_if_rejected(
                capacity_policy(room, request.adults, request.children),
                ValidationError,
                room_id=room.room_id,
            )
            lines = self._service_lines(request.services, now)

            if not self._availability.is_available(room, request.check_in, request.check_out):
                logger.warning(
                    f"Room {room.room_id} unavailable for "
                    f"{request.check_in}..{request.check_out}"
                )
                raise RoomUnavailableError(
                    f"Room {room.room_id} has no free unit for "
                    f"{request.check_in} to {request.check_out}.",
                    room_id=room.room_id,
                )

            breakdown = self._resolver.price_stay(room, StayWindow(request.check_in, request.check_out))
            service_price = sum(line.line_total for line in lines)
            total = breakdown.total + service_price

            booking = Booking(
                booking_id=str(uuid.uuid4()),
                guest_id=request.guest_id,
                hotel_id=room.hotel_id,
                room_id=room.room_id,
                check_in=request.check_in,
                check_out=request.check_out,
                adults=request.adults,
                children=request.children,
                room_price=breakdown.total,
                service_price=service_price,
                total_price=total,
                estimated_price=total,
                contact=request.contact,
                status=BookingStatus.PENDING_DEPOSIT if request.require_deposit else BookingStatus.PENDING,
                created_at=now,
                services=lines,
                special_requests=request.special_requests,
            )
            self._repo.save_booking(booking)

        logger.info(
            f"Booking created: {booking.booking_id} room {booking.room_id} "
            f"{booking.check_in}..{booking.check_out} total {booking.total_price} "
            f"({booking.status.value})"
        )
        return booking

    def request_deposit(self, booking_id: str) -> Booking:
        """pending -> pending_deposit; the booking starts holding inventory."""
        current = self.get_booking(booking_id)
        with self._repo.atomic():
            room = self._repo.lock_room(current.room_id)
            booking = self._repo.lock_booking(booking_id)
            BOOKING_WORKFLOW.require_transition(booking_id, booking.status.value, _PENDING_DEPOSIT)
            if not self._availability.is_available(
                room, booking.check_in, booking.check_out, exclude_booking_id=booking_id,
            ):
                raise RoomUnavailableError(
                    f"Room {room.room_id} has no free unit left for booking {booking_id}.",
                    room_id=room.room_id,
                    booking_id=booking_id,
                )
            booking = replace(booking, status=BookingStatus.PENDING_DEPOSIT)
            self._repo.save_booking(booking)
        logger.info(f"Booking {booking_id} awaiting deposit")
        return booking

    # ── Payment ───────────────────────────────────────────────

    def pay_booking(self, request: PayBookingRequest) -> Booking:
        booking_id = request.booking_id
        with self._repo.atomic():
            booking = self._repo.lock_booking(booking_id)
            BOOKING_WORKFLOW.require_transition(booking_id, booking.status.value, _AWAITING)

            if request.method is PaymentMethod.WALLET:
                account = self._repo.lock_account(booking.guest_id)
                split = plan_wallet_payment(booking.total_price, account, request.payment_option)
                if split.wallet_total > 0:
                    self._ledger.apply_transaction(
                        booking.guest_id,
                        TransactionType.PAYMENT,
                        amount=split.cash,
                        bonus_amount=split.bonus,
                        description=f"Payment for booking {booking_id}",
                        reference=Reference.booking(booking_id),
                    )
                booking = replace(
                    booking,
                    status=BookingStatus.AWAITING_APPROVAL,
                    payment_status=PaymentStatus.PAID,
                    payment_method=PaymentMethod.WALLET,
                    payment_option=request.payment_option,
                    paid_from_wallet=split.cash,
                    paid_from_bonus=split.bonus,
                )
            else:
                if request.method is PaymentMethod.BANK_TRANSFER:
                    raise_if_rejected(
                        proof_image_required_policy(request.proof_image),
                        ValidationError,
                        booking_id=booking_id,
                    )
                booking = replace(
                    booking,
                    status=BookingStatus.AWAITING_APPROVAL,
                    payment_method=request.method,
                    proof_image=request.proof_image or "",
                )
            self._repo.save_booking(booking)

        logger.info(
            f"Booking {booking_id} paid by {request.method.value}: "
            f"wallet {booking.paid_from_wallet}, bonus {booking.paid_from_bonus}"
        )
        return booking

    def approve_booking(self, booking_id: str) -> Booking:
        """Staff accept the payment; payments made outside the wallet are recorded."""
        with self._repo.atomic():
            booking = self._repo.lock_booking(booking_id)
            BOOKING_WORKFLOW.require_transition(booking_id, booking.status.value, _CONFIRMED)
            if booking.payment_method is not PaymentMethod.WALLET:
                booking = replace(
                    booking,
                    paid_externally=booking.total_price - booking.wallet_paid,
                    payment_status=PaymentStatus.PAID,
                )
            booking = replace(booking, status=BookingStatus.CONFIRMED)
            self._repo.save_booking(booking)
        logger.info(f"Booking {booking_id} confirmed")
        return booking

    def reject_booking_payment(self, booking_id: str) -> Booking:
        """Staff refuse a bank-transfer or cash proof; the guest pays again."""
        with self._repo.atomic():
            booking = self._repo.lock_booking(booking_id)
            BOOKING_WORKFLOW.require_transition(booking_id, booking.status.value, _PENDING_DEPOSIT)
            if booking.payment_method is PaymentMethod.WALLET:
                raise InvalidStateError(
                    f"Booking {booking_id} was paid from the wallet; cancel it to refund.",
                    booking_id=booking_id,
                )
            booking = replace(
                booking,
                status=BookingStatus.PENDING_DEPOSIT,
                payment_method=None,
                proof_image="",
            )
            self._repo.save_booking(booking)
        logger.info(f"Booking {booking_id} payment rejected, back to pending_deposit")
        return booking

    # ── Stay ──────────────────────────────────────────────────

    def check_in(self, booking_id: str) -> Booking:
        with self._repo.atomic():
            booking = self._repo.lock_booking(booking_id)
            BOOKING_WORKFLOW.require_state(booking_id, booking.status.value, (_CONFIRMED,))
            raise_if_rejected(not_checked_in_policy(booking), InvalidStateError, booking_id=booking_id)
            booking = replace(booking, actual_check_in=self._clock.now_utc())
            self._repo.save_booking(booking)
        logger.info(f"Booking {booking_id} checked in")
        return booking

    def add_service(self, request: AddServiceRequest) -> Booking:
        """Attach an add-on during the stay. total_price never changes."""
        booking_id = request.booking_id
        now = self._clock.now_utc()
        with self._repo.atomic():
            booking = self._repo.lock_booking(booking_id)
            BOOKING_WORKFLOW.require_state(booking_id, booking.status.value, (_CONFIRMED,))
            raise_if_rejected(checked_in_policy(booking), InvalidStateError, booking_id=booking_id)

            added = self._service_lines((ServiceSelection(request.service_id, request.quantity),), now)[0]
            lines = []
            merged = False
            for line in booking.services:
                if line.service_id == added.service_id:
                    line = replace(line, quantity=line.quantity + added.quantity)
                    merged = True
                lines.append(line)
            if not merged:
                lines.append(added)

            service_price = sum(line.line_total for line in lines)
            booking = replace(
                booking,
                services=tuple(lines),
                service_price=service_price,
                estimated_price=booking.room_price + service_price,
            )
            self._repo.save_booking(booking)
        logger.info(f"Service {request.service_id} x{request.quantity} added to booking {booking_id}")
        return booking

    def check_out(self, request: CheckOutRequest) -> Booking:
        """
        Price the actual stay and settle the difference with what was paid.

        Overpaid: refund bonus first, then cash, then the part paid outside
        the wallet (returned outside it). Underpaid: external_amount first,
        then the wallet per payment_option; if that still falls short,
        InsufficientFundsError and nothing changes.
        """
        booking_id = request.booking_id
        now = self._clock.now_utc()
        with self._repo.atomic():
            booking = self._repo.lock_booking(booking_id)
            BOOKING_WORKFLOW.require_transition(booking_id, booking.status.value, _COMPLETED)
            raise_if_rejected(checked_in_policy(booking), InvalidStateError, booking_id=booking_id)

            room = self._repo.get_room(booking.room_id)
            if room is None:
                raise NotFoundError(f"room '{booking.room_id}' not found.", room_id=booking.room_id)

            stay = actual_stay(booking.actual_check_in.date(), now.date())
            # Extra nights are charged but never reserved; staff must see a clash.
            if stay.check_out > booking.check_out and not self._availability.is_available(
                room, booking.check_out, stay.check_out, exclude_booking_id=booking_id,
            ):
                logger.warning(
                    f"Booking {booking_id} overstayed into nights held by other bookings: "
                    f"room {room.room_id} {booking.check_out}..{stay.check_out}"
                )
            final_price = self._resolver.price_stay(room, stay).total + booking.services_total()
            delta = final_price - booking.total_paid
            paid_cash = booking.paid_from_wallet
            paid_bonus = booking.paid_from_bonus
            paid_external = booking.paid_externally

            if delta < 0:
                split = plan_refund(booking, -delta)
                if split.wallet_total > 0:
                    self._ledger.apply_transaction(
                        booking.guest_id,
                        TransactionType.REFUND,
                        amount=split.cash,
                        bonus_amount=split.bonus,
                        description=f"Checkout refund for booking {booking_id}",
                        reference=Reference.booking(booking_id),
                    )
                paid_cash -= split.cash
                paid_bonus -= split.bonus
                paid_external -= split.external
            elif delta > 0:
                account = self._repo.lock_account(booking.guest_id)
                try:
                    split = plan_outstanding(delta, request.external_amount, account, request.payment_option)
                except InsufficientFundsError as exc:
                    self._rejected(booking_id, exc)
                    raise
                if split.wallet_total > 0:
                    self._ledger.apply_transaction(
                        booking.guest_id,
                        TransactionType.PAYMENT,
                        amount=split.cash,
                        bonus_amount=split.bonus,
                        description=f"Checkout balance for booking {booking_id}",
                        reference=Reference.booking(booking_id),
                    )
                paid_cash += split.cash
                paid_bonus += split.bonus
                paid_external += split.external

            booking = replace(
                booking,
                status=BookingStatus.COMPLETED,
                final_price=final_price,
                paid_from_wallet=paid_cash,
                paid_from_bonus=paid_bonus,
                paid_externally=paid_external,
                payment_status=PaymentStatus.PAID,
                actual_check_out=now,
                invoice_number=invoice_number(self._rules.invoice_prefix, booking_id, now),
                checkout_note=request.note,
            )
            self._repo.save_booking(booking)

        logger.info(
            f"Booking {booking_id} checked out: final {booking.final_price}, "
            f"settled {delta:+d}, invoice {booking.invoice_number}"
        )
        return booking

    # ── Cancel ────────────────────────────────────────────────

    def cancel_booking(self, request: CancelBookingRequest) -> Booking:
        """Refund wallet payments (cash to cash, bonus to bonus) unless forfeited."""
        booking_id = request.booking_id
        with self._repo.atomic():
            booking = self._repo.lock_booking(booking_id)
            BOOKING_WORKFLOW.require_transition(booking_id, booking.status.value, _CANCELLED)
            raise_if_rejected(not_checked_in_policy(booking), InvalidStateError, booking_id=booking_id)

            # Only a wallet refund row marks the booking refunded; money paid
            # outside the wallet is returned outside it and stays PAID here.
            payment_status = booking.payment_status
            if not request.forfeit_deposit and booking.wallet_paid > 0:
                self._ledger.apply_transaction(
                    booking.guest_id,
                    TransactionType.REFUND,
                    amount=booking.paid_from_wallet,
                    bonus_amount=booking.paid_from_bonus,
                    description=f"Refund for cancelled booking {booking_id}",
                    reference=Reference.booking(booking_id),
                )
                payment_status = PaymentStatus.REFUNDED

            booking = replace(
                booking,
                status=BookingStatus.CANCELLED,
                payment_status=payment_status,
                cancel_reason=request.reason,
            )
            self._repo.save_booking(booking)

        logger.info(
            f"Booking {booking_id} cancelled"
            f"{' (deposit forfeited)' if request.forfeit_deposit else ''}"
        )
        return booking

    # ── Queries ───────────────────────────────────────────────

    def get_booking(self, booking_id: str) -> Booking:
        booking = self._repo.get_booking(booking_id)
        if booking is None:
            raise NotFoundError(f"booking '{booking_id}' not found.", booking_id=booking_id)
        return booking

    def list_bookings(self, guest_id: Optional[str] = None) -> Tuple[Booking, ...]:
        return self._repo.list_bookings(guest_id)
