"""
StayLedger Hotel Store - DB-backed Repository
=============================================
HotelRepository over the Django ORM.

atomic() is transaction.atomic(); lock_* are SELECT ... FOR UPDATE inside
it. Backends without row locks (SQLite) get one process-wide writer lock
around the outermost unit instead, so units run one at a time.

Rows are converted to frozen primitives at this boundary so engines
never see model instances.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Iterable, Optional, Tuple

from django.db import IntegrityError, connection, transaction

from core.errors import InvalidRuleError, LedgerInvariantError, NotFoundError
from core.primitives.booking import (
    Booking,
    BookingServiceLine,
    BookingStatus,
    ContactInfo,
    PaymentMethod,
    PaymentOption,
    PaymentStatus,
)
from core.primitives.deposit import DepositRequest, DepositStatus, Promotion
from core.primitives.ledger import (
    TransactionStatus,
    TransactionType,
    WalletAccount,
    WalletTransaction,
)
from core.primitives.pricing import (
    DateRangeWindow,
    SpecialPriceRule,
    build_modifier,
    build_window,
)
from core.primitives.reference import Reference
from core.primitives.room import Room, Service
from core.primitives.withdrawal import BankInfo, WithdrawalRequest, WithdrawalStatus
from core.time.temporal import StayWindow

logger = logging.getLogger("stay.store")


# ══════════════════════════════════════════════════════════════
# ROW CONVERSION
# ══════════════════════════════════════════════════════════════

def _room_from_row(row) -> Room:
    return Room(
        room_id=row.room_id,
        hotel_id=row.hotel_id,
        name=row.name,
        base_price=row.base_price,
        quantity=row.quantity,
        max_adults=row.max_adults,
        max_children=row.max_children,
        is_active=row.is_active,
    )


def _rule_from_row(row) -> SpecialPriceRule:
    # Malformed stored rows surface as InvalidRuleError here.
    return SpecialPriceRule(
        rule_id=row.rule_id,
        name=row.name,
        room_ids=frozenset(row.room_ids or ()),
        window=build_window(row.rule_type, row.start_date, row.end_date),
        modifier=build_modifier(row.modifier_kind, row.modifier_value),
        created_at=row.created_at,
        is_active=row.is_active,
    )


def _line_from_json(data: dict) -> BookingServiceLine:
    return BookingServiceLine(
        service_id=data["service_id"],
        name=data["name"],
        quantity=int(data["quantity"]),
        unit_price=int(data["unit_price"]),
        added_at=datetime.fromisoformat(data["added_at"]),
    )


def _booking_from_row(row) -> Booking:
    return Booking(
        booking_id=row.booking_id,
        guest_id=row.guest_id,
        hotel_id=row.hotel_id,
        room_id=row.room_id,
        check_in=row.check_in,
        check_out=row.check_out,
        adults=row.adults,
        children=row.children,
        room_price=row.room_price,
        service_price=row.service_price,
        total_price=row.total_price,
        estimated_price=row.estimated_price,
        contact=ContactInfo(**row.contact),
        status=BookingStatus(row.status),
        created_at=row.created_at,
        payment_status=PaymentStatus(row.payment_status),
        payment_method=PaymentMethod(row.payment_method) if row.payment_method else None,
        payment_option=PaymentOption(row.payment_option) if row.payment_option else None,
        services=tuple(_line_from_json(item) for item in row.services or ()),
        final_price=row.final_price,
        paid_from_wallet=row.paid_from_wallet,
        paid_from_bonus=row.paid_from_bonus,
        paid_externally=row.paid_externally,
        actual_check_in=row.actual_check_in,
        actual_check_out=row.actual_check_out,
        proof_image=row.proof_image,
        special_requests=row.special_requests,
        invoice_number=row.invoice_number,
        checkout_note=row.checkout_note,
        cancel_reason=row.cancel_reason,
    )


def _account_from_row(row) -> WalletAccount:
    return WalletAccount(
        user_id=row.user_id,
        cash_balance=row.cash_balance,
        bonus_balance=row.bonus_balance,
        held_balance=row.held_balance,
        version=row.version,
    )


def _transaction_from_row(row) -> WalletTransaction:
    return WalletTransaction(
        transaction_id=row.transaction_id,
        user_id=row.user_id,
        sequence=row.sequence,
        type=TransactionType(row.type),
        amount=row.amount,
        bonus_amount=row.bonus_amount,
        balance_before=row.balance_before,
        balance_after=row.balance_after,
        bonus_balance_before=row.bonus_balance_before,
        bonus_balance_after=row.bonus_balance_after,
        created_at=row.created_at,
        description=row.description,
        reference=Reference.from_parts(row.reference_kind, row.reference_id),
        status=TransactionStatus(row.status),
    )


def _withdrawal_from_row(row) -> WithdrawalRequest:
    return WithdrawalRequest(
        withdrawal_id=row.withdrawal_id,
        user_id=row.user_id,
        amount=row.amount,
        bank_info=BankInfo(**row.bank_info),
        status=WithdrawalStatus(row.status),
        created_at=row.created_at,
        is_admin_created=row.is_admin_created,
        admin_note=row.admin_note,
        processed_by=row.processed_by,
        processed_at=row.processed_at,
        admin_signature=row.admin_signature,
        confirmation_token=row.confirmation_token,
        token_expires_at=row.token_expires_at,
        user_signature=row.user_signature,
        confirmed_at=row.confirmed_at,
    )


def _deposit_from_row(row) -> DepositRequest:
    return DepositRequest(
        deposit_id=row.deposit_id,
        user_id=row.user_id,
        amount=row.amount,
        bonus_amount=row.bonus_amount,
        proof_image=row.proof_image,
        status=DepositStatus(row.status),
        created_at=row.created_at,
        bank_info=BankInfo(**row.bank_info) if row.bank_info else None,
        is_admin_created=row.is_admin_created,
        admin_note=row.admin_note,
        approved_by=row.approved_by,
        approved_at=row.approved_at,
        admin_signature=row.admin_signature,
    )


def _promotion_from_row(row) -> Promotion:
    return Promotion(
        promotion_id=row.promotion_id,
        name=row.name,
        deposit_threshold=row.deposit_threshold,
        bonus_amount=row.bonus_amount,
        bonus_percent=row.bonus_percent,
        max_bonus=row.max_bonus,
        is_active=row.is_active,
        starts_at=row.starts_at,
        ends_at=row.ends_at,
    )


# ══════════════════════════════════════════════════════════════
# REPOSITORY
# ══════════════════════════════════════════════════════════════

# SELECT ... FOR UPDATE is a no-op where the backend lacks it; units are
# serialized here instead. Re-entrant for nested atomic() blocks.
_UNIT_LOCK = threading.RLock()


class DbHotelRepository:
    @contextmanager
    def atomic(self):
        if connection.features.has_select_for_update:
            with transaction.atomic():
                yield self
            return
        with _UNIT_LOCK:
            with transaction.atomic():
                yield self

    # ── Rooms / services ──────────────────────────────────────

    def get_room(self, room_id: str) -> Optional[Room]:
        from core.hotel_store.models import Room as RoomRow

        row = RoomRow.objects.filter(room_id=room_id).first()
        return _room_from_row(row) if row is not None else None

    def lock_room(self, room_id: str) -> Room:
        from core.hotel_store.models import Room as RoomRow

        row = RoomRow.objects.select_for_update().filter(room_id=room_id).first()
        if row is None:
            raise NotFoundError(f"room '{room_id}' not found.", room_id=room_id)
        return _room_from_row(row)

    def save_room(self, room: Room) -> None:
        from core.hotel_store.models import Room as RoomRow

        RoomRow.objects.update_or_create(
            room_id=room.room_id,
            defaults={
                "hotel_id": room.hotel_id,
                "name": room.name,
                "base_price": room.base_price,
                "quantity": room.quantity,
                "max_adults": room.max_adults,
                "max_children": room.max_children,
                "is_active": room.is_active,
            },
        )

    def get_service(self, service_id: str) -> Optional[Service]:
        from core.hotel_store.models import Service as ServiceRow

        row = ServiceRow.objects.filter(service_id=service_id).first()
        if row is None:
            return None
        return Service(
            service_id=row.service_id,
            name=row.name,
            price=row.price,
            is_active=row.is_active,
        )

    def save_service(self, service: Service) -> None:
        from core.hotel_store.models import Service as ServiceRow

        ServiceRow.objects.update_or_create(
            service_id=service.service_id,
            defaults={"name": service.name, "price": service.price, "is_active": service.is_active},
        )

    # ── Special price rules ───────────────────────────────────

    def get_rule(self, rule_id: str) -> Optional[SpecialPriceRule]:
        from core.hotel_store.models import SpecialPriceRule as RuleRow

        row = RuleRow.objects.filter(rule_id=rule_id).first()
        return _rule_from_row(row) if row is not None else None

    def list_rules(self, room_id: Optional[str] = None) -> Tuple[SpecialPriceRule, ...]:
        from core.hotel_store.models import SpecialPriceRule as RuleRow

        rules = []
        for row in RuleRow.objects.order_by("created_at", "rule_id"):
            # JSON containment lookups are not portable to SQLite.
            if room_id is not None and room_id not in (row.room_ids or ()):
                continue
            try:
                rules.append(_rule_from_row(row))
            except InvalidRuleError:
                logger.error(f"Malformed special price rule {row.rule_id} in storage")
                raise
        return tuple(rules)

    def save_rule(self, rule: SpecialPriceRule) -> None:
        from core.hotel_store.models import SpecialPriceRule as RuleRow

        window = rule.window
        is_range = isinstance(window, DateRangeWindow)
        RuleRow.objects.update_or_create(
            rule_id=rule.rule_id,
            defaults={
                "name": rule.name,
                "rule_type": rule.kind.value,
                "start_date": window.start_date if is_range else None,
                "end_date": window.end_date if is_range else None,
                "modifier_kind": rule.modifier.kind.value,
                "modifier_value": rule.modifier.value,
                "room_ids": sorted(rule.room_ids),
                "is_active": rule.is_active,
                "created_at": rule.created_at,
            },
        )

    def delete_rule(self, rule_id: str) -> bool:
        from core.hotel_store.models import SpecialPriceRule as RuleRow

        deleted, _ = RuleRow.objects.filter(rule_id=rule_id).delete()
        return deleted > 0

    # ── Bookings ──────────────────────────────────────────────

    def get_booking(self, booking_id: str) -> Optional[Booking]:
        from core.hotel_store.models import Booking as BookingRow

        row = BookingRow.objects.filter(booking_id=booking_id).first()
        return _booking_from_row(row) if row is not None else None

    def lock_booking(self, booking_id: str) -> Booking:
        from core.hotel_store.models import Booking as BookingRow

        row = BookingRow.objects.select_for_update().filter(booking_id=booking_id).first()
        if row is None:
            raise NotFoundError(f"booking '{booking_id}' not found.", booking_id=booking_id)
        return _booking_from_row(row)

    def save_booking(self, booking: Booking) -> None:
        from core.hotel_store.models import Booking as BookingRow

        BookingRow.objects.update_or_create(
            booking_id=booking.booking_id,
            defaults={
                "guest_id": booking.guest_id,
                "hotel_id": booking.hotel_id,
                "room_id": booking.room_id,
                "check_in": booking.check_in,
                "check_out": booking.check_out,
                "actual_check_in": booking.actual_check_in,
                "actual_check_out": booking.actual_check_out,
                "adults": booking.adults,
                "children": booking.children,
                "room_price": booking.room_price,
                "service_price": booking.service_price,
                "total_price": booking.total_price,
                "estimated_price": booking.estimated_price,
                "final_price": booking.final_price,
                "paid_from_wallet": booking.paid_from_wallet,
                "paid_from_bonus": booking.paid_from_bonus,
                "paid_externally": booking.paid_externally,
                "services": [line.to_dict() for line in booking.services],
                "status": booking.status.value,
                "payment_status": booking.payment_status.value,
                "payment_method": booking.payment_method.value if booking.payment_method else "",
                "payment_option": booking.payment_option.value if booking.payment_option else "",
                "proof_image": booking.proof_image,
                "contact": booking.contact.to_dict(),
                "special_requests": booking.special_requests,
                "invoice_number": booking.invoice_number,
                "checkout_note": booking.checkout_note,
                "cancel_reason": booking.cancel_reason,
                "created_at": booking.created_at,
            },
        )

    def bookings_overlapping(
        self,
        room_id: str,
        window: StayWindow,
        statuses: Iterable[BookingStatus],
    ) -> Tuple[Booking, ...]:
        from core.hotel_store.models import Booking as BookingRow

        rows = BookingRow.objects.filter(
            room_id=room_id,
            status__in=[s.value for s in statuses],
            check_in__lt=window.check_out,
            check_out__gt=window.check_in,
        )
        return tuple(_booking_from_row(row) for row in rows)

    def list_bookings(self, guest_id: Optional[str] = None) -> Tuple[Booking, ...]:
        from core.hotel_store.models import Booking as BookingRow

        rows = BookingRow.objects.all()
        if guest_id is not None:
            rows = rows.filter(guest_id=guest_id)
        return tuple(_booking_from_row(row) for row in rows.order_by("created_at", "booking_id"))

    # ── Wallet ────────────────────────────────────────────────

    def get_account(self, user_id: str) -> WalletAccount:
        from core.hotel_store.models import WalletAccount as AccountRow

        row = AccountRow.objects.filter(user_id=user_id).first()
        return _account_from_row(row) if row is not None else WalletAccount(user_id=user_id)

    def lock_account(self, user_id: str) -> WalletAccount:
        from core.hotel_store.models import WalletAccount as AccountRow

        row = AccountRow.objects.select_for_update().filter(user_id=user_id).first()
        if row is None:
            try:
                with transaction.atomic():
                    AccountRow.objects.create(user_id=user_id)
            except IntegrityError:
                # Another unit created it first; fall through and lock it.
                pass
            row = AccountRow.objects.select_for_update().get(user_id=user_id)
        return _account_from_row(row)

    def save_account(self, account: WalletAccount) -> None:
        from core.hotel_store.models import WalletAccount as AccountRow

        AccountRow.objects.update_or_create(
            user_id=account.user_id,
            defaults={
                "cash_balance": account.cash_balance,
                "bonus_balance": account.bonus_balance,
                "held_balance": account.held_balance,
                "version": account.version,
            },
        )

    def append_transaction(self, tx: WalletTransaction) -> None:
        from core.hotel_store.models import WalletTransaction as TxRow

        try:
            with transaction.atomic():
                TxRow.objects.create(
                    transaction_id=tx.transaction_id,
                    user_id=tx.user_id,
                    sequence=tx.sequence,
                    type=tx.type.value,
                    amount=tx.amount,
                    bonus_amount=tx.bonus_amount,
                    balance_before=tx.balance_before,
                    balance_after=tx.balance_after,
                    bonus_balance_before=tx.bonus_balance_before,
                    bonus_balance_after=tx.bonus_balance_after,
                    description=tx.description,
                    reference_kind=tx.reference.kind.value if tx.reference else "",
                    reference_id=tx.reference.id if tx.reference else "",
                    status=tx.status.value,
                    created_at=tx.created_at,
                )
        except IntegrityError as exc:
            raise LedgerInvariantError(
                "SEQUENCE_UNIQUE",
                f"could not append sequence {tx.sequence}: {exc}",
                user_id=tx.user_id,
            ) from exc

    def get_transaction(self, transaction_id: str) -> Optional[WalletTransaction]:
        from core.hotel_store.models import WalletTransaction as TxRow

        row = TxRow.objects.filter(transaction_id=transaction_id).first()
        return _transaction_from_row(row) if row is not None else None

    def update_transaction_status(self, tx: WalletTransaction) -> None:
        from core.hotel_store.models import WalletTransaction as TxRow

        updated = TxRow.objects.filter(transaction_id=tx.transaction_id).update(status=tx.status.value)
        if not updated:
            raise NotFoundError(
                f"transaction '{tx.transaction_id}' not found.",
                transaction_id=tx.transaction_id,
            )

    def list_transactions(
        self,
        user_id: str,
        tx_type: Optional[TransactionType] = None,
    ) -> Tuple[WalletTransaction, ...]:
        from core.hotel_store.models import WalletTransaction as TxRow

        rows = TxRow.objects.filter(user_id=user_id)
        if tx_type is not None:
            rows = rows.filter(type=tx_type.value)
        return tuple(_transaction_from_row(row) for row in rows.order_by("sequence"))

    # ── Withdrawals ───────────────────────────────────────────

    def get_withdrawal(self, withdrawal_id: str) -> Optional[WithdrawalRequest]:
        from core.hotel_store.models import WithdrawalRequest as WithdrawalRow

        row = WithdrawalRow.objects.filter(withdrawal_id=withdrawal_id).first()
        return _withdrawal_from_row(row) if row is not None else None

    def lock_withdrawal(self, withdrawal_id: str) -> WithdrawalRequest:
        from core.hotel_store.models import WithdrawalRequest as WithdrawalRow

        row = WithdrawalRow.objects.select_for_update().filter(withdrawal_id=withdrawal_id).first()
        if row is None:
            raise NotFoundError(
                f"withdrawal '{withdrawal_id}' not found.",
                withdrawal_id=withdrawal_id,
            )
        return _withdrawal_from_row(row)

    def save_withdrawal(self, withdrawal: WithdrawalRequest) -> None:
        from core.hotel_store.models import WithdrawalRequest as WithdrawalRow

        WithdrawalRow.objects.update_or_create(
            withdrawal_id=withdrawal.withdrawal_id,
            defaults={
                "user_id": withdrawal.user_id,
                "amount": withdrawal.amount,
                "bank_info": withdrawal.bank_info.to_dict(),
                "status": withdrawal.status.value,
                "is_admin_created": withdrawal.is_admin_created,
                "admin_note": withdrawal.admin_note,
                "processed_by": withdrawal.processed_by,
                "processed_at": withdrawal.processed_at,
                "admin_signature": withdrawal.admin_signature,
                "confirmation_token": withdrawal.confirmation_token,
                "token_expires_at": withdrawal.token_expires_at,
                "user_signature": withdrawal.user_signature,
                "confirmed_at": withdrawal.confirmed_at,
                "created_at": withdrawal.created_at,
            },
        )

    def find_withdrawal_by_token(self, token: str) -> Optional[WithdrawalRequest]:
        from core.hotel_store.models import WithdrawalRequest as WithdrawalRow

        row = WithdrawalRow.objects.filter(confirmation_token=token).first()
        return _withdrawal_from_row(row) if row is not None else None

    def list_withdrawals(self, user_id: Optional[str] = None) -> Tuple[WithdrawalRequest, ...]:
        from core.hotel_store.models import WithdrawalRequest as WithdrawalRow

        rows = WithdrawalRow.objects.all()
        if user_id is not None:
            rows = rows.filter(user_id=user_id)
        return tuple(_withdrawal_from_row(row) for row in rows.order_by("created_at", "withdrawal_id"))

    # ── Deposits / promotions ─────────────────────────────────

    def get_deposit(self, deposit_id: str) -> Optional[DepositRequest]:
        from core.hotel_store.models import DepositRequest as DepositRow

        row = DepositRow.objects.filter(deposit_id=deposit_id).first()
        return _deposit_from_row(row) if row is not None else None

    def lock_deposit(self, deposit_id: str) -> DepositRequest:
        from core.hotel_store.models import DepositRequest as DepositRow

        row = DepositRow.objects.select_for_update().filter(deposit_id=deposit_id).first()
        if row is None:
            raise NotFoundError(f"deposit '{deposit_id}' not found.", deposit_id=deposit_id)
        return _deposit_from_row(row)

    def save_deposit(self, deposit: DepositRequest) -> None:
        from core.hotel_store.models import DepositRequest as DepositRow

        DepositRow.objects.update_or_create(
            deposit_id=deposit.deposit_id,
            defaults={
                "user_id": deposit.user_id,
                "amount": deposit.amount,
                "bonus_amount": deposit.bonus_amount,
                "proof_image": deposit.proof_image,
                "bank_info": deposit.bank_info.to_dict() if deposit.bank_info else None,
                "status": deposit.status.value,
                "is_admin_created": deposit.is_admin_created,
                "admin_note": deposit.admin_note,
                "approved_by": deposit.approved_by,
                "approved_at": deposit.approved_at,
                "admin_signature": deposit.admin_signature,
                "created_at": deposit.created_at,
            },
        )

    def list_promotions(self) -> Tuple[Promotion, ...]:
        from core.hotel_store.models import Promotion as PromotionRow

        return tuple(_promotion_from_row(row) for row in PromotionRow.objects.order_by("promotion_id"))

    def save_promotion(self, promotion: Promotion) -> None:
        from core.hotel_store.models import Promotion as PromotionRow

        PromotionRow.objects.update_or_create(
            promotion_id=promotion.promotion_id,
            defaults={
                "name": promotion.name,
                "deposit_threshold": promotion.deposit_threshold,
                "bonus_amount": promotion.bonus_amount,
                "bonus_percent": promotion.bonus_percent,
                "max_bonus": promotion.max_bonus,
                "is_active": promotion.is_active,
                "starts_at": promotion.starts_at,
                "ends_at": promotion.ends_at,
            },
        )
