"""
StayLedger Hotel Store - Repository Protocol and In-Memory Repository
=====================================================================
Engines talk to storage only through HotelRepository. Two implementations
exist:

    InMemoryHotelRepository  (this module) - tests, bootstrap, tooling
    DbHotelRepository        (db_provider)  - Django ORM

Unit of work:
    Every multi-step operation runs inside `with repo.atomic():`. Writes
    made inside the block become visible to other threads only when the
    outermost block exits cleanly; an exception discards all of them.
    Nested blocks behave like savepoints.

Row locks:
    lock_room / lock_booking / lock_withdrawal / lock_deposit /
    lock_account must be called inside atomic(). The lock is held until
    the outermost block ends (commit or rollback), the same lifetime as a
    SELECT ... FOR UPDATE row lock. Callers take locks in the order
    room, booking, withdrawal, deposit, account.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import replace
from typing import Any, Dict, Iterable, Iterator, List, Optional, Protocol, Tuple

from core.errors import LedgerInvariantError, NotFoundError
from core.primitives.booking import Booking, BookingStatus
from core.primitives.deposit import DepositRequest, Promotion
from core.primitives.ledger import TransactionType, WalletAccount, WalletTransaction
from core.primitives.pricing import SpecialPriceRule
from core.primitives.room import Room, Service
from core.primitives.withdrawal import WithdrawalRequest
from core.time.temporal import StayWindow


# ══════════════════════════════════════════════════════════════
# PROTOCOL
# ══════════════════════════════════════════════════════════════

class HotelRepository(Protocol):
    def atomic(self):
        """Context manager for one all-or-nothing unit of work."""
        ...

    # ── Rooms / services ──────────────────────────────────────
    def get_room(self, room_id: str) -> Optional[Room]: ...
    def lock_room(self, room_id: str) -> Room: ...
    def save_room(self, room: Room) -> None: ...
    def get_service(self, service_id: str) -> Optional[Service]: ...
    def save_service(self, service: Service) -> None: ...

    # ── Special price rules ───────────────────────────────────
    def get_rule(self, rule_id: str) -> Optional[SpecialPriceRule]: ...
    def list_rules(self, room_id: Optional[str] = None) -> Tuple[SpecialPriceRule, ...]: ...
    def save_rule(self, rule: SpecialPriceRule) -> None: ...
    def delete_rule(self, rule_id: str) -> bool: ...

    # ── Bookings ──────────────────────────────────────────────
    def get_booking(self, booking_id: str) -> Optional[Booking]: ...
    def lock_booking(self, booking_id: str) -> Booking: ...
    def save_booking(self, booking: Booking) -> None: ...
    def bookings_overlapping(
        self,
        room_id: str,
        window: StayWindow,
        statuses: Iterable[BookingStatus],
    ) -> Tuple[Booking, ...]: ...
    def list_bookings(self, guest_id: Optional[str] = None) -> Tuple[Booking, ...]: ...

    # ── Wallet ────────────────────────────────────────────────
    def get_account(self, user_id: str) -> WalletAccount: ...
    def lock_account(self, user_id: str) -> WalletAccount: ...
    def save_account(self, account: WalletAccount) -> None: ...
    def append_transaction(self, tx: WalletTransaction) -> None: ...
    def get_transaction(self, transaction_id: str) -> Optional[WalletTransaction]: ...
    def update_transaction_status(self, tx: WalletTransaction) -> None: ...
    def list_transactions(
        self,
        user_id: str,
        tx_type: Optional[TransactionType] = None,
    ) -> Tuple[WalletTransaction, ...]: ...

    # ── Withdrawals ───────────────────────────────────────────
    def get_withdrawal(self, withdrawal_id: str) -> Optional[WithdrawalRequest]: ...
    def lock_withdrawal(self, withdrawal_id: str) -> WithdrawalRequest: ...
    def save_withdrawal(self, withdrawal: WithdrawalRequest) -> None: ...
    def find_withdrawal_by_token(self, token: str) -> Optional[WithdrawalRequest]: ...
    def list_withdrawals(self, user_id: Optional[str] = None) -> Tuple[WithdrawalRequest, ...]: ...

    # ── Deposits / promotions ─────────────────────────────────
    def get_deposit(self, deposit_id: str) -> Optional[DepositRequest]: ...
    def lock_deposit(self, deposit_id: str) -> DepositRequest: ...
    def save_deposit(self, deposit: DepositRequest) -> None: ...
    def list_promotions(self) -> Tuple[Promotion, ...]: ...
    def save_promotion(self, promotion: Promotion) -> None: ...


# ══════════════════════════════════════════════════════════════
# IN-MEMORY IMPLEMENTATION
# ══════════════════════════════════════════════════════════════

_DELETED = object()

_TABLES = (
    "rooms",
    "services",
    "rules",
    "bookings",
    "accounts",
    "transactions",
    "withdrawals",
    "deposits",
    "promotions",
)


class InMemoryHotelRepository:
    """
    Thread-safe in-memory repository with real unit-of-work semantics.

    Committed state lives in plain dicts guarded by one commit lock. Each
    thread stacks write overlays while inside atomic(); row locks are
    per-key re-entrant locks released when the outermost block ends.
    """

    def __init__(
        self,
        rooms: Iterable[Room] = (),
        services: Iterable[Service] = (),
    ) -> None:
        self._tables: Dict[str, Dict[str, Any]] = {name: {} for name in _TABLES}
        self._commit_guard = threading.RLock()
        self._row_locks: Dict[Tuple[str, str], threading.RLock] = {}
        self._row_locks_guard = threading.Lock()
        self._local = threading.local()

        for room in rooms:
            self._tables["rooms"][room.room_id] = room
        for service in services:
            self._tables["services"][service.service_id] = service

    # ── Unit of work ──────────────────────────────────────────

    def _stack(self) -> List[Dict[Tuple[str, str], Any]]:
        stack = getattr(self._local, "stack", None)
        if stack is None:
            stack = []
            self._local.stack = stack
            self._local.held = []
            self._local.held_keys = set()
        return stack

    @contextmanager
    def atomic(self) -> Iterator["InMemoryHotelRepository"]:
        stack = self._stack()
        stack.append({})
        try:
            yield self
        except BaseException:
            stack.pop()
            if not stack:
                self._release_row_locks()
            raise
        writes = stack.pop()
        if stack:
            stack[-1].update(writes)
            return
        try:
            with self._commit_guard:
                for (table, key), value in writes.items():
                    if value is _DELETED:
                        self._tables[table].pop(key, None)
                    else:
                        self._tables[table][key] = value
        finally:
            self._release_row_locks()

    def _release_row_locks(self) -> None:
        held = self._local.held
        while held:
            held.pop().release()
        self._local.held_keys.clear()

    def _lock_row(self, table: str, key: str) -> None:
        stack = self._stack()
        if not stack:
            raise RuntimeError(f"Row lock on {table}:{key} requires an atomic() block.")
        if (table, key) in self._local.held_keys:
            return
        with self._row_locks_guard:
            lock = self._row_locks.setdefault((table, key), threading.RLock())
        lock.acquire()
        self._local.held.append(lock)
        self._local.held_keys.add((table, key))

    # ── Raw table access ──────────────────────────────────────

    def _read(self, table: str, key: str) -> Any:
        for overlay in reversed(self._stack()):
            if (table, key) in overlay:
                value = overlay[(table, key)]
                return None if value is _DELETED else value
        with self._commit_guard:
            return self._tables[table].get(key)

    def _scan(self, table: str) -> List[Any]:
        with self._commit_guard:
            merged = dict(self._tables[table])
        for overlay in self._stack():
            for (tbl, key), value in overlay.items():
                if tbl != table:
                    continue
                if value is _DELETED:
                    merged.pop(key, None)
                else:
                    merged[key] = value
        return list(merged.values())

    def _write(self, table: str, key: str, value: Any) -> None:
        stack = self._stack()
        if stack:
            stack[-1][(table, key)] = value
            return
        with self._commit_guard:
            if value is _DELETED:
                self._tables[table].pop(key, None)
            else:
                self._tables[table][key] = value

    def _require(self, table: str, key: str, label: str) -> Any:
        value = self._read(table, key)
        if value is None:
            raise NotFoundError(f"{label} '{key}' not found.", **{f"{label}_id": key})
        return value

    # ── Rooms / services ──────────────────────────────────────

    def get_room(self, room_id: str) -> Optional[Room]:
        return self._read("rooms", room_id)

    def lock_room(self, room_id: str) -> Room:
        self._lock_row("rooms", room_id)
        return self._require("rooms", room_id, "room")

    def save_room(self, room: Room) -> None:
        self._write("rooms", room.room_id, room)

    def get_service(self, service_id: str) -> Optional[Service]:
        return self._read("services", service_id)

    def save_service(self, service: Service) -> None:
        self._write("services", service.service_id, service)

    # ── Special price rules ───────────────────────────────────

    def get_rule(self, rule_id: str) -> Optional[SpecialPriceRule]:
        return self._read("rules", rule_id)

    def list_rules(self, room_id: Optional[str] = None) -> Tuple[SpecialPriceRule, ...]:
        rules = self._scan("rules")
        if room_id is not None:
            rules = [r for r in rules if room_id in r.room_ids]
        return tuple(sorted(rules, key=lambda r: r.sort_key()))

    def save_rule(self, rule: SpecialPriceRule) -> None:
        self._write("rules", rule.rule_id, rule)

    def delete_rule(self, rule_id: str) -> bool:
        if self._read("rules", rule_id) is None:
            return False
        self._write("rules", rule_id, _DELETED)
        return True

    # ── Bookings ──────────────────────────────────────────────

    def get_booking(self, booking_id: str) -> Optional[Booking]:
        return self._read("bookings", booking_id)

    def lock_booking(self, booking_id: str) -> Booking:
        self._lock_row("bookings", booking_id)
        return self._require("bookings", booking_id, "booking")

    def save_booking(self, booking: Booking) -> None:
        self._write("bookings", booking.booking_id, booking)

    def bookings_overlapping(
        self,
        room_id: str,
        window: StayWindow,
        statuses: Iterable[BookingStatus],
    ) -> Tuple[Booking, ...]:
        wanted = frozenset(statuses)
        return tuple(
            b for b in self._scan("bookings")
            if b.room_id == room_id and b.status in wanted and b.stay.overlaps(window)
        )

    def list_bookings(self, guest_id: Optional[str] = None) -> Tuple[Booking, ...]:
        bookings = self._scan("bookings")
        if guest_id is not None:
            bookings = [b for b in bookings if b.guest_id == guest_id]
        return tuple(sorted(bookings, key=lambda b: (b.created_at, b.booking_id)))

    # ── Wallet ────────────────────────────────────────────────

    def get_account(self, user_id: str) -> WalletAccount:
        account = self._read("accounts", user_id)
        return account if account is not None else WalletAccount(user_id=user_id)

    def lock_account(self, user_id: str) -> WalletAccount:
        self._lock_row("accounts", user_id)
        return self.get_account(user_id)

    def save_account(self, account: WalletAccount) -> None:
        self._write("accounts", account.user_id, account)

    def append_transaction(self, tx: WalletTransaction) -> None:
        if self._read("transactions", tx.transaction_id) is not None:
            raise LedgerInvariantError(
                "TRANSACTION_APPEND_ONLY",
                f"transaction {tx.transaction_id} already exists.",
                user_id=tx.user_id,
            )
        for existing in self._scan("transactions"):
            if existing.user_id == tx.user_id and existing.sequence == tx.sequence:
                raise LedgerInvariantError(
                    "SEQUENCE_UNIQUE",
                    f"sequence {tx.sequence} already used.",
                    user_id=tx.user_id,
                )
        self._write("transactions", tx.transaction_id, tx)

    def get_transaction(self, transaction_id: str) -> Optional[WalletTransaction]:
        return self._read("transactions", transaction_id)

    def update_transaction_status(self, tx: WalletTransaction) -> None:
        current = self._require("transactions", tx.transaction_id, "transaction")
        self._write("transactions", tx.transaction_id, replace(current, status=tx.status))

    def list_transactions(
        self,
        user_id: str,
        tx_type: Optional[TransactionType] = None,
    ) -> Tuple[WalletTransaction, ...]:
        rows = [
            tx for tx in self._scan("transactions")
            if tx.user_id == user_id and (tx_type is None or tx.type is tx_type)
        ]
        return tuple(sorted(rows, key=lambda tx: tx.sequence))

    # ── Withdrawals ───────────────────────────────────────────

    def get_withdrawal(self, withdrawal_id: str) -> Optional[WithdrawalRequest]:
        return self._read("withdrawals", withdrawal_id)

    def lock_withdrawal(self, withdrawal_id: str) -> WithdrawalRequest:
        self._lock_row("withdrawals", withdrawal_id)
        return self._require("withdrawals", withdrawal_id, "withdrawal")

    def save_withdrawal(self, withdrawal: WithdrawalRequest) -> None:
        token = withdrawal.confirmation_token
        if token is not None:
            for other in self._scan("withdrawals"):
                if other.confirmation_token == token and other.withdrawal_id != withdrawal.withdrawal_id:
                    raise ValueError("confirmation_token must be unique.")
        self._write("withdrawals", withdrawal.withdrawal_id, withdrawal)

    def find_withdrawal_by_token(self, token: str) -> Optional[WithdrawalRequest]:
        for withdrawal in self._scan("withdrawals"):
            if withdrawal.confirmation_token == token:
                return withdrawal
        return None

    def list_withdrawals(self, user_id: Optional[str] = None) -> Tuple[WithdrawalRequest, ...]:
        rows = self._scan("withdrawals")
        if user_id is not None:
            rows = [w for w in rows if w.user_id == user_id]
        return tuple(sorted(rows, key=lambda w: (w.created_at, w.withdrawal_id)))

    # ── Deposits / promotions ─────────────────────────────────

    def get_deposit(self, deposit_id: str) -> Optional[DepositRequest]:
        return self._read("deposits", deposit_id)

    def lock_deposit(self, deposit_id: str) -> DepositRequest:
        self._lock_row("deposits", deposit_id)
        return self._require("deposits", deposit_id, "deposit")

    def save_deposit(self, deposit: DepositRequest) -> None:
        self._write("deposits", deposit.deposit_id, deposit)

    def list_promotions(self) -> Tuple[Promotion, ...]:
        return tuple(sorted(self._scan("promotions"), key=lambda p: p.promotion_id))

    def save_promotion(self, promotion: Promotion) -> None:
        self._write("promotions", promotion.promotion_id, promotion)
