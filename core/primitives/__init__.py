"""
StayLedger Core Primitives - Domain Building Blocks
===================================================
Primitives are the shared building blocks every engine consumes. They are:

- Pure Python (no Django dependency)
- Immutable (frozen dataclasses; updates go through dataclasses.replace)
- Integer minor units for every amount

Primitives:
    room        - Room inventory and add-on services
    pricing     - Special price rules, windows and modifiers
    booking     - Booking record and its status/payment enums
    ledger      - Wallet account and immutable wallet transactions
    withdrawal  - Cash-out requests and bank details
    deposit     - Top-up requests and deposit promotions
    reference   - Typed pointer from a ledger row to its cause
    workflow    - Generic state machine schema
"""

from core.primitives.booking import (
    OCCUPYING_STATUSES,
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
    replay_balances,
)
from core.primitives.pricing import (
    DateRangeWindow,
    ModifierKind,
    PriceModifier,
    RuleKind,
    SpecialPriceRule,
    WeekendWindow,
)
from core.primitives.reference import Reference, ReferenceKind
from core.primitives.room import Room, Service
from core.primitives.withdrawal import BankInfo, WithdrawalRequest, WithdrawalStatus
from core.primitives.workflow import WorkflowDefinition, build_workflow

__all__ = [
    # ── Room ──────────────────────────────────────────────────
    "Room",
    "Service",
    # ── Pricing ───────────────────────────────────────────────
    "DateRangeWindow",
    "ModifierKind",
    "PriceModifier",
    "RuleKind",
    "SpecialPriceRule",
    "WeekendWindow",
    # ── Booking ───────────────────────────────────────────────
    "OCCUPYING_STATUSES",
    "Booking",
    "BookingServiceLine",
    "BookingStatus",
    "ContactInfo",
    "PaymentMethod",
    "PaymentOption",
    "PaymentStatus",
    # ── Ledger ────────────────────────────────────────────────
    "TransactionStatus",
    "TransactionType",
    "WalletAccount",
    "WalletTransaction",
    "replay_balances",
    # ── Withdrawal / Deposit ──────────────────────────────────
    "BankInfo",
    "WithdrawalRequest",
    "WithdrawalStatus",
    "DepositRequest",
    "DepositStatus",
    "Promotion",
    # ── Shared ────────────────────────────────────────────────
    "Reference",
    "ReferenceKind",
    "WorkflowDefinition",
    "build_workflow",
]
