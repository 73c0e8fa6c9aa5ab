"""
StayLedger Pricing Engine - Service Layer
=========================================
Effective nightly price of a room on a date.

Resolution:
    1. Start from the room's base price.
    2. Collect the active rules targeting the room whose window matches
       the night.
    3. Apply them one after another in creation order (created_at, then
       rule_id), each transforming the running price, each step rounded
       half-up to an integer.
    4. Clamp the result at zero.

Resolution is deterministic: the same rules, room and night always give
the same price.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional, Sequence, Tuple

from core.errors import InvalidRuleError, NotFoundError, ValidationError
from core.primitives.pricing import (
    SpecialPriceRule,
    build_modifier,
    build_window,
)
from core.primitives.room import Room
from core.time.clock import Clock
from core.time.temporal import StayWindow

from engines.pricing.commands import UpsertSpecialPriceRuleRequest

logger = logging.getLogger("stay.pricing")


# ── Data Records ──────────────────────────────────────────────

@dataclass(frozen=True)
class NightlyPrice:
    night: date
    price: int
    base_price: int
    applied_rules: Tuple[str, ...] = ()

    @property
    def label(self) -> str:
        if not self.applied_rules:
            return "Standard rate"
        return " + ".join(self.applied_rules)

    def to_dict(self) -> dict:
        return {
            "date": self.night.isoformat(),
            "price": self.price,
            "base_price": self.base_price,
            "label": self.label,
            "applied_rules": list(self.applied_rules),
        }


@dataclass(frozen=True)
class PriceBreakdown:
    room_id: str
    nights: Tuple[NightlyPrice, ...]

    @property
    def total(self) -> int:
        return sum(n.price for n in self.nights)

    @property
    def night_count(self) -> int:
        return len(self.nights)

    def to_dict(self) -> dict:
        return {
            "room_id": self.room_id,
            "nights": [n.to_dict() for n in self.nights],
            "night_count": self.night_count,
            "total": self.total,
        }


# ══════════════════════════════════════════════════════════════
# RESOLVER
# ══════════════════════════════════════════════════════════════

class PricingRuleResolver:
    """Pure read-side price computation over stored rules."""

    def __init__(self, repository) -> None:
        self._repo = repository

    def _rules_for(self, room: Room) -> Sequence[SpecialPriceRule]:
        rules = self._repo.list_rules(room_id=room.room_id)
        for rule in rules:
            if not isinstance(rule, SpecialPriceRule):
                raise InvalidRuleError(f"Malformed rule record: {rule!r}.")
        return sorted(rules, key=lambda r: r.sort_key())

    @staticmethod
    def _price_with(room: Room, night: date, rules: Iterable[SpecialPriceRule]) -> NightlyPrice:
        price = room.base_price
        applied = []
        for rule in rules:
            if not rule.applies_to(room.room_id, night):
                continue
            price = rule.modifier.apply(price)
            applied.append(rule.name)
        return NightlyPrice(
            night=night,
            price=max(price, 0),
            base_price=room.base_price,
            applied_rules=tuple(applied),
        )

    def resolve_price(self, room: Room, night: date) -> int:
        return self._price_with(room, night, self._rules_for(room)).price

    def price_stay(self, room: Room, window: StayWindow) -> PriceBreakdown:
        """Price every night of [check_in, check_out) with one rule lookup."""
        rules = self._rules_for(room)
        return PriceBreakdown(
            room_id=room.room_id,
            nights=tuple(self._price_with(room, night, rules) for night in window.nights()),
        )


# ══════════════════════════════════════════════════════════════
# RULE AUTHORING
# ══════════════════════════════════════════════════════════════

class PricingService:
    """Create, replace, delete and preview special price rules."""

    def __init__(self, repository, clock: Clock) -> None:
        self._repo = repository
        self._clock = clock
        self.resolver = PricingRuleResolver(repository)

    def upsert_rule(self, request: UpsertSpecialPriceRuleRequest) -> SpecialPriceRule:
        window = build_window(request.rule_type, request.start_date, request.end_date)
        modifier = build_modifier(request.modifier_kind, request.modifier_value)

        with self._repo.atomic():
            for room_id in request.room_ids:
                if self._repo.get_room(room_id) is None:
                    raise InvalidRuleError(f"Rule targets unknown room '{room_id}'.", room_id=room_id)

            created_at = self._clock.now_utc()
            rule_id = request.rule_id or str(uuid.uuid4())
            if request.rule_id is not None:
                existing = self._repo.get_rule(request.rule_id)
                if existing is None:
                    raise NotFoundError(f"rule '{request.rule_id}' not found.", rule_id=request.rule_id)
                # Replacing a rule keeps its place in the application order.
                created_at = existing.created_at

            rule = SpecialPriceRule(
                rule_id=rule_id,
                name=request.name.strip(),
                room_ids=frozenset(request.room_ids),
                window=window,
                modifier=modifier,
                created_at=created_at,
                is_active=request.is_active,
            )
            self._repo.save_rule(rule)

        logger.info(
            f"Special price rule saved: {rule.rule_id} ({rule.kind.value}, "
            f"{rule.modifier.describe()}) for {len(rule.room_ids)} room(s)"
        )
        return rule

    def delete_rule(self, rule_id: str) -> None:
        with self._repo.atomic():
            if not self._repo.delete_rule(rule_id):
                raise NotFoundError(f"rule '{rule_id}' not found.", rule_id=rule_id)
        logger.info(f"Special price rule deleted: {rule_id}")

    def list_rules(
        self,
        room_id: Optional[str] = None,
        active: Optional[bool] = None,
    ) -> Tuple[SpecialPriceRule, ...]:
        rules = self._repo.list_rules(room_id=room_id)
        if active is not None:
            rules = tuple(r for r in rules if r.is_active is active)
        return rules

    def resolve_price(self, room_id: str, night: date) -> int:
        return self.resolver.resolve_price(self._room(room_id), night)

    def preview(self, room_id: str, check_in: date, check_out: date) -> PriceBreakdown:
        try:
            window = StayWindow(check_in, check_out)
        except ValueError as exc:
            raise ValidationError(str(exc), room_id=room_id) from exc
        return self.resolver.price_stay(self._room(room_id), window)

    def _room(self, room_id: str) -> Room:
        room = self._repo.get_room(room_id)
        if room is None:
            raise NotFoundError(f"room '{room_id}' not found.", room_id=room_id)
        return room
