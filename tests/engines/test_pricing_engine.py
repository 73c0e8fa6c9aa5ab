"""
Tests - Pricing Engine (special price rules, nightly resolution, preview)
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from core.errors import InvalidRuleError, NotFoundError, ValidationError
from core.hotel_store.provider import InMemoryHotelRepository
from core.primitives.pricing import (
    DateRangeWindow,
    ModifierKind,
    PriceModifier,
    SpecialPriceRule,
    WeekendWindow,
)
from core.primitives.room import Room
from core.time.clock import FixedClock
from core.time.temporal import StayWindow
from engines.pricing.commands import UpsertSpecialPriceRuleRequest
from engines.pricing.services import PricingService


NOW = datetime(2026, 5, 20, 9, 0, 0, tzinfo=timezone.utc)
MONDAY = date(2026, 6, 1)
SATURDAY = date(2026, 6, 6)
SUNDAY = date(2026, 6, 7)


def _setup(base_price: int = 1_000_000):
    room = Room(room_id="deluxe", hotel_id="h1", name="Deluxe", base_price=base_price, quantity=2)
    other = Room(room_id="suite", hotel_id="h1", name="Suite", base_price=2_000_000)
    repo = InMemoryHotelRepository(rooms=(room, other))
    clock = FixedClock(NOW)
    return PricingService(repo, clock), clock, repo


def _weekend(value, kind="percentage", room_ids=("deluxe",), name="Weekend"):
    return UpsertSpecialPriceRuleRequest(
        name=name,
        rule_type="weekend",
        room_ids=room_ids,
        modifier_kind=kind,
        modifier_value=value,
    )


def _range(start, end, value, kind="fixed", name="Festival"):
    return UpsertSpecialPriceRuleRequest(
        name=name,
        rule_type="date_range",
        room_ids=("deluxe",),
        modifier_kind=kind,
        modifier_value=value,
        start_date=start,
        end_date=end,
    )


# ── Resolution ────────────────────────────────────────────────

class TestResolvePrice:
    def test_base_price_without_rules(self):
        svc, _, _ = _setup()
        assert svc.resolve_price("deluxe", SATURDAY) == 1_000_000

    def test_weekend_percentage_applies_on_saturday_only(self):
        svc, _, _ = _setup()
        svc.upsert_rule(_weekend(20))
        assert svc.resolve_price("deluxe", SATURDAY) == 1_200_000
        assert svc.resolve_price("deluxe", SUNDAY) == 1_200_000
        assert svc.resolve_price("deluxe", MONDAY) == 1_000_000

    def test_later_rule_compounds_on_running_price(self):
        svc, clock, _ = _setup()
        svc.upsert_rule(_weekend(20))
        clock.advance(minutes=1)
        svc.upsert_rule(_range(date(2026, 6, 1), date(2026, 6, 30), 50_000))
        assert svc.resolve_price("deluxe", SATURDAY) == 1_250_000
        assert svc.resolve_price("deluxe", MONDAY) == 1_050_000

    def test_application_order_follows_creation_not_kind(self):
        svc, clock, _ = _setup()
        svc.upsert_rule(_range(date(2026, 6, 1), date(2026, 6, 30), 50_000))
        clock.advance(minutes=1)
        svc.upsert_rule(_weekend(20))
        # (1,000,000 + 50,000) * 1.2
        assert svc.resolve_price("deluxe", SATURDAY) == 1_260_000

    def test_date_range_is_inclusive(self):
        svc, _, _ = _setup()
        svc.upsert_rule(_range(date(2026, 6, 2), date(2026, 6, 4), -100_000))
        assert svc.resolve_price("deluxe", date(2026, 6, 1)) == 1_000_000
        assert svc.resolve_price("deluxe", date(2026, 6, 2)) == 900_000
        assert svc.resolve_price("deluxe", date(2026, 6, 4)) == 900_000
        assert svc.resolve_price("deluxe", date(2026, 6, 5)) == 1_000_000

    def test_rule_only_touches_targeted_rooms(self):
        svc, _, _ = _setup()
        svc.upsert_rule(_weekend(20))
        assert svc.resolve_price("suite", SATURDAY) == 2_000_000

    def test_inactive_rule_is_ignored(self):
        svc, _, _ = _setup()
        rule = svc.upsert_rule(_weekend(20))
        svc.upsert_rule(UpsertSpecialPriceRuleRequest(
            name="Weekend", rule_type="weekend", room_ids=("deluxe",),
            modifier_kind="percentage", modifier_value=20,
            is_active=False, rule_id=rule.rule_id,
        ))
        assert svc.resolve_price("deluxe", SATURDAY) == 1_000_000

    def test_each_step_rounds_half_up(self):
        svc, _, _ = _setup(base_price=105)
        svc.upsert_rule(_weekend(Decimal("10")))
        # 115.5 -> 116
        assert svc.resolve_price("deluxe", SATURDAY) == 116

    def test_negative_result_clamps_to_zero(self):
        svc, _, _ = _setup(base_price=100_000)
        svc.upsert_rule(_weekend(-250_000, kind="fixed"))
        assert svc.resolve_price("deluxe", SATURDAY) == 0

    def test_resolution_is_deterministic(self):
        svc, _, _ = _setup()
        svc.upsert_rule(_weekend(15))
        svc.upsert_rule(_weekend(-3_333, kind="fixed", name="Loyalty"))
        prices = {svc.resolve_price("deluxe", SATURDAY) for _ in range(20)}
        assert len(prices) == 1

    def test_unknown_room_raises(self):
        svc, _, _ = _setup()
        with pytest.raises(NotFoundError):
            svc.resolve_price("ghost", SATURDAY)


# ── Authoring ─────────────────────────────────────────────────

class TestUpsertRule:
    def test_date_range_without_end_date_rejected(self):
        svc, _, _ = _setup()
        with pytest.raises(InvalidRuleError, match="start_date and end_date"):
            svc.upsert_rule(_range(date(2026, 6, 1), None, 1_000))

    def test_start_after_end_rejected(self):
        svc, _, _ = _setup()
        with pytest.raises(InvalidRuleError, match="after end_date"):
            svc.upsert_rule(_range(date(2026, 6, 5), date(2026, 6, 1), 1_000))

    def test_unknown_rule_type_rejected(self):
        svc, _, _ = _setup()
        with pytest.raises(InvalidRuleError, match="Unknown rule type"):
            svc.upsert_rule(UpsertSpecialPriceRuleRequest(
                name="x", rule_type="holiday", room_ids=("deluxe",),
                modifier_kind="fixed", modifier_value=1,
            ))

    def test_unknown_modifier_rejected(self):
        svc, _, _ = _setup()
        with pytest.raises(InvalidRuleError, match="Unknown modifier kind"):
            svc.upsert_rule(_weekend(10, kind="multiplier"))

    def test_empty_name_and_rooms_rejected_at_request(self):
        with pytest.raises(InvalidRuleError):
            _weekend(10, name="  ")
        with pytest.raises(InvalidRuleError):
            _weekend(10, room_ids=())

    def test_float_modifier_rejected(self):
        with pytest.raises(InvalidRuleError, match="numeric string"):
            _weekend(12.5)

    def test_unknown_room_rejected(self):
        svc, _, _ = _setup()
        with pytest.raises(InvalidRuleError, match="unknown room"):
            svc.upsert_rule(_weekend(10, room_ids=("deluxe", "ghost")))

    def test_update_keeps_created_at(self):
        svc, clock, _ = _setup()
        rule = svc.upsert_rule(_weekend(10))
        clock.advance(hours=3)
        updated = svc.upsert_rule(UpsertSpecialPriceRuleRequest(
            name="Weekend v2", rule_type="weekend", room_ids=("deluxe",),
            modifier_kind="percentage", modifier_value=25, rule_id=rule.rule_id,
        ))
        assert updated.rule_id == rule.rule_id
        assert updated.created_at == NOW
        assert svc.resolve_price("deluxe", SATURDAY) == 1_250_000

    def test_update_unknown_rule_raises_not_found(self):
        svc, _, _ = _setup()
        with pytest.raises(NotFoundError):
            svc.upsert_rule(UpsertSpecialPriceRuleRequest(
                name="x", rule_type="weekend", room_ids=("deluxe",),
                modifier_kind="fixed", modifier_value=1, rule_id="missing",
            ))

    def test_delete_and_list(self):
        svc, clock, _ = _setup()
        a = svc.upsert_rule(_weekend(10))
        clock.advance(seconds=1)
        b = svc.upsert_rule(_range(date(2026, 6, 1), date(2026, 6, 2), 5))
        assert [r.rule_id for r in svc.list_rules(room_id="deluxe")] == [a.rule_id, b.rule_id]
        svc.delete_rule(a.rule_id)
        assert [r.rule_id for r in svc.list_rules()] == [b.rule_id]
        with pytest.raises(NotFoundError):
            svc.delete_rule(a.rule_id)

    def test_list_filters_by_active(self):
        svc, _, _ = _setup()
        svc.upsert_rule(_weekend(10))
        svc.upsert_rule(UpsertSpecialPriceRuleRequest(
            name="Off", rule_type="weekend", room_ids=("deluxe",),
            modifier_kind="fixed", modifier_value=1, is_active=False,
        ))
        assert [r.name for r in svc.list_rules(active=True)] == ["Weekend"]
        assert [r.name for r in svc.list_rules(active=False)] == ["Off"]


# ── Preview / breakdown ───────────────────────────────────────

class TestPreview:
    def test_breakdown_covers_half_open_stay(self):
        svc, _, _ = _setup()
        svc.upsert_rule(_weekend(20))
        breakdown = svc.preview("deluxe", date(2026, 6, 5), date(2026, 6, 8))
        assert [n.night for n in breakdown.nights] == [
            date(2026, 6, 5), date(2026, 6, 6), date(2026, 6, 7),
        ]
        assert [n.price for n in breakdown.nights] == [1_000_000, 1_200_000, 1_200_000]
        assert breakdown.total == 3_400_000
        assert breakdown.nights[0].label == "Standard rate"
        assert breakdown.nights[1].applied_rules == ("Weekend",)

    def test_to_dict_shape(self):
        svc, _, _ = _setup()
        data = svc.preview("deluxe", MONDAY, date(2026, 6, 2)).to_dict()
        assert data["night_count"] == 1
        assert data["total"] == 1_000_000
        assert data["nights"][0]["date"] == "2026-06-01"

    def test_inverted_dates_rejected(self):
        svc, _, _ = _setup()
        with pytest.raises(ValidationError):
            svc.preview("deluxe", date(2026, 6, 3), date(2026, 6, 1))

    def test_resolver_prices_stay_window(self):
        svc, _, repo = _setup()
        room = repo.get_room("deluxe")
        assert svc.resolver.price_stay(room, StayWindow(MONDAY, date(2026, 6, 3))).total == 2_000_000


# ── Primitive ─────────────────────────────────────────────────

class TestRulePrimitive:
    def test_percentage_below_minus_hundred_rejected(self):
        with pytest.raises(InvalidRuleError, match="-100"):
            PriceModifier(ModifierKind.PERCENTAGE, Decimal("-101"))

    def test_describe(self):
        assert PriceModifier(ModifierKind.PERCENTAGE, Decimal("20")).describe() == "+20%"
        assert PriceModifier(ModifierKind.FIXED, Decimal("-500")).describe() == "-500"

    def test_rule_requires_rooms(self):
        with pytest.raises(InvalidRuleError, match="at least one room"):
            SpecialPriceRule(
                rule_id="r1", name="x", room_ids=frozenset(), window=WeekendWindow(),
                modifier=PriceModifier(ModifierKind.FIXED, Decimal(1)), created_at=NOW,
            )

    def test_weekend_window_matches_saturday_and_sunday(self):
        window = WeekendWindow()
        assert window.matches(SATURDAY) and window.matches(SUNDAY)
        assert not window.matches(date(2026, 6, 5))

    def test_date_range_window_requires_both_dates(self):
        with pytest.raises(InvalidRuleError):
            DateRangeWindow(start_date=MONDAY, end_date=None)
