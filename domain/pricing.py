"""Pricing rules - resolves the nightly rate of a room from competing rules"""
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional
from uuid import UUID

from domain.entities import PricingRule
from domain.enums import ModifierKind, PricingRuleKind
from domain.value_objects import NightlyPrice

BASE_RATE_LABEL = "base rate"
DATE_RANGE_LABEL = "date range rule"
WEEKEND_LABEL = "weekend rule"

# date.weekday(): Saturday = 5, Sunday = 6
WEEKEND_DAYS = (5, 6)


def is_weekend(day: date) -> bool:
    return day.weekday() in WEEKEND_DAYS


def apply_modifier(base_price: int, modifier_kind: ModifierKind, modifier_value: float) -> int:
    """Apply a percentage or fixed modifier, rounding half up to whole units"""
    base = Decimal(base_price)
    value = Decimal(str(modifier_value))
    if modifier_kind == ModifierKind.PERCENTAGE:
        raw = base * (1 + value / 100)
    else:
        raw = base + value
    price = int(raw.quantize(Decimal(1), rounding=ROUND_HALF_UP))
    return max(price, 0)


def _earliest(rules: Iterable[PricingRule]) -> Optional[PricingRule]:
    # Oldest rule wins; rule_id breaks exact timestamp ties deterministically
    ordered = sorted(rules, key=lambda r: (r.created_at, str(r.rule_id)))
    return ordered[0] if ordered else None


def select_rule(room_id: UUID, day: date, rules: Iterable[PricingRule]) -> Optional[PricingRule]:
    """Pick the rule that prices room_id on day, or None for the base rate"""
    candidates = [r for r in rules if r.is_active and r.applies_to(room_id)]

    date_range_rule = _earliest(
        r for r in candidates
        if r.kind == PricingRuleKind.DATE_RANGE and r.covers(day)
    )
    if date_range_rule:
        return date_range_rule

    if is_weekend(day):
        return _earliest(r for r in candidates if r.kind == PricingRuleKind.WEEKEND)

    return None


def resolve_nightly_price(
    room_id: UUID,
    day: date,
    base_price: int,
    rules: Iterable[PricingRule]
) -> NightlyPrice:
    """Effective price of one night: date_range beats weekend beats base"""
    rule = select_rule(room_id, day, rules)
    if rule is None:
        return NightlyPrice(night=day, price=base_price, label=BASE_RATE_LABEL, base_price=base_price)

    fallback = DATE_RANGE_LABEL if rule.kind == PricingRuleKind.DATE_RANGE else WEEKEND_LABEL
    label = rule.name.strip() if rule.name and rule.name.strip() else fallback
    return NightlyPrice(
        night=day,
        price=apply_modifier(base_price, rule.modifier_kind, rule.modifier_value),
        label=label,
        base_price=base_price,
        rule_applied=True,
        rule_id=rule.rule_id,
        modifier_kind=rule.modifier_kind,
        modifier_value=rule.modifier_value
    )
