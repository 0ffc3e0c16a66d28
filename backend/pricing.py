"""Price computation for the Eubiosis checkout.

compute_breakdown() is pure: the same intent and policy always give the same
breakdown. Amounts are rand (major units) held as Decimal; conversion to
cents happens only when an order is persisted (see to_minor_units).
"""
from __future__ import annotations
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import NamedTuple

from logconfig import get_logger
from schemas import OrderIntent, PricingBreakdown, ProductSize

logger = get_logger(__name__)


class SizePrice(NamedTuple):
    list_price: Decimal
    special_price: Decimal
    unit_savings: Decimal


PRICE_TABLE: dict[ProductSize, SizePrice] = {
    ProductSize.ML_50: SizePrice(Decimal("325"), Decimal("265"), Decimal("60")),
    ProductSize.ML_100: SizePrice(Decimal("650"), Decimal("530"), Decimal("120")),
}


class DiscountStacking(str, Enum):
    # Bundle discount wins; the email discount only applies without a bundle.
    EXCLUSIVE = "exclusive"
    # Both percentages are applied to the subtotal and summed.
    ADDITIVE = "additive"


@dataclass(frozen=True)
class PricingPolicy:
    name: str
    stacking: DiscountStacking = DiscountStacking.EXCLUSIVE
    bundle_default_percent: Decimal = Decimal("15")
    email_percent: Decimal = Decimal("10")
    irresistible_price: Decimal = Decimal("235")
    irresistible_savings: Decimal = Decimal("90")
    delivery_threshold: Decimal = Decimal("650")
    reduced_delivery_fee: Decimal = Decimal("29")
    standard_delivery_fee: Decimal = Decimal("59")
    oto_counts_toward_delivery: bool = False


CANONICAL_PRICING = PricingPolicy(name="canonical")
ADDITIVE_DISCOUNT_PRICING = PricingPolicy(name="additive_discounts", stacking=DiscountStacking.ADDITIVE)
OTO_INCLUSIVE_DELIVERY_PRICING = PricingPolicy(name="oto_inclusive_delivery", oto_counts_toward_delivery=True)

PRICING_POLICIES: dict[str, PricingPolicy] = {
    p.name: p for p in (CANONICAL_PRICING, ADDITIVE_DISCOUNT_PRICING, OTO_INCLUSIVE_DELIVERY_PRICING)
}


def pricing_policy(name: str) -> PricingPolicy:
    policy = PRICING_POLICIES.get(name)
    if policy is None:
        logger.warning("Unknown pricing policy, using canonical", policy=name)
        return CANONICAL_PRICING
    return policy


def _percent_of(amount: Decimal, percent: Decimal) -> Decimal:
    return amount * percent / Decimal(100)


def discount_percent(intent: OrderIntent, policy: PricingPolicy) -> Decimal:
    """Total percentage knocked off the special-price subtotal."""
    bundle_percent = Decimal(intent.upsell_discount_percent) or policy.bundle_default_percent
    if policy.stacking is DiscountStacking.ADDITIVE:
        percent = Decimal(0)
        if intent.bundle:
            percent += bundle_percent
        if intent.email_discount_eligible:
            percent += policy.email_percent
        return percent
    if intent.bundle:
        return bundle_percent
    if intent.email_discount_eligible:
        return policy.email_percent
    return Decimal(0)


def delivery_fee(pre_delivery: Decimal, policy: PricingPolicy = CANONICAL_PRICING) -> Decimal:
    if pre_delivery >= policy.delivery_threshold:
        return policy.reduced_delivery_fee
    return policy.standard_delivery_fee


def compute_breakdown(intent: OrderIntent, policy: PricingPolicy = CANONICAL_PRICING) -> PricingBreakdown:
    prices = PRICE_TABLE[intent.size]
    quantity = Decimal(intent.quantity)

    list_price = prices.list_price * quantity
    subtotal = prices.special_price * quantity
    base_savings = prices.unit_savings * quantity

    discount = _percent_of(subtotal, discount_percent(intent, policy))
    discounted = subtotal - discount

    irresistible = policy.irresistible_price if intent.irresistible_offer_accepted else Decimal(0)
    oto = intent.oto.price if intent.oto is not None else Decimal(0)

    pre_delivery = discounted + irresistible
    if policy.oto_counts_toward_delivery:
        pre_delivery += oto
    fee = delivery_fee(pre_delivery, policy)

    savings = base_savings + discount
    if intent.irresistible_offer_accepted:
        savings += policy.irresistible_savings

    return PricingBreakdown(
        list_price=list_price,
        special_price=subtotal,
        discount_total=discount,
        add_on_price=irresistible + oto,
        delivery_fee=fee,
        total=discounted + irresistible + oto + fee,
        total_savings=savings,
    )


def to_minor_units(amount: Decimal) -> int:
    """Rand to cents, rounding half away from zero."""
    return int((amount * 100).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def line_item_description(intent: OrderIntent) -> str:
    """The product line shown in the order summary."""
    if intent.bundle:
        label = f"{intent.quantity}-Bottle Bundle"
    else:
        label = f"Eubiosis {intent.size.value}"
    if intent.oto is not None:
        label += f" + OTO {intent.oto.offer_id}"
    if intent.irresistible_offer_accepted:
        label += " + Extra 50ml Bottle"
    return label
