"""Tests for the pricing engine and its policies."""

from decimal import Decimal

import pytest

from pricing import (
    ADDITIVE_DISCOUNT_PRICING,
    CANONICAL_PRICING,
    OTO_INCLUSIVE_DELIVERY_PRICING,
    PRICE_TABLE,
    compute_breakdown,
    delivery_fee,
    line_item_description,
    pricing_policy,
    to_minor_units,
)
from schemas import OrderIntent, OtoSelection, ProductSize


def _intent(**kwargs):
    return OrderIntent(**kwargs)


class TestSubtotal:
    @pytest.mark.parametrize("size", list(ProductSize))
    @pytest.mark.parametrize("quantity", [1, 2, 3, 7])
    def test_special_price_times_quantity(self, size, quantity):
        breakdown = compute_breakdown(_intent(size=size, quantity=quantity))
        assert breakdown.special_price == PRICE_TABLE[size].special_price * quantity
        assert breakdown.list_price == PRICE_TABLE[size].list_price * quantity

    def test_base_savings_scale_with_quantity(self):
        breakdown = compute_breakdown(_intent(size=ProductSize.ML_100, quantity=3))
        assert breakdown.total_savings == 360


class TestDiscountStacking:
    def test_email_discount_is_ten_percent(self):
        breakdown = compute_breakdown(_intent(quantity=2, email_discount_eligible=True))
        assert breakdown.discount_total == 53

    def test_bundle_defaults_to_fifteen_percent(self):
        breakdown = compute_breakdown(_intent(size=ProductSize.ML_100, quantity=2, bundle=True))
        assert breakdown.discount_total == Decimal("159")

    def test_bundle_uses_upsell_percent(self):
        breakdown = compute_breakdown(_intent(quantity=4, bundle=True, upsell_discount_percent=20))
        assert breakdown.discount_total == Decimal("212")

    def test_upsell_percent_ignored_without_bundle(self):
        breakdown = compute_breakdown(_intent(quantity=4, upsell_discount_percent=20))
        assert breakdown.discount_total == 0

    @pytest.mark.parametrize("percent", [0, 15, 25])
    def test_bundle_and_email_never_sum(self, percent):
        intent = _intent(quantity=3, bundle=True, email_discount_eligible=True, upsell_discount_percent=percent)
        breakdown = compute_breakdown(intent)
        bundle_percent = Decimal(percent or 15)
        assert breakdown.discount_total == breakdown.special_price * bundle_percent / 100
        assert breakdown.discount_total != breakdown.special_price * (bundle_percent + 10) / 100

    def test_additive_policy_sums_both(self):
        intent = _intent(quantity=2, bundle=True, email_discount_eligible=True)
        breakdown = compute_breakdown(intent, ADDITIVE_DISCOUNT_PRICING)
        assert breakdown.discount_total == Decimal("132.5")

    def test_fractional_discount_is_not_rounded(self):
        breakdown = compute_breakdown(_intent(bundle=True))
        assert breakdown.discount_total == Decimal("39.75")


class TestDeliveryFee:
    def test_threshold_is_inclusive(self):
        assert delivery_fee(Decimal("650")) == 29
        assert delivery_fee(Decimal("649.99")) == 59

    def test_single_100ml_pays_standard_fee(self):
        assert compute_breakdown(_intent(size=ProductSize.ML_100)).delivery_fee == 59

    def test_large_order_pays_reduced_fee(self):
        assert compute_breakdown(_intent(size=ProductSize.ML_100, quantity=2)).delivery_fee == 29

    def test_discount_can_drop_order_below_threshold(self):
        # 2 x 530 = 1060, less 40% = 636
        intent = _intent(size=ProductSize.ML_100, quantity=2, bundle=True, upsell_discount_percent=40)
        assert compute_breakdown(intent).delivery_fee == 59

    def test_oto_excluded_from_threshold(self):
        intent = _intent(oto=OtoSelection(offer_id="offer2", price=Decimal("940")))
        breakdown = compute_breakdown(intent)
        assert breakdown.delivery_fee == 59
        assert breakdown.total == 265 + 940 + 59

    def test_oto_inclusive_policy_counts_oto(self):
        intent = _intent(oto=OtoSelection(offer_id="offer2", price=Decimal("940")))
        assert compute_breakdown(intent, OTO_INCLUSIVE_DELIVERY_PRICING).delivery_fee == 29


class TestAddOns:
    @pytest.mark.parametrize("size", list(ProductSize))
    @pytest.mark.parametrize("quantity", [1, 2, 5])
    def test_irresistible_offer_adds_flat_amounts(self, size, quantity):
        without = compute_breakdown(_intent(size=size, quantity=quantity, bundle=True))
        with_offer = compute_breakdown(
            _intent(size=size, quantity=quantity, bundle=True, irresistible_offer_accepted=True)
        )
        fee_change = with_offer.delivery_fee - without.delivery_fee
        assert with_offer.total - without.total == 235 + fee_change
        assert with_offer.total_savings - without.total_savings == 90
        assert with_offer.add_on_price - without.add_on_price == 235

    def test_oto_price_is_never_discounted(self):
        oto = OtoSelection(offer_id="offer1", price=Decimal("245"))
        plain = compute_breakdown(_intent(quantity=2, bundle=True))
        with_oto = compute_breakdown(_intent(quantity=2, bundle=True, oto=oto))
        assert with_oto.discount_total == plain.discount_total
        assert with_oto.total - plain.total == 245
        assert with_oto.add_on_price == 245


class TestWorkedExamples:
    def test_two_50ml_with_email_discount(self):
        breakdown = compute_breakdown(_intent(size=ProductSize.ML_50, quantity=2, email_discount_eligible=True))
        assert breakdown.special_price == 530
        assert breakdown.discount_total == 53
        assert breakdown.delivery_fee == 59
        assert breakdown.total == 536
        assert breakdown.total_savings == 120 + 53

    def test_one_100ml_with_irresistible_offer(self):
        breakdown = compute_breakdown(
            _intent(size=ProductSize.ML_100, quantity=1, irresistible_offer_accepted=True)
        )
        assert breakdown.special_price == 530
        assert breakdown.delivery_fee == 29
        assert breakdown.total == 794
        assert breakdown.total_savings == 210


class TestPolicyLookup:
    def test_known_name(self):
        assert pricing_policy("additive_discounts") is ADDITIVE_DISCOUNT_PRICING

    def test_unknown_name_uses_canonical(self):
        assert pricing_policy("black-friday") is CANONICAL_PRICING


class TestMinorUnits:
    def test_whole_rand(self):
        assert to_minor_units(Decimal("536")) == 53600

    def test_rounds_half_up(self):
        assert to_minor_units(Decimal("39.755")) == 3976
        assert to_minor_units(Decimal("0.004")) == 0


class TestLineItem:
    def test_single_size(self):
        assert line_item_description(_intent(size=ProductSize.ML_100)) == "Eubiosis 100ml"

    def test_bundle_with_extras(self):
        intent = _intent(
            quantity=3,
            bundle=True,
            oto=OtoSelection(offer_id="offer1", price=Decimal("245")),
            irresistible_offer_accepted=True,
        )
        assert line_item_description(intent) == "3-Bottle Bundle + OTO offer1 + Extra 50ml Bottle"
