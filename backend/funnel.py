"""Turns the upsell page's query string into an OrderIntent.

Resolution never fails: anything missing or malformed falls back to the
default for that key.
"""
from __future__ import annotations
from decimal import Decimal, InvalidOperation
from typing import Mapping, Optional

from logconfig import get_logger
from schemas import MAX_OTO_PRICE, MAX_QUANTITY, OrderIntent, OtoSelection, ProductSize

logger = get_logger(__name__)

DEFAULT_SIZE = ProductSize.ML_50
DEFAULT_QUANTITY = 1
DEFAULT_UPSELL_DISCOUNT = 0


def _flag(params: Mapping[str, str], key: str) -> bool:
    return params.get(key) == "true"


def _size(raw: Optional[str]) -> ProductSize:
    try:
        return ProductSize(raw)
    except ValueError:
        if raw is not None:
            logger.debug("Funnel parameter fell back to default", key="size", value=raw)
        return DEFAULT_SIZE


def _int_in_range(raw: Optional[str], key: str, default: int, low: int, high: int) -> int:
    if raw is None:
        return default
    text = raw.strip()
    # Length check first: int() refuses very long digit strings.
    if not text.isdecimal() or len(text) > len(str(high)):
        logger.debug("Funnel parameter fell back to default", key=key, value=raw)
        return default
    value = int(text)
    if value < low or value > high:
        logger.debug("Funnel parameter fell back to default", key=key, value=raw)
        return default
    return value


def _oto(params: Mapping[str, str]) -> Optional[OtoSelection]:
    offer_id = (params.get("oto") or "").strip()
    raw_price = params.get("otoPrice")
    if not offer_id or raw_price is None:
        return None
    try:
        price = Decimal(raw_price.strip())
    except InvalidOperation:
        logger.debug("Ignoring OTO with unreadable price", oto=offer_id, value=raw_price)
        return None
    if not price.is_finite() or price < 0 or price > MAX_OTO_PRICE:
        logger.debug("Ignoring OTO with unreadable price", oto=offer_id, value=raw_price)
        return None
    return OtoSelection(offer_id=offer_id, price=price)


def resolve_order_intent(params: Mapping[str, str]) -> OrderIntent:
    return OrderIntent(
        size=_size(params.get("size")),
        quantity=_int_in_range(params.get("quantity"), "quantity", DEFAULT_QUANTITY, low=1, high=MAX_QUANTITY),
        bundle=_flag(params, "bundle"),
        email_discount_eligible=_flag(params, "email"),
        upsell_discount_percent=_int_in_range(
            params.get("upsellDiscount"), "upsellDiscount", DEFAULT_UPSELL_DISCOUNT, low=0, high=100
        ),
        took_big_offer=_flag(params, "tookBigOffer"),
        oto=_oto(params),
    )


def funnel_query(intent: OrderIntent) -> dict[str, str]:
    """Inverse of resolve_order_intent, for building the next page's URL."""
    query = {
        "bundle": "true" if intent.bundle else "false",
        "email": "true" if intent.email_discount_eligible else "false",
        "size": intent.size.value,
        "quantity": str(intent.quantity),
        "tookBigOffer": "true" if intent.took_big_offer else "false",
    }
    if intent.upsell_discount_percent:
        query["upsellDiscount"] = str(intent.upsell_discount_percent)
    if intent.oto is not None:
        query["oto"] = intent.oto.offer_id
        query["otoPrice"] = str(intent.oto.price)
    return query
