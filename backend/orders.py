"""Order submission: price the order server-side and write it once."""
from __future__ import annotations
from typing import Any, Union

from database import OrderStore
from errors import PersistenceError, StorageError
from logconfig import get_logger
from pricing import CANONICAL_PRICING, PricingPolicy, compute_breakdown, line_item_description, to_minor_units
from routing import ChannelDecision
from schemas import CustomerProfile, OrderIntent, OrderRecord, OrderStatus

logger = get_logger(__name__)

# The irresistible offer is always one extra 50ml bottle.
IRRESISTIBLE_EXTRA_UNITS = 1


class OrderSubmissionService:
    def __init__(self, store: OrderStore, pricing_policy: PricingPolicy = CANONICAL_PRICING):
        self.store = store
        self.pricing_policy = pricing_policy

    def build_document(self, intent: OrderIntent, customer: CustomerProfile, decision: ChannelDecision) -> dict[str, Any]:
        """Everything that gets stored, minus the id and timestamps the store assigns."""
        breakdown = compute_breakdown(intent, self.pricing_policy)

        quantity = intent.quantity
        if intent.irresistible_offer_accepted:
            # Counted against the main line; the line item text stays as displayed.
            quantity += IRRESISTIBLE_EXTRA_UNITS

        return {
            **customer.model_dump(),
            "product_size": intent.size.value,
            "quantity": quantity,
            "is_bundle": intent.bundle,
            "email_discount": intent.email_discount_eligible,
            "upsell_discount": intent.upsell_discount_percent,
            "took_big_offer": intent.took_big_offer,
            "oto_offer": intent.oto.offer_id if intent.oto else None,
            "oto_price": to_minor_units(intent.oto.price) if intent.oto else 0,
            "irresistible_offer": intent.irresistible_offer_accepted,
            "line_item": line_item_description(intent),
            "payment_channel": decision.channel.value,
            "list_price": to_minor_units(breakdown.list_price),
            "subtotal": to_minor_units(breakdown.special_price),
            "discount_amount": to_minor_units(breakdown.discount_total),
            "add_on_price": to_minor_units(breakdown.add_on_price),
            "delivery_fee": to_minor_units(breakdown.delivery_fee),
            "total_amount": to_minor_units(breakdown.total),
            "total_savings": to_minor_units(breakdown.total_savings),
            "status": OrderStatus.PENDING.value,
            "mail_sent": False,
        }

    async def submit(
        self, intent: OrderIntent, customer: CustomerProfile, decision: ChannelDecision
    ) -> Union[OrderRecord, PersistenceError]:
        document = self.build_document(intent, customer, decision)
        try:
            saved = await self.store.insert(document)
        except StorageError as exc:
            logger.error("Failed to save order", error=str(exc), total_amount=document["total_amount"])
            return PersistenceError(message=str(exc))

        record = OrderRecord.model_validate(saved)
        logger.info(
            "Order saved",
            order_id=record.id,
            total_amount=record.total_amount,
            payment_channel=record.payment_channel.value,
        )
        return record
