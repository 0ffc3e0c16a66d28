from __future__ import annotations
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Upper bounds for a single checkout.
MAX_QUANTITY = 99
MAX_OTO_PRICE = Decimal("100000")

# Eubiosis funnel schemas. OrderRecord is what lands in the orders collection;
# everything else lives only for the length of a checkout session.


class ProductSize(str, Enum):
    ML_50 = "50ml"
    ML_100 = "100ml"


class PaymentMethod(str, Enum):
    CARD = "card"
    EFT = "eft"


class PaymentChannel(str, Enum):
    CARD_GATEWAY = "card_gateway"
    MANUAL_EFT = "manual_eft"
    REPRESENTATIVE_CONTACT = "representative_contact"


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class OtoSelection(BaseModel):
    model_config = ConfigDict(frozen=True)

    offer_id: str
    price: Decimal = Field(ge=0, le=MAX_OTO_PRICE)


class OrderIntent(BaseModel):
    """What the customer asked for on the way into checkout."""

    model_config = ConfigDict(frozen=True)

    size: ProductSize = ProductSize.ML_50
    quantity: int = Field(ge=1, le=MAX_QUANTITY, default=1)
    bundle: bool = False
    email_discount_eligible: bool = False
    upsell_discount_percent: int = Field(ge=0, le=100, default=0)
    took_big_offer: bool = False
    oto: Optional[OtoSelection] = None
    irresistible_offer_accepted: bool = False


class CustomerProfile(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    first_name: str = ""
    last_name: str = ""
    email: str = ""
    email_confirmation: Optional[str] = None
    phone: str = ""
    address: str = ""
    city: str = ""
    postal_code: str = ""
    province: str = ""
    country: str = "South Africa"


class PricingBreakdown(BaseModel):
    """Derived totals in major currency units (rand)."""

    model_config = ConfigDict(frozen=True)

    list_price: Decimal
    special_price: Decimal
    discount_total: Decimal
    add_on_price: Decimal
    delivery_fee: Decimal
    total: Decimal
    total_savings: Decimal


class OrderRecord(BaseModel):
    """Persisted order snapshot. Monetary fields are integer cents."""

    model_config = ConfigDict(frozen=True)

    id: str
    created_at: datetime

    first_name: str
    last_name: str
    email: str
    email_confirmation: Optional[str] = None
    phone: str
    address: str
    city: str
    postal_code: str
    province: str
    country: str

    product_size: ProductSize
    quantity: int = Field(ge=1)
    is_bundle: bool
    email_discount: bool
    upsell_discount: int = Field(ge=0, le=100)
    took_big_offer: bool
    oto_offer: Optional[str] = None
    oto_price: int = Field(ge=0, default=0)
    irresistible_offer: bool
    line_item: str
    payment_channel: PaymentChannel

    list_price: int
    subtotal: int
    discount_amount: int
    add_on_price: int
    delivery_fee: int
    total_amount: int
    total_savings: int

    status: OrderStatus = OrderStatus.PENDING
    mail_sent: bool = False


# HTTP payloads


class CheckoutRequest(BaseModel):
    """A finalized checkout as posted by the storefront."""

    params: dict[str, str] = Field(default_factory=dict)
    customer: CustomerProfile
    payment_method: PaymentMethod = PaymentMethod.CARD
    irresistible_offer_accepted: bool = False


class QuoteOut(BaseModel):
    intent: OrderIntent
    breakdown: PricingBreakdown
    line_item: str
