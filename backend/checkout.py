"""Three-step checkout: Product, Details, Payment.

A CheckoutSession belongs to one customer and is driven by the storefront.
Forward moves are gated on the collected data; a refused move leaves the
session untouched and reports every reason it was refused.
"""
from __future__ import annotations
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Optional, Union

from pydantic import ValidationError as SchemaError

from errors import FieldFailure, PersistenceError, ValidationError
from logconfig import get_logger
from orders import OrderSubmissionService
from pricing import CANONICAL_PRICING, PricingPolicy, compute_breakdown, line_item_description
from routing import ChannelDecision, PaymentChannelRouter
from schemas import CustomerProfile, OrderIntent, OrderRecord, PaymentMethod, PricingBreakdown

logger = get_logger(__name__)


class Step(IntEnum):
    PRODUCT = 1
    DETAILS = 2
    PAYMENT = 3


FIELD_LABELS = {
    "first_name": "First name",
    "last_name": "Last name",
    "email": "Email",
    "phone": "Phone number",
    "address": "Address",
    "city": "City",
    "postal_code": "Postal code",
    "province": "Province",
    "country": "Country",
}


@dataclass(frozen=True)
class ValidationPolicy:
    name: str
    required_fields: tuple[str, ...]
    require_email_confirmation: bool = True
    require_province_at_submit: bool = True


CANONICAL_VALIDATION = ValidationPolicy(
    name="canonical",
    required_fields=("first_name", "email", "phone", "address", "city", "postal_code"),
)
# Older storefronts refused to leave the details step until every box was filled.
ALL_FIELDS_VALIDATION = ValidationPolicy(
    name="all_fields",
    required_fields=tuple(FIELD_LABELS),
    require_email_confirmation=False,
)

VALIDATION_POLICIES: dict[str, ValidationPolicy] = {
    p.name: p for p in (CANONICAL_VALIDATION, ALL_FIELDS_VALIDATION)
}


def validation_policy(name: str) -> ValidationPolicy:
    policy = VALIDATION_POLICIES.get(name)
    if policy is None:
        logger.warning("Unknown validation policy, using canonical", policy=name)
        return CANONICAL_VALIDATION
    return policy


# camelCase names from the storefront mapped to profile attributes
_PROFILE_FIELDS = {info.alias: name for name, info in CustomerProfile.model_fields.items() if info.alias}


def _blank(value: Optional[str]) -> bool:
    return not (value or "").strip()


class CheckoutSession:
    def __init__(
        self,
        intent: OrderIntent,
        router: PaymentChannelRouter,
        pricing_policy: PricingPolicy = CANONICAL_PRICING,
        validation_policy: ValidationPolicy = CANONICAL_VALIDATION,
        customer: Optional[CustomerProfile] = None,
    ):
        self.intent = intent
        self.router = router
        self.pricing_policy = pricing_policy
        self.validation_policy = validation_policy
        self.customer = customer or CustomerProfile()
        self.payment_method = PaymentMethod.CARD
        # The product was chosen on the funnel pages before checkout opened.
        self.current_step = Step.DETAILS
        self.last_record: Optional[OrderRecord] = None

    # Data collection

    def update_customer(self, **fields: Any) -> Optional[ValidationError]:
        """Merge customer details, by field name or camelCase alias.

        Unknown keys and values of the wrong type are reported and nothing is
        applied.
        """
        updates = {_PROFILE_FIELDS.get(key, key): value for key, value in fields.items()}
        failures = [
            FieldFailure(key, "unknown_field", f"{key} is not a customer detail")
            for key in updates
            if key not in CustomerProfile.model_fields
        ]
        if failures:
            return ValidationError(tuple(failures))
        try:
            self.customer = CustomerProfile.model_validate({**self.customer.model_dump(), **updates})
        except SchemaError as exc:
            return ValidationError(
                tuple(
                    FieldFailure(_PROFILE_FIELDS.get(str(err["loc"][0]), str(err["loc"][0])), "invalid", err["msg"])
                    for err in exc.errors()
                )
            )
        return None

    def confirm_email(self, value: str) -> Optional[ValidationError]:
        return self.update_customer(email_confirmation=value)

    def select_payment_method(self, method: PaymentMethod) -> ChannelDecision:
        self.payment_method = method
        return self.payment_decision()

    def set_irresistible_offer(self, accepted: bool) -> Optional[ValidationError]:
        failures = []
        if self.current_step != Step.PAYMENT:
            failures.append(
                FieldFailure("irresistible_offer", "wrong_step", "The extra bottle is offered on the payment step")
            )
        if accepted and self.intent.took_big_offer:
            failures.append(
                FieldFailure("irresistible_offer", "not_offered", "The extra bottle is not offered after the big offer")
            )
        if failures:
            return ValidationError(tuple(failures))
        self.intent = self.intent.model_copy(update={"irresistible_offer_accepted": accepted})
        return None

    # Views for the storefront

    def breakdown(self) -> PricingBreakdown:
        return compute_breakdown(self.intent, self.pricing_policy)

    def line_item(self) -> str:
        return line_item_description(self.intent)

    def available_channels(self, province: Optional[str] = None) -> list[ChannelDecision]:
        return self.router.available_channels(self.customer.province if province is None else province)

    def payment_decision(self) -> ChannelDecision:
        return self.router.route(self.customer.province, self.payment_method)

    # Validation

    def _details_failures(self) -> list[FieldFailure]:
        failures = []
        for field in self.validation_policy.required_fields:
            if _blank(getattr(self.customer, field)):
                failures.append(FieldFailure(field, "required", f"{FIELD_LABELS[field]} is required"))
        return failures

    def _payment_failures(self) -> list[FieldFailure]:
        failures = self._details_failures()
        decision = self.payment_decision()
        province = self.customer.province

        province_needed = self.validation_policy.require_province_at_submit or decision.requires_province
        if province_needed and _blank(province) and "province" not in [f.field for f in failures]:
            failures.append(FieldFailure("province", "required", "Please select your province"))

        if decision.channel not in self.router.allowed_channels(province):
            failures.append(
                FieldFailure(
                    "payment_method",
                    "channel_unavailable",
                    f"{decision.channel.value} is not available in {province or 'your province'}",
                )
            )

        if self.validation_policy.require_email_confirmation:
            confirmation = self.customer.email_confirmation
            if _blank(confirmation):
                failures.append(FieldFailure("email_confirmation", "required", "Please confirm your email"))
            elif confirmation != self.customer.email:
                failures.append(FieldFailure("email_confirmation", "mismatch", "Email addresses do not match"))
        return failures

    def step_validity(self, step: Step) -> Optional[ValidationError]:
        if step == Step.DETAILS:
            failures = self._details_failures()
        elif step == Step.PAYMENT:
            failures = self._payment_failures()
        else:
            failures = []
        return ValidationError(tuple(failures)) if failures else None

    # Transitions

    def advance(self) -> Optional[ValidationError]:
        if self.current_step == Step.PAYMENT:
            return ValidationError(
                (FieldFailure("step", "final_step", "Payment is the last step; submit the order instead"),)
            )
        error = self.step_validity(self.current_step)
        if error is not None:
            logger.debug("Step blocked", step=self.current_step.name, fields=error.fields)
            return error
        self.current_step = Step(self.current_step + 1)
        logger.debug("Step advanced", step=self.current_step.name)
        return None

    def back(self) -> bool:
        if self.current_step == Step.PRODUCT:
            return False
        self.current_step = Step(self.current_step - 1)
        return True

    async def submit(
        self, service: OrderSubmissionService
    ) -> Union[OrderRecord, ValidationError, PersistenceError]:
        failures = []
        if self.current_step != Step.PAYMENT:
            failures.append(FieldFailure("step", "wrong_step", "Orders are submitted from the payment step"))
        failures.extend(self._payment_failures())
        if failures:
            logger.info("Order submission refused", fields=[f.field for f in failures])
            return ValidationError(tuple(failures))

        result = await service.submit(self.intent, self.customer, self.payment_decision())
        if isinstance(result, OrderRecord):
            self.last_record = result
        return result
