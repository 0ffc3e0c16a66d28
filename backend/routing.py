from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, Optional

from config import Settings
from schemas import PaymentChannel, PaymentMethod

DEFAULT_CHANNELS = frozenset({PaymentChannel.CARD_GATEWAY, PaymentChannel.MANUAL_EFT})
RESTRICTED_CHANNELS = frozenset({PaymentChannel.REPRESENTATIVE_CONTACT, PaymentChannel.MANUAL_EFT})


@dataclass(frozen=True)
class ChannelDecision:
    channel: PaymentChannel
    requires_province: bool
    contact_instructions: Optional[str] = None
    automated_payment: bool = True


def _normalise(province: Optional[str]) -> str:
    return (province or "").strip().casefold()


class PaymentChannelRouter:
    """Decides which payment channel a customer may use, by province.

    Holds configuration only; every call is independent.
    """

    def __init__(self, restricted_provinces: Iterable[str], eft_instructions: str, representative_instructions: str):
        self._table: dict[str, frozenset[PaymentChannel]] = {
            _normalise(p): RESTRICTED_CHANNELS for p in restricted_provinces
        }
        self.eft_instructions = eft_instructions
        self.representative_instructions = representative_instructions

    @classmethod
    def from_settings(cls, settings: Settings) -> "PaymentChannelRouter":
        return cls(
            restricted_provinces=settings.RESTRICTED_PROVINCES,
            eft_instructions=settings.EFT_INSTRUCTIONS,
            representative_instructions=settings.REPRESENTATIVE_INSTRUCTIONS,
        )

    def allowed_channels(self, province: Optional[str]) -> frozenset[PaymentChannel]:
        return self._table.get(_normalise(province), DEFAULT_CHANNELS)

    def is_restricted(self, province: Optional[str]) -> bool:
        return PaymentChannel.CARD_GATEWAY not in self.allowed_channels(province)

    def route(self, province: Optional[str], method: PaymentMethod) -> ChannelDecision:
        if method is PaymentMethod.EFT:
            return ChannelDecision(
                channel=PaymentChannel.MANUAL_EFT,
                requires_province=False,
                contact_instructions=self.eft_instructions,
                automated_payment=False,
            )
        if self.is_restricted(province):
            return ChannelDecision(
                channel=PaymentChannel.REPRESENTATIVE_CONTACT,
                requires_province=True,
                contact_instructions=self.representative_instructions,
                automated_payment=False,
            )
        return ChannelDecision(channel=PaymentChannel.CARD_GATEWAY, requires_province=True)

    def available_channels(self, province: Optional[str]) -> list[ChannelDecision]:
        # Card first, EFT second: the order the storefront shows them in.
        return [self.route(province, method) for method in (PaymentMethod.CARD, PaymentMethod.EFT)]
