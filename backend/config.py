from __future__ import annotations
import os
from functools import lru_cache
from typing import List
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
    DATABASE_NAME: str = os.getenv("DATABASE_NAME", "eubiosis")
    ORDERS_COLLECTION: str = "orders"

    # Named entries in pricing.PRICING_POLICIES / checkout.VALIDATION_POLICIES
    PRICING_POLICY: str = "canonical"
    VALIDATION_POLICY: str = "canonical"

    # Card payments are switched off for these regions; customers are asked
    # to speak to a representative instead.
    RESTRICTED_PROVINCES: List[str] = [
        "Western Cape",
        "Eastern Cape",
        "Northern Cape",
        "KwaZulu-Natal",
    ]
    EFT_INSTRUCTIONS: str = (
        "Pay by EFT and email your proof of payment to orders@eubiosis.pro "
        "using your order number as the reference."
    )
    REPRESENTATIVE_INSTRUCTIONS: str = (
        "Online card payments are not available in your province. "
        "A representative will contact you to complete the order, "
        "or WhatsApp us on +27 82 000 0000."
    )

    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = ""
    PORT: int = 8000


@lru_cache
def get_settings() -> Settings:
    return Settings()
