# africa_payments/settings.py
from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    # -----------------------
    # Payments (mode switch)
    # -----------------------
    PAYMENTS_MODE: Literal["test", "live"] = "test"
    PAYMENTS_STRICT_STARTUP_VALIDATION: bool = False
    # ordered: the orchestrator tries providers in this order
    PAYMENTS_ENABLED_PROVIDERS: str = "PAYDUNYA"

    PAYMENTS_HTTP_TIMEOUT_S: float = Field(default=20.0, gt=0)

    # -----------------------
    # PAYDUNYA
    # -----------------------
    PAYDUNYA_MASTER_KEY: str = ""
    PAYDUNYA_PRIVATE_KEY: str = ""
    PAYDUNYA_PUBLIC_KEY: str = ""
    PAYDUNYA_TOKEN: str = ""
    PAYDUNYA_STORE_NAME: str = ""
    PAYDUNYA_PHONE_REGION: str = "SN"

    # -----------------------
    # TAARIH
    # -----------------------
    TAARIH_PHONE_NUMBER: str = ""
    TAARIH_PASSWORD: str = ""
    TAARIH_VISITOR_ID: str = ""
    TAARIH_CALLING_CODE: str = "+221"
    TAARIH_BANK_ACCOUNT_ID: str = ""
    TAARIH_PHONE_REGION: str = "SN"
    TAARIH_POLL_INTERVAL_MS: int = Field(default=3000, ge=0)
    TAARIH_POLL_MAX_ATTEMPTS: int = Field(default=4, ge=1)

    # -----------------------
    # STRIPE
    # -----------------------
    STRIPE_SECRET_KEY: str = ""
    STRIPE_WEBHOOK_SECRET: str = ""
    STRIPE_WEBHOOK_URL: str = ""

    # -----------------------
    # BOGUS (test double)
    # -----------------------
    BOGUS_INSTANT_EVENTS: bool = False


settings = Settings()
