from __future__ import annotations

from enum import Enum


class ProviderName(str, Enum):
    PAYDUNYA = "PAYDUNYA"
    TAARIH = "TAARIH"
    STRIPE = "STRIPE"
    BOGUS = "BOGUS"


def normalize_provider_name(value: str | None) -> str:
    return (value or "").strip().upper().replace("-", "_").replace(" ", "_")
