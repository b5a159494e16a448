# africa_payments/providers/config.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional

from africa_payments.providers import normalize_provider_name
from africa_payments.settings import Settings, settings as default_settings

Mode = Literal["test", "live"]


def _s(s: Optional[Settings]) -> Settings:
    # always reflect .env via pydantic settings unless a caller passes its own
    return s if s is not None else default_settings


def payments_mode(s: Optional[Settings] = None) -> str:
    return (_s(s).PAYMENTS_MODE or "test").strip().lower()


def is_strict_startup_validation(s: Optional[Settings] = None) -> bool:
    return bool(_s(s).PAYMENTS_STRICT_STARTUP_VALIDATION)


def http_timeout_s(s: Optional[Settings] = None) -> float:
    return float(_s(s).PAYMENTS_HTTP_TIMEOUT_S)


def enabled_providers(s: Optional[Settings] = None) -> list[str]:
    """Ordered, de-duplicated provider names from PAYMENTS_ENABLED_PROVIDERS."""
    raw = _s(s).PAYMENTS_ENABLED_PROVIDERS or ""
    out: list[str] = []
    for p in raw.split(","):
        name = normalize_provider_name(p)
        if name and name not in out:
            out.append(name)
    return out


@dataclass(frozen=True)
class PaydunyaConfig:
    master_key: str
    private_key: str
    public_key: str
    token: str
    mode: Mode = "test"
    store_name: str = ""
    phone_region: str = "SN"


@dataclass(frozen=True)
class TaarihConfig:
    phone_number: str
    password: str
    visitor_id: str
    calling_code: str = "+221"
    mode: Mode = "test"
    bank_account_id: Optional[str] = None
    phone_region: str = "SN"
    poll_interval_ms: int = 3000
    poll_max_attempts: int = 4

    def __post_init__(self) -> None:
        if self.poll_max_attempts < 1:
            raise ValueError("poll_max_attempts must be >= 1")
        if self.poll_interval_ms < 0:
            raise ValueError("poll_interval_ms must be >= 0")


@dataclass(frozen=True)
class StripeConfig:
    secret_key: str
    webhook_secret: Optional[str] = None
    webhook_url: Optional[str] = None


@dataclass(frozen=True)
class BogusConfig:
    instant_events: bool = False


def paydunya_config(s: Optional[Settings] = None) -> PaydunyaConfig:
    s = _s(s)
    return PaydunyaConfig(
        master_key=(s.PAYDUNYA_MASTER_KEY or "").strip(),
        private_key=(s.PAYDUNYA_PRIVATE_KEY or "").strip(),
        public_key=(s.PAYDUNYA_PUBLIC_KEY or "").strip(),
        token=(s.PAYDUNYA_TOKEN or "").strip(),
        mode="live" if payments_mode(s) == "live" else "test",
        store_name=(s.PAYDUNYA_STORE_NAME or "").strip(),
        phone_region=(s.PAYDUNYA_PHONE_REGION or "SN").strip().upper(),
    )


def taarih_config(s: Optional[Settings] = None) -> TaarihConfig:
    s = _s(s)
    return TaarihConfig(
        phone_number=(s.TAARIH_PHONE_NUMBER or "").strip(),
        password=s.TAARIH_PASSWORD or "",
        visitor_id=(s.TAARIH_VISITOR_ID or "").strip(),
        calling_code=(s.TAARIH_CALLING_CODE or "+221").strip(),
        mode="live" if payments_mode(s) == "live" else "test",
        bank_account_id=(s.TAARIH_BANK_ACCOUNT_ID or "").strip() or None,
        phone_region=(s.TAARIH_PHONE_REGION or "SN").strip().upper(),
        poll_interval_ms=int(s.TAARIH_POLL_INTERVAL_MS),
        poll_max_attempts=int(s.TAARIH_POLL_MAX_ATTEMPTS),
    )


def stripe_config(s: Optional[Settings] = None) -> StripeConfig:
    s = _s(s)
    return StripeConfig(
        secret_key=(s.STRIPE_SECRET_KEY or "").strip(),
        webhook_secret=(s.STRIPE_WEBHOOK_SECRET or "").strip() or None,
        webhook_url=(s.STRIPE_WEBHOOK_URL or "").strip() or None,
    )


def bogus_config(s: Optional[Settings] = None) -> BogusConfig:
    return BogusConfig(instant_events=bool(_s(s).BOGUS_INSTANT_EVENTS))
