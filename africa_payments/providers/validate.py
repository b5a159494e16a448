# africa_payments/providers/validate.py
from __future__ import annotations

import logging
from typing import Iterable, Optional

from africa_payments.providers import ProviderName
from africa_payments.providers.config import (
    enabled_providers,
    is_strict_startup_validation,
    payments_mode,
)
from africa_payments.settings import Settings, settings as default_settings

logger = logging.getLogger("africa_payments")

ALLOWED_PROVIDERS = {p.value for p in ProviderName}

_REQUIRED_SETTINGS = {
    ProviderName.PAYDUNYA.value: (
        "PAYDUNYA_MASTER_KEY",
        "PAYDUNYA_PRIVATE_KEY",
        "PAYDUNYA_PUBLIC_KEY",
        "PAYDUNYA_TOKEN",
    ),
    ProviderName.TAARIH.value: (
        "TAARIH_PHONE_NUMBER",
        "TAARIH_PASSWORD",
        "TAARIH_VISITOR_ID",
        "TAARIH_CALLING_CODE",
    ),
    ProviderName.STRIPE.value: ("STRIPE_SECRET_KEY",),
    ProviderName.BOGUS.value: (),
}


def _sorted_csv(items: Iterable[str]) -> str:
    return ", ".join(sorted(set(items)))


def _require(s: Settings, missing: list[str], *names: str) -> None:
    for n in names:
        if not str(getattr(s, n, "") or "").strip():
            missing.append(n)


def validate_payments_startup(s: Optional[Settings] = None) -> None:
    s = s if s is not None else default_settings
    mode = payments_mode(s)
    strict = is_strict_startup_validation(s)
    enabled = enabled_providers(s)

    logger.info(
        "payments startup check: mode=%s strict=%s enabled_providers=%s",
        mode,
        strict,
        ",".join(enabled) if enabled else "<none>",
    )

    if mode not in ("test", "live"):
        raise RuntimeError(
            "Payments startup validation failed. "
            f"Invalid PAYMENTS_MODE={mode!r}. Allowed: test, live"
        )

    if not enabled:
        raise RuntimeError("Payments startup validation failed. PAYMENTS_ENABLED_PROVIDERS is empty.")

    unknown = sorted(set(enabled) - ALLOWED_PROVIDERS)
    if unknown:
        raise RuntimeError(
            "Payments startup validation failed. Unknown providers in PAYMENTS_ENABLED_PROVIDERS: "
            f"{_sorted_csv(unknown)}. Allowed: {_sorted_csv(ALLOWED_PROVIDERS)}"
        )

    if mode == "test" and not strict:
        return

    if mode == "live" and ProviderName.BOGUS.value in enabled:
        raise RuntimeError("Payments startup validation failed. BOGUS cannot be enabled in live mode.")

    missing: list[str] = []
    for p in enabled:
        _require(s, missing, *_REQUIRED_SETTINGS[p])

    if missing:
        raise RuntimeError(
            "Payments startup validation failed. "
            f"mode={mode} enabled_providers={_sorted_csv(enabled)} "
            "Missing required env vars: " + _sorted_csv(missing)
        )
