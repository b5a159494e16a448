# africa_payments/providers/factory.py
from __future__ import annotations

from typing import Any, Optional

from africa_payments.providers import ProviderName, normalize_provider_name
from africa_payments.providers.config import enabled_providers, http_timeout_s
from africa_payments.settings import Settings


def build_provider(name: str, s: Optional[Settings] = None):
    key = normalize_provider_name(name)
    if not key:
        return None

    if key == ProviderName.PAYDUNYA.value:
        from africa_payments.providers.config import paydunya_config
        from africa_payments.providers.paydunya import PaydunyaProvider
        return PaydunyaProvider(paydunya_config(s), timeout_s=http_timeout_s(s))

    if key == ProviderName.TAARIH.value:
        from africa_payments.providers.config import taarih_config
        from africa_payments.providers.taarih import TaarihProvider
        return TaarihProvider(taarih_config(s), timeout_s=http_timeout_s(s))

    if key == ProviderName.STRIPE.value:
        from africa_payments.providers.config import stripe_config
        from africa_payments.providers.stripe_checkout import StripeCheckoutProvider
        return StripeCheckoutProvider(stripe_config(s))

    if key == ProviderName.BOGUS.value:
        from africa_payments.providers.bogus import BogusProvider
        from africa_payments.providers.config import bogus_config
        return BogusProvider(bogus_config(s))

    return None


def build_enabled_providers(s: Optional[Settings] = None) -> list[Any]:
    """Fresh instances for PAYMENTS_ENABLED_PROVIDERS, in configured order."""
    providers = []
    for name in enabled_providers(s):
        provider = build_provider(name, s)
        if provider is None:
            raise ValueError(f"Unknown payment provider: {name}")
        providers.append(provider)
    return providers
