# africa_payments/orchestrator.py
from __future__ import annotations

import logging
from typing import Awaitable, Callable, Optional, Sequence, TypeVar

from africa_payments.errors import PaymentError, PaymentErrorType
from africa_payments.events import EventEmitter, PaymentEvent
from africa_payments.models import (
    CheckoutResult,
    CreditCardCheckoutOptions,
    HandleWebhookOptions,
    MobileMoneyCheckoutOptions,
    MobileMoneyPayoutOptions,
    PayoutResult,
    RedirectCheckoutOptions,
    RefundOptions,
    RefundResult,
)
from africa_payments.providers.base import PaymentProvider, WebhookBody
from africa_payments.settings import Settings

logger = logging.getLogger("africa_payments.orchestrator")

T = TypeVar("T")

NO_PROVIDER_MESSAGE = "No payment provider could process the request"


class AfricaPaymentsProvider(EventEmitter):
    """
    Facade over an ordered list of providers.

    Checkouts and payouts walk the list and move on only when a provider
    raises UNSUPPORTED_PAYMENT_METHOD; any other error stops the walk.
    Refunds and webhooks go to exactly one provider, picked by name.

    The orchestrator is also the event sink of every provider it wraps, so
    listeners registered with on()/on_all() see events from all of them.
    """

    def __init__(self, providers: Sequence[PaymentProvider]):
        super().__init__()
        if not providers:
            raise ValueError("AfricaPaymentsProvider needs at least one payment provider")

        by_name: dict[str, PaymentProvider] = {}
        for provider in providers:
            if provider.name in by_name:
                raise ValueError(f"Duplicate payment provider name: {provider.name}")
            by_name[provider.name] = provider

        self._providers = tuple(providers)
        self._by_name = by_name
        for provider in self._providers:
            provider.attach_event_sink(self)

    @classmethod
    def from_settings(cls, s: Optional[Settings] = None) -> AfricaPaymentsProvider:
        from africa_payments.providers.factory import build_enabled_providers

        return cls(build_enabled_providers(s))

    @property
    def providers(self) -> tuple[PaymentProvider, ...]:
        return self._providers

    def get_provider(self, name: Optional[str] = None) -> PaymentProvider:
        if name is None:
            return self._providers[0]
        if name in self._by_name:
            return self._by_name[name]
        raise PaymentError(
            f"Unknown payment provider: {name}",
            PaymentErrorType.UNKNOWN_ERROR,
            details={"available": list(self._by_name)},
        )

    async def try_each_provider(self, operation: Callable[[PaymentProvider], Awaitable[T]]) -> T:
        reasons: dict[str, str] = {}
        for provider in self._providers:
            try:
                return await operation(provider)
            except PaymentError as exc:
                if not exc.is_unsupported:
                    logger.warning(
                        "payment provider failed provider=%s type=%s message=%s",
                        provider.name,
                        exc.type.value,
                        exc.message,
                    )
                    raise
                logger.info("payment provider skipped provider=%s reason=%s", provider.name, exc.message)
                reasons[provider.name] = exc.message

        raise PaymentError(
            NO_PROVIDER_MESSAGE,
            PaymentErrorType.UNSUPPORTED_PAYMENT_METHOD,
            details=reasons,
        )

    async def checkout_mobile_money(self, options: MobileMoneyCheckoutOptions) -> CheckoutResult:
        return await self.try_each_provider(lambda p: p.checkout_mobile_money(options))

    async def checkout_credit_card(self, options: CreditCardCheckoutOptions) -> CheckoutResult:
        return await self.try_each_provider(lambda p: p.checkout_credit_card(options))

    async def checkout_redirect(self, options: RedirectCheckoutOptions) -> CheckoutResult:
        return await self.try_each_provider(lambda p: p.checkout_redirect(options))

    async def payout_mobile_money(self, options: MobileMoneyPayoutOptions) -> PayoutResult:
        return await self.try_each_provider(lambda p: p.payout_mobile_money(options))

    async def refund(self, options: RefundOptions) -> RefundResult:
        provider = self.get_provider(options.provider_name)
        return await provider.refund(options)

    async def handle_webhook(
        self,
        raw_body: WebhookBody,
        options: Optional[HandleWebhookOptions] = None,
    ) -> Optional[PaymentEvent]:
        provider = self.get_provider(options.provider_name if options else None)
        return await provider.handle_webhook(raw_body, options)

    async def aclose(self) -> None:
        for provider in self._providers:
            await provider.aclose()
