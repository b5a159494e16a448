# africa_payments/providers/base.py
from __future__ import annotations

from typing import Any, Literal, Optional, Protocol, Union, runtime_checkable

from africa_payments.events import EventSink, PaymentEvent
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

# "raw": bytes/str, verified over the exact bytes received (HMAC-style signatures)
# "parsed": a decoded dict carrying an embedded hash or identifiers
WebhookBodyFormat = Literal["raw", "parsed"]

WebhookBody = Union[bytes, str, dict[str, Any]]


@runtime_checkable
class PaymentProvider(Protocol):
    """
    Capability set every payment backend implements.

    A provider that cannot handle a method or currency raises
    PaymentError(type=UNSUPPORTED_PAYMENT_METHOD); that is the only failure the
    orchestrator falls back on. handle_webhook() returns None for payloads that
    cannot be verified or parsed and never raises for malformed input.
    """

    name: str
    webhook_body_format: WebhookBodyFormat

    def attach_event_sink(self, sink: Optional[EventSink]) -> None: ...

    async def checkout_mobile_money(self, options: MobileMoneyCheckoutOptions) -> CheckoutResult: ...

    async def checkout_credit_card(self, options: CreditCardCheckoutOptions) -> CheckoutResult: ...

    async def checkout_redirect(self, options: RedirectCheckoutOptions) -> CheckoutResult: ...

    async def payout_mobile_money(self, options: MobileMoneyPayoutOptions) -> PayoutResult: ...

    async def refund(self, options: RefundOptions) -> RefundResult: ...

    async def handle_webhook(
        self,
        raw_body: WebhookBody,
        options: Optional[HandleWebhookOptions] = None,
    ) -> Optional[PaymentEvent]: ...

    async def aclose(self) -> None: ...
