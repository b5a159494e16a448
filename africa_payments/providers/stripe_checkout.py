# africa_payments/providers/stripe_checkout.py
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Mapping, Optional

import stripe

from africa_payments.errors import PaymentError, unsupported
from africa_payments.events import (
    EventSink,
    PaymentCancelledEvent,
    PaymentEvent,
    PaymentFailedEvent,
    PaymentInitiatedEvent,
    PaymentSuccessfulEvent,
    publish,
)
from africa_payments.models import (
    CheckoutResult,
    CreditCardCheckoutOptions,
    Currency,
    HandleWebhookOptions,
    MobileMoneyCheckoutOptions,
    MobileMoneyPayoutOptions,
    PaymentMethod,
    PayoutResult,
    RedirectCheckoutOptions,
    RefundOptions,
    RefundResult,
    TransactionStatus,
)
from africa_payments.providers import ProviderName
from africa_payments.providers.base import WebhookBody, WebhookBodyFormat
from africa_payments.providers.config import StripeConfig

logger = logging.getLogger("africa_payments.stripe")

CHECKOUT_EVENTS = (
    "checkout.session.completed",
    "checkout.session.expired",
    "checkout.session.async_payment_succeeded",
    "checkout.session.async_payment_failed",
)


def _encode_metadata(metadata: Optional[Mapping[str, Any]], transaction_id: str) -> dict[str, str]:
    # Stripe metadata values are strings; everything else is round-tripped as JSON
    out = {str(k): json.dumps(v, default=str) for k, v in (metadata or {}).items()}
    out["transactionId"] = transaction_id
    return out


def _decode_metadata(metadata: Optional[Mapping[str, Any]]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for k, v in (metadata or {}).items():
        try:
            out[k] = json.loads(v)
        except (TypeError, ValueError):
            out[k] = v
    return out


def _currency(value: Any) -> Any:
    try:
        return Currency(str(value or "").upper())
    except ValueError:
        return str(value or "").upper()


class StripeCheckoutProvider:
    """
    Redirect-only provider on top of Stripe Checkout Sessions.

    The SDK is synchronous; every call runs in a worker thread with a per-call
    api_key so several instances can coexist in one process.
    """

    webhook_body_format: WebhookBodyFormat = "raw"

    def __init__(
        self,
        config: StripeConfig,
        *,
        name: str = ProviderName.STRIPE.value,
    ):
        self.config = config
        self.name = name
        self._webhook_secret = config.webhook_secret
        self._sink: Optional[EventSink] = None

    def attach_event_sink(self, sink: Optional[EventSink]) -> None:
        self._sink = sink

    async def aclose(self) -> None:
        return None

    @property
    def webhook_secret(self) -> Optional[str]:
        return self._webhook_secret

    async def ensure_webhook_endpoint(self) -> Optional[str]:
        """Install a webhook endpoint for `webhook_url` unless one already exists."""
        url = self.config.webhook_url
        if not url:
            return self._webhook_secret

        existing = await asyncio.to_thread(stripe.WebhookEndpoint.list, api_key=self.config.secret_key, limit=100)
        for endpoint in existing.get("data") or []:
            if endpoint.get("url") == url:
                logger.info("stripe webhook endpoint already installed url=%s", url)
                return self._webhook_secret

        created = await asyncio.to_thread(
            stripe.WebhookEndpoint.create,
            api_key=self.config.secret_key,
            url=url,
            enabled_events=list(CHECKOUT_EVENTS),
        )
        self._webhook_secret = created.get("secret") or self._webhook_secret
        logger.info("stripe webhook endpoint installed url=%s id=%s", url, created.get("id"))
        return self._webhook_secret

    # -----------------------
    # checkout
    # -----------------------
    async def checkout_mobile_money(self, options: MobileMoneyCheckoutOptions) -> CheckoutResult:
        raise unsupported("Stripe does not support mobile money payments")

    async def checkout_credit_card(self, options: CreditCardCheckoutOptions) -> CheckoutResult:
        raise unsupported("Stripe does not support raw credit card payments. Use redirect checkout instead")

    async def checkout_redirect(self, options: RedirectCheckoutOptions) -> CheckoutResult:
        params: dict[str, Any] = {
            "mode": "payment",
            "line_items": [
                {
                    "price_data": {
                        "currency": options.currency.value.lower(),
                        "product_data": {"name": options.description},
                        "unit_amount": options.amount,
                    },
                    "quantity": 1,
                }
            ],
            "success_url": options.success_redirect_url,
            "cancel_url": options.failure_redirect_url,
            "metadata": _encode_metadata(options.metadata, options.transaction_id),
        }
        if options.customer.email:
            params["customer_email"] = options.customer.email
        if options.payment_method == PaymentMethod.CREDIT_CARD:
            params["payment_method_types"] = ["card"]

        try:
            session = await asyncio.to_thread(
                stripe.checkout.Session.create,
                api_key=self.config.secret_key,
                **params,
            )
        except stripe.StripeError as exc:
            raise PaymentError(f"Stripe error: {exc}", details=getattr(exc, "json_body", None)) from exc

        url = session.get("url")
        if not url:
            raise PaymentError("Stripe did not return a checkout URL")

        logger.info(
            "stripe checkout session created transaction_id=%s session_id=%s",
            options.transaction_id,
            session.get("id"),
        )
        return CheckoutResult(
            transaction_id=options.transaction_id,
            transaction_reference=str(session.get("id")),
            transaction_status=TransactionStatus.PENDING,
            transaction_amount=options.amount,
            transaction_currency=options.currency,
            redirect_url=str(url),
        )

    async def refund(self, options: RefundOptions) -> RefundResult:
        raise unsupported("Stripe refunds are not supported")

    async def payout_mobile_money(self, options: MobileMoneyPayoutOptions) -> PayoutResult:
        raise unsupported("Stripe does not support mobile money payouts")

    # -----------------------
    # webhook
    # -----------------------
    async def handle_webhook(
        self,
        raw_body: WebhookBody,
        options: Optional[HandleWebhookOptions] = None,
    ) -> Optional[PaymentEvent]:
        if isinstance(raw_body, Mapping):
            logger.warning("stripe webhook rejected reason=expected_raw_body")
            return None

        signature = options.header("stripe-signature") if options else None
        if not signature:
            logger.warning("stripe webhook rejected reason=missing_signature")
            return None
        if not self._webhook_secret:
            logger.warning("stripe webhook rejected reason=missing_webhook_secret")
            return None

        try:
            event = stripe.Webhook.construct_event(raw_body, signature, self._webhook_secret)
        except Exception as exc:
            logger.warning("stripe webhook rejected reason=invalid_signature error=%s", exc)
            return None

        event_type = event.get("type")
        if event_type not in CHECKOUT_EVENTS:
            logger.info("stripe webhook ignored event_type=%s", event_type)
            return None

        session = (event.get("data") or {}).get("object") or {}
        raw_metadata = session.get("metadata") or {}
        transaction_id = raw_metadata.get("transactionId")
        if not transaction_id:
            logger.warning("stripe webhook ignored reason=missing_transaction_id event_type=%s", event_type)
            return None

        common: dict[str, Any] = dict(
            transaction_id=str(transaction_id),
            transaction_reference=str(session.get("id") or ""),
            transaction_amount=int(session.get("amount_total") or 0),
            transaction_currency=_currency(session.get("currency")),
            payment_method=PaymentMethod.CREDIT_CARD,
            metadata=_decode_metadata(raw_metadata),
            payment_provider=self.name,
        )

        emitted: list[PaymentEvent] = []
        if event_type == "checkout.session.completed":
            emitted.append(PaymentInitiatedEvent(**common))
            if session.get("payment_status") == "paid":
                emitted.append(PaymentSuccessfulEvent(**common))
        elif event_type == "checkout.session.async_payment_succeeded":
            emitted.append(PaymentSuccessfulEvent(**common))
        elif event_type == "checkout.session.async_payment_failed":
            emitted.append(PaymentFailedEvent(**common, reason="Payment failed"))
        else:
            emitted.append(PaymentCancelledEvent(**common, reason="Checkout session expired"))

        for e in emitted:
            publish(self._sink, e)

        last = emitted[-1]
        logger.info(
            "stripe webhook event_type=%s emitted=%s transaction_id=%s",
            event_type,
            ",".join(e.type.value for e in emitted),
            last.transaction_id,
        )
        return last
