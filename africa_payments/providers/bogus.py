# africa_payments/providers/bogus.py
from __future__ import annotations

import json
import logging
from typing import Any, Mapping, Optional

from africa_payments.events import (
    EventSink,
    PaymentEvent,
    PaymentFailedEvent,
    PaymentInitiatedEvent,
    PaymentSuccessfulEvent,
    publish,
)
from africa_payments.models import (
    BasicCheckoutOptions,
    CheckoutResult,
    CreditCardCheckoutOptions,
    Currency,
    HandleWebhookOptions,
    MobileMoneyCheckoutOptions,
    MobileMoneyPayoutOptions,
    OrangeMoneyCheckoutOptions,
    PaymentMethod,
    PayoutResult,
    RedirectCheckoutOptions,
    RefundOptions,
    RefundResult,
    TransactionStatus,
)
from africa_payments.providers import ProviderName
from africa_payments.providers.base import WebhookBody, WebhookBodyFormat
from africa_payments.providers.config import BogusConfig

logger = logging.getLogger("africa_payments.bogus")

FAILURE_SUFFIX = "13"
FAILURE_EMAIL_DOMAIN = "failure.com"


class BogusProvider:
    """
    In-memory stand-in for a real gateway (no network).

    Failures are triggered by the input: a WAVE phone, Orange Money code or
    card number ending in "13", or a redirect customer email ending in
    "failure.com".
    """

    webhook_body_format: WebhookBodyFormat = "raw"

    def __init__(self, config: Optional[BogusConfig] = None, *, name: str = ProviderName.BOGUS.value):
        self.config = config or BogusConfig()
        self.name = name
        self._sink: Optional[EventSink] = None

    def attach_event_sink(self, sink: Optional[EventSink]) -> None:
        self._sink = sink

    async def aclose(self) -> None:
        return None

    def _checkout(
        self,
        options: BasicCheckoutOptions,
        method: Optional[PaymentMethod],
        is_failure: bool,
    ) -> CheckoutResult:
        reference = f"{(method.value if method else 'redirect').lower()}-transaction-reference"

        if self.config.instant_events:
            common: dict[str, Any] = dict(
                transaction_id=options.transaction_id,
                transaction_reference=reference,
                transaction_amount=options.amount,
                transaction_currency=options.currency,
                payment_method=method,
                metadata=options.metadata,
                payment_provider=self.name,
            )
            publish(self._sink, PaymentInitiatedEvent(**common))
            if is_failure:
                publish(self._sink, PaymentFailedEvent(**common, reason="Payment failed"))
            else:
                publish(self._sink, PaymentSuccessfulEvent(**common))

        logger.info(
            "bogus checkout transaction_id=%s method=%s failure=%s",
            options.transaction_id,
            method.value if method else None,
            is_failure,
        )
        return CheckoutResult(
            transaction_id=options.transaction_id,
            transaction_reference=reference,
            transaction_status=TransactionStatus.PENDING,
            transaction_amount=options.amount,
            transaction_currency=options.currency,
            redirect_url=options.failure_redirect_url if is_failure else options.success_redirect_url,
        )

    async def checkout_mobile_money(self, options: MobileMoneyCheckoutOptions) -> CheckoutResult:
        is_failure = False
        if options.payment_method == PaymentMethod.WAVE:
            is_failure = (options.customer.phone_number or "").endswith(FAILURE_SUFFIX)
        elif isinstance(options, OrangeMoneyCheckoutOptions):
            is_failure = (options.authorization_code or "").endswith(FAILURE_SUFFIX)
        return self._checkout(options, options.payment_method, is_failure)

    async def checkout_credit_card(self, options: CreditCardCheckoutOptions) -> CheckoutResult:
        is_failure = (options.card_number or "").endswith(FAILURE_SUFFIX)
        return self._checkout(options, PaymentMethod.CREDIT_CARD, is_failure)

    async def checkout_redirect(self, options: RedirectCheckoutOptions) -> CheckoutResult:
        is_failure = (options.customer.email or "").endswith(FAILURE_EMAIL_DOMAIN)
        return self._checkout(options, options.payment_method, is_failure)

    async def refund(self, options: RefundOptions) -> RefundResult:
        logger.debug("bogus refund transaction_id=%s reference=%s", options.transaction_id, options.refunded_transaction_reference)
        return RefundResult(
            transaction_id=options.transaction_id,
            transaction_reference="refunded-transaction-reference",
            transaction_status=TransactionStatus.PENDING,
            transaction_amount=options.refunded_amount or 0,
            transaction_currency=Currency.XOF,
        )

    async def payout_mobile_money(self, options: MobileMoneyPayoutOptions) -> PayoutResult:
        logger.debug("bogus payout transaction_id=%s method=%s", options.transaction_id, options.payment_method.value)
        return PayoutResult(
            transaction_id=options.transaction_id,
            transaction_reference="payout-transaction-reference",
            transaction_status=TransactionStatus.SUCCESS,
            transaction_amount=options.amount,
            transaction_currency=options.currency,
        )

    async def handle_webhook(
        self,
        raw_body: WebhookBody,
        options: Optional[HandleWebhookOptions] = None,
    ) -> Optional[PaymentEvent]:
        if isinstance(raw_body, Mapping):
            logger.warning("bogus webhook rejected reason=expected_raw_body")
            return None

        try:
            body = json.loads(raw_body)
        except ValueError:
            logger.warning("bogus webhook rejected reason=malformed_json")
            return None
        if not isinstance(body, dict):
            logger.warning("bogus webhook rejected reason=not_an_object")
            return None

        try:
            method = PaymentMethod(body["paymentMethod"]) if body.get("paymentMethod") else None
            currency = Currency(body.get("currency") or Currency.XOF.value)
            amount = int(body.get("amount") or 0)
        except (TypeError, ValueError):
            logger.warning("bogus webhook rejected reason=invalid_field")
            return None

        common: dict[str, Any] = dict(
            transaction_id=str(body.get("transactionId") or ""),
            transaction_reference=str(body.get("transactionReference") or ""),
            transaction_amount=amount,
            transaction_currency=currency,
            payment_method=method,
            metadata=body.get("metadata"),
            payment_provider=self.name,
        )

        event: PaymentEvent
        if body.get("success") is False:
            event = PaymentFailedEvent(**common, reason="Payment failed")
        else:
            event = PaymentSuccessfulEvent(**common)

        publish(self._sink, event)
        return event
