# africa_payments/providers/paydunya.py
from __future__ import annotations

import hashlib
import hmac
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional

from africa_payments.errors import PaymentError, PaymentErrorType, invalid_phone_number, unsupported
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
from africa_payments.providers.config import PaydunyaConfig
from africa_payments.providers.http import HttpClient, HttpResponse
from africa_payments.providers.phone import parse_phone_number
from africa_payments.services.redaction import redact_phone

logger = logging.getLogger("africa_payments.paydunya")

SANDBOX_BASE_URL = "https://app.sandbox.paydunya.com/api/v1/"
LIVE_BASE_URL = "https://app.paydunya.com/api/v1/"

SUCCESS_CODE = "00"

WAVE_PATH = "softpay/wave-senegal"
ORANGE_MONEY_PATH = "softpay/new-orange-money-senegal"

_WITHDRAW_MODES = {
    PaymentMethod.WAVE: "wave-senegal",
    PaymentMethod.ORANGE_MONEY: "orange-money-senegal",
}

_WEBHOOK_METHODS = {
    "wave_senegal": PaymentMethod.WAVE,
    "orange_money_senegal": PaymentMethod.ORANGE_MONEY,
}


def _to_int(value: Any) -> int:
    # Paydunya sends amounts as strings ("100", sometimes "100.00")
    try:
        return int(Decimal(str(value)))
    except (InvalidOperation, ValueError, TypeError):
        return 0


def _as_dict(value: Any) -> dict[str, Any]:
    return dict(value) if isinstance(value, Mapping) else {}


class PaydunyaProvider:
    """
    Invoice-based provider.

    checkout: create invoice -> (WAVE | ORANGE_MONEY) softpay charge -> PENDING
    refund/payout: disburse/get-invoice -> disburse/submit-invoice -> SUCCESS

    Nothing here retries: a failure between the two disbursement phases leaves
    an unsubmitted disburse token upstream, and the caller retries with a new
    transaction id.
    """

    webhook_body_format: WebhookBodyFormat = "parsed"

    def __init__(
        self,
        config: PaydunyaConfig,
        *,
        name: str = ProviderName.PAYDUNYA.value,
        http: Optional[HttpClient] = None,
        timeout_s: float = 20.0,
    ):
        self.config = config
        self.name = name
        self.base_url = SANDBOX_BASE_URL if config.mode == "test" else LIVE_BASE_URL
        self._http = http or HttpClient(timeout_s=timeout_s)
        self._sink: Optional[EventSink] = None
        self._master_key_hash = hashlib.sha512(config.master_key.encode("utf-8")).hexdigest()

    def attach_event_sink(self, sink: Optional[EventSink]) -> None:
        self._sink = sink

    async def aclose(self) -> None:
        await self._http.aclose()

    # -----------------------
    # HTTP plumbing
    # -----------------------
    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "PAYDUNYA-MASTER-KEY": self.config.master_key,
            "PAYDUNYA-PRIVATE-KEY": self.config.private_key,
            "PAYDUNYA-PUBLIC-KEY": self.config.public_key,
            "PAYDUNYA-TOKEN": self.config.token,
        }

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        r = await self._http.post(self.base_url + path, headers=self._headers(), json_body=payload)
        return self._check(path, r)

    async def _get(self, path: str) -> dict[str, Any]:
        r = await self._http.get(self.base_url + path, headers=self._headers())
        return self._check(path, r)

    @staticmethod
    def _check(path: str, r: HttpResponse) -> dict[str, Any]:
        data = r.json
        if not r.ok:
            message = None
            if isinstance(data, dict):
                message = data.get("message") or data.get("response_text")

            if (
                r.status_code == 422
                and path == ORANGE_MONEY_PATH
                and "invalid or expired otp" in str(message or "").lower()
            ):
                raise PaymentError(str(message), PaymentErrorType.INVALID_AUTHORIZATION_CODE, details=data)

            logger.warning("paydunya http failure path=%s status=%s", path, r.status_code)
            raise PaymentError(
                str(message) if message else f"Paydunya error: HTTP {r.status_code}. Data: {r.text[:500]}",
                details=data,
            )

        if not isinstance(data, dict):
            raise PaymentError(f"Paydunya error: unexpected response from {path}: {r.text[:200]}")
        return data

    # -----------------------
    # validation
    # -----------------------
    def _require_xof(self, currency: Currency) -> None:
        if currency != Currency.XOF:
            raise unsupported(f"Paydunya does not support the currency: {getattr(currency, 'value', currency)}")

    def _national_number(self, phone_number: Optional[str]) -> str:
        parsed = parse_phone_number(phone_number, self.config.phone_region)
        if not parsed.valid:
            raise invalid_phone_number(f"Invalid phone number: {phone_number}")
        if not parsed.possible:
            raise invalid_phone_number(f"Phone number is not possible: {phone_number}")
        return parsed.national

    # -----------------------
    # checkout
    # -----------------------
    async def checkout_mobile_money(self, options: MobileMoneyCheckoutOptions) -> CheckoutResult:
        return await self._checkout(options)

    async def checkout_credit_card(self, options: CreditCardCheckoutOptions) -> CheckoutResult:
        return await self._checkout(options)

    async def checkout_redirect(self, options: RedirectCheckoutOptions) -> CheckoutResult:
        raise unsupported("Paydunya does not support redirect checkout")

    async def _checkout(self, options: MobileMoneyCheckoutOptions | CreditCardCheckoutOptions) -> CheckoutResult:
        self._require_xof(options.currency)

        method = options.payment_method
        national = None
        if method in _WITHDRAW_MODES:
            national = self._national_number(options.customer.phone_number)
        elif method != PaymentMethod.CREDIT_CARD:
            raise unsupported(f"Paydunya does not support the payment method: {method}")

        invoice = await self._post(
            "checkout-invoice/create",
            {
                "invoice": {
                    "total_amount": options.amount,
                    "description": options.description,
                },
                "store": {"name": self.config.store_name},
                "channels": ["card"] if method == PaymentMethod.CREDIT_CARD else None,
                "custom_data": {**(options.metadata or {}), "transaction_id": options.transaction_id},
                "actions": {
                    "cancel_url": options.failure_redirect_url,
                    "return_url": options.success_redirect_url,
                },
            },
        )
        if invoice.get("response_code") != SUCCESS_CODE:
            raise PaymentError(f"Paydunya error: {invoice.get('response_text')}", details=invoice)

        invoice_token = invoice.get("token")
        if not invoice_token:
            raise PaymentError(
                f"Missing invoice token in Paydunya response: {invoice.get('response_text')}",
                details=invoice,
            )

        if method == PaymentMethod.CREDIT_CARD:
            # the invoice response_text is the hosted checkout URL
            redirect_url = invoice.get("response_text")
        elif method == PaymentMethod.WAVE:
            redirect_url = await self._charge_wave(options, national or "", invoice_token)
        else:
            redirect_url = await self._charge_orange_money(options, national or "", invoice_token)

        logger.info(
            "paydunya checkout initiated transaction_id=%s method=%s invoice_token=%s amount=%s",
            options.transaction_id,
            method.value,
            invoice_token,
            options.amount,
        )

        result = CheckoutResult(
            transaction_id=options.transaction_id,
            transaction_reference=invoice_token,
            transaction_status=TransactionStatus.PENDING,
            transaction_amount=options.amount,
            transaction_currency=options.currency,
            redirect_url=redirect_url,
        )
        publish(
            self._sink,
            PaymentInitiatedEvent(
                transaction_id=options.transaction_id,
                transaction_reference=invoice_token,
                transaction_amount=options.amount,
                transaction_currency=options.currency,
                payment_method=method,
                metadata=options.metadata,
                payment_provider=self.name,
                redirect_url=redirect_url,
            ),
        )
        return result

    async def _charge_wave(self, options: MobileMoneyCheckoutOptions, national: str, invoice_token: str) -> str:
        customer = options.customer
        data = await self._post(
            WAVE_PATH,
            {
                "wave_senegal_fullName": customer.full_name,
                "wave_senegal_email": f"{customer.phone_number}@yopmail.com",
                "wave_senegal_phone": national,
                "wave_senegal_payment_token": invoice_token,
            },
        )
        if data.get("success") is not True:
            raise PaymentError(f"Paydunya error: {data.get('message')}", details=data)
        url = data.get("url")
        if not url:
            raise PaymentError(f"Missing wave payment url in Paydunya response: {data.get('message')}", details=data)
        return str(url)

    async def _charge_orange_money(
        self,
        options: OrangeMoneyCheckoutOptions,
        national: str,
        invoice_token: str,
    ) -> Optional[str]:
        customer = options.customer
        payload: dict[str, Any] = {
            "customer_name": customer.full_name,
            "customer_email": f"{customer.phone_number}@yopmail.com",
            "phone_number": national,
            "invoice_token": invoice_token,
        }
        code = getattr(options, "authorization_code", None)
        if code:
            payload["api_type"] = "OTPCODE"
            payload["authorization_code"] = code
        else:
            payload["api_type"] = "QRCODE"

        data = await self._post(ORANGE_MONEY_PATH, payload)
        if data.get("success") is not True:
            raise PaymentError(f"Paydunya error: {data.get('message')}", details=data)

        # OTP flow has no URL; a QR response without one is surfaced as None
        url = data.get("url")
        return str(url) if url else None

    # -----------------------
    # disbursement (refund + payout)
    # -----------------------
    async def _disburse(self, *, account_alias: str, amount: int, withdraw_mode: str, disburse_id: str) -> str:
        created = await self._post(
            "disburse/get-invoice",
            {
                "account_alias": account_alias,
                "amount": amount,
                "withdraw_mode": withdraw_mode,
                "disburse_id": disburse_id,
            },
        )
        if created.get("response_code") != SUCCESS_CODE:
            raise PaymentError(f"Paydunya error: {created.get('response_text')}", details=created)

        disburse_token = created.get("disburse_token")
        if not disburse_token:
            raise PaymentError(
                f"Missing disburse token in Paydunya response: {created.get('response_text')}",
                details=created,
            )

        submitted = await self._post(
            "disburse/submit-invoice",
            {
                "disburse_invoice": disburse_token,
                "disburse_id": disburse_id,
            },
        )
        if submitted.get("response_code") != SUCCESS_CODE:
            logger.error(
                "paydunya disburse submit failed disburse_id=%s disburse_token=%s response_code=%s",
                disburse_id,
                disburse_token,
                submitted.get("response_code"),
            )
            raise PaymentError(f"Paydunya error: {submitted.get('response_text')}", details=submitted)

        logger.info(
            "paydunya disbursed disburse_id=%s withdraw_mode=%s alias=%s amount=%s",
            disburse_id,
            withdraw_mode,
            redact_phone(account_alias),
            amount,
        )
        return str(disburse_token)

    async def refund(self, options: RefundOptions) -> RefundResult:
        reference = options.refunded_transaction_reference
        data = await self._get(f"checkout-invoice/confirm/{reference}")
        if data.get("response_code") != SUCCESS_CODE:
            raise PaymentError(f"Paydunya error: {data.get('response_text')}", details=data)

        invoice = data.get("invoice")
        if not isinstance(invoice, dict):
            raise PaymentError(f"Missing invoice in Paydunya response: {data.get('response_text')}", details=data)

        customer = _as_dict(data.get("customer"))
        alias = str(customer.get("phone") or "")
        withdraw_mode = str(customer.get("payment_method") or "").replace("_", "-")
        if not alias or not withdraw_mode:
            raise PaymentError(
                f"Paydunya invoice {reference} has no customer phone or payment method to refund to",
                details=data,
            )

        amount = options.refunded_amount or _to_int(invoice.get("total_amount"))
        if amount <= 0:
            raise PaymentError(f"Paydunya invoice {reference} has no refundable amount", details=data)

        disburse_token = await self._disburse(
            account_alias=alias,
            amount=amount,
            withdraw_mode=withdraw_mode,
            disburse_id=options.transaction_id,
        )
        return RefundResult(
            transaction_id=options.transaction_id,
            transaction_reference=disburse_token,
            transaction_status=TransactionStatus.SUCCESS,
            transaction_amount=amount,
            transaction_currency=Currency.XOF,
        )

    async def payout_mobile_money(self, options: MobileMoneyPayoutOptions) -> PayoutResult:
        self._require_xof(options.currency)

        withdraw_mode = _WITHDRAW_MODES.get(options.payment_method)
        if withdraw_mode is None:
            raise unsupported(f"Paydunya does not support payouts with: {options.payment_method}")

        national = self._national_number(options.recipient.phone_number)

        disburse_token = await self._disburse(
            account_alias=national,
            amount=options.amount,
            withdraw_mode=withdraw_mode,
            disburse_id=options.transaction_id,
        )
        return PayoutResult(
            transaction_id=options.transaction_id,
            transaction_reference=disburse_token,
            transaction_status=TransactionStatus.SUCCESS,
            transaction_amount=options.amount,
            transaction_currency=Currency.XOF,
        )

    # -----------------------
    # webhook
    # -----------------------
    async def handle_webhook(
        self,
        raw_body: WebhookBody,
        options: Optional[HandleWebhookOptions] = None,
    ) -> Optional[PaymentEvent]:
        if not isinstance(raw_body, Mapping):
            logger.warning("paydunya webhook rejected reason=expected_parsed_body got=%s", type(raw_body).__name__)
            return None

        body_hash = raw_body.get("hash")
        if not body_hash:
            logger.warning("paydunya webhook rejected reason=missing_hash")
            return None
        if not hmac.compare_digest(str(body_hash).encode("utf-8"), self._master_key_hash.encode("utf-8")):
            logger.warning("paydunya webhook rejected reason=invalid_hash")
            return None

        invoice = _as_dict(raw_body.get("invoice"))
        custom_data = _as_dict(raw_body.get("custom_data"))
        customer = _as_dict(raw_body.get("customer"))
        status = str(raw_body.get("status") or "").strip().lower()
        reason = str(raw_body.get("response_text") or raw_body.get("fail_reason") or "")

        common: dict[str, Any] = dict(
            transaction_id=str(custom_data.get("transaction_id") or ""),
            transaction_reference=str(invoice.get("token") or ""),
            transaction_amount=_to_int(invoice.get("total_amount")),
            transaction_currency=Currency.XOF,
            payment_method=_WEBHOOK_METHODS.get(str(customer.get("payment_method") or "")),
            metadata=custom_data,
            payment_provider=self.name,
        )

        event: PaymentEvent
        if status == "completed" and str(raw_body.get("response_code")) == SUCCESS_CODE:
            event = PaymentSuccessfulEvent(**common)
        elif status == "cancelled":
            event = PaymentCancelledEvent(**common, reason=reason or "Payment cancelled")
        elif status == "failed":
            event = PaymentFailedEvent(**common, reason=reason or "Payment failed")
        else:
            logger.info(
                "paydunya webhook ignored status=%s transaction_id=%s",
                status or "<none>",
                common["transaction_id"],
            )
            return None

        logger.info(
            "paydunya webhook event=%s transaction_id=%s invoice_token=%s",
            event.type.value,
            event.transaction_id,
            event.transaction_reference,
        )
        publish(self._sink, event)
        return event
