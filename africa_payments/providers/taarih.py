# africa_payments/providers/taarih.py
from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping, Optional
from urllib.parse import quote

from africa_payments.errors import PaymentError, PaymentErrorType, invalid_phone_number, unsupported
from africa_payments.events import (
    EventSink,
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
    SettlementStatus,
    TransactionStatus,
)
from africa_payments.providers import ProviderName
from africa_payments.providers.base import WebhookBody, WebhookBodyFormat
from africa_payments.providers.config import TaarihConfig
from africa_payments.providers.http import HttpClient, HttpResponse
from africa_payments.providers.phone import parse_phone_number
from africa_payments.services.redaction import redact_phone

logger = logging.getLogger("africa_payments.taarih")

TEST_BASE_URL = "https://api-dev.taarih.com/api"
LIVE_BASE_URL = "https://api-prod.taarih.com/api"

STATUS_PENDING = "PENDING"
STATUS_COMPLETED = "COMPLETED"
STATUS_FAILED = "FAILED"

WEBHOOK_POLL_INTERVAL_MS = 5000
WEBHOOK_POLL_MAX_ATTEMPTS = 20
# webhook bodies may shorten the poll, never extend it past these bounds
WEBHOOK_POLL_MIN_INTERVAL_MS = 1000

_PAYMENT_METHODS = {
    PaymentMethod.WAVE: "WAVE",
    PaymentMethod.ORANGE_MONEY: "OM",
}

_OPERATION_CODES = {
    PaymentMethod.WAVE: "PAY_WITH_WAVE",
    PaymentMethod.ORANGE_MONEY: "PAY_WITH_OM",
}

Sleep = Callable[[float], Awaitable[Any]]


@dataclass(frozen=True)
class TaarihSession:
    token: str
    legal_entity_id: Any
    bank_accounts: list[dict[str, Any]] = field(default_factory=list)


def _positive_int(value: Any, default: int) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError):
        return default
    return n if n > 0 else default


def _amount(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _invalid_data_message(data: Mapping[str, Any]) -> str:
    message = str(data.get("message") or "invalid data")
    invalid = data.get("invalidData")
    if invalid:
        return f"{message} {json.dumps(invalid, default=str)}"
    return message


class TaarihProvider:
    """
    Mobile-money provider that settles by polling.

    Each checkout and each poll attempt logs in again; tokens are not cached.
    """

    webhook_body_format: WebhookBodyFormat = "parsed"

    def __init__(
        self,
        config: TaarihConfig,
        *,
        name: str = ProviderName.TAARIH.value,
        http: Optional[HttpClient] = None,
        timeout_s: float = 20.0,
        sleep: Sleep = asyncio.sleep,
    ):
        self.config = config
        self.name = name
        self.base_url = TEST_BASE_URL if config.mode == "test" else LIVE_BASE_URL
        self._http = http or HttpClient(timeout_s=timeout_s)
        self._sleep = sleep
        self._sink: Optional[EventSink] = None

    def attach_event_sink(self, sink: Optional[EventSink]) -> None:
        self._sink = sink

    async def aclose(self) -> None:
        await self._http.aclose()

    # -----------------------
    # HTTP plumbing
    # -----------------------
    def _headers(self, token: Optional[str] = None) -> dict[str, str]:
        h = {"Content-Type": "application/json"}
        if token:
            h["x-access-token"] = token
        return h

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    @staticmethod
    def _check(path: str, r: HttpResponse) -> Any:
        data = r.json
        if isinstance(data, dict) and isinstance(data.get("invalidData"), dict):
            if "operationCode" in data["invalidData"]:
                raise PaymentError(
                    f"Taarih error: {_invalid_data_message(data)}",
                    PaymentErrorType.INVALID_OPERATION_CODE,
                    details=data,
                )

        if not r.ok:
            message = None
            if isinstance(data, dict):
                if data.get("invalidData"):
                    message = _invalid_data_message(data)
                else:
                    message = data.get("message") or data.get("response_text")
            logger.warning("taarih http failure path=%s status=%s", path, r.status_code)
            raise PaymentError(
                str(message) if message else f"Taarih error: HTTP {r.status_code}. Data: {r.text[:500]}",
                details=data,
            )
        return data

    async def _post(self, path: str, payload: dict[str, Any], *, token: Optional[str] = None) -> Any:
        r = await self._http.post(self._url(path), headers=self._headers(token), json_body=payload)
        return self._check(path, r)

    async def _get(self, path: str, *, token: Optional[str] = None) -> Any:
        r = await self._http.get(self._url(path), headers=self._headers(token))
        return self._check(path, r)

    # -----------------------
    # auth
    # -----------------------
    async def login(self) -> TaarihSession:
        data = await self._post(
            "auth/signin-end-user",
            {
                "callingCode": self.config.calling_code,
                "phoneNumber": self.config.phone_number,
                "authMode": "SMS",
                "visitorId": self.config.visitor_id,
                "password": self.config.password,
            },
        )
        if not isinstance(data, dict):
            raise PaymentError("Taarih error: empty login response")

        if data.get("otpRequired"):
            raise PaymentError(f"Taarih error: {data.get('message') or 'OTP required'}", details=data)

        if "invalidData" in data:
            raise PaymentError(f"Taarih error: {_invalid_data_message(data)}", details=data)

        token = data.get("token")
        if token:
            return TaarihSession(
                token=str(token),
                legal_entity_id=data.get("legalEntityId"),
                bank_accounts=list(data.get("userBankAccounts") or []),
            )

        raise PaymentError("Taarih error: No token in response")

    # -----------------------
    # checkout
    # -----------------------
    async def checkout_mobile_money(self, options: MobileMoneyCheckoutOptions) -> CheckoutResult:
        method = options.payment_method
        if method not in _PAYMENT_METHODS:
            raise unsupported(f"Taarih does not support the payment method: {method}")
        if options.currency != Currency.XOF:
            raise unsupported(f"Taarih does not support the currency: {getattr(options.currency, 'value', options.currency)}")

        parsed = parse_phone_number(options.customer.phone_number, self.config.phone_region)
        if not parsed.valid:
            raise invalid_phone_number(f"Invalid phone number: {options.customer.phone_number}")
        if not parsed.possible:
            raise invalid_phone_number(f"Phone number is not possible: {options.customer.phone_number}")

        session = await self.login()

        if self.config.bank_account_id:
            await self._post(
                "transaction/pre-authorization",
                {
                    "companyId": session.legal_entity_id,
                    "bankAccountId": self.config.bank_account_id,
                    "amount": options.amount,
                    "paymentMethod": _PAYMENT_METHODS[method],
                    "currency": options.currency.value,
                },
                token=session.token,
            )

        data = await self._post(
            "transaction/pos-payment",
            {
                "companyId": session.legal_entity_id,
                "amount": options.amount,
                "countryCode": self.config.calling_code,
                "mobileNumber": parsed.national,
                "paymentMethod": _PAYMENT_METHODS[method],
                "operationCode": _OPERATION_CODES[method],
                "firstName": options.customer.first_name,
                "lastName": options.customer.last_name,
                "currency": options.currency.value,
            },
            token=session.token,
        )

        if not (isinstance(data, dict) and data.get("externalId") and data.get("internalId") and data.get("payment_link")):
            raise PaymentError("Taarih error: response data is not valid", details=data)

        internal_id = str(data["internalId"])
        redirect_url = str(data["payment_link"])

        logger.info(
            "taarih checkout initiated transaction_id=%s external_id=%s internal_id=%s phone=%s",
            options.transaction_id,
            data["externalId"],
            internal_id,
            redact_phone(options.customer.phone_number),
        )

        result = CheckoutResult(
            transaction_id=options.transaction_id,
            transaction_reference=internal_id,
            transaction_status=TransactionStatus.PENDING,
            transaction_amount=options.amount,
            transaction_currency=options.currency,
            redirect_url=redirect_url,
        )
        publish(
            self._sink,
            PaymentInitiatedEvent(
                transaction_id=options.transaction_id,
                transaction_reference=internal_id,
                transaction_amount=options.amount,
                transaction_currency=options.currency,
                payment_method=method,
                metadata=options.metadata,
                payment_provider=self.name,
                redirect_url=redirect_url,
            ),
        )
        return result

    async def checkout_credit_card(self, options: CreditCardCheckoutOptions) -> CheckoutResult:
        raise unsupported("Taarih does not support credit card checkout")

    async def checkout_redirect(self, options: RedirectCheckoutOptions) -> CheckoutResult:
        raise unsupported("Taarih does not support redirect checkout")

    async def refund(self, options: RefundOptions) -> RefundResult:
        raise unsupported("Taarih does not support refunds")

    async def payout_mobile_money(self, options: MobileMoneyPayoutOptions) -> PayoutResult:
        raise unsupported("Taarih does not support payouts")

    # -----------------------
    # settlement polling
    # -----------------------
    async def callback(
        self,
        correlation_id: str,
        time_interval_ms: Optional[int] = None,
        max_attempts: Optional[int] = None,
    ) -> SettlementStatus:
        """
        Poll the transfer status until it leaves PENDING or the attempt budget
        is spent. Returns the last snapshot either way; a still-PENDING result
        is not an error.
        """
        interval_ms = self.config.poll_interval_ms if time_interval_ms is None else int(time_interval_ms)
        attempts_budget = self.config.poll_max_attempts if max_attempts is None else int(max_attempts)
        if attempts_budget < 1:
            raise ValueError("max_attempts must be >= 1")

        attempt = 0
        while True:
            attempt += 1
            session = await self.login()
            data = await self._get(
                f"transaction/verify-transaction-status/{quote(correlation_id, safe='')}",
                token=session.token,
            )

            if not data:
                raise PaymentError("Taarih error: no transaction status data")
            if isinstance(data, dict) and "invalidData" in data:
                raise PaymentError(f"Taarih error: {_invalid_data_message(data)}", details=data)
            if not isinstance(data, dict):
                raise PaymentError(f"Taarih error: unexpected status payload for {correlation_id}", details=data)

            snapshot = SettlementStatus(
                status=str(data.get("status") or ""),
                amount=data.get("amount"),
                currency=data.get("currency"),
                bank_account_sender=data.get("bankAccountSender"),
            )

            if snapshot.status != STATUS_PENDING:
                logger.info(
                    "taarih settlement resolved internal_id=%s status=%s attempt=%s",
                    correlation_id,
                    snapshot.status,
                    attempt,
                )
                return snapshot

            if attempt >= attempts_budget:
                logger.info(
                    "taarih settlement still pending internal_id=%s attempts=%s",
                    correlation_id,
                    attempt,
                )
                return snapshot

            await self._sleep(interval_ms / 1000.0)

    # -----------------------
    # webhook
    # -----------------------
    async def handle_webhook(
        self,
        raw_body: WebhookBody,
        options: Optional[HandleWebhookOptions] = None,
    ) -> Optional[PaymentEvent]:
        if not isinstance(raw_body, Mapping):
            logger.warning("taarih webhook rejected reason=expected_parsed_body got=%s", type(raw_body).__name__)
            return None

        transaction_id = str(raw_body.get("transactionId") or "").strip()
        if not transaction_id:
            logger.warning("taarih webhook rejected reason=missing_transaction_id")
            return None

        interval_ms = max(
            _positive_int(raw_body.get("timeInterval"), WEBHOOK_POLL_INTERVAL_MS),
            WEBHOOK_POLL_MIN_INTERVAL_MS,
        )
        max_attempts = min(
            _positive_int(raw_body.get("maxAttempts"), WEBHOOK_POLL_MAX_ATTEMPTS),
            WEBHOOK_POLL_MAX_ATTEMPTS,
        )
        snapshot = await self.callback(transaction_id, interval_ms, max_attempts)

        common: dict[str, Any] = dict(
            transaction_id=transaction_id,
            transaction_reference=transaction_id,
            transaction_amount=_amount(snapshot.amount),
            transaction_currency=Currency.XOF,
            payment_provider=self.name,
        )

        event: PaymentEvent
        if snapshot.status == STATUS_COMPLETED:
            event = PaymentSuccessfulEvent(**common)
        else:
            event = PaymentFailedEvent(**common, reason="Payment failed")

        logger.info(
            "taarih webhook event=%s transaction_id=%s status=%s",
            event.type.value,
            transaction_id,
            snapshot.status,
        )
        publish(self._sink, event)
        return event
