from __future__ import annotations

import hashlib
import logging

import pytest

from africa_payments.errors import PaymentError, PaymentErrorType
from africa_payments.events import PaymentEventType
from africa_payments.models import (
    Currency,
    MobileMoneyPayoutOptions,
    PaymentMethod,
    PayoutRecipient,
    RefundOptions,
    TransactionStatus,
)
from africa_payments.providers.config import PaydunyaConfig
from africa_payments.providers.paydunya import PaydunyaProvider

CONFIG = PaydunyaConfig(
    master_key="master-key",
    private_key="private-key",
    public_key="public-key",
    token="api-token",
    store_name="Boutique Dakar",
)
MASTER_HASH = hashlib.sha512(b"master-key").hexdigest()

CONFIRMED_INVOICE = {
    "response_code": "00",
    "response_text": "success",
    "hash": MASTER_HASH,
    "invoice": {"token": "invoice-token", "total_amount": "100", "description": "d"},
    "custom_data": {"transaction_id": "tx-1", "order": "42"},
    "customer": {
        "name": "Mamadou Diallo",
        "phone": "+221781234567",
        "email": "mamadou.diallo@example.com",
        "payment_method": "wave_senegal",
    },
    "status": "completed",
}
DISBURSE_OK = {"response_code": "00", "disburse_token": "disburse-token"}
SUBMIT_OK = {"response_code": "00", "response_text": "success", "transaction_id": "pd-tx", "provider_ref": "ref"}


def _provider(recorder, sink=None) -> PaydunyaProvider:
    p = PaydunyaProvider(CONFIG, http=recorder.client())
    p.attach_event_sink(sink)
    return p


def _disburse_routes(recorder) -> None:
    recorder.add("GET", "/checkout-invoice/confirm/invoice-token", CONFIRMED_INVOICE)
    recorder.add("POST", "/disburse/get-invoice", DISBURSE_OK)
    recorder.add("POST", "/disburse/submit-invoice", SUBMIT_OK)


@pytest.mark.asyncio
async def test_refund_without_amount_uses_invoice_total(recorder):
    _disburse_routes(recorder)

    result = await _provider(recorder).refund(
        RefundOptions(transaction_id="refund-1", refunded_transaction_reference="invoice-token")
    )

    assert recorder.paths() == [
        "/api/v1/checkout-invoice/confirm/invoice-token",
        "/api/v1/disburse/get-invoice",
        "/api/v1/disburse/submit-invoice",
    ]
    assert recorder.json_of("/disburse/get-invoice") == {
        "account_alias": "+221781234567",
        "amount": 100,
        "withdraw_mode": "wave-senegal",
        "disburse_id": "refund-1",
    }
    assert recorder.json_of("/disburse/submit-invoice") == {
        "disburse_invoice": "disburse-token",
        "disburse_id": "refund-1",
    }
    assert result.transaction_status == TransactionStatus.SUCCESS
    assert result.transaction_reference == "disburse-token"
    assert result.transaction_amount == 100
    assert result.transaction_currency == Currency.XOF


@pytest.mark.asyncio
async def test_partial_refund_uses_requested_amount(recorder):
    _disburse_routes(recorder)

    result = await _provider(recorder).refund(
        RefundOptions(transaction_id="refund-2", refunded_transaction_reference="invoice-token", refunded_amount=40)
    )

    assert recorder.json_of("/disburse/get-invoice")["amount"] == 40
    assert result.transaction_amount == 40


@pytest.mark.asyncio
async def test_refund_unknown_invoice_stops_before_disbursement(recorder):
    recorder.add("GET", "/checkout-invoice/confirm/nope", {"response_code": "1004", "response_text": "Invoice not found"})

    with pytest.raises(PaymentError) as exc:
        await _provider(recorder).refund(RefundOptions(transaction_id="r", refunded_transaction_reference="nope"))

    assert exc.value.type == PaymentErrorType.UNKNOWN_ERROR
    assert "Invoice not found" in exc.value.message
    assert len(recorder.requests) == 1


@pytest.mark.asyncio
async def test_refund_submit_failure_is_not_retried(recorder):
    recorder.add("GET", "/checkout-invoice/confirm/invoice-token", CONFIRMED_INVOICE)
    recorder.add("POST", "/disburse/get-invoice", DISBURSE_OK)
    recorder.add("POST", "/disburse/submit-invoice", {"response_code": "4002", "response_text": "Solde insuffisant"})

    with pytest.raises(PaymentError) as exc:
        await _provider(recorder).refund(
            RefundOptions(transaction_id="refund-3", refunded_transaction_reference="invoice-token")
        )

    assert "Solde insuffisant" in exc.value.message
    assert len(recorder.calls("/disburse/submit-invoice")) == 1


@pytest.mark.asyncio
async def test_missing_disburse_token_is_fatal(recorder):
    recorder.add("GET", "/checkout-invoice/confirm/invoice-token", CONFIRMED_INVOICE)
    recorder.add("POST", "/disburse/get-invoice", {"response_code": "00"})

    with pytest.raises(PaymentError) as exc:
        await _provider(recorder).refund(
            RefundOptions(transaction_id="refund-4", refunded_transaction_reference="invoice-token")
        )

    assert "disburse token" in exc.value.message
    assert recorder.calls("/disburse/submit-invoice") == []


@pytest.mark.asyncio
async def test_payout_orange_money_uses_national_alias(recorder):
    recorder.add("POST", "/disburse/get-invoice", DISBURSE_OK)
    recorder.add("POST", "/disburse/submit-invoice", SUBMIT_OK)

    result = await _provider(recorder).payout_mobile_money(
        MobileMoneyPayoutOptions(
            amount=7500,
            currency=Currency.XOF,
            payment_method=PaymentMethod.ORANGE_MONEY,
            recipient=PayoutRecipient(phone_number="+221771234567", first_name="Awa"),
            transaction_id="payout-1",
        )
    )

    assert recorder.json_of("/disburse/get-invoice") == {
        "account_alias": "771234567",
        "amount": 7500,
        "withdraw_mode": "orange-money-senegal",
        "disburse_id": "payout-1",
    }
    assert result.transaction_status == TransactionStatus.SUCCESS
    assert result.transaction_reference == "disburse-token"


@pytest.mark.asyncio
async def test_payout_card_is_unsupported(recorder):
    with pytest.raises(PaymentError) as exc:
        await _provider(recorder).payout_mobile_money(
            MobileMoneyPayoutOptions(
                amount=100,
                currency=Currency.XOF,
                payment_method=PaymentMethod.CREDIT_CARD,
                recipient=PayoutRecipient(phone_number="+221771234567"),
                transaction_id="payout-2",
            )
        )
    assert exc.value.is_unsupported
    assert recorder.requests == []


@pytest.mark.asyncio
async def test_payout_invalid_phone(recorder):
    with pytest.raises(PaymentError) as exc:
        await _provider(recorder).payout_mobile_money(
            MobileMoneyPayoutOptions(
                amount=100,
                currency=Currency.XOF,
                payment_method=PaymentMethod.WAVE,
                recipient=PayoutRecipient(phone_number="12"),
                transaction_id="payout-3",
            )
        )
    assert exc.value.type == PaymentErrorType.INVALID_PHONE_NUMBER
    assert recorder.requests == []


# ---------------------------
# Webhook
# ---------------------------


@pytest.mark.asyncio
async def test_webhook_completed_emits_successful(recorder, events):
    sink, received = events

    event = await _provider(recorder, sink).handle_webhook(dict(CONFIRMED_INVOICE))

    assert event is not None
    assert event.type == PaymentEventType.PAYMENT_SUCCESSFUL
    assert event.transaction_id == "tx-1"
    assert event.transaction_reference == "invoice-token"
    assert event.transaction_amount == 100
    assert event.payment_method == PaymentMethod.WAVE
    assert event.metadata == {"transaction_id": "tx-1", "order": "42"}
    assert received == [event]


@pytest.mark.asyncio
async def test_webhook_wrong_hash_yields_no_event(recorder, events, caplog):
    sink, received = events
    caplog.set_level(logging.WARNING)
    body = dict(CONFIRMED_INVOICE, hash="0" * 128)

    assert await _provider(recorder, sink).handle_webhook(body) is None
    assert received == []
    assert "invalid_hash" in caplog.text


@pytest.mark.asyncio
async def test_webhook_missing_hash_yields_no_event(recorder, events):
    sink, received = events
    body = {k: v for k, v in CONFIRMED_INVOICE.items() if k != "hash"}

    assert await _provider(recorder, sink).handle_webhook(body) is None
    assert received == []


@pytest.mark.asyncio
async def test_webhook_raw_body_is_rejected(recorder):
    assert await _provider(recorder).handle_webhook(b'{"hash": "x"}') is None


@pytest.mark.asyncio
async def test_webhook_cancelled_and_failed(recorder, events):
    sink, received = events
    provider = _provider(recorder, sink)

    cancelled = await provider.handle_webhook(dict(CONFIRMED_INVOICE, status="cancelled", response_text="Annulé"))
    failed = await provider.handle_webhook(
        dict(CONFIRMED_INVOICE, status="failed", response_text="", fail_reason="Fonds insuffisants")
    )

    assert cancelled.type == PaymentEventType.PAYMENT_CANCELLED
    assert cancelled.reason == "Annulé"
    assert failed.type == PaymentEventType.PAYMENT_FAILED
    assert failed.reason == "Fonds insuffisants"
    assert [e.type for e in received] == [PaymentEventType.PAYMENT_CANCELLED, PaymentEventType.PAYMENT_FAILED]


@pytest.mark.asyncio
async def test_webhook_pending_status_is_ignored(recorder, events):
    sink, received = events
    assert await _provider(recorder, sink).handle_webhook(dict(CONFIRMED_INVOICE, status="pending")) is None
    assert received == []
