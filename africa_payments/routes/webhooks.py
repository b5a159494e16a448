# africa_payments/routes/webhooks.py
from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Request

from africa_payments.errors import PaymentError
from africa_payments.models import HandleWebhookOptions
from africa_payments.orchestrator import AfricaPaymentsProvider
from africa_payments.providers import normalize_provider_name

router = APIRouter(prefix="/v1/webhooks", tags=["webhooks"])
logger = logging.getLogger("africa_payments.webhooks")


def _resolve_request_id(req: Request) -> str | None:
    candidates = (
        req.headers.get("X-Request-ID"),
        req.headers.get("X-Correlation-ID"),
    )
    for value in candidates:
        if value and value.strip():
            return value.strip()
    return None


def _provider_name(payments: AfricaPaymentsProvider, path_name: str) -> str:
    # URL segments are case/dash-insensitive: /v1/webhooks/paydunya -> PAYDUNYA
    names = [p.name for p in payments.providers]
    if path_name in names:
        return path_name
    wanted = normalize_provider_name(path_name)
    for name in names:
        if normalize_provider_name(name) == wanted:
            return name
    return path_name


def _payments(req: Request) -> AfricaPaymentsProvider:
    payments = getattr(req.app.state, "payments", None)
    if payments is None:
        raise HTTPException(status_code=503, detail={"error": "PAYMENTS_NOT_CONFIGURED"})
    return payments


@router.post("/{provider_name}")
async def receive_webhook(provider_name: str, req: Request) -> dict[str, Any]:
    payments = _payments(req)
    request_id = _resolve_request_id(req)

    try:
        provider = payments.get_provider(_provider_name(payments, provider_name))
    except PaymentError:
        logger.warning("webhook_received request_id=%s provider=%s reason=UNKNOWN_PROVIDER", request_id, provider_name)
        raise HTTPException(status_code=404, detail={"error": "UNKNOWN_PROVIDER"})

    raw = await req.body()
    options = HandleWebhookOptions(headers=dict(req.headers), provider_name=provider.name)

    body: Any = raw
    if provider.webhook_body_format == "parsed":
        try:
            body = json.loads(raw)
        except ValueError:
            body = None
        if not isinstance(body, dict):
            logger.warning(
                "webhook_received request_id=%s provider=%s reason=INVALID_JSON_OBJECT",
                request_id,
                provider.name,
            )
            return {"ok": True, "provider": provider.name, "event": None}

    try:
        event = await payments.handle_webhook(body, options)
    except PaymentError as exc:
        logger.warning(
            "webhook_failed request_id=%s provider=%s type=%s message=%s",
            request_id,
            provider.name,
            exc.type.value,
            exc.message,
        )
        raise HTTPException(status_code=502, detail={"error": exc.type.value})

    logger.info(
        "webhook_received request_id=%s provider=%s event=%s transaction_id=%s",
        request_id,
        provider.name,
        event.type.value if event else None,
        event.transaction_id if event else None,
    )
    return {
        "ok": True,
        "provider": provider.name,
        "event": event.type.value if event else None,
    }
