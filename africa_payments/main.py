# africa_payments/main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from africa_payments.orchestrator import AfricaPaymentsProvider
from africa_payments.providers.validate import validate_payments_startup
from africa_payments.routes.webhooks import router as webhooks_router

logger = logging.getLogger("africa_payments")


async def _install_webhook_endpoints(payments: AfricaPaymentsProvider) -> None:
    for provider in payments.providers:
        ensure = getattr(provider, "ensure_webhook_endpoint", None)
        if ensure is None:
            continue
        try:
            await ensure()
        except Exception:
            # logged, never fatal at startup
            logger.exception("webhook endpoint install failed provider=%s", provider.name)


def create_app(payments: Optional[AfricaPaymentsProvider] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = False
        if getattr(app.state, "payments", None) is None:
            validate_payments_startup()
            app.state.payments = AfricaPaymentsProvider.from_settings()
            owned = True
        await _install_webhook_endpoints(app.state.payments)
        yield
        if owned:
            await app.state.payments.aclose()

    app = FastAPI(title="Africa Payments", version="1.0.0", lifespan=lifespan)
    app.state.payments = payments

    # -----------------------------
    # ROUTERS
    # -----------------------------
    app.include_router(webhooks_router)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("unhandled error path=%s", request.url.path)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

    return app


app = create_app()
