# africa_payments/providers/http.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from africa_payments.errors import PaymentError
from africa_payments.services.redaction import redact_dict, redact_value

logger = logging.getLogger("africa_payments.http")


@dataclass
class HttpResponse:
    status_code: int
    json: Optional[Any]
    text: str
    url: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class HttpClient:
    def __init__(
        self,
        timeout_s: float = 20.0,
        follow_redirects: bool = True,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        # transport: httpx.MockTransport in tests
        self._client = httpx.AsyncClient(
            timeout=timeout_s,
            follow_redirects=follow_redirects,
            transport=transport,
        )

    async def post(
        self,
        url: str,
        *,
        headers: dict[str, str],
        json_body: dict[str, Any] | None = None,
    ) -> HttpResponse:
        try:
            r = await self._client.post(url, headers=headers, json=json_body)
        except httpx.HTTPError as exc:
            raise PaymentError(f"Network error calling {url}: {exc}", details={"url": url}) from exc
        self._debug_dump("POST", url, headers, json_body, r)
        return self._wrap(r)

    async def get(
        self,
        url: str,
        *,
        headers: dict[str, str],
    ) -> HttpResponse:
        try:
            r = await self._client.get(url, headers=headers)
        except httpx.HTTPError as exc:
            raise PaymentError(f"Network error calling {url}: {exc}", details={"url": url}) from exc
        self._debug_dump("GET", url, headers, None, r)
        return self._wrap(r)

    async def aclose(self) -> None:
        await self._client.aclose()

    @staticmethod
    def _wrap(r: httpx.Response) -> HttpResponse:
        try:
            payload = r.json()
        except ValueError:
            payload = None
        return HttpResponse(status_code=r.status_code, json=payload, text=r.text, url=str(r.request.url))

    @staticmethod
    def _debug_dump(method: str, url: str, headers: dict[str, str], json_body: Any, r: httpx.Response) -> None:
        if not logger.isEnabledFor(logging.DEBUG):
            return
        # never log credentials, phone numbers or tokens in clear
        logger.debug(
            "%s %s headers=%s json=%s -> status=%s text=%s",
            method,
            url,
            redact_dict(headers or {}),
            redact_value(json_body) if json_body is not None else None,
            r.status_code,
            redact_value(r.text[:300]),
        )
