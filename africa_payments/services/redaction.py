"""
Log masking for payment payloads.

Provider requests and responses carry customer emails, MSISDNs (with or
without the +221 prefix), invoice/disburse tokens, API keys and webhook
hashes. Anything logged from them goes through these helpers first.
"""
from __future__ import annotations

import re
from typing import Any, Mapping

REDACTED = "[REDACTED]"

_EMAIL_RE = re.compile(r"\b([A-Za-z0-9._%+-])([A-Za-z0-9._%+-]*)(@[A-Za-z0-9.-]+\.[A-Za-z]{2,})\b")
_E164_RE = re.compile(r"\+\d{6,15}")
# Senegalese mobile numbers written without the country code
_NATIONAL_MSISDN_RE = re.compile(r"(?<![\d+*])7[05678]\d{7}(?!\d)")

# a string containing one of these is dropped entirely
_CREDENTIAL_MARKERS = (
    "bearer ",
    "x-access-token",
    "access_token",
    "refresh_token",
    "whsec_",
    "sk_live_",
    "sk_test_",
)

# lower-case key fragments whose values are never logged
_SENSITIVE_KEY_PARTS = (
    "token",
    "authorization",
    "secret",
    "signature",
    "password",
    "key",
    "hash",
    "card",
    "cvv",
)


def redact_phone(value: str | None) -> str:
    """Keeps the prefix (country code + operator digits) and the last two digits."""
    raw = (value or "").strip()
    if not raw:
        return ""
    keep = 6 if raw.startswith("+") else 2
    if len(raw) <= keep + 2:
        return "****"
    return f"{raw[:keep]}****{raw[-2:]}"


def _mask_email(match: re.Match) -> str:
    return f"{match.group(1)}***{match.group(3)}"


def _mask_phone(match: re.Match) -> str:
    return redact_phone(match.group(0))


def redact_text(value: str) -> str:
    lowered = value.lower()
    if any(marker in lowered for marker in _CREDENTIAL_MARKERS):
        return REDACTED

    masked = _EMAIL_RE.sub(_mask_email, value)
    masked = _E164_RE.sub(_mask_phone, masked)
    return _NATIONAL_MSISDN_RE.sub(_mask_phone, masked)


def _is_sensitive_key(key: Any) -> bool:
    key_l = str(key or "").lower()
    return any(part in key_l for part in _SENSITIVE_KEY_PARTS)


def redact_value(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        # raw webhook bodies
        value = bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, str):
        return redact_text(value)
    if isinstance(value, Mapping):
        return redact_dict(value)
    if isinstance(value, (list, tuple)):
        return [redact_value(v) for v in value]
    return value


def redact_dict(payload: Mapping[str, Any]) -> dict[str, Any]:
    return {k: REDACTED if _is_sensitive_key(k) else redact_value(v) for k, v in payload.items()}
