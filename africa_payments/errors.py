# africa_payments/errors.py
from __future__ import annotations

from enum import Enum
from typing import Any


class PaymentErrorType(str, Enum):
    INVALID_AUTHORIZATION_CODE = "INVALID_AUTHORIZATION_CODE"
    UNSUPPORTED_PAYMENT_METHOD = "UNSUPPORTED_PAYMENT_METHOD"
    INVALID_PHONE_NUMBER = "INVALID_PHONE_NUMBER"
    INVALID_OPERATION_CODE = "INVALID_OPERATION_CODE"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class PaymentError(Exception):
    """
    Failure raised by every provider operation.

    `type` is the only thing the orchestrator looks at:
    UNSUPPORTED_PAYMENT_METHOD => try the next provider, anything else => abort.
    `details` keeps the raw upstream payload for diagnostics.
    """

    def __init__(
        self,
        message: str,
        type: PaymentErrorType = PaymentErrorType.UNKNOWN_ERROR,
        *,
        details: Any | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.type = type
        self.details = details

    @property
    def is_unsupported(self) -> bool:
        return self.type == PaymentErrorType.UNSUPPORTED_PAYMENT_METHOD

    def __repr__(self) -> str:
        return f"PaymentError({self.message!r}, type={self.type.value})"


def unsupported(message: str) -> PaymentError:
    return PaymentError(message, PaymentErrorType.UNSUPPORTED_PAYMENT_METHOD)


def invalid_phone_number(message: str) -> PaymentError:
    return PaymentError(message, PaymentErrorType.INVALID_PHONE_NUMBER)
