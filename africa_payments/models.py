# africa_payments/models.py
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, ClassVar, Mapping, Optional, Union


class PaymentMethod(str, Enum):
    WAVE = "WAVE"
    ORANGE_MONEY = "ORANGE_MONEY"
    CREDIT_CARD = "CREDIT_CARD"


class Currency(str, Enum):
    XOF = "XOF"


class TransactionStatus(str, Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


MOBILE_MONEY_METHODS = frozenset({PaymentMethod.WAVE, PaymentMethod.ORANGE_MONEY})


def _require_positive_amount(amount: Any) -> None:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise ValueError(f"amount must be a positive integer in minor units, got {amount!r}")


@dataclass(frozen=True, kw_only=True)
class Customer:
    first_name: str = ""
    last_name: str = ""
    phone_number: Optional[str] = None
    email: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()


@dataclass(frozen=True, kw_only=True)
class BasicCheckoutOptions:
    amount: int
    currency: Currency
    description: str
    transaction_id: str
    customer: Customer
    metadata: Optional[dict[str, Any]] = None
    success_redirect_url: Optional[str] = None
    failure_redirect_url: Optional[str] = None

    def __post_init__(self) -> None:
        _require_positive_amount(self.amount)


@dataclass(frozen=True, kw_only=True)
class WaveCheckoutOptions(BasicCheckoutOptions):
    payment_method: ClassVar[PaymentMethod] = PaymentMethod.WAVE


@dataclass(frozen=True, kw_only=True)
class OrangeMoneyCheckoutOptions(BasicCheckoutOptions):
    payment_method: ClassVar[PaymentMethod] = PaymentMethod.ORANGE_MONEY

    # present and non-empty => OTP flow, otherwise QR code flow
    authorization_code: Optional[str] = None


@dataclass(frozen=True, kw_only=True)
class CreditCardCheckoutOptions(BasicCheckoutOptions):
    payment_method: ClassVar[PaymentMethod] = PaymentMethod.CREDIT_CARD

    # pass-through only; never logged
    card_number: str = ""
    card_expiration_month: str = ""
    card_expiration_year: str = ""
    card_cvv: str = ""

    def __repr__(self) -> str:
        return (
            f"CreditCardCheckoutOptions(transaction_id={self.transaction_id!r}, "
            f"amount={self.amount!r}, currency={self.currency!r})"
        )


@dataclass(frozen=True, kw_only=True)
class RedirectCheckoutOptions(BasicCheckoutOptions):
    # optional hint for the hosted page, e.g. CREDIT_CARD restricts it to cards
    payment_method: Optional[PaymentMethod] = None


MobileMoneyCheckoutOptions = Union[WaveCheckoutOptions, OrangeMoneyCheckoutOptions]
CheckoutOptions = Union[WaveCheckoutOptions, OrangeMoneyCheckoutOptions, CreditCardCheckoutOptions]


@dataclass(frozen=True, kw_only=True)
class CheckoutResult:
    transaction_id: str
    transaction_reference: str
    transaction_status: TransactionStatus
    transaction_amount: int
    transaction_currency: Currency
    redirect_url: Optional[str] = None


# Same shape as a checkout result.
RefundResult = CheckoutResult
PayoutResult = CheckoutResult


@dataclass(frozen=True, kw_only=True)
class RefundOptions:
    transaction_id: str
    refunded_transaction_reference: str
    # None => full amount of the original transaction
    refunded_amount: Optional[int] = None
    provider_name: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None

    def __post_init__(self) -> None:
        if self.refunded_amount is not None:
            _require_positive_amount(self.refunded_amount)


@dataclass(frozen=True, kw_only=True)
class PayoutRecipient:
    phone_number: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None


@dataclass(frozen=True, kw_only=True)
class MobileMoneyPayoutOptions:
    amount: int
    currency: Currency
    payment_method: PaymentMethod
    recipient: PayoutRecipient
    transaction_id: str
    transaction_reference: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None

    def __post_init__(self) -> None:
        _require_positive_amount(self.amount)


@dataclass(frozen=True, kw_only=True)
class HandleWebhookOptions:
    headers: Optional[Mapping[str, str]] = None
    provider_name: Optional[str] = None

    def header(self, name: str) -> Optional[str]:
        if not self.headers:
            return None
        wanted = name.lower()
        for key, value in self.headers.items():
            if key.lower() == wanted:
                return value
        return None


@dataclass(frozen=True, kw_only=True)
class SettlementStatus:
    """Status snapshot returned by polling providers."""

    status: str
    amount: Optional[int] = None
    currency: Optional[str] = None
    bank_account_sender: Optional[str] = None
