"""Payment lifecycle events and the sink they are pushed into.

Providers never talk to listeners directly: each one holds an injected
`EventSink` and pushes events through `publish()`. The orchestrator is an
`EventEmitter`, so integrators subscribe once for every configured provider.

Dispatch is synchronous and fire-and-forget. A listener that raises is
logged; it does not stop other listeners and never aborts the payment
operation that emitted the event.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, ClassVar, Optional, Protocol, Union, runtime_checkable

from africa_payments.models import Currency, PaymentMethod

logger = logging.getLogger("africa_payments.events")


class PaymentEventType(str, Enum):
    PAYMENT_INITIATED = "PAYMENT_INITIATED"
    PAYMENT_SUCCESSFUL = "PAYMENT_SUCCESSFUL"
    PAYMENT_FAILED = "PAYMENT_FAILED"
    PAYMENT_CANCELLED = "PAYMENT_CANCELLED"


@dataclass(frozen=True, kw_only=True)
class BasePaymentEvent:
    type: ClassVar[PaymentEventType]

    transaction_id: str
    transaction_reference: str
    transaction_amount: int
    transaction_currency: Currency
    payment_method: Optional[PaymentMethod] = None
    metadata: Optional[dict[str, Any]] = None
    payment_provider: Optional[str] = None


@dataclass(frozen=True, kw_only=True)
class PaymentInitiatedEvent(BasePaymentEvent):
    type: ClassVar[PaymentEventType] = PaymentEventType.PAYMENT_INITIATED

    redirect_url: Optional[str] = None


@dataclass(frozen=True, kw_only=True)
class PaymentSuccessfulEvent(BasePaymentEvent):
    type: ClassVar[PaymentEventType] = PaymentEventType.PAYMENT_SUCCESSFUL


@dataclass(frozen=True, kw_only=True)
class PaymentFailedEvent(BasePaymentEvent):
    type: ClassVar[PaymentEventType] = PaymentEventType.PAYMENT_FAILED

    reason: str


@dataclass(frozen=True, kw_only=True)
class PaymentCancelledEvent(BasePaymentEvent):
    type: ClassVar[PaymentEventType] = PaymentEventType.PAYMENT_CANCELLED

    reason: str


PaymentEvent = Union[
    PaymentInitiatedEvent,
    PaymentSuccessfulEvent,
    PaymentFailedEvent,
    PaymentCancelledEvent,
]

EventListener = Callable[[PaymentEvent], Any]


@runtime_checkable
class EventSink(Protocol):
    def emit(self, event_type: PaymentEventType, event: PaymentEvent) -> Any: ...


class EventEmitter:
    """
    Listener registry keyed by event type.

    Usage:
        emitter = EventEmitter()
        emitter.on(PaymentEventType.PAYMENT_SUCCESSFUL, mark_order_paid)
        emitter.on_all(audit_log)
        emitter.emit(PaymentEventType.PAYMENT_SUCCESSFUL, event)
    """

    def __init__(self) -> None:
        self._listeners: list[tuple[Optional[PaymentEventType], EventListener]] = []

    def on(self, event_type: PaymentEventType | str, listener: EventListener) -> EventEmitter:
        self._listeners.append((PaymentEventType(event_type), listener))
        return self

    def on_all(self, listener: EventListener) -> EventEmitter:
        self._listeners.append((None, listener))
        return self

    def off(self, listener: EventListener) -> EventEmitter:
        self._listeners = [(t, fn) for (t, fn) in self._listeners if fn != listener]
        return self

    def listener_count(self, event_type: PaymentEventType | str | None = None) -> int:
        if event_type is None:
            return len(self._listeners)
        wanted = PaymentEventType(event_type)
        return sum(1 for (t, _) in self._listeners if t is None or t == wanted)

    def emit(self, event_type: PaymentEventType | str, event: PaymentEvent) -> list[Exception]:
        """Returns the exceptions raised by listeners (already logged)."""
        event_type = PaymentEventType(event_type)
        errors: list[Exception] = []

        # snapshot so a listener may unsubscribe itself while being called
        for registered_type, listener in list(self._listeners):
            if registered_type is not None and registered_type != event_type:
                continue
            try:
                listener(event)
            except Exception as exc:
                logger.exception(
                    "event listener failed listener=%r event_type=%s transaction_id=%s",
                    listener,
                    event_type.value,
                    getattr(event, "transaction_id", None),
                )
                errors.append(exc)

        return errors


def publish(sink: Optional[EventSink], event: PaymentEvent) -> None:
    if sink is None:
        return
    try:
        sink.emit(event.type, event)
    except Exception:
        logger.exception(
            "event sink failed sink=%r event_type=%s transaction_id=%s",
            sink,
            event.type.value,
            event.transaction_id,
        )
