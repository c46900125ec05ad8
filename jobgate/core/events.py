"""
Metering events.

The core emits CreditConsumed / LimitExceeded; notifiers (email, audit,
analytics) subscribe. Subscriber failures are logged and never affect the
ledger mutation that produced the event.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, List, Optional, Union

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CreditConsumed:
    user_id: int
    billing_owner_id: int
    resource_type: str
    amount: int
    source: str
    used: Optional[int] = None
    limit: Optional[int] = None
    new_balance: Optional[int] = None
    occurred_at: datetime = field(default_factory=_now)


@dataclass(frozen=True)
class LimitExceeded:
    user_id: int
    billing_owner_id: int
    resource_type: str
    amount: int
    used: Optional[int] = None
    limit: Optional[int] = None
    occurred_at: datetime = field(default_factory=_now)


MeteringEvent = Union[CreditConsumed, LimitExceeded]
Subscriber = Callable[[MeteringEvent], None]


class EventBus:
    """In-process fan-out of metering events to registered subscribers."""

    def __init__(self):
        self._subscribers: List[Subscriber] = []

    def subscribe(self, handler: Subscriber) -> Subscriber:
        self._subscribers.append(handler)
        return handler

    def unsubscribe(self, handler: Subscriber) -> None:
        if handler in self._subscribers:
            self._subscribers.remove(handler)

    def emit(self, event: MeteringEvent) -> None:
        for handler in list(self._subscribers):
            try:
                handler(event)
            except Exception:
                logger.exception(
                    f"Metering event subscriber failed: handler={getattr(handler, '__name__', handler)}, "
                    f"event={type(event).__name__}"
                )


def log_metering_event(event: MeteringEvent) -> None:
    """Default subscriber: structured log line per event."""
    if isinstance(event, CreditConsumed):
        logger.info(
            f"Credit consumed: user_id={event.user_id}, owner_id={event.billing_owner_id}, "
            f"resource={event.resource_type}, amount={event.amount}, source={event.source}, "
            f"used={event.used}/{event.limit or 'unlimited'}, balance={event.new_balance}"
        )
    elif isinstance(event, LimitExceeded):
        logger.warning(
            f"Limit exceeded: user_id={event.user_id}, owner_id={event.billing_owner_id}, "
            f"resource={event.resource_type}, amount={event.amount}, "
            f"used={event.used}, limit={event.limit}"
        )


event_bus = EventBus()
event_bus.subscribe(log_metering_event)
