"""Synchronous in-process publish/subscribe for arrival events."""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable
from typing import NewType

from platenotify.models.arrival import ArrivalEvent

_logger = logging.getLogger(__name__)

SubscriptionToken = NewType("SubscriptionToken", int)
ArrivalHandler = Callable[[ArrivalEvent], None]
ErrorSink = Callable[[ArrivalHandler, ArrivalEvent, Exception], None]


def _log_handler_error(handler: ArrivalHandler, event: ArrivalEvent, exc: Exception) -> None:
    _logger.warning(
        "Arrival handler %r failed for plate %s",
        handler,
        event.plate_number,
        exc_info=exc,
    )


class EventBus:
    """Fan out arrival events to subscribed handlers.

    ``publish`` calls every handler subscribed at the time of the call, in
    subscription order, before returning. There is no queue and no replay:
    a handler subscribed after a publish never sees that event. A handler
    that raises is reported to ``on_handler_error`` and the remaining
    handlers still run.
    """

    def __init__(self, *, on_handler_error: ErrorSink | None = None) -> None:
        self._handlers: dict[SubscriptionToken, ArrivalHandler] = {}
        self._tokens = itertools.count(1)
        self._on_handler_error = on_handler_error or _log_handler_error

    def __len__(self) -> int:
        return len(self._handlers)

    def subscribe(self, handler: ArrivalHandler) -> SubscriptionToken:
        token = SubscriptionToken(next(self._tokens))
        self._handlers[token] = handler
        return token

    def unsubscribe(self, token: SubscriptionToken) -> bool:
        """Remove a subscription. Returns ``False`` if *token* was unknown."""
        return self._handlers.pop(token, None) is not None

    def publish(self, event: ArrivalEvent) -> int:
        """Deliver *event* and return the number of handlers that succeeded."""
        delivered = 0
        # Snapshot so handlers may (un)subscribe while being called.
        for handler in list(self._handlers.values()):
            try:
                handler(event)
            except Exception as exc:
                self._report(handler, event, exc)
                continue
            delivered += 1
        return delivered

    def _report(self, handler: ArrivalHandler, event: ArrivalEvent, exc: Exception) -> None:
        try:
            self._on_handler_error(handler, event, exc)
        except Exception:
            _logger.debug("Arrival error sink failed", exc_info=True)
