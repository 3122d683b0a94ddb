"""
In-process publish/subscribe for status changes and power actions.
"""

import logging
from collections import defaultdict
from typing import Any, Callable, DefaultDict, List, Type

from upsnap_core.common.utility import LoggerMixin
from upsnap_core.core.application.events.base_event import BaseEvent

EventHandler = Callable[[Any], None]


class EventBus(LoggerMixin):
    """
    Dispatches events synchronously to the handlers registered for their exact type.

    Attributes:
        _subscribers (DefaultDict[Type[BaseEvent], List[EventHandler]]):
            Handlers per event class, in registration order.
    """

    _subscribers: DefaultDict[Type[BaseEvent], List[EventHandler]]

    def __init__(self, *, logger: logging.Logger) -> None:
        self._subscribers = defaultdict(list)
        self._build_logger(logger=logger)

    def subscribe(
        self, event_type: Type[BaseEvent], handler: EventHandler
    ) -> Callable[[], None]:
        """
        Register ``handler`` for ``event_type``.

        Returns:
            Callable[[], None]: Removes the registration again; calling it twice is harmless.
        """
        self._subscribers[event_type].append(handler)

        def unsubscribe() -> None:
            handlers = self._subscribers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def publish(self, event: BaseEvent) -> None:
        """
        Deliver ``event`` to its handlers.

        A failing handler is logged and does not prevent the remaining handlers
        from running.
        """
        handlers = list(self._subscribers.get(type(event), []))

        if not handlers:
            self._logger.debug("No subscribers for %s: %r", event.name, event)
            return

        for handler in handlers:
            try:
                handler(event)
            except Exception:
                self._logger.exception("Handler %r failed for %s", handler, event.name)
