"""Synchronous in-process bus for step lifecycle events."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable
from typing import Callable

from pydantic import BaseModel

from labsched.utils.logger import get_logger

logger = get_logger(__name__)

Handler = Callable[[BaseModel], None]


class EventBus:
    """Routes each domain event to the handlers subscribed to its exact type.

    Handlers run synchronously in registration order, so by the time a
    mutation returns its timeline entries are already written. A handler
    that raises stops delivery and the error reaches the caller.
    """

    def __init__(self) -> None:
        self._handlers: dict[type[BaseModel], list[Handler]] = defaultdict(list)

    def subscribe(self, event_type: type[BaseModel], handler: Handler) -> None:
        self._handlers[event_type].append(handler)

    def publish(self, event: BaseModel) -> None:
        handlers = self._handlers.get(type(event), [])
        if not handlers:
            logger.debug("No handlers for %s", type(event).__name__)
        for handler in handlers:
            handler(event)

    def publish_all(self, events: Iterable[BaseModel]) -> None:
        """Publish several events from one commit, in the order given."""
        for event in events:
            self.publish(event)
