"""Project Events — notifies observers about committed project changes.

Invariants:
    - publish() is only called after the unit of work committed
    - A failing subscriber never undoes or fails the committed change

Design Decisions:
    - Logging publisher by default: observers (websocket push, mail) plug in as
      subscribers without touching the services
"""

import logging
from typing import Awaitable, Callable

from stm.core.domain_types import ProjectEvent

logger = logging.getLogger(__name__)

Subscriber = Callable[[ProjectEvent], Awaitable[None]]


class LoggingEventPublisher:
    """Logs every event and fans it out to registered subscribers."""

    def __init__(self):
        self._subscribers: list[Subscriber] = []

    def subscribe(self, subscriber: Subscriber) -> None:
        self._subscribers.append(subscriber)

    async def publish(self, event: ProjectEvent) -> None:
        logger.info(
            f"Project event {event.type.value}",
            extra={
                "event": event.type.value, "project_id": event.project_id,
                "user": event.user, "actor": event.actor,
            },
        )
        for subscriber in self._subscribers:
            try:
                await subscriber(event)
            except Exception as e:
                logger.error(
                    f"Project event subscriber failed: {e}", exc_info=True,
                    extra={"event": event.type.value, "project_id": event.project_id},
                )


event_publisher = LoggingEventPublisher()


def get_event_publisher() -> LoggingEventPublisher:
    """FastAPI dependency for the process-wide publisher."""
    return event_publisher
