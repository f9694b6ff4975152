"""Project Events — fan-out to subscribers after commit."""

import logging

from stm.core.domain_types import ProjectEvent, ProjectEventType, ProjectId, UserId
from stm.infrastructure.project_events import LoggingEventPublisher

EVENT = ProjectEvent(
    ProjectEventType.USER_ADDED, ProjectId("p1"), UserId("carol"), UserId("alice"),
)


async def test_subscribers_receive_events():
    publisher = LoggingEventPublisher()
    received = []

    async def subscriber(event):
        received.append(event)

    publisher.subscribe(subscriber)
    await publisher.publish(EVENT)
    assert received == [EVENT]


async def test_failing_subscriber_does_not_stop_others(caplog):
    publisher = LoggingEventPublisher()
    received = []

    async def broken(event):
        raise RuntimeError("mail server down")

    async def working(event):
        received.append(event)

    publisher.subscribe(broken)
    publisher.subscribe(working)
    with caplog.at_level(logging.ERROR):
        await publisher.publish(EVENT)

    assert received == [EVENT]
    assert "subscriber failed" in caplog.text
