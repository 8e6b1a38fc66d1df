"""
Event bus for the hijacksim simulator.

The orchestrator publishes progress here (one ``trial.completed`` event
per merged trial) and never prints or renders anything itself. Whatever
wants to show progress, a CLI status line or a test spy, subscribes,
either to every event or to a single event type.

Delivery is synchronous, in the parent process only, in registration
order.
"""

from collections.abc import Callable
from typing import Any

Event = dict[str, Any]
Subscriber = Callable[[Event], None]

TRIAL_COMPLETED = "trial.completed"


class EventBus:
    """
    Publish-subscribe bus keyed by ``event_type``.

    If a subscriber raises, delivery stops and the error reaches the
    publisher, which for the trial runner aborts the batch.
    """

    def __init__(self) -> None:
        self._subscribers: list[tuple[str | None, Subscriber]] = []
        self._closed: bool = False

    def subscribe(self, handler: Subscriber, event_type: str | None = None) -> None:
        """
        Register ``handler`` for one event type, or for all when None.
        """
        if self._closed:
            raise RuntimeError("Cannot subscribe to a closed event bus")

        self._subscribers.append((event_type, handler))

    def publish(self, event: Event) -> None:
        if self._closed:
            raise RuntimeError("Cannot publish to a closed event bus")

        event_type = event.get("event_type")
        if not event_type:
            raise ValueError(f"Event without an event_type: {event!r}")

        for wanted, handler in list(self._subscribers):
            if wanted is None or wanted == event_type:
                handler(event)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def close(self) -> None:
        """
        Close the bus once a batch is over; later use is an error.
        """
        self._closed = True
