"""
Fire-and-forget publish/subscribe for workspace updates.

Publishing to nobody is fine; a subscriber that fails is logged and skipped.
There is no delivery guarantee.
"""

from typing import Any, Awaitable, Callable

from pydantic import BaseModel, Field

from tabmind.config import get_logger

logger = get_logger(__name__)


WORKSPACE_UPDATED = "WORKSPACE_UPDATED"


class WorkspaceEvent(BaseModel):
    """A notification pushed to subscribers."""

    type: str
    data: dict[str, Any] = Field(default_factory=dict)


Subscriber = Callable[[WorkspaceEvent], Awaitable[None]]


class Broadcaster:
    """Delivers events to zero or more async subscribers."""

    def __init__(self):
        self._subscribers: list[Subscriber] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register a subscriber.

        Returns:
            A function that removes the subscription
        """
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    async def publish(self, event: WorkspaceEvent) -> int:
        """
        Deliver an event to every current subscriber.

        Returns:
            Number of subscribers that accepted the event
        """
        delivered = 0
        for callback in list(self._subscribers):
            try:
                await callback(event)
                delivered += 1
            except Exception as e:
                logger.warning(f"Subscriber failed to receive {event.type}: {e}")
        return delivered
