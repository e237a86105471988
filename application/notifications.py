"""Notifications - fire-and-forget delivery of booking and wallet events"""
import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, List, Optional, Set
from uuid import UUID

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class Notification(BaseModel):
    """Event handed to the notifier after a transaction commits"""
    user_id: UUID
    type: str
    title: str
    body: str
    reference_type: Optional[str] = None
    reference_id: Optional[UUID] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        frozen = True


class Notifier(ABC):
    """Outbound notification channel"""

    @abstractmethod
    async def notify(self, notification: Notification) -> None:
        pass


class LoggingNotifier(Notifier):
    """Default channel: writes notifications to the application log"""

    async def notify(self, notification: Notification) -> None:
        logger.info(
            "Notification for user %s [%s]: %s",
            notification.user_id, notification.type, notification.title
        )


class NotificationDispatcher:
    """Schedules deliveries as background tasks; failures never reach the caller"""

    def __init__(self, notifier: Notifier):
        self.notifier = notifier
        self._tasks: Set[asyncio.Task] = set()

    def dispatch(self, notifications: Iterable[Notification]) -> None:
        for notification in notifications:
            task = asyncio.get_running_loop().create_task(self._deliver(notification))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def _deliver(self, notification: Notification) -> None:
        try:
            await self.notifier.notify(notification)
        except Exception:
            logger.warning(
                "Failed to deliver %s notification to user %s",
                notification.type, notification.user_id, exc_info=True
            )

    async def drain(self) -> None:
        """Wait for every pending delivery"""
        pending: List[asyncio.Task] = list(self._tasks)
        if pending:
            await asyncio.gather(*pending)


# ============================================================================
# EVENT BUILDERS
# ============================================================================

def booking_event(user_id: UUID, booking_id: UUID, type: str, title: str, body: str) -> Notification:
    return Notification(
        user_id=user_id,
        type=type,
        title=title,
        body=body,
        reference_type="booking",
        reference_id=booking_id
    )


def wallet_event(user_id: UUID, request_id: UUID, reference_type: str, type: str, title: str, body: str) -> Notification:
    return Notification(
        user_id=user_id,
        type=type,
        title=title,
        body=body,
        reference_type=reference_type,
        reference_id=request_id
    )
