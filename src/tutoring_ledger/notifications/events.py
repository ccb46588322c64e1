"""Outbound events for the external notification service.

The core only emits events; delivery (push, SMS) belongs to the notification
service behind the EventPublisher port.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubstitutionEvent:
    contract_id: int
    student_id: int
    reservation_id: int
    original_at: datetime
    previous_at: datetime
    new_at: datetime
    reason: Optional[str] = None
    restored: bool = False

    def to_payload(self) -> dict:
        return {
            "type": "lesson.restored" if self.restored else "lesson.substituted",
            "contract_id": self.contract_id,
            "student_id": self.student_id,
            "reservation_id": self.reservation_id,
            "original_at": self.original_at.isoformat(),
            "previous_at": self.previous_at.isoformat(),
            "new_at": self.new_at.isoformat(),
            "reason": self.reason,
        }


class EventPublisher(Protocol):
    def publish(self, event: SubstitutionEvent) -> None:
        raise NotImplementedError


class LoggingEventPublisher(EventPublisher):
    """Default adapter: records the event in the application log."""

    def publish(self, event: SubstitutionEvent) -> None:
        logger.info("Notification event %s", event.to_payload())
