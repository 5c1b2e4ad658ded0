"""Lead models."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum


class LeadStatus(StrEnum):
    """Notification delivery status of a captured lead."""

    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


@dataclass
class Lead:
    """A contact email captured for one bot. Unique per (bot_id, email)."""

    bot_id: str
    email: str
    session_id: str
    name: str | None = None
    status: LeadStatus = LeadStatus.PENDING
    attempts: int = 0
    last_error: str | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    sent_at: datetime | None = None


@dataclass(frozen=True)
class LeadNotification:
    """Payload handed to the notifier."""

    email: str
    bot_name: str
    session_id: str
    captured_at: datetime
    name: str | None = None
