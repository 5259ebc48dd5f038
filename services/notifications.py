"""
User-facing notifications.

Workflow code reports outcomes through a ``notify(title, description,
variant)`` callable instead of talking to a UI.  The default implementation
logs the message and keeps the most recent ones in memory so a front end can
poll ``GET /notifications`` and render them as toasts.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Deque, List

logger = logging.getLogger(__name__)

DEFAULT = "default"
DESTRUCTIVE = "destructive"

Notifier = Callable[[str, str, str], None]


@dataclass
class Notification:
    title: str
    description: str
    variant: str = DEFAULT
    created_at: datetime = field(default_factory=datetime.utcnow)


_FEED: Deque[Notification] = deque(maxlen=100)


def notify(title: str, description: str, variant: str = DEFAULT) -> None:
    """Record a notification for the UI."""
    if variant == DESTRUCTIVE:
        logger.warning("Notification [%s]: %s", title, description)
    else:
        logger.info("Notification [%s]: %s", title, description)
    _FEED.append(Notification(title=title, description=description, variant=variant))


def recent_notifications(limit: int = 20) -> List[Notification]:
    """Newest first."""
    return list(reversed(_FEED))[:limit]


def clear_notifications() -> None:
    _FEED.clear()
