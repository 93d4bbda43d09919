"""
Outbound notifications.
Services publish only after their transaction commits; delivery happens on a
background worker and a failing sink is logged, never raised to the caller.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import List, Optional

import requests

from focusbot.constants import DEFAULT_WEBHOOK_TIMEOUT_SECONDS

logger = logging.getLogger("focusbot.notifications")


@dataclass
class Notification:
    """A formatted message for the chat platform"""
    kind: str                  # leaderboard, reminder, buddy_progress, digest, ...
    title: str
    lines: List[str] = field(default_factory=list)
    mentions: List[str] = field(default_factory=list)   # account ids to ping
    footer: Optional[str] = None

    def to_payload(self) -> dict:
        return {
            "kind": self.kind,
            "title": self.title,
            "description": "\n".join(self.lines),
            "mentions": self.mentions,
            "footer": self.footer,
        }


class NotificationSink:
    """Delivers a notification to a destination (channel id, webhook URL, ...)"""

    def send(self, destination: str, notification: Notification) -> None:
        raise NotImplementedError


class LoggingSink(NotificationSink):
    """Writes notifications to the log; default when no platform is wired in"""

    def send(self, destination: str, notification: Notification) -> None:
        logger.info(f"[{destination}] {notification.title}: {' | '.join(notification.lines)}")


class WebhookSink(NotificationSink):
    """POSTs the notification as JSON to the destination URL"""

    def __init__(self, timeout: float = DEFAULT_WEBHOOK_TIMEOUT_SECONDS):
        self.timeout = timeout

    def send(self, destination: str, notification: Notification) -> None:
        r = requests.post(destination, json=notification.to_payload(), timeout=self.timeout)
        r.raise_for_status()


class NotificationService:
    """Fire-and-forget publisher in front of a sink"""

    def __init__(self, sink: Optional[NotificationSink] = None, asynchronous: bool = True):
        self.sink = sink or LoggingSink()
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="notify") if asynchronous else None

    def publish(self, destination: Optional[str], notification: Notification) -> bool:
        """
        Queue a notification for delivery.

        Args:
            destination: Where to deliver; None means "not configured" and is a no-op
            notification: What to deliver

        Returns:
            True if the notification was handed to the sink
        """
        if not destination:
            logger.debug(f"No destination for {notification.kind} notification, skipping")
            return False

        if self._executor is None:
            self._deliver(destination, notification)
        else:
            self._executor.submit(self._deliver, destination, notification)
        return True

    def _deliver(self, destination: str, notification: Notification) -> None:
        try:
            self.sink.send(destination, notification)
        except Exception as e:
            logger.error(f"Failed to deliver {notification.kind} notification to {destination}: {e}")

    def shutdown(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
