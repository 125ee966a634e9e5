"""
Status notifications

Notification is best-effort: it runs after the response has been sent and
its failures never reach the caller or touch the recorded status.
"""

import logging
from typing import Iterable, Optional

import httpx

from altiora.access.access_models import AccessStatus, StatusChange, StatusNotificationCallback

logger = logging.getLogger("app")


async def dispatch_status_notifications(
    callback: Optional[StatusNotificationCallback],
    changes: Iterable[StatusChange],
) -> None:
    """
    Invoke the callback once per change, discarding failures.

    Args:
        callback: Notification callback, or None when notifications are off
        changes: Status transitions to report
    """
    if callback is None:
        return

    for change in changes:
        try:
            await callback(change.email, change.status, change.old_status)
        except Exception:
            logger.warning(f"Status notification failed for {change.email}", exc_info=True)


class WebhookStatusNotifier:
    """POSTs each status change as JSON to a configured URL."""

    def __init__(self, url: str, timeout: float = 10.0):
        self.url = url
        self.timeout = timeout

    async def __call__(
        self,
        email: str,
        status: AccessStatus,
        old_status: Optional[AccessStatus] = None,
    ) -> None:
        payload = {
            "email": email,
            "status": status.value,
            "old_status": old_status.value if old_status else None,
        }
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(self.url, json=payload)
            response.raise_for_status()
        logger.debug(f"Status notification delivered for {email}")
