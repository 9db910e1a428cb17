"""
Fire-and-forget notifications.

E-mails are sent by hosted Supabase functions. Nothing here may undo a
committed workflow change: failures come back as warning strings for the
initiating user.
"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Any, Optional, Protocol
from urllib.parse import urlencode

import httpx

from salesdesk.config import Settings, get_settings
from salesdesk.errors import NotificationError

logger = logging.getLogger(__name__)

CONVERSION_DECISION_FUNCTION = "send-conversion-decision"
VISIT_REMINDER_FUNCTION = "send-visit-reminder"
GOOGLE_CALENDAR_URL = "https://calendar.google.com/calendar/render"


class Notifier(Protocol):
    async def send(self, function_name: str, payload: dict[str, Any]) -> None:
        ...


class SupabaseFunctionNotifier:
    """Invokes ``{SUPABASE_URL}/functions/v1/<name>`` with a JSON body."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._client = client

    @property
    def enabled(self) -> bool:
        return bool(self.settings.supabase_url and self.settings.supabase_key)

    async def send(self, function_name: str, payload: dict[str, Any]) -> None:
        if not self.enabled:
            logger.debug(f"Notifications disabled, skipping {function_name}")
            return

        url = f"{self.settings.supabase_url.rstrip('/')}/functions/v1/{function_name}"
        headers = {
            "apikey": self.settings.supabase_key,
            "Authorization": f"Bearer {self.settings.supabase_key}",
            "Content-Type": "application/json",
        }
        client = self._client or httpx.AsyncClient(timeout=10.0)
        try:
            response = await client.post(url, headers=headers, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise NotificationError(f"{function_name} failed: {exc}") from exc
        finally:
            if self._client is None:
                await client.aclose()


async def dispatch(notifier: Optional[Notifier], function_name: str, payload: dict[str, Any]) -> Optional[str]:
    """
    Send a notification, downgrading any failure to a warning.

    Returns:
        Warning message, or None when the notification went out
    """
    if notifier is None:
        return None
    try:
        await notifier.send(function_name, payload)
    except NotificationError as exc:
        logger.warning(f"Notification {function_name} failed: {exc.message}")
        return f"Saved, but the {function_name} notification failed to send"
    except Exception as exc:
        logger.warning(f"Notification {function_name} failed unexpectedly: {exc}")
        return f"Saved, but the {function_name} notification failed to send"
    return None


def build_calendar_url(
    title: str,
    on_date: date,
    start: Optional[time] = None,
    duration_minutes: int = 60,
    details: str = "",
) -> str:
    """Google Calendar "add event" link for a scheduled visit."""
    starts_at = datetime.combine(on_date, start or time(9, 0))
    ends_at = starts_at + timedelta(minutes=duration_minutes or 60)
    fmt = "%Y%m%dT%H%M%S"
    params = {
        "action": "TEMPLATE",
        "text": title,
        "dates": f"{starts_at.strftime(fmt)}/{ends_at.strftime(fmt)}",
        "details": details,
    }
    return f"{GOOGLE_CALENDAR_URL}?{urlencode(params)}"


_notifier: Optional[SupabaseFunctionNotifier] = None


def get_notifier() -> SupabaseFunctionNotifier:
    """FastAPI dependency for the shared notifier."""
    global _notifier
    if _notifier is None:
        _notifier = SupabaseFunctionNotifier()
    return _notifier
