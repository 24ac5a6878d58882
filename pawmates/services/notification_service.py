"""
Notification Dispatch
Informs the outside world of session events after the core transition has
committed. Delivery is fire-and-forget: failures are logged and never
propagate back into the booking or session workflow.
"""

import logging
from datetime import datetime
from typing import Optional

import httpx

from ..config import NOTIFICATION_TIMEOUT_SECONDS, NOTIFICATION_WEBHOOK_URL

logger = logging.getLogger(__name__)

SESSION_CREATED = "session_created"
SERVICE_STARTED = "service_started"
SERVICE_COMPLETED = "service_completed"
SESSION_CANCELLED = "session_cancelled"


async def send_notification(
    event_type: str,
    recipient_ids: list[str],
    title: str,
    body: str,
    data: Optional[dict] = None,
    webhook_url: Optional[str] = NOTIFICATION_WEBHOOK_URL,
) -> dict:
    """
    Deliver one notification event.

    Args:
        event_type: One of the event constants above
        recipient_ids: Users to notify (owner and/or sitter ids)
        title: Short headline
        body: Message text
        data: Extra payload for the client app
        webhook_url: Notification sink; when unset the event is only logged

    Returns:
        Dict with sent flag and error (if any)
    """
    result = {"sent": False, "error": None}
    recipients = [r for r in recipient_ids if r]

    if not recipients:
        logger.debug(f"⚠️ No recipients for {event_type} notification")
        return result

    if not webhook_url:
        logger.info(f"📣 {event_type} for {recipients}: {title}")
        return result

    payload = {
        "event": event_type,
        "recipients": recipients,
        "title": title,
        "body": body,
        "data": data or {},
        "sent_at": datetime.utcnow().isoformat(),
    }

    try:
        async with httpx.AsyncClient(timeout=NOTIFICATION_TIMEOUT_SECONDS) as http_client:
            response = await http_client.post(webhook_url, json=payload)
            response.raise_for_status()
        result["sent"] = True
        logger.info(f"✅ {event_type} notification sent to {len(recipients)} recipient(s)")
    except Exception as e:
        result["error"] = str(e)
        logger.error(f"❌ Failed to send {event_type} notification: {e}")

    return result


async def notify_sessions_created(owner_id: str, booking_id: str, session_count: int) -> dict:
    return await send_notification(
        SESSION_CREATED,
        [owner_id],
        "Booking Confirmed",
        f"Your booking has been created with {session_count} session(s).",
        {"booking_id": booking_id, "sessions": session_count},
    )


async def notify_service_started(owner_id: str, session_id: str) -> dict:
    return await send_notification(
        SERVICE_STARTED,
        [owner_id],
        "Service Started",
        "Your pet care service has started.",
        {"session_id": session_id},
    )


async def notify_service_completed(
    owner_id: str, sitter_id: Optional[str], session_id: str, earnings: float
) -> dict:
    return await send_notification(
        SERVICE_COMPLETED,
        [owner_id, sitter_id],
        "Service Completed",
        "Your pet care service has been completed.",
        {"session_id": session_id, "earnings": earnings},
    )


async def notify_session_cancelled(
    owner_id: str, sitter_id: Optional[str], session_id: str, refund_amount: Optional[float]
) -> dict:
    return await send_notification(
        SESSION_CANCELLED,
        [owner_id, sitter_id],
        "Session Cancelled",
        "A pet care session has been cancelled.",
        {"session_id": session_id, "refund_amount": refund_amount},
    )
