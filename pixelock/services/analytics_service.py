from __future__ import annotations

import logging
import re
from typing import Any, Dict

from fastapi import Request
from sqlalchemy.orm import Session

from ..models.analytics_event import AnalyticsEvent

logger = logging.getLogger(__name__)

EVENT_TYPES = {"upload", "share_created", "reveal_started", "reveal_viewed", "share_expired", "error"}
MOBILE_UA = re.compile(r"Mobi|Android|iPhone|iPad|iPod", re.IGNORECASE)


def _client_ip(request: Request) -> str | None:
    header = request.headers.get("x-forwarded-for") or request.headers.get("x-real-ip")
    if header:
        return header.split(",")[0].strip() or None
    return request.client.host if request.client else None


def device_type(user_agent: str | None) -> str:
    return "mobile" if user_agent and MOBILE_UA.search(user_agent) else "desktop"


def log_event(db: Session, request: Request, event_type: str, meta: Dict[str, Any] | None = None) -> None:
    """Record an analytics event. Failures are logged, never raised."""
    if event_type not in EVENT_TYPES:
        logger.warning("unknown analytics event type %r", event_type)
        return
    try:
        ua = request.headers.get("user-agent")
        db.add(
            AnalyticsEvent(
                event_type=event_type,
                user_agent=ua[:512] if ua else None,
                ip=_client_ip(request),
                device_type=device_type(ua),
                source="web",
                meta=meta or {},
            )
        )
        db.commit()
    except Exception:  # noqa: BLE001
        db.rollback()
        logger.warning("analytics log_event failed for %s", event_type, exc_info=True)
