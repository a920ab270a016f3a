from __future__ import annotations
from datetime import datetime

from sqlalchemy import String, DateTime, func, JSON
from sqlalchemy.orm import Mapped, mapped_column

from ..db import Base

class AnalyticsEvent(Base):
    __tablename__ = "analytics_events"

    id: Mapped[int] = mapped_column(primary_key=True)
    # upload | share_created | reveal_started | reveal_viewed | share_expired | error
    event_type: Mapped[str] = mapped_column(String(32), index=True)

    user_agent: Mapped[str | None] = mapped_column(String(512), nullable=True)
    ip: Mapped[str | None] = mapped_column(String(64), nullable=True)
    device_type: Mapped[str] = mapped_column(String(16), default="desktop")
    source: Mapped[str] = mapped_column(String(32), default="web")
    meta: Mapped[dict] = mapped_column(JSON, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
