from __future__ import annotations
from datetime import datetime

from sqlalchemy import String, DateTime, func, Boolean, Integer
from sqlalchemy.orm import Mapped, mapped_column

from ..db import Base

class Ticket(Base):
    __tablename__ = "tickets"

    id: Mapped[int] = mapped_column(primary_key=True)
    # public share handle, embedded in the share url
    token: Mapped[str] = mapped_column(String(64), unique=True, index=True)
    object_path: Mapped[str] = mapped_column(String(512))
    pin_hash: Mapped[str] = mapped_column(String(128))

    # naive UTC throughout
    expires_at: Mapped[datetime] = mapped_column(DateTime, index=True)
    reveal_seconds: Mapped[int] = mapped_column(Integer, default=15)

    attempts: Mapped[int] = mapped_column(Integer, default=0)
    max_attempts: Mapped[int] = mapped_column(Integer, default=5)
    used: Mapped[bool] = mapped_column(Boolean, default=False, index=True)

    unlocked_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    last_failed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
