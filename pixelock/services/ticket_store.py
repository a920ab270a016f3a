"""
Persistence for ticket rows.

Every state change is a single conditional UPDATE, so the guard (not used,
attempts left, not past expiry) and the write happen atomically in the
database instead of as a read-decide-write sequence in the app. Callers learn
from the returned bool whether their write won.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import StorageError
from ..logging_config import short_token
from ..models.ticket import Ticket

logger = logging.getLogger(__name__)


@contextmanager
def _storage(db: Session, what: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("ticket store %s failed: %s", what, exc)
        raise StorageError() from exc


def _redeemable(token: str, now: datetime):
    return (
        Ticket.token == token,
        Ticket.used == False,  # noqa: E712
        Ticket.attempts < Ticket.max_attempts,
        Ticket.expires_at >= now,
    )


def insert(db: Session, ticket: Ticket) -> Ticket:
    with _storage(db, "insert"):
        db.add(ticket)
        db.commit()
    return ticket


def get_by_token(db: Session, token: str) -> Ticket | None:
    with _storage(db, "lookup"):
        stmt = select(Ticket).where(Ticket.token == token).execution_options(populate_existing=True)
        return db.execute(stmt).scalar_one_or_none()


def record_failed_attempt(db: Session, token: str, now: datetime) -> bool:
    stmt = (
        update(Ticket)
        .where(*_redeemable(token, now))
        .values(attempts=Ticket.attempts + 1, last_failed_at=now)
        .execution_options(synchronize_session=False)
    )
    with _storage(db, "failed attempt"):
        res = db.execute(stmt)
        db.commit()
    if res.rowcount != 1:
        logger.info("failed attempt on %s lost to a concurrent change", short_token(token))
    return res.rowcount == 1


def mark_unlocked(db: Session, token: str, now: datetime) -> bool:
    # unlocked_at keeps the first successful match
    stmt = (
        update(Ticket)
        .where(*_redeemable(token, now))
        .values(unlocked_at=func.coalesce(Ticket.unlocked_at, now))
        .execution_options(synchronize_session=False)
    )
    with _storage(db, "unlock"):
        res = db.execute(stmt)
        db.commit()
    return res.rowcount == 1


def mark_used(db: Session, token: str) -> bool:
    """Flip used to true. Only the call that actually flipped it gets True."""
    stmt = (
        update(Ticket)
        .where(Ticket.token == token, Ticket.used == False)  # noqa: E712
        .values(used=True)
        .execution_options(synchronize_session=False)
    )
    with _storage(db, "mark used"):
        res = db.execute(stmt)
        db.commit()
    return res.rowcount == 1


def is_used(db: Session, token: str) -> bool:
    with _storage(db, "used check"):
        used = db.execute(select(Ticket.used).where(Ticket.token == token)).scalar_one_or_none()
    return bool(used)


def list_expired_unused(db: Session, now: datetime) -> list[Ticket]:
    stmt = (
        select(Ticket)
        .where(Ticket.used == False, Ticket.expires_at < now)  # noqa: E712
        .order_by(Ticket.expires_at)
        .execution_options(populate_existing=True)
    )
    with _storage(db, "expired scan"):
        return list(db.execute(stmt).scalars())


def delete_expired_before(db: Session, cutoff: datetime) -> int:
    stmt = (
        delete(Ticket)
        .where(Ticket.expires_at < cutoff)
        .execution_options(synchronize_session=False)
    )
    with _storage(db, "hard delete"):
        res = db.execute(stmt)
        db.commit()
    return res.rowcount or 0
