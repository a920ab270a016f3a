from __future__ import annotations

import enum
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Session

from ..config import settings
from ..errors import GoneError, LockedError, NotFoundError, StorageError, UnauthorizedError, ValidationError
from ..logging_config import short_token
from ..models.ticket import Ticket
from . import ticket_store
from .blob_store import BlobStore
from .secrets_service import generate_pin, generate_token, hash_pin, pins_match

logger = logging.getLogger(__name__)

MAX_TTL_HOURS = 24 * 366
MAX_REVEAL_SECONDS = 60 * 60
MAX_ATTEMPTS_CAP = 100


def _now() -> datetime:
    # naive UTC, matching what the tickets table stores
    return datetime.now(timezone.utc).replace(tzinfo=None)


class TicketStatus(str, enum.Enum):
    ACTIVE = "active"
    UNLOCKED = "unlocked"
    LOCKED_OUT = "locked_out"
    EXPIRED_TIME = "expired_time"
    USED = "used"


def ticket_status(ticket: Ticket, now: datetime) -> TicketStatus:
    """Status from the stored flags, in precedence order used > expired > locked."""
    if ticket.used:
        return TicketStatus.USED
    if now > ticket.expires_at:
        return TicketStatus.EXPIRED_TIME
    if ticket.attempts >= ticket.max_attempts:
        return TicketStatus.LOCKED_OUT
    if ticket.unlocked_at is not None:
        return TicketStatus.UNLOCKED
    return TicketStatus.ACTIVE


@dataclass(frozen=True)
class CreatedTicket:
    token: str
    pin: str
    expires_at: datetime
    reveal_seconds: int


@dataclass(frozen=True)
class Redemption:
    signed_url: str
    reveal_seconds: int


@dataclass(frozen=True)
class PurgeResult:
    expired: int
    deleted: int


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def describe_ticket(ticket: Ticket, now: datetime | None = None) -> dict:
    """Operator view of a ticket. Leaves out the pin digest."""
    return {
        "status": ticket_status(ticket, now or _now()).value,
        "object_path": ticket.object_path,
        "expires_at": _iso(ticket.expires_at),
        "reveal_seconds": ticket.reveal_seconds,
        "attempts": ticket.attempts,
        "max_attempts": ticket.max_attempts,
        "used": ticket.used,
        "unlocked_at": _iso(ticket.unlocked_at),
        "last_failed_at": _iso(ticket.last_failed_at),
    }


def _raise_for_status(status: TicketStatus) -> None:
    if status == TicketStatus.USED:
        raise GoneError("used")
    if status == TicketStatus.EXPIRED_TIME:
        raise GoneError("expired")
    if status == TicketStatus.LOCKED_OUT:
        raise LockedError()


def create_ticket(
    db: Session,
    object_path: str,
    ttl_hours: float | None = None,
    reveal_seconds: int | None = None,
    max_attempts: int | None = None,
) -> CreatedTicket:
    """
    Mint a ticket for an already stored object.

    The plaintext pin is only ever in the return value; the row keeps its
    digest.
    """
    object_path = (object_path or "").strip()
    if not object_path:
        raise ValidationError("Missing object_path")

    hours = settings.LINK_TTL_HOURS if ttl_hours is None else ttl_hours
    reveal = settings.REVEAL_SECONDS if reveal_seconds is None else reveal_seconds
    cap = settings.MAX_ATTEMPTS if max_attempts is None else max_attempts
    if not 0 <= hours <= MAX_TTL_HOURS or not math.isfinite(hours):
        raise ValidationError("Invalid ttl_hours")
    if not 0 < reveal <= MAX_REVEAL_SECONDS:
        raise ValidationError("Invalid reveal_seconds")
    if not 0 < cap <= MAX_ATTEMPTS_CAP:
        raise ValidationError("Invalid max_attempts")

    token = generate_token(settings.TOKEN_LENGTH)
    pin = generate_pin()
    try:
        expires_at = _now() + timedelta(hours=hours)
    except OverflowError:
        raise ValidationError("Invalid ttl_hours") from None

    ticket = Ticket(
        token=token,
        object_path=object_path,
        pin_hash=hash_pin(pin, settings.PIN_PEPPER),
        expires_at=expires_at,
        reveal_seconds=int(reveal),
        attempts=0,
        max_attempts=int(cap),
        used=False,
    )
    ticket_store.insert(db, ticket)
    logger.info("created ticket %s for %s, expires %s", short_token(token), object_path, expires_at.isoformat())
    return CreatedTicket(token=token, pin=pin, expires_at=expires_at, reveal_seconds=ticket.reveal_seconds)


def redeem_ticket(db: Session, blobs: BlobStore, token: str, pin: str) -> Redemption:
    if not token or not pin:
        raise ValidationError("Missing token or pin")

    try:
        ticket = ticket_store.get_by_token(db, token)
    except StorageError as exc:
        raise NotFoundError() from exc
    if ticket is None:
        raise NotFoundError()

    now = _now()
    _raise_for_status(ticket_status(ticket, now))

    if not pins_match(pin, ticket.pin_hash, settings.PIN_PEPPER):
        if not ticket_store.record_failed_attempt(db, token, now):
            # someone else changed the row between our read and write
            fresh = ticket_store.get_by_token(db, token)
            if fresh is None:
                raise NotFoundError()
            _raise_for_status(ticket_status(fresh, now))
        logger.info("incorrect pin for %s", short_token(token))
        raise UnauthorizedError()

    if not ticket_store.mark_unlocked(db, token, now):
        fresh = ticket_store.get_by_token(db, token)
        if fresh is None:
            raise NotFoundError()
        _raise_for_status(ticket_status(fresh, now))
        raise GoneError("expired")

    signed_url = blobs.presign_get(ticket.object_path, settings.SIGNED_URL_TTL_SECONDS)

    # an expire that landed while we were signing wins
    if ticket_store.is_used(db, token):
        logger.info("ticket %s expired during unlock, withholding url", short_token(token))
        raise GoneError("used")

    logger.info("unlocked ticket %s", short_token(token))
    return Redemption(signed_url=signed_url, reveal_seconds=ticket.reveal_seconds)


def expire_ticket(db: Session, blobs: BlobStore, token: str) -> bool:
    """
    Invalidate a ticket and drop its object. Returns the `ok` flag.

    Never raises for storage trouble: the caller is usually an unattended
    countdown in the viewer's browser.
    """
    if not token:
        raise ValidationError("Missing token")

    try:
        ticket = ticket_store.get_by_token(db, token)
    except StorageError:
        return False
    if ticket is None or ticket.used:
        # nothing left to clean up
        return True

    try:
        flipped = ticket_store.mark_used(db, token)
    except StorageError:
        return False
    if not flipped:
        # a concurrent expire got there first
        return True

    try:
        blobs.delete(ticket.object_path)
    except StorageError:
        logger.warning("could not delete %s for expired ticket %s", ticket.object_path, short_token(token), exc_info=True)

    logger.info("expired ticket %s", short_token(token))
    return True


def purge_expired(
    db: Session,
    blobs: BlobStore,
    now: datetime | None = None,
    grace_hours: float | None = None,
) -> PurgeResult:
    """
    Cleanup job. Tickets past expires_at that nobody expired are marked used
    and their objects deleted; rows past expiry by more than the grace period
    are removed outright.
    """
    now = now or _now()
    grace = settings.PURGE_GRACE_HOURS if grace_hours is None else grace_hours

    expired = 0
    for ticket in ticket_store.list_expired_unused(db, now):
        if not ticket_store.mark_used(db, ticket.token):
            continue
        expired += 1
        try:
            blobs.delete(ticket.object_path)
        except StorageError:
            logger.warning("purge could not delete %s", ticket.object_path, exc_info=True)

    deleted = ticket_store.delete_expired_before(db, now - timedelta(hours=grace))
    logger.info("purge: %d expired, %d rows deleted", expired, deleted)
    return PurgeResult(expired=expired, deleted=deleted)
