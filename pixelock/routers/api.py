from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from ..auth import COOKIE_NAME, make_session_token, require_admin, verify_dashboard_pin
from ..config import settings
from ..db import get_db
from ..errors import NotFoundError, TicketError, ValidationError
from ..services import ticket_service, ticket_store
from ..services.analytics_service import log_event
from ..services.blob_store import BlobStore, build_object_key, get_blob_store

router = APIRouter(prefix="/api")


def _optional_number(payload: dict, key: str, cast):
    value = payload.get(key)
    if value is None or value == "":
        return None
    try:
        return cast(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {key}") from None


@router.post("/upload", name="upload")
async def upload(
    request: Request,
    file: UploadFile | None = File(None),
    live: str | None = Form(None),
    db: Session = Depends(get_db),
    blobs: BlobStore = Depends(get_blob_store),
):
    if file is None:
        raise ValidationError("No file")

    # one byte past the cap is enough to tell it is too large
    data = await file.read(settings.MAX_UPLOAD_BYTES + 1)
    if not data:
        raise ValidationError("No file")
    if len(data) > settings.MAX_UPLOAD_BYTES:
        return JSONResponse({"error": "File too large"}, status_code=413)

    key = build_object_key(file.filename)
    is_live = (live or "").lower() == "true"
    try:
        blobs.put(key, data, content_type=file.content_type or "image/jpeg", metadata={"live": str(is_live).lower()})
    except TicketError:
        log_event(db, request, "error", {"where": "upload"})
        raise

    log_event(db, request, "upload", {"live": is_live, "bytes": len(data)})
    return {"path": key}


@router.post("/create-ticket", name="create_ticket")
def create_ticket(request: Request, payload: dict, db: Session = Depends(get_db)):
    object_path = payload.get("object_path")
    if not object_path:
        raise ValidationError("Missing object_path")

    created = ticket_service.create_ticket(
        db,
        object_path=str(object_path),
        ttl_hours=_optional_number(payload, "ttl_hours", float),
        reveal_seconds=_optional_number(payload, "reveal_seconds", int),
    )
    log_event(db, request, "share_created", {"reveal_seconds": created.reveal_seconds})
    return {"token": created.token, "pin": created.pin}


@router.post("/unlock", name="unlock")
def unlock(
    request: Request,
    payload: dict,
    db: Session = Depends(get_db),
    blobs: BlobStore = Depends(get_blob_store),
):
    token = payload.get("token")
    pin = payload.get("pin")
    if not token or not pin:
        raise ValidationError("Missing token or pin")

    redemption = ticket_service.redeem_ticket(db, blobs, str(token), str(pin))
    log_event(db, request, "reveal_started", {"reveal_seconds": redemption.reveal_seconds})
    return {"signedUrl": redemption.signed_url, "reveal_seconds": redemption.reveal_seconds}


@router.post("/expire", name="expire")
def expire(
    request: Request,
    payload: dict,
    db: Session = Depends(get_db),
    blobs: BlobStore = Depends(get_blob_store),
):
    token = payload.get("token")
    if not token:
        return JSONResponse({"ok": False, "error": "Missing token"}, status_code=400)

    ok = ticket_service.expire_ticket(db, blobs, str(token))
    if ok:
        log_event(db, request, "share_expired")
    return {"ok": ok}


@router.post("/admin/login", name="admin_login")
def admin_login(payload: dict):
    pin = str(payload.get("pin") or "")
    if not verify_dashboard_pin(pin):
        return JSONResponse({"error": "Invalid PIN"}, status_code=401)

    resp = JSONResponse({"ok": True})
    resp.set_cookie(
        COOKIE_NAME,
        make_session_token(),
        httponly=True,
        samesite="lax",
        secure=settings.ENV == "production",
        max_age=settings.AUTH_SESSION_TTL_SECONDS,
        path="/",
    )
    return resp


@router.get("/admin/tickets/{token}", name="admin_ticket", dependencies=[Depends(require_admin)])
def admin_ticket(token: str, db: Session = Depends(get_db)):
    ticket = ticket_store.get_by_token(db, token)
    if ticket is None:
        raise NotFoundError()
    return ticket_service.describe_ticket(ticket)


@router.post("/admin/purge", name="admin_purge", dependencies=[Depends(require_admin)])
def admin_purge(
    db: Session = Depends(get_db),
    blobs: BlobStore = Depends(get_blob_store),
):
    result = ticket_service.purge_expired(db, blobs)
    return {"expired": result.expired, "purged": result.deleted}
