from __future__ import annotations

import logging

from itsdangerous import URLSafeTimedSerializer, BadSignature, SignatureExpired
from passlib.context import CryptContext
from passlib.exc import MissingBackendError, UnknownHashError
from passlib.hash import argon2
from fastapi import HTTPException, Request

from .config import settings

logger = logging.getLogger(__name__)


def _build_pwd_context() -> CryptContext:
    """
    Prefer Argon2, but gracefully fall back to pbkdf2_sha256 if the argon2 backend
    is missing in the current runtime environment.
    """
    try:
        argon2.get_backend()
        return CryptContext(schemes=["argon2", "pbkdf2_sha256"], default="argon2", deprecated="auto")
    except MissingBackendError:
        logger.warning("Argon2 backend unavailable; falling back to pbkdf2_sha256 for dashboard pin hashing.")
        return CryptContext(schemes=["pbkdf2_sha256"], default="pbkdf2_sha256", deprecated="auto")


pwd_context = _build_pwd_context()
serializer = URLSafeTimedSerializer(settings.APP_SECRET_KEY, salt="px-admin")

COOKIE_NAME = "px_admin"

def hash_dashboard_pin(pin: str) -> str:
    return pwd_context.hash(pin)

def verify_dashboard_pin(pin: str, pin_hash: str | None = None) -> bool:
    expected = settings.DASHBOARD_PIN_HASH if pin_hash is None else pin_hash
    if not pin or not expected:
        return False
    try:
        return pwd_context.verify(pin, expected)
    except (UnknownHashError, MissingBackendError, ValueError):
        logger.error("DASHBOARD_PIN_HASH is not a hash this runtime can verify.")
        return False

def make_session_token() -> str:
    return serializer.dumps({"admin": True})

def read_session_token(token: str, max_age_seconds: int) -> bool:
    try:
        data = serializer.loads(token, max_age=max_age_seconds)
        return bool(data.get("admin"))
    except (BadSignature, SignatureExpired):
        return False

def is_admin(request: Request) -> bool:
    token = request.cookies.get(COOKIE_NAME)
    if not token:
        return False
    return read_session_token(token, settings.AUTH_SESSION_TTL_SECONDS)

def require_admin(request: Request) -> None:
    if not is_admin(request):
        raise HTTPException(status_code=401, detail="unauthorized")
