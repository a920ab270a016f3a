from __future__ import annotations

import hashlib
import hmac
import secrets
import string

TOKEN_ALPHABET = string.ascii_letters + string.digits + "-_"
PIN_DIGITS = 4


def generate_token(length: int) -> str:
    """
    Url-safe random share token of exactly `length` chars.
    Each char carries 6 bits, so the default 22 chars give 132 bits.
    """
    if length < 1:
        raise ValueError("token length must be positive")
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))


def generate_pin() -> str:
    return f"{secrets.randbelow(10 ** PIN_DIGITS):0{PIN_DIGITS}d}"


def hash_pin(pin: str, pepper: str = "") -> str:
    """
    One-way hex digest of a pin. Deterministic and unsalted per ticket so a
    submitted pin can be checked by recomputing it; a configured pepper turns
    it into a keyed HMAC so a leaked table alone is not enough to brute force.
    """
    data = pin.encode("utf-8")
    if pepper:
        return hmac.new(pepper.encode("utf-8"), data, hashlib.sha256).hexdigest()
    return hashlib.sha256(data).hexdigest()


def pins_match(pin: str, pin_hash: str, pepper: str = "") -> bool:
    return hmac.compare_digest(hash_pin(pin, pepper), pin_hash)
