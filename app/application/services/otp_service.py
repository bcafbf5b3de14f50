"""One-time codes embedded on the user row.

Two purposes exist, each with its own hash/expiry column pair. Generating a
code replaces whatever code was live for that purpose. Only an HMAC-SHA256 of
the code, keyed with SECRET_KEY, is stored; the plaintext leaves this module
exactly once, through the notification that delivers it.
"""

import hashlib
import hmac
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from app.config import get_settings
from app.domain.models.user import User

settings = get_settings()

EMAIL_VERIFICATION = "email_verification"
PASSWORD_RESET = "password_reset"

_FIELDS = {
    EMAIL_VERIFICATION: ("email_otp_hash", "email_otp_expires_at"),
    PASSWORD_RESET: ("reset_otp_hash", "reset_otp_expires_at"),
}


def _fields(purpose: str) -> tuple[str, str]:
    try:
        return _FIELDS[purpose]
    except KeyError:
        raise ValueError(f"Unknown OTP purpose: {purpose}") from None


def _hash(code: str) -> str:
    return hmac.new(settings.SECRET_KEY.encode("utf-8"), code.encode("utf-8"), hashlib.sha256).hexdigest()


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def generate_otp(user: User, purpose: str, now: Optional[datetime] = None) -> str:
    """Create a fresh code for the purpose and return its plaintext. Caller commits."""
    hash_field, expiry_field = _fields(purpose)
    now = now or datetime.now(timezone.utc)

    code = "".join(str(secrets.randbelow(10)) for _ in range(settings.OTP_LENGTH))
    setattr(user, hash_field, _hash(code))
    setattr(user, expiry_field, now + timedelta(minutes=settings.OTP_EXPIRATION_MINUTES))
    return code


def verify_otp(user: User, purpose: str, code: str, now: Optional[datetime] = None) -> bool:
    """True only for an existing, unexpired, exactly matching code. Never clears state."""
    hash_field, expiry_field = _fields(purpose)
    stored_hash = getattr(user, hash_field)
    expires_at = as_utc(getattr(user, expiry_field))
    if not stored_hash or not expires_at or not code:
        return False
    if expires_at <= (now or datetime.now(timezone.utc)):
        return False
    return hmac.compare_digest(stored_hash, _hash(str(code).strip()))


def clear_otp(user: User, purpose: str) -> None:
    hash_field, expiry_field = _fields(purpose)
    setattr(user, hash_field, None)
    setattr(user, expiry_field, None)


def sweep_expired_otps(db: Session, now: Optional[datetime] = None) -> int:
    """Clear every code whose expiry has passed. Returns the number of codes cleared."""
    now = now or datetime.now(timezone.utc)
    cleared = 0
    for purpose, (hash_field, expiry_field) in _FIELDS.items():
        expiry_column = getattr(User, expiry_field)
        cleared += (
            db.query(User)
            .filter(expiry_column.isnot(None), expiry_column <= now)
            .update({getattr(User, hash_field): None, expiry_column: None}, synchronize_session=False)
        )
    db.commit()
    return cleared
