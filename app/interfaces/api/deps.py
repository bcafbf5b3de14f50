"""FastAPI dependencies: JWT auth and upload reading."""

from typing import Optional

from fastapi import Depends, UploadFile
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.application.services.auth_service import decode_access_token
from app.core.exceptions import EntityNotFoundException, UnauthorizedException
from app.domain.models.user import User
from app.infrastructure.database import get_db, is_valid_id
from app.infrastructure.file_storage import UploadPayload

# Missing headers are reported by us, with the shared envelope
security = HTTPBearer(auto_error=False)


def user_from_token(db: Session, token: str) -> User:
    """Resolve the active user a bearer token belongs to."""
    payload = decode_access_token(token)
    if payload is None:
        raise UnauthorizedException("Invalid or expired token")

    subject = str(payload.get("sub") or "")
    if not (subject.isascii() and subject.isdigit() and is_valid_id(int(subject))):
        raise UnauthorizedException("Invalid token")

    user = db.get(User, int(subject))
    if user is None or not user.is_active:
        raise UnauthorizedException("User not found or inactive")
    return user


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Extract and validate the current user from JWT token."""
    if credentials is None:
        raise UnauthorizedException("Not authorized, no token")
    return user_from_token(db, credentials.credentials)


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> Optional[User]:
    """Like get_current_user, but anonymous callers get None instead of 401."""
    if credentials is None:
        return None
    return user_from_token(db, credentials.credentials)


def get_user_or_404(db: Session, user_id: int) -> User:
    user = db.get(User, user_id) if is_valid_id(user_id) else None
    if user is None:
        raise EntityNotFoundException("User not found.", {"userId": user_id})
    return user


def read_upload(file: Optional[UploadFile]) -> Optional[UploadPayload]:
    """Receive the whole upload before the handler touches the database."""
    if file is None or not file.filename:
        return None
    return UploadPayload(
        filename=file.filename,
        content=file.file.read(),
        content_type=file.content_type,
    )
