"""Auth service: registration, email verification, password reset and login."""

import re
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Tuple

import structlog
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import get_settings
from app.core.tags import parse_tags
from app.core.exceptions import (
    AccountDeactivatedException,
    AlreadyVerifiedException,
    ConflictException,
    EntityNotFoundException,
    InvalidCredentialsException,
    InvalidOTPException,
    ValidationException,
)
from app.domain.models.user import User
from app.infrastructure.file_storage import UploadPayload, discard_upload, save_upload
from app.application.services import otp_service
from app.application.services.notification_service import send_otp_notification, send_welcome_notification

settings = get_settings()
logger = structlog.get_logger(__name__)
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=settings.BCRYPT_ROUNDS)

EMAIL_PATTERN = re.compile(r".+@.+\..+")
MIN_PASSWORD_LENGTH = 6
MAX_BIO_LENGTH = 250


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.JWT_EXPIRATION_MINUTES)
    )
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[dict]:
    try:
        payload = jwt.decode(
            token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM]
        )
        return payload
    except JWTError:
        return None


def issue_token(user: User) -> str:
    return create_access_token(data={"sub": str(user.id), "role": user.role})


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email.strip().lower()).first()


def create_user(
    db: Session,
    username: str,
    email: str,
    password: str,
    bio: str = "",
    interests: Optional[list[str]] = None,
    profile_image: Optional[str] = None,
    role: str = "user",
) -> User:
    user = User(
        username=username,
        email=email.strip().lower(),
        password_hash=hash_password(password),
        bio=bio,
        interests=interests or [],
        profile_image=profile_image,
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def _check_registration_fields(email: str, password: str, bio: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationException("Password must be at least 6 characters long.", {"field": "password"})
    if not EMAIL_PATTERN.match(email):
        raise ValidationException("Invalid email format.", {"field": "email"})
    if len(bio) > MAX_BIO_LENGTH:
        raise ValidationException("Bio cannot exceed 250 characters.", {"field": "bio"})


def _ensure_unique(db: Session, email: str, username: str) -> None:
    existing = db.query(User).filter(or_(User.email == email, User.username == username)).first()
    if existing is None:
        return
    if existing.email == email:
        raise ConflictException("Email already registered", {"field": "email"})
    raise ConflictException("Username already taken", {"field": "username"})


def register_user(
    db: Session,
    username: str,
    email: str,
    password: str,
    bio: str,
    interests: Any,
    profile_image: Optional[UploadPayload],
) -> Tuple[User, str]:
    """Create an unverified account, deliver its verification code and issue a token.

    The profile image is staged first; any failure after that removes it again.
    """
    username = (username or "").strip()
    email = (email or "").strip().lower()
    if not username or not email or not password or not bio or not interests or profile_image is None:
        raise ValidationException("Please provide username, email, password, bio, interests and profile image")

    stored = None
    try:
        stored = save_upload(profile_image, prefix="profileImage")
        _check_registration_fields(email, password, bio)
        interest_tags = parse_tags(interests)
        _ensure_unique(db, email, username)
        try:
            user = create_user(
                db,
                username=username,
                email=email,
                password=password,
                bio=bio,
                interests=interest_tags,
                profile_image=stored.url_path,
            )
        except IntegrityError:
            db.rollback()
            raise ConflictException("Email or username already registered")
    except Exception:
        discard_upload(stored)
        raise

    code = otp_service.generate_otp(user, otp_service.EMAIL_VERIFICATION)
    db.commit()
    send_otp_notification(db, user, code, otp_service.EMAIL_VERIFICATION)

    logger.info("User registered", user_id=user.id, username=user.username)
    return user, issue_token(user)


def verify_email(db: Session, email: str, otp: str) -> User:
    if not email or not otp:
        raise ValidationException("Please provide email and OTP")

    user = get_user_by_email(db, email)
    if user is None:
        raise EntityNotFoundException("User not found")
    if user.is_email_verified:
        raise AlreadyVerifiedException()
    if not otp_service.verify_otp(user, otp_service.EMAIL_VERIFICATION, otp):
        raise InvalidOTPException()

    user.is_email_verified = True
    otp_service.clear_otp(user, otp_service.EMAIL_VERIFICATION)
    db.commit()
    send_welcome_notification(db, user)

    logger.info("Email verified", user_id=user.id)
    return user


def resend_otp(db: Session, email: str) -> User:
    if not email:
        raise ValidationException("Please provide email")

    user = get_user_by_email(db, email)
    if user is None:
        raise EntityNotFoundException("User not found")
    if user.is_email_verified:
        raise AlreadyVerifiedException()

    code = otp_service.generate_otp(user, otp_service.EMAIL_VERIFICATION)
    db.commit()
    send_otp_notification(db, user, code, otp_service.EMAIL_VERIFICATION, resend=True)
    return user


def forgot_password(db: Session, email: str) -> None:
    """Start a reset for a known address. Unknown addresses are silently ignored."""
    if not email:
        raise ValidationException("Please provide the registered email address.")

    user = get_user_by_email(db, email)
    if user is None:
        logger.info("Password reset requested for unknown email")
        return

    code = otp_service.generate_otp(user, otp_service.PASSWORD_RESET)
    db.commit()
    send_otp_notification(db, user, code, otp_service.PASSWORD_RESET)
    logger.info("Password reset code issued", user_id=user.id)


def reset_password(db: Session, email: str, otp: str, new_password: str) -> User:
    if not email or not otp or not new_password:
        raise ValidationException("Please provide email, OTP, and the new password.")
    if len(new_password) < MIN_PASSWORD_LENGTH:
        raise ValidationException("New password must be at least 6 characters long.", {"field": "newPassword"})

    user = get_user_by_email(db, email)
    if user is None:
        raise EntityNotFoundException("User not found.")

    if not otp_service.verify_otp(user, otp_service.PASSWORD_RESET, otp):
        # A failed attempt burns the code; the flow has to start over
        otp_service.clear_otp(user, otp_service.PASSWORD_RESET)
        db.commit()
        raise InvalidOTPException("Invalid or expired OTP. Please restart the forgot password process.")

    user.password_hash = hash_password(new_password)
    otp_service.clear_otp(user, otp_service.PASSWORD_RESET)
    db.commit()

    logger.info("Password reset", user_id=user.id)
    return user


def login(db: Session, email: str, password: str) -> Tuple[User, str]:
    if not email or not password:
        raise ValidationException("Please provide email and password")

    user = get_user_by_email(db, email)
    if user is None or not verify_password(password, user.password_hash):
        raise InvalidCredentialsException()
    if not user.is_active:
        raise AccountDeactivatedException()

    user.last_login = datetime.now(timezone.utc)
    db.commit()
    db.refresh(user)
    return user, issue_token(user)
