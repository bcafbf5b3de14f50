"""Auth API routes: register, verification, password reset, login, me."""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from sqlalchemy.orm import Session

from app.application.services import auth_service
from app.domain.models.user import User
from app.domain.schemas.auth import (
    EmailRequest,
    LoginRequest,
    ResetPasswordRequest,
    UserRead,
    VerifyEmailRequest,
)
from app.infrastructure.database import get_db
from app.interfaces.api.deps import get_current_user, read_upload

router = APIRouter(prefix="/api/v1/auth", tags=["Auth"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    username: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    password: Optional[str] = Form(None),
    bio: Optional[str] = Form(None),
    interests: Optional[List[str]] = Form(None),
    profile_image: Optional[UploadFile] = File(None, alias="profileImage"),
    db: Session = Depends(get_db),
):
    # A single field may carry a JSON array or a comma-separated list
    raw_interests = interests[0] if interests and len(interests) == 1 else interests
    user, token = auth_service.register_user(
        db,
        username=username,
        email=email,
        password=password,
        bio=bio,
        interests=raw_interests,
        profile_image=read_upload(profile_image),
    )
    return {
        "success": True,
        "message": "Registration successful. Please check your notifications for OTP.",
        "token": token,
        "user": UserRead.model_validate(user),
    }


@router.post("/login")
def login(body: LoginRequest, db: Session = Depends(get_db)):
    user, token = auth_service.login(db, body.email, body.password)
    return {
        "success": True,
        "message": "Login successful",
        "token": token,
        "user": UserRead.model_validate(user),
    }


@router.post("/verify-email")
def verify_email(body: VerifyEmailRequest, db: Session = Depends(get_db)):
    auth_service.verify_email(db, body.email, body.otp)
    return {"success": True, "message": "Email verified successfully"}


@router.post("/resend-otp")
def resend_otp(body: EmailRequest, db: Session = Depends(get_db)):
    auth_service.resend_otp(db, body.email)
    return {"success": True, "message": "OTP sent to your notifications"}


@router.post("/forgot-password")
def forgot_password(body: EmailRequest, db: Session = Depends(get_db)):
    auth_service.forgot_password(db, body.email)
    # Same answer whether or not the account exists
    return {
        "success": True,
        "message": "If the account exists, a password reset code has been sent to your notifications.",
    }


@router.post("/reset-password")
def reset_password(body: ResetPasswordRequest, db: Session = Depends(get_db)):
    auth_service.reset_password(db, body.email, body.otp, body.new_password)
    return {
        "success": True,
        "message": "Password successfully reset! You can now log in with your new password.",
    }


@router.get("/me")
def get_me(user: User = Depends(get_current_user)):
    return {"success": True, "user": UserRead.model_validate(user)}
