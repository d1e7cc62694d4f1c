# Auth Routes
import logging
from typing import Dict

from fastapi import APIRouter, Depends, status
from pymongo.database import Database

import users
from config import settings
from database import get_db
from deps import get_current_user
from errors import AuthenticationError, NotFoundError, ValidationFailure
from schemas import (
    ForgotPasswordRequest,
    LoginRequest,
    ResetPasswordRequest,
    SignupRequest,
    UpdatePasswordRequest,
    VerifyEmailRequest,
    public_user,
)
from security import create_access_token

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def deliver_code(email: str, subject: str, code: str) -> None:
    """Send a one-time code to the user. No mailer is wired, so delivery is only logged."""
    logger.warning("Mail delivery not configured. %s issued for %s", subject, email)
    if settings.DEBUG:
        logger.debug("%s for %s: %s", subject, email, code)


def token_response(user: Dict) -> Dict:
    token = create_access_token({"sub": str(user["_id"])})
    return {"status": "success", "token": token, "data": {"user": public_user(user)}}


@router.post("/signup", status_code=status.HTTP_201_CREATED)
def signup(payload: SignupRequest, db: Database = Depends(get_db)):
    if users.find_user_by_email(db, payload.email):
        raise ValidationFailure("Email already registered")
    user = users.insert_user(db, payload)
    code = users.create_validation_number(db, user)
    deliver_code(user["email"], "Email validation code", code)
    return {
        "status": "success",
        "message": "Account created. A validation code has been sent to your email.",
        "data": {"user": public_user(user)},
    }


@router.post("/verify-email")
def verify_email(payload: VerifyEmailRequest, db: Database = Depends(get_db)):
    user = users.verify_validation_number(db, payload.email, payload.code)
    logger.info("Activated account %s", user["email"])
    return token_response(user)


@router.post("/login")
def login(payload: LoginRequest, db: Database = Depends(get_db)):
    user = users.find_user_by_email(db, payload.email)
    if not user or not users.compare_password(payload.password, user):
        logger.warning("Failed login for %s", payload.email)
        raise AuthenticationError("Incorrect email or password")
    if not user.get("active"):
        raise AuthenticationError("Please verify your email before logging in")
    return token_response(user)


@router.post("/forgot-password")
def forgot_password(payload: ForgotPasswordRequest, db: Database = Depends(get_db)):
    user = users.find_user_by_email(db, payload.email)
    if not user:
        raise NotFoundError("There is no user with that email address")
    token = users.create_password_reset_token(db, user)
    deliver_code(user["email"], "Password reset token", token)
    return {"status": "success", "message": "Token sent to email!"}


@router.patch("/reset-password/{token}")
def reset_password(token: str, payload: ResetPasswordRequest, db: Database = Depends(get_db)):
    user = users.reset_password_with_token(db, token, payload.password)
    return token_response(user)


@router.patch("/update-password")
def update_password(
    payload: UpdatePasswordRequest,
    current_user=Depends(get_current_user),
    db: Database = Depends(get_db),
):
    if not users.compare_password(payload.current_password, current_user):
        raise AuthenticationError("Your current password is wrong")
    user = users.set_password(db, current_user, payload.password)
    return token_response(user)
