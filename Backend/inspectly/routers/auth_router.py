# auth_router.py
import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from inspectly.api import auth_api
from inspectly.database import get_db
from inspectly.routers.deps import get_bearer_token, get_current_profile, get_current_session
from inspectly.schemas.auth import (
    AuthSession,
    LoginRequest,
    PasswordResetConfirm,
    PasswordResetRequest,
    RegisterRequest,
    UserProfile,
)
from inspectly.utils import http_errors, success_resp

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

RESET_SENT_MESSAGE = "If the address is registered, a reset link has been sent"


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register_user(body: RegisterRequest, db: Session = Depends(get_db)):
    with http_errors("Could not register user"):
        user = auth_api.sign_up_with_password(db, body.email, body.password, body.full_name)
    return success_resp("User registered successfully", user.model_dump(mode="json"), status_code=201)


@router.post("/login")
def login_user(body: LoginRequest, db: Session = Depends(get_db)):
    with http_errors("Could not sign in"):
        session = auth_api.sign_in_with_password(db, body.email, body.password)
        profile = auth_api.get_user_profile(db, session.user.id)
    return success_resp("Login successful", {
        "session": session.model_dump(mode="json"),
        "profile": profile.model_dump(mode="json"),
    })


@router.post("/logout")
def logout_user(token: str = Depends(get_bearer_token), db: Session = Depends(get_db)):
    with http_errors("Could not sign out"):
        auth_api.sign_out(db, token)
    return success_resp("Logged out")


@router.post("/reset-password")
def request_password_reset(body: PasswordResetRequest, db: Session = Depends(get_db)):
    with http_errors("Could not request password reset"):
        token = auth_api.reset_password_for_email(db, body.email)
    if token is not None:
        # no mailer here; delivery is whatever reads this log
        logger.info("Password reset token for %s: %s", body.email, token)
    return success_resp(RESET_SENT_MESSAGE)


@router.post("/reset-password/confirm")
def confirm_password_reset(body: PasswordResetConfirm, db: Session = Depends(get_db)):
    with http_errors("Could not reset password"):
        auth_api.complete_password_reset(db, body.token, body.password)
    return success_resp("Password updated")


@router.get("/me")
def read_me(
    session: AuthSession = Depends(get_current_session),
    profile: UserProfile = Depends(get_current_profile),
):
    return success_resp("Current user", {
        "user": session.user.model_dump(mode="json"),
        "profile": profile.model_dump(mode="json"),
    })
