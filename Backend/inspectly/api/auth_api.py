"""
Auth protocol: password sign-up/sign-in/sign-out, sessions carried as JWTs,
password-reset tokens, user profiles, and ``AuthContext``, the per-client
session bootstrap that follows auth-state changes.
"""

import os
import hmac
import hashlib
import binascii
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import jwt  # PyJWT
from sqlalchemy.orm import Session

from inspectly.api.table_client import backend_call
from inspectly.database import SessionLocal
from inspectly.exceptions import AuthError, BackendError, RecordNotFoundError
from inspectly.models.login_session_model import LoginSession
from inspectly.models.password_reset_model import PasswordReset
from inspectly.models.user_model import User, Profile
from inspectly.schemas.auth import AuthSession, AuthUser, UserProfile, UserRole
from inspectly.utils import utcnow

logger = logging.getLogger(__name__)

# Load JWT secret and settings from env
JWT_SECRET = os.getenv("JWT_SECRET", "change_this_in_production")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXP_DAYS = int(os.getenv("JWT_EXP_DAYS", "1"))  # default 1 day
PASSWORD_RESET_TTL_MINUTES = int(os.getenv("PASSWORD_RESET_TTL_MINUTES", "60"))


def hash_password(password: str, salt: Optional[str] = None) -> Tuple[str, str]:
    """
    PBKDF2-HMAC-SHA256 password hashing with salt.
    Returns (hash, salt).
    """
    if salt is None:
        salt = binascii.hexlify(os.urandom(16)).decode()
    dk = hashlib.pbkdf2_hmac("sha256", password.encode(), salt.encode(), 100_000)
    return binascii.hexlify(dk).decode(), salt


def verify_password(password: str, expected_hash: str, salt: str) -> bool:
    pwd_hash, _ = hash_password(password, salt)
    return hmac.compare_digest(pwd_hash, expected_hash)


def create_jwt_token(payload: dict, expires_delta: Optional[timedelta] = None) -> Tuple[str, datetime]:
    to_encode = payload.copy()
    if expires_delta is None:
        expires_delta = timedelta(days=JWT_EXP_DAYS)
    now = datetime.now(timezone.utc)
    expire = now + expires_delta
    to_encode.update({"exp": expire, "iat": now})
    return jwt.encode(to_encode, JWT_SECRET, algorithm=JWT_ALGORITHM), expire


def decode_token(token: str, *, verify_exp: bool = True) -> Dict[str, Any]:
    try:
        return jwt.decode(
            token,
            JWT_SECRET,
            algorithms=[JWT_ALGORITHM],
            options={"verify_exp": verify_exp},
        )
    except jwt.ExpiredSignatureError:
        raise AuthError("Token expired")
    except jwt.InvalidTokenError:
        raise AuthError("Invalid token")


def _normalize_email(email: str) -> str:
    return str(email or "").strip().lower()


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------

def create_user_profile(db: Session, profile: Union[UserProfile, Dict[str, Any]]) -> UserProfile:
    data = profile.model_dump() if isinstance(profile, UserProfile) else dict(profile)
    role = data.get("role") or UserRole.USER
    with backend_call(db, "create user profile"):
        row = Profile(
            id=data["id"],
            email=_normalize_email(data["email"]),
            full_name=data.get("full_name") or "",
            organization_id=data.get("organization_id"),
            role=role.value if isinstance(role, UserRole) else str(role),
        )
        db.add(row)
        db.commit()
    return UserProfile.model_validate(row.as_dict())


def get_user_profile(db: Session, user_id: str) -> UserProfile:
    with backend_call(db, "get user profile"):
        row = db.query(Profile).filter(Profile.id == user_id).first()
    if row is None:
        logger.error("Error getting user profile: none for %s", user_id)
        raise RecordNotFoundError(Profile.__tablename__, user_id)
    return UserProfile.model_validate(row.as_dict())


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------

def sign_up_with_password(db: Session, email: str, password: str, full_name: str) -> AuthUser:
    email = _normalize_email(email)
    with backend_call(db, "sign up"):
        if db.query(User).filter(User.email == email).first() is not None:
            logger.warning("Sign up error: %s already registered", email)
            raise AuthError("User already registered", status_code=409)
        pwd_hash, salt = hash_password(password)
        user = User(email=email, password_hash=pwd_hash, password_salt=salt)
        db.add(user)
        db.flush()
        db.add(Profile(id=user.id, email=email, full_name=full_name, organization_id=None, role=UserRole.USER.value))
        db.commit()
    logger.info("User registered: %s", email)
    return AuthUser(id=user.id, email=user.email)


def sign_in_with_password(db: Session, email: str, password: str) -> AuthSession:
    email = _normalize_email(email)
    with backend_call(db, "sign in"):
        user = db.query(User).filter(User.email == email).first()
        if user is None or not verify_password(password, user.password_hash, user.password_salt):
            logger.warning("Sign in error for %s: invalid credentials", email)
            raise AuthError("Invalid login credentials")
        session_row = LoginSession(user_id=user.id, email=user.email, still_logged_in=True)
        db.add(session_row)
        db.commit()

    token, expire = create_jwt_token({"sub": user.id, "email": user.email, "sid": session_row.id})
    return AuthSession(
        access_token=token,
        expires_at=expire,
        session_id=session_row.id,
        user=AuthUser(id=user.id, email=user.email),
    )


def get_current_session(db: Session, access_token: Optional[str]) -> Optional[AuthSession]:
    """Session for ``access_token``, or None when there is none or it was signed out."""
    if not access_token:
        return None
    payload = decode_token(access_token)
    session_id = payload.get("sid")
    if not session_id or not payload.get("sub"):
        raise AuthError("Invalid token")
    with backend_call(db, "get session"):
        row = db.query(LoginSession).filter(LoginSession.id == session_id).first()
    if row is None or not row.still_logged_in:
        return None
    return AuthSession(
        access_token=access_token,
        expires_at=datetime.fromtimestamp(int(payload["exp"]), tz=timezone.utc),
        session_id=session_id,
        user=AuthUser(id=str(payload["sub"]), email=str(payload.get("email") or row.email)),
    )


def sign_out(db: Session, access_token: str) -> None:
    # an expired token may still close its session
    payload = decode_token(access_token, verify_exp=False)
    with backend_call(db, "sign out"):
        row = db.query(LoginSession).filter(LoginSession.id == payload.get("sid")).first()
        if row is None or not row.still_logged_in:
            return
        row.still_logged_in = False
        row.logged_out_at = utcnow()
        db.commit()
    logger.info("User signed out: %s", row.email)


def reset_password_for_email(db: Session, email: str) -> Optional[str]:
    """
    Issue a one-time reset token for ``email``.
    Returns the token for the delivery channel, or None for unknown addresses;
    callers must answer both cases identically.
    """
    email = _normalize_email(email)
    with backend_call(db, "request password reset"):
        user = db.query(User).filter(User.email == email).first()
        if user is None:
            logger.info("Password reset requested for unknown address")
            return None
        token = secrets.token_urlsafe(32)
        db.add(PasswordReset(
            user_id=user.id,
            token=token,
            expires_at=utcnow() + timedelta(minutes=PASSWORD_RESET_TTL_MINUTES),
        ))
        db.commit()
    logger.info("Password reset issued for %s", email)
    return token


def complete_password_reset(db: Session, token: str, new_password: str) -> None:
    with backend_call(db, "complete password reset"):
        reset = db.query(PasswordReset).filter(PasswordReset.token == token).first()
        expires_at = reset.expires_at if reset is not None else None
        if expires_at is not None and expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        if reset is None or reset.used or expires_at < utcnow():
            raise AuthError("Invalid or expired reset token", status_code=400)
        user = db.query(User).filter(User.id == reset.user_id).first()
        if user is None:
            raise AuthError("Invalid or expired reset token", status_code=400)
        user.password_hash, user.password_salt = hash_password(new_password)
        reset.used = True
        # every open session ends with the old password
        db.query(LoginSession).filter(
            LoginSession.user_id == user.id, LoginSession.still_logged_in.is_(True)
        ).update({"still_logged_in": False, "logged_out_at": utcnow()}, synchronize_session="fetch")
        db.commit()
    logger.info("Password reset completed for %s", user.email)


# ---------------------------------------------------------------------------
# Client-side session bootstrap
# ---------------------------------------------------------------------------

AuthListener = Callable[[Optional[AuthUser]], None]


class AuthSubscription:
    def __init__(self, listeners: List[AuthListener], callback: AuthListener) -> None:
        self._listeners = listeners
        self._callback = callback

    def unsubscribe(self) -> None:
        try:
            self._listeners.remove(self._callback)
        except ValueError:
            pass


class AuthContext:
    """
    One client's view of auth: current session, user and profile.

    ``initialize`` restores a session from a stored token and loads the profile.
    ``sign_in``/``sign_out`` notify auth-state listeners with the new user (or
    None); the context itself listens so the profile follows the user. Errors
    from the auth calls are re-raised unchanged; bootstrap errors land on
    ``error``.
    """

    def __init__(self, session_factory=SessionLocal) -> None:
        self._session_factory = session_factory
        self._listeners: List[AuthListener] = []
        self.session: Optional[AuthSession] = None
        self.user: Optional[AuthUser] = None
        self.profile: Optional[UserProfile] = None
        self.loading = True
        self.error: Optional[Exception] = None
        self._own_subscription = self.subscribe_to_auth_changes(self._on_auth_change)

    def subscribe_to_auth_changes(self, callback: AuthListener) -> AuthSubscription:
        self._listeners.append(callback)
        return AuthSubscription(self._listeners, callback)

    def _notify(self, user: Optional[AuthUser]) -> None:
        for callback in list(self._listeners):
            callback(user)

    def _load_user_profile(self, user_id: str) -> None:
        try:
            with self._session_factory() as db:
                self.profile = get_user_profile(db, user_id)
        except BackendError as exc:
            self.error = exc

    def _on_auth_change(self, user: Optional[AuthUser]) -> None:
        self.user = user
        if user is not None:
            self._load_user_profile(user.id)
        else:
            self.profile = None

    def initialize(self, access_token: Optional[str] = None) -> None:
        try:
            with self._session_factory() as db:
                self.session = get_current_session(db, access_token)
            self.user = self.session.user if self.session else None
            if self.user is not None:
                self._load_user_profile(self.user.id)
        except (AuthError, BackendError) as exc:
            self.error = exc
        finally:
            self.loading = False

    def sign_in(self, email: str, password: str) -> AuthSession:
        self.error = None
        with self._session_factory() as db:
            self.session = sign_in_with_password(db, email, password)
        self._notify(self.session.user)
        return self.session

    def sign_up(self, email: str, password: str, full_name: str) -> AuthUser:
        self.error = None
        with self._session_factory() as db:
            return sign_up_with_password(db, email, password, full_name)

    def sign_out(self) -> None:
        self.error = None
        if self.session is not None:
            with self._session_factory() as db:
                sign_out(db, self.session.access_token)
        self.session = None
        self._notify(None)

    def reset_password(self, email: str) -> None:
        self.error = None
        with self._session_factory() as db:
            reset_password_for_email(db, email)

    def refresh_profile(self) -> Optional[UserProfile]:
        if self.user is not None:
            self._load_user_profile(self.user.id)
        return self.profile

    def close(self) -> None:
        self._own_subscription.unsubscribe()
        self._listeners.clear()
