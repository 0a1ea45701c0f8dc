from datetime import timedelta

import pytest

from inspectly.api import auth_api
from inspectly.exceptions import AuthError
from inspectly.models.password_reset_model import PasswordReset
from inspectly.schemas.auth import UserProfile, UserRole


def test_sign_up_creates_profile_without_organization(db):
    user = auth_api.sign_up_with_password(db, "New.User@Example.com", "secret123", "New User")

    profile = auth_api.get_user_profile(db, user.id)

    assert user.email == "new.user@example.com"
    assert profile.full_name == "New User"
    assert profile.organization_id is None
    assert profile.role == UserRole.USER


def test_duplicate_sign_up_is_rejected(db):
    auth_api.sign_up_with_password(db, "pat@example.com", "secret123", "Pat")

    with pytest.raises(AuthError) as exc_info:
        auth_api.sign_up_with_password(db, "pat@example.com", "other123", "Pat Again")

    assert exc_info.value.status_code == 409


def test_sign_in_and_current_session(db):
    user = auth_api.sign_up_with_password(db, "pat@example.com", "secret123", "Pat")

    session = auth_api.sign_in_with_password(db, "pat@example.com", "secret123")
    current = auth_api.get_current_session(db, session.access_token)

    assert session.user.id == user.id
    assert current.session_id == session.session_id
    assert current.user.email == "pat@example.com"


def test_wrong_password_is_rejected(db):
    auth_api.sign_up_with_password(db, "pat@example.com", "secret123", "Pat")

    with pytest.raises(AuthError) as exc_info:
        auth_api.sign_in_with_password(db, "pat@example.com", "wrong-password")

    assert exc_info.value.message == "Invalid login credentials"


def test_no_token_means_no_session(db):
    assert auth_api.get_current_session(db, None) is None


def test_signed_out_session_is_gone(db):
    auth_api.sign_up_with_password(db, "pat@example.com", "secret123", "Pat")
    session = auth_api.sign_in_with_password(db, "pat@example.com", "secret123")

    auth_api.sign_out(db, session.access_token)
    auth_api.sign_out(db, session.access_token)

    assert auth_api.get_current_session(db, session.access_token) is None


def test_expired_token_is_reported(db):
    token, _ = auth_api.create_jwt_token({"sub": "u1", "sid": "s1"}, expires_delta=timedelta(seconds=-5))

    with pytest.raises(AuthError, match="Token expired"):
        auth_api.get_current_session(db, token)


def test_tampered_token_is_invalid(db):
    token, _ = auth_api.create_jwt_token({"sub": "u1", "sid": "s1"})

    with pytest.raises(AuthError, match="Invalid token"):
        auth_api.get_current_session(db, token[:-2] + "xx")


def test_password_reset_flow(db):
    auth_api.sign_up_with_password(db, "pat@example.com", "secret123", "Pat")
    old_session = auth_api.sign_in_with_password(db, "pat@example.com", "secret123")

    token = auth_api.reset_password_for_email(db, "pat@example.com")
    auth_api.complete_password_reset(db, token, "brand-new-pass")

    assert auth_api.get_current_session(db, old_session.access_token) is None
    with pytest.raises(AuthError):
        auth_api.sign_in_with_password(db, "pat@example.com", "secret123")
    assert auth_api.sign_in_with_password(db, "pat@example.com", "brand-new-pass")
    with pytest.raises(AuthError) as exc_info:
        auth_api.complete_password_reset(db, token, "again-and-again")
    assert exc_info.value.status_code == 400


def test_password_reset_for_unknown_address_issues_nothing(db):
    assert auth_api.reset_password_for_email(db, "ghost@example.com") is None
    assert db.query(PasswordReset).count() == 0


def test_expired_reset_token_is_rejected(db):
    auth_api.sign_up_with_password(db, "pat@example.com", "secret123", "Pat")
    token = auth_api.reset_password_for_email(db, "pat@example.com")
    reset = db.query(PasswordReset).filter(PasswordReset.token == token).one()
    reset.expires_at = reset.expires_at - timedelta(days=1)
    db.commit()

    with pytest.raises(AuthError):
        auth_api.complete_password_reset(db, token, "brand-new-pass")


def test_create_user_profile_accepts_dict(db):
    profile = auth_api.create_user_profile(db, {"id": "u-1", "email": "Solo@Example.com", "full_name": "Solo"})

    assert auth_api.get_user_profile(db, "u-1").id == profile.id
    assert isinstance(profile, UserProfile)
    assert profile.email == "solo@example.com"


# ---------------------------------------------------------------------------
# AuthContext
# ---------------------------------------------------------------------------

def test_context_initialize_without_token(session_factory):
    ctx = auth_api.AuthContext(session_factory)

    ctx.initialize(None)

    assert ctx.loading is False
    assert ctx.user is None
    assert ctx.profile is None
    assert ctx.error is None


def test_context_follows_sign_in_and_sign_out(session_factory):
    ctx = auth_api.AuthContext(session_factory)
    ctx.initialize(None)
    seen = []
    ctx.subscribe_to_auth_changes(lambda user: seen.append(user.email if user else None))

    ctx.sign_up("pat@example.com", "secret123", "Pat")
    ctx.sign_in("pat@example.com", "secret123")

    assert ctx.profile.full_name == "Pat"

    ctx.sign_out()

    assert ctx.user is None
    assert ctx.profile is None
    assert seen == ["pat@example.com", None]


def test_context_restores_session_from_token(session_factory):
    first = auth_api.AuthContext(session_factory)
    first.sign_up("pat@example.com", "secret123", "Pat")
    session = first.sign_in("pat@example.com", "secret123")

    restored = auth_api.AuthContext(session_factory)
    restored.initialize(session.access_token)

    assert restored.user.id == session.user.id
    assert restored.profile.email == "pat@example.com"


def test_context_initialize_records_bad_token(session_factory):
    ctx = auth_api.AuthContext(session_factory)

    ctx.initialize("not-a-jwt")

    assert isinstance(ctx.error, AuthError)
    assert ctx.loading is False


def test_context_sign_in_errors_are_reraised(session_factory):
    ctx = auth_api.AuthContext(session_factory)

    with pytest.raises(AuthError):
        ctx.sign_in("nobody@example.com", "secret123")


def test_unsubscribed_listener_is_not_called(session_factory):
    ctx = auth_api.AuthContext(session_factory)
    seen = []
    subscription = ctx.subscribe_to_auth_changes(seen.append)
    subscription.unsubscribe()
    subscription.unsubscribe()

    ctx.sign_up("pat@example.com", "secret123", "Pat")
    ctx.sign_in("pat@example.com", "secret123")

    assert seen == []
