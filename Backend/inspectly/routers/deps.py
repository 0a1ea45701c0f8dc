from typing import Optional

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from inspectly.api import auth_api
from inspectly.database import get_db
from inspectly.schemas.auth import AuthSession, UserProfile
from inspectly.stores.registry import OrganizationStores
from inspectly.utils import http_errors


def get_bearer_token(authorization: Optional[str] = Header(None, alias="Authorization")) -> str:
    if not authorization:
        raise HTTPException(status_code=401, detail="Missing authorization header")
    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise HTTPException(status_code=401, detail="Invalid authorization header")
    return parts[1]


def get_current_session(token: str = Depends(get_bearer_token), db: Session = Depends(get_db)) -> AuthSession:
    with http_errors("Could not load session"):
        session = auth_api.get_current_session(db, token)
    if session is None:
        raise HTTPException(status_code=401, detail="Session has ended")
    return session


def get_current_profile(
    session: AuthSession = Depends(get_current_session),
    db: Session = Depends(get_db),
) -> UserProfile:
    with http_errors("Error getting user profile", not_found_message="User profile not found"):
        return auth_api.get_user_profile(db, session.user.id)


def require_organization(profile: UserProfile = Depends(get_current_profile)) -> str:
    if not profile.organization_id:
        raise HTTPException(status_code=403, detail="Create or join an organization first")
    return profile.organization_id


def get_stores(request: Request, organization_id: str = Depends(require_organization)) -> OrganizationStores:
    return request.app.state.store_registry.for_organization(organization_id)
