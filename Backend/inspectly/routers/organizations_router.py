from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from inspectly.api import organizations_api
from inspectly.database import get_db
from inspectly.routers.deps import get_current_profile
from inspectly.schemas.auth import OrganizationCreate, OrganizationJoin, UserProfile
from inspectly.utils import http_errors, success_resp

router = APIRouter(prefix="/api/organizations", tags=["organizations"])


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_organization(
    body: OrganizationCreate,
    profile: UserProfile = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    """Create an organization; the caller becomes its admin."""
    with http_errors("Error creating organization"):
        org = organizations_api.create_organization(db, body.name, profile.id)
    return success_resp("Organization created", org.model_dump(mode="json"), status_code=201)


@router.post("/join")
def join_organization(
    body: OrganizationJoin,
    profile: UserProfile = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    with http_errors("Error joining organization", not_found_message="Organization not found"):
        organizations_api.join_organization(db, body.organization_id, profile.id)
        org = organizations_api.get_organization(db, body.organization_id)
    return success_resp("Joined organization", org.model_dump(mode="json"))


@router.get("/{organization_id}")
def get_organization(
    organization_id: str,
    profile: UserProfile = Depends(get_current_profile),
    db: Session = Depends(get_db),
):
    if profile.organization_id != organization_id:
        raise HTTPException(status_code=404, detail="Organization not found")
    with http_errors("Error fetching organization", not_found_message="Organization not found"):
        org = organizations_api.get_organization(db, organization_id)
    return success_resp("Organization fetched", org.model_dump(mode="json"))
