import logging

from sqlalchemy.orm import Session

from inspectly.api.table_client import backend_call
from inspectly.exceptions import RecordNotFoundError
from inspectly.models.organization_model import Organization as OrganizationRow
from inspectly.models.user_model import Profile
from inspectly.schemas.auth import Organization, UserRole

logger = logging.getLogger(__name__)


def _get_profile_row(db: Session, user_id: str) -> Profile:
    profile = db.query(Profile).filter(Profile.id == user_id).first()
    if profile is None:
        raise RecordNotFoundError(Profile.__tablename__, user_id)
    return profile


def create_organization(db: Session, name: str, user_id: str) -> Organization:
    """Create an organization and make ``user_id`` its admin."""
    try:
        with backend_call(db, "create organization"):
            org = OrganizationRow(name=name)
            db.add(org)
            db.flush()
            profile = _get_profile_row(db, user_id)
            profile.organization_id = org.id
            profile.role = UserRole.ADMIN.value
            db.commit()
    except RecordNotFoundError:
        db.rollback()
        logger.error("Error creating organization: no profile for user %s", user_id)
        raise
    logger.info("Organization %s created by %s", org.id, user_id)
    return Organization.model_validate(org.as_dict())


def join_organization(db: Session, organization_id: str, user_id: str) -> None:
    with backend_call(db, "join organization"):
        org = db.query(OrganizationRow).filter(OrganizationRow.id == organization_id).first()
        if org is None:
            raise RecordNotFoundError(OrganizationRow.__tablename__, organization_id)
        profile = _get_profile_row(db, user_id)
        profile.organization_id = organization_id
        profile.role = UserRole.USER.value
        db.commit()
    logger.info("User %s joined organization %s", user_id, organization_id)


def get_organization(db: Session, organization_id: str) -> Organization:
    with backend_call(db, "get organization"):
        org = db.query(OrganizationRow).filter(OrganizationRow.id == organization_id).first()
    if org is None:
        raise RecordNotFoundError(OrganizationRow.__tablename__, organization_id)
    return Organization.model_validate(org.as_dict())
