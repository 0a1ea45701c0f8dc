import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from inspectly.api import templates_api
from inspectly.database import get_db
from inspectly.routers.deps import get_stores
from inspectly.schemas.template import Question, TemplateCreate, TemplateUpdate, ensure_unique_ids
from inspectly.stores.registry import OrganizationStores
from inspectly.utils import http_errors, success_resp

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/templates", tags=["templates"])


class TemplateBody(BaseModel):
    name: str = Field(..., min_length=1)
    questions: List[Question] = Field(default_factory=list)

    @field_validator("questions")
    @classmethod
    def check_unique_ids(cls, v):
        return ensure_unique_ids(v)


@router.get("/")
def list_templates(stores: OrganizationStores = Depends(get_stores)):
    store = stores.templates
    if store.error:
        raise HTTPException(status_code=500, detail=store.error)
    return success_resp("Templates fetched", [t.model_dump(mode="json") for t in store.templates])


@router.get("/{template_id}")
def get_template(template_id: str, stores: OrganizationStores = Depends(get_stores), db: Session = Depends(get_db)):
    template = stores.templates.get(template_id)
    if template is None:
        with http_errors("Error fetching template", not_found_message="Template not found"):
            template = templates_api.get_template(db, template_id, stores.organization_id)
    return success_resp("Template fetched", template.model_dump(mode="json"))


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_template(body: TemplateBody, stores: OrganizationStores = Depends(get_stores)):
    draft = TemplateCreate(name=body.name, organization_id=stores.organization_id, questions=body.questions)
    with http_errors("Failed to create template"):
        template = stores.templates.add(draft)
    logger.info("Template %s created in %s", template.id, stores.organization_id)
    return success_resp("Template created", template.model_dump(mode="json"), status_code=201)


@router.put("/{template_id}")
def update_template(
    template_id: str,
    body: TemplateUpdate,
    stores: OrganizationStores = Depends(get_stores),
    db: Session = Depends(get_db),
):
    with http_errors("Failed to update template", not_found_message="Template not found"):
        # ids of other organizations stay invisible
        templates_api.get_template(db, template_id, stores.organization_id)
        template = stores.templates.update(template_id, body)
    return success_resp("Template updated", template.model_dump(mode="json"))


@router.delete("/{template_id}")
def delete_template(template_id: str, stores: OrganizationStores = Depends(get_stores)):
    with http_errors("Failed to delete template"):
        stores.templates.delete(template_id, stores.organization_id)
    return success_resp("Template deleted", {"id": template_id})
