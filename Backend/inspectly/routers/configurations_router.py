from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from inspectly.api import configurations_api
from inspectly.database import get_db
from inspectly.routers.deps import get_stores
from inspectly.schemas.configuration import ConfigurationCreate, ConfigurationUpdate
from inspectly.stores.registry import OrganizationStores
from inspectly.utils import http_errors, success_resp

router = APIRouter(prefix="/api/configurations", tags=["configurations"])


class ConfigurationBody(BaseModel):
    name: str = Field(..., min_length=1)
    options: List[str] = Field(default_factory=list)


@router.get("/")
def list_configurations(stores: OrganizationStores = Depends(get_stores)):
    store = stores.configurations
    if store.error:
        raise HTTPException(status_code=500, detail=store.error)
    return success_resp("Configurations fetched", [c.model_dump(mode="json") for c in store.configurations])


@router.get("/{configuration_id}")
def get_configuration(
    configuration_id: str,
    stores: OrganizationStores = Depends(get_stores),
    db: Session = Depends(get_db),
):
    configuration = stores.configurations.get(configuration_id)
    if configuration is None:
        with http_errors("Error fetching configuration", not_found_message="Configuration not found"):
            configuration = configurations_api.get_configuration(db, configuration_id, stores.organization_id)
    return success_resp("Configuration fetched", configuration.model_dump(mode="json"))


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_configuration(body: ConfigurationBody, stores: OrganizationStores = Depends(get_stores)):
    draft = ConfigurationCreate(name=body.name, organization_id=stores.organization_id, options=body.options)
    with http_errors("Failed to create configuration"):
        configuration = stores.configurations.add(draft)
    return success_resp("Configuration created", configuration.model_dump(mode="json"), status_code=201)


@router.put("/{configuration_id}")
def update_configuration(
    configuration_id: str,
    body: ConfigurationUpdate,
    stores: OrganizationStores = Depends(get_stores),
    db: Session = Depends(get_db),
):
    with http_errors("Failed to update configuration", not_found_message="Configuration not found"):
        configurations_api.get_configuration(db, configuration_id, stores.organization_id)
        configuration = stores.configurations.update(configuration_id, body)
    return success_resp("Configuration updated", configuration.model_dump(mode="json"))


@router.delete("/{configuration_id}")
def delete_configuration(configuration_id: str, stores: OrganizationStores = Depends(get_stores)):
    with http_errors("Failed to delete configuration"):
        stores.configurations.delete(configuration_id, stores.organization_id)
    return success_resp("Configuration deleted", {"id": configuration_id})
