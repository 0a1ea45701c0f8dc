import logging
from datetime import datetime
from typing import Dict

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import Response
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from inspectly.api import inspections_api, templates_api
from inspectly.database import get_db
from inspectly.exceptions import RecordNotFoundError
from inspectly.reports.excel_export import export_inspections_xlsx
from inspectly.reports.pdf_report import generate_pdf
from inspectly.routers.deps import get_stores
from inspectly.schemas.inspection import (
    Inspection,
    InspectionCreate,
    InspectionStatus,
    InspectionUpdate,
    Response as InspectionResponse,
)
from inspectly.schemas.template import Template
from inspectly.stores.registry import OrganizationStores
from inspectly.utils import http_errors, success_resp

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/inspections", tags=["inspections"])

PDF_MEDIA_TYPE = "application/pdf"
XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


class InspectionBody(BaseModel):
    template_id: str
    inspector_name: str = Field(..., min_length=1)
    location: str = ""
    status: InspectionStatus = InspectionStatus.INCOMPLETE
    date: datetime = Field(default_factory=datetime.now)
    responses: Dict[str, InspectionResponse] = Field(default_factory=dict)


def _load_template(db: Session, stores: OrganizationStores, template_id: str) -> Template:
    template = stores.templates.get(template_id)
    if template is None:
        template = templates_api.get_template(db, template_id, stores.organization_id)
    return template


def _load_inspection(db: Session, stores: OrganizationStores, inspection_id: str) -> Inspection:
    inspection = stores.inspections.get(inspection_id)
    if inspection is None:
        inspection = inspections_api.get_inspection(db, inspection_id, stores.organization_id)
    return inspection


def _attachment(filename: str) -> Dict[str, str]:
    return {"Content-Disposition": f'attachment; filename="{filename}"'}


@router.get("/")
def list_inspections(stores: OrganizationStores = Depends(get_stores), db: Session = Depends(get_db)):
    with http_errors("Failed to fetch inspections"):
        inspections = inspections_api.get_inspections(db, stores.organization_id)
    return success_resp("Inspections fetched", [i.model_dump(mode="json") for i in inspections])


@router.get("/export")
def export_inspections(stores: OrganizationStores = Depends(get_stores), db: Session = Depends(get_db)):
    """Excel summary of every inspection in the caller's organization."""
    with http_errors("Error exporting inspections"):
        inspections = inspections_api.get_inspections(db, stores.organization_id)
        templates = templates_api.get_templates(db, stores.organization_id)
    content, filename = export_inspections_xlsx(inspections, {t.id: t for t in templates})
    logger.info("Exported %d inspections for %s", len(inspections), stores.organization_id)
    return Response(content=content, media_type=XLSX_MEDIA_TYPE, headers=_attachment(filename))


@router.get("/{inspection_id}")
def get_inspection(inspection_id: str, stores: OrganizationStores = Depends(get_stores), db: Session = Depends(get_db)):
    with http_errors("Error fetching inspection", not_found_message="Inspection not found"):
        inspection = _load_inspection(db, stores, inspection_id)
    return success_resp("Inspection fetched", inspection.model_dump(mode="json"))


@router.get("/{inspection_id}/report")
def download_report(inspection_id: str, stores: OrganizationStores = Depends(get_stores), db: Session = Depends(get_db)):
    with http_errors("Error generating report", not_found_message="Inspection not found"):
        inspection = _load_inspection(db, stores, inspection_id)
    try:
        template = _load_template(db, stores, inspection.template_id)
    except RecordNotFoundError:
        raise HTTPException(status_code=404, detail="Template for this inspection no longer exists")
    report = generate_pdf(inspection, template)
    return Response(content=report.content, media_type=PDF_MEDIA_TYPE, headers=_attachment(report.filename))


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_inspection(body: InspectionBody, stores: OrganizationStores = Depends(get_stores), db: Session = Depends(get_db)):
    try:
        _load_template(db, stores, body.template_id)
    except RecordNotFoundError:
        raise HTTPException(status_code=400, detail="Unknown template")
    draft = InspectionCreate(organization_id=stores.organization_id, **body.model_dump())
    with http_errors("Failed to create inspection"):
        inspection = inspections_api.create_inspection(db, draft)
    stores.inspections.add_inspection(inspection)
    logger.info("Inspection %s created in %s", inspection.id, stores.organization_id)
    return success_resp("Inspection created", inspection.model_dump(mode="json"), status_code=201)


@router.put("/{inspection_id}")
def update_inspection(
    inspection_id: str,
    body: InspectionUpdate,
    stores: OrganizationStores = Depends(get_stores),
    db: Session = Depends(get_db),
):
    with http_errors("Failed to update inspection", not_found_message="Inspection not found"):
        inspections_api.get_inspection(db, inspection_id, stores.organization_id)
        inspection = inspections_api.update_inspection(db, inspection_id, body)
    stores.inspections.update_inspection(inspection_id, inspection)
    return success_resp("Inspection updated", inspection.model_dump(mode="json"))


@router.delete("/{inspection_id}")
def delete_inspection(inspection_id: str, stores: OrganizationStores = Depends(get_stores), db: Session = Depends(get_db)):
    with http_errors("Failed to delete inspection"):
        inspections_api.delete_inspection(db, inspection_id, stores.organization_id)
    stores.inspections.delete_inspection(inspection_id)
    return success_resp("Inspection deleted", {"id": inspection_id})
