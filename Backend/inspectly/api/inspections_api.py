from typing import List

from sqlalchemy.orm import Session

from inspectly.api import table_client
from inspectly.api.table_client import Payload
from inspectly.models.inspection_model import Inspection as InspectionRow
from inspectly.schemas.inspection import Inspection, InspectionCreate

TABLE = InspectionRow.__tablename__


def get_inspections(db: Session, organization_id: str) -> List[Inspection]:
    rows = table_client.select_rows(db, InspectionRow, organization_id)
    return [Inspection.model_validate(r) for r in rows]


def get_inspection(db: Session, inspection_id: str, organization_id: str) -> Inspection:
    return Inspection.model_validate(table_client.select_one(db, InspectionRow, inspection_id, organization_id))


def create_inspection(db: Session, inspection: InspectionCreate) -> Inspection:
    return Inspection.model_validate(table_client.insert_row(db, InspectionRow, inspection))


def update_inspection(db: Session, inspection_id: str, inspection: Payload) -> Inspection:
    return Inspection.model_validate(table_client.update_row(db, InspectionRow, inspection_id, inspection))


def delete_inspection(db: Session, inspection_id: str, organization_id: str) -> None:
    table_client.delete_row(db, InspectionRow, inspection_id, organization_id)
