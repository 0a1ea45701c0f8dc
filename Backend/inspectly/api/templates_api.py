from typing import List

from sqlalchemy.orm import Session

from inspectly.api import table_client
from inspectly.api.table_client import Payload
from inspectly.models.template_model import Template as TemplateRow
from inspectly.schemas.template import Template, TemplateCreate

TABLE = TemplateRow.__tablename__


def get_templates(db: Session, organization_id: str) -> List[Template]:
    rows = table_client.select_rows(db, TemplateRow, organization_id)
    return [Template.model_validate(r) for r in rows]


def get_template(db: Session, template_id: str, organization_id: str) -> Template:
    return Template.model_validate(table_client.select_one(db, TemplateRow, template_id, organization_id))


def create_template(db: Session, template: TemplateCreate) -> Template:
    return Template.model_validate(table_client.insert_row(db, TemplateRow, template))


def update_template(db: Session, template_id: str, template: Payload) -> Template:
    return Template.model_validate(table_client.update_row(db, TemplateRow, template_id, template))


def delete_template(db: Session, template_id: str, organization_id: str) -> None:
    table_client.delete_row(db, TemplateRow, template_id, organization_id)
