from typing import List

from sqlalchemy.orm import Session

from inspectly.api import table_client
from inspectly.api.table_client import Payload
from inspectly.models.configuration_model import Configuration as ConfigurationRow
from inspectly.schemas.configuration import Configuration, ConfigurationCreate

TABLE = ConfigurationRow.__tablename__


def get_configurations(db: Session, organization_id: str) -> List[Configuration]:
    rows = table_client.select_rows(db, ConfigurationRow, organization_id)
    return [Configuration.model_validate(r) for r in rows]


def get_configuration(db: Session, configuration_id: str, organization_id: str) -> Configuration:
    return Configuration.model_validate(
        table_client.select_one(db, ConfigurationRow, configuration_id, organization_id)
    )


def create_configuration(db: Session, configuration: ConfigurationCreate) -> Configuration:
    return Configuration.model_validate(table_client.insert_row(db, ConfigurationRow, configuration))


def update_configuration(db: Session, configuration_id: str, configuration: Payload) -> Configuration:
    return Configuration.model_validate(
        table_client.update_row(db, ConfigurationRow, configuration_id, configuration)
    )


def delete_configuration(db: Session, configuration_id: str, organization_id: str) -> None:
    table_client.delete_row(db, ConfigurationRow, configuration_id, organization_id)
