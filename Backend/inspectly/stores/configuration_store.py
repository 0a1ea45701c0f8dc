from typing import List, Optional

from inspectly import database
from inspectly.api import configurations_api
from inspectly.schemas.configuration import Configuration
from inspectly.stores.entity_store import EntityStore, TableGateway
from inspectly.stores.gateway import ApiGateway


def configurations_gateway(session_factory=None, feed=None) -> ApiGateway:
    return ApiGateway(
        configurations_api.TABLE,
        fetch=configurations_api.get_configurations,
        insert=configurations_api.create_configuration,
        update=configurations_api.update_configuration,
        delete=configurations_api.delete_configuration,
        session_factory=session_factory or database.SessionLocal,
        feed=feed or database.feed,
    )


class ConfigurationStore(EntityStore[Configuration]):
    entity_name = "configuration"
    plural_name = "configurations"
    model_type = Configuration

    def __init__(self, gateway: Optional[TableGateway] = None) -> None:
        super().__init__(gateway or configurations_gateway())

    @property
    def configurations(self) -> List[Configuration]:
        return self.items
