from typing import List, Optional

from inspectly import database
from inspectly.api import templates_api
from inspectly.schemas.template import Template
from inspectly.stores.entity_store import EntityStore, TableGateway
from inspectly.stores.gateway import ApiGateway


def templates_gateway(session_factory=None, feed=None) -> ApiGateway:
    return ApiGateway(
        templates_api.TABLE,
        fetch=templates_api.get_templates,
        insert=templates_api.create_template,
        update=templates_api.update_template,
        delete=templates_api.delete_template,
        session_factory=session_factory or database.SessionLocal,
        feed=feed or database.feed,
    )


class TemplateStore(EntityStore[Template]):
    entity_name = "template"
    plural_name = "templates"
    model_type = Template

    def __init__(self, gateway: Optional[TableGateway] = None) -> None:
        super().__init__(gateway or templates_gateway())

    @property
    def templates(self) -> List[Template]:
        return self.items
