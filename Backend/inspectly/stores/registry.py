import logging
import threading
from dataclasses import dataclass
from typing import Dict

from inspectly import database
from inspectly.realtime import ChangeFeed
from inspectly.stores.configuration_store import ConfigurationStore, configurations_gateway
from inspectly.stores.inspection_store import InspectionStore
from inspectly.stores.template_store import TemplateStore, templates_gateway

logger = logging.getLogger(__name__)


@dataclass
class OrganizationStores:
    organization_id: str
    templates: TemplateStore
    configurations: ConfigurationStore
    inspections: InspectionStore

    def close(self) -> None:
        self.templates.unsubscribe_from_changes()
        self.configurations.unsubscribe_from_changes()


class StoreRegistry:
    """
    One set of stores per organization, loaded and subscribed on first use.
    A store whose load failed is fetched again on the next access.
    """

    def __init__(self, session_factory=None, feed: ChangeFeed = None) -> None:
        self._session_factory = session_factory or database.SessionLocal
        self._feed = feed or database.feed
        self._lock = threading.Lock()
        self._stores: Dict[str, OrganizationStores] = {}

    def for_organization(self, organization_id: str) -> OrganizationStores:
        with self._lock:
            stores = self._stores.get(organization_id)
            if stores is None:
                stores = OrganizationStores(
                    organization_id=organization_id,
                    templates=TemplateStore(templates_gateway(self._session_factory, self._feed)),
                    configurations=ConfigurationStore(configurations_gateway(self._session_factory, self._feed)),
                    inspections=InspectionStore(),
                )
                for store in (stores.templates, stores.configurations):
                    # subscribe before loading so nothing committed in between is missed
                    store.subscribe_to_changes(organization_id)
                    store.fetch(organization_id)
                self._stores[organization_id] = stores
                logger.info("Stores loaded for organization %s", organization_id)
                return stores
        for store in (stores.templates, stores.configurations):
            if store.error is not None and not store.loading:
                store.fetch(organization_id)
        return stores

    def close(self) -> None:
        with self._lock:
            stores = list(self._stores.values())
            self._stores.clear()
        for entry in stores:
            entry.close()
