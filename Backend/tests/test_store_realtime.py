from inspectly.api import configurations_api, templates_api
from inspectly.exceptions import BackendError
from inspectly.realtime import EVENT_DELETE, EVENT_INSERT, EVENT_UPDATE
from inspectly.schemas.configuration import ConfigurationCreate
from inspectly.schemas.template import TemplateCreate
from inspectly.stores.configuration_store import ConfigurationStore, configurations_gateway
from inspectly.stores.registry import StoreRegistry
from inspectly.stores.template_store import TemplateStore, templates_gateway


def _template_store(session_factory, feed, org_id):
    store = TemplateStore(templates_gateway(session_factory, feed))
    store.subscribe_to_changes(org_id)
    store.fetch(org_id)
    return store


def test_colors_configuration_added_then_deleted_twice(session_factory, feed, org_id):
    store = ConfigurationStore(configurations_gateway(session_factory, feed))
    store.subscribe_to_changes(org_id)
    store.fetch(org_id)

    created = store.add(ConfigurationCreate(name="Colors", organization_id=org_id, options=["Red", "Blue"]))
    assert [c.options for c in store.configurations] == [["Red", "Blue"]]

    store.delete(created.id, org_id)
    store.delete(created.id, org_id)

    assert store.configurations == []
    assert store.error is None


def test_own_insert_appears_once(session_factory, feed, org_id):
    store = _template_store(session_factory, feed, org_id)

    created = store.add(TemplateCreate(name="Daily walk", organization_id=org_id))

    assert [t.id for t in store.templates] == [created.id]


def test_other_writers_changes_are_merged(session_factory, feed, db, org_id):
    store = _template_store(session_factory, feed, org_id)

    remote = templates_api.create_template(db, TemplateCreate(name="Remote", organization_id=org_id))
    assert store.get(remote.id).name == "Remote"

    templates_api.update_template(db, remote.id, {"name": "Remote v2"})
    assert store.get(remote.id).name == "Remote v2"

    templates_api.delete_template(db, remote.id, org_id)
    assert store.get(remote.id) is None


def test_changes_in_other_organizations_are_not_delivered(session_factory, feed, db, org_id, other_org_id):
    store = _template_store(session_factory, feed, org_id)

    templates_api.create_template(db, TemplateCreate(name="Theirs", organization_id=other_org_id))

    assert store.templates == []


def test_unsubscribed_store_stops_receiving(session_factory, feed, db, org_id):
    store = _template_store(session_factory, feed, org_id)
    store.unsubscribe_from_changes()

    templates_api.create_template(db, TemplateCreate(name="Late", organization_id=org_id))

    assert store.templates == []
    assert feed.channel_count == 0


def test_feed_publishes_committed_changes_only(session_factory, feed, db, org_id):
    events = []
    feed.channel(
        configurations_api.TABLE,
        org_id,
        on_insert=lambda row: events.append((EVENT_INSERT, row["name"])),
        on_update=lambda row: events.append((EVENT_UPDATE, row["name"])),
        on_delete=lambda row: events.append((EVENT_DELETE, row["name"])),
    )

    created = configurations_api.create_configuration(db, ConfigurationCreate(name="Sizes", organization_id=org_id))
    configurations_api.update_configuration(db, created.id, {"options": ["S", "M"]})
    configurations_api.delete_configuration(db, created.id, org_id)

    assert events == [(EVENT_INSERT, "Sizes"), (EVENT_UPDATE, "Sizes"), (EVENT_DELETE, "Sizes")]


def test_failing_listener_does_not_block_others(feed, db, org_id):
    seen = []

    def explode(row):
        raise RuntimeError("listener bug")

    feed.channel(configurations_api.TABLE, org_id, on_insert=explode)
    feed.channel(configurations_api.TABLE, org_id, on_insert=lambda row: seen.append(row["id"]))

    created = configurations_api.create_configuration(db, ConfigurationCreate(name="Sizes", organization_id=org_id))

    assert seen == [created.id]


def test_registry_reuses_stores_and_closes_channels(session_factory, feed, db, org_id):
    templates_api.create_template(db, TemplateCreate(name="Existing", organization_id=org_id))
    registry = StoreRegistry(session_factory, feed)

    stores = registry.for_organization(org_id)
    assert registry.for_organization(org_id) is stores
    assert [t.name for t in stores.templates.templates] == ["Existing"]
    assert feed.channel_count == 2

    registry.close()
    assert feed.channel_count == 0


def test_registry_refetches_store_left_in_error(session_factory, feed, db, org_id):
    templates_api.create_template(db, TemplateCreate(name="Existing", organization_id=org_id))
    backend = {"down": True}

    def flaky_sessions():
        if backend["down"]:
            raise BackendError("database unavailable")
        return session_factory()

    registry = StoreRegistry(flaky_sessions, feed)

    stores = registry.for_organization(org_id)
    assert stores.templates.error == "Failed to fetch templates"
    assert stores.configurations.error == "Failed to fetch configurations"
    assert stores.templates.subscribed

    backend["down"] = False
    again = registry.for_organization(org_id)

    assert again is stores
    assert stores.templates.error is None
    assert stores.configurations.error is None
    assert [t.name for t in stores.templates.templates] == ["Existing"]
    registry.close()
