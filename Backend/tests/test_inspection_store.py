from datetime import datetime

from inspectly.schemas.inspection import Inspection, InspectionStatus
from inspectly.stores.inspection_store import InspectionStore


def _inspection(id, status=InspectionStatus.INCOMPLETE):
    return Inspection(
        id=id,
        template_id="t1",
        organization_id="org-1",
        inspector_name="Pat",
        status=status,
        date=datetime(2024, 5, 1),
    )


def test_add_appends_in_call_order():
    store = InspectionStore()

    store.add_inspection(_inspection("a"))
    store.add_inspection(_inspection("b"))

    assert [i.id for i in store.inspections] == ["a", "b"]


def test_update_replaces_matching_id_only():
    store = InspectionStore()
    store.add_inspection(_inspection("a"))
    store.add_inspection(_inspection("b"))

    store.update_inspection("b", _inspection("b", InspectionStatus.COMPLETE))

    assert store.get("a").status == InspectionStatus.INCOMPLETE
    assert store.get("b").status == InspectionStatus.COMPLETE


def test_update_of_unknown_id_changes_nothing():
    store = InspectionStore()
    store.add_inspection(_inspection("a"))

    store.update_inspection("zzz", _inspection("zzz"))

    assert [i.id for i in store.inspections] == ["a"]


def test_delete_is_idempotent():
    store = InspectionStore()
    store.add_inspection(_inspection("a"))

    store.delete_inspection("a")
    store.delete_inspection("a")

    assert store.inspections == []
