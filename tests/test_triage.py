"""Triage görünümü unit testleri."""

from src.models.blood_bank import RequestStatus, Urgency
from src.services.request_store import RequestStore
from src.services.storage import InMemoryStore
from src.services.triage import TriageQuery, TriageView, build_triage_page


def _fields(index: int, urgency: str, **overrides) -> dict:
    data = {
        "patientName": f"Hasta {index}",
        "bloodGroup": "A+",
        "unitsRequired": 1,
        "urgency": urgency,
        "contactPerson": f"Kişi {index}",
        "phoneNumber": f"555{index:07d}",
        "email": f"kisi{index}@example.com",
    }
    data.update(overrides)
    return data


def _create_store_with_mix() -> RequestStore:
    """3 Critical, 5 High, 10 Medium, 7 Low; aciliyetler karışık sırada eklenir."""
    store = RequestStore(InMemoryStore())
    urgencies = (
        ["Low"] * 4 + ["Medium"] * 5 + ["Critical"] + ["High"] * 3
        + ["Medium"] * 5 + ["Critical"] * 2 + ["Low"] * 3 + ["High"] * 2
    )
    for i, urgency in enumerate(urgencies):
        store.create(_fields(i, urgency))
    return store


class TestSortAndPaginate:
    """Aciliyet sıralaması ve sayfalama."""

    def test_first_page_contents(self):
        store = _create_store_with_mix()
        records = store.list_all()
        page = build_triage_page(records, TriageQuery(page=1))

        assert page.count == 25
        assert page.total_pages == 3
        assert [r.urgency for r in page.items] == (
            [Urgency.CRITICAL] * 3 + [Urgency.HIGH] * 5 + [Urgency.MEDIUM] * 2
        )

    def test_ties_keep_original_order(self):
        store = _create_store_with_mix()
        records = store.list_all()
        page = build_triage_page(records, TriageQuery(page=1))

        original_ids = [r.request_id for r in records]
        for urgency in (Urgency.CRITICAL, Urgency.HIGH):
            ids = [r.request_id for r in page.items if r.urgency == urgency]
            assert ids == sorted(ids, key=original_ids.index)

        first_mediums = [r.request_id for r in records if r.urgency == Urgency.MEDIUM][:2]
        assert [r.request_id for r in page.items if r.urgency == Urgency.MEDIUM] == first_mediums

    def test_last_page_partial(self):
        store = _create_store_with_mix()
        page = build_triage_page(store.list_all(), TriageQuery(page=3))
        assert len(page.items) == 5
        assert all(r.urgency == Urgency.LOW for r in page.items)

    def test_page_past_end_is_empty(self):
        store = _create_store_with_mix()
        page = build_triage_page(store.list_all(), TriageQuery(page=4))
        assert page.items == []
        assert page.total_pages == 3

    def test_empty_store(self):
        page = build_triage_page([], TriageQuery())
        assert page.count == 0
        assert page.total_pages == 0
        assert page.items == []

    def test_same_inputs_same_output(self):
        store = _create_store_with_mix()
        records = store.list_all()
        query = TriageQuery(urgency="Medium", page=1)
        first = build_triage_page(records, query)
        second = build_triage_page(records, query)
        assert [r.request_id for r in first.items] == [r.request_id for r in second.items]


class TestFilters:

    def test_search_name_case_insensitive(self):
        store = _create_store_with_mix()
        page = build_triage_page(store.list_all(), TriageQuery(search="KIŞI 12"))
        assert [r.contact_person for r in page.items] == ["Kişi 12"]

    def test_search_email(self):
        store = _create_store_with_mix()
        page = build_triage_page(store.list_all(), TriageQuery(search="KISI7@EXAMPLE"))
        assert [r.email for r in page.items] == ["kisi7@example.com"]

    def test_search_phone_substring(self):
        store = _create_store_with_mix()
        page = build_triage_page(store.list_all(), TriageQuery(search="5550000003"))
        assert [r.phone_number for r in page.items] == ["5550000003"]

    def test_combined_filters(self):
        store = RequestStore(InMemoryStore())
        a = store.create(_fields(1, "High", bloodGroup="B-"))
        store.create(_fields(2, "High", bloodGroup="O+"))
        c = store.create(_fields(3, "Low", bloodGroup="B-"))
        store.set_status(c.request_id, RequestStatus.COMPLETED)

        page = build_triage_page(
            store.list_all(), TriageQuery(blood_group="B-", status="Pending", urgency="High")
        )
        assert [r.request_id for r in page.items] == [a.request_id]

    def test_unknown_filter_values_treated_as_all(self):
        store = _create_store_with_mix()
        page = build_triage_page(
            store.list_all(),
            TriageQuery(blood_group="XYZ", status="Lost", urgency="Whenever", page="abc"),
        )
        assert page.count == 25
        assert page.page == 1

    def test_non_positive_page_falls_back_to_first(self):
        store = _create_store_with_mix()
        page = build_triage_page(store.list_all(), TriageQuery(page=0))
        assert page.page == 1
        assert len(page.items) == 10


class TestTriageView:
    """Görünüm her çağrıda güncel veriyi yansıtmalı."""

    def test_mutations_visible_immediately(self):
        store = RequestStore(InMemoryStore())
        view = TriageView(store)
        record = store.create(_fields(1, "Low"))
        assert view.query().count == 1

        store.set_status(record.request_id, "Completed")
        assert view.query(TriageQuery(status="Pending")).count == 0

        store.delete(record.request_id)
        assert view.query().count == 0

    def test_query_from_params(self):
        query = TriageQuery.from_params({"searchQuery": "ali", "bloodGroup": "A+", "page": 2})
        assert query.search == "ali"
        assert query.blood_group == "A+"
        assert query.status == "all"
        assert query.page == 2
