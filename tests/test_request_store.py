"""Talep Deposu unit testleri."""

import threading
import time
from datetime import datetime, timezone

import pytest

from src.models.blood_bank import DeliveryMethod, RequestStatus, Urgency
from src.services.errors import NotFoundError, ValidationError
from src.services.request_store import RequestStore, quote_amount, validate_request_fields
from src.services.storage import InMemoryStore


def _fields(**overrides) -> dict:
    data = {
        "patientName": "Ayşe Yılmaz",
        "bloodGroup": "O+",
        "unitsRequired": 2,
        "urgency": "High",
        "contactPerson": "Mehmet Yılmaz",
        "phoneNumber": "5551234567",
        "email": "mehmet@example.com",
        "deliveryAddress": "Atatürk Cad. No:5 Ankara",
    }
    data.update(overrides)
    return data


def _create_store(clock=None) -> RequestStore:
    if clock is None:
        return RequestStore(InMemoryStore())
    return RequestStore(InMemoryStore(), clock=clock)


class TestCreate:

    def test_create_assigns_defaults(self):
        store = _create_store()
        record = store.create(_fields(), price_per_unit=3000)
        assert record.request_id.startswith("BR-")
        assert record.status == RequestStatus.PENDING
        assert record.created_at == record.updated_at
        assert record.urgency == Urgency.HIGH
        assert record.amount == 6000

    def test_urgency_defaults_to_medium(self):
        store = _create_store()
        record = store.create(_fields(urgency=None))
        assert record.urgency == Urgency.MEDIUM

    def test_snake_case_fields_accepted(self):
        store = _create_store()
        record = store.create({
            "patient_name": "Ali Veli",
            "blood_group": "ab-",
            "units_required": "3",
            "contact_person": "Ali Veli",
            "phone_number": "5550000000",
            "email": "ali@example.org",
        })
        assert record.blood_group.value == "AB-"
        assert record.units_required == 3

    def test_delivery_adds_charge(self):
        assert quote_amount(2, 3000, DeliveryMethod.DELIVERY) == 6200
        assert quote_amount(2, 3000, DeliveryMethod.PICKUP) == 6000

    def test_created_request_is_listed(self):
        store = _create_store()
        record = store.create(_fields())
        assert [r.request_id for r in store.list_all()] == [record.request_id]


class TestValidation:
    """İlk hatalı alan raporlanır."""

    @pytest.mark.parametrize(
        "overrides, field",
        [
            ({"patientName": "A"}, "patientName"),
            ({"bloodGroup": "Z+"}, "bloodGroup"),
            ({"unitsRequired": 0}, "unitsRequired"),
            ({"unitsRequired": 21}, "unitsRequired"),
            ({"unitsRequired": 2.5}, "unitsRequired"),
            ({"urgency": "Urgent"}, "urgency"),
            ({"contactPerson": "  "}, "contactPerson"),
            ({"phoneNumber": "555-123-45"}, "phoneNumber"),
            ({"phoneNumber": "55512345678"}, "phoneNumber"),
            ({"email": "not-an-email"}, "email"),
            ({"deliveryMethod": "delivery", "deliveryAddress": ""}, "deliveryAddress"),
            ({"age": 130}, "age"),
            ({"gender": "unknown"}, "gender"),
            ({"requiredDate": "31/12/2026"}, "requiredDate"),
        ],
    )
    def test_invalid_field(self, overrides, field):
        with pytest.raises(ValidationError) as exc:
            validate_request_fields(_fields(**overrides))
        assert exc.value.field == field

    def test_first_failing_field_reported(self):
        with pytest.raises(ValidationError) as exc:
            validate_request_fields(_fields(unitsRequired=50, email="bad"))
        assert exc.value.field == "unitsRequired"

    def test_unit_bounds_accepted(self):
        assert validate_request_fields(_fields(unitsRequired=1))["units_required"] == 1
        assert validate_request_fields(_fields(unitsRequired=20))["units_required"] == 20

    def test_failed_create_stores_nothing(self):
        store = _create_store()
        with pytest.raises(ValidationError):
            store.create(_fields(phoneNumber="123"))
        assert store.list_all() == []


class TestStatusLifecycle:
    """Durum geçişleri: herhangi bir durumdan herhangi bir duruma."""

    def test_set_status_refreshes_updated_at(self):
        fixed = datetime(2026, 1, 1, tzinfo=timezone.utc)
        store = _create_store(clock=lambda: fixed)
        record = store.create(_fields())

        store.set_status(record.request_id, "Completed")

        listed = store.list_all()[0]
        assert listed.status == RequestStatus.COMPLETED
        assert listed.updated_at > record.updated_at
        assert listed.created_at == record.created_at

    def test_any_state_reachable(self):
        store = _create_store()
        record = store.create(_fields())
        store.set_status(record.request_id, RequestStatus.COMPLETED)
        back = store.set_status(record.request_id, "Pending")
        assert back.status == RequestStatus.PENDING

    def test_mark_delivered(self):
        store = _create_store()
        record = store.create(_fields())
        assert store.mark_delivered(record.request_id).status == RequestStatus.COMPLETED

    def test_invalid_status_rejected_and_unchanged(self):
        store = _create_store()
        record = store.create(_fields())
        with pytest.raises(ValidationError):
            store.set_status(record.request_id, "Delivered")
        assert store.get(record.request_id).status == RequestStatus.PENDING

    def test_unknown_id_raises_not_found(self):
        store = _create_store()
        with pytest.raises(NotFoundError):
            store.set_status("BR-MISSING", "Completed")

    def test_units_required_not_changed_by_status(self):
        store = _create_store()
        record = store.create(_fields(unitsRequired=7))
        updated = store.set_status(record.request_id, "Out for delivery")
        assert updated.units_required == 7


class TestDeleteAndListing:

    def test_delete_removes_record(self):
        store = _create_store()
        keep = store.create(_fields())
        drop = store.create(_fields())
        store.delete(drop.request_id)
        assert [r.request_id for r in store.list_all()] == [keep.request_id]

    def test_delete_unknown_raises_not_found(self):
        store = _create_store()
        with pytest.raises(NotFoundError):
            store.delete("BR-MISSING")

    def test_list_preserves_insertion_order_after_update(self):
        store = _create_store()
        ids = [store.create(_fields()).request_id for _ in range(3)]
        store.set_status(ids[0], "Completed")
        assert [r.request_id for r in store.list_all()] == ids

    def test_recent_newest_first(self):
        store = _create_store()
        ids = [store.create(_fields()).request_id for _ in range(4)]
        recent = store.recent(limit=2)
        assert [r.request_id for r in recent] == [ids[3], ids[2]]

    def test_email_kept_as_entered(self):
        store = _create_store()
        record = store.create(_fields(email="  Mehmet.Yilmaz@Example.com "))
        assert record.email == "Mehmet.Yilmaz@Example.com"

    def test_unknown_id_checked_before_status(self):
        store = _create_store()
        with pytest.raises(NotFoundError):
            store.set_status("BR-MISSING", "Delivered")


class _SlowStore(InMemoryStore):
    """Okuma ile yazma arasını açarak yarışları görünür kılar."""

    def __init__(self) -> None:
        super().__init__()
        self.updates: list = []

    def get_request(self, request_id):
        record = super().get_request(request_id)
        time.sleep(0.001)
        return record

    def update_request(self, record):
        super().update_request(record)
        self.updates.append(record)


class TestConcurrentStatus:
    """Aynı talebe eşzamanlı durum yazmaları sıraya girmeli."""

    def test_final_status_is_one_of_the_inputs(self):
        backend = _SlowStore()
        store = RequestStore(backend)
        record = store.create(_fields())
        inputs = ["Out for delivery", "Completed", "Pending"]
        barrier = threading.Barrier(len(inputs))

        def writer(status):
            barrier.wait()
            for _ in range(20):
                store.set_status(record.request_id, status)

        threads = [threading.Thread(target=writer, args=(s,)) for s in inputs]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert store.get(record.request_id).status.value in inputs
        stamps = [r.updated_at for r in backend.updates]
        assert len(stamps) == 60
        assert stamps == sorted(stamps)
        assert len(set(stamps)) == len(stamps)

    def test_deleted_request_stays_deleted(self):
        backend = _SlowStore()
        store = RequestStore(backend)
        record = store.create(_fields())
        barrier = threading.Barrier(3)
        not_found = []

        def writer(status):
            barrier.wait()
            for _ in range(30):
                try:
                    store.set_status(record.request_id, status)
                except NotFoundError:
                    not_found.append(status)

        def deleter():
            barrier.wait()
            time.sleep(0.005)
            store.delete(record.request_id)

        threads = [
            threading.Thread(target=writer, args=("Completed",)),
            threading.Thread(target=writer, args=("Out for delivery",)),
            threading.Thread(target=deleter),
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert store.list_all() == []
        assert backend.get_request(record.request_id) is None
        assert not_found
