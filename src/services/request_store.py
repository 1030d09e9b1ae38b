"""Talep Deposu - kan taleplerinin kaydı ve durum yaşam döngüsü.

Durumlar: Pending -> Out for delivery -> Completed. Yönetici her durumu
doğrudan her duruma çekebilir; yalnızca değerin enum içinde olması zorunludur.
Silme kalıcıdır ve stok defterini etkilemez.
"""

from __future__ import annotations

import logging
import re
import uuid
from dataclasses import replace
from datetime import date, datetime, timedelta
from typing import Any, Callable, Optional

from src.models.blood_bank import (
    DeliveryMethod,
    Gender,
    PaymentMode,
    RequestRecord,
    RequestStatus,
    Urgency,
    utc_now,
)
from src.services.errors import NotFoundError, ValidationError
from src.services.locking import RecordLock
from src.services.stock_ledger import parse_blood_group
from src.services.storage import BaseStore

logger = logging.getLogger(__name__)

MIN_UNITS = 1
MAX_UNITS = 20
DEFAULT_DELIVERY_CHARGE = 200

PHONE_PATTERN = re.compile(r"^[0-9]{10}$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[A-Za-z]{2,}$")

# camelCase giriş anahtarlarının karşılıkları
_FIELD_ALIASES = {
    "patientName": "patient_name",
    "bloodGroup": "blood_group",
    "unitsRequired": "units_required",
    "contactPerson": "contact_person",
    "phoneNumber": "phone_number",
    "deliveryAddress": "delivery_address",
    "deliveryMethod": "delivery_method",
    "paymentMode": "payment_mode",
    "requiredDate": "required_date",
    "additionalNotes": "additional_notes",
}


def generate_request_id() -> str:
    """Benzersiz kan talebi ID'si üretir."""
    return f"BR-{uuid.uuid4().hex[:8].upper()}"


def parse_request_status(value: Any) -> RequestStatus:
    if isinstance(value, RequestStatus):
        return value
    try:
        return RequestStatus(value)
    except ValueError:
        allowed = ", ".join(s.value for s in RequestStatus)
        raise ValidationError("status", f"{value!r} geçerli bir durum değil ({allowed})") from None


def quote_amount(
    units_required: int,
    price_per_unit: int,
    delivery_method: DeliveryMethod,
    delivery_charge: int = DEFAULT_DELIVERY_CHARGE,
) -> int:
    """Talep için ödenecek tutarı hesaplar (yalnızca kayıt amaçlı)."""
    amount = units_required * price_per_unit
    if delivery_method == DeliveryMethod.DELIVERY:
        amount += delivery_charge
    return amount


def _normalize_fields(fields: dict) -> dict:
    return {_FIELD_ALIASES.get(k, k): v for k, v in fields.items()}


def _clean_text(value: Any) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise TypeError
    return value.strip()


def _text(data: dict, field: str, label: str, required: bool = True,
          min_len: int = 1, max_len: Optional[int] = None) -> str:
    try:
        value = _clean_text(data.get(field))
    except TypeError:
        raise ValidationError(label, f"{label} metin olmalı") from None
    if not value:
        if required:
            raise ValidationError(label, f"{label} zorunlu")
        return ""
    if len(value) < min_len:
        raise ValidationError(label, f"{label} en az {min_len} karakter olmalı")
    if max_len is not None and len(value) > max_len:
        raise ValidationError(label, f"{label} en fazla {max_len} karakter olabilir")
    return value


def _int(value: Any, label: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(label, f"{label} tam sayı olmalı")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise ValidationError(label, f"{label} tam sayı olmalı: {value!r}")


def _enum(enum_cls, value: Any, label: str, default=None):
    if value is None or value == "":
        if default is None:
            raise ValidationError(label, f"{label} zorunlu")
        return default
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(e.value for e in enum_cls)
        raise ValidationError(label, f"{value!r} geçerli değil ({allowed})") from None


def validate_request_fields(fields: dict) -> dict:
    """Talep alanlarını sırayla doğrular; ilk hatalı alan için ValidationError fırlatır.

    Geçerli alanları snake_case anahtarlı, tipleri çözülmüş bir dict olarak döndürür.
    """
    data = _normalize_fields(fields)
    out: dict = {}

    out["patient_name"] = _text(data, "patient_name", "patientName", min_len=2, max_len=100)
    out["blood_group"] = parse_blood_group(data.get("blood_group"))

    if data.get("units_required") in (None, ""):
        raise ValidationError("unitsRequired", "unitsRequired zorunlu")
    units = _int(data["units_required"], "unitsRequired")
    if not MIN_UNITS <= units <= MAX_UNITS:
        raise ValidationError(
            "unitsRequired", f"unitsRequired {MIN_UNITS} ile {MAX_UNITS} arasında olmalı: {units}"
        )
    out["units_required"] = units

    out["urgency"] = _enum(Urgency, data.get("urgency"), "urgency", default=Urgency.MEDIUM)
    out["contact_person"] = _text(data, "contact_person", "contactPerson", max_len=100)

    phone = _text(data, "phone_number", "phoneNumber")
    if not PHONE_PATTERN.match(phone):
        raise ValidationError("phoneNumber", "phoneNumber tam olarak 10 rakam olmalı")
    out["phone_number"] = phone

    email = _text(data, "email", "email", max_len=254)
    if not EMAIL_PATTERN.match(email):
        raise ValidationError("email", f"Geçersiz e-posta adresi: {email}")
    out["email"] = email

    out["delivery_method"] = _enum(
        DeliveryMethod, data.get("delivery_method"), "deliveryMethod", default=DeliveryMethod.PICKUP
    )
    out["delivery_address"] = _text(
        data, "delivery_address", "deliveryAddress",
        required=out["delivery_method"] == DeliveryMethod.DELIVERY, max_len=300,
    )
    out["payment_mode"] = _enum(
        PaymentMode, data.get("payment_mode"), "paymentMode", default=PaymentMode.ONLINE
    )

    hospital = _text(data, "hospital", "hospital", required=False, min_len=3, max_len=150)
    out["hospital"] = hospital or None

    if data.get("age") in (None, ""):
        out["age"] = None
    else:
        age = _int(data["age"], "age")
        if not 0 <= age <= 120:
            raise ValidationError("age", f"age 0 ile 120 arasında olmalı: {age}")
        out["age"] = age

    gender = data.get("gender")
    out["gender"] = None if gender in (None, "") else _enum(Gender, gender, "gender")

    required_date = _text(data, "required_date", "requiredDate", required=False)
    if required_date:
        try:
            date.fromisoformat(required_date)
        except ValueError:
            raise ValidationError("requiredDate", "requiredDate YYYY-MM-DD biçiminde olmalı") from None
    out["required_date"] = required_date or None

    out["additional_notes"] = _text(
        data, "additional_notes", "additionalNotes", required=False, max_len=500
    )
    return out


class RequestStore:
    """Kan taleplerini tutan ve durum geçişlerini yöneten depo."""

    def __init__(
        self,
        store: BaseStore,
        record_lock: Optional[RecordLock] = None,
        delivery_charge: int = DEFAULT_DELIVERY_CHARGE,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._record_lock = record_lock or RecordLock()
        self.delivery_charge = delivery_charge
        self._clock = clock

    def _next_timestamp(self, previous: Optional[datetime] = None) -> datetime:
        # updated_at her güncellemede kesin olarak artmalı
        now = self._clock()
        if previous is not None and now <= previous:
            now = previous + timedelta(microseconds=1)
        return now

    def create(self, fields: dict, price_per_unit: int = 0) -> RequestRecord:
        """Yeni talep oluşturur; durum Pending olarak başlar."""
        values = validate_request_fields(fields)
        now = self._next_timestamp()
        record = RequestRecord(
            request_id=generate_request_id(),
            status=RequestStatus.PENDING,
            amount=quote_amount(
                values["units_required"], price_per_unit,
                values["delivery_method"], self.delivery_charge,
            ),
            created_at=now,
            updated_at=now,
            **values,
        )
        self._store.create_request(record)
        logger.info(
            "Talep oluşturuldu: %s %s x%d (%s)",
            record.request_id,
            record.blood_group.value,
            record.units_required,
            record.urgency.value,
        )
        return record

    def get(self, request_id: str) -> RequestRecord:
        record = self._store.get_request(request_id)
        if record is None:
            raise NotFoundError(f"Talep bulunamadı: {request_id}")
        return record

    def set_status(self, request_id: str, new_status: Any) -> RequestRecord:
        """Talebin durumunu koşulsuz olarak değiştirir ve updated_at'i yeniler.

        Önce talep aranır (NotFoundError), sonra durum değeri doğrulanır.
        """
        with self._record_lock.hold(f"request:{request_id}"):
            current = self.get(request_id)
            status = parse_request_status(new_status)
            updated = replace(
                current,
                status=status,
                updated_at=self._next_timestamp(current.updated_at),
            )
            self._store.update_request(updated)
        logger.info(
            "Talep durumu değişti: %s %s -> %s",
            request_id,
            current.status.value,
            status.value,
        )
        return updated

    def mark_delivered(self, request_id: str) -> RequestRecord:
        """Teslim edildi kısayolu: her durumdan doğrudan Completed'a geçer."""
        return self.set_status(request_id, RequestStatus.COMPLETED)

    def delete(self, request_id: str) -> None:
        with self._record_lock.hold(f"request:{request_id}"):
            if not self._store.delete_request(request_id):
                raise NotFoundError(f"Talep bulunamadı: {request_id}")
        logger.info("Talep silindi: %s", request_id)

    def list_all(self) -> list[RequestRecord]:
        """Tüm talepleri ekleme sırasıyla döndürür."""
        return self._store.list_requests()

    def recent(self, limit: int = 5) -> list[RequestRecord]:
        """En yeni talepleri oluşturulma zamanına göre azalan sırada döndürür."""
        # Aynı zaman damgasında ekleme sırası belirleyicidir
        ordered = sorted(
            enumerate(self.list_all()), key=lambda pair: (pair[1].created_at, pair[0]), reverse=True
        )
        return [record for _, record in ordered[:max(0, limit)]]
