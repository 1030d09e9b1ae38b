"""Kan bankası stok ve talep veri modelleri."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class BloodGroup(str, Enum):
    A_POS = "A+"
    A_NEG = "A-"
    B_POS = "B+"
    B_NEG = "B-"
    AB_POS = "AB+"
    AB_NEG = "AB-"
    O_POS = "O+"
    O_NEG = "O-"


# Sıralama için kanonik kan grubu sırası
BLOOD_GROUP_ORDER: dict[BloodGroup, int] = {g: i for i, g in enumerate(BloodGroup)}


class StockStatus(str, Enum):
    OUT_OF_STOCK = "Out of Stock"
    CRITICAL = "Critical"
    LOW = "Low"
    IN_STOCK = "In Stock"


class Urgency(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


URGENCY_WEIGHTS: dict[Urgency, int] = {
    Urgency.CRITICAL: 4,
    Urgency.HIGH: 3,
    Urgency.MEDIUM: 2,
    Urgency.LOW: 1,
}


class RequestStatus(str, Enum):
    PENDING = "Pending"
    OUT_FOR_DELIVERY = "Out for delivery"
    COMPLETED = "Completed"


class DeliveryMethod(str, Enum):
    PICKUP = "pickup"
    DELIVERY = "delivery"


class PaymentMode(str, Enum):
    ONLINE = "online"
    CASH = "cash"


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


@dataclass(frozen=True)
class StockThresholds:
    """Stok durum eşikleri: 0 -> Out of Stock, <= critical_max -> Critical, <= low_max -> Low."""

    critical_max: int = 5
    low_max: int = 15

    def __post_init__(self) -> None:
        if not 0 < self.critical_max < self.low_max:
            raise ValueError("Eşikler 0 < critical_max < low_max olmalı")


DEFAULT_THRESHOLDS = StockThresholds()


def derive_stock_status(
    units_available: int, thresholds: StockThresholds = DEFAULT_THRESHOLDS
) -> StockStatus:
    """Birim sayısından stok durumunu türetir (saf fonksiyon)."""
    if units_available <= 0:
        return StockStatus.OUT_OF_STOCK
    if units_available <= thresholds.critical_max:
        return StockStatus.CRITICAL
    if units_available <= thresholds.low_max:
        return StockStatus.LOW
    return StockStatus.IN_STOCK


@dataclass
class StockRecord:
    blood_group: BloodGroup
    units_available: int = 0
    price_per_unit: int = 3000
    version: int = 0
    updated_at: datetime = field(default_factory=utc_now)
    thresholds: StockThresholds = field(default=DEFAULT_THRESHOLDS, repr=False, compare=False)

    @property
    def status(self) -> StockStatus:
        # Her okumada yeniden hesaplanır, ayrıca saklanmaz
        return derive_stock_status(self.units_available, self.thresholds)

    def to_dict(self) -> dict:
        return {
            "bloodGroup": self.blood_group.value,
            "unitsAvailable": self.units_available,
            "pricePerUnit": self.price_per_unit,
            "status": self.status.value,
            "version": self.version,
            "updatedAt": self.updated_at.isoformat(),
        }


@dataclass
class RequestRecord:
    request_id: str
    blood_group: BloodGroup
    units_required: int
    contact_person: str
    phone_number: str
    email: str
    patient_name: str
    urgency: Urgency = Urgency.MEDIUM
    status: RequestStatus = RequestStatus.PENDING
    delivery_address: str = ""
    delivery_method: DeliveryMethod = DeliveryMethod.PICKUP
    payment_mode: PaymentMode = PaymentMode.ONLINE
    hospital: Optional[str] = None
    age: Optional[int] = None
    gender: Optional[Gender] = None
    required_date: Optional[str] = None
    additional_notes: str = ""
    amount: int = 0
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def to_dict(self) -> dict:
        return {
            "id": self.request_id,
            "patientName": self.patient_name,
            "hospital": self.hospital,
            "age": self.age,
            "gender": self.gender.value if self.gender else None,
            "bloodGroup": self.blood_group.value,
            "unitsRequired": self.units_required,
            "requiredDate": self.required_date,
            "urgency": self.urgency.value,
            "status": self.status.value,
            "deliveryMethod": self.delivery_method.value,
            "paymentMode": self.payment_mode.value,
            "contactPerson": self.contact_person,
            "phoneNumber": self.phone_number,
            "email": self.email,
            "deliveryAddress": self.delivery_address,
            "additionalNotes": self.additional_notes,
            "amount": self.amount,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


@dataclass
class InventorySummary:
    total_units: int
    blood_groups: int
    critical_stock_count: int

    def to_dict(self) -> dict:
        return {
            "totalUnits": self.total_units,
            "bloodGroups": self.blood_groups,
            "criticalStockCount": self.critical_stock_count,
        }


@dataclass
class TriagePage:
    items: list[RequestRecord]
    count: int
    total_pages: int
    page: int
    page_size: int

    def to_dict(self) -> dict:
        return {
            "requests": [r.to_dict() for r in self.items],
            "count": self.count,
            "totalPages": self.total_pages,
            "page": self.page,
            "pageSize": self.page_size,
        }


@dataclass
class DashboardStats:
    total_requests: int
    pending_requests: int
    out_for_delivery: int
    completed_requests: int
    critical_requests: int
    total_units: int
    critical_stock_count: int

    def to_dict(self) -> dict:
        return {
            "totalRequests": self.total_requests,
            "pendingRequests": self.pending_requests,
            "outForDelivery": self.out_for_delivery,
            "completedRequests": self.completed_requests,
            "criticalRequests": self.critical_requests,
            "totalUnits": self.total_units,
            "criticalStockCount": self.critical_stock_count,
        }


@dataclass
class AuditLogEntry:
    entry_id: str
    blood_group: BloodGroup
    units_before: int
    units_after: int
    price_before: int
    price_after: int
    triggered_by: str
    timestamp: datetime = field(default_factory=utc_now)

    @property
    def change_amount(self) -> int:
        return self.units_after - self.units_before
