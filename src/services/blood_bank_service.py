"""Kan bankası servis katmanı - dış arayüzdeki işlemlerin tek giriş noktası.

Stok defteri, talep deposu ve triage görünümünü bir araya getirir; yönetici
işlemlerinde her çağrıda Authorization başlığını erişim kapısından geçirir.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from src.models.blood_bank import (
    DashboardStats,
    RequestRecord,
    RequestStatus,
    StockRecord,
    TriagePage,
    Urgency,
)
from src.services.access_gate import AccessGate, AdminPrincipal
from src.services.request_store import RequestStore, validate_request_fields
from src.services.stock_ledger import StockLedger
from src.services.triage import TriageQuery, TriageView

logger = logging.getLogger(__name__)


class BloodBankService:
    """Stok ve talep işlemlerini yetkilendirmeyle birlikte sunar."""

    def __init__(
        self,
        ledger: StockLedger,
        requests: RequestStore,
        access_gate: AccessGate,
        inventory_requires_auth: bool = True,
    ) -> None:
        self.ledger = ledger
        self.requests = requests
        self.triage = TriageView(requests)
        self.access_gate = access_gate
        self.inventory_requires_auth = inventory_requires_auth

    def _require_admin(self, authorization: Optional[str]) -> AdminPrincipal:
        return self.access_gate.authorize(authorization)

    # --- Stok ---

    def get_inventory(self, authorization: Optional[str] = None) -> dict:
        """Tüm stok kayıtları ve özet."""
        if self.inventory_requires_auth:
            self._require_admin(authorization)
        records = self.ledger.list_all()
        return {
            "inventory": [r.to_dict() for r in records],
            "summary": self.ledger.summary(records).to_dict(),
        }

    def adjust_inventory(
        self,
        authorization: Optional[str],
        blood_group: Any,
        units_available: Any,
        price_per_unit: Any,
        expected_version: Optional[int] = None,
    ) -> StockRecord:
        principal = self._require_admin(authorization)
        return self.ledger.adjust(
            blood_group,
            units_available,
            price_per_unit,
            actor=principal.subject,
            expected_version=expected_version,
        )

    # --- Talepler ---

    def create_request(self, fields: dict) -> RequestRecord:
        """Herkese açık talep girişi; kan grubunun stok kaydı olmalıdır."""
        values = validate_request_fields(fields)
        stock = self.ledger.get(values["blood_group"])
        return self.requests.create(fields, price_per_unit=stock.price_per_unit)

    def list_requests(self, authorization: Optional[str]) -> list[RequestRecord]:
        self._require_admin(authorization)
        return self.requests.list_all()

    def triage_requests(
        self, authorization: Optional[str], query: Optional[TriageQuery] = None
    ) -> TriagePage:
        self._require_admin(authorization)
        return self.triage.query(query)

    def update_request_status(
        self, authorization: Optional[str], request_id: str, status: Any
    ) -> RequestRecord:
        principal = self._require_admin(authorization)
        record = self.requests.set_status(request_id, status)
        logger.debug("Durum güncellemesi: %s by %s", request_id, principal.subject)
        return record

    def mark_delivered(self, authorization: Optional[str], request_id: str) -> RequestRecord:
        self._require_admin(authorization)
        return self.requests.mark_delivered(request_id)

    def delete_request(self, authorization: Optional[str], request_id: str) -> None:
        self._require_admin(authorization)
        self.requests.delete(request_id)

    # --- Yönetici paneli ---

    def dashboard_stats(self, authorization: Optional[str]) -> DashboardStats:
        self._require_admin(authorization)
        records = self.requests.list_all()
        summary = self.ledger.summary()
        by_status = {s: 0 for s in RequestStatus}
        for r in records:
            by_status[r.status] += 1
        return DashboardStats(
            total_requests=len(records),
            pending_requests=by_status[RequestStatus.PENDING],
            out_for_delivery=by_status[RequestStatus.OUT_FOR_DELIVERY],
            completed_requests=by_status[RequestStatus.COMPLETED],
            critical_requests=sum(1 for r in records if r.urgency == Urgency.CRITICAL),
            total_units=summary.total_units,
            critical_stock_count=summary.critical_stock_count,
        )

    def recent_requests(self, authorization: Optional[str], limit: int = 5) -> list[RequestRecord]:
        self._require_admin(authorization)
        return self.requests.recent(limit)
