"""Stok Defteri - kan grubu başına birim sayısı ve birim fiyatı.

- Kan grubu başına tek kayıt, negatif bakiye yok
- Tam değiştirme (delta değil) ile atomik güncelleme
- Kayıt başına tek yazıcı kilidi, isteğe bağlı sürüm kontrolü
- Stok durumu her okumada birim sayısından türetilir
- Audit log mekanizması
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from typing import Any, Optional

from src.models.blood_bank import (
    DEFAULT_THRESHOLDS,
    AuditLogEntry,
    BloodGroup,
    InventorySummary,
    StockRecord,
    StockStatus,
    StockThresholds,
    utc_now,
)
from src.services.errors import ConflictError, NotFoundError, ValidationError
from src.services.locking import RecordLock
from src.services.storage import BaseStore

logger = logging.getLogger(__name__)

DEFAULT_PRICE_PER_UNIT = 3000


def parse_blood_group(value: Any, field: str = "bloodGroup") -> BloodGroup:
    """Serbest metin ya da enum değerini BloodGroup'a çevirir."""
    if isinstance(value, BloodGroup):
        return value
    if isinstance(value, str):
        try:
            return BloodGroup(value.strip().upper())
        except ValueError:
            pass
    raise ValidationError(field, f"{value!r} geçerli bir kan grubu değil")


def _require_non_negative_int(value: Any, field: str) -> int:
    # bool, int'in alt sınıfı olduğu için ayrıca reddedilir
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(field, f"{field} tam sayı olmalı: {value!r}")
    if value < 0:
        raise ValidationError(field, f"{field} negatif olamaz: {value}")
    return value


class StockLedger:
    """Kan grubu başına stok için tek doğruluk kaynağı."""

    def __init__(
        self,
        store: BaseStore,
        thresholds: StockThresholds = DEFAULT_THRESHOLDS,
        record_lock: Optional[RecordLock] = None,
        default_price: int = DEFAULT_PRICE_PER_UNIT,
    ) -> None:
        self._store = store
        self.thresholds = thresholds
        self._record_lock = record_lock or RecordLock()
        self.default_price = default_price
        self._audit_log: list[AuditLogEntry] = []

    def _with_policy(self, record: StockRecord) -> StockRecord:
        record.thresholds = self.thresholds
        return record

    @staticmethod
    def _lock_key(blood_group: BloodGroup) -> str:
        return f"stock:{blood_group.value}"

    # --- Okuma ---

    def get(self, blood_group: Any) -> StockRecord:
        group = parse_blood_group(blood_group)
        record = self._store.get_stock(group)
        if record is None:
            raise NotFoundError(f"Stok kaydı bulunamadı: {group.value}")
        return self._with_policy(record)

    def list_all(self) -> list[StockRecord]:
        """Tüm stok kayıtlarını kan grubu sırasıyla döndürür."""
        return [self._with_policy(r) for r in self._store.list_stock()]

    def summary(self, records: Optional[list[StockRecord]] = None) -> InventorySummary:
        records = self.list_all() if records is None else records
        return InventorySummary(
            total_units=sum(r.units_available for r in records),
            blood_groups=len(records),
            critical_stock_count=sum(1 for r in records if r.status == StockStatus.CRITICAL),
        )

    # --- Yazma ---

    def adjust(
        self,
        blood_group: Any,
        units_available: Any,
        price_per_unit: Any,
        actor: str = "admin",
        expected_version: Optional[int] = None,
    ) -> StockRecord:
        """Birim sayısını ve fiyatı birlikte değiştirir.

        Delta değil tam değiştirmedir. Aynı kan grubuna yazmalar kilitle sıraya
        girer; expected_version verilirse eski okumaya dayalı yazma
        ConflictError ile reddedilir. Hata durumunda önceki kayıt aynen kalır.
        """
        group = parse_blood_group(blood_group)
        units = _require_non_negative_int(units_available, "unitsAvailable")
        price = _require_non_negative_int(price_per_unit, "pricePerUnit")

        with self._record_lock.hold(self._lock_key(group)):
            current = self._store.get_stock(group)
            if current is None:
                raise NotFoundError(f"Stok kaydı bulunamadı: {group.value}")
            if expected_version is not None and expected_version != current.version:
                logger.warning(
                    "Sürüm çakışması: %s beklenen=%s, mevcut=%s",
                    group.value, expected_version, current.version,
                )
                raise ConflictError(
                    f"Sürüm uyuşmazlığı: {group.value} "
                    f"beklenen={expected_version}, mevcut={current.version}"
                )
            if current.units_available == units and current.price_per_unit == price:
                # Aynı girdiyle tekrar çağrı kaydı değiştirmez
                return self._with_policy(current)

            updated = replace(
                current,
                units_available=units,
                price_per_unit=price,
                version=current.version + 1,
                updated_at=utc_now(),
                thresholds=self.thresholds,
            )
            self._store.put_stock(updated, expected_version=current.version)

        self._log_adjustment(current, updated, actor)
        logger.info(
            "Stok güncellendi: %s %d -> %d birim, fiyat %d -> %d (%s)",
            group.value,
            current.units_available,
            units,
            current.price_per_unit,
            price,
            updated.status.value,
        )
        return updated

    def seed_if_absent(self, blood_group: Any, price_per_unit: Optional[int] = None) -> bool:
        """Kayıt yoksa sıfır bakiyeli kayıt oluşturur (idempotent)."""
        group = parse_blood_group(blood_group)
        price = self.default_price if price_per_unit is None else price_per_unit
        record = StockRecord(blood_group=group, units_available=0, price_per_unit=price)
        created = self._store.create_stock_if_absent(record)
        if created:
            logger.info("Stok kaydı oluşturuldu: %s", group.value)
        return created

    def seed_all(self) -> int:
        """Tüm kan grupları için başlangıç kayıtlarını oluşturur."""
        created = sum(1 for group in BloodGroup if self.seed_if_absent(group))
        logger.info("Stok tohumlama tamamlandı: %d yeni kayıt", created)
        return created

    # --- Audit log ---

    def _log_adjustment(self, before: StockRecord, after: StockRecord, actor: str) -> AuditLogEntry:
        entry = AuditLogEntry(
            entry_id=str(uuid.uuid4()),
            blood_group=after.blood_group,
            units_before=before.units_available,
            units_after=after.units_available,
            price_before=before.price_per_unit,
            price_after=after.price_per_unit,
            triggered_by=actor,
        )
        self._audit_log.append(entry)
        return entry

    def get_audit_log(self, blood_group: Any = None) -> list[AuditLogEntry]:
        """Audit log'u isteğe bağlı kan grubu filtresiyle döndürür."""
        entries = list(self._audit_log)
        if blood_group is not None:
            group = parse_blood_group(blood_group)
            entries = [e for e in entries if e.blood_group == group]
        return entries
