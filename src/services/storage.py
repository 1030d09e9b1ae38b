"""Depolama arayüzü ve bellek içi uygulaması."""

from __future__ import annotations

import copy
import threading
from abc import ABC, abstractmethod
from typing import Optional

from src.models.blood_bank import BLOOD_GROUP_ORDER, BloodGroup, RequestRecord, StockRecord
from src.services.errors import ConflictError, NotFoundError


class BaseStore(ABC):
    """Stok ve talep kayıtları için kalıcı depo arayüzü.

    Uygulamalar okuma tarafına her zaman tamamlanmış bir yazmayı yansıtan
    kopyalar döndürmelidir; yarım yazılmış kayıt görünmemelidir.
    """

    # --- Stok kayıtları ---

    @abstractmethod
    def get_stock(self, blood_group: BloodGroup) -> Optional[StockRecord]:
        ...

    @abstractmethod
    def list_stock(self) -> list[StockRecord]:
        ...

    @abstractmethod
    def put_stock(self, record: StockRecord, expected_version: Optional[int] = None) -> None:
        """Kaydı tamamen değiştirir.

        expected_version verilirse saklı sürüm eşleşmediğinde ConflictError fırlatır.
        """
        ...

    @abstractmethod
    def create_stock_if_absent(self, record: StockRecord) -> bool:
        """Kayıt yoksa oluşturur; oluşturduysa True döndürür."""
        ...

    # --- Talep kayıtları ---

    @abstractmethod
    def get_request(self, request_id: str) -> Optional[RequestRecord]:
        ...

    @abstractmethod
    def list_requests(self) -> list[RequestRecord]:
        """Talepleri ekleme sırasıyla döndürür."""
        ...

    @abstractmethod
    def create_request(self, record: RequestRecord) -> None:
        """Yeni talebi ekler; aynı ID zaten varsa ConflictError fırlatır."""
        ...

    @abstractmethod
    def update_request(self, record: RequestRecord) -> None:
        """Mevcut talebi değiştirir; talep silinmişse NotFoundError fırlatır."""
        ...

    @abstractmethod
    def delete_request(self, request_id: str) -> bool:
        ...


class InMemoryStore(BaseStore):
    """Süreç ömrü boyunca yaşayan bellek içi depo (testler ve yerel çalıştırma)."""

    def __init__(self) -> None:
        self._stock: dict[BloodGroup, StockRecord] = {}
        self._requests: dict[str, RequestRecord] = {}
        self._lock = threading.Lock()

    def get_stock(self, blood_group: BloodGroup) -> Optional[StockRecord]:
        with self._lock:
            record = self._stock.get(blood_group)
            return copy.copy(record) if record else None

    def list_stock(self) -> list[StockRecord]:
        with self._lock:
            records = [copy.copy(r) for r in self._stock.values()]
        records.sort(key=lambda r: BLOOD_GROUP_ORDER[r.blood_group])
        return records

    def put_stock(self, record: StockRecord, expected_version: Optional[int] = None) -> None:
        with self._lock:
            if expected_version is not None:
                current = self._stock.get(record.blood_group)
                current_version = current.version if current else None
                if current_version != expected_version:
                    raise ConflictError(
                        f"Sürüm uyuşmazlığı: {record.blood_group.value} "
                        f"beklenen={expected_version}, mevcut={current_version}"
                    )
            self._stock[record.blood_group] = copy.copy(record)

    def create_stock_if_absent(self, record: StockRecord) -> bool:
        with self._lock:
            if record.blood_group in self._stock:
                return False
            self._stock[record.blood_group] = copy.copy(record)
            return True

    def get_request(self, request_id: str) -> Optional[RequestRecord]:
        with self._lock:
            record = self._requests.get(request_id)
            return copy.copy(record) if record else None

    def list_requests(self) -> list[RequestRecord]:
        with self._lock:
            return [copy.copy(r) for r in self._requests.values()]

    def create_request(self, record: RequestRecord) -> None:
        with self._lock:
            if record.request_id in self._requests:
                raise ConflictError(f"Talep ID'si zaten kullanılıyor: {record.request_id}")
            self._requests[record.request_id] = copy.copy(record)

    def update_request(self, record: RequestRecord) -> None:
        with self._lock:
            if record.request_id not in self._requests:
                raise NotFoundError(f"Talep bulunamadı: {record.request_id}")
            # Mevcut anahtarın güncellenmesi ekleme sırasını değiştirmez
            self._requests[record.request_id] = copy.copy(record)

    def delete_request(self, request_id: str) -> bool:
        with self._lock:
            return self._requests.pop(request_id, None) is not None
