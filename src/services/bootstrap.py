"""Servis bileşenlerini ayarlara göre kurar ve stok kayıtlarını tohumlar."""

from __future__ import annotations

import logging
from typing import Optional

from src.config import Settings
from src.services.access_gate import AccessGate, DenyAllGate, StaticTokenGate
from src.services.blood_bank_service import BloodBankService
from src.services.dynamodb_store import DynamoDBStore
from src.services.locking import RecordLock
from src.services.request_store import RequestStore
from src.services.stock_ledger import StockLedger
from src.services.storage import BaseStore, InMemoryStore

logger = logging.getLogger(__name__)


def build_store(settings: Settings) -> BaseStore:
    if settings.storage == "dynamodb":
        return DynamoDBStore(
            region_name=settings.region,
            inventory_table=settings.inventory_table,
            requests_table=settings.requests_table,
        )
    if settings.storage != "memory":
        raise ValueError(f"Bilinmeyen depolama türü: {settings.storage}")
    return InMemoryStore()


def build_access_gate(settings: Settings) -> AccessGate:
    if settings.admin_token:
        return StaticTokenGate(settings.admin_token)
    logger.warning("Yönetici doğrulayıcısı yapılandırılmadı, yönetici işlemleri reddedilecek")
    return DenyAllGate()


def build_service(
    settings: Optional[Settings] = None,
    access_gate: Optional[AccessGate] = None,
    store: Optional[BaseStore] = None,
) -> BloodBankService:
    """Depo, defter, talep deposu ve kapıyı bağlar; 8 kan grubunu tohumlar."""
    settings = settings or Settings.from_env()
    store = store or build_store(settings)
    record_lock = RecordLock(timeout=settings.lock_timeout)

    ledger = StockLedger(store, record_lock=record_lock, default_price=settings.default_price)
    requests = RequestStore(store, record_lock=record_lock, delivery_charge=settings.delivery_charge)

    # Başlangıçta bir kez çalışır; tamamlanana kadar açılışı bekletir
    ledger.seed_all()

    logger.info("Servis hazır (depolama: %s)", settings.storage)
    return BloodBankService(
        ledger,
        requests,
        access_gate or build_access_gate(settings),
        inventory_requires_auth=settings.inventory_requires_auth,
    )
