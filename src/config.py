"""Ortam değişkenlerinden okunan servis ayarları."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

import env_loader  # noqa: F401  (.env yükler)


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class Settings:
    storage: str = "memory"
    region: str = "us-west-2"
    inventory_table: str = "BloodInventory"
    requests_table: str = "BloodRequests"
    default_price: int = 3000
    delivery_charge: int = 200
    lock_timeout: float = 10.0
    inventory_requires_auth: bool = True
    admin_token: Optional[str] = None
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            storage=os.environ.get("BLOOD_BANK_STORAGE", "memory").lower(),
            region=os.environ.get("AWS_DEFAULT_REGION", "us-west-2"),
            inventory_table=os.environ.get("BLOOD_BANK_INVENTORY_TABLE", "BloodInventory"),
            requests_table=os.environ.get("BLOOD_BANK_REQUESTS_TABLE", "BloodRequests"),
            default_price=int(os.environ.get("BLOOD_BANK_DEFAULT_PRICE", "3000")),
            delivery_charge=int(os.environ.get("BLOOD_BANK_DELIVERY_CHARGE", "200")),
            lock_timeout=float(os.environ.get("BLOOD_BANK_LOCK_TIMEOUT", "10.0")),
            inventory_requires_auth=_env_bool("BLOOD_BANK_INVENTORY_REQUIRES_AUTH", True),
            admin_token=os.environ.get("BLOOD_BANK_ADMIN_TOKEN") or None,
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        )
