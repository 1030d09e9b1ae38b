"""Kayıt bazlı yazma kilitleri - aynı kayda eşzamanlı yazmaları sıraya sokar."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from src.services.errors import ConflictError

logger = logging.getLogger(__name__)


class RecordLock:
    """Kayıt anahtarı başına tek yazıcı kilidi.

    Bir anahtarın kilidi yalnızca onu tutan ya da bekleyen varken yaşar;
    son kullanıcı bıraktığında kayıt defterden düşer.
    """

    def __init__(self, timeout: float = 10.0) -> None:
        self.timeout = timeout
        self._locks: dict[str, threading.Lock] = {}
        self._lock_owners: dict[str, str] = {}
        self._waiters: dict[str, int] = {}
        self._master_lock = threading.Lock()

    def _checkout(self, resource_key: str) -> threading.Lock:
        with self._master_lock:
            if resource_key not in self._locks:
                self._locks[resource_key] = threading.Lock()
                self._waiters[resource_key] = 0
            self._waiters[resource_key] += 1
            return self._locks[resource_key]

    def _checkin(self, resource_key: str) -> None:
        # _master_lock tutulurken çağrılmalı
        self._waiters[resource_key] -= 1
        if self._waiters[resource_key] == 0:
            del self._waiters[resource_key]
            del self._locks[resource_key]

    def acquire(self, resource_key: str, owner: str, timeout: Optional[float] = None) -> bool:
        """Bir kayıt için kilit alır."""
        lock = self._checkout(resource_key)
        acquired = lock.acquire(timeout=self.timeout if timeout is None else timeout)
        if acquired:
            with self._master_lock:
                self._lock_owners[resource_key] = owner
            logger.debug("Kilit alındı: %s -> %s", owner, resource_key)
        else:
            with self._master_lock:
                self._checkin(resource_key)
            logger.warning("Kilit alınamadı: %s -> %s (timeout)", owner, resource_key)
        return acquired

    def release(self, resource_key: str, owner: str) -> bool:
        """Bir kayıt kilidini serbest bırakır."""
        with self._master_lock:
            lock = self._locks.get(resource_key)
            if lock is None:
                return False

            current = self._lock_owners.get(resource_key)
            if current != owner:
                logger.warning("Kilit sahibi uyuşmazlığı: %s != %s", owner, current)
                return False

            del self._lock_owners[resource_key]
            lock.release()
            self._checkin(resource_key)
            return True

    def is_locked(self, resource_key: str) -> bool:
        with self._master_lock:
            lock = self._locks.get(resource_key)
        return lock is not None and lock.locked()

    def tracked_keys(self) -> int:
        """Şu an tutulan ya da beklenen kilit sayısı."""
        with self._master_lock:
            return len(self._locks)

    @contextmanager
    def hold(self, resource_key: str, owner: Optional[str] = None) -> Iterator[None]:
        """Kilidi blok boyunca tutar; zaman aşımında ConflictError fırlatır."""
        owner = owner or f"thread-{threading.get_ident()}"
        if not self.acquire(resource_key, owner):
            raise ConflictError(f"Kayıt meşgul, tekrar deneyin: {resource_key}")
        try:
            yield
        finally:
            self.release(resource_key, owner)
