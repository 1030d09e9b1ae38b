"""Yönetici erişim kapısı - Bearer token doğrulaması.

Token üretimi ve imza doğrulaması dış bileşenin (JWT servisi) işidir; bu
modül yalnızca Authorization başlığını ayrıştırır ve doğrulamayı ona devreder.
Kimlik bilgisi her yönetici çağrısına açıkça geçirilir, global oturum yoktur.
"""

from __future__ import annotations

import hmac
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from src.services.errors import UnauthorizedError

logger = logging.getLogger(__name__)

BEARER_PREFIX = "bearer"


@dataclass
class AdminPrincipal:
    subject: str
    claims: dict = field(default_factory=dict)


def extract_bearer_token(authorization: Optional[str]) -> str:
    """'Bearer <token>' başlığından token'ı çıkarır."""
    if not authorization or not isinstance(authorization, str):
        raise UnauthorizedError("Yetkilendirme başlığı eksik")
    parts = authorization.strip().split(None, 1)
    if len(parts) != 2 or parts[0].lower() != BEARER_PREFIX or not parts[1].strip():
        raise UnauthorizedError("Yetkilendirme başlığı 'Bearer <token>' biçiminde olmalı")
    return parts[1].strip()


class AccessGate(ABC):
    """Yönetici işlemlerini koruyan kapı arayüzü."""

    def authorize(self, authorization: Optional[str]) -> AdminPrincipal:
        """Authorization başlığını doğrular; geçersizse UnauthorizedError fırlatır."""
        try:
            token = extract_bearer_token(authorization)
            return self.verify_token(token)
        except UnauthorizedError as e:
            logger.warning("Yetkisiz erişim denemesi: %s", e)
            raise

    @abstractmethod
    def verify_token(self, token: str) -> AdminPrincipal:
        ...


class CallbackAccessGate(AccessGate):
    """Dış token doğrulayıcısını (ör. JWT servisi) kapı arayüzüne uyarlar.

    verifier geçerli token için claim dict'i, geçersiz için None döndürür ya da
    hata fırlatır.
    """

    def __init__(self, verifier: Callable[[str], Optional[dict]]) -> None:
        self._verifier = verifier

    def verify_token(self, token: str) -> AdminPrincipal:
        try:
            claims = self._verifier(token)
        except UnauthorizedError:
            raise
        except Exception as e:
            raise UnauthorizedError(f"Token doğrulanamadı: {e}") from e
        if not claims:
            raise UnauthorizedError("Geçersiz ya da süresi dolmuş token")
        subject = str(claims.get("sub") or claims.get("id") or claims.get("email") or "admin")
        return AdminPrincipal(subject=subject, claims=dict(claims))


class StaticTokenGate(AccessGate):
    """Yerel çalıştırma için sabit tek token ile doğrulama."""

    def __init__(self, token: str, subject: str = "admin") -> None:
        if not token:
            raise ValueError("Token boş olamaz")
        self._token = token
        self._subject = subject

    def verify_token(self, token: str) -> AdminPrincipal:
        if not hmac.compare_digest(token.encode(), self._token.encode()):
            raise UnauthorizedError("Geçersiz token")
        return AdminPrincipal(subject=self._subject)


class DenyAllGate(AccessGate):
    """Token doğrulayıcı yapılandırılmadığında tüm yönetici çağrılarını reddeder."""

    def verify_token(self, token: Any) -> AdminPrincipal:
        raise UnauthorizedError("Yönetici doğrulayıcısı yapılandırılmamış")
