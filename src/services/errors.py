"""Kan bankası servis hataları."""

from __future__ import annotations

from typing import Optional


class BloodBankError(Exception):
    """Tüm servis hataları için temel sınıf."""

    code = "error"
    status_code = 500
    retryable = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


class ValidationError(BloodBankError):
    """Hatalı ya da aralık dışı girdi."""

    code = "validation_error"
    status_code = 400

    def __init__(self, field: Optional[str], message: str) -> None:
        super().__init__(message)
        self.field = field

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["field"] = self.field
        return data


class NotFoundError(BloodBankError):
    code = "not_found"
    status_code = 404


class UnauthorizedError(BloodBankError):
    code = "unauthorized"
    status_code = 401


class ConflictError(BloodBankError):
    """Eşzamanlı yazma çakışması; yeniden okuyup tekrar denenebilir."""

    code = "conflict"
    status_code = 409
    retryable = True


class UnavailableError(BloodBankError):
    """Depolama/iletim hatası; geri çekilmeli tekrar denenebilir."""

    code = "unavailable"
    status_code = 503
    retryable = True
