"""Triage görünümü - talepleri filtreler, aciliyete göre sıralar ve sayfalar.

Her çağrıda RequestStore'dan yeniden hesaplanır, önbellek yoktur.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Optional

from src.models.blood_bank import (
    URGENCY_WEIGHTS,
    BloodGroup,
    RequestRecord,
    RequestStatus,
    TriagePage,
    Urgency,
)
from src.services.request_store import RequestStore

PAGE_SIZE = 10
ALL = "all"


@dataclass
class TriageQuery:
    search: str = ""
    blood_group: str = ALL
    status: str = ALL
    urgency: str = ALL
    page: Any = 1

    @classmethod
    def from_params(cls, params: dict) -> "TriageQuery":
        """camelCase ya da snake_case parametrelerden sorgu oluşturur."""
        return cls(
            search=params.get("search", params.get("searchQuery", "")) or "",
            blood_group=params.get("blood_group", params.get("bloodGroup", ALL)),
            status=params.get("status", ALL),
            urgency=params.get("urgency", ALL),
            page=params.get("page", 1),
        )


def _lenient_enum(enum_cls, value: Any):
    """Bilinmeyen filtre değeri 'all' (None) kabul edilir."""
    if value is None or value == ALL:
        return None
    try:
        return enum_cls(value)
    except (TypeError, ValueError):
        return None


def _lenient_page(value: Any) -> int:
    if isinstance(value, bool):
        return 1
    try:
        page = int(value)
    except (TypeError, ValueError):
        return 1
    return page if page >= 1 else 1


def matches_search(record: RequestRecord, query: str) -> bool:
    """İsim ve e-postada büyük/küçük harf duyarsız, telefonda ham alt dizi eşleşmesi."""
    if not query:
        return True
    folded = query.lower()
    return (
        folded in record.contact_person.lower()
        or folded in record.email.lower()
        or query in record.phone_number
    )


def filter_requests(records: list[RequestRecord], query: TriageQuery) -> list[RequestRecord]:
    search = query.search if isinstance(query.search, str) else ""
    group = _lenient_enum(BloodGroup, query.blood_group)
    status = _lenient_enum(RequestStatus, query.status)
    urgency = _lenient_enum(Urgency, query.urgency)

    return [
        r for r in records
        if matches_search(r, search)
        and (group is None or r.blood_group == group)
        and (status is None or r.status == status)
        and (urgency is None or r.urgency == urgency)
    ]


def sort_by_urgency(records: list[RequestRecord]) -> list[RequestRecord]:
    # sorted() kararlıdır; eşit aciliyette filtre sırası korunur
    return sorted(records, key=lambda r: URGENCY_WEIGHTS[r.urgency], reverse=True)


def paginate(records: list[RequestRecord], page: int, page_size: int = PAGE_SIZE) -> TriagePage:
    count = len(records)
    start = (page - 1) * page_size
    return TriagePage(
        items=records[start:start + page_size],
        count=count,
        total_pages=math.ceil(count / page_size),
        page=page,
        page_size=page_size,
    )


def build_triage_page(records: list[RequestRecord], query: TriageQuery) -> TriagePage:
    """Saf fonksiyon: filtre -> aciliyet sıralaması -> sayfalama."""
    filtered = filter_requests(records, query)
    return paginate(sort_by_urgency(filtered), _lenient_page(query.page))


class TriageView:
    """Operatör için öncelik sıralı talep görünümü."""

    def __init__(self, requests: RequestStore) -> None:
        self._requests = requests

    def query(self, query: Optional[TriageQuery] = None) -> TriagePage:
        return build_triage_page(self._requests.list_all(), query or TriageQuery())
