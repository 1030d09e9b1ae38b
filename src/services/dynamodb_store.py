"""DynamoDB tabanlı depo - BloodInventory ve BloodRequests tabloları."""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from src.models.blood_bank import (
    BLOOD_GROUP_ORDER,
    BloodGroup,
    DeliveryMethod,
    Gender,
    PaymentMode,
    RequestRecord,
    RequestStatus,
    StockRecord,
    Urgency,
)
from src.services.errors import ConflictError, NotFoundError, UnavailableError
from src.services.storage import BaseStore

logger = logging.getLogger(__name__)

BOTO_CONFIG = Config(retries={"max_attempts": 3})

INVENTORY_TABLE = "BloodInventory"
REQUESTS_TABLE = "BloodRequests"


def _to_native(obj):
    """Decimal değerleri int/float'a çevirir."""
    if isinstance(obj, Decimal):
        return int(obj) if obj == int(obj) else float(obj)
    if isinstance(obj, dict):
        return {k: _to_native(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_to_native(i) for i in obj]
    return obj


def stock_to_item(record: StockRecord) -> dict:
    # status saklanmaz, okumada türetilir
    return {
        "blood_group": record.blood_group.value,
        "units_available": record.units_available,
        "price_per_unit": record.price_per_unit,
        "version": record.version,
        "updated_at": record.updated_at.isoformat(),
    }


def item_to_stock(item: dict) -> StockRecord:
    item = _to_native(item)
    return StockRecord(
        blood_group=BloodGroup(item["blood_group"]),
        units_available=item.get("units_available", 0),
        price_per_unit=item.get("price_per_unit", 0),
        version=item.get("version", 0),
        updated_at=datetime.fromisoformat(item["updated_at"]),
    )


def request_to_item(record: RequestRecord) -> dict:
    item = {
        "request_id": record.request_id,
        "blood_group": record.blood_group.value,
        "units_required": record.units_required,
        "urgency": record.urgency.value,
        "status": record.status.value,
        "contact_person": record.contact_person,
        "phone_number": record.phone_number,
        "email": record.email,
        "patient_name": record.patient_name,
        "delivery_address": record.delivery_address,
        "delivery_method": record.delivery_method.value,
        "payment_mode": record.payment_mode.value,
        "additional_notes": record.additional_notes,
        "amount": record.amount,
        "created_at": record.created_at.isoformat(),
        "updated_at": record.updated_at.isoformat(),
    }
    # DynamoDB boş/None opsiyonel alanları yazmıyoruz
    if record.hospital:
        item["hospital"] = record.hospital
    if record.age is not None:
        item["age"] = record.age
    if record.gender:
        item["gender"] = record.gender.value
    if record.required_date:
        item["required_date"] = record.required_date
    return item


def item_to_request(item: dict) -> RequestRecord:
    item = _to_native(item)
    return RequestRecord(
        request_id=item["request_id"],
        blood_group=BloodGroup(item["blood_group"]),
        units_required=item["units_required"],
        urgency=Urgency(item.get("urgency", Urgency.MEDIUM.value)),
        status=RequestStatus(item.get("status", RequestStatus.PENDING.value)),
        contact_person=item.get("contact_person", ""),
        phone_number=item.get("phone_number", ""),
        email=item.get("email", ""),
        patient_name=item.get("patient_name", ""),
        delivery_address=item.get("delivery_address", ""),
        delivery_method=DeliveryMethod(item.get("delivery_method", DeliveryMethod.PICKUP.value)),
        payment_mode=PaymentMode(item.get("payment_mode", PaymentMode.ONLINE.value)),
        hospital=item.get("hospital"),
        age=item.get("age"),
        gender=Gender(item["gender"]) if item.get("gender") else None,
        required_date=item.get("required_date"),
        additional_notes=item.get("additional_notes", ""),
        amount=item.get("amount", 0),
        created_at=datetime.fromisoformat(item["created_at"]),
        updated_at=datetime.fromisoformat(item["updated_at"]),
    )


def _is_conditional_failure(error: ClientError) -> bool:
    return error.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException"


class DynamoDBStore(BaseStore):
    """boto3 DynamoDB resource üzerinden çalışan depo."""

    def __init__(
        self,
        region_name: str = "us-west-2",
        inventory_table: str = INVENTORY_TABLE,
        requests_table: str = REQUESTS_TABLE,
        dynamodb_resource: Optional[Any] = None,
    ):
        # Dependency injection destekli
        self.dynamodb = dynamodb_resource or boto3.resource(
            "dynamodb", region_name=region_name, config=BOTO_CONFIG
        )
        self.inventory_table = self.dynamodb.Table(inventory_table)
        self.requests_table = self.dynamodb.Table(requests_table)
        logger.info("DynamoDB deposu hazır: %s, %s", inventory_table, requests_table)

    def _unavailable(self, operation: str, error: Exception) -> UnavailableError:
        logger.error("DynamoDB hatası [%s]: %s", operation, error)
        return UnavailableError(f"Depo erişilemiyor ({operation}): {error}")

    def _scan_all(self, table) -> list[dict]:
        items: list[dict] = []
        kwargs: dict = {}
        while True:
            resp = table.scan(**kwargs)
            items.extend(resp.get("Items", []))
            last_key = resp.get("LastEvaluatedKey")
            if not last_key:
                return items
            kwargs["ExclusiveStartKey"] = last_key

    # --- Stok kayıtları ---

    def get_stock(self, blood_group: BloodGroup) -> Optional[StockRecord]:
        try:
            resp = self.inventory_table.get_item(
                Key={"blood_group": blood_group.value}, ConsistentRead=True
            )
        except (ClientError, BotoCoreError) as e:
            raise self._unavailable("get_stock", e) from e
        if "Item" not in resp:
            return None
        return item_to_stock(resp["Item"])

    def list_stock(self) -> list[StockRecord]:
        try:
            items = self._scan_all(self.inventory_table)
        except (ClientError, BotoCoreError) as e:
            raise self._unavailable("list_stock", e) from e
        records = [item_to_stock(i) for i in items]
        records.sort(key=lambda r: BLOOD_GROUP_ORDER[r.blood_group])
        return records

    def put_stock(self, record: StockRecord, expected_version: Optional[int] = None) -> None:
        kwargs: dict = {"Item": stock_to_item(record)}
        if expected_version is not None:
            kwargs["ConditionExpression"] = "version = :expected"
            kwargs["ExpressionAttributeValues"] = {":expected": expected_version}
        try:
            self.inventory_table.put_item(**kwargs)
        except ClientError as e:
            if _is_conditional_failure(e):
                logger.warning("Sürüm çakışması: %s (beklenen=%s)", record.blood_group.value, expected_version)
                raise ConflictError(
                    f"Sürüm uyuşmazlığı: {record.blood_group.value} beklenen={expected_version}"
                ) from e
            raise self._unavailable("put_stock", e) from e
        except BotoCoreError as e:
            raise self._unavailable("put_stock", e) from e

    def create_stock_if_absent(self, record: StockRecord) -> bool:
        try:
            self.inventory_table.put_item(
                Item=stock_to_item(record),
                ConditionExpression="attribute_not_exists(blood_group)",
            )
            return True
        except ClientError as e:
            if _is_conditional_failure(e):
                return False
            raise self._unavailable("create_stock_if_absent", e) from e
        except BotoCoreError as e:
            raise self._unavailable("create_stock_if_absent", e) from e

    # --- Talep kayıtları ---

    def get_request(self, request_id: str) -> Optional[RequestRecord]:
        try:
            resp = self.requests_table.get_item(
                Key={"request_id": request_id}, ConsistentRead=True
            )
        except (ClientError, BotoCoreError) as e:
            raise self._unavailable("get_request", e) from e
        if "Item" not in resp:
            return None
        return item_to_request(resp["Item"])

    def list_requests(self) -> list[RequestRecord]:
        try:
            items = self._scan_all(self.requests_table)
        except (ClientError, BotoCoreError) as e:
            raise self._unavailable("list_requests", e) from e
        records = [item_to_request(i) for i in items]
        # Scan sırası garanti değil; oluşturulma zamanı ekleme sırasını temsil eder
        records.sort(key=lambda r: (r.created_at, r.request_id))
        return records

    def create_request(self, record: RequestRecord) -> None:
        try:
            self.requests_table.put_item(
                Item=request_to_item(record),
                ConditionExpression="attribute_not_exists(request_id)",
            )
        except ClientError as e:
            if _is_conditional_failure(e):
                raise ConflictError(f"Talep ID'si zaten kullanılıyor: {record.request_id}") from e
            raise self._unavailable("create_request", e) from e
        except BotoCoreError as e:
            raise self._unavailable("create_request", e) from e

    def update_request(self, record: RequestRecord) -> None:
        # Başka bir süreç talebi sildiyse kayıt geri yazılmaz
        try:
            self.requests_table.put_item(
                Item=request_to_item(record),
                ConditionExpression="attribute_exists(request_id)",
            )
        except ClientError as e:
            if _is_conditional_failure(e):
                logger.warning("Güncellenecek talep artık yok: %s", record.request_id)
                raise NotFoundError(f"Talep bulunamadı: {record.request_id}") from e
            raise self._unavailable("update_request", e) from e
        except BotoCoreError as e:
            raise self._unavailable("update_request", e) from e

    def delete_request(self, request_id: str) -> bool:
        try:
            resp = self.requests_table.delete_item(
                Key={"request_id": request_id}, ReturnValues="ALL_OLD"
            )
        except (ClientError, BotoCoreError) as e:
            raise self._unavailable("delete_request", e) from e
        return "Attributes" in resp
