"""DynamoDB tablo oluşturma ve stok tohumlama.

2 tablo: stok (PK: blood_group), talepler (PK: request_id). Tablo adları
BLOOD_BANK_INVENTORY_TABLE / BLOOD_BANK_REQUESTS_TABLE ile değiştirilebilir.
"""
import os
import sys
from typing import Optional

from botocore.exceptions import ClientError

import boto3

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))
import env_loader  # noqa: F401

from src.config import Settings
from src.services.dynamodb_store import BOTO_CONFIG, DynamoDBStore
from src.services.stock_ledger import StockLedger

REGION = os.environ.get("AWS_DEFAULT_REGION", "us-west-2")


def table_definitions(settings: Optional[Settings] = None) -> list[dict]:
    """Ayarlardaki tablo adlarıyla tablo tanımlarını döndürür."""
    settings = settings or Settings.from_env()
    return [
        {
            "TableName": settings.inventory_table,
            "KeySchema": [
                {"AttributeName": "blood_group", "KeyType": "HASH"},
            ],
            "AttributeDefinitions": [
                {"AttributeName": "blood_group", "AttributeType": "S"},
            ],
            "BillingMode": "PAY_PER_REQUEST",
        },
        {
            "TableName": settings.requests_table,
            "KeySchema": [
                {"AttributeName": "request_id", "KeyType": "HASH"},
            ],
            "AttributeDefinitions": [
                {"AttributeName": "request_id", "AttributeType": "S"},
                {"AttributeName": "status", "AttributeType": "S"},
                {"AttributeName": "created_at", "AttributeType": "S"},
            ],
            "GlobalSecondaryIndexes": [
                {
                    "IndexName": "StatusTimeIndex",
                    "KeySchema": [
                        {"AttributeName": "status", "KeyType": "HASH"},
                        {"AttributeName": "created_at", "KeyType": "RANGE"},
                    ],
                    "Projection": {"ProjectionType": "ALL"},
                },
            ],
            "BillingMode": "PAY_PER_REQUEST",
        },
    ]


def create_tables(region: str = REGION, client=None, settings: Optional[Settings] = None):
    """Tüm DynamoDB tablolarını oluşturur (varsa atlar)."""
    dynamodb = client or boto3.client("dynamodb", region_name=region, config=BOTO_CONFIG)

    for table_def in table_definitions(settings):
        table_name = table_def["TableName"]
        try:
            dynamodb.describe_table(TableName=table_name)
            print(f"  ⏭️  {table_name} zaten mevcut, atlanıyor")
        except ClientError as e:
            if e.response["Error"]["Code"] == "ResourceNotFoundException":
                print(f"  🔨 {table_name} oluşturuluyor...")
                dynamodb.create_table(**table_def)
                # Tablonun aktif olmasını bekle
                waiter = dynamodb.get_waiter("table_exists")
                waiter.wait(TableName=table_name)
                print(f"  ✓  {table_name} oluşturuldu")
            else:
                raise


def seed_inventory(region: str = REGION, dynamodb_resource=None,
                   settings: Optional[Settings] = None) -> int:
    """8 kan grubu için sıfır bakiyeli stok kayıtlarını oluşturur (idempotent)."""
    settings = settings or Settings.from_env()
    store = DynamoDBStore(
        region_name=region,
        inventory_table=settings.inventory_table,
        requests_table=settings.requests_table,
        dynamodb_resource=dynamodb_resource,
    )
    created = StockLedger(store, default_price=settings.default_price).seed_all()
    print(f"  ✓  {settings.inventory_table}: {created} yeni kayıt tohumlandı")
    return created


def delete_tables(region: str = REGION, client=None, settings: Optional[Settings] = None):
    """Tüm tabloları siler (dikkatli kullan)."""
    dynamodb = client or boto3.client("dynamodb", region_name=region, config=BOTO_CONFIG)
    for table_def in table_definitions(settings):
        table_name = table_def["TableName"]
        try:
            dynamodb.delete_table(TableName=table_name)
            print(f"  🗑️  {table_name} silindi")
        except ClientError:
            print(f"  ⏭️  {table_name} bulunamadı, atlanıyor")


if __name__ == "__main__":
    if len(sys.argv) > 1 and sys.argv[1] == "--delete":
        print("🗑️  Tablolar siliniyor...")
        delete_tables()
    else:
        print("🏗️  DynamoDB tabloları oluşturuluyor...\n")
        create_tables()
        seed_inventory()
