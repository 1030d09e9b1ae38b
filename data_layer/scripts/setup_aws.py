"""AWS altyapısını kurar ve stok kayıtlarını tohumlar.

Kullanım:
    python -m data_layer.scripts.setup_aws              # Kur ve tohumla
    python -m data_layer.scripts.setup_aws --delete     # Tabloları sil
    python -m data_layer.scripts.setup_aws --region eu-west-1  # Farklı region
"""
import sys
import os

# Proje root'unu path'e ekle
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from data_layer.infrastructure.dynamodb_setup import REGION, create_tables, delete_tables, seed_inventory


def main(argv=None):
    region = REGION
    delete_mode = False

    # Argümanları parse et
    args = sys.argv[1:] if argv is None else argv
    for i, arg in enumerate(args):
        if arg == "--delete":
            delete_mode = True
        elif arg == "--region" and i + 1 < len(args):
            region = args[i + 1]

    if delete_mode:
        print("🗑️  DynamoDB tabloları siliniyor...\n")
        delete_tables(region)
        print("\n✅ Tüm tablolar silindi!")
        return

    print("=" * 60)
    print("🚀 AWS Altyapı Kurulumu - Kan Bankası Stok Defteri")
    print(f"   Region: {region}")
    print("=" * 60)

    print("\n📊 ADIM 1: DynamoDB Tabloları")
    print("-" * 40)
    create_tables(region)

    print("\n🩸 ADIM 2: Stok Tohumlama")
    print("-" * 40)
    seed_inventory(region)

    print("\n" + "=" * 60)
    print("✅ AWS altyapısı hazır!")
    print(f"   Region: {region}")
    print("=" * 60)


if __name__ == "__main__":
    main()
