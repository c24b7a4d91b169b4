#!/usr/bin/env python3
"""
Delete every product and seed the default POS products again.

Usage:
    python scripts/reset_inventory.py --yes
"""
import argparse
import os
import sys

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from app.db import SessionLocal, init_db
from app.services.product_service import ProductService

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Reset products to the default inventory.")
    parser.add_argument("--yes", action="store_true", help="do not ask for confirmation")
    args = parser.parse_args()

    if not args.yes:
        answer = input("This deletes ALL products. Continue? [y/N] ")
        if answer.strip().lower() not in ("y", "yes"):
            print("Aborted")
            sys.exit(1)

    init_db()
    db = SessionLocal()
    try:
        products = ProductService(db).reset_inventory()
        print(f"Inventory reset: {len(products)} products")
        for p in products:
            print(f"  {p.name:<45} {p.formatted_price:>9}  qty={p.quantity}  folder={p.folder_name}")
    finally:
        db.close()
