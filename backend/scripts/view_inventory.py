#!/usr/bin/env python3
"""Print the local catalog grouped by folder, with low-stock markers."""
import argparse
import os
import sys
from collections import defaultdict

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from app.db import SessionLocal, init_db
from app.services.folder_service import FolderService
from app.services.product_service import ProductService

if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--threshold", type=int, default=5, help="low stock threshold")
    args = parser.parse_args()

    init_db()
    db = SessionLocal()
    try:
        products = ProductService(db).get_all_products()
        folders = FolderService(db).get_all_folders()
        grouped = defaultdict(list)
        for p in products:
            grouped[p.folder_name or "(no folder)"].append(p)

        total_value = 0.0
        for name in [f.name for f in folders] + ["(no folder)"]:
            items = grouped.get(name)
            if not items:
                continue
            print(f"\n{name} ({len(items)})")
            for p in items:
                marker = "  LOW" if p.quantity <= args.threshold else ""
                print(f"  {p.name:<45} {p.formatted_price:>9}  qty={p.quantity:<4}{marker}")
                total_value += p.price * p.quantity

        print(f"\nProducts: {len(products)}  Folders: {len(folders)}  Stock value: AU${total_value:.2f}")
    finally:
        db.close()
