#!/usr/bin/env python3
"""
Add the Day Pass products. Writes to the database directly by default, or
posts to a running backend with --api.

Usage:
    python scripts/add_day_passes.py
    python scripts/add_day_passes.py --api http://127.0.0.1:5000
"""
import argparse
import os
import sys

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

import requests

DAY_PASSES = [
    {"name": "Day Pass - Entry", "price": 7.00, "description": "Standard entry day pass - $7 per hour"},
    {"name": "Day Pass - Students & Pensioners", "price": 3.00, "description": "Discounted day pass for students and pensioners - $3 per hour"},
    {"name": "Day Pass - First Guardian", "price": 2.50, "description": "Non-participating first guardian day pass - $2.50"},
    {"name": "Day Pass - Second Guardian", "price": 1.00, "description": "Non-participating second guardian day pass - $1.00"},
    {"name": "Day Pass - Additional Child", "price": 3.50, "description": "Family entry additional children - $3.50 each"},
]
for _p in DAY_PASSES:
    _p.update(quantity=100, category="Day Passes", productType="SERVICE")


def add_direct():
    from app.db import SessionLocal, init_db
    from app.services.product_service import ProductService

    init_db()
    db = SessionLocal()
    try:
        created = ProductService(db).create_many(DAY_PASSES)
        print(f"Added {len(created)} day pass products")
    finally:
        db.close()


def add_via_api(base: str):
    for product in DAY_PASSES:
        print(f"Adding: {product['name']} - ${product['price']:.2f}")
        try:
            r = requests.post(f"{base}/mongodb/inventory/add-product", json=product, timeout=10)
        except requests.RequestException as e:
            print(f"  error: {e}")
            continue
        if r.ok:
            print("  added")
        elif r.status_code == 400 and "already exists" in r.json().get("error", ""):
            print("  already exists")
        else:
            print(f"  failed ({r.status_code}): {r.text}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--api", default=None, help="backend base URL; omit to write to the database directly")
    args = parser.parse_args()
    if args.api:
        add_via_api(args.api.rstrip("/"))
    else:
        add_direct()
