#!/usr/bin/env python3
"""
Seed the local catalog: default folders plus the default POS products, or
the entries of a JSON file when one is given. Entries already present (by
name) are skipped, so the script can be re-run safely.

Usage:
    python scripts/seed_products.py
    python scripts/seed_products.py --file ./ghl-items.json
"""
import argparse
import json
import os
import sys

# allow running from repo/scripts
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from app.db import SessionLocal, init_db
from app.services.product_service import DEFAULT_PRODUCTS, ProductService


def _normalize_entry(entry):
    """Return a dict with keys: name, price, quantity, description, category, productType"""
    name = entry.get("name") or entry.get("title") or ""
    raw_price = entry.get("price", entry.get("amount", 0))
    if entry.get("price_cents") is not None:
        raw_price = float(entry["price_cents"]) / 100
    try:
        price = float(raw_price or 0)
    except (TypeError, ValueError):
        price = 0.0
    try:
        quantity = int(entry.get("quantity", entry.get("stock", 20)) or 0)
    except (TypeError, ValueError):
        quantity = 20
    return {
        "name": name.strip(),
        "price": price,
        "quantity": quantity,
        "description": entry.get("description") or "",
        "category": entry.get("category"),
        "productType": entry.get("productType") or "PHYSICAL",
        "productId": entry.get("productId"),
        "priceId": entry.get("priceId"),
    }


def load_entries(path: str):
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("items") or data.get("products") or list(data.values())
    return [e for e in (_normalize_entry(x) for x in data) if e["name"]]


def seed(entries=None, source: str = "mongodb"):
    init_db()
    db = SessionLocal()
    try:
        created = ProductService(db).create_many(entries or DEFAULT_PRODUCTS, source=source)
        print("Seeded products:", len(created))
        return created
    finally:
        db.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--file", "-f", default=None, help="JSON list of products (e.g. ghl-items.json)")
    args = parser.parse_args()
    if args.file:
        if not os.path.exists(args.file):
            print("File not found:", args.file)
            sys.exit(1)
        seed(load_entries(args.file), source="local")
    else:
        seed()
