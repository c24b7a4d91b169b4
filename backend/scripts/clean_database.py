#!/usr/bin/env python3
"""
Drop and recreate every table (products, folders, payments), then
re-create the default folders. Optionally seed the default products.

Usage:
    python scripts/clean_database.py --yes [--seed]
"""
import argparse
import os
import sys

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from app.db import SessionLocal, init_db
from app.services.product_service import ProductService

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Wipe the POS database.")
    parser.add_argument("--yes", action="store_true")
    parser.add_argument("--seed", action="store_true", help="seed default products afterwards")
    args = parser.parse_args()

    if not args.yes:
        answer = input("This drops ALL tables. Continue? [y/N] ")
        if answer.strip().lower() not in ("y", "yes"):
            print("Aborted")
            sys.exit(1)

    init_db(reset=True)
    print("Database cleaned, default folders created")
    if args.seed:
        db = SessionLocal()
        try:
            created = ProductService(db).initialize_default_products()
            print("Seeded products:", len(created))
        finally:
            db.close()
