#!/usr/bin/env python3
"""
Create the standard drink products (with one AUD price each) in GoHighLevel
and write the resulting ids to the ghl-items.json snapshot.

Requires stored OAuth tokens (visit /auth on the backend first).

Usage:
    python scripts/add_ghl_inventory.py [--delay 2]
"""
import argparse
import os
import sys
import time

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from app.adapters.ghl_client import GHLClient, GHLError
from app.adapters.token_store import TokenStore
from app.config import settings
from app.repositories.json_store import JsonFileStore
from app.repositories.local_inventory_repo import LocalInventoryRepository

ITEMS = [
    ("250 ml Bottled Water", 1.0),
    ("250ml Pop Top - Apple & Blackcurrant", 2.5),
    ("250ml Pop Top - Apple", 2.5),
    ("250ml Soft Drink Can - Sprite", 2.0),
    ("250ml Soft Drink Can - Coke", 2.0),
    ("250ml Soft Drink Can - Coke Zero", 2.0),
    ("250ml Soft Drink Can - Fanta", 2.0),
    ("Slushie 12 oz - Coke", 2.5),
    ("Slushie 12 oz - Berry Blast", 2.5),
    ("Slushie 12 oz - Mixed", 2.5),
    ("Slushie 16 oz - Coke", 4.5),
    ("Slushie 16 oz - Berry Blast", 4.5),
    ("Slushie 16 oz - Mixed", 4.5),
]


def _id(doc):
    return doc.get("_id") or doc.get("id")


def create_item(client: GHLClient, name: str, price: float, quantity: int):
    product = client.create_product(name)
    product_id = _id(product)
    price_doc = client.create_price(product_id, name, price, quantity)
    price_id = _id(price_doc)
    print(f"Created: {name} - Product ID: {product_id}, Price ID: {price_id}")
    return {"name": name, "productId": product_id, "priceId": price_id, "price": price, "quantity": quantity}


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--quantity", type=int, default=20)
    parser.add_argument("--delay", type=float, default=2.0, help="seconds between items (rate limits)")
    args = parser.parse_args()

    client = GHLClient(settings, TokenStore(settings.TOKEN_FILE))
    created = []
    for name, price in ITEMS:
        try:
            created.append(create_item(client, name, price, args.quantity))
        except GHLError as e:
            print(f"Error creating {name}: {e}")
        time.sleep(args.delay)

    LocalInventoryRepository(JsonFileStore(settings.LOCAL_INVENTORY_FILE)).replace_all(created)
    print(f"All items added. IDs saved to {settings.LOCAL_INVENTORY_FILE}")
