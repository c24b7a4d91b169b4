#!/usr/bin/env python3
"""
Consolidate folders on a running backend: products without a folder go to
Unassigned, then test folders and empty custom folders are deleted (their
products moved to Unassigned).

Usage:
    python scripts/cleanup_folders.py --base http://127.0.0.1:5000
"""
import argparse
import os

import requests

BASE = os.environ.get("POS_BASE", "http://127.0.0.1:5000")


def _error(r):
    try:
        return r.json().get("error") or r.text
    except ValueError:
        return r.text


def cleanup(base: str):
    folders = requests.get(f"{base}/mongodb/folders", timeout=10).json()["folders"]
    products = requests.get(f"{base}/mongodb/inventory", timeout=10).json()
    print(f"Found {len(folders)} folders and {len(products)} products")

    unassigned = next((f for f in folders if f["name"] == "Unassigned" and f["isDefault"]), None)
    if not unassigned:
        print("No Unassigned folder found!")
        return 1

    loose = [p for p in products if not p.get("folderId") or not p.get("folderName")]
    print(f"{len(loose)} products without folder assignment")
    for p in loose:
        r = requests.put(
            f"{base}/mongodb/inventory/{p['_id']}/move-folder",
            json={"folderId": unassigned["id"]},
            timeout=10,
        )
        print(("Moved" if r.ok else "Failed to move") + f' "{p["name"]}"' + ("" if r.ok else f": {_error(r)}"))

    doomed = [
        f for f in folders
        if "test" in f["name"].lower()
        or (f["name"] != "Unassigned" and not f["isDefault"] and f["productCount"] == 0)
    ]
    print(f"Removing {len(doomed)} test/empty folders")
    for f in doomed:
        r = requests.delete(f"{base}/mongodb/folders/{f['id']}", params={"moveProducts": "true"}, timeout=10)
        print(("Deleted" if r.ok else "Failed to delete") + f' "{f["name"]}"' + ("" if r.ok else f": {_error(r)}"))

    final_folders = requests.get(f"{base}/mongodb/folders", timeout=10).json()["folders"]
    final_products = requests.get(f"{base}/mongodb/inventory", timeout=10).json()
    print(f"\nRemaining folders: {len(final_folders)}")
    for f in final_folders:
        print(f"   - {f['name']} ({f['productCount']} products)")
    missing = [p for p in final_products if not p.get("folderId")]
    if missing:
        print(f"{len(missing)} products still without folder assignment")
    else:
        print(f"All {len(final_products)} products are assigned to folders")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("--base", default=BASE)
    args = parser.parse_args()
    raise SystemExit(cleanup(args.base.rstrip("/")))
