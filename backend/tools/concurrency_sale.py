import argparse
import concurrent.futures
import json
import os

import requests

BASE = os.environ.get("POS_BASE", "http://127.0.0.1:5000")


def sale_task(i, product_id, qty):
    payload = {"cartItems": [{"id": product_id, "quantity": qty}]}
    try:
        r = requests.post(f"{BASE}/mongodb/inventory/process-sale", json=payload, timeout=10)
        return (i, r.status_code, r.text)
    except requests.RequestException as e:
        return (i, "ERR", str(e))


def run_sales_concurrent(workers, product_id, qty):
    before = requests.get(f"{BASE}/mongodb/inventory/{product_id}", timeout=10).json()
    print(f"Running sale test: workers={workers}, product={before['name']}, qty={qty}, stock={before['quantity']}")
    with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as ex:
        futures = [ex.submit(sale_task, i, product_id, qty) for i in range(workers)]
        results = [f.result() for f in futures]
    ok = [r for r in results if r[1] == 200]
    for r in results:
        if r[1] != 200:
            print(r[0], r[1], json.loads(r[2]).get("error") if r[1] != "ERR" else r[2])
    after = requests.get(f"{BASE}/mongodb/inventory/{product_id}", timeout=10).json()
    print(f"Successful sales: {len(ok)}; stock {before['quantity']} -> {after['quantity']}")
    expected = before["quantity"] - len(ok) * qty
    print("Consistent" if after["quantity"] == expected and after["quantity"] >= 0 else "OVERSOLD / INCONSISTENT")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Fire concurrent sales at one product and check stock never goes negative.")
    parser.add_argument("product_id")
    parser.add_argument("--qty", type=int, default=1)
    parser.add_argument("--workers", type=int, default=8)
    args = parser.parse_args()
    run_sales_concurrent(args.workers, args.product_id, args.qty)
