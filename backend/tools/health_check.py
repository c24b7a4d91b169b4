import argparse
import os

import requests

BASE = os.environ.get("POS_BASE", "http://127.0.0.1:5000")
FRONTEND = os.environ.get("POS_FRONTEND", "http://localhost:3000")


def check(label, fn):
    try:
        r = fn()
    except requests.RequestException as e:
        print(f"FAIL  {label}: {e}")
        return False
    if not r.ok:
        print(f"FAIL  {label}: {r.status_code} {r.text[:200]}")
        return False
    print(f"OK    {label}")
    return True


def run(base, frontend):
    print("YMC POS Health Check")
    print("====================")
    results = [
        check("Backend server", lambda: requests.get(f"{base}/test", timeout=5)),
        check("GoHighLevel inventory", lambda: requests.get(f"{base}/inventory", timeout=20)),
        check("Stripe Terminal", lambda: requests.post(f"{base}/connection_token", timeout=15)),
        check("Frontend", lambda: requests.get(frontend, timeout=5)),
    ]
    passed = sum(results)
    print(f"\n{passed}/{len(results)} services healthy")
    if passed < len(results):
        print("Common fixes:")
        print("  - restart the backend: uvicorn app.main:app --port 5000 (in backend/)")
        print("  - restart the frontend: npm start (in frontend/)")
        print(f"  - re-authorize GHL: visit {base}/auth")
    return passed == len(results)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Check backend, GHL inventory, Stripe and frontend.")
    parser.add_argument("--base", default=BASE)
    parser.add_argument("--frontend", default=FRONTEND)
    args = parser.parse_args()
    raise SystemExit(0 if run(args.base.rstrip("/"), args.frontend) else 1)
