import json
import os
import sys

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from app.api.deps import get_terminal_adapter

if __name__ == "__main__":
    report = get_terminal_adapter().diagnose()
    print(json.dumps(report, indent=2, default=str))
    if report.get("error"):
        print("\nDiagnostic failed:", report["error"])
        if report.get("hint"):
            print(report["hint"])
        sys.exit(1)
    print("\nRequired for a live Terminal setup:")
    print("1. Terminal enabled in the Stripe Dashboard (live mode)")
    print("2. At least one Terminal location: https://dashboard.stripe.com/terminal/locations")
    print("3. A registered reader: https://dashboard.stripe.com/terminal/readers")
    print("4. A fully activated and verified account")
