import json
import sqlite3
import sys

DB = sys.argv[1] if len(sys.argv) > 1 else "dev.db"
NAME = sys.argv[2] if len(sys.argv) > 2 else None

conn = sqlite3.connect(DB)
cur = conn.cursor()

print("=== Folders ===")
cur.execute(
    'SELECT id, name, "order", is_active, is_default, product_count FROM folders ORDER BY "order", name'
)
for r in cur.fetchall():
    print({"id": r[0], "name": r[1], "order": r[2], "active": bool(r[3]), "default": bool(r[4]), "products": r[5]})

print("\n=== Products ===")
if NAME:
    cur.execute(
        "SELECT id, name, price_cents, quantity, folder_name, source, is_active FROM products WHERE name LIKE ? ORDER BY name",
        (f"%{NAME}%",),
    )
else:
    cur.execute(
        "SELECT id, name, price_cents, quantity, folder_name, source, is_active FROM products ORDER BY name LIMIT 50"
    )
for r in cur.fetchall():
    print(r)

print("\n=== Recent Payments ===")
cur.execute("SELECT id, date, total_cents, method, items FROM payments ORDER BY date DESC LIMIT 20")
for r in cur.fetchall():
    items = r[4]
    try:
        items = json.loads(items) if isinstance(items, str) else items
    except ValueError:
        pass
    print({"id": r[0], "date": r[1], "total_cents": r[2], "method": r[3], "lines": len(items or [])})

conn.close()
