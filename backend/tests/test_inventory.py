import os

from app.adapters.ghl_client import GHLClient
from app.adapters.notifier import LowStockNotifier
from app.adapters.token_store import TokenStore
from app.api.deps import get_ghl_client, get_notifier
from app.config import settings
from app.main import app
from app.repositories.json_store import JsonFileStore
from app.repositories.local_inventory_repo import LocalInventoryRepository
from app.services.inventory_service import inventory_cache
from fastapi.testclient import TestClient

from fakes import FakeNotifier, FakeResponse, FakeSMTP, FakeSession, make_jwt

client = TestClient(app)

notifier = FakeNotifier()

SNAPSHOT = [
    {"name": "Coke", "productId": "p1", "priceId": "pr1", "price": 2.0, "quantity": 25, "description": "Can"},
    {"name": "Water", "productId": "p2", "priceId": "pr2", "price": 1.0, "quantity": 3, "description": "Bottle"},
]

GHL_PRODUCTS = [
    {"_id": "p1", "name": "Coke", "prices": [{"_id": "pr1", "amount": 2.5, "availableQuantity": 12}]},
    {"_id": "p2", "name": "No Price Yet"},
]


def _remove(path):
    if os.path.exists(path):
        os.remove(path)


def _clean():
    for path in (settings.TOKEN_FILE, settings.SYNC_CACHE_FILE, settings.LOCAL_INVENTORY_FILE):
        _remove(path)
    inventory_cache.reset()
    notifier.sent.clear()


def setup_module(module):
    app.dependency_overrides[get_notifier] = lambda: notifier


def teardown_module(module):
    app.dependency_overrides.clear()
    _clean()


def setup_function(function):
    _clean()


def use_ghl(session, tokens=True):
    store = TokenStore(settings.TOKEN_FILE)
    if tokens:
        store.save({"access_token": make_jwt(3600), "refresh_token": "r-1"})
    fake = GHLClient(settings, store, session=session)
    app.dependency_overrides[get_ghl_client] = lambda: fake
    return fake


def write_snapshot(items=SNAPSHOT):
    LocalInventoryRepository(JsonFileStore(settings.LOCAL_INVENTORY_FILE)).replace_all([dict(i) for i in items])


def read_snapshot():
    return LocalInventoryRepository(JsonFileStore(settings.LOCAL_INVENTORY_FILE)).all()


# GET /inventory


def test_demo_inventory_when_nothing_is_available():
    use_ghl(FakeSession(), tokens=False)
    res = client.get("/inventory")
    assert res.status_code == 200
    items = res.json()
    assert [i["id"] for i in items] == ["demo-1", "demo-2", "demo-3", "demo-4", "demo-5"]
    assert all(i["source"] == "demo" for i in items)


def test_live_sync_normalizes_and_writes_caches():
    session = FakeSession().add("GET", "/products", FakeResponse(200, {"products": GHL_PRODUCTS}))
    use_ghl(session)

    items = client.get("/inventory").json()

    assert items[0]["id"] == "p1"
    assert items[0]["priceId"] == "pr1"
    assert items[0]["price"] == 2.5
    assert items[0]["quantity"] == 12
    assert items[0]["source"] == "ghl"
    assert items[1]["priceId"] == "no-price-1"
    assert items[1]["quantity"] == 0
    assert os.path.exists(settings.SYNC_CACHE_FILE)
    snapshot = read_snapshot()
    assert snapshot[0] == {
        "name": "Coke",
        "productId": "p1",
        "priceId": "pr1",
        "price": 2.5,
        "quantity": 12,
        "description": "GHL Product: Coke",
        "lastSynced": items[0]["lastSynced"],
    }


def test_fresh_cache_skips_ghl():
    session = FakeSession().add("GET", "/products", FakeResponse(200, GHL_PRODUCTS))
    use_ghl(session)

    client.get("/inventory")
    client.get("/inventory")
    assert len(session.calls_to("GET", "/products")) == 1

    client.get("/inventory", params={"refresh": "true"})
    assert len(session.calls_to("GET", "/products")) == 2


def test_failed_refresh_serves_memory_cache():
    session = FakeSession().add(
        "GET",
        "/products",
        FakeResponse(200, GHL_PRODUCTS),
        FakeResponse(502, {"message": "bad gateway"}),
    )
    use_ghl(session)

    first = client.get("/inventory").json()
    second = client.get("/inventory", params={"refresh": "true"}).json()
    assert [i["id"] for i in second] == [i["id"] for i in first]


def test_sync_cache_file_used_after_restart():
    session = FakeSession().add("GET", "/products", FakeResponse(200, GHL_PRODUCTS))
    use_ghl(session)
    client.get("/inventory")
    _remove(settings.LOCAL_INVENTORY_FILE)
    inventory_cache.reset()

    use_ghl(FakeSession().add("GET", "/products", FakeResponse(500, {"message": "down"})))
    items = client.get("/inventory").json()
    assert [i["id"] for i in items] == ["p1", "p2"]
    assert items[0]["source"] == "ghl"


def test_local_snapshot_fallback_defaults_quantity():
    write_snapshot([{"name": "Chips", "productId": "c1", "priceId": "cp1", "price": 3}])
    use_ghl(FakeSession(), tokens=False)

    items = client.get("/inventory").json()
    assert items == [
        {
            "id": "c1",
            "name": "Chips",
            "price": 3.0,
            "quantity": 20,
            "priceId": "cp1",
            "description": "Product: Chips",
            "image": None,
            "source": "local",
        }
    ]


def test_local_snapshot_keeps_zero_quantity():
    write_snapshot([{"name": "Gum", "productId": "g1", "priceId": "gp1", "price": 1, "quantity": 0}])
    use_ghl(FakeSession(), tokens=False)

    items = client.get("/inventory").json()
    assert items[0]["id"] == "g1"
    assert items[0]["quantity"] == 0


def test_corrupt_token_file_falls_back():
    use_ghl(FakeSession(), tokens=False)
    with open(settings.TOKEN_FILE, "w") as f:
        f.write("{not json")

    res = client.get("/inventory")
    assert res.status_code == 200
    assert [i["source"] for i in res.json()] == ["demo"] * 5


def test_corrupt_token_file_uses_local_snapshot():
    write_snapshot()
    use_ghl(FakeSession(), tokens=False)
    with open(settings.TOKEN_FILE, "w") as f:
        f.write("{not json")

    items = client.get("/inventory").json()
    assert [i["id"] for i in items] == ["p1", "p2"]
    assert items[0]["source"] == "local"


# POST /update-inventory


def test_update_inventory_corrupt_local_file():
    with open(settings.LOCAL_INVENTORY_FILE, "w") as f:
        f.write("[broken")
    use_ghl(FakeSession(), tokens=False)

    res = client.post("/update-inventory", json={"cart": [{"id": "p1", "priceId": "pr1", "name": "Coke", "quantity": 1}]})
    assert res.status_code == 500
    body = res.json()
    assert body["success"] is False
    assert body["error"] == "Local inventory update failed"


def test_update_inventory_local_mode():
    write_snapshot()
    use_ghl(FakeSession(), tokens=False)
    inventory_cache.set([{"id": "p1", "priceId": "pr1", "name": "Coke", "quantity": 25}])

    res = client.post(
        "/update-inventory",
        json={
            "cart": [
                {"id": "p1", "priceId": "pr1", "name": "Coke", "quantity": 6},
                {"id": "p2", "priceId": "pr2", "name": "Water", "quantity": 5},
                {"id": "zz", "priceId": "zz", "name": "Ghost", "quantity": 1},
            ]
        },
    )

    assert res.status_code == 200
    assert res.json() == {
        "success": True,
        "method": "local",
        "lowStockAlerts": 1,
        "message": "Local inventory updated. 1 low stock alert(s) sent.",
    }
    quantities = {i["productId"]: i["quantity"] for i in read_snapshot()}
    assert quantities == {"p1": 19, "p2": 0}
    assert notifier.sent == [("Coke", 19, 20)]
    assert inventory_cache.products[0]["quantity"] == 19


def test_update_inventory_local_without_alerts():
    write_snapshot()
    use_ghl(FakeSession(), tokens=False)
    res = client.post("/update-inventory", json={"cart": [{"id": "p1", "priceId": "pr1", "name": "Coke", "quantity": 1}]})
    assert res.json()["message"] == "Local inventory updated successfully."
    assert notifier.sent == []


def test_update_inventory_ghl_mode():
    session = FakeSession()
    session.add("GET", "/products/p1/prices/pr1", FakeResponse(200, {"availableQuantity": 30}))
    session.add("PUT", "/products/p1/prices/pr1", FakeResponse(200, {}))
    use_ghl(session)

    res = client.post(
        "/update-inventory",
        json={
            "cart": [
                {"id": "p1", "priceId": "pr1", "name": "Coke", "quantity": 2},
                {"name": "No ids", "quantity": 1},
            ]
        },
    )

    assert res.status_code == 200
    assert res.json() == {
        "success": True,
        "method": "ghl",
        "lowStockAlerts": 0,
        "message": "GHL inventory updated successfully.",
    }
    assert session.calls_to("PUT", "/products/p1/prices/pr1")[0][2]["json"] == {"availableQuantity": 28}


def test_update_inventory_force_ghl_with_snapshot_present():
    write_snapshot()
    session = FakeSession()
    session.add("GET", "/products/p1/prices/pr1", FakeResponse(200, {"availableQuantity": 5}))
    session.add("PUT", "/products/p1/prices/pr1", FakeResponse(200, {}))
    use_ghl(session)

    res = client.post(
        "/update-inventory",
        params={"forceGhl": "true"},
        json={"cart": [{"id": "p1", "priceId": "pr1", "name": "Coke", "quantity": 9}]},
    )

    assert res.json()["method"] == "ghl"
    assert session.calls_to("PUT", "/products/p1/prices/pr1")[0][2]["json"] == {"availableQuantity": 0}
    # snapshot untouched by a GHL-mode sale
    assert read_snapshot()[0]["quantity"] == 25


def test_update_inventory_after_token_refresh():
    session = FakeSession()
    session.add("POST", "/oauth/token", FakeResponse(200, {"access_token": make_jwt(3600, v=2), "expires_in": 86399}))
    session.add(
        "GET",
        "/products/p1/prices/pr1",
        FakeResponse(401, {"message": "expired"}),
        FakeResponse(200, {"availableQuantity": 21}),
    )
    session.add("PUT", "/products/p1/prices/pr1", FakeResponse(200, {}))
    use_ghl(session)

    res = client.post("/update-inventory", json={"cart": [{"id": "p1", "priceId": "pr1", "name": "Coke", "quantity": 3}]})

    assert res.status_code == 200
    assert res.json() == {
        "success": True,
        "method": "ghl_retry",
        "lowStockAlerts": 1,
        "message": "Inventory updated after token refresh. 1 low stock alert(s) sent.",
    }
    assert notifier.sent == [("Coke", 18, 20)]


def test_update_inventory_without_tokens_is_401():
    use_ghl(FakeSession(), tokens=False)
    res = client.post("/update-inventory", json={"cart": [{"id": "p1", "priceId": "pr1", "quantity": 1}]})
    assert res.status_code == 401
    body = res.json()
    assert body["success"] is False
    assert "/auth" in body["suggestion"]


def test_update_inventory_ghl_failure_is_500():
    session = FakeSession().add("GET", "/products/p1/prices/pr1", FakeResponse(500, {"message": "boom"}))
    use_ghl(session)
    res = client.post("/update-inventory", json={"cart": [{"id": "p1", "priceId": "pr1", "quantity": 1}]})
    assert res.status_code == 500
    assert res.json()["error"] == {"message": "boom"}
    assert "local inventory" in res.json()["suggestion"]


# ghl-items.json CRUD


def test_local_crud_without_snapshot_is_404():
    use_ghl(FakeSession(), tokens=False)
    res = client.get("/inventory/p1")
    assert res.status_code == 404
    assert res.json()["error"] == "Inventory not available"
    assert client.post("/inventory/add-product", json={"name": "X", "price": 1, "quantity": 1}).status_code == 404


def test_local_get_and_quantity():
    write_snapshot()
    use_ghl(FakeSession(), tokens=False)

    assert client.get("/inventory/pr2").json()["name"] == "Water"
    assert client.get("/inventory/nope").status_code == 404

    res = client.put("/inventory/p1/quantity", json={"quantity": 9})
    assert res.status_code == 200
    assert res.json()["message"] == "Updated Coke quantity from 25 to 9"
    assert client.put("/inventory/p1/quantity", json={"quantity": -1}).status_code == 400
    assert client.put("/inventory/p1/quantity", json={"quantity": "lots"}).status_code == 400


def test_local_add_update_delete():
    write_snapshot()
    use_ghl(FakeSession(), tokens=False)

    res = client.post("/inventory/add-product", json={"name": "Chips", "price": 3, "quantity": 10})
    assert res.status_code == 200
    product = res.json()["product"]
    assert product["productId"].startswith("manual-")
    assert product["isManual"] is True
    assert product["description"] == "Manual product: Chips"

    dup = client.post("/inventory/add-product", json={"name": "chips", "price": 3, "quantity": 1})
    assert dup.status_code == 400
    assert "already exists" in dup.json()["error"]
    assert client.post("/inventory/add-product", json={"name": "Nuts", "quantity": 1}).status_code == 400
    assert client.post("/inventory/add-product", json={"name": "Nuts", "price": -1, "quantity": 1}).status_code == 400

    res = client.put(f"/inventory/{product['productId']}", json={"name": "Salt Chips", "price": "3.5"})
    assert res.status_code == 200
    assert res.json()["item"]["name"] == "Salt Chips"
    assert res.json()["item"]["price"] == 3.5

    res = client.delete("/inventory/p2")
    assert res.status_code == 200
    assert res.json()["message"] == 'Successfully deleted "Water" from inventory'
    assert client.delete("/inventory/p2").status_code == 404
    assert [i["name"] for i in read_snapshot()] == ["Coke", "Salt Chips"]


# low-stock email


def test_notifier_disabled_without_credentials():
    FakeSMTP.instances.clear()
    n = LowStockNotifier("smtp.example.com", 587, None, None, smtp_factory=FakeSMTP)
    assert n.send_low_stock_alert("Coke", 3) is False
    assert FakeSMTP.instances == []


def test_notifier_sends_html_alert():
    FakeSMTP.instances.clear()
    n = LowStockNotifier("smtp.example.com", 587, "shop@example.com", "pw", "owner@example.com", smtp_factory=FakeSMTP)

    assert n.send_low_stock_alert("Coke <Zero>", 3, 20) is True

    smtp = FakeSMTP.instances[0]
    assert (smtp.host, smtp.port) == ("smtp.example.com", 587)
    assert smtp.logged_in == ("shop@example.com", "pw")
    msg = smtp.messages[0]
    assert msg["Subject"] == "Low Stock Alert - Coke <Zero>"
    assert msg["To"] == "owner@example.com"
    html = msg.get_body(preferencelist=("html",)).get_content()
    assert "Coke &lt;Zero&gt;" in html
    assert "3 units" in html


def test_notifier_swallows_smtp_failure():
    def broken(host, port, timeout=None):
        raise OSError("connection refused")

    n = LowStockNotifier("smtp.example.com", 587, "shop@example.com", "pw", smtp_factory=broken)
    assert n.send_low_stock_alert("Coke", 3) is False
