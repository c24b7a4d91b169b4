import os
from urllib.parse import parse_qs, urlsplit

import pytest
from app.adapters.ghl_client import GHLAPIError, GHLAuthError, GHLClient
from app.adapters.token_store import TokenStore, is_token_expired, now_ms
from app.api.deps import get_ghl_client
from app.config import settings
from app.main import app
from fastapi.testclient import TestClient

from fakes import FakeResponse, FakeSession, make_jwt

client = TestClient(app)


def teardown_module(module):
    app.dependency_overrides.clear()
    if os.path.exists(settings.TOKEN_FILE):
        os.remove(settings.TOKEN_FILE)


@pytest.fixture
def store(tmp_path):
    return TokenStore(str(tmp_path / "tokens.json"))


def make_client(store, session):
    return GHLClient(settings, store, session=session)


def test_is_token_expired():
    assert is_token_expired(make_jwt(3600)) is False
    # inside the five minute buffer
    assert is_token_expired(make_jwt(120)) is True
    assert is_token_expired(make_jwt(-10)) is True
    assert is_token_expired(None) is True
    assert is_token_expired("not-a-jwt") is True
    no_exp = make_jwt(3600).split(".")
    no_exp[1] = "e30"  # {}
    assert is_token_expired(".".join(no_exp)) is False


def test_no_tokens_raises_auth_error(store):
    ghl = make_client(store, FakeSession())
    with pytest.raises(GHLAuthError):
        ghl.list_products()


def test_expired_token_refreshed_before_request(store):
    fresh = make_jwt(3600)
    store.save({"access_token": make_jwt(-60), "refresh_token": "r-1"})
    session = FakeSession()
    session.add("POST", "/oauth/token", FakeResponse(200, {"access_token": fresh, "refresh_token": "r-2", "expires_in": 86399}))
    session.add("GET", "/products", FakeResponse(200, {"products": [{"id": "p1", "name": "Coke"}]}))
    ghl = make_client(store, session)

    products = ghl.list_products()

    assert products == [{"id": "p1", "name": "Coke"}]
    token_call = session.calls_to("POST", "/oauth/token")[0]
    assert token_call[2]["data"]["grant_type"] == "refresh_token"
    assert token_call[2]["data"]["refresh_token"] == "r-1"
    assert token_call[2]["data"]["client_id"] == "test-client"
    product_call = session.calls_to("GET", "/products")[0]
    assert product_call[2]["headers"]["Authorization"] == f"Bearer {fresh}"
    assert product_call[2]["headers"]["Version"] == settings.GHL_API_VERSION
    assert product_call[2]["params"] == {"locationId": "loc-123"}

    saved = store.load()
    assert saved["access_token"] == fresh
    assert saved["refresh_token"] == "r-2"
    assert saved["expires_at"] > now_ms()
    assert "refreshed_at" in saved
    assert ghl.retries == 0


def test_401_refreshes_once_and_retries(store):
    old, new = make_jwt(3600, v=1), make_jwt(3600, v=2)
    store.save({"access_token": old, "refresh_token": "r-1"})
    session = FakeSession()
    session.add("POST", "/oauth/token", FakeResponse(200, {"access_token": new, "refresh_token": "r-2", "expires_in": 86399}))
    session.add(
        "GET",
        "/products/p1/prices/pr1",
        FakeResponse(401, {"message": "Invalid JWT"}),
        FakeResponse(200, {"availableQuantity": 7}),
    )
    ghl = make_client(store, session)

    assert ghl.get_price("p1", "pr1") == {"availableQuantity": 7}

    calls = session.calls_to("GET", "/products/p1/prices/pr1")
    assert len(calls) == 2
    assert calls[0][2]["headers"]["Authorization"] == f"Bearer {old}"
    assert calls[1][2]["headers"]["Authorization"] == f"Bearer {new}"
    assert len(session.calls_to("POST", "/oauth/token")) == 1
    assert ghl.retries == 1


def test_second_401_is_an_api_error(store):
    store.save({"access_token": make_jwt(3600), "refresh_token": "r-1"})
    session = FakeSession()
    session.add("POST", "/oauth/token", FakeResponse(200, {"access_token": make_jwt(3600, v=3), "expires_in": 60}))
    session.add("GET", "/products", FakeResponse(403, {"message": "forbidden"}))
    ghl = make_client(store, session)

    with pytest.raises(GHLAPIError) as exc:
        ghl.list_products()
    assert exc.value.status == 403
    assert exc.value.body == {"message": "forbidden"}
    assert ghl.retries == 0


def test_invalid_grant_clears_tokens(store):
    store.save({"access_token": make_jwt(-60), "refresh_token": "revoked"})
    session = FakeSession()
    session.add("POST", "/oauth/token", FakeResponse(400, {"error": "invalid_grant"}))
    ghl = make_client(store, session)

    with pytest.raises(GHLAuthError):
        ghl.list_products()
    assert store.exists() is False
    assert session.calls_to("GET", "/products") == []


def test_refresh_skipped_when_token_already_rotated(store):
    current = make_jwt(3600, v=9)
    store.save({"access_token": current, "refresh_token": "r-1"})
    session = FakeSession()
    ghl = make_client(store, session)

    assert ghl.refresh_access_token(stale="an-older-token") == current
    assert session.calls == []


def test_list_products_response_shapes(store):
    store.save({"access_token": make_jwt(3600), "refresh_token": "r-1"})
    session = FakeSession()
    session.add(
        "GET",
        "/products",
        FakeResponse(200, [{"id": "a"}]),
        FakeResponse(200, {"data": [{"id": "b"}]}),
        FakeResponse(200, {"total": 0}),
    )
    ghl = make_client(store, session)
    assert ghl.list_products() == [{"id": "a"}]
    assert ghl.list_products() == [{"id": "b"}]
    assert ghl.list_products() == []


def test_set_price_quantity_sends_available_quantity(store):
    store.save({"access_token": make_jwt(3600), "refresh_token": "r-1"})
    session = FakeSession()
    session.add("PUT", "/products/p1/prices/pr1", FakeResponse(200, text=""))
    ghl = make_client(store, session)

    assert ghl.set_price_quantity("p1", "pr1", 4) == {}
    assert session.calls[0][2]["json"] == {"availableQuantity": 4}


def test_exchange_code_saves_tokens(store):
    session = FakeSession()
    session.add("POST", "/oauth/token", FakeResponse(200, {"access_token": "a", "refresh_token": "r", "expires_in": 3600}))
    ghl = make_client(store, session)
    before = now_ms()

    tokens = ghl.exchange_code("the-code")

    form = session.calls[0][2]["data"]
    assert form["grant_type"] == "authorization_code"
    assert form["code"] == "the-code"
    assert form["redirect_uri"] == "http://localhost:5000/callback"
    assert tokens["obtained_at"] >= before
    assert tokens["expires_at"] == tokens["obtained_at"] + 3600 * 1000
    assert store.load()["access_token"] == "a"


def test_authorize_url():
    ghl = make_client(TokenStore("unused.json"), FakeSession())
    url = urlsplit(ghl.authorize_url())
    query = parse_qs(url.query)
    assert url.path == "/oauth/chooselocation"
    assert query["client_id"] == ["test-client"]
    assert query["response_type"] == ["code"]
    assert query["redirect_uri"] == ["http://localhost:5000/callback"]
    assert "products.readonly" in query["scope"][0].split(" ")


def test_token_status_states(store):
    assert store.status()["status"] == "missing"

    store.save({"access_token": make_jwt(3600), "refresh_token": "r", "obtained_at": now_ms()})
    status = store.status()
    assert status["status"] == "valid"
    assert status["details"]["refreshedAt"] == "Never"
    assert "authUrl" not in status

    store.save({"access_token": make_jwt(-60), "refresh_token": "r"})
    assert store.status()["status"] == "refresh_needed"

    store.save({"access_token": make_jwt(-60)})
    status = store.status()
    assert status["status"] == "expired"
    assert status["authUrl"] == "/auth"


def test_auth_redirects_to_marketplace():
    res = client.get("/auth", follow_redirects=False)
    assert res.status_code == 302
    assert res.headers["location"].startswith(settings.GHL_MARKETPLACE_URL)


def test_callback_without_code():
    res = client.get("/callback")
    assert res.status_code == 400
    assert res.text == "Missing code"


def test_callback_exchanges_code():
    session = FakeSession()
    session.add("POST", "/oauth/token", FakeResponse(200, {"access_token": make_jwt(3600), "refresh_token": "r", "expires_in": 86399}))
    fake = GHLClient(settings, TokenStore(settings.TOKEN_FILE), session=session)
    app.dependency_overrides[get_ghl_client] = lambda: fake

    res = client.get("/callback", params={"code": "abc"})

    assert res.status_code == 200
    assert "GHL OAuth Successful" in res.text
    assert client.get("/tokens/status").json()["status"] == "valid"


def test_callback_exchange_failure():
    session = FakeSession()
    session.add("POST", "/oauth/token", FakeResponse(400, {"error": "invalid_request"}))
    fake = GHLClient(settings, TokenStore(settings.TOKEN_FILE), session=session)
    app.dependency_overrides[get_ghl_client] = lambda: fake

    res = client.get("/callback", params={"code": "bad"})

    assert res.status_code == 500
    assert res.text.startswith("OAuth Exchange failed")
