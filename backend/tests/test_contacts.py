import pytest
from app.adapters.ghl_client import GHLClient
from app.adapters.token_store import TokenStore
from app.api.deps import get_ghl_client
from app.config import settings
from app.main import app
from app.services.contact_service import ContactService, ContactServiceException, digits, find_by_phone
from fastapi.testclient import TestClient

from fakes import FakeResponse, FakeSession, make_jwt

client = TestClient(app)

WALKIN = {
    "id": "c-1",
    "firstName": "Sam",
    "lastName": "Lee",
    "phone": "+61 400 111 222",
    "email": "sam@example.com",
    "tags": ["walkin"],
    "customFields": {"customerType": "walkin"},
}


@pytest.fixture
def session(tmp_path):
    store = TokenStore(str(tmp_path / "tokens.json"))
    store.save({"access_token": make_jwt(3600), "refresh_token": "r-1"})
    s = FakeSession()
    ghl = GHLClient(settings, store, session=s)
    app.dependency_overrides[get_ghl_client] = lambda: ghl
    yield s
    app.dependency_overrides.clear()


def test_phone_matching():
    assert digits("+61 (400) 111-222") == "61400111222"
    assert find_by_phone([WALKIN], "61400111222") is WALKIN
    assert find_by_phone([WALKIN], "+61 400 111 222") is WALKIN
    assert find_by_phone([WALKIN], "0400999888") is None
    assert find_by_phone([{"id": "x"}], "") is None


def test_check_contact_found(session):
    session.add("GET", "/contacts/search", FakeResponse(200, {"contacts": [WALKIN]}))

    res = client.get("/check-contact/61400111222")

    assert res.status_code == 200
    assert res.json() == {
        "exists": True,
        "contact": {
            "id": "c-1",
            "name": "Sam Lee",
            "phone": "+61 400 111 222",
            "email": "sam@example.com",
            "tags": ["walkin"],
            "customerType": "walkin",
            "membershipType": None,
        },
    }
    assert session.calls[0][2]["params"] == {"query": "61400111222"}


def test_check_contact_missing(session):
    session.add("GET", "/contacts/search", FakeResponse(200, {"contacts": []}))
    assert client.get("/check-contact/0400000000").json() == {"exists": False}


def test_check_contact_ghl_failure(session):
    session.add("GET", "/contacts/search", FakeResponse(500, {"message": "down"}))
    res = client.get("/check-contact/0400000000")
    assert res.status_code == 500
    assert res.json()["error"] == "Failed to check contact"


def test_upgrade_existing_walkin(session):
    session.add("GET", "/contacts/search", FakeResponse(200, {"contacts": [WALKIN]}))
    session.add("PUT", "/contacts/c-1", FakeResponse(200, {"contact": {"id": "c-1"}}))

    res = client.post(
        "/upgrade-walkin-to-membership",
        json={"phoneNumber": "+61 400 111 222", "customerData": {"firstName": "Sam"}, "membershipType": "annual"},
    )

    assert res.status_code == 200
    body = res.json()
    assert body["action"] == "upgraded_existing"
    assert body["contactId"] == "c-1"
    sent = session.calls_to("PUT", "/contacts/c-1")[0][2]["json"]
    assert sent["firstName"] == "Sam"
    assert sent["tags"] == ["walkin", "membership", "annual"]
    assert sent["customFields"]["customerType"] == "member"
    assert sent["customFields"]["previousType"] == "walkin"
    assert sent["customFields"]["membershipType"] == "annual"


def test_upgrade_creates_new_contact(session):
    session.add("GET", "/contacts/search", FakeResponse(200, {"contacts": []}))
    session.add("POST", "/contacts", FakeResponse(200, {"contact": {"id": "c-new"}}))

    res = client.post(
        "/upgrade-walkin-to-membership",
        json={"phoneNumber": "0400123456", "customerData": {"email": "new@example.com"}, "membershipType": "monthly"},
    )

    assert res.status_code == 200
    assert res.json()["action"] == "created_new"
    assert res.json()["contactId"] == "c-new"
    sent = session.calls_to("POST", "/contacts")[0][2]["json"]
    assert sent["phone"] == "0400123456"
    assert sent["email"] == "new@example.com"
    assert sent["tags"] == ["membership", "monthly"]


def test_upgrade_validation(session):
    res = client.post("/upgrade-walkin-to-membership", json={"phoneNumber": "0400123456"})
    assert res.status_code == 400
    assert session.calls == []


def test_upgrade_ghl_failure_reports_details(session):
    session.add("GET", "/contacts/search", FakeResponse(200, {"contacts": []}))
    session.add("POST", "/contacts", FakeResponse(422, {"message": "phone invalid"}))

    res = client.post(
        "/upgrade-walkin-to-membership",
        json={"phoneNumber": "bad", "membershipType": "monthly"},
    )

    assert res.status_code == 500
    assert res.json()["error"] == "Failed to upgrade walk-in to membership"
    assert res.json()["details"] == {"message": "phone invalid"}


def test_service_requires_membership_type(session):
    ghl = app.dependency_overrides[get_ghl_client]()
    with pytest.raises(ContactServiceException):
        ContactService(ghl).upgrade_walkin_to_membership("0400123456", {}, "")
