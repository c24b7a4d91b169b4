import logging
import threading
from typing import Any, Dict, List, Optional
from urllib.parse import urlencode

import requests

from app.adapters.token_store import TokenStore, is_token_expired, now_ms
from app.repositories.json_store import JsonStoreError

log = logging.getLogger(__name__)

SCOPES = [
    "payments/orders.readonly",
    "payments/orders.write",
    "payments/integration.readonly",
    "payments/integration.write",
    "payments/transactions.readonly",
    "products.write",
    "products.readonly",
    "products/prices.readonly",
    "products/prices.write",
    "products/collection.readonly",
    "products/collection.write",
]

# one refresh at a time across every client in the process
_refresh_lock = threading.Lock()


class GHLError(Exception):
    pass


class GHLAuthError(GHLError):
    """No usable tokens: the location has to be re-authorized via /auth."""
    pass


class GHLAPIError(GHLError):
    def __init__(self, status: int, body: Any, url: str = ""):
        self.status = status
        self.body = body
        self.url = url
        super().__init__(f"GHL API error {status} for {url}: {body}")


def _body(resp) -> Any:
    try:
        return resp.json()
    except ValueError:
        return resp.text


class GHLClient:
    """
    GoHighLevel REST client. Every call carries the stored bearer token and the
    API Version header; a 401/403 triggers a single token refresh and one
    retry of the same request.
    """

    def __init__(self, settings, token_store: TokenStore, session: Optional[requests.Session] = None):
        self.settings = settings
        self.tokens = token_store
        self.session = session or requests.Session()
        self.timeout = settings.GHL_TIMEOUT_SECONDS
        # number of requests that only succeeded after a refresh
        self.retries = 0

    @property
    def base_url(self) -> str:
        return self.settings.GHL_BASE_URL.rstrip("/")

    @property
    def location_id(self) -> Optional[str]:
        return self.settings.GHL_LOCATION_ID

    # OAuth

    def authorize_url(self) -> str:
        query = urlencode(
            {
                "response_type": "code",
                "redirect_uri": self.settings.GHL_REDIRECT_URI or "",
                "client_id": self.settings.GHL_CLIENT_ID or "",
                "scope": " ".join(SCOPES),
            }
        )
        return f"{self.settings.GHL_MARKETPLACE_URL.rstrip('/')}/oauth/chooselocation?{query}"

    def _post_token(self, form: Dict) -> requests.Response:
        form = dict(form, client_id=self.settings.GHL_CLIENT_ID, client_secret=self.settings.GHL_CLIENT_SECRET)
        try:
            return self.session.request(
                "POST",
                f"{self.base_url}/oauth/token",
                data=form,
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise GHLError(f"Token endpoint unreachable: {e}") from e

    def exchange_code(self, code: str) -> Dict:
        resp = self._post_token(
            {
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": self.settings.GHL_REDIRECT_URI,
            }
        )
        if not resp.ok:
            raise GHLAPIError(resp.status_code, _body(resp), "/oauth/token")
        data = resp.json()
        now = now_ms()
        data["obtained_at"] = now
        data["expires_at"] = now + int(data.get("expires_in") or 0) * 1000
        self.tokens.save(data)
        log.info("Fresh tokens obtained from GHL OAuth")
        return data

    def _load_tokens(self) -> Optional[Dict]:
        try:
            return self.tokens.load()
        except (JsonStoreError, ValueError) as e:
            log.error("Stored tokens unreadable: %s", e)
            raise GHLAuthError(f"Stored tokens unreadable - please re-authorize via /auth: {e}") from e

    def refresh_access_token(self, stale: Optional[str] = None) -> str:
        """
        Refresh the access token. When `stale` is given and the stored token
        has already moved on (another caller refreshed while we waited on the
        lock), the stored token is returned without a second refresh.
        """
        with _refresh_lock:
            tok = self._load_tokens()
            if not tok or not tok.get("refresh_token"):
                raise GHLAuthError("No refresh token - please re-authorize via /auth")
            if stale and tok.get("access_token") and tok["access_token"] != stale:
                return tok["access_token"]

            log.info("Refreshing access token")
            resp = self._post_token({"grant_type": "refresh_token", "refresh_token": tok["refresh_token"]})
            if not resp.ok:
                body = _body(resp)
                log.error("Failed to refresh access token: %s", body)
                if isinstance(body, dict) and body.get("error") == "invalid_grant":
                    log.warning("Refresh token rejected, clearing stored tokens. Visit /auth to re-authorize")
                    self.tokens.clear()
                raise GHLAuthError(f"Token refresh failed: {body}")

            data = resp.json()
            now = now_ms()
            data["refreshed_at"] = now
            data["expires_at"] = now + int(data.get("expires_in") or 0) * 1000
            self.tokens.save(data)
            log.info("Access token refreshed")
            return data["access_token"]

    def get_valid_access_token(self) -> str:
        tok = self._load_tokens()
        if not tok:
            raise GHLAuthError("No tokens - visit /auth to authorize")
        if is_token_expired(tok.get("access_token")):
            log.info("Token expired, refreshing")
            return self.refresh_access_token(stale=tok.get("access_token"))
        return tok["access_token"]

    def token_status(self) -> Dict:
        return self.tokens.status()

    # HTTP

    def _headers(self, token: str) -> Dict:
        return {
            "Authorization": f"Bearer {token}",
            "Version": self.settings.GHL_API_VERSION,
            "Accept": "application/json",
        }

    def _url(self, path: str) -> str:
        if path.startswith("http"):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def _send(self, method: str, url: str, token: str, timeout=None, **kwargs) -> requests.Response:
        try:
            return self.session.request(
                method, url, headers=self._headers(token), timeout=timeout or self.timeout, **kwargs
            )
        except requests.RequestException as e:
            raise GHLError(f"{method} {url} failed: {e}") from e

    def request(self, method: str, path: str, timeout=None, **kwargs) -> Any:
        url = self._url(path)
        token = self.get_valid_access_token()
        resp = self._send(method, url, token, timeout, **kwargs)
        if resp.status_code in (401, 403):
            log.warning("GHL returned %s for %s %s, refreshing token and retrying", resp.status_code, method, url)
            token = self.refresh_access_token(stale=token)
            resp = self._send(method, url, token, timeout, **kwargs)
            if resp.ok:
                self.retries += 1
        if not resp.ok:
            raise GHLAPIError(resp.status_code, _body(resp), url)
        if not resp.content:
            return {}
        return _body(resp)

    def probe(self, url: str, timeout: float = 5) -> requests.Response:
        """Plain GET with the current token for the debug endpoints; the status code is left to the caller."""
        return self._send("GET", url, self.get_valid_access_token(), timeout)

    # Products

    def list_products(self) -> List[Dict]:
        data = self.request("GET", "/products/", params={"locationId": self.location_id})
        if isinstance(data, list):
            return data
        if isinstance(data, dict):
            for key in ("products", "data"):
                if isinstance(data.get(key), list):
                    return data[key]
        return []

    def get_price(self, product_id: str, price_id: str) -> Dict:
        return self.request("GET", f"/products/{product_id}/prices/{price_id}")

    def set_price_quantity(self, product_id: str, price_id: str, quantity: int) -> Dict:
        return self.request(
            "PUT", f"/products/{product_id}/prices/{price_id}", json={"availableQuantity": quantity}
        )

    def create_product(self, name: str, description: Optional[str] = None, product_type: str = "PHYSICAL") -> Dict:
        return self.request(
            "POST",
            "/products/",
            json={
                "name": name,
                "description": description or f"Product: {name}",
                "locationId": self.location_id,
                "availableInStore": True,
                "productType": product_type,
            },
        )

    def create_price(self, product_id: str, name: str, amount: float, quantity: int, currency: str = "AUD") -> Dict:
        return self.request(
            "POST",
            f"/products/{product_id}/price",
            json={
                "product": product_id,
                "locationId": self.location_id,
                "name": name,
                "type": "one_time",
                "currency": currency,
                "amount": amount,
                "description": name,
                "sku": "-".join(name.split()).lower(),
                "isDigitalProduct": False,
                "trackInventory": True,
                "availableQuantity": quantity,
                "allowOutOfStockPurchases": False,
            },
        )

    # Contacts

    def search_contacts(self, query: str) -> List[Dict]:
        data = self.request("GET", "/contacts/search", params={"query": query})
        return (data or {}).get("contacts") or []

    def create_contact(self, data: Dict) -> Dict:
        return self.request("POST", "/contacts", json=data)

    def update_contact(self, contact_id: str, data: Dict) -> Dict:
        return self.request("PUT", f"/contacts/{contact_id}", json=data)
