import logging

from fastapi import APIRouter, Depends

from app.adapters.ghl_client import GHLAuthError, GHLClient, GHLError
from app.adapters.stripe_terminal import StripeTerminalAdapter
from app.api.deps import get_ghl_client, get_terminal_adapter

log = logging.getLogger(__name__)

router = APIRouter(prefix="/debug", tags=["debug"])


def _flag(value) -> str:
    return "Set" if value else "Missing"


def candidate_urls(client: GHLClient):
    base, loc = client.base_url, client.location_id
    return [
        f"{base}/products/?locationId={loc}",
        f"{base}/products?locationId={loc}",
        f"{base}/locations/{loc}/products",
        f"{base}/locations/{loc}/products/",
        f"https://rest.gohighlevel.com/v1/products/?locationId={loc}",
        f"https://services.leadconnectorhq.com/products/?locationId={loc}",
    ]


def describe_payload(data) -> dict:
    if isinstance(data, list):
        return {"topLevelKeys": [], "hasProducts": False, "hasData": False, "isArray": True, "productCount": len(data)}
    data = data if isinstance(data, dict) else {}
    count = "N/A"
    if isinstance(data.get("products"), list):
        count = len(data["products"])
    elif isinstance(data.get("data"), list):
        count = len(data["data"])
    return {
        "topLevelKeys": list(data.keys()),
        "hasProducts": "products" in data,
        "hasData": "data" in data,
        "isArray": False,
        "productCount": count,
    }


@router.get("/ghl")
def debug_ghl(client: GHLClient = Depends(get_ghl_client)):
    settings = client.settings
    tokens = client.tokens.load()
    config = {
        "CLIENT_ID": _flag(settings.GHL_CLIENT_ID),
        "CLIENT_SECRET": _flag(settings.GHL_CLIENT_SECRET),
        "LOCATION_ID": _flag(settings.GHL_LOCATION_ID),
        "BASE_URL": settings.GHL_BASE_URL,
        "tokensExist": "Yes" if tokens else "No",
    }
    if tokens:
        config["tokenInfo"] = {
            "hasAccessToken": "Yes" if tokens.get("access_token") else "No",
            "hasRefreshToken": "Yes" if tokens.get("refresh_token") else "No",
            "locationId": tokens.get("locationId") or "Not found in token",
            "userType": tokens.get("userType") or "Unknown",
            "scopes": (tokens.get("scope") or "").split(),
        }
    return {
        "message": "GoHighLevel Debug Information",
        "config": config,
        "endpoints": {
            "auth": "/auth",
            "callback": "/callback",
            "inventory": "/inventory",
            "testConnection": "/debug/ghl/test",
        },
    }


@router.get("/ghl/test")
def debug_ghl_test(client: GHLClient = Depends(get_ghl_client)):
    """Try the known product list URLs until one answers 2xx."""
    results = []
    try:
        for url in candidate_urls(client):
            try:
                resp = client.probe(url)
            except GHLAuthError:
                raise
            except GHLError as e:
                results.append({"url": url, "status": "ERROR", "error": {"status": None, "message": str(e)}})
                continue
            if resp.ok:
                try:
                    data = resp.json()
                except ValueError:
                    data = None
                results.append(
                    {
                        "url": url,
                        "status": "SUCCESS",
                        "responseStatus": resp.status_code,
                        "dataStructure": describe_payload(data),
                    }
                )
                break
            results.append({"url": url, "status": "ERROR", "error": {"status": resp.status_code, "message": resp.text[:200]}})
    except GHLAuthError as e:
        return {
            "status": "TOKEN_ERROR",
            "error": {"message": str(e), "suggestion": "Visit /auth to re-authorize"},
            "results": results,
        }

    found = any(r["status"] == "SUCCESS" for r in results)
    return {
        "message": "GoHighLevel API Endpoint Test",
        "results": results,
        "recommendation": "Found working endpoint!" if found else "No working endpoints found - may need re-authorization",
    }


@router.get("/stripe")
def debug_stripe(terminal: StripeTerminalAdapter = Depends(get_terminal_adapter)):
    return terminal.diagnose()
