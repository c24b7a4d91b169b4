import os
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import text

from app.adapters.ghl_client import GHLClient
from app.adapters.stripe_terminal import StripeTerminalAdapter
from app.api.deps import get_ghl_client, get_terminal_adapter
from app.config import settings
from app.db import engine

router = APIRouter()
status_router = APIRouter(tags=["health"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/health", tags=["health"])
def health(
    client: GHLClient = Depends(get_ghl_client),
    terminal: StripeTerminalAdapter = Depends(get_terminal_adapter),
):
    db_ok = False
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            db_ok = True
    except Exception:
        db_ok = False

    tokens = client.token_status()["status"]
    return {
        "status": "ok" if db_ok else "degraded",
        "db": db_ok,
        "ghl_tokens": tokens,
        "stripe": terminal.configured,
        "time": _now(),
    }


@status_router.get("/test")
def test():
    return {
        "status": "OK",
        "time": _now(),
        "environment": {
            "hasGhlCredentials": settings.ghl_configured,
            "hasStripeKey": bool(settings.STRIPE_SECRET_KEY),
            "hasDatabaseUrl": bool(settings.DATABASE_URL),
        },
    }


@status_router.get("/status")
def status():
    return {
        "server": "running",
        "timestamp": _now(),
        "ghlItemsExists": os.path.exists(settings.LOCAL_INVENTORY_FILE),
        "tokensExist": os.path.exists(settings.TOKEN_FILE),
        "configuration": {
            "ghlConfigured": settings.ghl_configured,
            "stripeConfigured": bool(settings.STRIPE_SECRET_KEY),
            "databaseConfigured": bool(settings.DATABASE_URL),
        },
    }
