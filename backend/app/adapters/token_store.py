import base64
import json
import logging
import time
from typing import Dict, Optional

from app.repositories.json_store import JsonFileStore

log = logging.getLogger(__name__)

# treat tokens as expired this many seconds before their real expiry
EXPIRY_BUFFER_SECONDS = 300


def now_ms() -> int:
    return int(time.time() * 1000)


def is_token_expired(access_token: Optional[str], buffer_seconds: int = EXPIRY_BUFFER_SECONDS) -> bool:
    """
    Decode the JWT payload (no signature check) and compare `exp` with now.
    Missing or unparsable tokens count as expired; a token without `exp` does not.
    """
    if not access_token:
        return True
    try:
        payload = access_token.split(".")[1]
        payload += "=" * (-len(payload) % 4)
        claims = json.loads(base64.urlsafe_b64decode(payload.encode("ascii")))
    except (IndexError, ValueError, UnicodeError) as e:
        log.warning("Token expiry check failed: %s", e)
        return True
    exp = claims.get("exp")
    if not exp:
        return False
    return exp - buffer_seconds < time.time()


class TokenStore:
    """OAuth tokens persisted as `tokens.json`."""

    def __init__(self, path: str):
        self.store = JsonFileStore(path)

    @property
    def path(self) -> str:
        return self.store.path

    def exists(self) -> bool:
        return self.store.exists()

    def load(self) -> Optional[Dict]:
        return self.store.read(default=None)

    def save(self, tokens: Dict) -> None:
        self.store.write(tokens)
        log.info("Tokens saved")

    def clear(self) -> bool:
        removed = self.store.delete()
        if removed:
            log.info("Stored tokens cleared")
        return removed

    def status(self) -> Dict:
        """Summary of the stored tokens: missing, valid, expired or refresh_needed."""
        tokens = self.load()
        if not tokens:
            return {
                "status": "missing",
                "message": "No tokens found",
                "action": "Visit /auth to authorize",
                "authUrl": "/auth",
            }

        expired = is_token_expired(tokens.get("access_token"))
        has_refresh = bool(tokens.get("refresh_token"))
        status, message, action = "valid", "Tokens are valid and ready", None
        if expired and not has_refresh:
            status = "expired"
            message = "Tokens expired and no refresh token available"
            action = "Visit /auth to re-authorize"
        elif expired:
            status = "refresh_needed"
            message = "Access token expired but refresh token available"
            action = "Automatic refresh will occur on next API call"

        resp = {
            "status": status,
            "message": message,
            "action": action,
            "details": {
                "hasAccessToken": bool(tokens.get("access_token")),
                "hasRefreshToken": has_refresh,
                "accessTokenExpired": expired,
                "obtainedAt": _fmt_ms(tokens.get("obtained_at"), "Unknown"),
                "expiresAt": _fmt_ms(tokens.get("expires_at"), "Unknown"),
                "refreshedAt": _fmt_ms(tokens.get("refreshed_at"), "Never"),
            },
        }
        if status != "valid":
            resp["authUrl"] = "/auth"
        return resp


def _fmt_ms(value, default: str) -> str:
    if not value:
        return default
    return time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(value / 1000))
