from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./dev.db"
    APP_HOST: str = "127.0.0.1"
    APP_PORT: int = 5000
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    FRONTEND_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:3001",
        "http://localhost:3002",
        "https://localhost:3000",
    ]
    FRONTEND_URL: Optional[str] = None
    # Netlify / Vercel deploy previews
    FRONTEND_ORIGIN_REGEX: str = r"^https://.*\.(netlify|vercel)\.app$"

    # GoHighLevel
    GHL_CLIENT_ID: Optional[str] = None
    GHL_CLIENT_SECRET: Optional[str] = None
    GHL_REDIRECT_URI: Optional[str] = None
    GHL_LOCATION_ID: Optional[str] = None
    GHL_BASE_URL: str = "https://services.leadconnectorhq.com"
    GHL_MARKETPLACE_URL: str = "https://marketplace.leadconnectorhq.com"
    GHL_API_VERSION: str = "2021-04-15"
    GHL_TIMEOUT_SECONDS: float = 15.0
    TOKEN_FILE: str = "./tokens.json"
    SYNC_CACHE_FILE: str = "./sync-cache.json"
    LOCAL_INVENTORY_FILE: str = "./ghl-items.json"
    SYNC_INTERVAL_SECONDS: int = 300
    INVENTORY_MAX_AGE_SECONDS: int = 300

    # Stripe Terminal
    STRIPE_SECRET_KEY: Optional[str] = None
    STRIPE_PUBLISHABLE_KEY: Optional[str] = None
    STRIPE_CURRENCY: str = "aud"

    # Low stock alerts
    LOW_STOCK_THRESHOLD: int = 20
    EMAIL_HOST: str = "smtp.gmail.com"
    EMAIL_PORT: int = 587
    EMAIL_USER: Optional[str] = None
    EMAIL_PASS: Optional[str] = None
    ALERT_EMAIL: Optional[str] = None

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    @property
    def ghl_configured(self) -> bool:
        return bool(self.GHL_CLIENT_ID and self.GHL_CLIENT_SECRET and self.GHL_LOCATION_ID)

    @property
    def cors_origins(self) -> List[str]:
        origins = list(self.FRONTEND_ORIGINS)
        if self.FRONTEND_URL:
            origins.append(self.FRONTEND_URL)
        return origins


settings = Settings()
