import os
from typing import List

from dotenv import load_dotenv

load_dotenv()


def _csv(name: str, default: str = "") -> List[str]:
    raw = os.getenv(name, default) or ""
    return [p.strip() for p in raw.split(",") if p.strip()]


class Settings:
    """
    Environment-backed settings. Read once at import; tests set the
    environment before importing the app.
    """

    def __init__(self) -> None:
        self.STORE_NAME = os.getenv("STORE_NAME", "Picklish")
        self.STORE_VERSION = os.getenv("STORE_VERSION", "1.0.0")
        self.ENVIRONMENT = os.getenv("ENVIRONMENT", "production")
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

        self.SUPABASE_URL = os.getenv("SUPABASE_URL", "").strip()
        self.SUPABASE_SERVICE_ROLE_KEY = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "").strip()

        self.RAZORPAY_KEY_ID = os.getenv("RAZORPAY_KEY_ID", "").strip()
        self.RAZORPAY_KEY_SECRET = os.getenv("RAZORPAY_KEY_SECRET", "").strip()
        self.CURRENCY = os.getenv("CURRENCY", "INR")
        self.SHIPPING_FEE = os.getenv("SHIPPING_FEE", "50")

        self.CORS_MODE = os.getenv("CORS_MODE", "allowlist")
        self.CORS_ALLOW_ORIGINS = _csv("CORS_ALLOW_ORIGINS", "http://localhost:3000")

        self.GOOGLE_ACCESS_TOKEN = os.getenv("GOOGLE_ACCESS_TOKEN", "").strip()
        self.PRODUCTS_SHEET_ID = os.getenv("PRODUCTS_SHEET_ID", "").strip()
        self.INVENTORY_SHEET_ID = os.getenv("INVENTORY_SHEET_ID", "").strip()
        self.ORDERS_SHEET_ID = os.getenv("ORDERS_SHEET_ID", "").strip()
        self.BACKUP_FOLDER_ID = os.getenv("BACKUP_FOLDER_ID", "").strip()

        self.KEEPALIVE_URLS = _csv("KEEPALIVE_URLS")
        self.KEEPALIVE_INTERVAL_SECONDS = int(os.getenv("KEEPALIVE_INTERVAL_SECONDS", "300"))
        self.SUBSCRIPTION_SWEEP_HOURS = int(os.getenv("SUBSCRIPTION_SWEEP_HOURS", "24"))

    @property
    def razorpay_configured(self) -> bool:
        return bool(self.RAZORPAY_KEY_ID and self.RAZORPAY_KEY_SECRET)

    @property
    def sheets_configured(self) -> bool:
        return bool(self.GOOGLE_ACCESS_TOKEN and self.PRODUCTS_SHEET_ID)


settings = Settings()
