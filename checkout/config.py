import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

# Force-load .env (Windows-safe, reload-safe)
BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"


class Settings(BaseModel):
    """Process-wide configuration, built once at startup."""

    database_url: str = "sqlite:///./checkout.db"
    stripe_secret_key: Optional[str] = None
    stripe_webhook_secret: Optional[str] = None
    stripe_webhook_tolerance: int = Field(default=300, ge=0)
    public_base_url: str = "http://localhost:8000"
    currency: str = Field(default="usd", min_length=3, max_length=3)
    product_name: str = "Order"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv(dotenv_path=ENV_PATH)

        values = {
            "database_url": os.getenv("DATABASE_URL"),
            "stripe_secret_key": os.getenv("STRIPE_SECRET_KEY") or None,
            "stripe_webhook_secret": os.getenv("STRIPE_WEBHOOK_SECRET") or None,
            "stripe_webhook_tolerance": os.getenv("STRIPE_WEBHOOK_TOLERANCE"),
            "public_base_url": os.getenv("PUBLIC_BASE_URL"),
            "currency": os.getenv("CHECKOUT_CURRENCY"),
            "product_name": os.getenv("CHECKOUT_PRODUCT_NAME"),
            "log_level": os.getenv("LOG_LEVEL"),
        }
        return cls(**{k: v for k, v in values.items() if v is not None})
