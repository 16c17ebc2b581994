from functools import lru_cache
from types import MappingProxyType
from typing import Any, List, Mapping

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_DEFAULT_CORS = ["http://localhost:3000", "http://localhost:9002"]

# Stripe price id -> credits awarded on checkout.session.completed
_DEFAULT_CREDIT_PACKS = (
    "price_1RlSDORragUkhvY8W5M9kAHI:1000,"
    "price_1RlSQRragUkhvY8QneFCSGJ:2900,"
    "price_1RlSFragUkhvY8umWtkb81:9750"
)


def _parse_cors_origins(v: Any) -> List[str]:
    try:
        if v is None or v == "":
            return _DEFAULT_CORS.copy()
        if isinstance(v, list):
            return [x for x in v if isinstance(x, str) and x.strip()]
        s = str(v).strip()
        if not s:
            return _DEFAULT_CORS.copy()
        if s.startswith("["):
            import json
            out = json.loads(s)
            return [x for x in out if isinstance(x, str) and x.strip()] or _DEFAULT_CORS.copy()
        return [x.strip() for x in s.split(",") if x.strip()] or _DEFAULT_CORS.copy()
    except Exception:
        return _DEFAULT_CORS.copy()


def parse_credit_packs(v: Any) -> dict[str, int]:
    """Parse "price:credits,price:credits" or a JSON object into a price -> credits dict.

    Raises ValueError on a malformed entry or a non-positive quantity.
    """
    if isinstance(v, dict):
        items = list(v.items())
    else:
        s = str(v or "").strip()
        if s.startswith("{"):
            import json
            items = list(json.loads(s).items())
        else:
            items = []
            for part in s.split(","):
                part = part.strip()
                if not part:
                    continue
                price_id, sep, credits = part.rpartition(":")
                if not sep or not price_id.strip():
                    raise ValueError(f"Invalid credit pack entry: {part!r}")
                items.append((price_id.strip(), credits.strip()))
    table: dict[str, int] = {}
    for price_id, credits in items:
        if isinstance(credits, (bool, float)):
            raise ValueError(f"Invalid credit quantity for {price_id}: {credits!r}")
        try:
            n = int(credits)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid credit quantity for {price_id}: {credits!r}") from e
        if n <= 0:
            raise ValueError(f"Credit quantity for {price_id} must be positive, got {n}")
        table[str(price_id)] = n
    return table


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    env: str = Field(default="development", description="ENV")
    debug: bool = Field(default=False, description="DEBUG")
    secret_key: str = Field(default="change-me-in-production-min-32-chars")
    app_url: str = Field(default="http://localhost:9002", alias="APP_URL")

    # MongoDB
    mongodb_uri: str = Field(default="mongodb://localhost:27017", alias="MONGODB_URI")
    mongodb_db_name: str = Field(default="genscout", alias="MONGODB_DB_NAME")

    # Balance store: "mongo" | "memory"
    balance_store_backend: str = Field(default="mongo", alias="BALANCE_STORE_BACKEND")

    # Stripe
    stripe_secret_key: str = Field(default="", alias="STRIPE_SECRET_KEY")
    stripe_webhook_secret: str = Field(default="", alias="STRIPE_WEBHOOK_SECRET")
    stripe_api_version: str = Field(default="2024-04-10", alias="STRIPE_API_VERSION")
    stripe_dedupe_events: bool = Field(default=False, alias="STRIPE_DEDUPE_EVENTS")

    # Credit packs: env as string, exposed as a read-only mapping
    credit_packs_raw: str = Field(
        default=_DEFAULT_CREDIT_PACKS,
        alias="CREDIT_PACKS",
        description="Comma-separated price:credits or JSON object",
    )

    # Sentry
    sentry_dsn: str | None = Field(default=None, alias="SENTRY_DSN")

    # CORS: env as string, exposed as list
    cors_origins_raw: str = Field(
        default="http://localhost:3000,http://localhost:9002",
        alias="CORS_ORIGINS",
        description="Comma-separated or JSON list",
    )

    @field_validator("credit_packs_raw")
    @classmethod
    def _validate_credit_packs(cls, v: str) -> str:
        parse_credit_packs(v)
        return v

    @field_validator("balance_store_backend")
    @classmethod
    def _validate_backend(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("mongo", "memory"):
            raise ValueError(f"Unknown balance store backend: {v}")
        return v

    @property
    def cors_origins(self) -> List[str]:
        return _parse_cors_origins(getattr(self, "cors_origins_raw", None))

    @property
    def credits_per_price(self) -> Mapping[str, int]:
        return MappingProxyType(parse_credit_packs(self.credit_packs_raw))

    @property
    def stripe_configured(self) -> bool:
        return bool(self.stripe_secret_key)


@lru_cache
def get_settings() -> Settings:
    return Settings()
