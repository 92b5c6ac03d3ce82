import os
from pydantic import BaseModel

class Settings(BaseModel):
    # Basic
    ENV: str = os.getenv("ENV", "dev")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    CACHE_TTL_SECONDS: int = int(os.getenv("CACHE_TTL_SECONDS", "43200"))

    # Primary provider (Realie premium comparables, metered on counter A)
    REALIE_API_KEY: str | None = os.getenv("REALIE_API_KEY")
    REALIE_BASE_URL: str = os.getenv("REALIE_BASE_URL", "https://app.realie.ai/api")
    REALIE_RADIUS_MILES: float = float(os.getenv("REALIE_RADIUS_MILES", "1.0"))

    # Secondary providers (RentCast, metered on counter B)
    RENTCAST_API_KEY: str | None = os.getenv("RENTCAST_API_KEY")
    RENTCAST_BASE_URL: str = os.getenv("RENTCAST_BASE_URL", "https://api.rentcast.io/v1")

    # Monthly per-user call ceilings
    LIMIT_A: int = int(os.getenv("LIMIT_A", "25"))
    LIMIT_B: int = int(os.getenv("LIMIT_B", "50"))

    # Resolution pipeline
    PROVIDER_ORDER: str = os.getenv(
        "PROVIDER_ORDER", "realie,rentcast_avm,rentcast_listings,rentcast_properties"
    )
    PROVIDER_TIMEOUT_SECONDS: float = float(os.getenv("PROVIDER_TIMEOUT_SECONDS", "15"))
    PIPELINE_BUDGET_SECONDS: float = float(os.getenv("PIPELINE_BUDGET_SECONDS", "40"))
    FETCH_LIMIT: int = int(os.getenv("FETCH_LIMIT", "15"))
    MAX_COMPS: int = int(os.getenv("MAX_COMPS", "5"))
    RECENCY_DAYS: int = int(os.getenv("RECENCY_DAYS", "365"))

    # Security
    API_KEY: str | None = os.getenv("API_KEY")
    RATE_LIMIT_RPM: int = int(os.getenv("RATE_LIMIT_RPM", "60"))

    # CORS
    ALLOW_ORIGINS: str = os.getenv("ALLOW_ORIGINS", "*")

    # Shared counters (usage + rate limit)
    USE_REDIS: bool = os.getenv("USE_REDIS", "false").lower() == "true"
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")

    # Metrics
    PROMETHEUS_ENABLED: bool = os.getenv("PROMETHEUS_ENABLED", "true").lower() == "true"

settings = Settings()
