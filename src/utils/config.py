"""Service configuration loaded from environment variables."""

import os
from typing import Literal, Optional
from pydantic import BaseModel, Field

from src.utils.errors import ConfigurationError


BackendKind = Literal["rest", "supabase", "mock"]


def _env_bool(name: str, default: str) -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "on")


def _env_optional_float(name: str, default: str) -> Optional[float]:
    raw = os.environ.get(name, default).strip().lower()
    if raw in ("", "none", "never"):
        return None
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number or 'none', got {raw!r}")


class ServiceConfig(BaseModel):
    """Settings for the real estate service and its backends."""
    backend: BackendKind = Field(default="rest", description="Primary backend: rest, supabase or mock")
    api_base_url: str = Field(default="http://localhost:5000/api", description="REST API base URL")
    health_path: str = Field(default="/health", description="Health check path, relative to base URL")
    http_timeout_seconds: float = Field(default=10.0, gt=0, description="Per-request HTTP timeout")
    breaker_failure_threshold: int = Field(default=1, ge=1, description="Failures before the circuit opens")
    breaker_recovery_seconds: Optional[float] = Field(
        default=30.0,
        description="Seconds before an open circuit is retried; None never retries"
    )
    seed_mock_data: bool = Field(default=True, description="Seed the mock store with sample listings")
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None

    @classmethod
    def from_env(cls) -> "ServiceConfig":
        """Build config from PROPERTYHUB_* and SUPABASE_* variables."""
        backend = os.environ.get("PROPERTYHUB_BACKEND", "rest").strip().lower()
        if backend not in ("rest", "supabase", "mock"):
            raise ConfigurationError(f"Unknown PROPERTYHUB_BACKEND: {backend}")

        try:
            timeout = float(os.environ.get("PROPERTYHUB_HTTP_TIMEOUT_SECONDS", "10"))
            threshold = int(os.environ.get("PROPERTYHUB_BREAKER_FAILURE_THRESHOLD", "1"))
        except ValueError as e:
            raise ConfigurationError(f"Invalid numeric setting: {e}")

        config = cls(
            backend=backend,
            api_base_url=os.environ.get("PROPERTYHUB_API_BASE_URL", "http://localhost:5000/api"),
            health_path=os.environ.get("PROPERTYHUB_HEALTH_PATH", "/health"),
            http_timeout_seconds=timeout,
            breaker_failure_threshold=threshold,
            breaker_recovery_seconds=_env_optional_float("PROPERTYHUB_BREAKER_RECOVERY_SECONDS", "30"),
            seed_mock_data=_env_bool("PROPERTYHUB_SEED_MOCK_DATA", "true"),
            supabase_url=os.environ.get("SUPABASE_URL"),
            supabase_key=os.environ.get("SUPABASE_SERVICE_ROLE_KEY"),
        )

        if config.backend == "supabase" and (not config.supabase_url or not config.supabase_key):
            raise ConfigurationError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")

        return config
