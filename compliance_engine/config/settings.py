"""
Application settings using pydantic-settings.

Environment variables are prefixed with VCE_.
"""

from functools import lru_cache

from dotenv import load_dotenv
from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="VCE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @model_validator(mode="after")
    def validate_score_weights(self) -> "Settings":
        """Readiness weights must form a convex combination."""
        total = self.completeness_weight + self.diagnosis_support_weight + self.coding_compliance_weight
        if abs(total - 1.0) > 1e-9:
            raise ValueError(
                "VCE_COMPLETENESS_WEIGHT, VCE_DIAGNOSIS_SUPPORT_WEIGHT and "
                f"VCE_CODING_COMPLIANCE_WEIGHT must sum to 1.0 (got {total})"
            )
        if not 0 <= self.readiness_pass_threshold <= 100:
            raise ValueError("VCE_READINESS_PASS_THRESHOLD must be between 0 and 100")
        return self

    # Server settings
    host: str = "0.0.0.0"
    port: int = 8000
    debug: bool = False
    public_url: str = "http://localhost:8000"

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    # CORS settings
    cors_origins: str = "*"
    cors_allow_credentials: bool = False

    # MCP transport security (comma-separated hosts, "*" disables the check)
    mcp_allowed_hosts: str = ""

    # Store settings
    redis_url: str | None = None  # e.g., redis://localhost:6379; in-memory store when unset
    redis_key_prefix: str = "vce"
    require_redis_tls: bool = False

    # Rule configuration (directory of JSON rulesets; bundled rulesets when unset)
    rules_dir: str | None = None

    # Readiness scoring
    readiness_pass_threshold: int = 80
    completeness_weight: float = 0.40
    diagnosis_support_weight: float = 0.35
    coding_compliance_weight: float = 0.25

    # Code regeneration keeps rows with auto_assigned == False when enabled
    preserve_manual_codes: bool = False

    # Request limits
    max_request_body_size: int = 1 * 1024 * 1024  # 1 MB


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def reset_settings() -> None:
    """Clear the cached settings (used by tests after changing env vars)."""
    get_settings.cache_clear()
