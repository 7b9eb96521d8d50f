"""
Application settings for the envelope validation service.
Externalizes config for portability across Render/on-prem/cloud.
"""
import os

from domain_kits.jso_envelope import DEFAULT_MAX_DEPTH


def _env_flag(name: str, default: str = "true") -> bool:
    return os.getenv(name, default).lower() == "true"


class AppSettings:
    """Application settings with environment variable support."""

    def __init__(self):
        self.api_version: str = os.getenv("API_VERSION", "1.0.0")
        self.environment: str = os.getenv("ENVIRONMENT", "development")

        # Render sets RENDER_GIT_COMMIT (and sometimes RENDER_GIT_COMIT). Prefer those.
        self.build_commit: str = (
            os.getenv("RENDER_GIT_COMMIT")
            or os.getenv("RENDER_GIT_COMIT")
            or os.getenv("BUILD_COMMIT")
            or "unknown"
        )

        # Validator limits
        self.max_depth: int = int(os.getenv("ENVELOPE_MAX_DEPTH", str(DEFAULT_MAX_DEPTH)))
        self.max_batch: int = int(os.getenv("ENVELOPE_MAX_BATCH", "100"))

        # Middleware toggles
        self.enable_audit_logging: bool = _env_flag("ENABLE_AUDIT_LOGGING")
        self.enable_rate_limiting: bool = _env_flag("ENABLE_RATE_LIMITING")
        self.enable_redaction: bool = _env_flag("ENABLE_REDACTION")

        # CORS is disabled by default (server-to-server API).
        self.cors_allow_origins: list[str] = [
            o.strip() for o in os.getenv("CORS_ALLOW_ORIGINS", "").split(",") if o.strip()
        ]
        self.cors_allow_credentials: bool = _env_flag("CORS_ALLOW_CREDENTIALS", "false")


settings = AppSettings()
