import json
import os
import threading
from urllib.parse import urlparse

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .auth.rbac_contract import DEFAULT_EXPENDITURE_TIERS, ExpenditureApprovalTiers


load_dotenv()


def _parse_allowed_origins(raw_allowed_origins: str) -> list[str]:
    # Support both CSV format and JSON array format
    allowed_origins: list[str] = []
    if raw_allowed_origins.startswith("["):
        try:
            parsed_list = json.loads(raw_allowed_origins)
        except json.JSONDecodeError as exc:
            raise ValueError(f"ALLOWED_ORIGINS JSON is malformed: {exc}") from exc
        if not isinstance(parsed_list, list):
            raise ValueError("ALLOWED_ORIGINS JSON must be an array")
        allowed_origins = [
            origin.strip() for origin in parsed_list if isinstance(origin, str) and origin.strip()
        ]
    else:
        allowed_origins = [
            origin.strip() for origin in raw_allowed_origins.split(",") if origin.strip()
        ]

    if not allowed_origins:
        raise ValueError("ALLOWED_ORIGINS must contain at least one origin")

    if "*" in allowed_origins:
        raise ValueError(
            "ALLOWED_ORIGINS cannot contain '*' when credentialed requests are used"
        )

    for origin in allowed_origins:
        parsed = urlparse(origin)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValueError(
                "ALLOWED_ORIGINS must contain valid http/https origins with host"
            )
    return allowed_origins


def _parse_threshold(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer amount of minor currency units") from None
    if value <= 0:
        raise ValueError(f"{name} must be greater than 0")
    return value


class Settings(BaseModel):
    app_name: str = Field(default="ProjectHub Backend")
    debug: bool = Field(default=False)
    allowed_origins: list[str] = Field(default_factory=list)
    secret_key: str | None = Field(default=None)
    algorithm: str = Field(default="HS256")
    expenditure_tier1_threshold: int = Field(default=DEFAULT_EXPENDITURE_TIERS.tier1)
    expenditure_tier2_threshold: int = Field(default=DEFAULT_EXPENDITURE_TIERS.tier2)
    permission_table_path: str | None = Field(default=None)

    @property
    def expenditure_tiers(self) -> ExpenditureApprovalTiers:
        return ExpenditureApprovalTiers(
            tier1=self.expenditure_tier1_threshold,
            tier2=self.expenditure_tier2_threshold,
        )

    @classmethod
    def from_env(cls) -> "Settings":
        secret_key = os.getenv("SECRET_KEY", "").strip()
        if not secret_key:
            raise ValueError("SECRET_KEY environment variable must be set")

        raw_allowed_origins = os.getenv("ALLOWED_ORIGINS", "").strip()
        if not raw_allowed_origins:
            raise ValueError("ALLOWED_ORIGINS environment variable must be set")
        allowed_origins = _parse_allowed_origins(raw_allowed_origins)

        tier1 = _parse_threshold(
            "EXPENDITURE_TIER1_THRESHOLD",
            cls.model_fields["expenditure_tier1_threshold"].default,
        )
        tier2 = _parse_threshold(
            "EXPENDITURE_TIER2_THRESHOLD",
            cls.model_fields["expenditure_tier2_threshold"].default,
        )
        if tier2 <= tier1:
            raise ValueError(
                "EXPENDITURE_TIER2_THRESHOLD must be greater than EXPENDITURE_TIER1_THRESHOLD"
            )

        permission_table_path = os.getenv("PERMISSION_TABLE_PATH", "").strip() or None

        return cls(
            app_name=os.getenv("APP_NAME", cls.model_fields["app_name"].default),
            debug=os.getenv("DEBUG", "false").lower() == "true",
            allowed_origins=allowed_origins,
            secret_key=secret_key,
            algorithm=os.getenv("ALGORITHM", cls.model_fields["algorithm"].default),
            expenditure_tier1_threshold=tier1,
            expenditure_tier2_threshold=tier2,
            permission_table_path=permission_table_path,
        )


# Settings are built on first access so the module can be imported without
# a complete environment.
_settings_instance: Settings | None = None
_settings_lock = threading.Lock()


def get_settings() -> Settings:
    """Get settings instance, creating it on first access.

    Uses double-checked locking so concurrent first callers build it once.

    Raises:
        ValueError: If required environment variables are missing or invalid
    """
    global _settings_instance

    if _settings_instance is not None:
        return _settings_instance

    with _settings_lock:
        if _settings_instance is None:
            _settings_instance = Settings.from_env()

    return _settings_instance


class _SettingsProxy:
    """Proxy to defer settings creation until first attribute access."""

    def __getattr__(self, name: str):
        return getattr(get_settings(), name)


settings = _SettingsProxy()  # type: ignore[assignment]
