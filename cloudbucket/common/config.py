from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

ENV_FILE = Path(".env")

SUPPORTED_BACKENDS: tuple[str, ...] = ("aws_s3", "google_cloud")
ADDRESSING_STYLES: tuple[str, ...] = ("path", "virtual", "auto")
# V4 signatures expire after at most seven days.
MAX_SIGNED_URL_EXPIRES_IN = 7 * 24 * 60 * 60


class ConfigurationError(ValueError):
    """Raised when settings cannot produce a storage client."""


def _load_env_file() -> None:
    if not ENV_FILE.exists():
        return
    for raw_line in ENV_FILE.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key and key not in os.environ:
            os.environ[key] = value


def _as_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.lower() in {"1", "true", "t", "yes", "y", "on"}


def _as_optional(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass
class Settings:
    STORAGE_BACKEND: str = "aws_s3"
    S3_ENDPOINT_URL: str | None = None
    S3_REGION: str = "us-east-1"
    S3_ACCESS_KEY_ID: str | None = None
    S3_SECRET_ACCESS_KEY: str | None = None
    S3_SESSION_TOKEN: str | None = None
    S3_USE_SSL: bool = True
    S3_ADDRESSING_STYLE: str = "auto"
    S3_PRESIGN_DOWNLOADS: bool = False
    GCS_PROJECT_ID: str | None = None
    GCS_CREDENTIALS_FILE: str | None = None
    GCS_ANONYMOUS: bool = False
    GCS_ENDPOINT_URL: str | None = None
    SIGNED_URL_EXPIRES_IN: int = 600
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True
    ENABLE_METRICS: bool = True

    def __post_init__(self) -> None:
        self.STORAGE_BACKEND = self.STORAGE_BACKEND.strip().lower()
        if self.STORAGE_BACKEND not in SUPPORTED_BACKENDS:
            raise ConfigurationError(
                f"STORAGE_BACKEND must be one of {', '.join(SUPPORTED_BACKENDS)}; "
                f"got {self.STORAGE_BACKEND!r}."
            )
        self.S3_ADDRESSING_STYLE = self.S3_ADDRESSING_STYLE.strip().lower()
        if self.S3_ADDRESSING_STYLE not in ADDRESSING_STYLES:
            raise ConfigurationError(
                f"S3_ADDRESSING_STYLE must be one of {', '.join(ADDRESSING_STYLES)}."
            )
        if not 1 <= self.SIGNED_URL_EXPIRES_IN <= MAX_SIGNED_URL_EXPIRES_IN:
            raise ConfigurationError(
                f"SIGNED_URL_EXPIRES_IN must be between 1 and "
                f"{MAX_SIGNED_URL_EXPIRES_IN} seconds."
            )

    @classmethod
    def from_environment(cls) -> "Settings":
        _load_env_file()
        try:
            expires_in = int(
                os.environ.get("SIGNED_URL_EXPIRES_IN", cls.SIGNED_URL_EXPIRES_IN)
            )
        except ValueError as exc:
            raise ConfigurationError("SIGNED_URL_EXPIRES_IN must be an integer.") from exc

        return cls(
            STORAGE_BACKEND=os.environ.get("STORAGE_BACKEND", cls.STORAGE_BACKEND),
            S3_ENDPOINT_URL=_as_optional(os.environ.get("S3_ENDPOINT_URL")),
            S3_REGION=_as_optional(os.environ.get("S3_REGION")) or cls.S3_REGION,
            S3_ACCESS_KEY_ID=_as_optional(os.environ.get("S3_ACCESS_KEY_ID")),
            S3_SECRET_ACCESS_KEY=_as_optional(os.environ.get("S3_SECRET_ACCESS_KEY")),
            S3_SESSION_TOKEN=_as_optional(os.environ.get("S3_SESSION_TOKEN")),
            S3_USE_SSL=_as_bool(os.environ.get("S3_USE_SSL"), cls.S3_USE_SSL),
            S3_ADDRESSING_STYLE=os.environ.get(
                "S3_ADDRESSING_STYLE", cls.S3_ADDRESSING_STYLE
            ),
            S3_PRESIGN_DOWNLOADS=_as_bool(
                os.environ.get("S3_PRESIGN_DOWNLOADS"), cls.S3_PRESIGN_DOWNLOADS
            ),
            GCS_PROJECT_ID=_as_optional(os.environ.get("GCS_PROJECT_ID")),
            GCS_CREDENTIALS_FILE=_as_optional(os.environ.get("GCS_CREDENTIALS_FILE")),
            GCS_ANONYMOUS=_as_bool(os.environ.get("GCS_ANONYMOUS"), cls.GCS_ANONYMOUS),
            GCS_ENDPOINT_URL=_as_optional(os.environ.get("GCS_ENDPOINT_URL")),
            SIGNED_URL_EXPIRES_IN=expires_in,
            LOG_LEVEL=os.environ.get("LOG_LEVEL", cls.LOG_LEVEL).upper(),
            LOG_JSON=_as_bool(os.environ.get("LOG_JSON"), cls.LOG_JSON),
            ENABLE_METRICS=_as_bool(
                os.environ.get("ENABLE_METRICS"), cls.ENABLE_METRICS
            ),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_environment()
