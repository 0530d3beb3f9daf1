import os
import logging
from enum import Enum
from functools import lru_cache
from typing import List

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict

load_dotenv(override=True)

logger = logging.getLogger(__name__)

ENV_PREFIX = "PLANTDX_"


class AdvisoryMode(str, Enum):
    DIAGNOSIS_ONLY = "diagnosis_only"
    FULL_ADVISORY = "full_advisory"


class OutputFormat(str, Enum):
    STRUCTURED = "structured"
    TEXT = "text"


class ServiceConfig(BaseModel):
    """Process-wide diagnosis configuration, frozen after startup."""

    model_config = ConfigDict(frozen=True)

    advisory_mode: AdvisoryMode = AdvisoryMode.FULL_ADVISORY
    output_format: OutputFormat = OutputFormat.STRUCTURED
    model_id: str = "gemini-2.0-flash"
    max_image_size_mb: float = 5


def _env(name: str, default: str = "") -> str:
    return os.getenv(ENV_PREFIX + name, os.getenv(name, default))


def _env_enum(name: str, enum_cls, default):
    raw = _env(name, default.value).strip().lower()
    try:
        return enum_cls(raw)
    except ValueError:
        logger.warning(f"Invalid {name}={raw!r}, using {default.value}")
        return default


class Settings:
    def __init__(self) -> None:
        # Gemini
        self.GEMINI_API_KEY = _env("GEMINI_API_KEY").strip() or None
        self.GEMINI_MODEL_ID = _env("GEMINI_MODEL_ID", "gemini-2.0-flash")
        self.UPSTREAM_TIMEOUT_SECONDS = float(_env("UPSTREAM_TIMEOUT_SECONDS", "60"))

        # Diagnosis behaviour
        self.ADVISORY_MODE = _env_enum("ADVISORY_MODE", AdvisoryMode, AdvisoryMode.FULL_ADVISORY)
        self.OUTPUT_FORMAT = _env_enum("OUTPUT_FORMAT", OutputFormat, OutputFormat.STRUCTURED)
        self.MAX_IMAGE_MB = float(_env("MAX_IMAGE_MB", "5"))

        # Crop catalog
        self.CROP_CATALOG_URL = _env("CROP_CATALOG_URL").strip()
        self.CROP_CATALOG_TIMEOUT_SECONDS = float(_env("CROP_CATALOG_TIMEOUT_SECONDS", "10"))

        # Server
        self.PORT = int(_env("PORT", "3001"))
        self.ALLOWED_ORIGINS: List[str] = [
            o.strip() for o in _env("ALLOWED_ORIGINS", "*").split(",") if o.strip()
        ]
        self.LOG_LEVEL = _env("LOG_LEVEL", "INFO").upper()

    def service_config(self) -> ServiceConfig:
        return ServiceConfig(
            advisory_mode=self.ADVISORY_MODE,
            output_format=self.OUTPUT_FORMAT,
            model_id=self.GEMINI_MODEL_ID,
            max_image_size_mb=self.MAX_IMAGE_MB,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
