"""Typed configuration for the extractor, the OCR clients and the process.

Each settings class reads its own YAML file under <repo>/config/ and can be
overridden per field. Later sources lose to earlier ones:

    1. Keyword arguments passed to the constructor (tests, CLI overrides)
    2. Environment variables, e.g. EXTRACTION_NATIVE_TIMEOUT_SECONDS
    3. The .env file, which is where OCR_SPACE_API_KEY belongs
    4. The YAML file, e.g. config/extraction.yaml
    5. The defaults declared below

File locations hang off PROJECT_ROOT, never the working directory.
"""

from pathlib import Path
from typing import Literal

from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

# Resolve project root: settings.py -> config/ -> resume_extractor/ -> src/ -> repo root
PROJECT_ROOT = Path(__file__).resolve().parents[3]

_CONFIG_DIR = PROJECT_ROOT / "config"
_ENV_FILE = PROJECT_ROOT / ".env"


class _YamlSettings(BaseSettings):
    """Base class inserting the YAML file between .env and the defaults."""

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )


class ExtractionSettings(_YamlSettings):
    """Cascade behaviour: input caps, native timeout, sufficiency thresholds."""

    max_file_bytes: int = 1_048_576  # 1 MiB, enforced at every trust boundary
    native_timeout_seconds: float = 15.0
    min_native_chars: int = 50
    min_parse_chars: int = 100
    parse_timeout_seconds: float = 120.0

    # Which OCR strategies are reachable from the caller
    execution_context: Literal["browser", "server"] = "server"
    browser_remote_ocr: bool = True  # keyless third-party call before the local hop

    model_config = SettingsConfigDict(
        yaml_file=str(_CONFIG_DIR / "extraction.yaml"),
        env_prefix="EXTRACTION_",
    )


class OcrSettings(_YamlSettings):
    """OCR service connection: endpoints, recognition options, credentials.

    Non-secret settings (endpoints, language, engine) come from config/ocr.yaml.
    The API key comes from .env or the OCR_SPACE_API_KEY environment variable
    only -- it must NEVER appear in YAML files or logs.
    """

    endpoint: str = "https://api.ocr.space/parse/image"
    api_key: str = ""
    language: str = "eng"
    engine: int = 2
    # None disables the client-side bound entirely
    timeout_seconds: float | None = 60.0

    # First-party endpoint that proxies OCR with the server-held key
    local_endpoint: str = "http://localhost:8000/api/ai/resume/ocr"

    model_config = SettingsConfigDict(
        yaml_file=str(_CONFIG_DIR / "ocr.yaml"),
        env_file=str(_ENV_FILE),
        env_prefix="OCR_SPACE_",
        extra="ignore",
    )


class PipelineSettings(_YamlSettings):
    """Process-level operations: log location and rotation."""

    log_dir: str = "logs"
    log_max_bytes: int = 10_485_760  # 10MB
    log_backup_count: int = 5

    model_config = SettingsConfigDict(
        yaml_file=str(_CONFIG_DIR / "pipeline.yaml"),
        env_prefix="PIPELINE_",
    )
