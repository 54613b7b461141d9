"""Configuration package -- typed, validated settings from YAML + .env."""

from .settings import ExtractionSettings, OcrSettings, PipelineSettings

__all__ = [
    "ExtractionSettings",
    "OcrSettings",
    "PipelineSettings",
    "load_all_settings",
]


def load_all_settings() -> tuple[ExtractionSettings, OcrSettings, PipelineSettings]:
    """Load and return all configuration objects.

    Returns a tuple of (ExtractionSettings, OcrSettings, PipelineSettings),
    each populated from its own YAML file with environment variable overrides.
    """
    return ExtractionSettings(), OcrSettings(), PipelineSettings()
