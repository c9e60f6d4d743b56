"""Data models and configuration.

Pydantic models and configuration:
- models: Work, chapter, metadata and extractor identity models
- config: Centralized configuration (Pydantic Settings)
"""

from models.config import get_data_path, settings
from models.models import THUMBNAIL_NOT_FOUND, Chapter, ExtractorInfo, Metadata, Work

__all__ = [
    "Chapter",
    "ExtractorInfo",
    "Metadata",
    "THUMBNAIL_NOT_FOUND",
    "Work",
    "settings",
    "get_data_path",
]
