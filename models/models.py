"""Pydantic data models for structured data transfer.

Defines DTOs (Data Transfer Objects) for:
- Metadata: Descriptive fields of one work, scraped from its page
- Chapter: One entry of a work's chapter index
- Work: Metadata plus its ordered chapter list
- ExtractorInfo: Static identity of an extractor plugin

Models serialize with camelCase keys (releaseDate, chapterNumber) and accept
both camelCase and snake_case on input.
"""

from typing import TypeAlias

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Placeholder for a thumbnail that could not be resolved
THUMBNAIL_NOT_FOUND = "NOT FOUND"

# Type aliases for common patterns
PluginKey: TypeAlias = str
ChapterURL: TypeAlias = str
ImageURL: TypeAlias = str


class _ContentModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )


class Metadata(_ContentModel):
    """Metadata of one work.

    Attributes:
        title: Work title (mandatory, non-empty)
        author: Author line as displayed by the site
        description: Synopsis
        genre: Genre label
        status: Publication status
        rating: Rating as displayed by the site
        thumbnail: Thumbnail URL or THUMBNAIL_NOT_FOUND
        url: Canonical URL of the work page
    """

    title: str = Field(..., min_length=1, description="Work title")
    author: str = Field("", description="Author line")
    description: str = Field("", description="Synopsis")
    genre: str = Field("", description="Genre label")
    status: str = Field("", description="Publication status")
    rating: str = Field("", description="Rating text")
    thumbnail: str = Field(THUMBNAIL_NOT_FOUND, description="Thumbnail URL")
    url: str = Field(..., min_length=1, description="Canonical source URL")


class Chapter(_ContentModel):
    """One chapter listing entry.

    Images are not stored here; they are fetched from the extractor on demand.
    """

    title: str = Field("", description="Chapter title")
    url: ChapterURL = Field(..., description="Chapter page URL")
    release_date: str = Field("", description="Release date as displayed (not parsed)")
    number: int = Field(..., alias="chapterNumber", description="Chapter ordinal from '#<n>'")


class Work(_ContentModel):
    """A work's metadata plus its ordered chapter list.

    Search results carry metadata only (empty chapters); by-id fetches carry
    the full chapter list.
    """

    metadata: Metadata
    chapters: list[Chapter] = Field(default_factory=list)

    @classmethod
    def metadata_only(cls, metadata: Metadata) -> "Work":
        """Build a search-result Work with no chapter information."""
        return cls(metadata=metadata, chapters=[])


class ExtractorInfo(_ContentModel):
    """Static identity of an extractor plugin."""

    key: PluginKey
    site_name: str
    site_url: str
    site_logo: str = ""
    site_description: str = ""
    developer: str = ""
