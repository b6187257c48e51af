"""Value objects and protocols shared across the gateway."""

from dataclasses import dataclass, field
from typing import Literal, Protocol


@dataclass(frozen=True)
class Provider:
    """An interchangeable upstream metadata server."""

    base_url: str

    def url(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}{path}"


@dataclass
class Thumbnail:
    url: str
    quality: str | None = None
    width: int | None = None
    height: int | None = None


@dataclass
class VideoSummary:
    """A single search or trending result."""

    video_id: str
    title: str | None = None
    author: str | None = None
    author_id: str | None = None
    length_seconds: int | None = None
    view_count: int | None = None
    published: int | None = None
    published_text: str | None = None
    thumbnails: list[Thumbnail] = field(default_factory=list)
    kind: Literal["video", "other"] = "video"


@dataclass
class Format:
    """A single media rendition."""

    url: str
    container: str | None = None
    quality_label: str | None = None
    bitrate: str | int | float | None = None
    has_audio: bool = False
    has_video: bool = False
    mime_type: str | None = None
    encoding: str | None = None
    audio_quality: str | None = None
    itag: str | None = None
    http_headers: dict[str, str] = field(default_factory=dict)


@dataclass
class StreamingOptions:
    embed_url: str
    primary_video_url: str
    primary_audio_url: str
    progressive_formats: list[Format] = field(default_factory=list)
    adaptive_formats: list[Format] = field(default_factory=list)
    adaptive_audio_formats: list[Format] = field(default_factory=list)


@dataclass
class VideoDetail(VideoSummary):
    """Full metadata for one video, built fresh per request."""

    description: str | None = None
    like_count: int | None = None
    keywords: list[str] = field(default_factory=list)
    streaming_options: StreamingOptions | None = None


@dataclass
class ExtractedVideo:
    """Metadata and formats obtained by direct extraction."""

    video_id: str
    title: str | None = None
    description: str | None = None
    length_seconds: int | None = None
    view_count: int | None = None
    author: str | None = None
    formats: list[Format] = field(default_factory=list)

    @property
    def combined_formats(self) -> list[Format]:
        """Formats carrying both audio and video, in extraction order."""
        return [f for f in self.formats if f.has_audio and f.has_video]


class MediaExtractor(Protocol):
    """Protocol for direct format extraction keyed by video id."""

    async def extract(self, video_id: str) -> ExtractedVideo:
        """Fetch metadata and formats for a video."""
        ...
