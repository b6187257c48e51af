from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ..interfaces import ExtractedVideo, Format, StreamingOptions, VideoDetail, VideoSummary


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ThumbnailResponse(CamelModel):
    url: str
    quality: str | None = None
    width: int | None = None
    height: int | None = None


class VideoSummaryResponse(CamelModel):
    type: str = "video"
    video_id: str
    title: str | None = None
    author: str | None = None
    author_id: str | None = None
    length_seconds: int | None = None
    view_count: int | None = None
    published: int | None = None
    published_text: str | None = None
    video_thumbnails: list[ThumbnailResponse] = []

    @classmethod
    def from_summary(cls, video: VideoSummary, **extra: Any) -> "VideoSummaryResponse":
        return cls(
            type=video.kind,
            video_id=video.video_id,
            title=video.title,
            author=video.author,
            author_id=video.author_id,
            length_seconds=video.length_seconds,
            view_count=video.view_count,
            published=video.published,
            published_text=video.published_text,
            video_thumbnails=[ThumbnailResponse(**vars(t)) for t in video.thumbnails],
            **extra,
        )


class FormatResponse(CamelModel):
    url: str
    container: str | None = None
    quality_label: str | None = None
    bitrate: str | int | float | None = None
    has_audio: bool
    has_video: bool
    type: str | None = None
    encoding: str | None = None
    audio_quality: str | None = None
    itag: str | None = None

    @classmethod
    def from_format(cls, fmt: Format) -> "FormatResponse":
        return cls(
            url=fmt.url,
            container=fmt.container,
            quality_label=fmt.quality_label,
            bitrate=fmt.bitrate,
            has_audio=fmt.has_audio,
            has_video=fmt.has_video,
            type=fmt.mime_type,
            encoding=fmt.encoding,
            audio_quality=fmt.audio_quality,
            itag=fmt.itag,
        )


class StreamingOptionsResponse(CamelModel):
    embed_url: str
    primary_video_url: str
    primary_audio_url: str
    progressive_formats: list[FormatResponse]
    adaptive_formats: list[FormatResponse]
    adaptive_audio_formats: list[FormatResponse]

    @classmethod
    def from_options(cls, options: StreamingOptions) -> "StreamingOptionsResponse":
        return cls(
            embed_url=options.embed_url,
            primary_video_url=options.primary_video_url,
            primary_audio_url=options.primary_audio_url,
            progressive_formats=[FormatResponse.from_format(f) for f in options.progressive_formats],
            adaptive_formats=[FormatResponse.from_format(f) for f in options.adaptive_formats],
            adaptive_audio_formats=[
                FormatResponse.from_format(f) for f in options.adaptive_audio_formats
            ],
        )


class VideoDetailResponse(VideoSummaryResponse):
    description: str | None = None
    like_count: int | None = None
    keywords: list[str] = []
    streaming_options: StreamingOptionsResponse | None = None

    @classmethod
    def from_detail(cls, video: VideoDetail) -> "VideoDetailResponse":
        options = video.streaming_options
        return cls.from_summary(
            video,
            description=video.description,
            like_count=video.like_count,
            keywords=video.keywords,
            streaming_options=StreamingOptionsResponse.from_options(options) if options else None,
        )


class EmbedResponse(CamelModel):
    embed_url: Any
    video_id: str
    stream_data: Any = None


class ExtractedFormatResponse(CamelModel):
    quality: str | None = None
    url: str
    has_audio: bool
    has_video: bool
    container: str | None = None
    bitrate: str | int | float | None = None


class ExtractionResponse(CamelModel):
    title: str | None = None
    description: str | None = None
    length: int | None = None
    view_count: int | None = None
    author: str | None = None
    stream_url: str
    quality: str | None = None
    formats: list[ExtractedFormatResponse]

    @classmethod
    def from_extraction(cls, video: ExtractedVideo, chosen: Format) -> "ExtractionResponse":
        return cls(
            title=video.title,
            description=video.description,
            length=video.length_seconds,
            view_count=video.view_count,
            author=video.author,
            stream_url=chosen.url,
            quality=chosen.quality_label,
            formats=[
                ExtractedFormatResponse(
                    quality=f.quality_label,
                    url=f.url,
                    has_audio=f.has_audio,
                    has_video=f.has_video,
                    container=f.container,
                    bitrate=f.bitrate,
                )
                for f in video.combined_formats
            ],
        )


class HealthResponse(BaseModel):
    status: str
    timestamp: str


class ErrorResponse(BaseModel):
    detail: str
