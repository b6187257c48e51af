"""Tolerant conversion of provider JSON into value objects.

Providers are independently operated and disagree on field presence and
types. Anything missing or malformed is treated as absent; only a record
without a usable video id is dropped.
"""

import math
import re
from typing import Any

from ..exceptions import InvalidIdentifier
from ..interfaces import Format, Thumbnail, VideoDetail, VideoSummary

VIDEO_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
LEADING_INT_PATTERN = re.compile(r"^\s*([+-]?\d+)")


def validate_video_id(video_id: str | None) -> str:
    """Return the id unchanged or raise InvalidIdentifier."""
    if not isinstance(video_id, str) or not VIDEO_ID_PATTERN.match(video_id):
        raise InvalidIdentifier(str(video_id))
    return video_id


def as_int(value: Any) -> int | None:
    """Coerce ints and numeric strings, anything else is absent."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def leading_int(value: Any) -> int | None:
    """Integer prefix of a number or numeric string, like JavaScript parseInt.

    ``"160000.0"`` and ``160000.0`` both give 160000.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str):
        match = LEADING_INT_PATTERN.match(value)
        return int(match.group(1)) if match else None
    return None


def as_str(value: Any) -> str | None:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def as_list(value: Any) -> list:
    return value if isinstance(value, list) else []


def parse_thumbnails(raw: Any) -> list[Thumbnail]:
    thumbnails = []
    for item in as_list(raw):
        if not isinstance(item, dict):
            continue
        url = as_str(item.get("url"))
        if not url:
            continue
        thumbnails.append(
            Thumbnail(
                url=url,
                quality=as_str(item.get("quality")),
                width=as_int(item.get("width")),
                height=as_int(item.get("height")),
            )
        )
    return thumbnails


def _summary_fields(raw: dict) -> dict | None:
    video_id = raw.get("videoId") or raw.get("id")
    if not isinstance(video_id, str) or not VIDEO_ID_PATTERN.match(video_id):
        return None

    return dict(
        video_id=video_id,
        title=as_str(raw.get("title")),
        author=as_str(raw.get("author")),
        author_id=as_str(raw.get("authorId")),
        length_seconds=as_int(raw.get("lengthSeconds")),
        view_count=as_int(raw.get("viewCount")),
        published=as_int(raw.get("published")),
        published_text=as_str(raw.get("publishedText")),
        thumbnails=parse_thumbnails(raw.get("videoThumbnails")),
        kind="video" if raw.get("type", "video") == "video" else "other",
    )


def parse_summary(raw: Any) -> VideoSummary | None:
    """Build a VideoSummary, or None when the record has no usable id."""
    if not isinstance(raw, dict):
        return None
    fields = _summary_fields(raw)
    if fields is None:
        return None
    return VideoSummary(**fields)


def parse_summaries(raw: Any) -> list[VideoSummary]:
    summaries = []
    for item in as_list(raw):
        summary = parse_summary(item)
        if summary is not None:
            summaries.append(summary)
    return summaries


def parse_detail(raw: Any) -> VideoDetail | None:
    """Build a VideoDetail without streaming options."""
    if not isinstance(raw, dict):
        return None
    fields = _summary_fields(raw)
    if fields is None:
        return None
    return VideoDetail(
        **fields,
        description=as_str(raw.get("description")),
        like_count=as_int(raw.get("likeCount")),
        keywords=[k for k in as_list(raw.get("keywords")) if isinstance(k, str)],
    )


def _container_from_mime(mime_type: str | None) -> str | None:
    # "video/mp4; codecs=..." -> "mp4"
    if not mime_type or "/" not in mime_type:
        return None
    return mime_type.split("/", 1)[1].split(";", 1)[0].strip() or None


def parse_format(raw: Any, has_audio: bool = False, has_video: bool = False) -> Format | None:
    if not isinstance(raw, dict):
        return None
    url = as_str(raw.get("url"))
    if not url:
        return None

    mime_type = as_str(raw.get("type"))
    bitrate = raw.get("bitrate")
    return Format(
        url=url,
        container=as_str(raw.get("container")) or _container_from_mime(mime_type),
        quality_label=as_str(raw.get("qualityLabel")),
        bitrate=bitrate if isinstance(bitrate, (str, int, float)) and not isinstance(bitrate, bool) else None,
        has_audio=has_audio,
        has_video=has_video,
        mime_type=mime_type,
        encoding=as_str(raw.get("encoding")),
        audio_quality=as_str(raw.get("audioQuality")),
        itag=as_str(raw.get("itag")),
    )
