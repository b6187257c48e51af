"""Builds the multi-source streaming options for a single video."""

import logging
from typing import Any

import httpx

from ..config import Settings, settings as default_settings
from ..exceptions import UpstreamError
from ..interfaces import Format, StreamingOptions
from ..upstream.parsing import as_list, leading_int, parse_format

logger = logging.getLogger(__name__)

AUDIO_CODECS = ("opus", "aac")


def is_audio_format(fmt: Format) -> bool:
    """Best-effort audio-only classifier for adaptive formats."""
    if fmt.audio_quality:
        return True
    if fmt.mime_type and fmt.mime_type.lower().startswith("audio/"):
        return True
    encoding = (fmt.encoding or "").lower()
    return any(codec in encoding for codec in AUDIO_CODECS)


def sort_by_bitrate(formats: list[Format]) -> list[Format]:
    """Sort by descending bitrate; missing or non-numeric counts as 0.

    ``sorted`` is stable with ``reverse=True`` so ties keep their order.
    """
    return sorted(formats, key=lambda f: leading_int(f.bitrate) or 0, reverse=True)


def classify_adaptive(raw_formats: Any) -> tuple[list[Format], list[Format]]:
    """Parse adaptive formats and return (all formats, audio subset)."""
    formats = []
    audio = []
    for raw in as_list(raw_formats):
        fmt = parse_format(raw)
        if fmt is None:
            continue
        if is_audio_format(fmt):
            fmt.has_audio = True
            audio.append(fmt)
        else:
            fmt.has_video = True
        formats.append(fmt)
    return formats, sort_by_bitrate(audio)


class StreamResolver:
    """Combines custom-origin URLs with formats already in provider metadata."""

    def __init__(self, client: httpx.AsyncClient, config: Settings | None = None):
        self.client = client
        self.config = config or default_settings

    def embed_url(self, video_id: str) -> str:
        return f"{self.config.stream_base}/api/stream/{video_id}"

    def media_url(self, video_id: str) -> str:
        return f"{self.config.stream_base}/api/stream/{video_id}/type2"

    def resolve(self, video_id: str, metadata: dict | None) -> StreamingOptions:
        """Build StreamingOptions without any network call.

        Never raises: malformed format lists yield empty lists.
        """
        metadata = metadata if isinstance(metadata, dict) else {}
        options = StreamingOptions(
            embed_url=self.embed_url(video_id),
            primary_video_url=self.media_url(video_id),
            primary_audio_url=self.media_url(video_id),
        )

        for raw in as_list(metadata.get("formatStreams")):
            fmt = parse_format(raw, has_audio=True, has_video=True)
            if fmt is not None:
                options.progressive_formats.append(fmt)

        try:
            adaptive, audio = classify_adaptive(metadata.get("adaptiveFormats"))
        except (TypeError, ValueError, AttributeError) as e:
            logger.warning("Adaptive format classification failed for %s: %s", video_id, e)
            adaptive, audio = [], []

        options.adaptive_formats = adaptive
        options.adaptive_audio_formats = audio
        return options

    async def fetch_embed(self, video_id: str) -> tuple[Any, Any]:
        """Ask the custom origin for the embed URL and optional stream data.

        Returns:
            (embed_url, stream_data); stream_data is None when the
            secondary lookup fails.

        Raises:
            UpstreamError: The primary embed lookup failed.
        """
        try:
            response = await self.client.get(
                self.embed_url(video_id), timeout=self.config.embed_timeout
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise UpstreamError(f"Embed lookup failed for {video_id}: {e}") from e

        try:
            payload = response.json()
        except ValueError:
            # Plain-text replies carry the URL directly
            payload = response.text.strip()

        if isinstance(payload, dict):
            embed_url = payload.get("url") or payload
        else:
            embed_url = payload

        stream_data = None
        try:
            response = await self.client.get(
                self.media_url(video_id), timeout=self.config.embed_timeout
            )
            response.raise_for_status()
            stream_data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.info("Type2 endpoint not available for %s: %s", video_id, e)

        return embed_url, stream_data
