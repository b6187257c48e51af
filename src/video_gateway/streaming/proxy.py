"""End-to-end media relay with a custom-origin and extraction fallback chain."""

import logging
import re
from dataclasses import dataclass, field
from typing import AsyncIterator, Awaitable, Callable

import httpx

from ..config import Settings, settings as default_settings
from ..exceptions import (
    ExtractionError,
    NoStreamAvailable,
    NoSuitableFormat,
    UpstreamError,
)
from ..interfaces import ExtractedVideo, Format, MediaExtractor
from ..upstream.parsing import leading_int, validate_video_id

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "video/mp4"


@dataclass
class MediaStream:
    """An open upstream media response ready to be relayed."""

    response: httpx.Response
    source: str
    headers: dict[str, str] = field(default_factory=dict)

    async def iter_bytes(self) -> AsyncIterator[bytes]:
        """Yield upstream chunks as they arrive; nothing is buffered."""
        async for chunk in self.response.aiter_raw():
            yield chunk

    async def aclose(self) -> None:
        await self.response.aclose()


StreamSource = Callable[[str, str], Awaitable[MediaStream]]


def _resolution(fmt: Format) -> int:
    match = re.match(r"(\d+)", fmt.quality_label or "")
    return int(match.group(1)) if match else 0


def choose_format(formats: list[Format], quality: str = "highest") -> Format:
    """Pick a combined audio+video format.

    ``highest`` selects the best rendition, any other hint the lowest.

    Raises:
        NoSuitableFormat: No combined format is available.
    """
    combined = [f for f in formats if f.has_audio and f.has_video]
    if not combined:
        raise NoSuitableFormat("No combined audio+video format available")

    def rank(fmt: Format) -> tuple[int, int]:
        return _resolution(fmt), leading_int(fmt.bitrate) or 0

    if quality == "highest":
        return max(combined, key=rank)
    return min(combined, key=rank)


class StreamProxy:
    """Opens a playable byte stream for a video from the first working source."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        extractor: MediaExtractor,
        config: Settings | None = None,
    ):
        self.client = client
        self.extractor = extractor
        self.config = config or default_settings

    @property
    def sources(self) -> list[StreamSource]:
        return [self._open_custom, self._open_extracted]

    def _timeout(self) -> httpx.Timeout:
        return httpx.Timeout(
            self.config.stream_read_timeout,
            connect=self.config.stream_connect_timeout,
        )

    async def _open_upstream(self, url: str, headers: dict[str, str] | None = None) -> httpx.Response:
        request = self.client.build_request("GET", url, headers=headers, timeout=self._timeout())
        try:
            response = await self.client.send(request, stream=True)
        except httpx.HTTPError as e:
            raise UpstreamError(f"Could not open {url}: {e}") from e

        if not response.is_success:
            await response.aclose()
            raise UpstreamError(f"{url} answered {response.status_code}")
        return response

    @staticmethod
    def _base_headers(content_type: str) -> dict[str, str]:
        return {
            "Content-Type": content_type,
            "Accept-Ranges": "bytes",
            "Access-Control-Allow-Origin": "*",
        }

    async def _open_custom(self, video_id: str, quality: str) -> MediaStream:
        url = f"{self.config.stream_base}/api/stream/{video_id}/type2"
        response = await self._open_upstream(url)

        headers = self._base_headers(response.headers.get("content-type") or DEFAULT_CONTENT_TYPE)
        if "content-length" in response.headers:
            headers["Content-Length"] = response.headers["content-length"]
        return MediaStream(response=response, source="custom", headers=headers)

    async def describe(self, video_id: str, quality: str = "highest") -> tuple[ExtractedVideo, Format]:
        """Extract formats and choose one for the quality hint.

        Raises:
            InvalidIdentifier: The id is not an extractable platform id.
            UpstreamError: Extraction failed.
            NoSuitableFormat: No combined audio+video format exists.
        """
        try:
            video = await self.extractor.extract(video_id)
        except ExtractionError as e:
            raise UpstreamError(f"Extraction failed for {video_id}: {e}") from e
        return video, choose_format(video.formats, quality)

    async def _open_extracted(self, video_id: str, quality: str) -> MediaStream:
        _, fmt = await self.describe(video_id, quality)
        response = await self._open_upstream(fmt.url, fmt.http_headers)

        headers = self._base_headers(DEFAULT_CONTENT_TYPE)
        if "content-length" in response.headers:
            headers["Content-Length"] = response.headers["content-length"]
        return MediaStream(response=response, source="extraction", headers=headers)

    async def open_stream(self, video_id: str, quality: str = "highest") -> MediaStream:
        """Open the first working source for a video.

        Raises:
            InvalidIdentifier: Before any network call for malformed ids, or
                when the extraction tier rejects the id shape.
            NoSuitableFormat: The last source replied without a usable format.
            NoStreamAvailable: Every source failed.
        """
        validate_video_id(video_id)

        unsuitable: NoSuitableFormat | None = None
        for source in self.sources:
            try:
                return await source(video_id, quality)
            except NoSuitableFormat as e:
                logger.warning("No suitable format for %s via %s", video_id, source.__name__)
                unsuitable = e
            except UpstreamError as e:
                logger.warning("Stream source %s failed for %s: %s", source.__name__, video_id, e)

        if unsuitable is not None:
            raise unsuitable
        raise NoStreamAvailable(f"All stream sources failed for {video_id}")
