"""Direct format extraction using yt-dlp."""

import asyncio
import json
import logging
import re
from typing import Any

from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..config import Settings, settings as default_settings
from ..exceptions import ExtractionError, InvalidIdentifier
from ..interfaces import ExtractedVideo, Format
from ..upstream.parsing import as_int, as_str

logger = logging.getLogger(__name__)

PLATFORM_ID_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{11}$")
RELAYABLE_PROTOCOLS = {"http", "https"}


def is_platform_id(video_id: str) -> bool:
    """Check the 11-character id shape the extractor understands."""
    return bool(PLATFORM_ID_PATTERN.match(video_id or ""))


def watch_url(video_id: str) -> str:
    return f"https://www.youtube.com/watch?v={video_id}"


def parse_ytdlp_format(raw: Any) -> Format | None:
    """Convert one yt-dlp format entry; manifests and fragments are skipped."""
    if not isinstance(raw, dict):
        return None
    url = as_str(raw.get("url"))
    if not url or raw.get("protocol", "https") not in RELAYABLE_PROTOCOLS:
        return None

    vcodec = raw.get("vcodec")
    acodec = raw.get("acodec")
    height = as_int(raw.get("height"))
    tbr = raw.get("tbr")
    headers = raw.get("http_headers")
    if not isinstance(headers, dict):
        headers = {}

    return Format(
        url=url,
        container=as_str(raw.get("ext")),
        quality_label=as_str(raw.get("format_note")) or (f"{height}p" if height else None),
        bitrate=int(tbr * 1000) if isinstance(tbr, (int, float)) else None,
        has_audio=bool(acodec) and acodec != "none",
        has_video=bool(vcodec) and vcodec != "none",
        encoding=as_str(acodec) if acodec and acodec != "none" else None,
        itag=as_str(raw.get("format_id")),
        http_headers={k: v for k, v in headers.items() if isinstance(k, str) and isinstance(v, str)},
    )


def parse_extracted(video_id: str, data: Any) -> ExtractedVideo:
    if not isinstance(data, dict):
        raise ExtractionError(f"Unexpected extraction output for {video_id}")

    formats = []
    for raw in data.get("formats") or []:
        fmt = parse_ytdlp_format(raw)
        if fmt is not None:
            formats.append(fmt)

    return ExtractedVideo(
        video_id=video_id,
        title=as_str(data.get("title")),
        description=as_str(data.get("description")),
        length_seconds=as_int(data.get("duration")),
        view_count=as_int(data.get("view_count")),
        author=as_str(data.get("channel")) or as_str(data.get("uploader")),
        formats=formats,
    )


class YtDlpExtractor:
    """MediaExtractor backed by the yt-dlp command line."""

    def __init__(self, config: Settings | None = None):
        config = config or default_settings
        self.binary = config.ytdlp_binary
        self.timeout = config.extract_timeout

    async def _dump_json(self, video_id: str) -> bytes:
        try:
            process = await asyncio.create_subprocess_exec(
                self.binary,
                "--dump-json",
                "--no-download",
                "--no-warnings",
                watch_url(video_id),
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise ExtractionError(f"Could not run {self.binary}: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), self.timeout)
        except asyncio.TimeoutError as e:
            raise ExtractionError(f"Extraction timed out for {video_id}") from e
        finally:
            # also reached on cancellation
            if process.returncode is None:
                process.kill()
                await process.wait()

        if process.returncode != 0:
            message = stderr.decode(errors="replace").strip().splitlines()
            raise ExtractionError(message[-1] if message else f"yt-dlp exited {process.returncode}")
        return stdout

    @retry(
        stop=stop_after_attempt(2),
        wait=wait_exponential(multiplier=1, min=1, max=4),
        retry=retry_if_exception_type(ExtractionError),
        reraise=True,
    )
    async def extract(self, video_id: str) -> ExtractedVideo:
        """Fetch metadata and relayable formats for a video.

        Raises:
            InvalidIdentifier: The id is not an 11-character platform id.
            ExtractionError: yt-dlp failed or produced unusable output.
        """
        if not is_platform_id(video_id):
            raise InvalidIdentifier(video_id)

        stdout = await self._dump_json(video_id)
        try:
            data = json.loads(stdout)
        except ValueError as e:
            raise ExtractionError(f"Invalid extraction output for {video_id}") from e

        video = parse_extracted(video_id, data)
        logger.debug("Extracted %d formats for %s", len(video.formats), video_id)
        return video
