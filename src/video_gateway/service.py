"""Metadata aggregation over the provider pool."""

import logging
from typing import Any, Awaitable, Callable

import httpx

from .config import Settings, settings as default_settings
from .exceptions import NoProviderAvailable, UpstreamError
from .interfaces import VideoDetail, VideoSummary
from .streaming.resolver import StreamResolver
from .upstream.parsing import parse_detail, parse_summaries, validate_video_id
from .upstream.pool import ProviderPool

logger = logging.getLogger(__name__)

TrendingSource = Callable[[], Awaitable[list[VideoSummary]]]


def dedupe_videos(videos: list[VideoSummary], limit: int) -> list[VideoSummary]:
    """Drop repeated video ids keeping the first occurrence, then truncate."""
    seen: set[str] = set()
    unique = []
    for video in videos:
        if video.video_id in seen:
            continue
        seen.add(video.video_id)
        unique.append(video)
    return unique[:limit]


class MetadataAggregator:
    """Service layer for search, suggestion, trending and detail queries."""

    def __init__(
        self,
        pool: ProviderPool,
        client: httpx.AsyncClient,
        resolver: StreamResolver,
        config: Settings | None = None,
    ):
        self.pool = pool
        self.client = client
        self.resolver = resolver
        self.config = config or default_settings

    async def _provider_json(self, path: str, params: dict, timeout: float) -> Any:
        """Acquire a provider and GET a JSON document from it.

        Raises:
            UpstreamError: No provider available, HTTP failure or non-JSON body.
        """
        try:
            provider = await self.pool.acquire()
        except NoProviderAvailable as e:
            raise UpstreamError(str(e)) from e

        url = provider.url(path)
        try:
            response = await self.client.get(url, params=params, timeout=timeout)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPError as e:
            raise UpstreamError(f"Request to {url} failed: {e}") from e
        except ValueError as e:
            raise UpstreamError(f"Non-JSON response from {url}") from e

    async def suggest(self, query: str | None) -> list[str]:
        """Autocomplete suggestions; empty on short queries or any failure."""
        if not query or len(query) < 2:
            return []

        try:
            data = await self._provider_json(
                "/api/v1/search/suggestions",
                {"q": query, "hl": self.config.language},
                self.config.suggest_timeout,
            )
        except UpstreamError as e:
            logger.warning("Search suggestions error: %s", e)
            return []

        suggestions = data.get("suggestions") if isinstance(data, dict) else None
        if not isinstance(suggestions, list):
            return []
        return [s for s in suggestions if isinstance(s, str)][: self.config.suggestion_limit]

    async def search(
        self,
        query: str,
        page: int = 1,
        sort: str = "relevance",
        type: str = "video",
    ) -> list[VideoSummary]:
        """Search a provider and keep only video results.

        Raises:
            UpstreamError: The provider call failed or returned a non-list.
        """
        data = await self._provider_json(
            "/api/v1/search",
            {
                "q": query,
                "page": page,
                "sort": sort,
                "type": type,
                "region": self.config.region,
                "hl": self.config.language,
            },
            self.config.search_timeout,
        )
        if not isinstance(data, list):
            raise UpstreamError("Search response is not a list")

        return [v for v in parse_summaries(data) if v.kind == "video"]

    async def _bulk_trending(self) -> list[VideoSummary]:
        try:
            response = await self.client.get(
                self.config.trending_url,
                headers={"User-Agent": self.config.user_agent},
                timeout=self.config.bulk_trending_timeout,
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise UpstreamError(f"Bulk trending source failed: {e}") from e

        if not isinstance(data, list):
            raise UpstreamError("Invalid response format from bulk trending source")

        summaries = parse_summaries(data)
        if data and not summaries:
            raise UpstreamError("Bulk trending source returned no usable records")

        videos = dedupe_videos(summaries, self.config.trending_limit)
        logger.info("Returning %d trending videos from bulk source", len(videos))
        return videos

    async def _paged_trending(self) -> list[VideoSummary]:
        collected: list[VideoSummary] = []
        pages_fetched = 0

        for page in range(1, self.config.trending_pages + 1):
            if len(collected) >= self.config.trending_limit:
                break
            try:
                data = await self._provider_json(
                    "/api/v1/trending",
                    {
                        "type": "default",
                        "region": self.config.region,
                        "hl": self.config.language,
                        "page": page,
                    },
                    self.config.trending_timeout,
                )
            except UpstreamError as e:
                logger.warning("Failed to get trending page %d: %s", page, e)
                break

            pages_fetched += 1
            collected.extend(
                v
                for v in parse_summaries(data)
                if v.kind == "video"
                and (v.length_seconds or 0) > self.config.trending_min_seconds
            )

        if not pages_fetched:
            raise UpstreamError("No trending page could be collected from providers")

        videos = dedupe_videos(collected, self.config.trending_limit)
        logger.info("Fallback: returning %d trending videos from providers", len(videos))
        return videos

    @property
    def trending_sources(self) -> list[TrendingSource]:
        return [self._bulk_trending, self._paged_trending]

    async def trending(self) -> list[VideoSummary]:
        """Trending videos, deduplicated and capped.

        Sources are tried in order; the first to return wins.

        Raises:
            UpstreamError: Every source failed.
        """
        error: UpstreamError | None = None
        for source in self.trending_sources:
            try:
                return await source()
            except UpstreamError as e:
                logger.warning("Trending source %s failed: %s", source.__name__, e)
                error = e
        raise error or UpstreamError("No trending source configured")

    async def video_detail(self, video_id: str) -> VideoDetail:
        """Canonical metadata plus streaming options for one video.

        Raises:
            InvalidIdentifier: Before any network call, for malformed ids.
            UpstreamError: The provider call failed or returned garbage.
        """
        validate_video_id(video_id)

        data = await self._provider_json(
            f"/api/v1/videos/{video_id}",
            {"region": self.config.region},
            self.config.detail_timeout,
        )
        if not isinstance(data, dict):
            raise UpstreamError(f"Malformed video detail for {video_id}")

        detail = parse_detail({**data, "videoId": data.get("videoId") or video_id})
        if detail is None:
            raise UpstreamError(f"Malformed video detail for {video_id}")

        detail.streaming_options = self.resolver.resolve(video_id, data)
        return detail
