"""FastAPI routes for the video gateway API."""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone

import httpx
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.types import Receive, Scope, Send

from video_gateway.api.schemas import (
    EmbedResponse,
    ErrorResponse,
    ExtractionResponse,
    HealthResponse,
    VideoDetailResponse,
    VideoSummaryResponse,
)

from ..config import Settings, settings as default_settings
from ..exceptions import (
    GatewayError,
    InvalidIdentifier,
    NoSuitableFormat,
)
from ..interfaces import MediaExtractor
from ..service import MetadataAggregator
from ..streaming.extractor import YtDlpExtractor
from ..streaming.proxy import MediaStream, StreamProxy
from ..streaming.resolver import StreamResolver
from ..upstream.parsing import validate_video_id
from ..upstream.pool import ProviderPool

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    InvalidIdentifier: 400,
    NoSuitableFormat: 404,
}

ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Malformed video id or missing query"},
    404: {"model": ErrorResponse, "description": "No combined audio+video format"},
    500: {"model": ErrorResponse, "description": "Upstream failure"},
}


@dataclass
class Gateway:
    """Process-wide components shared by all requests."""

    pool: ProviderPool
    aggregator: MetadataAggregator
    resolver: StreamResolver
    proxy: StreamProxy


def _create_gateway(
    client: httpx.AsyncClient,
    config: Settings,
    extractor: MediaExtractor | None = None,
) -> Gateway:
    """Create a Gateway with default dependencies."""
    pool = ProviderPool.from_settings(client, config)
    resolver = StreamResolver(client, config)
    return Gateway(
        pool=pool,
        aggregator=MetadataAggregator(pool, client, resolver, config),
        resolver=resolver,
        proxy=StreamProxy(client, extractor or YtDlpExtractor(config), config),
    )


def get_gateway(request: Request) -> Gateway:
    return request.app.state.gateway


class RelayResponse(StreamingResponse):
    """Streams an upstream media response and always closes it.

    The upstream is closed when the body completes or when the client
    disconnects mid-stream.
    """

    def __init__(self, stream: MediaStream):
        super().__init__(stream.iter_bytes(), status_code=200, headers=stream.headers)
        self.stream = stream

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            await self.stream.aclose()


router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health():
    """Liveness endpoint."""
    return HealthResponse(status="OK", timestamp=datetime.now(timezone.utc).isoformat())


@router.get("/api/search/suggestions", response_model=list[str])
async def search_suggestions(q: str | None = None, gateway: Gateway = Depends(get_gateway)):
    """Autocomplete suggestions; always 200, empty on failure."""
    return await gateway.aggregator.suggest(q)


@router.get("/api/search", response_model=list[VideoSummaryResponse], responses=ERROR_RESPONSES)
async def search(
    q: str | None = None,
    page: int = 1,
    sort: str = "relevance",
    type: str = "video",
    gateway: Gateway = Depends(get_gateway),
):
    """Search videos across the provider pool."""
    if not q:
        raise HTTPException(status_code=400, detail="Search query is required")

    videos = await gateway.aggregator.search(q, page=page, sort=sort, type=type)
    return [VideoSummaryResponse.from_summary(v) for v in videos]


@router.get("/api/trending", response_model=list[VideoSummaryResponse], responses=ERROR_RESPONSES)
async def trending(gateway: Gateway = Depends(get_gateway)):
    """Trending videos, at most 50 and without duplicates."""
    videos = await gateway.aggregator.trending()
    return [VideoSummaryResponse.from_summary(v) for v in videos]


@router.get("/api/video/{video_id}", response_model=VideoDetailResponse, responses=ERROR_RESPONSES)
async def video_detail(video_id: str, gateway: Gateway = Depends(get_gateway)):
    """Video metadata with streaming options."""
    video = await gateway.aggregator.video_detail(video_id)
    return VideoDetailResponse.from_detail(video)


@router.get("/api/embed/{video_id}", response_model=EmbedResponse, responses=ERROR_RESPONSES)
async def embed(video_id: str, gateway: Gateway = Depends(get_gateway)):
    """Embed URL and type-2 stream data from the custom origin."""
    validate_video_id(video_id)
    embed_url, stream_data = await gateway.resolver.fetch_embed(video_id)
    return EmbedResponse(embed_url=embed_url, video_id=video_id, stream_data=stream_data)


@router.get("/api/ytdl/{video_id}", response_model=ExtractionResponse, responses=ERROR_RESPONSES)
async def extraction_info(
    video_id: str,
    quality: str = "highest",
    gateway: Gateway = Depends(get_gateway),
):
    """Direct-extraction metadata and the chosen stream URL."""
    validate_video_id(video_id)
    video, chosen = await gateway.proxy.describe(video_id, quality)
    return ExtractionResponse.from_extraction(video, chosen)


@router.get("/api/stream/{video_id}", responses=ERROR_RESPONSES)
async def stream(
    video_id: str,
    quality: str = "highest",
    gateway: Gateway = Depends(get_gateway),
):
    """Relay media bytes from the first working stream source."""
    media = await gateway.proxy.open_stream(video_id, quality)
    logger.info("Streaming %s from %s source", video_id, media.source)
    return RelayResponse(media)


async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    status_code = ERROR_STATUS.get(type(exc), 500)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    else:
        logger.info("%s %s rejected: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status_code, content={"detail": exc.public_message})


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Server error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def create_app(
    config: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    extractor: MediaExtractor | None = None,
) -> FastAPI:
    """Build the API application.

    Args:
        config: Settings to use instead of the environment-derived ones.
        transport: Optional httpx transport for the shared upstream client.
        extractor: Optional direct-extraction backend.
    """
    config = config or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        async with httpx.AsyncClient(
            transport=transport,
            headers={"User-Agent": config.user_agent},
            follow_redirects=True,
            limits=httpx.Limits(max_keepalive_connections=20, max_connections=100),
        ) as client:
            app.state.gateway = _create_gateway(client, config, extractor)
            yield

    app = FastAPI(
        title="Video Gateway API",
        description="Aggregated video metadata and streaming proxy",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(GatewayError, gateway_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
    app.include_router(router)
    return app


app = create_app()
