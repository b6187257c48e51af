"""Configuration settings for the video gateway."""

from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_PROVIDERS = [
    "https://yewtu.be",
    "https://invidious.private.coffee",
    "https://invidious.projectsegfau.lt",
    "https://invidious.f5.si",
    "https://inv.nadeko.net",
    "https://invidious.nerdvpn.de",
    "https://invidious.tiekoetter.com",
    "https://lekker.gay",
    "https://iv.ggtyler.dev",
    "https://iv.melmac.space",
    "https://invidious.perennialte.ch",
    "https://rust.oskamp.nl",
    "https://invidious.fdn.fr",
    "https://inv.vern.cc",
]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Provider pool
    providers: list[str] = DEFAULT_PROVIDERS
    probe_path: str = "/api/v1/stats"
    probe_timeout: float = 3.0  # seconds per liveness probe

    # Forwarded to providers as region / hl
    region: str = "JP"
    language: str = "ja"

    # Per-call timeouts (seconds)
    suggest_timeout: float = 5.0
    search_timeout: float = 10.0
    trending_timeout: float = 10.0
    bulk_trending_timeout: float = 15.0
    detail_timeout: float = 10.0
    embed_timeout: float = 10.0
    stream_connect_timeout: float = 5.0
    stream_read_timeout: float = 30.0

    # Trending
    trending_url: str = "https://siawaseok.duckdns.org/api/trend"
    trending_limit: int = 50
    trending_pages: int = 3
    trending_min_seconds: int = 60

    suggestion_limit: int = 10

    # Custom streaming origin
    stream_origin: str = "https://siawaseok.duckdns.org"
    user_agent: str = "YouTube-Clone/1.0"

    # Direct extraction
    ytdlp_binary: str = "yt-dlp"
    extract_timeout: float = 60.0

    # Server
    cors_origins: list[str] = ["*"]
    log_level: str = "INFO"

    @property
    def stream_base(self) -> str:
        """Custom origin without a trailing slash."""
        return self.stream_origin.rstrip("/")


settings = Settings()
