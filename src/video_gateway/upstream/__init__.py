"""Upstream provider access: pool rotation and payload parsing."""

from .pool import ProviderPool
from .parsing import parse_detail, parse_summaries, parse_summary, validate_video_id

__all__ = [
    "ProviderPool",
    "parse_detail",
    "parse_summaries",
    "parse_summary",
    "validate_video_id",
]
