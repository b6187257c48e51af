"""Video Gateway - aggregated video metadata and streaming proxy."""

__version__ = "0.1.0"

from .exceptions import (
    GatewayError,
    InvalidIdentifier,
    NoProviderAvailable,
    NoStreamAvailable,
    NoSuitableFormat,
    UpstreamError,
)
from .interfaces import Format, Provider, StreamingOptions, VideoDetail, VideoSummary
from .service import MetadataAggregator

__all__ = [
    "GatewayError",
    "InvalidIdentifier",
    "NoProviderAvailable",
    "NoStreamAvailable",
    "NoSuitableFormat",
    "UpstreamError",
    "Format",
    "Provider",
    "StreamingOptions",
    "VideoDetail",
    "VideoSummary",
    "MetadataAggregator",
]
