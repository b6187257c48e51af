"""Streaming module: options resolution, direct extraction and media relay."""

from .extractor import YtDlpExtractor
from .proxy import MediaStream, StreamProxy, choose_format
from .resolver import StreamResolver, classify_adaptive, is_audio_format

__all__ = [
    "YtDlpExtractor",
    "MediaStream",
    "StreamProxy",
    "choose_format",
    "StreamResolver",
    "classify_adaptive",
    "is_audio_format",
]
