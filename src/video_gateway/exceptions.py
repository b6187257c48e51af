class GatewayError(Exception):
    """Base class for failures scoped to a single request."""

    public_message = "Upstream request failed"


class NoProviderAvailable(GatewayError):
    """Raised when every provider in the pool failed its liveness probe."""

    public_message = "No upstream provider available"


class UpstreamError(GatewayError):
    """Raised when a provider returned an error or a malformed payload."""

    public_message = "Upstream request failed"


class NoSuitableFormat(GatewayError):
    """Raised when a source replied but no playable format matched."""

    public_message = "No suitable format found"


class NoStreamAvailable(GatewayError):
    """Raised when every streaming source failed."""

    public_message = "Failed to stream video"


class InvalidIdentifier(GatewayError):
    """Raised when a client-supplied video id has the wrong shape."""

    public_message = "Invalid video ID"

    def __init__(self, video_id: str):
        self.video_id = video_id
        super().__init__(f"Invalid video ID: {video_id!r}")


class ExtractionError(Exception):
    """Raised when direct extraction fails or returns unusable output."""

    pass
