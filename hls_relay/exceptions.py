"""Custom exceptions for the relay server."""

from fastapi import HTTPException, status


class RelayError(HTTPException):
    """Base class for failures reported to the calling player as plain text."""


class ChannelNotFoundError(RelayError):
    """Raised when a channel id is absent from the directory."""

    def __init__(self, channel_id: str):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Channel ID not found",
        )
        self.channel_id = channel_id


class MissingUrlParameterError(RelayError):
    """Raised when a proxy endpoint is called without its url parameter."""

    def __init__(self):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing URL parameter",
        )


class UpstreamForbiddenError(RelayError):
    """Raised when the upstream origin rejects the relay with HTTP 403."""

    def __init__(self, url: str):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=(
                "Access Denied: The token in the channel directory is likely IP-locked "
                "to a different network and cannot be used from this relay."
            ),
        )
        self.url = url


class UpstreamFetchError(RelayError):
    """Raised for any other upstream or directory failure."""

    def __init__(self, url: str, reason: str, detail: str = "Error fetching stream"):
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
        )
        self.url = url
        self.reason = reason
