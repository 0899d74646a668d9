"""Exceptions raised by the downloader backend.

Each class carries the HTTP status it is rendered with by ``backend.py``.
"""

from typing import Optional


class VideoServiceError(Exception):
    status_code = 500

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(VideoServiceError):
    """Bad or missing client input."""

    status_code = 400


class AuthError(VideoServiceError):
    """Missing, malformed or rejected Whop user token."""

    status_code = 401


class WhopConfigurationError(AuthError):
    """Whop app id or public key is not configured."""


class RetrievalError(VideoServiceError):
    """yt-dlp or the download proxy failed."""


class UnexpectedResponseError(RetrievalError):
    """The download proxy answered with a status we do not handle."""
