"""YouTube URL validation, video id extraction and quality selection."""

import re
from typing import Any, List

from models import VideoFormat, VideoReference

# --- URL PATTERNS ---
_VALID_URL_PATTERNS = [
    re.compile(r"^https?://(www\.)?youtube\.com/watch\?v=[\w-]+", re.IGNORECASE),
    re.compile(r"^https?://(www\.)?youtu\.be/[\w-]+", re.IGNORECASE),
    re.compile(r"^https?://(www\.)?youtube\.com/shorts/[\w-]+", re.IGNORECASE),
]

_VIDEO_ID_PATTERN = re.compile(
    r"(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/shorts/)([^&?/]+)",
    re.IGNORECASE,
)

UNKNOWN_VIDEO_ID = "unknown"

# --- QUALITY ---
DEFAULT_QUALITY = "720"

QUALITY_LABELS = {
    "1080": ("1920x1080", "1080p (Full HD)"),
    "720": ("1280x720", "720p (HD)"),
    "480": ("854x480", "480p"),
    "360": ("640x360", "360p"),
}


def is_valid_youtube_url(url: Any) -> bool:
    """Return True for watch, youtu.be and shorts links."""
    if not isinstance(url, str):
        return False
    return any(pattern.match(url) for pattern in _VALID_URL_PATTERNS)


def extract_video_id(url: Any) -> str:
    """Return the video id from a YouTube URL, or "unknown"."""
    if not isinstance(url, str):
        return UNKNOWN_VIDEO_ID
    match = _VIDEO_ID_PATTERN.search(url)
    if match and match.group(1):
        return match.group(1)
    return UNKNOWN_VIDEO_ID


def video_reference(url: str) -> VideoReference:
    return VideoReference(source_url=url, video_id=extract_video_id(url))


def thumbnail_url(video_id: str) -> str:
    return f"https://img.youtube.com/vi/{video_id}/maxresdefault.jpg"


def normalize_quality(requested: Any = None) -> str:
    """Map a client quality hint onto 1080/720/480/360, defaulting to 720."""
    if isinstance(requested, str) and requested in QUALITY_LABELS:
        return requested
    return DEFAULT_QUALITY


def standard_formats() -> List[VideoFormat]:
    """The fixed quality ladder offered when real formats are unknown."""
    return [
        VideoFormat(format_id=tier, resolution=resolution, quality=label)
        for tier, (resolution, label) in QUALITY_LABELS.items()
    ]


def format_duration(seconds: Any) -> str:
    """Format seconds as H:MM:SS or M:SS ("Unknown" when zero or missing)."""
    try:
        seconds = int(seconds or 0)
    except (TypeError, ValueError):
        return "Unknown"
    if seconds <= 0:
        return "Unknown"

    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"
