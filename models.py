"""Data models for video metadata and download results."""

import re
from dataclasses import asdict, dataclass, field
from typing import List, Union

# Stripped from video ids before they go into a header or URL
_UNSAFE_ID_CHARS = re.compile(r"[^A-Za-z0-9_-]")


@dataclass(frozen=True)
class VideoReference:
    """A YouTube URL and the video id parsed from it."""
    source_url: str
    video_id: str

    @property
    def safe_id(self) -> str:
        return _UNSAFE_ID_CHARS.sub("", self.video_id) or "unknown"

    @property
    def filename(self) -> str:
        return f"video-{self.safe_id}.mp4"


@dataclass
class VideoFormat:
    """A downloadable format, e.g. 1280x720 "720p (HD)"."""
    format_id: str
    resolution: str
    quality: str


@dataclass
class VideoInfo:
    """Metadata returned by the video-info endpoint."""
    id: str
    title: str
    thumbnail: str
    duration: int
    uploader: str
    formats: List[VideoFormat] = field(default_factory=list)
    duration_text: str = "Unknown"
    metadata_available: bool = True

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class VideoFile:
    """Video bytes downloaded on this server."""
    filename: str
    content: bytes


@dataclass
class VideoLink:
    """A URL the client downloads from directly."""
    filename: str
    url: str


RetrievalResult = Union[VideoFile, VideoLink]
