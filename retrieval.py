"""Video retrieval backends.

Two interchangeable strategies implement :class:`VideoRetriever`:

* ``ytdlp``  - runs the yt-dlp command line tool on this server and returns
  the merged mp4 as bytes.
* ``cobalt`` - asks the hosted Cobalt API for a download URL and hands that
  URL back to the client.

The strategy is picked once at startup from ``VIDEO_BACKEND``.
"""

import logging
from abc import ABC, abstractmethod

from models import RetrievalResult, VideoInfo

logger = logging.getLogger(__name__)

BACKENDS = ("ytdlp", "cobalt")


class VideoRetriever(ABC):
    """Fetches metadata and video files for validated YouTube URLs."""

    name = "base"

    @abstractmethod
    def describe(self, url: str) -> VideoInfo:
        """Return metadata for ``url``. Raises RetrievalError."""

    @abstractmethod
    def fetch(self, url: str, quality: str) -> RetrievalResult:
        """Return the video at ``quality`` as bytes or a URL. Raises RetrievalError."""


def create_retriever(config: dict) -> VideoRetriever:
    """Build the retriever selected by ``config["video_backend"]``."""
    backend = config.get("video_backend", "ytdlp")

    if backend == "ytdlp":
        from ytdlp_retriever import YtDlpRetriever

        retriever = YtDlpRetriever(
            binary=config.get("ytdlp_binary", "yt-dlp"),
            max_info_bytes=config.get("ytdlp_max_info_bytes", 10 * 1024 * 1024),
            max_media_bytes=config.get("ytdlp_max_media_bytes", 100 * 1024 * 1024),
            temp_dir=config.get("temp_dir"),
        )
    elif backend == "cobalt":
        from cobalt_retriever import CobaltRetriever

        retriever = CobaltRetriever(
            api_url=config.get("cobalt_api_url", "https://api.cobalt.tools/"),
            api_key=config.get("cobalt_api_key"),
        )
    else:
        raise ValueError(f"Unknown VIDEO_BACKEND {backend!r}, expected one of {', '.join(BACKENDS)}")

    logger.info(f"Using {retriever.name} video backend")
    return retriever
