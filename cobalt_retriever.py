"""Video retrieval through the hosted Cobalt download API."""

import logging
from typing import Optional

import requests

from errors import RetrievalError, UnexpectedResponseError
from models import VideoInfo, VideoLink
from retrieval import VideoRetriever
from video_urls import standard_formats, thumbnail_url, video_reference

logger = logging.getLogger(__name__)

# Cobalt never returns metadata, so video-info gets these instead
PLACEHOLDER_TITLE = "YouTube Video"
PLACEHOLDER_UPLOADER = "YouTube"


class CobaltRetriever(VideoRetriever):
    """Asks Cobalt for a tunnel/redirect URL; the client downloads from it."""

    name = "cobalt"

    def __init__(self, api_url: str = "https://api.cobalt.tools/", api_key: Optional[str] = None):
        self.api_url = api_url
        self.api_key = api_key

    def describe(self, url: str) -> VideoInfo:
        # Only checks that Cobalt accepts the URL
        self._request(url, "1080")

        ref = video_reference(url)
        return VideoInfo(
            id=ref.video_id,
            title=PLACEHOLDER_TITLE,
            thumbnail=thumbnail_url(ref.safe_id),
            duration=0,
            uploader=PLACEHOLDER_UPLOADER,
            formats=standard_formats(),
            duration_text="Unknown",
            metadata_available=False,
        )

    def fetch(self, url: str, quality: str) -> VideoLink:
        data = self._request(url, quality, filename_style="basic")
        status = data.get("status")
        filename = video_reference(url).filename

        if status == "picker":
            picker = data.get("picker") or []
            if picker and picker[0].get("url"):
                return VideoLink(filename=filename, url=picker[0]["url"])

        if status in ("tunnel", "redirect") and data.get("url"):
            return VideoLink(filename=filename, url=data["url"])

        logger.error(f"Unexpected Cobalt response status: {status!r}")
        raise UnexpectedResponseError(f"Unexpected response from Cobalt API (status={status!r})")

    def _request(self, url: str, quality: str, filename_style: Optional[str] = None) -> dict:
        payload = {
            "url": url,
            "videoQuality": quality,
            "downloadMode": "auto",
        }
        if filename_style:
            payload["filenameStyle"] = filename_style

        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if self.api_key:
            headers["Authorization"] = f"Api-Key {self.api_key}"

        try:
            resp = requests.post(self.api_url, json=payload, headers=headers)
        except requests.RequestException as e:
            raise RetrievalError(f"Cobalt API request failed: {e}")

        if not resp.ok:
            raise RetrievalError(f"Cobalt API error: {resp.status_code}")

        try:
            data = resp.json()
        except ValueError:
            raise RetrievalError("Cobalt API returned invalid JSON")
        if not isinstance(data, dict):
            raise RetrievalError("Cobalt API returned invalid JSON")

        if data.get("status") == "error":
            raise RetrievalError(self._error_message(data))
        return data

    @staticmethod
    def _error_message(data: dict) -> str:
        if data.get("text"):
            return data["text"]
        # Cobalt v10 puts a code under "error" instead of "text"
        error = data.get("error")
        if isinstance(error, dict) and error.get("code"):
            return error["code"]
        return "Failed to process video"
