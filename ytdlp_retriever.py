"""Video retrieval through the yt-dlp command line tool."""

import json
import logging
import subprocess
import tempfile
import uuid
from pathlib import Path
from typing import List, Optional

from errors import RetrievalError
from models import VideoFile, VideoFormat, VideoInfo
from retrieval import VideoRetriever
from video_urls import format_duration, thumbnail_url, video_reference

logger = logging.getLogger(__name__)


def format_selector(quality: str) -> str:
    """Best video up to ``quality`` lines merged with best audio."""
    return f"bestvideo[height<={quality}]+bestaudio/best[height<={quality}]"


class YtDlpRetriever(VideoRetriever):
    """Runs yt-dlp as a subprocess. Downloads land in a per-call temp dir."""

    name = "ytdlp"

    def __init__(self, binary: str = "yt-dlp", max_info_bytes: int = 10 * 1024 * 1024,
                 max_media_bytes: int = 100 * 1024 * 1024, temp_dir: Optional[str] = None):
        self.binary = binary
        self.max_info_bytes = max_info_bytes
        self.max_media_bytes = max_media_bytes
        self.temp_dir = temp_dir

    def describe(self, url: str) -> VideoInfo:
        output = self._run(["--dump-json", "--no-playlist", url], self.max_info_bytes)
        try:
            data = json.loads(output)
        except ValueError as e:
            raise RetrievalError(f"Failed to get video info: yt-dlp returned invalid JSON ({e})")
        if not isinstance(data, dict):
            raise RetrievalError("Failed to get video info: yt-dlp returned invalid JSON")

        ref = video_reference(url)
        video_id = data.get("id") or ref.video_id
        duration = int(data.get("duration") or 0)
        return VideoInfo(
            id=video_id,
            title=data.get("title") or "Unknown",
            thumbnail=data.get("thumbnail") or thumbnail_url(ref.safe_id),
            duration=duration,
            uploader=data.get("uploader") or "Unknown",
            formats=self._parse_formats(data.get("formats") or []),
            duration_text=format_duration(duration),
        )

    def fetch(self, url: str, quality: str) -> VideoFile:
        ref = video_reference(url)

        # Removed with everything in it on both success and error paths
        with tempfile.TemporaryDirectory(prefix="yt-", dir=self.temp_dir) as workdir:
            output_template = str(Path(workdir) / f"yt-{uuid.uuid4().hex}.%(ext)s")
            cmd = [
                "-f", format_selector(quality),
                "--merge-output-format", "mp4",
                "--no-playlist",
                "--max-filesize", str(self.max_media_bytes),
                "--no-simulate",
                "--print", "after_move:filepath",
                "-o", output_template,
                url,
            ]
            output = self._run(cmd, self.max_media_bytes)
            path = self._find_output(output, Path(workdir))

            size = path.stat().st_size
            if size > self.max_media_bytes:
                raise RetrievalError(f"Failed to download video: file is larger than {self.max_media_bytes} bytes")
            content = path.read_bytes()

        logger.info(f"Downloaded {ref.safe_id} at {quality}p ({size} bytes)")
        return VideoFile(filename=ref.filename, content=content)

    # --- HELPERS ---
    def _run(self, args: List[str], max_bytes: int) -> str:
        """Run yt-dlp, returning stdout. At most ``max_bytes`` of stdout are kept."""
        cmd = [self.binary, *args]
        logger.debug(f"Running {' '.join(cmd)}")

        with tempfile.TemporaryFile() as stderr_file:
            try:
                process = subprocess.Popen(cmd, stdout=subprocess.PIPE, stderr=stderr_file)
            except FileNotFoundError:
                raise RetrievalError(f"{self.binary} not found. Please install yt-dlp and add it to your PATH.")

            with process:
                stdout = process.stdout.read(max_bytes + 1)
                if len(stdout) > max_bytes:
                    process.kill()
                    raise RetrievalError(f"yt-dlp output exceeded {max_bytes} bytes")
                returncode = process.wait()

            if returncode != 0:
                stderr_file.seek(0)
                stderr = stderr_file.read().decode("utf-8", errors="ignore").strip()
                logger.error(f"yt-dlp exited with code {returncode}: {stderr}")
                raise RetrievalError(f"yt-dlp exited with code {returncode}: {stderr}")

        return stdout.decode("utf-8", errors="ignore")

    @staticmethod
    def _find_output(stdout: str, workdir: Path) -> Path:
        # --print after_move:filepath puts the final path on the last line
        lines = [line.strip() for line in stdout.splitlines() if line.strip()]
        if lines:
            printed = Path(lines[-1])
            if printed.is_file() and printed.parent == workdir:
                return printed

        candidates = sorted(p for p in workdir.iterdir() if p.is_file() and not p.name.endswith(".part"))
        mp4s = [p for p in candidates if p.suffix == ".mp4"]
        if mp4s:
            return mp4s[0]
        if candidates:
            return candidates[0]
        raise RetrievalError("Failed to download video: yt-dlp did not produce a file")

    @staticmethod
    def _parse_formats(raw_formats: list) -> List[VideoFormat]:
        """Keep formats that carry both video and audio and have a real resolution."""
        formats = []
        for f in raw_formats:
            if f.get("vcodec") == "none" or f.get("acodec") == "none":
                continue

            resolution = f.get("resolution") or f"{f.get('width') or ''}x{f.get('height') or ''}"
            if not resolution or resolution == "x":
                continue

            formats.append(VideoFormat(
                format_id=str(f.get("format_id", "")),
                resolution=resolution,
                quality=f.get("format_note") or resolution,
            ))
        return formats
