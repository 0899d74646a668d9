"""Configuration loading for the downloader backend."""

import os
import tempfile
from pathlib import Path

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).parent

load_dotenv(PROJECT_ROOT / ".env")

# Key Whop signs experience-proxy user tokens with; WHOP_PUBLIC_KEY overrides it
WHOP_DEFAULT_PUBLIC_KEY = """-----BEGIN PUBLIC KEY-----
MFkwEwYHKoZIzj0CAQYIKoZIzj0DAQcDQgAErz8a8vxvexHC0TLT91g7llOdDOsN
uYiGEfic4Qhni+HMfRBuUphOh7F3k8QgwZc9UlL0AHmyYqtbhL9NuJes6w==
-----END PUBLIC KEY-----
"""


def load_config() -> dict:
    """Load configuration from environment variables."""
    return {
        # Which retrieval backend to use: "ytdlp" or "cobalt"
        "video_backend": os.getenv("VIDEO_BACKEND", "ytdlp").strip().lower(),
        # yt-dlp
        "ytdlp_binary": os.getenv("YTDLP_BINARY", "yt-dlp"),
        "ytdlp_max_info_bytes": int(os.getenv("YTDLP_MAX_INFO_BYTES", str(10 * 1024 * 1024))),
        "ytdlp_max_media_bytes": int(os.getenv("YTDLP_MAX_MEDIA_BYTES", str(100 * 1024 * 1024))),
        "temp_dir": os.getenv("TEMP_DIR") or tempfile.gettempdir(),
        # Cobalt
        "cobalt_api_url": os.getenv("COBALT_API_URL", "https://api.cobalt.tools/"),
        "cobalt_api_key": os.getenv("COBALT_API_KEY"),
        # Whop
        "whop_app_id": os.getenv("WHOP_APP_ID") or os.getenv("NEXT_PUBLIC_WHOP_APP_ID"),
        "whop_public_key": os.getenv("WHOP_PUBLIC_KEY") or WHOP_DEFAULT_PUBLIC_KEY,
        # Server
        "cors_origins": [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()],
        "log_level": os.getenv("LOG_LEVEL", "INFO").upper(),
        "host": os.getenv("HOST", "0.0.0.0"),
        "port": int(os.getenv("PORT", "8000")),
    }
