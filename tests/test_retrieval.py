"""Tests for backend selection and configuration."""

import pytest

from cobalt_retriever import CobaltRetriever
from config import WHOP_DEFAULT_PUBLIC_KEY, load_config
from retrieval import VideoRetriever, create_retriever
from whop_auth import WhopTokenVerifier
from ytdlp_retriever import YtDlpRetriever


def test_retriever_is_abstract():
    with pytest.raises(TypeError):
        VideoRetriever()


def test_defaults_to_ytdlp(monkeypatch):
    monkeypatch.delenv("VIDEO_BACKEND", raising=False)
    retriever = create_retriever(load_config())
    assert isinstance(retriever, YtDlpRetriever)
    assert retriever.max_info_bytes == 10 * 1024 * 1024
    assert retriever.max_media_bytes == 100 * 1024 * 1024


def test_ytdlp_settings(monkeypatch, tmp_path):
    monkeypatch.setenv("VIDEO_BACKEND", "ytdlp")
    monkeypatch.setenv("YTDLP_BINARY", "/opt/bin/yt-dlp")
    monkeypatch.setenv("YTDLP_MAX_MEDIA_BYTES", "2048")
    monkeypatch.setenv("TEMP_DIR", str(tmp_path))

    retriever = create_retriever(load_config())
    assert retriever.binary == "/opt/bin/yt-dlp"
    assert retriever.max_media_bytes == 2048
    assert retriever.temp_dir == str(tmp_path)


def test_cobalt_settings(monkeypatch):
    monkeypatch.setenv("VIDEO_BACKEND", " Cobalt ")
    monkeypatch.setenv("COBALT_API_URL", "https://cobalt.example.com/")
    monkeypatch.setenv("COBALT_API_KEY", "k")

    retriever = create_retriever(load_config())
    assert isinstance(retriever, CobaltRetriever)
    assert retriever.api_url == "https://cobalt.example.com/"
    assert retriever.api_key == "k"


def test_unknown_backend():
    with pytest.raises(ValueError, match="Unknown VIDEO_BACKEND"):
        create_retriever({"video_backend": "youtube-dl"})


def test_cors_origins(monkeypatch):
    monkeypatch.setenv("CORS_ORIGINS", "https://a.example, https://b.example,")
    assert load_config()["cors_origins"] == ["https://a.example", "https://b.example"]


def test_whop_public_key_has_a_default(monkeypatch):
    monkeypatch.delenv("WHOP_PUBLIC_KEY", raising=False)
    monkeypatch.setenv("WHOP_APP_ID", "app_x")

    settings = load_config()
    assert settings["whop_public_key"] == WHOP_DEFAULT_PUBLIC_KEY
    assert "BEGIN PUBLIC KEY" in settings["whop_public_key"]

    verifier = WhopTokenVerifier(settings["whop_app_id"], settings["whop_public_key"])
    assert verifier.app_id == "app_x"


def test_whop_public_key_override(monkeypatch, public_key_pem):
    monkeypatch.setenv("WHOP_PUBLIC_KEY", public_key_pem)
    assert load_config()["whop_public_key"] == public_key_pem
