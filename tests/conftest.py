"""Shared pytest fixtures for the downloader backend tests."""

import stat
import sys
import textwrap
from pathlib import Path

import jwt
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from fastapi.testclient import TestClient

from backend import app, get_access_gate, get_retriever
from models import VideoInfo, VideoLink
from retrieval import VideoRetriever
from video_urls import standard_formats
from whop_auth import WHOP_TOKEN_ISSUER, AccessGate, WhopTokenVerifier

TEST_APP_ID = "app_test123"


class FakeRetriever(VideoRetriever):
    """Retriever that records calls and returns canned results."""

    name = "fake"

    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.calls = []

    def describe(self, url):
        self.calls.append(("describe", url))
        if self.error:
            raise self.error
        return VideoInfo(
            id="dQw4w9WgXcQ",
            title="Never Gonna Give You Up",
            thumbnail="https://i.ytimg.com/vi/dQw4w9WgXcQ/maxresdefault.jpg",
            duration=212,
            uploader="Rick Astley",
            formats=standard_formats(),
            duration_text="3:32",
        )

    def fetch(self, url, quality):
        self.calls.append(("fetch", url, quality))
        if self.error:
            raise self.error
        return self.result


@pytest.fixture(scope="session")
def signing_key():
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture(scope="session")
def public_key_pem(signing_key) -> str:
    return signing_key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()


@pytest.fixture
def make_token(signing_key):
    """Build a signed Whop user token; claims can be overridden."""

    def _make(**claims):
        payload = {"sub": "user_abc", "aud": TEST_APP_ID, "iss": WHOP_TOKEN_ISSUER}
        payload.update(claims)
        return jwt.encode(payload, signing_key, algorithm="ES256")

    return _make


@pytest.fixture
def verifier(public_key_pem) -> WhopTokenVerifier:
    return WhopTokenVerifier(TEST_APP_ID, public_key_pem)


@pytest.fixture
def fake_retriever() -> FakeRetriever:
    return FakeRetriever(result=VideoLink(filename="video-dQw4w9WgXcQ.mp4", url="https://cdn.example.com/v.mp4"))


@pytest.fixture
def client(fake_retriever, public_key_pem):
    """TestClient with the retriever and Whop verifier swapped for test doubles."""
    gate = AccessGate(lambda: WhopTokenVerifier(TEST_APP_ID, public_key_pem))
    app.dependency_overrides[get_retriever] = lambda: fake_retriever
    app.dependency_overrides[get_access_gate] = lambda: gate
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(make_token) -> dict:
    return {"x-whop-user-token": make_token()}


@pytest.fixture
def fake_ytdlp(tmp_path):
    """Write an executable stand-in for yt-dlp.

    ``body`` is Python source run with ``args`` bound to the argument list.
    """
    if sys.platform == "win32":
        pytest.skip("shebang scripts are not executable on Windows")

    def _write(body: str) -> str:
        script = tmp_path / "bin" / "yt-dlp"
        script.parent.mkdir(exist_ok=True)
        script.write_text(
            f"#!{sys.executable}\n"
            "import json, sys\n"
            "args = sys.argv[1:]\n"
            + textwrap.dedent(body)
        )
        script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return str(script)

    return _write


@pytest.fixture
def work_dir(tmp_path) -> Path:
    path = tmp_path / "work"
    path.mkdir()
    return path
