"""Pytest fixtures for the Derma client tests."""
import json
import os
from unittest.mock import MagicMock

import pytest
import requests
from PIL import Image

from derma_client.config import AppSettings
from derma_client.http import HttpClient


@pytest.fixture
def settings():
    """Settings pointing at a fake server, in-memory token store."""
    return AppSettings(
        base_url="http://api.test",
        login_path="/public/login",
        upload_path="/uploadImage",
        timeout_seconds=5,
        jpeg_quality=80,
        token_store="memory",
        token_cache_path="",
    )


@pytest.fixture
def make_response():
    """Factory for real ``requests.Response`` objects with a canned body."""
    def _make(status_code=200, body=b"", url="http://api.test"):
        response = requests.Response()
        response.status_code = status_code
        response.url = url
        response.encoding = "utf-8"
        if isinstance(body, (dict, list)):
            body = json.dumps(body).encode("utf-8")
        elif isinstance(body, str):
            body = body.encode("utf-8")
        response._content = body
        return response

    return _make


@pytest.fixture
def http_session():
    session = MagicMock(spec=requests.Session)
    session.headers = {}
    return session


@pytest.fixture
def http_client(settings, http_session):
    return HttpClient(settings, session=http_session)


@pytest.fixture
def sample_image_path(tmp_path):
    """A ~10KB PNG of random pixels."""
    path = tmp_path / "photo.png"
    img = Image.frombytes("RGB", (60, 60), os.urandom(60 * 60 * 3))
    img.save(path, format="PNG")
    return str(path)
