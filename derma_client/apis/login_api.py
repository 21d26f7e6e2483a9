from __future__ import annotations

from typing import Any

from derma_client.config import AppSettings
from derma_client.http import HttpClient
from derma_client.models import Credentials


class LoginApi:
    def __init__(self, settings: AppSettings, http_client: HttpClient):
        self._settings = settings
        self._http_client = http_client

    def login(self, credentials: Credentials) -> dict[str, Any]:
        return self._http_client.post_json(self._settings.login_path, credentials.to_payload())
