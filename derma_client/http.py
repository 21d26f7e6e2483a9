from __future__ import annotations

import logging
from typing import Any

import requests

from derma_client.config import AppSettings

logger = logging.getLogger(__name__)


class ApiHttpError(RuntimeError):
    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code


class ApiNetworkError(RuntimeError):
    pass


class ApiDecodeError(ValueError):
    pass


class HttpClient:
    def __init__(self, settings: AppSettings, session: requests.Session | None = None):
        self._settings = settings
        self._session = session or requests.Session()
        self._session.headers.update({"Accept": "application/json"})

    def post_json(
        self,
        path: str,
        payload: dict[str, Any],
        token: str | None = None,
    ) -> dict[str, Any]:
        url = f"{self._settings.base_url}{path}"
        response = self._send(
            url,
            headers=self._build_headers(token, {"Content-Type": "application/json"}),
            json=payload,
        )
        self._raise_for_status(response)
        return self._decode_json(response)

    def post_multipart(
        self,
        token: str,
        path: str,
        files: dict[str, tuple[str, bytes, str]],
    ) -> requests.Response:
        url = f"{self._settings.base_url}{path}"
        # requests sets the multipart Content-Type with its boundary.
        response = self._send(url, headers=self._build_headers(token), files=files)
        self._raise_for_status(response)
        return response

    def _send(self, url: str, **kwargs: Any) -> requests.Response:
        logger.debug("POST %s", url)
        try:
            return self._session.post(
                url,
                timeout=self._settings.timeout_seconds,
                **kwargs,
            )
        except requests.RequestException as exc:
            logger.warning("POST %s failed: %s", url, exc)
            raise ApiNetworkError(str(exc) or type(exc).__name__) from exc

    @staticmethod
    def _build_headers(token: str | None, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = dict(extra or {})
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    @staticmethod
    def _raise_for_status(response: requests.Response) -> None:
        if response.ok:
            return

        message = response.text[:500]
        raise ApiHttpError(
            status_code=response.status_code,
            message=f"HTTP {response.status_code}: {message}",
        )

    @staticmethod
    def _decode_json(response: requests.Response) -> dict[str, Any]:
        if not response.content:
            raise ApiDecodeError("No data received")

        try:
            parsed = response.json()
        except ValueError as exc:
            raise ApiDecodeError(f"Response is not valid JSON: {exc}") from exc

        if not isinstance(parsed, dict):
            raise ApiDecodeError(f"Expected a JSON object, got {type(parsed).__name__}")
        return parsed
