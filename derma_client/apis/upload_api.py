from __future__ import annotations

import logging

from derma_client.config import AppSettings
from derma_client.http import ApiHttpError, ApiNetworkError, HttpClient
from derma_client.models import ServerAck, UploadRequest

logger = logging.getLogger(__name__)


class UploadError(RuntimeError):
    def __init__(self, kind: str, message: str, status_code: int | None = None):
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code


class UploadApi:
    def __init__(self, settings: AppSettings, http_client: HttpClient):
        self._settings = settings
        self._http_client = http_client

    def upload(self, token: str, payload: bytes) -> ServerAck:
        if not token:
            raise ValueError("A bearer token is required to upload")

        request = UploadRequest(payload=payload, token=token)
        return self.send(request)

    def send(self, request: UploadRequest) -> ServerAck:
        logger.info("Uploading %s (%d bytes)", request.filename, len(request.payload))
        try:
            response = self._http_client.post_multipart(
                request.token,
                self._settings.upload_path,
                request.files(),
            )
        except ApiNetworkError as exc:
            raise UploadError("network", f"Upload failed: {exc}") from exc
        except ApiHttpError as exc:
            raise UploadError(
                "rejected",
                f"Upload rejected by server: {exc}",
                status_code=exc.status_code,
            ) from exc

        body = response.text or ""
        logger.info("Upload response %s: %s", response.status_code, body[:500])
        return ServerAck(status_code=response.status_code, body=body)
