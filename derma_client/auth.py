from __future__ import annotations

import logging
from typing import Any

from derma_client.apis import LoginApi
from derma_client.http import ApiDecodeError, ApiHttpError, ApiNetworkError
from derma_client.logging_utils import mask_token
from derma_client.models import LOGGED_OUT_SESSION, Credentials, Session
from derma_client.session_store import SessionStore

logger = logging.getLogger(__name__)


class LoginError(RuntimeError):
    def __init__(self, kind: str, message: str, status_code: int | None = None):
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code


class SessionManager:
    def __init__(self, login_api: LoginApi, store: SessionStore):
        self._login_api = login_api
        self._store = store

    def login(self, username: str, password: str, persist: bool = True) -> Session:
        credentials = Credentials(username=username, password=password)
        try:
            body = self._login_api.login(credentials)
        except ApiNetworkError as exc:
            raise LoginError("network", f"Failed to login: {exc}") from exc
        except ApiHttpError as exc:
            raise LoginError(
                "rejected",
                self._rejection_message(exc.status_code),
                status_code=exc.status_code,
            ) from exc
        except ApiDecodeError as exc:
            message = str(exc) if str(exc) == "No data received" else "Failed to decode response"
            raise LoginError("decode", message) from exc

        session = self._session_from_body(body)
        logger.info("Login successful for %s", session.username)
        logger.debug("Issued token %s", mask_token(session.token))
        if persist:
            self.remember(session)
        return session

    def logout(self, session: Session) -> Session:
        try:
            self._store.clear()
        except Exception as exc:
            logger.warning("Could not clear stored token: %s", exc)

        if session.is_authenticated:
            logger.info("Logged out %s", session.username)
        return Session(username=session.username, token=None)

    def restore(self) -> Session:
        try:
            stored = self._store.load()
        except Exception as exc:
            logger.warning("Could not read stored session: %s", exc)
            return LOGGED_OUT_SESSION

        if stored is None or not stored.is_authenticated:
            return LOGGED_OUT_SESSION

        logger.info("Restored session for %s", stored.username)
        return stored

    def remember(self, session: Session) -> None:
        try:
            self._store.save(session)
        except Exception as exc:
            logger.warning("Could not persist session token: %s", exc)

    @staticmethod
    def _session_from_body(body: dict[str, Any]) -> Session:
        username = body.get("username")
        token = body.get("token")
        if not isinstance(username, str) or not isinstance(token, str) or not token:
            logger.warning("Login response missing username or token: keys=%s", sorted(body))
            raise LoginError("decode", "Failed to decode response")
        return Session(username=username, token=token)

    @staticmethod
    def _rejection_message(status_code: int) -> str:
        if status_code in (401, 403):
            return "Failed to login: invalid username or password"
        return f"Failed to login: server returned HTTP {status_code}"
