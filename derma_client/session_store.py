"""Where the bearer token lives between logins.

``MemorySessionStore`` keeps the session for the life of the process only.
``FileSessionStore`` writes it through an ``msal_extensions`` persistence,
preferring the platform's encrypted store and falling back to a plain file.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Protocol

from msal_extensions import FilePersistence, build_encrypted_persistence
from msal_extensions.persistence import PersistenceNotFound

from derma_client.config import AppSettings
from derma_client.models import Session

logger = logging.getLogger(__name__)

TOKEN_KEY = "jwtToken"
USERNAME_KEY = "username"


class SessionStore(Protocol):
    def load(self) -> Session | None: ...

    def save(self, session: Session) -> None: ...

    def clear(self) -> None: ...


class MemorySessionStore:
    def __init__(self) -> None:
        self._session: Session | None = None

    def load(self) -> Session | None:
        return self._session

    def save(self, session: Session) -> None:
        self._session = session

    def clear(self) -> None:
        self._session = None


class FileSessionStore:
    def __init__(self, path: str, encrypted: bool = True):
        self._persistence = self._build_persistence(path, encrypted)

    @property
    def location(self) -> str:
        return self._persistence.get_location()

    @staticmethod
    def _build_persistence(path: str, encrypted: bool):
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        if not encrypted:
            return FilePersistence(path)
        try:
            return build_encrypted_persistence(path)
        except Exception as exc:
            logger.warning("Encrypted token store unavailable (%s); using plain file %s", exc, path)
            return FilePersistence(path)

    def load(self) -> Session | None:
        try:
            raw = self._persistence.load()
        except PersistenceNotFound:
            return None

        if not raw or not raw.strip():
            return None

        try:
            document = json.loads(raw)
        except ValueError:
            logger.warning("Ignoring unreadable token store at %s", self.location)
            return None

        if not isinstance(document, dict):
            return None

        token = document.get(TOKEN_KEY)
        username = document.get(USERNAME_KEY)
        if not isinstance(token, str) or not token or not isinstance(username, str):
            return None
        return Session(username=username, token=token)

    def save(self, session: Session) -> None:
        document = {USERNAME_KEY: session.username, TOKEN_KEY: session.token}
        self._persistence.save(json.dumps(document))

    def clear(self) -> None:
        self._persistence.save("")


def build_session_store(settings: AppSettings) -> SessionStore:
    if settings.token_store == "file":
        return FileSessionStore(settings.token_cache_path)
    return MemorySessionStore()
