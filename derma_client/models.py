from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


UPLOAD_FIELD_NAME = "file"
UPLOAD_FILENAME = "image.jpg"
UPLOAD_MIME_TYPE = "image/jpeg"


class SessionPhase(str, Enum):
    LOGGED_OUT = "logged_out"
    LOGGING_IN = "logging_in"
    LOGGED_IN = "logged_in"


@dataclass(frozen=True)
class Credentials:
    username: str
    password: str = field(repr=False)

    def to_payload(self) -> dict[str, str]:
        return {"username": self.username, "password": self.password}


@dataclass(frozen=True)
class Session:
    username: str = ""
    token: str | None = field(default=None, repr=False)

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)


LOGGED_OUT_SESSION = Session()


@dataclass(frozen=True)
class UploadRequest:
    payload: bytes = field(repr=False)
    token: str = field(repr=False)
    mime_type: str = UPLOAD_MIME_TYPE
    filename: str = UPLOAD_FILENAME
    field_name: str = UPLOAD_FIELD_NAME

    def files(self) -> dict[str, tuple[str, bytes, str]]:
        return {self.field_name: (self.filename, self.payload, self.mime_type)}


@dataclass(frozen=True)
class ServerAck:
    status_code: int
    body: str = ""


@dataclass(frozen=True)
class AppState:
    phase: SessionPhase = SessionPhase.LOGGED_OUT
    session: Session = LOGGED_OUT_SESSION
    login_error: str | None = None
    selected_image: str | None = None
    uploading: bool = False
    upload_error: str | None = None
    last_ack: ServerAck | None = None

    @property
    def can_upload(self) -> bool:
        return (
            self.phase is SessionPhase.LOGGED_IN
            and self.session.is_authenticated
            and self.selected_image is not None
            and not self.uploading
        )
