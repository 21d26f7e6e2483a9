from __future__ import annotations

from dataclasses import replace
import logging
import threading
from typing import Callable

from derma_client.apis import UploadApi, UploadError
from derma_client.auth import LoginError, SessionManager
from derma_client.imaging import ImageEncodingError, encode_jpeg
from derma_client.models import AppState, ServerAck, Session, SessionPhase

logger = logging.getLogger(__name__)

Task = Callable[[], None]
Listener = Callable[[AppState], None]


class UploadBlockedError(RuntimeError):
    pass


def run_in_thread(task: Task) -> None:
    threading.Thread(target=task, daemon=True).start()


def run_inline(task: Task) -> None:
    task()


class DermaService:
    """Owns the login/upload state machine.

    Network calls run through ``background``; every state change they cause is
    handed to ``dispatch`` so that it lands on the thread that owns the UI.
    """

    def __init__(
        self,
        session_manager: SessionManager,
        upload_api: UploadApi,
        jpeg_quality: int = 80,
        background: Callable[[Task], None] = run_in_thread,
        dispatch: Callable[[Task], None] = run_inline,
    ):
        self._session_manager = session_manager
        self._upload_api = upload_api
        self._jpeg_quality = jpeg_quality
        self._background = background
        self._dispatch = dispatch
        self._listeners: list[Listener] = []
        self._login_attempt = 0

        restored = session_manager.restore()
        if restored.is_authenticated:
            self._state = AppState(phase=SessionPhase.LOGGED_IN, session=restored)
        else:
            self._state = AppState()

    @property
    def state(self) -> AppState:
        return self._state

    def set_dispatcher(self, dispatch: Callable[[Task], None]) -> None:
        self._dispatch = dispatch

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def start_login(self, username: str, password: str) -> bool:
        if self._state.phase is not SessionPhase.LOGGED_OUT:
            logger.info("Ignoring login request while %s", self._state.phase.value)
            return False

        username = username.strip()
        if not username or not password:
            self._set_state(replace(self._state, login_error="Username and password are required"))
            return False

        self._login_attempt += 1
        attempt = self._login_attempt
        self._set_state(replace(self._state, phase=SessionPhase.LOGGING_IN, login_error=None))

        def worker() -> None:
            try:
                session = self._session_manager.login(username, password, persist=False)
            except LoginError as exc:
                logger.info("Login failed (%s): %s", exc.kind, exc)
                message = str(exc)
                self._dispatch(lambda: self._finish_login_failure(attempt, message))
                return
            except Exception as exc:
                logger.exception("Unexpected error during login")
                message = f"Failed to login: {exc}"
                self._dispatch(lambda: self._finish_login_failure(attempt, message))
                return

            self._dispatch(lambda: self._finish_login(attempt, session))

        self._background(worker)
        return True

    def _is_current_login(self, attempt: int) -> bool:
        return attempt == self._login_attempt and self._state.phase is SessionPhase.LOGGING_IN

    def _finish_login(self, attempt: int, session: Session) -> None:
        # Stale attempts were never persisted, so dropping them leaves the store alone.
        if not self._is_current_login(attempt):
            logger.info("Discarding result of superseded login for %s", session.username)
            return
        self._session_manager.remember(session)
        self._set_state(AppState(phase=SessionPhase.LOGGED_IN, session=session))

    def _finish_login_failure(self, attempt: int, message: str) -> None:
        if not self._is_current_login(attempt):
            return
        self._set_state(replace(self._state, phase=SessionPhase.LOGGED_OUT, login_error=message))

    def select_image(self, path: str) -> None:
        if self._state.phase is not SessionPhase.LOGGED_IN:
            raise UploadBlockedError("Log in before selecting an image")
        self._set_state(
            replace(self._state, selected_image=path, upload_error=None, last_ack=None)
        )

    def start_upload(self) -> None:
        state = self._state
        if state.phase is not SessionPhase.LOGGED_IN or not state.session.is_authenticated:
            raise UploadBlockedError("Not logged in")
        if state.selected_image is None:
            raise UploadBlockedError("Select an image before uploading")
        if state.uploading:
            raise UploadBlockedError("An upload is already in progress")

        token = state.session.token
        image_path = state.selected_image
        self._set_state(replace(state, uploading=True, upload_error=None, last_ack=None))

        def worker() -> None:
            try:
                payload = encode_jpeg(image_path, self._jpeg_quality)
                ack = self._upload_api.upload(token, payload)
            except (ImageEncodingError, UploadError) as exc:
                logger.warning("Upload of %s failed: %s", image_path, exc)
                message = str(exc)
                self._dispatch(lambda: self._finish_upload(token, error=message))
                return
            except Exception as exc:
                logger.exception("Unexpected error during upload")
                message = f"Upload failed: {exc}"
                self._dispatch(lambda: self._finish_upload(token, error=message))
                return

            self._dispatch(lambda: self._finish_upload(token, ack=ack))

        self._background(worker)

    def _finish_upload(
        self,
        token: str,
        ack: ServerAck | None = None,
        error: str | None = None,
    ) -> None:
        if self._state.session.token != token:
            return
        self._set_state(replace(self._state, uploading=False, last_ack=ack, upload_error=error))

    def logout(self) -> AppState:
        self._login_attempt += 1
        session = self._session_manager.logout(self._state.session)
        self._set_state(AppState(session=session))
        return self._state

    def _set_state(self, state: AppState) -> None:
        self._state = state
        for listener in list(self._listeners):
            listener(state)
