"""Tests for the session manager: login, logout and restore."""
import logging
from unittest.mock import MagicMock

import pytest

from derma_client.apis import LoginApi
from derma_client.auth import LoginError, SessionManager
from derma_client.http import ApiDecodeError, ApiHttpError, ApiNetworkError
from derma_client.models import Credentials, Session
from derma_client.session_store import MemorySessionStore


@pytest.fixture
def login_api():
    return MagicMock(spec=LoginApi)


@pytest.fixture
def store():
    return MemorySessionStore()


@pytest.fixture
def manager(login_api, store):
    return SessionManager(login_api, store)


class TestLogin:
    def test_success_returns_server_session(self, manager, login_api, store):
        login_api.login.return_value = {"username": "alice", "token": "abc123"}

        session = manager.login("alice", "correct-pw")

        assert session == Session(username="alice", token="abc123")
        assert session.is_authenticated
        login_api.login.assert_called_once_with(Credentials("alice", "correct-pw"))
        assert store.load() == session

    def test_username_comes_from_server(self, manager, login_api):
        login_api.login.return_value = {"username": "Alice", "token": "abc123"}

        assert manager.login("alice", "correct-pw").username == "Alice"

    def test_rejected_credentials(self, manager, login_api, store):
        login_api.login.side_effect = ApiHttpError(401, "HTTP 401: Unauthorized")

        with pytest.raises(LoginError) as exc_info:
            manager.login("alice", "wrong-pw")

        assert exc_info.value.kind == "rejected"
        assert exc_info.value.status_code == 401
        assert "invalid username or password" in str(exc_info.value)
        assert store.load() is None

    def test_server_error_is_rejected(self, manager, login_api):
        login_api.login.side_effect = ApiHttpError(503, "HTTP 503: down")

        with pytest.raises(LoginError, match="HTTP 503") as exc_info:
            manager.login("alice", "pw")

        assert exc_info.value.kind == "rejected"

    def test_network_failure(self, manager, login_api):
        login_api.login.side_effect = ApiNetworkError("connection refused")

        with pytest.raises(LoginError, match="Failed to login: connection refused") as exc_info:
            manager.login("alice", "pw")

        assert exc_info.value.kind == "network"

    def test_empty_body(self, manager, login_api):
        login_api.login.side_effect = ApiDecodeError("No data received")

        with pytest.raises(LoginError, match="No data received") as exc_info:
            manager.login("alice", "pw")

        assert exc_info.value.kind == "decode"

    def test_undecodable_body(self, manager, login_api):
        login_api.login.side_effect = ApiDecodeError("Response is not valid JSON: ...")

        with pytest.raises(LoginError, match="Failed to decode response") as exc_info:
            manager.login("alice", "pw")

        assert exc_info.value.kind == "decode"

    @pytest.mark.parametrize(
        "body",
        [
            {"username": "alice"},
            {"token": "abc123"},
            {"username": "alice", "token": ""},
            {"username": "alice", "token": 42},
        ],
    )
    def test_incomplete_body_is_decode_error(self, manager, login_api, store, body):
        login_api.login.return_value = body

        with pytest.raises(LoginError) as exc_info:
            manager.login("alice", "pw")

        assert exc_info.value.kind == "decode"
        assert store.load() is None

    def test_login_without_persist_leaves_store_alone(self, manager, login_api, store):
        login_api.login.return_value = {"username": "alice", "token": "abc123"}

        session = manager.login("alice", "pw", persist=False)

        assert store.load() is None
        manager.remember(session)
        assert store.load() == session

    def test_token_only_logged_at_debug(self, manager, login_api, caplog):
        login_api.login.return_value = {"username": "alice", "token": "abc123secret"}

        with caplog.at_level(logging.DEBUG, logger="derma_client.auth"):
            manager.login("alice", "pw")

        info_text = " ".join(r.getMessage() for r in caplog.records if r.levelno >= logging.INFO)
        debug_text = " ".join(r.getMessage() for r in caplog.records if r.levelno == logging.DEBUG)
        assert "abc1" not in info_text
        assert "abc1..." in debug_text
        assert "abc123secret" not in debug_text

    def test_store_failure_does_not_fail_login(self, login_api):
        broken_store = MagicMock()
        broken_store.save.side_effect = OSError("read-only")
        login_api.login.return_value = {"username": "alice", "token": "abc123"}

        session = SessionManager(login_api, broken_store).login("alice", "pw")

        assert session.token == "abc123"


class TestLogout:
    def test_clears_token_and_store(self, manager, store):
        session = Session(username="alice", token="abc123")
        store.save(session)

        logged_out = manager.logout(session)

        assert logged_out.token is None
        assert not logged_out.is_authenticated
        assert store.load() is None

    def test_is_idempotent(self, manager):
        once = manager.logout(Session(username="alice", token="abc123"))
        twice = manager.logout(once)

        assert once == twice

    def test_store_failure_is_swallowed(self, login_api):
        broken_store = MagicMock()
        broken_store.clear.side_effect = OSError("locked")

        logged_out = SessionManager(login_api, broken_store).logout(Session("alice", "abc123"))

        assert logged_out.token is None


class TestRestore:
    def test_empty_store(self, manager):
        assert not manager.restore().is_authenticated

    def test_stored_session(self, manager, store):
        store.save(Session(username="alice", token="abc123"))

        assert manager.restore() == Session(username="alice", token="abc123")

    def test_unreadable_store(self, login_api):
        broken_store = MagicMock()
        broken_store.load.side_effect = OSError("corrupt")

        assert not SessionManager(login_api, broken_store).restore().is_authenticated


class TestLoginOverHttp:
    def test_login_posts_credentials(self, settings, http_client, http_session, make_response):
        http_session.post.return_value = make_response(200, {"username": "alice", "token": "abc123"})
        manager = SessionManager(LoginApi(settings, http_client), MemorySessionStore())

        session = manager.login("alice", "correct-pw")

        assert session.token == "abc123"
        args, kwargs = http_session.post.call_args
        assert args == ("http://api.test/public/login",)
        assert kwargs["json"] == {"username": "alice", "password": "correct-pw"}
        assert "Authorization" not in kwargs["headers"]

    def test_password_never_in_repr(self):
        assert "correct-pw" not in repr(Credentials("alice", "correct-pw"))
        assert "abc123" not in repr(Session("alice", "abc123"))
