"""Test fixtures for userauth-gateway."""

import pytest
from fastapi.testclient import TestClient

from userauth_gateway.settings import GatewaySettings, reset_settings

MOCK_USER = {"nick": "mock user", "userid": 1234}


async def mock_get_user(request):
    """Resolve a user from test headers.

    - ``mockerror``: raise
    - ``mockempty``: no user
    - ``mocklogin``: the mock user, annotated by the ``mock*`` hook headers
    - otherwise: whatever the session already holds
    """
    headers = request.headers
    if headers.get("mockerror"):
        raise RuntimeError("mock getUser error")
    if headers.get("mockempty"):
        return None

    user = request.session.get("user")
    if headers.get("mocklogin"):
        user = dict(MOCK_USER)
    if not user:
        return user

    user = dict(user)
    for header, key in (
        ("mocklogin_redirect", "loginRedirect"),
        ("mocklogin_callbackerror", "loginError"),
        ("mocklogout_redirect", "logoutRedirect"),
        ("mocklogout_callbackerror", "logoutError"),
    ):
        if headers.get(header):
            user[key] = headers[header]
    return user


async def mock_login_callback(request, user):
    if user.get("loginError"):
        raise RuntimeError(user["loginError"])
    return user, user.get("loginRedirect")


async def mock_logout_callback(request, user):
    if user.get("logoutError"):
        raise RuntimeError(user["logoutError"])
    return user.get("logoutRedirect")


def mock_login_url_formatter(url, root_path, request):
    return "/mocklogin?redirect=" + url


@pytest.fixture(autouse=True)
def setup_test_env(monkeypatch):
    """Isolate tests from the caller's environment."""
    monkeypatch.setenv("UA_ENV", "test")
    monkeypatch.setenv("UA_SESSION_SECRET", "test-session-secret")
    for key in (
        "UA_MATCH",
        "UA_IGNORE",
        "UA_ROOT_PATH",
        "UA_PROVIDER_LOGIN_URL",
        "UA_PROVIDER_USERINFO_URL",
        "UA_TRUST_PROXY",
        "UA_SESSION_COOKIE_NAME",
        "UA_SESSION_TTL_SECONDS",
        "UA_LOG_LEVEL",
    ):
        monkeypatch.delenv(key, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def settings():
    return GatewaySettings(
        env="test",
        session_secret="test-session-secret",
        session_secret_from_env=True,
    )


@pytest.fixture
def make_app(settings):
    """Return a factory building the reference app around the mock hooks."""

    def _factory(match=None, ignore=None, *, with_session=True, **options):
        from userauth_gateway.main import build_app

        hooks = {
            "get_user": mock_get_user,
            "login_url_formatter": mock_login_url_formatter,
            "login_callback": mock_login_callback,
            "logout_callback": mock_logout_callback,
        }
        hooks.update(options)
        return build_app(
            settings, with_session=with_session, match=match, ignore=ignore, **hooks
        )

    return _factory


@pytest.fixture
def make_client():
    """Return a factory for non-redirect-following clients.

    Server errors are rendered by the app's error boundary instead of being
    re-raised into the test.
    """
    clients = []

    def _factory(app):
        client = TestClient(
            app, follow_redirects=False, raise_server_exceptions=False
        )
        clients.append(client)
        return client

    yield _factory
    for client in clients:
        client.close()
