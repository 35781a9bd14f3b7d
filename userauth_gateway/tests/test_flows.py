"""Unit tests for the login, login-callback and logout flows."""

import pytest
from starlette.requests import Request

from userauth_gateway.auth.config import build_user_auth_config
from userauth_gateway.auth.flows import (
    build_callback_url,
    call_hook,
    login_callback_flow,
    login_flow,
    logout_flow,
    unpack_login_result,
)
from userauth_gateway.auth.session import PENDING_REFERER_KEY, SessionStore
from userauth_gateway.middleware.gate import current_url, encode_continuation


def make_request(path="/", query="", headers=None, session=None):
    raw_headers = [(b"host", b"app.example.com")]
    for key, value in (headers or {}).items():
        raw_headers.append((key.lower().encode(), value.encode()))
    scope = {
        "type": "http",
        "method": "GET",
        "scheme": "http",
        "server": ("app.example.com", 80),
        "root_path": "",
        "path": path,
        "raw_path": path.encode(),
        "query_string": query.encode(),
        "headers": raw_headers,
    }
    if session is not None:
        scope["session"] = session
    return Request(scope)


def make_config(**options):
    calls = []

    async def get_user(request):
        calls.append(request.url.path)
        return {"name": "alice"} if request.query_params.get("ticket") else None

    def formatter(url, root_path, request):
        return "https://sso.example.com/login?redirect=" + url

    options.setdefault("get_user", get_user)
    options.setdefault("login_url_formatter", formatter)
    return build_user_auth_config(**options), calls


class TestHooks:
    """Tests for hook invocation helpers."""

    @pytest.mark.asyncio
    async def test_call_hook_sync(self):
        assert await call_hook(lambda a, b: a + b, 1, 2) == 3

    @pytest.mark.asyncio
    async def test_call_hook_async(self):
        async def hook(value):
            return value * 2

        assert await call_hook(hook, 21) == 42

    def test_unpack_tuple_and_list(self):
        assert unpack_login_result(("u", None)) == ("u", None)
        assert unpack_login_result(["u", "/next"]) == ("u", "/next")

    @pytest.mark.parametrize("result", [None, "user", {"user": 1}, ("u",), (1, 2, 3)])
    def test_unpack_rejects_other_shapes(self, result):
        with pytest.raises(TypeError, match="login_callback must return"):
            unpack_login_result(result)


class TestBuildCallbackUrl:
    """Tests for callback URL construction."""

    def test_request_host_and_scheme(self):
        config, _ = make_config()
        assert build_callback_url(make_request(), config) == (
            "http://app.example.com/login/callback"
        )

    def test_configured_host_and_protocol(self):
        config, _ = make_config(host="auth.example.com:8443", protocol="https")
        assert build_callback_url(make_request(), config) == (
            "https://auth.example.com:8443/login/callback"
        )

    def test_forwarded_headers_need_trust_proxy(self):
        headers = {"x-forwarded-host": "public.example.com", "x-forwarded-proto": "https"}
        config, _ = make_config()
        assert build_callback_url(make_request(headers=headers), config) == (
            "http://app.example.com/login/callback"
        )

        config, _ = make_config(trust_proxy=True)
        assert build_callback_url(make_request(headers=headers), config) == (
            "https://public.example.com/login/callback"
        )

    def test_first_forwarded_value(self):
        headers = {
            "x-forwarded-host": "a.example.com, b.example.com",
            "x-forwarded-proto": "https,http",
        }
        config, _ = make_config(trust_proxy=True)
        assert build_callback_url(make_request(headers=headers), config) == (
            "https://a.example.com/login/callback"
        )

    def test_configured_values_beat_forwarded(self):
        headers = {"x-forwarded-host": "public.example.com"}
        config, _ = make_config(trust_proxy=True, host="fixed.example.com")
        assert build_callback_url(make_request(headers=headers), config) == (
            "http://fixed.example.com/login/callback"
        )

    def test_root_path_in_callback(self):
        config, _ = make_config(root_path="/app")
        assert build_callback_url(make_request(), config) == (
            "http://app.example.com/app/login/callback"
        )


class TestLoginFlow:
    """Tests for login_flow."""

    @pytest.mark.asyncio
    async def test_stores_referer_and_redirects(self):
        config, calls = make_config()
        data = {}
        request = make_request("/login", "redirect=/user/1", session=data)
        response = await login_flow(request, SessionStore(data), config)
        assert response.status_code == 302
        assert response.headers["location"] == (
            "https://sso.example.com/login?redirect="
            "http://app.example.com/login/callback"
        )
        assert data == {PENDING_REFERER_KEY: "/user/1"}
        assert calls == []

    @pytest.mark.asyncio
    async def test_without_session(self):
        config, _ = make_config()
        response = await login_flow(make_request("/user"), None, config)
        assert response.status_code == 302

    @pytest.mark.asyncio
    async def test_async_formatter(self):
        async def formatter(url, root_path, request):
            return f"/sso?cb={url}&root={root_path}"

        config, _ = make_config(login_url_formatter=formatter, root_path="/app")
        data = {}
        request = make_request("/app/login", session=data)
        response = await login_flow(request, SessionStore(data), config)
        assert response.headers["location"] == (
            "/sso?cb=http://app.example.com/app/login/callback&root=/app"
        )
        assert data[PENDING_REFERER_KEY] == "/app"


class TestLoginCallbackFlow:
    """Tests for login_callback_flow."""

    @pytest.mark.asyncio
    async def test_stores_user(self):
        config, calls = make_config()
        data = {PENDING_REFERER_KEY: "/user/1"}
        request = make_request("/login/callback", "ticket=t1", session=data)
        response = await login_callback_flow(request, SessionStore(data), config)
        assert response.headers["location"] == "/user/1"
        assert data == {"user": {"name": "alice"}}
        assert calls == ["/login/callback"]

    @pytest.mark.asyncio
    async def test_already_logged_in_skips_get_user(self):
        config, calls = make_config()
        data = {"user": {"name": "bob"}}
        request = make_request("/login/callback", "ticket=t1", session=data)
        response = await login_callback_flow(request, SessionStore(data), config)
        assert response.headers["location"] == "/"
        assert data == {"user": {"name": "bob"}}
        assert calls == []

    @pytest.mark.asyncio
    async def test_no_user(self):
        config, _ = make_config()
        data = {PENDING_REFERER_KEY: "/user/1"}
        request = make_request("/login/callback", session=data)
        response = await login_callback_flow(request, SessionStore(data), config)
        assert response.headers["location"] == "/user/1"
        assert data == {}

    @pytest.mark.asyncio
    async def test_pending_referer_cleared_on_error(self):
        async def get_user(request):
            raise RuntimeError("provider down")

        config, _ = make_config(get_user=get_user)
        data = {PENDING_REFERER_KEY: "/user/1"}
        request = make_request("/login/callback", session=data)
        with pytest.raises(RuntimeError, match="provider down"):
            await login_callback_flow(request, SessionStore(data), config)
        assert PENDING_REFERER_KEY not in data

    @pytest.mark.asyncio
    async def test_login_callback_transforms_user(self):
        def login_callback(request, user):
            return {"id": user["name"]}, "/welcome"

        config, _ = make_config(login_callback=login_callback, user_field="account")
        data = {}
        request = make_request("/login/callback", "ticket=t1", session=data)
        response = await login_callback_flow(request, SessionStore(data), config)
        assert response.headers["location"] == "/welcome"
        assert data == {"account": {"id": "alice"}}

    @pytest.mark.asyncio
    async def test_bad_login_callback_result(self):
        config, _ = make_config(login_callback=lambda request, user: user)
        data = {}
        request = make_request("/login/callback", "ticket=t1", session=data)
        with pytest.raises(TypeError):
            await login_callback_flow(request, SessionStore(data), config)
        assert "user" not in data


class TestLogoutFlow:
    """Tests for logout_flow."""

    @pytest.mark.asyncio
    async def test_clears_user(self):
        seen = []

        def logout_callback(request, user):
            seen.append(user)

        config, _ = make_config(logout_callback=logout_callback)
        data = {"user": {"name": "alice"}, "other": 1}
        request = make_request("/logout", headers={"referer": "/page"}, session=data)
        response = await logout_flow(request, SessionStore(data), config)
        assert response.headers["location"] == "/page"
        assert data == {"other": 1}
        assert seen == [{"name": "alice"}]

    @pytest.mark.asyncio
    async def test_no_user_skips_hook(self):
        def logout_callback(request, user):
            raise AssertionError("should not be called")

        config, _ = make_config(logout_callback=logout_callback)
        data = {}
        request = make_request("/logout", session=data)
        response = await logout_flow(request, SessionStore(data), config)
        assert response.headers["location"] == "/"

    @pytest.mark.asyncio
    async def test_hook_error_keeps_user(self):
        async def logout_callback(request, user):
            raise RuntimeError("logout failed")

        config, _ = make_config(logout_callback=logout_callback)
        data = {"user": {"name": "alice"}}
        request = make_request("/logout", session=data)
        with pytest.raises(RuntimeError):
            await logout_flow(request, SessionStore(data), config)
        assert data == {"user": {"name": "alice"}}

    @pytest.mark.asyncio
    async def test_logout_referer_rejected(self):
        config, _ = make_config()
        data = {"user": {"name": "alice"}}
        request = make_request("/logout", "redirect=/logout/again", session=data)
        response = await logout_flow(request, SessionStore(data), config)
        assert response.headers["location"] == "/"


class TestContinuation:
    """Tests for the login continuation URL."""

    def test_encode_like_uri_component(self):
        assert encode_continuation("/user/a b?x=1&y=(2)") == (
            "%2Fuser%2Fa%20b%3Fx%3D1%26y%3D(2)"
        )

    def test_unicode(self):
        assert encode_continuation("/café") == "%2Fcaf%C3%A9"

    def test_lone_surrogate_falls_back(self):
        url = "/bad\ud800"
        assert encode_continuation(url) == url

    def test_current_url(self):
        assert current_url(make_request("/a", "b=1")) == "/a?b=1"
        assert current_url(make_request("/a")) == "/a"

    def test_current_url_keeps_escapes(self):
        request = make_request("/user/a?b", "x=%2F")
        request.scope["raw_path"] = b"/user/a%3Fb"
        assert current_url(request) == "/user/a%3Fb?x=%2F"

    def test_current_url_without_raw_path(self):
        request = make_request("/user/a")
        del request.scope["raw_path"]
        assert current_url(request) == "/user/a"
