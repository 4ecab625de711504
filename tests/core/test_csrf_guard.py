# tests/core/test_csrf_guard.py
import pytest
from starlette.responses import Response

from contracthub.core.exceptions import ForbiddenError
from contracthub.core.security.csrf import CSRFGuard


@pytest.fixture
def guard():
    return CSRFGuard(exempt_paths={"/auth/google/callback"})


class TestCSRFGuard:

    @pytest.mark.parametrize("method", ["GET", "HEAD", "OPTIONS", "get"])
    def test_safe_methods_pass_without_tokens(self, guard, method):
        guard.verify(method, "/api/contracts", None, None)

    @pytest.mark.parametrize("method", ["POST", "PUT", "DELETE", "PATCH"])
    def test_unsafe_methods_need_tokens(self, guard, method):
        with pytest.raises(ForbiddenError):
            guard.verify(method, "/api/contracts", None, None)

    def test_matching_tokens_pass(self, guard):
        guard.verify("POST", "/api/contracts", "a" * 64, "a" * 64)

    def test_mismatched_tokens_fail(self, guard):
        with pytest.raises(ForbiddenError) as exc_info:
            guard.verify("POST", "/api/contracts", "a" * 64, "b" * 64)

        assert exc_info.value.status_code == 403

    def test_header_only_fails(self, guard):
        with pytest.raises(ForbiddenError):
            guard.verify("POST", "/api/contracts", "a" * 64, None)

    def test_exempt_path(self, guard):
        guard.verify("POST", "/auth/google/callback", None, None)

    def test_issue_sets_readable_cookie_and_header(self, guard):
        response = Response()

        token = guard.issue(response)

        assert len(token) == 64
        assert response.headers["x-csrf-token"] == token
        cookie = response.headers["set-cookie"]
        assert cookie.startswith(f"csrf-token={token}")
        assert "httponly" not in cookie.lower()
        assert "samesite=strict" in cookie.lower()
        assert "Path=/" in cookie
