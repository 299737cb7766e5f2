from types import SimpleNamespace

import pytest
from fastapi import HTTPException
from starlette.requests import Request

from storefront.utils import security


def _request(headers=None, cookies=None):
    raw_headers = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    if cookies:
        raw_headers.append((b"cookie", "; ".join(f"{k}={v}" for k, v in cookies.items()).encode()))
    return Request({"type": "http", "method": "GET", "path": "/", "headers": raw_headers, "query_string": b""})


def _auth_response(user_id="u1", email="ada@example.com", metadata=None):
    user = SimpleNamespace(id=user_id, email=email, user_metadata=metadata or {"full_name": "Ada Lovelace"})
    return SimpleNamespace(user=user)


def test_bearer_token_has_priority_over_cookie():
    req = _request(headers={"Authorization": "Bearer abc"}, cookies={"sb_access": "cookie-token"})
    assert security._token_from_request(req) == "abc"
    assert security._token_from_request(_request(cookies={"sb_access": "cookie-token"})) == "cookie-token"
    assert security._token_from_request(_request()) is None


def test_get_user_from_token(mock_supabase):
    mock_supabase.auth.get_user.return_value = _auth_response()

    user = security.get_user_from_token("jwt")

    assert user == {"id": "u1", "email": "ada@example.com", "name": "Ada Lovelace"}


def test_optional_user_is_none_for_anonymous_or_invalid(mock_supabase):
    assert security.get_optional_user(_request()) is None

    mock_supabase.auth.get_user.side_effect = RuntimeError("invalid JWT")
    assert security.get_optional_user(_request(headers={"Authorization": "Bearer bad"})) is None


def test_current_user_requires_token(mock_supabase):
    with pytest.raises(HTTPException) as exc:
        security.get_current_user(_request())
    assert exc.value.status_code == 401

    mock_supabase.auth.get_user.return_value = SimpleNamespace(user=None)
    with pytest.raises(HTTPException) as exc:
        security.get_current_user(_request(headers={"Authorization": "Bearer expired"}))
    assert exc.value.status_code == 401
