from types import SimpleNamespace

from fastapi import Depends, FastAPI, Request
from fastapi.testclient import TestClient

from storefront.utils import rate_limit
from storefront.utils.rate_limit import optional_rate_limit, rate_limit_health_info


def _make_app(times=2, seconds=60):
    app = FastAPI()

    @app.get("/limitedA", dependencies=[Depends(optional_rate_limit(times, seconds))])
    def limited_a():
        return {"ok": True}

    @app.get("/limitedB", dependencies=[Depends(optional_rate_limit(times, seconds))])
    def limited_b():
        return {"ok": True}

    @app.get("/rl_info")
    def rl_info(request: Request):
        return rate_limit_health_info(request)

    return app


def test_local_fallback_blocks_after_limit(monkeypatch):
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")
    client = TestClient(_make_app(times=2))

    codes = [client.get("/limitedA").status_code for _ in range(3)]

    assert codes == [200, 200, 429]


def test_limit_is_per_path_and_cookie(monkeypatch):
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")
    client = TestClient(_make_app(times=1))
    client.cookies.set("sb_access", "some-session")

    assert client.get("/limitedA").status_code == 200
    assert client.get("/limitedA").status_code == 429
    assert client.get("/limitedB").status_code == 200


def test_disabled_flag_bypasses_limit(monkeypatch):
    monkeypatch.delenv("LOCAL_RATE_LIMIT_FALLBACK", raising=False)
    app = _make_app(times=1)
    app.state.rate_limit_enabled = False
    client = TestClient(app)

    assert all(client.get("/limitedA").status_code == 200 for _ in range(5))


def test_uninitialised_limiter_never_blocks(monkeypatch):
    monkeypatch.delenv("LOCAL_RATE_LIMIT_FALLBACK", raising=False)
    client = TestClient(_make_app(times=1))

    assert all(client.get("/limitedA").status_code == 200 for _ in range(3))


def test_health_info_reports_disabled():
    app = _make_app()
    app.state.rate_limit_enabled = False
    client = TestClient(app)

    info = client.get("/rl_info").json()

    assert info["enabled"] is False
    assert "ready" in info


def test_local_fallback_evicts_idle_clients(monkeypatch):
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")
    now = [1000.0]
    monkeypatch.setattr(rate_limit, "time", SimpleNamespace(time=lambda: now[0]))
    app = _make_app(times=5, seconds=60)
    client = TestClient(app)

    for token in ("a", "b", "c"):
        client.cookies.set("sb_access", token)
        client.get("/limitedA")
    assert len(app.state._rl_store) == 3

    now[0] += 61
    client.cookies.set("sb_access", "d")
    assert client.get("/limitedA").status_code == 200

    assert len(app.state._rl_store) == 1
