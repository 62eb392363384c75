import time
from fastapi import FastAPI, Depends, Request
from fastapi.testclient import TestClient
from labstore.utils.rate_limit import optional_rate_limit, rate_limit_health_info


def _make_app(times=2, seconds=60):
    app = FastAPI()

    @app.get("/limited", dependencies=[Depends(optional_rate_limit(times, seconds))])
    def limited():
        return {"ok": True}

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


def test_rate_limit_fallback_blocks_after_limit(monkeypatch):
    app = _make_app(times=2, seconds=60)
    client = TestClient(app)
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")

    assert client.get("/limited").status_code == 200
    assert client.get("/limited").status_code == 200
    r3 = client.get("/limited")
    assert r3.status_code == 429
    assert r3.json() == {"detail": "Too Many Requests"}


def test_rate_limit_is_per_path_and_token(monkeypatch):
    app = _make_app(times=2, seconds=60)
    client = TestClient(app)
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")

    # Avec un Bearer, la clé inclut le hash du jeton + path
    headers = {"Authorization": "Bearer buyer-token"}
    assert client.get("/limitedA", headers=headers).status_code == 200
    assert client.get("/limitedA", headers=headers).status_code == 200
    assert client.get("/limitedA", headers=headers).status_code == 429

    # path B: indépendant de A
    assert client.get("/limitedB", headers=headers).status_code == 200

    # autre acheteur: compteur séparé
    other = {"Authorization": "Bearer other-token"}
    assert client.get("/limitedA", headers=other).status_code == 200


def test_rate_limit_resets_after_window_sleep(monkeypatch):
    app = _make_app(times=1, seconds=1)
    client = TestClient(app)
    monkeypatch.setenv("LOCAL_RATE_LIMIT_FALLBACK", "1")

    assert client.get("/limited").status_code == 200
    assert client.get("/limited").status_code == 429

    # Attendre > 1s pour vider la fenêtre
    time.sleep(1.1)
    assert client.get("/limited").status_code == 200


def test_rate_limit_disabled_flag_bypasses_limit(monkeypatch):
    monkeypatch.delenv("LOCAL_RATE_LIMIT_FALLBACK", raising=False)
    app = _make_app(times=1, seconds=60)
    client = TestClient(app)
    app.state.rate_limit_enabled = False

    for _ in range(3):
        assert client.get("/limited").status_code == 200


def test_rate_limit_without_redis_never_blocks(monkeypatch):
    # fastapi-limiter non initialisé: la dépendance laisse passer
    monkeypatch.delenv("LOCAL_RATE_LIMIT_FALLBACK", raising=False)
    monkeypatch.setattr("fastapi_limiter.FastAPILimiter.redis", None)
    app = _make_app(times=1, seconds=60)
    client = TestClient(app)

    for _ in range(3):
        assert client.get("/limited").status_code == 200


def test_rate_limit_health_info(monkeypatch):
    monkeypatch.delenv("LOCAL_RATE_LIMIT_FALLBACK", raising=False)
    monkeypatch.setattr("fastapi_limiter.FastAPILimiter.redis", None)
    app = _make_app()
    client = TestClient(app)

    app.state.rate_limit_enabled = True
    info = client.get("/rl_info").json()
    assert info == {"enabled": True, "ready": False, "backend": None}

    # Redis prêt + URL connue
    monkeypatch.setattr("fastapi_limiter.FastAPILimiter.redis", object())
    monkeypatch.setenv("RATE_LIMIT_REDIS_URL", "redis://localhost:6379/0")
    info2 = client.get("/rl_info").json()
    assert info2["ready"] is True
    assert info2["backend"] == "redis"
    assert info2["redis"] == {"scheme": "redis", "host": "localhost", "port": 6379}
