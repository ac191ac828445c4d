"""
HTTP boundary: status mapping, headers and error cards.
"""
import pytest

import app as app_module
import github_client
from github_client import GitHubAPIError, UserNotFound

USER = {
    "login": "octocat",
    "name": "The Octocat",
    "contributionsCollection": {"totalCommitContributions": 321, "totalPullRequestReviewContributions": 150},
    "repositories": {"nodes": [{"name": "hello-world", "stargazerCount": 1000}]},
}


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setenv("GH_TOKEN", "tok")
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    app_module.app.config["TESTING"] = True
    return app_module.app.test_client()


def _fetch_returning(user):
    calls = []

    def fake_fetch(token, username):
        calls.append((token, username))
        return user

    return fake_fetch, calls


def _fetch_raising(exc):
    def fake_fetch(token, username):
        raise exc

    return fake_fetch


def test_card_success(client, monkeypatch):
    fake, calls = _fetch_returning(USER)
    monkeypatch.setattr(github_client, "fetch_user", fake)

    resp = client.get("/api?username=octocat&theme=dracula&chaos=4")

    assert resp.status_code == 200
    assert resp.mimetype == "image/svg+xml"
    assert resp.headers["Cache-Control"] == f"public, max-age={app_module.CACHE_MAX_AGE}, s-maxage={app_module.CACHE_MAX_AGE}"
    assert resp.headers["Access-Control-Allow-Origin"] == "*"
    assert calls == [("tok", "octocat")]
    body = resp.get_data(as_text=True)
    assert "Code Guardian" in body
    assert "@octocat" in body


def test_card_is_reproducible(client, monkeypatch):
    fake, _ = _fetch_returning(USER)
    monkeypatch.setattr(github_client, "fetch_user", fake)
    first = client.get("/api/card?username=octocat&chaos=8").get_data()
    second = client.get("/api/card?username=octocat&chaos=8").get_data()
    assert first == second


@pytest.mark.parametrize("method", ["post", "put", "delete", "options"])
@pytest.mark.parametrize("path", ["/api", "/api/card", "/api/metrics"])
def test_non_get_is_rejected(client, method, path):
    resp = getattr(client, method)(path + "?username=octocat")
    assert resp.status_code == 405
    assert resp.get_json() == {"error": "Method not allowed"}
    assert resp.headers["Access-Control-Allow-Origin"] == "*"
    assert resp.headers["Cache-Control"] == "no-store"


def test_missing_token_renders_config_error(client, monkeypatch):
    monkeypatch.delenv("GH_TOKEN")
    resp = client.get("/api?username=octocat")
    assert resp.status_code == 500
    assert resp.mimetype == "image/svg+xml"
    assert "GH_TOKEN" in resp.get_data(as_text=True)
    assert resp.headers["Cache-Control"] == "no-store"


def test_missing_username(client):
    resp = client.get("/api")
    assert resp.status_code == 400
    assert "username" in resp.get_data(as_text=True)


def test_invalid_username(client):
    resp = client.get("/api?username=not/a/user")
    assert resp.status_code == 400


def test_unknown_user_is_404(client, monkeypatch):
    monkeypatch.setattr(github_client, "fetch_user", _fetch_raising(UserNotFound("nope")))
    resp = client.get("/api?username=ghost")
    assert resp.status_code == 404
    assert "User not found" in resp.get_data(as_text=True)


def test_upstream_failure_is_502(client, monkeypatch):
    monkeypatch.setattr(github_client, "fetch_user", _fetch_raising(GitHubAPIError("GitHub API error (503): " + "z" * 400)))
    resp = client.get("/api?username=octocat")
    assert resp.status_code == 502
    body = resp.get_data(as_text=True)
    assert "503" in body
    assert "z" * 200 not in body


def test_unexpected_failure_is_500(client, monkeypatch):
    monkeypatch.setattr(github_client, "fetch_user", _fetch_raising(KeyError("data")))
    resp = client.get("/api?username=octocat")
    assert resp.status_code == 500
    assert resp.mimetype == "image/svg+xml"


def test_unknown_theme_and_bad_chaos_fall_back(client, monkeypatch):
    fake, _ = _fetch_returning(USER)
    monkeypatch.setattr(github_client, "fetch_user", fake)
    fallback = client.get("/api?username=octocat&theme=neon&chaos=wild").get_data()
    baseline = client.get(f"/api?username=octocat&theme=default&chaos={app_module.DEFAULT_CHAOS}").get_data()
    assert fallback == baseline


def test_metrics_json(client, monkeypatch):
    fake, _ = _fetch_returning(USER)
    monkeypatch.setattr(github_client, "fetch_user", fake)
    data = client.get("/api/metrics?username=octocat").get_json()
    assert data["commits"] == 321
    assert data["stars"] == 1000
    # 150*3 + 321*0.1 + 1000*2
    assert data["impactScore"] == 2482
    assert data["rank"] == {"level": "S+", "title": "LEGEND"}
    assert data["persona"] == "Code Guardian"


def test_metrics_json_errors(client, monkeypatch):
    monkeypatch.setattr(github_client, "fetch_user", _fetch_raising(UserNotFound("nope")))
    resp = client.get("/api/metrics?username=ghost")
    assert resp.status_code == 404
    assert resp.get_json() == {"error": "User not found on GitHub."}


def test_healthz(client):
    assert client.get("/healthz").get_json() == {"ok": True, "token_configured": True}


def test_metrics_json_errors_are_not_cached(client, monkeypatch):
    monkeypatch.delenv("GH_TOKEN")
    resp = client.get("/api/metrics?username=octocat")
    assert resp.status_code == 500
    assert resp.headers["Cache-Control"] == "no-store"
    assert resp.headers["Access-Control-Allow-Origin"] == "*"
