from sites_manager.config import refresh_settings_cache


def test_health(anon_client):
    r = anon_client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok", "service": "sites-manager-service"}


def test_build_info(anon_client, monkeypatch):
    monkeypatch.setenv("BUILD_SHA", "abc123")
    monkeypatch.setenv("VERSION", "1.2.3")
    refresh_settings_cache()
    body = anon_client.get("/build-info").json()
    assert body["build_sha"] == "abc123"
    assert body["version"] == "1.2.3"
    assert body["build_timestamp"] is None


def test_trailing_slash_is_not_redirected(client):
    assert client.get("/sites", follow_redirects=False).status_code == 404
