from sites_manager.config import refresh_settings_cache


def test_audits_forbidden_for_regular_users(client):
    assert client.get("/audits/").status_code == 403


def test_mutations_are_audited(client, monkeypatch, site_payload, issue_payload):
    monkeypatch.setenv("ADMIN_EMAILS", "tester@example.com")
    refresh_settings_cache()

    site = client.post("/sites/", json=site_payload(issues=[issue_payload()])).json()
    issue_id = site["issues"][0]["id"]
    client.post(f"/issues/{issue_id}/solve", json={"who_solved": "Ram", "how_solved": "Fixed"})
    client.delete(f"/sites/{site['id']}")

    r = client.get("/audits/")
    assert r.status_code == 200
    actions = {row["action_type"] for row in r.json()}
    assert {"site_create", "issue_solve", "site_delete"} <= actions

    r = client.get("/audits/", params={"target_type": "issue"})
    rows = r.json()
    assert [row["action_type"] for row in rows] == ["issue_solve"]
    assert rows[0]["target_id"] == issue_id
    assert rows[0]["metadata"]["who_solved"] == "Ram"
