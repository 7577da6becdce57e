from openpyxl import load_workbook

from fest.common import storage

from conftest import create_event, create_group_event, get_event, signup, signup_admin


def register(client, user, event_id, payload=None):
    response = client.post(f"/api/registrations/{event_id}", json=payload or {}, headers=user["headers"])
    assert response.status_code == 201, response.text
    return response.json()


# ============ RECONCILIATION ============

def test_recompute_fixes_drift_and_zeroes_empty_events(client):
    admin = signup_admin(client)
    busy = create_event(client, admin, title="Busy")
    empty = create_event(client, admin, title="Empty")
    register(client, signup(client), busy["id"])
    register(client, signup(client), busy["id"])

    client.sql("UPDATE events SET registered_count = 7 WHERE id = :id", id=busy["id"])
    client.sql("UPDATE events SET registered_count = 3 WHERE id = :id", id=empty["id"])

    response = client.post("/api/admin/events/recompute-counts", headers=admin["headers"])
    assert response.status_code == 200, response.text
    assert response.json()["counts"] == {str(busy["id"]): 2, str(empty["id"]): 0}
    assert get_event(client, busy["id"])["registered_count"] == 2
    assert get_event(client, empty["id"])["registered_count"] == 0

    # Idempotent
    again = client.post("/api/admin/events/recompute-counts", headers=admin["headers"])
    assert again.json()["counts"] == response.json()["counts"]


def test_recompute_ignores_cancelled_registrations(client):
    admin = signup_admin(client)
    event = create_event(client, admin)
    registration = register(client, signup(client), event["id"])
    register(client, signup(client), event["id"])
    client.sql("UPDATE registrations SET status = 'cancelled' WHERE id = :id", id=registration["id"])

    client.post("/api/admin/events/recompute-counts", headers=admin["headers"])
    assert get_event(client, event["id"])["registered_count"] == 1


def test_stats_reconcile_before_counting(client):
    admin = signup_admin(client)
    first = create_event(client, admin)
    second = create_event(client, admin, title="Hidden")
    client.patch(f"/api/admin/events/{second['id']}/toggle", headers=admin["headers"])
    register(client, signup(client), first["id"])
    signup(client)
    client.sql("UPDATE events SET registered_count = 9")

    response = client.get("/api/admin/stats", headers=admin["headers"])
    assert response.status_code == 200
    assert response.json() == {
        "total_events": 2,
        "listed_events": 1,
        "total_users": 2,
        "total_registrations": 1,
    }
    assert get_event(client, first["id"])["registered_count"] == 1


# ============ USERS ============

def test_delete_user_releases_slots_per_event(client, outbox):
    admin = signup_admin(client)
    solo = create_event(client, admin, title="Solo")
    group = create_group_event(client, admin, title="Group")
    untouched = create_event(client, admin, title="Untouched")

    doomed = signup(client, name="Doomed User")
    teammate = signup(client)
    bystander = signup(client)
    register(client, doomed, solo["id"])
    register(client, doomed, group["id"], {"teamName": "Crew", "teamMembers": [{"pid": teammate["pid"]}]})
    register(client, bystander, solo["id"])
    register(client, bystander, untouched["id"])

    response = client.delete(f"/api/admin/users/{doomed['user']['id']}", headers=admin["headers"])
    assert response.status_code == 200, response.text

    assert get_event(client, solo["id"])["registered_count"] == 1
    assert get_event(client, group["id"])["registered_count"] == 0
    assert get_event(client, untouched["id"])["registered_count"] == 1
    assert client.sql("SELECT COUNT(*) FROM registration_team_members")[0][0] == 0
    assert client.sql("SELECT COUNT(*) FROM users WHERE id = :id", id=doomed["user"]["id"])[0][0] == 0
    assert client.get("/api/auth/me", headers=doomed["headers"]).status_code == 401

    notices = [m for m in outbox if m["to"] == doomed["user"]["email"] and "removed" in m["subject"]]
    assert len(notices) == 1


def test_admin_accounts_cannot_be_deleted(client):
    admin = signup_admin(client)
    response = client.delete(f"/api/admin/users/{admin['user']['id']}", headers=admin["headers"])
    assert response.status_code == 403
    assert client.delete("/api/admin/users/999", headers=admin["headers"]).status_code == 404


def test_list_users_excludes_admins_and_includes_registrations(client):
    admin = signup_admin(client)
    event = create_event(client, admin, title="Quiz")
    user = signup(client, name="Quiz Master")
    register(client, user, event["id"])
    signup(client, name="Idle User")

    users = client.get("/api/admin/users", headers=admin["headers"]).json()
    assert [u["name"] for u in users] == ["Idle User", "Quiz Master"]
    quiz_master = users[1]
    assert [r["event"]["title"] for r in quiz_master["registrations"]] == ["Quiz"]
    assert users[0]["registrations"] == []


# ============ EVENTS ============

def test_delete_event_survives_image_removal_failure(client, monkeypatch):
    admin = signup_admin(client)
    event = create_group_event(client, admin)
    leader = signup(client)
    member = signup(client)
    register(client, leader, event["id"], {"teamName": "Crew", "teamMembers": [{"pid": member["pid"]}]})
    client.sql("UPDATE events SET image_key = 'events/missing.png' WHERE id = :id", id=event["id"])

    calls = []

    def failing_delete(key):
        calls.append(key)
        return False

    monkeypatch.setattr("fest.events.service.delete_file", failing_delete)

    response = client.delete(f"/api/admin/events/{event['id']}", headers=admin["headers"])
    assert response.status_code == 200, response.text
    assert calls == ["events/missing.png"]
    assert client.get(f"/api/events/{event['id']}").status_code == 404
    assert client.sql("SELECT COUNT(*) FROM registrations")[0][0] == 0
    assert client.sql("SELECT COUNT(*) FROM registration_team_members")[0][0] == 0


def test_upload_rejects_non_images(client):
    admin = signup_admin(client)
    event = create_event(client, admin)
    response = client.post(
        f"/api/admin/events/{event['id']}/image",
        files={"file": ("notes.txt", b"hello", "text/plain")},
        headers=admin["headers"],
    )
    assert response.status_code == 400
    assert "error" in response.json()


def test_event_registrations_and_export(client):
    admin = signup_admin(client)
    event = create_group_event(client, admin, title="Battle")
    leader = signup(client, name="Team Lead")
    member = signup(client, name="Side Kick")
    register(client, leader, event["id"], {"teamName": "Crew", "teamMembers": [{"pid": member["pid"]}]})

    rows = client.get(f"/api/admin/events/{event['id']}/registrations", headers=admin["headers"]).json()
    assert len(rows) == 1
    assert rows[0]["leader"]["name"] == "Team Lead"
    assert rows[0]["team_members"][0]["name"] == "Side Kick"

    response = client.get(f"/api/admin/events/{event['id']}/registrations/export", headers=admin["headers"])
    assert response.status_code == 200
    assert response.headers["content-type"].startswith(
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    )

    export_dir = storage.ensure_dir(storage.settings.export_dir)
    sheet = load_workbook(export_dir / f"event_{event['id']}_registrations.xlsx").active
    values = list(sheet.values)
    assert values[0][0] == "Registration ID"
    assert values[1][2] == "Team Lead"
    assert f"Side Kick ({member['pid']})" in values[1]


def test_repeated_exports_replace_the_event_file(client):
    admin = signup_admin(client)
    event = create_event(client, admin, title="Quiz")
    first, second = signup(client, name="First Entrant"), signup(client, name="Second Entrant")
    register(client, first, event["id"])

    url = f"/api/admin/events/{event['id']}/registrations/export"
    assert client.get(url, headers=admin["headers"]).status_code == 200
    register(client, second, event["id"])
    response = client.get(url, headers=admin["headers"])
    assert response.status_code == 200
    assert f"event_{event['id']}_registrations.xlsx" in response.headers["content-disposition"]

    export_dir = storage.ensure_dir(storage.settings.export_dir)
    files = sorted(p.name for p in export_dir.glob(f"*event_{event['id']}_registrations*"))
    assert files == [f"event_{event['id']}_registrations.xlsx"]
    names = [row[2] for row in list(load_workbook(export_dir / files[0]).active.values)[1:]]
    assert sorted(names) == ["First Entrant", "Second Entrant"]


# ============ REGISTRATIONS ============

def test_admin_delete_registration_decrements_counter(client):
    admin = signup_admin(client)
    event = create_event(client, admin)
    registration = register(client, signup(client), event["id"])

    response = client.delete(f"/api/admin/registrations/{registration['id']}", headers=admin["headers"])
    assert response.status_code == 200
    assert get_event(client, event["id"])["registered_count"] == 0
    assert client.delete(f"/api/admin/registrations/{registration['id']}", headers=admin["headers"]).status_code == 404


def test_team_name_update_assigns_missing_tid(client):
    admin = signup_admin(client)
    event = create_group_event(client, admin)
    leader = signup(client)
    member = signup(client)
    registration = register(
        client, leader, event["id"], {"teamName": "Crew", "teamMembers": [{"pid": member["pid"]}]}
    )
    client.sql("UPDATE registrations SET tid = NULL WHERE id = :id", id=registration["id"])

    response = client.patch(
        f"/api/admin/registrations/{registration['id']}",
        json={"teamName": "  New Crew "},
        headers=admin["headers"],
    )
    assert response.status_code == 200, response.text
    assert response.json()["team_name"] == "New Crew"
    assert response.json()["tid"].startswith("TID")

    empty = client.patch(
        f"/api/admin/registrations/{registration['id']}", json={"teamName": " "}, headers=admin["headers"]
    )
    assert empty.status_code == 400


def test_team_name_update_rejects_solo_registrations(client):
    admin = signup_admin(client)
    event = create_event(client, admin)
    registration = register(client, signup(client), event["id"])

    response = client.patch(
        f"/api/admin/registrations/{registration['id']}", json={"teamName": "Crew"}, headers=admin["headers"]
    )
    assert response.status_code == 400
