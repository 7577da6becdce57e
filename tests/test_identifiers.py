from fest.common import identifiers
from fest.common.identifiers import PID_PREFIX, TID_PREFIX, format_identifier, parse_sequence, year_suffix

from conftest import create_group_event, signup, signup_admin


def seed_user(client, pid, n):
    client.sql(
        "INSERT INTO users (name, email, pid, roll_number) VALUES ('Legacy', :email, :pid, :roll)",
        email=f"legacy{n}@example.com",
        pid=pid,
        roll=f"9{n:04d}",
    )


def seed_team(client, event_id, tid, user_id):
    client.sql(
        "INSERT INTO registrations (user_id, event_id, pid, team_name, tid) "
        "VALUES (:user_id, :event_id, 'PID990001', 'Old Team', :tid)",
        user_id=user_id,
        event_id=event_id,
        tid=tid,
    )


def register_team(client, event_id, name="Rhythm"):
    leader = signup(client, name="Team Leader")
    member = signup(client, name="Team Member")
    response = client.post(
        f"/api/registrations/{event_id}",
        json={"teamName": name, "teamMembers": [{"pid": member["pid"]}]},
        headers=leader["headers"],
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_format_pads_sequence_and_year():
    assert format_identifier(PID_PREFIX, 2026, 1) == "PID260001"
    assert format_identifier(TID_PREFIX, 2009, 42) == "TID090042"
    assert format_identifier(PID_PREFIX, 2026, 12345) == "PID2612345"
    assert year_suffix(2031) == "31"


def test_parse_ignores_malformed_values():
    assert parse_sequence(PID_PREFIX, "PID260017") == 17
    assert parse_sequence(TID_PREFIX, "TID250003") == 3
    for bad in (None, "", "PID", "PID26", "PIDxx0001", "PID26abc", "TID260001", "pid260001"):
        assert parse_sequence(PID_PREFIX, bad) is None


# ============ PIDS ============

def test_signup_assigns_sequential_pids(client):
    first = signup(client, name="First User")
    second = signup(client, name="Second User")
    suffix = year_suffix()
    assert first["pid"] == f"PID{suffix}0001"
    assert second["pid"] == f"PID{suffix}0002"


def test_pid_generation_skips_unparseable_values(client):
    signup(client)
    suffix = year_suffix()
    client.sql(f"UPDATE users SET pid = 'PID{suffix}0041' WHERE pid = 'PID{suffix}0001'")
    client.sql(
        "INSERT INTO users (name, email, pid, roll_number, college, role, is_verified, is_active) "
        f"VALUES ('Legacy', 'legacy@example.com', 'PID{suffix}ZZ', '77777', 'Old College', 'user', 1, 1)"
    )
    assert signup(client)["pid"] == f"PID{suffix}0042"


def test_pid_sequence_grows_past_padding_width(client):
    suffix = year_suffix()
    seed_user(client, f"PID{suffix}9999", 1)
    assert signup(client)["pid"] == f"PID{suffix}10000"


def test_pid_generation_orders_numerically_not_as_text(client):
    suffix = year_suffix()
    seed_user(client, f"PID{suffix}0009", 1)
    seed_user(client, f"PID{suffix}10000", 2)
    seed_user(client, f"PID{suffix}99999X", 3)
    assert signup(client)["pid"] == f"PID{suffix}10001"


def test_pid_generation_pages_past_malformed_values(client, monkeypatch):
    monkeypatch.setattr(identifiers, "SCAN_BATCH", 2)
    suffix = year_suffix()
    seed_user(client, f"PID{suffix}0007", 1)
    for n, junk in enumerate(("ZZZZZZ", "YYYYYY", "XXXXXX", "WWWWW"), start=2):
        seed_user(client, f"PID{suffix}{junk}", n)
    assert signup(client)["pid"] == f"PID{suffix}0008"


def test_pids_of_other_years_do_not_advance_the_sequence(client):
    seed_user(client, f"PID{year_suffix(2001)}0500", 1)
    assert signup(client)["pid"] == f"PID{year_suffix()}0001"


# ============ TIDS ============

def test_tids_follow_one_sequence_for_all_teams(client):
    admin = signup_admin(client)
    event = create_group_event(client, admin)
    client.sql("INSERT INTO registrations (user_id, event_id, pid, status, team_name, tid) "
               f"VALUES (999, {event['id']}, 'PID990001', 'confirmed', 'Old Team', 'TID240005')")

    assert register_team(client, event["id"])["tid"] == f"TID{year_suffix()}0006"


def test_tid_year_digits_are_ignored_when_finding_the_highest(client):
    admin = signup_admin(client)
    event = create_group_event(client, admin)
    seed_team(client, event["id"], "TID250007", user_id=998)
    seed_team(client, event["id"], "TID260002", user_id=999)

    assert register_team(client, event["id"])["tid"] == f"TID{year_suffix()}0008"


def test_first_tid_starts_the_sequence(client):
    admin = signup_admin(client)
    event = create_group_event(client, admin)
    assert register_team(client, event["id"])["tid"] == f"TID{year_suffix()}0001"
