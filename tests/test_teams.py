# tests/test_teams.py

import pytest

from app import team_service
from app.errors import Conflict, InvalidReference, ValidationError
from app.models import Membership, Task, Team, User


def _create_team(actor, name="Engineering", description="Builds things"):
    r = actor.client.post("/teamCreate", json={"name": name, "description": description})
    assert r.status_code == 201, r.text
    return r.json()["team"]


def _add(actor, team_id, user_id):
    return actor.client.post(f"/teams/{team_id}/members", json={"userId": user_id})


def test_create_then_fetch_round_trip(alice) -> None:
    team = _create_team(alice)
    r = alice.client.get(f"/teams/{team['id']}")
    assert r.status_code == 200
    body = r.json()["team"]
    assert body["name"] == "Engineering"
    assert body["member_count"] == 1
    assert body["creator_id"] == alice.id
    assert [m["id"] for m in body["members"]] == [alice.id]


def test_create_trims_and_nulls_description(alice) -> None:
    team = _create_team(alice, name="  Design  ", description="   ")
    assert team["name"] == "Design"
    assert team["description"] is None


@pytest.mark.parametrize(
    "payload",
    [
        {"name": "ab"},
        {"name": "Bad/Name"},
        {"name": "Valid", "description": "x" * 1001},
        {},
    ],
)
def test_create_team_validation(alice, payload) -> None:
    r = alice.client.post("/teamCreate", json=payload)
    assert r.status_code == 400


def test_duplicate_team_name_conflicts_and_leaves_nothing_behind(db, alice, bob) -> None:
    _create_team(alice)
    r = bob.client.post("/teamCreate", json={"name": "Engineering"})
    assert r.status_code == 409
    assert db.query(Team).count() == 1
    assert db.query(Membership).filter(Membership.user_id == bob.id).count() == 0


def test_create_team_with_unknown_creator_persists_nothing(db) -> None:
    with pytest.raises(InvalidReference):
        team_service.create_team(db, "Orphans", None, creator_id=999)
    assert db.query(Team).count() == 0
    assert db.query(Membership).count() == 0


def test_create_team_rolls_back_when_membership_fails(db, make_user, monkeypatch) -> None:
    user = make_user("owner")

    def broken_membership(**kwargs):
        raise RuntimeError("membership insert failed")

    monkeypatch.setattr(team_service, "Membership", broken_membership)
    with pytest.raises(RuntimeError):
        team_service.create_team(db, "Halfway", None, user["id"])
    assert db.query(Team).count() == 0


def test_create_team_service_conflict(db, make_user) -> None:
    user = make_user("owner")
    team_service.create_team(db, "Platform", None, user["id"])
    with pytest.raises(Conflict):
        team_service.create_team(db, "Platform", "again", user["id"])


def test_list_teams_only_includes_memberships(alice, bob) -> None:
    mine = _create_team(alice, name="Alpha")
    _create_team(bob, name="Bravo")
    teams = alice.client.get("/teams").json()["teams"]
    assert [t["id"] for t in teams] == [mine["id"]]


def test_non_member_cannot_read_team(alice, bob) -> None:
    team = _create_team(alice)
    r = bob.client.get(f"/teams/{team['id']}")
    assert r.status_code == 403
    assert r.json()["message"] == "You are not a member of this team"


def test_update_is_creator_only(alice, bob) -> None:
    team = _create_team(alice)
    _add(alice, team["id"], bob.id)

    r = bob.client.put(f"/teams/{team['id']}", json={"name": "Hijacked"})
    assert r.status_code == 403

    r = alice.client.put(f"/teams/{team['id']}", json={"description": "  New focus  "})
    assert r.status_code == 200
    assert r.json()["team"]["description"] == "New focus"
    assert r.json()["team"]["name"] == "Engineering"


def test_update_to_existing_name_conflicts(alice) -> None:
    _create_team(alice, name="Alpha")
    team = _create_team(alice, name="Bravo")
    r = alice.client.put(f"/teams/{team['id']}", json={"name": "Alpha"})
    assert r.status_code == 409


def test_delete_is_creator_only_and_cascades(db, alice, bob) -> None:
    team = _create_team(alice)
    _add(alice, team["id"], bob.id)
    alice.client.post("/tasks", json={"title": "Ship it", "team_id": team["id"]})

    assert bob.client.delete(f"/teams/{team['id']}").status_code == 403

    r = alice.client.delete(f"/teams/{team['id']}")
    assert r.status_code == 200
    assert db.query(Team).count() == 0
    assert db.query(Membership).count() == 0
    assert db.query(Task).count() == 0


def test_add_member_conflict_and_invalid_user(alice, bob) -> None:
    team = _create_team(alice)
    assert _add(alice, team["id"], bob.id).status_code == 201
    assert _add(alice, team["id"], bob.id).status_code == 409
    assert _add(alice, team["id"], 9999).status_code == 400
    assert alice.client.post(f"/teams/{team['id']}/members", json={}).status_code == 400


def test_add_member_service_errors(db, make_user) -> None:
    owner = make_user("owner")
    other = make_user("other")
    team = team_service.create_team(db, "Service", None, owner["id"])
    team_service.add_member(db, team.id, other["id"])
    with pytest.raises(Conflict):
        team_service.add_member(db, team.id, other["id"])
    with pytest.raises(InvalidReference):
        team_service.add_member(db, 12345, other["id"])


def test_members_are_listed_in_join_order(alice, bob, carol) -> None:
    team = _create_team(alice)
    _add(alice, team["id"], carol.id)
    _add(alice, team["id"], bob.id)
    members = alice.client.get(f"/teams/{team['id']}/members").json()["members"]
    assert [m["id"] for m in members] == [alice.id, carol.id, bob.id]
    assert all(m["joined_at"] for m in members)


def test_creator_cannot_be_removed_by_anyone(alice, bob) -> None:
    team = _create_team(alice)
    _add(alice, team["id"], bob.id)

    for actor in (alice, bob):
        r = actor.client.delete(f"/teams/{team['id']}/members/{alice.id}")
        assert r.status_code == 400
        assert r.json()["message"] == "Cannot remove team creator"


def test_member_can_leave_but_not_remove_others(alice, bob, carol) -> None:
    team = _create_team(alice)
    _add(alice, team["id"], bob.id)
    _add(alice, team["id"], carol.id)

    assert bob.client.delete(f"/teams/{team['id']}/members/{carol.id}").status_code == 403
    assert bob.client.delete(f"/teams/{team['id']}/members/{bob.id}").status_code == 200
    assert bob.client.get(f"/teams/{team['id']}").status_code == 403


def test_removing_non_member_is_not_found(alice, bob) -> None:
    team = _create_team(alice)
    r = alice.client.delete(f"/teams/{team['id']}/members/{bob.id}")
    assert r.status_code == 404


def test_remove_member_service_rejects_creator(db, make_user) -> None:
    owner = make_user("owner")
    team = team_service.create_team(db, "Solo", None, owner["id"])
    actor = db.get(User, owner["id"])
    with pytest.raises(ValidationError):
        team_service.remove_member(db, actor, team.id, owner["id"])
    assert team_service.member_count(db, team.id) == 1


def test_earliest_membership_is_creator(db, alice, bob, carol) -> None:
    team = _create_team(bob)
    _add(bob, team["id"], alice.id)
    _add(bob, team["id"], carol.id)
    first = db.query(Membership).filter(
        Membership.team_id == team["id"]
    ).order_by(Membership.created_at.asc(), Membership.id.asc()).first()
    assert first.user_id == bob.id == db.get(Team, team["id"]).creator_id


def test_statistics(alice, bob) -> None:
    team = _create_team(alice)
    _add(alice, team["id"], bob.id)
    t1 = alice.client.post(
        "/tasks", json={"title": "One", "team_id": team["id"], "assigned_to": bob.id}
    ).json()["task"]
    alice.client.post("/tasks", json={"title": "Two", "team_id": team["id"]})
    alice.client.post("/tasks", json={"title": "Three", "team_id": team["id"]})
    alice.client.put(f"/tasks/{t1['id']}/complete")

    stats = alice.client.get(f"/teams/{team['id']}/statistics").json()["statistics"]
    assert stats == {
        "member_count": 2,
        "total_tasks": 3,
        "pending_tasks": 2,
        "completed_tasks": 1,
        "assigned_tasks": 1,
        "unassigned_tasks": 2,
        "completion_rate": 33,
        "assignment_rate": 33,
    }


def test_team_tasks_endpoint_filters(alice) -> None:
    team = _create_team(alice)
    alice.client.post("/tasks", json={"title": "Write docs", "team_id": team["id"]})
    done = alice.client.post("/tasks", json={"title": "Fix build", "team_id": team["id"]}).json()["task"]
    alice.client.put(f"/tasks/{done['id']}/complete")

    r = alice.client.get(f"/teams/{team['id']}/tasks", params={"status": "COMPLETED"})
    assert [t["title"] for t in r.json()["tasks"]] == ["Fix build"]
    r = alice.client.get(f"/teams/{team['id']}/tasks", params={"search": "DOCS"})
    assert [t["title"] for t in r.json()["tasks"]] == ["Write docs"]


def test_invalid_team_id_is_rejected(alice) -> None:
    assert alice.client.get("/teams/0").status_code == 400
    assert alice.client.get("/teams/abc").status_code == 400
