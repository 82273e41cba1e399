import pytest

from rinkmate.db import Database
from rinkmate.models import ManagerContact


def test_initialize_is_idempotent(tmp_path):
    db = Database(tmp_path / "rinkmate.db")
    db.initialize()
    db.initialize()

    assert db.list_teams() == []


def test_user_profile_joins_team_and_association(seeded_db):
    profile = seeded_db.get_user_profile("user-1")

    assert profile["team_name"] == "Home Hawks 12U AA"
    assert profile["age"] == "12U"
    assert profile["rating"] == 50
    assert profile["association_name"] == "Home Hockey Club"
    assert profile["state"] == "NJ"
    assert seeded_db.get_user_profile("missing") is None


def test_get_team_nests_association(seeded_db):
    team = seeded_db.get_team(2)

    assert team["name"] == "New Jersey Falcons 12U A"
    assert team["girls_only"] is False
    assert team["association"] == {
        "id": 2,
        "name": "Garden State Youth Hockey",
        "city": "Trenton",
        "state": "NJ",
    }
    assert seeded_db.get_team(999) is None


def test_search_teams_by_name_contains_and_exact(seeded_db):
    contains = seeded_db.search_teams_by_name("hawks")
    exact = seeded_db.search_teams_by_name("home hawks 12u b", exact=True)

    assert [team["id"] for team in contains] == [1, 6]
    assert [team["id"] for team in exact] == [6]


def test_list_teams_filters_by_age(seeded_db):
    teams = seeded_db.list_teams(age="14u")

    assert [team["name"] for team in teams] == ["Garden State Giants 14U"]


def test_nearby_teams_sorted_by_distance_within_radius(seeded_db):
    nearby = seeded_db.get_nearby_teams(1, age="12U", min_rating=47, max_rating=53, max_distance=100)

    assert [team.id for team in nearby] == [1, 2, 3]
    assert nearby[0].distance == pytest.approx(0.0)
    assert nearby[1].distance == pytest.approx(6.9, abs=0.1)
    assert nearby[2].distance == pytest.approx(34.5, abs=0.2)
    assert nearby[1].association_name == "Garden State Youth Hockey"


def test_nearby_teams_wider_radius_includes_far_teams(seeded_db):
    nearby = seeded_db.get_nearby_teams(1, age="12U", max_distance=300)

    assert [team.id for team in nearby][-1] == 4


def test_nearby_teams_without_coordinates_returns_empty(seeded_db):
    seeded_db.upsert_association(9, "Nowhere Hockey")

    assert seeded_db.get_nearby_teams(9) == []


def test_manager_insert_and_search(db):
    contact = ManagerContact(name="Sam Smith", email="sam@falcons.org", team="New Jersey Falcons 12U A")

    assert db.insert_manager(contact) is not None
    found = db.search_managers("falcons")

    assert [c.email for c in found] == ["sam@falcons.org"]
    assert found[0].source_url == "web-discovered"


def test_manager_duplicate_email_is_rejected(db):
    db.insert_manager(ManagerContact(name="Sam Smith", email="sam@falcons.org", team="Falcons"))

    duplicate = db.insert_manager(ManagerContact(name="Samuel", email="SAM@falcons.org", team="Falcons 12U"))

    assert duplicate is None
    assert len(db.search_managers("falcons")) == 1


def test_find_manager_id_by_email_or_name_and_team(db):
    manager_id = db.insert_manager(ManagerContact(name="Sam Smith", email="sam@falcons.org", team="Falcons 12U"))

    assert db.find_manager_id("SAM@FALCONS.ORG", "", "") == manager_id
    assert db.find_manager_id("other@falcons.org", "Sam Smith", "Falcons") == manager_id
    assert db.find_manager_id("other@falcons.org", "Jamie", "Falcons") is None


def test_manager_lookups_treat_wildcards_literally(db):
    manager_id = db.insert_manager(ManagerContact(name="Sam Smith", email="sam@falcons.org", team="Falcons 12U"))

    assert db.search_managers("%") == []
    assert db.search_managers("Falcons_12U") == []
    assert db.find_manager_id("", "%", "%") is None
    assert db.find_manager_id("", "Sam_Smith", "Falcons") is None
    assert db.find_manager_id("", "Sam Smith", "Falcons") == manager_id

    db.insert_manager(ManagerContact(name="Lee", email="lee@pct.org", team="100% Hockey"))
    assert [c.email for c in db.search_managers("100%")] == ["lee@pct.org"]


def test_create_and_list_games_in_range(seeded_db):
    created = seeded_db.create_games(
        [
            {"date": "2026-11-01", "time": "18:00", "opponent": 2, "opponent_name": "Falcons", "team": 1, "user": "user-1"},
            {"date": "2026-12-15", "opponent": 3, "team": 1, "is_home": False, "user": "user-1"},
        ]
    )

    assert len(created) == 2
    assert created[1]["is_home"] is False
    in_range = seeded_db.list_games_in_range("2026-10-01", "2026-11-30", team_id=1)
    assert [game["opponent"] for game in in_range] == [2]
    assert len(seeded_db.list_games(user_id="user-1")) == 2


def test_tournaments_round_trip_lists_and_distance(seeded_db):
    seeded_db.upsert_tournament(
        "t-1", "Winter Classic", "2026-12-01", "2026-12-03", location="Trenton",
        latitude=40.1, longitude=-75.0, age=["12U"], level=["A", "AA"],
    )
    seeded_db.upsert_tournament(
        "t-2", "Past Cup", "2026-01-01", "2026-01-02", latitude=40.0, longitude=-75.0,
    )
    seeded_db.upsert_tournament(
        "t-3", "Private Invite", "2026-12-05", "2026-12-06", latitude=40.0, longitude=-75.0, is_public=False,
    )

    tournament = seeded_db.get_tournament("t-1")
    assert tournament["age"] == ["12U"]
    assert tournament["level"] == ["A", "AA"]

    upcoming = seeded_db.list_public_tournaments("2026-10-19")
    assert [t["id"] for t in upcoming] == ["t-1"]

    nearby = seeded_db.get_nearby_tournaments(1, max_distance=50, ending_on_or_after="2026-10-19")
    assert nearby[0]["distance"] == pytest.approx(6.9, abs=0.1)


def test_chat_audit_log(db):
    db.log_chat_action("user-1", "create_game", {"date": "2026-11-01"})

    entries = db.list_chat_actions("user-1")

    assert entries[0]["action_type"] == "create_game"
    assert entries[0]["action_data"] == {"date": "2026-11-01"}
    assert db.list_chat_actions("user-2") == []
