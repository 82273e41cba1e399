from __future__ import annotations

import pytest

from rinkmate.db import Database

# One degree of latitude is ~69.1 miles, so offsets below give fixed distances
# from the home association: ~6.9, ~34.5 and ~276 miles.
HOME_LAT, HOME_LON = 40.0, -75.0


def seed(db: Database) -> None:
    db.upsert_association(1, "Home Hockey Club", "Princeton", "NJ", HOME_LAT, HOME_LON)
    db.upsert_association(2, "Garden State Youth Hockey", "Trenton", "NJ", HOME_LAT + 0.1, HOME_LON)
    db.upsert_association(3, "Valley Forge Hockey", "Valley Forge", "PA", HOME_LAT + 0.5, HOME_LON)
    db.upsert_association(4, "Far North Hockey", "Lake Placid", "NY", HOME_LAT + 4.0, HOME_LON)

    db.upsert_team(1, "Home Hawks 12U AA", association_id=1, age="12U", level="AA", rating=50, record="10-2-1")
    db.upsert_team(2, "New Jersey Falcons 12U A", association_id=2, age="12U", level="A", rating=51, record="8-4-0")
    db.upsert_team(3, "Valley Forge Flyers 12U", association_id=3, age="12U", level="A", rating=48, record="6-6-1")
    db.upsert_team(4, "Far North Bears 12U", association_id=4, age="12U", level="A", rating=50)
    db.upsert_team(5, "Garden State Giants 14U", association_id=2, age="14U", level="AA", rating=50)
    db.upsert_team(6, "Home Hawks 12U B", association_id=1, age="12U", level="B", rating=54)

    db.upsert_user_profile(
        "user-1",
        display_name="Pat Coach",
        email="pat@example.com",
        phone="555-0100",
        team_id=1,
        association_id=1,
    )


@pytest.fixture
def db(tmp_path) -> Database:
    database = Database(tmp_path / "rinkmate.db")
    database.initialize()
    return database


@pytest.fixture
def seeded_db(db: Database) -> Database:
    seed(db)
    return db
