"""SQLite persistence layer."""

from __future__ import annotations

import json
import logging
import math
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator

from rinkmate.models import ManagerContact, NearbyTeamCandidate

SCHEMA_VERSION = 1
EARTH_RADIUS_MILES = 3958.8

LOGGER = logging.getLogger(__name__)


class Database:
    """Small SQLite wrapper with explicit schema management.

    Serves as the team/association store, the schedule and tournament
    collaborators, the manager contact store and the audit log.
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self._path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def initialize(self) -> None:
        """Create or migrate schema."""

        with self._connect() as conn:
            conn.execute("CREATE TABLE IF NOT EXISTS schema_version (version INTEGER NOT NULL)")
            row = conn.execute("SELECT version FROM schema_version LIMIT 1").fetchone()
            if row is None:
                self._create_schema(conn)
                conn.execute("INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
            elif row["version"] != SCHEMA_VERSION:
                raise RuntimeError(
                    f"Unsupported schema version {row['version']} (expected {SCHEMA_VERSION})"
                )

    def _create_schema(self, conn: sqlite3.Connection) -> None:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS associations (
                id INTEGER PRIMARY KEY,
                name TEXT NOT NULL,
                city TEXT,
                state TEXT,
                latitude REAL,
                longitude REAL
            );

            CREATE TABLE IF NOT EXISTS teams (
                id INTEGER PRIMARY KEY,
                name TEXT NOT NULL,
                age TEXT,
                level TEXT,
                rating REAL,
                record TEXT,
                girls_only INTEGER NOT NULL DEFAULT 0,
                association_id INTEGER,
                FOREIGN KEY(association_id) REFERENCES associations(id)
            );

            CREATE TABLE IF NOT EXISTS user_profiles (
                user_id TEXT PRIMARY KEY,
                display_name TEXT,
                email TEXT,
                phone TEXT,
                team_id INTEGER,
                association_id INTEGER,
                FOREIGN KEY(team_id) REFERENCES teams(id),
                FOREIGN KEY(association_id) REFERENCES associations(id)
            );

            CREATE TABLE IF NOT EXISTS managers (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT,
                email TEXT UNIQUE COLLATE NOCASE,
                phone TEXT,
                team TEXT NOT NULL,
                source_url TEXT,
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS games (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                date TEXT NOT NULL,
                time TEXT,
                opponent INTEGER,
                opponent_name TEXT,
                game_type TEXT,
                is_home INTEGER NOT NULL DEFAULT 1,
                rink TEXT,
                city TEXT,
                state TEXT,
                country TEXT,
                team INTEGER,
                association INTEGER,
                user_id TEXT,
                tournament_id TEXT,
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS tournaments (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                start_date TEXT NOT NULL,
                end_date TEXT NOT NULL,
                location TEXT,
                latitude REAL,
                longitude REAL,
                age_json TEXT NOT NULL DEFAULT '[]',
                level_json TEXT NOT NULL DEFAULT '[]',
                registration_url TEXT,
                is_public INTEGER NOT NULL DEFAULT 1
            );

            CREATE TABLE IF NOT EXISTS tool_executions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                tool_name TEXT NOT NULL,
                input_json TEXT NOT NULL,
                output_json TEXT NOT NULL,
                succeeded INTEGER NOT NULL,
                created_at TEXT NOT NULL
            );

            CREATE TABLE IF NOT EXISTS chat_audit_log (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                action_type TEXT NOT NULL,
                action_data_json TEXT NOT NULL,
                created_at TEXT NOT NULL
            );
            """
        )

    # -- associations, teams, profiles ------------------------------------

    def upsert_association(
        self,
        association_id: int,
        name: str,
        city: str | None = None,
        state: str | None = None,
        latitude: float | None = None,
        longitude: float | None = None,
    ) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO associations(id, name, city, state, latitude, longitude)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name=excluded.name, city=excluded.city, state=excluded.state,
                    latitude=excluded.latitude, longitude=excluded.longitude
                """,
                (association_id, name, city, state, latitude, longitude),
            )

    def upsert_team(
        self,
        team_id: int,
        name: str,
        association_id: int | None = None,
        age: str | None = None,
        level: str | None = None,
        rating: float | None = None,
        record: str | None = None,
        girls_only: bool = False,
    ) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO teams(id, name, age, level, rating, record, girls_only, association_id)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name=excluded.name, age=excluded.age, level=excluded.level,
                    rating=excluded.rating, record=excluded.record,
                    girls_only=excluded.girls_only, association_id=excluded.association_id
                """,
                (team_id, name, age, level, rating, record, int(girls_only), association_id),
            )

    def upsert_user_profile(
        self,
        user_id: str,
        display_name: str | None = None,
        email: str | None = None,
        phone: str | None = None,
        team_id: int | None = None,
        association_id: int | None = None,
    ) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO user_profiles(user_id, display_name, email, phone, team_id, association_id)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(user_id) DO UPDATE SET
                    display_name=excluded.display_name, email=excluded.email,
                    phone=excluded.phone, team_id=excluded.team_id,
                    association_id=excluded.association_id
                """,
                (user_id, display_name, email, phone, team_id, association_id),
            )

    def get_user_profile(self, user_id: str) -> dict[str, Any] | None:
        with self._connect() as conn:
            row = conn.execute(
                """
                SELECT p.user_id, p.display_name, p.email, p.phone, p.team_id,
                       COALESCE(p.association_id, t.association_id) AS association_id,
                       t.name AS team_name, t.age, t.rating,
                       a.name AS association_name, a.city, a.state
                FROM user_profiles p
                LEFT JOIN teams t ON t.id = p.team_id
                LEFT JOIN associations a ON a.id = COALESCE(p.association_id, t.association_id)
                WHERE p.user_id = ?
                """,
                (user_id,),
            ).fetchone()
        return dict(row) if row else None

    def get_team(self, team_id: int) -> dict[str, Any] | None:
        with self._connect() as conn:
            row = conn.execute(
                f"{_TEAM_SELECT} WHERE t.id = ?",
                (team_id,),
            ).fetchone()
        return _team_row(row) if row else None

    def list_teams(self, age: str | None = None, association_id: int | None = None) -> list[dict[str, Any]]:
        clauses: list[str] = []
        params: list[Any] = []
        if age:
            clauses.append("LOWER(t.age) = LOWER(?)")
            params.append(age)
        if association_id is not None:
            clauses.append("t.association_id = ?")
            params.append(association_id)
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        with self._connect() as conn:
            rows = conn.execute(f"{_TEAM_SELECT}{where} ORDER BY t.name", params).fetchall()
        return [_team_row(row) for row in rows]

    def search_teams_by_name(self, text: str, exact: bool = False, limit: int = 20) -> list[dict[str, Any]]:
        """Case-insensitive team name lookup; ``exact=False`` means contains."""
        pattern = _like_escape(text) if exact else f"%{_like_escape(text)}%"
        with self._connect() as conn:
            rows = conn.execute(
                f"{_TEAM_SELECT} WHERE t.name LIKE ? ESCAPE '\\' ORDER BY t.id LIMIT ?",
                (pattern, limit),
            ).fetchall()
        return [_team_row(row) for row in rows]

    def get_nearby_teams(
        self,
        association_id: int,
        age: str = "",
        girls_only: bool = False,
        min_rating: float = 0,
        max_rating: float = 100,
        max_distance: float = 100,
    ) -> list[NearbyTeamCandidate]:
        """Teams whose association lies within ``max_distance`` miles, nearest first."""
        with self._connect() as conn:
            origin = conn.execute(
                "SELECT latitude, longitude FROM associations WHERE id = ?", (association_id,)
            ).fetchone()
            if origin is None or origin["latitude"] is None or origin["longitude"] is None:
                LOGGER.warning("Association %s has no coordinates; nearby search skipped", association_id)
                return []

            clauses = ["a.latitude IS NOT NULL", "a.longitude IS NOT NULL", "t.rating BETWEEN ? AND ?"]
            params: list[Any] = [min_rating, max_rating]
            if age:
                clauses.append("LOWER(t.age) = LOWER(?)")
                params.append(age)
            if girls_only:
                clauses.append("t.girls_only = 1")
            rows = conn.execute(
                f"""
                SELECT t.id, t.name, t.age, t.rating, t.record,
                       a.name AS association_name, a.city, a.state, a.latitude, a.longitude
                FROM teams t
                JOIN associations a ON a.id = t.association_id
                WHERE {' AND '.join(clauses)}
                """,
                params,
            ).fetchall()

        candidates: list[NearbyTeamCandidate] = []
        for row in rows:
            distance = _distance_miles(
                origin["latitude"], origin["longitude"], row["latitude"], row["longitude"]
            )
            if distance > max_distance:
                continue
            candidates.append(
                NearbyTeamCandidate(
                    id=row["id"],
                    name=row["name"],
                    age=row["age"] or "",
                    rating=row["rating"],
                    record=row["record"] or "",
                    distance=distance,
                    association_name=row["association_name"] or "",
                    city=row["city"] or "",
                    state=row["state"] or "",
                )
            )
        candidates.sort(key=lambda c: c.distance)
        return candidates

    # -- manager contacts ---------------------------------------------------

    def search_managers(self, text: str, limit: int = 5) -> list[ManagerContact]:
        """Contacts whose team label contains ``text`` (case-insensitive)."""
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT name, email, phone, team, source_url
                FROM managers
                WHERE team LIKE ? ESCAPE '\\'
                ORDER BY id
                LIMIT ?
                """,
                (f"%{_like_escape(text)}%", limit),
            ).fetchall()
        return [_manager_row(row) for row in rows]

    def find_manager_id(self, email: str, name: str, team: str) -> int | None:
        """Existing contact matching by email, or by name and team label."""
        with self._connect() as conn:
            row = conn.execute(
                """
                SELECT id FROM managers
                WHERE (? != '' AND LOWER(email) = LOWER(?))
                   OR (? != '' AND name LIKE ? ESCAPE '\\' AND team LIKE ? ESCAPE '\\')
                LIMIT 1
                """,
                (email, email, name, f"%{_like_escape(name)}%", f"%{_like_escape(team)}%"),
            ).fetchone()
        return int(row["id"]) if row else None

    def insert_manager(self, contact: ManagerContact) -> int | None:
        """Insert a contact; returns None when another writer already created it."""
        try:
            with self._connect() as conn:
                cur = conn.execute(
                    """
                    INSERT INTO managers(name, email, phone, team, source_url, created_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        contact.name,
                        contact.email or None,
                        contact.phone or None,
                        contact.team,
                        contact.source_url or "web-discovered",
                        _utc_now_iso(),
                    ),
                )
                return int(cur.lastrowid)
        except sqlite3.IntegrityError:
            LOGGER.info("Manager %r already stored (duplicate key)", contact.email)
            return None

    # -- games ----------------------------------------------------------------

    def create_games(self, games: list[dict[str, Any]]) -> list[dict[str, Any]]:
        created_ids: list[int] = []
        now = _utc_now_iso()
        with self._connect() as conn:
            for game in games:
                cur = conn.execute(
                    """
                    INSERT INTO games(date, time, opponent, opponent_name, game_type, is_home, rink,
                                      city, state, country, team, association, user_id,
                                      tournament_id, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        game["date"],
                        game.get("time"),
                        game.get("opponent"),
                        game.get("opponent_name"),
                        game.get("game_type"),
                        int(bool(game.get("is_home", True))),
                        game.get("rink"),
                        game.get("city"),
                        game.get("state"),
                        game.get("country"),
                        game.get("team"),
                        game.get("association"),
                        game.get("user"),
                        game.get("tournament_id"),
                        now,
                    ),
                )
                created_ids.append(int(cur.lastrowid))
        return [game for game_id in created_ids if (game := self.get_game(game_id)) is not None]

    def get_game(self, game_id: int | str) -> dict[str, Any] | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM games WHERE id = ?", (game_id,)).fetchone()
        return _game_row(row) if row else None

    def list_games(self, team_id: int | None = None, user_id: str | None = None) -> list[dict[str, Any]]:
        if team_id is not None:
            where, params = "team = ?", (team_id,)
        else:
            where, params = "user_id = ?", (user_id,)
        with self._connect() as conn:
            rows = conn.execute(f"SELECT * FROM games WHERE {where} ORDER BY date, time", params).fetchall()
        return [_game_row(row) for row in rows]

    def list_games_in_range(
        self,
        start_date: str,
        end_date: str,
        team_id: int | None = None,
        user_id: str | None = None,
    ) -> list[dict[str, Any]]:
        return [
            game
            for game in self.list_games(team_id=team_id, user_id=user_id)
            if start_date <= game["date"][:10] <= end_date
        ]

    # -- tournaments ----------------------------------------------------------

    def upsert_tournament(
        self,
        tournament_id: str,
        name: str,
        start_date: str,
        end_date: str,
        location: str | None = None,
        latitude: float | None = None,
        longitude: float | None = None,
        age: list[str] | None = None,
        level: list[str] | None = None,
        registration_url: str | None = None,
        is_public: bool = True,
    ) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO tournaments(id, name, start_date, end_date, location, latitude, longitude,
                                        age_json, level_json, registration_url, is_public)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    name=excluded.name, start_date=excluded.start_date, end_date=excluded.end_date,
                    location=excluded.location, latitude=excluded.latitude,
                    longitude=excluded.longitude, age_json=excluded.age_json,
                    level_json=excluded.level_json, registration_url=excluded.registration_url,
                    is_public=excluded.is_public
                """,
                (
                    tournament_id,
                    name,
                    start_date,
                    end_date,
                    location,
                    latitude,
                    longitude,
                    json.dumps(age or []),
                    json.dumps(level or []),
                    registration_url,
                    int(is_public),
                ),
            )

    def get_tournament(self, tournament_id: str) -> dict[str, Any] | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM tournaments WHERE id = ?", (tournament_id,)).fetchone()
        return _tournament_row(row) if row else None

    def list_public_tournaments(self, ending_on_or_after: str | None = None) -> list[dict[str, Any]]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM tournaments WHERE is_public = 1 AND end_date >= ? ORDER BY start_date",
                (ending_on_or_after or "",),
            ).fetchall()
        return [_tournament_row(row) for row in rows]

    def get_nearby_tournaments(
        self,
        association_id: int,
        max_distance: float = 250,
        ending_on_or_after: str | None = None,
    ) -> list[dict[str, Any]]:
        with self._connect() as conn:
            origin = conn.execute(
                "SELECT latitude, longitude FROM associations WHERE id = ?", (association_id,)
            ).fetchone()
        if origin is None or origin["latitude"] is None or origin["longitude"] is None:
            return []
        nearby = []
        for tournament in self.list_public_tournaments(ending_on_or_after):
            if tournament["latitude"] is None or tournament["longitude"] is None:
                continue
            distance = _distance_miles(
                origin["latitude"], origin["longitude"], tournament["latitude"], tournament["longitude"]
            )
            if distance <= max_distance:
                nearby.append({**tournament, "distance": round(distance, 1)})
        return nearby

    # -- logging --------------------------------------------------------------

    def log_tool_execution(
        self,
        user_id: str,
        tool_name: str,
        tool_input: dict[str, Any],
        tool_output: Any,
        succeeded: bool,
    ) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO tool_executions(user_id, tool_name, input_json, output_json, succeeded, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    user_id,
                    tool_name,
                    json.dumps(tool_input, default=str),
                    json.dumps(tool_output, default=str),
                    int(succeeded),
                    _utc_now_iso(),
                ),
            )

    def log_chat_action(self, user_id: str, action_type: str, action_data: dict[str, Any]) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO chat_audit_log(user_id, action_type, action_data_json, created_at)
                VALUES (?, ?, ?, ?)
                """,
                (user_id, action_type, json.dumps(action_data, default=str), _utc_now_iso()),
            )

    def list_chat_actions(self, user_id: str) -> list[dict[str, Any]]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT action_type, action_data_json, created_at FROM chat_audit_log WHERE user_id = ? ORDER BY id",
                (user_id,),
            ).fetchall()
        return [
            {
                "action_type": row["action_type"],
                "action_data": json.loads(row["action_data_json"]),
                "created_at": row["created_at"],
            }
            for row in rows
        ]


_TEAM_SELECT = """
    SELECT t.id, t.name, t.age, t.level, t.rating, t.record, t.girls_only, t.association_id,
           a.name AS association_name, a.city, a.state
    FROM teams t
    LEFT JOIN associations a ON a.id = t.association_id
"""


def _team_row(row: sqlite3.Row) -> dict[str, Any]:
    return {
        "id": row["id"],
        "name": row["name"],
        "age": row["age"],
        "level": row["level"],
        "rating": row["rating"],
        "record": row["record"],
        "girls_only": bool(row["girls_only"]),
        "association": {
            "id": row["association_id"],
            "name": row["association_name"],
            "city": row["city"],
            "state": row["state"],
        },
    }


def _manager_row(row: sqlite3.Row) -> ManagerContact:
    return ManagerContact(
        name=row["name"] or "",
        email=row["email"] or "",
        phone=row["phone"] or "",
        team=row["team"] or "",
        source_url=row["source_url"] or "",
    )


def _game_row(row: sqlite3.Row) -> dict[str, Any]:
    game = dict(row)
    game["is_home"] = bool(game["is_home"])
    return game


def _tournament_row(row: sqlite3.Row) -> dict[str, Any]:
    tournament = dict(row)
    tournament["age"] = json.loads(tournament.pop("age_json") or "[]")
    tournament["level"] = json.loads(tournament.pop("level_json") or "[]")
    tournament["is_public"] = bool(tournament["is_public"])
    return tournament


def _like_escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _distance_miles(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_MILES * math.asin(math.sqrt(a))


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
