"""Game creation tool with opponent lookup."""

from __future__ import annotations

import logging
import re
from typing import Any

from rinkmate.db import Database
from rinkmate.matching.fuzzy import FuzzyNameResolver
from rinkmate.models import ToolExecutionResult, UserContext
from rinkmate.tools.base import Tool, propose

LOGGER = logging.getLogger(__name__)

_BASE_NAME = re.compile(r"^(.+?)\s*\d+U", re.IGNORECASE)
_AGE = re.compile(r"(\d+U)", re.IGNORECASE)
_LEVEL = re.compile(r"\b(AAA|AA|A|B|Rec)\b", re.IGNORECASE)


class OpponentLookup:
    """Finds the stored team a free-text opponent name refers to.

    Exact (expanded) name first, then a contains search on the name without its
    age/level suffix scored by word overlap, then single keywords.
    """

    def __init__(self, db: Database, fuzzy: FuzzyNameResolver | None = None) -> None:
        self._db = db
        self._fuzzy = fuzzy or FuzzyNameResolver()

    def find(self, team_name: str) -> dict[str, Any] | None:
        for term in self._fuzzy.expand(team_name):
            exact = self._db.search_teams_by_name(term, exact=True, limit=5)
            if exact:
                LOGGER.info("Exact opponent match for %r: %s", team_name, exact[0]["id"])
                return exact[0]

        match = _BASE_NAME.match(team_name)
        base_name = match.group(1).strip() if match else team_name
        partial = self._db.search_teams_by_name(base_name, limit=20)
        LOGGER.info("Partial search for %r returned %d results", base_name, len(partial))
        if len(partial) == 1:
            return partial[0]
        if partial:
            return max(partial, key=lambda team: _similarity(team_name, team["name"]))

        for keyword in self._fuzzy.keywords(team_name):
            hits = self._db.search_teams_by_name(keyword, limit=10)
            if hits:
                LOGGER.info("Keyword %r matched opponent %s", keyword, hits[0]["id"])
                return hits[0]

        LOGGER.warning("No match found for opponent %r", team_name)
        return None


def _similarity(query: str, candidate: str) -> float:
    normalized_query = " ".join(query.lower().split())
    normalized_name = " ".join(candidate.lower().split())
    if normalized_query == normalized_name:
        return 1000.0

    query_words = normalized_query.split(" ")
    name_words = set(normalized_name.split(" "))
    score = sum(1 for word in query_words if word in name_words) / len(query_words) * 100

    query_age, name_age = _AGE.search(query), _AGE.search(candidate)
    if query_age and name_age and query_age.group(1).lower() == name_age.group(1).lower():
        score += 50
    query_level, name_level = _LEVEL.search(query), _LEVEL.search(candidate)
    if query_level and name_level and query_level.group(1).lower() == name_level.group(1).lower():
        score += 30
    return score


class CreateGameTool(Tool):
    """Proposes a new game; the write happens only after confirmation."""

    name = "create_game"
    description = (
        "Add a new game to the user's schedule. IMPORTANT: This action requires user confirmation before "
        "execution. Always present the game details to the user and ask for confirmation."
    )
    parameters_schema: dict[str, Any] = {
        "type": "object",
        "properties": {
            "date": {"type": "string", "description": "Game date in YYYY-MM-DD format."},
            "time": {
                "type": "string",
                "description": 'Game time in 12-hour format with AM/PM (e.g., "7:00 PM", "10:30 AM").',
            },
            "opponentName": {
                "type": "string",
                "description": (
                    "Name of the opponent team including age/level (e.g., \"Cutting Edge King Cobras 16U AA\"). "
                    "The team id is looked up automatically."
                ),
            },
            "gameType": {
                "type": "string",
                "enum": ["scrimmage", "league", "tournament", "exhibition"],
                "description": "Type of game.",
            },
            "isHome": {"type": "boolean", "description": "Whether this is a home game."},
            "rink": {"type": "string", "description": "Name of the rink/arena."},
            "city": {"type": "string", "description": "City where the game will be played."},
            "state": {"type": "string", "description": "State/province where the game will be played."},
            "country": {"type": "string", "description": "Country where the game will be played (default: USA)."},
        },
        "required": ["date", "time", "gameType"],
    }

    def __init__(self, db: Database, fuzzy: FuzzyNameResolver | None = None) -> None:
        self._opponents = OpponentLookup(db, fuzzy)

    async def run(self, context: UserContext, **kwargs: Any) -> ToolExecutionResult:
        opponent_id: int | None = None
        opponent_name: str | None = kwargs.get("opponentName")
        if opponent_name:
            opponent = self._opponents.find(opponent_name)
            if opponent is not None:
                opponent_id = opponent["id"]
                opponent_name = opponent["name"]

        game_date, game_time, game_type = kwargs["date"], kwargs["time"], kwargs["gameType"]
        is_home = kwargs.get("isHome", True)
        city = kwargs.get("city") or context.city or ""
        state = kwargs.get("state") or context.state or ""
        game = {
            "date": game_date,
            "time": game_time,
            "opponent": opponent_id,
            "opponentName": opponent_name,
            "gameType": game_type,
            "isHome": is_home,
            "rink": kwargs.get("rink") or "",
            "city": city,
            "state": state,
            "country": kwargs.get("country") or "USA",
            "team": context.team_id,
            "association": context.association_id,
            "user": context.user_db_id,
        }

        against = f" against {opponent_name}" if opponent_name else ""
        opponent_label = opponent_name or "Open slot"
        if opponent_id is not None:
            opponent_label += f" (ID: {opponent_id})"
        message = "\n".join(
            [
                "I'll add the following game to your schedule:",
                "",
                "**Game Details:**",
                f"- Date: {game_date}",
                f"- Time: {game_time}",
                f"- Type: {game_type}",
                f"- Opponent: {opponent_label}",
                f"- Location: {'Home' if is_home else 'Away'} - {game['rink'] or 'TBD'}, "
                f"{city or 'TBD'}, {state or 'TBD'}",
                "",
                "Would you like me to add this game to your schedule?",
            ]
        )
        return propose(
            "create_game",
            f"Add a {game_type} game on {game_date} at {game_time}{against}",
            game,
            message,
            gameDetails=game,
        )
