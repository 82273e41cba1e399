"""Tournament search and registration tools."""

from __future__ import annotations

import logging
import re
from datetime import date
from typing import Any, Callable

from rinkmate.db import Database
from rinkmate.models import ToolExecutionResult, UserContext
from rinkmate.tools.base import Tool, propose

LOGGER = logging.getLogger(__name__)


class GetTournamentsTool(Tool):
    """Public or nearby tournaments with lenient filtering.

    Each filter is applied only when it leaves at least one tournament.
    """

    name = "get_tournaments"
    description = (
        "Search for hockey tournaments. Can filter by age group, level, location, and date range. "
        "Use this to find tournaments for the user to register for."
    )
    parameters_schema: dict[str, Any] = {
        "type": "object",
        "properties": {
            "age": {"type": "string", "description": 'Age group to filter by (e.g., "10U", "12U", "14U").'},
            "level": {"type": "string", "description": 'Competition level (e.g., "A", "AA", "AAA", "B", "Rec").'},
            "nearbyOnly": {
                "type": "boolean",
                "description": "If true, only return tournaments near the user's association location.",
            },
            "startDate": {"type": "string", "description": "Tournaments starting on or after this date (YYYY-MM-DD)."},
            "endDate": {"type": "string", "description": "Tournaments ending on or before this date (YYYY-MM-DD)."},
        },
        "required": [],
    }

    def __init__(self, db: Database, today: Callable[[], date] = date.today) -> None:
        self._db = db
        self._today = today

    async def run(self, context: UserContext, **kwargs: Any) -> ToolExecutionResult:
        today = self._today().isoformat()
        if kwargs.get("nearbyOnly") and context.association_id is not None:
            tournaments = self._db.get_nearby_tournaments(context.association_id, ending_on_or_after=today)
        else:
            tournaments = self._db.list_public_tournaments(ending_on_or_after=today)
        LOGGER.info("Found %d tournaments before filtering", len(tournaments))

        if not tournaments:
            return ToolExecutionResult(
                success=True,
                data={
                    "tournaments": [],
                    "totalCount": 0,
                    "message": "No upcoming tournaments found. New tournaments are added regularly, so check back soon!",
                },
            )

        applied: list[str] = []
        age = kwargs.get("age")
        if age:
            tournaments = _keep_if_any(tournaments, lambda t: _age_matches(t["age"], age), applied, f"age: {age}")
        level = kwargs.get("level")
        if level:
            wanted = level.lower().strip()
            tournaments = _keep_if_any(
                tournaments,
                lambda t: not t["level"] or any(wanted in value.lower().strip() for value in t["level"]),
                applied,
                f"level: {level}",
            )
        start_date = kwargs.get("startDate")
        if start_date:
            tournaments = _keep_if_any(
                tournaments, lambda t: t["start_date"] >= start_date, applied, f"starting after: {start_date}"
            )
        end_date = kwargs.get("endDate")
        if end_date:
            tournaments = _keep_if_any(
                tournaments, lambda t: t["end_date"] <= end_date, applied, f"ending before: {end_date}"
            )

        LOGGER.info("Returning %d tournaments (filters: %s)", len(tournaments), ", ".join(applied) or "none")
        data: dict[str, Any] = {"tournaments": tournaments, "totalCount": len(tournaments)}
        if applied:
            data["appliedFilters"] = applied
        return ToolExecutionResult(success=True, data=data)


class AddTournamentToScheduleTool(Tool):
    """Proposes adding a tournament to the user's schedule."""

    name = "add_tournament_to_schedule"
    description = (
        "Register for a tournament and add it to the user's schedule. IMPORTANT: This action requires "
        "user confirmation before execution. Always present the tournament details and ask for confirmation."
    )
    parameters_schema: dict[str, Any] = {
        "type": "object",
        "properties": {
            "tournamentId": {"type": "string", "description": "ID of the tournament from get_tournaments."},
            "tournamentName": {"type": "string", "description": "Name of the tournament for display purposes."},
        },
        "required": ["tournamentId", "tournamentName"],
    }

    def __init__(self, db: Database) -> None:
        self._db = db

    async def run(self, context: UserContext, **kwargs: Any) -> ToolExecutionResult:
        tournament = self._db.get_tournament(kwargs["tournamentId"])
        if tournament is None:
            return ToolExecutionResult(success=False, error="Tournament not found")

        registration = tournament.get("registration_url")
        lines = [
            "I'll add the following tournament to your schedule:",
            "",
            "**Tournament Details:**",
            f"- Name: {tournament['name']}",
            f"- Dates: {tournament['start_date']} to {tournament['end_date']}",
            f"- Location: {tournament.get('location') or 'TBD'}",
        ]
        if registration:
            lines.append(f"- Registration: {registration}")
        lines += ["", "Would you like me to add this tournament to your schedule?"]

        return propose(
            "add_tournament_to_schedule",
            f"Register for {tournament['name']} ({tournament['start_date']} - {tournament['end_date']})",
            {
                "tournamentId": tournament["id"],
                "tournamentName": tournament["name"],
                "startDate": tournament["start_date"],
                "endDate": tournament["end_date"],
                "location": tournament.get("location"),
                "registrationUrl": registration,
                "team": context.team_id,
                "association": context.association_id,
                "user": context.user_db_id,
            },
            "\n".join(lines),
            tournamentDetails=tournament,
        )


def _keep_if_any(
    tournaments: list[dict[str, Any]],
    predicate: Callable[[dict[str, Any]], bool],
    applied: list[str],
    label: str,
) -> list[dict[str, Any]]:
    kept = [t for t in tournaments if predicate(t)]
    if not kept:
        LOGGER.info("Filter %r would eliminate all results, skipping", label)
        return tournaments
    applied.append(label)
    return kept


def _age_matches(ages: list[str], wanted: str) -> bool:
    if not ages:
        return True
    wanted = wanted.lower().strip()
    wanted_number = re.sub(r"[^0-9]", "", wanted)
    for value in ages:
        value = value.lower().strip()
        if wanted in value or (wanted_number and re.sub(r"[^0-9]", "", value) == wanted_number):
            return True
    return False
