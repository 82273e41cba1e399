"""Team search and team info tools."""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any

from rinkmate.db import Database
from rinkmate.matching.fuzzy import FuzzyNameResolver
from rinkmate.models import ToolExecutionResult, UserContext
from rinkmate.tools.base import Tool

LOGGER = logging.getLogger(__name__)

FUZZY_RESULT_LIMIT = 5
EXACT_RESULT_LIMIT = 20
FALLBACK_DISTANCE_MILES = 150


class GetTeamsTool(Tool):
    """Search teams by name, or list teams near the user's association."""

    name = "get_teams"
    description = (
        "Search for hockey teams/opponents. Can filter by age group and association. "
        "Use this to find potential opponents for scheduling games."
    )
    parameters_schema: dict[str, Any] = {
        "type": "object",
        "properties": {
            "age": {
                "type": "string",
                "description": 'Age group to filter by (e.g., "10U", "12U", "14U"). Usually the user\'s team age.',
            },
            "search": {"type": "string", "description": "Team name or association name to search for."},
            "nearbyOnly": {
                "type": "boolean",
                "description": "If true, only return teams near the user's association location.",
            },
            "maxDistance": {"type": "number", "description": "Maximum distance in miles for nearby team search."},
            "minRating": {"type": "number", "description": "Minimum team rating to filter by."},
            "maxRating": {"type": "number", "description": "Maximum team rating to filter by."},
        },
        "required": [],
    }

    def __init__(self, db: Database, fuzzy: FuzzyNameResolver | None = None) -> None:
        self._db = db
        self._fuzzy = fuzzy or FuzzyNameResolver()

    async def run(self, context: UserContext, **kwargs: Any) -> ToolExecutionResult:
        age = kwargs.get("age") or context.age
        if kwargs.get("nearbyOnly"):
            return self._nearby(context, age, kwargs)
        return self._search(context, age, kwargs.get("search"))

    def _nearby(self, context: UserContext, age: str | None, kwargs: dict[str, Any]) -> ToolExecutionResult:
        if context.association_id is None:
            LOGGER.warning("Nearby search requested but user %s has no association", context.user_id)
            return ToolExecutionResult(
                success=True,
                data={
                    "teams": [],
                    "totalCount": 0,
                    "searchType": "nearby",
                    "message": (
                        "Unable to search for nearby teams because your association/location is not set up. "
                        "Please update your profile with your team location."
                    ),
                },
            )

        min_rating = kwargs.get("minRating") or 0
        max_rating = kwargs.get("maxRating") or 100
        teams = self._db.get_nearby_teams(
            association_id=context.association_id,
            age=(age or "").lower(),
            min_rating=min_rating,
            max_rating=max_rating,
            max_distance=kwargs.get("maxDistance") or 100,
        )
        LOGGER.info("Nearby team search returned %d results", len(teams))

        if not teams and age:
            LOGGER.info("No nearby %s teams; retrying without age filter", age)
            any_age = self._db.get_nearby_teams(
                association_id=context.association_id,
                min_rating=min_rating,
                max_rating=max_rating,
                max_distance=kwargs.get("maxDistance") or FALLBACK_DISTANCE_MILES,
            )
            if any_age:
                return ToolExecutionResult(
                    success=True,
                    data={
                        "teams": [asdict(team) for team in any_age],
                        "totalCount": len(any_age),
                        "searchType": "nearby",
                        "message": (
                            f"No {age} teams found nearby. Here are teams of other age groups "
                            f"within {FALLBACK_DISTANCE_MILES} miles."
                        ),
                        "note": "Results include all age groups since no exact matches were found.",
                    },
                )

        data: dict[str, Any] = {
            "teams": [asdict(team) for team in teams],
            "totalCount": len(teams),
            "searchType": "nearby",
        }
        if not teams:
            suffix = f" for {age}" if age else ""
            data["message"] = (
                f"No nearby teams found{suffix}. Try expanding your search distance or searching for all teams."
            )
        return ToolExecutionResult(success=True, data=data)

    def _search(self, context: UserContext, age: str | None, search: str | None) -> ToolExecutionResult:
        teams = self._db.list_teams(age=age, association_id=None if search else context.association_id)
        matched = teams
        match_type = "none"

        if search:
            expanded = self._fuzzy.expand(search)
            LOGGER.info("Team search %r expanded to %r", search, expanded)
            scored = [
                (self._fuzzy.score(team["name"], expanded, search, team["association"]["name"] or ""), team)
                for team in teams
            ]
            scored = [item for item in scored if item[0] > 0]
            scored.sort(key=lambda item: item[0], reverse=True)

            if scored:
                matched = [team for _, team in scored]
                top_name = (matched[0]["name"] or "").lower()
                match_type = "exact" if search.lower() in top_name else "fuzzy"
                LOGGER.info("Found %d teams, top score %d (%s)", len(matched), scored[0][0], match_type)
            else:
                keywords = self._fuzzy.keywords(search)
                LOGGER.info("No direct matches, trying keywords %r", keywords)
                matched = [
                    team
                    for team in teams
                    if any(
                        keyword in (team["name"] or "").lower()
                        or keyword in (team["association"]["name"] or "").lower()
                        for keyword in keywords
                    )
                ]
                if matched:
                    match_type = "fuzzy"

        limit = FUZZY_RESULT_LIMIT if match_type == "fuzzy" else EXACT_RESULT_LIMIT
        returned = matched[:limit]
        data: dict[str, Any] = {
            "teams": returned,
            "totalCount": len(matched),
            "returnedCount": len(returned),
            "searchType": "all",
            "matchType": match_type,
        }
        if match_type == "fuzzy" and returned:
            names = [team["name"] for team in returned if team["name"]]
            data["suggestConfirmation"] = True
            data["topMatches"] = names
            if len(matched) > FUZZY_RESULT_LIMIT:
                data["confirmationMessage"] = (
                    f'I found {len(matched)} teams that might match "{search}". The closest matches are: '
                    f"{', '.join(names)}. Please ask the user to confirm which team they're looking for."
                )
            else:
                data["confirmationMessage"] = (
                    f'I found {len(matched)} team(s) that might match "{search}": {", ".join(names)}. '
                    "Please confirm which team you're looking for."
                )
        elif search and match_type == "none":
            data["message"] = f'No teams found matching "{search}". Try a different search term or check the spelling.'
        return ToolExecutionResult(success=True, data=data)


class GetTeamInfoTool(Tool):
    """The requesting user's own team."""

    name = "get_team_info"
    description = (
        "Get detailed information about the user's own team including rating, record, and association details."
    )
    parameters_schema: dict[str, Any] = {"type": "object", "properties": {}, "required": []}

    def __init__(self, db: Database) -> None:
        self._db = db

    async def run(self, context: UserContext, **kwargs: Any) -> ToolExecutionResult:
        if context.team_id is None:
            return ToolExecutionResult(success=False, error="No team associated with this user.")
        team = self._db.get_team(context.team_id)
        if team is None:
            return ToolExecutionResult(success=False, error=f"Team {context.team_id} not found.")
        return ToolExecutionResult(success=True, data={"team": team})
