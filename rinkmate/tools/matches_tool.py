"""Opponent matching tool."""

from __future__ import annotations

from typing import Any

from rinkmate.errors import TeamNotConfiguredError
from rinkmate.matching.opponents import MAX_RESULTS_CAP, OpponentMatcher
from rinkmate.models import GameMatchResults, ToolExecutionResult, UserContext
from rinkmate.tools.base import Tool, propose


class FindGameMatchesTool(Tool):
    """Ranked opponents with contacts and ready-to-send drafts."""

    name = "find_game_matches"
    description = (
        "Find and rank potential opponents for a date window: nearby teams with similar ratings, their "
        "manager contacts and draft outreach emails."
    )
    parameters_schema: dict[str, Any] = {
        "type": "object",
        "properties": {
            "startDate": {"type": "string", "description": "Start of the window (YYYY-MM-DD)."},
            "endDate": {"type": "string", "description": "End of the window (YYYY-MM-DD)."},
            "maxDistance": {"type": "number", "description": "Maximum travel distance in miles (default 100)."},
            "excludeRecentOpponents": {
                "type": "boolean",
                "description": "Rank teams already played in the window lower.",
            },
            "maxResults": {"type": "integer", "description": "Number of matches to return (default 5, max 10)."},
        },
        "required": ["startDate", "endDate"],
    }

    def __init__(self, matcher: OpponentMatcher) -> None:
        self._matcher = matcher

    async def run(self, context: UserContext, **kwargs: Any) -> ToolExecutionResult:
        start_date, end_date = kwargs["startDate"], kwargs["endDate"]
        try:
            results = await self._matcher.find_matches(
                context.user_id,
                start_date,
                end_date,
                max_distance=kwargs.get("maxDistance") or 100,
                exclude_recent_opponents=bool(kwargs.get("excludeRecentOpponents", False)),
                max_results=min(max(1, kwargs.get("maxResults") or 5), MAX_RESULTS_CAP),
            )
        except TeamNotConfiguredError as exc:
            return ToolExecutionResult(success=False, error=str(exc))

        payload = results.to_dict()
        if not results.matches:
            return ToolExecutionResult(
                success=True,
                data={
                    "message": (
                        f"I searched for opponents within {results.search_radius:g} miles with similar ratings, "
                        f"but didn't find any matches for {start_date} to {end_date}. Try expanding your search "
                        "distance or adjusting the date range."
                    ),
                    "results": payload,
                },
            )

        return propose(
            "game_match_results",
            f"Found {len(results.matches)} potential opponents for {start_date} to {end_date}",
            payload,
            match_summary(results),
            results=payload,
        )


def match_summary(results: GameMatchResults) -> str:
    team = results.user_team
    lines = [
        f"I found {len(results.matches)} potential opponents for your {team.get('age') or ''} team "
        f"(rating: {team['rating']:g}) within {results.search_radius:g} miles:",
        "",
    ]
    for match in results.matches:
        if match.manager_status == "found" and match.manager is not None:
            contact = f"Contact: {match.manager.name}"
        elif match.manager_status == "manual-contact":
            contact = "Manual contact needed"
        else:
            contact = "No contact found"
        rating = match.team.rating if match.team.rating is not None else 0
        lines.append(f"**{match.rank}. {match.team.name}** (Rating: {rating:g}, {match.distance_miles} mi)")
        lines.append(f"   {match.explanation}")
        lines.append(f"   {contact}")
        lines.append("")
    lines.append("You can review and send individual emails to each team below.")
    return "\n".join(lines)
