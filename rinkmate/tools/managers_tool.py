"""Team manager contact lookup tool."""

from __future__ import annotations

from typing import Any

from rinkmate.matching.contacts import ManagerContactResolver
from rinkmate.models import ManagerLookup, ToolExecutionResult, UserContext
from rinkmate.tools.base import Tool


class GetTeamManagerTool(Tool):
    """Stored contacts first, web search second."""

    name = "get_team_manager"
    description = (
        "Get contact information for a team manager. ALWAYS use this tool when the user mentions \"email\", "
        "\"contact\", \"reach out to\", \"message\", or \"manager\" in relation to a team. Searches the managers "
        "database first, then the web. Supports fuzzy matching and state abbreviations "
        '(e.g., "NJ" matches "New Jersey").'
    )
    parameters_schema: dict[str, Any] = {
        "type": "object",
        "properties": {
            "teamName": {
                "type": "string",
                "description": 'Team name; partial names and state abbreviations are fine (e.g., "NJ Falcons").',
            },
            "teamId": {"type": "integer", "description": "Team id from a previous search."},
        },
        "required": [],
    }

    def __init__(self, contacts: ManagerContactResolver) -> None:
        self._contacts = contacts

    async def run(self, context: UserContext, **kwargs: Any) -> ToolExecutionResult:
        team_name = kwargs.get("teamName")
        team_id = kwargs.get("teamId")
        if not team_name and team_id is None:
            return ToolExecutionResult(
                success=False,
                error="Please provide either a team name or team ID to look up the manager.",
            )

        lookup = await self._contacts.resolve(team_id if team_id is not None else team_name)
        if not lookup.contacts:
            if lookup.error and lookup.source == "database":
                return ToolExecutionResult(success=False, error=lookup.error)
            return ToolExecutionResult(
                success=True,
                data={
                    "managers": [],
                    "totalCount": 0,
                    "source": lookup.source,
                    "status": lookup.status,
                    "message": (
                        f'I couldn\'t find contact information for "{lookup.search_term}". '
                        "Try the full team name or check the team's website."
                    ),
                },
            )

        data: dict[str, Any] = {
            "managers": [contact.to_dict() for contact in lookup.contacts],
            "totalCount": len(lookup.contacts),
            "source": lookup.source,
            "matchType": lookup.match_type,
            "status": lookup.status,
        }
        data.update(fuzzy_match_note(lookup, team_name or lookup.search_term))
        if lookup.source == "web":
            data["savedCount"] = lookup.saved_count
        return ToolExecutionResult(success=True, data=data)


def fuzzy_match_note(lookup: ManagerLookup, searched_for: str) -> dict[str, Any]:
    """Confirmation hint when the matched team label differs from the query."""
    found = lookup.manager.team if lookup.manager else ""
    if lookup.match_type != "fuzzy" or searched_for.lower() == found.lower():
        return {"fuzzyMatch": False}
    return {
        "fuzzyMatch": True,
        "searchedFor": searched_for,
        "foundTeam": found,
        "confirmationNeeded": (
            f'You searched for "{searched_for}" and I found "{found}". Please confirm this is the correct team.'
        ),
    }
