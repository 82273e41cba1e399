"""Nearby places search tool."""

from __future__ import annotations

import logging
from typing import Any

from rinkmate.db import Database
from rinkmate.llm.base import LLMProvider
from rinkmate.llm.parsing import load_json_payload, strip_citations
from rinkmate.models import ToolExecutionResult, UserContext
from rinkmate.tools.base import Tool

LOGGER = logging.getLogger(__name__)

_PLACE_HINTS = {
    "restaurant": (
        "- Look for family-friendly options\n"
        "- Consider places with quick service (good for before/after games)\n"
        "- Include a mix of casual and sit-down options"
    ),
    "hotel": (
        "- Look for hotels near ice rinks or sports complexes\n"
        "- Consider places that offer team rates or have room for equipment\n"
        "- Include options with pools"
    ),
    "sports_bar": "- Look for places that show hockey games\n- Family-friendly options preferred",
    "gas_station": "- Look for major chains with good reviews\n- Consider ones with convenience stores",
}
_PLACE_FIELDS = ("name", "address", "rating", "priceRange", "description", "website")


class SearchNearbyPlacesTool(Tool):
    """Restaurants, hotels and the like near a game, via a web-search completion."""

    name = "search_nearby_places"
    description = (
        "Find restaurants, hotels, or other places near a game location. When the user mentions a specific "
        "game, call get_user_schedule first and pass the game's city and state as gameLocation."
    )
    parameters_schema: dict[str, Any] = {
        "type": "object",
        "properties": {
            "placeType": {
                "type": "string",
                "enum": list(_PLACE_HINTS),
                "description": "Type of place to search for.",
            },
            "gameId": {"type": "string", "description": "Game to search near. Optional; prefer gameLocation."},
            "gameLocation": {"type": "string", "description": 'Location to search near (e.g., "Mount Vernon, NY").'},
            "maxResults": {"type": "integer", "description": "Maximum number of results (default: 5)."},
        },
        "required": ["placeType"],
    }

    def __init__(self, db: Database, llm: LLMProvider) -> None:
        self._db = db
        self._llm = llm

    async def run(self, context: UserContext, **kwargs: Any) -> ToolExecutionResult:
        place_type = kwargs["placeType"]
        location = kwargs.get("gameLocation")
        if kwargs.get("gameId"):
            game = self._db.get_game(kwargs["gameId"])
            if game is not None:
                location = f"{game.get('city') or ''}, {game.get('state') or ''}".strip(", ")
        if not location:
            LOGGER.warning("No location provided or found for nearby places search")
            return ToolExecutionResult(
                success=False,
                error="Could not determine location. Please specify a game or location.",
            )

        max_results = max(1, kwargs.get("maxResults") or 5)
        readable = place_type.replace("_", " ")
        try:
            text = await self._llm.search(_places_prompt(readable, place_type, location, max_results))
            payload = load_json_payload(text)
            raw_places = payload.get("places", []) if isinstance(payload, dict) else payload
            places = [
                {field: strip_citations(item.get(field)) for field in _PLACE_FIELDS}
                for item in raw_places or []
                if isinstance(item, dict)
            ][:max_results]
        except Exception:  # noqa: BLE001
            LOGGER.exception("Web search for %ss near %s failed", readable, location)
            return ToolExecutionResult(
                success=True,
                data={
                    "message": (
                        f"I encountered an issue searching for {readable}s near {location}. "
                        "Try searching on Google Maps for better results."
                    ),
                    "places": [],
                    "location": location,
                    "placeType": place_type,
                },
            )

        if not places:
            return ToolExecutionResult(
                success=True,
                data={
                    "message": (
                        f"I searched for {readable}s near {location} but couldn't find specific recommendations. "
                        f'Try searching on Google Maps for "{readable}s near {location}".'
                    ),
                    "places": [],
                    "location": location,
                    "placeType": place_type,
                },
            )
        return ToolExecutionResult(
            success=True,
            data={"places": places, "totalCount": len(places), "location": location, "placeType": place_type},
        )


def _places_prompt(readable: str, place_type: str, location: str, max_results: int) -> str:
    return f"""Search query: best {readable}s near {location}

You are a local recommendations assistant for hockey families traveling to games.
Search for the best {readable}s near {location}.
{_PLACE_HINTS.get(place_type, "")}

Return a JSON object with an array of places:
{{
  "places": [
    {{"name": "Place Name", "address": "123 Main St, City, State", "rating": "4.5", "priceRange": "$$", "description": "Why this is a good choice", "website": "https://..."}}
  ]
}}

Return up to {max_results} results. If nothing is found, return: {{"places": []}}"""
