"""Schedule lookup tool."""

from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Callable

from rinkmate.db import Database
from rinkmate.models import ToolExecutionResult, UserContext
from rinkmate.tools.base import Tool

_WINDOW_DAYS = {"week": 7, "month": 30}


class GetUserScheduleTool(Tool):
    """Upcoming games for the user's team."""

    name = "get_user_schedule"
    description = (
        "Fetch the user's games and schedule. Returns all upcoming games with details including "
        "date, time, opponent, location, and game type."
    )
    parameters_schema: dict[str, Any] = {
        "type": "object",
        "properties": {
            "timeframe": {
                "type": "string",
                "enum": ["week", "month", "all"],
                "description": (
                    'Time period to fetch games for. "week" returns next 7 days, "month" returns '
                    'next 30 days, "all" returns all upcoming games.'
                ),
            },
        },
        "required": [],
    }

    def __init__(self, db: Database, today: Callable[[], date] = date.today) -> None:
        self._db = db
        self._today = today

    async def run(self, context: UserContext, **kwargs: Any) -> ToolExecutionResult:
        timeframe = kwargs.get("timeframe")
        if context.team_id is not None:
            games = self._db.list_games(team_id=context.team_id)
        else:
            games = self._db.list_games(user_id=context.user_db_id)

        start = self._today()
        upcoming = [game for game in games if game["date"][:10] >= start.isoformat()]
        if timeframe in _WINDOW_DAYS:
            end = (start + timedelta(days=_WINDOW_DAYS[timeframe])).isoformat()
            upcoming = [game for game in upcoming if game["date"][:10] <= end]
        upcoming.sort(key=lambda game: (game["date"], game.get("time") or ""))

        return ToolExecutionResult(
            success=True,
            data={
                "games": upcoming,
                "totalCount": len(upcoming),
                "timeframe": timeframe or "all upcoming",
            },
        )
