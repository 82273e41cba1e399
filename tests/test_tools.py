import json
import sqlite3
from datetime import date
from typing import Any

import pytest

from rinkmate.context import UserContextResolver
from rinkmate.models import ToolExecutionResult, UserContext
from rinkmate.tools.base import Tool
from rinkmate.tools.games_tool import CreateGameTool, OpponentLookup
from rinkmate.tools.registry import ToolRegistry
from rinkmate.tools.schedule_tool import GetUserScheduleTool
from rinkmate.tools.teams_tool import GetTeamInfoTool, GetTeamsTool
from rinkmate.tools.tournaments_tool import AddTournamentToScheduleTool, GetTournamentsTool

TODAY = date(2026, 10, 19)


class ExplodingTool(Tool):
    name = "explode"
    description = "Always fails."
    parameters_schema: dict[str, Any] = {"type": "object", "properties": {}, "required": []}

    async def run(self, context: UserContext, **kwargs: Any) -> ToolExecutionResult:
        raise RuntimeError("kaput")


@pytest.fixture
def context(seeded_db) -> UserContext:
    return UserContextResolver(seeded_db).resolve("user-1")


def _seed_tournaments(db) -> None:
    db.upsert_tournament(
        "t-1", "Winter Classic", "2026-12-01", "2026-12-03", location="Trenton, NJ",
        latitude=40.1, longitude=-75.0, age=["12U"], level=["A", "AA"],
        registration_url="https://example.org/winter",
    )
    db.upsert_tournament(
        "t-2", "Thanksgiving Showcase", "2026-11-27", "2026-11-29", location="Lake Placid, NY",
        latitude=44.0, longitude=-75.0, age=["14U"], level=["AAA"],
    )
    db.upsert_tournament("t-3", "Summer Jam", "2026-07-01", "2026-07-03", age=["12U"])


@pytest.mark.asyncio
async def test_registry_executes_and_logs(seeded_db, context, tmp_path):
    registry = ToolRegistry(seeded_db)
    registry.register(GetTeamInfoTool(seeded_db))

    result = await registry.execute("get_team_info", {}, context)

    assert result.success is True
    assert result.data["team"]["name"] == "Home Hawks 12U AA"
    conn = sqlite3.connect(tmp_path / "rinkmate.db")
    rows = conn.execute("SELECT user_id, tool_name, succeeded FROM tool_executions").fetchall()
    conn.close()
    assert rows == [("user-1", "get_team_info", 1)]


@pytest.mark.asyncio
async def test_registry_rejects_unknown_tool(seeded_db, context):
    result = await ToolRegistry(seeded_db).execute("launch_rockets", {}, context)

    assert result.success is False
    assert result.error == "Unknown tool: launch_rockets"


@pytest.mark.asyncio
async def test_registry_rejects_invalid_arguments(seeded_db, context):
    registry = ToolRegistry(seeded_db)
    registry.register(GetUserScheduleTool(seeded_db))
    registry.register(CreateGameTool(seeded_db))

    bad_enum = await registry.execute("get_user_schedule", {"timeframe": "decade"}, context)
    missing = await registry.execute("create_game", {"date": "2026-11-01"}, context)

    assert bad_enum.success is False
    assert bad_enum.error.startswith("Invalid input for tool")
    assert missing.success is False
    assert "time" in missing.error


@pytest.mark.asyncio
async def test_registry_wraps_tool_exceptions(context):
    registry = ToolRegistry()
    registry.register(ExplodingTool())

    result = await registry.execute("explode", {}, context)

    assert result.success is False
    assert result.error == "kaput"
    assert result.model_payload() == {"success": False, "error": "kaput"}


def test_registry_lists_function_specs(seeded_db):
    registry = ToolRegistry()
    registry.register(GetTeamsTool(seeded_db))

    specs = registry.list_tool_specs()

    assert registry.tool_names == ["get_teams"]
    assert specs[0]["type"] == "function"
    assert specs[0]["function"]["name"] == "get_teams"
    assert "nearbyOnly" in specs[0]["function"]["parameters"]["properties"]


@pytest.mark.asyncio
async def test_schedule_windows(seeded_db, context):
    seeded_db.create_games(
        [
            {"date": "2026-10-01", "team": 1},
            {"date": "2026-10-19", "time": "18:00", "team": 1},
            {"date": "2026-10-22", "team": 1},
            {"date": "2026-11-10", "team": 1},
            {"date": "2027-01-20", "team": 1},
            {"date": "2026-10-20", "team": 2},
        ]
    )
    tool = GetUserScheduleTool(seeded_db, today=lambda: TODAY)

    week = await tool.run(context, timeframe="week")
    month = await tool.run(context, timeframe="month")
    everything = await tool.run(context)

    assert [g["date"] for g in week.data["games"]] == ["2026-10-19", "2026-10-22"]
    assert month.data["totalCount"] == 3
    assert everything.data["totalCount"] == 4
    assert everything.data["timeframe"] == "all upcoming"


@pytest.mark.asyncio
async def test_team_search_expands_abbreviations(seeded_db, context):
    result = await GetTeamsTool(seeded_db).run(context, search="NJ Falcons")

    assert result.data["matchType"] == "fuzzy"
    assert result.data["topMatches"] == ["New Jersey Falcons 12U A"]
    assert result.data["suggestConfirmation"] is True
    assert "Please confirm" in result.data["confirmationMessage"]


@pytest.mark.asyncio
async def test_team_search_exact_and_none(seeded_db, context):
    tool = GetTeamsTool(seeded_db)

    exact = await tool.run(context, search="Valley Forge Flyers")
    none = await tool.run(context, search="Zamboni Drivers")

    assert exact.data["matchType"] == "exact"
    assert exact.data["teams"][0]["id"] == 3
    assert "suggestConfirmation" not in exact.data
    assert none.data["matchType"] == "none"
    assert none.data["teams"] == []
    assert "No teams found matching" in none.data["message"]


@pytest.mark.asyncio
async def test_nearby_teams_and_age_fallback(seeded_db, context):
    tool = GetTeamsTool(seeded_db)

    nearby = await tool.run(context, nearbyOnly=True)
    fallback = await tool.run(context, nearbyOnly=True, age="8U")

    assert {team["id"] for team in nearby.data["teams"]} == {1, 2, 3, 6}
    assert nearby.data["searchType"] == "nearby"
    assert fallback.data["totalCount"] == 5
    assert fallback.data["message"].startswith("No 8U teams found nearby")


@pytest.mark.asyncio
async def test_nearby_teams_without_association(seeded_db):
    result = await GetTeamsTool(seeded_db).run(UserContext("u", "u"), nearbyOnly=True)

    assert result.success is True
    assert result.data["teams"] == []
    assert "not set up" in result.data["message"]


@pytest.mark.asyncio
async def test_team_info_requires_team(seeded_db):
    result = await GetTeamInfoTool(seeded_db).run(UserContext("u", "u"))

    assert result.success is False


@pytest.mark.asyncio
async def test_tournament_filters_apply_only_when_nonempty(seeded_db, context):
    _seed_tournaments(seeded_db)
    tool = GetTournamentsTool(seeded_db, today=lambda: TODAY)

    by_age = await tool.run(context, age="12U")
    impossible = await tool.run(context, age="18U")
    combined = await tool.run(context, level="AAA", endDate="2026-11-30")

    assert [t["id"] for t in by_age.data["tournaments"]] == ["t-1"]
    assert by_age.data["appliedFilters"] == ["age: 12U"]
    assert impossible.data["totalCount"] == 2
    assert "appliedFilters" not in impossible.data
    assert [t["id"] for t in combined.data["tournaments"]] == ["t-2"]
    assert combined.data["appliedFilters"] == ["level: AAA", "ending before: 2026-11-30"]


@pytest.mark.asyncio
async def test_nearby_tournaments(seeded_db, context):
    _seed_tournaments(seeded_db)

    result = await GetTournamentsTool(seeded_db, today=lambda: TODAY).run(context, nearbyOnly=True)

    assert [t["id"] for t in result.data["tournaments"]] == ["t-1"]


@pytest.mark.asyncio
async def test_no_tournaments_message(seeded_db, context):
    result = await GetTournamentsTool(seeded_db, today=lambda: TODAY).run(context)

    assert result.data["totalCount"] == 0
    assert "No upcoming tournaments" in result.data["message"]


@pytest.mark.asyncio
async def test_add_tournament_proposes_without_writing(seeded_db, context):
    _seed_tournaments(seeded_db)

    result = await AddTournamentToScheduleTool(seeded_db).run(
        context, tournamentId="t-1", tournamentName="Winter Classic"
    )

    assert result.requires_confirmation is True
    assert result.pending_action.type == "add_tournament_to_schedule"
    assert result.pending_action.data["registrationUrl"] == "https://example.org/winter"
    assert result.pending_action.data["team"] == 1
    assert "Registration: https://example.org/winter" in result.data["confirmationMessage"]
    assert seeded_db.list_games(team_id=1) == []


@pytest.mark.asyncio
async def test_add_unknown_tournament_fails(seeded_db, context):
    result = await AddTournamentToScheduleTool(seeded_db).run(context, tournamentId="nope", tournamentName="Nope")

    assert result.success is False
    assert result.error == "Tournament not found"


@pytest.mark.asyncio
async def test_create_game_proposes_with_resolved_opponent(seeded_db, context):
    result = await CreateGameTool(seeded_db).run(
        context, date="2026-11-01", time="7:00 PM", gameType="scrimmage", opponentName="NJ Falcons 12U"
    )

    action = result.pending_action
    assert result.requires_confirmation is True
    assert action.type == "create_game"
    assert action.data["opponent"] == 2
    assert action.data["opponentName"] == "New Jersey Falcons 12U A"
    assert action.data["city"] == "Princeton"
    assert action.data["country"] == "USA"
    assert action.data["isHome"] is True
    assert "Opponent: New Jersey Falcons 12U A (ID: 2)" in result.data["confirmationMessage"]
    assert json.dumps(action.to_dict())
    assert seeded_db.list_games(team_id=1) == []


@pytest.mark.asyncio
async def test_create_game_keeps_unknown_opponent_name(seeded_db, context):
    result = await CreateGameTool(seeded_db).run(
        context, date="2026-11-01", time="7:00 PM", gameType="league", opponentName="Zamboni Drivers", isHome=False
    )

    assert result.pending_action.data["opponent"] is None
    assert result.pending_action.data["opponentName"] == "Zamboni Drivers"
    assert "Location: Away" in result.data["confirmationMessage"]


def test_opponent_lookup_prefers_matching_level(seeded_db):
    lookup = OpponentLookup(seeded_db)

    assert lookup.find("Home Hawks 12U B")["id"] == 6
    assert lookup.find("Hawks 12U B")["id"] == 6
    assert lookup.find("Hawks 12U AA")["id"] == 1
    assert lookup.find("Nobody Special") is None
