import asyncio
import json
from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest

from rinkmate.actions import ActionExecutor
from rinkmate.agent_runtime import EMPTY_REPLY_MESSAGE, FAILURE_MESSAGE, TOOL_DATA_MARKER, AgentRuntime
from rinkmate.context import UserContextResolver
from rinkmate.models import ChatMessage, LLMResponse, LLMToolCall, PendingAction, ToolExecutionResult, TurnRequest
from rinkmate.tools.base import Tool
from rinkmate.tools.games_tool import CreateGameTool
from rinkmate.tools.registry import ToolRegistry
from rinkmate.tools.teams_tool import GetTeamInfoTool


def _runtime(db, llm, transport=None, max_tool_iterations=5, tools=None) -> AgentRuntime:
    registry = ToolRegistry(db)
    for tool in tools or [GetTeamInfoTool(db), CreateGameTool(db)]:
        registry.register(tool)
    return AgentRuntime(
        llm=llm,
        tool_registry=registry,
        context_resolver=UserContextResolver(db),
        action_executor=ActionExecutor(db, transport or MagicMock()),
        request_timeout_seconds=5,
        max_tool_iterations=max_tool_iterations,
        today=lambda: date(2026, 10, 19),
    )


def _tool_call(name: str, arguments: dict | None = None, call_id: str = "call-1") -> LLMResponse:
    return LLMResponse(content="", tool_calls=[LLMToolCall(name=name, arguments=arguments or {}, call_id=call_id)])


class FakeProvider:
    async def generate(self, messages, tools=None, response_format=None, tool_choice=None):  # noqa: ANN001, ANN201
        return LLMResponse(content="Hello coach!")


@pytest.mark.asyncio
async def test_plain_reply_without_tools(seeded_db):
    runtime = _runtime(seeded_db, FakeProvider())

    response = await runtime.handle_turn(TurnRequest(message="hi", user_id="user-1"))

    assert response.message == "Hello coach!"
    assert response.to_dict() == {"message": "Hello coach!"}


@pytest.mark.asyncio
async def test_prompt_carries_context_history_and_tools(seeded_db):
    llm = MagicMock()
    llm.generate = AsyncMock(return_value=LLMResponse(content="ok"))
    runtime = _runtime(seeded_db, llm)

    await runtime.handle_turn(
        TurnRequest(
            message="what's my rating?",
            user_id="user-1",
            conversation_history=[ChatMessage("user", "hello"), ChatMessage("assistant", "hi there")],
        )
    )

    messages = llm.generate.await_args.args[0]
    assert messages[0]["role"] == "system"
    assert "- Team: Home Hawks 12U AA" in messages[0]["content"]
    assert messages[0]["content"].endswith("Today's date is: 2026-10-19")
    assert [m["role"] for m in messages[1:]] == ["user", "assistant", "user"]
    kwargs = llm.generate.await_args.kwargs
    assert kwargs["tool_choice"] == "auto"
    assert {spec["function"]["name"] for spec in kwargs["tools"]} == {"get_team_info", "create_game"}


@pytest.mark.asyncio
async def test_tool_results_are_fed_back_and_merged(seeded_db):
    llm = MagicMock()
    llm.generate = AsyncMock(
        side_effect=[_tool_call("get_team_info"), LLMResponse(content="Your team is rated 50.")]
    )
    runtime = _runtime(seeded_db, llm)

    response = await runtime.handle_turn(TurnRequest(message="team info", user_id="user-1"))

    assert response.message == "Your team is rated 50."
    assert response.data["team"]["id"] == 1
    second_call = llm.generate.await_args_list[1].args[0]
    assert second_call[-2]["tool_calls"][0]["function"]["name"] == "get_team_info"
    assert second_call[-1]["role"] == "tool"
    assert second_call[-1]["tool_call_id"] == "call-1"
    assert second_call[-1]["content"].startswith(TOOL_DATA_MARKER)


@pytest.mark.asyncio
async def test_side_effecting_tool_returns_pending_action(seeded_db):
    llm = MagicMock()
    llm.generate = AsyncMock(
        return_value=_tool_call(
            "create_game", {"date": "2026-11-01", "time": "7:00 PM", "gameType": "scrimmage"}
        )
    )
    runtime = _runtime(seeded_db, llm)

    response = await runtime.handle_turn(TurnRequest(message="add a scrimmage", user_id="user-1"))

    assert response.pending_action.type == "create_game"
    assert response.message.startswith("I'll add the following game")
    assert response.to_dict()["pendingAction"]["data"]["date"] == "2026-11-01"
    assert seeded_db.list_games(team_id=1) == []
    llm.generate.assert_awaited_once()


@pytest.mark.asyncio
async def test_confirmation_executes_without_model(seeded_db):
    llm = MagicMock()
    llm.generate = AsyncMock()
    runtime = _runtime(seeded_db, llm)
    action = PendingAction(
        type="create_game",
        description="Add a scrimmage",
        data={"date": "2026-11-01", "time": "7:00 PM", "gameType": "scrimmage", "team": 1, "user": "user-1"},
    )

    response = await runtime.handle_turn(
        TurnRequest(message="yes", user_id="user-1", confirm_action=True, pending_action=action)
    )

    assert response.action_executed is True
    assert len(seeded_db.list_games(team_id=1)) == 1
    llm.generate.assert_not_awaited()


@pytest.mark.asyncio
async def test_pending_action_without_confirm_flag_goes_to_model(seeded_db):
    runtime = _runtime(seeded_db, FakeProvider())
    action = PendingAction(type="create_game", description="x", data={"date": "2026-11-01"})

    response = await runtime.handle_turn(
        TurnRequest(message="actually no", user_id="user-1", pending_action=action)
    )

    assert response.message == "Hello coach!"
    assert seeded_db.list_games(team_id=1) == []


@pytest.mark.asyncio
async def test_tool_loop_is_truncated(seeded_db):
    llm = MagicMock()
    llm.generate = AsyncMock(return_value=_tool_call("get_team_info"))
    runtime = _runtime(seeded_db, llm)

    response = await runtime.handle_turn(TurnRequest(message="loop", user_id="user-1"))

    assert llm.generate.await_count == 6
    assert "5 rounds" in response.message
    assert "get_team_info" in response.message
    assert response.error is None


@pytest.mark.asyncio
async def test_unknown_tool_is_reported_back_to_model(seeded_db):
    llm = MagicMock()
    llm.generate = AsyncMock(side_effect=[_tool_call("launch_rockets"), LLMResponse(content="I can't do that.")])
    runtime = _runtime(seeded_db, llm)

    response = await runtime.handle_turn(TurnRequest(message="launch", user_id="user-1"))

    assert response.message == "I can't do that."
    fed_back = llm.generate.await_args_list[1].args[0][-1]["content"]
    assert "Unknown tool: launch_rockets" in fed_back


@pytest.mark.asyncio
async def test_empty_model_reply_gets_fallback(seeded_db):
    llm = MagicMock()
    llm.generate = AsyncMock(return_value=LLMResponse(content=""))

    response = await _runtime(seeded_db, llm).handle_turn(TurnRequest(message="hm", user_id="user-1"))

    assert response.message == EMPTY_REPLY_MESSAGE


@pytest.mark.asyncio
@pytest.mark.parametrize("failure", [RuntimeError("provider down"), asyncio.TimeoutError()])
async def test_model_failure_becomes_error_response(seeded_db, failure):
    llm = MagicMock()
    llm.generate = AsyncMock(side_effect=failure)

    response = await _runtime(seeded_db, llm).handle_turn(TurnRequest(message="hi", user_id="user-1"))

    assert response.message == FAILURE_MESSAGE
    assert response.error


@pytest.mark.asyncio
async def test_unknown_user_gets_minimal_context(seeded_db):
    llm = MagicMock()
    llm.generate = AsyncMock(return_value=LLMResponse(content="Welcome!"))

    response = await _runtime(seeded_db, llm).handle_turn(TurnRequest(message="hi", user_id="stranger"))

    assert response.message == "Welcome!"
    assert "- Team: Not set" in llm.generate.await_args.args[0][0]["content"]


class CountingTeamInfoTool(GetTeamInfoTool):
    def __init__(self, db) -> None:  # noqa: ANN001
        super().__init__(db)
        self.calls = 0

    async def run(self, context, **kwargs):  # noqa: ANN001, ANN003, ANN201
        self.calls += 1
        return await super().run(context, **kwargs)


class MissingContactTool(Tool):
    name = "lookup_contact"
    description = "Fails with guidance."
    parameters_schema = {"type": "object", "properties": {}, "required": []}

    async def run(self, context, **kwargs):  # noqa: ANN001, ANN003, ANN201
        return ToolExecutionResult(
            success=False,
            error="No contact on file. Use get_team_manager to search the web.",
            data={"searchedFor": "Nobody FC"},
        )


@pytest.mark.asyncio
async def test_tool_calls_after_pending_action_still_run(seeded_db):
    team_info = CountingTeamInfoTool(seeded_db)
    llm = MagicMock()
    llm.generate = AsyncMock(
        return_value=LLMResponse(
            content="",
            tool_calls=[
                LLMToolCall(
                    name="create_game",
                    arguments={"date": "2026-11-01", "time": "7:00 PM", "gameType": "scrimmage"},
                    call_id="call-1",
                ),
                LLMToolCall(name="get_team_info", arguments={}, call_id="call-2"),
            ],
        )
    )
    runtime = _runtime(seeded_db, llm, tools=[team_info, CreateGameTool(seeded_db)])

    response = await runtime.handle_turn(TurnRequest(message="add a scrimmage", user_id="user-1"))

    assert team_info.calls == 1
    assert response.pending_action.type == "create_game"
    assert response.pending_action.data["date"] == "2026-11-01"
    assert seeded_db.list_games(team_id=1) == []
    llm.generate.assert_awaited_once()


@pytest.mark.asyncio
async def test_failed_tool_error_reaches_model(seeded_db):
    llm = MagicMock()
    llm.generate = AsyncMock(
        side_effect=[_tool_call("lookup_contact"), LLMResponse(content="I couldn't find that manager.")]
    )
    runtime = _runtime(seeded_db, llm, tools=[MissingContactTool()])

    response = await runtime.handle_turn(TurnRequest(message="email Nobody FC", user_id="user-1"))

    assert response.message == "I couldn't find that manager."
    fed_back = llm.generate.await_args_list[1].args[0][-1]["content"]
    payload = json.loads(fed_back.removeprefix(TOOL_DATA_MARKER))
    assert payload == {
        "success": False,
        "error": "No contact on file. Use get_team_manager to search the web.",
        "searchedFor": "Nobody FC",
    }
