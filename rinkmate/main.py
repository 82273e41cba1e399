"""Application entrypoint and development console."""

from __future__ import annotations

import asyncio
import logging

from rinkmate.actions import ActionExecutor
from rinkmate.agent_runtime import AgentRuntime
from rinkmate.config import Settings, load_settings
from rinkmate.context import UserContextResolver
from rinkmate.db import Database
from rinkmate.llm.base import LLMProvider
from rinkmate.llm.ddg_search import DdgSearchProvider
from rinkmate.llm.openrouter import OpenRouterProvider
from rinkmate.mail.drafts import EmailDraftGenerator
from rinkmate.mail.transport import SmtpEmailTransport
from rinkmate.matching.contacts import ManagerContactResolver
from rinkmate.matching.fuzzy import FuzzyNameResolver
from rinkmate.matching.opponents import OpponentMatcher
from rinkmate.matching.scoring import OpponentScorer
from rinkmate.models import ChatMessage, PendingAction, TurnRequest
from rinkmate.tools.email_tool import DraftEmailTool
from rinkmate.tools.games_tool import CreateGameTool
from rinkmate.tools.managers_tool import GetTeamManagerTool
from rinkmate.tools.matches_tool import FindGameMatchesTool
from rinkmate.tools.places_tool import SearchNearbyPlacesTool
from rinkmate.tools.registry import ToolRegistry
from rinkmate.tools.schedule_tool import GetUserScheduleTool
from rinkmate.tools.teams_tool import GetTeamInfoTool, GetTeamsTool
from rinkmate.tools.tournaments_tool import AddTournamentToScheduleTool, GetTournamentsTool

LOGGER = logging.getLogger(__name__)

_CONFIRM_WORDS = {"y", "yes", "confirm", "send", "ok"}


def build_provider(settings: Settings) -> LLMProvider:
    provider: LLMProvider = OpenRouterProvider(settings)
    if settings.web_search_backend.lower() == "ddg":
        provider = DdgSearchProvider(provider)
    return provider


def build_runtime(settings: Settings, db: Database, llm: LLMProvider) -> AgentRuntime:
    """Wire every layer of the assistant around one store and one provider."""

    fuzzy = FuzzyNameResolver()
    context_resolver = UserContextResolver(db)
    contacts = ManagerContactResolver(db, llm, fuzzy)
    drafts = EmailDraftGenerator(llm, timeout_seconds=settings.request_timeout_seconds)
    matcher = OpponentMatcher(
        db,
        context_resolver,
        contacts,
        drafts,
        scorer=OpponentScorer(settings.scoring_policy()),
        discovery_batch_size=settings.match_discovery_batch_size,
    )

    tools = ToolRegistry(db)
    tools.register(GetUserScheduleTool(db))
    tools.register(GetTeamsTool(db, fuzzy))
    tools.register(GetTeamInfoTool(db))
    tools.register(GetTournamentsTool(db))
    tools.register(CreateGameTool(db, fuzzy))
    tools.register(AddTournamentToScheduleTool(db))
    tools.register(GetTeamManagerTool(contacts))
    tools.register(DraftEmailTool(db, contacts, drafts))
    tools.register(SearchNearbyPlacesTool(db, llm))
    tools.register(FindGameMatchesTool(matcher))

    return AgentRuntime(
        llm=llm,
        tool_registry=tools,
        context_resolver=context_resolver,
        action_executor=ActionExecutor(db, SmtpEmailTransport(settings)),
        request_timeout_seconds=settings.request_timeout_seconds,
        max_tool_iterations=settings.max_tool_iterations,
    )


async def run() -> None:
    """Drive turns from stdin for local development."""

    settings = load_settings()
    logging.basicConfig(level=settings.log_level.upper())

    db = Database(settings.database_path)
    db.initialize()
    runtime = build_runtime(settings, db, build_provider(settings))

    user_id = settings.dev_user_id or "dev-user"
    history: list[ChatMessage] = []
    pending: PendingAction | None = None
    LOGGER.info("Console ready for user %s (Ctrl-D to exit)", user_id)

    while True:
        try:
            text = (await asyncio.to_thread(input, "> ")).strip()
        except EOFError:
            break
        if not text:
            continue

        confirm = pending is not None and text.lower() in _CONFIRM_WORDS
        request = TurnRequest(
            message=text,
            user_id=user_id,
            conversation_history=list(history),
            confirm_action=confirm,
            pending_action=pending if confirm else None,
        )
        response = await runtime.handle_turn(request)
        print(response.message)
        if response.error:
            print(f"[error] {response.error}")

        pending = response.pending_action
        history += [ChatMessage("user", text), ChatMessage("assistant", response.message)]

    LOGGER.info("Console shutdown complete")


def main() -> None:
    """Synchronous wrapper for asyncio entrypoint."""

    asyncio.run(run())


if __name__ == "__main__":
    main()
