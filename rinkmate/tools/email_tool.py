"""Email drafting tool."""

from __future__ import annotations

import json
import logging
from typing import Any

from rinkmate.db import Database
from rinkmate.mail.drafts import EmailDraftGenerator, Party, build_from_name, build_signature
from rinkmate.matching.contacts import ManagerContactResolver
from rinkmate.models import EMAIL_INTENTS, EmailDraft, ToolExecutionResult, UserContext
from rinkmate.tools.base import Tool, propose
from rinkmate.tools.managers_tool import fuzzy_match_note

LOGGER = logging.getLogger(__name__)


class DraftEmailTool(Tool):
    """Drafts a message to another team's manager and proposes sending it."""

    name = "draft_email"
    description = (
        "Draft an email to another team manager. Use this DIRECTLY when the user wants to email, contact, "
        "or reach out to another team; it looks the manager up itself with fuzzy matching and state "
        "abbreviations. IMPORTANT: This action requires user confirmation before sending."
    )
    parameters_schema: dict[str, Any] = {
        "type": "object",
        "properties": {
            "recipientTeamName": {
                "type": "string",
                "description": 'Team whose manager receives the email (e.g., "NJ Falcons").',
            },
            "recipientTeamId": {"type": "integer", "description": "Team id, if known."},
            "intent": {
                "type": "string",
                "enum": list(EMAIL_INTENTS),
                "description": "Purpose of the email.",
            },
            "proposedDate": {"type": "string", "description": "Proposed game date (YYYY-MM-DD)."},
            "proposedTime": {"type": "string", "description": 'Proposed game time, e.g. "7:00 PM".'},
            "existingGameId": {"type": "string", "description": "Existing game id (reschedule or cancel)."},
            "additionalContext": {"type": "string", "description": "Anything else the user wants to say."},
        },
        "required": ["intent"],
    }

    def __init__(self, db: Database, contacts: ManagerContactResolver, drafts: EmailDraftGenerator) -> None:
        self._db = db
        self._contacts = contacts
        self._drafts = drafts

    async def run(self, context: UserContext, **kwargs: Any) -> ToolExecutionResult:
        intent = kwargs["intent"]
        team_name = kwargs.get("recipientTeamName")
        team_id = kwargs.get("recipientTeamId")
        searched_for = team_name or (str(team_id) if team_id is not None else "")

        lookup = None
        if team_id is not None or team_name:
            lookup = await self._contacts.resolve(team_id if team_id is not None else team_name, allow_web=False)
        manager = next((c for c in lookup.contacts if c.email), None) if lookup else None
        if manager is None:
            shown = team_name or "the specified team"
            return ToolExecutionResult(
                success=False,
                error=(
                    f'Could not find contact information for "{shown}" in our managers database. '
                    "Try a different spelling or the full team name, ask the user for the exact team name, "
                    "or use get_team_manager to search the web."
                ),
                data={
                    "searchedFor": shown,
                    "suggestion": "Try searching with the full team name or ask the user to confirm the team name.",
                },
            )

        existing = []
        if kwargs.get("existingGameId"):
            game = self._db.get_game(kwargs["existingGameId"])
            if game is not None:
                existing.append(f"Existing Game: {json.dumps(game, default=str)}")
        if kwargs.get("additionalContext"):
            existing.append(kwargs["additionalContext"])

        text = await self._drafts.draft(
            intent,
            sender=Party(name=context.user_name or "Team Manager", team=context.team_name or ""),
            recipient=Party(name=manager.name, team=manager.team),
            proposed_date=kwargs.get("proposedDate"),
            proposed_time=kwargs.get("proposedTime"),
            existing_context="\n".join(existing) or None,
        )
        signature = build_signature(context)
        draft = EmailDraft(
            to=manager.email,
            to_name=manager.name,
            to_team=manager.team,
            subject=text.subject,
            body=text.body,
            signature=signature,
            intent=intent,
            related_game_id=kwargs.get("existingGameId"),
            from_name=build_from_name(context),
            from_email=context.email,
        )

        note = fuzzy_match_note(lookup, searched_for)
        fuzzy_line = f"\n\n**Note:** {note['confirmationNeeded']}\n" if note["fuzzyMatch"] else ""
        message = (
            f"I've drafted the following email for your review:{fuzzy_line}\n\n"
            f"**To:** {manager.name} ({manager.team})\n"
            f"**Email:** {manager.email}\n"
            f"**Subject:** {text.subject}\n\n"
            f"---\n\n{text.body}\n\n{signature}\n\n---\n\n"
            "You can edit this email before sending. Would you like me to send this email?"
        )
        LOGGER.info("Drafted %s email to %s", intent, manager.email)
        return propose(
            "send_email",
            f"Send email to {manager.name} ({manager.team}) - {intent}",
            draft.to_dict(),
            message,
            emailDraft=draft.to_dict(),
            **note,
        )
