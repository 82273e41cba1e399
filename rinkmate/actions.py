"""Execution of user-confirmed actions."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from rinkmate.db import Database
from rinkmate.errors import ActionExecutionError
from rinkmate.mail import templates
from rinkmate.mail.transport import EmailTransport
from rinkmate.models import EmailDraft, PendingAction, TurnResponse

LOGGER = logging.getLogger(__name__)

FAILED_EMAIL_ERROR = "Failed to send email"


class ActionExecutor:
    """Performs the side effect of a confirmed pending action.

    This is the only place games are written and email is sent on behalf of the
    user. Every successful action is recorded in the chat audit log.
    """

    def __init__(self, db: Database, transport: EmailTransport) -> None:
        self._db = db
        self._transport = transport

    async def execute(self, user_id: str, action: PendingAction) -> TurnResponse:
        LOGGER.info("Executing confirmed %s for user %s", action.type, user_id)
        try:
            if action.type == "create_game":
                response = self._create_game(action.data)
            elif action.type == "add_tournament_to_schedule":
                response = self._add_tournament(action.data)
            elif action.type == "send_email":
                response = await self._send_email(action.data)
            elif action.type == "game_match_results":
                return TurnResponse(
                    message=(
                        "These match results are informational. Pick a team and I can draft an email "
                        "or add a game with them."
                    ),
                    error="Game match results cannot be executed directly",
                )
            else:
                return TurnResponse(message="Unknown action type.", error=f"Unknown action type: {action.type}")
        except ActionExecutionError as exc:
            LOGGER.warning("Confirmed %s failed: %s", action.type, exc)
            return TurnResponse(
                message="I apologize, but there was an error executing that action. Please try again.",
                error=str(exc),
            )
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("Confirmed %s failed", action.type)
            return TurnResponse(
                message="I apologize, but there was an error executing that action. Please try again.",
                error=str(exc) or exc.__class__.__name__,
            )

        if response.action_executed:
            self._audit(user_id, action.type, response.data or {})
        return response

    def _create_game(self, data: dict[str, Any]) -> TurnResponse:
        if not data.get("date"):
            raise ActionExecutionError("A game date is required", action_type="create_game")

        created = self._db.create_games(
            [
                {
                    "date": data["date"],
                    "time": data.get("time"),
                    "opponent": data.get("opponent"),
                    "opponent_name": data.get("opponentName"),
                    "game_type": data.get("gameType"),
                    "is_home": data.get("isHome", True),
                    "rink": data.get("rink"),
                    "city": data.get("city"),
                    "state": data.get("state"),
                    "country": data.get("country"),
                    "team": data.get("team"),
                    "association": data.get("association"),
                    "user": data.get("user"),
                }
            ]
        )
        if not created:
            raise ActionExecutionError("Game was not created", action_type="create_game")
        game = created[0]

        message = "\n".join(
            [
                "The game has been added to your schedule!",
                "",
                "**Game Details:**",
                f"- Date: {data['date']}",
                f"- Time: {data.get('time') or 'TBD'}",
                f"- Type: {data.get('gameType') or 'game'}",
                f"- Opponent: {data.get('opponentName') or 'Open slot'}",
                "",
                "You can view this in your Schedule.",
            ]
        )
        return TurnResponse(message=message, data={"game": game}, action_executed=True)

    def _add_tournament(self, data: dict[str, Any]) -> TurnResponse:
        if not data.get("startDate"):
            raise ActionExecutionError("Tournament start date is missing", action_type="add_tournament_to_schedule")

        created = self._db.create_games(
            [
                {
                    "date": data["startDate"],
                    "game_type": "tournament",
                    "opponent_name": data.get("tournamentName"),
                    "rink": data.get("location"),
                    "team": data.get("team"),
                    "association": data.get("association"),
                    "user": data.get("user"),
                    "tournament_id": data.get("tournamentId"),
                }
            ]
        )
        if not created:
            raise ActionExecutionError("Tournament was not added", action_type="add_tournament_to_schedule")

        lines = [
            f"{data.get('tournamentName') or 'The tournament'} has been added to your schedule!",
            "",
            "**Tournament Details:**",
            f"- Dates: {data['startDate']} to {data.get('endDate') or data['startDate']}",
            f"- Location: {data.get('location') or 'TBD'}",
        ]
        if data.get("registrationUrl"):
            lines += ["", f"Don't forget to complete registration at: {data['registrationUrl']}"]
        lines += ["", "You can view this in your Schedule."]
        return TurnResponse(
            message="\n".join(lines),
            data={"tournament": data, "game": created[0]},
            action_executed=True,
        )

    async def _send_email(self, data: dict[str, Any]) -> TurnResponse:
        draft = EmailDraft.from_dict(data)
        if not draft.to:
            raise ActionExecutionError("Email has no recipient", action_type="send_email")

        from_name = draft.from_name or "Team Manager"
        sent = await self._transport.send(
            to=draft.to,
            subject=draft.subject,
            html_body=templates.message_html(from_name, draft.body, draft.signature),
            text_body=templates.message_text(draft.body, draft.signature),
            from_name=from_name,
            reply_to=draft.from_email,
        )
        if sent is not True:
            return TurnResponse(
                message="I apologize, but there was an error sending the email. Please try again.",
                error=FAILED_EMAIL_ERROR,
            )

        message = "\n".join(
            [
                "Your email has been sent successfully!",
                "",
                "**Email Sent:**",
                f"- To: {draft.to_name} ({draft.to_team})",
                f"- Subject: {draft.subject}",
                "",
                f"The recipient will receive your message at {draft.to}. They can reply directly to your email address.",
            ]
        )
        return TurnResponse(
            message=message,
            data={
                "emailSent": True,
                "to": draft.to,
                "toName": draft.to_name,
                "toTeam": draft.to_team,
                "subject": draft.subject,
                "intent": draft.intent,
                "relatedGameId": draft.related_game_id,
            },
            action_executed=True,
        )

    def _audit(self, user_id: str, action_type: str, data: dict[str, Any]) -> None:
        try:
            self._db.log_chat_action(
                user_id, action_type, {**data, "executedAt": datetime.now(timezone.utc).isoformat()}
            )
        except Exception:  # noqa: BLE001
            LOGGER.warning("Could not write audit entry for %s", action_type, exc_info=True)
