"""Email draft generation for manager-to-manager messages."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any

from rinkmate.llm.base import LLMProvider
from rinkmate.models import UserContext

LOGGER = logging.getLogger(__name__)

INTENT_DESCRIPTIONS = {
    "schedule": "scheduling a new game",
    "reschedule": "rescheduling an existing game",
    "cancel": "canceling a game",
    "general": "general communication about hockey",
}


@dataclass(slots=True)
class DraftText:
    subject: str
    body: str


@dataclass(slots=True)
class Party:
    """One side of a message: a display name and a team label."""

    name: str
    team: str


class EmailDraftGenerator:
    """Drafts subject and body with one JSON completion, falling back to templates."""

    def __init__(self, llm: LLMProvider, timeout_seconds: float | None = None) -> None:
        self._llm = llm
        self._timeout_seconds = timeout_seconds

    async def draft(
        self,
        intent: str,
        sender: Party,
        recipient: Party,
        proposed_date: str | None = None,
        proposed_time: str | None = None,
        existing_context: str | None = None,
        date_window: tuple[str, str] | None = None,
    ) -> DraftText:
        intent = intent if intent in INTENT_DESCRIPTIONS else "general"
        fallback = default_template(intent, sender, recipient, proposed_date, proposed_time, date_window)
        prompt = _draft_prompt(intent, sender, recipient, proposed_date, proposed_time, existing_context, date_window)

        try:
            response = await asyncio.wait_for(
                self._llm.generate(
                    [{"role": "user", "content": prompt}],
                    response_format={"type": "json_object"},
                ),
                timeout=self._timeout_seconds,
            )
            result: Any = json.loads(response.content or "{}")
            if not isinstance(result, dict):
                raise ValueError("draft reply is not a JSON object")
        except Exception:  # noqa: BLE001
            LOGGER.warning("Email draft generation failed; using %s template", intent, exc_info=True)
            return fallback

        return DraftText(
            subject=str(result.get("subject") or fallback.subject),
            body=str(result.get("body") or fallback.body),
        )


def greeting(recipient_name: str | None) -> str:
    if recipient_name and recipient_name.strip():
        return f"Hi {recipient_name.strip()},"
    return "To Whom It May Concern,"


def default_template(
    intent: str,
    sender: Party,
    recipient: Party,
    proposed_date: str | None = None,
    proposed_time: str | None = None,
    date_window: tuple[str, str] | None = None,
) -> DraftText:
    hello = greeting(recipient.name)
    when = f"{proposed_date} at {proposed_time}" if proposed_date and proposed_time else proposed_date

    if intent == "schedule":
        if when:
            ask = f"We were thinking about {when}."
        elif date_window:
            ask = (
                f"We're looking to play sometime between {date_window[0]} and {date_window[1]}. "
                "Would any dates in that window work for your team?"
            )
        else:
            ask = "Please let me know what dates work for your team."
        return DraftText(
            subject=f"Game Request - {sender.team} vs {recipient.team}",
            body=(
                f"{hello}\n\n"
                f"I hope this message finds you well. I'm reaching out to see if {recipient.team} "
                f"would be interested in scheduling a game against {sender.team}.\n\n"
                f"{ask}\n\n"
                "Looking forward to hearing from you."
            ),
        )
    if intent == "reschedule":
        ask = (
            f"Would {when} work for your team?"
            if when
            else "Could you please let me know what alternative dates might work?"
        )
        return DraftText(
            subject=f"Game Reschedule Request - {sender.team}",
            body=(
                f"{hello}\n\n"
                "I hope you're doing well. Unfortunately, we need to reschedule our upcoming game.\n\n"
                f"{ask}\n\n"
                "I apologize for any inconvenience this may cause."
            ),
        )
    if intent == "cancel":
        return DraftText(
            subject=f"Game Cancellation - {sender.team}",
            body=(
                f"{hello}\n\n"
                "I regret to inform you that we need to cancel our upcoming game. "
                "I apologize for any inconvenience this may cause.\n\n"
                "If you'd like to reschedule for a future date, please let me know and we can work something out."
            ),
        )
    return DraftText(
        subject=f"Message from {sender.team}",
        body=(
            f"{hello}\n\n"
            "I wanted to reach out regarding our teams.\n\n"
            "Please let me know if you have any questions or if there's anything we need to discuss."
        ),
    )


def build_signature(context: UserContext) -> str:
    """Sign-off block appended to every outbound message."""
    lines = ["Best regards,"]
    for value in (context.user_name, context.team_name, context.association_name):
        if value:
            lines.append(value)
    if context.phone:
        lines.append(f"Phone: {context.phone}")
    return "\n".join(lines)


def build_from_name(context: UserContext) -> str:
    if context.user_name:
        return f"{context.user_name} - {context.team_name or 'Team Manager'}"
    if context.team_name:
        return f"{context.team_name} Manager"
    return "Team Manager"


def _draft_prompt(
    intent: str,
    sender: Party,
    recipient: Party,
    proposed_date: str | None,
    proposed_time: str | None,
    existing_context: str | None,
    date_window: tuple[str, str] | None,
) -> str:
    has_name = bool(recipient.name and recipient.name.strip())
    if has_name:
        greeting_rule = f'Start the email with "Hi {recipient.name.strip()},"'
        recipient_line = f"{recipient.name} ({recipient.team})"
    else:
        greeting_rule = (
            'Start the email with "To Whom It May Concern," since we do not have the recipient\'s name'
        )
        recipient_line = f"Unknown contact at {recipient.team}"

    details = []
    if proposed_date:
        details.append(f"Proposed Date: {proposed_date}")
    if proposed_time:
        details.append(f"Proposed Time: {proposed_time}")
    if date_window:
        details.append(f"Looking for a game between {date_window[0]} and {date_window[1]}")
    if existing_context:
        details.append(f"Additional Context: {existing_context}")
    detail_block = "\n".join(details)

    return f"""You are drafting a professional email from a youth hockey team manager to another team manager.

Purpose: {INTENT_DESCRIPTIONS[intent]}

Sender: {sender.name} ({sender.team})
Recipient: {recipient_line}
{detail_block}

Write a professional, friendly, and concise email. The tone should be collegial - these are both volunteer coaches/managers in youth hockey.

Return your response as JSON with this exact format:
{{
  "subject": "Brief, clear subject line",
  "body": "Email body text"
}}

CRITICAL GUIDELINES:
- {greeting_rule}
- Keep it brief and to the point
- For scheduling: Propose specific dates/times if provided, or ask for their availability
- For rescheduling: Acknowledge the change and apologize for any inconvenience
- For canceling: Be apologetic and offer to reschedule if appropriate
- ALWAYS use 12-hour time format with AM/PM (e.g., "7:00 PM", "10:30 AM") - never use 24-hour time
- Do NOT include ANY signature, sign-off, or closing. The signature is added automatically; end with the last sentence of content."""
