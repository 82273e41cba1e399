"""Core domain models used across layers."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

PENDING_ACTION_TYPES = (
    "create_game",
    "add_tournament_to_schedule",
    "send_email",
    "game_match_results",
)
EMAIL_INTENTS = ("schedule", "reschedule", "cancel", "general")


@dataclass(slots=True)
class ChatMessage:
    """One entry of the caller-supplied conversation history."""

    role: str
    content: str

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> ChatMessage:
        return cls(role=str(payload.get("role", "user")), content=str(payload.get("content") or ""))

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(slots=True)
class LLMToolCall:
    """Tool invocation returned by an LLM provider."""

    name: str
    arguments: dict[str, Any]
    call_id: str | None = None


@dataclass(slots=True)
class LLMResponse:
    """Result from an LLM generation request."""

    content: str
    tool_calls: list[LLMToolCall] = field(default_factory=list)
    raw: dict[str, Any] | None = None


@dataclass(slots=True)
class PendingAction:
    """A proposed side effect awaiting explicit user confirmation."""

    type: str
    description: str
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> PendingAction:
        return cls(
            type=str(payload.get("type", "")),
            description=str(payload.get("description") or ""),
            data=dict(payload.get("data") or {}),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "description": self.description, "data": self.data}


@dataclass(slots=True)
class ToolExecutionResult:
    """Uniform envelope returned for every tool invocation."""

    success: bool
    data: dict[str, Any] | None = None
    error: str | None = None
    requires_confirmation: bool = False
    pending_action: PendingAction | None = None

    def model_payload(self) -> dict[str, Any]:
        """Content fed back to the model as tool output."""
        if self.success:
            return self.data if self.data else {"error": self.error}
        return {"success": False, "error": self.error, **(self.data or {})}


@dataclass(slots=True)
class UserContext:
    """Profile fields resolved once per turn for the requesting user."""

    user_id: str
    user_db_id: str
    team_id: int | None = None
    team_name: str | None = None
    age: str | None = None
    rating: float | None = None
    association_id: int | None = None
    association_name: str | None = None
    city: str | None = None
    state: str | None = None
    email: str | None = None
    phone: str | None = None
    user_name: str | None = None


@dataclass(slots=True)
class NearbyTeamCandidate:
    """Raw result of a geospatial candidate search."""

    id: int
    name: str
    age: str = ""
    rating: float | None = None
    record: str = ""
    distance: float = 0.0
    association_name: str = ""
    city: str = ""
    state: str = ""


@dataclass(slots=True)
class MatchScores:
    rating_closeness: int
    distance: int
    schedule_compatibility: int
    overall: int

    def to_dict(self) -> dict[str, int]:
        return {
            "ratingCloseness": self.rating_closeness,
            "distance": self.distance,
            "scheduleCompatibility": self.schedule_compatibility,
            "overall": self.overall,
        }


@dataclass(slots=True)
class ManagerContact:
    """Contact details for a team manager or scheduler."""

    name: str
    email: str
    phone: str = ""
    team: str = ""
    source_url: str = ""

    def to_dict(self) -> dict[str, str]:
        payload = {"name": self.name, "email": self.email, "phone": self.phone, "team": self.team}
        if self.source_url:
            payload["sourceUrl"] = self.source_url
        return payload


@dataclass(slots=True)
class ManagerLookup:
    """Tagged result of a contact resolution.

    ``match_type`` is one of ``exact``, ``fuzzy``, ``web`` or ``none``.
    """

    search_term: str
    contacts: list[ManagerContact] = field(default_factory=list)
    match_type: str = "none"
    matched_term: str | None = None
    source: str = "database"
    saved_count: int = 0
    error: str | None = None

    @property
    def manager(self) -> ManagerContact | None:
        return self.contacts[0] if self.contacts else None

    @property
    def status(self) -> str:
        if not self.contacts:
            return "not-found"
        if any(contact.email for contact in self.contacts):
            return "found"
        return "manual-contact"


@dataclass(slots=True)
class EmailDraft:
    """An outbound message awaiting the sender's confirmation."""

    to: str
    to_name: str
    to_team: str
    subject: str
    body: str
    signature: str
    intent: str
    related_game_id: str | None = None
    from_name: str | None = None
    from_email: str | None = None

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> EmailDraft:
        return cls(
            to=str(payload.get("to") or ""),
            to_name=str(payload.get("toName") or ""),
            to_team=str(payload.get("toTeam") or ""),
            subject=str(payload.get("subject") or ""),
            body=str(payload.get("body") or ""),
            signature=str(payload.get("signature") or ""),
            intent=str(payload.get("intent") or "general"),
            related_game_id=payload.get("relatedGameId"),
            from_name=payload.get("fromName"),
            from_email=payload.get("fromEmail"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "to": self.to,
            "toName": self.to_name,
            "toTeam": self.to_team,
            "subject": self.subject,
            "body": self.body,
            "signature": self.signature,
            "intent": self.intent,
            "relatedGameId": self.related_game_id,
            "fromName": self.from_name,
            "fromEmail": self.from_email,
        }


@dataclass(slots=True)
class OpponentMatch:
    """A ranked opponent built once per matching run."""

    rank: int
    team: NearbyTeamCandidate
    distance_miles: int
    scores: MatchScores
    explanation: str
    manager_status: str
    manager: ManagerContact | None = None
    email_draft: EmailDraft | None = None
    already_played: bool = False

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "rank": self.rank,
            "team": {
                "id": self.team.id,
                "name": self.team.name,
                "age": self.team.age,
                "rating": self.team.rating if self.team.rating is not None else 0,
                "record": self.team.record,
                "association": {
                    "name": self.team.association_name,
                    "city": self.team.city,
                    "state": self.team.state,
                },
            },
            "distanceMiles": self.distance_miles,
            "scores": self.scores.to_dict(),
            "explanation": self.explanation,
            "managerStatus": self.manager_status,
            "alreadyPlayed": self.already_played,
        }
        if self.manager is not None:
            payload["manager"] = self.manager.to_dict()
        if self.email_draft is not None:
            payload["emailDraft"] = self.email_draft.to_dict()
        return payload


@dataclass(slots=True)
class GameMatchResults:
    """Complete output of one opponent-matching run."""

    user_team: dict[str, Any]
    start_date: str
    end_date: str
    search_radius: float
    matches: list[OpponentMatch] = field(default_factory=list)
    total_candidates_found: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "userTeam": self.user_team,
            "dateRange": {"start": self.start_date, "end": self.end_date},
            "searchRadius": self.search_radius,
            "matches": [match.to_dict() for match in self.matches],
            "totalCandidatesFound": self.total_candidates_found,
        }


@dataclass(slots=True)
class TurnRequest:
    """One inbound turn of the conversational core."""

    message: str
    user_id: str
    conversation_history: list[ChatMessage] = field(default_factory=list)
    confirm_action: bool = False
    pending_action: PendingAction | None = None

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> TurnRequest:
        pending = payload.get("pendingAction")
        return cls(
            message=str(payload.get("message") or ""),
            user_id=str(payload.get("userId") or ""),
            conversation_history=[
                ChatMessage.from_dict(item) for item in payload.get("conversationHistory") or []
            ],
            confirm_action=bool(payload.get("confirmAction", False)),
            pending_action=PendingAction.from_dict(pending) if pending else None,
        )


@dataclass(slots=True)
class TurnResponse:
    """Outbound reply for one turn."""

    message: str
    data: dict[str, Any] | None = None
    pending_action: PendingAction | None = None
    action_executed: bool | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"message": self.message}
        if self.data is not None:
            payload["data"] = self.data
        if self.pending_action is not None:
            payload["pendingAction"] = self.pending_action.to_dict()
        if self.action_executed is not None:
            payload["actionExecuted"] = self.action_executed
        if self.error is not None:
            payload["error"] = self.error
        return payload
