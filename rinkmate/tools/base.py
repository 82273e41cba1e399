"""Tool contracts."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from rinkmate.models import PendingAction, ToolExecutionResult, UserContext

DEFAULT_CONFIRMATION_MESSAGE = "Please confirm this action."


class Tool(ABC):
    """Base class for all assistant tools."""

    name: str
    description: str
    parameters_schema: dict[str, Any]

    @abstractmethod
    async def run(self, context: UserContext, **kwargs: Any) -> ToolExecutionResult:
        """Execute tool with validated arguments."""


def propose(
    action_type: str,
    description: str,
    action_data: dict[str, Any],
    confirmation_message: str,
    **extra: Any,
) -> ToolExecutionResult:
    """Result for a prepare-then-confirm tool: nothing is written yet."""
    return ToolExecutionResult(
        success=True,
        requires_confirmation=True,
        pending_action=PendingAction(type=action_type, description=description, data=action_data),
        data={"confirmationMessage": confirmation_message, **extra},
    )
