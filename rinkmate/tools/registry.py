"""Registry for safe tool registration and execution."""

from __future__ import annotations

import logging
from typing import Any, Literal

from pydantic import ValidationError, create_model

from rinkmate.db import Database
from rinkmate.models import ToolExecutionResult, UserContext
from rinkmate.tools.base import Tool

LOGGER = logging.getLogger(__name__)


class ToolRegistry:
    """Explicit registry of safe tools.

    ``execute`` never raises: unknown tools, invalid arguments and tool
    exceptions all come back as ``success=False`` results.
    """

    def __init__(self, db: Database | None = None) -> None:
        self._db = db
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        self._tools[tool.name] = tool

    @property
    def tool_names(self) -> list[str]:
        return list(self._tools)

    def list_tool_specs(self) -> list[dict[str, Any]]:
        return [
            {
                "type": "function",
                "function": {
                    "name": tool.name,
                    "description": tool.description,
                    "parameters": tool.parameters_schema,
                },
            }
            for tool in self._tools.values()
        ]

    async def execute(self, tool_name: str, arguments: dict[str, Any], context: UserContext) -> ToolExecutionResult:
        tool = self._tools.get(tool_name)
        if tool is None:
            LOGGER.warning("Model requested unknown tool %r", tool_name)
            return ToolExecutionResult(success=False, error=f"Unknown tool: {tool_name}")

        try:
            validated = _validate_json_schema(tool.parameters_schema, arguments)
        except ValueError as exc:
            LOGGER.warning("Rejected arguments for %s: %s", tool_name, exc)
            return ToolExecutionResult(success=False, error=str(exc))

        LOGGER.info("Executing tool %s with %r", tool_name, validated)
        try:
            result = await tool.run(context, **validated)
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("Tool %s failed", tool_name)
            result = ToolExecutionResult(success=False, error=str(exc) or exc.__class__.__name__)

        self._log_execution(context.user_id, tool_name, validated, result)
        return result

    def _log_execution(
        self, user_id: str, tool_name: str, validated: dict[str, Any], result: ToolExecutionResult
    ) -> None:
        if self._db is None:
            return
        try:
            self._db.log_tool_execution(
                user_id, tool_name, validated, result.model_payload(), succeeded=result.success
            )
        except Exception:  # noqa: BLE001
            LOGGER.warning("Could not record execution of %s", tool_name, exc_info=True)


def _validate_json_schema(schema: dict[str, Any], payload: dict[str, Any]) -> dict[str, Any]:
    props = schema.get("properties", {})
    required = set(schema.get("required", []))
    fields: dict[str, tuple[Any, Any]] = {}
    for name, config in props.items():
        typ = _python_type(config)
        default = ... if name in required else None
        fields[name] = (typ if name in required else typ | None, default)

    model = create_model("ToolInputModel", **fields)
    try:
        value = model(**payload)
    except ValidationError as exc:
        raise ValueError(f"Invalid input for tool: {exc}") from exc
    return value.model_dump(exclude_none=True)


def _python_type(config: dict[str, Any]) -> Any:
    if config.get("enum"):
        return Literal[tuple(config["enum"])]
    mapping: dict[str, type[Any]] = {
        "string": str,
        "integer": int,
        "number": float,
        "boolean": bool,
        "object": dict,
        "array": list,
    }
    return mapping.get(config.get("type", "string"), str)
