"""Domain exceptions."""

from __future__ import annotations


class RinkmateError(Exception):
    """Base exception for rinkmate failures."""


class TeamNotConfiguredError(RinkmateError):
    """Raised when a user has no team or association to match against."""


class ActionExecutionError(RinkmateError):
    """Raised when a confirmed action could not be carried out."""

    def __init__(self, message: str, action_type: str | None = None) -> None:
        super().__init__(message)
        self.action_type = action_type


class WebSearchError(RinkmateError):
    """Raised when a search-augmented completion returns unusable output."""
