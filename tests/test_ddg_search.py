"""Tests for DdgSearchProvider."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from rinkmate.llm.ddg_search import DdgSearchProvider, _query_from_prompt
from rinkmate.models import LLMResponse

# Patch path must match the import in the module under test
_DDGS_PATH = "rinkmate.llm.ddg_search.DDGS"


def _ddg_results(*items: tuple[str, str, str]) -> list[dict]:
    return [{"title": t, "href": h, "body": b} for t, h, b in items]


def _inner(reply: str = '[{"name": "Sam"}]') -> MagicMock:
    inner = MagicMock()
    inner.generate = AsyncMock(return_value=LLMResponse(content=reply))
    return inner


@pytest.mark.asyncio
async def test_search_grounds_inner_model_in_results():
    mock_ddgs = MagicMock()
    mock_ddgs.text = MagicMock(
        return_value=_ddg_results(("Falcons Hockey", "https://falcons.org", "Contact Sam Smith"))
    )
    inner = _inner()

    with patch(_DDGS_PATH, return_value=mock_ddgs):
        provider = DdgSearchProvider(inner, max_results=4)
        reply = await provider.search('Search query: "NJ Falcons" hockey manager\n\nReturn JSON.')

    assert reply == '[{"name": "Sam"}]'
    mock_ddgs.text.assert_called_once_with('"NJ Falcons" hockey manager', max_results=4, backend="duckduckgo")
    system, user = inner.generate.await_args.args[0]
    assert "https://falcons.org" in system["content"]
    assert "Contact Sam Smith" in system["content"]
    assert user["content"].startswith("Search query:")


@pytest.mark.asyncio
async def test_search_without_results_still_asks_inner_model():
    mock_ddgs = MagicMock()
    mock_ddgs.text = MagicMock(return_value=[])
    inner = _inner("[]")

    with patch(_DDGS_PATH, return_value=mock_ddgs):
        reply = await DdgSearchProvider(inner).search("best hotels near Albany")

    assert reply == "[]"
    assert "No results found." in inner.generate.await_args.args[0][0]["content"]


@pytest.mark.asyncio
async def test_search_propagates_ddg_errors():
    mock_ddgs = MagicMock()
    mock_ddgs.text = MagicMock(side_effect=RuntimeError("rate limited"))

    with patch(_DDGS_PATH, return_value=mock_ddgs):
        with pytest.raises(RuntimeError):
            await DdgSearchProvider(_inner()).search("anything")


@pytest.mark.asyncio
async def test_generate_delegates_to_inner():
    inner = _inner("hello")

    response = await DdgSearchProvider(inner).generate([{"role": "user", "content": "hi"}], tool_choice="auto")

    assert response.content == "hello"
    assert inner.generate.await_args.kwargs["tool_choice"] == "auto"


def test_query_from_prompt_falls_back_to_first_line():
    assert _query_from_prompt("\n  first line  \nsecond") == "first line"
    assert _query_from_prompt("x" * 300) == "x" * 200
