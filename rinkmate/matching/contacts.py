"""Team manager contact resolution: local store first, then the web."""

from __future__ import annotations

import logging

from rinkmate.db import Database
from rinkmate.errors import WebSearchError
from rinkmate.llm.base import LLMProvider
from rinkmate.llm.parsing import load_json_payload, strip_citations
from rinkmate.matching.fuzzy import FuzzyNameResolver
from rinkmate.models import ManagerContact, ManagerLookup

LOGGER = logging.getLogger(__name__)

_STORE_LIMIT = 5


class ManagerContactResolver:
    """Resolves a team name (or numeric team id) to manager contacts.

    Lookups try every expanded spelling of the name against the contact store,
    then a lenient keyword pass, then a search-augmented completion whose
    results are written back to the store.
    """

    def __init__(self, db: Database, llm: LLMProvider, fuzzy: FuzzyNameResolver | None = None) -> None:
        self._db = db
        self._llm = llm
        self._fuzzy = fuzzy or FuzzyNameResolver()

    async def resolve(self, team: str | int, lenient: bool = True, allow_web: bool = True) -> ManagerLookup:
        """Resolve contacts for ``team``.

        ``lenient=False`` skips the keyword pass, for callers that already hold
        an exact team name. ``allow_web=False`` restricts the lookup to the store.
        """
        search_term = self._team_name(team)
        if search_term is None:
            LOGGER.info("Team id %r not found; no manager lookup", team)
            return ManagerLookup(search_term=str(team), error=f"Team {team} not found")
        if not search_term:
            return ManagerLookup(search_term="", error="A team name is required")

        expanded = self._fuzzy.expand(search_term)
        LOGGER.info("Manager search %r expanded to %r", search_term, expanded)

        lookup = self._search_store(search_term, expanded)
        if lookup is None and lenient:
            lookup = self._search_keywords(search_term, expanded)
        if lookup is not None:
            return lookup
        if not allow_web:
            return ManagerLookup(search_term=search_term)

        return await self._search_web(search_term)

    def _team_name(self, team: str | int) -> str | None:
        if isinstance(team, int) or str(team).strip().isdigit():
            row = self._db.get_team(int(team))
            return row["name"] if row else None
        return str(team).strip()

    def _search_store(self, search_term: str, expanded: list[str]) -> ManagerLookup | None:
        query = search_term.lower()
        for term in expanded:
            contacts = self._db.search_managers(term, limit=_STORE_LIMIT)
            if not contacts:
                continue
            label = contacts[0].team.lower()
            match_type = "exact" if query in label or label in query else "fuzzy"
            LOGGER.info("Found %d stored manager(s) for %r (%s)", len(contacts), term, match_type)
            return ManagerLookup(
                search_term=search_term,
                contacts=contacts,
                match_type=match_type,
                matched_term=term,
            )
        return None

    def _search_keywords(self, search_term: str, expanded: list[str]) -> ManagerLookup | None:
        seen: set[tuple[str, str, str]] = set()
        scored: list[tuple[int, ManagerContact]] = []
        for keyword in self._fuzzy.keywords(search_term):
            for contact in self._db.search_managers(keyword, limit=_STORE_LIMIT):
                key = (contact.email.lower(), contact.name.lower(), contact.team.lower())
                if key in seen:
                    continue
                seen.add(key)
                score = self._fuzzy.score(contact.team, expanded, search_term)
                if score > 0:
                    scored.append((score, contact))

        if not scored:
            return None
        scored.sort(key=lambda item: item[0], reverse=True)
        best = [contact for _, contact in scored[:_STORE_LIMIT]]
        LOGGER.info("Keyword pass for %r matched %r", search_term, best[0].team)
        return ManagerLookup(
            search_term=search_term,
            contacts=best,
            match_type="fuzzy",
            matched_term=best[0].team,
        )

    async def _search_web(self, search_term: str) -> ManagerLookup:
        try:
            text = await self._llm.search(_web_prompt(search_term))
            contacts = parse_manager_contacts(text, search_term)
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("Web manager search failed for %r", search_term)
            return ManagerLookup(search_term=search_term, source="web", error=str(exc))

        if not contacts:
            LOGGER.info("Web search found no managers for %r", search_term)
            return ManagerLookup(search_term=search_term, source="web")

        return ManagerLookup(
            search_term=search_term,
            contacts=contacts,
            match_type="web",
            matched_term=contacts[0].team,
            source="web",
            saved_count=self._write_back(contacts),
        )

    def _write_back(self, contacts: list[ManagerContact]) -> int:
        saved = 0
        for contact in contacts:
            if not contact.email:
                continue
            try:
                if self._db.find_manager_id(contact.email, contact.name, contact.team) is not None:
                    LOGGER.info("Manager %r already stored", contact.email)
                    continue
                if self._db.insert_manager(contact) is not None:
                    saved += 1
            except Exception:  # noqa: BLE001
                LOGGER.warning("Could not store manager %r", contact.email, exc_info=True)
        return saved


def parse_manager_contacts(text: str, default_team: str) -> list[ManagerContact]:
    """Parse a JSON array (or ``{"managers": [...]}``) of contacts from model text."""

    payload = load_json_payload(text)
    if isinstance(payload, dict):
        payload = payload.get("managers", [])
    if not isinstance(payload, list):
        raise WebSearchError("Manager search did not return a list")

    contacts: list[ManagerContact] = []
    for item in payload:
        if not isinstance(item, dict):
            continue
        contacts.append(
            ManagerContact(
                name=strip_citations(item.get("name")),
                email=strip_citations(item.get("email")),
                phone=strip_citations(item.get("phone")),
                team=strip_citations(item.get("team")) or default_team,
                source_url=strip_citations(item.get("sourceUrl")),
            )
        )
    return contacts


def _web_prompt(team_name: str) -> str:
    return f"""Search query: "{team_name}" hockey manager contact email

You are a contact information extraction agent.
Search for the youth hockey team named "{team_name}".
Find official contact information for the team manager or scheduler.
Return only verifiable information from official or authoritative sites.

Respond with a strict JSON array and nothing else:
[
  {{"name": "Manager Name", "email": "email@example.com", "phone": "555-123-4567", "team": "{team_name}", "sourceUrl": "https://..."}}
]

If nothing is found, return: []"""
