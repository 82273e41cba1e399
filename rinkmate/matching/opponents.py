"""Opponent matching pipeline."""

from __future__ import annotations

import asyncio
import logging

from rinkmate.context import UserContextResolver
from rinkmate.db import Database
from rinkmate.errors import TeamNotConfiguredError
from rinkmate.mail.drafts import EmailDraftGenerator, Party, build_from_name, build_signature
from rinkmate.matching.contacts import ManagerContactResolver
from rinkmate.matching.scoring import DEFAULT_RATING, OpponentScorer, round_half_up
from rinkmate.models import (
    EmailDraft,
    GameMatchResults,
    ManagerContact,
    MatchScores,
    NearbyTeamCandidate,
    OpponentMatch,
    UserContext,
)

LOGGER = logging.getLogger(__name__)

MAX_RESULTS_CAP = 10


class OpponentMatcher:
    """Ranks nearby, similarly rated teams and prepares outreach for each."""

    def __init__(
        self,
        db: Database,
        context_resolver: UserContextResolver,
        contacts: ManagerContactResolver,
        drafts: EmailDraftGenerator,
        scorer: OpponentScorer | None = None,
        discovery_batch_size: int = 3,
    ) -> None:
        self._db = db
        self._context_resolver = context_resolver
        self._contacts = contacts
        self._drafts = drafts
        self._scorer = scorer or OpponentScorer()
        self._batch_size = max(1, discovery_batch_size)

    async def find_matches(
        self,
        user_id: str,
        start_date: str,
        end_date: str,
        max_distance: float = 100,
        exclude_recent_opponents: bool = False,
        max_results: int = 5,
    ) -> GameMatchResults:
        LOGGER.info(
            "Finding game matches for user %s, dates %s to %s, max distance %s",
            user_id,
            start_date,
            end_date,
            max_distance,
        )
        context = self._context_resolver.resolve(user_id)
        if context.team_id is None or context.association_id is None:
            raise TeamNotConfiguredError("User team or association not configured. Please update your profile.")

        user_rating = DEFAULT_RATING if context.rating is None else context.rating
        user_team = {
            "id": context.team_id,
            "name": context.team_name or "Your Team",
            "rating": user_rating,
            "age": context.age or "",
        }

        played = {
            game["opponent"]
            for game in self._db.list_games_in_range(start_date, end_date, team_id=context.team_id)
            if game.get("opponent")
        }

        min_rating, max_rating = self._scorer.policy.rating_window(user_rating)
        nearby = self._db.get_nearby_teams(
            association_id=context.association_id,
            age=(context.age or "").lower(),
            min_rating=min_rating,
            max_rating=max_rating,
            max_distance=max_distance,
        )
        candidates = [team for team in nearby if team.id != context.team_id]
        LOGGER.info("Found %d candidate teams within rating range", len(candidates))

        scored: list[tuple[NearbyTeamCandidate, MatchScores, bool]] = []
        for team in candidates:
            already_played = team.id in played
            scores = self._scorer.score(
                team,
                user_rating,
                team.distance,
                max_distance,
                already_played=already_played,
                exclude_recent=exclude_recent_opponents,
            )
            scored.append((team, scores, already_played))
        scored.sort(key=lambda item: item[1].overall, reverse=True)
        top = scored[: min(max(1, max_results), MAX_RESULTS_CAP)]

        discovered = await self._discover_managers([team for team, _, _ in top])

        matches: list[OpponentMatch] = []
        for rank, ((team, scores, already_played), (status, manager)) in enumerate(zip(top, discovered), start=1):
            match = OpponentMatch(
                rank=rank,
                team=team,
                distance_miles=round_half_up(team.distance),
                scores=scores,
                explanation=explain_match(team, user_rating, already_played),
                manager_status=status,
                manager=manager,
                already_played=already_played,
            )
            if manager is not None and manager.email:
                match.email_draft = await self._draft_outreach(context, team, manager, start_date, end_date)
            matches.append(match)

        return GameMatchResults(
            user_team=user_team,
            start_date=start_date,
            end_date=end_date,
            search_radius=max_distance,
            matches=matches,
            total_candidates_found=len(candidates),
        )

    async def _discover_managers(
        self, teams: list[NearbyTeamCandidate]
    ) -> list[tuple[str, ManagerContact | None]]:
        results: list[tuple[str, ManagerContact | None]] = []
        for start in range(0, len(teams), self._batch_size):
            batch = teams[start : start + self._batch_size]
            results.extend(await asyncio.gather(*(self._discover_manager(team) for team in batch)))
        return results

    async def _discover_manager(self, team: NearbyTeamCandidate) -> tuple[str, ManagerContact | None]:
        try:
            lookup = await self._contacts.resolve(team.name, lenient=False)
        except Exception:  # noqa: BLE001
            LOGGER.warning("Error discovering manager for team %s", team.name, exc_info=True)
            return "not-found", None
        with_email = next((contact for contact in lookup.contacts if contact.email), None)
        return lookup.status, with_email or lookup.manager

    async def _draft_outreach(
        self,
        context: UserContext,
        team: NearbyTeamCandidate,
        manager: ManagerContact,
        start_date: str,
        end_date: str,
    ) -> EmailDraft:
        text = await self._drafts.draft(
            "schedule",
            sender=Party(name=context.user_name or "Team Manager", team=context.team_name or "Our Team"),
            recipient=Party(name=manager.name, team=team.name),
            date_window=(start_date, end_date),
        )
        return EmailDraft(
            to=manager.email,
            to_name=manager.name,
            to_team=team.name,
            subject=text.subject,
            body=text.body,
            signature=build_signature(context),
            intent="schedule",
            from_name=build_from_name(context),
            from_email=context.email,
        )


def explain_match(team: NearbyTeamCandidate, user_rating: float, already_played: bool) -> str:
    """Plain-English reason a team was suggested."""
    rating = DEFAULT_RATING if team.rating is None else team.rating
    rating_diff = abs(user_rating - rating)
    miles = round_half_up(team.distance)

    if rating_diff == 0:
        parts = ["Identical rating"]
    elif rating_diff <= 1:
        parts = ["Nearly identical rating"]
    else:
        parts = [f"Rating within {rating_diff:g} points"]

    if miles <= 25:
        parts.append(f"only {miles} miles away")
    elif miles <= 50:
        parts.append(f"{miles} miles away")
    else:
        parts.append(f"{miles} miles away (moderate travel)")

    if already_played:
        parts.append("(previously played)")
    return ", ".join(parts)
