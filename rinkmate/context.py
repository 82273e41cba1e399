"""Per-turn user context resolution."""

from __future__ import annotations

import logging

from rinkmate.db import Database
from rinkmate.models import UserContext

LOGGER = logging.getLogger(__name__)


class UserContextResolver:
    """Builds the read-only UserContext for the requesting user."""

    def __init__(self, db: Database) -> None:
        self._db = db

    def resolve(self, user_id: str) -> UserContext:
        try:
            profile = self._db.get_user_profile(user_id)
        except Exception:  # noqa: BLE001
            LOGGER.exception("Failed to load profile for user %s", user_id)
            profile = None

        if profile is None:
            LOGGER.warning("No profile for user %s; continuing with minimal context", user_id)
            return UserContext(user_id=user_id, user_db_id=user_id)

        return UserContext(
            user_id=user_id,
            user_db_id=profile["user_id"],
            team_id=profile.get("team_id"),
            team_name=profile.get("team_name"),
            age=profile.get("age"),
            rating=profile.get("rating"),
            association_id=profile.get("association_id"),
            association_name=profile.get("association_name"),
            city=profile.get("city"),
            state=profile.get("state"),
            email=profile.get("email"),
            phone=profile.get("phone"),
            user_name=profile.get("display_name"),
        )
