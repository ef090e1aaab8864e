"""
Points, levels, login streaks and achievements per user.

State lives under ``kushl_gamification_<userId>_<field>``: ``points`` and
``streak`` as integer text, ``last_login`` as an ISO date and ``achievements``
as a JSON list.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Optional

from kushl.core.utils import local_now
from kushl.domain.constants import GAMIFICATION_KEY
from kushl.repositories.storage import KeyValueStore, get_store

logger = logging.getLogger(__name__)

POINTS_PER_LEVEL = 100

DEFAULT_ACHIEVEMENTS = (
    {
        "id": "profile_complete",
        "title": "Profile Master",
        "description": "Complete your profile information",
        "icon": "🏆",
        "points": 100,
        "unlocked": False,
        "progress": 0,
        "maxProgress": 4,
    },
    {
        "id": "first_login",
        "title": "First Steps",
        "description": "Login to your account for the first time",
        "icon": "🔑",
        "points": 50,
        "unlocked": False,
        "progress": 0,
        "maxProgress": 1,
    },
    {
        "id": "daily_login",
        "title": "Dedicated User",
        "description": "Login for 7 consecutive days",
        "icon": "📅",
        "points": 200,
        "unlocked": False,
        "progress": 0,
        "maxProgress": 7,
    },
    {
        "id": "first_application",
        "title": "Go-Getter",
        "description": "Apply for your first opportunity",
        "icon": "🚀",
        "points": 150,
        "unlocked": False,
        "progress": 0,
        "maxProgress": 1,
    },
)


def level_for(points: int) -> int:
    return 1 + max(0, points) // POINTS_PER_LEVEL


@dataclass
class GamificationService:
    """Gamification state of one user."""

    user_id: str
    store: Optional[KeyValueStore] = field(default=None, repr=False)

    def __post_init__(self):
        if self.store is None:
            self.store = get_store()

    # -------------------------------------- helpers --------------------------------------
    def _key(self, name: str) -> str:
        return GAMIFICATION_KEY.format(user_id=self.user_id, field=name)

    def _read_int(self, name: str) -> int:
        raw = self.store.get_raw(self._key(name))
        try:
            return int(raw) if raw is not None else 0
        except ValueError:
            logger.error("Invalid %s value for %s: %r", name, self.user_id, raw)
            return 0

    def _write_int(self, name: str, value: int) -> None:
        self.store.set_raw(self._key(name), str(value))

    # -------------------------------------- state --------------------------------------
    @property
    def points(self) -> int:
        return self._read_int("points")

    @property
    def streak(self) -> int:
        return self._read_int("streak")

    @property
    def level(self) -> int:
        return level_for(self.points)

    @property
    def last_login(self) -> Optional[str]:
        return self.store.get_raw(self._key("last_login"))

    def achievements(self) -> list[dict]:
        stored = self.store.get(self._key("achievements"))
        if isinstance(stored, list):
            return stored
        return copy.deepcopy(list(DEFAULT_ACHIEVEMENTS))

    def _save_achievements(self, items: list[dict]) -> None:
        self.store.set(self._key("achievements"), items)

    def snapshot(self) -> dict:
        return {
            "userId": self.user_id,
            "points": self.points,
            "level": self.level,
            "streak": self.streak,
            "lastLogin": self.last_login,
            "achievements": self.achievements(),
        }

    # -------------------------------------- mutations --------------------------------------
    def add_points(self, amount: int) -> int:
        total = self.points + amount
        self._write_int("points", total)
        return total

    def increment_streak(self) -> int:
        value = self.streak + 1
        self._write_int("streak", value)
        self.update_achievement_progress("daily_login", value)
        return value

    def reset_streak(self) -> None:
        self._write_int("streak", 0)

    def unlock_achievement(self, achievement_id: str) -> bool:
        """Unlock once and credit the achievement's points. False when unknown or already unlocked."""
        items = self.achievements()
        for item in items:
            if item.get("id") != achievement_id:
                continue
            if item.get("unlocked"):
                return False
            item["unlocked"] = True
            item["progress"] = item.get("maxProgress", 1)
            self._save_achievements(items)
            self.add_points(int(item.get("points") or 0))
            logger.info("Achievement %s unlocked for %s", achievement_id, self.user_id)
            return True
        return False

    def update_achievement_progress(self, achievement_id: str, progress: int) -> bool:
        """Set progress (capped at maxProgress); reaching the cap unlocks the achievement."""
        items = self.achievements()
        for item in items:
            if item.get("id") != achievement_id:
                continue
            if item.get("unlocked") or item.get("progress") == progress:
                return False
            maximum = item.get("maxProgress", 1)
            item["progress"] = min(progress, maximum)
            self._save_achievements(items)
            if item["progress"] >= maximum:
                self.unlock_achievement(achievement_id)
            return True
        return False

    def record_login(self, today: Optional[date] = None) -> int:
        """
        Register a login on ``today`` (in the application time zone) and return the streak.

        Logging in again on the same day changes nothing.
        """
        today = today or local_now().date()
        previous = self.last_login
        if previous == today.isoformat():
            return self.streak
        self.store.set_raw(self._key("last_login"), today.isoformat())
        if previous and previous == (today - timedelta(days=1)).isoformat():
            streak = self.streak + 1
        else:
            streak = 1
        self._write_int("streak", streak)
        if not previous:
            self.unlock_achievement("first_login")
        self.update_achievement_progress("daily_login", streak)
        return streak
