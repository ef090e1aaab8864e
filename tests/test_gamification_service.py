from __future__ import annotations

import sys
from datetime import date
from pathlib import Path

import pytest

# keep the package importable when running tests from a checkout
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from kushl.repositories.storage import MemoryStore
from kushl.services.gamification_service import DEFAULT_ACHIEVEMENTS, GamificationService, level_for


@pytest.fixture()
def game():
    return GamificationService("u1", store=MemoryStore())


def _achievement(service, achievement_id):
    return next(a for a in service.achievements() if a["id"] == achievement_id)


def test_fresh_user_snapshot(game):
    snap = game.snapshot()

    assert snap["points"] == 0
    assert snap["level"] == 1
    assert snap["streak"] == 0
    assert snap["lastLogin"] is None
    assert [a["id"] for a in snap["achievements"]] == [a["id"] for a in DEFAULT_ACHIEVEMENTS]


def test_levels_follow_points():
    assert level_for(0) == 1
    assert level_for(99) == 1
    assert level_for(100) == 2
    assert level_for(450) == 5


def test_state_is_stored_per_field(game):
    game.add_points(30)

    assert game.store.get_raw("kushl_gamification_u1_points") == "30"
    assert GamificationService("u2", store=game.store).points == 0


def test_first_login_unlocks_once(game):
    assert game.record_login(date(2026, 3, 1)) == 1
    assert game.points == 50
    assert _achievement(game, "first_login")["unlocked"] is True
    assert game.last_login == "2026-03-01"

    # same day again changes nothing
    assert game.record_login(date(2026, 3, 1)) == 1
    assert game.points == 50


def test_consecutive_days_build_streak_and_gap_resets(game):
    game.record_login(date(2026, 3, 1))
    game.record_login(date(2026, 3, 2))
    assert game.record_login(date(2026, 3, 3)) == 3
    assert _achievement(game, "daily_login")["progress"] == 3

    assert game.record_login(date(2026, 3, 6)) == 1


def test_seven_day_streak_unlocks_dedicated_user(game):
    for day in range(1, 8):
        game.record_login(date(2026, 3, day))

    daily = _achievement(game, "daily_login")
    assert daily["unlocked"] is True
    assert daily["progress"] == 7
    assert game.points == 50 + 200


def test_progress_is_capped_and_unlock_is_idempotent(game):
    assert game.update_achievement_progress("profile_complete", 10) is True

    item = _achievement(game, "profile_complete")
    assert item["progress"] == 4
    assert item["unlocked"] is True
    assert game.points == 100
    assert game.unlock_achievement("profile_complete") is False
    assert game.unlock_achievement("unknown") is False
    assert game.points == 100


def test_streak_helpers(game):
    assert game.increment_streak() == 1
    assert game.increment_streak() == 2
    game.reset_streak()
    assert game.streak == 0


def test_corrupt_counter_reads_as_zero(game):
    game.store.set_raw("kushl_gamification_u1_points", "lots")
    assert game.points == 0
