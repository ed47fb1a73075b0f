"""Tests for XP, level and difficulty progression."""

import pytest

from lingua_missions.models.user_profile import UserProfile
from lingua_missions.progression.tracker import (
    ProgressionTracker,
    award_xp,
    clamp_difficulty,
    set_difficulty,
)


class TestAwardXp:
    @pytest.mark.parametrize("start_xp", [0, 40, 99, 100, 955])
    @pytest.mark.parametrize("amount", [0, 10, 15, 25, 30, 50, 100, 250])
    def test_level_invariant(self, start_xp, amount):
        result = award_xp(UserProfile(xp=start_xp), amount)
        assert result.xp == start_xp + amount
        assert result.level == result.xp // 100 + 1

    def test_returns_new_profile(self):
        profile = UserProfile(xp=90, streak=3, badges={"first-mission"})
        result = award_xp(profile, 30)
        assert profile.xp == 90
        assert result is not profile
        assert result.level == 2
        assert result.streak == 3
        assert result.badges == {"first-mission"}


class TestDifficulty:
    def test_set_difficulty_keeps_progress(self):
        profile = UserProfile(xp=230, streak=4)
        result = set_difficulty(profile, 8)
        assert result.difficulty == 8
        assert (result.xp, result.level, result.streak) == (230, 3, 4)

    @pytest.mark.parametrize(
        "value,expected", [(-2, 1), (0, 1), (1, 1), (7, 7), (10, 10), (99, 10)]
    )
    def test_clamp(self, value, expected):
        assert clamp_difficulty(value) == expected


class TestProgressionTracker:
    def test_awards_accumulate(self):
        tracker = ProgressionTracker(UserProfile())
        tracker.award(50)
        tracker.award(30)
        profile = tracker.award(25)
        assert profile.xp == 105
        assert profile.level == 2
        assert tracker.profile is profile

    def test_change_difficulty_clamps(self):
        tracker = ProgressionTracker(UserProfile())
        assert tracker.change_difficulty(14).difficulty == 10
        assert tracker.change_difficulty(0).difficulty == 1

    def test_previous_profile_untouched(self):
        original = UserProfile(xp=10)
        tracker = ProgressionTracker(original)
        tracker.award(100)
        assert original.xp == 10
        assert original.level == 1
