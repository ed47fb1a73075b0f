"""XP, level and difficulty transitions on the learner profile."""

import structlog

from lingua_missions.models.user_profile import MAX_DIFFICULTY, MIN_DIFFICULTY, UserProfile

logger = structlog.get_logger()


def award_xp(profile: UserProfile, amount: int) -> UserProfile:
    """Return a copy of ``profile`` with ``amount`` XP added.

    Level is derived from XP, so it follows automatically.
    """
    return profile.model_copy(update={"xp": profile.xp + amount})


def set_difficulty(profile: UserProfile, level: int) -> UserProfile:
    """Return a copy with a new difficulty. Callers clamp ``level`` beforehand."""
    return profile.model_copy(update={"difficulty": level})


def clamp_difficulty(level: int) -> int:
    return max(MIN_DIFFICULTY, min(MAX_DIFFICULTY, int(level)))


class ProgressionTracker:
    """Single owner of the current profile.

    Every change replaces the whole profile object, so readers holding the previous
    instance never observe a partial update. Awards must be issued through one tracker
    at a time; two trackers built from the same stale profile lose updates.

    Args:
        profile: Starting profile (as loaded from storage).
    """

    def __init__(self, profile: UserProfile):
        self._profile = profile

    @property
    def profile(self) -> UserProfile:
        return self._profile

    def award(self, amount: int) -> UserProfile:
        old_level = self._profile.level
        self._profile = award_xp(self._profile, amount)
        logger.info(
            "xp_awarded",
            user_id=self._profile.user_id,
            amount=amount,
            xp=self._profile.xp,
            level=self._profile.level,
        )
        if self._profile.level > old_level:
            logger.info(
                "level_up",
                user_id=self._profile.user_id,
                from_level=old_level,
                to_level=self._profile.level,
            )
        return self._profile

    def change_difficulty(self, level: int) -> UserProfile:
        """Clamp to 1-10 and apply."""
        clamped = clamp_difficulty(level)
        self._profile = set_difficulty(self._profile, clamped)
        logger.info(
            "difficulty_changed",
            user_id=self._profile.user_id,
            requested=level,
            difficulty=clamped,
        )
        return self._profile
