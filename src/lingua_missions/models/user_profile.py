"""Learner progression profile."""

from pydantic import BaseModel, ConfigDict, Field, computed_field

XP_PER_LEVEL = 100
MIN_DIFFICULTY = 1
MAX_DIFFICULTY = 10
DEFAULT_DIFFICULTY = 5


def level_for_xp(xp: int) -> int:
    """Level implied by accumulated XP (100 XP per level, starting at 1)."""
    return xp // XP_PER_LEVEL + 1


class UserProfile(BaseModel):
    """Progression state. Replaced wholesale on every change, never mutated in place."""

    model_config = ConfigDict(frozen=True)

    user_id: str = "default"
    xp: int = Field(default=0, ge=0)
    streak: int = Field(default=1, ge=0)
    difficulty: int = Field(default=DEFAULT_DIFFICULTY, ge=MIN_DIFFICULTY, le=MAX_DIFFICULTY)
    badges: set[str] = Field(default_factory=set)

    @computed_field
    @property
    def level(self) -> int:
        return level_for_xp(self.xp)
