"""User profile persistence (JSON + fcntl.flock + atomic write)."""

import fcntl
import json
import os
import tempfile
from pathlib import Path
from typing import Any

import structlog

from lingua_missions.models.user_profile import DEFAULT_DIFFICULTY, UserProfile
from lingua_missions.progression.tracker import clamp_difficulty

logger = structlog.get_logger()

LEGACY_DIFFICULTY_NAMES = {"Cadet": 2, "Admiral": 9}


def get_profile_path(user_id: str) -> Path:
    profiles_dir = Path(__file__).parent.parent.parent.parent / "data" / "profiles"
    profiles_dir.mkdir(parents=True, exist_ok=True)
    return profiles_dir / f"{user_id}.json"


def migrate_profile_data(data: dict[str, Any]) -> dict[str, Any]:
    """Upgrade a persisted profile dict to the current schema.

    Missing difficulty becomes 5; legacy string ranks map to numbers ("Cadet" -> 2,
    "Admiral" -> 9, anything else -> 5); numbers are clamped to 1-10.
    """
    migrated = dict(data)
    difficulty = migrated.get("difficulty")
    if not difficulty:
        migrated["difficulty"] = DEFAULT_DIFFICULTY
    elif isinstance(difficulty, str):
        migrated["difficulty"] = LEGACY_DIFFICULTY_NAMES.get(difficulty, DEFAULT_DIFFICULTY)
    else:
        migrated["difficulty"] = clamp_difficulty(difficulty)

    if migrated["difficulty"] != difficulty:
        logger.info(
            "profile_migrated",
            field="difficulty",
            old=difficulty,
            new=migrated["difficulty"],
        )
    # Level is derived from xp
    migrated.pop("level", None)
    return migrated


def load_profile(user_id: str = "default") -> UserProfile:
    path = get_profile_path(user_id)
    if not path.exists():
        return UserProfile(user_id=user_id)
    with open(path) as f:
        fcntl.flock(f, fcntl.LOCK_SH)
        data = json.load(f)
        fcntl.flock(f, fcntl.LOCK_UN)
    data.setdefault("user_id", user_id)
    return UserProfile(**migrate_profile_data(data))


def save_profile(profile: UserProfile) -> None:
    path = get_profile_path(profile.user_id)
    with tempfile.NamedTemporaryFile("w", dir=path.parent, delete=False, suffix=".json") as tmp:
        json.dump(profile.model_dump(mode="json"), tmp)
    os.replace(tmp.name, path)
