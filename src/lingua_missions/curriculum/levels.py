"""Difficulty level (1-10) to curriculum mapping.

Levels 1-7 follow the Cambridge Super Minds units, each with its own themes and
grammar points. Levels 8-10 are generic CEFR challenge bands without unit themes.
"""

from pydantic import BaseModel, ConfigDict

from lingua_missions.errors import InvalidDifficulty
from lingua_missions.models.user_profile import MAX_DIFFICULTY, MIN_DIFFICULTY

STRUCTURED_UNIT_LEVELS = 7


class CurriculumDescriptor(BaseModel):
    """Curriculum context embedded in every content request."""

    model_config = ConfigDict(frozen=True)

    level: int
    band_label: str
    cefr: str
    unit_themes: tuple[str, ...] = ()
    key_vocabulary: tuple[str, ...] = ()
    grammar_focus: tuple[str, ...] = ()
    focus: str | None = None

    @property
    def has_unit_themes(self) -> bool:
        return bool(self.unit_themes)

    def to_prompt(self) -> str:
        """Render as the level context sentence used in generation prompts."""
        parts = [f"Level: {self.band_label}."]
        if self.unit_themes:
            themes = ", ".join(f"'{t}'" for t in self.unit_themes)
            parts.append(f"UNIT THEMES: {themes}.")
        if self.key_vocabulary:
            parts.append(f"KEY VOCAB: {', '.join(self.key_vocabulary)}.")
        if self.grammar_focus:
            parts.append(f"GRAMMAR: {', '.join(self.grammar_focus)}.")
        if self.focus:
            parts.append(f"Focus: {self.focus}.")
        return " ".join(parts)


CURRICULUM: dict[int, CurriculumDescriptor] = {
    1: CurriculumDescriptor(
        level=1,
        band_label="Cambridge Super Minds Starter (Pre-A1)",
        cefr="Pre-A1",
        unit_themes=("My Classroom", "My Family", "My Face", "Toys", "My House", "On the Farm"),
        key_vocabulary=("Colors", "Numbers 1-10", "Family members", "Face parts", "Farm animals"),
        grammar_focus=("Imperatives (Sit down)", "'I have got'", "'I like'"),
    ),
    2: CurriculumDescriptor(
        level=2,
        band_label="Cambridge Super Minds Level 1 (A1)",
        cefr="A1",
        unit_themes=(
            "At School", "Let's Play", "Pet Show", "Lunchtime", "The Old House",
            "Get Dressed", "The Robot", "At the Beach",
        ),
        grammar_focus=(
            "Present Continuous", "'There is/are'", "Prepositions (in, on, under)",
            "'I can/can't'",
        ),
    ),
    3: CurriculumDescriptor(
        level=3,
        band_label="Cambridge Super Minds Level 2 (A1+)",
        cefr="A1+",
        unit_themes=(
            "The Zoo", "Where we live", "The Market", "My Bedroom", "People in Town",
            "In the Countryside",
        ),
        grammar_focus=(
            "Past Simple (was/were)", "Present Continuous for future", "'Some/Any'",
            "'Would like'", "Question words",
        ),
    ),
    4: CurriculumDescriptor(
        level=4,
        band_label="Cambridge Super Minds Level 3 (A2)",
        cefr="A2",
        unit_themes=(
            "Daily Tasks", "Around the World", "Holiday Plans", "The Weather", "The Hospital",
            "Ancient Egypt",
        ),
        grammar_focus=(
            "Past Simple (Regular/Irregular)", "Adverbs of frequency",
            "Comparatives/Superlatives", "'Must/Must not'",
        ),
    ),
    5: CurriculumDescriptor(
        level=5,
        band_label="Cambridge Super Minds Level 4 (A2+)",
        cefr="A2+",
        unit_themes=(
            "In the Museum", "The World of Work", "Safety First", "The Orchestra",
            "Space Travel", "Camping",
        ),
        grammar_focus=(
            "'Have to'", "Future 'Going to'", "Past Continuous", "Relative Clauses (who/which)",
            "Possessive pronouns",
        ),
    ),
    6: CurriculumDescriptor(
        level=6,
        band_label="Cambridge Super Minds Level 5 (B1)",
        cefr="B1",
        unit_themes=(
            "Disaster!", "In the Rainforest", "The Rock 'n' Roll Show", "Space Restaurant",
            "The Wild West",
        ),
        grammar_focus=(
            "Present Perfect", "Future 'Will'", "First Conditional", "Tag Questions",
            "'Should/Might'",
        ),
    ),
    7: CurriculumDescriptor(
        level=7,
        band_label="Cambridge Super Minds Level 6 (B1+)",
        cefr="B1+",
        unit_themes=(
            "The Pirates", "Transport of the Future", "Ancient History", "Mythical Beasts",
            "Space Explorers",
        ),
        grammar_focus=(
            "Passive Voice", "Second Conditional", "Reported Speech", "Past Perfect",
            "Third Conditional intro",
        ),
    ),
    8: CurriculumDescriptor(
        level=8,
        band_label="CEFR B2 (Upper Intermediate)",
        cefr="B2",
        grammar_focus=(
            "Mixed Conditionals", "Modals of Deduction", "Inversion", "Advanced Phrasal Verbs",
        ),
        focus="Technology ethics, global issues, extreme sports, psychology",
    ),
    9: CurriculumDescriptor(
        level=9,
        band_label="CEFR B2+/C1",
        cefr="B2+/C1",
        grammar_focus=("Cleft sentences", "Subjunctive mood", "Advanced cohesive devices"),
        focus="Academic science, literature, abstract philosophy",
    ),
    10: CurriculumDescriptor(
        level=10,
        band_label="CEFR C2 (Mastery)",
        cefr="C2",
        focus="Native-level nuance, idiomatic mastery, complex rhetoric",
    ),
}

# (en, zh) per level
RANK_TITLES: list[tuple[str, str]] = [
    ("Rookie", "新兵"),
    ("Cadet", "学员"),
    ("Scout", "侦查员"),
    ("Pilot", "飞行员"),
    ("Captain", "舰长"),
    ("Major", "少校"),
    ("Commander", "指挥官"),
    ("Colonel", "上校"),
    ("General", "将军"),
    ("Admiral", "上将"),
]

RANK_DESCRIPTIONS: list[tuple[str, str]] = [
    ("Cambridge Super Minds Starter (Pre-A1)", "剑桥 Super Minds 入门级 (Pre-A1)"),
    ("Cambridge Super Minds Level 1 (A1)", "剑桥 Super Minds 第1级 (A1)"),
    ("Cambridge Super Minds Level 2 (A1+)", "剑桥 Super Minds 第2级 (A1+)"),
    ("Cambridge Super Minds Level 3 (A2)", "剑桥 Super Minds 第3级 (A2)"),
    ("Cambridge Super Minds Level 4 (A2+)", "剑桥 Super Minds 第4级 (A2+)"),
    ("Cambridge Super Minds Level 5 (B1)", "剑桥 Super Minds 第5级 (B1)"),
    ("Cambridge Super Minds Level 6 (B1+)", "剑桥 Super Minds 第6级 (B1+)"),
    ("Challenge: CEFR B2 (Upper Int.)", "中高级挑战 (B2)"),
    ("Challenge: CEFR B2+", "高级挑战 (B2+)"),
    ("Challenge: CEFR C2 (Mastery)", "专家级挑战 (C2)"),
]


def validate_level(level: int) -> int:
    """Return ``level`` unchanged if it is an integer in 1-10.

    Raises:
        InvalidDifficulty: For anything else (including bools and floats).
    """
    if isinstance(level, bool) or not isinstance(level, int):
        raise InvalidDifficulty(f"Difficulty must be an integer, got {level!r}")
    if not MIN_DIFFICULTY <= level <= MAX_DIFFICULTY:
        raise InvalidDifficulty(
            f"Difficulty {level} outside {MIN_DIFFICULTY}-{MAX_DIFFICULTY}"
        )
    return level


def describe(level: int) -> CurriculumDescriptor:
    """Curriculum descriptor for a difficulty level."""
    return CURRICULUM[validate_level(level)]


def rank_title(level: int, language: str = "en") -> str:
    en, zh = RANK_TITLES[validate_level(level) - 1]
    return zh if language == "zh" else en


def rank_description(level: int, language: str = "en") -> str:
    en, zh = RANK_DESCRIPTIONS[validate_level(level) - 1]
    return zh if language == "zh" else en
