"""Quiz, scoring and progression constants shared across core layers."""

DEFAULT_QUESTION_COUNT: int = 10
MIXED_CATEGORY: str = "mixed"

MIN_QUESTION_WEIGHT: int = 1
MAX_QUESTION_WEIGHT: int = 10
MIN_OPTION_COUNT: int = 2

XP_PER_SCORE_POINT: int = 10
XP_PER_LEVEL: int = 1000

# Ascending upper bounds (exclusive); XP at or above the last bound earns TOP_RANK.
RANK_TIERS: tuple[tuple[int, str], ...] = (
    (1000, "Cyber-Newbie"),
    (2500, "Code-Runner"),
    (5000, "Cyber-Junior"),
    (10000, "Digital-Samurai"),
    (20000, "Netrunner"),
    (50000, "Cyber-Psycho"),
)
TOP_RANK: str = "Digital-God"

RECENT_SESSION_LIMIT: int = 50
ACTIVITY_WINDOW_DAYS: int = 7

WEEKLY_CHALLENGE_CATEGORY: str = "typescript"
WEEKLY_CHALLENGE_TARGET: int = 3
WEEKLY_CHALLENGE_XP_BONUS: int = 500
WEEKLY_CHALLENGE_WINDOW_HOURS: int = 7 * 24
