"""Static mapping of question categories onto the five dashboard skill groups."""

from __future__ import annotations

from enum import Enum

SKILL_GROUPS: dict[str, tuple[str, ...]] = {
    "Frontend Foundations": (
        "react",
        "html",
        "css",
        "browser",
        "nextjs",
        "react-native",
        "web3",
        "mobile",
    ),
    "Programming Languages": ("javascript", "typescript"),
    "System & Architecture": ("system-design", "architecture", "networking", "algorithms"),
    "Quality & Performance": ("performance", "security", "testing"),
    "Developer Tools": ("tooling", "soft-skills"),
}

_GROUP_BY_CATEGORY: dict[str, str] = {
    category: group for group, categories in SKILL_GROUPS.items() for category in categories
}
DEFAULT_SKILL_GROUP: str = next(iter(SKILL_GROUPS))


def get_category_group(category: str) -> str:
    """Return the skill group for ``category``; unknown categories fall into the first group."""
    key = category.value if isinstance(category, Enum) else category
    return _GROUP_BY_CATEGORY.get(key, DEFAULT_SKILL_GROUP)


def get_all_skill_groups() -> list[str]:
    """All skill groups in display order."""
    return list(SKILL_GROUPS)
