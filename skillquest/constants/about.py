"""Static metadata describing SkillQuest."""

APP_NAME = "SkillQuest"
APP_VERSION = "0.1"
APP_LICENSE = "MIT License"
APP_ABOUT_TEXT = (
    "SkillQuest turns quiz answers into XP, levels and ranks, and keeps a "
    "dashboard of skill, activity and weekly-challenge statistics."
)
