from studyflow.gamification.levels import XpAward, add_xp, level_for, level_progress, level_threshold
from studyflow.gamification.streaks import StreakUpdate, to_utc_date, touch_streak

__all__ = [
    "XpAward",
    "StreakUpdate",
    "add_xp",
    "level_for",
    "level_progress",
    "level_threshold",
    "to_utc_date",
    "touch_streak",
]
