"""
Streak engine.

A streak counts consecutive UTC calendar days with at least one qualifying
activity. Activity timestamps become days through `to_utc_date()` so
server-local time never leaks into the comparison.
"""

from datetime import date, datetime, timezone
from typing import Optional

from pydantic import BaseModel

from studyflow.profiles.models import LearnerProfile


class StreakUpdate(BaseModel):
    previous_streak: int
    new_streak: int
    new_last_activity_date: Optional[date]
    changed: bool


def to_utc_date(moment: datetime) -> date:
    """Calendar day of `moment` in UTC. Naive datetimes are taken as UTC."""
    if moment.tzinfo is None:
        return moment.date()
    return moment.astimezone(timezone.utc).date()


def touch_streak(profile: LearnerProfile, today: date) -> StreakUpdate:
    last = profile.last_activity_date

    if last is None:
        new_streak = 1
    else:
        gap = (today - last).days
        if gap == 0:
            # already counted today
            return StreakUpdate(
                previous_streak=profile.streak,
                new_streak=profile.streak,
                new_last_activity_date=last,
                changed=False,
            )
        elif gap == 1:
            new_streak = profile.streak + 1
        else:
            # gap of 2+ days, or a negative gap from clock skew
            new_streak = 1

    return StreakUpdate(
        previous_streak=profile.streak,
        new_streak=new_streak,
        new_last_activity_date=today,
        changed=True,
    )
