"""
XP / Level engine.

Levels are a step function of cumulative XP. Each band is 100 XP wider than
the previous one:

    level 1:    0 -   99
    level 2:  100 -  299
    level 3:  300 -  599
    level 4:  600 -  999
    level 5: 1000 - 1499
    ...

so level L starts at 50 * L * (L - 1) XP.
"""

import math

from pydantic import BaseModel

from studyflow.errors import ValidationFailure
from studyflow.profiles.models import LearnerProfile

BAND_STEP = 100

# XP is stored as a signed 64-bit integer
MAX_XP = 2**63 - 1


class XpAward(BaseModel):
    amount: int
    previous_xp: int
    new_xp: int
    previous_level: int
    new_level: int
    leveled_up: bool


def level_threshold(level: int) -> int:
    """Cumulative XP at which `level` starts."""
    if level < 1:
        raise ValueError("Levels start at 1")
    return BAND_STEP * level * (level - 1) // 2


def level_for(xp: int) -> int:
    """Largest level whose threshold is <= xp."""
    if xp < 0:
        raise ValueError("XP cannot be negative")
    # Solve 50 * L * (L - 1) <= xp for L, then correct for float rounding
    level = int((1 + math.sqrt(1 + 8 * xp / BAND_STEP)) / 2)
    level = max(level, 1)
    while level_threshold(level + 1) <= xp:
        level += 1
    while level > 1 and level_threshold(level) > xp:
        level -= 1
    return level


def validate_xp_amount(amount) -> int:
    # bool is an int subclass; True is not a meaningful XP delta
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationFailure(f"XP amount must be an integer, got {type(amount).__name__}")
    if amount < 0:
        raise ValidationFailure("XP amount cannot be negative")
    return amount


def add_xp(profile: LearnerProfile, amount: int) -> XpAward:
    """Compute the profile state after awarding `amount` XP.

    Pure: the caller persists the result atomically.
    """
    validate_xp_amount(amount)
    new_xp = profile.xp + amount
    if new_xp > MAX_XP:
        raise ValidationFailure("XP total would exceed the storable maximum")

    new_level = level_for(new_xp)
    return XpAward(
        amount=amount,
        previous_xp=profile.xp,
        new_xp=new_xp,
        previous_level=profile.level,
        new_level=new_level,
        leveled_up=new_level > profile.level,
    )


def level_progress(xp: int) -> int:
    """Percent through the current level band, rounded half up."""
    level = level_for(xp)
    start = level_threshold(level)
    width = level_threshold(level + 1) - start
    return (200 * (xp - start) + width) // (2 * width)
