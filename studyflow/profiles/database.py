import logging
from datetime import date, datetime, timezone
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from studyflow import config
from studyflow.errors import NotFound, TransientBackendFailure
from studyflow.gamification.levels import XpAward, add_xp
from studyflow.gamification.streaks import StreakUpdate, touch_streak
from studyflow.mongo import guarded_write, read_with_retry
from studyflow.profiles.models import LearnerProfile

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _date_to_doc(value: Optional[date]) -> Optional[str]:
    # BSON has no calendar-date type; store ISO YYYY-MM-DD
    return value.isoformat() if value else None


# ==================== INDEXES ====================

async def create_profile_indexes(db: AsyncIOMotorDatabase):
    await db.profiles.create_index("user_id", unique=True)
    await db.profiles.create_index([("xp", -1)])
    await db.activity_events.create_index([("user_id", 1), ("created_at", -1)])


# ==================== PROFILE CRUD ====================

async def ensure_profile(db: AsyncIOMotorDatabase, user_id: str, username: Optional[str] = None,
                         full_name: Optional[str] = None) -> LearnerProfile:
    """
    Create the learner profile at signup (idempotent).
    A second signup returns the existing profile untouched.
    """
    now = _utcnow()
    async with guarded_write("create profile"):
        doc = await db.profiles.find_one_and_update(
            {"user_id": user_id},
            {"$setOnInsert": {
                "user_id": user_id,
                "username": username,
                "full_name": full_name,
                "avatar_url": None,
                "bio": None,
                "education_level": None,
                "preferred_subjects": [],
                "daily_study_target": 30,
                "xp": 0,
                "level": 1,
                "streak": 0,
                "last_activity_date": None,
                "badges": [],
                "created_at": now,
                "updated_at": now,
            }},
            upsert=True,
            return_document=ReturnDocument.AFTER,
        )
    return LearnerProfile.from_doc(doc)


async def get_profile(db: AsyncIOMotorDatabase, user_id: str) -> LearnerProfile:
    doc = await read_with_retry(lambda: db.profiles.find_one({"user_id": user_id}))
    if not doc:
        raise NotFound("Profile not found")
    return LearnerProfile.from_doc(doc)


async def update_profile(db: AsyncIOMotorDatabase, user_id: str, updates: dict) -> LearnerProfile:
    """Update presentation fields. XP, level and streak are never set here."""
    for protected in ("user_id", "xp", "level", "streak", "last_activity_date", "badges"):
        updates.pop(protected, None)
    updates["updated_at"] = _utcnow()

    async with guarded_write("update profile"):
        doc = await db.profiles.find_one_and_update(
            {"user_id": user_id},
            {"$set": updates},
            return_document=ReturnDocument.AFTER,
        )
    if not doc:
        raise NotFound("Profile not found")
    return LearnerProfile.from_doc(doc)


# ==================== XP / LEVEL ====================

async def apply_xp(db: AsyncIOMotorDatabase, user_id: str, amount: int,
                   max_retries: int = config.XP_UPDATE_MAX_RETRIES) -> XpAward:
    """
    Award XP as an atomic read-modify-write.

    The write is conditioned on the XP value that was read; if another award
    landed in between nothing matches and the computation is redone.
    """
    for attempt in range(1, max_retries + 1):
        profile = await get_profile(db, user_id)
        award = add_xp(profile, amount)
        if award.amount == 0:
            return award

        async with guarded_write("award XP"):
            result = await db.profiles.update_one(
                {"user_id": user_id, "xp": profile.xp},
                {"$set": {
                    "xp": award.new_xp,
                    "level": award.new_level,
                    "updated_at": _utcnow(),
                }},
            )
        if result.modified_count == 1:
            if award.leveled_up:
                logger.info("User %s leveled up to %d", user_id, award.new_level)
            return award

        logger.info("XP update conflict for %s (attempt %d/%d), retrying", user_id, attempt, max_retries)

    raise TransientBackendFailure("Could not award XP due to concurrent updates, please retry")


# ==================== STREAK ====================

async def apply_streak(db: AsyncIOMotorDatabase, user_id: str, today: date,
                       max_retries: int = config.XP_UPDATE_MAX_RETRIES) -> StreakUpdate:
    """Record activity for `today` (a UTC calendar date)."""
    for attempt in range(1, max_retries + 1):
        profile = await get_profile(db, user_id)
        update = touch_streak(profile, today)
        if not update.changed:
            return update

        async with guarded_write("update streak"):
            result = await db.profiles.update_one(
                {
                    "user_id": user_id,
                    "streak": profile.streak,
                    "last_activity_date": _date_to_doc(profile.last_activity_date),
                },
                {"$set": {
                    "streak": update.new_streak,
                    "last_activity_date": _date_to_doc(update.new_last_activity_date),
                    "updated_at": _utcnow(),
                }},
            )
        if result.modified_count == 1:
            return update

        logger.info("Streak update conflict for %s (attempt %d/%d), retrying", user_id, attempt, max_retries)

    raise TransientBackendFailure("Could not update streak due to concurrent updates, please retry")


# ==================== LEADERBOARD ====================

async def get_leaderboard(db: AsyncIOMotorDatabase, skip: int = 0, limit: int = 50) -> List[dict]:
    """Read-only ranking by XP"""
    projection = {
        "_id": 0,
        "user_id": 1,
        "username": 1,
        "full_name": 1,
        "avatar_url": 1,
        "xp": 1,
        "level": 1,
        "streak": 1,
        "badges": 1,
    }

    async def _query():
        cursor = db.profiles.find({}, projection).sort([("xp", -1), ("user_id", 1)]).skip(skip).limit(limit)
        return await cursor.to_list(length=limit)

    results = await read_with_retry(_query)

    # rank injection (after pagination)
    for idx, row in enumerate(results):
        row["rank"] = skip + idx + 1

    return results
