"""
Topic completion flow.

Order matters: the profile is checked, the completion is recorded, and XP
is only awarded once that write has succeeded. A crash or timeout in
between under-awards XP instead of granting it for a completion that was
never stored. Activity events are recorded after XP and streak.

The streak day is the UTC calendar day of the stored `completed_at`.
"""

import logging
from datetime import date
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel

from studyflow.courses.database import complete_topic, get_course_topics
from studyflow.courses.models import CompletionStatus, CourseProgress
from studyflow.courses.progress import course_progress
from studyflow.events import ActivityEvent, EventKind, record_event
from studyflow.gamification.levels import XpAward
from studyflow.gamification.streaks import StreakUpdate, to_utc_date
from studyflow.profiles.database import apply_streak, apply_xp, get_profile

logger = logging.getLogger(__name__)


class TopicCompletionOutcome(BaseModel):
    status: CompletionStatus
    topic_id: str
    course_id: str
    xp: Optional[XpAward] = None
    streak: Optional[StreakUpdate] = None
    course_progress: CourseProgress
    events: List[ActivityEvent] = []


async def complete_and_award(db: AsyncIOMotorDatabase, user_id: str, topic_id: str,
                             today: Optional[date] = None) -> TopicCompletionOutcome:
    # the profile must exist before the topic can be marked completed
    await get_profile(db, user_id)

    result = await complete_topic(db, user_id, topic_id)

    if result.status == CompletionStatus.ALREADY_COMPLETED:
        logger.info("Topic %s already completed by %s, no XP awarded", topic_id, user_id)
        topics = await get_course_topics(db, result.course_id)
        return TopicCompletionOutcome(
            status=result.status,
            topic_id=topic_id,
            course_id=result.course_id,
            course_progress=course_progress(topics),
        )

    award = await apply_xp(db, user_id, result.xp_reward)
    streak = await apply_streak(db, user_id, today or to_utc_date(result.completed_at))

    # events go last: XP and streak never depend on the event log
    events = [await record_event(db, user_id, EventKind.TOPIC_COMPLETED, {
        "topic_id": topic_id,
        "course_id": result.course_id,
        "xp_reward": result.xp_reward,
    })]
    events.append(await record_event(db, user_id, EventKind.XP_AWARDED, {
        "topic_id": topic_id,
        "amount": award.amount,
        "new_xp": award.new_xp,
        "new_level": award.new_level,
    }))
    if award.leveled_up:
        events.append(await record_event(db, user_id, EventKind.LEVEL_UP, {
            "previous_level": award.previous_level,
            "new_level": award.new_level,
            "new_xp": award.new_xp,
        }))
    if streak.changed:
        events.append(await record_event(db, user_id, EventKind.STREAK_UPDATED, {
            "previous_streak": streak.previous_streak,
            "new_streak": streak.new_streak,
            "last_activity_date": streak.new_last_activity_date.isoformat(),
        }))

    topics = await get_course_topics(db, result.course_id)
    return TopicCompletionOutcome(
        status=result.status,
        topic_id=topic_id,
        course_id=result.course_id,
        xp=award,
        streak=streak,
        course_progress=course_progress(topics),
        events=events,
    )
