import asyncio
from datetime import date, datetime, timezone

import pytest
from pymongo.errors import AutoReconnect

from studyflow.courses import completion
from studyflow.courses import database as courses_db
from studyflow.courses.database import complete_topic, create_course, get_course_topics
from studyflow.courses.models import CompletionStatus, TopicCreate
from studyflow.errors import NotFound, TransientBackendFailure
from studyflow.events import EventKind, recent_events
from studyflow.mongo import guarded_write, read_with_retry
from studyflow.profiles import database as profiles_db
from studyflow.profiles.database import apply_xp, ensure_profile, get_profile

TODAY = date(2024, 1, 11)


async def setup_course(db, user_id="user-1", rewards=(100, 50, 150)):
    await ensure_profile(db, user_id)
    topics = [
        TopicCreate(name=f"Topic {i}", difficulty="easy", xp_reward=xp)
        for i, xp in enumerate(rewards)
    ]
    course_id = await create_course(db, {"title": "Python"}, user_id, topics)
    return course_id, await get_course_topics(db, course_id)


# ==================== RECORDER ====================

async def test_complete_topic_marks_once(db):
    _, topics = await setup_course(db)

    first = await complete_topic(db, "user-1", topics[0].topic_id)
    second = await complete_topic(db, "user-1", topics[0].topic_id)

    assert first.status == CompletionStatus.COMPLETED
    assert first.xp_reward == 100
    assert first.completed_at is not None
    assert second.status == CompletionStatus.ALREADY_COMPLETED

    stored = await db.topics.find_one({"topic_id": topics[0].topic_id})
    assert stored["is_completed"] is True
    assert stored["completed_at"] is not None


async def test_complete_unknown_topic(db):
    await setup_course(db)
    with pytest.raises(NotFound):
        await complete_topic(db, "user-1", "TOPIC_MISSING")


async def test_cannot_complete_someone_elses_topic(db):
    _, topics = await setup_course(db, user_id="owner")
    with pytest.raises(NotFound):
        await complete_topic(db, "intruder", topics[0].topic_id)

    stored = await db.topics.find_one({"topic_id": topics[0].topic_id})
    assert stored["is_completed"] is False


# ==================== FLOW ====================

async def test_completion_awards_xp_exactly_once(db):
    _, topics = await setup_course(db)

    first = await completion.complete_and_award(db, "user-1", topics[0].topic_id, today=TODAY)
    xp_after_first = (await get_profile(db, "user-1")).xp
    second = await completion.complete_and_award(db, "user-1", topics[0].topic_id, today=TODAY)
    xp_after_second = (await get_profile(db, "user-1")).xp

    assert first.status == CompletionStatus.COMPLETED
    assert first.xp.new_xp == 100
    assert second.status == CompletionStatus.ALREADY_COMPLETED
    assert second.xp is None
    assert second.events == []
    assert xp_after_first == xp_after_second == 100


async def test_completion_levels_up_and_starts_streak(db):
    _, topics = await setup_course(db)

    outcome = await completion.complete_and_award(db, "user-1", topics[0].topic_id, today=TODAY)

    assert outcome.xp.leveled_up is True
    assert outcome.xp.new_level == 2
    assert outcome.streak.new_streak == 1
    assert outcome.course_progress.completed_count == 1
    assert outcome.course_progress.percentage == 33
    assert [e.kind for e in outcome.events] == [
        EventKind.TOPIC_COMPLETED,
        EventKind.XP_AWARDED,
        EventKind.LEVEL_UP,
        EventKind.STREAK_UPDATED,
    ]

    profile = await get_profile(db, "user-1")
    assert (profile.xp, profile.level, profile.streak) == (100, 2, 1)
    assert profile.last_activity_date == TODAY


async def test_same_day_completions_count_streak_once(db):
    _, topics = await setup_course(db)

    await completion.complete_and_award(db, "user-1", topics[0].topic_id, today=TODAY)
    outcome = await completion.complete_and_award(db, "user-1", topics[1].topic_id, today=TODAY)

    assert outcome.streak.changed is False
    assert EventKind.STREAK_UPDATED not in [e.kind for e in outcome.events]
    assert EventKind.LEVEL_UP not in [e.kind for e in outcome.events]
    assert (await get_profile(db, "user-1")).streak == 1


async def test_next_day_completion_extends_streak(db):
    _, topics = await setup_course(db)

    await completion.complete_and_award(db, "user-1", topics[0].topic_id, today=date(2024, 1, 10))
    outcome = await completion.complete_and_award(db, "user-1", topics[1].topic_id, today=TODAY)

    assert outcome.streak.new_streak == 2


async def test_events_are_persisted(db):
    _, topics = await setup_course(db)
    await completion.complete_and_award(db, "user-1", topics[0].topic_id, today=TODAY)

    events = await recent_events(db, "user-1")
    assert {e.kind for e in events} == {
        EventKind.TOPIC_COMPLETED, EventKind.XP_AWARDED, EventKind.LEVEL_UP, EventKind.STREAK_UPDATED
    }


async def test_failed_recording_awards_nothing(db, monkeypatch):
    _, topics = await setup_course(db)

    async def timed_out(*args, **kwargs):
        raise TransientBackendFailure("Could not complete topic")

    monkeypatch.setattr(completion, "complete_topic", timed_out)

    with pytest.raises(TransientBackendFailure):
        await completion.complete_and_award(db, "user-1", topics[0].topic_id, today=TODAY)
    assert (await get_profile(db, "user-1")).xp == 0


async def test_concurrent_completions_of_same_topic_award_once(db):
    _, topics = await setup_course(db)

    outcomes = await asyncio.gather(*[
        completion.complete_and_award(db, "user-1", topics[0].topic_id, today=TODAY)
        for _ in range(3)
    ])

    statuses = sorted(o.status.value for o in outcomes)
    assert statuses == ["already_completed", "already_completed", "completed"]
    assert (await get_profile(db, "user-1")).xp == 100


async def test_completion_without_profile_leaves_topic_open(db):
    topics = [TopicCreate(name="Loops", difficulty="easy", xp_reward=100)]
    course_id = await create_course(db, {"title": "Python"}, "user-1", topics)
    topic_id = (await get_course_topics(db, course_id))[0].topic_id

    with pytest.raises(NotFound):
        await completion.complete_and_award(db, "user-1", topic_id, today=TODAY)
    stored = await db.topics.find_one({"topic_id": topic_id})
    assert stored["is_completed"] is False

    await ensure_profile(db, "user-1")
    outcome = await completion.complete_and_award(db, "user-1", topic_id, today=TODAY)

    assert outcome.status == CompletionStatus.COMPLETED
    assert (await get_profile(db, "user-1")).xp == 100


async def test_event_log_failure_keeps_xp_and_streak(db, monkeypatch):
    _, topics = await setup_course(db)

    async def log_down(*args, **kwargs):
        raise TransientBackendFailure("Could not record activity event")

    monkeypatch.setattr(completion, "record_event", log_down)

    with pytest.raises(TransientBackendFailure):
        await completion.complete_and_award(db, "user-1", topics[0].topic_id, today=TODAY)

    profile = await get_profile(db, "user-1")
    assert (profile.xp, profile.level, profile.streak) == (100, 2, 1)


async def test_streak_day_is_utc_day_of_completion(db, monkeypatch):
    _, topics = await setup_course(db)
    await db.profiles.update_one(
        {"user_id": "user-1"}, {"$set": {"streak": 4, "last_activity_date": "2024-01-10"}}
    )
    monkeypatch.setattr(courses_db, "_utcnow", lambda: datetime(2024, 1, 11, 0, 15, tzinfo=timezone.utc))

    outcome = await completion.complete_and_award(db, "user-1", topics[0].topic_id)

    assert outcome.streak.new_last_activity_date == date(2024, 1, 11)
    assert outcome.streak.new_streak == 5


# ==================== XP CONCURRENCY ====================

async def test_xp_award_retries_after_concurrent_update(db, monkeypatch):
    await ensure_profile(db, "user-1")
    real_get_profile = profiles_db.get_profile
    calls = []

    async def racing_get_profile(db_, user_id):
        profile = await real_get_profile(db_, user_id)
        if not calls:
            # another award lands between our read and our write
            await db_.profiles.update_one({"user_id": user_id}, {"$inc": {"xp": 40}})
        calls.append(profile.xp)
        return profile

    monkeypatch.setattr(profiles_db, "get_profile", racing_get_profile)

    award = await apply_xp(db, "user-1", 70)

    assert calls == [0, 40]
    assert award.new_xp == 110
    assert award.new_level == 2
    stored = await db.profiles.find_one({"user_id": "user-1"})
    assert (stored["xp"], stored["level"]) == (110, 2)


async def test_xp_award_gives_up_after_repeated_conflicts(db, monkeypatch):
    await ensure_profile(db, "user-1")
    real_get_profile = profiles_db.get_profile

    async def always_racing(db_, user_id):
        profile = await real_get_profile(db_, user_id)
        await db_.profiles.update_one({"user_id": user_id}, {"$inc": {"xp": 1}})
        return profile

    monkeypatch.setattr(profiles_db, "get_profile", always_racing)

    with pytest.raises(TransientBackendFailure):
        await apply_xp(db, "user-1", 10, max_retries=3)


async def test_award_for_missing_profile(db):
    with pytest.raises(NotFound):
        await apply_xp(db, "ghost", 10)


# ==================== STORAGE GUARDS ====================

async def test_reads_are_retried_on_transient_errors():
    attempts = []

    async def flaky():
        attempts.append(1)
        if len(attempts) < 3:
            raise AutoReconnect("connection reset")
        return "ok"

    assert await read_with_retry(flaky, attempts=3) == "ok"
    assert len(attempts) == 3


async def test_reads_give_up_as_transient_failure():
    async def down():
        raise AutoReconnect("no primary")

    with pytest.raises(TransientBackendFailure):
        await read_with_retry(down, attempts=2)


async def test_writes_are_not_retried():
    attempts = []

    with pytest.raises(TransientBackendFailure):
        async with guarded_write("award XP"):
            attempts.append(1)
            raise AutoReconnect("socket timeout")

    assert attempts == [1]
