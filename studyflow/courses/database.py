import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from pymongo.errors import BulkWriteError, DuplicateKeyError

from studyflow.courses.models import CompletionResult, CompletionStatus, Course, Topic, TopicCreate
from studyflow.errors import NotFound, TransientBackendFailure
from studyflow.mongo import guarded_write, read_with_retry

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ==================== INDEXES ====================

async def create_course_indexes(db: AsyncIOMotorDatabase):
    """Create MongoDB indexes for courses and topics"""
    # Courses
    await db.courses.create_index("course_id", unique=True)
    await db.courses.create_index([("user_id", 1), ("created_at", -1)])

    # Topics
    await db.topics.create_index("topic_id", unique=True)
    await db.topics.create_index([("course_id", 1), ("order_index", 1)], unique=True)
    await db.topics.create_index([("user_id", 1), ("is_completed", 1)])


# ==================== COURSE CRUD ====================

def _topic_docs(course_id: str, user_id: str, topics: List[TopicCreate], first_index: int) -> List[dict]:
    now = _utcnow()
    return [
        {
            "topic_id": f"TOPIC_{uuid.uuid4().hex[:12].upper()}",
            "course_id": course_id,
            "user_id": user_id,
            "name": t.name,
            "description": t.description,
            "difficulty": t.difficulty.value,
            "estimated_time": t.estimated_time,
            "xp_reward": t.xp_reward,
            "order_index": first_index + i,
            "is_completed": False,
            "completed_at": None,
            "notes": None,
            "created_at": now,
            "updated_at": now,
        }
        for i, t in enumerate(topics)
    ]


async def create_course(db: AsyncIOMotorDatabase, course_data: dict, user_id: str,
                        topics: List[TopicCreate]) -> str:
    """
    Create a course owned by `user_id` with its ordered topics.
    Topics get order_index 1..n in the given order. XP totals are never
    stored on the course; they come from course_progress on read.
    """
    course_id = f"COURSE_{uuid.uuid4().hex[:12].upper()}"
    now = _utcnow()

    course = {
        "course_id": course_id,
        "user_id": user_id,
        "title": course_data["title"],
        "description": course_data.get("description"),
        "learning_level": course_data.get("learning_level", "beginner"),
        "syllabus_text": course_data.get("syllabus_text"),
        "created_at": now,
        "updated_at": now,
    }

    async with guarded_write("create course"):
        await db.courses.insert_one(course)
        if topics:
            await db.topics.insert_many(_topic_docs(course_id, user_id, topics, first_index=1))

    logger.info("Created course %s with %d topics for %s", course_id, len(topics), user_id)
    return course_id


async def get_course(db: AsyncIOMotorDatabase, course_id: str, user_id: str) -> Course:
    """Get course by ID, scoped to its owner"""
    doc = await read_with_retry(lambda: db.courses.find_one({"course_id": course_id, "user_id": user_id}))
    if not doc:
        raise NotFound("Course not found")
    return Course.from_doc(doc)


async def list_courses(db: AsyncIOMotorDatabase, user_id: str, skip: int = 0,
                       limit: Optional[int] = 50) -> List[Course]:
    """Caller's courses, newest first. limit=None returns all of them."""
    async def _query():
        cursor = db.courses.find({"user_id": user_id}).sort("created_at", -1).skip(skip)
        if limit is not None:
            cursor = cursor.limit(limit)
        return await cursor.to_list(length=limit)

    docs = await read_with_retry(_query)
    return [Course.from_doc(doc) for doc in docs]


async def attach_topics(db: AsyncIOMotorDatabase, course_id: str, user_id: str,
                        topics: List[TopicCreate]) -> List[Topic]:
    """Append topics after the current highest order_index"""
    await get_course(db, course_id, user_id)

    async def _last():
        cursor = db.topics.find({"course_id": course_id}).sort("order_index", -1).limit(1)
        return await cursor.to_list(length=1)

    last = await read_with_retry(_last)
    first_index = last[0]["order_index"] + 1 if last else 1
    docs = _topic_docs(course_id, user_id, topics, first_index=first_index)

    try:
        async with guarded_write("attach topics"):
            await db.topics.insert_many(docs)
            await db.courses.update_one(
                {"course_id": course_id},
                {"$set": {"updated_at": _utcnow()}}
            )
    except (DuplicateKeyError, BulkWriteError) as e:
        raise TransientBackendFailure("Topics were attached concurrently, reload and retry") from e

    return [Topic.from_doc(doc) for doc in docs]


# ==================== TOPIC QUERIES ====================

async def get_course_topics(db: AsyncIOMotorDatabase, course_id: str) -> List[Topic]:
    """Topics of a course ascending by order_index"""
    async def _query():
        cursor = db.topics.find({"course_id": course_id}).sort("order_index", 1)
        return await cursor.to_list(length=None)

    docs = await read_with_retry(_query)
    return [Topic.from_doc(doc) for doc in docs]


async def get_topic(db: AsyncIOMotorDatabase, topic_id: str, user_id: str) -> Topic:
    doc = await read_with_retry(lambda: db.topics.find_one({"topic_id": topic_id, "user_id": user_id}))
    if not doc:
        raise NotFound("Topic not found")
    return Topic.from_doc(doc)


async def update_topic_notes(db: AsyncIOMotorDatabase, topic_id: str, user_id: str, notes: str) -> Topic:
    async with guarded_write("save notes"):
        doc = await db.topics.find_one_and_update(
            {"topic_id": topic_id, "user_id": user_id},
            {"$set": {"notes": notes, "updated_at": _utcnow()}},
            return_document=ReturnDocument.AFTER,
        )
    if not doc:
        raise NotFound("Topic not found")
    return Topic.from_doc(doc)


# ==================== COMPLETION ====================

async def complete_topic(db: AsyncIOMotorDatabase, user_id: str, topic_id: str) -> CompletionResult:
    """
    Mark a topic completed (permanent).

    The conditional update only matches an incomplete topic, so exactly one
    caller wins the transition; everyone else gets ALREADY_COMPLETED and
    must not award XP.
    """
    now = _utcnow()
    async with guarded_write("complete topic"):
        doc = await db.topics.find_one_and_update(
            {"topic_id": topic_id, "user_id": user_id, "is_completed": False},
            {"$set": {"is_completed": True, "completed_at": now, "updated_at": now}},
            return_document=ReturnDocument.AFTER,
        )

    if doc:
        return CompletionResult(
            status=CompletionStatus.COMPLETED,
            topic_id=topic_id,
            course_id=doc["course_id"],
            xp_reward=doc["xp_reward"],
            completed_at=doc["completed_at"],
        )

    existing = await read_with_retry(lambda: db.topics.find_one({"topic_id": topic_id, "user_id": user_id}))
    if not existing:
        raise NotFound("Topic not found")

    return CompletionResult(
        status=CompletionStatus.ALREADY_COMPLETED,
        topic_id=topic_id,
        course_id=existing["course_id"],
        xp_reward=existing["xp_reward"],
        completed_at=existing.get("completed_at"),
    )
