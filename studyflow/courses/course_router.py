import logging

import httpx
from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from studyflow.ai.services import answer_topic_question, generate_learning_path, generate_topic_notes
from studyflow.courses.completion import complete_and_award
from studyflow.courses.database import (
    attach_topics, create_course, get_course, get_course_topics, get_topic,
    list_courses, update_topic_notes
)
from studyflow.courses.models import (
    CourseCreate, CourseDetail, CourseSummary, LearningPathRequest, TopicChatRequest,
    TopicDetail, TopicNotesUpdate, TopicsAttach
)
from studyflow.courses.progress import annotate_topics, course_progress, select_next
from studyflow.dependencies import get_ai_client, get_current_user_id, get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Courses"])


# ==================== GENERATION ====================

@router.post("/generate")
async def generate_path_endpoint(
    req: LearningPathRequest,
    user_id: str = Depends(get_current_user_id),
    client: httpx.AsyncClient = Depends(get_ai_client)
):
    """
    Ask the AI gateway for a learning path preview.
    Nothing is stored; the client reviews the topics and then calls POST /courses.
    """
    path = await generate_learning_path(req.subject, req.level, req.syllabus_text, client=client)
    logger.info("Generated %d topics for %s", len(path.topics), user_id)
    return path


# ==================== COURSE CRUD ====================

@router.post("")
async def create_course_endpoint(
    course: CourseCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
):
    course_id = await create_course(
        db,
        course.model_dump(exclude={"topics"}, mode="json"),
        user_id,
        course.topics,
    )
    return {
        "success": True,
        "course_id": course_id,
        "message": "Course created"
    }


@router.get("")
async def list_my_courses(
    skip: int = 0,
    limit: int = 50,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
):
    courses = await list_courses(db, user_id, skip=skip, limit=limit)

    result = []
    for course in courses:
        topics = await get_course_topics(db, course.course_id)
        result.append(CourseSummary(course=course, progress=course_progress(topics)))

    return {
        "courses": result,
        "count": len(result),
        "skip": skip,
        "limit": limit
    }


@router.get("/topics/{topic_id}", response_model=TopicDetail)
async def get_topic_endpoint(
    topic_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
):
    topic = await get_topic(db, topic_id, user_id)
    course = await get_course(db, topic.course_id, user_id)
    topics = annotate_topics(await get_course_topics(db, course.course_id))
    view = next(t for t in topics if t.topic_id == topic_id)
    return TopicDetail(topic=view, course=course)


@router.get("/{course_id}", response_model=CourseDetail)
async def get_course_endpoint(
    course_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
):
    """Course with ordered topics, lock flags and recomputed progress"""
    course = await get_course(db, course_id, user_id)
    topics = await get_course_topics(db, course_id)
    selection = select_next(topics)

    return CourseDetail(
        course=course,
        topics=annotate_topics(topics),
        progress=course_progress(topics),
        next_topic_id=topics[selection.next_index].topic_id if selection.next_index is not None else None,
    )


@router.post("/{course_id}/topics")
async def attach_topics_endpoint(
    course_id: str,
    payload: TopicsAttach,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
):
    topics = await attach_topics(db, course_id, user_id, payload.topics)
    return {"success": True, "topics": topics}


# ==================== TOPIC ACTIONS ====================

@router.patch("/topics/{topic_id}/notes")
async def save_notes_endpoint(
    topic_id: str,
    payload: TopicNotesUpdate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
):
    topic = await update_topic_notes(db, topic_id, user_id, payload.notes)
    return {"success": True, "topic": topic}


@router.post("/topics/{topic_id}/complete")
async def complete_topic_endpoint(
    topic_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
):
    """
    Mark a topic completed and award its XP.
    Repeating the call is safe: the second response has status
    "already_completed" and no XP.
    """
    return await complete_and_award(db, user_id, topic_id)


@router.post("/topics/{topic_id}/ai-notes")
async def ai_notes_endpoint(
    topic_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    client: httpx.AsyncClient = Depends(get_ai_client)
):
    topic = await get_topic(db, topic_id, user_id)
    course = await get_course(db, topic.course_id, user_id)
    notes = await generate_topic_notes(topic.name, topic.description, course.learning_level, client=client)
    return {"topic_id": topic_id, "notes": notes}


@router.post("/topics/{topic_id}/chat")
async def topic_chat_endpoint(
    topic_id: str,
    req: TopicChatRequest,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    client: httpx.AsyncClient = Depends(get_ai_client)
):
    topic = await get_topic(db, topic_id, user_id)
    course = await get_course(db, topic.course_id, user_id)
    reply = await answer_topic_question(
        req.messages, topic.name, topic.description, course.learning_level, client=client
    )
    return {"topic_id": topic_id, "response": reply}
