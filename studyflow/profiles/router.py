from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from studyflow.courses.database import get_course_topics, list_courses
from studyflow.courses.progress import course_progress, learner_stats
from studyflow.dependencies import get_current_user_id, get_db
from studyflow.events import recent_events
from studyflow.gamification.levels import level_progress, level_threshold
from studyflow.profiles.database import ensure_profile, get_leaderboard, get_profile, update_profile
from studyflow.profiles.models import LeaderboardEntry, LeaderboardResponse, ProfileSignup, ProfileUpdate

router = APIRouter(tags=["Profiles"])


@router.post("/signup")
async def signup_endpoint(
    payload: ProfileSignup,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
):
    """Create the learner profile (xp=0, level=1, streak=0). Safe to repeat."""
    return await ensure_profile(db, user_id, username=payload.username, full_name=payload.full_name)


@router.get("/me")
async def get_me(
    db: AsyncIOMotorDatabase = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
):
    return await get_profile(db, user_id)


@router.patch("/me")
async def update_me(
    payload: ProfileUpdate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
):
    updates = payload.model_dump(exclude_none=True, mode="json")
    return await update_profile(db, user_id, updates)


@router.get("/me/dashboard")
async def dashboard(
    db: AsyncIOMotorDatabase = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
):
    profile = await get_profile(db, user_id)
    courses = await list_courses(db, user_id, limit=None)

    progresses = []
    for course in courses:
        progresses.append(course_progress(await get_course_topics(db, course.course_id)))

    return {
        "profile": profile,
        "level_progress": level_progress(profile.xp),
        "next_level_xp": level_threshold(profile.level + 1),
        "stats": learner_stats(progresses),
    }


@router.get("/me/activity")
async def my_activity(
    limit: int = Query(20, ge=1, le=100),
    db: AsyncIOMotorDatabase = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
):
    return {"events": await recent_events(db, user_id, limit=limit)}


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def leaderboard(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=100),
    db: AsyncIOMotorDatabase = Depends(get_db),
    user_id: str = Depends(get_current_user_id)
):
    skip = (page - 1) * page_size
    rows = await get_leaderboard(db, skip=skip, limit=page_size)
    return LeaderboardResponse(
        entries=[LeaderboardEntry(**row) for row in rows],
        page=page,
        page_size=page_size,
    )
