"""
Outbound activity events ("topic completed", "XP awarded", "level up",
"streak updated") for notification consumers.
"""

import logging
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List

from motor.motor_asyncio import AsyncIOMotorDatabase
from pydantic import BaseModel

from studyflow.mongo import guarded_write, read_with_retry

logger = logging.getLogger(__name__)


class EventKind(str, Enum):
    TOPIC_COMPLETED = "topic_completed"
    XP_AWARDED = "xp_awarded"
    LEVEL_UP = "level_up"
    STREAK_UPDATED = "streak_updated"


class ActivityEvent(BaseModel):
    event_id: str
    user_id: str
    kind: EventKind
    payload: Dict[str, Any]
    created_at: datetime


async def record_event(db: AsyncIOMotorDatabase, user_id: str, kind: EventKind, payload: dict) -> ActivityEvent:
    event = ActivityEvent(
        event_id=f"EVT_{uuid.uuid4().hex[:12].upper()}",
        user_id=user_id,
        kind=kind,
        payload=payload,
        created_at=datetime.now(timezone.utc),
    )
    doc = event.model_dump(mode="json")
    doc["created_at"] = event.created_at
    async with guarded_write("record activity event"):
        await db.activity_events.insert_one(doc)
    logger.info("event %s user=%s %s", kind.value, user_id, payload)
    return event


async def recent_events(db: AsyncIOMotorDatabase, user_id: str, limit: int = 20) -> List[ActivityEvent]:
    async def _query():
        cursor = db.activity_events.find({"user_id": user_id}, {"_id": 0}).sort("created_at", -1).limit(limit)
        return await cursor.to_list(length=limit)

    docs = await read_with_retry(_query)
    return [ActivityEvent(**doc) for doc in docs]
