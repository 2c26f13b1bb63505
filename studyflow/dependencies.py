import httpx
from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from studyflow import config
from studyflow.auth_utils import verify_token


def get_db_instance():
    """Get database from main module"""
    from studyflow.main import db
    return db

# ==================== DEPENDENCY FUNCTIONS ====================

async def get_db() -> AsyncIOMotorDatabase:
    """Database dependency"""
    return get_db_instance()

async def get_current_user_id(user: dict = Depends(verify_token)) -> str:
    """The identity provider's subject is the user id"""
    return user["sub"]

async def get_ai_client():
    """One httpx client per request for AI gateway calls"""
    async with httpx.AsyncClient(timeout=config.AI_TIMEOUT_SECONDS) as client:
        yield client
