from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date, datetime
from enum import Enum

# ==================== ENUMS ====================

class EducationLevel(str, Enum):
    SCHOOL = "school"
    COLLEGE = "college"
    SELF_LEARNER = "self_learner"

# ==================== PROFILE MODELS ====================

class LearnerProfile(BaseModel):
    user_id: str
    username: Optional[str] = None
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    education_level: Optional[EducationLevel] = None
    preferred_subjects: List[str] = []
    daily_study_target: int = 30
    xp: int = Field(default=0, ge=0)
    level: int = Field(default=1, ge=1)
    streak: int = Field(default=0, ge=0)
    last_activity_date: Optional[date] = None
    badges: List[str] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_doc(cls, doc: dict) -> "LearnerProfile":
        return cls(**{k: v for k, v in doc.items() if k != "_id"})

class ProfileSignup(BaseModel):
    username: Optional[str] = None
    full_name: Optional[str] = None

class ProfileUpdate(BaseModel):
    username: Optional[str] = None
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    education_level: Optional[EducationLevel] = None
    preferred_subjects: Optional[List[str]] = None
    daily_study_target: Optional[int] = Field(default=None, gt=0)

# ==================== LEADERBOARD MODELS ====================

class LeaderboardEntry(BaseModel):
    rank: int
    user_id: str
    username: Optional[str] = None
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    xp: int
    level: int
    streak: int
    badges: List[str] = []

class LeaderboardResponse(BaseModel):
    entries: List[LeaderboardEntry]
    page: int
    page_size: int
