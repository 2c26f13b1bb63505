from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime
from enum import Enum

# ==================== ENUMS ====================

class LearningLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"

class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

class CompletionStatus(str, Enum):
    COMPLETED = "completed"
    ALREADY_COMPLETED = "already_completed"

class CompletionResult(BaseModel):
    status: CompletionStatus
    topic_id: str
    course_id: str
    xp_reward: int
    completed_at: Optional[datetime] = None

# ==================== TOPIC MODELS ====================

class TopicCreate(BaseModel):
    name: str = Field(min_length=1)
    description: Optional[str] = None
    difficulty: Difficulty
    estimated_time: int = Field(default=30, gt=0)
    xp_reward: int = Field(gt=0)

class Topic(BaseModel):
    topic_id: str
    course_id: str
    user_id: str
    name: str
    description: Optional[str] = None
    difficulty: Difficulty
    estimated_time: int
    xp_reward: int
    order_index: int
    is_completed: bool = False
    completed_at: Optional[datetime] = None
    notes: Optional[str] = None

    @classmethod
    def from_doc(cls, doc: dict) -> "Topic":
        return cls(**{k: v for k, v in doc.items() if k != "_id"})

class TopicView(Topic):
    is_next: bool = False
    is_locked: bool = False

class TopicNotesUpdate(BaseModel):
    notes: str

class TopicsAttach(BaseModel):
    topics: List[TopicCreate] = Field(min_length=1)

# ==================== COURSE MODELS ====================

class CourseCreate(BaseModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    learning_level: LearningLevel = LearningLevel.BEGINNER
    syllabus_text: Optional[str] = None
    topics: List[TopicCreate] = []

class Course(BaseModel):
    course_id: str
    user_id: str
    title: str
    description: Optional[str] = None
    learning_level: LearningLevel
    syllabus_text: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_doc(cls, doc: dict) -> "Course":
        return cls(**{k: v for k, v in doc.items() if k != "_id"})

# ==================== PROGRESS MODELS ====================

class CourseProgress(BaseModel):
    completed_count: int
    total_count: int
    percentage: int
    is_completed: bool
    earned_xp: int
    total_xp: int

class TopicSelection(BaseModel):
    next_index: Optional[int] = None
    locked_from: Optional[int] = None

class LearnerStats(BaseModel):
    total_courses: int
    completed_courses: int
    in_progress_courses: int
    overall_percentage: int
    completed_topics: int
    earned_xp: int

class CourseSummary(BaseModel):
    course: Course
    progress: CourseProgress

class CourseDetail(BaseModel):
    course: Course
    topics: List[TopicView]
    progress: CourseProgress
    next_topic_id: Optional[str] = None

class TopicDetail(BaseModel):
    topic: TopicView
    course: Course

# ==================== GENERATION MODELS ====================

class LearningPathRequest(BaseModel):
    subject: str
    level: LearningLevel = LearningLevel.BEGINNER
    syllabus_text: Optional[str] = None

class ChatMessage(BaseModel):
    role: str = Field(pattern="^(user|assistant)$")
    content: str

class TopicChatRequest(BaseModel):
    messages: List[ChatMessage] = Field(min_length=1)
