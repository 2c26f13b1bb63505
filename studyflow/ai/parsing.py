"""
Parsing of untrusted AI output into a validated learning path.
The whole list is accepted or rejected; there are no partial results.
"""

import json
from typing import List

from pydantic import BaseModel, Field, ValidationError

from studyflow.courses.models import Difficulty
from studyflow.errors import UpstreamGenerationFailure


class GeneratedTopic(BaseModel):
    name: str = Field(strict=True, min_length=1)
    description: str = Field(strict=True)
    difficulty: Difficulty
    estimated_time: int = Field(strict=True, gt=0)
    xp_reward: int = Field(strict=True, gt=0)


class LearningPath(BaseModel):
    topics: List[GeneratedTopic] = Field(min_length=1)


def strip_code_fences(text: str) -> str:
    """Remove an optional ```json / ``` wrapper around the payload."""
    content = text.strip()
    if content.startswith("```json"):
        content = content[7:]
    if content.startswith("```"):
        content = content[3:]
    if content.endswith("```"):
        content = content[:-3]
    return content.strip()


def parse_learning_path(raw_output: str) -> LearningPath:
    try:
        payload = json.loads(strip_code_fences(raw_output))
    except json.JSONDecodeError as e:
        raise UpstreamGenerationFailure("AI response was not valid JSON") from e

    if not isinstance(payload, dict) or not isinstance(payload.get("topics"), list):
        raise UpstreamGenerationFailure("Invalid response structure from AI")

    try:
        return LearningPath.model_validate(payload)
    except ValidationError as e:
        raise UpstreamGenerationFailure(f"AI returned invalid topics: {e.error_count()} problem(s)") from e
