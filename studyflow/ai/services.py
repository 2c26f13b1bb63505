from typing import List, Optional

import httpx

from studyflow.ai.gateway import chat_completion
from studyflow.ai.parsing import LearningPath, parse_learning_path
from studyflow.ai.prompts import PROMPTS, syllabus_block
from studyflow.courses.models import ChatMessage, LearningLevel
from studyflow.errors import ValidationFailure


async def generate_learning_path(subject: str, level: LearningLevel, syllabus_text: Optional[str] = None,
                                 client: Optional[httpx.AsyncClient] = None) -> LearningPath:
    if not subject or not subject.strip():
        raise ValidationFailure("Subject is required")

    prompt = PROMPTS["learning_path"]
    user_prompt = prompt["user"].format(
        subject=subject.strip(),
        level=LearningLevel(level).value,
        syllabus=syllabus_block(syllabus_text),
    )
    raw_output = await chat_completion(
        [
            {"role": "system", "content": prompt["system"]},
            {"role": "user", "content": user_prompt},
        ],
        client=client,
    )
    return parse_learning_path(raw_output)


async def generate_topic_notes(topic: str, description: Optional[str], level: LearningLevel,
                               client: Optional[httpx.AsyncClient] = None) -> str:
    prompt = PROMPTS["notes"]
    return await chat_completion(
        [
            {"role": "system", "content": prompt["system"]},
            {"role": "user", "content": prompt["user"].format(
                topic=topic,
                description=description or "",
                level=LearningLevel(level).value,
            )},
        ],
        client=client,
    )


async def answer_topic_question(messages: List[ChatMessage], topic: str, description: Optional[str],
                                level: LearningLevel, client: Optional[httpx.AsyncClient] = None) -> str:
    system = PROMPTS["chat"]["system"].format(
        topic=topic,
        description=description or "",
        level=LearningLevel(level).value,
    )
    history = [{"role": m.role, "content": m.content} for m in messages]
    return await chat_completion([{"role": "system", "content": system}, *history], client=client)
