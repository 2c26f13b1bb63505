"""
AI text-generation gateway client (OpenAI-compatible chat completions).
"""

import logging
from typing import Dict, List, Optional

import httpx

from studyflow import config
from studyflow.errors import UpstreamGenerationFailure

logger = logging.getLogger(__name__)


async def chat_completion(
    messages: List[Dict[str, str]],
    client: Optional[httpx.AsyncClient] = None,
    temperature: float = config.AI_TEMPERATURE,
    max_tokens: int = config.AI_MAX_TOKENS,
) -> str:
    """
    Non-streaming call, returns the assistant message content.
    Every failure mode becomes UpstreamGenerationFailure; nothing is retried.
    """
    if not config.AI_GATEWAY_API_KEY:
        logger.error("AI_GATEWAY_API_KEY is not configured")
        raise UpstreamGenerationFailure("AI generation is not configured")

    body = {
        "model": config.AI_MODEL,
        "messages": messages,
        "temperature": temperature,
        "max_tokens": max_tokens,
    }
    headers = {"Authorization": f"Bearer {config.AI_GATEWAY_API_KEY}"}
    url = f"{config.AI_GATEWAY_URL.rstrip('/')}/v1/chat/completions"

    try:
        if client is None:
            async with httpx.AsyncClient(timeout=config.AI_TIMEOUT_SECONDS) as own_client:
                response = await own_client.post(url, json=body, headers=headers)
        else:
            response = await client.post(url, json=body, headers=headers, timeout=config.AI_TIMEOUT_SECONDS)
    except httpx.TimeoutException as e:
        logger.error("AI gateway timed out: %s", e)
        raise UpstreamGenerationFailure("AI generation timed out, please try again", status_code=504) from e
    except httpx.HTTPError as e:
        logger.error("AI gateway request failed: %s", e)
        raise UpstreamGenerationFailure("Could not reach the AI service") from e

    if response.status_code == 429:
        raise UpstreamGenerationFailure("Rate limit exceeded. Please try again in a moment.", status_code=429)
    if response.status_code == 402:
        raise UpstreamGenerationFailure("AI credits exhausted. Please add credits to your workspace.", status_code=402)
    if response.is_error:
        logger.error("AI gateway error: %s %s", response.status_code, response.text)
        raise UpstreamGenerationFailure("Failed to generate content")

    try:
        data = response.json()
        content = data["choices"][0]["message"]["content"]
    except (ValueError, KeyError, IndexError, TypeError) as e:
        raise UpstreamGenerationFailure("Malformed response from AI service") from e

    if not content:
        raise UpstreamGenerationFailure("No content in AI response")
    return content
