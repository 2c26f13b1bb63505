import json

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from mongomock_motor import AsyncMongoMockClient

from studyflow import config
from studyflow import mongo
from studyflow.dependencies import get_ai_client, get_db
from studyflow.main import app

TEST_SECRET = "test-secret"


def make_token(sub: str = "user-1") -> str:
    return jwt.encode({"sub": sub}, TEST_SECRET, algorithm="HS256")


def auth_headers(sub: str = "user-1") -> dict:
    return {"Authorization": f"Bearer {make_token(sub)}"}


def gateway_transport(content=None, status_code=200, body=None, calls=None):
    """MockTransport answering chat-completion requests with `content`."""
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(json.loads(request.content))
        if body is not None:
            return httpx.Response(status_code, json=body)
        if status_code != 200:
            return httpx.Response(status_code, text="upstream said no")
        return httpx.Response(200, json={"choices": [{"message": {"role": "assistant", "content": content}}]})
    return httpx.MockTransport(handler)


SAMPLE_PATH = {
    "topics": [
        {"name": "Variables", "description": "Naming values", "difficulty": "easy",
         "estimated_time": 20, "xp_reward": 50},
        {"name": "Loops", "description": "Repeating work", "difficulty": "medium",
         "estimated_time": 30, "xp_reward": 100},
        {"name": "Recursion", "description": "Functions calling themselves", "difficulty": "hard",
         "estimated_time": 45, "xp_reward": 150},
    ]
}


@pytest.fixture(scope="session", autouse=True)
def _settings():
    # session scope: hypothesis rejects function-scoped fixtures
    with pytest.MonkeyPatch.context() as mp:
        mp.setattr(config, "JWT_SECRET_KEY", TEST_SECRET)
        mp.setattr(config, "AI_GATEWAY_API_KEY", "test-key")
        mp.setattr(mongo, "READ_BACKOFF_SECONDS", 0)
        yield


@pytest.fixture
def db():
    return AsyncMongoMockClient()["studyflow_test"]


@pytest.fixture
async def api(db):
    app.dependency_overrides[get_db] = lambda: db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def ai_reply():
    """Route AI gateway calls made through the API to a canned reply."""
    def _install(content=None, status_code=200):
        async def _client():
            async with httpx.AsyncClient(transport=gateway_transport(content, status_code)) as client:
                yield client
        app.dependency_overrides[get_ai_client] = _client
    return _install
