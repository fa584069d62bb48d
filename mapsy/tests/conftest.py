import os

# must be set before mapsy.core.config is imported
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ["GOOGLE_VISION_API_KEY"] = ""
os.environ["LLM_API_KEY"] = ""

import uuid
from typing import List, Optional

import pytest
from fastapi.testclient import TestClient
from mongomock_motor import AsyncMongoMockClient

from mapsy.core.exceptions import UpstreamError
from mapsy.core.mongo import get_mongo_db
from mapsy.main import app
from mapsy.models.vision import LandmarkDetectionResult
from mapsy.services.guide_ai_service import get_guide_ai_service
from mapsy.services.vision_service import get_vision_service, parse_annotate_response


class FakeVisionService:
    def __init__(self, result: Optional[LandmarkDetectionResult] = None, error: Exception = None):
        self.result = result or LandmarkDetectionResult()
        self.error = error
        self.payload = None
        self.calls = 0

    @property
    def is_configured(self) -> bool:
        return True

    async def detect_landmarks(self, image_bytes: bytes) -> LandmarkDetectionResult:
        self.calls += 1
        if self.error:
            raise self.error
        if self.payload is not None:
            return parse_annotate_response(self.payload)
        return self.result


class FakeGuideAIService:
    def __init__(self):
        self.answer = "El museo abre a las 9."
        self.description = "Un lugar emblemático."
        self.recommendations_text = "[]"
        self.error: Optional[Exception] = None
        self.described: List[str] = []
        self.questions: List[str] = []

    def _maybe_fail(self):
        if self.error:
            raise self.error

    async def answer_question(self, country, city, question):
        self.questions.append(question)
        self._maybe_fail()
        return self.answer

    async def describe_landmark(self, country, city, landmark_name, landmark_info=None):
        self.described.append(landmark_name)
        self._maybe_fail()
        return self.description

    async def generate_recommendations_text(self, country, city, current_landmark=None):
        self._maybe_fail()
        return self.recommendations_text


def llm_down() -> UpstreamError:
    return UpstreamError("Failed to generate AI response", service="llm")


@pytest.fixture
def db():
    return AsyncMongoMockClient()["mapsy_test"]


@pytest.fixture
def vision():
    return FakeVisionService()


@pytest.fixture
def guide_ai():
    return FakeGuideAIService()


@pytest.fixture
def client(db, vision, guide_ai):
    app.dependency_overrides[get_mongo_db] = lambda: db
    app.dependency_overrides[get_vision_service] = lambda: vision
    app.dependency_overrides[get_guide_ai_service] = lambda: guide_ai
    # not used as a context manager: startup would index the real MongoDB
    yield TestClient(app)
    app.dependency_overrides.clear()


def register(client: TestClient, email: str = None, password: str = "secret123", name: str = "Ana") -> dict:
    email = email or f"user-{uuid.uuid4().hex[:8]}@example.com"
    r = client.post("/auth/register", json={"email": email, "password": password, "name": name})
    assert r.status_code == 201, r.text
    return r.json()["data"]


@pytest.fixture
def auth_headers(client):
    data = register(client)
    return {"Authorization": f"Bearer {data['token']}"}


@pytest.fixture
def session_id(client, auth_headers):
    r = client.post("/api/chat/sessions", json={"country": "Francia", "city": "París"}, headers=auth_headers)
    assert r.status_code == 200, r.text
    return r.json()["data"]["session"]["id"]
