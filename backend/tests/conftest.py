import pytest
from fastapi.testclient import TestClient

from feedback_api.config import PROVIDER_KEYS, Settings
from feedback_api.main import create_app
from feedback_api.schemas import InsightReport


@pytest.fixture(autouse=True)
def mock_env_vars(monkeypatch):
    """Keep real AI credentials and provider settings out of the tests"""
    for key in list(PROVIDER_KEYS.values()) + ["AI_PROVIDER", "AI_MODEL_NAME", "HOST", "PORT"]:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("DATABASE_PATH", ":memory:")
    monkeypatch.setenv("LOG_LEVEL", "INFO")


@pytest.fixture
def test_settings(mock_env_vars):
    return Settings(database_path=":memory:")


@pytest.fixture
def client(test_settings):
    """Test client over a fresh app with an in-memory store"""
    app = create_app(test_settings)
    with TestClient(app) as test_client:
        yield test_client


class FakeSummarizer:
    """Stands in for the AI summarizer and records what it was asked"""

    def __init__(self, report=None, recommendations=None, fail_on=None):
        self.report = report or InsightReport(
            strengths=["Focused discussion"],
            improvements=["Shorter updates"],
            recommendations=["Share notes afterwards"],
            trends=["Ratings are stable"],
            effectivenessScore=8.5,
            summary="A productive meeting.",
        )
        self.recommendations = recommendations or ["Keep a parking lot for side topics"]
        self.fail_on = fail_on
        self.calls = []

    async def generate_insights(self, feedback):
        self.calls.append(("insights", feedback))
        if self.fail_on == "insights":
            raise RuntimeError("model unavailable")
        return self.report

    async def generate_recommendations(self, meeting_type, feedback):
        self.calls.append(("recommendations", meeting_type, feedback))
        if self.fail_on == "recommendations":
            raise RuntimeError("model unavailable")
        return self.recommendations


@pytest.fixture
def summarizer_factory():
    return FakeSummarizer


@pytest.fixture
def fake_summarizer():
    return FakeSummarizer()


@pytest.fixture
def sample_meeting():
    return {
        "id": "m1",
        "createdBy": "u1",
        "title": "Weekly Sync",
        "date": "2026-10-19",
        "time": "10:00",
        "description": "Team status",
        "meetingType": "standup",
    }


@pytest.fixture
def sample_team():
    return {
        "name": "Team Alpha",
        "members": [
            {"name": "Alice", "role": "Developer", "email": "alice@email.com"},
            {"name": "Bob", "role": "Designer", "email": "bob@email.com"},
        ],
    }
