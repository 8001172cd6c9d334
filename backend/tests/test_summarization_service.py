import asyncio

import pytest

from feedback_api.config import Settings
from feedback_api.services.summarization_service import (
    FeedbackSummarizer,
    _format_feedback,
    build_model,
    get_summarizer,
)


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.database_path == ":memory:"
        assert settings.ai_provider == "gemini"
        assert settings.model_name == "gemini-2.0-flash"
        assert settings.port == 4000
        assert settings.api_key is None

    def test_provider_credential(self, monkeypatch):
        monkeypatch.setenv("AI_PROVIDER", "Claude")
        monkeypatch.setenv("ANTHROPIC_API_KEY", "  sk-test  ")
        monkeypatch.setenv("AI_MODEL_NAME", "claude-custom")
        settings = Settings()
        assert settings.ai_provider == "claude"
        assert settings.api_key == "sk-test"
        assert settings.model_name == "claude-custom"

    def test_blank_credential_is_missing(self, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "   ")
        assert Settings().api_key is None


class TestGetSummarizer:
    def test_no_credential_means_no_summarizer(self):
        assert get_summarizer(Settings()) is None

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unsupported model provider"):
            get_summarizer(Settings(ai_provider="unknown"))

    def test_build_model_unknown_provider(self):
        with pytest.raises(ValueError):
            build_model("unknown", "model", "key")

    def test_summarizer_built_when_configured(self, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "sk-test")
        summarizer = get_summarizer(Settings(ai_provider="claude"))
        assert isinstance(summarizer, FeedbackSummarizer)


class TestFeedbackSummarizer:
    def test_agents_return_typed_output(self):
        class Result:
            def __init__(self, output):
                self.output = output

        class StubAgent:
            def __init__(self, output):
                self.output = output
                self.prompts = []

            async def run(self, prompt):
                self.prompts.append(prompt)
                return Result(self.output)

        class Recommendations:
            recommendations = ["Timebox each topic"]

        summarizer = FeedbackSummarizer.__new__(FeedbackSummarizer)
        summarizer.insights_agent = StubAgent("report")
        summarizer.recommendations_agent = StubAgent(Recommendations())
        feedback = [{"meetingId": "m1", "userId": "u2", "responses": {"q1": 4}}]

        report = asyncio.run(summarizer.generate_insights(feedback))
        recommendations = asyncio.run(summarizer.generate_recommendations("general", feedback))

        assert report == "report"
        assert recommendations == ["Timebox each topic"]
        assert '"q1": 4' in summarizer.insights_agent.prompts[0]
        assert "Meeting type: general" in summarizer.recommendations_agent.prompts[0]

    def test_format_feedback_keeps_user_and_responses(self):
        text = _format_feedback([{"meetingId": "m1", "userId": "u2", "responses": {"q2": True}, "_id": "x"}])
        assert '"userId": "u2"' in text
        assert '"q2": true' in text
        assert '"_id"' not in text
