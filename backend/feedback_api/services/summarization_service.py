import json
import logging
from typing import Any, Dict, List, Optional

from pydantic_ai import Agent

from feedback_api.config import PROVIDER_KEYS, Settings
from feedback_api.schemas import InsightReport, MeetingRecommendations

logger = logging.getLogger(__name__)

INSIGHTS_PROMPT = """You analyse feedback that participants submitted after a meeting.
Each feedback record maps question ids to answers: numbers are 1-5 ratings,
booleans are yes/no checks and strings are free-text comments.
Report strengths, areas for improvement, recommendations and trends, an
overall effectiveness score from 0 to 10, and a short summary."""

RECOMMENDATIONS_PROMPT = """You are a meeting facilitation coach. Given feedback
records from a meeting, suggest short, practical recommendations that would
make future meetings of this type more effective."""


def build_model(provider: str, model_name: str, api_key: str):
    """Create the pydantic-ai model for a provider name"""
    if provider == "gemini":
        from pydantic_ai.models.google import GoogleModel
        from pydantic_ai.providers.google import GoogleProvider
        return GoogleModel(model_name, provider=GoogleProvider(api_key=api_key))
    elif provider == "claude":
        from pydantic_ai.models.anthropic import AnthropicModel
        from pydantic_ai.providers.anthropic import AnthropicProvider
        return AnthropicModel(model_name, provider=AnthropicProvider(api_key=api_key))
    elif provider == "groq":
        from pydantic_ai.models.groq import GroqModel
        from pydantic_ai.providers.groq import GroqProvider
        return GroqModel(model_name, provider=GroqProvider(api_key=api_key))
    raise ValueError(f"Unsupported model provider: {provider}")


def _format_feedback(feedback: List[Dict[str, Any]]) -> str:
    records = [
        {"userId": fb.get("userId"), "responses": fb.get("responses", {})}
        for fb in feedback
    ]
    return json.dumps(records, indent=2, default=str)


class FeedbackSummarizer:
    """Turns meeting feedback into structured insights using an AI model."""

    def __init__(self, model, retries: int = 3):
        self.insights_agent = Agent(
            model,
            output_type=InsightReport,
            system_prompt=INSIGHTS_PROMPT,
            retries=retries,
        )
        self.recommendations_agent = Agent(
            model,
            output_type=MeetingRecommendations,
            system_prompt=RECOMMENDATIONS_PROMPT,
            retries=retries,
        )

    async def generate_insights(self, feedback: List[Dict[str, Any]]) -> InsightReport:
        logger.info(f"Generating insights from {len(feedback)} feedback records")
        result = await self.insights_agent.run(
            f"""Meeting feedback records:
            ---
            {_format_feedback(feedback)}
            ---
            """
        )
        return result.output

    async def generate_recommendations(self, meeting_type: str, feedback: List[Dict[str, Any]]) -> List[str]:
        logger.info(f"Generating {meeting_type} meeting recommendations")
        result = await self.recommendations_agent.run(
            f"""Meeting type: {meeting_type}

            Feedback records:
            ---
            {_format_feedback(feedback)}
            ---
            """
        )
        return result.output.recommendations


def get_summarizer(settings: Optional[Settings] = None) -> Optional[FeedbackSummarizer]:
    """Summarizer for the configured provider, or None when no API key is set"""
    settings = settings or Settings()
    if settings.ai_provider not in PROVIDER_KEYS:
        raise ValueError(f"Unsupported model provider: {settings.ai_provider}")

    api_key = settings.api_key
    if not api_key:
        logger.warning(f"{PROVIDER_KEYS[settings.ai_provider]} not set, AI insights will use default content")
        return None

    logger.info(f"Using {settings.ai_provider}/{settings.model_name} for AI insights")
    return FeedbackSummarizer(build_model(settings.ai_provider, settings.model_name, api_key))
