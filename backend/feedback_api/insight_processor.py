import logging
from typing import Any, Dict, List, Optional, Tuple

from feedback_api.db import FEEDBACK_COLLECTION, QUESTIONS_COLLECTION, DocumentStore
from feedback_api.schemas import InsightReport, InsightsResponse, QuestionAnswers
from feedback_api.services.summarization_service import FeedbackSummarizer

logger = logging.getLogger(__name__)

NO_FEEDBACK_MESSAGE = "No feedback found for this meeting."

SOURCE_GENERATED = "generated"
SOURCE_NO_FEEDBACK = "no_feedback"
SOURCE_MISSING_CREDENTIALS = "missing_credentials"
SOURCE_DEGRADED = "degraded"


def no_feedback_report() -> InsightReport:
    return InsightReport(
        strengths=[NO_FEEDBACK_MESSAGE],
        improvements=[NO_FEEDBACK_MESSAGE],
        recommendations=[NO_FEEDBACK_MESSAGE],
        trends=[NO_FEEDBACK_MESSAGE],
        effectivenessScore=0,
        summary=NO_FEEDBACK_MESSAGE,
    )


def missing_credentials_report() -> Tuple[InsightReport, List[str]]:
    """Content shown when no AI API key is configured"""
    report = InsightReport(
        strengths=["Consistent participant engagement", "Effective communication"],
        improvements=["Improve meeting punctuality", "Enhance follow-up actions", "Better agenda setting"],
        recommendations=[
            "Start meetings on time",
            "Assign clear action items with deadlines",
            "Prepare and share agenda in advance",
        ],
        trends=["Positive trend in participant satisfaction", "Increased collaboration over time"],
        effectivenessScore=7.0,
        summary="Default insights due to missing AI API key.",
    )
    recommendations = [
        "Set clear objectives for each meeting",
        "Limit meeting duration to 30 minutes",
        "Encourage active participation",
        "Use visual aids to enhance understanding",
        "Summarize key points and next steps",
    ]
    return report, recommendations


def degraded_report() -> Tuple[InsightReport, List[str]]:
    """Content shown when the AI call fails at runtime"""
    report = InsightReport(
        strengths=["High participant engagement levels", "Clear communication from facilitators"],
        improvements=["Meeting preparation could be better"],
        recommendations=["Implement pre-meeting preparation checklist"],
        trends=["Satisfaction scores trending upward (+15% this month)"],
        effectivenessScore=7.8,
        summary=(
            "Overall meeting effectiveness is strong with room for improvement "
            "in preparation and follow-up processes."
        ),
    )
    return report, ["Start meetings with clear objectives and expected outcomes"]


def _answer_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def pair_questions_with_answers(questions: List[Any], feedback: List[Dict[str, Any]]) -> List[QuestionAnswers]:
    """One entry per question with every submitter's answer, None where unanswered"""
    paired = []
    for idx, question in enumerate(questions):
        if isinstance(question, dict):
            question_id = question.get("id")
            label = question.get("text") or question.get("question") or f"Q{idx + 1}"
        else:
            question_id = None
            label = str(question)

        answers: List[Optional[str]] = []
        for fb in feedback:
            responses = fb.get("responses") or {}
            key = str(question_id) if question_id is not None else None
            if key is not None and responses.get(key) is not None:
                answers.append(_answer_text(responses[key]))
            else:
                answers.append(None)

        paired.append(QuestionAnswers(
            questionId=str(question_id) if question_id is not None else None,
            question=str(label),
            answers=answers,
        ))
    return paired


class InsightProcessor:
    """Builds the insight report for one meeting from its stored feedback."""

    def __init__(self, store: DocumentStore, summarizer: Optional[FeedbackSummarizer] = None):
        self.store = store
        self.summarizer = summarizer

    async def load_feedback(self, meeting_id: str) -> List[Dict[str, Any]]:
        all_feedback = await self.store.find(FEEDBACK_COLLECTION)
        return [fb for fb in all_feedback if str(fb.get("meetingId")) == meeting_id]

    async def load_questions(self, meeting_id: str, user_id: str) -> List[Any]:
        doc = await self.store.find_one(QUESTIONS_COLLECTION, {"meetId": meeting_id, "userId": user_id})
        return doc.get("questions", []) if doc else []

    async def summarize(self, feedback: List[Dict[str, Any]]) -> Tuple[InsightReport, List[str], str]:
        """Report, meeting recommendations and the source that produced them.

        Never raises: a missing summarizer or a failing AI call resolve to
        fixed fallback content.
        """
        if self.summarizer is None:
            logger.info("No AI summarizer configured, returning default insights")
            report, recommendations = missing_credentials_report()
            return report, recommendations, SOURCE_MISSING_CREDENTIALS

        if not feedback:
            return no_feedback_report(), [], SOURCE_NO_FEEDBACK

        try:
            report = await self.summarizer.generate_insights(feedback)
            recommendations = await self.summarizer.generate_recommendations("general", feedback)
            return report, list(recommendations), SOURCE_GENERATED
        except Exception as e:
            logger.error(f"Error generating AI insights: {str(e)}", exc_info=True)
            report, recommendations = degraded_report()
            return report, recommendations, SOURCE_DEGRADED

    async def process_meeting(self, meeting_id: str, user_id: str) -> InsightsResponse:
        logger.info(f"Building insights for meeting {meeting_id} requested by {user_id}")
        questions = await self.load_questions(meeting_id, user_id)
        feedback = await self.load_feedback(meeting_id)

        report, recommendations, source = await self.summarize(feedback)
        logger.info(f"Insights for meeting {meeting_id} resolved from {source} ({len(feedback)} feedback records)")

        return InsightsResponse(
            insights=report,
            recommendations=recommendations,
            source=source,
            questions=questions,
            feedback=feedback,
            questionAnswers=pair_questions_with_answers(questions, feedback),
        )
