from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional


class MeetingCreate(BaseModel):
    """Meeting as sent by the UI; unknown attributes are kept.

    Numeric identifiers are accepted and stored as strings so they match
    the string ids used in lookups.
    """
    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True)

    id: Optional[str] = None
    createdBy: Optional[str] = None
    title: Optional[str] = None
    date: Optional[str] = None
    time: Optional[str] = None
    description: Optional[str] = None
    meetingType: Optional[str] = None


class FeedbackCreate(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    meetingId: Optional[str] = None
    userId: Optional[str] = None
    responses: Optional[Dict[str, Any]] = None


class ProfileUpsert(BaseModel):
    """Profile attribute bag keyed by email"""
    model_config = ConfigDict(extra="allow")

    email: Optional[str] = None


class QuestionSetUpsert(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    meetId: Optional[str] = None
    userId: Optional[str] = None
    # checked for list-ness by the handler
    questions: Optional[Any] = None


class InsightRequest(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    meetingId: Optional[str] = None
    userId: Optional[str] = None


class Member(BaseModel):
    name: str
    role: str
    email: str


class Team(BaseModel):
    name: str
    members: List[Member]


class InsightReport(BaseModel):
    """Structured insight report for a meeting's feedback"""
    strengths: List[str] = Field(description="What went well in the meeting")
    improvements: List[str] = Field(description="Areas that need improvement")
    recommendations: List[str] = Field(description="Concrete actions for the next meeting")
    trends: List[str] = Field(description="Patterns visible across the submitted feedback")
    effectivenessScore: float = Field(ge=0, le=10, description="Overall effectiveness from 0 to 10")
    summary: str = Field(description="Two or three sentence overview")


class MeetingRecommendations(BaseModel):
    recommendations: List[str]


class QuestionAnswers(BaseModel):
    questionId: Optional[str] = None
    question: str
    answers: List[Optional[str]]


class InsightsResponse(BaseModel):
    insights: InsightReport
    recommendations: List[str]
    source: str
    questions: List[Any] = []
    feedback: List[Dict[str, Any]] = []
    questionAnswers: List[QuestionAnswers] = []
