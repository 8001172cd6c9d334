from contextlib import asynccontextmanager
from fastapi import APIRouter, Body, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import uvicorn
from typing import Any, Dict, Optional
from datetime import datetime, timezone
import logging

from feedback_api.config import Settings
from feedback_api.db import (
    AI_INSIGHTS_COLLECTION,
    FEEDBACK_COLLECTION,
    MEETINGS_COLLECTION,
    QUESTIONS_COLLECTION,
    USERS_COLLECTION,
    DocumentStore,
)
from feedback_api.insight_processor import InsightProcessor
from feedback_api.schemas import (
    FeedbackCreate,
    InsightRequest,
    MeetingCreate,
    ProfileUpsert,
    QuestionSetUpsert,
    Team,
)
from feedback_api.services.summarization_service import get_summarizer
from feedback_api.validation import TEAM_COLLECTION, validate_team

# Configure logger with line numbers and function names
logger = logging.getLogger(__name__)
package_logger = logging.getLogger("feedback_api")


def configure_logging(level: str = "DEBUG"):
    package_logger.setLevel(level)

    # Create formatter with line numbers and function names
    formatter = logging.Formatter(
        '%(asctime)s - %(levelname)s - [%(filename)s:%(lineno)d - %(funcName)s()] - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)

    # Add handler to logger if not already added
    if not package_logger.handlers:
        package_logger.addHandler(console_handler)


def _error(status_code: int, message: str, headers: Optional[Dict[str, str]] = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message}, headers=headers)


def _server_error() -> JSONResponse:
    return _error(500, "Server error")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def get_insight_processor(request: Request, store: DocumentStore = Depends(get_store)) -> InsightProcessor:
    return InsightProcessor(store, request.app.state.summarizer)


router = APIRouter(prefix="/api")


# --- Meetings ---

@router.get("/meetings/{meeting_id}")
async def get_meeting(meeting_id: str, store: DocumentStore = Depends(get_store)):
    """Get a single meeting by its meetingId or id"""
    try:
        meeting = await store.find_one_any(
            MEETINGS_COLLECTION, [{"meetingId": meeting_id}, {"id": meeting_id}]
        )
        if not meeting:
            return _error(404, "Meeting not found")
        return meeting
    except Exception as e:
        logger.error(f"Error getting meeting {meeting_id}: {str(e)}", exc_info=True)
        return _server_error()


@router.get("/meetings")
async def list_meetings(store: DocumentStore = Depends(get_store)):
    try:
        return await store.find(MEETINGS_COLLECTION)
    except Exception as e:
        logger.error(f"Error listing meetings: {str(e)}", exc_info=True)
        return _server_error()


@router.post("/meetings")
async def create_meeting(meeting: Optional[MeetingCreate] = None, store: DocumentStore = Depends(get_store)):
    """Create a meeting, storing the creator as userId and the id as meetingId"""
    if meeting is None:
        meeting = MeetingCreate()
    if not meeting.id or not meeting.createdBy:
        return _error(400, "Meeting ID and createdBy (userId) are required")
    try:
        doc = meeting.model_dump(exclude_unset=True)
        doc.pop("_id", None)
        doc["userId"] = meeting.createdBy
        doc["meetingId"] = meeting.id
        result = await store.insert_one(MEETINGS_COLLECTION, doc)
        logger.info(f"Meeting {meeting.id} created by {meeting.createdBy}")
        return {"message": "Meeting created", "result": result.to_dict()}
    except Exception as e:
        logger.error(f"Error creating meeting: {str(e)}", exc_info=True)
        return _server_error()


# --- Profiles ---

@router.get("/profile/{email}")
async def get_profile(email: str, store: DocumentStore = Depends(get_store)):
    try:
        profile = await store.find_one(USERS_COLLECTION, {"email": email})
        if not profile:
            return _error(404, "User not found")
        return profile
    except Exception as e:
        logger.error(f"Error fetching profile for {email}: {str(e)}", exc_info=True)
        return _server_error()


@router.post("/profile")
async def save_profile(payload: Optional[ProfileUpsert] = None, store: DocumentStore = Depends(get_store)):
    """Create or update a profile keyed by email, merging the given fields"""
    if payload is None:
        payload = ProfileUpsert()
    if not payload.email:
        return _error(400, "Email is required")
    try:
        profile = payload.model_dump(exclude_unset=True)
        # _id is immutable once stored
        profile.pop("_id", None)
        logger.debug(f"Received profile for {payload.email}: {sorted(profile)}")

        result = await store.update_one(USERS_COLLECTION, {"email": payload.email}, profile, upsert=True)
        updated_profile = await store.find_one(USERS_COLLECTION, {"email": payload.email})
        return {"message": "Profile saved", "result": result.to_dict(), "profile": updated_profile}
    except Exception as e:
        logger.error(f"Error saving profile: {str(e)}", exc_info=True)
        return _server_error()


# --- Feedback ---

@router.post("/feedback")
async def create_feedback(feedback: Optional[FeedbackCreate] = None, store: DocumentStore = Depends(get_store)):
    if feedback is None:
        feedback = FeedbackCreate()
    if not feedback.meetingId or not feedback.userId or feedback.responses is None:
        return _error(400, "meetingId, userId, and responses are required")
    try:
        result = await store.insert_one(FEEDBACK_COLLECTION, {
            "meetingId": feedback.meetingId,
            "userId": feedback.userId,
            "responses": feedback.responses,
            "createdAt": _now(),
        })
        logger.info(f"Feedback saved for meeting {feedback.meetingId} from {feedback.userId}")
        return {"message": "Feedback saved", "result": result.to_dict()}
    except Exception as e:
        logger.error(f"Error saving feedback: {str(e)}", exc_info=True)
        return _server_error()


@router.get("/feedback")
async def list_feedback(store: DocumentStore = Depends(get_store)):
    try:
        return await store.find(FEEDBACK_COLLECTION)
    except Exception as e:
        logger.error(f"Error listing feedback: {str(e)}", exc_info=True)
        return _server_error()


# --- AI insights ---

@router.post("/ai-insights/generate")
async def generate_insights(
    payload: Optional[InsightRequest] = None,
    processor: InsightProcessor = Depends(get_insight_processor),
):
    """Build the insight report for a meeting and keep an audit copy of it"""
    if payload is None:
        payload = InsightRequest()
    if not payload.meetingId or not payload.userId:
        return _error(400, "meetingId and userId are required")
    try:
        response = await processor.process_meeting(payload.meetingId, payload.userId)
        await processor.store.insert_one(AI_INSIGHTS_COLLECTION, {
            "meetingId": payload.meetingId,
            "userId": payload.userId,
            "source": response.source,
            "insights": response.insights.model_dump(),
            "meetingRecommendations": response.recommendations,
            "createdAt": _now(),
        })
        return response.model_dump()
    except Exception as e:
        logger.error(f"Error generating insights for {payload.meetingId}: {str(e)}", exc_info=True)
        return _server_error()


@router.post("/ai-insights")
async def create_ai_insight(insight: Dict[str, Any] = Body(...), store: DocumentStore = Depends(get_store)):
    try:
        result = await store.insert_one(AI_INSIGHTS_COLLECTION, insight)
        return {"message": "AI Insight saved", "result": result.to_dict()}
    except Exception as e:
        logger.error(f"Error saving AI insight: {str(e)}", exc_info=True)
        return _server_error()


@router.get("/ai-insights")
async def list_ai_insights(store: DocumentStore = Depends(get_store)):
    try:
        return await store.find(AI_INSIGHTS_COLLECTION)
    except Exception as e:
        logger.error(f"Error listing AI insights: {str(e)}", exc_info=True)
        return _server_error()


# --- Teams ---

@router.post("/teams")
async def create_team(payload: Any = Body(None), store: DocumentStore = Depends(get_store)):
    violation = validate_team(payload)
    if violation:
        return _error(400, violation.message)
    try:
        team = Team.model_validate(payload)
        result = await store.insert_one(TEAM_COLLECTION, team.model_dump())
        logger.info(f"Team '{team.name}' created with {len(team.members)} members")
        return {"message": "Team created", "result": result.to_dict()}
    except Exception as e:
        logger.error(f"Error creating team: {str(e)}", exc_info=True)
        return _server_error()


@router.get("/teams")
async def list_teams(store: DocumentStore = Depends(get_store)):
    try:
        return await store.find(TEAM_COLLECTION)
    except Exception as e:
        logger.error(f"Error listing teams: {str(e)}", exc_info=True)
        return _server_error()


@router.get("/teams/{team_id}")
async def get_team(team_id: str, store: DocumentStore = Depends(get_store)):
    try:
        team = await store.find_one(TEAM_COLLECTION, {"_id": team_id})
        if not team:
            return _error(404, "Team not found")
        return team
    except Exception as e:
        logger.error(f"Error getting team {team_id}: {str(e)}", exc_info=True)
        return _server_error()


@router.put("/teams/{team_id}")
async def update_team(team_id: str, payload: Any = Body(None), store: DocumentStore = Depends(get_store)):
    violation = validate_team(payload)
    if violation:
        return _error(400, violation.message)
    try:
        team = Team.model_validate(payload)
        result = await store.update_one(TEAM_COLLECTION, {"_id": team_id}, team.model_dump())
        if result.matched_count == 0:
            return _error(404, "Team not found")
        return {"message": "Team updated", "result": result.to_dict()}
    except Exception as e:
        logger.error(f"Error updating team {team_id}: {str(e)}", exc_info=True)
        return _server_error()


@router.delete("/teams/{team_id}")
async def delete_team(team_id: str, store: DocumentStore = Depends(get_store)):
    try:
        result = await store.delete_one(TEAM_COLLECTION, {"_id": team_id})
        if result.deleted_count == 0:
            return _error(404, "Team not found")
        return {"message": "Team deleted", "result": result.to_dict()}
    except Exception as e:
        logger.error(f"Error deleting team {team_id}: {str(e)}", exc_info=True)
        return _server_error()


# --- Question sets ---

@router.post("/questions")
async def save_questions(payload: Optional[QuestionSetUpsert] = None, store: DocumentStore = Depends(get_store)):
    """Replace the whole question list for a (meeting, user) pair"""
    if payload is None:
        payload = QuestionSetUpsert()
    if not payload.meetId or not payload.userId or not isinstance(payload.questions, list):
        return _error(400, "meetId, userId, and questions[] required")
    try:
        result = await store.update_one(
            QUESTIONS_COLLECTION,
            {"meetId": payload.meetId, "userId": payload.userId},
            {"questions": payload.questions},
            upsert=True
        )
        return {"message": "Questions saved", "result": result.to_dict()}
    except Exception as e:
        logger.error(f"Error saving questions: {str(e)}", exc_info=True)
        return _server_error()


@router.get("/questions/{meet_id}/{user_id}")
async def get_questions(meet_id: str, user_id: str, store: DocumentStore = Depends(get_store)):
    try:
        doc = await store.find_one(QUESTIONS_COLLECTION, {"meetId": meet_id, "userId": user_id})
        return doc.get("questions", []) if doc else []
    except Exception as e:
        logger.error(f"Error getting questions for {meet_id}/{user_id}: {str(e)}", exc_info=True)
        return _server_error()


# --- Dashboard ---

@router.get("/dashboard/{user_id}")
async def get_dashboard(user_id: str, store: DocumentStore = Depends(get_store)):
    """Meetings owned by the user plus all feedback"""
    try:
        meetings = await store.find(MEETINGS_COLLECTION, {"userId": user_id})
        feedback = await store.find(FEEDBACK_COLLECTION)
        return {"meetings": meetings, "feedback": feedback}
    except Exception as e:
        logger.error(f"Error building dashboard for {user_id}: {str(e)}", exc_info=True)
        return _server_error()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or Settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        async with DocumentStore(settings.database_path) as store:
            app.state.store = store
            app.state.summarizer = get_summarizer(settings)
            logger.info("Meeting Feedback API started")
            yield
            logger.info("API shutting down, cleaning up resources")

    app = FastAPI(
        title="Meeting Feedback API",
        description="API for meetings, teams, feedback forms and AI feedback insights",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        max_age=3600,
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        detail = errors[0].get("msg", "invalid value") if errors else "invalid value"
        logger.warning(f"Rejected request to {request.url.path}: {detail}")
        return _error(400, f"Invalid request body: {detail}")

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        # unknown routes and methods answer in the same {message} shape
        return _error(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.get("/health")
    async def health():
        return {"status": "healthy"}

    app.include_router(router)
    return app


app = create_app()


def run():
    settings = Settings()
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
