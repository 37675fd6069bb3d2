"""StudyDesk - API

FastAPI application with:
- AI study plan generation with progress tracking
- Notes from PDF uploads (mock), local files and AI generation
- AI flashcard sets with known/unknown tracking
- Tutor chat with stored conversation history
- Dashboard statistics
- Plain-text export of any record
- Health check and Prometheus metrics
"""

import logging
import time
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, HTTPException, Depends, Path, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import __version__, config
from .database import init_database, check_database, get_db_dependency
from .errors import GenerationError, NotFoundError, ValidationError
from .services import study_plan as study_plan_service
from .services import notes as notes_service
from .services import flashcards as flashcards_service
from .services import chat as chat_service
from .services.chat import DEFAULT_CONVERSATION_ID
from .services.dashboard import get_dashboard_stats
from .services.export import export_record
from .services.monitoring import metrics, normalize_path

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize database on startup
init_database()

# Create FastAPI app
app = FastAPI(
    title="StudyDesk",
    description="AI study plans, notes, flashcards and tutor chat",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    """Collect request metrics for every HTTP request."""
    metrics.increment_active()
    start_time = time.time()
    try:
        response = await call_next(request)
        duration = time.time() - start_time
        path = normalize_path(request.url.path)
        metrics.record_request(request.method, path, response.status_code, duration)
        return response
    finally:
        metrics.decrement_active()


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed or missing request fields are a 400, not FastAPI's 422."""
    logger.info(f"Rejected request to {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=400, content={"detail": "Invalid or missing fields"})


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(f"Database error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Database error"})


# ============== Pydantic Models ==============

# Record ids must fit a signed 64-bit database INTEGER
MAX_RECORD_ID = 2**63 - 1


class CamelModel(BaseModel):
    """Request body with camelCase JSON keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StudyPlanRequest(CamelModel):
    course_name: Optional[str] = None
    deadline: Optional[str] = None
    hours_per_day: Optional[int] = None


class StudyProgressUpdate(CamelModel):
    id: int = Field(ge=1, le=MAX_RECORD_ID)
    progress: int = Field(ge=0, le=100)
    completed: bool


class FileUploadRequest(CamelModel):
    file_name: Optional[str] = None
    file_content: Optional[str] = None


class AINotesRequest(CamelModel):
    topic: Optional[str] = None
    content: Optional[str] = None


class FlashcardGenerateRequest(CamelModel):
    topic: Optional[str] = None
    count: Optional[int] = None


class FlashcardStatusUpdate(CamelModel):
    set_id: int = Field(ge=1, le=MAX_RECORD_ID)
    card_id: int = Field(ge=1, le=MAX_RECORD_ID)
    known: bool


class ChatRequest(CamelModel):
    message: Optional[str] = None
    conversation_id: str = DEFAULT_CONVERSATION_ID


class ExportRequest(CamelModel):
    type: str
    id: Optional[int] = Field(default=None, ge=1, le=MAX_RECORD_ID)
    format: Optional[str] = None
    conversation_id: str = DEFAULT_CONVERSATION_ID


# ============== Study Plan Endpoints ==============


@app.post("/generate-study-plan")
async def generate_study_plan(
    request: StudyPlanRequest,
    db: Session = Depends(get_db_dependency),
):
    """Generate a weekly study plan for a course and deadline."""
    try:
        plan = await study_plan_service.generate_study_plan(
            db,
            course_name=request.course_name,
            deadline=request.deadline,
            hours_per_day=request.hours_per_day,
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except GenerationError as e:
        logger.error(f"Study plan generation failed: {e}")
        raise HTTPException(
            status_code=500,
            detail="Failed to generate study plan from AI. Check API key/model.",
        )

    return {"success": True, "studyPlan": study_plan_service.serialize_study_plan(plan)}


@app.get("/studyplans")
def list_study_plans(db: Session = Depends(get_db_dependency)):
    """List all study plans, newest first."""
    plans = study_plan_service.list_study_plans(db)
    return {
        "success": True,
        "studyPlans": [study_plan_service.serialize_study_plan(p) for p in plans],
    }


@app.post("/update-study-progress")
def update_study_progress(
    request: StudyProgressUpdate,
    db: Session = Depends(get_db_dependency),
):
    """Set progress and completed on a study plan."""
    try:
        plan = study_plan_service.update_progress(
            db, request.id, request.progress, request.completed
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return {"success": True, "plan": study_plan_service.serialize_study_plan(plan)}


@app.delete("/studyplan/{plan_id}")
def delete_study_plan(
    plan_id: int = Path(ge=1, le=MAX_RECORD_ID),
    db: Session = Depends(get_db_dependency),
):
    study_plan_service.delete_study_plan(db, plan_id)
    return {"success": True}


# ============== Notes Endpoints ==============


@app.post("/upload-pdf")
def upload_pdf(request: FileUploadRequest, db: Session = Depends(get_db_dependency)):
    """Create placeholder notes for a PDF (no text extraction)."""
    try:
        note = notes_service.create_pdf_note(db, request.file_name)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {"success": True, "note": notes_service.serialize_note(note)}


@app.post("/upload-local-file")
def upload_local_file(request: FileUploadRequest, db: Session = Depends(get_db_dependency)):
    """Store a local text file as a note."""
    try:
        note = notes_service.create_local_file_note(db, request.file_name, request.file_content)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return {"success": True, "note": notes_service.serialize_note(note)}


@app.post("/generate-ai-notes")
async def generate_ai_notes(request: AINotesRequest, db: Session = Depends(get_db_dependency)):
    """Generate markdown study notes from a topic and/or source text."""
    try:
        note = await notes_service.create_ai_note(db, request.topic, request.content)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except GenerationError as e:
        logger.error(f"AI notes generation failed: {e}")
        raise HTTPException(
            status_code=500,
            detail="Failed to generate AI notes from AI. Check API key/model.",
        )

    return {"success": True, "note": notes_service.serialize_note(note)}


@app.get("/notes-history")
def notes_history(db: Session = Depends(get_db_dependency)):
    notes = notes_service.list_notes(db)
    return {"success": True, "notes": [notes_service.serialize_note(n) for n in notes]}


@app.delete("/note/{note_id}")
def delete_note(
    note_id: int = Path(ge=1, le=MAX_RECORD_ID),
    db: Session = Depends(get_db_dependency),
):
    notes_service.delete_note(db, note_id)
    return {"success": True}


# ============== Flashcard Endpoints ==============


@app.post("/generate-flashcards")
async def generate_flashcards(
    request: FlashcardGenerateRequest,
    db: Session = Depends(get_db_dependency),
):
    """Generate a flashcard set for a topic."""
    try:
        flashcard_set = await flashcards_service.generate_flashcard_set(
            db, topic=request.topic, count=request.count
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except GenerationError as e:
        logger.error(f"Flashcard generation failed: {e}")
        raise HTTPException(
            status_code=500,
            detail="Failed to generate flashcards from AI. Check API key/model.",
        )

    return {
        "success": True,
        "flashcardSet": flashcards_service.serialize_flashcard_set(flashcard_set),
    }


@app.get("/flashcards-history")
def flashcards_history(db: Session = Depends(get_db_dependency)):
    """List all flashcard sets with their cards."""
    sets = flashcards_service.list_flashcard_sets(db)
    return {
        "success": True,
        "flashcards": [flashcards_service.serialize_flashcard_set(s) for s in sets],
    }


@app.post("/save-flashcard-status")
def save_flashcard_status(
    request: FlashcardStatusUpdate,
    db: Session = Depends(get_db_dependency),
):
    """Mark a card known/unknown and return the refreshed set."""
    try:
        flashcard_set = flashcards_service.update_card_status(
            db, request.set_id, request.card_id, request.known
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return {
        "success": True,
        "flashcardSet": flashcards_service.serialize_flashcard_set(flashcard_set),
    }


@app.delete("/flashcard/{set_id}")
def delete_flashcard_set(
    set_id: int = Path(ge=1, le=MAX_RECORD_ID),
    db: Session = Depends(get_db_dependency),
):
    flashcards_service.delete_flashcard_set(db, set_id)
    return {"success": True}


# ============== Chat Endpoints ==============


@app.post("/chat")
async def chat(request: ChatRequest, db: Session = Depends(get_db_dependency)):
    """Send a message to the tutor and return its reply."""
    try:
        reply = await chat_service.send_message(db, request.message, request.conversation_id)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except GenerationError as e:
        logger.error(f"Chat failed: {e}")
        raise HTTPException(
            status_code=500,
            detail="Failed to process chat message from AI. Check API key/model.",
        )

    return {"success": True, "response": chat_service.serialize_message(reply)}


@app.get("/chat-history")
def chat_history(
    conversation_id: str = Query(default=DEFAULT_CONVERSATION_ID, alias="conversationId"),
    db: Session = Depends(get_db_dependency),
):
    messages = chat_service.get_history(db, conversation_id)
    return {
        "success": True,
        "chatHistory": [chat_service.serialize_message(m) for m in messages],
    }


@app.delete("/chat-history")
def clear_chat_history(
    conversation_id: str = Query(default=DEFAULT_CONVERSATION_ID, alias="conversationId"),
    db: Session = Depends(get_db_dependency),
):
    chat_service.clear_history(db, conversation_id)
    return {"success": True}


# ============== Dashboard & Export ==============


@app.get("/dashboard-stats")
def dashboard_stats(db: Session = Depends(get_db_dependency)):
    return {"success": True, "stats": get_dashboard_stats(db)}


@app.post("/download-export")
def download_export(request: ExportRequest, db: Session = Depends(get_db_dependency)):
    """Render a record as plain text for download."""
    try:
        content, filename = export_record(
            db,
            request.type,
            request.id,
            request.format,
            conversation_id=request.conversation_id,
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return {"success": True, "content": content, "filename": filename}


# ============== Health Check & Monitoring ==============


@app.get("/health")
def health_check():
    """Health check with database status."""
    checks = {"api": "healthy"}

    try:
        check_database()
        checks["database"] = "healthy"
    except SQLAlchemyError as e:
        logger.error(f"Health check database probe failed: {e}")
        checks["database"] = "unhealthy"

    overall = "healthy" if all(v == "healthy" for v in checks.values()) else "degraded"

    return {
        "status": overall,
        "version": __version__,
        "timestamp": datetime.utcnow().isoformat(),
        "checks": checks,
    }


@app.get("/metrics")
def get_metrics():
    """Prometheus-compatible metrics endpoint."""
    return PlainTextResponse(
        content=metrics.to_prometheus(),
        media_type="text/plain; version=0.0.4",
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
