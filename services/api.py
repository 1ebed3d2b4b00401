"""FastAPI backend exposing the Decision AI wizard over HTTP."""

import logging
import uuid
from contextlib import asynccontextmanager
from typing import Dict, List, Optional

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response, StreamingResponse
from pydantic import BaseModel

from config.settings import configure_logging, get_settings
from core.errors import PreconditionError, RequestInProgressError
from core.models import (
    AnalysisResult,
    AppView,
    BusinessProfile,
    ChatMessage,
    PreparationPlan,
)
from core.wizard import WizardController, step_completed, step_enabled
from llm.client import validate_llm_client
from services.analysis_service import AnalysisService
from utils.csv_loader import CSVLoadError, preview_rows, read_csv_text

logger = logging.getLogger("api")

analysis_service: Optional[AnalysisService] = None

# In-memory sessions; nothing outlives the process.
_sessions: Dict[str, WizardController] = {}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialise the analysis service on startup."""
    global analysis_service
    configure_logging()
    logger.info("Starting up – initialising AnalysisService")
    analysis_service = AnalysisService()
    if analysis_service.client is None:
        logger.warning("No AI provider configured; plan and analysis requests will fail")
    yield
    _sessions.clear()
    logger.info("Shutting down")


settings = get_settings()

app = FastAPI(
    title=f"{settings.APP_NAME} API",
    version=settings.APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PreconditionError)
async def precondition_handler(request: Request, exc: PreconditionError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(RequestInProgressError)
async def busy_handler(request: Request, exc: RequestInProgressError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(CSVLoadError)
async def csv_error_handler(request: Request, exc: CSVLoadError):
    return JSONResponse(
        status_code=400,
        content={"detail": str(exc), "cause": exc.cause, "suggestion": exc.suggestion},
    )


class HealthResponse(BaseModel):
    """Health-check payload."""
    status: str
    version: str


class StepFlags(BaseModel):
    completed: bool
    enabled: bool


class SessionSnapshot(BaseModel):
    """Client-facing view of a wizard session (the raw CSV stays server-side)."""
    session_id: str
    current_view: AppView
    profile: Optional[BusinessProfile] = None
    file_name: str = ""
    has_data: bool = False
    preparation_plan: Optional[PreparationPlan] = None
    analysis_result: Optional[AnalysisResult] = None
    chat_history: List[ChatMessage] = []
    is_loading: bool = False
    error: Optional[str] = None
    steps: Dict[str, StepFlags] = {}


class NavigateRequest(BaseModel):
    view: AppView


class ChatRequest(BaseModel):
    message: str


class PreviewResponse(BaseModel):
    headers: List[str]
    rows: List[List[str]]


def get_service() -> AnalysisService:
    if analysis_service is None:
        raise HTTPException(status_code=503, detail="Analysis service not initialised")
    return analysis_service


def get_controller(session_id: str) -> WizardController:
    controller = _sessions.get(session_id)
    if controller is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return controller


def _snapshot(session_id: str, controller: WizardController) -> SessionSnapshot:
    state = controller.state
    return SessionSnapshot(
        session_id=session_id,
        current_view=state.current_view,
        profile=state.profile,
        file_name=state.file_name,
        has_data=state.csv_data is not None,
        preparation_plan=state.preparation_plan,
        analysis_result=state.analysis_result,
        chat_history=list(state.chat_history),
        is_loading=state.is_loading,
        error=state.error,
        steps={
            view.value: StepFlags(completed=step_completed(state, view), enabled=step_enabled(state, view))
            for view in AppView.ordered()
        },
    )


router = APIRouter(prefix=settings.API_PREFIX)


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Return service health and version."""
    return HealthResponse(status="ok", version=get_settings().APP_VERSION)


@router.get("/llm/status")
async def llm_status(service: AnalysisService = Depends(get_service)):
    """Probe the configured AI provider."""
    result = await validate_llm_client(service.client)
    return result.to_dict()


@router.post("/sessions", response_model=SessionSnapshot, status_code=201)
async def create_session(service: AnalysisService = Depends(get_service)):
    """Start a new wizard session at the profile step."""
    session_id = uuid.uuid4().hex
    _sessions[session_id] = WizardController(service)
    logger.info("Session %s created", session_id)
    return _snapshot(session_id, _sessions[session_id])


@router.get("/sessions/{session_id}", response_model=SessionSnapshot)
async def get_session(session_id: str):
    return _snapshot(session_id, get_controller(session_id))


@router.delete("/sessions/{session_id}", status_code=204)
async def delete_session(session_id: str):
    get_controller(session_id)
    del _sessions[session_id]
    return Response(status_code=204)


@router.post("/sessions/{session_id}/profile", response_model=SessionSnapshot)
async def submit_profile(session_id: str, profile: BusinessProfile):
    """Store the business profile and move to the upload step."""
    controller = get_controller(session_id)
    controller.submit_profile(profile)
    return _snapshot(session_id, controller)


@router.post("/sessions/{session_id}/upload", response_model=SessionSnapshot)
async def upload_dataset(session_id: str, file: UploadFile = File(...)):
    """Upload a CSV and request the preparation plan.

    AI failures are reported through the snapshot's ``error`` field.
    """
    controller = get_controller(session_id)
    cfg = get_settings()
    contents = await file.read()
    text = read_csv_text(
        contents,
        file.filename or "upload.csv",
        allowed_extensions=cfg.ALLOWED_EXTENSIONS,
        max_bytes=cfg.MAX_UPLOAD_MB * 1024 * 1024,
    )
    await controller.upload(text, file.filename or "upload.csv")
    return _snapshot(session_id, controller)


@router.get("/sessions/{session_id}/preview", response_model=PreviewResponse)
async def preview(session_id: str):
    """Header plus the first few rows of the uploaded CSV."""
    controller = get_controller(session_id)
    headers, rows = preview_rows(controller.state.csv_data, get_settings().PREVIEW_ROWS)
    return PreviewResponse(headers=headers, rows=rows)


@router.post("/sessions/{session_id}/approve", response_model=SessionSnapshot)
async def approve_plan(session_id: str):
    """Approve the preparation plan and run the full analysis."""
    controller = get_controller(session_id)
    await controller.approve()
    return _snapshot(session_id, controller)


@router.post("/sessions/{session_id}/back", response_model=SessionSnapshot)
async def go_back(session_id: str):
    controller = get_controller(session_id)
    controller.go_back()
    return _snapshot(session_id, controller)


@router.post("/sessions/{session_id}/navigate", response_model=SessionSnapshot)
async def navigate(session_id: str, req: NavigateRequest):
    controller = get_controller(session_id)
    if not controller.navigate(req.view):
        raise HTTPException(status_code=409, detail=f"Step '{req.view.value}' is not available yet")
    return _snapshot(session_id, controller)


@router.post("/sessions/{session_id}/reset", response_model=SessionSnapshot)
async def reset(session_id: str):
    controller = get_controller(session_id)
    controller.reset()
    return _snapshot(session_id, controller)


@router.post("/sessions/{session_id}/chat")
async def chat(session_id: str, req: ChatRequest):
    """Stream the assistant's reply as plain text increments."""
    controller = get_controller(session_id)
    question = req.message.strip()
    if not question:
        raise HTTPException(status_code=400, detail="Message must not be empty")
    # claimed before the response starts so a busy session still maps to 409
    epoch = controller.begin_turn(question)

    async def increments():
        sent = ""
        async for text in controller.stream_turn(question, epoch):
            yield text[len(sent):]
            sent = text
        last = controller.state.chat_history[-1] if controller.state.chat_history else None
        # a failed turn commits an apology instead of the streamed text
        if last is not None and last.role == "model" and last.content != sent:
            yield ("\n\n" if sent else "") + last.content

    return StreamingResponse(increments(), media_type="text/plain")


app.include_router(router)


if __name__ == "__main__":
    uvicorn.run("services.api:app", host=settings.API_HOST, port=settings.API_PORT)
