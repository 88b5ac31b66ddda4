"""
API routes for CareBoard.

Defines the REST endpoints behind each page of the web client.
"""

from typing import Any, List, Optional

from fastapi import APIRouter, Body, Depends, File, HTTPException, Request, UploadFile

from app.config import settings
from app.core.analysis_client import AnalysisClient, get_analysis_client
from app.core.errors import BoardParseError, InvalidUploadError, RecordNotFoundError
from app.core.session import SessionRedirectController, SessionState
from app.api.middleware import limiter
from app.models.schemas import (
    CreateRecordRequest,
    ErrorDetail,
    HealthResponse,
    NavigationResponse,
    OnboardingRequest,
    Record,
    RedirectResponse,
    RenderedBoard,
    SessionStateRequest,
    UploadResponse,
    UserProfile,
)
from app.services.board_view import render_board, render_stored_board
from app.services.record_detail import RecordDetailView
from app.services.record_store import RecordStore, get_record_store
from app.utils.logger import get_logger

logger = get_logger("routes")

router = APIRouter()


def require_user_email(request: Request) -> str:
    """Authenticated email forwarded by the identity gateway."""
    email = getattr(request.state, "user_email", None)
    if not email:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return email


def require_profile(store: RecordStore, email: str) -> UserProfile:
    profile = store.check_if_user_exists(email)
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found. Complete onboarding first.")
    return profile


def get_owned_record(store: RecordStore, record_id: int, email: str) -> Record:
    try:
        record = store.get_record(record_id)
    except RecordNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    if record.created_by != email:
        raise HTTPException(status_code=404, detail=f"Record not found: {record_id}")
    return record


# =============================================================================
# Health Check
# =============================================================================

@router.get(
    "/health",
    response_model=HealthResponse,
    tags=["System"],
    summary="Health check endpoint"
)
async def health_check(client: AnalysisClient = Depends(get_analysis_client)):
    """Check if the service is healthy and running."""
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        analysis_provider=client.provider
    )


# =============================================================================
# Session
# =============================================================================

@router.post(
    "/session/redirect",
    response_model=RedirectResponse,
    tags=["Session"],
    summary="Decide where an identity session should land"
)
async def session_redirect(
    body: SessionStateRequest,
    store: RecordStore = Depends(get_record_store)
):
    """
    Evaluate the identity provider state posted by the client.

    Returns exactly one action: `login`, `navigate` (with a path) or `none`.
    """
    controller = SessionRedirectController(store.check_if_user_exists)
    decision = controller.evaluate(SessionState.from_request(body))
    return RedirectResponse(action=decision.action, path=decision.path, toast=decision.toast)


# =============================================================================
# Onboarding & Profile
# =============================================================================

@router.post(
    "/onboarding",
    response_model=UserProfile,
    status_code=201,
    tags=["Profile"],
    summary="Create the profile for the signed-in user",
    responses={409: {"model": ErrorDetail, "description": "Profile exists"}}
)
async def onboarding(
    body: OnboardingRequest,
    email: str = Depends(require_user_email),
    store: RecordStore = Depends(get_record_store)
):
    if store.check_if_user_exists(email) is not None:
        raise HTTPException(status_code=409, detail="Profile already exists")

    profile = store.create_user(
        username=body.username,
        age=body.age,
        location=body.location,
        created_by=email
    )
    return profile


@router.get("/profile", response_model=UserProfile, tags=["Profile"])
async def get_profile(
    email: str = Depends(require_user_email),
    store: RecordStore = Depends(get_record_store)
):
    return require_profile(store, email)


# =============================================================================
# Medical Records
# =============================================================================

@router.get("/medical-records", response_model=List[Record], tags=["Records"])
async def list_records(
    email: str = Depends(require_user_email),
    store: RecordStore = Depends(get_record_store)
):
    """List the record folders of the signed-in user."""
    return store.fetch_user_records(email)


@router.post(
    "/medical-records",
    response_model=Record,
    status_code=201,
    tags=["Records"],
    summary="Create a record folder"
)
async def create_record(
    body: CreateRecordRequest,
    email: str = Depends(require_user_email),
    store: RecordStore = Depends(get_record_store)
):
    profile = require_profile(store, email)
    return store.create_record(profile, body.record_name)


@router.get("/medical-records/{record_id}", response_model=Record, tags=["Records"])
async def get_record(
    record_id: int,
    email: str = Depends(require_user_email),
    store: RecordStore = Depends(get_record_store)
):
    return get_owned_record(store, record_id, email)


@router.post(
    "/medical-records/{record_id}/upload",
    response_model=UploadResponse,
    tags=["Records"],
    summary="Upload and analyze a report image",
    responses={
        400: {"model": ErrorDetail, "description": "Invalid file"},
        404: {"model": ErrorDetail, "description": "Record not found"},
        502: {"model": ErrorDetail, "description": "Analysis failed"}
    }
)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def upload_report(
    request: Request,
    record_id: int,
    file: UploadFile = File(..., description="Medical report image"),
    email: str = Depends(require_user_email),
    store: RecordStore = Depends(get_record_store),
    client: AnalysisClient = Depends(get_analysis_client)
):
    """
    Analyze a report image and store the treatment narrative.

    Storing a new narrative clears the record's previous board.
    """
    record = get_owned_record(store, record_id, email)
    content = await file.read()

    view = RecordDetailView(record, store, client)
    view.open_modal()

    if not view.select_file(file.filename or "report", file.content_type, content):
        raise HTTPException(status_code=400, detail=view.last_error.message)

    if not await view.upload():
        status_code = 400 if isinstance(view.last_error, InvalidUploadError) else 502
        raise HTTPException(status_code=status_code, detail=view.last_error.message)

    logger.info(
        "Report uploaded",
        record_id=record.id,
        filename=file.filename
    )

    return UploadResponse(
        record_id=record.id,
        filename=file.filename or "report",
        analysis_result=view.analysis_result,
        upload_success=view.upload_success
    )


@router.post(
    "/medical-records/{record_id}/treatment-plan",
    response_model=NavigationResponse,
    tags=["Records"],
    summary="Generate the treatment board for a record",
    responses={
        400: {"model": ErrorDetail, "description": "No analysis available"},
        422: {"model": ErrorDetail, "description": "Board was not valid JSON"},
        502: {"model": ErrorDetail, "description": "Generation failed"}
    }
)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def process_treatment_plan(
    request: Request,
    record_id: int,
    email: str = Depends(require_user_email),
    store: RecordStore = Depends(get_record_store),
    client: AnalysisClient = Depends(get_analysis_client)
):
    """
    Convert the stored narrative into a Kanban board.

    The response tells the client to navigate to the board page and
    carries the parsed board as the page state.
    """
    record = get_owned_record(store, record_id, email)
    if not record.analysis_result:
        raise HTTPException(status_code=400, detail="No analysis available. Upload a report first.")

    view = RecordDetailView(record, store, client)
    navigation = await view.process_treatment_plan()

    if navigation is None:
        status_code = 422 if isinstance(view.last_error, BoardParseError) else 502
        raise HTTPException(status_code=status_code, detail=view.last_error.message)

    logger.info("Treatment board ready", record_id=record.id)

    return NavigationResponse(path=navigation.path, state=navigation.state)


# =============================================================================
# Screening Schedules (Board)
# =============================================================================

@router.get("/screening-schedules", response_model=RenderedBoard, tags=["Board"])
async def screening_schedule_without_state():
    """Direct navigation carries no board, so an empty board is shown."""
    return render_board(None)


@router.post("/screening-schedules", response_model=RenderedBoard, tags=["Board"])
async def screening_schedule(state: Optional[Any] = Body(default=None)):
    """Render the board payload carried by a navigation."""
    return render_board(state)


@router.get(
    "/screening-schedules/{record_id}",
    response_model=RenderedBoard,
    tags=["Board"],
    summary="Render the board stored for a record"
)
async def stored_screening_schedule(
    record_id: int,
    email: str = Depends(require_user_email),
    store: RecordStore = Depends(get_record_store)
):
    get_owned_record(store, record_id, email)
    return render_stored_board(store, record_id)
