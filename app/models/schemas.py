"""
Pydantic schemas for CareBoard API.

Defines the stored documents, the Kanban board payload, and the
request/response models for all API endpoints.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional, List

from pydantic import BaseModel, Field, ConfigDict


# =============================================================================
# Enums
# =============================================================================

class RedirectAction(str, Enum):
    """Outcome of evaluating the identity session."""
    LOGIN = "login"
    NAVIGATE = "navigate"
    NONE = "none"


# =============================================================================
# Stored Documents
# =============================================================================

class UserProfile(BaseModel):
    """Patient profile created during onboarding."""

    id: int
    username: str
    age: int
    location: str
    created_by: str = Field(description="Email of the authenticated owner")
    folders: List[str] = Field(default=[])
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class Record(BaseModel):
    """A medical record folder with its analysis and board payload."""

    id: int
    user_id: int
    record_name: str
    analysis_result: str = ""
    kanban_records: str = Field(
        default="",
        description="Raw JSON text of the generated board, empty when cleared"
    )
    created_by: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# =============================================================================
# Kanban Board
# =============================================================================

class BoardColumn(BaseModel):
    """A named board column."""

    id: str
    title: str

    model_config = ConfigDict(coerce_numbers_to_str=True)


class BoardTask(BaseModel):
    """A short actionable step placed in one column."""

    id: str
    column_id: str = Field(alias="columnId")
    content: str

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)


class Board(BaseModel):
    """Kanban board derived from a treatment narrative."""

    columns: List[BoardColumn] = Field(default=[])
    tasks: List[BoardTask] = Field(default=[])


class RenderedColumn(BaseModel):
    """A column together with the tasks filed under it."""

    id: str
    title: str
    tasks: List[BoardTask] = Field(default=[])


class RenderedBoard(BaseModel):
    """Board grouped for display."""

    columns: List[RenderedColumn] = Field(default=[])
    is_empty: bool = True


# =============================================================================
# Session
# =============================================================================

class IdentityEmail(BaseModel):
    address: Optional[str] = None


class IdentityUser(BaseModel):
    """User object as reported by the identity provider."""

    id: Optional[str] = None
    email: Optional[IdentityEmail] = None


class SessionStateRequest(BaseModel):
    """Identity provider lifecycle flags posted by the web client."""

    ready: bool = False
    authenticated: bool = False
    user: Optional[IdentityUser] = None


class RedirectResponse(BaseModel):
    """The single action the client should take."""

    action: RedirectAction
    path: Optional[str] = None
    toast: Optional[str] = None


# =============================================================================
# Requests
# =============================================================================

class OnboardingRequest(BaseModel):
    """Profile fields collected on the onboarding page."""

    username: str = Field(min_length=1)
    age: int = Field(gt=0, lt=150)
    location: str = Field(min_length=1)


class CreateRecordRequest(BaseModel):
    record_name: str = Field(min_length=1, description="Folder display name")


# =============================================================================
# Responses
# =============================================================================

class UploadResponse(BaseModel):
    """Response after a report image was analyzed and stored."""

    record_id: int
    filename: str
    analysis_result: str
    upload_success: bool = True
    message: str = Field(default="Report uploaded and analyzed successfully.")


class NavigationResponse(BaseModel):
    """A navigation instruction carrying transient page state."""

    path: str
    state: Any = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(default="healthy")
    version: str = Field(description="Application version")
    analysis_provider: str = Field(description="Active analysis provider")
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    model_config = ConfigDict(from_attributes=True)


class ErrorDetail(BaseModel):
    """Body of an error raised by a route handler."""

    detail: str = Field(description="Human-readable error message")


class ErrorResponse(BaseModel):
    """Body of an error produced by the middleware stack."""

    error: str = Field(description="Error type")
    message: str = Field(description="Human-readable error message")
    error_code: str = Field(description="Machine-readable error code")
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    model_config = ConfigDict(from_attributes=True)
