"""Request and response schemas for the API."""

from datetime import datetime
from uuid import uuid4

from pydantic import BaseModel, Field

# --- Request Models ---


class ChatMessageIn(BaseModel):
    """One message of the conversation so far.

    Role and length limits are enforced by the responder so they follow
    configuration.
    """

    role: str = Field(..., description="user, assistant or system")
    content: str = Field(..., description="Message text")


class ChatRequest(BaseModel):
    """Chat turn request schema."""

    messages: list[ChatMessageIn] = Field(..., description="Conversation history, latest last")
    session_id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Session ID for conversation continuity",
    )


class SourceCreateRequest(BaseModel):
    """Extracted document text to ingest for a bot."""

    name: str = Field(..., min_length=1, max_length=255, description="Document name")
    text: str = Field(..., description="Extracted document text")
    type: str = Field(default="text", description="Original file type (pdf, docx, txt, ...)")


class LeadCaptureRequest(BaseModel):
    """Pre-chat identification form submission."""

    bot_id: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3, max_length=320)
    session_id: str = Field(default_factory=lambda: str(uuid4()))
    name: str | None = Field(default=None, max_length=255)


# --- Response Models ---


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Service status")
    llm_provider: str = Field(..., description="Active LLM provider")
    llm_model: str = Field(..., description="Default LLM model")
    storage_backend: str = Field(..., description="Primary store backend")
    memory_backend: str = Field(..., description="Message persistence backend")
    retrieval_strategies: list[str] = Field(..., description="Retrieval strategies in the order tried")


class SourceCreateResponse(BaseModel):
    """Ingestion result."""

    source_id: str
    chunks_created: int
    chunks_attempted: int


class SourceInfo(BaseModel):
    """Source listing row."""

    id: str
    name: str
    type: str
    status: str
    chunk_count: int
    created_at: datetime


class SourceListResponse(BaseModel):
    """Sources of a bot."""

    sources: list[SourceInfo]
    total: int


class SourceDeleteResponse(BaseModel):
    """Source deletion result."""

    source_id: str
    chunks_deleted: int
    status: str = "deleted"


class LeadInfo(BaseModel):
    """Lead listing row."""

    id: str
    bot_id: str
    email: str
    name: str | None = None
    session_id: str
    status: str
    attempts: int
    last_error: str | None = None
    created_at: datetime
    sent_at: datetime | None = None


class LeadListResponse(BaseModel):
    """Captured leads, newest first."""

    leads: list[LeadInfo]
    total: int


class LeadCaptureResponse(BaseModel):
    """Pre-chat capture result."""

    lead: LeadInfo
    created: bool
