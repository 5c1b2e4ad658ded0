"""API routes for the knowledge-base chatbot."""

import json
import time

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Query
from sse_starlette.sse import EventSourceResponse

from kbchat.api.schemas import (
    ChatRequest,
    HealthResponse,
    LeadCaptureRequest,
    LeadCaptureResponse,
    LeadInfo,
    LeadListResponse,
    SourceCreateRequest,
    SourceCreateResponse,
    SourceDeleteResponse,
    SourceInfo,
    SourceListResponse,
)
from kbchat.chat.responder import ConversationResponder
from kbchat.core.config import AppConfig
from kbchat.core.di_container import DIContainer
from kbchat.core.exceptions import AppError
from kbchat.core.logging import get_logger, log_request
from kbchat.documents.ingestion import IngestionPipeline
from kbchat.leads.models import Lead
from kbchat.leads.service import LeadCaptureService
from kbchat.retrieval.retriever import Retriever

router = APIRouter()
logger = get_logger(__name__)


def _lead_info(lead: Lead) -> LeadInfo:
    return LeadInfo(
        id=lead.id,
        bot_id=lead.bot_id,
        email=lead.email,
        name=lead.name,
        session_id=lead.session_id,
        status=str(lead.status),
        attempts=lead.attempts,
        last_error=lead.last_error,
        created_at=lead.created_at,
        sent_at=lead.sent_at,
    )


@router.post("/bots/{bot_id}/chat")
@inject
async def chat(
    bot_id: str,
    request: ChatRequest,
    responder: ConversationResponder = Depends(Provide[DIContainer.responder]),  # noqa: B008
):
    """Answer a chat turn as Server-Sent Events.

    Emits ``token`` events while the model streams, then ``done``. Errors
    detected before streaming starts are returned as regular JSON errors.
    """
    start_time = time.perf_counter()
    messages = [message.model_dump() for message in request.messages]
    latest = messages[-1]["content"] if messages else None

    try:
        turn = await responder.start_turn(bot_id, messages, request.session_id)
    except AppError as e:
        log_request(
            method="POST",
            path=f"/api/v1/bots/{bot_id}/chat",
            bot_id=bot_id,
            session_id=request.session_id,
            user_message=latest,
            duration_ms=(time.perf_counter() - start_time) * 1000,
            status="error",
            error=e.message,
        )
        raise

    async def event_generator():
        status = "success"
        error = None
        try:
            async for token in responder.stream(turn):
                yield {"event": "token", "data": token}

            yield {
                "event": "done",
                "data": json.dumps({"session_id": turn.session_id, "grounded": turn.grounded}),
            }
        except AppError as e:
            status, error = "error", e.message
            yield {"event": "error", "data": json.dumps(e.to_dict())}
        except Exception as e:
            status, error = "error", str(e)
            logger.exception("chat_stream_failed", bot_id=bot_id, error=str(e))
            yield {
                "event": "error",
                "data": json.dumps({"error": {"code": "INTERNAL_ERROR", "message": str(e)}}),
            }
        finally:
            log_request(
                method="POST",
                path=f"/api/v1/bots/{bot_id}/chat",
                bot_id=bot_id,
                session_id=turn.session_id,
                user_message=latest,
                duration_ms=(time.perf_counter() - start_time) * 1000,
                status=status,
                error=error,
            )

    return EventSourceResponse(event_generator())


@router.get("/health", response_model=HealthResponse)
@inject
async def health(
    config: AppConfig = Depends(Provide[DIContainer.config]),  # noqa: B008
    retriever: Retriever = Depends(Provide[DIContainer.retriever]),  # noqa: B008
) -> HealthResponse:
    """Check service health and configuration."""
    return HealthResponse(
        status="ok",
        llm_provider=config.llm.provider,
        llm_model=config.llm.model,
        storage_backend=config.storage.backend,
        memory_backend=config.memory.backend,
        retrieval_strategies=[strategy.name for strategy in retriever.strategies],
    )


# === Source Management Endpoints ===


@router.post("/bots/{bot_id}/sources", response_model=SourceCreateResponse)
@inject
async def create_source(
    bot_id: str,
    request: SourceCreateRequest,
    ingestion: IngestionPipeline = Depends(Provide[DIContainer.ingestion]),  # noqa: B008
) -> SourceCreateResponse:
    """Chunk, embed and store extracted document text for a bot."""
    start_time = time.perf_counter()
    result = await ingestion.ingest(bot_id, request.name, request.text, request.type)

    log_request(
        method="POST",
        path=f"/api/v1/bots/{bot_id}/sources",
        bot_id=bot_id,
        duration_ms=(time.perf_counter() - start_time) * 1000,
    )
    return SourceCreateResponse(
        source_id=result.source_id,
        chunks_created=result.chunks_created,
        chunks_attempted=result.chunks_attempted,
    )


@router.get("/bots/{bot_id}/sources", response_model=SourceListResponse)
@inject
async def list_sources(
    bot_id: str,
    ingestion: IngestionPipeline = Depends(Provide[DIContainer.ingestion]),  # noqa: B008
) -> SourceListResponse:
    """List a bot's sources, newest first, with chunk counts."""
    summaries = await ingestion.list_sources(bot_id)
    sources = [
        SourceInfo(
            id=summary.source.id,
            name=summary.source.name,
            type=summary.source.type,
            status=str(summary.source.status),
            chunk_count=summary.chunk_count,
            created_at=summary.source.created_at,
        )
        for summary in summaries
    ]
    return SourceListResponse(sources=sources, total=len(sources))


@router.delete("/bots/{bot_id}/sources/{source_id}", response_model=SourceDeleteResponse)
@inject
async def delete_source(
    bot_id: str,
    source_id: str,
    ingestion: IngestionPipeline = Depends(Provide[DIContainer.ingestion]),  # noqa: B008
) -> SourceDeleteResponse:
    """Delete a source and all of its chunks."""
    removed = await ingestion.delete_source(bot_id, source_id)
    return SourceDeleteResponse(source_id=source_id, chunks_deleted=removed)


# === Lead Endpoints ===


@router.get("/leads", response_model=LeadListResponse)
@inject
async def list_leads(
    bot_id: str | None = None,
    limit: int = Query(default=100, ge=1, le=100),
    lead_service: LeadCaptureService = Depends(Provide[DIContainer.lead_service]),  # noqa: B008
) -> LeadListResponse:
    """List captured leads, newest first."""
    leads = await lead_service.list_leads(bot_id=bot_id, limit=limit)
    return LeadListResponse(leads=[_lead_info(lead) for lead in leads], total=len(leads))


@router.post("/leads/capture", response_model=LeadCaptureResponse)
@inject
async def capture_lead(
    request: LeadCaptureRequest,
    lead_service: LeadCaptureService = Depends(Provide[DIContainer.lead_service]),  # noqa: B008
) -> LeadCaptureResponse:
    """Record a lead from the pre-chat identification form."""
    lead, created = await lead_service.capture_identified(
        request.bot_id,
        request.email,
        request.session_id,
        name=request.name,
    )
    return LeadCaptureResponse(lead=_lead_info(lead), created=created)
