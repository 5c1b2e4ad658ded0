"""Supabase (PostgREST + pgvector) store."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import Any

import httpx

from kbchat.chat.models import Bot, Message, Role
from kbchat.core.config import StorageConfig
from kbchat.core.exceptions import ConfigurationError, LeadAlreadyExists, StorageError
from kbchat.core.logging import get_logger
from kbchat.documents.models import Chunk, RankedChunk, Source, SourceStatus
from kbchat.leads.models import Lead, LeadStatus
from kbchat.storage.factory import StoreFactory

logger = get_logger(__name__)

BACKEND = "supabase"


def _parse_vector(value: Any) -> list[float]:
    """pgvector columns come back over PostgREST as '[0.1,0.2,...]' strings."""
    if value is None:
        return []
    if isinstance(value, str):
        value = json.loads(value)
    return [float(v) for v in value]


def _parse_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _row_to_bot(row: dict) -> Bot:
    return Bot(
        id=row["id"],
        name=row.get("name") or "Chatbot",
        prompt=row.get("prompt"),
        model=row.get("model"),
        temperature=row.get("temperature"),
        public=row.get("public", True),
        require_email=row.get("require_email", False),
    )


def _row_to_source(row: dict) -> Source:
    return Source(
        id=row["id"],
        bot_id=row["bot_id"],
        name=row["name"],
        type=row.get("type") or "text",
        status=SourceStatus(row.get("status") or SourceStatus.PROCESSING),
        created_at=_parse_datetime(row.get("created_at")) or datetime.now(UTC),
    )


def _row_to_chunk(row: dict) -> Chunk:
    return Chunk(
        id=row["id"],
        source_id=row.get("source_id"),
        bot_id=row["bot_id"],
        content=row["content"],
        embedding=_parse_vector(row.get("embedding")),
    )


def _row_to_lead(row: dict) -> Lead:
    return Lead(
        id=row["id"],
        bot_id=row["bot_id"],
        email=row["email"],
        session_id=row.get("session_id") or "",
        name=row.get("name"),
        status=LeadStatus(row.get("status") or LeadStatus.PENDING),
        attempts=row.get("attempts") or 0,
        last_error=row.get("last_error"),
        created_at=_parse_datetime(row.get("created_at")) or datetime.now(UTC),
        sent_at=_parse_datetime(row.get("sent_at")),
    )


@StoreFactory.register("supabase")
class SupabaseStore:
    """Primary store backed by Supabase's REST interface.

    Expects tables ``bots``, ``sources``, ``chunks``, ``messages`` and ``leads``
    (with a unique constraint on ``leads(bot_id, email)``) and a
    ``match_chunks(query_embedding, match_threshold, match_count, bot_id_filter)``
    SQL function for index-side similarity search.
    """

    def __init__(self, url: str, service_key: str, timeout: float = 30.0):
        """Initialize Supabase store.

        Args:
            url: Supabase project URL
            service_key: Supabase service role key (bypasses row level security)
            timeout: Per-request timeout in seconds
        """
        self.url = url.rstrip("/")
        self.service_key = service_key
        self.timeout = timeout
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_config(cls, config: StorageConfig) -> SupabaseStore:
        if not config.supabase_url or not config.supabase_service_key:
            raise ConfigurationError("STORAGE_SUPABASE_URL and STORAGE_SUPABASE_SERVICE_KEY are required")
        return cls(config.supabase_url, config.supabase_service_key, timeout=config.timeout)

    @property
    def client(self) -> httpx.AsyncClient:
        """Get async HTTP client (lazy initialization)."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=f"{self.url}/rest/v1",
                headers={
                    "apikey": self.service_key,
                    "Authorization": f"Bearer {self.service_key}",
                    "Content-Type": "application/json",
                },
                timeout=self.timeout,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict | None = None,
        json_body: Any = None,
        prefer: str | None = None,
    ) -> httpx.Response:
        headers = {"Prefer": prefer} if prefer else None
        try:
            response = await self.client.request(method, path, params=params, json=json_body, headers=headers)
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as e:
            raise StorageError(
                f"{method} {path} failed ({e.response.status_code}): {e.response.text}",
                backend=BACKEND,
            ) from e
        except httpx.RequestError as e:
            raise StorageError(f"Request to Supabase failed: {e}", backend=BACKEND) from e

    async def _select(self, table: str, params: dict) -> list[dict]:
        response = await self._request("GET", f"/{table}", params=params)
        return response.json()

    async def _insert(self, table: str, row: dict) -> dict:
        response = await self._request("POST", f"/{table}", json_body=row, prefer="return=representation")
        rows = response.json()
        return rows[0] if rows else row

    async def _update(self, table: str, row_id: str, values: dict) -> None:
        await self._request("PATCH", f"/{table}", params={"id": f"eq.{row_id}"}, json_body=values)

    # --- Bots ---

    async def get_bot(self, bot_id: str) -> Bot | None:
        rows = await self._select("bots", {"id": f"eq.{bot_id}", "select": "*"})
        return _row_to_bot(rows[0]) if rows else None

    # --- Sources ---

    async def create_source(self, source: Source) -> Source:
        row = await self._insert(
            "sources",
            {
                "id": source.id,
                "bot_id": source.bot_id,
                "name": source.name,
                "type": source.type,
                "status": str(source.status),
            },
        )
        if row.get("created_at"):
            source.created_at = _parse_datetime(row["created_at"])
        return source

    async def get_source(self, source_id: str) -> Source | None:
        rows = await self._select("sources", {"id": f"eq.{source_id}", "select": "*"})
        return _row_to_source(rows[0]) if rows else None

    async def update_source_status(self, source_id: str, status: SourceStatus) -> None:
        await self._update("sources", source_id, {"status": str(status)})

    async def list_sources(self, bot_id: str) -> list[Source]:
        rows = await self._select(
            "sources",
            {"bot_id": f"eq.{bot_id}", "select": "*", "order": "created_at.desc"},
        )
        return [_row_to_source(row) for row in rows]

    async def delete_source(self, source_id: str) -> None:
        await self._request("DELETE", "/sources", params={"id": f"eq.{source_id}"})

    # --- Chunks ---

    async def add_chunk(self, chunk: Chunk) -> None:
        await self._request(
            "POST",
            "/chunks",
            json_body={
                "id": chunk.id,
                "source_id": chunk.source_id,
                "bot_id": chunk.bot_id,
                "content": chunk.content,
                "embedding": chunk.embedding,
            },
            prefer="return=minimal",
        )

    async def list_chunks(self, bot_id: str, limit: int) -> list[Chunk]:
        rows = await self._select(
            "chunks",
            {
                "bot_id": f"eq.{bot_id}",
                "select": "id,source_id,bot_id,content,embedding",
                # Insertion order is the ranking tie-break
                "order": "created_at.asc,id.asc",
                "limit": str(limit),
            },
        )
        return [_row_to_chunk(row) for row in rows]

    async def count_chunks(self, source_id: str) -> int:
        response = await self._request(
            "HEAD",
            "/chunks",
            params={"source_id": f"eq.{source_id}", "select": "id"},
            prefer="count=exact",
        )
        # Content-Range: 0-9/10 or */0
        content_range = response.headers.get("content-range", "*/0")
        total = content_range.rsplit("/", 1)[-1]
        return int(total) if total.isdigit() else 0

    async def delete_chunks_for_source(self, source_id: str) -> int:
        response = await self._request(
            "DELETE",
            "/chunks",
            params={"source_id": f"eq.{source_id}", "select": "id"},
            prefer="return=representation",
        )
        return len(response.json())

    async def match_chunks(
        self,
        query_vector: list[float],
        threshold: float,
        count: int,
        bot_id: str,
    ) -> list[RankedChunk]:
        response = await self._request(
            "POST",
            "/rpc/match_chunks",
            json_body={
                "query_embedding": query_vector,
                "match_threshold": threshold,
                "match_count": count,
                "bot_id_filter": bot_id,
            },
        )
        return [
            RankedChunk(
                id=row["id"],
                content=row["content"],
                score=float(row["similarity"]),
                source_id=row.get("source_id"),
            )
            for row in response.json() or []
        ]

    # --- Messages ---

    async def add_message(self, message: Message) -> None:
        await self._request("POST", "/messages", json_body=message.to_dict(), prefer="return=minimal")

    async def get_messages(self, bot_id: str, session_id: str) -> list[Message]:
        rows = await self._select(
            "messages",
            {
                "bot_id": f"eq.{bot_id}",
                "session_id": f"eq.{session_id}",
                "select": "*",
                "order": "created_at.asc",
            },
        )
        return [
            Message(
                id=row["id"],
                bot_id=row["bot_id"],
                session_id=row["session_id"],
                role=Role(row["role"]),
                content=row["content"],
                created_at=_parse_datetime(row.get("created_at")) or datetime.now(UTC),
            )
            for row in rows
        ]

    # --- Leads ---

    async def find_lead(self, bot_id: str, email: str) -> Lead | None:
        rows = await self._select(
            "leads",
            {"bot_id": f"eq.{bot_id}", "email": f"eq.{email}", "select": "*", "limit": "1"},
        )
        return _row_to_lead(rows[0]) if rows else None

    async def create_lead(self, lead: Lead) -> Lead:
        try:
            response = await self.client.post(
                "/leads",
                json={
                    "id": lead.id,
                    "bot_id": lead.bot_id,
                    "email": lead.email,
                    "session_id": lead.session_id,
                    "name": lead.name,
                    "status": str(lead.status),
                    "attempts": lead.attempts,
                },
                headers={"Prefer": "return=representation"},
            )
        except httpx.RequestError as e:
            raise StorageError(f"Request to Supabase failed: {e}", backend=BACKEND) from e

        if response.status_code == 409:
            raise LeadAlreadyExists(lead.bot_id, lead.email)
        if response.is_error:
            raise StorageError(
                f"POST /leads failed ({response.status_code}): {response.text}",
                backend=BACKEND,
            )

        rows = response.json()
        if rows and rows[0].get("created_at"):
            lead.created_at = _parse_datetime(rows[0]["created_at"])
        return lead

    async def mark_lead_sent(self, lead_id: str, sent_at: datetime) -> None:
        await self._update(
            "leads",
            lead_id,
            {"status": str(LeadStatus.SENT), "sent_at": sent_at.isoformat(), "attempts": 1},
        )

    async def mark_lead_failed(self, lead_id: str, error: str) -> None:
        await self._update(
            "leads",
            lead_id,
            {"status": str(LeadStatus.FAILED), "attempts": 1, "last_error": error},
        )

    async def list_leads(self, bot_id: str | None = None, limit: int = 100) -> list[Lead]:
        params = {"select": "*", "order": "created_at.desc", "limit": str(limit)}
        if bot_id:
            params["bot_id"] = f"eq.{bot_id}"
        rows = await self._select("leads", params)
        return [_row_to_lead(row) for row in rows]
