"""In-memory store for development and testing."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime

from kbchat.chat.models import Bot, Message
from kbchat.core.config import StorageConfig
from kbchat.core.exceptions import LeadAlreadyExists
from kbchat.core.logging import get_logger
from kbchat.documents.models import Chunk, Source, SourceStatus
from kbchat.leads.models import Lead, LeadStatus
from kbchat.storage.factory import StoreFactory

logger = get_logger(__name__)


@StoreFactory.register("in_memory")
class InMemoryStore:
    """Dictionary-based store for bots, sources, chunks, messages and leads.

    Not persistent - data is lost on restart. Has no index-side search, so
    retrieval always ranks client-side.
    """

    def __init__(self) -> None:
        self._bots: dict[str, Bot] = {}
        self._sources: dict[str, Source] = {}
        # Insertion order is storage order
        self._chunks: dict[str, Chunk] = {}
        self._messages: dict[tuple[str, str], list[Message]] = defaultdict(list)
        self._leads: dict[str, Lead] = {}
        self._lead_keys: dict[tuple[str, str], str] = {}
        logger.debug("in_memory_store_initialized")

    @classmethod
    def from_config(cls, config: StorageConfig) -> InMemoryStore:
        return cls()

    # --- Bots ---

    async def get_bot(self, bot_id: str) -> Bot | None:
        return self._bots.get(bot_id)

    def add_bot(self, bot: Bot) -> Bot:
        """Register a bot (bot CRUD lives outside this service)."""
        self._bots[bot.id] = bot
        return bot

    # --- Sources ---

    async def create_source(self, source: Source) -> Source:
        self._sources[source.id] = source
        return source

    async def get_source(self, source_id: str) -> Source | None:
        return self._sources.get(source_id)

    async def update_source_status(self, source_id: str, status: SourceStatus) -> None:
        source = self._sources.get(source_id)
        if source is not None:
            source.status = status

    async def list_sources(self, bot_id: str) -> list[Source]:
        sources = [s for s in self._sources.values() if s.bot_id == bot_id]
        return sorted(sources, key=lambda s: s.created_at, reverse=True)

    async def delete_source(self, source_id: str) -> None:
        self._sources.pop(source_id, None)

    # --- Chunks ---

    async def add_chunk(self, chunk: Chunk) -> None:
        self._chunks[chunk.id] = chunk

    async def list_chunks(self, bot_id: str, limit: int) -> list[Chunk]:
        rows = [c for c in self._chunks.values() if c.bot_id == bot_id]
        return rows[:limit]

    async def count_chunks(self, source_id: str) -> int:
        return sum(1 for c in self._chunks.values() if c.source_id == source_id)

    async def delete_chunks_for_source(self, source_id: str) -> int:
        doomed = [chunk_id for chunk_id, c in self._chunks.items() if c.source_id == source_id]
        for chunk_id in doomed:
            del self._chunks[chunk_id]
        return len(doomed)

    # --- Messages ---

    async def add_message(self, message: Message) -> None:
        self._messages[(message.bot_id, message.session_id)].append(message)
        logger.debug(
            "message_added",
            bot_id=message.bot_id,
            session_id=message.session_id,
            role=str(message.role),
        )

    async def get_messages(self, bot_id: str, session_id: str) -> list[Message]:
        return list(self._messages.get((bot_id, session_id), []))

    # --- Leads ---

    async def find_lead(self, bot_id: str, email: str) -> Lead | None:
        lead_id = self._lead_keys.get((bot_id, email))
        return self._leads.get(lead_id) if lead_id else None

    async def create_lead(self, lead: Lead) -> Lead:
        key = (lead.bot_id, lead.email)
        if key in self._lead_keys:
            raise LeadAlreadyExists(lead.bot_id, lead.email)
        self._lead_keys[key] = lead.id
        self._leads[lead.id] = lead
        return lead

    async def mark_lead_sent(self, lead_id: str, sent_at: datetime) -> None:
        lead = self._leads[lead_id]
        lead.status = LeadStatus.SENT
        lead.attempts = 1
        lead.sent_at = sent_at

    async def mark_lead_failed(self, lead_id: str, error: str) -> None:
        lead = self._leads[lead_id]
        lead.status = LeadStatus.FAILED
        lead.attempts = 1
        lead.last_error = error

    async def list_leads(self, bot_id: str | None = None, limit: int = 100) -> list[Lead]:
        leads = [lead for lead in self._leads.values() if bot_id is None or lead.bot_id == bot_id]
        leads.sort(key=lambda lead: lead.created_at, reverse=True)
        return leads[:limit]
