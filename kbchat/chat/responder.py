"""Streaming conversation responder.

A turn runs in two phases so that HTTP status codes can still be chosen
before the first byte is streamed:

1. ``start_turn`` validates input, resolves the bot, schedules side effects
   and assembles the grounded system instruction.
2. ``stream`` yields model tokens for the prepared turn.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from kbchat.chat.models import Bot, ChatMessage, Message, Role
from kbchat.chat.prompt import PromptAssembler
from kbchat.core.exceptions import NotFoundError, ValidationError
from kbchat.core.logging import get_logger
from kbchat.core.protocols import BotStore, EmbeddingProvider, LLMProvider, MessageStore
from kbchat.core.tasks import BackgroundTaskRunner
from kbchat.retrieval.retriever import Retriever

if TYPE_CHECKING:
    from kbchat.leads.service import LeadCaptureService

logger = get_logger(__name__)

VALID_ROLES = frozenset(str(role) for role in Role)


class TurnState(StrEnum):
    """Lifecycle of one chat turn."""

    START = "start"
    RETRIEVING = "retrieving"
    PROMPT_READY = "prompt_ready"
    STREAMING = "streaming"
    DONE = "done"


@dataclass
class ConversationTurn:
    """A prepared chat turn, ready to stream."""

    bot: Bot
    session_id: str
    messages: list[ChatMessage]
    system_prompt: str = ""
    context_chunks: list[str] = field(default_factory=list)
    state: TurnState = TurnState.START

    @property
    def grounded(self) -> bool:
        return bool(self.context_chunks)


class ConversationResponder:
    """Answers one chat turn for one bot, streaming tokens.

    Message persistence and lead capture are handed to the background task
    runner and never awaited; their failures are only logged.
    """

    def __init__(
        self,
        llm: LLMProvider,
        embedder: EmbeddingProvider,
        retriever: Retriever,
        assembler: PromptAssembler,
        messages_store: MessageStore,
        lead_service: LeadCaptureService,
        bots: BotStore,
        task_runner: BackgroundTaskRunner,
        max_message_length: int = 4000,
    ):
        self.llm = llm
        self.embedder = embedder
        self.retriever = retriever
        self.assembler = assembler
        self.messages_store = messages_store
        self.lead_service = lead_service
        self.bots = bots
        self.task_runner = task_runner
        self.max_message_length = max_message_length

    def validate_messages(self, messages: Sequence[dict]) -> list[ChatMessage]:
        """Check roles and content lengths.

        Raises:
            ValidationError: Empty list, unknown role, or empty/oversized content.
        """
        if not messages:
            raise ValidationError("At least one message is required", field="messages")

        validated = []
        for index, raw in enumerate(messages):
            role = raw.get("role")
            content = raw.get("content")
            if role not in VALID_ROLES:
                raise ValidationError(f"Invalid role: {role}", field=f"messages.{index}.role")
            if not isinstance(content, str) or not content:
                raise ValidationError("Message content must not be empty", field=f"messages.{index}.content")
            if len(content) > self.max_message_length:
                raise ValidationError(
                    f"Message content exceeds {self.max_message_length} characters",
                    field=f"messages.{index}.content",
                )
            validated.append(ChatMessage(role=Role(role), content=content))
        return validated

    async def start_turn(
        self,
        bot_id: str,
        messages: Sequence[dict],
        session_id: str,
    ) -> ConversationTurn:
        """Prepare a turn up to PROMPT_READY.

        Raises:
            ValidationError: Malformed messages.
            ConfigurationError: Model credentials missing.
            NotFoundError: Unknown bot.
        """
        history = self.validate_messages(messages)
        self.llm.ensure_ready()

        bot = await self.bots.get_bot(bot_id)
        if bot is None:
            raise NotFoundError("bot", bot_id)

        turn = ConversationTurn(bot=bot, session_id=session_id, messages=history)

        query = self._latest_user_message(history)
        if query is not None:
            turn.state = TurnState.RETRIEVING
            self._spawn_side_effects(bot, session_id, query)
            turn.context_chunks = await self._retrieve_context(bot, query)

        turn.system_prompt = self.assembler.assemble(bot.instructions, turn.context_chunks)
        turn.state = TurnState.PROMPT_READY
        logger.info(
            "turn_ready",
            bot_id=bot.id,
            session_id=session_id,
            messages=len(history),
            context_chunks=len(turn.context_chunks),
        )
        return turn

    async def stream(self, turn: ConversationTurn) -> AsyncIterator[str]:
        """Yield completion tokens for a prepared turn.

        Closing the generator early (caller disconnect) stops the model stream
        only; background work keeps running.
        """
        turn.state = TurnState.STREAMING
        payload = [{"role": "system", "content": turn.system_prompt}]
        payload += [message.to_dict() for message in turn.messages]

        tokens: list[str] = []
        completed = False
        try:
            async for token in self.llm.stream(payload, model=turn.bot.model, temperature=turn.bot.temperature):
                tokens.append(token)
                yield token
            completed = True
        finally:
            turn.state = TurnState.DONE
            logger.info(
                "turn_finished",
                bot_id=turn.bot.id,
                session_id=turn.session_id,
                completed=completed,
                tokens=len(tokens),
            )

        reply = "".join(tokens)
        if reply:
            self.task_runner.spawn(
                self.messages_store.add_message(
                    Message(bot_id=turn.bot.id, session_id=turn.session_id, role=Role.ASSISTANT, content=reply)
                ),
                name="persist_reply",
            )

    def _latest_user_message(self, history: list[ChatMessage]) -> str | None:
        for message in reversed(history):
            if message.role == Role.USER:
                return message.content
        return None

    def _spawn_side_effects(self, bot: Bot, session_id: str, text: str) -> None:
        self.task_runner.spawn(
            self.messages_store.add_message(
                Message(bot_id=bot.id, session_id=session_id, role=Role.USER, content=text)
            ),
            name="persist_message",
        )
        self.task_runner.spawn(
            self.lead_service.capture_from_text(bot, text, session_id),
            name="capture_lead",
        )

    async def _retrieve_context(self, bot: Bot, query: str) -> list[str]:
        try:
            vector = await self.embedder.embed(query)
            ranked = await self.retriever.retrieve(vector, bot.id)
        except Exception as e:
            logger.warning("retrieval_degraded", bot_id=bot.id, error=str(e), error_type=type(e).__name__)
            return []
        return [chunk.content for chunk in ranked]
