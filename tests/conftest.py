"""Common test fixtures."""

import pytest

from kbchat.chat.models import Bot
from kbchat.chat.prompt import PromptAssembler
from kbchat.chat.responder import ConversationResponder
from kbchat.core.config import AppConfig, LLMConfig, MemoryConfig, RAGConfig, StorageConfig
from kbchat.core.di_container import container as di_container
from kbchat.core.exceptions import ConfigurationError, EmbeddingUnavailable, NotificationFailure
from kbchat.core.tasks import BackgroundTaskRunner
from kbchat.documents.chunker import SentenceChunker
from kbchat.documents.ingestion import IngestionPipeline
from kbchat.leads.service import LeadCaptureService
from kbchat.retrieval.retriever import Retriever
from kbchat.retrieval.strategies import ExhaustiveScanStrategy
from kbchat.storage.in_memory_store import InMemoryStore

BOT_ID = "bot-1"
KEYWORDS = ("refund", "shipping", "warranty", "hours")


class MockLLM:
    """Mock LLM provider for testing."""

    def __init__(self, tokens=None, ready: bool = True, error: Exception | None = None):
        self.tokens = tokens or ["This ", "is ", "a ", "mock ", "response."]
        self.ready = ready
        self.error = error
        self.calls: list[dict] = []

    def ensure_ready(self) -> None:
        if not self.ready:
            raise ConfigurationError("Server misconfigured: OpenAI API key missing")

    async def stream(self, messages, model=None, temperature=None, **kwargs):
        self.calls.append({"messages": messages, "model": model, "temperature": temperature})
        for token in self.tokens:
            yield token
        if self.error is not None:
            raise self.error


class KeywordEmbedder:
    """Deterministic embedder: one dimension per known keyword."""

    def __init__(self):
        self.calls: list[str] = []

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        lowered = text.lower()
        return [float(lowered.count(word)) for word in KEYWORDS]


class FailingEmbedder:
    """Embedder whose service is down."""

    async def embed(self, text: str) -> list[float]:
        raise EmbeddingUnavailable("embedding service down", model="test")


class FlakyEmbedder(KeywordEmbedder):
    """Fails for any text containing a marker word."""

    def __init__(self, marker: str = "poison"):
        super().__init__()
        self.marker = marker

    async def embed(self, text: str) -> list[float]:
        if self.marker in text:
            raise EmbeddingUnavailable("rejected input", model="test")
        return await super().embed(text)


class FakeNotifier:
    """Records notifications; optionally fails."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent = []

    async def send(self, notification) -> None:
        if self.fail:
            raise NotificationFailure("smtp unreachable")
        self.sent.append(notification)


@pytest.fixture
def test_config() -> AppConfig:
    """Create test configuration."""
    return AppConfig(
        debug=True,
        log_level="DEBUG",
        llm=LLMConfig(provider="openai", model="gpt-4o-mini", temperature=0.5, openai_api_key="test-key"),
        rag=RAGConfig(similarity_threshold=0.70, top_k=8),
        storage=StorageConfig(backend="in_memory"),
        memory=MemoryConfig(backend="storage"),
    )


@pytest.fixture
def bot() -> Bot:
    return Bot(id=BOT_ID, name="Support Bot", prompt="You are the support assistant for Acme.")


@pytest.fixture
def store(bot) -> InMemoryStore:
    """In-memory store with one registered bot."""
    store = InMemoryStore()
    store.add_bot(bot)
    return store


@pytest.fixture
def mock_llm() -> MockLLM:
    """Create mock LLM provider."""
    return MockLLM()


@pytest.fixture
def embedder() -> KeywordEmbedder:
    return KeywordEmbedder()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def task_runner() -> BackgroundTaskRunner:
    return BackgroundTaskRunner()


@pytest.fixture
def retriever(store) -> Retriever:
    return Retriever([ExhaustiveScanStrategy(store)], threshold=0.70, top_k=8)


@pytest.fixture
def ingestion(store, embedder) -> IngestionPipeline:
    return IngestionPipeline(
        chunker=SentenceChunker(max_tokens=500),
        embedder=embedder,
        bots=store,
        sources=store,
        chunks=store,
    )


@pytest.fixture
def lead_service(store, notifier) -> LeadCaptureService:
    return LeadCaptureService(leads=store, notifier=notifier, bots=store)


@pytest.fixture
def responder(mock_llm, embedder, retriever, store, lead_service, task_runner) -> ConversationResponder:
    return ConversationResponder(
        llm=mock_llm,
        embedder=embedder,
        retriever=retriever,
        assembler=PromptAssembler(),
        messages_store=store,
        lead_service=lead_service,
        bots=store,
        task_runner=task_runner,
    )


@pytest.fixture
def di_container_fixture():
    """Provide the DI container for testing."""
    yield di_container


@pytest.fixture
def override_container(test_config, store, mock_llm, embedder, notifier, task_runner):
    """Point the DI container at test doubles."""
    di_container.reset_singletons()
    with (
        di_container.config.override(test_config),
        di_container.store.override(store),
        di_container.llm.override(mock_llm),
        di_container.embedding_generator.override(embedder),
        di_container.notifier.override(notifier),
        di_container.task_runner.override(task_runner),
    ):
        yield di_container
    di_container.reset_singletons()
