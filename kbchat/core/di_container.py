"""Dependency Injector based DI Container."""

from dependency_injector import containers, providers

from kbchat.core.config import get_config

# --- Factory Functions (defined before class to avoid NameError) ---


def _create_store(config):
    """Create the primary store (bots, sources, chunks, leads)."""
    from kbchat.storage.factory import StoreFactory

    store = StoreFactory.create(config)
    if config.demo_bot_id and hasattr(store, "add_bot"):
        from kbchat.chat.models import Bot

        store.add_bot(Bot(id=config.demo_bot_id, name="Demo Bot"))
    return store


def _create_message_store(config, store):
    """Create conversation message store."""
    if config.backend == "redis":
        from kbchat.storage.redis_store import RedisMessageStore

        return RedisMessageStore(url=config.redis_url, ttl=config.ttl_seconds)
    return store


def _create_llm(config):
    """Create LLM provider."""
    from kbchat.llm.factory import LLMFactory

    return LLMFactory.create(config)


def _create_embedding_generator(config):
    """Create embedding generator."""
    from kbchat.documents.embeddings import create_embedding_generator

    return create_embedding_generator(
        model=config.rag.embedding_model,
        api_key=config.llm.openai_api_key,
        base_url=config.llm.base_url,
    )


def _create_chunker(config):
    """Create sentence chunker."""
    from kbchat.documents.chunker import SentenceChunker

    return SentenceChunker(max_tokens=config.chunk_size, chars_per_token=config.chars_per_token)


def _create_retriever(config, store):
    """Create retriever: index-side search first when the store has one, then a full scan."""
    from kbchat.core.protocols import IndexSearch
    from kbchat.retrieval.retriever import Retriever
    from kbchat.retrieval.strategies import ExhaustiveScanStrategy, IndexSearchStrategy

    strategies = []
    if config.index_search_enabled and isinstance(store, IndexSearch):
        strategies.append(IndexSearchStrategy(store))
    strategies.append(ExhaustiveScanStrategy(store, scan_limit=config.fallback_scan_limit))

    return Retriever(strategies, threshold=config.similarity_threshold, top_k=config.top_k)


def _create_assembler():
    """Create prompt assembler."""
    from kbchat.chat.prompt import PromptAssembler

    return PromptAssembler()


def _create_notifier(config):
    """Create lead notifier."""
    from kbchat.leads.notifier import GmailNotifier

    return GmailNotifier(config)


def _create_lead_service(store, notifier):
    """Create lead capture service."""
    from kbchat.leads.service import LeadCaptureService

    return LeadCaptureService(leads=store, notifier=notifier, bots=store)


def _create_task_runner():
    """Create background task runner."""
    from kbchat.core.tasks import BackgroundTaskRunner

    return BackgroundTaskRunner()


def _create_ingestion(chunker, embedder, store):
    """Create ingestion pipeline."""
    from kbchat.documents.ingestion import IngestionPipeline

    return IngestionPipeline(chunker=chunker, embedder=embedder, bots=store, sources=store, chunks=store)


def _create_responder(config, llm, embedder, retriever, assembler, message_store, lead_service, store, task_runner):
    """Create conversation responder."""
    from kbchat.chat.responder import ConversationResponder

    return ConversationResponder(
        llm=llm,
        embedder=embedder,
        retriever=retriever,
        assembler=assembler,
        messages_store=message_store,
        lead_service=lead_service,
        bots=store,
        task_runner=task_runner,
        max_message_length=config.max_message_length,
    )


class DIContainer(containers.DeclarativeContainer):
    """Main dependency injection container."""

    # Configuration provider
    config = providers.Singleton(get_config)

    # Primary Store
    store = providers.Singleton(
        _create_store,
        config=config.provided.storage,
    )

    # Message Store
    message_store = providers.Singleton(
        _create_message_store,
        config=config.provided.memory,
        store=store,
    )

    # LLM Provider
    llm = providers.Singleton(
        _create_llm,
        config=config.provided.llm,
    )

    # Embedding Generator
    embedding_generator = providers.Singleton(
        _create_embedding_generator,
        config=config,
    )

    # Document Chunker
    chunker = providers.Factory(
        _create_chunker,
        config=config.provided.rag,
    )

    # Retriever
    retriever = providers.Singleton(
        _create_retriever,
        config=config.provided.rag,
        store=store,
    )

    # Prompt Assembler
    assembler = providers.Singleton(_create_assembler)

    # Lead Notifier
    notifier = providers.Singleton(
        _create_notifier,
        config=config.provided.notification,
    )

    # Lead Capture
    lead_service = providers.Singleton(
        _create_lead_service,
        store=store,
        notifier=notifier,
    )

    # Background Tasks
    task_runner = providers.Singleton(_create_task_runner)

    # Ingestion
    ingestion = providers.Singleton(
        _create_ingestion,
        chunker=chunker,
        embedder=embedding_generator,
        store=store,
    )

    # Conversation Responder
    responder = providers.Singleton(
        _create_responder,
        config=config.provided.chat,
        llm=llm,
        embedder=embedding_generator,
        retriever=retriever,
        assembler=assembler,
        message_store=message_store,
        lead_service=lead_service,
        store=store,
        task_runner=task_runner,
    )


# Global container instance
container = DIContainer()
