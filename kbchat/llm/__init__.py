"""LLM abstraction layer - providers and factory."""

# Import providers first to trigger registration via decorators
from kbchat.llm import openai_provider
from kbchat.llm.factory import LLMFactory

__all__ = ["LLMFactory", "openai_provider"]
