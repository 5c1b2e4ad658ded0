"""LLM provider registry.

To add a provider, decorate a class taking an ``LLMConfig`` with
``@LLMFactory.register("name")`` and set ``LLM_PROVIDER=name``.
"""

from kbchat.core.registry import ProviderRegistry

LLMFactory = ProviderRegistry("LLM provider", key="provider")
