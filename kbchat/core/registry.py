"""Decorator-based registries for pluggable backends."""

from typing import Any

from kbchat.core.exceptions import ConfigurationError
from kbchat.core.logging import get_logger

logger = get_logger(__name__)


class ProviderRegistry:
    """Maps a configuration value to an implementation class.

    Implementations register themselves with ``@registry.register("name")``
    and are selected by the config field named ``key``. A class may define a
    ``from_config`` classmethod when it needs more than ``cls(config)``.
    """

    def __init__(self, kind: str, key: str):
        self.kind = kind
        self.key = key
        self._registry: dict[str, type] = {}

    def register(self, name: str):
        """Decorator to register an implementation class."""

        def decorator(impl_cls: type) -> type:
            self._registry[name] = impl_cls
            return impl_cls

        return decorator

    def create(self, config: Any):
        """Instantiate the implementation selected by ``config``.

        Raises:
            ConfigurationError: Unknown name, or the implementation rejected the config.
        """
        name = getattr(config, self.key)
        impl_cls = self._registry.get(name)
        if impl_cls is None:
            available = ", ".join(self._registry.keys()) or "none registered"
            raise ConfigurationError(f"Unknown {self.kind}: '{name}'. Available: {available}")

        factory = getattr(impl_cls, "from_config", None)
        instance = factory(config) if factory else impl_cls(config)
        logger.debug("backend_created", kind=self.kind, name=name, impl=impl_cls.__name__)
        return instance

    def available(self) -> list[str]:
        """List all registered names."""
        return list(self._registry.keys())
