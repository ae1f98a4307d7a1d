"""Provider registry for message queue backends."""

from __future__ import annotations

from typing import Dict, Iterable, List, Type

from ..config import QueueConfig
from .base import QueueSource


class QueueRegistry:
    """Central registry that maps provider names and aliases to backend classes."""

    def __init__(self) -> None:
        self._backends: Dict[str, Type[QueueSource]] = {}
        self._aliases: Dict[str, str] = {}

    def register(
        self,
        name: str,
        backend: Type[QueueSource],
        aliases: Iterable[str] | None = None,
    ) -> None:
        if name in self._backends or name in self._aliases:
            raise ValueError(f"Queue provider '{name}' is already registered")
        self._backends[name] = backend
        for alias in aliases or []:
            self._aliases[alias] = name

    def get(self, name: str) -> Type[QueueSource]:
        key = name.strip().lower()
        key = self._aliases.get(key, key)
        try:
            return self._backends[key]
        except KeyError as exc:
            raise KeyError(f"Unknown queue provider '{name}'") from exc

    def create(self, config: QueueConfig) -> QueueSource:
        backend_cls = self.get(config.provider)
        return backend_cls(config)

    @property
    def names(self) -> List[str]:
        return sorted(self._backends)


def get_registry() -> QueueRegistry:
    """Singleton accessor used across the package."""

    if not hasattr(get_registry, "_instance"):
        get_registry._instance = QueueRegistry()
    return get_registry._instance  # type: ignore[attr-defined]
