from __future__ import annotations

import importlib
from collections.abc import Callable, Iterable
from typing import Any, Protocol

from app.pageserver.errors import PartLoadError


class PartLoader(Protocol):
    def load(self, module_id: str) -> Any:
        """Return the (uninitialized) part object for ``module_id`` or raise PartLoadError."""
        ...


class ImportPartLoader:
    """
    Loads parts from importable modules.

    A module may expose a ``part`` object; otherwise the module itself is the part.
    """

    def load(self, module_id: str) -> Any:
        try:
            module = importlib.import_module(module_id)
        except ImportError as e:
            raise PartLoadError(module_id, f"Cannot import part module {module_id!r}: {e}") from e
        return getattr(module, "part", module)


class FactoryPartLoader:
    """Loads parts from a map of registered factories."""

    def __init__(self, factories: dict[str, Callable[[], Any]] | None = None) -> None:
        self._factories: dict[str, Callable[[], Any]] = dict(factories or {})

    def register(self, module_id: str, factory: Callable[[], Any]) -> None:
        self._factories[module_id] = factory

    def load(self, module_id: str) -> Any:
        factory = self._factories.get(module_id)
        if factory is None:
            raise PartLoadError(module_id, f"No factory registered for part {module_id!r}")
        return factory()


class ChainPartLoader:
    """Tries each loader in turn; the first one that succeeds wins."""

    def __init__(self, loaders: Iterable[PartLoader]) -> None:
        self._loaders = list(loaders)

    def load(self, module_id: str) -> Any:
        errors: list[str] = []
        for loader in self._loaders:
            try:
                return loader.load(module_id)
            except PartLoadError as e:
                errors.append(e.message)
        raise PartLoadError(module_id, "; ".join(errors) or f"No loader for part {module_id!r}")
