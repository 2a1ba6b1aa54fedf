"""
The capability surface every part plugin provides.

A part is any object (usually a module) exposing ``init``, ``read``,
``get_view`` and ``static_dir``. Nothing needs to inherit from anything; the
registry checks the four members when the part is loaded.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from app.pageserver.errors import PartRegistrationError

REQUIRED_CALLABLES = ("init", "read", "get_view")


@runtime_checkable
class PartPlugin(Protocol):
    static_dir: str | Path

    def init(self) -> None:
        ...

    def read(self, data: Any) -> Any:
        """Turn an include's stored data into render-ready content (may be a coroutine)."""
        ...

    def get_view(self, edit_mode: bool) -> str:
        """Template source for the region, editor flavour when ``edit_mode``."""
        ...


def validate_part(module_id: str, plugin: Any) -> None:
    missing = [name for name in REQUIRED_CALLABLES if not callable(getattr(plugin, name, None))]
    if getattr(plugin, "static_dir", None) is None:
        missing.append("static_dir")
    if missing:
        raise PartRegistrationError(module_id, missing)


@dataclass(frozen=True, eq=False)
class PartHandle:
    """A loaded, initialized part. One instance per module id per process."""

    module_id: str
    plugin: PartPlugin

    @property
    def static_dir(self) -> Path:
        return Path(self.plugin.static_dir)

    async def read(self, data: Any) -> Any:
        result = self.plugin.read(data)
        if inspect.isawaitable(result):
            result = await result
        return result

    def get_view(self, edit_mode: bool) -> str:
        return self.plugin.get_view(edit_mode)
