"""Import helpers that fail with an actionable message."""

from __future__ import annotations

from importlib import import_module
from types import ModuleType


def require(package: str, *, purpose: str) -> ModuleType:
    """Import ``package`` or raise ``ModuleNotFoundError`` naming what needed it."""
    try:
        return import_module(package)
    except ModuleNotFoundError as exc:  # pragma: no cover - depends on env
        raise ModuleNotFoundError(
            f"'{package}' is required for {purpose}; reinstall with: pip install htsprobe"
        ) from exc
