"""Top-level package for side-effect-manager."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .async_manager import AsyncSideEffectManager
from .disposable import Disposable
from .disposers import Many, NoResource, Single, join_disposers, normalize_result
from .exceptions import (
    ConfigValidationError,
    InvalidExecutorResultError,
    SideEffectError,
)
from .manager import SideEffectManager
from .quiescence import QuiescenceSignal
from .uid import gen_uid

if TYPE_CHECKING:
    from .config import ensure_config_dir, load_config
    from .events import Event, EventBus
    from .logging_utils import configure_logging

__all__ = [
    "AsyncSideEffectManager",
    "ConfigValidationError",
    "Disposable",
    "Event",
    "EventBus",
    "InvalidExecutorResultError",
    "Many",
    "NoResource",
    "QuiescenceSignal",
    "SideEffectError",
    "SideEffectManager",
    "Single",
    "configure_logging",
    "ensure_config_dir",
    "gen_uid",
    "join_disposers",
    "load_config",
    "normalize_result",
]


def __getattr__(name: str) -> Any:
    """Lazily import config, logging and event helpers so the core stays import-light."""
    if name in {"ensure_config_dir", "load_config"}:
        from .config import ensure_config_dir, load_config

        return {"ensure_config_dir": ensure_config_dir, "load_config": load_config}[name]
    if name == "configure_logging":
        from .logging_utils import configure_logging

        return configure_logging
    if name in {"Event", "EventBus"}:
        from .events import Event, EventBus

        return {"Event": Event, "EventBus": EventBus}[name]
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
