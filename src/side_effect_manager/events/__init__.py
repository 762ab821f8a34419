"""Event bus used by the subscription adapters."""

from .bus import Event, EventBus

__all__ = ["EventBus", "Event"]
