"""
Event system for bgjobs.

- JobEvent / JobEventType: the event model
- EventBus: callback and queue subscribers
"""

from .types import JobEvent, JobEventType
from .bus import EventBus, EventCallback, EventSubscription

__all__ = [
    "JobEvent",
    "JobEventType",
    "EventBus",
    "EventCallback",
    "EventSubscription",
]
