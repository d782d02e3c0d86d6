"""
Game loop engine for Stay Caffeinated.
"""

from stay_caffeinated.engine.scheduler import Scheduler, ManualScheduler, AsyncioScheduler
from stay_caffeinated.engine.loop import (
    GameLoopEngine,
    GameLoopConfig,
    GameLoopUpdate,
    GameEvent,
    GameEventType,
    EventSeverity,
)

__all__ = [
    "Scheduler",
    "ManualScheduler",
    "AsyncioScheduler",
    "GameLoopEngine",
    "GameLoopConfig",
    "GameLoopUpdate",
    "GameEvent",
    "GameEventType",
    "EventSeverity",
]
