"""
Workday events - meetings, code reviews, bugs and lunch breaks.
NO UI DEPENDENCIES.

Each event is announced, starts `warning_time` later and runs for
`duration`. While it runs it scales the caffeine and health drains,
can narrow the optimal zone and can forbid drinking.

Timing is driven entirely by the simulation clock passed to update();
randomness comes from the injected random.Random, so a seeded scheduler
replays the same day every time.
"""
import logging
import random
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from .constants import (
    EVENT_AVOID_RECENT, EVENT_FREQUENCY, EVENT_HISTORY_SIZE, EVENT_MAX_GAP,
    WORKDAY_EVENT_DATA,
)
from .difficulty import DEFAULT_DIFFICULTY, get_difficulty_config
from ..errors import InvalidWorkdayEvent

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkdayEventDefinition:
    id: str
    name: str
    description: str
    duration: float
    warning_time: float
    caffeine_multiplier: float = 1.0
    health_multiplier: float = 1.0
    optimal_zone_shift: float = 0.0   # negative narrows the zone
    drink_restriction: bool = False


WORKDAY_EVENTS: Dict[str, WorkdayEventDefinition] = {
    event_id: WorkdayEventDefinition(id=event_id, **data)
    for event_id, data in WORKDAY_EVENT_DATA.items()
}
EVENT_IDS = tuple(WORKDAY_EVENTS)


def get_workday_event(event_id: str) -> WorkdayEventDefinition:
    """Strict lookup. Raises InvalidWorkdayEvent for unknown ids."""
    try:
        return WORKDAY_EVENTS[event_id]
    except KeyError:
        raise InvalidWorkdayEvent(event_id) from None


class EventTransition(Enum):
    WARNING = "warning"
    STARTED = "started"
    ENDED = "ended"


@dataclass(frozen=True)
class EventNotice:
    transition: EventTransition
    event: WorkdayEventDefinition
    timestamp: float


@dataclass(frozen=True)
class ScheduledEvent:
    definition: WorkdayEventDefinition
    announced_at: float
    start_time: float
    end_time: float

    def is_active(self, now: float) -> bool:
        return self.start_time <= now < self.end_time

    def get_remaining(self, now: float) -> float:
        return max(0.0, self.end_time - now)


@dataclass(frozen=True)
class EventModifiers:
    """What the running event does to a tick. Neutral when nothing runs."""
    caffeine_multiplier: float = 1.0
    health_multiplier: float = 1.0
    optimal_zone_shift: float = 0.0
    drinks_restricted: bool = False


NO_EVENT = EventModifiers()


class WorkdayEventScheduler:
    """
    Picks, announces and runs one workday event at a time.

    Usage:
        events = WorkdayEventScheduler("senior", rng=random.Random(7))
        for notice in events.update(now):
            ...
        events.get_modifiers().caffeine_multiplier
    """

    def __init__(
        self,
        difficulty: str = DEFAULT_DIFFICULTY,
        rng: Optional[random.Random] = None,
        enabled: bool = True
    ):
        get_difficulty_config(difficulty)
        self.difficulty = difficulty
        self.rng = rng if rng is not None else random.Random()
        self.enabled = enabled
        self.events_completed = 0
        self._current: Optional[ScheduledEvent] = None
        self._started = False
        self._history: List[str] = []
        self._next_event_time = self._pick_gap(0.0)

    # =========================================================================
    # TICK
    # =========================================================================

    def update(self, now: float) -> List[EventNotice]:
        """Advance to `now` and report every transition that happened."""
        if not self.enabled:
            return []

        notices: List[EventNotice] = []
        if self._current is None and now >= self._next_event_time:
            notices.append(self._announce(now))

        current = self._current
        if current is None:
            return notices

        if not self._started and now >= current.start_time:
            self._started = True
            logger.info(f"Workday event started: {current.definition.name}")
            notices.append(EventNotice(EventTransition.STARTED, current.definition, now))

        if self._started and now >= current.end_time:
            notices.append(EventNotice(EventTransition.ENDED, current.definition, now))
            self._finish(now)

        return notices

    def _announce(self, now: float) -> EventNotice:
        event_id = self.rng.choice(self._available_events())
        definition = WORKDAY_EVENTS[event_id]
        start = now + definition.warning_time
        self._current = ScheduledEvent(definition, now, start, start + definition.duration)
        self._started = False
        self._remember(event_id)
        logger.debug(f"Announced {event_id} at {now:.0f}ms, starting at {start:.0f}ms")
        return EventNotice(EventTransition.WARNING, definition, now)

    def _finish(self, now: float) -> None:
        logger.info(f"Workday event ended: {self._current.definition.name}")
        self._current = None
        self._started = False
        self.events_completed += 1
        self._next_event_time = self._pick_gap(now)

    def _available_events(self) -> List[str]:
        """Every event, minus the most recent ones while two or more remain."""
        candidates = list(EVENT_IDS)
        if len(self._history) >= EVENT_AVOID_RECENT:
            recent = self._history[-EVENT_AVOID_RECENT:]
            filtered = [e for e in candidates if e not in recent]
            if len(filtered) >= 2:
                return filtered
        return candidates

    def _remember(self, event_id: str) -> None:
        self._history.append(event_id)
        del self._history[:-EVENT_HISTORY_SIZE]

    def _pick_gap(self, now: float) -> float:
        scaling, min_gap = EVENT_FREQUENCY[self.difficulty]
        return now + self.rng.uniform(min_gap * scaling, EVENT_MAX_GAP * scaling)

    # =========================================================================
    # QUERIES
    # =========================================================================

    def get_active_event(self) -> Optional[ScheduledEvent]:
        """The announced or running event, if any."""
        return self._current

    def is_event_running(self) -> bool:
        return self._current is not None and self._started

    def get_modifiers(self) -> EventModifiers:
        if not self.is_event_running():
            return NO_EVENT
        event = self._current.definition
        return EventModifiers(
            caffeine_multiplier=event.caffeine_multiplier,
            health_multiplier=event.health_multiplier,
            optimal_zone_shift=event.optimal_zone_shift,
            drinks_restricted=event.drink_restriction,
        )

    def get_time_until_next_event(self, now: float) -> Optional[float]:
        """None while an event is pending or running, or when disabled."""
        if self._current is not None or not self.enabled:
            return None
        return max(0.0, self._next_event_time - now)

    def get_history(self) -> List[str]:
        return list(self._history)

    # =========================================================================
    # CONTROL
    # =========================================================================

    def force_event(self, event_id: str, now: float) -> EventNotice:
        """Start an event immediately, skipping its warning."""
        definition = get_workday_event(event_id)
        self._current = ScheduledEvent(definition, now, now, now + definition.duration)
        self._started = True
        self._remember(event_id)
        logger.info(f"Workday event forced: {definition.name}")
        return EventNotice(EventTransition.STARTED, definition, now)

    def set_difficulty(self, difficulty: str) -> None:
        """Affects the gap before the next event; one already scheduled keeps its time."""
        get_difficulty_config(difficulty)
        self.difficulty = difficulty

    def reset(self) -> None:
        self._current = None
        self._started = False
        self._history.clear()
        self.events_completed = 0
        self._next_event_time = self._pick_gap(0.0)
