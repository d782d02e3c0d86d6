"""
Exception types for Stay Caffeinated.

Programmer errors (unknown difficulty tier, strict drink lookups, forcing an
unknown workday event) raise.
Runtime conditions such as cooldowns are reported through result objects,
and corrupted persisted data is discarded at the persistence boundary.
"""


class StayCaffeinatedError(Exception):
    """Base class for all engine errors."""


class InvalidDifficulty(StayCaffeinatedError, ValueError):
    """Raised when a difficulty tier id is not one of the known tiers."""

    def __init__(self, difficulty: object) -> None:
        self.difficulty = difficulty
        super().__init__(f"Invalid difficulty: {difficulty!r}")


class InvalidDrink(StayCaffeinatedError, KeyError):
    """Raised by strict catalog lookups for an unknown drink id."""

    def __init__(self, drink_id: object) -> None:
        self.drink_id = drink_id
        super().__init__(f"Unknown drink type: {drink_id!r}")

    def __str__(self) -> str:
        return self.args[0]


class StateCorruption(StayCaffeinatedError):
    """Persisted data failed to parse or validate."""

    def __init__(self, key: str, reason: str) -> None:
        self.key = key
        self.reason = reason
        super().__init__(f"Corrupted data for {key}: {reason}")


class InvalidWorkdayEvent(StayCaffeinatedError, KeyError):
    """Raised when forcing a workday event id that does not exist."""

    def __init__(self, event_id: object) -> None:
        self.event_id = event_id
        super().__init__(f"Unknown workday event: {event_id!r}")

    def __str__(self) -> str:
        return self.args[0]
