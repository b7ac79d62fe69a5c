"""
Configuration errors raised by BacteriCards.

Runtime scheduling never raises: stale indices, unscheduled cards and an
exhausted anti-repeat window all fall back to safe defaults. Only invalid
configuration (bad deck file, bad proportion, empty subset) is surfaced.
"""


class SchedulerConfigError(Exception):
    """Base class for configuration problems that prevent a session from starting."""
    pass


class DeckError(SchedulerConfigError):
    """Raised when the deck file is missing, unreadable or malformed."""
    pass


class InvalidProportionError(SchedulerConfigError, ValueError):
    """Raised when a deck proportion outside the allowed set is requested."""
    pass


class EmptySubsetError(SchedulerConfigError):
    """Raised when a proportion would leave no card in play."""
    pass
