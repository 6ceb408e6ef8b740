"""Custom exceptions for the gas tracker.

Transport and upstream-data exceptions live here so that clients, feeds and
the tracker can share them without circular imports.
"""


class GasTrackerError(Exception):
    """Base exception for all gas tracker errors."""


class TransportUnavailable(GasTrackerError):
    """Raised when a push subscription cannot be established or is lost.

    Feeds react by falling back to polling; this is never user-visible.
    """


class FetchError(GasTrackerError):
    """Raised when a single fetch attempt against an upstream endpoint fails."""


class MalformedUpstreamValue(FetchError):
    """Raised when an upstream fee or price value fails a sanity check."""


class InvalidFeedTransition(GasTrackerError):
    """Raised when a feed is asked to move to a state it cannot reach."""
