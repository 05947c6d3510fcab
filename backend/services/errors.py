"""
Timeline pipeline errors.

Recoverable per-item failures (one cast's reactions, one fid's address)
never surface as these; they are logged and the item is skipped. Everything
raised from here aborts the whole timeline creation.
"""


class TimelineError(Exception):
    """Base class for timeline pipeline failures."""
    pass


class InvalidAllocationError(TimelineError, ValueError):
    """Raised when the supporter allocation cap is outside [0, 100]."""
    pass


class NeynarAPIError(TimelineError):
    """Raised on a non-2xx or malformed Neynar response."""

    def __init__(self, message: str, status_code: int = None):
        super().__init__(message)
        self.status_code = status_code


class NoCastsFoundError(TimelineError):
    """Raised when cast discovery produced nothing to build a timeline from."""
    pass


class CreatorAddressError(TimelineError):
    """Raised when the creator has no payout address."""
    pass


class RewardManagerUnavailableError(TimelineError):
    """Raised when no unused RewardManager contract is left in the pool."""
    pass


class PayoutInitializationError(TimelineError):
    """Raised when RewardManager.initialize fails, reverts or times out."""

    def __init__(self, message: str, tx_hash: str = None):
        super().__init__(message)
        self.tx_hash = tx_hash


class ShareTableError(TimelineError):
    """Raised when a payout table breaks the basis-point invariants."""
    pass


class TimelinePersistenceError(TimelineError):
    """Raised when the timeline could not be stored after a confirmed initialize."""
    pass
