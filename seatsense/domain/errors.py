"""Error taxonomy shared by services and controllers."""

from __future__ import annotations


class SeatSenseError(Exception):
    """Base exception for recommendation workflow failures."""


class InputValidationError(SeatSenseError):
    """Raised when caller input is invalid."""


class PreferenceValidationError(InputValidationError):
    """Raised when ranking preferences or limits are invalid."""


class StatusValidationError(InputValidationError):
    """Raised when a submitted status observation is invalid."""


class EstimationValidationError(InputValidationError):
    """Raised when occupancy estimation input is invalid."""


class SpotNotFoundError(SeatSenseError):
    """Raised when a spot id does not exist in the store."""


class UpstreamError(SeatSenseError):
    """Raised when the spot/status store fails."""


class UpstreamFetchError(UpstreamError):
    """Raised when the store is unreachable or returns malformed data on read."""


class UpstreamWriteError(UpstreamError):
    """Raised when the store rejects or fails an append."""


class ComputationError(SeatSenseError):
    """Raised when scoring produces a non-finite value; indicates a defect."""
