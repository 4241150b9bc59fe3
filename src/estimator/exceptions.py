"""Custom exceptions for the fill estimator.

Numeric edge cases inside the core (empty books, flat positions, exhausted
standing orders) never raise. These exceptions are reserved for malformed
input at the arithmetic and snapshot-conversion boundaries.
"""


class EstimatorError(Exception):
    """Base exception for all estimator errors."""


class InvalidAmountError(EstimatorError):
    """Raised when a value cannot be represented or operated on in pips."""


class SnapshotConversionError(EstimatorError):
    """Raised when an exchange snapshot is missing fields or malformed."""


class InvalidLeverageParametersError(EstimatorError):
    """Raised when a market's leverage schedule cannot define IMF brackets."""


class InvalidPanelInputError(EstimatorError):
    """Raised when buy/sell panel inputs are missing, ambiguous or out of range."""
