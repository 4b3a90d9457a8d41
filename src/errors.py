"""Exceptions raised by the path-sum algebra and the extraction passes.

Extraction *failure* is not an error: :func:`extraction.extract_unitary`
returns ``None`` when it cannot resolve a path sum. The classes below are for
malformed input and violated preconditions.
"""


class PathsumError(Exception):
    """Base class for errors raised by this project."""

    def __init__(self, *message):
        """Set the error message."""
        super().__init__(" ".join(message))
        self.message = " ".join(message)

    def __str__(self):
        """Return the message."""
        return repr(self.message)


class DimensionMismatchError(PathsumError):
    """Raised when path sums of incompatible dimensions are combined."""


class UnbalancedSumError(PathsumError):
    """Raised when two branches of a sum carry different amplitude weight."""


class ExtractionError(PathsumError):
    """Raised when an extraction pass is used out of order or on malformed input."""


class FinalizationError(ExtractionError):
    """Raised when the final affine stage is reached with a non-affine path sum."""


class ConfigError(PathsumError):
    """Raised when an error is encountered reading a settings file."""

    message = "Settings file invalid"
