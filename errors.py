"""Exception types raised across the analysis pipeline.

SourceUnavailable:
    The statement source could not produce content for a subject
    (unknown user, network failure after retries, bad input file).
    Analyzer turns it into a failure report.

BackendError:
    A text-generation call failed (timeout, HTTP error, empty client).
    The summarization and contradiction stages recover from it locally
    by switching to their deterministic fallbacks.
"""


class StancecheckError(Exception):
    """Base class for all pipeline errors."""


class SourceUnavailable(StancecheckError):
    """Raised when a statement source cannot deliver content."""


class BackendError(StancecheckError):
    """Raised when a text-generation backend call fails."""


class BackendUnavailable(BackendError):
    """Raised when the backend is called without being configured."""
