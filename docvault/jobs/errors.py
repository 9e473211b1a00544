"""
Job Errors

The dispatcher decides between retry and immediate failure purely
from the exception type a handler raises.
"""


class JobError(Exception):
    """Base exception for job queue and dispatch errors."""
    pass


class JobConfigurationError(JobError):
    """Raised when the dispatcher is wired up incorrectly (e.g. a job type with no handler)."""
    pass


class NonRetryableJobError(JobError):
    """
    A failure that would happen again on every attempt.

    Jobs raising this are marked failed on the first attempt
    instead of being retried.
    """
    pass


class JobValidationError(NonRetryableJobError):
    """Raised when a job payload is invalid for its handler."""
    pass


class UnprocessableDocumentError(NonRetryableJobError):
    """Raised when the source blob can't be parsed (corrupt PDF, unknown image format)."""
    pass


class JobTimeoutError(JobError):
    """Raised when a handler runs past the dispatcher's deadline."""
    pass
