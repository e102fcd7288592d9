"""
Error taxonomy for the scoring & ranking engine.

Single-entity operations raise these directly. Batch operations collect
per-item failures in their summary instead; callers that prefer an
exception can call ``summary.raise_for_errors()`` to get a PartialFailure.
"""


class PoolError(Exception):
    """Base class for all engine errors"""

    status_code = 400

    def __init__(self, message, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self):
        data = {"success": False, "error": self.message, "type": type(self).__name__}
        if self.details:
            data["details"] = self.details
        return data


class ValidationError(PoolError):
    """Malformed input, e.g. an incomplete or duplicated podium"""

    status_code = 400


class InvalidStateError(PoolError):
    """A precondition of the operation is not met"""

    status_code = 409


class NotFoundError(InvalidStateError):
    """Referenced match or prediction does not exist"""

    status_code = 404


class PartialFailure(PoolError):
    """A batch finished but some items failed"""

    status_code = 207

    def __init__(self, summary):
        failed = len(summary.errors)
        super().__init__(
            f"{summary.succeeded} of {summary.examined} succeeded, {failed} failed",
            errors=summary.errors,
        )
        self.summary = summary
