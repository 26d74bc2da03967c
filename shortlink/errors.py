"""Error taxonomy for the shortlink core.

Error Propagation
=================
::
    InvalidInputError        → caller (client error), never retried
    UniquenessConflictError  → retried by ShorteningService with a fresh code
    CodeGenerationError      → caller (server error) once retries are exhausted
    StoreUnavailableError    → caller (server error), the store is mandatory
    CacheUnavailableError    → only raised by health checks; elsewhere absorbed

A missing mapping is not an error: lookups return ``None``.
"""

__all__ = [
    "ShortLinkError",
    "InvalidInputError",
    "UniquenessConflictError",
    "CodeGenerationError",
    "StoreUnavailableError",
    "CacheUnavailableError",
]


class ShortLinkError(Exception):
    """Base class for all shortlink errors."""


class InvalidInputError(ShortLinkError):
    """The submitted long URL is not an absolute, well-formed URI."""


class UniquenessConflictError(ShortLinkError):
    """The store rejected an insert because the code already exists."""

    def __init__(self, code: str):
        super().__init__(f"Short code '{code}' already exists")
        self.code = code


class CodeGenerationError(ShortLinkError):
    """No unique code could be produced within the configured attempts."""

    def __init__(self, attempts: int):
        super().__init__(f"Could not allocate a unique short code after {attempts} attempts")
        self.attempts = attempts


class StoreUnavailableError(ShortLinkError):
    """The durable store could not be reached or timed out."""


class CacheUnavailableError(ShortLinkError):
    """The cache could not be reached."""
