"""
Error types raised across the borehole siting engine
"""

from typing import Optional


class MudhumeniError(Exception):
    """Base class for all engine errors"""


class InvalidGeometry(MudhumeniError, ValueError):
    """Input polygon is missing, malformed or self-intersecting"""


class DataUnavailable(MudhumeniError):
    """A remote data source could not deliver a usable response"""

    def __init__(self, source: str, cause: Optional[BaseException] = None):
        self.source = source
        self.cause = cause
        message = f"Data unavailable from {source}"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class Timeout(DataUnavailable):
    """A remote call exceeded its deadline after all retries"""


class ComputationError(MudhumeniError):
    """A pure computation stage failed on the data it was given"""

    def __init__(self, stage: str, cause: Optional[BaseException] = None):
        self.stage = stage
        self.cause = cause
        message = f"Computation failed in stage '{stage}'"
        if cause is not None:
            message += f": {cause}"
        super().__init__(message)


class CacheError(MudhumeniError):
    """Cache was used with an invalid key or TTL"""


class BoreholeSiteFailure(MudhumeniError):
    """Unrecoverable failure while assembling a borehole site report"""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.message = message
        self.cause = cause
        super().__init__(message)
