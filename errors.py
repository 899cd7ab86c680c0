"""Error types raised by the upscaling core."""
from enum import Enum


class ErrorKind(str, Enum):
    INVALID_INPUT = "invalid_input"
    PLATFORM_LIMIT_EXCEEDED = "platform_limit_exceeded"
    BUSY = "busy"
    NO_SOURCE_AVAILABLE = "no_source_available"


class UpscaleError(Exception):
    """Base class for every failure the core reports to its caller."""
    kind: ErrorKind = None


class InvalidInput(UpscaleError):
    """Non-positive dimensions or an unusable scale factor."""
    kind = ErrorKind.INVALID_INPUT


class PlatformLimitExceeded(UpscaleError):
    """The surface could not allocate even the first step."""
    kind = ErrorKind.PLATFORM_LIMIT_EXCEEDED


class Busy(UpscaleError):
    """Raised when a pipeline already has an operation in flight."""
    kind = ErrorKind.BUSY


class NoSourceAvailable(UpscaleError):
    """A virtual result was materialized after its source was released."""
    kind = ErrorKind.NO_SOURCE_AVAILABLE


class SurfaceAllocationError(Exception):
    """Raised by a raster surface when an output buffer cannot be allocated."""
    pass
