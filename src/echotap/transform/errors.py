"""
echotap Transform Errors

Exception hierarchy shared by the request-normalization pipeline and the
two response transformers.

Only structural failures are raised to the host (which answers with a 500):
- PathError subclasses (bad indexing into the request tree)
- CapturePatternError (malformed urlRegex parameter)
- TemplateEvaluationError (anything failing inside the richer template mode)

BodyFormatError is reported on DecodeResult and logged, never raised by
decoding. OutboundError is only ever set on a webhook future.
"""

from typing import Optional


class TransformError(Exception):
    """Base class for every failure raised while transforming a response."""


class BodyFormatError(TransformError):
    """The body matched none of JSON, XML, key=value or query parameters."""


class PathError(TransformError):
    """A field path could not be resolved against the request tree."""

    def __init__(self, message: str, path: str, segment: Optional[str] = None):
        super().__init__(message)
        self.path = path
        self.segment = segment


class NotAListError(PathError):
    """An indexed segment addressed something that is not a list."""


class IndexOutOfBoundsError(PathError):
    """An indexed segment addressed a position outside the list."""

    def __init__(self, message: str, path: str, segment: str, index: int, size: int):
        super().__init__(message, path, segment)
        self.index = index
        self.size = size


class CapturePatternError(TransformError):
    """The urlRegex transformer parameter is not a valid regular expression."""

    def __init__(self, message: str, pattern: str):
        super().__init__(message)
        self.pattern = pattern


class TemplateEvaluationError(TransformError):
    """Evaluation of a richer-mode template failed."""


class OutboundError(TransformError):
    """A webhook POST failed (connection error or non-2xx status)."""

    def __init__(self, message: str, url: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code
