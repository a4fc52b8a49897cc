"""Public shared envelope API for filevault components."""

from .builders import failure, success, with_error
from .envelope import Envelope
from .meta import EnvelopeKind, EnvelopeMeta, new_meta
from .payload import Payload
from .validate import normalize_meta, validate_meta

__all__ = [
    "Envelope",
    "EnvelopeKind",
    "EnvelopeMeta",
    "Payload",
    "failure",
    "new_meta",
    "normalize_meta",
    "success",
    "validate_meta",
    "with_error",
]
