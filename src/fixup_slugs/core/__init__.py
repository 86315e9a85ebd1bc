"""Slug normalization, uniqueness and manual-override core."""

from .errors import (
    PersistConflict,
    RecordNotFound,
    SlugError,
    SlugValidationError,
    StoreLookupError,
    SuffixExhausted,
)
from .manager import SlugManager
from .model import LookupResult, SluggedRecord, SlugProposal, SlugValidation, UpdateResult
from .settings import SlugSettings
from .utils import normalize
from .validate import validate_slug

__all__ = [
    "normalize",
    "validate_slug",
    "SlugManager",
    "SlugSettings",
    "SluggedRecord",
    "SlugValidation",
    "SlugProposal",
    "LookupResult",
    "UpdateResult",
    "SlugError",
    "SlugValidationError",
    "StoreLookupError",
    "PersistConflict",
    "RecordNotFound",
    "SuffixExhausted",
]
