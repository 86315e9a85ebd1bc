"""Exception types raised inside the slug core."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .model import SlugValidation


class SlugError(Exception):
    """Base class for every slug-core error."""


class SlugValidationError(SlugError, ValueError):
    """A candidate or manual slug failed syntax validation."""

    def __init__(self, slug: str, validation: "SlugValidation"):
        super().__init__(f"Invalid slug {slug!r}: {validation.reason}")
        self.slug = slug
        self.validation = validation


class StoreLookupError(SlugError, LookupError):
    """The record store could not be consulted."""


class PersistConflict(SlugError):
    """The store-level (kind, slug) uniqueness constraint rejected a write."""

    def __init__(self, kind: str, slug: str):
        super().__init__(f"Slug {slug!r} already taken for kind {kind!r}")
        self.kind = kind
        self.slug = slug


class RecordNotFound(SlugError, KeyError):
    def __init__(self, kind: str, id: int):
        super().__init__(f"No {kind} record with id {id}")
        self.kind = kind
        self.id = id

    def __str__(self) -> str:
        return str(self.args[0])


class SuffixExhausted(SlugError):
    """Too many collisions for one base slug; points at duplicate data."""

    def __init__(self, base: str, attempts: int):
        super().__init__(
            f"No free slug for base {base!r} after {attempts} attempts"
        )
        self.base = base
        self.attempts = attempts
