"""Slug syntax rules applied before a slug is accepted."""

import re
from collections.abc import Iterable

from .model import SlugValidation

DEFAULT_MAX_LENGTH = 100

# Top-level route names of the marketplace; a record slug must never shadow them.
DEFAULT_RESERVED = frozenset(
    {
        "about",
        "admin",
        "api",
        "auth",
        "blog",
        "category",
        "chat",
        "community",
        "contact",
        "dashboard",
        "evacuator",
        "fuel",
        "laundries",
        "login",
        "mechanic",
        "mechanics",
        "register",
        "search",
        "service",
        "services",
        "sitemap",
    }
)

_ALLOWED = re.compile(r"^[a-z0-9-]+$")


def is_reserved(slug: str, reserved: Iterable[str] = DEFAULT_RESERVED) -> bool:
    lowered = slug.strip().lower()
    return any(lowered == word.lower() for word in reserved)


def validate_slug(
    slug: str,
    max_length: int = DEFAULT_MAX_LENGTH,
    reserved: Iterable[str] = DEFAULT_RESERVED,
) -> SlugValidation:
    """
    Check a slug against the syntax rules.

    Order matters only for the reason reported: empty, too long, reserved,
    character set, edge hyphens, consecutive hyphens.
    """
    if not slug or not slug.strip():
        return SlugValidation(False, "Slug cannot be empty")

    if len(slug) > max_length:
        return SlugValidation(False, f"Slug must be {max_length} characters or less")

    if is_reserved(slug, reserved):
        return SlugValidation(False, f"Slug {slug.lower()!r} is reserved")

    if not _ALLOWED.match(slug):
        return SlugValidation(
            False, "Slug can only contain lowercase letters, numbers, and hyphens"
        )

    if slug.startswith("-") or slug.endswith("-"):
        return SlugValidation(False, "Slug cannot start or end with a hyphen")

    if "--" in slug:
        return SlugValidation(False, "Slug cannot contain consecutive hyphens")

    return SlugValidation(True)
