from dataclasses import dataclass

from .validate import DEFAULT_MAX_LENGTH, DEFAULT_RESERVED


@dataclass(frozen=True)
class SlugSettings:
    """Knobs the slug core reads; built from the [slugs] config table."""

    max_length: int = DEFAULT_MAX_LENGTH
    max_attempts: int = 1000  # ascending suffixes tried before giving up
    persist_retries: int = 3  # store-level conflicts tolerated per auto write
    fallback: str = "service"  # base for names that normalize to nothing
    reserved: frozenset[str] = DEFAULT_RESERVED
