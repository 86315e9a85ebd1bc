"""Turn a display name into a slug that no other record of the kind holds."""

import logging

from .errors import SuffixExhausted
from .model import RecordId
from .ports import RecordStore, SuffixGenerator
from .settings import SlugSettings
from .utils import normalize, truncate_slug
from .validate import is_reserved

logger = logging.getLogger(__name__)


def suffixed(base: str, n: int, max_length: int) -> str:
    """`base-n`, with the base trimmed so the whole slug fits max_length."""
    suffix = f"-{n}"
    return truncate_slug(base, max_length - len(suffix)) + suffix


def base_slug(
    display_name: str,
    settings: SlugSettings,
    suffixes: SuffixGenerator | None = None,
) -> str:
    """Normalized name cut to the length limit, or the fallback token."""
    base = truncate_slug(normalize(display_name), settings.max_length)
    if base:
        return base
    fallback = normalize(settings.fallback) or "record"
    if suffixes is not None:
        fallback = f"{fallback}-{suffixes.new_suffix()}"
    return truncate_slug(fallback, settings.max_length)


class UniquenessResolver:
    def __init__(
        self,
        store: RecordStore,
        kind: str,
        settings: SlugSettings | None = None,
        suffixes: SuffixGenerator | None = None,
    ):
        self.store = store
        self.kind = kind
        self.settings = settings or SlugSettings()
        self.suffixes = suffixes

    def base_slug(self, display_name: str) -> str:
        return base_slug(display_name, self.settings, self.suffixes)

    def candidate(self, base: str, n: int) -> str:
        return suffixed(base, n, self.settings.max_length)

    async def is_taken(self, slug: str, exclude_id: RecordId | None = None) -> bool:
        if is_reserved(slug, self.settings.reserved):
            return True
        return await self.store.slug_exists(self.kind, slug, exclude_id)

    async def slug_available(self, slug: str, exclude_id: RecordId | None = None) -> bool:
        return not await self.is_taken(slug, exclude_id)

    async def generate_unique_slug(
        self, display_name: str, exclude_id: RecordId | None = None
    ) -> str:
        """
        Return the first free slug among `base`, `base-2`, `base-3`, ...

        `exclude_id` is the record being edited, so its own current slug
        never counts as a collision. Raises StoreLookupError when the store
        cannot answer and SuffixExhausted after `max_attempts` checks.
        """
        base = self.base_slug(display_name)
        if not await self.is_taken(base, exclude_id):
            return base

        for n in range(2, self.settings.max_attempts + 1):
            slug = self.candidate(base, n)
            logger.debug("%s slug %r taken, trying %r", self.kind, base, slug)
            if not await self.is_taken(slug, exclude_id):
                return slug

        raise SuffixExhausted(base, self.settings.max_attempts)
