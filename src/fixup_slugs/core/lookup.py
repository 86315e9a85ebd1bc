import logging
import re

from .errors import StoreLookupError
from .model import MAX_RECORD_ID, LookupResult, RecordId
from .ports import RecordStore

logger = logging.getLogger(__name__)

_ID_ONLY = re.compile(r"^(\d+)$")
_ID_SLUG = re.compile(r"^(\d+)-(.+)$")  # legacy "425-oil-change" URLs


def extract_record_id(slug_or_id: str) -> RecordId | None:
    """
    Numeric id carried by a path segment, if any.

        >>> extract_record_id("425")
        425
        >>> extract_record_id("425-oil-change")
        425
        >>> extract_record_id("oil-change") is None
        True
        >>> extract_record_id("99999999999999999999") is None
        True
    """
    m = _ID_ONLY.match(slug_or_id) or _ID_SLUG.match(slug_or_id)
    if m is None:
        return None
    record_id = int(m.group(1))
    return record_id if record_id <= MAX_RECORD_ID else None


class SlugLookup:
    def __init__(self, store: RecordStore, kind: str):
        self.store = store
        self.kind = kind

    async def find_by_slug(self, slug: str) -> LookupResult:
        """
        Resolve an inbound path segment to a record. Never raises.

        Exact slug match wins. Otherwise a pure integer, or the legacy
        "<id>-<name>" form, falls back to an id lookup; such hits carry
        `redirect_to` so routing can send the visitor to the canonical slug.
        """
        slug = (slug or "").strip()
        if not slug:
            return LookupResult(error="empty_slug")

        try:
            record = await self.store.get_by_slug(self.kind, slug)
            if record is not None:
                return LookupResult(record=record)

            record_id = extract_record_id(slug)
            if record_id is not None:
                record = await self.store.get(self.kind, record_id)
        except StoreLookupError as exc:
            logger.warning("%s lookup of %r failed: %s", self.kind, slug, exc)
            return LookupResult(error="lookup_failed")

        if record is None:
            return LookupResult(error="not_found")

        redirect = record.slug if record.slug and record.slug != slug else None
        return LookupResult(record=record, redirect_to=redirect)
