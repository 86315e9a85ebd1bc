from collections import defaultdict
from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime, timezone

from ..core.errors import PersistConflict, RecordNotFound
from ..core.model import RecordId, SluggedRecord
from ..core.ports import RecordStore


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class InMemoryStore(RecordStore):
    """
    Dict-backed record store enforcing (kind, slug) uniqueness on writes.

    Seed records are taken as-is, duplicates included, so legacy data can be
    loaded and repaired.
    """

    def __init__(self, records: Iterable[SluggedRecord] = ()):
        self._records: dict[str, dict[RecordId, SluggedRecord]] = defaultdict(dict)
        self._next_id = 1
        for record in records:
            self._records[record.kind][record.id] = replace(record)
            self._next_id = max(self._next_id, record.id + 1)

    def _holder(self, kind: str, slug: str, exclude_id: RecordId | None) -> RecordId | None:
        for rid, record in self._records[kind].items():
            if record.slug == slug and rid != exclude_id:
                return rid
        return None

    def _require(self, kind: str, id: RecordId) -> SluggedRecord:
        record = self._records[kind].get(id)
        if record is None:
            raise RecordNotFound(kind, id)
        return record

    async def get(self, kind: str, id: RecordId) -> SluggedRecord | None:
        record = self._records[kind].get(id)
        return replace(record) if record else None

    async def get_by_slug(self, kind: str, slug: str) -> SluggedRecord | None:
        # lowest id wins when seeded data holds duplicates
        for rid in sorted(self._records[kind]):
            if self._records[kind][rid].slug == slug:
                return replace(self._records[kind][rid])
        return None

    async def slug_exists(
        self, kind: str, slug: str, exclude_id: RecordId | None = None
    ) -> bool:
        return self._holder(kind, slug, exclude_id) is not None

    async def insert(
        self,
        kind: str,
        display_name: str,
        slug: str,
        slug_is_manual: bool = False,
        id: RecordId | None = None,
    ) -> SluggedRecord:
        if self._holder(kind, slug, None) is not None:
            raise PersistConflict(kind, slug)
        if id is not None and any(id in records for records in self._records.values()):
            raise ValueError(f"Record id {id} already in use")
        record = SluggedRecord(
            id=self._next_id if id is None else id,
            kind=kind,
            display_name=display_name,
            slug=slug,
            slug_is_manual=slug_is_manual,
            updated_at=_now(),
        )
        self._records[kind][record.id] = record
        self._next_id = max(self._next_id, record.id + 1)
        return replace(record)

    async def update_slug(
        self, kind: str, id: RecordId, slug: str, slug_is_manual: bool
    ) -> SluggedRecord:
        record = self._require(kind, id)
        if self._holder(kind, slug, id) is not None:
            raise PersistConflict(kind, slug)
        record.slug = slug
        record.slug_is_manual = slug_is_manual
        record.updated_at = _now()
        return replace(record)

    async def update_display_name(
        self, kind: str, id: RecordId, display_name: str
    ) -> SluggedRecord:
        record = self._require(kind, id)
        record.display_name = display_name
        record.updated_at = _now()
        return replace(record)

    async def delete(self, kind: str, id: RecordId) -> None:
        self._require(kind, id)
        del self._records[kind][id]

    async def list_records(self, kind: str) -> list[SluggedRecord]:
        return [replace(self._records[kind][rid]) for rid in sorted(self._records[kind])]

    async def list_kinds(self) -> list[str]:
        return sorted(kind for kind, records in self._records.items() if records)
