from typing import Protocol

from .model import RecordId, SluggedRecord


class RecordStore(Protocol):
    """
    Persists slugged records, one namespace per record kind.

    Writes that would give two records of one kind the same slug MUST raise
    PersistConflict; an unreachable backend raises StoreLookupError; updates
    of unknown ids raise RecordNotFound.
    """

    async def get(self, kind: str, id: RecordId) -> SluggedRecord | None:
        pass

    async def get_by_slug(self, kind: str, slug: str) -> SluggedRecord | None:
        pass

    async def slug_exists(
        self, kind: str, slug: str, exclude_id: RecordId | None = None
    ) -> bool:
        pass

    async def insert(
        self,
        kind: str,
        display_name: str,
        slug: str,
        slug_is_manual: bool = False,
        id: RecordId | None = None,
    ) -> SluggedRecord:
        pass

    async def update_slug(
        self, kind: str, id: RecordId, slug: str, slug_is_manual: bool
    ) -> SluggedRecord:
        pass

    async def update_display_name(
        self, kind: str, id: RecordId, display_name: str
    ) -> SluggedRecord:
        pass

    async def delete(self, kind: str, id: RecordId) -> None:
        pass

    async def list_records(self, kind: str) -> list[SluggedRecord]:
        pass

    async def list_kinds(self) -> list[str]:
        pass


class SuffixGenerator(Protocol):
    """Random token appended to the fallback slug of an unmappable name."""

    def new_suffix(self) -> str:
        pass
