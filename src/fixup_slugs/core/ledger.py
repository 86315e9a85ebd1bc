"""Manual-override bookkeeping for record slugs.

A record's slug is either derived from its display name (auto) or chosen by
an operator (manual). Renames regenerate auto slugs only; a manual slug
moves back to auto solely through `reset_slug_to_auto`.
"""

import logging

from .errors import (
    PersistConflict,
    RecordNotFound,
    SlugError,
    SlugValidationError,
    StoreLookupError,
    SuffixExhausted,
)
from .model import RecordId, SluggedRecord, UpdateResult
from .ports import RecordStore
from .resolver import UniquenessResolver
from .settings import SlugSettings
from .validate import validate_slug

logger = logging.getLogger(__name__)

_ERROR_CODES: tuple[tuple[type[SlugError], str], ...] = (
    (SlugValidationError, "validation"),
    (PersistConflict, "conflict"),
    (RecordNotFound, "not_found"),
    (StoreLookupError, "lookup_failed"),
    (SuffixExhausted, "exhausted"),
)


def failure(exc: SlugError, record: SluggedRecord | None = None) -> UpdateResult:
    """Typed result for an error caught at the editor boundary."""
    for exc_type, code in _ERROR_CODES:
        if isinstance(exc, exc_type):
            return UpdateResult(False, record=record, error=code, reason=str(exc))
    return UpdateResult(False, record=record, error="error", reason=str(exc))


class ManualOverrideLedger:
    def __init__(
        self,
        store: RecordStore,
        kind: str,
        resolver: UniquenessResolver,
        settings: SlugSettings | None = None,
    ):
        self.store = store
        self.kind = kind
        self.resolver = resolver
        self.settings = settings or resolver.settings

    def _check(self, slug: str) -> None:
        validation = validate_slug(
            slug, max_length=self.settings.max_length, reserved=self.settings.reserved
        )
        if not validation:
            raise SlugValidationError(slug, validation)

    async def is_slug_manual(self, id: RecordId) -> bool:
        """
        Persisted manual flag; unknown records read as not manual.

        Store failures propagate as StoreLookupError: an unreadable flag must
        never be mistaken for "auto" and let a manual slug be overwritten.
        """
        record = await self.store.get(self.kind, id)
        return bool(record and record.slug_is_manual)

    async def _persist_auto(
        self, id: RecordId, display_name: str, slug: str | None = None
    ) -> SluggedRecord:
        """Write an auto slug for `display_name`, starting from `slug` if given."""
        for attempt in range(self.settings.persist_retries + 1):
            if slug is None or attempt:
                slug = await self.resolver.generate_unique_slug(display_name, exclude_id=id)
            try:
                return await self.store.update_slug(self.kind, id, slug, False)
            except PersistConflict:
                logger.warning(
                    "%s %s: slug %r claimed concurrently (attempt %d)",
                    self.kind, id, slug, attempt + 1,
                )
        raise PersistConflict(self.kind, slug or "")

    async def _insert_auto(self, display_name: str) -> SluggedRecord:
        slug = ""
        for attempt in range(self.settings.persist_retries + 1):
            slug = await self.resolver.generate_unique_slug(display_name)
            try:
                return await self.store.insert(self.kind, display_name, slug, False)
            except PersistConflict:
                logger.warning(
                    "new %s: slug %r claimed concurrently (attempt %d)",
                    self.kind, slug, attempt + 1,
                )
        raise PersistConflict(self.kind, slug)

    async def update_service_slug(
        self, id: RecordId, new_slug: str, is_manual: bool = True
    ) -> UpdateResult:
        """Operator edit: validate, check uniqueness excluding `id`, persist."""
        try:
            self._check(new_slug)
            record = await self.store.get(self.kind, id)
            if record is None:
                raise RecordNotFound(self.kind, id)
            if await self.resolver.is_taken(new_slug, exclude_id=id):
                raise PersistConflict(self.kind, new_slug)
            # the store constraint still has the final word on a race
            updated = await self.store.update_slug(self.kind, id, new_slug, is_manual)
        except SlugError as exc:
            return failure(exc)

        logger.info(
            "%s %s slug %r -> %r (%s)",
            self.kind, id, record.slug, updated.slug, "manual" if is_manual else "auto",
        )
        return UpdateResult(True, record=updated)

    async def reset_slug_to_auto(
        self, id: RecordId, current_display_name: str
    ) -> UpdateResult:
        try:
            record = await self.store.get(self.kind, id)
            if record is None:
                raise RecordNotFound(self.kind, id)
            updated = await self._persist_auto(id, current_display_name)
        except SlugError as exc:
            return failure(exc)

        logger.info("%s %s slug reset to auto %r", self.kind, id, updated.slug)
        return UpdateResult(True, record=updated)

    async def regenerate_on_rename(
        self, id: RecordId, new_display_name: str
    ) -> UpdateResult:
        """
        Persist a new display name and follow it with the slug if it is auto.

        The new auto slug is worked out before anything is written, so a
        store failure during generation leaves the record as it was. If the
        slug write itself fails, the old name is put back.

        The manual check and the writes are not atomic; a concurrent
        operator edit landing in between loses to this regeneration.
        """
        try:
            record = await self.store.get(self.kind, id)
            if record is None:
                raise RecordNotFound(self.kind, id)
            if record.slug_is_manual:
                renamed = await self.store.update_display_name(self.kind, id, new_display_name)
                logger.debug("%s %s renamed, manual slug %r kept", self.kind, id, record.slug)
                return UpdateResult(True, record=renamed)
            slug = await self.resolver.generate_unique_slug(new_display_name, exclude_id=id)
            renamed = await self.store.update_display_name(self.kind, id, new_display_name)
        except SlugError as exc:
            return failure(exc)

        try:
            updated = await self._persist_auto(id, new_display_name, slug)
        except SlugError as exc:
            return await self._undo_rename(record, renamed, exc)

        if updated.slug != record.slug:
            logger.info("%s %s renamed, slug %r -> %r", self.kind, id, record.slug, updated.slug)
        return UpdateResult(True, record=updated)

    async def _undo_rename(
        self, before: SluggedRecord, renamed: SluggedRecord, exc: SlugError
    ) -> UpdateResult:
        try:
            await self.store.update_display_name(self.kind, before.id, before.display_name)
        except SlugError as restore_exc:
            logger.warning(
                "%s %s: slug write failed and display name %r could not be restored: %s",
                self.kind, before.id, before.display_name, restore_exc,
            )
            # the caller sees what is actually stored
            return failure(exc, record=renamed)
        return failure(exc)

    async def create(self, display_name: str, slug: str | None = None) -> UpdateResult:
        """Insert a record; an explicit `slug` is validated and marked manual."""
        try:
            if slug is None:
                record = await self._insert_auto(display_name)
            else:
                self._check(slug)
                if await self.resolver.is_taken(slug):
                    raise PersistConflict(self.kind, slug)
                record = await self.store.insert(self.kind, display_name, slug, True)
        except SlugError as exc:
            return failure(exc)

        logger.info("created %s %s with slug %r", self.kind, record.id, record.slug)
        return UpdateResult(True, record=record)
