import logging

from .errors import RecordNotFound, StoreLookupError, SuffixExhausted
from .ledger import ManualOverrideLedger, failure
from .lookup import SlugLookup
from .model import LookupResult, RecordId, SlugProposal, SlugValidation, UpdateResult
from .ports import RecordStore, SuffixGenerator
from .resolver import UniquenessResolver
from .settings import SlugSettings
from .utils import preview_slug, truncate_slug
from .validate import validate_slug

logger = logging.getLogger(__name__)


class SlugManager:
    """
    Slug operations for one record kind, as the record editor and routing
    layer see them. Store errors come back as typed results.
    """

    def __init__(
        self,
        store: RecordStore,
        kind: str = "service",
        settings: SlugSettings | None = None,
        suffixes: SuffixGenerator | None = None,
    ):
        self.store = store
        self.kind = kind
        self.settings = settings or SlugSettings()
        self.resolver = UniquenessResolver(store, kind, self.settings, suffixes)
        self.ledger = ManualOverrideLedger(store, kind, self.resolver, self.settings)
        self.lookup = SlugLookup(store, kind)

    def preview(self, display_name: str) -> str:
        return truncate_slug(
            preview_slug(display_name, self.settings.fallback), self.settings.max_length
        )

    def validate(self, slug: str) -> SlugValidation:
        return validate_slug(
            slug, max_length=self.settings.max_length, reserved=self.settings.reserved
        )

    async def generate(
        self, display_name: str, exclude_id: RecordId | None = None
    ) -> SlugProposal:
        """Unique slug, or an unsaved preview when the store is unreachable."""
        try:
            slug = await self.resolver.generate_unique_slug(display_name, exclude_id)
        except StoreLookupError as exc:
            logger.warning("slug generation for %r fell back to preview: %s", display_name, exc)
            return SlugProposal(self.preview(display_name), unique=False, error=str(exc))
        except SuffixExhausted as exc:
            return SlugProposal(self.preview(display_name), unique=False, error=str(exc))
        return SlugProposal(slug)

    async def check_availability(
        self, slug: str, exclude_id: RecordId | None = None
    ) -> bool:
        return await self.resolver.slug_available(slug, exclude_id)

    async def find_by_slug(self, slug: str) -> LookupResult:
        return await self.lookup.find_by_slug(slug)

    async def is_slug_manual(self, id: RecordId) -> bool:
        return await self.ledger.is_slug_manual(id)

    async def update_slug(
        self, id: RecordId, slug: str, is_manual: bool = True
    ) -> UpdateResult:
        return await self.ledger.update_service_slug(id, slug, is_manual)

    async def reset_slug_to_auto(
        self, id: RecordId, display_name: str | None = None
    ) -> UpdateResult:
        """Recompute from `display_name`, or the stored name when omitted."""
        if display_name is None:
            try:
                record = await self.store.get(self.kind, id)
            except StoreLookupError as exc:
                return failure(exc)
            if record is None:
                return failure(RecordNotFound(self.kind, id))
            display_name = record.display_name
        return await self.ledger.reset_slug_to_auto(id, display_name)

    async def rename(self, id: RecordId, display_name: str) -> UpdateResult:
        return await self.ledger.regenerate_on_rename(id, display_name)

    async def create(self, display_name: str, slug: str | None = None) -> UpdateResult:
        return await self.ledger.create(display_name, slug)

    async def delete(self, id: RecordId) -> UpdateResult:
        try:
            await self.store.delete(self.kind, id)
        except (RecordNotFound, StoreLookupError) as exc:
            return failure(exc)
        return UpdateResult(True)
