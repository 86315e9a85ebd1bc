from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

RecordId = int

# ids are SQLite INTEGER primary keys: signed 64-bit
MAX_RECORD_ID = 2**63 - 1


class SlugState(str, Enum):
    UNSET = "unset"
    AUTO = "auto"
    MANUAL = "manual"


@dataclass
class SluggedRecord:
    id: RecordId
    kind: str  # "service" | "category" | "mechanic" | ...
    display_name: str
    slug: str
    slug_is_manual: bool = False
    updated_at: str | None = None  # ISO-8601, set by the store on write

    @property
    def slug_state(self) -> SlugState:
        if not self.slug:
            return SlugState.UNSET
        return SlugState.MANUAL if self.slug_is_manual else SlugState.AUTO

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "kind": self.kind,
            "display_name": self.display_name,
            "slug": self.slug,
            "slug_is_manual": self.slug_is_manual,
            "updated_at": self.updated_at,
        }


@dataclass(frozen=True)
class SlugValidation:
    valid: bool
    reason: str | None = None

    def __bool__(self) -> bool:
        return self.valid


@dataclass(frozen=True)
class LookupResult:
    record: SluggedRecord | None = None
    error: str | None = None  # "not_found" | "lookup_failed" | "empty_slug"
    redirect_to: str | None = None  # canonical slug when reached by id

    @property
    def found(self) -> bool:
        return self.record is not None


@dataclass(frozen=True)
class SlugProposal:
    slug: str
    unique: bool = True  # False: preview only, must not be persisted as-is
    error: str | None = None


@dataclass(frozen=True)
class UpdateResult:
    ok: bool
    record: SluggedRecord | None = None
    error: str | None = None  # "validation" | "conflict" | "not_found" | "lookup_failed" | "exhausted"
    reason: str | None = None

    def __bool__(self) -> bool:
        return self.ok

