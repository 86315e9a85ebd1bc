"""Audit and repair of stored slugs, plus bulk import."""

import logging
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field

from .core.errors import PersistConflict, StoreLookupError, SuffixExhausted
from .core.manager import SlugManager
from .core.model import RecordId, SluggedRecord
from .core.ports import RecordStore
from .core.resolver import base_slug, suffixed
from .core.settings import SlugSettings
from .core.validate import is_reserved, validate_slug

logger = logging.getLogger(__name__)


@dataclass
class Finding:
    severity: str  # "info" | "warn" | "error"
    record_id: RecordId
    message: str


@dataclass
class RepairAction:
    record_id: RecordId
    old_slug: str
    new_slug: str
    reason: str  # "duplicate" | "malformed"
    slug_is_manual: bool = False


@dataclass
class ImportReport:
    created: list[SluggedRecord] = field(default_factory=list)
    generated: list[SluggedRecord] = field(default_factory=list)
    skipped: list[Finding] = field(default_factory=list)




def find_duplicates(records: Iterable[SluggedRecord]) -> dict[str, list[SluggedRecord]]:
    """Slugs held by more than one record, each group ordered by id."""
    groups: dict[str, list[SluggedRecord]] = defaultdict(list)
    for record in sorted(records, key=lambda r: r.id):
        if record.slug:
            groups[record.slug].append(record)
    return {slug: group for slug, group in groups.items() if len(group) > 1}


def find_malformed(
    records: Iterable[SluggedRecord], settings: SlugSettings
) -> list[Finding]:
    """Records whose slug fails validation; manual ones are only warnings."""
    findings = []
    for record in records:
        validation = validate_slug(
            record.slug, max_length=settings.max_length, reserved=settings.reserved
        )
        if not validation:
            severity = "warn" if record.slug_is_manual else "error"
            findings.append(Finding(severity, record.id, f"{record.slug!r}: {validation.reason}"))
    return findings


def audit(records: Iterable[SluggedRecord], settings: SlugSettings) -> list[Finding]:
    records = list(records)
    findings = find_malformed(records, settings)

    for slug, group in find_duplicates(records).items():
        keeper = group[0].id
        for record in group[1:]:
            findings.append(
                Finding("error", record.id, f"{slug!r} duplicates record {keeper}")
            )

    return sorted(findings, key=lambda f: f.record_id)


def plan_repair(
    records: Iterable[SluggedRecord], settings: SlugSettings
) -> list[RepairAction]:
    """
    Work out slug changes that restore validity and uniqueness.

    The lowest id keeps a contested slug; later holders get the next free
    ascending suffix. Malformed auto slugs are regenerated from the display
    name. Malformed manual slugs are left for an operator.
    """
    records = sorted(records, key=lambda r: r.id)

    def valid(slug: str) -> bool:
        return bool(
            validate_slug(slug, max_length=settings.max_length, reserved=settings.reserved)
        )

    taken: set[str] = set()
    losers: list[tuple[SluggedRecord, str]] = []
    for record in records:
        if not valid(record.slug):
            if not record.slug_is_manual:
                losers.append((record, "malformed"))
        elif record.slug in taken:
            losers.append((record, "duplicate"))
        else:
            taken.add(record.slug)

    def first_free(base: str) -> str:
        if base not in taken and not is_reserved(base, settings.reserved):
            return base
        for n in range(2, settings.max_attempts + 1):
            slug = suffixed(base, n, settings.max_length)
            if slug not in taken:
                return slug
        raise SuffixExhausted(base, settings.max_attempts)

    actions = []
    for record, reason in losers:
        if reason == "duplicate":
            new_slug = first_free(record.slug)
        else:
            new_slug = first_free(base_slug(record.display_name, settings))
        taken.add(new_slug)
        actions.append(
            RepairAction(record.id, record.slug, new_slug, reason, record.slug_is_manual)
        )
    return actions


async def apply_repair(
    store: RecordStore, kind: str, actions: Iterable[RepairAction]
) -> int:
    """Persist planned repairs; returns how many slugs changed."""
    applied = 0
    for action in actions:
        await store.update_slug(kind, action.record_id, action.new_slug, action.slug_is_manual)
        logger.info(
            "Repaired %s %s (%s): %r -> %r",
            kind, action.record_id, action.reason, action.old_slug, action.new_slug,
        )
        applied += 1
    return applied


async def import_records(
    manager: SlugManager, records: Iterable[SluggedRecord]
) -> ImportReport:
    """
    Insert records into the manager's kind.

    A supplied slug is kept when valid and free; otherwise a fresh auto slug
    is generated. Ids present in the file are preserved; ids already in the
    store are skipped. A record the store cannot take is reported as skipped
    and the import carries on with the next one.
    """
    report = ImportReport()
    store, kind = manager.store, manager.kind

    for record in records:
        rid = record.id or None
        try:
            if rid is not None and await store.get(kind, rid) is not None:
                report.skipped.append(Finding("warn", rid, "id already present, skipped"))
                continue

            keep = (
                bool(record.slug)
                and bool(manager.validate(record.slug))
                and await manager.check_availability(record.slug)
            )
            if keep:
                try:
                    report.created.append(
                        await store.insert(
                            kind, record.display_name, record.slug, record.slug_is_manual, id=rid
                        )
                    )
                    continue
                except PersistConflict:
                    logger.debug("Import slug %r claimed meanwhile, generating", record.slug)
            slug = await manager.resolver.generate_unique_slug(record.display_name)
            created = await store.insert(kind, record.display_name, slug, False, id=rid)
        except ValueError as exc:
            report.skipped.append(Finding("warn", rid or 0, str(exc)))
            continue
        except (StoreLookupError, SuffixExhausted, PersistConflict) as exc:
            logger.warning("Import of %s %r failed: %s", kind, record.display_name, exc)
            report.skipped.append(Finding("error", rid or 0, f"{record.display_name!r}: {exc}"))
            continue

        if record.slug:
            logger.info(
                "Imported %s %s: slug %r replaced by %r", kind, created.id, record.slug, slug
            )
        report.generated.append(created)

    return report
