"""Tests for duplicate detection, repair and bulk import."""

import pytest

from fixup_slugs.adapters.memory_store import InMemoryStore
from fixup_slugs.core.errors import StoreLookupError
from fixup_slugs.core.manager import SlugManager
from fixup_slugs.core.model import SluggedRecord
from fixup_slugs.core.settings import SlugSettings
from fixup_slugs.maintenance import (
    apply_repair,
    audit,
    find_duplicates,
    find_malformed,
    import_records,
    plan_repair,
)


def legacy_records():
    return [
        SluggedRecord(1, "service", "Oil Change", "oil-change"),
        SluggedRecord(2, "service", "Oil change (old)", "oil-change"),
        SluggedRecord(3, "service", "Oil Change", "oil-change-2"),
        SluggedRecord(4, "service", "Brake Pads", "Brake Pads"),
        SluggedRecord(5, "service", "Tyres", "tyres--old", slug_is_manual=True),
    ]


def test_find_duplicates():
    dupes = find_duplicates(legacy_records())
    assert list(dupes) == ["oil-change"]
    assert [r.id for r in dupes["oil-change"]] == [1, 2]


def test_audit():
    findings = audit(legacy_records(), SlugSettings())
    by_id = {f.record_id: f for f in findings}

    assert set(by_id) == {2, 4, 5}
    assert by_id[2].severity == "error"
    assert "duplicates record 1" in by_id[2].message
    assert by_id[4].severity == "error"
    assert by_id[5].severity == "warn"


def test_audit_clean():
    records = [SluggedRecord(1, "service", "Oil Change", "oil-change")]
    assert audit(records, SlugSettings()) == []


def test_plan_repair():
    actions = plan_repair(legacy_records(), SlugSettings())

    assert [(a.record_id, a.old_slug, a.new_slug, a.reason) for a in actions] == [
        (2, "oil-change", "oil-change-3", "duplicate"),
        (4, "Brake Pads", "brake-pads", "malformed"),
    ]


@pytest.mark.asyncio
async def test_apply_repair():
    store = InMemoryStore(legacy_records())
    settings = SlugSettings()

    actions = plan_repair(await store.list_records("service"), settings)
    assert await apply_repair(store, "service", actions) == 2

    records = await store.list_records("service")
    assert find_duplicates(records) == {}
    # only the operator's malformed manual slug is left
    assert [(f.record_id, f.severity) for f in audit(records, settings)] == [(5, "warn")]
    assert plan_repair(records, settings) == []


@pytest.mark.asyncio
async def test_import_records():
    manager = SlugManager(InMemoryStore([SluggedRecord(7, "service", "Car Wash", "car-wash")]))
    report = await import_records(
        manager,
        [
            SluggedRecord(0, "service", "Oil Change", ""),
            SluggedRecord(10, "service", "Brake Pads", "brakes", slug_is_manual=True),
            SluggedRecord(0, "service", "Car Wash", "car-wash"),
            SluggedRecord(0, "service", "Tyres", "Bad Slug"),
            SluggedRecord(7, "service", "Car Wash", "car-wash"),
        ],
    )

    assert [r.slug for r in report.created] == ["brakes"]
    assert report.created[0].id == 10
    assert report.created[0].slug_is_manual is True
    assert [r.slug for r in report.generated] == ["oil-change", "car-wash-2", "tyres"]
    assert [f.record_id for f in report.skipped] == [7]


def test_find_malformed():
    findings = find_malformed(legacy_records(), SlugSettings())
    assert [(f.record_id, f.severity) for f in findings] == [(4, "error"), (5, "warn")]
    assert "consecutive hyphens" in findings[1].message


def test_duplicated_manual_slug_is_renumbered():
    records = [
        SluggedRecord(1, "service", "Oil Change", "oil"),
        SluggedRecord(2, "service", "Oil Service", "oil", slug_is_manual=True),
    ]
    (action,) = plan_repair(records, SlugSettings())
    assert (action.record_id, action.new_slug, action.slug_is_manual) == (2, "oil-2", True)


@pytest.mark.asyncio
async def test_import_carries_on_after_store_errors():
    seeded = InMemoryStore([SluggedRecord(1, "service", "Oil Change", "oil-change")])
    manager = SlugManager(seeded, settings=SlugSettings(max_attempts=1))

    report = await import_records(
        manager,
        [
            SluggedRecord(0, "service", "Oil Change", ""),
            SluggedRecord(0, "service", "Brake Pads", ""),
        ],
    )

    assert [r.slug for r in report.generated] == ["brake-pads"]
    assert [f.severity for f in report.skipped] == ["error"]
    assert "Oil Change" in report.skipped[0].message


class UnreachableStore(InMemoryStore):
    async def slug_exists(self, kind, slug, exclude_id=None):
        raise StoreLookupError("connection refused")


@pytest.mark.asyncio
async def test_import_reports_unreachable_store():
    report = await import_records(
        SlugManager(UnreachableStore()),
        [SluggedRecord(0, "service", "Oil Change", "oil-change")],
    )

    assert report.generated == [] and report.created == []
    assert [f.severity for f in report.skipped] == ["error"]
