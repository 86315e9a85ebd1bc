"""Contract tests shared by the in-memory and SQLite record stores."""

import tempfile
from pathlib import Path

import pytest

from fixup_slugs.adapters.memory_store import InMemoryStore
from fixup_slugs.adapters.sqlite_store import SQLiteStore
from fixup_slugs.core.errors import PersistConflict, RecordNotFound
from fixup_slugs.core.manager import SlugManager


@pytest.fixture(params=["memory", "sqlite"])
def store(request):
    if request.param == "memory":
        yield InMemoryStore()
        return
    with tempfile.TemporaryDirectory() as tmpdir:
        yield SQLiteStore(db_path=Path(tmpdir) / "records.sqlite")


@pytest.mark.asyncio
async def test_insert_and_get(store):
    record = await store.insert("service", "Oil Change", "oil-change")
    assert record.id > 0
    assert record.updated_at

    fetched = await store.get("service", record.id)
    assert fetched.display_name == "Oil Change"
    assert fetched.slug == "oil-change"
    assert fetched.slug_is_manual is False

    assert (await store.get_by_slug("service", "oil-change")).id == record.id
    assert await store.get("category", record.id) is None
    assert await store.get_by_slug("service", "missing") is None


@pytest.mark.asyncio
async def test_slug_exists_with_exclusion(store):
    record = await store.insert("service", "Oil Change", "oil-change")
    assert await store.slug_exists("service", "oil-change")
    assert not await store.slug_exists("service", "oil-change", exclude_id=record.id)
    assert not await store.slug_exists("category", "oil-change")


@pytest.mark.asyncio
async def test_unique_per_kind(store):
    await store.insert("service", "Oil Change", "oil-change")
    with pytest.raises(PersistConflict):
        await store.insert("service", "Oil Change", "oil-change")

    # same slug in another kind is fine
    other = await store.insert("category", "Oil Change", "oil-change")
    assert other.kind == "category"


@pytest.mark.asyncio
async def test_update_slug(store):
    first = await store.insert("service", "Oil Change", "oil-change")
    second = await store.insert("service", "Brake Pads", "brake-pads")

    updated = await store.update_slug("service", first.id, "engine-oil", True)
    assert updated.slug == "engine-oil"
    assert updated.slug_is_manual is True

    with pytest.raises(PersistConflict):
        await store.update_slug("service", second.id, "engine-oil", False)
    assert (await store.get("service", second.id)).slug == "brake-pads"

    with pytest.raises(RecordNotFound):
        await store.update_slug("service", 999, "whatever", False)


@pytest.mark.asyncio
async def test_update_display_name(store):
    record = await store.insert("service", "Oil Change", "oil-change", True)
    updated = await store.update_display_name("service", record.id, "Oil Service")
    assert updated.display_name == "Oil Service"
    assert updated.slug == "oil-change"
    assert updated.slug_is_manual is True

    with pytest.raises(RecordNotFound):
        await store.update_display_name("service", 999, "Nope")


@pytest.mark.asyncio
async def test_explicit_ids(store):
    record = await store.insert("service", "Oil Change", "oil-change", id=425)
    assert record.id == 425
    with pytest.raises(ValueError):
        await store.insert("service", "Brake Pads", "brake-pads", id=425)

    following = await store.insert("service", "Brake Pads", "brake-pads")
    assert following.id > 425


@pytest.mark.asyncio
async def test_delete_and_listing(store):
    a = await store.insert("service", "Oil Change", "oil-change")
    b = await store.insert("service", "Brake Pads", "brake-pads")
    await store.insert("mechanic", "Giorgi", "giorgi")

    assert [r.id for r in await store.list_records("service")] == [a.id, b.id]
    assert await store.list_kinds() == ["mechanic", "service"]

    await store.delete("service", a.id)
    assert await store.get("service", a.id) is None
    with pytest.raises(RecordNotFound):
        await store.delete("service", a.id)

    # a freed slug can be taken again
    again = await store.insert("service", "Oil Change", "oil-change")
    assert again.slug == "oil-change"


@pytest.mark.asyncio
async def test_out_of_range_ids(store):
    manager = SlugManager(store, kind="service")
    await manager.create("Oil Change")
    huge = 99999999999999999999

    found = await manager.find_by_slug(str(huge))
    assert found.error == "not_found"
    assert (await manager.find_by_slug(f"{huge}-oil-change")).error == "not_found"

    assert await store.get("service", huge) is None
    assert (await manager.rename(huge, "Brake Pads")).error == "not_found"
    assert (await manager.update_slug(huge, "brake-pads")).error == "not_found"
    assert (await manager.reset_slug_to_auto(huge)).error == "not_found"
    assert (await manager.delete(huge)).error == "not_found"
    assert (await manager.generate("Oil Change", exclude_id=huge)).slug == "oil-change-2"
