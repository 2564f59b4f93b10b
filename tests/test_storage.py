import pytest

from wayfarer.errors import StorageUnavailable
from wayfarer.storage import JsonFileStore, MemoryStore


@pytest.fixture(params=["file", "memory"])
def store(request, tmp_path):
    if request.param == "file":
        return JsonFileStore(tmp_path / "saves")
    return MemoryStore()


# ── Common behaviour ────────────────────────────────────────


async def test_get_missing_returns_none(store):
    assert await store.get("nope") is None


async def test_set_then_get(store):
    await store.set("wayfarer:save:a", '{"id": "a"}')
    assert await store.get("wayfarer:save:a") == '{"id": "a"}'


async def test_set_overwrites(store):
    await store.set("k", "one")
    await store.set("k", "two")
    assert await store.get("k") == "two"


async def test_list_is_sorted(store):
    for key in ["wayfarer:save:b", "other", "wayfarer:save:a"]:
        await store.set(key, "{}")
    assert await store.list() == ["other", "wayfarer:save:a", "wayfarer:save:b"]


async def test_delete(store):
    await store.set("k", "v")
    await store.delete("k")
    assert await store.get("k") is None
    assert await store.list() == []


async def test_delete_missing_is_noop(store):
    await store.delete("never-set")


# ── JsonFileStore ───────────────────────────────────────────


async def test_file_store_quotes_keys(tmp_path):
    store = JsonFileStore(tmp_path)
    await store.set("a/b:c", "v")
    assert [p.name for p in tmp_path.iterdir()] == ["a%2Fb%3Ac.json"]
    assert await store.list() == ["a/b:c"]


async def test_file_store_leaves_no_temp_files(tmp_path):
    store = JsonFileStore(tmp_path)
    await store.set("k", "v")
    assert not list(tmp_path.glob("*.tmp"))


async def test_file_store_survives_reopen(tmp_path):
    await JsonFileStore(tmp_path).set("k", "persisted")
    assert await JsonFileStore(tmp_path).get("k") == "persisted"


def test_unusable_base_path(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    with pytest.raises(StorageUnavailable):
        JsonFileStore(blocker / "saves")


async def test_write_failure_is_storage_unavailable(tmp_path):
    store = JsonFileStore(tmp_path)
    # A directory where the value file should go makes the rename fail.
    (tmp_path / "k.json").mkdir()
    with pytest.raises(StorageUnavailable):
        await store.set("k", "v")
