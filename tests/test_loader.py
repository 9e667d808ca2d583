import asyncio

import pytest

from conftest import FakeSource, record, write_layout
from devmap.errors import DataUnavailable, NoDeveloperData
from devmap.loader import BatchLoader
from devmap.settings import Settings
from devmap.sources import DirectoryDataSource
from devmap.store import DeveloperStore


def batch_files(batches):
    files = {
        "data/index.json": {
            "total_developers": sum(len(b) for b in batches),
            "total_batches": len(batches),
            "batches": [{"batch": n, "file": f"developers-batch-{n}.json"} for n in range(len(batches))],
        }
    }
    for n, devs in enumerate(batches):
        files[f"data/developers-batch-{n}.json"] = {"batch": n, "developers": devs}
    return files


def make_loader(files, settings, **kw):
    source = FakeSource(files)
    return BatchLoader(source, DeveloperStore(), settings, **kw), source


def test_duplicate_login_keeps_first_batch(settings):
    loader, _ = make_loader(batch_files([
        [record("octocat", 10, "Berlin")],
        [record("octocat", 99, "Tokyo"), record("hubot", 5, "Paris")],
    ]), settings)

    asyncio.run(loader.load_initial())

    assert len(loader.store) == 2
    assert loader.store.get("octocat").location == "Berlin"
    assert loader.store.get("octocat").followers == 10


def test_load_batch_is_noop_when_loaded(settings):
    loader, source = make_loader(batch_files([[record("a")]]), settings)
    asyncio.run(loader.load_batch(0))
    assert asyncio.run(loader.load_batch(0)) == []
    assert source.requests.count("data/developers-batch-0.json") == 1


def test_ensure_loaded_fills_gap_in_order(settings):
    loader, source = make_loader(batch_files([[record(f"d{n}")] for n in range(6)]), settings)
    asyncio.run(loader.load_initial())
    assert loader.loaded == {0, 1}

    source.requests.clear()
    asyncio.run(loader.ensure_loaded(5))

    assert source.requests == [f"data/developers-batch-{n}.json" for n in (2, 3, 4)]
    assert loader.loaded == {0, 1, 2, 3, 4}


def test_ensure_loaded_stops_at_total_batches(settings):
    loader, source = make_loader(batch_files([[record(f"d{n}")] for n in range(3)]), settings)
    asyncio.run(loader.load_initial())
    source.requests.clear()

    asyncio.run(loader.ensure_loaded(5))

    assert source.requests == ["data/developers-batch-2.json"]
    assert loader.loaded == {0, 1, 2}


def test_failed_batch_is_skipped(settings):
    files = batch_files([[record(f"d{n}")] for n in range(4)])
    files["data/developers-batch-2.json"] = DataUnavailable("boom")
    notices = []
    loader, _ = make_loader(files, settings, notify=notices.append)
    asyncio.run(loader.load_initial())

    asyncio.run(loader.ensure_loaded(4))

    assert loader.loaded == {0, 1, 3}
    assert "d3" in loader.store
    assert notices == ["Failed to load developer data batch 2"]


@pytest.mark.parametrize("zoom, expected", [
    (2, None),
    (4.9, None),
    (5, 3),
    (6, 4),
    (7.5, 5),
    (30, 10),
])
def test_target_for_zoom(zoom, expected):
    loader = BatchLoader(None, DeveloperStore(), Settings())
    loader.index = {"total_batches": 50}
    assert loader.target_for_zoom(zoom) == expected


def test_target_for_zoom_capped_by_index():
    loader = BatchLoader(None, DeveloperStore(), Settings())
    loader.index = {"total_batches": 3}
    assert loader.target_for_zoom(12) == 3


def test_expand_for_zoom_below_threshold_loads_nothing(settings):
    loader, source = make_loader(batch_files([[record(f"d{n}")] for n in range(8)]), settings)
    asyncio.run(loader.load_initial())
    source.requests.clear()

    asyncio.run(loader.expand_for_zoom(3))
    assert source.requests == []

    asyncio.run(loader.expand_for_zoom(6))
    assert loader.loaded == {0, 1, 2, 3}


def test_missing_index_uses_single_file(settings):
    loader, _ = make_loader({
        "developers-data.json": {"developers": [record("a"), record("b")]},
    }, settings)

    asyncio.run(loader.load_initial())

    assert loader.index is None
    assert loader.fallback
    assert len(loader.store) == 2
    asyncio.run(loader.expand_for_zoom(10))
    assert loader.loaded == {0}


def test_first_batch_not_found_falls_back(settings):
    files = batch_files([[record("a")], [record("b")]])
    del files["data/developers-batch-0.json"]
    files["developers-data.json"] = {"developers": [record("x"), record("y"), record("z")]}
    loader, _ = make_loader(files, settings)

    asyncio.run(loader.load_batch(0))

    assert loader.fallback
    assert [d.login for d in loader.store] == ["x", "y", "z"]


def test_later_batch_not_found_does_not_fall_back(settings):
    files = batch_files([[record("a")], [record("b")]])
    del files["data/developers-batch-1.json"]
    files["developers-data.json"] = {"developers": [record("x")]}
    loader, source = make_loader(files, settings)

    asyncio.run(loader.load_initial())

    assert not loader.fallback
    assert "developers-data.json" not in source.requests
    assert [d.login for d in loader.store] == ["a"]


def test_no_data_at_all_is_fatal(settings):
    loader, _ = make_loader({}, settings)
    with pytest.raises(NoDeveloperData):
        asyncio.run(loader.load_initial())


def test_malformed_record_is_skipped(settings):
    loader, _ = make_loader(batch_files([[{"name": "no login"}, record("ok")]]), settings)
    asyncio.run(loader.load_initial())
    assert [d.login for d in loader.store] == ["ok"]


def test_directory_source_layout(tmp_path, settings):
    write_layout(tmp_path, batches=[[record("a")], [record("b")], [record("c")]])
    loader = BatchLoader(DirectoryDataSource(tmp_path), DeveloperStore(), settings)

    asyncio.run(loader.load_initial())

    assert loader.total_batches == 3
    assert [d.login for d in loader.store] == ["a", "b"]


@pytest.mark.parametrize("payload", [None, [], "text", {"developers": {"login": "x"}}])
def test_malformed_batch_payload_is_skipped(settings, payload):
    files = batch_files([[record(f"d{n}")] for n in range(4)])
    files["data/developers-batch-2.json"] = payload
    notices = []
    loader, _ = make_loader(files, settings, notify=notices.append)
    asyncio.run(loader.load_initial())

    asyncio.run(loader.ensure_loaded(4))

    assert loader.loaded == {0, 1, 3}
    assert notices == ["Failed to load developer data batch 2"]


def test_malformed_index_uses_single_file(settings):
    loader, _ = make_loader({
        "data/index.json": ["not", "an", "object"],
        "developers-data.json": {"developers": [record("a")]},
    }, settings)

    asyncio.run(loader.load_initial())

    assert loader.index is None
    assert loader.fallback


def test_malformed_single_file_is_fatal(settings):
    loader, _ = make_loader({"developers-data.json": None}, settings)
    with pytest.raises(NoDeveloperData):
        asyncio.run(loader.load_initial())


def test_fallback_replaces_remaining_initial_batches(settings):
    files = batch_files([[record("a")], [record("b")], [record("c")]])
    del files["data/developers-batch-0.json"]
    files["developers-data.json"] = {"developers": [record("x")]}
    loader, source = make_loader(files, settings)

    asyncio.run(loader.load_initial())
    asyncio.run(loader.ensure_loaded(3))

    assert loader.fallback
    assert source.requests == [
        "data/index.json",
        "data/developers-batch-0.json",
        "developers-data.json",
    ]
    assert [d.login for d in loader.store] == ["x"]


def test_pauses_only_between_fetches(monkeypatch):
    settings = Settings(initial_batches=2, batch_delay=0.5, initial_batch_delay=0.25)
    loader, _ = make_loader(batch_files([[record(f"d{n}")] for n in range(5)]), settings)
    sleeps = []

    async def fake_sleep(delay):
        sleeps.append(delay)

    monkeypatch.setattr("devmap.loader.asyncio.sleep", fake_sleep)
    asyncio.run(loader.load_initial())
    assert sleeps == [0.25]

    sleeps.clear()
    asyncio.run(loader.ensure_loaded(5))
    assert sleeps == [0.5, 0.5]
    assert loader.loaded == {0, 1, 2, 3, 4}

    sleeps.clear()
    asyncio.run(loader.ensure_loaded(5))
    assert sleeps == []
