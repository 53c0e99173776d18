from __future__ import annotations

from pathlib import Path

import pytest

from conftest import make_excel
from literacy_core.models.config_models import CacheSettings, ExtractionSettings, SourceConfig
from literacy_core.services.cache import JsonFileStore, MemoryStore, TimedCache
from literacy_core.services.tables import load_table, make_cache, source_identity


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_timed_cache_hit_and_expiry():
    clock = FakeClock()
    store = MemoryStore()
    cache = TimedCache(store, max_age_seconds=60, clock=clock)
    cache.put("k", {"v": 1})

    clock.now += 59
    assert cache.get("k") == {"v": 1}

    clock.now += 1
    assert cache.get("k") is None
    assert len(store) == 0


def test_get_or_compute_calls_once_while_fresh():
    clock = FakeClock()
    cache = TimedCache(MemoryStore(), max_age_seconds=60, clock=clock)
    calls = []

    def compute():
        calls.append(1)
        return len(calls)

    assert cache.get_or_compute("k", compute) == 1
    assert cache.get_or_compute("k", compute) == 1
    clock.now += 120
    assert cache.get_or_compute("k", compute) == 2


def test_get_or_compute_does_not_store_failures():
    cache = TimedCache(MemoryStore(), max_age_seconds=60, clock=FakeClock())

    def boom():
        raise RuntimeError("bad source")

    with pytest.raises(RuntimeError):
        cache.get_or_compute("k", boom)
    assert cache.get("k") is None


def test_json_file_store_round_trip(tmp_path: Path):
    store = JsonFileStore(tmp_path / "cache")
    store.set("table:a", {"years": [2019]}, 5.0)
    assert store.get("table:a") == ({"years": [2019]}, 5.0)
    assert store.get("table:b") is None
    store.delete("table:a")
    assert store.get("table:a") is None


def test_json_file_store_corrupt_entry(tmp_path: Path):
    store = JsonFileStore(tmp_path)
    store.set("k", 1, 1.0)
    next(tmp_path.glob("*.json")).write_text("{not json", encoding="utf-8")
    assert store.get("k") is None


def test_load_table_with_cache(temp_workdir: Path, grade4_rows, monkeypatch):
    path = make_excel(temp_workdir / "data" / "g4.xlsx", {"Sheet1": grade4_rows})
    source = SourceConfig(key="grade4", path=str(path))
    cache = make_cache(CacheSettings(directory=str(temp_workdir / ".cache")))

    first = load_table(source, ExtractionSettings(), cache=cache)
    assert first.value("AL", 2022) == 210.0
    assert first.source == "grade4"
    assert list((temp_workdir / ".cache").glob("*.json"))

    def fail(*args, **kwargs):
        raise AssertionError("extract called on a cache hit")

    monkeypatch.setattr("literacy_core.services.tables.extract", fail)
    second = load_table(source, ExtractionSettings(), cache=cache)
    assert second == first


def test_load_table_without_cache_keeps_year_columns(temp_workdir: Path, grade4_rows):
    path = make_excel(temp_workdir / "data" / "g4.xlsx", {"Sheet1": grade4_rows})
    table = load_table(SourceConfig(key="grade4", path=str(path)), ExtractionSettings())
    assert [yc.year for yc in table.year_columns] == [2022, 2019, 2017]


def test_source_identity_changes_with_content(temp_workdir: Path):
    p = temp_workdir / "data" / "s.csv"
    p.write_text("State,2019\nOhio,220\n", encoding="utf-8")
    source = SourceConfig(key="s", path=str(p))
    before = source_identity(source)
    p.write_text("State,2019\nOhio,220\nIowa,221\n", encoding="utf-8")
    assert source_identity(source) != before


def test_make_cache_memory_store_without_directory():
    cache = make_cache(CacheSettings(max_age_minutes=2))
    assert isinstance(cache.store, MemoryStore)
    assert cache.max_age_seconds == 120
