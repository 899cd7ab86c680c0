"""Tests for the bounded result store."""

import pytest

from results import DirectResult, SourceHandle, VirtualResult
from store import ResultStore
from tests.conftest import make_image


def make_virtual():
    return VirtualResult(400, 400, make_image(10, 10), SourceHandle(make_image(5, 5)))


class TestResultStore:
    def test_put_and_get(self):
        store = ResultStore()
        result = DirectResult(make_image(4, 4))
        result_id = store.put(result, "photo.png", 2)
        entry = store.get(result_id)
        assert entry.result is result
        assert entry.filename == "photo.png"
        assert len(store) == 1

    def test_evicts_oldest_beyond_limit(self):
        store = ResultStore(max_entries=2)
        ids = [store.put(DirectResult(make_image(4, 4)), f"{i}.png", 2) for i in range(3)]
        assert len(store) == 2
        assert store.get(ids[0]) is None
        assert store.get(ids[1]) is not None
        assert store.get(ids[2]) is not None

    def test_eviction_releases_virtual_source(self):
        store = ResultStore(max_entries=1)
        first = make_virtual()
        store.put(first, "a.png", 40)
        assert not first.source.released
        store.put(make_virtual(), "b.png", 40)
        assert first.source.released

    def test_many_puts_stay_bounded(self):
        store = ResultStore(max_entries=3)
        for i in range(50):
            store.put(make_virtual(), f"{i}.png", 40)
        assert len(store) == 3

    def test_discard_releases_source(self):
        store = ResultStore()
        result = make_virtual()
        result_id = store.put(result, "a.png", 40)
        assert store.discard(result_id) is True
        assert result.source.released
        assert store.discard(result_id) is False

    def test_release_unknown_id(self):
        with pytest.raises(KeyError):
            ResultStore().release_source("missing")

    def test_rejects_non_positive_limit(self):
        with pytest.raises(ValueError):
            ResultStore(max_entries=0)
