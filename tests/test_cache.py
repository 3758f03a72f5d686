from concurrent.futures import ThreadPoolExecutor

import pytest

from mudhumeni_core.utils.cache import GeologyScoreCache, GeospatialCache, geospatial_ttl_ms
from mudhumeni_core.utils.errors import CacheError


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class TestGeospatialCache:
    def setup_method(self):
        self.clock = FakeClock()
        self.cache = GeospatialCache(clock=self.clock)

    def test_value_visible_until_ttl_elapses(self):
        self.cache.set('k', 'v', ttl_ms=1000)

        self.clock.advance(0.999)
        assert self.cache.get('k') == 'v'

        self.clock.advance(0.001)
        assert self.cache.get('k') is None
        assert not self.cache.has('k')

    def test_entries_without_ttl_never_expire(self):
        self.cache.set('k', 'v')
        self.clock.advance(10 ** 9)
        assert self.cache.get('k') == 'v'

    def test_default_ttl_applies(self):
        cache = GeospatialCache(default_ttl_ms=500, clock=self.clock)
        cache.set('k', 'v')
        self.clock.advance(0.5)
        assert cache.get('k', 'missing') == 'missing'

    def test_has_delete_and_clear(self):
        self.cache.set('a', 1)
        self.cache.set('b', 2)
        assert self.cache.has('a')
        assert self.cache.delete('a') is True
        assert self.cache.delete('a') is False
        assert not self.cache.has('a')

        self.cache.clear()
        assert len(self.cache) == 0

    def test_falsy_values_are_cached(self):
        self.cache.set('zero', 0)
        assert self.cache.has('zero')
        assert self.cache.get('zero', 'missing') == 0

    def test_set_if_absent_keeps_live_entry(self):
        assert self.cache.set_if_absent('k', 1, ttl_ms=1000) == 1
        assert self.cache.set_if_absent('k', 2, ttl_ms=1000) == 1

        self.clock.advance(2)
        assert self.cache.set_if_absent('k', 3) == 3

    def test_cleanup_drops_expired_entries(self):
        self.cache.set('short', 1, ttl_ms=100)
        self.cache.set('long', 2, ttl_ms=10_000)
        self.clock.advance(1)

        assert self.cache.cleanup() == 1
        assert self.cache.size() == 1
        assert self.cache.get('long') == 2

    def test_writes_sweep_expired_entries_periodically(self):
        cache = GeospatialCache(clock=self.clock, sweep_interval_ms=1000)

        for i in range(1000):
            cache.set(f"tile-{i}", i, ttl_ms=1000)
            self.clock.advance(10)

        assert len(cache._entries) <= 1

    def test_sweep_waits_for_interval(self):
        cache = GeospatialCache(clock=self.clock, sweep_interval_ms=1000)
        cache.set('a', 1, ttl_ms=100)

        self.clock.advance(0.5)
        cache.set('b', 2, ttl_ms=100)
        assert set(cache._entries) == {'a', 'b'}

        self.clock.advance(0.6)
        cache.set('c', 3, ttl_ms=100)
        assert set(cache._entries) == {'c'}

    @pytest.mark.parametrize('ttl_ms', [0, -5])
    def test_non_positive_ttl_rejected(self, ttl_ms):
        with pytest.raises(CacheError):
            self.cache.set('k', 'v', ttl_ms=ttl_ms)


class TestGeologyScoreCache:
    def test_keys_round_to_four_decimals(self):
        cache = GeologyScoreCache()
        assert cache.make_key(-17.82923, 31.05217) == (-17.8292, 31.0522)

        cache.set((-17.8292, 31.0522), 0.61)
        assert cache.get((-17.82923, 31.05217)) == 0.61
        assert cache.has((-17.82918, 31.05224))

    def test_entries_do_not_expire_by_default(self):
        clock = FakeClock()
        cache = GeologyScoreCache(clock=clock)
        cache.set((1.0, 2.0), 0.5)
        clock.advance(10 ** 9)
        assert cache.get((1.0, 2.0)) == 0.5

    @pytest.mark.parametrize('key', ['-17.8,31.0', (1.0,), (1.0, 2.0, 3.0), ('a', 'b')])
    def test_invalid_keys_raise(self, key):
        with pytest.raises(CacheError):
            GeologyScoreCache().get(key)

    def test_concurrent_writers_agree_on_first_value(self):
        cache = GeologyScoreCache()

        def score(i):
            # every coordinate rounds to (-17.83, 31.05)
            key = (-17.83 + (i % 7) * 1e-6, 31.05 - (i % 5) * 1e-6)
            stored = cache.set_if_absent(key, i)
            return stored, cache.get(key)

        with ThreadPoolExecutor(max_workers=16) as pool:
            results = list(pool.map(score, range(400)))

        winners = {stored for stored, _ in results} | {read for _, read in results}
        assert len(winners) == 1
        assert cache.get((-17.83, 31.05)) in winners
        assert len(cache._entries) == 1


def test_geospatial_ttl_categories():
    assert geospatial_ttl_ms('roads') == 30 * 60 * 1000
    assert geospatial_ttl_ms('flood') == 60 * 60 * 1000
    assert geospatial_ttl_ms('unknown') is None
