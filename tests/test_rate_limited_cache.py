import unittest

from barback.errors import RateLimitExceeded
from barback.rate_limited_cache import RateLimitedCache


class FakeClock:
    def __init__(self, start_ms: int = 1_000):
        self.now = start_ms

    def advance(self, ms: int) -> None:
        self.now += ms

    def __call__(self) -> int:
        return self.now


class CountingFetch:
    def __init__(self, value="v", exc=None):
        self.calls = 0
        self.value = value
        self.exc = exc

    def __call__(self):
        self.calls += 1
        if self.exc is not None:
            raise self.exc
        return f"{self.value}{self.calls}"


class TestRateLimitedCache(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.cache = RateLimitedCache(clock=self.clock)

    def _get(self, key, fetch, ttl_ms=5_000, max_calls=2, window_ms=60_000, provider="p"):
        return self.cache.get_or_fetch(provider, key, ttl_ms, max_calls, window_ms, fetch)

    def test_live_hit_returns_cached_value_without_counting(self):
        fetch = CountingFetch()
        self.assertEqual(self._get("k", fetch), "v1")
        self.clock.advance(4_999)
        self.assertEqual(self._get("k", fetch), "v1")
        self.assertEqual(fetch.calls, 1)
        self.assertEqual(self.cache.rate_limit_state("p").call_count, 1)

    def test_entry_expires_at_exactly_ttl(self):
        fetch = CountingFetch()
        self._get("k", fetch)
        self.clock.advance(5_000)
        self.assertEqual(self._get("k", fetch), "v2")
        self.assertEqual(fetch.calls, 2)

    def test_budget_exhausted_raises_without_fetching(self):
        fetch = CountingFetch()
        self._get("a", fetch)
        self._get("b", fetch)
        self.clock.advance(100)

        with self.assertRaises(RateLimitExceeded) as ctx:
            self._get("c", fetch)

        self.assertEqual(fetch.calls, 2)
        self.assertEqual(ctx.exception.provider, "p")
        self.assertEqual(ctx.exception.retry_after_ms, 59_900)
        self.assertEqual(ctx.exception.retry_after_seconds, 60)

    def test_cached_keys_still_served_when_budget_exhausted(self):
        fetch = CountingFetch()
        self._get("a", fetch)
        self._get("b", fetch)
        self.assertEqual(self._get("a", fetch), "v1")

    def test_window_resets_after_elapsed(self):
        fetch = CountingFetch()
        self._get("a", fetch)
        self._get("b", fetch)
        self.clock.advance(60_000)

        self.assertEqual(self._get("c", fetch), "v3")
        state = self.cache.rate_limit_state("p")
        self.assertEqual(state.call_count, 1)
        self.assertEqual(state.window_start_ms, self.clock.now)

    def test_failed_fetch_is_counted_but_not_cached(self):
        failing = CountingFetch(exc=ValueError("boom"))
        with self.assertRaises(ValueError):
            self._get("k", failing)

        self.assertEqual(self.cache.rate_limit_state("p").call_count, 1)
        self.assertIsNone(self.cache.peek("p", "k", 5_000))

        ok = CountingFetch()
        self.assertEqual(self._get("k", ok), "v1")
        self.assertEqual(self.cache.rate_limit_state("p").call_count, 2)

    def test_none_results_are_cached(self):
        calls = []

        def fetch():
            calls.append(1)
            return None

        self.assertIsNone(self._get("k", fetch))
        self.assertIsNone(self._get("k", fetch))
        self.assertEqual(len(calls), 1)

    def test_providers_have_independent_budgets(self):
        fetch = CountingFetch()
        self._get("a", fetch, max_calls=1, provider="one")
        with self.assertRaises(RateLimitExceeded):
            self._get("b", fetch, max_calls=1, provider="one")
        self.assertEqual(self._get("b", fetch, max_calls=1, provider="two"), "v2")

    def test_same_key_under_different_providers_is_distinct(self):
        fetch = CountingFetch()
        self._get("k", fetch, provider="one")
        self._get("k", fetch, provider="two")
        self.assertEqual(fetch.calls, 2)

    def test_rate_limit_state_is_a_copy(self):
        self._get("k", CountingFetch())
        snapshot = self.cache.rate_limit_state("p")
        snapshot.call_count = 99
        self.assertEqual(self.cache.rate_limit_state("p").call_count, 1)
        self.assertIsNone(self.cache.rate_limit_state("unknown"))

    def test_clear_drops_entries_and_windows(self):
        fetch = CountingFetch()
        self._get("k", fetch)
        self.cache.clear()
        self.assertIsNone(self.cache.rate_limit_state("p"))
        self.assertEqual(self._get("k", fetch), "v2")


class TestRateLimitExceeded(unittest.TestCase):
    def test_retry_after_seconds_rounds_up_with_floor_of_one(self):
        self.assertEqual(RateLimitExceeded("p", 1_500).retry_after_seconds, 2)
        self.assertEqual(RateLimitExceeded("p", 2_000).retry_after_seconds, 2)
        self.assertEqual(RateLimitExceeded("p", 0).retry_after_seconds, 1)


if __name__ == "__main__":
    unittest.main()
