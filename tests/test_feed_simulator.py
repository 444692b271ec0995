import random
import threading
import time

from micromatch.feed_simulator import FeedConfig, FeedSimulator
from micromatch.market_data import UpdateType


class _HighRandom(random.Random):
    """Always draws near the top of the range: no spikes, no drops."""

    def random(self):
        return 0.999


def _wait_until(predicate, timeout=3.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.001)
    return predicate()


class _Collector:
    def __init__(self):
        self.lock = threading.Lock()
        self.updates = []
        self.stats = []

    def __call__(self, update, stats):
        with self.lock:
            self.updates.append(update)
            self.stats.append(stats)

    def count(self):
        with self.lock:
            return len(self.updates)


def test_feed_simulator_basic():
    collector = _Collector()
    feed = FeedSimulator("A", FeedConfig(drop_probability=0.0), callback=collector)
    feed.start()
    for i in range(10):
        feed.publish_quote(1, 10000 + i, 10001 + i, 100, 100)
    _wait_until(lambda: collector.count() >= 10)
    feed.stop()

    assert 8 <= collector.count() <= 10
    assert all(u.type is UpdateType.QUOTE for u in collector.updates)
    assert all(u.quote.symbol_id == 1 for u in collector.updates)
    assert all(u.quote.feed_id == "A" for u in collector.updates)

    stats = feed.stats()
    assert stats.messages_received == collector.count() - 1
    assert stats.average_latency_us() > 0


def test_updates_delivered_in_order_with_sequence_numbers():
    collector = _Collector()
    config = FeedConfig(drop_probability=0.0, sequence_start=100)
    with FeedSimulator("B", config, callback=collector) as feed:
        for bid in (500, 501, 502):
            feed.publish_quote(4, bid, bid + 1, 10, 10)
        assert _wait_until(lambda: collector.count() >= 3)
    assert [u.quote.sequence_number for u in collector.updates] == [100, 101, 102]
    assert [u.quote.bid_price for u in collector.updates] == [500, 501, 502]
    assert all(u.quote.feed_id == "B" for u in collector.updates)


def test_trade_delivered():
    collector = _Collector()
    with FeedSimulator("A", FeedConfig(drop_probability=0.0), callback=collector) as feed:
        feed.publish_trade(2, 12345, 7, True)
        assert _wait_until(lambda: collector.count() >= 1)
    (update,) = collector.updates
    assert update.type is UpdateType.TRADE
    assert (update.trade.symbol_id, update.trade.price) == (2, 12345)
    assert update.trade.quantity == 7
    assert update.trade.is_buy_side is True
    assert update.trade.sequence_number == 1


def test_all_packets_dropped():
    collector = _Collector()
    feed = FeedSimulator("A", FeedConfig(drop_probability=1.0), callback=collector)
    feed.start()
    for _ in range(5):
        feed.publish_quote(1, 10000, 10001, 100, 100)
    _wait_until(lambda: feed.stats().messages_dropped >= 5)
    feed.stop()
    stats = feed.stats()
    assert stats.messages_dropped == 5
    assert stats.messages_received == 0
    assert collector.count() == 0


def test_feed_jitter_injection():
    config = FeedConfig(
        base_latency_ns=1000,
        jitter_normal_ns=500,
        jitter_spike_ns=100000,
        spike_probability=0.1,
    )
    collector = _Collector()
    feed = FeedSimulator("A", config, callback=collector)
    feed.start()
    for _ in range(100):
        feed.publish_quote(1, 10000, 10001, 100, 100)
        time.sleep(0.00001)
    _wait_until(lambda: collector.count() + feed.stats().messages_dropped >= 100)
    feed.stop()

    latencies = [s.latency_max_ns for s in collector.stats if s.messages_received > 1]
    assert latencies
    assert max(latencies) > 50000


def test_volatile_market_jitter():
    config = FeedConfig(volatile_market=True, volatile_jitter_multiplier=100)
    collector = _Collector()
    feed = FeedSimulator("A", config, callback=collector)
    feed.start()
    for _ in range(50):
        feed.publish_quote(1, 10000, 10001, 100, 100)
        time.sleep(0.0001)
    _wait_until(lambda: collector.count() + feed.stats().messages_dropped >= 50)
    feed.stop()
    assert max(s.latency_max_ns for s in collector.stats) > 100000


def test_set_volatile_market_multiplies_jitter():
    config = FeedConfig(
        base_latency_ns=0, jitter_normal_ns=5_000_000, volatile_jitter_multiplier=10
    )
    feed = FeedSimulator("A", config, rng=_HighRandom())
    feed.set_volatile_market(True)
    feed.start()
    feed.publish_quote(1, 10000, 10001, 100, 100)
    feed.publish_quote(1, 10000, 10001, 100, 100)
    _wait_until(lambda: feed.stats().messages_received >= 1)
    feed.stop()
    stats = feed.stats()
    assert stats.messages_received == 1
    assert stats.latency_max_ns >= 45_000_000


def test_secondary_feed_adds_latency():
    config = FeedConfig(
        base_latency_ns=0, jitter_normal_ns=0, is_primary_feed=False
    )
    feed = FeedSimulator("B", config, rng=_HighRandom())
    feed.start()
    feed.publish_quote(1, 10000, 10001, 100, 100)
    feed.publish_quote(1, 10000, 10001, 100, 100)
    _wait_until(lambda: feed.stats().messages_received >= 1)
    feed.stop()
    stats = feed.stats()
    assert stats.messages_received == 1
    assert stats.latency_min_ns >= 500_000


def test_no_delivery_after_stop():
    collector = _Collector()
    with FeedSimulator("A", FeedConfig(drop_probability=0.0), callback=collector) as feed:
        feed.publish_quote(1, 10000, 10001, 100, 100)
        assert _wait_until(lambda: collector.count() >= 1)
    feed.publish_quote(1, 10000, 10001, 100, 100)
    time.sleep(0.05)
    assert collector.count() == 1


def test_stats_snapshot_is_a_copy():
    feed = FeedSimulator("A", FeedConfig(drop_probability=0.0))
    snapshot = feed.stats()
    snapshot.messages_received = 42
    assert feed.stats().messages_received == 0