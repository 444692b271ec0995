"""A market data feed that delivers updates with simulated network latency."""

from __future__ import annotations

import dataclasses
import itertools
import logging
import random
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from .market_data import FeedStats, MarketDataUpdate, Quote, TradeTick
from .spsc_queue import SPSCQueue

logger = logging.getLogger(__name__)

MessageCallback = Callable[[MarketDataUpdate, FeedStats], None]

_IDLE_WAIT_S = 0.000001
_SECONDARY_FEED_EXTRA_NS = 500_000


@dataclass(slots=True)
class FeedConfig:
    """Latency, jitter and loss characteristics of a feed."""

    base_latency_ns: int = 5000
    jitter_normal_ns: int = 1000
    jitter_spike_ns: int = 500000
    spike_probability: float = 0.001
    drop_probability: float = 0.0001
    is_primary_feed: bool = True
    sequence_start: int = 1
    volatile_market: bool = False
    volatile_jitter_multiplier: int = 100


class FeedSimulator:
    """Delivers published updates on a worker thread after a simulated delay.

    ``callback`` receives each delivered update together with a snapshot of
    the feed's statistics; it runs on the worker thread.
    """

    def __init__(
        self,
        feed_id: str,
        config: FeedConfig | None = None,
        callback: MessageCallback | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.feed_id = feed_id
        self.callback = callback
        self._config = dataclasses.replace(config) if config else FeedConfig()
        self._sequence = itertools.count(self._config.sequence_start)
        self._pending: SPSCQueue[MarketDataUpdate] = SPSCQueue()
        self._stats = FeedStats()
        self._stats_lock = threading.Lock()
        self._rng = rng if rng is not None else random.Random()
        self._running = threading.Event()
        self._state_lock = threading.Lock()
        self._worker: threading.Thread | None = None

    def start(self) -> None:
        """Start delivering updates; does nothing if already started."""
        with self._state_lock:
            if self._running.is_set():
                return
            self._running.set()
            self._worker = threading.Thread(
                target=self._run, name=f"feed-{self.feed_id}", daemon=True
            )
            self._worker.start()

    def stop(self) -> None:
        """Stop the worker; updates still queued are not delivered."""
        with self._state_lock:
            if not self._running.is_set():
                return
            self._running.clear()
            worker, self._worker = self._worker, None
        if worker is not None:
            worker.join()

    def __enter__(self) -> FeedSimulator:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def publish_quote(
        self, symbol_id: int, bid: int, ask: int, bid_size: int, ask_size: int
    ) -> None:
        """Queue a quote for delivery."""
        quote = Quote(symbol_id, bid, ask, bid_size, ask_size, self.feed_id)
        quote.sequence_number = next(self._sequence)
        self._pending.enqueue(MarketDataUpdate.from_quote(quote))

    def publish_trade(
        self, symbol_id: int, price: int, quantity: int, is_buy: bool
    ) -> None:
        """Queue a trade for delivery."""
        trade = TradeTick(symbol_id, price, quantity, self.feed_id, is_buy)
        trade.sequence_number = next(self._sequence)
        self._pending.enqueue(MarketDataUpdate.from_trade(trade))

    def set_volatile_market(self, volatile: bool) -> None:
        """Switch the much larger volatile-market jitter on or off."""
        self._config.volatile_market = volatile

    def stats(self) -> FeedStats:
        """A copy of the feed's current statistics."""
        with self._stats_lock:
            return dataclasses.replace(self._stats)

    def _latency_ns(self) -> int:
        config = self._config
        latency = config.base_latency_ns
        if config.volatile_market:
            jitter = config.jitter_normal_ns * config.volatile_jitter_multiplier
            latency += int(self._rng.random() * jitter)
        elif self._rng.random() < config.spike_probability:
            latency += config.jitter_spike_ns
        else:
            latency += int(self._rng.random() * config.jitter_normal_ns)
        if not config.is_primary_feed:
            latency += _SECONDARY_FEED_EXTRA_NS
        return latency

    def _run(self) -> None:
        while self._running.is_set():
            update = self._pending.dequeue()
            if update is None:
                time.sleep(_IDLE_WAIT_S)
                continue

            time.sleep(self._latency_ns() / 1e9)

            if self._rng.random() < self._config.drop_probability:
                with self._stats_lock:
                    self._stats.messages_dropped += 1
                continue

            now = time.monotonic_ns()
            with self._stats_lock:
                stats = self._stats
                if stats.last_update_ns is not None:
                    latency = now - stats.last_update_ns
                    stats.update_latency(latency)
                    if (
                        stats.messages_received > 100
                        and latency > stats.average_latency_us() * 10000
                    ):
                        stats.jitter_events += 1
                stats.last_update_ns = now
                snapshot = dataclasses.replace(stats)

            if self.callback is not None:
                try:
                    self.callback(update, snapshot)
                except Exception:
                    logger.exception("feed callback failed")