"""Feed handler that runs redundant A/B feeds and watches them for arbitrage."""

from __future__ import annotations

import itertools
import sys
from typing import TextIO

from .arbitrage import ArbitrageDetector, ArbitrageOpportunity
from .market_data import FeedStats, MarketDataUpdate, UpdateType
from .matching_engine import MatchingEngine, MatchingEngineStats
from .feed_simulator import FeedConfig, FeedSimulator
from .order import Order, Side

# Orders generated from quotes start at one million so they stand apart
# from orders entered by users.
_order_ids = itertools.count(1_000_000)

_SIGNIFICANT_PROFIT_BPS = 1.0


def _primary_config() -> FeedConfig:
    return FeedConfig(
        is_primary_feed=True,
        base_latency_ns=5000,
        jitter_normal_ns=1000,
        jitter_spike_ns=500000,
        spike_probability=0.001,
    )


def _backup_config() -> FeedConfig:
    return FeedConfig(
        is_primary_feed=False,
        base_latency_ns=10000,
        jitter_normal_ns=2000,
        jitter_spike_ns=1000000,
        spike_probability=0.002,
    )


def _feed_lines(label: str, stats: FeedStats) -> list[str]:
    return [
        f"{label}:",
        f"  Messages: {stats.messages_received} (dropped: {stats.messages_dropped})",
        f"  Avg latency: {stats.average_latency_us():.2f} μs",
        f"  Jitter events: {stats.jitter_events}",
    ]


class FeedHandler:
    """Publishes market data on a fast primary feed A and a slower backup feed B.

    Updates from both feeds go to an ``ArbitrageDetector``; quotes arriving on
    feed A are also turned into resting bid and ask orders on the matching
    engine.
    """

    def __init__(
        self,
        matching_engine: MatchingEngine,
        config_a: FeedConfig | None = None,
        config_b: FeedConfig | None = None,
    ) -> None:
        self.matching_engine = matching_engine
        self.arbitrage_detector = ArbitrageDetector(callback=self._on_arbitrage)
        self._feed_a = FeedSimulator(
            "A",
            config_a if config_a is not None else _primary_config(),
            callback=lambda update, stats: self._on_feed_update("A", update, stats),
        )
        self._feed_b = FeedSimulator(
            "B",
            config_b if config_b is not None else _backup_config(),
            callback=lambda update, stats: self._on_feed_update("B", update, stats),
        )

    def start(self) -> None:
        """Start both feeds."""
        self._feed_a.start()
        self._feed_b.start()
        print("Feed handler started with A/B feeds")

    def stop(self) -> None:
        """Stop both feeds."""
        self._feed_a.stop()
        self._feed_b.stop()
        print("Feed handler stopped")

    def __enter__(self) -> FeedHandler:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def publish_quote(
        self, symbol_id: int, bid: int, ask: int, bid_size: int, ask_size: int
    ) -> None:
        """Publish the same quote on both feeds."""
        self._feed_a.publish_quote(symbol_id, bid, ask, bid_size, ask_size)
        self._feed_b.publish_quote(symbol_id, bid, ask, bid_size, ask_size)

    def publish_trade(
        self, symbol_id: int, price: int, quantity: int, is_buy: bool
    ) -> None:
        """Publish the same trade on both feeds."""
        self._feed_a.publish_trade(symbol_id, price, quantity, is_buy)
        self._feed_b.publish_trade(symbol_id, price, quantity, is_buy)

    def set_volatile_market(self, volatile: bool) -> None:
        """Switch both feeds into or out of volatile-market jitter."""
        self._feed_a.set_volatile_market(volatile)
        self._feed_b.set_volatile_market(volatile)
        if volatile:
            print("MARKET VOLATILITY: Jitter increased 100x!")
        else:
            print("Market conditions: Normal")

    def format_stats(self) -> str:
        """Feed and arbitrage statistics as a printable report."""
        stats_a = self._feed_a.stats()
        stats_b = self._feed_b.stats()
        arb = self.arbitrage_detector.stats()
        lines = [
            "",
            "=== Feed Statistics ===",
            *_feed_lines("Feed A", stats_a),
            "",
            *_feed_lines("Feed B", stats_b),
            "",
            "=== Arbitrage Detection ===",
            f"Opportunities detected: {arb.opportunities_detected}",
            f"Profitable opportunities: {arb.profitable_opportunities}",
            f"Missed opportunities: {arb.missed_opportunities}",
            f"Average profit: {arb.average_profit_bps():.2f} bps",
            f"Average latency diff: {arb.average_latency_diff_us():.2f} μs",
            f"Max latency diff: {arb.max_latency_diff_ns / 1000.0:.2f} μs",
        ]
        return "\n".join(lines)

    def print_stats(self, file: TextIO | None = None) -> None:
        """Write the statistics report to ``file`` (standard output by default)."""
        print(self.format_stats(), file=file if file is not None else sys.stdout)

    def recent_arbitrage(self, count: int = 10) -> list[ArbitrageOpportunity]:
        """The last ``count`` detected opportunities, oldest first."""
        return self.arbitrage_detector.recent_opportunities(count)

    def engine_stats(self) -> MatchingEngineStats:
        """Counters of the underlying matching engine."""
        return self.matching_engine.stats()

    def _on_feed_update(
        self, feed_id: str, update: MarketDataUpdate, stats: FeedStats
    ) -> None:
        self.arbitrage_detector.on_feed_update(feed_id, update)

        if feed_id != "A" or update.type is not UpdateType.QUOTE:
            return
        quote = update.quote
        if quote is None:
            return
        if quote.bid_price > 0 and quote.bid_size > 0:
            self.matching_engine.submit_order(
                Order(
                    order_id=next(_order_ids),
                    symbol_id=quote.symbol_id,
                    price=quote.bid_price,
                    quantity=quote.bid_size,
                    side=Side.BUY,
                )
            )
        if quote.ask_price > 0 and quote.ask_size > 0:
            self.matching_engine.submit_order(
                Order(
                    order_id=next(_order_ids),
                    symbol_id=quote.symbol_id,
                    price=quote.ask_price,
                    quantity=quote.ask_size,
                    side=Side.SELL,
                )
            )

    def _on_arbitrage(self, opportunity: ArbitrageOpportunity) -> None:
        profit = opportunity.profit_basis_points()
        if opportunity.is_profitable() and profit > _SIGNIFICANT_PROFIT_BPS:
            print(
                f"[ARBITRAGE] Symbol {opportunity.symbol_id}: "
                f"{profit:.2f} bps profit, "
                f"latency diff: {opportunity.latency_difference_ns / 1000.0:.2f} μs, "
                f"fast feed: {opportunity.fast_feed}"
            )