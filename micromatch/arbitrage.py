"""Detection of price discrepancies between the A and B feeds."""

from __future__ import annotations

import dataclasses
import logging
import threading
import time
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field

from .market_data import MarketDataUpdate, Quote, TradeTick, UpdateType

logger = logging.getLogger(__name__)

_MAX_RECENT = 1000
_TRADE_LAG_THRESHOLD_NS = 1_000_000


@dataclass(frozen=True, slots=True)
class ArbitrageOpportunity:
    """A discrepancy between the two feeds' quotes for one symbol."""

    symbol_id: int
    fast_feed: str
    slow_feed: str
    price_difference: int
    latency_difference_ns: int
    feed_a_bid: int
    feed_a_ask: int
    feed_b_bid: int
    feed_b_ask: int
    timestamp_ns: int = field(default_factory=time.monotonic_ns)

    def profit_basis_points(self) -> float:
        """Profit of buying on one feed and selling on the other, in bps."""
        if 0 < self.feed_a_ask < self.feed_b_bid:
            return (self.feed_b_bid - self.feed_a_ask) / self.feed_a_ask * 10000
        if 0 < self.feed_b_ask < self.feed_a_bid:
            return (self.feed_a_bid - self.feed_b_ask) / self.feed_b_ask * 10000
        return 0.0

    def is_profitable(self) -> bool:
        return self.profit_basis_points() > 0.0


@dataclass(slots=True)
class ArbitrageStats:
    """Aggregate figures over every detected opportunity."""

    opportunities_detected: int = 0
    profitable_opportunities: int = 0
    missed_opportunities: int = 0
    total_profit_bps: float = 0.0
    max_latency_diff_ns: int = 0
    total_latency_diff_ns: int = 0

    def record_opportunity(self, opportunity: ArbitrageOpportunity) -> None:
        self.opportunities_detected += 1
        if opportunity.is_profitable():
            self.profitable_opportunities += 1
            self.total_profit_bps += opportunity.profit_basis_points()
        self.max_latency_diff_ns = max(
            self.max_latency_diff_ns, opportunity.latency_difference_ns
        )
        self.total_latency_diff_ns += opportunity.latency_difference_ns

    def average_latency_diff_us(self) -> float:
        if self.opportunities_detected == 0:
            return 0.0
        return self.total_latency_diff_ns / self.opportunities_detected / 1000.0

    def average_profit_bps(self) -> float:
        if self.profitable_opportunities == 0:
            return 0.0
        return self.total_profit_bps / self.profitable_opportunities


ArbitrageCallback = Callable[[ArbitrageOpportunity], None]


@dataclass(slots=True)
class _SymbolState:
    feed_a: Quote | None = None
    feed_b: Quote | None = None

    def update(self, feed_id: str, quote: Quote) -> None:
        if feed_id == "A":
            self.feed_a = quote
        else:
            self.feed_b = quote


class ArbitrageDetector:
    """Compares quotes from feed A and feed B and reports discrepancies.

    Any feed id other than ``"A"`` is treated as feed B. ``callback`` is
    invoked for every opportunity, from the thread that delivered the update.
    """

    def __init__(self, callback: ArbitrageCallback | None = None) -> None:
        self.callback = callback
        self._lock = threading.Lock()
        self._symbols: dict[int, _SymbolState] = {}
        self._trade_times: dict[int, dict[str, int]] = {}
        self._recent: deque[ArbitrageOpportunity] = deque(maxlen=_MAX_RECENT)
        self._stats = ArbitrageStats()

    def on_feed_update(self, feed_id: str, update: MarketDataUpdate) -> None:
        """Process one update received on ``feed_id``."""
        opportunity = None
        with self._lock:
            if update.type is UpdateType.QUOTE and update.quote is not None:
                opportunity = self._process_quote(feed_id, update.quote)
            elif update.type is UpdateType.TRADE and update.trade is not None:
                self._process_trade(feed_id, update.trade)
        if opportunity is not None and self.callback is not None:
            try:
                self.callback(opportunity)
            except Exception:
                logger.exception("arbitrage callback failed")

    def stats(self) -> ArbitrageStats:
        """A copy of the current statistics."""
        with self._lock:
            return dataclasses.replace(self._stats)

    def recent_opportunities(self, count: int = 10) -> list[ArbitrageOpportunity]:
        """The last ``count`` opportunities, oldest first."""
        with self._lock:
            items = list(self._recent)
        return items[-count:] if count > 0 else []

    def _process_quote(self, feed_id: str, quote: Quote) -> ArbitrageOpportunity | None:
        state = self._symbols.setdefault(quote.symbol_id, _SymbolState())
        state.update(feed_id, quote)
        if state.feed_a is None or state.feed_b is None:
            return None
        return self._check(quote.symbol_id, state.feed_a, state.feed_b)

    def _process_trade(self, feed_id: str, trade: TradeTick) -> None:
        times = self._trade_times.setdefault(trade.symbol_id, {})
        times[feed_id] = trade.timestamp_ns
        if "A" in times and "B" in times:
            if abs(times["A"] - times["B"]) > _TRADE_LAG_THRESHOLD_NS:
                self._stats.missed_opportunities += 1

    def _check(
        self, symbol_id: int, a: Quote, b: Quote
    ) -> ArbitrageOpportunity | None:
        crossed = (0 < a.ask_price < b.bid_price) or (
            b.ask_price > 0 and a.bid_price > 0 and a.bid_price > b.ask_price
        )
        bid_diff = abs(a.bid_price - b.bid_price)
        ask_diff = abs(a.ask_price - b.ask_price)
        if not (bid_diff > 0 or ask_diff > 0 or crossed):
            return None

        if a.timestamp_ns < b.timestamp_ns:
            fast, slow = "A", "B"
            latency = b.timestamp_ns - a.timestamp_ns
        else:
            fast, slow = "B", "A"
            latency = a.timestamp_ns - b.timestamp_ns

        opportunity = ArbitrageOpportunity(
            symbol_id=symbol_id,
            fast_feed=fast,
            slow_feed=slow,
            price_difference=max(bid_diff, ask_diff),
            latency_difference_ns=latency,
            feed_a_bid=a.bid_price,
            feed_a_ask=a.ask_price,
            feed_b_bid=b.bid_price,
            feed_b_ask=b.ask_price,
        )
        self._stats.record_opportunity(opportunity)
        self._recent.append(opportunity)
        return opportunity