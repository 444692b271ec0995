"""Market data messages carried by the simulated feeds."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import IntEnum


class UpdateType(IntEnum):
    """Kind of market data update."""

    QUOTE = 0
    TRADE = 1
    IMBALANCE = 2
    STATUS = 3


@dataclass(slots=True)
class Quote:
    """Level 1 quote: best bid and ask with their sizes."""

    symbol_id: int = 0
    bid_price: int = 0
    ask_price: int = 0
    bid_size: int = 0
    ask_size: int = 0
    feed_id: str = ""
    timestamp_ns: int = field(default_factory=time.monotonic_ns)
    sequence_number: int = 0


@dataclass(slots=True)
class TradeTick:
    """A reported trade."""

    symbol_id: int = 0
    price: int = 0
    quantity: int = 0
    feed_id: str = ""
    is_buy_side: bool = False
    timestamp_ns: int = field(default_factory=time.monotonic_ns)
    sequence_number: int = 0


@dataclass(frozen=True, slots=True)
class MarketDataUpdate:
    """A single update: either a quote or a trade."""

    type: UpdateType
    quote: Quote | None = None
    trade: TradeTick | None = None

    @classmethod
    def from_quote(cls, quote: Quote) -> MarketDataUpdate:
        return cls(type=UpdateType.QUOTE, quote=quote)

    @classmethod
    def from_trade(cls, trade: TradeTick) -> MarketDataUpdate:
        return cls(type=UpdateType.TRADE, trade=trade)


@dataclass(slots=True)
class FeedStats:
    """Counters and latency figures for one feed."""

    messages_received: int = 0
    messages_dropped: int = 0
    latency_sum_ns: int = 0
    latency_min_ns: int | None = None
    latency_max_ns: int = 0
    jitter_events: int = 0
    last_sequence: int = 0
    last_update_ns: int | None = None

    def update_latency(self, latency_ns: int) -> None:
        """Record one delivered message with the given latency."""
        self.latency_sum_ns += latency_ns
        if self.latency_min_ns is None or latency_ns < self.latency_min_ns:
            self.latency_min_ns = latency_ns
        self.latency_max_ns = max(self.latency_max_ns, latency_ns)
        self.messages_received += 1

    def average_latency_us(self) -> float:
        """Mean latency in microseconds, or 0.0 with no messages."""
        if self.messages_received == 0:
            return 0.0
        return self.latency_sum_ns / self.messages_received / 1000.0