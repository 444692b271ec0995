"""Limit order book and matching engine, with simulated A/B market data feeds and arbitrage detection."""

__version__ = "0.1.0"

__all__ = [
    "order",
    "spsc_queue",
    "mpmc_queue",
    "orderbook",
    "matching_engine",
    "market_data",
    "arbitrage",
    "feed_simulator",
    "feed_handler",
    "demo",
]