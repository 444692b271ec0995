"""Demonstration of A/B feed arbitrage detection and jitter impact."""

from __future__ import annotations

import argparse
import random
import threading
import time

from .arbitrage import ArbitrageOpportunity
from .feed_handler import FeedHandler
from .matching_engine import create_matching_engine

_START_PRICES = (10000, 5000, 15000, 8000, 12000)
_MIN_PRICE = 100
_TICK_INTERVAL_S = 0.01
_STATS_INTERVAL_S = 10.0
_POLL_INTERVAL_S = 5.0


def format_arbitrage_opportunity(opportunity: ArbitrageOpportunity) -> str:
    """A multi-line alert describing ``opportunity``."""
    return "\n".join(
        [
            "",
            "[ARBITRAGE ALERT]",
            f"Symbol: {opportunity.symbol_id}",
            f"Profit: {opportunity.profit_basis_points():.2f} basis points",
            f"Fast Feed: {opportunity.fast_feed}, Slow Feed: {opportunity.slow_feed}",
            f"Latency Difference: {opportunity.latency_difference_ns / 1000.0:.2f} μs",
            f"Feed A (Bid/Ask): {opportunity.feed_a_bid / 100.0:.2f}"
            f"/{opportunity.feed_a_ask / 100.0:.2f}",
            f"Feed B (Bid/Ask): {opportunity.feed_b_bid / 100.0:.2f}"
            f"/{opportunity.feed_b_ask / 100.0:.2f}",
        ]
    )


def generate_market_data(
    handler: FeedHandler,
    stop_event: threading.Event,
    rng: random.Random | None = None,
) -> None:
    """Random-walk five symbols and publish quotes and trades until stopped."""
    rng = rng if rng is not None else random.Random()
    mid_prices = list(_START_PRICES)
    tick = 0

    while not stop_event.is_set():
        tick += 1

        if tick % 10 == 0 and rng.random() < 0.05:
            print("\n*** MARKET VOLATILITY EVENT ***")
            handler.set_volatile_market(True)
            stop_event.wait(2 + rng.randrange(4))
            handler.set_volatile_market(False)
            print("*** Volatility subsided ***")

        for index in range(len(mid_prices)):
            mid_prices[index] = max(mid_prices[index] + rng.randint(-50, 50), _MIN_PRICE)
            spread = 1 if index == 0 else 2 + index
            bid = mid_prices[index] - spread // 2
            ask = mid_prices[index] + spread // 2
            handler.publish_quote(
                index + 1, bid, ask, rng.randint(100, 1000), rng.randint(100, 1000)
            )

        if tick % 5 == 0:
            symbol = rng.randrange(len(mid_prices)) + 1
            is_buy = rng.randrange(2) == 1
            mid = mid_prices[symbol - 1]
            price = mid + 1 if is_buy else mid - 1
            handler.publish_trade(symbol, price, rng.randint(100, 1000) // 10, is_buy)

        stop_event.wait(_TICK_INTERVAL_S)


def _positive_float(text: str) -> float:
    value = float(text)
    if value <= 0:
        raise argparse.ArgumentTypeError(f"must be positive, got {text}")
    return value


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Simulate A/B market data feeds and detect arbitrage."
    )
    parser.add_argument(
        "--duration",
        type=_positive_float,
        default=None,
        help="seconds to run (default: until interrupted)",
    )
    parser.add_argument("--seed", type=int, default=None, help="random seed")
    args = parser.parse_args(argv)

    print("=== MicroMatch Network Layer Demo ===")
    print("Demonstrating A/B feed arbitrage detection and jitter impact\n")

    engine = create_matching_engine()
    engine.start()
    handler = FeedHandler(engine)
    handler.arbitrage_detector.callback = lambda opp: print(
        format_arbitrage_opportunity(opp)
    )
    handler.start()

    print("Feed handler started. Generating market data...")
    print("Press Ctrl+C to stop\n")

    stop_event = threading.Event()
    generator = threading.Thread(
        target=generate_market_data,
        args=(handler, stop_event, random.Random(args.seed)),
        name="market-data",
        daemon=True,
    )
    generator.start()

    deadline = None if args.duration is None else time.monotonic() + args.duration
    last_stats = time.monotonic()
    try:
        while not stop_event.is_set():
            wait = _POLL_INTERVAL_S
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                wait = min(wait, remaining)
            if stop_event.wait(wait):
                break
            now = time.monotonic()
            if now - last_stats >= _STATS_INTERVAL_S:
                handler.print_stats()
                engine_stats = handler.engine_stats()
                print("\n=== Matching Engine Stats ===")
                print(f"Orders processed: {engine_stats.total_orders}")
                print(f"Trades executed: {engine_stats.total_trades}")
                last_stats = now
    except KeyboardInterrupt:
        print("\nShutting down...")
    finally:
        stop_event.set()
        generator.join()
        handler.stop()
        print("\nFinal Statistics:")
        handler.print_stats()
        engine.stop()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())