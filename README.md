# micromatch

A small limit order matching engine with price-time priority, and a simulated
market data layer around it. There are two feeds: a fast primary feed "A" and
a slower backup feed "B". Each one delivers updates after an injected
latency, with jitter, occasional spikes and dropped packets. A detector
compares the two feeds and records every price disagreement between them,
along with any arbitrage profit it would allow.

## Installation

```
pip install .
```

To run the tests:

```
pip install ".[test]"
pytest
```

## Orders and trades

`micromatch.order` defines `Order`, `Trade` and the enums `Side`,
`OrderType`, `OrderStatus` and `TimeInForce`.

Prices are integers. `Order.can_match(other)` tells you whether two orders
on the same symbol, on opposite sides, have prices that cross.
`Order.execute(qty)` records a fill. It also moves the status to
`PARTIALLY_FILLED` or `FILLED`.

## Order book

```python
from micromatch.order import Order, Side
from micromatch.orderbook import create_order_book

book = create_order_book(1)
book.add_order(Order(order_id=1, symbol_id=1, price=100, quantity=10, side=Side.SELL))
trades = book.add_order(Order(order_id=2, symbol_id=1, price=105, quantity=4, side=Side.BUY))

trades[0].price                          # 100: trades happen at the resting order's price
book.best_ask()                          # 100
book.volume_at_price(100, Side.SELL)     # 6
book.order_count_at_price(100, Side.SELL)  # 1
```

`add_order` ignores an order, and returns no trades, in any of these cases:

- its quantity is zero;
- its price is zero or less;
- its ID is already resting in the book.

The book keeps its own copies of orders, so the `Order` objects you pass in
are never changed.

`cancel_order(order_id)` returns `False` if the ID is unknown.

`modify_order(order_id, price, quantity)` cancels the order and adds it again
with the new price and quantity. The order therefore loses its place in the
queue and may trade straight away. It returns the new order, or `None` if the
ID is unknown.

`MarketDataSnapshot.from_book(book)` gives the best bid and ask, with the
volume and order count at each. `PriceLevel` and `OrderBookDepth` are plain
containers for depth data. The book does not fill them in itself.

## Matching engine

The engine keeps one order book for each registered symbol. A worker thread
applies submitted orders, cancels and modifications in the order they arrive.

```python
from micromatch.matching_engine import create_matching_engine

engine = create_matching_engine()
engine.register_symbol(1)
engine.trade_callback = lambda trade: print(trade)
engine.order_callback = lambda order, accepted: print(order.order_id, accepted)
engine.start()
engine.submit_order(Order(order_id=1, symbol_id=1, price=100, quantity=10, side=Side.BUY))
engine.stop()          # handles every queued request before it returns
engine.stats()         # MatchingEngineStats(total_orders=1, ...)
```

`MatchingEngine` is also a context manager. It starts on entry and stops on
exit.

Error and edge cases:

- Submitting, cancelling or modifying while the engine is stopped raises
  `EngineNotRunningError`.
- Starting an engine that is already running raises
  `EngineAlreadyRunningError`.
- An order for a symbol that is not registered is rejected. It is counted in
  `rejected_orders`, and the order callback is called with `accepted=False`.
- Callbacks run on the worker thread. Any exception they raise is logged and
  then ignored.

## Queues

`micromatch.spsc_queue.SPSCQueue` is an unbounded FIFO for one producer and
one consumer.

`micromatch.mpmc_queue.MPMCQueue(capacity)` is a bounded, lock-protected FIFO
for many threads. Its capacity must be a power of two, otherwise it raises
`ValueError`. Its methods are:

- `try_enqueue` and `try_dequeue`, which do not wait;
- `enqueue` and `dequeue`, which retry up to `max_retries` times.

Both queues return `None` from dequeue when they are empty, so `None` should
not be stored in them.

## Feeds and arbitrage

`micromatch.market_data` defines the messages:

- `Quote`;
- `TradeTick`;
- `MarketDataUpdate`, built with `from_quote` or `from_trade`;
- `FeedStats`.

`FeedSimulator(feed_id, config, callback)` queues quotes and trades given to
`publish_quote` and `publish_trade`. A worker thread then delivers each one to
the callback after a simulated delay. `FeedConfig` sets:

- the base latency;
- the normal jitter;
- the spike jitter and the probability of a spike;
- the probability of a dropped packet;
- whether the feed is primary (a backup feed adds 500 µs);
- the jitter multiplier used while `set_volatile_market(True)` is on.

Updates still queued when `stop()` is called are not delivered.

`ArbitrageDetector.on_feed_update(feed_id, update)` keeps the latest quote
from feed "A" and from feed "B" for each symbol. Any other feed ID counts as
"B". When both quotes are present and their bids or asks differ, or one
feed's bid crosses the other's ask, it records an `ArbitrageOpportunity`.
`profit_basis_points()` gives the profit, and the record also notes which
feed was faster. The detector offers `stats()` and
`recent_opportunities(count)`, which keeps the last 1000.

`FeedHandler(engine)` connects the parts:

- It publishes every quote and trade on both feeds.
- It passes every delivered update to its `arbitrage_detector`.
- It turns each quote from feed A into a resting buy order and a resting sell
  order on the engine.
- It prints opportunities worth more than 1 basis point.
- `format_stats()` and `print_stats(file)` report the feed and arbitrage
  figures.
- `engine_stats()` returns the engine's counters.

The engine must be running, and its symbols registered, for those orders to
be accepted.

## Demo

```
micromatch-demo
micromatch-demo --duration 30 --seed 7
```

The demo random-walks five symbols and publishes quotes every 10 ms, and a
trade every fifth tick. Now and then it switches on a volatile market for 2
to 5 seconds. Alerts and statistics are printed as follows:

- An alert for every detected opportunity, as it happens.
- Feed, arbitrage and engine statistics about every 10 seconds.
- Final statistics at the end.

It runs until you press Ctrl+C, or until `--duration` seconds have passed.
`--seed` makes the generated market repeatable.

The demo registers no symbols with its engine, so the orders it makes from
quotes are all rejected. The engine statistics count them, but no trades
result.

## What this package does not do

- The feeds are simulated in memory. Nothing is sent or received over a
  network.
- Nothing is stored. Books, statistics and opportunities exist only while the
  process runs.
- The book treats every order as a limit order. `OrderType` and `TimeInForce`
  are recorded on orders but do not change how they match. Market, stop, IOC,
  FOK and GTD behaviour is not implemented.
- The book does not update `executed_quantity` or `status` on resting orders.