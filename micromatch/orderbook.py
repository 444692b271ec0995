"""Price-time priority limit order book for a single symbol."""

from __future__ import annotations

import dataclasses
import itertools
import time
from collections import deque
from dataclasses import dataclass, field
from typing import ClassVar

from sortedcontainers import SortedDict

from .order import Order, Side, Trade


class _Level:
    """FIFO queue of resting orders at one price."""

    __slots__ = ("price", "orders", "volume")

    def __init__(self, price: int) -> None:
        self.price = price
        self.orders: deque[Order] = deque()
        self.volume = 0

    def add(self, order: Order) -> None:
        self.orders.append(order)
        self.volume += order.quantity

    def front(self) -> Order | None:
        return self.orders[0] if self.orders else None

    def pop_filled_front(self, filled_quantity: int) -> None:
        if self.orders:
            self.volume -= filled_quantity
            self.orders.popleft()

    def reduce(self, filled_quantity: int) -> None:
        self.volume -= filled_quantity

    def remove(self, order_id: int) -> bool:
        kept: deque[Order] = deque()
        found = False
        for order in self.orders:
            if order.order_id == order_id:
                self.volume -= order.quantity
                found = True
            else:
                kept.append(order)
        self.orders = kept
        return found

    def __len__(self) -> int:
        return len(self.orders)


class OrderBook:
    """Limit order book that matches incoming orders by price, then time.

    Trades execute at the resting (passive) order's price. Orders held by
    the book are copies; the caller's ``Order`` objects are never changed.
    """

    def __init__(self, symbol_id: int) -> None:
        self.symbol_id = symbol_id
        self._bids: SortedDict = SortedDict()
        self._asks: SortedDict = SortedDict()
        self._orders: dict[int, Order] = {}
        self._trade_ids = itertools.count(1)

    def _levels(self, side: Side) -> SortedDict:
        return self._bids if side == Side.BUY else self._asks

    def _best_opposite(self, side: Side) -> tuple[int, _Level] | None:
        """Best price level on the side opposite to ``side``."""
        if side == Side.BUY:
            return self._asks.peekitem(0) if self._asks else None
        return self._bids.peekitem(-1) if self._bids else None

    def _match(self, order: Order) -> list[Trade]:
        trades: list[Trade] = []
        opposite = self._levels(Side.SELL if order.side == Side.BUY else Side.BUY)
        while order.quantity > 0:
            best = self._best_opposite(order.side)
            if best is None:
                break
            best_price, level = best
            if order.side == Side.BUY and order.price < best_price:
                break
            if order.side == Side.SELL and order.price > best_price:
                break

            resting = level.front()
            if resting is None:
                del opposite[best_price]
                continue

            match_quantity = min(order.quantity, resting.quantity)
            trades.append(
                Trade.from_orders(
                    next(self._trade_ids), order, resting, best_price, match_quantity
                )
            )
            order.quantity -= match_quantity
            resting.quantity -= match_quantity

            if resting.quantity == 0:
                self._orders.pop(resting.order_id, None)
                level.pop_filled_front(match_quantity)
                if not level:
                    del opposite[best_price]
            else:
                level.reduce(match_quantity)
        return trades

    def _rest(self, order: Order) -> None:
        levels = self._levels(order.side)
        level = levels.get(order.price)
        if level is None:
            level = _Level(order.price)
            levels[order.price] = level
        level.add(order)
        self._orders[order.order_id] = order

    def add_order(self, order: Order) -> list[Trade]:
        """Match ``order`` against the book and rest whatever is left.

        Orders with zero quantity, a non-positive price or an order id
        already in the book are ignored and produce no trades.
        """
        if order.quantity == 0 or order.price <= 0:
            return []
        if order.order_id in self._orders:
            return []
        working = dataclasses.replace(order)
        trades = self._match(working)
        if working.quantity > 0:
            self._rest(working)
        return trades

    def cancel_order(self, order_id: int) -> bool:
        """Remove a resting order; return False if it is not in the book."""
        order = self._orders.pop(order_id, None)
        if order is None:
            return False
        levels = self._levels(order.side)
        level = levels.get(order.price)
        if level is not None:
            level.remove(order_id)
            if not level:
                del levels[order.price]
        return True

    def modify_order(
        self, order_id: int, new_price: int, new_quantity: int
    ) -> Order | None:
        """Replace a resting order with a new price and quantity.

        The order loses its time priority and may match immediately.
        Returns the replacement order, or ``None`` if the id is unknown.
        """
        existing = self._orders.get(order_id)
        if existing is None:
            return None
        old_order = dataclasses.replace(existing)
        if not self.cancel_order(order_id):
            return None
        new_order = dataclasses.replace(
            old_order,
            price=new_price,
            quantity=new_quantity,
            timestamp_ns=time.monotonic_ns(),
        )
        self.add_order(new_order)
        return new_order

    def best_bid(self) -> int | None:
        """Highest resting buy price, or ``None``."""
        return self._bids.peekitem(-1)[0] if self._bids else None

    def best_ask(self) -> int | None:
        """Lowest resting sell price, or ``None``."""
        return self._asks.peekitem(0)[0] if self._asks else None

    def volume_at_price(self, price: int, side: Side) -> int:
        level = self._levels(side).get(price)
        return level.volume if level is not None else 0

    def order_count_at_price(self, price: int, side: Side) -> int:
        level = self._levels(side).get(price)
        return len(level) if level is not None else 0

    def total_orders(self) -> int:
        return len(self._orders)

    def clear(self) -> None:
        """Drop every resting order."""
        self._bids.clear()
        self._asks.clear()
        self._orders.clear()

    def __len__(self) -> int:
        return len(self._orders)


def create_order_book(symbol_id: int) -> OrderBook:
    """Create an empty order book for ``symbol_id``."""
    return OrderBook(symbol_id)


@dataclass(frozen=True, slots=True)
class MarketDataSnapshot:
    """Top-of-book view of an order book at one moment."""

    symbol_id: int
    best_bid: int | None
    best_ask: int | None
    bid_volume: int
    ask_volume: int
    bid_orders: int
    ask_orders: int
    timestamp_ns: int = field(default_factory=time.monotonic_ns)

    @classmethod
    def from_book(cls, book: OrderBook) -> MarketDataSnapshot:
        bid = book.best_bid()
        ask = book.best_ask()
        return cls(
            symbol_id=book.symbol_id,
            best_bid=bid,
            best_ask=ask,
            bid_volume=book.volume_at_price(bid, Side.BUY) if bid is not None else 0,
            ask_volume=book.volume_at_price(ask, Side.SELL) if ask is not None else 0,
            bid_orders=(
                book.order_count_at_price(bid, Side.BUY) if bid is not None else 0
            ),
            ask_orders=(
                book.order_count_at_price(ask, Side.SELL) if ask is not None else 0
            ),
        )


@dataclass(frozen=True, slots=True)
class PriceLevel:
    """Aggregated information about one price level."""

    price: int
    total_volume: int
    order_count: int


@dataclass(slots=True)
class OrderBookDepth:
    """The top price levels on each side of a book."""

    MAX_DEPTH: ClassVar[int] = 10

    symbol_id: int
    bids: list[PriceLevel] = field(default_factory=list)  # highest first
    asks: list[PriceLevel] = field(default_factory=list)  # lowest first
    timestamp_ns: int = field(default_factory=time.monotonic_ns)