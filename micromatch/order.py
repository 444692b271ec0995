"""Orders, trades and the enumerations that describe them."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import IntEnum


class Side(IntEnum):
    """Which side of the book an order rests on."""

    BUY = 0
    SELL = 1


class OrderType(IntEnum):
    """How an order is priced."""

    MARKET = 0
    LIMIT = 1
    STOP = 2
    STOP_LIMIT = 3


class OrderStatus(IntEnum):
    """Lifecycle state of an order."""

    NEW = 0
    PARTIALLY_FILLED = 1
    FILLED = 2
    CANCELLED = 3
    REJECTED = 4


class TimeInForce(IntEnum):
    """How long an order stays live."""

    DAY = 0
    GTC = 1  # Good till cancelled
    IOC = 2  # Immediate or cancel
    FOK = 3  # Fill or kill
    GTD = 4  # Good till date


@dataclass(slots=True)
class Order:
    """A single order.

    Prices are fixed-point integers with six decimal places,
    e.g. 123.456789 is stored as 123456789.
    """

    order_id: int = 0
    symbol_id: int = 0
    price: int = 0
    quantity: int = 0
    side: Side = Side.BUY
    client_id: int = 0
    executed_quantity: int = 0
    timestamp_ns: int = field(default_factory=time.monotonic_ns)
    sequence_number: int = 0
    type: OrderType = OrderType.LIMIT
    status: OrderStatus = OrderStatus.NEW
    tif: TimeInForce = TimeInForce.DAY

    def is_buy(self) -> bool:
        return self.side is Side.BUY

    def is_sell(self) -> bool:
        return self.side is Side.SELL

    def remaining_quantity(self) -> int:
        return self.quantity - self.executed_quantity

    def is_filled(self) -> bool:
        return self.executed_quantity >= self.quantity

    def can_match(self, other: Order) -> bool:
        """Whether this order's price crosses ``other`` on the same symbol."""
        if self.symbol_id != other.symbol_id:
            return False
        if self.side == other.side:
            return False
        if self.is_buy():
            return self.price >= other.price
        return self.price <= other.price

    def execute(self, fill_quantity: int) -> None:
        """Record a fill and update the status accordingly."""
        self.executed_quantity += fill_quantity
        self.status = (
            OrderStatus.FILLED if self.is_filled() else OrderStatus.PARTIALLY_FILLED
        )


@dataclass(slots=True)
class Trade:
    """An execution between an aggressive and a passive order."""

    trade_id: int
    aggressive_order_id: int
    passive_order_id: int
    symbol_id: int
    price: int
    quantity: int
    side: Side
    is_maker_buy: bool
    timestamp_ns: int = field(default_factory=time.monotonic_ns)

    @classmethod
    def from_orders(
        cls,
        trade_id: int,
        aggressive: Order,
        passive: Order,
        price: int,
        quantity: int,
    ) -> Trade:
        """Build a trade; ``side`` is the aggressive order's side."""
        return cls(
            trade_id=trade_id,
            aggressive_order_id=aggressive.order_id,
            passive_order_id=passive.order_id,
            symbol_id=aggressive.symbol_id,
            price=price,
            quantity=quantity,
            side=aggressive.side,
            is_maker_buy=passive.side is Side.BUY,
        )

    def buy_order_id(self) -> int:
        return self.passive_order_id if self.is_maker_buy else self.aggressive_order_id

    def sell_order_id(self) -> int:
        return self.aggressive_order_id if self.is_maker_buy else self.passive_order_id