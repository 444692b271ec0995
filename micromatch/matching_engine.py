"""Multi-symbol matching engine that processes requests on a worker thread."""

from __future__ import annotations

import dataclasses
import logging
import queue
import threading
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum, auto

from .order import Order, Trade
from .orderbook import OrderBook, create_order_book

logger = logging.getLogger(__name__)

TradeCallback = Callable[[Trade], None]
OrderCallback = Callable[[Order, bool], None]

_IDLE_WAIT_S = 0.001


class EngineNotRunningError(RuntimeError):
    """Raised when a request is submitted to a stopped engine."""


class EngineAlreadyRunningError(RuntimeError):
    """Raised when ``start`` is called on a running engine."""


@dataclass(slots=True)
class MatchingEngineStats:
    """Counters describing what the engine has processed."""

    total_orders: int = 0
    total_trades: int = 0
    total_volume: int = 0
    rejected_orders: int = 0
    cancelled_orders: int = 0
    modified_orders: int = 0

    def reset(self) -> None:
        """Set every counter back to zero."""
        self.total_orders = 0
        self.total_trades = 0
        self.total_volume = 0
        self.rejected_orders = 0
        self.cancelled_orders = 0
        self.modified_orders = 0


class RequestType(Enum):
    """Kind of request queued for the engine."""

    NEW_ORDER = auto()
    CANCEL_ORDER = auto()
    MODIFY_ORDER = auto()


@dataclass(frozen=True, slots=True)
class OrderRequest:
    """A request waiting to be processed by the engine's worker."""

    type: RequestType
    order: Order | None = None
    symbol_id: int = 0
    order_id: int = 0
    new_price: int = 0
    new_quantity: int = 0

    @classmethod
    def new_order(cls, order: Order) -> OrderRequest:
        return cls(
            type=RequestType.NEW_ORDER,
            order=order,
            symbol_id=order.symbol_id,
            order_id=order.order_id,
        )

    @classmethod
    def cancel(cls, symbol_id: int, order_id: int) -> OrderRequest:
        return cls(type=RequestType.CANCEL_ORDER, symbol_id=symbol_id, order_id=order_id)

    @classmethod
    def modify(
        cls, symbol_id: int, order_id: int, new_price: int, new_quantity: int
    ) -> OrderRequest:
        return cls(
            type=RequestType.MODIFY_ORDER,
            symbol_id=symbol_id,
            order_id=order_id,
            new_price=new_price,
            new_quantity=new_quantity,
        )


class MatchingEngine:
    """Routes orders to per-symbol order books.

    Requests are queued by ``submit_order``, ``cancel_order`` and
    ``modify_order`` and applied in order by a single worker thread.
    ``trade_callback`` and ``order_callback`` are invoked from that thread.
    """

    def __init__(
        self,
        trade_callback: TradeCallback | None = None,
        order_callback: OrderCallback | None = None,
    ) -> None:
        self.trade_callback = trade_callback
        self.order_callback = order_callback
        self._books: dict[int, OrderBook] = {}
        self._requests: queue.SimpleQueue[OrderRequest] = queue.SimpleQueue()
        self._stats = MatchingEngineStats()
        self._stats_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._running = False
        self._worker: threading.Thread | None = None

    # Request submission

    def _enqueue(self, request: OrderRequest) -> None:
        if not self._running:
            raise EngineNotRunningError("Matching engine is not running")
        self._requests.put(request)

    def submit_order(self, order: Order) -> None:
        """Queue a new order."""
        self._enqueue(OrderRequest.new_order(order))

    def cancel_order(self, symbol_id: int, order_id: int) -> None:
        """Queue cancellation of a resting order."""
        self._enqueue(OrderRequest.cancel(symbol_id, order_id))

    def modify_order(
        self, symbol_id: int, order_id: int, new_price: int, new_quantity: int
    ) -> None:
        """Queue a change of price and quantity for a resting order."""
        self._enqueue(OrderRequest.modify(symbol_id, order_id, new_price, new_quantity))

    # Symbols and books

    def register_symbol(self, symbol_id: int) -> bool:
        """Create a book for ``symbol_id``; False if it already exists."""
        if symbol_id in self._books:
            return False
        self._books[symbol_id] = create_order_book(symbol_id)
        return True

    def unregister_symbol(self, symbol_id: int) -> bool:
        """Drop the book for ``symbol_id``; False if there is none."""
        book = self._books.pop(symbol_id, None)
        if book is None:
            return False
        book.clear()
        return True

    def get_order_book(self, symbol_id: int) -> OrderBook | None:
        return self._books.get(symbol_id)

    def stats(self) -> MatchingEngineStats:
        """A copy of the current counters."""
        with self._stats_lock:
            return dataclasses.replace(self._stats)

    def clear_all_books(self) -> None:
        for book in self._books.values():
            book.clear()

    # Lifecycle

    def start(self) -> None:
        """Start the worker thread."""
        with self._state_lock:
            if self._running:
                raise EngineAlreadyRunningError("Matching engine already running")
            self._running = True
            self._worker = threading.Thread(
                target=self._run, name="matching-engine", daemon=True
            )
            self._worker.start()

    def stop(self) -> None:
        """Stop the worker after it has processed every queued request."""
        with self._state_lock:
            if not self._running:
                return
            self._running = False
            worker, self._worker = self._worker, None
        if worker is not None:
            worker.join()

    def is_running(self) -> bool:
        return self._running

    def __enter__(self) -> MatchingEngine:
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    # Worker

    def _run(self) -> None:
        while self._running:
            try:
                request = self._requests.get(timeout=_IDLE_WAIT_S)
            except queue.Empty:
                continue
            self._process(request)
        while True:
            try:
                request = self._requests.get_nowait()
            except queue.Empty:
                break
            self._process(request)

    def _process(self, request: OrderRequest) -> None:
        if request.type is RequestType.NEW_ORDER:
            assert request.order is not None
            self._process_new_order(request.order)
        elif request.type is RequestType.CANCEL_ORDER:
            self._process_cancel(request.symbol_id, request.order_id)
        else:
            self._process_modify(
                request.symbol_id,
                request.order_id,
                request.new_price,
                request.new_quantity,
            )

    def _notify(self, callback: Callable[..., None] | None, *args: object) -> None:
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            logger.exception("matching engine callback failed")

    def _process_new_order(self, order: Order) -> None:
        with self._stats_lock:
            self._stats.total_orders += 1

        book = self._books.get(order.symbol_id)
        if book is None:
            with self._stats_lock:
                self._stats.rejected_orders += 1
            self._notify(self.order_callback, order, False)
            return

        trades = book.add_order(order)
        self._notify(self.order_callback, order, True)

        for trade in trades:
            with self._stats_lock:
                self._stats.total_trades += 1
                self._stats.total_volume += trade.quantity
            self._notify(self.trade_callback, trade)

    def _process_cancel(self, symbol_id: int, order_id: int) -> None:
        book = self._books.get(symbol_id)
        if book is not None and book.cancel_order(order_id):
            with self._stats_lock:
                self._stats.cancelled_orders += 1

    def _process_modify(
        self, symbol_id: int, order_id: int, new_price: int, new_quantity: int
    ) -> None:
        book = self._books.get(symbol_id)
        if book is None:
            return
        if book.modify_order(order_id, new_price, new_quantity) is not None:
            with self._stats_lock:
                self._stats.modified_orders += 1


def create_matching_engine() -> MatchingEngine:
    """Create a stopped engine with no symbols registered."""
    return MatchingEngine()