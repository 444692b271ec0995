import threading
import time
from dataclasses import dataclass, field

from micromatch.spsc_queue import SPSCQueue


@dataclass
class ComplexType:
    id: int
    name: str
    data: list[float] = field(default_factory=lambda: [1.0, 2.0, 3.0])


def test_basic_enqueue_dequeue():
    queue: SPSCQueue[int] = SPSCQueue()
    assert queue.enqueue(42) is True
    assert queue.dequeue() == 42


def test_empty_queue():
    queue: SPSCQueue[int] = SPSCQueue()
    assert queue.empty()
    assert queue.dequeue() is None


def test_multiple_elements_fifo():
    queue: SPSCQueue[int] = SPSCQueue()
    for i in range(100):
        assert queue.enqueue(i)
    assert queue.size_approx() == 100

    assert [queue.dequeue() for _ in range(100)] == list(range(100))
    assert queue.empty()
    assert queue.size_approx() == 0


def test_string_queue():
    queue: SPSCQueue[str] = SPSCQueue()
    queue.enqueue("Hello")
    queue.enqueue("World")
    assert queue.dequeue() == "Hello"
    assert queue.dequeue() == "World"


def test_complex_type():
    queue: SPSCQueue[ComplexType] = SPSCQueue()
    queue.enqueue(ComplexType(1, "Test"))

    result = queue.dequeue()
    assert result is not None
    assert result.id == 1
    assert result.name == "Test"
    assert len(result.data) == 3


def test_object_identity_preserved():
    queue: SPSCQueue[list[int]] = SPSCQueue()
    payload = [42]
    queue.enqueue(payload)
    result = queue.dequeue()
    assert result is payload
    assert result == [42]


def test_len_matches_size():
    queue: SPSCQueue[int] = SPSCQueue()
    queue.enqueue(1)
    queue.enqueue(2)
    queue.dequeue()
    assert len(queue) == 1
    assert not queue.empty()


def _run_producer_consumer(num_items, yield_every=None):
    queue: SPSCQueue[int] = SPSCQueue()
    received: list[int] = []

    def producer():
        for i in range(num_items):
            queue.enqueue(i)
            if yield_every and i % yield_every == 0:
                time.sleep(0)

    def consumer():
        deadline = time.monotonic() + 20
        while len(received) < num_items and time.monotonic() < deadline:
            item = queue.dequeue()
            if item is None:
                time.sleep(0)
                continue
            received.append(item)

    threads = [threading.Thread(target=producer), threading.Thread(target=consumer)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)
    return queue, received


def test_concurrent_producer_consumer_preserves_order():
    num_items = 20000
    queue, received = _run_producer_consumer(num_items)
    assert received == list(range(num_items))
    assert queue.empty()


def test_stress_sum():
    num_items = 50000
    queue, received = _run_producer_consumer(num_items, yield_every=1000)
    assert len(received) == num_items
    assert sum(received) == num_items * (num_items - 1) // 2
    assert queue.empty()