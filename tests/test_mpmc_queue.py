import threading
import time

import pytest

from micromatch.mpmc_queue import MPMCQueue


@pytest.fixture
def int_queue():
    return MPMCQueue(1024)


def test_basic_enqueue_dequeue(int_queue):
    assert int_queue.try_enqueue(42) is True
    assert int_queue.try_dequeue() == 42


def test_empty_queue(int_queue):
    assert int_queue.empty()
    assert int_queue.try_dequeue() is None


def test_fifo_order(int_queue):
    for i in range(10):
        int_queue.try_enqueue(i)
    assert [int_queue.try_dequeue() for _ in range(10)] == list(range(10))


def test_full_queue(int_queue):
    for i in range(int_queue.capacity()):
        assert int_queue.try_enqueue(i)

    assert int_queue.try_enqueue(999) is False

    assert int_queue.try_dequeue() == 0
    assert int_queue.try_enqueue(999) is True


def test_blocking_operations(int_queue):
    for i in range(int_queue.capacity()):
        assert int_queue.enqueue(i, 100)

    assert int_queue.enqueue(999, 10) is False

    assert int_queue.dequeue(100) == 0


def test_blocking_dequeue_on_empty_gives_none(int_queue):
    assert int_queue.dequeue(5) is None


def test_size_approximation(int_queue):
    assert int_queue.size_approx() == 0
    for i in range(10):
        int_queue.try_enqueue(i)
    assert 5 <= int_queue.size_approx() <= 10


def test_capacity():
    assert MPMCQueue(1024).capacity() == 1024
    assert MPMCQueue(256).capacity() == 256


@pytest.mark.parametrize("bad", [0, -4, 3, 100, 1000])
def test_capacity_must_be_power_of_two(bad):
    with pytest.raises(ValueError):
        MPMCQueue(bad)


def test_multiple_producers(int_queue):
    num_producers = 4
    items_per_producer = 1000
    total = num_producers * items_per_producer
    seen: list[int] = []

    def producer(index):
        for j in range(items_per_producer):
            value = index * items_per_producer + j
            while not int_queue.try_enqueue(value):
                time.sleep(0)

    def consumer():
        deadline = time.monotonic() + 20
        while len(seen) < total and time.monotonic() < deadline:
            item = int_queue.try_dequeue()
            if item is None:
                time.sleep(0)
            else:
                seen.append(item)

    threads = [threading.Thread(target=producer, args=(i,)) for i in range(num_producers)]
    threads.append(threading.Thread(target=consumer))
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert len(seen) == total
    assert set(seen) == set(range(total))
    assert int_queue.empty() is True
    assert int_queue.try_dequeue() is None
    assert int_queue.size_approx() == 0


def test_multiple_consumers(int_queue):
    num_consumers = 4
    total_items = 10000
    seen: list[int] = []
    seen_lock = threading.Lock()

    def producer():
        for i in range(total_items):
            while not int_queue.try_enqueue(i):
                time.sleep(0)

    def consumer():
        deadline = time.monotonic() + 20
        while time.monotonic() < deadline:
            with seen_lock:
                if len(seen) >= total_items:
                    return
            item = int_queue.try_dequeue()
            if item is None:
                time.sleep(0)
                continue
            with seen_lock:
                seen.append(item)

    threads = [threading.Thread(target=producer)]
    threads += [threading.Thread(target=consumer) for _ in range(num_consumers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert len(seen) == total_items
    assert len(set(seen)) == total_items
    assert int_queue.empty() is True
    assert int_queue.try_dequeue() is None
    assert int_queue.size_approx() == 0


def test_mixed_producers_consumers(int_queue):
    num_threads = 8
    operations_per_thread = 1000
    counts = {"produced": 0, "consumed": 0}
    counts_lock = threading.Lock()

    def worker(index):
        done = 0
        if index % 2 == 0:
            for j in range(operations_per_thread):
                if int_queue.try_enqueue(index * 1000 + j):
                    done += 1
            key = "produced"
        else:
            for _ in range(operations_per_thread):
                if int_queue.try_dequeue() is not None:
                    done += 1
            key = "consumed"
        with counts_lock:
            counts[key] += done

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(num_threads)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    while int_queue.try_dequeue() is not None:
        counts["consumed"] += 1

    assert counts["produced"] == counts["consumed"]
    assert counts["produced"] > 0
    assert int_queue.empty()


def test_stress_operations_counted(int_queue):
    num_threads = 8
    stop = threading.Event()
    totals: list[int] = []
    totals_lock = threading.Lock()

    def worker(index):
        local_ops = 0
        while not stop.is_set():
            if index % 2 == 0:
                if int_queue.try_enqueue(index):
                    local_ops += 1
            elif int_queue.try_dequeue() is not None:
                local_ops += 1
        with totals_lock:
            totals.append(local_ops)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(num_threads)]
    for t in threads:
        t.start()
    time.sleep(0.2)
    stop.set()
    for t in threads:
        t.join(timeout=10)

    assert len(totals) == num_threads
    assert sum(totals) > 0
    assert int_queue.size_approx() <= int_queue.capacity()