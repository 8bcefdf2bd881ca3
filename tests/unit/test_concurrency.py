from __future__ import annotations

import threading

import pytest

from logbull.core.concurrency import NonBlockingRingQueue

pytestmark = pytest.mark.critical


def test_queue_basic_enqueue_dequeue() -> None:
    q: NonBlockingRingQueue[int] = NonBlockingRingQueue(capacity=2)
    assert q.is_empty()
    assert not q.is_full()

    assert q.try_enqueue(1)
    ok, v = q.try_dequeue()
    assert ok and v == 1
    assert q.try_dequeue() == (False, None)


def test_queue_rejects_when_full() -> None:
    q: NonBlockingRingQueue[int] = NonBlockingRingQueue(capacity=1)
    assert q.try_enqueue(1) is True
    assert q.is_full()
    assert q.try_enqueue(2) is False
    assert q.qsize() == 1


def test_queue_rejects_bad_capacity() -> None:
    with pytest.raises(ValueError):
        NonBlockingRingQueue(capacity=0)


def test_drain_is_fifo_and_bounded() -> None:
    q: NonBlockingRingQueue[int] = NonBlockingRingQueue(capacity=10)
    for i in range(7):
        q.try_enqueue(i)

    assert q.drain(5) == [0, 1, 2, 3, 4]
    assert q.drain(5) == [5, 6]
    assert q.drain(5) == []


def test_closed_queue_rejects_but_keeps_items() -> None:
    q: NonBlockingRingQueue[str] = NonBlockingRingQueue(capacity=4)
    q.try_enqueue("a")
    q.close()

    assert q.closed
    assert q.try_enqueue("b") is False
    assert q.drain(10) == ["a"]


def test_concurrent_producers_never_exceed_capacity() -> None:
    q: NonBlockingRingQueue[int] = NonBlockingRingQueue(capacity=500)
    accepted = [0] * 8

    def producer(idx: int) -> None:
        for i in range(200):
            if q.try_enqueue(i):
                accepted[idx] += 1

    threads = [threading.Thread(target=producer, args=(i,)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert sum(accepted) == 500
    assert q.qsize() == 500
