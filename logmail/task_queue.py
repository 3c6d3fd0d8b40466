""" Fila FIFO limitada e fechável entre o chamador do log e o worker """

from __future__ import annotations

import threading
from collections import deque
from typing import Generic, TypeVar

from . import metrics

T = TypeVar("T")


class QueueClosedError(Exception):
    """ ``put`` chamado em uma fila já fechada """


class BoundedTaskQueue(Generic[T]):
    """ Fila com capacidade fixa; ``put`` bloqueia quando cheia

    ``close()`` é idempotente: acorda produtores bloqueados (que recebem
    ``QueueClosedError``) e deixa o consumidor esvaziar o que restou antes de
    ``get()`` devolver ``None``.
    """
    def __init__(self, capacity: int = 1, name: str = "default") -> None:
        if capacity < 1:
            raise ValueError("queue capacity must be >= 1")
        self.capacity = capacity
        self.name = name
        self._size_gauge = metrics.EMAIL_QUEUE_SIZE.labels(queue=name)
        self._items: deque[T] = deque()
        self._closed = False

        #Uma única trava compartilhada pelas duas condições
        self._lock = threading.Lock()
        self._not_full = threading.Condition(self._lock)
        self._not_empty = threading.Condition(self._lock)

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)

    def put(self, item: T) -> None:
        with self._not_full:
            while not self._closed and len(self._items) >= self.capacity:
                self._not_full.wait()
            if self._closed:
                raise QueueClosedError("queue is closed")
            self._items.append(item)
            self._size_gauge.set(len(self._items))
            self._not_empty.notify()

    def get(self) -> T | None:
        """ Próximo item, ou ``None`` quando a fila está fechada e vazia """
        with self._not_empty:
            while not self._items and not self._closed:
                self._not_empty.wait()
            if not self._items:
                return None
            item = self._items.popleft()
            self._size_gauge.set(len(self._items))
            self._not_full.notify()
            return item

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._not_full.notify_all()
            self._not_empty.notify_all()
