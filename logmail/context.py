""" Contexto de chamada propagado até o transporte de email """

from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace
from typing import Any


@dataclass(frozen=True)
class Context:
    """ Timeout, valores arbitrários e sinal de cancelamento de uma chamada de log

    ``timeout`` é relativo ao início do envio SMTP. ``cancel()`` aborta um envio
    em andamento; ``detach()`` devolve uma cópia que ignora cancelamento, usada
    quando a tarefa já entrou na fila do worker.
    """
    timeout: float | None = None
    values: dict[str, Any] = field(default_factory=dict)
    _cancel_event: threading.Event | None = field(default_factory=threading.Event, repr=False, compare=False)

    def cancel(self) -> None:
        if self._cancel_event is not None:
            self._cancel_event.set()

    def cancelled(self) -> bool:
        return self._cancel_event is not None and self._cancel_event.is_set()

    def detach(self) -> "Context":
        return replace(self, _cancel_event=None)

    def with_timeout(self, timeout: float | None) -> "Context":
        """ Mesmo sinal de cancelamento, com outro timeout """
        return replace(self, timeout=timeout)

    def value(self, key: str, default: Any = None) -> Any:
        return self.values.get(key, default)


def background() -> Context:
    """ Contexto vazio, sem timeout e nunca cancelado externamente """
    return Context()
