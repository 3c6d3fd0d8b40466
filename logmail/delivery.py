""" Estratégias de entrega dos registros elegíveis para email

Três variantes intercambiáveis escolhidas na construção do handler:
envio síncrono, envio por fila com worker em segundo plano e função
personalizada do usuário.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import itertools
import threading
import time
from typing import Sequence

import structlog

from . import metrics
from .compose import EmailComposer
from .context import Context
from .exceptions import HandlerStoppedError
from .options import ErrorCallback, HandleEmailFunc, SendEmailFunc
from .records import EmailTask, Record
from .task_queue import BoundedTaskQueue, QueueClosedError

logger = structlog.get_logger("logmail.delivery")

#Marca a thread do worker para que as pontes de logging ignorem seus próprios logs
_worker_state = threading.local()


#Nomes padrão das filas, usados como label da métrica de ocupação
_queue_ids = itertools.count(1)


def in_worker() -> bool:
    return getattr(_worker_state, "active", False)


class DeliveryStrategy(ABC):
    """ Interface base das estratégias de entrega """
    mode = "base"

    @abstractmethod
    def deliver(self, ctx: Context, record: Record, text: str) -> None:
        """ Envia (ou enfileira) o email do registro já renderizado """
        raise NotImplementedError

    def close(self) -> None:
        """ Libera recursos; sem efeito nas variantes sem worker """

    def _timed_send(self, send, *args) -> None:
        """ Executa ``send`` registrando duração e resultado nas métricas """
        success = True
        start = time.time()
        try:
            send(*args)
        except Exception:
            success = False
            raise
        finally:
            duration = time.time() - start
            metrics.EMAIL_SEND_DURATION_SECONDS.labels(mode=self.mode).observe(duration)
            self._result_counter().labels(mode=self.mode, success=str(success)).inc()

    def _result_counter(self):
        return metrics.EMAILS_SENT_TOTAL


class SyncDelivery(DeliveryStrategy):
    """ Envia dentro da própria chamada de log; erros voltam ao chamador """
    mode = "sync"

    def __init__(self, composer: EmailComposer, send_email: SendEmailFunc, from_addr: str, to_addrs: Sequence[str]) -> None:
        self.composer = composer
        self.send_email = send_email
        self.from_addr = from_addr
        self.to_addrs = list(to_addrs)

    def deliver(self, ctx: Context, record: Record, text: str) -> None:
        subject, body = self.composer.compose(ctx, record, text)
        self._timed_send(self.send_email, ctx, self.from_addr, self.to_addrs, subject, body)


class QueuedDelivery(DeliveryStrategy):
    """ Enfileira o email para um único worker em segundo plano

    A fila é limitada: cheia, ela bloqueia o chamador em vez de descartar.
    Erros de envio ficam no worker e são entregues a ``on_error`` ou ao log.
    """
    mode = "async"

    def __init__(self, composer: EmailComposer, send_email: SendEmailFunc, from_addr: str, to_addrs: Sequence[str],
                 capacity: int = 1, on_error: ErrorCallback | None = None, name: str | None = None) -> None:
        self.composer = composer
        self.send_email = send_email
        self.from_addr = from_addr
        self.to_addrs = list(to_addrs)
        self.on_error = on_error
        self.name = name or f"email-{next(_queue_ids)}"
        self.queue: BoundedTaskQueue[EmailTask] = BoundedTaskQueue(capacity, name=self.name)

        #Daemon: emails ainda na fila se perdem se o processo sair sem stop()
        self._worker = threading.Thread(target=self._run, name=f"logmail-{self.name}-worker", daemon=True)
        self._worker.start()

    def deliver(self, ctx: Context, record: Record, text: str) -> None:
        #Assunto e corpo são derivados aqui para que erros de formatação cheguem ao chamador
        subject, body = self.composer.compose(ctx, record, text)
        task = EmailTask(context=ctx, record=record, rendered_text=text, subject=subject, body=body)
        try:
            self.queue.put(task)
        except QueueClosedError as exc:
            metrics.EMAILS_SKIPPED_TOTAL.labels(reason="stopped").inc()
            raise HandlerStoppedError("email handler is stopped") from exc

    def close(self) -> None:
        """ Fecha a fila e aguarda o worker enviar o que restou """
        self.queue.close()
        if threading.current_thread() is not self._worker:
            self._worker.join()

    @property
    def running(self) -> bool:
        return self._worker.is_alive()

    def _run(self) -> None:
        _worker_state.active = True
        while True:
            task = self.queue.get()
            if task is None:
                break
            self._send(task)
        logger.debug("email_worker_stopped")

    def _send(self, task: EmailTask) -> None:
        #Tarefas já enfileiradas não herdam o cancelamento do chamador
        ctx = task.context.detach()
        try:
            self._timed_send(self.send_email, ctx, self.from_addr, self.to_addrs, task.subject, task.body)
        except Exception as exc:
            self._report(task, exc)

    def _report(self, task: EmailTask, exc: Exception) -> None:
        if self.on_error is None:
            logger.error("email_delivery_failed", subject=task.subject, recipients=self.to_addrs, error=str(exc))
            return
        try:
            self.on_error(task, exc)
        except Exception as callback_exc:
            logger.error("email_error_callback_failed", subject=task.subject, error=str(callback_exc), original_error=str(exc))


class CustomDelivery(DeliveryStrategy):
    """ Delega tudo à função do usuário, que recebe o registro e o texto """
    mode = "custom"

    def __init__(self, handle_email: HandleEmailFunc) -> None:
        self.handle_email = handle_email

    def deliver(self, ctx: Context, record: Record, text: str) -> None:
        self._timed_send(self.handle_email, ctx, record, text)

    def _result_counter(self):
        #A função pode decidir não enviar nada: conta repasses, não envios
        return metrics.EMAILS_DISPATCHED_TOTAL
