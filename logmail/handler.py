""" Handler de log estruturado que também envia registros por email

Fluxo de ``handle``: renderiza o registro, escreve na saída e, se o nível
atingir o limiar de email, repassa para a estratégia de entrega escolhida na
construção (síncrona, fila assíncrona ou função personalizada).
"""

from __future__ import annotations

import threading
from typing import Any, Mapping, TextIO

import structlog

from . import metrics
from .compose import EmailComposer
from .context import Context
from .delivery import CustomDelivery, DeliveryStrategy, QueuedDelivery, SyncDelivery
from .exceptions import HandlerStoppedError
from .levels import level_name, parse_level, qualifies
from .mailer import Mailer
from .options import AsyncEmailOptions, EmailOptions, HandleEmailFunc, HandlerOptions
from .records import Record
from .renderer import RecordRenderer

logger = structlog.get_logger("logmail.handler")

__all__ = ["EmailHandler", "new_handler", "new_async_handler", "new_custom_handler"]


class _HandlerState:
    """ Estado compartilhado entre um handler e os derivados de ``with_attrs``/``with_group`` """
    def __init__(self, stream: TextIO, delivery: DeliveryStrategy) -> None:
        self.stream = stream
        self.delivery = delivery

        #Serializa render + escrita, preservando a ordem das chamadas na saída
        self.output_lock = threading.Lock()

        #Protege a flag de parada e o fechamento da fila
        self.lock = threading.Lock()
        self.stopped = False


class EmailHandler:
    """ Escreve registros em texto ou JSON e envia por email os de nível elevado """
    def __init__(self, renderer: RecordRenderer, email_level: int, state: _HandlerState) -> None:
        self.renderer = renderer
        self.email_level = email_level
        self._state = state

    @property
    def delivery(self) -> DeliveryStrategy:
        return self._state.delivery

    @property
    def stopped(self) -> bool:
        with self._state.lock:
            return self._state.stopped

    def enabled(self, level: int, ctx: Context | None = None) -> bool:
        """ ``True`` se o handler está ativo e o renderizador aceita o nível """
        return not self.stopped and self.renderer.enabled(level)

    def handle(self, record: Record, ctx: Context | None = None) -> None:
        """ Renderiza, escreve e, se elegível, entrega o email do registro

        Erros de renderização e de escrita interrompem a chamada antes do
        email. Erros de entrega síncrona ou personalizada são propagados.
        """
        ctx = ctx or Context()

        #A trava cobre apenas render + escrita, nunca o transporte
        with self._state.output_lock:
            text = self.renderer.render(record)
            self._write(text)
        metrics.RECORDS_WRITTEN_TOTAL.labels(level=level_name(record.level)).inc()

        if not qualifies(record.level, self.email_level):
            return

        if self.stopped:
            metrics.EMAILS_SKIPPED_TOTAL.labels(reason="stopped").inc()
            raise HandlerStoppedError("email handler is stopped")

        self._state.delivery.deliver(ctx, record, text)

    def with_attrs(self, attrs: Mapping[str, Any]) -> "EmailHandler":
        """ Novo handler cujos registros incluem ``attrs``; o receptor não muda """
        renderer = self.renderer.with_attrs(attrs)
        if renderer is self.renderer:
            return self
        return EmailHandler(renderer, self.email_level, self._state)

    def with_group(self, name: str) -> "EmailHandler":
        """ Novo handler que aninha os próximos campos sob ``name`` """
        renderer = self.renderer.with_group(name)
        if renderer is self.renderer:
            return self
        return EmailHandler(renderer, self.email_level, self._state)

    def stop(self) -> None:
        """ Desativa o handler e aguarda o worker esvaziar a fila (idempotente) """
        with self._state.lock:
            if self._state.stopped:
                return
            self._state.stopped = True
        self._state.delivery.close()
        logger.debug("email_handler_stopped", mode=self._state.delivery.mode)

    def _write(self, text: str) -> None:
        stream = self._state.stream
        stream.write(text)
        flush = getattr(stream, "flush", None)
        if flush is not None:
            flush()


def _default_sender(email_options: EmailOptions):
    """ Usa ``send_email`` do usuário ou cria o ``Mailer`` SMTP padrão """
    if email_options.send_email is not None:
        return email_options.send_email
    mailer = Mailer.from_connection_info(email_options.connection_info)
    return mailer.send_plaintext


def _composer(email_options: EmailOptions) -> EmailComposer:
    return EmailComposer(
        get_subject=email_options.get_subject,
        get_body=email_options.get_body,
        json_format=email_options.json_format,
    )


def new_handler(stream: TextIO, options: HandlerOptions | None, email_options: EmailOptions) -> EmailHandler:
    """ Handler que envia os emails de forma síncrona, dentro da chamada de log

    Levanta ``ConfigurationError`` se os parâmetros de conexão forem inválidos.
    """
    delivery = SyncDelivery(
        _composer(email_options),
        _default_sender(email_options),
        email_options.from_addr,
        email_options.to_addrs,
    )
    renderer = RecordRenderer(email_options.json_format, options)
    return EmailHandler(renderer, email_options.level, _HandlerState(stream, delivery))


def new_async_handler(stream: TextIO, options: HandlerOptions | None, email_options: AsyncEmailOptions):
    """ Handler com fila limitada e worker em segundo plano

    Retorna ``(handler, stop)``; ``stop`` desativa o handler e bloqueia até
    que todos os emails já enfileirados tenham sido tentados.
    """
    sender = _default_sender(email_options)
    delivery = QueuedDelivery(
        _composer(email_options),
        sender,
        email_options.from_addr,
        email_options.to_addrs,
        capacity=email_options.queue_capacity,
        on_error=email_options.on_error,
        name=email_options.queue_name,
    )
    renderer = RecordRenderer(email_options.json_format, options)
    handler = EmailHandler(renderer, email_options.level, _HandlerState(stream, delivery))
    return handler, handler.stop


def new_custom_handler(stream: TextIO, options: HandlerOptions | None, handle_email: HandleEmailFunc,
                       json_format: bool = False, email_level: int | str | None = None) -> EmailHandler:
    """ Handler que entrega cada registro elegível para ``handle_email(ctx, record, text)``

    A função decide o que enviar; sem ``email_level`` todo registro escrito é
    repassado a ela.
    """
    renderer = RecordRenderer(json_format, options)
    level = parse_level(email_level) if email_level is not None else renderer.options.level
    return EmailHandler(renderer, level, _HandlerState(stream, CustomDelivery(handle_email)))
