""" Pontes entre o ``EmailHandler`` e o logging do stdlib / structlog """

from __future__ import annotations

from datetime import datetime
import logging
import threading
from typing import Any

import structlog

from .context import Context
from .delivery import in_worker
from .handler import EmailHandler
from .levels import parse_level
from .records import Record, Source

#Atributos padrão do LogRecord que não viram campos estruturados
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime", "taskName"}

#Chave opcional em ``extra`` para repassar um Context à chamada
CONTEXT_KEY = "logmail_context"

_INTERNAL_PREFIX = "logmail"

#Evita reentrada quando o próprio envio gera logs
_guard = threading.local()


def _is_internal(name: str | None) -> bool:
    return bool(name) and (name == _INTERNAL_PREFIX or name.startswith(_INTERNAL_PREFIX + "."))


def _dispatch(handler: EmailHandler, record: Record, ctx: Context | None) -> bool:
    """ Chama ``handler.handle`` fora de reentrada; retorna ``False`` se ignorado """
    if in_worker() or getattr(_guard, "active", False):
        return False
    _guard.active = True
    try:
        handler.handle(record, ctx)
    finally:
        _guard.active = False
    return True


def record_from_logging(record: logging.LogRecord, formatter: logging.Formatter | None = None) -> Record:
    """ Converte um ``logging.LogRecord`` em ``Record`` """
    fields: dict[str, Any] = {
        key: value for key, value in vars(record).items()
        if key not in _STANDARD_ATTRS and key != CONTEXT_KEY
    }
    if record.exc_info:
        fmt = formatter or logging.Formatter()
        fields["exc_info"] = fmt.formatException(record.exc_info)
    if record.stack_info:
        fields["stack_info"] = record.stack_info

    return Record(
        level=record.levelno,
        message=record.getMessage(),
        fields=fields,
        time=datetime.fromtimestamp(record.created).astimezone(),
        source=Source(record.funcName, record.pathname, record.lineno),
    )


class EmailLoggingHandler(logging.Handler):
    """ ``logging.Handler`` que repassa os registros para um ``EmailHandler``

    Falhas (renderização, escrita ou envio síncrono) seguem o caminho padrão
    do stdlib via ``handleError``.
    """
    def __init__(self, handler: EmailHandler, level: int = logging.NOTSET) -> None:
        super().__init__(level)
        self.email_handler = handler

    def emit(self, record: logging.LogRecord) -> None:
        if _is_internal(record.name) or not self.email_handler.enabled(record.levelno):
            return
        try:
            ctx = getattr(record, CONTEXT_KEY, None)
            _dispatch(self.email_handler, record_from_logging(record, self.formatter), ctx)
        except Exception:
            self.handleError(record)


class EmailProcessor:
    """ Processador final do structlog que entrega o evento ao ``EmailHandler``

    Deve ser o último da cadeia: após o envio levanta ``structlog.DropEvent``,
    já que a escrita na saída é feita pelo próprio handler.
    """
    def __init__(self, handler: EmailHandler) -> None:
        self.handler = handler

    def __call__(self, logger: Any, method_name: str, event_dict: dict) -> Any:
        if _is_internal(getattr(logger, "name", None)):
            raise structlog.DropEvent

        fields = dict(event_dict)
        level = self._level(method_name, fields)
        if not self.handler.enabled(level):
            raise structlog.DropEvent

        ctx = fields.pop(CONTEXT_KEY, None)
        message = fields.pop("event", "")
        record = Record(level=level, message=str(message), fields=fields, time=datetime.now().astimezone())
        _dispatch(self.handler, record, ctx)
        raise structlog.DropEvent

    @staticmethod
    def _level(method_name: str, fields: dict) -> int:
        #add_log_level grava "level"; sem ele usa o nome do método chamado
        name = fields.pop("level", None) or method_name
        try:
            return parse_level(name)
        except ValueError:
            return logging.INFO
