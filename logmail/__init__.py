""" logmail: handler de log estruturado com envio de registros por email.

Este pacote concentra o renderizador (texto ou JSON), o portão de nível,
as estratégias de assunto/corpo e as três formas de entrega (síncrona,
fila assíncrona e função personalizada).
"""

__version__ = "0.1.0"

from .context import Context, background
from .exceptions import (
    LogmailError,
    ConfigurationError,
    RenderError,
    BodyRenderError,
    DeliveryError,
    DeliveryTimeoutError,
    DeliveryCancelledError,
    HandlerStoppedError,
)
from .levels import DEBUG, INFO, WARNING, ERROR, CRITICAL, level_name, parse_level, qualifies
from .records import Record, Source, EmailTask
from .options import SMTPConnectionInfo, HandlerOptions, EmailOptions, AsyncEmailOptions
from .compose import EmailComposer, prettify_json
from .mailer import Mailer
from .renderer import RecordRenderer
from .handler import EmailHandler, new_handler, new_async_handler, new_custom_handler
from .integrations import EmailLoggingHandler, EmailProcessor

__all__ = [
    "Context",
    "background",
    "LogmailError",
    "ConfigurationError",
    "RenderError",
    "BodyRenderError",
    "DeliveryError",
    "DeliveryTimeoutError",
    "DeliveryCancelledError",
    "HandlerStoppedError",
    "DEBUG",
    "INFO",
    "WARNING",
    "ERROR",
    "CRITICAL",
    "level_name",
    "parse_level",
    "qualifies",
    "Record",
    "Source",
    "EmailTask",
    "SMTPConnectionInfo",
    "HandlerOptions",
    "EmailOptions",
    "AsyncEmailOptions",
    "EmailComposer",
    "prettify_json",
    "Mailer",
    "RecordRenderer",
    "EmailHandler",
    "new_handler",
    "new_async_handler",
    "new_custom_handler",
    "EmailLoggingHandler",
    "EmailProcessor",
]
