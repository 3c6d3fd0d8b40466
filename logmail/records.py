""" Modelos de dados trocados entre o handler e as estratégias de envio """

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, TYPE_CHECKING

if TYPE_CHECKING:
    from .context import Context


@dataclass(frozen=True)
class Source:
    """ Local do código que emitiu o registro """
    function: str
    file: str
    line: int

    def __str__(self) -> str:
        return f"{self.file}:{self.line}"


@dataclass(frozen=True)
class Record:
    """ Um evento de log com nível, mensagem e campos estruturados

    O handler apenas lê o registro; ele nunca é alterado após criado.
    """
    level: int
    message: str
    fields: Mapping[str, Any] = field(default_factory=dict)
    time: datetime | None = None
    source: Source | None = None

    @classmethod
    def create(cls, level: int, message: str, **fields: Any) -> "Record":
        """ Cria um registro com o horário local atual """
        return cls(level=level, message=message, fields=fields, time=datetime.now().astimezone())


@dataclass(frozen=True)
class EmailTask:
    """ Email pendente aguardando o worker da fila limitada """
    context: "Context"
    record: Record
    rendered_text: str
    subject: str
    body: str
