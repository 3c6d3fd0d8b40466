""" Estratégia de assunto e corpo dos emails

As funções do usuário têm prioridade; sem elas, o assunto é o nome do nível e
o corpo é o próprio texto renderizado (ou o JSON reformatado com indentação).
"""

from __future__ import annotations

import json

from .exceptions import BodyRenderError
from .levels import level_name
from .options import GetBodyFunc, GetSubjectFunc


def prettify_json(text: str) -> str:
    """ Reserializa ``text`` com indentação de 4 espaços; JSON inválido é erro """
    try:
        data = json.loads(text)
    except ValueError as exc:
        raise BodyRenderError(text, str(exc)) from exc
    return json.dumps(data, indent=4, ensure_ascii=False)


class EmailComposer:
    """ Deriva assunto e corpo de um registro e da sua saída renderizada """
    def __init__(self, get_subject: GetSubjectFunc | None = None, get_body: GetBodyFunc | None = None, json_format: bool = False) -> None:
        self.get_subject = get_subject
        self.get_body = get_body
        self.json_format = json_format

    def subject(self, ctx, record, text: str) -> str:
        if self.get_subject is not None:
            return self.get_subject(ctx, record, text)
        return level_name(record.level)

    def body(self, ctx, record, text: str) -> str:
        if self.get_body is not None:
            return self.get_body(ctx, record, text)
        if self.json_format:
            return prettify_json(text)
        return text

    def compose(self, ctx, record, text: str) -> tuple[str, str]:
        """ Retorna ``(assunto, corpo)`` """
        return self.subject(ctx, record, text), self.body(ctx, record, text)
