""" Níveis de log e o portão de despacho por email

Os níveis seguem os inteiros do módulo ``logging`` da biblioteca padrão,
permitindo comparar registros vindos do stdlib, do structlog ou criados
diretamente.
"""

from __future__ import annotations

import logging

DEBUG = logging.DEBUG
INFO = logging.INFO
WARNING = logging.WARNING
ERROR = logging.ERROR
CRITICAL = logging.CRITICAL

#Ordenado do maior para o menor para achar o nível base mais próximo
_NAMED_LEVELS = [
    (CRITICAL, "CRITICAL"),
    (ERROR, "ERROR"),
    (WARNING, "WARNING"),
    (INFO, "INFO"),
    (DEBUG, "DEBUG"),
]

_NAME_TO_LEVEL = {
    "CRITICAL": CRITICAL,
    "FATAL": CRITICAL,
    "ERROR": ERROR,
    "EXCEPTION": ERROR,
    "WARNING": WARNING,
    "WARN": WARNING,
    "INFO": INFO,
    "DEBUG": DEBUG,
    "NOTSET": logging.NOTSET,
}


def level_name(level: int) -> str:
    """ Nome legível do nível; níveis intermediários viram ``ERROR+2`` """
    for base, name in _NAMED_LEVELS:
        if level >= base:
            delta = level - base
            return name if delta == 0 else f"{name}+{delta}"
    delta = level - DEBUG
    return f"DEBUG{delta:+d}"


def parse_level(value: int | str) -> int:
    """ Converte ``"error"``, ``"ERROR+2"`` ou ``40`` para o inteiro do nível """
    if isinstance(value, bool):
        raise ValueError(f"invalid log level: {value!r}")
    if isinstance(value, int):
        return value

    text = str(value).strip().upper()
    if text.lstrip("-").isdigit():
        return int(text)

    offset = 0
    for sign in ("+", "-"):
        if sign in text:
            text, _, raw = text.partition(sign)
            try:
                offset = int(raw) if sign == "+" else -int(raw)
            except ValueError:
                raise ValueError(f"invalid log level: {value!r}") from None
            break

    if text not in _NAME_TO_LEVEL:
        raise ValueError(f"invalid log level: {value!r}")
    return _NAME_TO_LEVEL[text] + offset


def qualifies(level: int, threshold: int) -> bool:
    """ Um registro é enviado por email quando ``level >= threshold`` """
    return level >= threshold
