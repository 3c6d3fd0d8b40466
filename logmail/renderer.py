""" Renderização de registros em texto (logfmt) ou JSON

Usa os renderizadores do structlog como motor de formatação. Cada instância é
imutável: ``with_attrs`` e ``with_group`` devolvem novas instâncias, então o
renderizador pode ser compartilhado entre threads sem lock.
"""

from __future__ import annotations

from typing import Any, Mapping

import structlog

from .exceptions import RenderError
from .levels import level_name
from .options import HandlerOptions
from .records import Record


def _merge_at(root: Mapping[str, Any], path: tuple[str, ...], fields: Mapping[str, Any]) -> dict:
    """ Copia ``root`` inserindo ``fields`` dentro do grupo indicado por ``path`` """
    merged = dict(root)
    if not path:
        merged.update(fields)
        return merged
    head, rest = path[0], path[1:]
    child = merged.get(head)
    merged[head] = _merge_at(child if isinstance(child, Mapping) else {}, rest, fields)
    return merged


def _flatten(mapping: Mapping[str, Any], prefix: str = "") -> dict:
    """ Grupos aninhados viram chaves pontuadas no formato texto (``req.id=1``) """
    flat: dict[str, Any] = {}
    for key, value in mapping.items():
        name = f"{prefix}{key}"
        if isinstance(value, Mapping):
            flat.update(_flatten(value, name + "."))
        else:
            flat[name] = value
    return flat


class RecordRenderer:
    """ Converte um ``Record`` em uma linha de log terminada por ``\\n`` """
    def __init__(self, json_format: bool = False, options: HandlerOptions | None = None, *,
                 attrs: Mapping[str, Any] | None = None, groups: tuple[str, ...] = ()):
        self.json_format = json_format
        self.options = options or HandlerOptions()

        #Campos já vinculados (aninhados por grupo) e grupo corrente
        self._attrs: Mapping[str, Any] = dict(attrs or {})
        self._groups = tuple(groups)

        if json_format:
            self._processor = structlog.processors.JSONRenderer(separators=(",", ":"), ensure_ascii=False)
        else:
            self._processor = structlog.processors.LogfmtRenderer(bool_as_flag=False)

    @property
    def groups(self) -> tuple[str, ...]:
        return self._groups

    def enabled(self, level: int) -> bool:
        return level >= self.options.level

    def with_attrs(self, attrs: Mapping[str, Any]) -> "RecordRenderer":
        if not attrs:
            return self
        merged = _merge_at(self._attrs, self._groups, attrs)
        return RecordRenderer(self.json_format, self.options, attrs=merged, groups=self._groups)

    def with_group(self, name: str) -> "RecordRenderer":
        if not name:
            return self
        return RecordRenderer(self.json_format, self.options, attrs=self._attrs, groups=self._groups + (name,))

    def render(self, record: Record) -> str:
        try:
            event_dict = self._event_dict(record)
            if not self.json_format:
                event_dict = _flatten(event_dict)
            line = self._processor(None, level_name(record.level).lower(), event_dict)
        except RenderError:
            raise
        except Exception as exc:
            raise RenderError(f"failed to render log record: {exc}") from exc
        return line + "\n"

    def _event_dict(self, record: Record) -> dict:
        builtins: dict[str, Any] = {}
        if record.time is not None:
            builtins["time"] = record.time.isoformat()
        builtins["level"] = level_name(record.level)
        if self.options.add_source and record.source is not None:
            builtins["source"] = str(record.source)
        builtins["msg"] = record.message

        attrs = self._attrs
        if record.fields:
            attrs = _merge_at(attrs, self._groups, record.fields)

        event_dict = self._replace((), builtins)
        event_dict.update(self._replace((), attrs))
        return event_dict

    def _replace(self, groups: tuple[str, ...], mapping: Mapping[str, Any]) -> dict:
        """ Aplica ``replace_attr`` a cada atributo simples; grupos vazios são omitidos """
        replace_attr = self.options.replace_attr
        out: dict[str, Any] = {}
        for key, value in mapping.items():
            if isinstance(value, Mapping):
                nested = self._replace(groups + (key,), value)
                if nested:
                    out[key] = nested
                continue
            if replace_attr is not None:
                replaced = replace_attr(groups, key, value)
                if replaced is None:
                    continue
                key, value = replaced
            out[key] = value
        return out
