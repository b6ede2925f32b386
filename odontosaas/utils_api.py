"""Utilitários da camada HTTP/JSON.

- ``ok``: envelope de sucesso ``{"success": true, "data": ...}``.
- ``validate_json``: valida o corpo JSON com um FlaskForm. O corpo é
  "achatado" para MultiDict (chaves camelCase viram snake_case, listas de
  objetos viram entradas ``campo-0-sub`` de FieldList/FormField).
- ``arg_*``: leitura tipada de query string.
"""

from __future__ import annotations

import json
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable

from flask import current_app, jsonify, request
from werkzeug.datastructures import MultiDict
from wtforms import Field

from .errors import ValidationError
from .utils_dates import parse_datetime

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")
_CENTS = Decimal("0.01")


def ok(data: Any = None, status: int = 200):
    return jsonify({"success": True, "data": data}), status


def to_snake(name: str) -> str:
    return _CAMEL_RE.sub("_", name).lower()


def get_json_body() -> dict:
    if not request.get_data():
        return {}
    body = request.get_json(force=True, silent=True)
    if not isinstance(body, dict):
        raise ValidationError("Body da requisição inválido")
    return body


def flatten_payload(payload: dict, prefix: str = "") -> list[tuple[str, str]]:
    items: list[tuple[str, str]] = []
    for key, value in payload.items():
        name = prefix + to_snake(str(key))
        if value is None:
            continue
        if isinstance(value, dict):
            items.append((name, json.dumps(value)))
        elif isinstance(value, (list, tuple)):
            for idx, entry in enumerate(value):
                if isinstance(entry, dict):
                    items.extend(flatten_payload(entry, f"{name}-{idx}-"))
                elif entry is not None:
                    items.append((name, _scalar(entry)))
        else:
            items.append((name, _scalar(value)))
    return items


def _scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _collect_errors(errors) -> Iterable[str]:
    if isinstance(errors, dict):
        for value in errors.values():
            yield from _collect_errors(value)
    elif isinstance(errors, (list, tuple)):
        for value in errors:
            yield from _collect_errors(value)
    elif errors:
        yield str(errors)


def validate_json(form_class, payload: dict | None = None):
    """Instancia e valida ``form_class`` a partir do corpo JSON.

    Levanta ValidationError("Dados inválidos: ...") quando houver erros.
    """
    if payload is None:
        payload = get_json_body()
    form = form_class(formdata=MultiDict(flatten_payload(payload)), meta={"csrf": False})
    form.submitted_keys = {to_snake(str(k)) for k in payload}
    if not form.validate():
        messages = list(dict.fromkeys(_collect_errors(form.errors)))
        raise ValidationError("Dados inválidos: " + ", ".join(messages))
    return form


def submitted(form) -> dict[str, Any]:
    """Somente os campos presentes no corpo (para PATCH parcial)."""
    keys = getattr(form, "submitted_keys", set())
    return {name: field.data for name, field in form._fields.items() if name in keys}


# ---------------------------------------------------------------------------
# Campos WTForms para JSON
# ---------------------------------------------------------------------------


class JSONDictField(Field):
    """Objeto JSON (dict) serializado no achatamento do corpo."""

    def process_formdata(self, valuelist):
        if not valuelist:
            return
        try:
            data = json.loads(valuelist[0])
        except (TypeError, ValueError) as exc:
            raise ValueError(f"{self.label.text} deve ser um objeto") from exc
        if not isinstance(data, dict):
            raise ValueError(f"{self.label.text} deve ser um objeto")
        self.data = data


class ListField(Field):
    """Lista de escalares (ex: faces, ids)."""

    def __init__(self, label=None, validators=None, coerce=str, **kwargs):
        super().__init__(label, validators, **kwargs)
        self.coerce = coerce

    def process_data(self, value):
        self.data = list(value) if value else []

    def process_formdata(self, valuelist):
        try:
            self.data = [self.coerce(v) for v in valuelist]
        except (TypeError, ValueError) as exc:
            raise ValueError(f"{self.label.text} contém valores inválidos") from exc


class ISODateTimeField(Field):
    def process_formdata(self, valuelist):
        if not valuelist or not valuelist[0]:
            return
        try:
            self.data = parse_datetime(valuelist[0])
        except ValueError as exc:
            raise ValueError(f"{self.label.text} deve ser uma data ISO válida") from exc


class ISODateField(ISODateTimeField):
    def process_formdata(self, valuelist):
        super().process_formdata(valuelist)
        if self.data is not None and hasattr(self.data, "date"):
            self.data = self.data.date()


# ---------------------------------------------------------------------------
# Query string
# ---------------------------------------------------------------------------


def arg_str(name: str, max_length: int | None = None) -> str | None:
    raw = (request.args.get(name) or "").strip()
    if not raw:
        return None
    if max_length is not None and len(raw) > max_length:
        raise ValidationError(f'Parâmetro "{name}" deve ter no máximo {max_length} caracteres')
    return raw


def arg_int(name: str, default: int | None = None) -> int | None:
    raw = (request.args.get(name) or "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(f'Parâmetro "{name}" deve ser um número inteiro')


def arg_limit(name: str = "limit") -> int:
    """Limite de itens para listas curtas, restrito a [1, MAX_PAGE_LIMIT]."""
    cfg = current_app.config
    value = arg_int(name, cfg.get("DEFAULT_PAGE_LIMIT", 5))
    return max(1, min(value, cfg.get("MAX_PAGE_LIMIT", 50)))


def arg_bool(name: str) -> bool | None:
    raw = request.args.get(name)
    if raw is None or raw.strip() == "":
        return None
    return raw.strip().lower() in ("1", "true", "yes")


def arg_datetime(name: str):
    raw = (request.args.get(name) or "").strip()
    if not raw:
        return None
    try:
        return parse_datetime(raw)
    except ValueError:
        raise ValidationError(f'Parâmetro "{name}" deve ser uma data válida')


def arg_choice(name: str, choices: Iterable[str]) -> str | None:
    raw = (request.args.get(name) or "").strip()
    if not raw:
        return None
    choices = tuple(choices)
    if raw not in choices:
        raise ValidationError(f'Parâmetro "{name}" deve ser um de: {", ".join(choices)}')
    return raw


# ---------------------------------------------------------------------------
# Valores monetários
# ---------------------------------------------------------------------------


def to_money(value) -> Decimal:
    try:
        return Decimal(str(value if value is not None else 0)).quantize(_CENTS, ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise ValidationError("Valor monetário inválido") from exc


def money_float(value) -> float:
    return float(value or 0)
