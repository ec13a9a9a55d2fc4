"""Typed extraction of client signal payloads.

Browsers post the whole client signal tree as JSON. Numeric inputs arrive as JSON
numbers or as strings depending on the widget, so the field types below accept
either and normalize them before the shape model sees the value.
"""
from __future__ import annotations
import json
import math
from decimal import Decimal
from typing import Annotated, Any, Dict, Optional, Type, TypeVar

from fastapi import Request
from pydantic import BaseModel, BeforeValidator, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from errors import MalformedSignals, TypeMismatch

T = TypeVar("T", bound=BaseModel)


def _coerce_int(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, bool):
        raise ValueError("boolean is not a number")
    if isinstance(value, str):
        text = value.strip()
        return int(text) if text else 0
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"{value!r} is not a finite number")
        return int(value)
    raise ValueError(f"cannot read {type(value).__name__} as integer")


def _coerce_float(value: Any) -> float:
    if value is None:
        return 0.0
    if isinstance(value, bool):
        raise ValueError("boolean is not a number")
    if isinstance(value, str):
        text = value.strip()
        value = float(text) if text else 0.0
    if isinstance(value, int):
        try:
            value = float(value)
        except OverflowError as exc:
            raise ValueError(str(exc)) from exc
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"{value!r} is not a finite number")
        return value
    raise ValueError(f"cannot read {type(value).__name__} as number")


def _coerce_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        raise ValueError("boolean is not text")
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return canonical_decimal(value)
    raise ValueError(f"cannot read {type(value).__name__} as text")


def canonical_decimal(value: float) -> str:
    """Shortest plain decimal form: ``3.0 -> "3"``, ``1.5 -> "1.5"``, ``1e20 -> "100000000000000000000"``."""
    if not math.isfinite(value):
        raise ValueError(f"{value!r} is not a finite number")
    return format(Decimal(repr(value)).normalize(), "f")


SignalInt = Annotated[int, BeforeValidator(_coerce_int)]
SignalFloat = Annotated[float, BeforeValidator(_coerce_float)]
SignalStr = Annotated[str, BeforeValidator(_coerce_str)]


class SignalModel(BaseModel):
    """Base for signal shapes: camelCase JSON keys, unknown keys ignored."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


def parse_signals(raw: bytes | str | None, shape: Type[T]) -> T:
    if raw is None:
        return shape()
    try:
        text = raw.decode("utf-8") if isinstance(raw, bytes) else raw
        if not text.strip():
            return shape()
        payload = json.loads(text)
    except ValueError as exc:
        raise MalformedSignals(f"Unparseable signals: {exc}") from exc
    if not isinstance(payload, dict):
        raise MalformedSignals("Signals must be a JSON object")
    return coerce_signals(payload, shape)


def coerce_signals(payload: Dict[str, Any], shape: Type[T]) -> T:
    try:
        return shape.model_validate(payload)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(part) for part in first["loc"])
        raise TypeMismatch(field, first.get("input")) from exc


async def read_signals(request: Request, shape: Type[T]) -> T:
    """Read signals from ``?datastar=`` on GET requests, otherwise from the JSON body."""
    if request.method == "GET":
        return parse_signals(request.query_params.get("datastar"), shape)
    return parse_signals(await request.body(), shape)


async def read_json_object(request: Request) -> Optional[Dict[str, Any]]:
    """Raw JSON body as a dict, or ``None`` when the body is empty or not JSON."""
    raw = await request.body()
    if not raw.strip():
        return None
    try:
        payload = json.loads(raw)
    except ValueError:
        return None
    return payload if isinstance(payload, dict) else None


async def read_form(request: Request) -> Dict[str, str]:
    """Classic ``application/x-www-form-urlencoded`` bodies used by the auth flows."""
    form = await request.form()
    return {key: str(value).strip() for key, value in form.items()}
