"""Field-level rules declared on signal models, with localized error maps.

Rules ride along as ``Annotated`` metadata, so extraction (type coercion) and
validation (business constraints) stay two separate steps::

    class EntryForm(SignalModel):
        title: Annotated[SignalStr, Rules(required=True, max=255)] = ""
        amount: Annotated[SignalInt, Rules(required=True, gt=0)] = 0

``min``/``max``/``gt``/``gte`` bound the length of text and the value of numbers.
``required`` rejects zero values ("" and 0).
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel

from i18n import translate


@dataclass(frozen=True)
class Rules:
    required: bool = False
    min: Optional[float] = None
    max: Optional[float] = None
    gt: Optional[float] = None
    gte: Optional[float] = None
    email: bool = False


def validate(value: BaseModel, locale: str) -> Optional[Dict[str, str]]:
    """Return ``{json_name: message}`` for every violated field, or ``None``.

    Nested models are walked and reported flat under their leaf JSON names.
    """
    errors: Dict[str, str] = {}
    _collect(value, locale, errors)
    return errors or None


def _collect(model: BaseModel, locale: str, errors: Dict[str, str]) -> None:
    model_cls = type(model)
    for name, info in model_cls.model_fields.items():
        current = getattr(model, name)
        if isinstance(current, BaseModel):
            _collect(current, locale, errors)
            continue
        key = json_name(model_cls, name)
        for rule in info.metadata:
            if not isinstance(rule, Rules):
                continue
            message = _check(rule, current, locale)
            if message:
                errors.setdefault(key, message)
                break


def json_name(model_cls: type[BaseModel], name: str) -> str:
    info = model_cls.model_fields[name]
    if info.alias:
        return info.alias
    generator = model_cls.model_config.get("alias_generator")
    if callable(generator):
        return generator(name)
    return name


def _is_zero(value: Any) -> bool:
    return value is None or value == "" or (not isinstance(value, bool) and value == 0)


def _check(rule: Rules, value: Any, locale: str) -> Optional[str]:
    if rule.required and _is_zero(value):
        return translate(locale, "validation.required")
    if value is None:
        return None
    is_text = isinstance(value, str)
    size = len(value) if is_text else value
    if rule.email and value:
        try:
            validate_email(value, check_deliverability=False)
        except EmailNotValidError:
            return translate(locale, "validation.email")
    if rule.min is not None and size < rule.min:
        return translate(locale, "validation.min_len" if is_text else "validation.min", _fmt(rule.min))
    if rule.max is not None and size > rule.max:
        return translate(locale, "validation.max_len" if is_text else "validation.max", _fmt(rule.max))
    if rule.gt is not None and size <= rule.gt:
        return translate(locale, "validation.gt", _fmt(rule.gt))
    if rule.gte is not None and size < rule.gte:
        return translate(locale, "validation.gte", _fmt(rule.gte))
    return None


def _fmt(bound: float) -> str:
    if isinstance(bound, int):
        return str(bound)
    return str(int(bound)) if float(bound).is_integer() else str(bound)


def empty_errors(fields: Iterable[str]) -> Dict[str, str]:
    return {field: "" for field in fields}


def with_errors(fields: Iterable[str], actual: Dict[str, str]) -> Dict[str, str]:
    """Every configured field present, blank unless it has an error."""
    errors = empty_errors(fields)
    errors.update(actual)
    return errors
