from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional
from urllib.parse import unquote_plus

from snipq.errors import MalformedParameter
from snipq.models import ParamValue, is_param_value, validate_trigger

__all__ = ["ParsedTrigger", "parse_trigger", "strip_prefix", "coerce_params", "validate_trigger"]

_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


@dataclass(frozen=True)
class ParsedTrigger:
    trigger: str
    params: Dict[str, str] = field(default_factory=dict)


def strip_prefix(trigger: str, prefix: str) -> str:
    if prefix and trigger.startswith(prefix):
        return trigger[len(prefix):]
    return trigger


def _decode(text: str) -> str:
    if _BAD_ESCAPE.search(text):
        raise MalformedParameter(f"Invalid percent-encoding in '{text}'")
    try:
        return unquote_plus(text, encoding="utf-8", errors="strict")
    except UnicodeDecodeError as exc:
        raise MalformedParameter(f"Invalid UTF-8 in '{text}': {exc}") from exc


def parse_trigger(raw_trigger: str, prefix: str = "") -> ParsedTrigger:
    """Split ``:ty?lang=vi&tone=casual`` into ``ty`` and ``{lang, tone}``.

    The prefix is only stripped when present so that UI callers may pass a
    bare trigger. Repeated keys keep their first position and their last value.
    """
    base, _, query = raw_trigger.strip().partition("?")
    params: Dict[str, str] = {}
    for segment in query.split("&") if query else ():
        if not segment:
            continue
        raw_key, sep, raw_value = segment.partition("=")
        key = _decode(raw_key)
        if not key:
            raise MalformedParameter(f"Empty parameter name in '{segment}'")
        params[key] = _decode(raw_value) if sep else ""
    return ParsedTrigger(trigger=strip_prefix(base.strip(), prefix), params=params)


def coerce_params(raw: Optional[Mapping[Any, Any]]) -> Dict[str, ParamValue]:
    """Validate a loosely-typed payload into the closed param schema."""
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise MalformedParameter(f"Parameters must be a mapping, got {type(raw).__name__}")
    params: Dict[str, ParamValue] = {}
    for key, value in raw.items():
        if not isinstance(key, str) or not key:
            raise MalformedParameter(f"Invalid parameter name: {key!r}")
        if not is_param_value(value):
            raise MalformedParameter(f"Unsupported value for '{key}': {type(value).__name__}")
        params[key] = value
    return params
