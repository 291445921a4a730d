"""Placeholder templates: ``Hello, {{name|friend}}!{{cursor}}``.

A template is a sequence of literal spans and ``{{name}}`` /
``{{name|default}}`` placeholders. ``{{cursor}}`` renders as nothing and marks
where the caret goes after expansion.

Resolution order for a placeholder:

1. a bound parameter (context params overridden by trigger params)
2. the inline default after ``|``
3. the snippet's ``defaults``
4. a built-in/contextual variable
5. unresolved: an error for strict snippets, otherwise ``""``
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Dict, List, Mapping, Optional, Tuple, Union

from snipq.errors import MissingRequiredPlaceholder, RenderFailure
from snipq.models import ParamValue, Rendered, Snippet, param_to_text

CURSOR = "cursor"
OPEN = "{{"
CLOSE = "}}"

_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_.\-]*$")


@dataclass(frozen=True)
class Placeholder:
    name: str
    default: Optional[str] = None


Span = Union[str, Placeholder]


@lru_cache(maxsize=512)
def parse_template(template: str) -> Tuple[Span, ...]:
    spans: List[Span] = []
    pos = 0
    while True:
        start = template.find(OPEN, pos)
        if start < 0:
            break
        end = template.find(CLOSE, start + len(OPEN))
        if end < 0:
            raise RenderFailure(f"Unclosed '{{{{' at offset {start}")
        body = template[start + len(OPEN):end]
        if OPEN in body:
            raise RenderFailure(f"Unclosed '{{{{' at offset {start}")
        name, sep, default = body.partition("|")
        name = name.strip()
        if not _NAME.match(name):
            raise RenderFailure(f"Invalid placeholder name {name!r} at offset {start}")
        if start > pos:
            spans.append(template[pos:start])
        spans.append(Placeholder(name, default if sep else None))
        pos = end + len(CLOSE)
    if pos < len(template):
        spans.append(template[pos:])
    return tuple(spans)


def placeholder_names(template: str) -> List[str]:
    """Distinct placeholder names in appearance order, cursor excluded."""
    seen: Dict[str, None] = {}
    for span in parse_template(template):
        if isinstance(span, Placeholder) and span.name != CURSOR:
            seen.setdefault(span.name, None)
    return list(seen)


class TemplateRenderer:
    def render(
        self,
        snippet: Snippet,
        params: Mapping[str, ParamValue],
        variables: Callable[[str], Optional[str]],
    ) -> Rendered:
        spans = parse_template(snippet.template)

        out: List[str] = []
        length = 0
        cursor: Optional[int] = None
        used: Dict[str, ParamValue] = {}
        missing: List[str] = []

        for span in spans:
            if isinstance(span, str):
                out.append(span)
                length += len(span)
                continue
            if span.name == CURSOR:
                if cursor is None:
                    cursor = length
                continue

            value = self._resolve(span, snippet, params, variables, used)
            if value is None:
                if span.name not in missing:
                    missing.append(span.name)
                continue
            out.append(value)
            length += len(value)

        if missing and snippet.strict:
            raise MissingRequiredPlaceholder(snippet.id, missing)

        for name, value in params.items():
            used.setdefault(name, value)

        output = "".join(out)
        return Rendered(
            output=output,
            cursor_offset=len(output) if cursor is None else cursor,
            used_snippet=snippet.id,
            used_params=used,
        )

    @staticmethod
    def _resolve(
        span: Placeholder,
        snippet: Snippet,
        params: Mapping[str, ParamValue],
        variables: Callable[[str], Optional[str]],
        used: Dict[str, ParamValue],
    ) -> Optional[str]:
        name = span.name
        if name in params:
            used.setdefault(name, params[name])
            return param_to_text(params[name])
        if span.default is not None:
            return span.default
        if name in snippet.defaults:
            used.setdefault(name, snippet.defaults[name])
            return snippet.defaults[name]
        value = variables(name)
        if value is not None:
            used.setdefault(name, value)
        return value
