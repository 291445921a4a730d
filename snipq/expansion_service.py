from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Dict, Mapping, Optional, Tuple

from snipq.boundary import BoundaryValidator
from snipq.errors import TriggerNotFound
from snipq.history import HistoryRecorder
from snipq.models import (
    ExpansionContext,
    HistoryEntry,
    ParamValue,
    Rendered,
    Settings,
    Snippet,
    VaultSnapshot,
    param_to_text,
)
from snipq.snippet_index import SnippetIndex
from snipq.template_renderer import TemplateRenderer
from snipq.trigger_parser import coerce_params, parse_trigger
from snipq.variable_resolver import VariableResolver

logger = logging.getLogger(__name__)


def _options(snippet: Snippet, params: Mapping[str, ParamValue]) -> Dict[str, str]:
    """Per-call variable options: snippet defaults overridden by bound params."""
    options = dict(snippet.defaults)
    options.update((key, param_to_text(value)) for key, value in params.items())
    return options


@dataclass(frozen=True)
class EngineState:
    """Everything one call reads; replaced wholesale on publish."""

    snapshot: VaultSnapshot
    index: SnippetIndex
    resolver: VariableResolver

    @property
    def settings(self) -> Settings:
        return self.snapshot.settings

    @property
    def version(self) -> int:
        return self.snapshot.version


class ExpansionService:
    """Trigger -> Rendered pipeline over an atomically swapped snapshot.

    ``expand`` runs the boundary/exclusion checks and records history;
    ``preview`` does neither. Both raise an ``ExpansionError`` subclass on
    failure.
    """

    def __init__(
        self,
        snapshot: Optional[VaultSnapshot] = None,
        history: Optional[HistoryRecorder] = None,
        renderer: Optional[TemplateRenderer] = None,
        boundary: Optional[BoundaryValidator] = None,
    ) -> None:
        self._publish_lock = threading.Lock()
        self.renderer = renderer if renderer is not None else TemplateRenderer()
        self.boundary = boundary if boundary is not None else BoundaryValidator()
        snapshot = snapshot if snapshot is not None else VaultSnapshot()
        self.history = history if history is not None else HistoryRecorder(snapshot.settings.history_limit)
        self._state = self._build_state(snapshot)
        self.history.resize(snapshot.settings.history_limit)

    @staticmethod
    def _build_state(snapshot: VaultSnapshot) -> EngineState:
        index = SnippetIndex.build(snapshot.groups, snapshot.snippets, prefix=snapshot.settings.prefix)
        return EngineState(snapshot=snapshot, index=index, resolver=VariableResolver(snapshot.settings))

    @property
    def state(self) -> EngineState:
        return self._state

    def publish(self, snapshot: VaultSnapshot) -> EngineState:
        """Swap in a new snapshot; calls already running keep the old one.

        A snapshot older than the current one (a slow reload finishing after a
        newer one) is ignored and the current state is returned.
        """
        state = self._build_state(snapshot)
        with self._publish_lock:
            current = self._state
            if snapshot.version < current.version:
                logger.info("Ignoring stale vault snapshot v%d (current v%d)", snapshot.version, current.version)
                return current
            self._state = state
            self.history.resize(snapshot.settings.history_limit)
        logger.info(
            "Published vault snapshot v%d: %d groups, %d snippets, %d triggers",
            snapshot.version,
            len(snapshot.groups),
            len(snapshot.snippets),
            len(state.index),
        )
        return state

    def expand(self, raw_trigger: str, context: Optional[ExpansionContext] = None) -> Rendered:
        context = context if context is not None else ExpansionContext()
        state = self._state
        snippet, params = self._match(state, raw_trigger, context)
        self.boundary.check(raw_trigger.strip(), context, state.settings)
        now = context.now or datetime.now(timezone.utc)
        variables = state.resolver.bind(replace(context, now=now), _options(snippet, params))
        rendered = self.renderer.render(snippet, params, variables)
        entry = HistoryEntry(
            snippet_id=snippet.id,
            timestamp=now,
            output_length=len(rendered.output),
            app_id=context.app_id,
        )
        self.history.record(snippet, entry, state.settings)
        logger.debug("Expanded %s via snippet %s", raw_trigger, snippet.id)
        return rendered

    def preview(self, raw_trigger: str, context: Optional[ExpansionContext] = None) -> str:
        return self.render(raw_trigger, context).output

    def render(self, raw_trigger: str, context: Optional[ExpansionContext] = None) -> Rendered:
        """The full render behind ``preview``: no checks, no history."""
        context = context if context is not None else ExpansionContext()
        state = self._state
        snippet, params = self._match(state, raw_trigger, context)
        return self.renderer.render(snippet, params, state.resolver.bind(context, _options(snippet, params)))

    def _match(
        self, state: EngineState, raw_trigger: str, context: ExpansionContext
    ) -> Tuple[Snippet, Dict[str, ParamValue]]:
        parsed = parse_trigger(raw_trigger, state.settings.prefix)
        snippet = state.index.resolve(parsed.trigger)
        if snippet is None:
            raise TriggerNotFound(parsed.trigger)
        params = coerce_params(context.params)
        params.update(parsed.params)
        return snippet, params

