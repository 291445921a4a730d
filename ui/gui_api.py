from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from snipq.config_manager import ConfigManager
from snipq.errors import SnipqError
from snipq.expansion_service import ExpansionService
from snipq.history import HistoryRecorder, HistorySink
from snipq.models import ExpansionContext
from snipq.snippet_store import SnippetStore
from snipq.template_renderer import placeholder_names
from snipq.trigger_parser import coerce_params
from snipq.watcher_manager import WatcherManager

logger = logging.getLogger(__name__)


class GUIApi:
    """Backend surface handed to the UI layer.

    Every method returns a JSON-friendly dict with a ``status`` key; core
    errors are reported as ``{"status": "error", "kind": ..., "detail": ...}``
    and never raised to the caller.
    """

    def __init__(
        self,
        vault_path: Optional[str] = None,
        config: Optional[ConfigManager] = None,
        store: Optional[SnippetStore] = None,
        history_sink: Optional[HistorySink] = None,
        context_provider: Optional[Callable[[], ExpansionContext]] = None,
    ) -> None:
        self.config = config if config is not None else ConfigManager()
        self.store = store if store is not None else SnippetStore(self.config.get_vault_path(vault_path))
        snapshot = self.store.load()
        self.service = ExpansionService(
            snapshot, history=HistoryRecorder(snapshot.settings.history_limit, sink=history_sink)
        )
        self._context_provider = context_provider
        self._watcher: Optional[WatcherManager] = None

    def _context(self, params: Optional[Dict[str, Any]], app_id: Optional[str]) -> ExpansionContext:
        base = self._context_provider() if self._context_provider else ExpansionContext()
        return ExpansionContext(
            app_id=app_id or base.app_id,
            now=base.now,
            clipboard=base.clipboard,
            variables=base.variables,
            params=coerce_params(params),
        )

    # -------------------------
    # Vault-backed queries
    # -------------------------
    def get_groups(self) -> Dict[str, Any]:
        groups = [g.to_dict() for g in self.store.list_groups()]
        return {"status": "success", "groups": groups}

    def get_snippets(self, group_id: str) -> Dict[str, Any]:
        if self.store.snapshot.group(group_id) is None:
            return {"status": "error", "kind": "InvalidGroup", "detail": f"Group '{group_id}' not found"}
        snippets = [s.to_dict() for s in self.store.list_snippets(group_id)]
        return {"status": "success", "snippets": snippets}

    def get_snippet(self, snippet_id: str) -> Dict[str, Any]:
        snippet = self.store.get_snippet(snippet_id)
        if snippet is None:
            return {"status": "error", "kind": "InvalidSnippet", "detail": f"Snippet '{snippet_id}' not found"}
        try:
            placeholders = placeholder_names(snippet.template)
        except SnipqError as exc:
            return exc.to_dict()
        return {"status": "success", "snippet": snippet.to_dict(), "placeholders": placeholders}

    def search_snippets(self, query: str = "") -> Dict[str, Any]:
        return self.store.search_snippets(query)

    def get_vault_info(self) -> Dict[str, Any]:
        info = self.store.vault_info()
        info["status"] = "success"
        info["errors"] = [dict(e) for e in self.store.snapshot.errors]
        return info

    def get_settings(self) -> Dict[str, Any]:
        return {"status": "success", "settings": self.service.state.settings.to_dict()}

    def get_variables(self) -> Dict[str, Any]:
        return {"status": "success", "variables": self.service.state.resolver.names()}

    # -------------------------
    # Expansion
    # -------------------------
    def expand_snippet(
        self, trigger_text: str, params: Optional[Dict[str, Any]] = None, app_id: Optional[str] = None
    ) -> Dict[str, Any]:
        try:
            rendered = self.service.expand(trigger_text, self._context(params, app_id))
        except SnipqError as exc:
            logger.info("Expand %r failed: %s", trigger_text, exc.detail)
            return exc.to_dict()
        result = rendered.to_dict()
        result["status"] = "success"
        return result

    def preview_snippet(self, trigger_text: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            output = self.service.preview(trigger_text, self._context(params, None))
        except SnipqError as exc:
            return exc.to_dict()
        return {"status": "success", "output": output}

    # -------------------------
    # History
    # -------------------------
    def get_history(self) -> Dict[str, Any]:
        entries = [e.to_dict() for e in self.service.history.entries()]
        return {"status": "success", "count": len(entries), "entries": entries}

    def clear_history(self) -> Dict[str, str]:
        self.service.history.clear()
        return {"status": "success", "detail": "History cleared"}

    # -------------------------
    # Vault reload / watching
    # -------------------------
    def reload(self) -> Dict[str, Any]:
        snapshot = self.store.load()
        self.service.publish(snapshot)
        return {
            "status": "success",
            "version": snapshot.version,
            "groups": len(snapshot.groups),
            "snippets": len(snapshot.snippets),
            "errors": [dict(e) for e in snapshot.errors],
        }

    def start_watching(self, observer: Optional[Any] = None, debounce: float = 0.25) -> Dict[str, Any]:
        if self._watcher is None:
            vault_dir = self.store.vault_dir
            if vault_dir is None:
                return {"status": "error", "detail": "Vault directory not configured"}
            self._watcher = WatcherManager([Path(vault_dir)], self.reload, observer=observer, debounce=debounce)
        self._watcher.start()
        return {"status": "success", "running": self._watcher.is_running()}

    def shutdown(self) -> None:
        if self._watcher is not None:
            self._watcher.stop()
