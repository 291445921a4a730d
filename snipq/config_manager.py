from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

VAULT_ENV = "SNIPQ_VAULT"
LOG_LEVEL_ENV = "SNIPQ_LOG_LEVEL"


class ConfigManager:
    """Application preferences for SnipQ (not vault settings).

    Preferences live in ``<base>/preferences.json``; the base directory
    defaults to ``~/.snipq`` and can be overridden for tests.
    """

    def __init__(self, base_dir: Optional[Path] = None) -> None:
        self._base = Path(base_dir) if base_dir is not None else Path.home() / ".snipq"
        self._base.mkdir(parents=True, exist_ok=True)
        self._preferences_path = self._base / "preferences.json"
        self._preferences: Dict[str, Any] = self._load_preferences()

    def _load_preferences(self) -> Dict[str, Any]:
        if not self._preferences_path.exists():
            return {}
        try:
            data = json.loads(self._preferences_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable preferences %s: %s", self._preferences_path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _save_preferences(self) -> None:
        try:
            self._preferences_path.write_text(json.dumps(self._preferences, indent=2), encoding="utf-8")
        except OSError as exc:
            # Best-effort persist; the in-memory value still applies.
            logger.warning("Could not save preferences: %s", exc)

    def get_preferences(self) -> Dict[str, Any]:
        return dict(self._preferences)

    def set_preference(self, key: str, value: Any) -> None:
        self._preferences[key] = value
        self._save_preferences()

    def get_vault_path(self, override: Optional[str] = None) -> Path:
        """Explicit override, then $SNIPQ_VAULT, then the preference, then ~/.snipq/vault."""
        for candidate in (override, os.environ.get(VAULT_ENV), self._preferences.get("vaultPath")):
            if candidate:
                return Path(candidate).expanduser()
        return self._base / "vault"

    def get_log_level(self) -> str:
        level = os.environ.get(LOG_LEVEL_ENV) or self._preferences.get("logLevel") or "WARNING"
        return str(level).upper()
