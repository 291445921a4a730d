from __future__ import annotations

import itertools
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from snipq.errors import SnipqError
from snipq.models import Group, Settings, Snippet, VaultSnapshot

logger = logging.getLogger(__name__)

SETTINGS_FILE = "settings.yaml"
GROUPS_DIR = "groups"
GROUP_FILE = "group.yaml"
SNIPPETS_DIR = "snippets"

_versions = itertools.count(1)


class SnippetStore:
    """Read-only view of a SnipQ vault directory.

    Layout::

        <vault>/settings.yaml
        <vault>/groups/<group id>/group.yaml
        <vault>/groups/<group id>/snippets/<snippet id>.yaml

    ``load`` turns the directory into an immutable ``VaultSnapshot``. Files that
    fail to parse or validate are skipped and reported in ``snapshot.errors``;
    writing the vault is the vault owner's job, not ours.
    """

    def __init__(self, vault_dir: Optional[Path] = None) -> None:
        self.vault_dir = Path(vault_dir) if vault_dir is not None else None
        self._snapshot: Optional[VaultSnapshot] = None

    def set_vault_dir(self, path: Path) -> None:
        self.vault_dir = Path(path)
        self._snapshot = None

    @property
    def snapshot(self) -> VaultSnapshot:
        if self._snapshot is None:
            self.load()
        return self._snapshot

    def load(self) -> VaultSnapshot:
        errors: List[Dict[str, str]] = []
        groups: List[Group] = []
        snippets: List[Snippet] = []
        settings = Settings()

        if not self.vault_dir or not self.vault_dir.exists():
            logger.warning("Vault directory does not exist: %s", self.vault_dir)
        else:
            settings = self._load_settings(errors)
            groups_dir = self.vault_dir / GROUPS_DIR
            group_dirs = sorted(p for p in groups_dir.iterdir() if p.is_dir()) if groups_dir.exists() else []
            for group_dir in group_dirs:
                group = self._load_group(group_dir, errors)
                if group is None:
                    continue
                groups.append(group)
                snippets.extend(self._load_snippets(group_dir, group.id, errors))

        self._snapshot = VaultSnapshot(
            groups=tuple(groups),
            snippets=tuple(snippets),
            settings=settings,
            version=next(_versions),
            errors=tuple(errors),
            path=str(self.vault_dir) if self.vault_dir else None,
        )
        logger.info("Loaded %d snippets in %d groups from %s", len(snippets), len(groups), self.vault_dir)
        for err in errors:
            logger.error("Skipped %s: %s", err["file"], err["error"])
        return self._snapshot

    def _read_yaml(self, path: Path) -> Dict[str, Any]:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        if not isinstance(data, dict):
            raise ValueError(f"expected a mapping, got {type(data).__name__}")
        return data

    def _load_settings(self, errors: List[Dict[str, str]]) -> Settings:
        path = self.vault_dir / SETTINGS_FILE
        if not path.exists():
            return Settings()
        try:
            return Settings.from_dict(self._read_yaml(path))
        except (yaml.YAMLError, ValueError, OSError, SnipqError) as exc:
            errors.append({"file": str(path), "error": str(exc)})
            return Settings()

    def _load_group(self, group_dir: Path, errors: List[Dict[str, str]]) -> Optional[Group]:
        path = group_dir / GROUP_FILE
        try:
            data = self._read_yaml(path) if path.exists() else {}
            # The directory name is the group id; group.yaml may omit it.
            return Group.from_dict(data, group_id=group_dir.name)
        except (yaml.YAMLError, ValueError, OSError, SnipqError) as exc:
            errors.append({"file": str(path), "error": str(exc)})
            return None

    def _load_snippets(self, group_dir: Path, group_id: str, errors: List[Dict[str, str]]) -> List[Snippet]:
        snippets: List[Snippet] = []
        snippets_dir = group_dir / SNIPPETS_DIR
        if not snippets_dir.exists():
            return snippets
        for file in sorted(snippets_dir.glob("*.yaml")):
            try:
                snippets.append(Snippet.from_dict(self._read_yaml(file), group_id=group_id))
            except (yaml.YAMLError, ValueError, OSError, SnipqError) as exc:
                errors.append({"file": str(file), "error": str(exc)})
        return snippets

    # -------------------------
    # Queries
    # -------------------------
    def list_groups(self) -> List[Group]:
        return list(self.snapshot.sorted_groups())

    def list_snippets(self, group_id: str) -> List[Snippet]:
        return list(self.snapshot.snippets_for(group_id))

    def get_snippet(self, snippet_id: str) -> Optional[Snippet]:
        for s in self.snapshot.snippets:
            if s.id == snippet_id:
                return s
        return None

    def search_snippets(self, query: str = "") -> Dict[str, Any]:
        q = (query or "").strip().lower()
        results: List[Snippet] = []
        for s in self.snapshot.snippets:
            if q and not (
                q in s.name.lower()
                or q in s.trigger.lower()
                or any(q in tag.lower() for tag in s.tags)
            ):
                continue
            results.append(s)
        results.sort(key=lambda s: (s.name, s.id))
        return {"status": "success", "count": len(results), "results": [s.to_dict() for s in results]}

    def vault_info(self) -> Dict[str, Any]:
        snapshot = self.snapshot
        return {
            "vaultPath": snapshot.path or "",
            "exists": bool(self.vault_dir and self.vault_dir.exists()),
            "groups": len(snapshot.groups),
            "snippets": len(snapshot.snippets),
        }
