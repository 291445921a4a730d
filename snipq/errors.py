from __future__ import annotations

from typing import Sequence


class SnipqError(Exception):
    """Base class for every error raised by the snipq core."""

    kind = "SnipqError"

    def __init__(self, detail: str = "") -> None:
        super().__init__(detail)
        self.detail = detail

    def to_dict(self) -> dict:
        return {"status": "error", "kind": self.kind, "detail": self.detail}


class ExpansionError(SnipqError):
    """Recoverable failure of a single expand/preview call."""

    kind = "ExpansionError"


class MalformedParameter(ExpansionError):
    kind = "MalformedParameter"


class TriggerNotFound(ExpansionError):
    kind = "TriggerNotFound"

    def __init__(self, trigger: str) -> None:
        super().__init__(f"No snippet for trigger '{trigger}'")
        self.trigger = trigger


class BoundaryViolation(ExpansionError):
    kind = "BoundaryViolation"


class AppExcluded(ExpansionError):
    kind = "AppExcluded"

    def __init__(self, app_id: str) -> None:
        super().__init__(f"Expansion disabled in '{app_id}'")
        self.app_id = app_id


class MissingRequiredPlaceholder(ExpansionError):
    kind = "MissingRequiredPlaceholder"

    def __init__(self, snippet_id: str, names: Sequence[str]) -> None:
        self.names = tuple(names)
        super().__init__(f"Snippet '{snippet_id}' requires: {', '.join(self.names)}")
        self.snippet_id = snippet_id


class RenderFailure(ExpansionError):
    kind = "RenderFailure"


class VaultError(SnipqError):
    """Invalid vault content (groups, snippets or settings)."""

    kind = "VaultError"


class InvalidSnippet(VaultError):
    kind = "InvalidSnippet"


class InvalidGroup(VaultError):
    kind = "InvalidGroup"


class InvalidSettings(VaultError):
    kind = "InvalidSettings"
