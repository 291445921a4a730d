from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple, Union

from snipq.errors import InvalidGroup, InvalidSettings, InvalidSnippet

ParamValue = Union[str, int, float, bool]

MAX_HISTORY_LIMIT = 10000
DEFAULT_HISTORY_LIMIT = 200
SENSITIVE_TAG = "sensitive"

_GROUP_ID_FORBIDDEN = set(" \t\n\r/\\:*?\"<>|")


def param_to_text(value: ParamValue) -> str:
    """Render a param value the way it is substituted into templates."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def is_param_value(value: Any) -> bool:
    return isinstance(value, (str, int, float, bool))


def validate_trigger(trigger: str) -> bool:
    """A trigger is non-empty and contains no whitespace."""
    if not trigger:
        return False
    return not any(ch.isspace() for ch in trigger)


def _frozen(mapping: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping or {}))


def _blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


@dataclass(frozen=True)
class Group:
    id: str
    name: str
    description: str = ""
    icon: str = ""
    order: int = 0
    enabled: bool = True

    @property
    def sort_key(self) -> Tuple[int, str]:
        return (self.order, self.id)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], group_id: Optional[str] = None) -> "Group":
        gid = group_id if group_id is not None else data.get("id")
        if _blank(gid):
            raise InvalidGroup("ID cannot be empty")
        if any(ch in _GROUP_ID_FORBIDDEN for ch in gid):
            raise InvalidGroup(f"ID '{gid}' contains invalid characters")
        name = data.get("name", gid)
        if _blank(name):
            raise InvalidGroup(f"Group '{gid}': name cannot be empty")
        try:
            order = int(data.get("order") or 0)
        except (TypeError, ValueError):
            raise InvalidGroup(f"Group '{gid}': order must be an integer")
        return cls(
            id=gid,
            name=name,
            description=data.get("description") or "",
            icon=data.get("icon") or "",
            order=order,
            enabled=bool(data.get("enabled", True)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "icon": self.icon,
            "order": self.order,
            "enabled": self.enabled,
        }


@dataclass(frozen=True)
class Snippet:
    id: str
    name: str
    trigger: str
    template: str
    group_id: str
    description: str = ""
    tags: FrozenSet[str] = frozenset()
    strict: bool = False
    defaults: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        # Accept plain dicts/lists from callers but keep the snapshot immutable.
        if not isinstance(self.defaults, MappingProxyType):
            object.__setattr__(self, "defaults", _frozen(self.defaults))
        if not isinstance(self.tags, frozenset):
            object.__setattr__(self, "tags", frozenset(self.tags))

    @property
    def is_sensitive(self) -> bool:
        return any(tag.lower() == SENSITIVE_TAG for tag in self.tags)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], group_id: Optional[str] = None) -> "Snippet":
        gid = group_id if group_id is not None else data.get("groupId")
        for key, value in (("id", data.get("id")), ("name", data.get("name")),
                           ("trigger", data.get("trigger")), ("template", data.get("template")),
                           ("groupId", gid)):
            if _blank(value):
                raise InvalidSnippet(f"{key} cannot be empty")
        if not validate_trigger(data["trigger"]):
            raise InvalidSnippet(f"Snippet '{data['id']}': trigger cannot contain whitespace")

        raw_defaults = data.get("defaults") or {}
        if not isinstance(raw_defaults, Mapping):
            raise InvalidSnippet(f"Snippet '{data['id']}': defaults must be a mapping")
        defaults: Dict[str, str] = {}
        for key, value in raw_defaults.items():
            if not isinstance(key, str) or not is_param_value(value):
                raise InvalidSnippet(f"Snippet '{data['id']}': unsupported default for '{key}'")
            defaults[key] = param_to_text(value)

        tags = data.get("tags") or []
        if isinstance(tags, str):
            tags = [tags]
        return cls(
            id=data["id"],
            name=data["name"],
            trigger=data["trigger"],
            template=data["template"],
            group_id=gid,
            description=data.get("description") or "",
            tags=frozenset(str(t) for t in tags),
            strict=bool(data.get("strict", False)),
            defaults=defaults,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "trigger": self.trigger,
            "description": self.description,
            "tags": sorted(self.tags),
            "strict": self.strict,
            "defaults": dict(self.defaults),
            "template": self.template,
            "groupId": self.group_id,
        }


def _setting_text(data: Mapping[str, Any], key: str, default: str) -> str:
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise InvalidSettings(f"{key} must be a string, got {type(value).__name__}")
    return value


def _setting_flag(data: Mapping[str, Any], key: str, default: bool) -> bool:
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise InvalidSettings(f"{key} must be true or false, got {value!r}")
    return value


def _setting_names(data: Mapping[str, Any], key: str) -> FrozenSet[str]:
    value = data.get(key)
    if value is None:
        return frozenset()
    if isinstance(value, str):
        return frozenset({value})
    if not isinstance(value, (list, tuple, set, frozenset)) or not all(isinstance(v, str) for v in value):
        raise InvalidSettings(f"{key} must be a list of names")
    return frozenset(value)


@dataclass(frozen=True)
class Settings:
    prefix: str = ":"
    expand_key: str = "Tab"
    strict_boundaries: bool = True
    excluded_apps: FrozenSet[str] = frozenset()
    locale: str = "en-US"
    default_date_format: str = "%Y-%m-%d"
    timezone: str = "Local"
    history_enabled: bool = True
    history_limit: int = DEFAULT_HISTORY_LIMIT
    pin_for_sensitive: bool = True

    def __post_init__(self) -> None:
        if not isinstance(self.excluded_apps, frozenset):
            object.__setattr__(self, "excluded_apps", frozenset(self.excluded_apps))
        if _blank(self.prefix):
            raise InvalidSettings("prefix cannot be empty")
        if not isinstance(self.history_limit, int) or isinstance(self.history_limit, bool):
            raise InvalidSettings("history limit must be an integer")
        if self.history_limit < 0:
            raise InvalidSettings("history limit cannot be negative")
        if self.history_limit > MAX_HISTORY_LIMIT:
            raise InvalidSettings(f"history limit cannot exceed {MAX_HISTORY_LIMIT}")

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "Settings":
        data = data or {}
        base = cls()
        limit = data.get("historyLimit", base.history_limit)
        try:
            limit = int(limit)
        except (TypeError, ValueError):
            raise InvalidSettings(f"history limit must be an integer, got {limit!r}")
        return cls(
            prefix=_setting_text(data, "prefix", base.prefix),
            expand_key=_setting_text(data, "expandKey", base.expand_key),
            strict_boundaries=_setting_flag(data, "strictBoundaries", base.strict_boundaries),
            excluded_apps=_setting_names(data, "excludedApps"),
            locale=_setting_text(data, "locale", base.locale) or base.locale,
            default_date_format=_setting_text(data, "defaultDateFormat", base.default_date_format)
            or base.default_date_format,
            timezone=_setting_text(data, "timezone", base.timezone) or base.timezone,
            history_enabled=_setting_flag(data, "historyEnabled", base.history_enabled),
            history_limit=limit,
            pin_for_sensitive=_setting_flag(data, "pinForSensitive", base.pin_for_sensitive),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "prefix": self.prefix,
            "expandKey": self.expand_key,
            "strictBoundaries": self.strict_boundaries,
            "excludedApps": sorted(self.excluded_apps),
            "locale": self.locale,
            "defaultDateFormat": self.default_date_format,
            "timezone": self.timezone,
            "historyEnabled": self.history_enabled,
            "historyLimit": self.history_limit,
            "pinForSensitive": self.pin_for_sensitive,
        }


@dataclass(frozen=True)
class Rendered:
    output: str
    cursor_offset: int
    used_snippet: str
    used_params: Dict[str, ParamValue]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "output": self.output,
            "cursorOffset": self.cursor_offset,
            "usedSnippet": self.used_snippet,
            "usedParams": dict(self.used_params),
        }


@dataclass(frozen=True)
class HistoryEntry:
    snippet_id: str
    timestamp: datetime
    output_length: int
    app_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        entry = {
            "snippetId": self.snippet_id,
            "timestamp": self.timestamp.isoformat(),
            "outputLength": self.output_length,
        }
        if self.app_id:
            entry["appId"] = self.app_id
        return entry


@dataclass(frozen=True)
class ExpansionContext:
    """Everything an expansion may depend on besides the vault snapshot.

    ``surrounding_text`` is only set by live-capture callers; when it is None
    the trigger is treated as isolated and boundary checks do not apply.
    ``variables`` carries already-fetched contextual values (the resolver
    never reads the clipboard or the clock itself), and ``params`` holds
    boundary-validated parameters that inline trigger params override.
    """

    app_id: Optional[str] = None
    surrounding_text: Optional[str] = None
    trigger_start: Optional[int] = None
    strict_boundaries: Optional[bool] = None
    now: Optional[datetime] = None
    clipboard: Optional[str] = None
    variables: Mapping[str, str] = field(default_factory=dict)
    params: Mapping[str, ParamValue] = field(default_factory=dict)


@dataclass(frozen=True)
class VaultSnapshot:
    groups: Tuple[Group, ...] = ()
    snippets: Tuple[Snippet, ...] = ()
    settings: Settings = field(default_factory=Settings)
    version: int = 0
    errors: Tuple[Mapping[str, str], ...] = ()
    path: Optional[str] = None

    def group(self, group_id: str) -> Optional[Group]:
        for group in self.groups:
            if group.id == group_id:
                return group
        return None

    def sorted_groups(self) -> Tuple[Group, ...]:
        return tuple(sorted(self.groups, key=lambda g: g.sort_key))

    def snippets_for(self, group_id: str) -> Tuple[Snippet, ...]:
        found = [s for s in self.snippets if s.group_id == group_id]
        return tuple(sorted(found, key=lambda s: (s.name, s.id)))
