from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from snipq.models import Group, Snippet
from snipq.trigger_parser import strip_prefix

logger = logging.getLogger(__name__)


class SnippetIndex:
    """Immutable trigger -> candidates lookup built from one vault snapshot.

    Only snippets whose group is enabled are indexed. When several snippets
    share a trigger the candidates are ordered by group priority: lower group
    ``order`` first, then group id, then snippet id. ``resolve`` returns the
    first candidate.
    """

    def __init__(self, entries: Mapping[str, Tuple[Snippet, ...]]) -> None:
        self._entries = MappingProxyType(dict(entries))

    @classmethod
    def build(
        cls,
        groups: Iterable[Group],
        snippets: Iterable[Snippet],
        prefix: str = "",
    ) -> "SnippetIndex":
        group_map: Dict[str, Group] = {g.id: g for g in groups}
        buckets: Dict[str, List[Tuple[Tuple[int, str, str], Snippet]]] = {}
        for snippet in snippets:
            group = group_map.get(snippet.group_id)
            if group is None:
                logger.warning("Snippet %s references unknown group %s; skipped", snippet.id, snippet.group_id)
                continue
            if not group.enabled:
                continue
            key = strip_prefix(snippet.trigger, prefix)
            buckets.setdefault(key, []).append(((group.order, group.id, snippet.id), snippet))

        entries: Dict[str, Tuple[Snippet, ...]] = {}
        for key, items in buckets.items():
            items.sort(key=lambda item: item[0])
            entries[key] = tuple(snippet for _, snippet in items)
            if len(items) > 1:
                logger.warning(
                    "Trigger '%s' is shared by %s; '%s' wins",
                    key,
                    ", ".join(s.id for s in entries[key]),
                    entries[key][0].id,
                )
        return cls(entries)

    def lookup(self, base_trigger: str) -> Tuple[Snippet, ...]:
        return self._entries.get(base_trigger, ())

    def resolve(self, base_trigger: str) -> Optional[Snippet]:
        candidates = self.lookup(base_trigger)
        return candidates[0] if candidates else None

    def __len__(self) -> int:
        return len(self._entries)
