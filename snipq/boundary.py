from __future__ import annotations

import logging
from typing import Optional

from snipq.errors import AppExcluded, BoundaryViolation
from snipq.models import ExpansionContext, Settings

logger = logging.getLogger(__name__)


def is_word_char(ch: str) -> bool:
    return ch.isalnum() or ch == "_"


class BoundaryValidator:
    """Word-boundary and excluded-application policy for live captures."""

    def check(self, raw_trigger: str, context: ExpansionContext, settings: Settings) -> None:
        """Raise ``AppExcluded`` or ``BoundaryViolation``; return None when allowed."""
        if context.app_id and context.app_id in settings.excluded_apps:
            raise AppExcluded(context.app_id)

        strict = settings.strict_boundaries if context.strict_boundaries is None else context.strict_boundaries
        if not strict or context.surrounding_text is None:
            return
        self._check_isolated(raw_trigger, context.surrounding_text, context.trigger_start)

    def _check_isolated(self, trigger: str, text: str, start: Optional[int]) -> None:
        if start is None:
            start = text.rfind(trigger)
        if start < 0 or text[start:start + len(trigger)] != trigger:
            raise BoundaryViolation(f"Trigger '{trigger}' not found in captured text")

        end = start + len(trigger)
        if start > 0 and is_word_char(text[start - 1]):
            raise BoundaryViolation(f"'{trigger}' is preceded by '{text[start - 1]}'")
        if end < len(text) and is_word_char(text[end]):
            raise BoundaryViolation(f"'{trigger}' is followed by '{text[end]}'")
        logger.debug("Trigger '%s' isolated at %d", trigger, start)
