"""Built-in contextual variables (date, time, locale strings, clipboard...).

The resolver is handed everything it needs: the settings that define the
formatting rules and an :class:`ExpansionContext` whose clock and clipboard
values were fetched by the caller. Nothing in here touches the OS.

Date and time formats are ``strftime`` patterns. A format without any ``%``
is read as a reference-time layout (``2006-01-02``, ``Mon, 02 Jan 2006``) as
found in vaults written by other SnipQ front ends.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone, tzinfo
from functools import lru_cache
from typing import Callable, Dict, List, Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from babel import Locale, UnknownLocaleError
from babel.dates import format_date, format_datetime, format_time

from snipq.models import ExpansionContext, Settings

logger = logging.getLogger(__name__)

FALLBACK_LOCALE = "en_US"

DATE_FORMAT_OPTIONS = ("format", "dateFormat")
TIME_FORMAT_OPTION = "timeFormat"
TIMEZONE_OPTION = "timezone"

Builtin = Callable[[datetime, ExpansionContext, Mapping[str, str]], Optional[str]]

# Reference-time layout tokens, longest first at any position.
_LAYOUT_TOKENS = sorted(
    [
        ("January", "%B"),
        ("Monday", "%A"),
        ("-0700", "%z"),
        ("2006", "%Y"),
        ("Jan", "%b"),
        ("Mon", "%a"),
        ("MST", "%Z"),
        ("PM", "%p"),
        ("01", "%m"),
        ("02", "%d"),
        ("03", "%I"),
        ("04", "%M"),
        ("05", "%S"),
        ("06", "%y"),
        ("15", "%H"),
        ("1", "%-m"),
        ("2", "%-d"),
        ("3", "%-I"),
        ("4", "%-M"),
        ("5", "%-S"),
    ],
    key=lambda item: -len(item[0]),
)

_UNPADDED = {
    "%-d": lambda m: str(m.day),
    "%-m": lambda m: str(m.month),
    "%-H": lambda m: str(m.hour),
    "%-I": lambda m: str(m.hour % 12 or 12),
    "%-M": lambda m: str(m.minute),
    "%-S": lambda m: str(m.second),
}


def _truthy(value: Optional[str]) -> bool:
    return str(value or "").strip().lower() in ("1", "true", "yes", "on")


@lru_cache(maxsize=128)
def layout_to_strftime(layout: str) -> str:
    out = []
    i = 0
    while i < len(layout):
        for token, directive in _LAYOUT_TOKENS:
            if layout.startswith(token, i):
                out.append(directive)
                i += len(token)
                break
        else:
            out.append("%%" if layout[i] == "%" else layout[i])
            i += 1
    return "".join(out)


def to_strftime(fmt: str) -> str:
    return fmt if "%" in fmt else layout_to_strftime(fmt)


@lru_cache(maxsize=32)
def load_locale(name: str) -> Locale:
    try:
        return Locale.parse((name or FALLBACK_LOCALE).replace("-", "_"))
    except (UnknownLocaleError, ValueError) as exc:
        logger.warning("Unknown locale %r (%s); using %s", name, exc, FALLBACK_LOCALE)
        return Locale.parse(FALLBACK_LOCALE)


@lru_cache(maxsize=32)
def load_timezone(name: str) -> Optional[tzinfo]:
    """Return the zone for ``name``; None means the host's local zone."""
    if name in ("", "Local"):
        return None
    if name == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        logger.warning("Unknown timezone %r (%s); using local time", name, exc)
        return None


def localized_strftime(moment: datetime, fmt: str, locale: Locale) -> str:
    """``strftime`` with names and AM/PM taken from ``locale``.

    Also understands the unpadded ``%-d``/``%-m``/``%-H``/``%-I``/``%-M``/``%-S``
    directives on every platform.
    """
    names = {
        "%A": format_date(moment, "EEEE", locale=locale),
        "%a": format_date(moment, "EEE", locale=locale),
        "%B": format_date(moment, "MMMM", locale=locale),
        "%b": format_date(moment, "MMM", locale=locale),
        "%p": format_time(moment, "a", locale=locale),
    }
    out = []
    i = 0
    while i < len(fmt):
        token = fmt[i:i + 2]
        if fmt[i:i + 3] in _UNPADDED:
            out.append(_UNPADDED[fmt[i:i + 3]](moment))
            i += 3
        elif token in names:
            out.append(names[token].replace("%", "%%"))
            i += 2
        elif token == "%%":
            out.append(token)
            i += 2
        else:
            out.append(fmt[i])
            i += 1
    return moment.strftime("".join(out))


class VariableResolver:
    """Built-in variables for one settings version.

    ``bind`` also takes per-call options (snippet defaults overridden by the
    bound params). ``format``/``dateFormat`` and ``timeFormat`` replace the
    date and time formats, ``timezone`` moves the clock, and ``hyphens`` /
    ``upper`` shape ``uuid``.
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.locale = load_locale(settings.locale)
        self.tz = load_timezone(settings.timezone)
        self._builtins: Dict[str, Builtin] = {
            "date": self._date,
            "time": self._time,
            "datetime": lambda now, ctx, opts: format_datetime(now, "medium", locale=self.locale),
            "date_short": lambda now, ctx, opts: format_date(now, "short", locale=self.locale),
            "date_medium": lambda now, ctx, opts: format_date(now, "medium", locale=self.locale),
            "date_long": lambda now, ctx, opts: format_date(now, "long", locale=self.locale),
            "date_full": lambda now, ctx, opts: format_date(now, "full", locale=self.locale),
            "weekday": lambda now, ctx, opts: format_date(now, "EEEE", locale=self.locale),
            "month": lambda now, ctx, opts: format_date(now, "MMMM", locale=self.locale),
            "year": lambda now, ctx, opts: str(now.year),
            "iso": lambda now, ctx, opts: now.isoformat(timespec="seconds"),
            "timestamp": lambda now, ctx, opts: str(int(now.timestamp())),
            "uuid": self._uuid,
            "uuid_hyphen": lambda now, ctx, opts: self._uuid(now, ctx, {**opts, "hyphens": "true"}),
            "clipboard": lambda now, ctx, opts: ctx.clipboard,
            "app": lambda now, ctx, opts: ctx.app_id,
            "locale": lambda now, ctx, opts: self.settings.locale,
            "timezone": lambda now, ctx, opts: opts.get(TIMEZONE_OPTION) or self.settings.timezone,
        }

    def names(self) -> List[str]:
        return sorted(self._builtins)

    def _date(self, now: datetime, ctx: ExpansionContext, opts: Mapping[str, str]) -> str:
        fmt = next((opts[k] for k in DATE_FORMAT_OPTIONS if opts.get(k)), self.settings.default_date_format)
        return localized_strftime(now, to_strftime(fmt), self.locale)

    def _time(self, now: datetime, ctx: ExpansionContext, opts: Mapping[str, str]) -> str:
        fmt = opts.get(TIME_FORMAT_OPTION)
        if fmt:
            return localized_strftime(now, to_strftime(fmt), self.locale)
        return format_time(now, "short", locale=self.locale)

    @staticmethod
    def _uuid(now: datetime, ctx: ExpansionContext, opts: Mapping[str, str]) -> str:
        token = uuid.uuid4()
        text = str(token) if _truthy(opts.get("hyphens")) else token.hex
        return text.upper() if _truthy(opts.get("upper")) else text

    def localize(self, moment: Optional[datetime], zone: Optional[str] = None) -> datetime:
        """Move ``moment`` (default: now) into ``zone`` or the configured timezone."""
        tz = load_timezone(zone) if zone else self.tz
        if moment is None:
            moment = datetime.now(timezone.utc)
        if tz is None:
            return moment.astimezone()
        if moment.tzinfo is None:
            moment = moment.astimezone()
        return moment.astimezone(tz)

    def bind(
        self, context: ExpansionContext, options: Optional[Mapping[str, str]] = None
    ) -> Callable[[str], Optional[str]]:
        """Return a lookup for one render; the clock is read once per call."""
        opts: Mapping[str, str] = options or {}
        now = self.localize(context.now, opts.get(TIMEZONE_OPTION))

        def lookup(name: str) -> Optional[str]:
            if name in context.variables:
                return context.variables[name]
            fn = self._builtins.get(name)
            if fn is None:
                return None
            return fn(now, context, opts)

        return lookup
