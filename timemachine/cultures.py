"""Culture (locale) data and pattern formatting.

A :class:`Culture` is plain data: month and day names, AM/PM designators, the
first day of the week and the handful of standard patterns the civil
date-time formatter understands. Month names belong to the culture's native
calendar, so ``fa-IR`` carries Solar Hijri month names.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .calendars import DayOfWeek
from .exceptions import FormatError, InvalidArgumentError

DEFAULT_SPECIFIER = "G"

# Longest alternatives first so "MMMM" wins over "MM"
_TOKEN_RE = re.compile(r"'[^']*'|yyyy|yy|MMMM|MMM|MM|M|dddd|ddd|dd|d|HH|H|hh|h|mm|m|ss|s|tt")


@dataclass(frozen=True)
class Culture:
    """Locale data used to render civil fields as text."""

    name: str
    first_day_of_week: DayOfWeek
    month_names: tuple[str, ...]
    # Sunday first, matching DayOfWeek numbering
    day_names: tuple[str, ...]
    am_designator: str
    pm_designator: str
    short_date_pattern: str
    long_date_pattern: str
    short_time_pattern: str
    long_time_pattern: str
    month_day_pattern: str

    def pattern_for(self, specifier: str | None) -> str:
        """Expand a standard format specifier into a custom pattern.

        Raises:
            FormatError: If the specifier is not recognized.
        """
        key = specifier or DEFAULT_SPECIFIER
        patterns = {
            "d": self.short_date_pattern,
            "D": self.long_date_pattern,
            "f": f"{self.long_date_pattern} {self.short_time_pattern}",
            "F": f"{self.long_date_pattern} {self.long_time_pattern}",
            "g": f"{self.short_date_pattern} {self.short_time_pattern}",
            "G": f"{self.short_date_pattern} {self.long_time_pattern}",
            "m": self.month_day_pattern,
            "M": self.month_day_pattern,
            "MMMM": "MMMM",
        }
        try:
            return patterns[key]
        except KeyError as e:
            raise FormatError(
                f"Unsupported format specifier {key!r}; expected one of {sorted(patterns)}"
            ) from e


def format_pattern(
    pattern: str,
    culture: Culture,
    *,
    year: int,
    month: int,
    day: int,
    hour: int,
    minute: int,
    second: int,
    weekday: DayOfWeek,
) -> str:
    """Render civil fields with a .NET style custom pattern."""

    def _replace(match: re.Match[str]) -> str:
        token = match.group(0)
        if token.startswith("'"):
            return token[1:-1]
        if token == "yyyy":
            return f"{year:04d}"
        if token == "yy":
            return f"{year % 100:02d}"
        if token in ("MMMM", "MMM"):
            name = culture.month_names[month - 1]
            return name if token == "MMMM" else name[:3]
        if token == "MM":
            return f"{month:02d}"
        if token == "M":
            return str(month)
        if token in ("dddd", "ddd"):
            name = culture.day_names[int(weekday)]
            return name if token == "dddd" else name[:3]
        if token == "dd":
            return f"{day:02d}"
        if token == "d":
            return str(day)
        if token == "HH":
            return f"{hour:02d}"
        if token == "H":
            return str(hour)
        if token in ("hh", "h"):
            twelve = hour % 12 or 12
            return f"{twelve:02d}" if token == "hh" else str(twelve)
        if token == "mm":
            return f"{minute:02d}"
        if token == "m":
            return str(minute)
        if token == "ss":
            return f"{second:02d}"
        if token == "s":
            return str(second)
        # tt
        return culture.am_designator if hour < 12 else culture.pm_designator

    return _TOKEN_RE.sub(_replace, pattern)


_ENGLISH_MONTHS = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)
_ENGLISH_DAYS = ("Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday")

INVARIANT = Culture(
    name="invariant",
    first_day_of_week=DayOfWeek.SUNDAY,
    month_names=_ENGLISH_MONTHS,
    day_names=_ENGLISH_DAYS,
    am_designator="AM",
    pm_designator="PM",
    short_date_pattern="MM/dd/yyyy",
    long_date_pattern="dddd, dd MMMM yyyy",
    short_time_pattern="HH:mm",
    long_time_pattern="HH:mm:ss",
    month_day_pattern="MMMM dd",
)

FA_IR = Culture(
    name="fa-IR",
    first_day_of_week=DayOfWeek.SATURDAY,
    month_names=(
        "فروردین",
        "اردیبهشت",
        "خرداد",
        "تیر",
        "مرداد",
        "شهریور",
        "مهر",
        "آبان",
        "آذر",
        "دی",
        "بهمن",
        "اسفند",
    ),
    day_names=("یکشنبه", "دوشنبه", "سه‌شنبه", "چهارشنبه", "پنجشنبه", "جمعه", "شنبه"),
    am_designator="ق.ظ",
    pm_designator="ب.ظ",
    short_date_pattern="yyyy/MM/dd",
    long_date_pattern="yyyy MMMM d, dddd",
    short_time_pattern="H:mm",
    long_time_pattern="H:mm:ss",
    month_day_pattern="d MMMM",
)

TR_TR = Culture(
    name="tr-TR",
    first_day_of_week=DayOfWeek.MONDAY,
    month_names=(
        "Ocak",
        "Şubat",
        "Mart",
        "Nisan",
        "Mayıs",
        "Haziran",
        "Temmuz",
        "Ağustos",
        "Eylül",
        "Ekim",
        "Kasım",
        "Aralık",
    ),
    day_names=("Pazar", "Pazartesi", "Salı", "Çarşamba", "Perşembe", "Cuma", "Cumartesi"),
    am_designator="ÖÖ",
    pm_designator="ÖS",
    short_date_pattern="d.MM.yyyy",
    long_date_pattern="d MMMM yyyy dddd",
    short_time_pattern="HH:mm",
    long_time_pattern="HH:mm:ss",
    month_day_pattern="d MMMM",
)

EN_GB = Culture(
    name="en-GB",
    first_day_of_week=DayOfWeek.MONDAY,
    month_names=_ENGLISH_MONTHS,
    day_names=_ENGLISH_DAYS,
    am_designator="am",
    pm_designator="pm",
    short_date_pattern="dd/MM/yyyy",
    long_date_pattern="dddd, d MMMM yyyy",
    short_time_pattern="HH:mm",
    long_time_pattern="HH:mm:ss",
    month_day_pattern="d MMMM",
)

EN_US = Culture(
    name="en-US",
    first_day_of_week=DayOfWeek.SUNDAY,
    month_names=_ENGLISH_MONTHS,
    day_names=_ENGLISH_DAYS,
    am_designator="AM",
    pm_designator="PM",
    short_date_pattern="M/d/yyyy",
    long_date_pattern="dddd, MMMM d, yyyy",
    short_time_pattern="h:mm tt",
    long_time_pattern="h:mm:ss tt",
    month_day_pattern="MMMM d",
)

_CULTURES: dict[str, Culture] = {
    culture.name.lower(): culture for culture in (INVARIANT, FA_IR, TR_TR, EN_GB, EN_US)
}
_CULTURES[""] = INVARIANT


def get_culture(name: str | None) -> Culture:
    """Return the built-in culture named ``name`` (case-insensitive).

    ``None`` and ``""`` return the invariant culture. Underscores are accepted
    in place of hyphens (``fa_IR``).

    Raises:
        InvalidArgumentError: If no culture has that name.
    """
    key = (name or "").strip().replace("_", "-").lower()
    try:
        return _CULTURES[key]
    except KeyError as e:
        raise InvalidArgumentError(f"Unknown culture: {name!r}") from e


def culture_names() -> list[str]:
    """Return the names of the built-in cultures."""
    return sorted({culture.name for culture in _CULTURES.values()})
