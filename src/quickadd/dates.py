"""
Natural-language date/time resolver for quick entry.

Runs on every keystroke, so it is a handful of regular expressions rather
than a grammar. ``resolve_dates`` returns every candidate phrase it can find,
ranked by position (earliest first, longest first on ties) and with
overlapping candidates removed. Each candidate carries its character span so
the tokenizer can ledger it.

Supported:
  - today | tonight | tomorrow | tmr | tmrw | yesterday
  - weekdays: monday .. sunday and mon/tue/tues/wed/weds/thu/thur/thurs/
    fri/sat/sun
      bare       -> next occurrence, today included
      this <wd>  -> same as bare
      next <wd>  -> next occurrence strictly after today
      last <wd>  -> previous occurrence strictly before today
  - next week | next month | next year
  - in <N> <unit> | <N> <unit> from now|today
      units: minute(s), hour(s), day(s), week(s), month(s), year(s)
      N: digits, one .. twelve, a/an
  - ISO: YYYY-MM-DD
  - numeric: M/D or M/D/YY[YY] (D/M when dayfirst)
  - month names: jan 5, jan 5th, 2027 | 5 jan | 5th of january 2027
  - times: 5pm | 5:30 pm | 17:30 | noon | midnight, optionally after "at"
      A date and a time next to each other form one phrase:
      "tomorrow at 5pm", "5pm friday".
  - a leading on/by/due/due on/due by is part of the phrase when a single
    space separates it from the date, so a blanked reference between them
    leaves the preposition out.

Forward bias: a date without a year that has already passed this year moves
to next year, and a bare time that has already passed today moves to
tomorrow, as does "tonight" once 20:00 has passed. Explicitly past
phrases (yesterday, last friday, an ISO date) are left as written.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from dateutil.parser import parse as parse_dt
from dateutil.parser import parserinfo
from dateutil.relativedelta import relativedelta

from .shared import today_at_midnight


WEEKDAYS = {
    "mon": 0,
    "monday": 0,
    "tuesday": 1,
    "tue": 1,
    "tues": 1,
    "wed": 2,
    "weds": 2,
    "wednesday": 2,
    "thursday": 3,
    "thu": 3,
    "thur": 3,
    "thurs": 3,
    "friday": 4,
    "fri": 4,
    "sat": 5,
    "saturday": 5,
    "sun": 6,
    "sunday": 6,
}

MONTHS = {
    "jan": 1,
    "january": 1,
    "feb": 2,
    "february": 2,
    "mar": 3,
    "march": 3,
    "apr": 4,
    "april": 4,
    "may": 5,
    "jun": 6,
    "june": 6,
    "jul": 7,
    "july": 7,
    "aug": 8,
    "august": 8,
    "sep": 9,
    "sept": 9,
    "september": 9,
    "oct": 10,
    "october": 10,
    "nov": 11,
    "november": 11,
    "dec": 12,
    "december": 12,
}

WORD_NUMS = {
    "a": 1,
    "an": 1,
    "one": 1,
    "two": 2,
    "three": 3,
    "four": 4,
    "five": 5,
    "six": 6,
    "seven": 7,
    "eight": 8,
    "nine": 9,
    "ten": 10,
    "eleven": 11,
    "twelve": 12,
}


def _alternation(words) -> str:
    # longest first so that "thurs" wins over "thu"
    return "|".join(sorted(words, key=len, reverse=True))


WD = _alternation(WEEKDAYS)
MON = _alternation(MONTHS)
NUM = r"\d{1,3}|" + _alternation(WORD_NUMS)
UNIT = r"minute|min|hour|hr|day|week|wk|month|year|yr"
PREP = r"(?:\b(?:due(?: (?:on|by))?|on|by) )?"
ORD = r"(?:st|nd|rd|th)?"
TIME_PREP = r"(?:\b(?:due(?: (?:at|by))?|at|by) )?"

FLAGS = re.IGNORECASE

RE_CASUAL = re.compile(
    PREP + r"\b(?P<word>today|tonight|tomorrow|tmrw|tmr|yesterday)\b", FLAGS
)
RE_WEEKDAY = re.compile(
    PREP + r"\b(?:(?P<qual>next|this|last) )?(?P<wd>" + WD + r")\b\.?", FLAGS
)
RE_NEXT_PERIOD = re.compile(PREP + r"\bnext\s+(?P<period>week|month|year)\b", FLAGS)
RE_IN_OFFSET = re.compile(
    PREP + r"\bin\s+(?P<n>" + NUM + r")\s+(?P<unit>" + UNIT + r")s?\b", FLAGS
)
RE_FROM_NOW = re.compile(
    PREP
    + r"\b(?P<n>"
    + NUM
    + r")\s+(?P<unit>"
    + UNIT
    + r")s?\s+from\s+(?:now|today)\b",
    FLAGS,
)
RE_ISO = re.compile(PREP + r"\b(?P<iso>\d{4}-\d{1,2}-\d{1,2})\b", FLAGS)
RE_SLASH = re.compile(
    PREP + r"(?<![\d/])(?P<slash>\d{1,2}/\d{1,2}(?:/(?P<year>\d{4}|\d{2}))?)(?![\d/])",
    FLAGS,
)
RE_MONTH_DAY = re.compile(
    PREP
    + r"\b(?P<mon>"
    + MON
    + r")\.?\s+(?P<day>\d{1,2})"
    + ORD
    + r"(?:,?\s+(?P<year>\d{4}))?\b",
    FLAGS,
)
RE_DAY_MONTH = re.compile(
    PREP
    + r"\b(?P<day>\d{1,2})"
    + ORD
    + r"\s+(?:of\s+)?(?P<mon>"
    + MON
    + r")\b\.?(?:,?\s+(?P<year>\d{4})\b)?",
    FLAGS,
)

RE_TIME_AMPM = re.compile(
    TIME_PREP + r"\b(?P<hour>\d{1,2})(?::(?P<minute>[0-5]\d))?\s*(?P<ampm>[ap])\.?m\b\.?",
    FLAGS,
)
RE_TIME_24 = re.compile(
    TIME_PREP + r"\b(?P<hour>[01]?\d|2[0-3]):(?P<minute>[0-5]\d)\b", FLAGS
)
RE_TIME_WORD = re.compile(TIME_PREP + r"\b(?P<word>noon|midnight)\b", FLAGS)

RE_JOIN = re.compile(r"^\s*,?\s*$")


@dataclass(frozen=True)
class DateMatch:
    start: int
    end: int
    text: str
    value: datetime
    has_time: bool = False


@dataclass(frozen=True)
class _Part:
    start: int
    end: int
    value: datetime
    has_time: bool


def _number(token: str) -> Optional[int]:
    t = token.strip().lower()
    if t.isdigit():
        return int(t)
    return WORD_NUMS.get(t)


def _offset(unit: str, n: int) -> relativedelta:
    unit = unit.lower()
    if unit in ("minute", "min"):
        return relativedelta(minutes=n)
    if unit in ("hour", "hr"):
        return relativedelta(hours=n)
    if unit == "day":
        return relativedelta(days=n)
    if unit in ("week", "wk"):
        return relativedelta(weeks=n)
    if unit == "month":
        return relativedelta(months=n)
    return relativedelta(years=n)


def _roll_forward(value: datetime, today: datetime) -> datetime:
    if value < today:
        return value + relativedelta(years=1)
    return value


# ─── date parts ───────────────────────────────────────────────


def _casual(m: re.Match, now: datetime, today: datetime, dayfirst: bool):
    word = m.group("word").lower()
    if word == "today":
        return today, False
    if word == "tonight":
        evening = today.replace(hour=20)
        if evening <= now:
            evening += timedelta(days=1)
        return evening, True
    if word == "yesterday":
        return today - timedelta(days=1), False
    return today + timedelta(days=1), False


def _weekday(m: re.Match, now: datetime, today: datetime, dayfirst: bool):
    target = WEEKDAYS[m.group("wd").lower()]
    qual = (m.group("qual") or "").lower()
    if qual == "last":
        delta = (today.weekday() - target) % 7 or 7
        return today - timedelta(days=delta), False
    delta = (target - today.weekday()) % 7
    if qual == "next" and delta == 0:
        delta = 7
    return today + timedelta(days=delta), False


def _next_period(m: re.Match, now: datetime, today: datetime, dayfirst: bool):
    return today + _offset(m.group("period"), 1), False


def _relative(m: re.Match, now: datetime, today: datetime, dayfirst: bool):
    n = _number(m.group("n"))
    if n is None:
        return None, False
    unit = m.group("unit").lower()
    if unit in ("minute", "min", "hour", "hr"):
        return now.replace(second=0, microsecond=0) + _offset(unit, n), True
    return today + _offset(unit, n), False


def _iso(m: re.Match, now: datetime, today: datetime, dayfirst: bool):
    try:
        return parse_dt(m.group("iso"), yearfirst=True), False
    except (ValueError, OverflowError):
        return None, False


def _slash(m: re.Match, now: datetime, today: datetime, dayfirst: bool):
    pi = parserinfo(dayfirst=dayfirst, yearfirst=False)
    try:
        value = parse_dt(m.group("slash"), parserinfo=pi, default=today)
    except (ValueError, OverflowError):
        return None, False
    if m.group("year") is None:
        value = _roll_forward(value, today)
    return value, False


def _month_name(m: re.Match, now: datetime, today: datetime, dayfirst: bool):
    month = MONTHS[m.group("mon").lower().rstrip(".")]
    year = int(m.group("year")) if m.group("year") else today.year
    try:
        value = today.replace(year=year, month=month, day=int(m.group("day")))
    except ValueError:
        return None, False
    if m.group("year") is None:
        value = _roll_forward(value, today)
    return value, False


DATE_PATTERNS = [
    (RE_CASUAL, _casual),
    (RE_WEEKDAY, _weekday),
    (RE_NEXT_PERIOD, _next_period),
    (RE_IN_OFFSET, _relative),
    (RE_FROM_NOW, _relative),
    (RE_ISO, _iso),
    (RE_SLASH, _slash),
    (RE_MONTH_DAY, _month_name),
    (RE_DAY_MONTH, _month_name),
]


# ─── time parts ───────────────────────────────────────────────


def _clock(m: re.Match) -> Optional[tuple[int, int]]:
    groups = m.groupdict()
    if groups.get("word"):
        return (12, 0) if groups["word"].lower() == "noon" else (0, 0)
    hour = int(groups["hour"])
    minute = int(groups["minute"] or 0)
    ampm = groups.get("ampm")
    if ampm:
        if not 1 <= hour <= 12:
            return None
        hour = hour % 12 + (12 if ampm.lower() == "p" else 0)
    return hour, minute


def _find_parts(text: str, now: datetime, dayfirst: bool):
    today = today_at_midnight(now)
    dates: list[_Part] = []
    for regex, handler in DATE_PATTERNS:
        for m in regex.finditer(text):
            value, has_time = handler(m, now, today, dayfirst)
            if value is None:
                continue
            dates.append(_Part(m.start(), m.end(), value, has_time))

    times: list[tuple[int, int, tuple[int, int]]] = []
    for regex in (RE_TIME_AMPM, RE_TIME_24, RE_TIME_WORD):
        for m in regex.finditer(text):
            clock = _clock(m)
            if clock is not None:
                times.append((m.start(), m.end(), clock))
    return dates, times


def _at(value: datetime, clock: tuple[int, int]) -> datetime:
    return value.replace(hour=clock[0], minute=clock[1], second=0, microsecond=0)


def _combine(text: str, now: datetime, dates, times) -> list[DateMatch]:
    candidates: list[DateMatch] = []
    today = today_at_midnight(now)

    for part in dates:
        candidates.append(
            DateMatch(part.start, part.end, text[part.start : part.end], part.value, part.has_time)
        )
        if part.has_time:
            continue
        for t_start, t_end, clock in times:
            if t_start >= part.end and RE_JOIN.match(text[part.end : t_start]):
                start, end = part.start, t_end
            elif t_end <= part.start and RE_JOIN.match(text[t_end : part.start]):
                start, end = t_start, part.end
            else:
                continue
            candidates.append(
                DateMatch(start, end, text[start:end], _at(part.value, clock), True)
            )

    for t_start, t_end, clock in times:
        value = _at(today, clock)
        if value <= now:
            value += timedelta(days=1)
        candidates.append(DateMatch(t_start, t_end, text[t_start:t_end], value, True))
    return candidates


def resolve_dates(
    text: str, now: datetime | None = None, dayfirst: bool = False
) -> list[DateMatch]:
    """
    Return every date phrase found in ``text``, ranked by position.

    Overlapping candidates are resolved in favor of the one that starts
    first, then the longer one, so "tomorrow at 5pm" beats both "tomorrow"
    and "5pm".
    """
    if not text or not text.strip():
        return []
    now = now or datetime.now()
    dates, times = _find_parts(text, now, dayfirst)
    candidates = _combine(text, now, dates, times)
    candidates.sort(key=lambda c: (c.start, -(c.end - c.start)))

    ranked: list[DateMatch] = []
    for candidate in candidates:
        if any(candidate.start < r.end and candidate.end > r.start for r in ranked):
            continue
        ranked.append(candidate)
    return ranked
