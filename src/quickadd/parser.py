import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .dates import WD, resolve_dates
from .shared import log_msg, normalize_whitespace, today_at_midnight
from .tokens import (
    DEFAULT_PARSER_CONFIG,
    ParsedToken,
    ParseResult,
    ParserConfig,
    Recurrence,
    Span,
    SyntaxMode,
    TaskDraft,
    TokenType,
)

BANG_PATTERN = re.compile(r"^\s*(?P<title>.*[^!\s].*?)\s+!\s*$", re.DOTALL)
PRIORITY_PATTERNS = {
    SyntaxMode.TODOIST: re.compile(r"(?:^|(?<=\s))[pP](?P<n>[1-4])(?=\s|$)"),
    SyntaxMode.VIKUNJA: re.compile(r"(?:^|(?<=\s))!(?P<n>[1-5])(?=\s|$)"),
}
RECURRENCE_PATTERN = re.compile(
    r"\bevery\s+(?:(?P<n>\d+|other)\s+)?(?P<unit>day|week|month|year)s?\b"
    r"|\b(?P<adverb>daily|weekly|monthly|yearly|annually)\b"
    r"|\bevery(?=\s+(?:" + WD + r")\b)",
    re.IGNORECASE,
)
ADVERB_UNITS = dict(
    daily="day", weekly="week", monthly="month", yearly="year", annually="year"
)


def reference_pattern(prefix: str) -> re.Pattern:
    """
    A reference starts at the beginning of the text or after whitespace and
    is either a double-quoted name or a run of non-space characters. Trailing
    punctuation is left out of the span.
    """
    return re.compile(
        r"(?:^|(?<=\s))"
        + re.escape(prefix)
        + r'(?:"(?P<quoted>[^"]+)"|(?P<name>[^\s"]+?))(?=[.,;:!?]*(?:\s|$))'
    )


def _build_working_text(text: str, consumed: list[Span]) -> str:
    chars = list(text)
    for span in consumed:
        for i in range(span.start, min(span.end, len(chars))):
            chars[i] = " "
    return "".join(chars)


def _is_free(consumed: list[Span], span: Span) -> bool:
    return not any(span.overlaps(c) for c in consumed)


def extract_date(
    text: str,
    consumed: list[Span],
    now: datetime | None = None,
    dayfirst: bool = False,
) -> tuple[Optional[datetime], list[ParsedToken]]:
    """
    Resolve the first date phrase in ``text`` that lies outside the consumed
    regions. Regions are blanked before resolving; if the first candidate
    still overlaps the ledger no date is returned and later candidates are
    not tried. On success the span is appended to ``consumed``.
    """
    working = _build_working_text(text, consumed)
    matches = resolve_dates(working, now=now, dayfirst=dayfirst)
    if not matches:
        return None, []

    first = matches[0]
    span = Span(first.start, first.end)
    if not _is_free(consumed, span):
        log_msg(f"date candidate {first.text!r} at {span} overlaps {consumed}")
        return None, []

    consumed.append(span)
    token = ParsedToken(
        type=TokenType.DATE,
        start=span.start,
        end=span.end,
        value=first.value,
        raw=text[span.start : span.end],
    )
    return first.value, [token]


@dataclass(frozen=True)
class BangResult:
    title: str
    due_date: Optional[datetime] = None
    end: Optional[int] = None  # offset in the original text where the title ends


def extract_bang_today(text: str, now: datetime | None = None) -> BangResult:
    """
    The "!" means today shortcut. Runs whether or not the parser is enabled.

    Only a trailing "!" separated from the title by whitespace, or a
    standalone "!", counts; "call bob!" is left alone.
    """
    match = BANG_PATTERN.match(text)
    if match:
        return BangResult(
            title=match.group("title").strip(),
            due_date=today_at_midnight(now),
            end=match.end("title"),
        )
    if text.strip() == "!":
        return BangResult(title="", due_date=today_at_midnight(now), end=0)
    return BangResult(title=text)


class Tokenizer:
    """
    Runs the extractors over one input in a fixed order. Every extractor
    claims its spans in ``self.consumed`` before the next one runs, so text
    is never claimed twice.
    """

    token_keys = {
        TokenType.PROJECT: [
            "project",
            "first #project (+project in vikunja mode)",
            "do_project",
        ],
        TokenType.LABEL: [
            "label",
            "every @label (*label in vikunja mode)",
            "do_label",
        ],
        TokenType.PRIORITY: [
            "priority",
            "p1 .. p4 (!1 .. !5 in vikunja mode)",
            "do_priority",
        ],
        TokenType.RECURRENCE: [
            "recurrence",
            "every [N] day|week|month|year, daily, weekly, ...",
            "do_recurrence",
        ],
        TokenType.DATE: ["date", "natural language date or time", "do_date"],
    }

    def __init__(self, text: str, config: ParserConfig, now: datetime | None = None):
        self.text = text
        self.config = config
        self.now = now
        self.prefixes = config.prefixes
        self.consumed: list[Span] = []
        self.tokens: list[ParsedToken] = []
        self.skipped = {TokenType.coerce(t) for t in config.suppress_types}

    def run(self) -> ParseResult:
        for token_type, (_name, _description, method_name) in self.token_keys.items():
            if token_type in self.skipped:
                continue
            method = getattr(self, method_name)
            self.tokens.extend(method())
        return self._result()

    def _claim(self, token_type: TokenType, start: int, end: int, value) -> Optional[ParsedToken]:
        span = Span(start, end)
        if not _is_free(self.consumed, span):
            return None
        self.consumed.append(span)
        return ParsedToken(token_type, start, end, value, self.text[start:end])

    def _references(self, prefix: str, token_type: TokenType, first_only: bool):
        found = []
        for m in reference_pattern(prefix).finditer(self.text):
            name = m.group("quoted") or m.group("name")
            token = self._claim(token_type, m.start(), m.end(), name.strip())
            if token is None:
                continue
            found.append(token)
            if first_only:
                break
        return found

    def do_project(self) -> list[ParsedToken]:
        return self._references(self.prefixes.project, TokenType.PROJECT, True)

    def do_label(self) -> list[ParsedToken]:
        return self._references(self.prefixes.label, TokenType.LABEL, False)

    def do_priority(self) -> list[ParsedToken]:
        pattern = PRIORITY_PATTERNS[self.config.syntax_mode]
        for m in pattern.finditer(self.text):
            n = int(m.group("n"))
            # todoist p1 is the most urgent
            value = 5 - n if self.config.syntax_mode == SyntaxMode.TODOIST else n
            token = self._claim(TokenType.PRIORITY, m.start(), m.end(), value)
            if token is not None:
                return [token]
        return []

    def do_recurrence(self) -> list[ParsedToken]:
        for m in RECURRENCE_PATTERN.finditer(self.text):
            if m.group("adverb"):
                value = Recurrence(1, ADVERB_UNITS[m.group("adverb").lower()])
            elif m.group("unit"):
                n = m.group("n") or "1"
                interval = 2 if n.lower() == "other" else int(n)
                if interval < 1:
                    continue
                value = Recurrence(interval, m.group("unit").lower())
            else:
                # "every friday": the weekday itself is left for the date
                value = Recurrence(1, "week")
            token = self._claim(TokenType.RECURRENCE, m.start(), m.end(), value)
            if token is not None:
                return [token]
        return []

    def do_date(self) -> list[ParsedToken]:
        _due, tokens = extract_date(
            self.text, self.consumed, now=self.now, dayfirst=self.config.dayfirst
        )
        return tokens

    def _title(self) -> str:
        parts = []
        pos = 0
        for span in sorted(self.consumed, key=lambda s: s.start):
            parts.append(self.text[pos : span.start])
            pos = max(pos, span.end)
        parts.append(self.text[pos:])
        return normalize_whitespace(" ".join(parts))

    def _result(self) -> ParseResult:
        def first(token_type):
            for token in self.tokens:
                if token.type == token_type:
                    return token.value
            return None

        labels = []
        for token in self.tokens:
            if token.type == TokenType.LABEL and token.value not in labels:
                labels.append(token.value)

        return ParseResult(
            tokens=tuple(self.tokens),
            title=self._title(),
            due_date=first(TokenType.DATE),
            project=first(TokenType.PROJECT),
            labels=tuple(labels),
            priority=first(TokenType.PRIORITY),
            recurrence=first(TokenType.RECURRENCE),
        )


def parse(
    text: str,
    config: ParserConfig = DEFAULT_PARSER_CONFIG,
    now: datetime | None = None,
) -> Optional[ParseResult]:
    """
    Decompose one line of quick entry text. Returns None when the parser is
    disabled or the text is blank.
    """
    if not config.enabled or not text or not text.strip():
        return None
    return Tokenizer(text, config, now).run()


def build_draft(
    text: str,
    config: ParserConfig = DEFAULT_PARSER_CONFIG,
    now: datetime | None = None,
    exclamation_today: bool = True,
) -> TaskDraft:
    """
    Compose the bang shortcut and the tokenizer into the task that would be
    submitted. A trailing "!" wins over any date phrase: the text before it
    is parsed with date detection switched off.
    """
    bang = extract_bang_today(text, now) if exclamation_today else BangResult(text)

    if bang.due_date is not None:
        suppressed = set(config.suppress_types) | {TokenType.DATE}
        result = parse(text[: bang.end], config.with_suppressed(suppressed), now)
        if result is None:
            return TaskDraft(title=bang.title, due_date=bang.due_date, bang_today=True)
        return TaskDraft(
            title=result.title,
            due_date=bang.due_date,
            project=result.project,
            labels=result.labels,
            priority=result.priority,
            recurrence=result.recurrence,
            tokens=result.tokens,
            bang_today=True,
        )

    result = parse(text, config, now)
    if result is None:
        return TaskDraft(title=normalize_whitespace(text))
    return TaskDraft(
        title=result.title,
        due_date=result.due_date,
        project=result.project,
        labels=result.labels,
        priority=result.priority,
        recurrence=result.recurrence,
        tokens=result.tokens,
    )
