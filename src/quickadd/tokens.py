"""
Value types shared by the tokenizer, the editing session and the
autocomplete controller.

Everything here is immutable: a ``ParseResult`` is produced fresh on every
parse and a ``ParserConfig`` is hashable so that callers can memoize on
``(text, config)``.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class TokenType(str, Enum):
    DATE = "date"
    PROJECT = "project"
    LABEL = "label"
    PRIORITY = "priority"
    RECURRENCE = "recurrence"

    @classmethod
    def coerce(cls, value) -> Optional["TokenType"]:
        """Return the matching member, or None for anything unrecognized."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            return None


class SyntaxMode(str, Enum):
    TODOIST = "todoist"
    VIKUNJA = "vikunja"


@dataclass(frozen=True)
class SyntaxPrefixes:
    project: str
    label: str

    def kind_of(self, prefix: str) -> TokenType:
        return TokenType.PROJECT if prefix == self.project else TokenType.LABEL


PREFIXES = {
    SyntaxMode.TODOIST: SyntaxPrefixes(project="#", label="@"),
    SyntaxMode.VIKUNJA: SyntaxPrefixes(project="+", label="*"),
}


def get_prefixes(mode: SyntaxMode | str) -> SyntaxPrefixes:
    return PREFIXES[SyntaxMode(mode)]


@dataclass(frozen=True)
class Span:
    start: int
    end: int

    def overlaps(self, other: "Span") -> bool:
        return self.start < other.end and self.end > other.start


@dataclass(frozen=True)
class Recurrence:
    interval: int
    unit: str  # day | week | month | year

    def __str__(self) -> str:
        if self.interval == 1:
            return f"Every {self.unit}"
        return f"Every {self.interval} {self.unit}s"


@dataclass(frozen=True)
class ParsedToken:
    type: TokenType
    start: int
    end: int
    value: Any
    raw: str

    @property
    def span(self) -> Span:
        return Span(self.start, self.end)


@dataclass(frozen=True)
class ParseResult:
    tokens: tuple[ParsedToken, ...]
    title: str
    due_date: Optional[datetime] = None
    project: Optional[str] = None
    labels: tuple[str, ...] = ()
    priority: Optional[int] = None
    recurrence: Optional[Recurrence] = None

    def tokens_of(self, token_type: TokenType) -> list[ParsedToken]:
        return [t for t in self.tokens if t.type == token_type]


@dataclass(frozen=True)
class ParserConfig:
    enabled: bool = True
    syntax_mode: SyntaxMode = SyntaxMode.TODOIST
    suppress_types: frozenset = field(default_factory=frozenset)
    dayfirst: bool = False

    @property
    def prefixes(self) -> SyntaxPrefixes:
        return get_prefixes(self.syntax_mode)

    def with_suppressed(self, types) -> "ParserConfig":
        return replace(self, suppress_types=frozenset(types))


DEFAULT_PARSER_CONFIG = ParserConfig()


@dataclass(frozen=True)
class TaskDraft:
    title: str
    due_date: Optional[datetime] = None
    project: Optional[str] = None
    labels: tuple[str, ...] = ()
    priority: Optional[int] = None
    recurrence: Optional[Recurrence] = None
    tokens: tuple[ParsedToken, ...] = ()
    bang_today: bool = False
