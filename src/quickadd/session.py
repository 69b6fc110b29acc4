"""
Editing session for one quick entry field.

The session is a small reducer: ``reduce(state, command)`` returns a new
``SessionState`` and ``EditorSession`` keeps the latest one. Suppression
records live here, not in the tokenizer. A record maps a token type to the
raw texts that were showing when the user dismissed it; the record is
dropped as a whole as soon as any of those texts is no longer present
verbatim in the input.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from types import MappingProxyType
from typing import Mapping, Optional, Union

from .cache import ReferenceCache
from .parser import build_draft, parse
from .shared import log_msg
from .tokens import DEFAULT_PARSER_CONFIG, ParseResult, ParserConfig, TaskDraft, TokenType


# ─── commands ───────────────────────────────────────────────


@dataclass(frozen=True)
class SetText:
    text: str


@dataclass(frozen=True)
class Suppress:
    token_type: Union[TokenType, str]


@dataclass(frozen=True)
class Configure:
    config: ParserConfig
    exclamation_today: Optional[bool] = None


@dataclass(frozen=True)
class Reset:
    pass


Command = Union[SetText, Suppress, Configure, Reset]


# ─── state ───────────────────────────────────────────────


def _freeze(records: Mapping[TokenType, tuple[str, ...]]) -> Mapping:
    return MappingProxyType(dict(records))


@dataclass(frozen=True)
class SessionState:
    text: str = ""
    config: ParserConfig = DEFAULT_PARSER_CONFIG
    suppressions: Mapping[TokenType, tuple[str, ...]] = field(
        default_factory=lambda: _freeze({})
    )
    result: Optional[ParseResult] = None
    exclamation_today: bool = True

    @property
    def suppress_types(self) -> frozenset:
        return frozenset(self.suppressions)

    @property
    def effective_config(self) -> ParserConfig:
        return self.config.with_suppressed(self.suppress_types)

    def draft(self, now: datetime | None = None) -> TaskDraft:
        return build_draft(
            self.text,
            self.effective_config,
            now=now,
            exclamation_today=self.exclamation_today,
        )


def lift_stale(
    suppressions: Mapping[TokenType, tuple[str, ...]], text: str
) -> dict[TokenType, tuple[str, ...]]:
    """Keep a record only while every captured raw text is still in ``text``."""
    kept = {}
    for token_type, raw_texts in suppressions.items():
        if all(raw in text for raw in raw_texts):
            kept[token_type] = raw_texts
        else:
            log_msg(f"lifting suppression of {token_type.value}: {raw_texts!r} edited")
    return kept


def _reparse(state: SessionState, now: datetime | None) -> SessionState:
    return replace(state, result=parse(state.text, state.effective_config, now))


def reduce(
    state: SessionState, command: Command, now: datetime | None = None
) -> SessionState:
    if isinstance(command, SetText):
        suppressions = state.suppressions
        if suppressions:
            kept = lift_stale(suppressions, command.text)
            if len(kept) != len(suppressions):
                suppressions = _freeze(kept)
        return _reparse(replace(state, text=command.text, suppressions=suppressions), now)

    if isinstance(command, Suppress):
        token_type = TokenType.coerce(command.token_type)
        if token_type is None:
            log_msg(f"ignoring suppression of unknown token type {command.token_type!r}")
            return state
        raw_texts = ()
        if state.result is not None:
            raw_texts = tuple(
                state.text[t.start : t.end] for t in state.result.tokens_of(token_type)
            )
        records = dict(state.suppressions)
        records[token_type] = raw_texts
        log_msg(f"suppressing {token_type.value}: {raw_texts!r}")
        return _reparse(replace(state, suppressions=_freeze(records)), now)

    if isinstance(command, Configure):
        new = command.config.with_suppressed(())
        suppressions = state.suppressions
        if (
            new.syntax_mode != state.config.syntax_mode
            or new.enabled != state.config.enabled
        ):
            if suppressions:
                log_msg(
                    f"mode/enabled changed to {new.syntax_mode.value}/{new.enabled}; "
                    f"clearing {sorted(t.value for t in suppressions)}"
                )
            suppressions = _freeze({})
        exclamation_today = state.exclamation_today
        if command.exclamation_today is not None:
            exclamation_today = command.exclamation_today
        return _reparse(
            replace(
                state,
                config=new,
                suppressions=suppressions,
                exclamation_today=exclamation_today,
            ),
            now,
        )

    if isinstance(command, Reset):
        return replace(state, text="", suppressions=_freeze({}), result=None)

    raise TypeError(f"unknown session command: {command!r}")


class EditorSession:
    """
    One quick entry surface: the text being edited, its suppressions and the
    reference cache used for autocomplete. Create one when the surface opens
    and drop it when the surface closes.
    """

    def __init__(
        self,
        config: ParserConfig = DEFAULT_PARSER_CONFIG,
        cache: ReferenceCache | None = None,
        exclamation_today: bool = True,
    ):
        self.cache = cache if cache is not None else ReferenceCache()
        self._state = SessionState(
            config=config.with_suppressed(()), exclamation_today=exclamation_today
        )

    def get_snapshot(self) -> SessionState:
        return self._state

    def dispatch(self, command: Command, now: datetime | None = None) -> SessionState:
        self._state = reduce(self._state, command, now)
        return self._state

    # convenience wrappers

    def set_text(self, text: str, now: datetime | None = None) -> SessionState:
        return self.dispatch(SetText(text), now)

    def suppress(self, token_type, now: datetime | None = None) -> SessionState:
        return self.dispatch(Suppress(token_type), now)

    def configure(self, config: ParserConfig, now: datetime | None = None) -> SessionState:
        return self.dispatch(Configure(config), now)

    def reset(self) -> SessionState:
        return self.dispatch(Reset())

    @property
    def text(self) -> str:
        return self._state.text

    @property
    def result(self) -> Optional[ParseResult]:
        return self._state.result

    @property
    def suppress_types(self) -> frozenset:
        return self._state.suppress_types

    def draft(self, now: datetime | None = None) -> TaskDraft:
        return self._state.draft(now)
