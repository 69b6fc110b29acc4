"""
Mode-aware autocomplete for quick entry.

Trigger characters come from the same prefix table the tokenizer uses:
  - todoist: # -> project, @ -> label
  - vikunja: + -> project, * -> label

The menu logic is a pair of pure functions (``detect_trigger`` and
``handle_key``) over an immutable ``AutocompleteState``;
``AutocompleteController`` wires them to a cache, a host view and a commit
callback.
"""

from dataclasses import dataclass, replace
from typing import Callable, Optional, Protocol

from .cache import CacheItem, ReferenceCache
from .shared import log_msg
from .tokens import SyntaxMode, SyntaxPrefixes, TokenType, get_prefixes


class MountPointError(ValueError):
    """The controller was created without a view to render into."""


class Key:
    UP = "ArrowUp"
    DOWN = "ArrowDown"
    TAB = "Tab"
    ENTER = "Enter"
    ESCAPE = "Escape"


@dataclass(frozen=True)
class KeyEvent:
    key: str
    shift: bool = False
    ctrl: bool = False
    alt: bool = False
    meta: bool = False


@dataclass(frozen=True)
class Trigger:
    start: int
    query: str
    prefix: str
    kind: TokenType


@dataclass(frozen=True)
class AutocompleteState:
    items: tuple[CacheItem, ...] = ()
    kind: Optional[TokenType] = None
    prefix: Optional[str] = None
    trigger_start: int = -1
    selected_index: int = 0
    visible: bool = False

    @property
    def selected(self) -> Optional[CacheItem]:
        if not self.visible or not self.items:
            return None
        return self.items[self.selected_index]


CLOSED = AutocompleteState()


@dataclass(frozen=True)
class Commit:
    item: CacheItem
    trigger_start: int
    prefix: str


@dataclass(frozen=True)
class KeyOutcome:
    state: AutocompleteState
    consumed: bool
    commit: Optional[Commit] = None


def find_trigger(
    before_caret: str, prefix: str, prefixes: SyntaxPrefixes
) -> Optional[Trigger]:
    """
    The last ``prefix`` before the caret opens a trigger when it sits at the
    start of the text or after a space and the query after it does not
    contain the prefix again.
    """
    last = before_caret.rfind(prefix)
    if last == -1:
        return None
    if last > 0 and before_caret[last - 1] != " ":
        return None
    query = before_caret[last + len(prefix) :]
    if prefix in query:
        return None
    return Trigger(start=last, query=query, prefix=prefix, kind=prefixes.kind_of(prefix))


def detect_trigger(text: str, caret: int, prefixes: SyntaxPrefixes) -> Optional[Trigger]:
    before_caret = text[: max(0, min(caret, len(text)))]
    project = find_trigger(before_caret, prefixes.project, prefixes)
    label = find_trigger(before_caret, prefixes.label, prefixes)
    if project and label:
        return project if project.start > label.start else label
    return project or label


def open_menu(trigger: Trigger, items) -> AutocompleteState:
    if not items:
        return CLOSED
    return AutocompleteState(
        items=tuple(items),
        kind=trigger.kind,
        prefix=trigger.prefix,
        trigger_start=trigger.start,
        selected_index=0,
        visible=True,
    )


def handle_key(state: AutocompleteState, event: KeyEvent) -> KeyOutcome:
    """
    Apply one key press to the menu. Enter commits without consuming the key
    so that the host form can also submit on the same press.
    """
    if not state.visible:
        return KeyOutcome(state, False)

    count = len(state.items)
    key = event.key

    if key == Key.DOWN:
        return KeyOutcome(replace(state, selected_index=(state.selected_index + 1) % count), True)
    if key == Key.UP:
        return KeyOutcome(replace(state, selected_index=(state.selected_index - 1) % count), True)
    if key == Key.ESCAPE:
        return KeyOutcome(CLOSED, True)
    if key in (Key.TAB, Key.ENTER):
        if count == 0:
            return KeyOutcome(state, False)
        commit = Commit(state.items[state.selected_index], state.trigger_start, state.prefix)
        return KeyOutcome(CLOSED, key == Key.TAB, commit)
    return KeyOutcome(state, False)


def splice_selection(
    text: str, item: CacheItem, trigger_start: int, caret: int, prefix: str
) -> tuple[str, int]:
    """
    Replace the trigger through the caret with the chosen reference. Titles
    with spaces are quoted so the tokenizer reads them back as one name.
    Returns the new text and caret.
    """
    name = f'"{item.title}"' if " " in item.title else item.title
    replacement = f"{prefix}{name}"
    rest = text[caret:]
    if not rest.startswith(" "):
        replacement += " "
    new_text = text[:trigger_start] + replacement + rest
    return new_text, trigger_start + len(replacement)


class MenuView(Protocol):
    def render(self, state: AutocompleteState) -> None: ...

    def hide(self) -> None: ...


OnSelect = Callable[[CacheItem, int, str], None]


class AutocompleteController:
    def __init__(
        self,
        view: Optional[MenuView],
        cache: ReferenceCache,
        on_select: OnSelect,
        syntax_mode: SyntaxMode | str = SyntaxMode.TODOIST,
        enabled: bool = True,
    ):
        if view is None:
            raise MountPointError("autocomplete needs a view to render into")
        self.view = view
        self.cache = cache
        self.on_select = on_select
        self.syntax_mode = SyntaxMode(syntax_mode)
        self.enabled = enabled
        self.state = CLOSED

    def set_syntax_mode(self, mode: SyntaxMode | str) -> None:
        self.syntax_mode = SyntaxMode(mode)

    def set_enabled(self, enabled: bool) -> None:
        self.enabled = enabled
        if not enabled:
            self.hide()

    def update(self, text: str, caret: int) -> None:
        """Called on every input change to decide whether to show the menu."""
        if not self.enabled:
            self.hide()
            return

        trigger = detect_trigger(text, caret, get_prefixes(self.syntax_mode))
        if trigger is None:
            self.hide()
            return

        if trigger.kind == TokenType.PROJECT:
            items = self.cache.search_projects(trigger.query)
        else:
            items = self.cache.search_labels(trigger.query)

        state = open_menu(trigger, items)
        if not state.visible:
            self.hide()
            return
        self._set(state)

    def handle_key_down(self, event: KeyEvent | str) -> bool:
        """Returns True when the key was consumed by the menu."""
        if isinstance(event, str):
            event = KeyEvent(event)
        outcome = handle_key(self.state, event)
        if outcome.commit is not None:
            self._commit(outcome.commit)
        elif outcome.state != self.state:
            self._set(outcome.state)
        return outcome.consumed

    def click(self, index: int) -> None:
        if not self.state.visible or not 0 <= index < len(self.state.items):
            return
        self.state = replace(self.state, selected_index=index)
        self._commit(
            Commit(self.state.items[index], self.state.trigger_start, self.state.prefix)
        )

    def handle_pointer_down(self) -> bool:
        # the host input must keep focus while the menu is used
        return True

    def is_visible(self) -> bool:
        return self.state.visible

    def hide(self) -> None:
        self.state = CLOSED
        self.view.hide()

    def _set(self, state: AutocompleteState) -> None:
        if not state.visible:
            self.hide()
            return
        self.state = state
        self.view.render(state)

    def _commit(self, commit: Commit) -> None:
        log_msg(f"selected {commit.item.title!r} for {commit.prefix} at {commit.trigger_start}")
        self.on_select(commit.item, commit.trigger_start, commit.prefix)
        self.hide()
