"""
Tests for trigger detection and the autocomplete menu controller.
"""

import pytest

from quickadd.autocomplete import (
    CLOSED,
    AutocompleteController,
    AutocompleteState,
    Key,
    KeyEvent,
    MountPointError,
    Trigger,
    detect_trigger,
    handle_key,
    splice_selection,
)
from quickadd.cache import CacheItem
from quickadd.parser import parse
from quickadd.tokens import SyntaxMode, TokenType, get_prefixes

TODOIST = get_prefixes(SyntaxMode.TODOIST)
VIKUNJA = get_prefixes(SyntaxMode.VIKUNJA)


@pytest.fixture
def controller(view, cache, selections):
    def on_select(item, trigger_start, prefix):
        selections.append((item, trigger_start, prefix))

    return AutocompleteController(view, cache, on_select)


def titles(state):
    return [i.title for i in state.items]


@pytest.mark.unit
class TestDetectTrigger:
    def test_project_trigger(self):
        text = "Buy milk #gro"
        assert detect_trigger(text, len(text), TODOIST) == Trigger(
            9, "gro", "#", TokenType.PROJECT
        )

    def test_later_label_wins(self):
        text = "Buy milk #groceries @err"
        trigger = detect_trigger(text, len(text), TODOIST)
        assert trigger == Trigger(20, "err", "@", TokenType.LABEL)

    def test_prefix_inside_word(self):
        text = "email bob@example"
        assert detect_trigger(text, len(text), TODOIST) is None

    def test_query_may_contain_spaces(self):
        trigger = detect_trigger("#home off", 9, TODOIST)
        assert trigger.query == "home off"

    def test_only_text_before_caret_counts(self):
        trigger = detect_trigger("#abc def", 2, TODOIST)
        assert trigger.query == "a"
        assert detect_trigger("plain #abc", 3, TODOIST) is None

    def test_bare_prefix(self):
        assert detect_trigger("Tag #", 5, TODOIST).query == ""

    def test_vikunja_prefixes(self):
        assert detect_trigger("Fix +gro", 8, VIKUNJA).kind == TokenType.PROJECT
        assert detect_trigger("Fix *urg", 8, VIKUNJA).kind == TokenType.LABEL
        assert detect_trigger("Fix #gro", 8, VIKUNJA) is None


@pytest.mark.unit
class TestHandleKey:
    def make_state(self, count=3, selected=0):
        items = tuple(CacheItem(n, f"item {n}") for n in range(count))
        return AutocompleteState(
            items=items,
            kind=TokenType.LABEL,
            prefix="@",
            trigger_start=4,
            selected_index=selected,
            visible=True,
        )

    def test_arrows_wrap(self):
        state = self.make_state(selected=2)
        outcome = handle_key(state, KeyEvent(Key.DOWN))
        assert outcome.consumed
        assert outcome.state.selected_index == 0

        outcome = handle_key(outcome.state, KeyEvent(Key.UP))
        assert outcome.state.selected_index == 2

    def test_enter_commits_without_consuming(self):
        outcome = handle_key(self.make_state(selected=1), KeyEvent(Key.ENTER))
        assert not outcome.consumed
        assert outcome.state == CLOSED
        assert outcome.commit.item.title == "item 1"
        assert (outcome.commit.trigger_start, outcome.commit.prefix) == (4, "@")

    def test_tab_commits_and_consumes(self):
        outcome = handle_key(self.make_state(), KeyEvent(Key.TAB))
        assert outcome.consumed
        assert outcome.commit.item.title == "item 0"

    def test_escape_closes(self):
        outcome = handle_key(self.make_state(), KeyEvent(Key.ESCAPE))
        assert outcome.consumed
        assert outcome.state == CLOSED
        assert outcome.commit is None

    def test_closed_menu_ignores_keys(self):
        outcome = handle_key(CLOSED, KeyEvent(Key.DOWN))
        assert not outcome.consumed
        assert outcome.state is CLOSED

    def test_other_keys_pass_through(self):
        state = self.make_state()
        outcome = handle_key(state, KeyEvent("a"))
        assert not outcome.consumed
        assert outcome.state is state


@pytest.mark.unit
class TestController:
    def test_needs_a_view(self, cache):
        with pytest.raises(MountPointError):
            AutocompleteController(None, cache, lambda *args: None)

    def test_opens_on_trigger(self, controller, view):
        controller.update("Buy milk #gro", 13)
        assert controller.is_visible()
        assert titles(view.last) == ["Groceries", "Grocery Archive"]
        assert view.last.trigger_start == 9
        assert view.last.selected_index == 0

    def test_bare_prefix_lists_first_items(self, controller, view):
        controller.update("Tag #", 5)
        assert len(view.last.items) == 8

    def test_no_results_hides(self, controller, view):
        controller.update("Buy milk #zzz", 13)
        assert not controller.is_visible()
        assert view.hidden == 1
        assert controller.state.trigger_start == -1
        assert controller.state.items == ()

    def test_keyboard_navigation_and_enter(self, controller, view, selections):
        controller.update("Call @", 6)
        assert titles(view.last) == ["errand", "urgent", "waiting"]

        assert controller.handle_key_down(KeyEvent(Key.DOWN))
        assert controller.handle_key_down(Key.DOWN)
        assert view.last.selected_index == 2
        assert controller.handle_key_down(Key.DOWN)
        assert view.last.selected_index == 0
        assert controller.handle_key_down(Key.UP)
        assert view.last.selected_index == 2

        assert controller.handle_key_down(Key.ENTER) is False
        assert selections == [(CacheItem(13, "waiting"), 5, "@")]
        assert not controller.is_visible()

    def test_tab_is_consumed(self, controller, selections):
        controller.update("Call @", 6)
        controller.handle_key_down(Key.DOWN)
        assert controller.handle_key_down(Key.TAB) is True
        assert selections[0][0].title == "urgent"

    def test_escape(self, controller, selections):
        controller.update("Call @", 6)
        assert controller.handle_key_down(Key.ESCAPE)
        assert not controller.is_visible()
        assert selections == []

    def test_keys_when_hidden(self, controller):
        assert controller.handle_key_down(Key.DOWN) is False
        assert controller.handle_key_down(Key.ENTER) is False

    def test_typing_passes_through(self, controller, view):
        controller.update("Call @", 6)
        renders = len(view.rendered)
        assert controller.handle_key_down("u") is False
        assert controller.is_visible()
        assert len(view.rendered) == renders

    def test_click(self, controller, selections):
        controller.update("Buy milk #gro", 13)
        controller.click(1)
        assert selections == [(CacheItem(4, "Grocery Archive"), 9, "#")]
        assert not controller.is_visible()

    def test_click_out_of_range(self, controller, selections):
        controller.update("Buy milk #gro", 13)
        controller.click(5)
        assert selections == []
        assert controller.is_visible()

    def test_pointer_down_keeps_focus(self, controller):
        assert controller.handle_pointer_down() is True

    def test_disabled(self, controller):
        controller.update("Buy milk #gro", 13)
        controller.set_enabled(False)
        assert not controller.is_visible()

        controller.update("Buy milk #gro", 13)
        assert not controller.is_visible()

    def test_syntax_mode_switch(self, controller, view):
        controller.set_syntax_mode("vikunja")
        controller.update("Fix #gro", 8)
        assert not controller.is_visible()

        controller.update("Fix +gro", 8)
        assert controller.is_visible()
        assert view.last.prefix == "+"


@pytest.mark.unit
class TestSplice:
    def test_splice_at_end(self):
        text, caret = splice_selection(
            "Buy milk #gro", CacheItem(2, "Groceries"), 9, 13, "#"
        )
        assert text == "Buy milk #Groceries "
        assert caret == 20

    def test_splice_before_existing_space(self):
        text, caret = splice_selection(
            "Buy #gro now", CacheItem(2, "Groceries"), 4, 8, "#"
        )
        assert text == "Buy #Groceries now"
        assert caret == 14

    def test_title_with_spaces_is_quoted(self, frozen_time):
        text, _ = splice_selection(
            "Buy milk #gro", CacheItem(4, "Grocery Archive"), 9, 13, "#"
        )
        assert text == 'Buy milk #"Grocery Archive" '

        result = parse(text)
        assert result.project == "Grocery Archive"
        assert result.title == "Buy milk"
