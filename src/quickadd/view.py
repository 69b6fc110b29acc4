from datetime import datetime

from rich.console import Console
from rich.table import Table
from rich.text import Text

from .autocomplete import AutocompleteState
from .shared import fmt_due, truncate_string
from .tokens import ParsedToken, TaskDraft, TokenType

# green=date, red=priority, orange=label, blue=project, purple=recurrence
TOKEN_COLORS = {
    TokenType.DATE: "green3",
    TokenType.PRIORITY: "red3",
    TokenType.LABEL: "dark_orange",
    TokenType.PROJECT: "dodger_blue1",
    TokenType.RECURRENCE: "medium_purple",
}
SELECTED_STYLE = "bold reverse"
PRIORITY_LABELS = ["", "Low", "Medium", "High", "Urgent"]
MENU_WIDTH = 40


def highlight_tokens(text: str, tokens: tuple[ParsedToken, ...]) -> Text:
    """Return ``text`` with every token span colored by its type."""
    rich_text = Text(text)
    for token in sorted(tokens, key=lambda t: t.start):
        rich_text.stylize(f"bold {TOKEN_COLORS[token.type]}", token.start, token.end)
    return rich_text


def draft_chips(draft: TaskDraft, now: datetime | None = None) -> list[tuple[TokenType, str]]:
    chips = []
    if draft.due_date:
        chips.append((TokenType.DATE, fmt_due(draft.due_date, now)))
    if draft.priority:
        label = (
            PRIORITY_LABELS[draft.priority]
            if draft.priority < len(PRIORITY_LABELS)
            else f"P{draft.priority}"
        )
        chips.append((TokenType.PRIORITY, label))
    for label in draft.labels:
        chips.append((TokenType.LABEL, label))
    if draft.project:
        chips.append((TokenType.PROJECT, draft.project))
    if draft.recurrence:
        chips.append((TokenType.RECURRENCE, str(draft.recurrence)))
    return chips


def print_draft(
    console: Console, text: str, draft: TaskDraft, now: datetime | None = None
) -> None:
    console.print(highlight_tokens(text, draft.tokens))
    line = Text("→ ")
    line.append(draft.title or "(no title)", style="bold")
    for token_type, label in draft_chips(draft, now):
        line.append("  ")
        line.append(f" {label} ", style=f"black on {TOKEN_COLORS[token_type]}")
    console.print(line)

    if draft.tokens:
        table = Table(show_header=True, header_style="bold", box=None)
        table.add_column("type")
        table.add_column("span", justify="right")
        table.add_column("raw")
        table.add_column("value")
        for token in draft.tokens:
            table.add_row(
                Text(token.type.value, style=TOKEN_COLORS[token.type]),
                f"{token.start}:{token.end}",
                repr(token.raw),
                str(token.value),
            )
        console.print(table)


class RichMenuView:
    """Prints the autocomplete menu below the input line."""

    def __init__(self, console: Console):
        self.console = console
        self.visible = False
        self.renders = 0

    def render(self, state: AutocompleteState) -> None:
        self.visible = True
        self.renders += 1
        color = TOKEN_COLORS.get(state.kind, "white")
        for i, item in enumerate(state.items):
            line = Text(f" {state.prefix}{truncate_string(item.title, MENU_WIDTH)} ", style=color)
            if i == state.selected_index:
                line.stylize(SELECTED_STYLE)
            self.console.print(line)

    def hide(self) -> None:
        self.visible = False
