import os
from dataclasses import replace

import click
from rich.console import Console
from rich.table import Table

from quickadd import __version__
from quickadd.autocomplete import AutocompleteController, Key, KeyEvent, splice_selection
from quickadd.cache import ReferenceCache
from quickadd.quickadd_env import QuickAddEnvironment
from quickadd.session import EditorSession
from quickadd.tokens import SyntaxMode, TokenType
from quickadd.view import RichMenuView, print_draft

KEY_NAMES = {
    "up": Key.UP,
    "down": Key.DOWN,
    "tab": Key.TAB,
    "enter": Key.ENTER,
    "return": Key.ENTER,
    "esc": Key.ESCAPE,
    "escape": Key.ESCAPE,
}

MODES = [m.value for m in SyntaxMode]
TOKEN_TYPES = [t.value for t in TokenType]


def load_refs(env: QuickAddEnvironment, refs: str | None, max_items: int) -> ReferenceCache:
    cache = ReferenceCache(max_results=max_items)
    path = refs or (env.refs_path if env.refs_path.exists() else None)
    if path is None:
        return cache
    try:
        cache.load_json(path)
    except (OSError, ValueError, KeyError, TypeError) as e:
        raise click.BadParameter(f"could not read {path}: {e}", param_hint="--refs")
    return cache


@click.group()
@click.version_option(__version__, prog_name="quickadd", message="%(prog)s version %(version)s")
@click.option(
    "--home",
    help="Override the QuickAdd workspace directory (equivalent to setting $QUICKADD_HOME).",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output")
@click.pass_context
def cli(ctx, home, verbose):
    """QuickAdd CLI – turn one line of text into a task draft."""
    if home:
        os.environ["QUICKADD_HOME"] = home  # Must be set before QuickAddEnvironment is instantiated

    ctx.ensure_object(dict)
    ctx.obj["ENV"] = QuickAddEnvironment()
    ctx.obj["VERBOSE"] = verbose
    ctx.obj["CONSOLE"] = Console(highlight=False)


@cli.command()
@click.argument("entry", nargs=-1, required=True)
@click.option("--mode", type=click.Choice(MODES), help="Override the configured syntax mode.")
@click.option("--disabled", is_flag=True, help="Parse as if the parser were switched off.")
@click.option(
    "--suppress",
    type=click.Choice(TOKEN_TYPES),
    multiple=True,
    help="Dismiss a detected token type (repeatable).",
)
@click.option("--no-bang", is_flag=True, help="Ignore the trailing '!' today shortcut.")
@click.pass_context
def parse(ctx, entry, mode, disabled, suppress, no_bang):
    """Parse ENTRY and show the resulting task draft."""
    env = ctx.obj["ENV"]
    console = ctx.obj["CONSOLE"]
    settings = env.config.parser

    config = env.parser_config
    if mode:
        config = replace(config, syntax_mode=SyntaxMode(mode))
    if disabled:
        config = replace(config, enabled=False)

    text = " ".join(entry)
    session = EditorSession(config, exclamation_today=settings.exclamation_today and not no_bang)
    session.set_text(text)
    for token_type in suppress:
        session.suppress(token_type)

    print_draft(console, text, session.draft())
    if ctx.obj["VERBOSE"] and session.suppress_types:
        console.print(f"suppressed: {', '.join(sorted(t.value for t in session.suppress_types))}")


@cli.command()
@click.argument("text")
@click.option("--caret", type=int, help="Caret offset; defaults to the end of TEXT.")
@click.option(
    "--refs",
    type=click.Path(dir_okay=False),
    help="JSON file with projects and labels (defaults to refs.json in the home directory).",
)
@click.option(
    "--key",
    "keys",
    multiple=True,
    help="Key to replay against the menu: up, down, tab, enter or escape (repeatable).",
)
@click.option("--mode", type=click.Choice(MODES), help="Override the configured syntax mode.")
@click.pass_context
def suggest(ctx, text, caret, refs, keys, mode):
    """Show the autocomplete menu for TEXT and optionally replay KEYs."""
    env = ctx.obj["ENV"]
    console = ctx.obj["CONSOLE"]
    config = env.config
    cache = load_refs(env, refs, config.autocomplete.max_items)

    caret = len(text) if caret is None else max(0, min(caret, len(text)))
    current = {"text": text, "caret": caret}

    def on_select(item, trigger_start, prefix):
        current["text"], current["caret"] = splice_selection(
            current["text"], item, trigger_start, current["caret"], prefix
        )

    controller = AutocompleteController(
        RichMenuView(console),
        cache,
        on_select,
        syntax_mode=mode or config.parser.syntax_mode,
        enabled=config.autocomplete.enabled,
    )
    controller.update(current["text"], current["caret"])
    if not controller.is_visible():
        console.print("[dim]no suggestions[/dim]")

    for name in keys:
        key = KEY_NAMES.get(name.lower(), name)
        consumed = controller.handle_key_down(KeyEvent(key))
        if ctx.obj["VERBOSE"]:
            console.print(f"[dim]{key}: consumed={consumed}[/dim]")

    console.print(current["text"], markup=False)


@cli.command("config")
@click.pass_context
def show_config(ctx):
    """Show the configuration file location and effective settings."""
    env = ctx.obj["ENV"]
    console = ctx.obj["CONSOLE"]
    config = env.load_config()

    console.print(f"config: {env.config_path}")
    table = Table(show_header=False, box=None)
    for section, values in config.model_dump().items():
        if not isinstance(values, dict):
            continue
        for key, value in values.items():
            table.add_row(f"{section}.{key}", str(value))
    console.print(table)


if __name__ == "__main__":
    cli()
