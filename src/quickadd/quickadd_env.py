from pathlib import Path
import os
import tomllib
from pydantic import BaseModel, Field, ValidationError
from typing import Optional
from jinja2 import Template

from .tokens import ParserConfig, SyntaxMode


# ─── Config Schema ─────────────────────────────────────────────────
class ParserSettings(BaseModel):
    enabled: bool = True
    syntax_mode: str = Field("todoist", pattern="^(todoist|vikunja)$")
    exclamation_today: bool = True
    dayfirst: bool = False


class AutocompleteSettings(BaseModel):
    enabled: bool = True
    max_items: int = Field(8, ge=1, le=50)


class QuickAddConfig(BaseModel):
    title: str = "QuickAdd Configuration"
    parser: ParserSettings = ParserSettings()
    autocomplete: AutocompleteSettings = AutocompleteSettings()


def parser_config_from(settings: ParserSettings) -> ParserConfig:
    return ParserConfig(
        enabled=settings.enabled,
        syntax_mode=SyntaxMode(settings.syntax_mode),
        dayfirst=settings.dayfirst,
    )


# ─── Commented Template ────────────────────────────────────
CONFIG_TEMPLATE = """\
title = "{{ title }}"

[parser]
# enabled: bool = true | false
# When false, free text is taken as the title and only the
# trailing "!" shortcut (below) is still recognized.
enabled = {{ parser.enabled | lower }}

# syntax_mode: str = 'todoist' | 'vikunja'
#   todoist:  #project  @label  p1..p4
#   vikunja:  +project  *label  !1..!5
syntax_mode = "{{ parser.syntax_mode }}"

# exclamation_today: bool = true | false
# "Buy milk !" is due today at midnight.
exclamation_today = {{ parser.exclamation_today | lower }}

# dayfirst: bool = true | false
# Read "3/4" as April 3 rather than March 4.
dayfirst = {{ parser.dayfirst | lower }}

[autocomplete]
# enabled: bool = true | false
enabled = {{ autocomplete.enabled | lower }}

# max_items: int, the number of suggestions shown in the menu
max_items = {{ autocomplete.max_items }}
"""

# ─── Save Config with Comments ───────────────────────────────


def save_config_from_template(config: QuickAddConfig, path: Path):
    template = Template(CONFIG_TEMPLATE)
    rendered = template.render(**config.model_dump())
    path.write_text(rendered.strip() + "\n", encoding="utf-8")
    print(f"✅ Config with comments written to: {path}")


# ─── Main Environment Class ───────────────────────────────


class QuickAddEnvironment:
    def __init__(self):
        self._home = self._resolve_home()
        self._config: Optional[QuickAddConfig] = None

    @property
    def home(self) -> Path:
        return self._home

    @property
    def config_path(self) -> Path:
        return self.home / "config.toml"

    @property
    def refs_path(self) -> Path:
        return self.home / "refs.json"

    def load_config(self) -> QuickAddConfig:
        # Step 1: Create the file if it doesn't exist
        if not self.config_path.exists():
            config = QuickAddConfig()
            self.home.mkdir(parents=True, exist_ok=True)
            save_config_from_template(config, self.config_path)
            self._config = config
            return config

        # Step 2: Try to load and validate the config
        try:
            with open(self.config_path, "rb") as f:
                data = tomllib.load(f)
            config = QuickAddConfig.model_validate(data)
        except (ValidationError, tomllib.TOMLDecodeError) as e:
            print(f"⚠️ Config error in {self.config_path}: {e}\nUsing defaults.")
            config = QuickAddConfig()

        # Step 3: Always regenerate the canonical version
        template = Template(CONFIG_TEMPLATE)
        rendered = template.render(**config.model_dump()).strip() + "\n"

        current_text = self.config_path.read_text(encoding="utf-8")
        if rendered != current_text:
            self.config_path.write_text(rendered, encoding="utf-8")
            print(f"✅ Updated {self.config_path} with any missing defaults.")

        self._config = config
        return config

    @property
    def config(self) -> QuickAddConfig:
        if self._config is None:
            return self.load_config()
        return self._config

    @property
    def parser_config(self) -> ParserConfig:
        return parser_config_from(self.config.parser)

    def _resolve_home(self) -> Path:
        cwd = Path.cwd()
        if (cwd / "config.toml").exists() and (cwd / "refs.json").exists():
            return cwd

        env_home = os.getenv("QUICKADD_HOME")
        if env_home:
            return Path(env_home).expanduser()

        xdg_home = os.getenv("XDG_CONFIG_HOME")
        if xdg_home:
            return Path(xdg_home).expanduser() / "quickadd"
        else:
            return Path.home() / ".config" / "quickadd"
