import pytest

from quickadd.quickadd_env import QuickAddConfig, QuickAddEnvironment
from quickadd.tokens import ParserConfig, SyntaxMode


@pytest.mark.integration
class TestConfigFile:
    def test_home_from_environment(self, quickadd_home):
        env = QuickAddEnvironment()
        assert env.home == quickadd_home
        assert env.config_path == quickadd_home / "config.toml"
        assert env.refs_path == quickadd_home / "refs.json"

    def test_xdg_fallback(self, monkeypatch, tmp_path):
        monkeypatch.delenv("QUICKADD_HOME", raising=False)
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
        assert QuickAddEnvironment().home == tmp_path / "xdg" / "quickadd"

    def test_first_load_writes_commented_defaults(self):
        env = QuickAddEnvironment()
        config = env.load_config()

        assert config == QuickAddConfig()
        text = env.config_path.read_text(encoding="utf-8")
        assert 'syntax_mode = "todoist"' in text
        assert "# syntax_mode: str = 'todoist' | 'vikunja'" in text
        assert "exclamation_today = true" in text

    def test_partial_file_gains_missing_defaults(self, quickadd_home):
        quickadd_home.mkdir(parents=True)
        env = QuickAddEnvironment()
        env.config_path.write_text('[parser]\nsyntax_mode = "vikunja"\n', encoding="utf-8")

        config = env.load_config()
        assert config.parser.syntax_mode == "vikunja"
        assert config.autocomplete.max_items == 8

        text = env.config_path.read_text(encoding="utf-8")
        assert 'syntax_mode = "vikunja"' in text
        assert "max_items = 8" in text

    def test_invalid_value_falls_back_to_defaults(self, quickadd_home):
        quickadd_home.mkdir(parents=True)
        env = QuickAddEnvironment()
        env.config_path.write_text('[parser]\nsyntax_mode = "jira"\n', encoding="utf-8")

        assert env.load_config().parser.syntax_mode == "todoist"

    def test_malformed_toml_falls_back_to_defaults(self, quickadd_home):
        quickadd_home.mkdir(parents=True)
        env = QuickAddEnvironment()
        env.config_path.write_text("parser = [not toml", encoding="utf-8")

        assert env.load_config() == QuickAddConfig()

    def test_parser_config(self, quickadd_home):
        quickadd_home.mkdir(parents=True)
        env = QuickAddEnvironment()
        env.config_path.write_text(
            '[parser]\nsyntax_mode = "vikunja"\ndayfirst = true\n', encoding="utf-8"
        )

        assert env.parser_config == ParserConfig(
            syntax_mode=SyntaxMode.VIKUNJA, dayfirst=True
        )
