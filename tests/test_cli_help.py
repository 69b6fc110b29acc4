import pytest
from click.testing import CliRunner

from quickadd.cli.main import cli


@pytest.fixture
def xdg_home(monkeypatch, tmp_path):
    xdg = tmp_path / "xdg"
    monkeypatch.setenv("XDG_CONFIG_HOME", str(xdg))
    monkeypatch.delenv("QUICKADD_HOME", raising=False)
    return xdg / "quickadd"


@pytest.mark.unit
@pytest.mark.parametrize(
    "args, expected",
    [
        (["--help"], "suggest"),
        (["parse", "--help"], "--suppress"),
        (["suggest", "--help"], "--refs"),
    ],
)
def test_help_lists_options_without_writing_config(xdg_home, args, expected):
    result = CliRunner().invoke(cli, args)

    assert result.exit_code == 0
    assert expected in result.output
    assert not (xdg_home / "config.toml").exists()


@pytest.mark.unit
def test_home_option_redirects_config(monkeypatch, tmp_path):
    monkeypatch.delenv("QUICKADD_HOME", raising=False)
    home = tmp_path / "elsewhere"

    result = CliRunner().invoke(cli, ["--home", str(home), "config"])

    assert result.exit_code == 0, result.output
    assert (home / "config.toml").exists()
