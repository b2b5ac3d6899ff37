"""
Unit tests for the 'init' command.
"""

from unittest.mock import patch

import pytest
import yaml
from click.testing import CliRunner

from twinmap.cli.commands.initialize import init
from twinmap.config import load_settings


class TestInitCommand:
    """Test the init command."""

    @pytest.fixture
    def runner(self):
        return CliRunner()

    @pytest.fixture
    def mock_cwd(self, tmp_path):
        """Mock current working directory to a temp path."""
        with patch("pathlib.Path.cwd", return_value=tmp_path):
            yield tmp_path

    def test_init_creates_config(self, runner, mock_cwd):
        result = runner.invoke(init)

        assert result.exit_code == 0
        assert "Initialized successfully" in result.output

        config_path = mock_cwd / ".twinmap/config.yaml"
        assert config_path.exists()

        with open(config_path) as f:
            config = yaml.safe_load(f)

        assert config["tree"]["select_descendants_with_parent"] is True
        assert config["tree"]["start_collapsed"] is False

    def test_init_collapsed_is_loaded_back(self, runner, mock_cwd):
        runner.invoke(init, ["--collapsed"])

        settings = load_settings(mock_cwd)
        assert settings.start_collapsed is True
        assert settings.select_descendants_with_parent is True

    def test_init_adds_gitignore_entry_once(self, runner, mock_cwd):
        runner.invoke(init)
        runner.invoke(init, ["--force"])

        content = (mock_cwd / ".gitignore").read_text()
        assert content.count(".twinmap/") == 1

    @patch("twinmap.cli.commands.initialize.Confirm.ask")
    def test_init_existing_config_declined(self, mock_confirm, runner, mock_cwd):
        """Declining the overwrite prompt leaves the existing file alone."""
        config_path = mock_cwd / ".twinmap/config.yaml"
        config_path.parent.mkdir()
        config_path.write_text("tree:\n  page_size: 7\n")
        mock_confirm.return_value = False

        result = runner.invoke(init)

        assert result.exit_code == 0
        assert "Aborted" in result.output
        assert load_settings(mock_cwd).page_size == 7

    @patch("twinmap.cli.commands.initialize.Confirm.ask")
    def test_init_force_skips_prompt(self, mock_confirm, runner, mock_cwd):
        config_path = mock_cwd / ".twinmap/config.yaml"
        config_path.parent.mkdir()
        config_path.write_text("tree:\n  page_size: 7\n")

        result = runner.invoke(init, ["--force"])

        assert result.exit_code == 0
        mock_confirm.assert_not_called()
        assert load_settings(mock_cwd).page_size == 100
