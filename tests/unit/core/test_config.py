"""Unit tests for settings loading."""

from twinmap.config import DEFAULT_PAGE_SIZE, Settings, config_path, load_settings


class TestLoadSettings:
    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_settings(tmp_path) == Settings()

    def test_reads_tree_section(self, tmp_path):
        path = config_path(tmp_path)
        path.parent.mkdir()
        path.write_text("tree:\n  select_descendants_with_parent: false\n  page_size: 25\n")

        settings = load_settings(tmp_path)

        assert settings.select_descendants_with_parent is False
        assert settings.page_size == 25
        assert settings.start_collapsed is False

    def test_invalid_yaml_falls_back(self, tmp_path, caplog):
        path = config_path(tmp_path)
        path.parent.mkdir()
        path.write_text("tree: [unclosed\n")

        settings = load_settings(tmp_path)

        assert settings.page_size == DEFAULT_PAGE_SIZE
        assert "Ignoring invalid config" in caplog.text

    def test_invalid_values_fall_back(self, tmp_path):
        path = config_path(tmp_path)
        path.parent.mkdir()
        path.write_text("tree:\n  page_size: lots\n")

        assert load_settings(tmp_path) == Settings()
