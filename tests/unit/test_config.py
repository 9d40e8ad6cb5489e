"""Unit tests for DevVoiceConfig."""

import pytest
import os
from pathlib import Path

from devvoice.config import DevVoiceConfig, default_settings


@pytest.mark.unit
class TestDevVoiceConfig:

    def test_defaults(self, temp_data_dir, monkeypatch):
        """Test the built-in defaults load when no config file exists."""
        monkeypatch.chdir(temp_data_dir)
        config = DevVoiceConfig()

        assert config.config_file is None
        assert config.get('polling.grace_seconds') == 1.5
        assert config.get('polling.interval_seconds') == 0.25
        assert config.get('polling.max_attempts') == 80
        assert config.get('polling.min_bytes') == 200
        assert config.get('recorder.max_duration_seconds') == 300
        assert config.get('storage.directory_name') == ".devvoice"
        assert config.get_workspace_folders() == []

    def test_recorder_template_has_placeholders(self):
        """Test recorder template has placeholders."""
        command = default_settings()['recorder']['command']

        assert command[0] == "ffmpeg"
        assert "{output}" in command
        assert "{duration}" in command
        assert any("{device}" in arg for arg in command)

    def test_missing_key_returns_default(self):
        """Test missing key returns default."""
        config = DevVoiceConfig(overrides={})

        assert config.get('recorder.nope', 'fallback') == 'fallback'
        assert config.get('polling.grace_seconds.deeper') is None

    def test_set_creates_nested_keys(self):
        """Test set creates nested keys."""
        config = DevVoiceConfig(overrides={})

        config.set('extra.section.value', 5)

        assert config.get('extra.section.value') == 5

    def test_yaml_file_merges_over_defaults(self, temp_data_dir):
        """Test yaml file merges over defaults."""
        config_path = Path(temp_data_dir) / "devvoice.yaml"
        config_path.write_text(
            "polling:\n"
            "  max_attempts: 10\n"
            "recorder:\n"
            "  scratch_dir: scratch\n"
            "workspace:\n"
            "  folders:\n"
            "    - project\n"
            "logging:\n"
            "  file_path: logs/devvoice.log\n",
            encoding='utf-8',
        )

        config = DevVoiceConfig(str(config_path))

        assert config.get('polling.max_attempts') == 10
        assert config.get('polling.grace_seconds') == 1.5
        assert config.get_scratch_directory() == str(Path(temp_data_dir) / "scratch")
        assert config.get_workspace_folders() == [str(Path(temp_data_dir) / "project")]
        assert config.get('logging.file_path') == str(Path(temp_data_dir) / "logs" / "devvoice.log")

    def test_default_file_in_working_directory(self, temp_data_dir, monkeypatch):
        """Test default file in working directory."""
        Path(temp_data_dir, "devvoice.yaml").write_text("polling:\n  min_bytes: 1\n", encoding='utf-8')
        monkeypatch.chdir(temp_data_dir)

        config = DevVoiceConfig()

        assert config.get('polling.min_bytes') == 1

    def test_overrides_win(self, temp_data_dir):
        """Test explicit overrides win over the config file."""
        config_path = Path(temp_data_dir) / "devvoice.yaml"
        config_path.write_text("polling:\n  max_attempts: 10\n", encoding='utf-8')

        config = DevVoiceConfig(str(config_path), overrides={"polling": {"max_attempts": 3}})

        assert config.get('polling.max_attempts') == 3

    def test_explicit_missing_file(self, temp_data_dir):
        """Test an explicit config path that does not exist raises."""
        with pytest.raises(FileNotFoundError):
            DevVoiceConfig(os.path.join(temp_data_dir, "nope.yaml"))

    def test_invalid_yaml(self, temp_data_dir):
        """Test unparseable YAML raises a ValueError."""
        config_path = Path(temp_data_dir) / "devvoice.yaml"
        config_path.write_text("polling: [unclosed\n", encoding='utf-8')

        with pytest.raises(ValueError):
            DevVoiceConfig(str(config_path))

    def test_non_mapping_yaml(self, temp_data_dir):
        """Test a YAML document that is not a mapping raises a ValueError."""
        config_path = Path(temp_data_dir) / "devvoice.yaml"
        config_path.write_text("- just\n- a list\n", encoding='utf-8')

        with pytest.raises(ValueError):
            DevVoiceConfig(str(config_path))
