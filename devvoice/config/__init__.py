"""Simple YAML configuration loader for DevVoice."""

import copy
import os
import sys
import tempfile
import yaml
from pathlib import Path
from typing import Dict, Any, List, Optional
import logging

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "devvoice.yaml"

# ffmpeg input format and default device per platform
_PLATFORM_INPUTS = {
    "win32": ("dshow", None),
    "darwin": ("avfoundation", ":0"),
    "linux": ("pulse", "default"),
}


def _platform_input() -> tuple:
    return _PLATFORM_INPUTS.get(sys.platform, _PLATFORM_INPUTS["linux"])


def default_settings() -> Dict[str, Any]:
    """Built-in settings used for every key the YAML file leaves out."""
    input_format, device = _platform_input()
    device_arg = "audio={device}" if input_format == "dshow" else "{device}"
    return {
        "recorder": {
            "command": [
                "ffmpeg", "-nostdin", "-y", "-hide_banner", "-loglevel", "error",
                "-f", input_format, "-i", device_arg,
                "-t", "{duration}", "-ac", "2", "-ar", "44100",
                "{output}",
            ],
            "device": device,
            "max_duration_seconds": 300,
            "scratch_dir": os.path.join(tempfile.gettempdir(), "devvoice"),
        },
        "polling": {
            "grace_seconds": 1.5,
            "interval_seconds": 0.25,
            "max_attempts": 80,
            "min_bytes": 200,
        },
        "devices": {
            "command": ["ffmpeg", "-f", "dshow", "-list_devices", "true", "-i", "dummy", "-hide_banner"],
        },
        "storage": {
            "directory_name": ".devvoice",
        },
        "workspace": {
            "folders": [],
        },
        "logging": {
            "level": "INFO",
            "file_path": os.path.join(tempfile.gettempdir(), "devvoice", "devvoice.log"),
            "console_output": True,
        },
    }


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


class DevVoiceConfig:
    """DevVoice configuration loader."""

    def __init__(self, config_path: Optional[str] = None, overrides: Optional[Dict[str, Any]] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, uses devvoice.yaml in
                        the current directory when present, otherwise defaults only.
            overrides: Settings merged on top of the file, mostly for tests.
        """
        self.config_file: Optional[Path] = None
        if config_path:
            self.config_file = Path(config_path)
            if not self.config_file.exists():
                raise FileNotFoundError(f"Configuration file not found: {self.config_file}")
        elif Path(DEFAULT_CONFIG_NAME).exists():
            self.config_file = Path(DEFAULT_CONFIG_NAME)

        self.config = default_settings()
        if self.config_file is not None:
            logger.info(f"Loading configuration from: {self.config_file}")
            _merge(self.config, self._load_config())
        if overrides:
            _merge(self.config, copy.deepcopy(overrides))

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}")

        if not isinstance(config, dict):
            raise ValueError("Configuration file must contain a mapping")

        self._resolve_paths(config)
        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent

        recorder = config.get('recorder') or {}
        scratch_dir = recorder.get('scratch_dir')
        if scratch_dir and not os.path.isabs(scratch_dir):
            recorder['scratch_dir'] = str(config_dir / scratch_dir)

        workspace = config.get('workspace') or {}
        if workspace.get('folders'):
            workspace['folders'] = [
                folder if os.path.isabs(folder) else str(config_dir / folder)
                for folder in workspace['folders']
            ]

        log_config = config.get('logging') or {}
        log_path = log_config.get('file_path')
        if log_path and not os.path.isabs(log_path):
            log_config['file_path'] = str(config_dir / log_path)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'polling.max_attempts').

        Args:
            key_path: Dot-separated key path
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set configuration value using dot notation.

        Args:
            key_path: Dot-separated path to config value (e.g., 'recorder.device')
            value: Value to set
        """
        keys = key_path.split('.')
        config_dict = self.config

        for key in keys[:-1]:
            if key not in config_dict:
                config_dict[key] = {}
            config_dict = config_dict[key]

        config_dict[keys[-1]] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def get_workspace_folders(self) -> List[str]:
        """Get configured workspace roots, first one wins."""
        return [str(Path(folder).absolute()) for folder in self.get('workspace.folders', []) or []]

    def get_scratch_directory(self) -> str:
        """Get directory for temporary recordings."""
        return str(Path(self.get('recorder.scratch_dir')).absolute())
