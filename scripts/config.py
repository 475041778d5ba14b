import toml
import os
import socket
import logging
from pathlib import Path
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional

from header_modes import DEFAULT_VISIBLE_HEADERS

DEFAULT_CONFIG_FILE = "~/.config/nsbrowse/config.toml"


@dataclass
class ExportSettings:
    """Everything the exporter needs from the configuration."""
    browser_program: str = "netscape"
    display: Optional[str] = None
    temp_template: str = "/tmp/nsbrowse%d.msg"
    file_mode: int = 0o600
    keep_temp_files: bool = False
    wait_for_access: bool = True
    max_name_attempts: int = 10000
    encoding: str = "utf-8"
    visible_headers: List[str] = field(default_factory=lambda: list(DEFAULT_VISIBLE_HEADERS))


class Config:
    def __init__(self, config_file: str = DEFAULT_CONFIG_FILE):
        self.config_path = Path(config_file).expanduser()
        self.config_dir = self.config_path.parent
        self.data = self.load_config()

    def default_config(self) -> Dict[str, Any]:
        return {
            "browser": {
                "program": "netscape",
                "display": "",
                "new_window": False
            },
            "temp_files": {
                "template": "/tmp/nsbrowse%d.msg",
                "file_mode": "0600",
                "keep": False,
                "wait_for_access": True,
                "max_name_attempts": 10000,
                "encoding": "utf-8"
            },
            "headers": {
                "visible": list(DEFAULT_VISIBLE_HEADERS)
            }
        }

    def load_config(self):
        default_config = self.default_config()

        if not self.config_path.exists():
            # Create a default config file if it doesn't exist
            self.config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.config_path, "w") as f:
                toml.dump(default_config, f)
            logging.info(f"Created default config file at {self.config_path}")
            return default_config

        with open(self.config_path, "r") as f:
            user_config = toml.load(f)

        # Merge user config with defaults
        merged_config = default_config.copy()
        for key, value in user_config.items():
            if isinstance(value, dict) and key in merged_config and isinstance(merged_config[key], dict):
                merged_config[key].update(value)
            else:
                merged_config[key] = value
        return merged_config

    def save(self):
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, "w") as f:
            toml.dump(self.data, f)

    def get_setting(self, section: str, key: str, default=None):
        return self.data.get(section, {}).get(key, default)

    def browser_program(self) -> str:
        return self.get_setting("browser", "program", "netscape")

    def target_display(self) -> Optional[str]:
        """The configured display, or None to use the ambient one."""
        return self.get_setting("browser", "display") or None

    def set_display(self, display: str):
        self.data.setdefault("browser", {})["display"] = display
        self.save()
        logging.info(f"Target display set to '{display}' in {self.config_path}")

    def file_mode(self) -> int:
        mode = self.get_setting("temp_files", "file_mode", "0600")
        if isinstance(mode, int):
            return mode
        try:
            return int(str(mode), 8)
        except ValueError:
            raise ValueError(f"temp_files.file_mode must be an octal string, got '{mode}'")

    def visible_headers(self) -> List[str]:
        return list(self.get_setting("headers", "visible", DEFAULT_VISIBLE_HEADERS))

    def settings(self) -> ExportSettings:
        return ExportSettings(
            browser_program=self.browser_program(),
            display=self.target_display(),
            temp_template=self.get_setting("temp_files", "template", "/tmp/nsbrowse%d.msg"),
            file_mode=self.file_mode(),
            keep_temp_files=bool(self.get_setting("temp_files", "keep", False)),
            wait_for_access=bool(self.get_setting("temp_files", "wait_for_access", True)),
            max_name_attempts=int(self.get_setting("temp_files", "max_name_attempts", 10000)),
            encoding=self.get_setting("temp_files", "encoding", "utf-8"),
            visible_headers=self.visible_headers(),
        )


def default_display(config: Optional[Config] = None) -> str:
    """Configured display, else $DISPLAY, else one on the local host."""
    if config is not None and config.target_display():
        return config.target_display()
    if os.environ.get("DISPLAY"):
        return os.environ["DISPLAY"]
    return f"{socket.gethostname()}:0.0"
