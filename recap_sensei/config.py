"""
Configuration loader for RecapSensei.

This module provides functionality to load and access configuration settings
from the config.ini file. Provider credentials are read from the environment
(see .env), everything else lives in config.ini.
"""

import configparser
import os
from typing import Any, Optional
from dotenv import load_dotenv

load_dotenv(override=True)


DEFAULT_SETTINGS = {
    'pipeline': {
        'condense_threshold': '300',
        'fallback_excerpt_length': '200',
        'blurb_max_chars': '280',
        'require_subject': 'true',
        'output_language': 'en',
    },
    'history': {
        'max_entries': '50',
        'db_url': 'sqlite:///recap_history.sqlite',
        'auto_save': 'false',
    },
    'api': {
        'host': '127.0.0.1',
        'port': '8000',
    },
    'logging': {
        'level': 'INFO',
        'log_to_file': 'false',
        'log_file': 'recap_sensei.log',
    },
}


class Config:
    """Configuration manager for RecapSensei."""

    def __init__(self, config_file: Optional[str] = None):
        """
        Initialize configuration from file.

        Args:
            config_file: Path to the configuration file. When omitted, the
                RECAP_SENSEI_CONFIG environment variable, the current directory
                and the project root are tried in that order.
        """
        self.config = configparser.ConfigParser()

        if config_file is None:
            possible_paths = [
                os.getenv("RECAP_SENSEI_CONFIG", ""),
                "config.ini",
                os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "config.ini"),
            ]

            found_config = None
            for path in possible_paths:
                if path and os.path.exists(path):
                    found_config = path
                    break

            config_file = found_config if found_config else "config.ini"

        self.config_file = config_file
        self._load_config()

    def _load_config(self):
        """Load defaults, then overlay the configuration file if it exists."""
        self.config.read_dict(DEFAULT_SETTINGS)
        if os.path.exists(self.config_file):
            self.config.read(self.config_file)

    def get_bool(self, section: str, key: str, fallback: bool = False) -> bool:
        """Get boolean value from config."""
        return self.config.getboolean(section, key, fallback=fallback)

    def get_str(self, section: str, key: str, fallback: str = "") -> str:
        """Get string value from config."""
        return self.config.get(section, key, fallback=fallback)

    def get_int(self, section: str, key: str, fallback: int = 0) -> int:
        """Get integer value from config."""
        return self.config.getint(section, key, fallback=fallback)

    def set_value(self, section: str, key: str, value: Any) -> None:
        """Set a configuration value."""
        if not self.config.has_section(section):
            self.config.add_section(section)
        self.config.set(section, key, str(value))

    def save_config(self) -> None:
        """Save current configuration to file."""
        with open(self.config_file, 'w') as f:
            self.config.write(f)

    # Pipeline settings
    @property
    def condense_threshold(self) -> int:
        """Dialogue longer than this many characters is condensed first."""
        return self.get_int('pipeline', 'condense_threshold', 300)

    @property
    def fallback_excerpt_length(self) -> int:
        """Characters of raw model output kept when the recap JSON is unusable."""
        return self.get_int('pipeline', 'fallback_excerpt_length', 200)

    @property
    def blurb_max_chars(self) -> int:
        """Character ceiling requested from the blurb writer."""
        return self.get_int('pipeline', 'blurb_max_chars', 280)

    @property
    def require_subject(self) -> bool:
        """Whether the anime name is mandatory."""
        return self.get_bool('pipeline', 'require_subject', True)

    @property
    def output_language(self) -> str:
        return self.get_str('pipeline', 'output_language', 'en')

    # History settings
    @property
    def history_max_entries(self) -> int:
        return self.get_int('history', 'max_entries', 50)

    @property
    def history_db_url(self) -> str:
        return self.get_str('history', 'db_url', 'sqlite:///recap_history.sqlite')

    @property
    def history_auto_save(self) -> bool:
        return self.get_bool('history', 'auto_save', False)

    # API settings
    @property
    def api_host(self) -> str:
        """API server host."""
        return self.get_str('api', 'host', '127.0.0.1')

    @property
    def api_port(self) -> int:
        """API server port."""
        return self.get_int('api', 'port', 8000)

    # Logging settings
    @property
    def log_level(self) -> str:
        """Logging level."""
        return self.get_str('logging', 'level', 'INFO')

    @property
    def log_to_file(self) -> bool:
        """Whether to log to file."""
        return self.get_bool('logging', 'log_to_file', False)

    @property
    def log_file(self) -> str:
        """Log file path."""
        return self.get_str('logging', 'log_file', 'recap_sensei.log')


# Global configuration instance
config = Config()
