"""
Service configuration
Settings come from an optional YAML file, overridden by BUILDINFO_* environment variables
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Union

import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PREFIX = "BUILDINFO_"
DEFAULT_SETTINGS_FILE = "buildinfo.yaml"
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class Settings(BaseSettings):
    """Runtime settings of the snapshot service"""

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        case_sensitive=False,
    )

    milli_second_timestamps: bool = True
    source: str = "jenkins"
    source_host: Optional[str] = None
    log_level: str = "INFO"

    def date_formatter(self) -> "DateFormatter":
        return DateFormatter(milli_seconds=self.milli_second_timestamps)

    @classmethod
    def settings_customise_sources(cls, settings_cls, init_settings, env_settings,
                                   dotenv_settings, file_secret_settings):
        # Environment variables take precedence over values read from YAML
        return env_settings, init_settings


class DateFormatter:
    """Renders instants as ISO-8601 strings with a numeric UTC offset"""

    def __init__(self, milli_seconds: bool = True):
        self.milli_seconds = milli_seconds

    @property
    def pattern(self) -> str:
        if self.milli_seconds:
            return "yyyy-MM-dd'T'HH:mm:ss.SSSZ"
        return "yyyy-MM-dd'T'HH:mm:ssZ"

    def format(self, instant: Union[datetime, int, float]) -> str:
        """
        Format an instant

        Args:
            instant: Aware or naive (treated as UTC) datetime, or epoch milliseconds

        Returns:
            e.g. 2024-01-02T03:04:05.678+0000
        """
        if isinstance(instant, (int, float)):
            instant = EPOCH + timedelta(milliseconds=instant)
        elif instant.tzinfo is None:
            instant = instant.replace(tzinfo=timezone.utc)

        text = instant.strftime("%Y-%m-%dT%H:%M:%S")
        if self.milli_seconds:
            text += f".{instant.microsecond // 1000:03d}"
        return text + instant.strftime("%z")


def load_settings(path: str = DEFAULT_SETTINGS_FILE) -> Settings:
    """
    Load settings from YAML and the environment

    Args:
        path: YAML settings file; a missing file means defaults

    Returns:
        Validated settings
    """
    values: Dict[str, Any] = {}
    try:
        with open(path, 'r') as f:
            values.update(yaml.safe_load(f) or {})
    except FileNotFoundError:
        pass

    return Settings(**values)
