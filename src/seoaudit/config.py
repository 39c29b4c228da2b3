from dotenv import load_dotenv
from dataclasses import dataclass
from pathlib import Path
import json
import os

from seoaudit.constants import (
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_SPEED_MAX_PAGES,
    MIN_HTML_SIZE_BYTES,
    RENDER_IDLE_TIMEOUT_MS,
)

load_dotenv()  # Loads variables from .env file


class Settings:
    """
    Manages application settings loaded from environment variables.
    """
    USER_AGENT = os.getenv("SEOAUDIT_USER_AGENT", "SEO-Audit-Bot/1.0")
    LOG_LEVEL = os.getenv("SEOAUDIT_LOG_LEVEL", "INFO")
    LOG_FILE = os.getenv("SEOAUDIT_LOG_FILE")
    REQUEST_TIMEOUT = float(os.getenv("SEOAUDIT_REQUEST_TIMEOUT", str(DEFAULT_REQUEST_TIMEOUT_SECONDS)))


settings = Settings()


def _coerce(field_type, raw: str):
    """Convert an environment string to a dataclass field type."""
    if field_type in (bool, "bool"):
        return raw.strip().lower() in ("1", "true", "yes", "on")
    if field_type in (int, "int"):
        return int(raw)
    if field_type in (float, "float"):
        return float(raw)
    return raw


class _EnvFileMixin:
    """Shared env/file loading for the configuration dataclasses."""

    ENV_PREFIX = ""

    @classmethod
    def from_env(cls):
        """Load values from environment variables.

        Each field maps to ``<ENV_PREFIX><FIELD_NAME>``, e.g.
        SEOAUDIT_SPEED_MAX_PAGES=5. Unparseable values keep the default.
        """
        instance = cls()
        for field_name, field_def in instance.__dataclass_fields__.items():
            env_value = os.getenv(f"{cls.ENV_PREFIX}{field_name.upper()}")
            if env_value is None:
                continue
            try:
                setattr(instance, field_name, _coerce(field_def.type, env_value))
            except ValueError:
                pass  # Keep default if conversion fails
        return instance

    @classmethod
    def from_file(cls, path: str):
        """Load values from a JSON configuration file.

        Args:
            path: Path to JSON configuration file

        Returns:
            Instance with values from file (defaults if the file is missing)
        """
        instance = cls()
        file_path = Path(path)

        if not file_path.exists():
            return instance

        with open(file_path, 'r') as f:
            config = json.load(f)

        section = config.get(cls.FILE_SECTION, config)

        for field_name in instance.__dataclass_fields__:
            if field_name in section:
                setattr(instance, field_name, section[field_name])

        return instance

    def to_dict(self) -> dict:
        """Convert to a plain dictionary."""
        return {
            field_name: getattr(self, field_name)
            for field_name in self.__dataclass_fields__
        }

    def save_to_file(self, path: str) -> None:
        """Save current values to a JSON file."""
        with open(path, 'w') as f:
            json.dump({self.FILE_SECTION: self.to_dict()}, f, indent=2)


@dataclass
class CrawlerConfig(_EnvFileMixin):
    """Runtime configuration for fetching and traversal."""

    ENV_PREFIX = "SEOAUDIT_"
    FILE_SECTION = "crawler"

    user_agent: str = settings.USER_AGENT
    timeout: float = settings.REQUEST_TIMEOUT  # seconds

    # Browser render fallback
    render_fallback_min_bytes: int = MIN_HTML_SIZE_BYTES
    render_idle_timeout_ms: int = RENDER_IDLE_TIMEOUT_MS

    # Speed measurement (browser Navigation Timing)
    speed_enabled: bool = True
    speed_max_pages: int = DEFAULT_SPEED_MAX_PAGES

    # HEAD-check every outgoing link to feed the broken link audit
    check_link_status: bool = False

    # Drop links to images, archives, stylesheets etc. before queueing
    skip_asset_links: bool = True


@dataclass
class ScoringThresholds(_EnvFileMixin):
    """Configurable thresholds for the content score rules."""

    ENV_PREFIX = "SEOAUDIT_THRESHOLD_"
    FILE_SECTION = "thresholds"

    title_min: int = 30
    title_max: int = 65
    thin_content_words: int = 300
    min_alt_coverage_percent: float = 80.0

    # Points deducted by each content rule
    missing_title_points: int = 10
    title_length_points: int = 5
    missing_meta_description_points: int = 5
    thin_content_points: int = 10
    multiple_h1_points: int = 5
    low_alt_coverage_points: int = 5


# Global default instances
default_crawler_config = CrawlerConfig()
default_thresholds = ScoringThresholds()
