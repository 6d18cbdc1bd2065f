# core/config.py
import configparser
import os
from dataclasses import dataclass

from .models import BazaarConfig
from .query import DEFAULT_BASE_URL
from .logger import get_logger

logger = get_logger(__name__)

MIN_POLL_SECONDS = 60
DEFAULT_POLL_SECONDS = 600

GENERAL_SECTION = "General"
POLL_KEY = "Monitor Server Poll (seconds)"
MONITOR_SECTION = "Monitor"
QUERIES_SECTION = "Queries"


class ConfigError(Exception):
    """The request file or the startup settings are unusable."""


def clamp_poll_delay(seconds: int) -> int:
    if seconds < MIN_POLL_SECONDS:
        logger.warning(
            "Monitor poll delay cannot be less than %d seconds (got %d); using %d.",
            MIN_POLL_SECONDS, seconds, MIN_POLL_SECONDS,
        )
        return MIN_POLL_SECONDS
    return seconds


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("%s=%r is not an integer; using %d.", name, raw, default)
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("%s=%r is not a number; using %s.", name, raw, default)
        return default


@dataclass(frozen=True)
class Settings:
    """Startup settings; read once, never changed afterwards."""
    config_dir: str
    monitor_file: str = "BazMonitor.ini"
    search_results_file: str = "BazMon_SearchResults.csv"
    monitor_results_file: str = "BazMon_MonitorResults.csv"
    poll_delay: int = DEFAULT_POLL_SECONDS
    query_delay: float = 3.0
    watch_interval: float = 1.0
    mode: str = "daemon"
    base_url: str = DEFAULT_BASE_URL

    @property
    def monitor_path(self) -> str:
        return os.path.join(self.config_dir, self.monitor_file)

    @property
    def search_results_path(self) -> str:
        return os.path.join(self.config_dir, self.search_results_file)

    @property
    def monitor_results_path(self) -> str:
        return os.path.join(self.config_dir, self.monitor_results_file)


def load_settings() -> Settings:
    config_dir = os.getenv("BAZMON_CONFIG_DIR", "").strip()
    if not config_dir:
        raise ConfigError("BAZMON_CONFIG_DIR is not set; point it at the UI config folder.")

    names = {
        "monitor_file": os.getenv("BAZMON_MONITOR_FILE", "BazMonitor.ini").strip(),
        "search_results_file": os.getenv(
            "BAZMON_SEARCH_RESULTS", "BazMon_SearchResults.csv"
        ).strip(),
        "monitor_results_file": os.getenv(
            "BAZMON_MONITOR_RESULTS", "BazMon_MonitorResults.csv"
        ).strip(),
    }
    for key, value in names.items():
        if not value:
            raise ConfigError(f"{key} must not be empty.")

    mode = os.getenv("MODE", "daemon").strip().lower()
    if mode not in ("daemon", "once"):
        raise ConfigError(f"MODE must be 'daemon' or 'once', got {mode!r}.")

    return Settings(
        config_dir=config_dir,
        poll_delay=clamp_poll_delay(_env_int("BAZMON_POLL_SECONDS", DEFAULT_POLL_SECONDS)),
        query_delay=max(0.0, _env_float("BAZMON_QUERY_DELAY", 3.0)),
        watch_interval=max(0.1, _env_float("BAZMON_WATCH_INTERVAL", 1.0)),
        mode=mode,
        base_url=os.getenv("BAZAAR_BASE_URL", DEFAULT_BASE_URL).strip() or DEFAULT_BASE_URL,
        **names,
    )


def _new_parser() -> configparser.ConfigParser:
    # Item names may contain ":" so only "=" separates key and value
    parser = configparser.ConfigParser(interpolation=None, strict=False, delimiters=("=",))
    # Item names and query IDs are case-sensitive
    parser.optionxform = str
    return parser


def read_config(path: str, previous_poll_delay: int = DEFAULT_POLL_SECONDS) -> BazaarConfig:
    """
    Read the UI's request file.

    A missing or malformed poll delay keeps previous_poll_delay. A missing
    [Monitor] section comes back as None so the caller keeps its items; a
    missing [Queries] section reads as empty. Raises ConfigError when the
    file itself is unreadable or not valid INI.
    """
    parser = _new_parser()
    try:
        with open(path, "r", encoding="utf-8-sig") as f:
            parser.read_file(f, source=path)
    except (OSError, UnicodeDecodeError, configparser.Error) as e:
        raise ConfigError(f"Failed to read {path}: {e}") from e
    logger.debug("Read request file %s", path)

    poll_delay = previous_poll_delay
    if not parser.has_section(GENERAL_SECTION):
        logger.info("[%s] section missing; keeping poll delay %d seconds.", GENERAL_SECTION, poll_delay)
    elif not parser.get(GENERAL_SECTION, POLL_KEY, fallback="").strip():
        logger.warning("'%s' setting missing or empty; keeping %d seconds.", POLL_KEY, poll_delay)
    else:
        raw = parser.get(GENERAL_SECTION, POLL_KEY).strip()
        try:
            poll_delay = clamp_poll_delay(int(raw))
        except ValueError:
            logger.warning("'%s' is not an integer (%r); keeping %d seconds.", POLL_KEY, raw, poll_delay)
    logger.debug("Monitor poll delay set to %d seconds", poll_delay)

    monitor = None
    if parser.has_section(MONITOR_SECTION):
        monitor = dict(parser.items(MONITOR_SECTION))
    else:
        logger.info("[%s] section missing; keeping current monitor items.", MONITOR_SECTION)
    queries = dict(parser.items(QUERIES_SECTION)) if parser.has_section(QUERIES_SECTION) else {}
    if not queries:
        logger.info("[%s] section missing or empty.", QUERIES_SECTION)

    return BazaarConfig(poll_delay=poll_delay, monitor=monitor, queries=queries)
