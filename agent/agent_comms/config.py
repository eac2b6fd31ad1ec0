"""
Paths, logging setup, config load/save and the immutable AgentConfig snapshot.
"""

import os
import json
import sys
import logging
from dataclasses import dataclass, field, asdict
from pathlib import Path

from .constants import (
    UPDATES_CYCLE_SLEEP_MS, RESULTS_CYCLE_SLEEP_MS, REQUEST_TIMEOUT_SEC,
    USER_AGENT, ID_URL_TOKEN, TIMELINE_URL_TOKEN, FIREFOX_MAJOR_VERSION_MINIMUM,
    CONFIG_DIR_NAME, INSTANCE_DIR_NAME, LOGS_DIR_NAME, CONFIG_FILE_NAME,
    TIMELINE_FILE_NAME, TIMELINES_DIR_NAME, HEALTH_FILE_NAME, ID_FILE_NAME,
    SURVEY_FILE_NAME, RESULTS_LOG_NAME, APP_LOG_NAME, LOG_MAX_BYTES,
    LOG_FORMAT, LOG_DATEFMT,
)
from .exceptions import ConfigurationError

log = logging.getLogger("comms")


# ─── Paths ───────────────────────────────────────────────────────
# One base directory per agent install. AGENT_COMMS_HOME overrides the
# default so several agents (or tests) can live side by side.

DEFAULT_BASE_DIR = Path(os.environ.get("AGENT_COMMS_HOME", Path(__file__).parent.parent))


@dataclass(frozen=True)
class AgentPaths:
    base_dir: Path

    @classmethod
    def from_base(cls, base_dir=None):
        return cls(Path(base_dir) if base_dir else DEFAULT_BASE_DIR)

    @property
    def config_file(self) -> Path:
        return self.base_dir / CONFIG_DIR_NAME / CONFIG_FILE_NAME

    @property
    def instance_dir(self) -> Path:
        return self.base_dir / INSTANCE_DIR_NAME

    @property
    def logs_dir(self) -> Path:
        return self.base_dir / LOGS_DIR_NAME

    @property
    def timeline_file(self) -> Path:
        return self.base_dir / CONFIG_DIR_NAME / TIMELINE_FILE_NAME

    @property
    def timelines_dir(self) -> Path:
        return self.instance_dir / TIMELINES_DIR_NAME

    @property
    def health_file(self) -> Path:
        return self.instance_dir / HEALTH_FILE_NAME

    @property
    def id_file(self) -> Path:
        return self.instance_dir / ID_FILE_NAME

    @property
    def survey_file(self) -> Path:
        return self.instance_dir / SURVEY_FILE_NAME

    @property
    def results_log(self) -> Path:
        return self.logs_dir / RESULTS_LOG_NAME

    @property
    def app_log(self) -> Path:
        return self.logs_dir / APP_LOG_NAME

    def ensure(self):
        """Create the directories the agent writes into."""
        for d in (self.config_file.parent, self.instance_dir, self.logs_dir):
            d.mkdir(parents=True, exist_ok=True)


# ─── Logging ─────────────────────────────────────────────────────

_logging_ready = False


def setup_logging(log_file, level=logging.INFO):
    """File + console logging. Safe to call again after an auto-restart."""
    global _logging_ready
    if _logging_ready:
        return
    log_file = Path(log_file)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    try:
        if log_file.exists() and log_file.stat().st_size > LOG_MAX_BYTES:
            log_file.write_text("")
    except OSError:
        pass

    logging.basicConfig(
        filename=str(log_file),
        level=level,
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
        encoding="utf-8",
    )
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    log.addHandler(console_handler)
    _logging_ready = True


# ─── Config snapshot ─────────────────────────────────────────────

DEFAULT_API_ROOT = "http://ghosts-api:52388/api"


def _section(data, key):
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"'{key}' must be an object, got {type(value).__name__}")
    return value


def _as_int(value, key):
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"'{key}' must be a number, got {value!r}") from None


@dataclass(frozen=True)
class ClientUpdatesConfig:
    is_enabled: bool = True
    cycle_sleep_ms: int = UPDATES_CYCLE_SLEEP_MS
    post_url: str = f"{DEFAULT_API_ROOT}/clientupdates"


@dataclass(frozen=True)
class ClientResultsConfig:
    is_enabled: bool = True
    is_secure: bool = False
    cycle_sleep_ms: int = RESULTS_CYCLE_SLEEP_MS
    post_url: str = f"{DEFAULT_API_ROOT}/clientresults"


@dataclass(frozen=True)
class SurveyConfig:
    is_enabled: bool = False
    is_secure: bool = False
    post_url: str = f"{DEFAULT_API_ROOT}/clientsurvey"


@dataclass(frozen=True)
class AgentConfig:
    """Immutable configuration snapshot handed to each loop at construction."""

    id_url: str = f"{DEFAULT_API_ROOT}/{ID_URL_TOKEN}"
    timeline_report_url: str = ""
    client_updates: ClientUpdatesConfig = field(default_factory=ClientUpdatesConfig)
    client_results: ClientResultsConfig = field(default_factory=ClientResultsConfig)
    survey: SurveyConfig = field(default_factory=SurveyConfig)
    trust_all_certificates: bool = True
    request_timeout_sec: float = REQUEST_TIMEOUT_SEC
    user_agent: str = USER_AGENT
    # Only read by the browser automation collaborator
    firefox_install_location: str = ""
    firefox_major_version_minimum: int = FIREFOX_MAJOR_VERSION_MINIMUM

    @property
    def timeline_post_url(self):
        """Explicit override, else the id endpoint renamed to the timeline one."""
        if self.timeline_report_url:
            return self.timeline_report_url
        if self.id_url and ID_URL_TOKEN in self.id_url:
            return self.id_url.replace(ID_URL_TOKEN, TIMELINE_URL_TOKEN)
        return ""

    @classmethod
    def from_dict(cls, data):
        """Build a snapshot from the camelCase JSON config. Missing keys use defaults."""
        if not isinstance(data, dict):
            raise ConfigurationError("Config root must be a JSON object")

        d = cls()
        updates = _section(data, "clientUpdates")
        results = _section(data, "clientResults")
        survey = _section(data, "survey")

        config = cls(
            id_url=data.get("idUrl", d.id_url),
            timeline_report_url=data.get("timelineReportUrl", d.timeline_report_url),
            client_updates=ClientUpdatesConfig(
                is_enabled=bool(updates.get("isEnabled", d.client_updates.is_enabled)),
                cycle_sleep_ms=_as_int(
                    updates.get("cycleSleep", d.client_updates.cycle_sleep_ms), "clientUpdates.cycleSleep"),
                post_url=updates.get("postUrl", d.client_updates.post_url),
            ),
            client_results=ClientResultsConfig(
                is_enabled=bool(results.get("isEnabled", d.client_results.is_enabled)),
                is_secure=bool(results.get("isSecure", d.client_results.is_secure)),
                cycle_sleep_ms=_as_int(
                    results.get("cycleSleep", d.client_results.cycle_sleep_ms), "clientResults.cycleSleep"),
                post_url=results.get("postUrl", d.client_results.post_url),
            ),
            survey=SurveyConfig(
                is_enabled=bool(survey.get("isEnabled", d.survey.is_enabled)),
                is_secure=bool(survey.get("isSecure", d.survey.is_secure)),
                post_url=survey.get("postUrl", d.survey.post_url),
            ),
            trust_all_certificates=bool(data.get("trustAllCertificates", d.trust_all_certificates)),
            request_timeout_sec=float(data.get("requestTimeoutSec", d.request_timeout_sec)),
            user_agent=data.get("userAgent", d.user_agent),
            firefox_install_location=data.get("firefoxInstallLocation", d.firefox_install_location),
            firefox_major_version_minimum=_as_int(
                data.get("firefoxMajorVersionMinimum", d.firefox_major_version_minimum),
                "firefoxMajorVersionMinimum"),
        )

        if config.client_updates.is_enabled and not config.client_updates.post_url:
            raise ConfigurationError("clientUpdates is enabled but has no postUrl")
        if config.client_results.is_enabled and not config.client_results.post_url:
            raise ConfigurationError("clientResults is enabled but has no postUrl")
        if config.request_timeout_sec <= 0:
            raise ConfigurationError("requestTimeoutSec must be positive")
        return config

    def to_dict(self):
        """Inverse of from_dict, used when writing a fresh config file."""
        raw = asdict(self)
        return {
            "idUrl": raw["id_url"],
            "timelineReportUrl": raw["timeline_report_url"],
            "clientUpdates": {
                "isEnabled": raw["client_updates"]["is_enabled"],
                "cycleSleep": raw["client_updates"]["cycle_sleep_ms"],
                "postUrl": raw["client_updates"]["post_url"],
            },
            "clientResults": {
                "isEnabled": raw["client_results"]["is_enabled"],
                "isSecure": raw["client_results"]["is_secure"],
                "cycleSleep": raw["client_results"]["cycle_sleep_ms"],
                "postUrl": raw["client_results"]["post_url"],
            },
            "survey": {
                "isEnabled": raw["survey"]["is_enabled"],
                "isSecure": raw["survey"]["is_secure"],
                "postUrl": raw["survey"]["post_url"],
            },
            "trustAllCertificates": raw["trust_all_certificates"],
            "requestTimeoutSec": raw["request_timeout_sec"],
            "userAgent": raw["user_agent"],
            "firefoxInstallLocation": raw["firefox_install_location"],
            "firefoxMajorVersionMinimum": raw["firefox_major_version_minimum"],
        }


# ─── Config Management ──────────────────────────────────────────

def load_config(config_file):
    """Load config from disk. Returns AgentConfig or None when the file is absent."""
    config_file = Path(config_file)
    if not config_file.exists():
        return None
    try:
        with open(config_file, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        raise ConfigurationError(f"Unreadable config {config_file}: {e}") from e
    return AgentConfig.from_dict(data)


def save_config(config, config_file):
    """Save an AgentConfig to disk."""
    config_file = Path(config_file)
    config_file.parent.mkdir(parents=True, exist_ok=True)
    with open(config_file, "w", encoding="utf-8") as f:
        json.dump(config.to_dict(), f, indent=2)
    log.info("Config saved to %s", config_file)
