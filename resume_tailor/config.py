"""Configuration loading and validation.

Priority order (lowest to highest):
1. dataclass defaults
2. config/config.yaml
3. config/config.local.yaml (deep-merged)
4. ``RESUME_TAILOR_*`` environment variables (``.env`` is loaded first)
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

from .errors import ValidationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "RESUME_TAILOR_"
DEFAULT_CONFIG_PATH = "config/config.local.yaml"

#: env var suffix -> (section, key)
ENV_OVERRIDES = {
    "DB_PATH": ("store", "db_path"),
    "STORE_BACKEND": ("store", "backend"),
    "SUGGESTIONS_ENABLED": ("suggestions", "enabled"),
    "SUGGESTIONS_API_KEY": ("suggestions", "api_key"),
    "SUGGESTIONS_API_BASE": ("suggestions", "api_base"),
    "SUGGESTIONS_MODEL": ("suggestions", "model"),
    "LOG_LEVEL": ("logging", "level"),
}

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
VALID_BACKENDS = ("sqlite", "memory")


@dataclass
class ScoringConfig:
    quick_win_ttl_seconds: int = 1800
    quick_win_cache_size: int = 100
    min_language_tokens: int = 3
    max_missing_keywords: int = 25


@dataclass
class AgentConfig:
    scrape_timeout_seconds: float = 10.0
    suggestion_timeout_seconds: float = 8.0
    max_suggested_actions: int = 5
    min_suggested_actions: int = 2
    default_layout: str = "modern"


@dataclass
class SuggestionsConfig:
    enabled: bool = False
    api_base: str = "https://api.openai.com/v1"
    api_key: str = ""
    model: str = "gpt-4o-mini"


@dataclass
class StoreConfig:
    backend: str = "sqlite"
    db_path: str = "data/resume_tailor.db"


@dataclass
class LoggingConfig:
    level: str = "WARNING"
    redact: bool = True


@dataclass
class TailorConfig:
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    agent: AgentConfig = field(default_factory=AgentConfig)
    suggestions: SuggestionsConfig = field(default_factory=SuggestionsConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "TailorConfig":
        sections = {
            "scoring": ScoringConfig,
            "agent": AgentConfig,
            "suggestions": SuggestionsConfig,
            "store": StoreConfig,
            "logging": LoggingConfig,
        }
        kwargs = {}
        for name, section_cls in sections.items():
            values = raw.get(name) or {}
            known = {k: v for k, v in values.items() if k in section_cls.__dataclass_fields__}
            kwargs[name] = section_cls(**known)
        return cls(**kwargs)


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"


@dataclass
class ConfigError:
    """A single configuration issue."""

    field: str
    message: str
    severity: Severity


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def load_raw_config(config_path: str = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """Load the raw configuration dictionary from YAML.

    The default path loads ``config/config.yaml`` first and overlays
    ``config/config.local.yaml``. Missing files yield an empty mapping.
    """
    repo_root = Path(__file__).resolve().parents[1]

    def _resolve(candidate: str) -> Path:
        path = Path(candidate)
        if path.exists():
            return path
        alt = repo_root / candidate
        if alt.exists():
            return alt
        return path

    target = _resolve(config_path)
    if Path(config_path).name == "config.local.yaml":
        base = _load_yaml(_resolve("config/config.yaml"))
        return _deep_merge(base, _load_yaml(target))
    return _load_yaml(target)


def load_config(config_path: str = DEFAULT_CONFIG_PATH, env_file: Optional[str] = None) -> TailorConfig:
    """Build a validated :class:`TailorConfig`.

    Raises:
        ValidationError: when any error-severity issue is found.
    """
    load_dotenv(env_file)
    raw = resolve_env_placeholders(apply_env_overrides(load_raw_config(config_path)))

    issues = validate_config(raw)
    for issue in issues:
        if issue.severity == Severity.WARNING:
            logger.warning("Config %s: %s", issue.field, issue.message)
    if has_errors(issues):
        raise ValidationError(
            "Invalid configuration",
            {"issues": [{"field": i.field, "message": i.message} for i in issues if i.severity == Severity.ERROR]},
        )
    return TailorConfig.from_dict(raw)


def apply_env_overrides(raw: Dict[str, Any], environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    env = os.environ if environ is None else environ
    merged = {key: dict(value) if isinstance(value, dict) else value for key, value in raw.items()}
    for suffix, (section, key) in ENV_OVERRIDES.items():
        value = env.get(ENV_PREFIX + suffix)
        if value is None or value == "":
            continue
        target = merged.setdefault(section, {})
        if not isinstance(target, dict):
            target = merged[section] = {}
        target[key] = _coerce_env_value(value) if key == "enabled" else value
    return merged


def resolve_env_placeholders(value: Any) -> Any:
    """Replace ``${VAR_NAME}`` strings with the environment value (or ``""``)."""
    if isinstance(value, dict):
        return {k: resolve_env_placeholders(v) for k, v in value.items()}
    if isinstance(value, list):
        return [resolve_env_placeholders(v) for v in value]
    if isinstance(value, str) and value.startswith("${") and value.endswith("}"):
        return os.environ.get(value[2:-1], "")
    return value


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_config(raw_config: Dict[str, Any]) -> List[ConfigError]:
    """Validate raw configuration and return a list of issues.

    Args:
        raw_config: Raw config dict (YAML plus env overrides)

    Returns:
        List of ConfigError (empty = valid)
    """
    errors: List[ConfigError] = []

    for section in ("scoring", "agent", "suggestions", "store", "logging"):
        value = raw_config.get(section)
        if value is not None and not isinstance(value, dict):
            errors.append(ConfigError(section, f"{section} must be a mapping", Severity.ERROR))
            return errors

    scoring = raw_config.get("scoring") or {}
    for key in ("quick_win_ttl_seconds", "quick_win_cache_size", "min_language_tokens", "max_missing_keywords"):
        if key in scoring and not _positive_int(scoring[key]):
            errors.append(
                ConfigError(f"scoring.{key}", f"{key} must be a positive integer, got {scoring[key]!r}", Severity.ERROR)
            )

    agent = raw_config.get("agent") or {}
    for key in ("scrape_timeout_seconds", "suggestion_timeout_seconds"):
        value = agent.get(key)
        if value is not None and (not isinstance(value, (int, float)) or isinstance(value, bool) or value <= 0):
            errors.append(ConfigError(f"agent.{key}", f"{key} must be a positive number, got {value!r}", Severity.ERROR))
    low = agent.get("min_suggested_actions", 2)
    high = agent.get("max_suggested_actions", 5)
    if not _positive_int(low) or not _positive_int(high) or low > high:
        errors.append(
            ConfigError(
                "agent.min_suggested_actions",
                f"suggested action bounds must satisfy 0 < min <= max, got {low!r}..{high!r}",
                Severity.ERROR,
            )
        )

    suggestions = raw_config.get("suggestions") or {}
    if suggestions.get("enabled") and not suggestions.get("api_key"):
        errors.append(
            ConfigError(
                "suggestions.api_key",
                f"suggestions are enabled but no API key is set; set {ENV_PREFIX}SUGGESTIONS_API_KEY",
                Severity.WARNING,
            )
        )

    store = raw_config.get("store") or {}
    backend = store.get("backend", "sqlite")
    if backend not in VALID_BACKENDS:
        errors.append(
            ConfigError("store.backend", f"backend must be one of {', '.join(VALID_BACKENDS)}", Severity.ERROR)
        )
    if backend == "sqlite" and not store.get("db_path", StoreConfig.db_path):
        errors.append(ConfigError("store.db_path", "db_path must be set for the sqlite backend", Severity.ERROR))

    level = str((raw_config.get("logging") or {}).get("level", "WARNING")).upper()
    if level not in VALID_LOG_LEVELS:
        errors.append(
            ConfigError("logging.level", f"Unknown log level {level!r}; using WARNING", Severity.WARNING)
        )

    return errors


def has_errors(issues: List[ConfigError]) -> bool:
    """Check if any issues are errors (not just warnings)."""
    return any(e.severity == Severity.ERROR for e in issues)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValidationError(f"Config file must be a mapping: {path}", {"path": str(path)})
    return data


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        base_value = merged.get(key)
        if isinstance(base_value, dict) and isinstance(value, dict):
            merged[key] = _deep_merge(base_value, value)
        else:
            merged[key] = value
    return merged


def _coerce_env_value(value: str) -> Any:
    lowered = value.strip().lower()
    if lowered in ("true", "1", "yes", "on"):
        return True
    if lowered in ("false", "0", "no", "off"):
        return False
    return value


def _positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0
