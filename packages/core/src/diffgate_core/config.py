import dataclasses
import logging
import os
from pathlib import Path
from types import MappingProxyType
from typing import Optional

import yaml
from dotenv import load_dotenv

from diffgate_core.errors import ConfigurationError
from diffgate_core.profiles import ReviewProfile, get_profile

logger = logging.getLogger(__name__)

DEFAULT_CONFIG: dict = {
    "provider": "openai",
    "model": None,  # None = use the profile's model
    "max_tokens": None,  # None = use the profile's token budget
    "max_tokens_precommit": None,  # applies to fast-path profiles only
    "log_dir": ".diffgate/logs",
    "write_logs": True,
    "remote": "origin",
    "default_branch": "main",
    "fallback_branch": "master",
    "max_changes_per_kind": 50,
    "max_line_length": 200,
    "file_list_limit": 10,
    "change_list_limit": 20,
    "profiles": {},  # per-profile overrides, e.g. {"prepush": {"timeout_seconds": 90}}
}

# Profile fields a config file may override. Everything else (templates,
# matchers, focus lists) is part of the profile's contract with the parser.
_OVERRIDABLE_FIELDS = {"model", "max_tokens", "temperature", "timeout_seconds", "score_thresholds"}
_NUMERIC_FIELDS = {"max_tokens": int, "temperature": float, "timeout_seconds": float}


def _env_int(name: str) -> Optional[int]:
    raw = os.environ.get(name)
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring %s=%r: not an integer", name, raw)
        return None


def load_config(config_path: str = ".diffgate.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .diffgate.yml in the current directory
      3. Environment overrides (OPENAI_MODEL, MAX_TOKENS, MAX_TOKENS_PRECOMMIT)
      4. CLI argument overrides
    A .env file in the working directory is loaded first, without replacing
    variables that are already set.
    """
    load_dotenv()

    config = {**DEFAULT_CONFIG, "profiles": dict(DEFAULT_CONFIG["profiles"])}

    path = Path(config_path)
    if path.exists():
        try:
            with open(path) as f:
                file_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Could not parse {config_path}: {e}") from e
        if not isinstance(file_config, dict):
            raise ConfigurationError(f"{config_path} must contain a YAML mapping")
        config.update(file_config)

    env_model = os.environ.get("OPENAI_MODEL")
    if env_model:
        config["model"] = env_model
    env_max_tokens = _env_int("MAX_TOKENS")
    if env_max_tokens is not None:
        config["max_tokens"] = env_max_tokens
    env_max_tokens_precommit = _env_int("MAX_TOKENS_PRECOMMIT")
    if env_max_tokens_precommit is not None:
        config["max_tokens_precommit"] = env_max_tokens_precommit

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    # Resolve credentials from environment variables
    config["openai_api_key"] = os.environ.get("OPENAI_API_KEY")
    config["anthropic_api_key"] = os.environ.get("ANTHROPIC_API_KEY")

    return config


def _coerce(label: str, value, kind):
    """Convert a numeric config value, reporting bad input as a ConfigurationError."""
    if isinstance(value, bool):
        raise ConfigurationError(f"{label} must be a number, got {value!r}")
    try:
        return kind(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{label} must be a number, got {value!r}") from None


def _profile_overrides(name: str, config: dict) -> dict:
    profiles = config.get("profiles") or {}
    if not isinstance(profiles, dict):
        raise ConfigurationError("'profiles' must map profile names to overrides")
    per_profile = profiles.get(name) or {}
    if not isinstance(per_profile, dict):
        raise ConfigurationError(f"Overrides for profile {name!r} must be a mapping")

    per_profile = dict(per_profile)
    unknown = set(per_profile) - _OVERRIDABLE_FIELDS
    if unknown:
        raise ConfigurationError(
            f"Unsupported override(s) for profile {name!r}: {', '.join(sorted(unknown))}"
        )
    for key, kind in _NUMERIC_FIELDS.items():
        if key in per_profile:
            per_profile[key] = _coerce(f"profiles.{name}.{key}", per_profile[key], kind)
    if not isinstance(per_profile.get("score_thresholds", {}), dict):
        raise ConfigurationError(f"profiles.{name}.score_thresholds must be a mapping")
    return per_profile


def resolve_profile(name: str, config: dict) -> ReviewProfile:
    """
    Return the named profile with config overrides applied.

    The global ``model`` / ``max_tokens`` overrides are applied first, then
    per-profile entries under ``profiles:``, so the more specific setting
    wins. Fast-path profiles take their token ceiling from
    ``max_tokens_precommit`` instead of ``max_tokens``.

    Malformed override values raise ConfigurationError.
    """
    profile = get_profile(name)
    per_profile = _profile_overrides(name, config)
    if "score_thresholds" in per_profile:
        thresholds = {
            key: _coerce(f"profiles.{name}.score_thresholds.{key}", value, float)
            for key, value in per_profile["score_thresholds"].items()
        }
        per_profile["score_thresholds"] = MappingProxyType({**profile.score_thresholds, **thresholds})

    overrides = {}
    if config.get("model"):
        overrides["model"] = config["model"]
    token_key = "max_tokens_precommit" if profile.fast_path else "max_tokens"
    if config.get(token_key):
        overrides["max_tokens"] = _coerce(token_key, config[token_key], int)
    overrides.update(per_profile)

    if not overrides:
        return profile
    return dataclasses.replace(profile, **overrides)


def api_key_for(config: dict) -> Optional[str]:
    provider = config.get("provider", "openai")
    if provider == "openai":
        return config.get("openai_api_key")
    if provider == "anthropic":
        return config.get("anthropic_api_key")
    raise ConfigurationError(f"Unknown provider: {provider!r}. Choose 'openai' or 'anthropic'.")


def api_key_env_var(config: dict) -> str:
    return "ANTHROPIC_API_KEY" if config.get("provider") == "anthropic" else "OPENAI_API_KEY"
