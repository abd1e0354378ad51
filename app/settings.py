from constants import *
import copy
import yaml
import os

import logging

# Retrieve main logger
logger = logging.getLogger("main")

# Environment variables that override a settings value
ENV_OVERRIDES = {
    "DATABASE_URL": ("database", "url"),
    "REDIS_URL": ("limits", "redis_url"),
    "MODREPO_API_TOKEN": ("api", "token"),
}


# Cache variable
_cached_settings = None


def merge_settings(overrides):
    """Deep merge a settings dict over the defaults, one level deep like the YAML file."""
    merged_settings = copy.deepcopy(DEFAULT_SETTINGS)
    for section, values in (overrides or {}).items():
        if isinstance(values, dict) and section in merged_settings and isinstance(merged_settings[section], dict):
            merged_settings[section].update(values)
        else:
            merged_settings[section] = values
    return merged_settings


def apply_env_overrides(settings):
    for env_name, (section, key) in ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            settings.setdefault(section, {})[key] = value
    return settings


def load_settings(force=False):
    global _cached_settings

    if _cached_settings and not force:
        return _cached_settings

    if os.path.exists(CONFIG_FILE):
        logger.debug(f"Reading configuration file: {CONFIG_FILE}")
        with open(CONFIG_FILE, "r") as yaml_file:
            settings = yaml.safe_load(yaml_file) or {}

        # Deep merge with defaults to ensure new keys are present
        settings = merge_settings(settings)
    else:
        settings = copy.deepcopy(DEFAULT_SETTINGS)
        try:
            os.makedirs(os.path.dirname(CONFIG_FILE), exist_ok=True)
            with open(CONFIG_FILE, "w") as yaml_file:
                yaml.dump(settings, yaml_file)
        except OSError as e:
            logger.warning(f"Could not write default configuration to {CONFIG_FILE}: {e}")

    _cached_settings = apply_env_overrides(settings)
    return _cached_settings


def verify_settings(settings):
    """Check a merged settings dict, returning (success, errors)."""
    success = True
    errors = []

    backend = settings["limits"].get("backend")
    if backend not in ("redis", "memory"):
        success = False
        errors.append({"path": "limits/backend", "error": f"Unknown limiter backend {backend}."})

    for key in ("download_window_hours", "versions_per_window", "version_window_hours"):
        value = settings["limits"].get(key)
        if not isinstance(value, (int, float)) or value <= 0:
            success = False
            errors.append({"path": f"limits/{key}", "error": f"Value {value} must be a positive number."})

    ttl = settings["cache"].get("ttl")
    if not isinstance(ttl, (int, float)) or ttl < 0:
        success = False
        errors.append({"path": "cache/ttl", "error": f"Value {ttl} must be a non-negative number."})

    return success, errors


def reload_conf():
    """Reload application settings cache"""
    global _cached_settings
    _cached_settings = None
    return load_settings(force=True)
