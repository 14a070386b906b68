"""Loader for the risk-tiering rule set and artifact catalog.

Both files are YAML. They are read from ``settings.rules_config_dir`` when
set, otherwise from the ``rulesets`` directory bundled with the package,
and cached per path until ``reload_configs()`` is called.
"""

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

from modelrisk.config import get_settings
from modelrisk.errors import ConfigurationError

logger = logging.getLogger(__name__)

BUNDLED_CONFIG_DIR = Path(__file__).resolve().parent.parent / "rulesets"
RULES_FILENAME = "rules.yaml"
ARTIFACTS_FILENAME = "artifacts.yaml"


def config_dir() -> Path:
    """Return the directory the configuration files are read from."""
    configured = get_settings().rules_config_dir
    return Path(configured) if configured else BUNDLED_CONFIG_DIR


@lru_cache(maxsize=8)
def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse {path}: {e}")
        raise ConfigurationError(f"Failed to parse {path.name}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"{path.name} must contain a mapping at the top level")

    logger.info(f"Loaded configuration from {path}")
    return data


def load_rules_config() -> dict[str, Any]:
    """Return the parsed rule set (tiers, defaultTier, rules, criteria)."""
    return _load_yaml(config_dir() / RULES_FILENAME)


def load_artifacts_config() -> dict[str, Any]:
    """Return the parsed artifact catalog (artifacts, categories)."""
    return _load_yaml(config_dir() / ARTIFACTS_FILENAME)


def reload_configs() -> None:
    """Drop cached configuration and load both files again."""
    _load_yaml.cache_clear()
    load_rules_config()
    load_artifacts_config()


def validate_rules_config(config: dict[str, Any]) -> dict[str, Any]:
    """
    Check a rule set for structural problems.

    Args:
        config: Parsed rules configuration

    Returns:
        Dict with ``valid`` flag and list of ``errors``.
    """
    errors: list[str] = []
    tiers = config.get("tiers") or {}

    if not tiers:
        errors.append("No tiers defined in configuration")

    default_tier = config.get("defaultTier")
    if not default_tier or default_tier not in tiers:
        errors.append(f'Default tier "{default_tier}" not found in tier definitions')

    for index, rule in enumerate(config.get("rules") or []):
        rule_id = rule.get("id")
        if not rule_id:
            errors.append(f"Rule at index {index} missing id")
        if not rule.get("tier") or rule.get("tier") not in tiers:
            errors.append(f'Rule "{rule_id}" has invalid tier "{rule.get("tier")}"')
        if not rule.get("conditions"):
            errors.append(f'Rule "{rule_id}" missing conditions')
        if not rule.get("effects"):
            errors.append(f'Rule "{rule_id}" missing effects')

    return {"valid": not errors, "errors": errors}


def validate_artifacts_config(config: dict[str, Any]) -> dict[str, Any]:
    """
    Check an artifact catalog for structural problems.

    Args:
        config: Parsed artifacts configuration

    Returns:
        Dict with ``valid`` flag and list of ``errors``.
    """
    errors: list[str] = []
    artifacts = config.get("artifacts") or {}

    if not artifacts:
        errors.append("No artifacts defined in configuration")

    for key, artifact in artifacts.items():
        if not artifact.get("id"):
            errors.append(f'Artifact "{key}" missing id')
        if not artifact.get("name"):
            errors.append(f'Artifact "{key}" missing name')
        if not artifact.get("category"):
            errors.append(f'Artifact "{key}" missing category')

    return {"valid": not errors, "errors": errors}
