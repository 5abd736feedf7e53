"""Configuration loader for chaindeck migrations.

Loads the migration plan and the network definitions from YAML files, with
``${VAR}`` environment substitution and ``.env`` support.
"""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError as PydanticValidationError

from chaindeck.config.env_loader import get_env_var, substitute_env_vars
from chaindeck.config.validator import flatten_pydantic_errors
from chaindeck.lib.errors import ConfigError, FileNotFoundError
from chaindeck.lib.logging_config import get_logger
from chaindeck.models.deployment import MigrationPlan, NetworkConfig

logger = get_logger(__name__)

CACHE_DIR_ENV = "CHAINDECK_CACHE_DIR"
NETWORK_ENV = "CHAINDECK_NETWORK"
DEFAULT_NETWORKS_FILE = "networks.yaml"


def _read_yaml_with_env_substitution(path: Path) -> dict[str, Any]:
    """Read a YAML mapping after substituting environment variables.

    Raises:
        FileNotFoundError: If the file cannot be read
        ConfigError: If parsing fails or the top level is not a mapping
    """
    try:
        raw_text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise FileNotFoundError(
            str(path),
            f"Configuration file not found at {path}. "
            f"Please ensure the file exists at this path.",
        ) from e

    try:
        content = yaml.safe_load(substitute_env_vars(raw_text))
    except yaml.YAMLError as e:
        raise ConfigError(
            "yaml_parse",
            f"Failed to parse YAML file {path}: {str(e)}",
        ) from e

    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ConfigError("yaml_parse", f"Top level of {path} must be a mapping")
    return content


def _resolve(base_dir: Path, path: Path) -> Path:
    return path if path.is_absolute() else (base_dir / path).resolve()


def load_migration_plan(plan_path: str | Path) -> MigrationPlan:
    """Load and validate a migration plan.

    Relative ``cache_dir`` and artifact paths are resolved against the plan
    file's directory. ``CHAINDECK_CACHE_DIR`` overrides ``cache_dir``.

    Args:
        plan_path: Path to the migration plan YAML

    Returns:
        Validated MigrationPlan with absolute paths

    Raises:
        FileNotFoundError: If the plan doesn't exist
        ConfigError: If parsing or validation fails
    """
    path = Path(plan_path).resolve()
    data = _read_yaml_with_env_substitution(path)

    try:
        plan = MigrationPlan(**data)
    except PydanticValidationError as e:
        error_text = "\n".join(flatten_pydantic_errors(e))
        raise ConfigError(
            "plan_validation",
            f"Invalid migration plan in {path}:\n{error_text}",
        ) from e

    base_dir = path.parent
    cache_dir_override = get_env_var(CACHE_DIR_ENV)
    cache_dir = Path(cache_dir_override) if cache_dir_override else plan.cache_dir
    if cache_dir_override:
        logger.debug(f"Cache directory overridden by {CACHE_DIR_ENV}: {cache_dir}")

    steps = [
        step.model_copy(update={"artifact": _resolve(base_dir, step.artifact)})
        for step in plan.steps
    ]
    return plan.model_copy(
        update={"cache_dir": _resolve(base_dir, cache_dir), "steps": steps}
    )


def resolve_network_name(cli_value: str | None, plan: MigrationPlan) -> str:
    """Pick the network: CLI option, then CHAINDECK_NETWORK, then the plan.

    Raises:
        ConfigError: If no network is named anywhere
    """
    name = cli_value or get_env_var(NETWORK_ENV) or plan.network
    if not name:
        raise ConfigError(
            "network",
            f"No network selected. Pass --network, set {NETWORK_ENV}, "
            "or add 'network' to the migration plan.",
        )
    return name


def load_network_config(networks_path: str | Path, name: str) -> NetworkConfig:
    """Load one named network from a networks file.

    The file maps network names to connection settings, either at the top
    level or under a ``networks`` key. Relative proxy artifact paths are
    resolved against the networks file's directory.

    Raises:
        FileNotFoundError: If the networks file doesn't exist
        ConfigError: If the network is missing or invalid
    """
    path = Path(networks_path).resolve()
    data = _read_yaml_with_env_substitution(path)
    networks = data.get("networks", data)

    if not isinstance(networks, dict) or name not in networks:
        available = ", ".join(sorted(networks)) if isinstance(networks, dict) else ""
        raise ConfigError(
            "network",
            f"Network '{name}' is not defined in {path}. "
            f"Available networks: {available or '(none)'}",
        )

    entry = networks[name] or {}
    if not isinstance(entry, dict):
        raise ConfigError("network", f"Network '{name}' in {path} must be a mapping")

    try:
        network = NetworkConfig(**{**entry, "name": name})
    except PydanticValidationError as e:
        error_text = "\n".join(flatten_pydantic_errors(e))
        raise ConfigError(
            "network_validation",
            f"Invalid network '{name}' in {path}:\n{error_text}",
        ) from e

    artifacts = {
        kind: _resolve(path.parent, artifact)
        for kind, artifact in network.proxy_artifacts.items()
    }
    return network.model_copy(update={"proxy_artifacts": artifacts})
