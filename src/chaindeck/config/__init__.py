"""Configuration loading for chaindeck migrations.

Main components:
- load_migration_plan: Load and validate a migration plan YAML
- load_network_config: Load one named network from networks.yaml
- Environment variable substitution (${VAR_NAME} pattern) and .env loading
"""

from chaindeck.config.env_loader import get_env_var, load_env_file, substitute_env_vars
from chaindeck.config.loader import (
    load_migration_plan,
    load_network_config,
    resolve_network_name,
)

__all__ = [
    "load_migration_plan",
    "load_network_config",
    "resolve_network_name",
    "substitute_env_vars",
    "get_env_var",
    "load_env_file",
]
