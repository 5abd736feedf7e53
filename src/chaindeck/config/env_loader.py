"""Environment variable handling for chaindeck configuration files."""

from __future__ import annotations

import os
import re
from pathlib import Path

from dotenv import load_dotenv

from chaindeck.lib.errors import ConfigError

# ${VAR} or ${VAR:-default}
ENV_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)(?::-([^}]*))?\}")


def substitute_env_vars(text: str) -> str:
    """Replace ``${VAR}`` and ``${VAR:-default}`` references in raw text.

    Raises:
        ConfigError: If a referenced variable is unset and has no default
    """

    def replace(match: re.Match[str]) -> str:
        name, default = match.group(1), match.group(2)
        value = os.environ.get(name)
        if value is not None:
            return value
        if default is not None:
            return default
        raise ConfigError(
            name,
            f"Environment variable '{name}' is not set. "
            f"Set it in the environment or a .env file.",
        )

    return ENV_VAR_PATTERN.sub(replace, text)


def get_env_var(name: str, default: str | None = None) -> str | None:
    """Return an environment variable, treating empty values as unset."""
    value = os.environ.get(name)
    return value if value else default


def load_env_file(directory: Path) -> bool:
    """Load ``.env`` from a directory without overriding the environment.

    Returns:
        True if a .env file was found and loaded
    """
    env_path = Path(directory) / ".env"
    if not env_path.is_file():
        return False
    return load_dotenv(env_path, override=False)
