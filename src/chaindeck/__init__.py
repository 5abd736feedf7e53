"""chaindeck - Idempotent, resumable smart contract deployments.

chaindeck deploys named contracts to an EVM network at most once, records
progress in a per-network cache and resumes interrupted deployments from
their pending transaction instead of deploying duplicates.

Main features:
- MigrationManager: deploy-once orchestration with crash-safe resume
- PersistentCache: durable per-network JSON cache
- Optional confirmation prompts and upgradeable proxy deployments
- YAML migration plans and network definitions
"""

from chaindeck.deploy.cache import PersistentCache
from chaindeck.deploy.manager import MigrationManager
from chaindeck.lib.errors import (
    CacheUnavailableError,
    ChainDeckError,
    ConfigError,
    ConfirmationFailedError,
    DeploymentError,
    SubmissionFailedError,
)
from chaindeck.models.deployment import DeployOptions, ManagerConfig, ProxyKind

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "CacheUnavailableError",
    "ChainDeckError",
    "ConfigError",
    "ConfirmationFailedError",
    "DeployOptions",
    "DeploymentError",
    "ManagerConfig",
    "MigrationManager",
    "PersistentCache",
    "ProxyKind",
    "SubmissionFailedError",
]
