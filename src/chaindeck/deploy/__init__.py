"""chaindeck deployment engine.

This package provides the deploy-once orchestrator, its persistent
per-network cache and the ledger interfaces it is written against.
"""

from chaindeck.deploy.cache import PersistentCache, cache_path_for, open_cache
from chaindeck.deploy.manager import MigrationManager

__all__ = [
    "MigrationManager",
    "PersistentCache",
    "cache_path_for",
    "open_cache",
]
