"""Pydantic models for deployment options, networks and migration plans.

This module defines the configuration schema for chaindeck migrations,
including per-step deploy options, network connection settings and the
migration plan file layout.
"""

import re
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


class ProxyKind(str, Enum):
    """Upgradeable proxy patterns supported for proxied deployments."""

    TRANSPARENT = "transparent"
    UUPS = "uups"


# Deployment names become keys of the cache document and segments of dotted
# cache paths, so they may not contain dots.
DEPLOYMENT_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


def validate_deployment_name(name: str) -> str:
    """Validate a logical deployment name.

    Raises:
        ValueError: If the name is empty or contains unsupported characters
    """
    if not DEPLOYMENT_NAME_PATTERN.match(name):
        raise ValueError(
            f"Invalid deployment name: {name!r}. "
            "Must contain only letters, numbers, '_' and '-'"
        )
    return name


class DeployOptions(BaseModel):
    """Options recognized by ``MigrationManager.deploy``.

    Attributes:
        no_cache: Clear the cached address and pending transaction first
        no_confirm: Skip the confirmation prompt
        proxy_kind: Deploy behind an upgradeable proxy of this kind
        extra: Forwarded verbatim to the proxy deployer
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    no_cache: bool = Field(
        default=False, description="Forget cached state and submit again"
    )
    no_confirm: bool = Field(default=False, description="Skip confirmation prompt")
    proxy_kind: ProxyKind | None = Field(
        default=None, description="Upgradeable proxy pattern, if any"
    )
    extra: dict[str, Any] = Field(
        default_factory=dict,
        description="Opaque parameters forwarded to the proxy deployer",
    )


class ManagerConfig(BaseModel):
    """Startup configuration for a ``MigrationManager``.

    Attributes:
        cache_dir: Directory holding one cache document per chain id
    """

    model_config = ConfigDict(extra="forbid")

    cache_dir: Path = Field(
        default=Path("."), description="Directory for per-network cache files"
    )


class NetworkConfig(BaseModel):
    """Connection settings for one named network.

    Attributes:
        name: Network name as referenced on the command line
        rpc_url: JSON-RPC endpoint
        chain_id: Expected chain id, checked against the node when set
        private_key: Hex private key used to sign; node accounts otherwise
        proxy_artifacts: Compiled proxy contract per proxy kind
        receipt_timeout: Seconds the ledger adapter waits for a receipt
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., description="Network name")
    rpc_url: str = Field(..., description="JSON-RPC endpoint URL")
    chain_id: int | None = Field(default=None, description="Expected chain id")
    private_key: str | None = Field(default=None, description="Signing key")
    proxy_artifacts: dict[ProxyKind, Path] = Field(
        default_factory=dict,
        description="Proxy contract artifacts (abi + bytecode) keyed by kind",
    )
    receipt_timeout: float = Field(
        default=600.0, gt=0, description="Receipt wait timeout in seconds"
    )

    @field_validator("rpc_url")
    @classmethod
    def validate_rpc_url(cls, v: str) -> str:
        """Validate the RPC endpoint scheme."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"rpc_url must be an http(s) URL, got: {v}")
        return v

    @field_validator("private_key")
    @classmethod
    def validate_private_key(cls, v: str | None) -> str | None:
        """Treat an empty key (unset env var) as no key."""
        if v is not None and not v.strip():
            return None
        return v


class MigrationStep(BaseModel):
    """One deployment in a migration plan.

    Attributes:
        name: Logical deployment name, the cache key
        artifact: Compiled contract JSON holding ``abi`` and ``bytecode``
        args: Constructor (or initializer) arguments
        no_cache: Per-step ``DeployOptions.no_cache``
        no_confirm: Per-step ``DeployOptions.no_confirm``
        proxy_kind: Per-step ``DeployOptions.proxy_kind``
        extra: Per-step ``DeployOptions.extra``
    """

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., description="Logical deployment name")
    artifact: Path = Field(..., description="Path to compiled contract artifact")
    args: list[Any] = Field(default_factory=list, description="Constructor args")
    no_cache: bool = False
    no_confirm: bool = False
    proxy_kind: ProxyKind | None = None
    extra: dict[str, Any] = Field(default_factory=dict)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate deployment name pattern."""
        return validate_deployment_name(v)

    def options(self, no_cache: bool = False, no_confirm: bool = False) -> DeployOptions:
        """Build deploy options, OR-ing in run-wide CLI flags."""
        return DeployOptions(
            no_cache=self.no_cache or no_cache,
            no_confirm=self.no_confirm or no_confirm,
            proxy_kind=self.proxy_kind,
            extra=self.extra,
        )


class MigrationPlan(BaseModel):
    """Top-level migration plan file.

    Attributes:
        cache_dir: Directory for cache documents, relative to the plan file
        network: Default network name
        steps: Deployments, executed in order
    """

    model_config = ConfigDict(extra="forbid")

    cache_dir: Path = Field(default=Path("."), description="Cache directory")
    network: str | None = Field(default=None, description="Default network")
    steps: list[MigrationStep] = Field(
        default_factory=list, description="Ordered deployment steps"
    )

    @model_validator(mode="after")
    def validate_unique_names(self) -> "MigrationPlan":
        """Validate that no two steps share a deployment name."""
        seen: set[str] = set()
        for step in self.steps:
            if step.name in seen:
                raise ValueError(f"Duplicate deployment name: {step.name}")
            seen.add(step.name)
        return self
