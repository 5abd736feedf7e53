"""Ledger-agnostic interfaces consumed by the deployment orchestrator.

The orchestrator depends only on these protocols. Concrete ledger clients
(see ``chaindeck.deploy.ledger``) and test fakes implement them; no
SDK-specific types leak through.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable


@dataclass(frozen=True)
class NetworkIdentity:
    """Identity of the network a ledger connection points at.

    Attributes:
        chain_id: Numeric chain identifier, used to scope the cache.
        name: Human-readable network name, for display only.
    """

    chain_id: int
    name: str = "unknown"


@runtime_checkable
class Receipt(Protocol):
    """Confirmation receipt of a deployment transaction."""

    transaction_hash: str
    contract_address: str | None
    status: int | None


@runtime_checkable
class Operation(Protocol):
    """A submitted transaction looked up by its hash."""

    async def wait(self) -> Receipt:
        """Block until the transaction is mined and return its receipt."""
        ...


@runtime_checkable
class LedgerConnection(Protocol):
    """Read access to the ledger the deployments land on."""

    async def get_network_identity(self) -> NetworkIdentity:
        """Return the identity of the connected network."""
        ...

    async def get_operation(self, tx_hash: str) -> Operation:
        """Look up a previously submitted transaction.

        Args:
            tx_hash: Hash returned when the transaction was submitted.

        Returns:
            The operation, which may or may not be confirmed yet.
        """
        ...


@runtime_checkable
class Unit(Protocol):
    """A deployed contract bound to its address."""

    address: str


@runtime_checkable
class PendingUnit(Protocol):
    """A contract whose deployment transaction has been sent."""

    operation_id: str

    async def wait_for_deployment(self) -> Unit:
        """Block until the deployment is confirmed and return the unit."""
        ...


@runtime_checkable
class DeployableFactory(Protocol):
    """Something that can deploy, or attach to, one contract type."""

    async def submit(self, *args: Any) -> PendingUnit:
        """Send the deployment transaction with constructor arguments."""
        ...

    def bind_existing(self, address: str) -> Unit:
        """Attach to a previously deployed instance at ``address``."""
        ...


@runtime_checkable
class ProxyDeployer(Protocol):
    """Deploys a factory behind an upgradeable proxy."""

    async def deploy_proxy(
        self,
        factory: DeployableFactory,
        implementation: str,
        args: Sequence[Any],
        *,
        kind: str,
        **extra: Any,
    ) -> PendingUnit:
        """Send the proxy transaction for an already deployed implementation.

        The implementation is deployed and cached by the caller, so a run
        interrupted while it was mining resumes it instead of deploying a
        second one.

        Args:
            factory: Implementation contract factory.
            implementation: Address of the deployed implementation.
            args: Initializer arguments.
            kind: Proxy pattern (``transparent`` or ``uups``).
            **extra: Deployer-specific options, passed through untouched.

        Returns:
            The pending proxy deployment.
        """
        ...


ConfirmFn = Callable[[str], Awaitable[bool]]
