"""Idempotent, resumable contract deployment.

``MigrationManager`` installs named contracts on a ledger at most once per
network. Progress is recorded in a per-network ``PersistentCache`` so that a
run interrupted anywhere between submission and confirmation resumes the
same transaction instead of deploying a duplicate.

Each name moves through three states:

- absent: nothing cached, a new deployment transaction is submitted
- pending: a transaction hash is cached, its receipt is awaited
- done: an address is cached and returned without touching the ledger

A proxied deployment keeps its implementation contract as a nested record
(``<name>.implementation``) that moves through the same states before the
proxy itself is submitted.

Deployments of different names may run concurrently on one manager.
Deployments of the same name must be serialized by the caller: the
read-then-write of a record is not locked, so two concurrent callers can
both observe "absent" and both submit.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from chaindeck.deploy.cache import PersistentCache, open_cache
from chaindeck.deploy.confirm import prompt_confirm
from chaindeck.deploy.interfaces import (
    ConfirmFn,
    DeployableFactory,
    LedgerConnection,
    NetworkIdentity,
    PendingUnit,
    ProxyDeployer,
    Unit,
)
from chaindeck.lib.errors import (
    CacheUnavailableError,
    ConfigError,
    ConfirmationFailedError,
    DeploymentError,
    SubmissionFailedError,
)
from chaindeck.lib.logging_config import get_logger
from chaindeck.models.deployment import (
    DeployOptions,
    ManagerConfig,
    validate_deployment_name,
)
from chaindeck.models.deployment_state import (
    ADDRESS_FIELD,
    IMPLEMENTATION_FIELD,
    TX_HASH_FIELD,
    DeploymentRecord,
)

logger = get_logger(__name__)

SubmitFn = Callable[[], Awaitable[PendingUnit]]


def _address_key(name: str) -> str:
    return f"{name}.{ADDRESS_FIELD}"


def _tx_hash_key(name: str) -> str:
    return f"{name}.{TX_HASH_FIELD}"


def _implementation_key(name: str) -> str:
    return f"{name}.{IMPLEMENTATION_FIELD}"


def _check_name(name: str) -> None:
    try:
        validate_deployment_name(name)
    except ValueError as exc:
        raise ConfigError("name", str(exc)) from exc


def _describe(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


class MigrationManager:
    """Deploy contracts once per network and resume interrupted deployments.

    Attributes:
        config: Startup configuration (cache location)
    """

    def __init__(
        self,
        ledger: LedgerConnection,
        config: ManagerConfig | None = None,
        confirm: ConfirmFn = prompt_confirm,
        proxy_deployer: ProxyDeployer | None = None,
    ) -> None:
        """Initialize the manager.

        Nothing is read from the ledger or the disk until the first
        ``ready()`` or ``deploy()`` call.

        Args:
            ledger: Connection used for network identity and receipt lookups
            config: Cache location; defaults to the working directory
            confirm: Asked before every deployment that is not cached yet
            proxy_deployer: Required for deployments with a ``proxy_kind``
        """
        self.config = config or ManagerConfig()
        self._ledger = ledger
        self._confirm = confirm
        self._proxy_deployer = proxy_deployer
        self._ready_task: asyncio.Task[None] | None = None
        self._network: NetworkIdentity | None = None
        self._cache: PersistentCache | None = None

    @property
    def cache(self) -> PersistentCache:
        """Return the network-scoped cache.

        Raises:
            DeploymentError: If called before ``ready()`` completed
        """
        if self._cache is None:
            raise DeploymentError(
                operation="cache",
                message="Manager is not ready; await ready() first.",
            )
        return self._cache

    @property
    def network(self) -> NetworkIdentity:
        """Return the network identity resolved by ``ready()``."""
        if self._network is None:
            raise DeploymentError(
                operation="network",
                message="Manager is not ready; await ready() first.",
            )
        return self._network

    async def ready(self) -> MigrationManager:
        """Resolve the network identity and open its cache.

        The lookup happens once per manager. Concurrent callers await the
        same lookup, so they can never end up on different caches.
        """
        if self._ready_task is None:
            self._ready_task = asyncio.ensure_future(self._initialize())
        await self._ready_task
        return self

    async def _initialize(self) -> None:
        network = await self._ledger.get_network_identity()
        cache = await open_cache(self.config.cache_dir, network.chain_id)
        logger.info(
            f"Using deployment cache {cache.path} "
            f"for network {network.name} (chain {network.chain_id})"
        )
        self._network = network
        self._cache = cache

    async def deploy(
        self,
        name: str,
        factory: DeployableFactory,
        args: Sequence[Any] = (),
        options: DeployOptions | None = None,
    ) -> Unit | None:
        """Deploy ``factory`` under ``name`` unless it is already deployed.

        Args:
            name: Logical deployment name, unique per network
            factory: Contract factory used to submit and to bind the result
            args: Constructor arguments, or initializer arguments for proxies
            options: Cache, confirmation and proxy behaviour

        Returns:
            The deployed unit bound to its address, or None when the
            confirmation prompt was declined (nothing is written then)

        Raises:
            SubmissionFailedError: The ledger refused the transaction
            ConfirmationFailedError: The transaction reverted or never
                produced an address; its hash stays cached
            CacheUnavailableError: The cache could not be read or written
            ConfigError: The name is not a valid cache key
            DeploymentError: A proxy kind was requested without a deployer
        """
        _check_name(name)
        options = options or DeployOptions()
        args = list(args)

        await self.ready()
        submit = self._submitter(name, factory, args, options)

        if options.no_cache:
            if await self.forget(name):
                logger.info(f"Cleared cached deployment state for '{name}'")

        if not options.no_confirm:
            cached = await self.cache.get(_address_key(name))
            if not cached:
                message = (
                    f'Deploy "{name}" with params:\n'
                    f"{json.dumps(args, indent=4, default=str)}\nConfirm"
                )
                if not await self._confirm(message):
                    logger.warning(f"Deployment of '{name}' was not confirmed")
                    return None

        address = await self.resume_or_deploy(name, submit)
        return factory.bind_existing(address)

    def _submitter(
        self,
        name: str,
        factory: DeployableFactory,
        args: list[Any],
        options: DeployOptions,
    ) -> SubmitFn:
        if options.proxy_kind is None:

            async def submit_direct() -> PendingUnit:
                return await factory.submit(*args)

            return submit_direct

        proxy_deployer = self._proxy_deployer
        if proxy_deployer is None:
            raise DeploymentError(
                operation="submit",
                message=(
                    f"'{name}' requests a {options.proxy_kind.value} proxy but "
                    "no proxy deployer is configured."
                ),
            )
        kind = options.proxy_kind.value
        extra = dict(options.extra)

        async def submit_proxy() -> PendingUnit:
            # The implementation is a record of its own under the proxy's
            # entry, so it is resumed rather than redeployed after a crash.
            implementation = await self._resume_or_deploy(
                _implementation_key(name), factory.submit
            )
            return await proxy_deployer.deploy_proxy(
                factory, implementation, args, kind=kind, **extra
            )

        return submit_proxy

    async def resume_or_deploy(self, name: str, submit: SubmitFn) -> str:
        """Return the address for ``name``, submitting only if nothing is cached.

        The transaction hash is recorded before waiting for confirmation, so
        a crash while waiting leaves the record pending and the next run
        resumes the same transaction.

        Args:
            name: Logical deployment name
            submit: Sends the deployment transaction

        Returns:
            The confirmed contract address
        """
        _check_name(name)
        return await self._resume_or_deploy(name, submit)

    async def _resume_or_deploy(self, name: str, submit: SubmitFn) -> str:
        cache = self.cache
        tx_hash = await cache.get(_tx_hash_key(name))
        address = await cache.get(_address_key(name))

        if address:
            logger.info(f"'{name}' already deployed at {address}")
            return address

        if not tx_hash:
            logger.info(f"Deploying '{name}'")
            try:
                pending = await submit()
            except (
                CacheUnavailableError,
                SubmissionFailedError,
                ConfirmationFailedError,
            ):
                raise
            except Exception as exc:
                raise SubmissionFailedError(name, _describe(exc)) from exc

            tx_hash = pending.operation_id
            await cache.set(_tx_hash_key(name), tx_hash)
            logger.info(f"'{name}' submitted in transaction {tx_hash}")

            try:
                unit = await pending.wait_for_deployment()
            except Exception as exc:
                raise ConfirmationFailedError(name, tx_hash, _describe(exc)) from exc
            address = unit.address
        else:
            logger.info(f"Resuming '{name}' from pending transaction {tx_hash}")
            try:
                operation = await self._ledger.get_operation(tx_hash)
                receipt = await operation.wait()
            except Exception as exc:
                raise ConfirmationFailedError(name, tx_hash, _describe(exc)) from exc

            if receipt.status == 0:
                raise ConfirmationFailedError(name, tx_hash, "transaction reverted")
            address = receipt.contract_address

        if not address:
            raise ConfirmationFailedError(
                name, tx_hash, "confirmation carried no contract address"
            )

        await cache.set(_address_key(name), address)
        logger.info(f"'{name}' deployed at {address}")
        return address

    async def forget(self, name: str) -> bool:
        """Clear everything cached for ``name``.

        That is the address, the pending transaction hash and, for proxied
        deployments, the implementation record.

        Returns:
            True if anything was cached

        Raises:
            ConfigError: The name is not a valid cache key
        """
        _check_name(name)
        await self.ready()
        return await self.cache.delete(name)

    async def record(self, name: str) -> DeploymentRecord:
        """Return the cached record for ``name`` on this network."""
        _check_name(name)
        await self.ready()
        return DeploymentRecord.from_entry(await self.cache.get(name))

    async def records(self) -> dict[str, DeploymentRecord]:
        """Return every cached record on this network, keyed by name."""
        await self.ready()
        document = await self.cache.snapshot()
        return {
            name: DeploymentRecord.from_entry(entry)
            for name, entry in sorted(document.items())
        }
