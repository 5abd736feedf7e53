"""web3.py implementation of the ledger interfaces."""

from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from chaindeck.deploy.interfaces import NetworkIdentity
from chaindeck.lib.errors import (
    ConfigError,
    DeploymentError,
    LedgerSDKNotInstalledError,
)
from chaindeck.lib.logging_config import get_logger
from chaindeck.models.deployment import NetworkConfig, ProxyKind

if TYPE_CHECKING:
    from web3 import AsyncWeb3

logger = get_logger(__name__)

DEFAULT_INITIALIZER = "initialize"

# bytes32(uint256(keccak256("eip1967.proxy.admin")) - 1)
ERC1967_ADMIN_SLOT = 0xB53127684A568B3173AE13B9F8A6016E243E63B6E8EE1178D6A717850B5D6103

UUPS_UPGRADE_ABI: list[dict[str, Any]] = [
    {
        "type": "function",
        "name": "upgradeToAndCall",
        "stateMutability": "payable",
        "inputs": [
            {"name": "newImplementation", "type": "address"},
            {"name": "data", "type": "bytes"},
        ],
        "outputs": [],
    }
]

PROXY_ADMIN_ABI: list[dict[str, Any]] = [
    {
        "type": "function",
        "name": "upgradeAndCall",
        "stateMutability": "payable",
        "inputs": [
            {"name": "proxy", "type": "address"},
            {"name": "implementation", "type": "address"},
            {"name": "data", "type": "bytes"},
        ],
        "outputs": [],
    }
]


@dataclass(frozen=True)
class Web3Receipt:
    """Subset of a transaction receipt the orchestrator relies on."""

    transaction_hash: str
    contract_address: str | None
    status: int | None


@dataclass(frozen=True)
class Web3Unit:
    """A deployed contract bound to its address."""

    address: str
    contract: Any


def load_artifact(path: Path) -> tuple[list[dict[str, Any]], str]:
    """Read ``abi`` and ``bytecode`` from a compiled contract artifact.

    Both Hardhat (``"bytecode": "0x..."``) and Foundry
    (``"bytecode": {"object": "0x..."}``) layouts are accepted.

    Raises:
        ConfigError: If the file is missing or malformed
    """
    try:
        artifact = json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError("artifact", f"Failed to read artifact {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError("artifact", f"Invalid artifact JSON in {path}: {exc}") from exc

    if not isinstance(artifact, dict):
        raise ConfigError("artifact", f"Artifact {path} must be a JSON object")

    abi = artifact.get("abi")
    bytecode = artifact.get("bytecode")
    if isinstance(bytecode, dict):
        bytecode = bytecode.get("object")

    if not isinstance(abi, list):
        raise ConfigError("artifact", f"Artifact {path} has no 'abi' list")
    if not isinstance(bytecode, str) or not bytecode:
        raise ConfigError("artifact", f"Artifact {path} has no 'bytecode'")
    if not bytecode.startswith("0x"):
        bytecode = f"0x{bytecode}"
    return abi, bytecode


class Web3Ledger:
    """Ledger connection over a JSON-RPC endpoint."""

    def __init__(self, config: NetworkConfig) -> None:
        """Initialize the web3 connection.

        Args:
            config: Network connection settings

        Raises:
            LedgerSDKNotInstalledError: If web3 is not installed
        """
        try:
            from web3 import AsyncWeb3
        except ImportError as exc:
            raise LedgerSDKNotInstalledError(sdk_name="web3") from exc

        self._config = config
        self._w3: AsyncWeb3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(config.rpc_url))
        self._to_hex = AsyncWeb3.to_hex
        self._account = (
            self._w3.eth.account.from_key(config.private_key)
            if config.private_key
            else None
        )
        self._default_sender: str | None = None

    @property
    def config(self) -> NetworkConfig:
        """Return the network settings this ledger was built from."""
        return self._config

    @property
    def web3(self) -> AsyncWeb3:
        """Return the underlying ``AsyncWeb3`` instance."""
        return self._w3

    async def get_network_identity(self) -> NetworkIdentity:
        """Return the chain id reported by the node.

        Raises:
            ConfigError: If the node's chain id differs from the configured one
        """
        chain_id = int(await self._w3.eth.chain_id)
        expected = self._config.chain_id
        if expected is not None and expected != chain_id:
            raise ConfigError(
                "chain_id",
                f"Network '{self._config.name}' expects chain {expected} "
                f"but {self._config.rpc_url} reports chain {chain_id}",
            )
        return NetworkIdentity(chain_id=chain_id, name=self._config.name)

    async def get_operation(self, tx_hash: str) -> Web3Operation:
        """Look up a submitted transaction; raises if the node does not know it."""
        await self._w3.eth.get_transaction(tx_hash)
        return Web3Operation(self, tx_hash)

    async def sender(self) -> str:
        """Return the address deployments are sent from."""
        if self._account is not None:
            return str(self._account.address)
        if self._default_sender is None:
            accounts = await self._w3.eth.accounts
            if not accounts:
                raise DeploymentError(
                    operation="submit",
                    message=(
                        f"Network '{self._config.name}' has no private_key and "
                        "the node exposes no accounts"
                    ),
                )
            self._default_sender = str(accounts[0])
        return self._default_sender

    async def send_transaction(self, tx: dict[str, Any]) -> str:
        """Sign (locally if a key is configured) and send a transaction.

        Returns:
            The transaction hash as a 0x-prefixed hex string
        """
        if self._account is not None:
            if "nonce" not in tx:
                tx["nonce"] = await self._w3.eth.get_transaction_count(
                    self._account.address, "pending"
                )
            signed = self._account.sign_transaction(tx)
            tx_hash = await self._w3.eth.send_raw_transaction(signed.raw_transaction)
        else:
            tx_hash = await self._w3.eth.send_transaction(tx)
        return str(self._to_hex(tx_hash))

    async def wait_for_receipt(self, tx_hash: str) -> Web3Receipt:
        """Block until a transaction is mined and return its receipt."""
        raw = await self._w3.eth.wait_for_transaction_receipt(
            tx_hash, timeout=self._config.receipt_timeout
        )
        contract_address = raw.get("contractAddress")
        return Web3Receipt(
            transaction_hash=tx_hash,
            contract_address=str(contract_address) if contract_address else None,
            status=raw.get("status"),
        )

    async def transact(
        self,
        address: str,
        abi: list[dict[str, Any]],
        function: str,
        args: Sequence[Any],
    ) -> Web3Receipt:
        """Call a state-changing contract function and wait until it is mined.

        Raises:
            DeploymentError: If the transaction reverted
        """
        contract = self._w3.eth.contract(address=address, abi=abi)
        sender = await self.sender()
        tx = await getattr(contract.functions, function)(*args).build_transaction(
            {"from": sender}
        )
        tx_hash = await self.send_transaction(tx)
        receipt = await self.wait_for_receipt(tx_hash)
        if receipt.status == 0:
            raise DeploymentError(
                operation="transact",
                message=f"{function} on {address} reverted in {tx_hash}",
            )
        return receipt

    async def proxy_admin(self, proxy: str) -> str:
        """Read the admin address from a proxy's ERC-1967 admin slot."""
        raw = await self._w3.eth.get_storage_at(proxy, ERC1967_ADMIN_SLOT)
        return str(self._w3.to_checksum_address(bytes(raw)[-20:]))

    def factory(
        self, abi: list[dict[str, Any]], bytecode: str, name: str = "contract"
    ) -> Web3ContractFactory:
        """Build a contract factory from an ABI and creation bytecode."""
        return Web3ContractFactory(self, abi, bytecode, name)

    def factory_from_artifact(self, path: Path) -> Web3ContractFactory:
        """Build a contract factory from a compiled artifact file."""
        abi, bytecode = load_artifact(path)
        return self.factory(abi, bytecode, name=Path(path).stem)


class Web3Operation:
    """A submitted transaction awaiting (or past) confirmation."""

    def __init__(self, ledger: Web3Ledger, tx_hash: str) -> None:
        self._ledger = ledger
        self.tx_hash = tx_hash

    async def wait(self) -> Web3Receipt:
        """Return the receipt once the transaction is mined."""
        return await self._ledger.wait_for_receipt(self.tx_hash)


class Web3PendingUnit:
    """A contract deployment that has been sent but not yet confirmed."""

    def __init__(
        self, ledger: Web3Ledger, operation_id: str, factory: Web3ContractFactory
    ) -> None:
        self._ledger = ledger
        self._factory = factory
        self.operation_id = operation_id

    async def wait_for_deployment(self) -> Web3Unit:
        """Wait for the receipt and bind the factory to the new address.

        Raises:
            DeploymentError: If the transaction reverted or created nothing
        """
        receipt = await self._ledger.wait_for_receipt(self.operation_id)
        if receipt.status == 0:
            raise DeploymentError(
                operation="confirm",
                message=f"Transaction {self.operation_id} reverted",
            )
        if not receipt.contract_address:
            raise DeploymentError(
                operation="confirm",
                message=f"Transaction {self.operation_id} created no contract",
            )
        return self._factory.bind_existing(receipt.contract_address)


class Web3ContractFactory:
    """Deploys, or attaches to, one compiled contract."""

    def __init__(
        self,
        ledger: Web3Ledger,
        abi: list[dict[str, Any]],
        bytecode: str,
        name: str = "contract",
    ) -> None:
        self._ledger = ledger
        self.abi = abi
        self.bytecode = bytecode
        self.name = name
        self._contract = ledger.web3.eth.contract(abi=abi, bytecode=bytecode)

    async def submit(self, *args: Any) -> Web3PendingUnit:
        """Send the constructor transaction."""
        sender = await self._ledger.sender()
        tx = await self._contract.constructor(*args).build_transaction(
            {"from": sender}
        )
        tx_hash = await self._ledger.send_transaction(tx)
        logger.debug(f"Sent {self.name} constructor in {tx_hash}")
        return Web3PendingUnit(self._ledger, tx_hash, self)

    def bind_existing(self, address: str) -> Web3Unit:
        """Attach to a deployed instance of this contract."""
        contract = self._ledger.web3.eth.contract(address=address, abi=self.abi)
        return Web3Unit(address=address, contract=contract)

    def encode_call(self, function: str, args: Sequence[Any]) -> str:
        """ABI-encode a call to ``function`` (used for proxy initializers)."""
        return str(self._contract.encode_abi(function, args=list(args)))


class Web3ProxyDeployer:
    """Deploys, and upgrades, contracts behind ERC-1967 proxies.

    ``uups`` proxies take ``(implementation, data)``; ``transparent``
    proxies take ``(implementation, initialOwner, data)``.
    """

    def __init__(self, ledger: Web3Ledger, artifacts: dict[ProxyKind, Path]) -> None:
        """Initialize with one compiled proxy artifact per supported kind."""
        self._ledger = ledger
        self._artifacts = artifacts

    async def deploy_proxy(
        self,
        factory: Web3ContractFactory,
        implementation: str,
        args: Sequence[Any],
        *,
        kind: str,
        **extra: Any,
    ) -> Web3PendingUnit:
        """Send the proxy constructor pointing at ``implementation``.

        Recognized ``extra`` keys: ``initializer`` (function name, or a false
        value for none) and ``initial_owner`` (transparent proxy admin).
        """
        proxy_kind = ProxyKind(kind)
        artifact = self._artifacts.get(proxy_kind)
        if artifact is None:
            raise ConfigError(
                "proxy_artifacts",
                f"No proxy artifact configured for '{proxy_kind.value}' proxies",
            )
        proxy_factory = self._ledger.factory_from_artifact(artifact)

        initializer = extra.get("initializer", DEFAULT_INITIALIZER)
        if initializer:
            data = factory.encode_call(initializer, args)
        elif args:
            raise DeploymentError(
                operation="submit",
                message="Initializer arguments given but no initializer is set",
            )
        else:
            data = "0x"

        if proxy_kind is ProxyKind.TRANSPARENT:
            owner = extra.get("initial_owner") or await self._ledger.sender()
            proxy_args: list[Any] = [implementation, owner, data]
        else:
            proxy_args = [implementation, data]

        proxy_pending = await proxy_factory.submit(*proxy_args)
        logger.debug(
            f"Sent {proxy_kind.value} proxy for {factory.name} "
            f"in {proxy_pending.operation_id}"
        )
        return Web3PendingUnit(self._ledger, proxy_pending.operation_id, factory)

    async def upgrade_proxy(
        self,
        proxy_address: str,
        factory: Web3ContractFactory,
        *,
        kind: str,
        call: str | None = None,
        args: Sequence[Any] = (),
    ) -> Web3Unit:
        """Deploy a new implementation and point an existing proxy at it.

        ``uups`` proxies are upgraded through their own ``upgradeToAndCall``.
        ``transparent`` proxies are upgraded through the ``ProxyAdmin`` found
        in the proxy's admin slot. Upgrades are not recorded in the
        deployment cache.

        Args:
            proxy_address: Address of the deployed proxy
            factory: Factory of the new implementation
            kind: Proxy pattern the proxy was deployed with
            call: Function to call on the new implementation, if any
            args: Arguments for ``call``

        Returns:
            The proxy bound to the new implementation's ABI

        Raises:
            DeploymentError: If a transaction reverts or ``args`` are given
                without ``call``
        """
        proxy_kind = ProxyKind(kind)
        if call:
            data = factory.encode_call(call, args)
        elif args:
            raise DeploymentError(
                operation="upgrade",
                message="Upgrade call arguments given but no function is set",
            )
        else:
            data = "0x"

        pending = await factory.submit()
        implementation = await pending.wait_for_deployment()
        logger.info(
            f"{factory.name} implementation deployed at {implementation.address}"
        )

        if proxy_kind is ProxyKind.UUPS:
            await self._ledger.transact(
                proxy_address,
                UUPS_UPGRADE_ABI,
                "upgradeToAndCall",
                [implementation.address, data],
            )
        else:
            admin = await self._ledger.proxy_admin(proxy_address)
            await self._ledger.transact(
                admin,
                PROXY_ADMIN_ABI,
                "upgradeAndCall",
                [proxy_address, implementation.address, data],
            )
        logger.info(f"Proxy {proxy_address} upgraded to {implementation.address}")
        return factory.bind_existing(proxy_address)
