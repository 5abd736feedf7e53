"""Pytest configuration and shared fixtures for chaindeck tests.

The fakes below implement the ledger protocols from
``chaindeck.deploy.interfaces`` entirely in memory: every submission gets a
deterministic transaction hash and contract address, and tests can hold
transactions unmined, make them revert, or make submission fail.
"""

from __future__ import annotations

import asyncio
import os
from collections.abc import Generator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest

from chaindeck.deploy.interfaces import NetworkIdentity


class SimulatedCrash(BaseException):
    """Stands in for the process dying (not an ``Exception`` on purpose)."""


@dataclass
class FakeReceipt:
    """Receipt of a fake transaction."""

    transaction_hash: str
    contract_address: str | None
    status: int | None = 1


@dataclass
class FakeUnit:
    """A fake deployed contract."""

    address: str
    contract_name: str


class FakeOperation:
    """A fake transaction lookup result."""

    def __init__(self, chain: FakeChain, tx_hash: str) -> None:
        self._chain = chain
        self.tx_hash = tx_hash

    async def wait(self) -> FakeReceipt:
        return await self._chain.wait_for_receipt(self.tx_hash)


class FakePendingUnit:
    """A fake deployment waiting to be mined."""

    def __init__(self, chain: FakeChain, operation_id: str, factory: FakeFactory) -> None:
        self._chain = chain
        self._factory = factory
        self.operation_id = operation_id

    async def wait_for_deployment(self) -> FakeUnit:
        if self._chain.crash_while_waiting:
            raise SimulatedCrash(self.operation_id)
        receipt = await self._chain.wait_for_receipt(self.operation_id)
        if receipt.status == 0:
            raise RuntimeError(f"transaction {self.operation_id} reverted")
        assert receipt.contract_address is not None
        return self._factory.bind_existing(receipt.contract_address)


class FakeFactory:
    """Fake contract factory that deploys onto a FakeChain."""

    def __init__(self, chain: FakeChain, name: str = "Token") -> None:
        self.chain = chain
        self.name = name
        self.bound: list[str] = []

    async def submit(self, *args: Any) -> FakePendingUnit:
        tx_hash = self.chain.submit(self.name, args)
        return FakePendingUnit(self.chain, tx_hash, self)

    def bind_existing(self, address: str) -> FakeUnit:
        self.bound.append(address)
        return FakeUnit(address=address, contract_name=self.name)


class FakeProxyDeployer:
    """Fake proxy deployer recording how it was called."""

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []

    async def deploy_proxy(
        self,
        factory: FakeFactory,
        implementation: str,
        args: Any,
        *,
        kind: str,
        **extra: Any,
    ) -> FakePendingUnit:
        self.calls.append(
            {
                "factory": factory.name,
                "implementation": implementation,
                "args": list(args),
                "kind": kind,
                "extra": extra,
            }
        )
        tx_hash = factory.chain.submit(f"{kind}-proxy:{factory.name}", tuple(args))
        return FakePendingUnit(factory.chain, tx_hash, factory)


@dataclass
class FakeChain:
    """In-memory ledger implementing ``LedgerConnection``."""

    chain_id: int = 1337
    name: str = "localhost"
    auto_mine: bool = True
    revert_next: bool = False
    crash_while_waiting: bool = False
    submit_error: Exception | None = None
    submissions: list[tuple[str, tuple[Any, ...]]] = field(default_factory=list)
    lookups: list[str] = field(default_factory=list)
    identity_calls: int = 0
    receipts: dict[str, FakeReceipt] = field(default_factory=dict)
    _mined: dict[str, asyncio.Event] = field(default_factory=dict)

    async def get_network_identity(self) -> NetworkIdentity:
        self.identity_calls += 1
        await asyncio.sleep(0)
        return NetworkIdentity(chain_id=self.chain_id, name=self.name)

    async def get_operation(self, tx_hash: str) -> FakeOperation:
        self.lookups.append(tx_hash)
        if tx_hash not in self.receipts:
            raise LookupError(f"transaction {tx_hash} not found")
        return FakeOperation(self, tx_hash)

    def submit(self, contract_name: str, args: tuple[Any, ...]) -> str:
        if self.submit_error is not None:
            raise self.submit_error
        self.submissions.append((contract_name, args))
        index = len(self.submissions)
        tx_hash = f"0x{self.chain_id:08x}{index:056x}"
        address = f"0x{self.chain_id:08x}{index:032x}"
        status = 0 if self.revert_next else 1
        self.revert_next = False
        self.receipts[tx_hash] = FakeReceipt(tx_hash, address, status)
        self._event(tx_hash)
        if self.auto_mine:
            self.mine(tx_hash)
        return tx_hash

    def mine(self, tx_hash: str) -> None:
        self._event(tx_hash).set()

    def _event(self, tx_hash: str) -> asyncio.Event:
        if tx_hash not in self._mined:
            self._mined[tx_hash] = asyncio.Event()
        return self._mined[tx_hash]

    async def wait_for_receipt(self, tx_hash: str) -> FakeReceipt:
        await self._event(tx_hash).wait()
        return self.receipts[tx_hash]


class ScriptedConfirm:
    """Confirmation capability answering from a fixed script."""

    def __init__(self, *answers: bool) -> None:
        self._answers = list(answers)
        self.messages: list[str] = []

    async def __call__(self, message: str) -> bool:
        self.messages.append(message)
        return self._answers.pop(0)


@pytest.fixture
def chain() -> FakeChain:
    """Provide a fresh in-memory ledger."""
    return FakeChain()


@pytest.fixture
def factory(chain: FakeChain) -> FakeFactory:
    """Provide a contract factory deploying onto the ``chain`` fixture."""
    return FakeFactory(chain)


@pytest.fixture
def isolated_env() -> Generator[dict[str, str]]:
    """Provide isolated environment variables for testing.

    Yields:
        Dictionary of original environment variables

    Cleanup:
        Restores original environment after test
    """
    original_env = os.environ.copy()
    yield original_env
    os.environ.clear()
    os.environ.update(original_env)


@pytest.fixture
def cache_dir(tmp_path: Path) -> Path:
    """Provide a directory for per-network cache documents."""
    path = tmp_path / "cache"
    path.mkdir()
    return path


def pytest_configure(config: Any) -> None:
    """Configure pytest with marker options."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests",
    )
    config.addinivalue_line(
        "markers",
        "unit: marks tests as unit tests",
    )
