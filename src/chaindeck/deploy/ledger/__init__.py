"""Ledger clients for chaindeck deployments."""

from __future__ import annotations

from typing import TYPE_CHECKING

from chaindeck.deploy.interfaces import ProxyDeployer
from chaindeck.models.deployment import NetworkConfig

if TYPE_CHECKING:
    from chaindeck.deploy.ledger.web3_ledger import Web3Ledger


def create_ledger(network: NetworkConfig) -> Web3Ledger:
    """Create a ledger connection for the network configuration.

    Raises:
        LedgerSDKNotInstalledError: If the web3 extra is not installed
    """
    from chaindeck.deploy.ledger.web3_ledger import Web3Ledger

    return Web3Ledger(network)


def create_proxy_deployer(
    ledger: Web3Ledger, network: NetworkConfig
) -> ProxyDeployer | None:
    """Create a proxy deployer when the network has proxy artifacts."""
    if not network.proxy_artifacts:
        return None

    from chaindeck.deploy.ledger.web3_ledger import Web3ProxyDeployer

    return Web3ProxyDeployer(ledger, network.proxy_artifacts)


__all__ = ["create_ledger", "create_proxy_deployer"]
