"""CLI commands for running chaindeck migrations.

Implements 'chaindeck migrate', 'chaindeck status' and 'chaindeck forget'
on top of the MigrationManager.
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

import click

from chaindeck.config.env_loader import load_env_file
from chaindeck.config.loader import (
    DEFAULT_NETWORKS_FILE,
    load_migration_plan,
    load_network_config,
    resolve_network_name,
)
from chaindeck.deploy.confirm import always_confirm, prompt_confirm
from chaindeck.deploy.interfaces import ConfirmFn, Unit
from chaindeck.deploy.ledger import create_ledger, create_proxy_deployer
from chaindeck.deploy.manager import MigrationManager
from chaindeck.lib.errors import ConfigError, DeploymentError, FileNotFoundError
from chaindeck.lib.logging_config import get_logger, setup_logging
from chaindeck.models.deployment import ManagerConfig, MigrationPlan, NetworkConfig
from chaindeck.models.deployment_state import DeploymentRecord, RecordStatus

if TYPE_CHECKING:
    from chaindeck.deploy.ledger.web3_ledger import Web3Ledger

logger = get_logger(__name__)

STATUS_COLORS = {
    RecordStatus.DONE: "green",
    RecordStatus.PENDING: "yellow",
    RecordStatus.ABSENT: None,
}


@contextmanager
def handle_deployment_errors() -> Generator[None, None, None]:
    """Context manager for consistent error handling in migration commands.

    Exit codes:
        2: Configuration error
        3: Deployment error (submission, confirmation, cache)
    """
    try:
        yield
    except (ConfigError, FileNotFoundError) as e:
        logger.error(f"Configuration error: {e}")
        click.secho("Error: Configuration error", fg="red", err=True)
        click.echo(f"  {e.message}", err=True)
        sys.exit(2)
    except DeploymentError as e:
        logger.error(f"Deployment error: {e}")
        click.secho(f"Error: {e.operation} failed", fg="red", err=True)
        click.echo(f"  {e.message}", err=True)
        sys.exit(3)
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(3)


def _load_plan_and_network(
    plan_file: str, network_name: str | None, networks_file: str | None
) -> tuple[MigrationPlan, NetworkConfig]:
    plan_path = Path(plan_file).resolve()
    load_env_file(plan_path.parent)

    plan = load_migration_plan(plan_path)
    name = resolve_network_name(network_name, plan)
    networks_path = (
        Path(networks_file) if networks_file else plan_path.parent / DEFAULT_NETWORKS_FILE
    )
    return plan, load_network_config(networks_path, name)


def _build_manager(
    plan: MigrationPlan, network: NetworkConfig, confirm: ConfirmFn = prompt_confirm
) -> tuple[MigrationManager, Web3Ledger]:
    ledger = create_ledger(network)
    manager = MigrationManager(
        ledger,
        ManagerConfig(cache_dir=plan.cache_dir),
        confirm=confirm,
        proxy_deployer=create_proxy_deployer(ledger, network),
    )
    return manager, ledger


async def _run_migrations(
    plan: MigrationPlan,
    manager: MigrationManager,
    ledger: Web3Ledger,
    no_cache: bool,
    no_confirm: bool,
) -> tuple[dict[str, Unit], str | None]:
    """Deploy the plan's steps in order.

    Returns:
        Deployed units by name, and the name of the step that was declined
        (None if every step went through)
    """
    deployed: dict[str, Unit] = {}
    for step in plan.steps:
        factory = ledger.factory_from_artifact(step.artifact)
        unit = await manager.deploy(
            step.name,
            factory,
            step.args,
            step.options(no_cache=no_cache, no_confirm=no_confirm),
        )
        if unit is None:
            return deployed, step.name
        deployed[step.name] = unit
    return deployed, None


@click.command()
@click.argument(
    "plan_file",
    type=click.Path(exists=True, dir_okay=False),
    default="migrations.yaml",
    required=False,
)
@click.option("--network", "-n", type=str, default=None, help="Network to deploy to")
@click.option(
    "--networks",
    "networks_file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Networks file (default: networks.yaml next to the plan)",
)
@click.option(
    "--no-cache",
    is_flag=True,
    help="Forget cached deployments and deploy every step again",
)
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompts")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose debug logging")
@click.option("--quiet", "-q", is_flag=True, help="Suppress progress output")
def migrate(
    plan_file: str,
    network: str | None,
    networks_file: str | None,
    no_cache: bool,
    yes: bool,
    verbose: bool,
    quiet: bool,
) -> None:
    """Deploy every step of a migration plan that is not deployed yet.

    PLAN_FILE is the path to the migration plan YAML.

    Already deployed steps are reused, interrupted deployments are resumed
    from their pending transaction.

    Example:

        chaindeck migrate migrations.yaml --network sepolia

        chaindeck migrate --yes
    """
    setup_logging(verbose=verbose, quiet=quiet)

    with handle_deployment_errors():
        plan, network_config = _load_plan_and_network(plan_file, network, networks_file)
        confirm = always_confirm if yes else prompt_confirm
        manager, ledger = _build_manager(plan, network_config, confirm)

        if not quiet:
            click.echo()
            click.secho("Migration Configuration:", bold=True)
            click.echo(f"  Network:   {network_config.name}")
            click.echo(f"  RPC:       {network_config.rpc_url}")
            click.echo(f"  Cache:     {plan.cache_dir}")
            click.echo(f"  Steps:     {len(plan.steps)}")
            click.echo()

        deployed, declined = asyncio.run(
            _run_migrations(plan, manager, ledger, no_cache=no_cache, no_confirm=yes)
        )

        for name, unit in deployed.items():
            if quiet:
                click.echo(f"{name} {unit.address}")
            else:
                click.echo(f"  {name:<20} {unit.address}")

        if declined is not None:
            click.secho(f"Deployment of '{declined}' not confirmed.", fg="yellow")
            sys.exit(1)

        if not quiet:
            click.echo()
            click.secho("Migration Complete!", fg="green", bold=True)


@click.command()
@click.argument(
    "plan_file",
    type=click.Path(exists=True, dir_okay=False),
    default="migrations.yaml",
    required=False,
)
@click.option("--network", "-n", type=str, default=None, help="Network to inspect")
@click.option(
    "--networks",
    "networks_file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Networks file (default: networks.yaml next to the plan)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose debug logging")
@click.option("--quiet", "-q", is_flag=True, help="Only print name and status")
def status(
    plan_file: str,
    network: str | None,
    networks_file: str | None,
    verbose: bool,
    quiet: bool,
) -> None:
    """Show the cached deployment state of every step on a network."""
    setup_logging(verbose=verbose, quiet=quiet)

    with handle_deployment_errors():
        plan, network_config = _load_plan_and_network(plan_file, network, networks_file)
        manager, _ = _build_manager(plan, network_config)
        cached = asyncio.run(manager.records())

        names = [step.name for step in plan.steps]
        names += [name for name in cached if name not in names]

        if not quiet:
            click.echo()
            click.secho(
                f"Deployment Status ({network_config.name}, "
                f"chain {manager.network.chain_id})",
                bold=True,
            )

        for name in names:
            record = cached.get(name, DeploymentRecord())
            if quiet:
                click.echo(f"{name} {record.status.value}")
                continue
            click.secho(
                f"  {name:<20} {record.status.value:<8}",
                fg=STATUS_COLORS[record.status],
                nl=False,
            )
            if record.address:
                click.echo(f" {record.address}")
            elif record.tx_hash:
                click.echo(f" (transaction {record.tx_hash})")
            else:
                click.echo()


@click.command()
@click.argument(
    "plan_file",
    type=click.Path(exists=True, dir_okay=False),
)
@click.argument("name", type=str)
@click.option("--network", "-n", type=str, default=None, help="Network to modify")
@click.option(
    "--networks",
    "networks_file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Networks file (default: networks.yaml next to the plan)",
)
@click.option("--force", is_flag=True, help="Skip confirmation prompt")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose debug logging")
@click.option("--quiet", "-q", is_flag=True, help="Suppress progress output")
def forget(
    plan_file: str,
    name: str,
    network: str | None,
    networks_file: str | None,
    force: bool,
    verbose: bool,
    quiet: bool,
) -> None:
    """Clear the cached address and pending transaction of one deployment.

    The next migrate run deploys NAME again. Use this to recover from a
    pending transaction that reverted.
    """
    setup_logging(verbose=verbose, quiet=quiet)

    with handle_deployment_errors():
        plan, network_config = _load_plan_and_network(plan_file, network, networks_file)

        if not force:
            confirm = click.confirm(
                f"Forget deployment '{name}' on {network_config.name}?", default=False
            )
            if not confirm:
                click.secho("Forget aborted.", fg="yellow")
                sys.exit(0)

        manager, _ = _build_manager(plan, network_config)
        removed = asyncio.run(manager.forget(name))

        if quiet:
            click.echo("forgotten" if removed else "absent")
            sys.exit(0)

        if removed:
            click.secho(f"Forgot cached deployment '{name}'", fg="green")
        else:
            click.echo(f"No cached deployment for '{name}'")
