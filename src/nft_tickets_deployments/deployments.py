"""Main API for nft-tickets-deployments."""

import logging
import time
from pathlib import Path
from typing import Callable, List, Mapping, Optional, Union

from .artifacts import ArtifactStore
from .config import DeployConfig, load_config
from .deployer import Deployer, DryRunDeployer
from .migrations import Migration, discover_migrations, select_migrations
from .network import connect
from .registry import DeploymentRegistry
from .types import MigrationResult

logger = logging.getLogger(__name__)


def _rehearse(
    migrations: List[Migration], deployer: DryRunDeployer, network: str
) -> None:
    logger.info("Dry run on network '%s'", network)
    for migration in migrations:
        logger.info("Simulating migration %s", migration.label)
        deployer.migration = migration.number
        migration.func(deployer)
    logger.info(
        "Dry run complete: %d contract(s), %d gas estimated",
        len(deployer.deployed),
        deployer.estimated_gas,
    )


def run_migrations(
    network: str,
    config: Optional[DeployConfig] = None,
    from_step: Optional[int] = None,
    to_step: Optional[int] = None,
    reset: bool = False,
    dry_run: Optional[bool] = None,
    registry_path: Optional[Union[Path, str]] = None,
    sleep: Callable[[float], None] = time.sleep,
    environ: Optional[Mapping[str, str]] = None,
) -> MigrationResult:
    """
    Run pending migrations against one network.

    Steps run strictly in numeric order, each blocking until its
    deployments are confirmed. The registry is saved after every
    completed step, so an aborted run resumes at the failed step.

    Args:
        network: Name of the network profile to deploy to
        config: Loaded configuration (defaults to load_config())
        from_step: Re-run migrations from this number on
        to_step: Stop after this migration number
        reset: Forget previous deployments on this network and run everything
        dry_run: True to only simulate, False to skip simulation, None to
                 simulate first on remote networks unless skipDryRun is set
        registry_path: Where deployments are recorded
                       (defaults to ./.nft-tickets-deployments/deployments.json)
        sleep: Sleep function used while polling
        environ: Environment for ${VAR} expansion (defaults to os.environ)

    Returns:
        MigrationResult describing what was deployed (or would be, for dry runs)

    Raises:
        NetworkNotFoundError: If the network is not configured
        MigrationError: If migration scripts are malformed
        DeploymentError: If any chain interaction fails; the run aborts
    """
    if config is None:
        config = load_config()

    profile = config.network(network)
    migrations = discover_migrations(config.migrations_directory)

    registry = DeploymentRegistry(registry_path, create=True)
    if reset:
        logger.info("Resetting deployments recorded for network '%s'", network)
        registry.clear_network(network)

    pending = select_migrations(
        migrations, from_step, to_step, registry.last_completed_migration(network)
    )

    connection = connect(profile, sleep=sleep, environ=environ)
    try:
        result = MigrationResult(
            network=network,
            network_id=connection.network_id,
            last_completed_migration=registry.last_completed_migration(network),
        )
        if not pending:
            logger.info("Network '%s' is up to date", network)
            return result

        artifacts = ArtifactStore(config.contracts_build_directory, config.compiler_version)

        if dry_run is None:
            simulate = not (profile.is_local or profile.skip_dry_run)
        else:
            simulate = dry_run

        if simulate:
            rehearsal = DryRunDeployer(connection, artifacts, registry, sleep=sleep)
            _rehearse(pending, rehearsal, network)
            if dry_run:
                result.dry_run = True
                result.deployed = rehearsal.deployed
                result.executed_migrations = [m.number for m in pending]
                result.estimated_gas = rehearsal.estimated_gas
                return result

        for migration in pending:
            logger.info("Running migration %s", migration.label)
            deployer = Deployer(connection, artifacts, registry, migration.number, sleep=sleep)
            migration.func(deployer)

            registry.mark_completed(
                network, migration.number, connection.network_id, connection.chain_id
            )
            registry.save(config.compiler_version)

            result.deployed.extend(deployer.deployed)
            result.executed_migrations.append(migration.number)
            result.last_completed_migration = migration.number

        logger.info(
            "Deployed %d contract(s) to network '%s'", len(result.deployed), network
        )
        return result
    finally:
        connection.close()
