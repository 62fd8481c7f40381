"""Migration script discovery for nft-tickets-deployments."""

import importlib.util
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, List, Optional

from .exceptions import MigrationError

logger = logging.getLogger(__name__)

# "3_deploy_event_manager.py" -> (3, "deploy_event_manager")
MIGRATION_FILENAME = re.compile(r"^(\d+)_(\w+)\.py$")


@dataclass
class Migration:
    """One numbered deployment step."""

    number: int
    name: str
    path: Path
    func: Callable[[Any], Any]

    @property
    def label(self) -> str:
        return f"{self.number}_{self.name}"


def _load_migrate_function(path: Path) -> Callable[[Any], Any]:
    # Filenames start with a digit, so they cannot be imported by name
    spec = importlib.util.spec_from_file_location(f"_migration_{path.stem}", path)
    if spec is None or spec.loader is None:
        raise MigrationError(f"Cannot load migration {path}")

    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    func = getattr(module, "migrate", None)
    if not callable(func):
        raise MigrationError(f"Migration {path.name} does not define migrate(deployer)")
    return func


def discover_migrations(directory: Path) -> List[Migration]:
    """
    Find migration scripts in a directory.

    Only files named <number>_<description>.py are migrations; anything
    else (helpers, __init__.py) is ignored.

    Args:
        directory: Directory holding the migration scripts

    Returns:
        Migrations sorted by number

    Raises:
        MigrationError: If the directory is missing, two scripts share a
                        number, or a script lacks migrate()
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise MigrationError(f"Migrations directory not found: {directory}")

    migrations: List[Migration] = []
    seen = {}
    for path in sorted(directory.glob("*.py")):
        match = MIGRATION_FILENAME.match(path.name)
        if match is None:
            continue

        number = int(match.group(1))
        if number in seen:
            raise MigrationError(
                f"Migrations {seen[number]} and {path.name} share number {number}"
            )
        seen[number] = path.name

        migrations.append(
            Migration(
                number=number,
                name=match.group(2),
                path=path,
                func=_load_migrate_function(path),
            )
        )

    migrations.sort(key=lambda m: m.number)
    logger.debug("Found %d migration(s) in %s", len(migrations), directory)
    return migrations


def select_migrations(
    migrations: List[Migration],
    from_step: Optional[int] = None,
    to_step: Optional[int] = None,
    last_completed: Optional[int] = None,
) -> List[Migration]:
    """
    Pick the migrations a run should execute.

    Args:
        migrations: All migrations, sorted by number
        from_step: Run from this number on, even if already completed
        to_step: Stop after this number
        last_completed: Number of the last migration completed on the network

    Returns:
        Migrations to execute, in order

    Raises:
        MigrationError: If from_step is greater than to_step
    """
    if from_step is not None and to_step is not None and from_step > to_step:
        raise MigrationError(f"--from {from_step} is after --to {to_step}")

    selected = []
    for migration in migrations:
        if from_step is not None:
            if migration.number < from_step:
                continue
        elif last_completed is not None and migration.number <= last_completed:
            continue
        if to_step is not None and migration.number > to_step:
            continue
        selected.append(migration)
    return selected
