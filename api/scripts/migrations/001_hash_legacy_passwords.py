"""Migration 001: Hash plaintext passwords left by the legacy system.

Accounts imported from the previous system stored the password as given.
This migration replaces every value that is not an Argon2 hash with one.
Each row is updated with a conditional write on the old value, so a user who
logs in (and gets rehashed) while the migration runs is never overwritten.

Run it once before turning ``AUTH_ALLOW_LEGACY_PLAINTEXT`` off.

Usage:
    cd api && uv run python -m scripts.migrations.001_hash_legacy_passwords
"""

import asyncio
import sys
from datetime import UTC, datetime
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from cassandra.auth import PlainTextAuthProvider
from cassandra_asyncio.cluster import Cluster

from src.auth.security import hash_password, is_password_hash
from src.config.settings import get_settings
from src.core.logging import configure_structlog, get_logger


logger = get_logger(__name__)


SELECT_PRINCIPALS = "SELECT id, password_hash FROM {keyspace}.principals"
UPDATE_PASSWORD = """
    UPDATE {keyspace}.principals
    SET password_hash = ?, updated_at = ?
    WHERE id = ?
    IF password_hash = ?
"""


async def migrate_up(session, keyspace: str) -> tuple[int, int]:
    """Hash every plaintext password.

    Args:
        session: Cassandra session with aexecute support
        keyspace: Target keyspace

    Returns:
        Tuple of (migrated_count, skipped_count)
    """
    migrated = 0
    skipped = 0

    update = session.prepare(UPDATE_PASSWORD.format(keyspace=keyspace))
    rows = await session.aexecute(SELECT_PRINCIPALS.format(keyspace=keyspace))

    for row in rows:
        if not row.password_hash or is_password_hash(row.password_hash):
            skipped += 1
            continue

        result = await session.aexecute(
            update,
            [hash_password(row.password_hash), datetime.now(UTC), row.id, row.password_hash],
        )
        if result.was_applied:
            migrated += 1
            logger.info("password_migrated", principal_id=str(row.id))
        else:
            # Changed underneath us (login rehash or password reset)
            skipped += 1
            logger.info("password_migration_skipped_changed", principal_id=str(row.id))

    return migrated, skipped


async def migrate_down(session, keyspace: str) -> None:
    """Rollback migration.

    Hashing is one-way, so there is nothing to restore.
    """
    logger.warning(
        "migrate_down_not_supported",
        message="Password hashing cannot be reverted - skipping",
    )


async def run_migration() -> None:
    """Run the migration."""
    settings = get_settings()
    configure_structlog(settings)
    keyspace = settings.cassandra_keyspace

    logger.info(
        "migration_starting",
        migration="001_hash_legacy_passwords",
        keyspace=keyspace,
        hosts=settings.cassandra_hosts,
    )

    auth_provider = None
    if settings.cassandra_username and settings.cassandra_password:
        auth_provider = PlainTextAuthProvider(
            username=settings.cassandra_username,
            password=settings.cassandra_password,
        )

    cluster = Cluster(
        contact_points=settings.cassandra_hosts,
        port=settings.cassandra_port,
        auth_provider=auth_provider,
        protocol_version=settings.cassandra_protocol_version,
    )

    session = cluster.connect()
    session.set_keyspace(keyspace)

    try:
        migrated, skipped = await migrate_up(session, keyspace)
        logger.info(
            "migration_completed",
            migration="001_hash_legacy_passwords",
            migrated=migrated,
            skipped=skipped,
        )
    finally:
        session.shutdown()
        cluster.shutdown()


if __name__ == "__main__":
    asyncio.run(run_migration())
