"""
Run the ledger finalization engine once.

Entry point for an external scheduler (cron, Kubernetes CronJob, systemd timer):

    python -m ledger_backend.run_finalization

Exits non-zero if the batch failed; nothing is committed in that case.
"""

import asyncio
import sys

from ledger_backend.app.core.config import settings
from ledger_backend.app.core.observability import setup_logging
from ledger_backend.app.db.session import DatabaseSessionManager
from ledger_backend.app.domain.ledger.finalization import FinalizationEngine


async def run_finalization() -> int:
    """
    Finalize every due pending entry.

    Owns the database engine for the lifetime of the run.
    """
    manager = DatabaseSessionManager(
        settings.database_url,
        echo=settings.db_echo,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
    )
    try:
        async with manager.session() as db:
            result = await FinalizationEngine.run(db)
    finally:
        await manager.close()

    print(f"Finalized {result.finalized_count} ledger entries at {result.timestamp.isoformat()}")
    for entry in result.entries:
        print(f"  - {entry.id}: {entry.entry_type.value} {entry.amount} {entry.currency.value}")
    return result.finalized_count


def main() -> int:
    setup_logging(settings.log_level)
    try:
        asyncio.run(run_finalization())
    except Exception as exc:
        print(f"Finalization failed: {type(exc).__name__}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
