"""
Cron API Endpoints.

HTTP trigger for the finalization engine, for deployments whose scheduler can
only make HTTP calls. Guarded by the shared CRON_SECRET.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from ledger_backend.app.db.session import get_db
from ledger_backend.app.schemas.ledger import FinalizationRunResponse
from ledger_backend.app.core.guards import require_cron_secret
from ledger_backend.app.domain.ledger.finalization import FinalizationEngine

router = APIRouter(prefix="/cron", tags=["Cron"])


@router.post(
    "/finalize-ledger",
    response_model=FinalizationRunResponse,
    dependencies=[Depends(require_cron_secret)],
)
async def finalize_ledger(db: AsyncSession = Depends(get_db)):
    """Finalize every pending entry whose window has elapsed."""
    result = await FinalizationEngine.run(db)
    return FinalizationRunResponse(
        finalized_count=result.finalized_count,
        timestamp=result.timestamp,
        entry_ids=[entry.id for entry in result.entries],
    )
