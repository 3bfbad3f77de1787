"""
Admin router — read-only operational endpoints.

All endpoints require ROLE_ADMIN; other authenticated users get 403.

Endpoints:
  GET  /admin/import-runs  — History of startup account imports, newest first
"""

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import require_admin
from app.models.import_run import ImportRun
from app.models.user import User
from app.schemas.import_run import ImportRunResponse

router = APIRouter()


@router.get(
    "/import-runs",
    response_model=list[ImportRunResponse],
    summary="[Admin] List account import runs",
)
async def list_import_runs(
    admin: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Shows whether the startup import ran, what it loaded, and why it failed if it did."""
    result = await db.execute(select(ImportRun).order_by(ImportRun.id.desc()))
    return list(result.scalars().all())
