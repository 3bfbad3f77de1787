"""Pydantic schema for the admin view of account import runs."""

from datetime import datetime

from pydantic import BaseModel


class ImportRunResponse(BaseModel):
    run_id: str
    source: str
    status: str
    records_written: int
    records_skipped: int
    error: str | None
    started_at: datetime
    finished_at: datetime | None

    model_config = {"from_attributes": True}
