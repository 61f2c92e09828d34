"""Run lease model for tracking pipeline executions."""

from datetime import datetime
from typing import Optional

from pydantic import Field

from .base import DBModel


class Run(DBModel):
    """Pipeline run record; at most one may be running at a time."""

    kind: str = Field("fetch", description="Job kind (fetch, backfill)")
    started_at: datetime = Field(..., description="When the run started")
    finished_at: Optional[datetime] = Field(None, description="When the run finished")
    status: str = Field("running", description="Run status (running, success, failed)")
    lease_expires_at: datetime = Field(..., description="When a stale lease may be reclaimed")
