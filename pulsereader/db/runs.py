"""Run lease management in database."""

import logging
from datetime import datetime
from typing import Optional

import pendulum
from psycopg import Connection
from psycopg import errors as pg_errors

from ..errors import RunInProgressError
from ..models import Run
from .connection import translate_errors

logger = logging.getLogger(__name__)

RUN_COLUMNS = "id, kind, started_at, finished_at, status, lease_expires_at, created_at, updated_at"


class RunManager:
    """Manage pipeline runs in database.

    A row with status 'running' is the lease; a partial unique index
    guarantees at most one exists.
    """

    def __init__(self, conn: Connection, ttl_minutes: int = 15) -> None:
        self.conn = conn
        self.ttl_minutes = ttl_minutes

    def acquire_lease(self, kind: str = "fetch", now: Optional[datetime] = None) -> Run:
        """
        Create the running row, reclaiming a stale one first.

        Raises:
            RunInProgressError: another run holds a live lease
        """
        if now is None:
            now = pendulum.now("UTC")
        expires = now + pendulum.duration(minutes=self.ttl_minutes)

        with translate_errors(self.conn, "Expiring stale run lease failed"):
            with self.conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE runs
                    SET status = 'failed', finished_at = %s
                    WHERE status = 'running' AND lease_expires_at < %s
                    RETURNING id
                    """,
                    (now, now),
                )
                for row in cur.fetchall():
                    logger.warning("Reclaimed stale run lease %s", row["id"])
            self.conn.commit()

        with translate_errors(self.conn, "Acquiring run lease failed"):
            with self.conn.cursor() as cur:
                try:
                    cur.execute(
                        f"""
                        INSERT INTO runs (kind, started_at, status, lease_expires_at)
                        VALUES (%s, %s, 'running', %s)
                        RETURNING {RUN_COLUMNS}
                        """,
                        (kind, now, expires),
                    )
                except pg_errors.UniqueViolation:
                    self.conn.rollback()
                    raise RunInProgressError("Another run is already in progress")
                row = cur.fetchone()
            self.conn.commit()

        run = Run.model_validate(row)
        logger.debug("Acquired run lease %s until %s", run.id, run.lease_expires_at)
        return run

    def release_lease(self, run_id: int, status: str, finished_at: Optional[datetime] = None) -> None:
        """Close the running row with its final status."""
        if finished_at is None:
            finished_at = pendulum.now("UTC")

        with translate_errors(self.conn, "Releasing run lease failed"):
            with self.conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE runs
                    SET status = %s, finished_at = %s
                    WHERE id = %s AND status = 'running'
                    """,
                    (status, finished_at, run_id),
                )
            self.conn.commit()
