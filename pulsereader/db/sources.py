"""Source management in database."""

import logging
from datetime import datetime
from typing import Dict, List, Sequence

from psycopg import Connection

from ..config import SourceConfig
from ..models import Source
from ..pipeline.interfaces import SourceRegistry
from .connection import translate_errors

logger = logging.getLogger(__name__)

SOURCE_COLUMNS = "id, name, url, is_active, last_fetched_at, last_error, created_at, updated_at"


class PostgresSourceRegistry(SourceRegistry):
    """Sources table access bound to one connection."""

    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    def list_active_sources(self) -> List[Source]:
        with translate_errors(self.conn, "Listing sources failed"):
            with self.conn.cursor() as cur:
                cur.execute(f"SELECT {SOURCE_COLUMNS} FROM sources WHERE is_active ORDER BY id")
                rows = cur.fetchall()
        return [Source.model_validate(row) for row in rows]

    def list_sources(self) -> List[Source]:
        """Get all sources, active or not."""
        with translate_errors(self.conn, "Listing sources failed"):
            with self.conn.cursor() as cur:
                cur.execute(f"SELECT {SOURCE_COLUMNS} FROM sources ORDER BY name")
                rows = cur.fetchall()
        return [Source.model_validate(row) for row in rows]

    def mark_fetch_results(
        self,
        succeeded_ids: Sequence[int],
        failures: Dict[int, str],
        fetched_at: datetime,
    ) -> None:
        """
        Record a run's outcomes with one statement.

        Succeeded sources get last_fetched_at advanced and last_error cleared.
        Failed sources only get last_error set, so they keep their place in
        the rotation.
        """
        ids = list(succeeded_ids) + list(failures)
        if not ids:
            return

        errors = [None] * len(succeeded_ids) + [failures[i] for i in failures]
        succeeded = [True] * len(succeeded_ids) + [False] * len(failures)

        with translate_errors(self.conn, "Recording fetch results failed"):
            with self.conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE sources AS s
                    SET
                        last_fetched_at = CASE WHEN v.ok THEN %s ELSE s.last_fetched_at END,
                        last_error = v.error
                    FROM unnest(%s::integer[], %s::boolean[], %s::text[]) AS v(id, ok, error)
                    WHERE s.id = v.id
                    """,
                    (fetched_at, ids, succeeded, errors),
                )
            self.conn.commit()

        logger.debug(
            "Recorded fetch results: %d succeeded, %d failed",
            len(succeeded_ids), len(failures),
        )

    def sync_sources(self, sources: Sequence[SourceConfig]) -> Dict[str, int]:
        """
        Sync sources from config to database, keyed by feed URL.

        Returns:
            Mapping of feed URL to database ID
        """
        source_map = {}

        with translate_errors(self.conn, "Syncing sources failed"):
            with self.conn.cursor() as cur:
                for source in sources:
                    cur.execute(
                        """
                        INSERT INTO sources (name, url, is_active)
                        VALUES (%s, %s, %s)
                        ON CONFLICT (url) DO UPDATE SET
                            name = EXCLUDED.name,
                            is_active = EXCLUDED.is_active
                        RETURNING id
                        """,
                        (source.name, source.url, source.enabled),
                    )
                    source_map[source.url] = cur.fetchone()["id"]
            self.conn.commit()

        logger.info("Synced %d sources", len(source_map))
        return source_map

    def set_active(self, url: str, active: bool) -> bool:
        """Toggle a source by URL. Returns False when no such source exists."""
        with translate_errors(self.conn, "Updating source failed"):
            with self.conn.cursor() as cur:
                cur.execute(
                    "UPDATE sources SET is_active = %s WHERE url = %s",
                    (active, url),
                )
                updated = cur.rowcount
            self.conn.commit()
        return updated > 0
