"""Topic dictionary storage."""

from typing import Dict, List, Optional, Sequence

from psycopg import Connection

from ..models import Topic
from ..pipeline.interfaces import TopicStore
from .connection import translate_errors


class PostgresTopicStore(TopicStore):
    """Topics resolved case-insensitively, backed by a unique index on lower(name)."""

    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    def find_by_name(self, name: str) -> Optional[Topic]:
        with translate_errors(self.conn, "Topic lookup failed"):
            with self.conn.cursor() as cur:
                cur.execute(
                    "SELECT id, name, created_at, updated_at FROM topics WHERE lower(name) = lower(%s)",
                    (name.strip(),),
                )
                row = cur.fetchone()
        return Topic.model_validate(row) if row else None

    def find_or_create_many(self, names: Sequence[str]) -> Dict[str, Topic]:
        """
        Resolve names to topics, creating the missing ones.

        Existing topics are looked up first; inserts that lose a race against
        a concurrent writer fall through the unique index and are re-read.
        """
        wanted: Dict[str, str] = {}
        for name in names:
            cleaned = name.strip()
            if cleaned and cleaned.lower() not in wanted:
                wanted[cleaned.lower()] = cleaned
        if not wanted:
            return {}

        with translate_errors(self.conn, "Topic resolution failed"):
            with self.conn.cursor() as cur:
                found = self._select(cur, list(wanted))

                missing = [wanted[key] for key in wanted if key not in found]
                if missing:
                    cur.execute(
                        """
                        INSERT INTO topics (name)
                        SELECT * FROM unnest(%s::text[])
                        ON CONFLICT ((lower(name))) DO NOTHING
                        RETURNING id, name, created_at, updated_at
                        """,
                        (missing,),
                    )
                    for row in cur.fetchall():
                        found[row["name"].lower()] = Topic.model_validate(row)

                    raced = [key for key in wanted if key not in found]
                    if raced:
                        found.update(self._select(cur, raced))
            self.conn.commit()

        return found

    @staticmethod
    def _select(cur, keys: List[str]) -> Dict[str, Topic]:
        cur.execute(
            "SELECT id, name, created_at, updated_at FROM topics WHERE lower(name) = ANY(%s)",
            (keys,),
        )
        return {row["name"].lower(): Topic.model_validate(row) for row in cur.fetchall()}
