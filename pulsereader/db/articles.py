"""Article storage and deduplication."""

import logging
from typing import List, Sequence

from psycopg import Connection

from ..models import Article, ArticleAnalysis, NewArticle
from ..pipeline.interfaces import ArticleStore
from .connection import translate_errors

logger = logging.getLogger(__name__)

ARTICLE_COLUMNS = "id, source_id, title, description, link, publication_date, sentiment, created_at, updated_at"


class PostgresArticleStore(ArticleStore):
    """Articles table access bound to one connection."""

    def __init__(self, conn: Connection) -> None:
        self.conn = conn

    def insert_articles(self, commands: Sequence[NewArticle]) -> List[Article]:
        """
        Insert a batch with one statement.

        Rows whose link already exists are skipped by the unique constraint;
        only the newly created rows come back.
        """
        if not commands:
            return []

        with translate_errors(self.conn, "Batch insert failed"):
            with self.conn.cursor() as cur:
                cur.execute(
                    f"""
                    INSERT INTO articles (source_id, title, description, link, publication_date)
                    SELECT * FROM unnest(
                        %s::integer[], %s::text[], %s::text[], %s::text[], %s::timestamptz[]
                    )
                    ON CONFLICT (link) DO NOTHING
                    RETURNING {ARTICLE_COLUMNS}
                    """,
                    (
                        [c.source_id for c in commands],
                        [c.title for c in commands],
                        [c.description for c in commands],
                        [c.link for c in commands],
                        [c.publication_date for c in commands],
                    ),
                )
                rows = cur.fetchall()
            self.conn.commit()

        return [Article.model_validate(row) for row in rows]

    def insert_article(self, command: NewArticle) -> Article:
        """Insert one article. A link conflict raises DuplicateArticleError."""
        with translate_errors(self.conn, f"Insert of {command.link} failed"):
            with self.conn.cursor() as cur:
                cur.execute(
                    f"""
                    INSERT INTO articles (source_id, title, description, link, publication_date)
                    VALUES (%s, %s, %s, %s, %s)
                    RETURNING {ARTICLE_COLUMNS}
                    """,
                    (
                        command.source_id,
                        command.title,
                        command.description,
                        command.link,
                        command.publication_date,
                    ),
                )
                row = cur.fetchone()
            self.conn.commit()

        return Article.model_validate(row)

    def apply_analyses(self, analyses: Sequence[ArticleAnalysis]) -> None:
        """Write sentiment and topic links for several articles in one transaction."""
        if not analyses:
            return

        with translate_errors(self.conn, "Saving AI analysis failed"):
            with self.conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE articles AS a
                    SET sentiment = v.sentiment
                    FROM unnest(%s::integer[], %s::text[]) AS v(id, sentiment)
                    WHERE a.id = v.id
                    """,
                    (
                        [a.article_id for a in analyses],
                        [a.sentiment.value for a in analyses],
                    ),
                )

                pairs = [(a.article_id, topic_id) for a in analyses for topic_id in a.topic_ids]
                if pairs:
                    cur.execute(
                        """
                        INSERT INTO article_topics (article_id, topic_id)
                        SELECT * FROM unnest(%s::integer[], %s::integer[])
                        ON CONFLICT DO NOTHING
                        """,
                        ([p[0] for p in pairs], [p[1] for p in pairs]),
                    )
            self.conn.commit()

        logger.debug("Saved analysis for %d articles", len(analyses))

    def list_unanalyzed(self, limit: int) -> List[Article]:
        """Oldest articles whose sentiment is still null."""
        with translate_errors(self.conn, "Listing unanalyzed articles failed"):
            with self.conn.cursor() as cur:
                cur.execute(
                    f"""
                    SELECT {ARTICLE_COLUMNS}
                    FROM articles
                    WHERE sentiment IS NULL
                    ORDER BY created_at, id
                    LIMIT %s
                    """,
                    (limit,),
                )
                rows = cur.fetchall()

        return [Article.model_validate(row) for row in rows]
