"""Core AsyncStore class for database operations."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

import aiosqlite

from ..logging_config import get_logger
from ..models import (
    AIProvider,
    Classification,
    FeedItem,
    OpportunityAnalysis,
    OpportunityStatus,
    Priority,
    RawPost,
    ReactionType,
    ResearchResult,
    ResearchType,
    SourcePlatform,
)
from .schema import SCHEMA

logger = get_logger(__name__)

SCORE_FIELDS = (
    "pain_intensity_score",
    "market_size_score",
    "technical_feasibility_score",
    "competition_score",
    "monetization_potential_score",
)

OPPORTUNITY_JSON_FIELDS = ("similar_existing_products", "suggested_mvp_features", "keywords")

OPPORTUNITY_UPDATABLE_FIELDS = frozenset(
    {
        "title",
        "problem_statement",
        "proposed_solution",
        "target_audience",
        "ai_analysis_summary",
        "estimated_build_time",
        "suggested_pricing_model",
        "status",
        "priority",
        "notes",
        "is_starred",
        *SCORE_FIELDS,
        *OPPORTUNITY_JSON_FIELDS,
    }
)

OPPORTUNITY_SORTABLE_FIELDS = frozenset(
    {"overall_score", "created_at", "updated_at", "analyzed_at", "title", "status", "priority", *SCORE_FIELDS}
)

SOURCE_UPDATABLE_FIELDS = frozenset(
    {"platform", "identifier", "display_name", "scrape_frequency_hours", "is_active"}
)

NICHE_UPDATABLE_FIELDS = frozenset({"name", "keywords", "priority", "description", "is_active"})

# high < medium < low, matching the niche matcher's order
PRIORITY_SORT_SQL = "CASE priority WHEN 'high' THEN 0 WHEN 'medium' THEN 1 WHEN 'low' THEN 2 ELSE 3 END"


class OpportunityNotFound(LookupError):
    """Raised when an operation targets an opportunity that does not exist."""

    def __init__(self, opportunity_id: int):
        super().__init__(f"Opportunity {opportunity_id} not found")
        self.opportunity_id = opportunity_id


def _now() -> str:
    return datetime.now(UTC).isoformat()


def _decode_opportunity(row: aiosqlite.Row | dict) -> dict:
    data = dict(row)
    for name in OPPORTUNITY_JSON_FIELDS:
        if name in data:
            data[name] = json.loads(data[name] or "[]")
    if "is_starred" in data:
        data["is_starred"] = bool(data["is_starred"])
    return data


def _decode_source(row: aiosqlite.Row) -> dict:
    data = dict(row)
    data["is_active"] = bool(data["is_active"])
    return data


def _decode_niche(row: aiosqlite.Row) -> dict:
    data = dict(row)
    data["keywords"] = json.loads(data["keywords"] or "[]")
    data["is_active"] = bool(data["is_active"])
    return data


def _decode_research(row: aiosqlite.Row) -> dict:
    data = dict(row)
    data["sources"] = json.loads(data["sources"] or "[]")
    data["ai_generated"] = bool(data["ai_generated"])
    return data


def _decode_reaction(row: aiosqlite.Row) -> dict:
    data = dict(row)
    data["action_data"] = json.loads(data["action_data"] or "{}")
    return data


def _row_to_raw_post(row: aiosqlite.Row) -> RawPost:
    return RawPost(
        id=row["id"],
        source_id=row["source_id"],
        external_id=row["external_id"],
        title=row["title"] or "",
        body=row["body"] or "",
        author=row["author"] or "",
        url=row["url"] or "",
        score=row["score"],
        comment_count=row["comment_count"],
        posted_at=row["posted_at"],
        is_processed=bool(row["is_processed"]),
        classification=Classification.from_db(row["is_opportunity"]),
    )


def _validate_opportunity_updates(updates: dict[str, Any]) -> dict[str, Any]:
    """Validate and coerce a partial opportunity update.

    Raises:
        ValueError: For unknown fields or invalid values
    """
    unknown = set(updates) - OPPORTUNITY_UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Unknown or read-only fields: {', '.join(sorted(unknown))}")

    values: dict[str, Any] = {}
    for key, value in updates.items():
        if key == "status":
            value = OpportunityStatus(value).value
        elif key == "priority":
            value = Priority(value).value
        elif key == "is_starred":
            value = 1 if value else 0
        elif key in SCORE_FIELDS:
            if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 10:
                raise ValueError(f"{key} must be an integer between 1 and 10")
        elif key in OPPORTUNITY_JSON_FIELDS:
            if not isinstance(value, list):
                raise ValueError(f"{key} must be a list")
            value = json.dumps([str(v) for v in value])
        elif key in ("title", "problem_statement") and not value:
            raise ValueError(f"{key} cannot be empty")
        values[key] = value
    return values


class AsyncStore:
    """Async SQLite storage for sources, posts, opportunities and their audit trail."""

    def __init__(self, db_path: str):
        """Initialize the store.

        Args:
            db_path: Path to SQLite database file
        """
        self.db_path = db_path
        self._connection: aiosqlite.Connection | None = None

    async def connect(self) -> None:
        """Open database connection."""
        self._connection = await aiosqlite.connect(self.db_path)
        self._connection.row_factory = aiosqlite.Row
        await self._connection.execute("PRAGMA foreign_keys = ON")
        logger.debug("database_connected", path=self.db_path)

    async def close(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None
            logger.debug("database_closed")

    @asynccontextmanager
    async def connection(self) -> AsyncIterator[aiosqlite.Connection]:
        """Context manager for database connection."""
        if not self._connection:
            await self.connect()
        yield self._connection

    async def init_db(self) -> None:
        """Initialize database schema."""
        async with self.connection() as conn:
            await conn.executescript(SCHEMA)
            await conn.commit()
        logger.info("database_initialized", path=self.db_path)

    # --- Sources ---

    async def create_source(
        self,
        platform: SourcePlatform | str,
        identifier: str,
        display_name: str,
        scrape_frequency_hours: int = 6,
        is_active: bool = True,
    ) -> dict:
        """Register a content source.

        Raises:
            ValueError: For an unknown platform
            aiosqlite.IntegrityError: If the platform/identifier pair exists
        """
        platform = SourcePlatform(platform)
        async with self.connection() as conn:
            now = _now()
            cursor = await conn.execute(
                """
                INSERT INTO sources
                (platform, identifier, display_name, scrape_frequency_hours, is_active, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (platform.value, identifier, display_name, scrape_frequency_hours, 1 if is_active else 0, now, now),
            )
            await conn.commit()
            source_id = cursor.lastrowid
        logger.info("source_created", id=source_id, platform=platform.value, identifier=identifier)
        return await self.get_source(source_id)

    async def seed_sources(self, sources: Iterable[dict]) -> int:
        """Insert sources that are not registered yet.

        Args:
            sources: Dicts with platform, identifier, display_name and
                optionally scrape_frequency_hours

        Returns:
            Number of sources inserted
        """
        inserted = 0
        async with self.connection() as conn:
            now = _now()
            for source in sources:
                cursor = await conn.execute(
                    """
                    INSERT INTO sources
                    (platform, identifier, display_name, scrape_frequency_hours, is_active, created_at, updated_at)
                    VALUES (?, ?, ?, ?, 1, ?, ?)
                    ON CONFLICT (platform, identifier) DO NOTHING
                    """,
                    (
                        SourcePlatform(source["platform"]).value,
                        source["identifier"],
                        source["display_name"],
                        source.get("scrape_frequency_hours", 6),
                        now,
                        now,
                    ),
                )
                inserted += cursor.rowcount
            await conn.commit()
        logger.info("sources_seeded", inserted=inserted)
        return inserted

    async def list_sources(self, active_only: bool = False) -> list[dict]:
        """List sources ordered by platform and display name."""
        async with self.connection() as conn:
            query = "SELECT * FROM sources"
            if active_only:
                query += " WHERE is_active = 1"
            query += " ORDER BY platform, display_name"
            cursor = await conn.execute(query)
            rows = await cursor.fetchall()
        return [_decode_source(row) for row in rows]

    async def get_source(self, source_id: int) -> dict | None:
        async with self.connection() as conn:
            cursor = await conn.execute("SELECT * FROM sources WHERE id = ?", (source_id,))
            row = await cursor.fetchone()
        return _decode_source(row) if row else None

    async def update_source(self, source_id: int, updates: dict[str, Any]) -> dict | None:
        """Apply a partial update to a source.

        Raises:
            ValueError: For unknown fields or an unknown platform
        """
        unknown = set(updates) - SOURCE_UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown or read-only fields: {', '.join(sorted(unknown))}")

        values = dict(updates)
        if "platform" in values:
            values["platform"] = SourcePlatform(values["platform"]).value
        if "is_active" in values:
            values["is_active"] = 1 if values["is_active"] else 0

        if values:
            values["updated_at"] = _now()
            assignments = ", ".join(f"{key} = ?" for key in values)
            async with self.connection() as conn:
                await conn.execute(
                    f"UPDATE sources SET {assignments} WHERE id = ?",
                    (*values.values(), source_id),
                )
                await conn.commit()
        return await self.get_source(source_id)

    async def mark_source_scraped(self, source_id: int, scraped_at: datetime | None = None) -> None:
        """Record a successful scrape of a source."""
        when = (scraped_at or datetime.now(UTC)).isoformat()
        async with self.connection() as conn:
            await conn.execute(
                "UPDATE sources SET last_scraped_at = ?, updated_at = ? WHERE id = ?",
                (when, _now(), source_id),
            )
            await conn.commit()

    # --- Raw posts ---

    async def insert_raw_post(self, source_id: int, item: FeedItem, classification: Classification) -> bool:
        """Insert a raw post unless (source_id, external_id) is already known.

        Existing rows are never overwritten.

        Args:
            source_id: Owning source
            item: Normalized transport item
            classification: Initial verdict (PENDING or REJECTED)

        Returns:
            True if a new row was inserted
        """
        async with self.connection() as conn:
            now = _now()
            cursor = await conn.execute(
                """
                INSERT INTO raw_posts
                (source_id, external_id, title, body, author, url, score, comment_count,
                 posted_at, scraped_at, is_processed, is_opportunity, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 0, ?, ?)
                ON CONFLICT (source_id, external_id) DO NOTHING
                """,
                (
                    source_id,
                    item.external_id,
                    item.title,
                    item.body,
                    item.author,
                    item.url,
                    item.score,
                    item.comment_count,
                    item.posted_at.isoformat() if item.posted_at else None,
                    now,
                    classification.to_db(),
                    now,
                ),
            )
            await conn.commit()
        return cursor.rowcount == 1

    async def get_raw_post(self, post_id: int) -> RawPost | None:
        async with self.connection() as conn:
            cursor = await conn.execute("SELECT * FROM raw_posts WHERE id = ?", (post_id,))
            row = await cursor.fetchone()
        return _row_to_raw_post(row) if row else None

    async def count_raw_posts(self, source_id: int | None = None) -> int:
        async with self.connection() as conn:
            if source_id is None:
                cursor = await conn.execute("SELECT COUNT(*) FROM raw_posts")
            else:
                cursor = await conn.execute("SELECT COUNT(*) FROM raw_posts WHERE source_id = ?", (source_id,))
            return (await cursor.fetchone())[0]

    async def get_unresolved_posts(self, limit: int = 10) -> list[RawPost]:
        """Get posts awaiting LLM judgment, most popular first.

        Args:
            limit: Maximum number of posts to return

        Returns:
            List of pending, unprocessed RawPost objects
        """
        async with self.connection() as conn:
            cursor = await conn.execute(
                """
                SELECT * FROM raw_posts
                WHERE is_processed = 0 AND is_opportunity IS NULL
                ORDER BY score DESC, id ASC
                LIMIT ?
                """,
                (limit,),
            )
            rows = await cursor.fetchall()
        return [_row_to_raw_post(row) for row in rows]

    async def resolve_post(self, post_id: int, classification: Classification) -> None:
        """Record the final verdict for a post and mark it processed.

        Raises:
            ValueError: If classification is PENDING
        """
        if classification is Classification.PENDING:
            raise ValueError("A processed post must be CONFIRMED or REJECTED")

        async with self.connection() as conn:
            await conn.execute(
                "UPDATE raw_posts SET is_processed = 1, is_opportunity = ? WHERE id = ?",
                (classification.to_db(), post_id),
            )
            await conn.commit()
        logger.debug("post_resolved", post_id=post_id, classification=classification.value)

    # --- Scrape logs ---

    async def start_scrape_log(self, source_id: int) -> int:
        async with self.connection() as conn:
            now = _now()
            cursor = await conn.execute(
                "INSERT INTO scrape_logs (source_id, started_at, created_at) VALUES (?, ?, ?)",
                (source_id, now, now),
            )
            await conn.commit()
            return cursor.lastrowid

    async def complete_scrape_log(
        self,
        log_id: int,
        posts_found: int = 0,
        posts_new: int = 0,
        error_message: str | None = None,
    ) -> None:
        """Close a scrape log with whatever progress was reached."""
        async with self.connection() as conn:
            await conn.execute(
                """
                UPDATE scrape_logs SET
                    completed_at = ?,
                    posts_found = ?,
                    posts_new = ?,
                    error_message = ?
                WHERE id = ?
                """,
                (_now(), posts_found, posts_new, error_message, log_id),
            )
            await conn.commit()

    async def get_scrape_logs(self, limit: int = 10, source_id: int | None = None) -> list[dict]:
        """Get recent scrape logs with their source display name."""
        async with self.connection() as conn:
            query = """
                SELECT l.*, s.display_name AS source_name
                FROM scrape_logs l
                LEFT JOIN sources s ON l.source_id = s.id
            """
            params: list[Any] = []
            if source_id is not None:
                query += " WHERE l.source_id = ?"
                params.append(source_id)
            query += " ORDER BY l.created_at DESC, l.id DESC LIMIT ?"
            params.append(limit)
            cursor = await conn.execute(query, params)
            rows = await cursor.fetchall()
        return [dict(row) for row in rows]

    # --- Niches ---

    async def list_niches(self, active_only: bool = False) -> list[dict]:
        """List niches ordered by priority (high first) then name."""
        async with self.connection() as conn:
            query = "SELECT * FROM niches"
            if active_only:
                query += " WHERE is_active = 1"
            query += f" ORDER BY {PRIORITY_SORT_SQL}, name"
            cursor = await conn.execute(query)
            rows = await cursor.fetchall()
        return [_decode_niche(row) for row in rows]

    async def get_niche(self, niche_id: int) -> dict | None:
        async with self.connection() as conn:
            cursor = await conn.execute("SELECT * FROM niches WHERE id = ?", (niche_id,))
            row = await cursor.fetchone()
        return _decode_niche(row) if row else None

    async def create_niche(
        self,
        name: str,
        keywords: list[str],
        priority: Priority | str,
        description: str | None = None,
        is_active: bool = True,
    ) -> dict:
        async with self.connection() as conn:
            now = _now()
            cursor = await conn.execute(
                """
                INSERT INTO niches (name, keywords, priority, description, is_active, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (name, json.dumps(keywords), Priority(priority).value, description, 1 if is_active else 0, now, now),
            )
            await conn.commit()
            niche_id = cursor.lastrowid
        logger.info("niche_created", id=niche_id, name=name, keywords=keywords)
        return await self.get_niche(niche_id)

    async def update_niche(self, niche_id: int, updates: dict[str, Any]) -> dict | None:
        """Apply a partial update to a niche.

        Raises:
            ValueError: For unknown fields or an unknown priority
        """
        unknown = set(updates) - NICHE_UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown or read-only fields: {', '.join(sorted(unknown))}")

        # Only description may be cleared; a null elsewhere means "leave as is"
        values = {k: v for k, v in updates.items() if v is not None or k == "description"}
        if "keywords" in values:
            values["keywords"] = json.dumps(values["keywords"])
        if "priority" in values:
            values["priority"] = Priority(values["priority"]).value
        if "is_active" in values:
            values["is_active"] = 1 if values["is_active"] else 0

        if values:
            values["updated_at"] = _now()
            assignments = ", ".join(f"{key} = ?" for key in values)
            async with self.connection() as conn:
                await conn.execute(f"UPDATE niches SET {assignments} WHERE id = ?", (*values.values(), niche_id))
                await conn.commit()
        return await self.get_niche(niche_id)

    async def delete_niche(self, niche_id: int) -> bool:
        async with self.connection() as conn:
            cursor = await conn.execute("DELETE FROM niches WHERE id = ?", (niche_id,))
            await conn.commit()
        return cursor.rowcount > 0

    async def seed_niches(self, niches: Iterable[Any]) -> int:
        """Insert niches whose name is not present yet.

        Args:
            niches: Objects with name, keywords, priority, description, is_active

        Returns:
            Number of niches inserted
        """
        existing = {n["name"] for n in await self.list_niches()}
        inserted = 0
        for niche in niches:
            if niche.name in existing:
                continue
            await self.create_niche(
                name=niche.name,
                keywords=list(niche.keywords),
                priority=niche.priority,
                description=niche.description,
                is_active=niche.is_active,
            )
            inserted += 1
        return inserted

    # --- Opportunities ---

    async def create_opportunity(
        self,
        analysis: OpportunityAnalysis,
        raw_post_id: int | None = None,
        provider: AIProvider | None = None,
    ) -> int:
        """Persist an accepted analysis as a new opportunity.

        Args:
            analysis: Validated LLM analysis
            raw_post_id: Source post (None for manual entries), marked CONFIRMED
                in the same transaction
            provider: Provider that produced the analysis

        Returns:
            ID of the inserted opportunity
        """
        async with self.connection() as conn:
            now = _now()
            try:
                cursor = await conn.execute(
                    """
                    INSERT INTO opportunities (
                        raw_post_id, title, problem_statement, proposed_solution, target_audience,
                        pain_intensity_score, market_size_score, technical_feasibility_score,
                        competition_score, monetization_potential_score,
                        ai_analysis_summary, similar_existing_products, suggested_mvp_features,
                        estimated_build_time, suggested_pricing_model, keywords,
                        status, priority, ai_provider, analyzed_at, created_at, updated_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 'new', ?, ?, ?, ?, ?)
                    """,
                    (
                        raw_post_id,
                        analysis.title,
                        analysis.problem_statement,
                        analysis.proposed_solution,
                        analysis.target_audience,
                        analysis.pain_intensity_score,
                        analysis.market_size_score,
                        analysis.technical_feasibility_score,
                        analysis.competition_score,
                        analysis.monetization_potential_score,
                        analysis.ai_analysis_summary,
                        json.dumps(analysis.similar_existing_products),
                        json.dumps(analysis.suggested_mvp_features),
                        analysis.estimated_build_time,
                        analysis.suggested_pricing_model,
                        json.dumps(analysis.keywords),
                        analysis.priority.value,
                        provider.value if provider else None,
                        now,
                        now,
                        now,
                    ),
                )
                opportunity_id = cursor.lastrowid
                if raw_post_id is not None:
                    # The post is confirmed in the same transaction as its opportunity
                    await conn.execute(
                        "UPDATE raw_posts SET is_processed = 1, is_opportunity = ? WHERE id = ?",
                        (Classification.CONFIRMED.to_db(), raw_post_id),
                    )
                await conn.commit()
            except aiosqlite.Error:
                await conn.rollback()
                raise

        logger.info(
            "opportunity_saved",
            opportunity_id=opportunity_id,
            raw_post_id=raw_post_id,
            title=analysis.title[:80],
            priority=analysis.priority.value,
        )
        return opportunity_id

    async def create_manual_opportunity(
        self,
        title: str,
        problem_statement: str,
        proposed_solution: str | None = None,
        target_audience: str | None = None,
        notes: str | None = None,
    ) -> dict:
        """Create an opportunity by hand with neutral scores.

        Raises:
            ValueError: If title or problem_statement is empty
        """
        if not title or not problem_statement:
            raise ValueError("Missing required fields: title and problem_statement")

        async with self.connection() as conn:
            now = _now()
            cursor = await conn.execute(
                """
                INSERT INTO opportunities (
                    title, problem_statement, proposed_solution, target_audience, notes,
                    pain_intensity_score, market_size_score, technical_feasibility_score,
                    competition_score, monetization_potential_score,
                    status, priority, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, 5, 5, 5, 5, 5, 'new', 'medium', ?, ?)
                """,
                (title, problem_statement, proposed_solution, target_audience, notes, now, now),
            )
            await conn.commit()
            opportunity_id = cursor.lastrowid
        logger.info("manual_opportunity_created", opportunity_id=opportunity_id)
        return await self.get_opportunity(opportunity_id, with_relations=False)

    async def list_opportunities(
        self,
        status: str | None = None,
        priority: str | None = None,
        starred: bool = False,
        search: str | None = None,
        limit: int = 50,
        offset: int = 0,
        sort_by: str = "overall_score",
        sort_order: str = "desc",
    ) -> tuple[list[dict], int]:
        """List opportunities with filtering, sorting and pagination.

        Returns:
            Tuple of (page of opportunity dicts, total matching count)

        Raises:
            ValueError: For an unsupported sort column
        """
        if sort_by not in OPPORTUNITY_SORTABLE_FIELDS:
            raise ValueError(f"Unsupported sortBy: {sort_by}")
        direction = "ASC" if sort_order.lower() == "asc" else "DESC"

        clauses: list[str] = []
        params: list[Any] = []
        if status:
            clauses.append("o.status = ?")
            params.append(status)
        if priority:
            clauses.append("o.priority = ?")
            params.append(priority)
        if starred:
            clauses.append("o.is_starred = 1")
        if search:
            clauses.append("(o.title LIKE ? OR o.problem_statement LIKE ?)")
            params.extend([f"%{search}%", f"%{search}%"])
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""

        async with self.connection() as conn:
            cursor = await conn.execute(f"SELECT COUNT(*) FROM opportunities o{where}", params)
            total = (await cursor.fetchone())[0]

            cursor = await conn.execute(
                f"""
                SELECT o.*, p.url AS post_url, p.source_id AS post_source_id
                FROM opportunities o
                LEFT JOIN raw_posts p ON o.raw_post_id = p.id
                {where}
                ORDER BY o.{sort_by} {direction}, o.id DESC
                LIMIT ? OFFSET ?
                """,
                (*params, limit, offset),
            )
            rows = await cursor.fetchall()

        data = []
        for row in rows:
            opportunity = _decode_opportunity(row)
            post_url = opportunity.pop("post_url")
            post_source_id = opportunity.pop("post_source_id")
            opportunity["raw_post"] = (
                {"url": post_url, "source_id": post_source_id} if opportunity["raw_post_id"] else None
            )
            data.append(opportunity)
        return data, total

    async def get_opportunity(self, opportunity_id: int, with_relations: bool = True) -> dict | None:
        """Get an opportunity, optionally with its raw post, research and reactions."""
        async with self.connection() as conn:
            cursor = await conn.execute("SELECT * FROM opportunities WHERE id = ?", (opportunity_id,))
            row = await cursor.fetchone()
            if not row:
                return None
            opportunity = _decode_opportunity(row)
            if not with_relations:
                return opportunity

            opportunity["raw_post"] = None
            if opportunity["raw_post_id"]:
                cursor = await conn.execute(
                    """
                    SELECT url, title, body, score, comment_count, source_id
                    FROM raw_posts WHERE id = ?
                    """,
                    (opportunity["raw_post_id"],),
                )
                post = await cursor.fetchone()
                opportunity["raw_post"] = dict(post) if post else None

        opportunity["research"] = await self.list_research(opportunity_id)
        opportunity["reactions"] = await self.list_reactions(opportunity_id)
        return opportunity

    async def update_opportunity(self, opportunity_id: int, updates: dict[str, Any]) -> dict | None:
        """Apply a partial update and append the matching audit reactions.

        A status change records `status_change` with old and new values, a
        star toggle records `starred`/`unstarred`, and any `notes` key
        records a `note`. The update and its reactions commit together.

        Returns:
            The updated opportunity, or None if it does not exist

        Raises:
            ValueError: For unknown fields or invalid values (nothing is written)
        """
        values = _validate_opportunity_updates(updates)

        current = await self.get_opportunity(opportunity_id, with_relations=False)
        if current is None:
            return None

        reactions: list[tuple[ReactionType, dict]] = []
        if "status" in values and values["status"] != current["status"]:
            reactions.append(
                (ReactionType.STATUS_CHANGE, {"old_status": current["status"], "new_status": values["status"]})
            )
        if "is_starred" in values and bool(values["is_starred"]) != current["is_starred"]:
            reactions.append((ReactionType.STARRED if values["is_starred"] else ReactionType.UNSTARRED, {}))
        if "notes" in values:
            reactions.append((ReactionType.NOTE, {"note": values["notes"]}))

        async with self.connection() as conn:
            now = _now()
            if values:
                values["updated_at"] = now
                assignments = ", ".join(f"{key} = ?" for key in values)
                await conn.execute(
                    f"UPDATE opportunities SET {assignments} WHERE id = ?",
                    (*values.values(), opportunity_id),
                )
            for action_type, action_data in reactions:
                await conn.execute(
                    "INSERT INTO reactions (opportunity_id, action_type, action_data, created_at) VALUES (?, ?, ?, ?)",
                    (opportunity_id, action_type.value, json.dumps(action_data), now),
                )
            await conn.commit()

        if reactions:
            logger.info(
                "opportunity_updated",
                opportunity_id=opportunity_id,
                reactions=[r[0].value for r in reactions],
            )
        return await self.get_opportunity(opportunity_id, with_relations=False)

    async def delete_opportunity(self, opportunity_id: int) -> bool:
        """Delete an opportunity; research and reactions cascade."""
        async with self.connection() as conn:
            cursor = await conn.execute("DELETE FROM opportunities WHERE id = ?", (opportunity_id,))
            await conn.commit()
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("opportunity_deleted", opportunity_id=opportunity_id)
        return deleted

    # --- Research & reactions ---

    async def add_research(
        self,
        opportunity_id: int,
        research_type: ResearchType | str,
        result: ResearchResult,
        provider: AIProvider | None = None,
    ) -> dict:
        """Store generated research and log a `research_added` reaction.

        An opportunity still in `new` moves to `researching`.

        Raises:
            OpportunityNotFound: If the opportunity does not exist
        """
        research_type = ResearchType(research_type)
        current = await self.get_opportunity(opportunity_id, with_relations=False)
        if current is None:
            raise OpportunityNotFound(opportunity_id)

        async with self.connection() as conn:
            now = _now()
            cursor = await conn.execute(
                """
                INSERT INTO research
                (opportunity_id, research_type, title, content, sources, ai_generated, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, 1, ?, ?)
                """,
                (opportunity_id, research_type.value, result.title, result.content, json.dumps(result.sources), now, now),
            )
            research_id = cursor.lastrowid

            await conn.execute(
                "INSERT INTO reactions (opportunity_id, action_type, action_data, created_at) VALUES (?, ?, ?, ?)",
                (
                    opportunity_id,
                    ReactionType.RESEARCH_ADDED.value,
                    json.dumps(
                        {
                            "research_type": research_type.value,
                            "research_id": research_id,
                            "provider": provider.value if provider else None,
                        }
                    ),
                    now,
                ),
            )

            if current["status"] == OpportunityStatus.NEW.value:
                await conn.execute(
                    "UPDATE opportunities SET status = ?, updated_at = ? WHERE id = ?",
                    (OpportunityStatus.RESEARCHING.value, now, opportunity_id),
                )
            await conn.commit()

            cursor = await conn.execute("SELECT * FROM research WHERE id = ?", (research_id,))
            row = await cursor.fetchone()

        logger.info(
            "research_added",
            opportunity_id=opportunity_id,
            research_id=research_id,
            research_type=research_type.value,
        )
        return _decode_research(row)

    async def list_research(self, opportunity_id: int) -> list[dict]:
        """List research for an opportunity, newest first."""
        async with self.connection() as conn:
            cursor = await conn.execute(
                "SELECT * FROM research WHERE opportunity_id = ? ORDER BY created_at DESC, id DESC",
                (opportunity_id,),
            )
            rows = await cursor.fetchall()
        return [_decode_research(row) for row in rows]

    async def list_reactions(self, opportunity_id: int) -> list[dict]:
        """List the audit trail of an opportunity, oldest first."""
        async with self.connection() as conn:
            cursor = await conn.execute(
                "SELECT * FROM reactions WHERE opportunity_id = ? ORDER BY created_at ASC, id ASC",
                (opportunity_id,),
            )
            rows = await cursor.fetchall()
        return [_decode_reaction(row) for row in rows]

    # --- Stats ---

    async def get_stats(self) -> dict:
        """Get dashboard statistics.

        Returns:
            Dictionary of opportunity/post counts, recent scrape logs and breakdowns
        """
        async with self.connection() as conn:

            async def scalar(query: str) -> Any:
                cursor = await conn.execute(query)
                return (await cursor.fetchone())[0]

            total = await scalar("SELECT COUNT(*) FROM opportunities")
            new = await scalar("SELECT COUNT(*) FROM opportunities WHERE status = 'new'")
            starred = await scalar("SELECT COUNT(*) FROM opportunities WHERE is_starred = 1")
            avg = await scalar("SELECT AVG(overall_score) FROM opportunities WHERE overall_score IS NOT NULL")
            total_posts = await scalar("SELECT COUNT(*) FROM raw_posts")
            backlog = await scalar(
                "SELECT COUNT(*) FROM raw_posts WHERE is_processed = 0 AND is_opportunity IS NULL"
            )

            cursor = await conn.execute("SELECT status, COUNT(*) AS n FROM opportunities GROUP BY status")
            status_breakdown = {row["status"]: row["n"] for row in await cursor.fetchall()}
            cursor = await conn.execute("SELECT priority, COUNT(*) AS n FROM opportunities GROUP BY priority")
            priority_breakdown = {row["priority"]: row["n"] for row in await cursor.fetchall()}

        return {
            "opportunities": {
                "total": total,
                "new": new,
                "starred": starred,
                "average_score": round(avg, 2) if avg else 0,
            },
            "posts": {
                "total": total_posts,
                "unprocessed": backlog,
            },
            "recent_scrape_logs": await self.get_scrape_logs(limit=10),
            "breakdowns": {
                "status": status_breakdown,
                "priority": priority_breakdown,
            },
        }
