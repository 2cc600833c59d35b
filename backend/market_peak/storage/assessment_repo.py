"""Assessment result repository."""

import asyncio
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import insert, select
from sqlalchemy.exc import SQLAlchemyError

from market_peak.storage.database import AssessmentTable, Database, get_database
from peak_core.errors import StoreUnavailableError


class AssessmentRepository:
    """Append-only repository for persisted assessments."""

    def __init__(self, db: Database | None = None):
        self._db = db

    @property
    def db(self) -> Database:
        return self._db or get_database()

    async def insert(
        self,
        document: dict[str, Any],
        timestamp: datetime,
        score: float,
        service: str,
    ) -> str:
        """Insert a new assessment document.

        Returns:
            The generated document id

        Raises:
            StoreUnavailableError: If the database cannot be reached
        """
        doc_id = uuid.uuid4().hex
        try:
            async with self.db.session() as session:
                await session.execute(
                    insert(AssessmentTable).values(
                        id=doc_id,
                        timestamp=timestamp,
                        score=score,
                        service=service,
                        document=document,
                    )
                )
        except (SQLAlchemyError, OSError, asyncio.TimeoutError) as e:
            raise StoreUnavailableError(f"Failed to store assessment: {e}") from e
        return doc_id

    async def get_recent(self, limit: int) -> list[tuple[str, dict[str, Any]]]:
        """Get the newest assessments as ``(id, document)`` pairs.

        Raises:
            StoreUnavailableError: If the database cannot be reached
        """
        try:
            async with self.db.session() as session:
                stmt = (
                    select(AssessmentTable.id, AssessmentTable.document)
                    .order_by(AssessmentTable.timestamp.desc())
                    .limit(limit)
                )
                result = await session.execute(stmt)
                return [(row.id, row.document) for row in result.all()]
        except (SQLAlchemyError, OSError, asyncio.TimeoutError) as e:
            raise StoreUnavailableError(f"Failed to query assessments: {e}") from e
