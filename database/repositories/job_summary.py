import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
from sqlalchemy import select

from core.utils import ensure_utc
from database.models import JobSummaryRecord
from database.repositories.base import BaseRepository
from database.repositories.interfaces import JobSummaryStore
from etl.schemas import JobSummary

logger = logging.getLogger(__name__)

_COLUMNS = [c.name for c in JobSummaryRecord.__table__.columns]


def _row_to_dict(row: JobSummaryRecord) -> Dict[str, Any]:
    return {name: getattr(row, name) for name in _COLUMNS}


class SqlJobSummaryStore(BaseRepository, JobSummaryStore):
    """SQLAlchemy-backed job store with upsert on provider job id."""

    def _to_model(self, row: JobSummaryRecord) -> Optional[JobSummary]:
        try:
            return JobSummary.model_validate(_row_to_dict(row))
        except ValidationError as e:
            logger.error(f"Skipping unreadable job_summary row {row.id}: {e}")
            return None

    def _to_models(self, rows) -> List[JobSummary]:
        models = []
        for row in rows:
            model = self._to_model(row)
            if model is not None:
                models.append(model)
        return models

    @staticmethod
    def _apply(row: JobSummaryRecord, summary: JobSummary) -> None:
        data = summary.model_dump()
        data.pop("id", None)
        for name, value in data.items():
            setattr(row, name, value)

    def _find(self, session, job_id: str) -> Optional[JobSummaryRecord]:
        stmt = select(JobSummaryRecord).where(JobSummaryRecord.job_id == job_id)
        return session.execute(stmt).scalar_one_or_none()

    def get(self, job_id: str) -> Optional[JobSummary]:
        if not job_id:
            raise ValueError("job_id is required")
        with self.scope() as session:
            row = self._find(session, job_id)
            return self._to_model(row) if row is not None else None

    def get_since(self, since: datetime) -> List[JobSummary]:
        stmt = (
            select(JobSummaryRecord)
            .where(JobSummaryRecord.updated_at >= ensure_utc(since))
            .order_by(JobSummaryRecord.updated_at, JobSummaryRecord.id)
        )
        with self.scope() as session:
            return self._to_models(session.execute(stmt).scalars().all())

    def get_posted_since(self, since: datetime) -> List[JobSummary]:
        stmt = (
            select(JobSummaryRecord)
            .where(JobSummaryRecord.posted_at >= ensure_utc(since))
            .order_by(JobSummaryRecord.created_at, JobSummaryRecord.id)
        )
        with self.scope() as session:
            return self._to_models(session.execute(stmt).scalars().all())

    def add(self, summary: JobSummary) -> None:
        with self.scope() as session:
            row = self._find(session, summary.job_id)
            if row is None:
                row = JobSummaryRecord(id=summary.id)
                session.add(row)
            self._apply(row, summary)

    def update(self, summary: JobSummary) -> None:
        # Same upsert path; the provider job id is the key
        self.add(summary)

    def delete(self, summary: JobSummary) -> bool:
        return self.delete_by_job_id(summary.job_id)

    def delete_by_job_id(self, job_id: str) -> bool:
        with self.scope() as session:
            row = self._find(session, job_id)
            if row is None:
                return False
            session.delete(row)
            logger.info(f"Deleted job summary {job_id}")
            return True
