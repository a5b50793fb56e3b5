import logging
from datetime import datetime
from typing import List, Optional

from pydantic import ValidationError
from sqlalchemy import select

from core.utils import ensure_utc
from database.models import CompanyProfileRecord
from database.repositories.base import BaseRepository
from database.repositories.interfaces import CompanyProfileStore
from etl.schemas import CompanyProfile

logger = logging.getLogger(__name__)

_COLUMNS = [c.name for c in CompanyProfileRecord.__table__.columns]


class SqlCompanyProfileStore(BaseRepository, CompanyProfileStore):
    """SQLAlchemy-backed company store with upsert on company id."""

    def _to_model(self, row: CompanyProfileRecord) -> Optional[CompanyProfile]:
        try:
            return CompanyProfile.model_validate({name: getattr(row, name) for name in _COLUMNS})
        except ValidationError as e:
            logger.error(f"Skipping unreadable company_profile row {row.company_id}: {e}")
            return None

    def get(self, company_id: str) -> Optional[CompanyProfile]:
        if not company_id:
            raise ValueError("company_id is required")
        with self.scope() as session:
            row = session.get(CompanyProfileRecord, company_id)
            return self._to_model(row) if row is not None else None

    def get_since(self, since: datetime) -> List[CompanyProfile]:
        stmt = (
            select(CompanyProfileRecord)
            .where(CompanyProfileRecord.updated_at >= ensure_utc(since))
            .order_by(CompanyProfileRecord.created_at, CompanyProfileRecord.company_id)
        )
        with self.scope() as session:
            profiles = []
            for row in session.execute(stmt).scalars().all():
                profile = self._to_model(row)
                if profile is not None:
                    profiles.append(profile)
            return profiles

    def add(self, profile: CompanyProfile) -> None:
        with self.scope() as session:
            row = session.get(CompanyProfileRecord, profile.company_id)
            if row is None:
                row = CompanyProfileRecord(company_id=profile.company_id)
                session.add(row)
            for name, value in profile.model_dump().items():
                setattr(row, name, value)

    def update(self, profile: CompanyProfile) -> None:
        self.add(profile)

    def delete(self, profile: CompanyProfile) -> bool:
        return self.delete_by_company_id(profile.company_id)

    def delete_by_company_id(self, company_id: str) -> bool:
        with self.scope() as session:
            row = session.get(CompanyProfileRecord, company_id)
            if row is None:
                return False
            session.delete(row)
            logger.info(f"Deleted company profile {company_id}")
            return True
