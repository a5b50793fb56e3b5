"""
Store interfaces consumed by the ingestion, reconciliation and display layers.

Both stores have upsert semantics: ``add`` on an existing key updates it and
``update`` on a missing key inserts it. Implementations are responsible for
their own thread safety.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from etl.schemas import CompanyProfile, JobSummary


class JobSummaryStore(ABC):
    """Job summaries keyed by provider job id."""

    @abstractmethod
    def get(self, job_id: str) -> Optional[JobSummary]:
        pass

    @abstractmethod
    def get_since(self, since: datetime) -> List[JobSummary]:
        """Summaries with updated_at >= since."""
        pass

    @abstractmethod
    def get_posted_since(self, since: datetime) -> List[JobSummary]:
        """Summaries with posted_at >= since, in store order."""
        pass

    @abstractmethod
    def add(self, summary: JobSummary) -> None:
        pass

    @abstractmethod
    def update(self, summary: JobSummary) -> None:
        pass

    @abstractmethod
    def delete(self, summary: JobSummary) -> bool:
        pass


class CompanyProfileStore(ABC):
    """Company profiles keyed by company id."""

    @abstractmethod
    def get(self, company_id: str) -> Optional[CompanyProfile]:
        pass

    @abstractmethod
    def get_since(self, since: datetime) -> List[CompanyProfile]:
        """Profiles with updated_at >= since."""
        pass

    @abstractmethod
    def add(self, profile: CompanyProfile) -> None:
        pass

    @abstractmethod
    def update(self, profile: CompanyProfile) -> None:
        pass

    @abstractmethod
    def delete(self, profile: CompanyProfile) -> bool:
        pass
