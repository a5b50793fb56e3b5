"""Display Repository - cached, date-ordered snapshots for paginated reads."""
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from core.cache import CacheService
from core.utils import ensure_utc, utc_now
from database.repositories.interfaces import CompanyProfileStore, JobSummaryStore
from etl.schemas import CompanyProfile, JobSummary

logger = logging.getLogger(__name__)

GENERATION_KEY = "display:generation"
# Outlives any snapshot so a lost counter cannot resurrect old snapshots
GENERATION_TTL_SECONDS = 30 * 24 * 60 * 60

ModelT = TypeVar("ModelT", bound=BaseModel)


def _check_paging(from_date: datetime, page: int, page_size: int) -> None:
    if from_date is None:
        raise ValueError("from_date is required")
    if page < 0:
        raise ValueError(f"page must be >= 0, got {page}")
    if page_size <= 0:
        raise ValueError(f"page_size must be > 0, got {page_size}")


class DisplayRepository:
    """
    Paginated read access over job summaries and company profiles.

    Each snapshot holds every record with timestamp >= from_date, most recent
    first (ties keep store order), and lives in the shared cache for
    ``snapshot_ttl_seconds``. ``refresh()`` invalidates all snapshots at once
    by bumping a generation counter that is part of every snapshot key.
    """

    def __init__(
        self,
        job_store: JobSummaryStore,
        company_store: CompanyProfileStore,
        cache: CacheService,
        snapshot_ttl_seconds: int = 300
    ):
        if job_store is None or company_store is None or cache is None:
            raise ValueError("job_store, company_store and cache are required")
        self.jobs = job_store
        self.companies = company_store
        self.cache = cache
        self.snapshot_ttl_seconds = snapshot_ttl_seconds

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get_paginated_jobs(self, from_date: datetime, page: int, page_size: int) -> List[JobSummary]:
        _check_paging(from_date, page, page_size)
        return self._page(self._job_snapshot(from_date), page, page_size)

    def get_paginated_companies(self, from_date: datetime, page: int, page_size: int) -> List[CompanyProfile]:
        _check_paging(from_date, page, page_size)
        return self._page(self._company_snapshot(from_date), page, page_size)

    def count_jobs(self, from_date: datetime) -> int:
        return len(self._job_snapshot(from_date))

    def count_companies(self, from_date: datetime) -> int:
        return len(self._company_snapshot(from_date))

    def refresh(self) -> int:
        """Invalidate every snapshot. Returns the new generation."""
        generation = self._generation() + 1
        self.cache.put(GENERATION_KEY, generation, GENERATION_TTL_SECONDS)
        logger.info(f"Display snapshots invalidated (generation {generation})")
        return generation

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    @staticmethod
    def _page(snapshot: List[ModelT], page: int, page_size: int) -> List[ModelT]:
        start = page * page_size
        return snapshot[start:start + page_size]

    def _generation(self) -> int:
        value = self.cache.try_get(GENERATION_KEY)
        return value if isinstance(value, int) else 0

    def _key(self, kind: str, from_date: datetime) -> str:
        return f"display:{kind}:{self._generation()}:{ensure_utc(from_date).isoformat()}"

    def _job_snapshot(self, from_date: datetime) -> List[JobSummary]:
        return self._snapshot(
            "jobs",
            from_date,
            JobSummary,
            lambda since: self.jobs.get_posted_since(since),
            lambda job: job.posted_at,
        )

    def _company_snapshot(self, from_date: datetime) -> List[CompanyProfile]:
        return self._snapshot(
            "companies",
            from_date,
            CompanyProfile,
            lambda since: self.companies.get_since(since),
            lambda profile: profile.updated_at,
        )

    def _snapshot(
        self,
        kind: str,
        from_date: datetime,
        model: Type[ModelT],
        load: Callable[[datetime], List[ModelT]],
        timestamp: Callable[[ModelT], datetime],
    ) -> List[ModelT]:
        from_date = ensure_utc(from_date)
        key = self._key(kind, from_date)

        cached = self.cache.try_get(key)
        if isinstance(cached, list):
            return self._rehydrate(model, cached)

        try:
            items = load(from_date)
        except Exception:
            logger.exception(f"Failed to load {kind} snapshot since {from_date.isoformat()}")
            return []

        items = [item for item in items if timestamp(item) >= from_date]
        # sorted() is stable, so equal timestamps keep store order
        items = sorted(items, key=timestamp, reverse=True)

        self.cache.put(key, [item.model_dump(mode="json") for item in items], self.snapshot_ttl_seconds)
        logger.info(f"Built {kind} snapshot since {from_date.date()}: {len(items)} items")
        return items

    @staticmethod
    def _rehydrate(model: Type[ModelT], raw_items: List[Dict[str, Any]]) -> List[ModelT]:
        items: List[ModelT] = []
        for raw in raw_items:
            try:
                items.append(model.model_validate(raw))
            except ValidationError as e:
                logger.error(f"Skipping unreadable {model.__name__} in snapshot: {e}")
        return items


def default_from_date(lookback_days: int, now: Optional[datetime] = None) -> datetime:
    """Midnight UTC ``lookback_days`` ago, so repeated requests share one snapshot."""
    now = now or utc_now()
    start = now - timedelta(days=lookback_days)
    return start.replace(hour=0, minute=0, second=0, microsecond=0)
