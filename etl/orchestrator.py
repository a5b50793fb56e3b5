import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Sequence

from core.config_loader import IngestionConfig, SearchConfig
from core.llm.interfaces import LLMProvider
from core.serpapi_client import SerpApiClient
from core.utils import CompanyFingerprinter, stable_hash, utc_now
from database.repositories.interfaces import JobSummaryStore
from etl.rules import ValidationPolicy, validate_posting
from etl.schemas import SOURCE_NAME, JobPosting, JobSummary

logger = logging.getLogger(__name__)

_POSTED_AGO = re.compile(r"(\d+)\+?\s*(minute|hour|day|week|month)s?\s+ago", re.IGNORECASE)
_UNIT_DELTAS = {
    "minute": timedelta(minutes=1),
    "hour": timedelta(hours=1),
    "day": timedelta(days=1),
    "week": timedelta(weeks=1),
    "month": timedelta(days=30),
}


def parse_posted_at(posting: JobPosting, now: datetime) -> datetime:
    """Resolve "3 days ago" style posting ages against ``now``; unknown ages map to now."""
    candidates = [posting.detected_extensions.get("posted_at")] + list(posting.extensions)
    for candidate in candidates:
        if not isinstance(candidate, str):
            continue
        match = _POSTED_AGO.search(candidate)
        if match:
            amount, unit = int(match.group(1)), match.group(2).lower()
            return now - amount * _UNIT_DELTAS[unit]
    return now


def calculate_content_hash(posting: JobPosting, normalized_title: str) -> str:
    return stable_hash(
        normalized_title,
        posting.company_name,
        posting.location,
        posting.description,
    )


@dataclass
class IngestionResult:
    """Counters for one ingestion pass."""
    fetched: int = 0
    created: int = 0
    updated: int = 0
    duplicates: int = 0
    rejected: int = 0
    failed: int = 0

    @property
    def processed(self) -> bool:
        return self.fetched > 0


class JobIngestionService:
    """Fetch, validate, enrich and persist postings.

    Postings are handled one at a time in retrieval order. A failure on one
    posting is logged and the batch moves on.

    Usage:
        service = JobIngestionService(search_client, ai_service, job_store, config.ingestion)
        service.update_job_source()
    """

    def __init__(
        self,
        search_client: SerpApiClient,
        ai_service: LLMProvider,
        job_store: JobSummaryStore,
        config: Optional[IngestionConfig] = None,
        clock=utc_now
    ):
        if search_client is None or ai_service is None or job_store is None:
            raise ValueError("search_client, ai_service and job_store are required")
        self.search = search_client
        self.ai = ai_service
        self.jobs = job_store
        self.config = config or IngestionConfig()
        self.policy = ValidationPolicy.from_config(self.config)
        self.clock = clock

    def update_job_source(self) -> bool:
        """Run one ingestion pass. False when retrieval returned nothing."""
        return self.run().processed

    def run(self, searches: Optional[Sequence[SearchConfig]] = None) -> IngestionResult:
        result = IngestionResult()
        for search in searches or self.config.get_searches():
            postings = self.search.fetch_jobs(search.query, search.location)
            if not postings:
                logger.warning(f"No postings returned for '{search.query}' in '{search.location}'")
                continue

            result.fetched += len(postings)
            for posting in postings:
                self._ingest_safely(posting, result)

        logger.info(
            f"Ingestion finished: fetched={result.fetched} created={result.created} "
            f"updated={result.updated} duplicates={result.duplicates} "
            f"rejected={result.rejected} failed={result.failed}"
        )
        return result

    def _ingest_safely(self, posting: JobPosting, result: IngestionResult) -> None:
        try:
            outcome = self.ingest_one(posting)
        except Exception:
            logger.exception(f"Failed to ingest job {posting.job_id}")
            result.failed += 1
            return

        if outcome == "created":
            result.created += 1
        elif outcome == "updated":
            result.updated += 1
        elif outcome == "duplicate":
            result.duplicates += 1
        else:
            result.rejected += 1

    def ingest_one(self, posting: JobPosting) -> str:
        """Process a single posting.

        Returns one of "created", "updated", "duplicate" or "rejected".
        """
        if not posting.job_id:
            logger.info("Posting without a provider job id, skipping.")
            return "rejected"

        # 1. Normalize & validate
        title = self.policy.normalize_title(posting.title)
        reason = validate_posting(posting, title, self.policy)
        if reason:
            logger.info(f"Job with ID {posting.job_id} rejected: {reason}, skipping.")
            return "rejected"

        # 2. Duplicate check
        content_hash = calculate_content_hash(posting, title)
        existing = self.jobs.get(posting.job_id)
        if existing is not None and existing.content_hash == content_hash:
            logger.info(f"Job with ID {posting.job_id} already exists, skipping.")
            return "duplicate"

        # 3. Division inference (best effort)
        inference = self.ai.infer_division(posting.company_name, posting.description)
        if inference is None:
            logger.warning(f"No division inferred for job {posting.job_id}; storing without one")

        now = self.clock()
        summary = JobSummary(
            job_id=posting.job_id,
            company_id=CompanyFingerprinter.calculate(posting.company_name),
            company_name=posting.company_name.strip(),
            hiring_agency=posting.via,
            job_title=title,
            location=posting.location,
            job_description=posting.description,
            division=inference.division if inference else "",
            confidence=inference.confidence if inference else 0,
            reasoning=inference.reasoning if inference else "",
            source_name=SOURCE_NAME,
            source_link=posting.share_link,
            job_highlights=posting.job_highlights,
            content_hash=content_hash,
            posted_at=parse_posted_at(posting, now),
            created_at=now,
            updated_at=now,
        )

        # 4. Persist
        if existing is not None:
            summary = summary.model_copy(update={
                "id": existing.id,
                "created_at": existing.created_at,
            })
            self.jobs.update(summary)
            logger.info(f"Updated job {posting.job_id}: {title} at {summary.company_name}")
            return "updated"

        self.jobs.add(summary)
        logger.info(f"New job stored: {title} at {summary.company_name}")
        return "created"
