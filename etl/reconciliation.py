"""
Company profile reconciliation.

Folds recently updated job summaries into one CompanyProfile per company.
Profiles are merged, never blindly overwritten: ``merge_profiles`` takes two
immutable snapshots and returns a new value, and a profile is written only
when the merged content differs from what is stored. Running reconciliation
twice over the same jobs therefore writes nothing the second time.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional, Tuple
from urllib.parse import urlparse

from core.config_loader import ReconciliationConfig
from core.llm.interfaces import LLMProvider
from core.serpapi_client import SerpApiClient
from core.utils import CompanyFingerprinter, utc_now
from database.repositories.interfaces import CompanyProfileStore, JobSummaryStore
from etl.rules import filter_hierarchy_names
from etl.schemas import CompanyProfile, HierarchyResults, JobSummary

logger = logging.getLogger(__name__)


def _first_non_empty(existing: str, incoming: str) -> str:
    return existing if existing and existing.strip() else (incoming or "")


def _ordered_union(existing: List[str], incoming: List[str]) -> List[str]:
    merged = list(existing)
    seen = {d.lower() for d in existing}
    for division in incoming:
        if division and division.strip() and division.lower() not in seen:
            merged.append(division)
            seen.add(division.lower())
    return merged


def merge_profiles(existing: CompanyProfile, incoming: CompanyProfile, now: datetime) -> CompanyProfile:
    """
    Field-by-field merge of two profiles for the same company.

    - company_name, division, domain_name, notes: keep the existing value unless it is empty
    - divisions: ordered union, case-insensitive
    - hierarchy_results: replaced only by a non-empty incoming hierarchy
    - created_at is kept; updated_at moves to ``now`` only when something changed
    """
    if existing.company_id != incoming.company_id:
        raise ValueError("Cannot merge profiles of different companies")

    hierarchy = existing.hierarchy_results
    if not incoming.hierarchy_results.is_empty:
        hierarchy = incoming.hierarchy_results

    merged = existing.model_copy(update={
        "company_name": _first_non_empty(existing.company_name, incoming.company_name),
        "division": _first_non_empty(existing.division, incoming.division),
        "divisions": _ordered_union(existing.divisions, incoming.divisions),
        "hierarchy_results": hierarchy,
        "domain_name": _first_non_empty(existing.domain_name, incoming.domain_name),
        "notes": _first_non_empty(existing.notes, incoming.notes),
    })

    if merged.same_content(existing):
        return existing
    return merged.model_copy(update={"updated_at": now})


def profile_from_job(job: JobSummary, now: datetime) -> CompanyProfile:
    """Seed profile for the company behind a job summary."""
    return CompanyProfile(
        company_id=CompanyFingerprinter.calculate(job.company_name),
        company_name=job.company_name,
        division=job.division,
        divisions=[job.division] if job.division else [],
        hierarchy_results=HierarchyResults(),
        created_at=now,
        updated_at=now,
    )


def _domain_from_link(link: str) -> str:
    host = urlparse(link).hostname or ""
    return host[4:] if host.startswith("www.") else host


@dataclass
class ReconciliationResult:
    """Counters for one reconciliation pass."""
    processed: int = 0
    created: int = 0
    updated: int = 0
    unchanged: int = 0
    failed: int = 0


class CompanyProfileService:
    """Create and merge company profiles from recent job summaries."""

    def __init__(
        self,
        job_store: JobSummaryStore,
        company_store: CompanyProfileStore,
        search_client: Optional[SerpApiClient] = None,
        ai_service: Optional[LLMProvider] = None,
        config: Optional[ReconciliationConfig] = None,
        location: str = "United States",
        clock=utc_now
    ):
        if job_store is None or company_store is None:
            raise ValueError("job_store and company_store are required")
        self.jobs = job_store
        self.companies = company_store
        self.search = search_client
        self.ai = ai_service
        self.config = config or ReconciliationConfig()
        self.location = location
        self.clock = clock

    @property
    def enrichment_enabled(self) -> bool:
        return self.config.infer_hierarchy and self.search is not None and self.ai is not None

    def update_company_profiles(self) -> bool:
        """Run one reconciliation pass. False when there were no recent jobs."""
        return self.run().processed > 0

    def run(self) -> ReconciliationResult:
        result = ReconciliationResult()
        cutoff = self.clock() - timedelta(days=self.config.lookback_days)
        jobs = self.jobs.get_since(cutoff)
        if not jobs:
            logger.info("No job summaries to reconcile")
            return result

        for job in jobs:
            result.processed += 1
            try:
                outcome = self.reconcile_one(job)
            except Exception:
                logger.exception(f"Failed to reconcile company profile for {job.company_name}")
                result.failed += 1
                continue

            if outcome == "created":
                result.created += 1
            elif outcome == "updated":
                result.updated += 1
            else:
                result.unchanged += 1

        logger.info(
            f"Reconciliation finished: processed={result.processed} created={result.created} "
            f"updated={result.updated} unchanged={result.unchanged} failed={result.failed}"
        )
        return result

    def reconcile_one(self, job: JobSummary) -> str:
        """Create or merge the profile for one job. Returns "created", "updated" or "unchanged"."""
        now = self.clock()
        incoming = profile_from_job(job, now)
        existing = self.companies.get(incoming.company_id)

        if self._needs_enrichment(existing, now):
            incoming = self._enrich(incoming, job)

        if existing is None:
            self.companies.add(incoming)
            logger.info(f"Added new company profile for: {incoming.company_name}")
            return "created"

        merged = merge_profiles(existing, incoming, now)
        if merged is existing:
            logger.debug(f"Company profile unchanged for: {existing.company_name}")
            return "unchanged"

        self.companies.update(merged)
        logger.info(f"Updated existing company profile for: {merged.company_name}")
        return "updated"

    def _needs_enrichment(self, existing: Optional[CompanyProfile], now: datetime) -> bool:
        if not self.enrichment_enabled:
            return False
        if existing is None:
            return True
        return now - existing.updated_at >= timedelta(hours=self.config.refresh_interval_hours)

    def _enrich(self, profile: CompanyProfile, job: JobSummary) -> CompanyProfile:
        """Attach domain and hierarchy found via web search. Failures leave the profile as seeded."""
        try:
            domain, hierarchy = self._infer_hierarchy(job)
        except Exception:
            logger.exception(f"Hierarchy inference failed for {job.company_name}")
            return profile
        return profile.model_copy(update={
            "domain_name": domain,
            "hierarchy_results": hierarchy,
        })

    def _infer_hierarchy(self, job: JobSummary) -> Tuple[str, HierarchyResults]:
        company = job.company_name
        domain = ""

        site_results = self.search.fetch_organic_results(f"{company} official site", self.location)
        if site_results and site_results[0].link:
            domain = _domain_from_link(site_results[0].link)

        compact = company.replace(" ", "").lower()
        if domain and job.division:
            query = f"{compact} organizational structure {job.division} leadership team"
        else:
            query = f"{compact} organizational structure leadership team"

        results = self.search.fetch_organic_results(query, self.location)
        if not results:
            logger.warning(f"No search results found for company: {company}")
            return domain, HierarchyResults()

        snippets = "\n".join(r.snippet for r in results if r.snippet)
        lowered = snippets.lower()
        if not any(keyword in lowered for keyword in self.config.hierarchy_keywords):
            logger.warning(f"No leadership titles found for company: {company}")
            return domain, HierarchyResults()

        hierarchy = self.ai.extract_hierarchy(company, job.division, job.job_description, snippets)
        return domain, filter_hierarchy_names(hierarchy)
