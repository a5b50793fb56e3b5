#!/usr/bin/env python3
"""
Test suite utilities.

All tests run without network access or external services:

    python -m pytest tests/ -v

The fakes below stand in for the search provider and the AI model in
engine tests; stores are real SQLAlchemy stores over in-memory SQLite.
"""

from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

from core.llm.interfaces import LLMProvider
from etl.schemas import DivisionInference, HierarchyResults, JobPosting, OrganicResult


class FrozenClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current = self.current + timedelta(**kwargs)


class FakeSearchClient:
    """Returns canned postings and organic results; records every query."""

    def __init__(
        self,
        postings: Optional[List[JobPosting]] = None,
        organic: Optional[Dict[str, List[OrganicResult]]] = None
    ):
        self.postings = postings or []
        self.organic = organic or {}
        self.job_queries: List[Tuple[str, str]] = []
        self.organic_queries: List[str] = []

    def fetch_jobs(self, query: str, location: str) -> List[JobPosting]:
        self.job_queries.append((query, location))
        return list(self.postings)

    def fetch_organic_results(self, query: str, location: str) -> List[OrganicResult]:
        self.organic_queries.append(query)
        for prefix, results in self.organic.items():
            if query.startswith(prefix):
                return list(results)
        return []


class FakeAIService(LLMProvider):
    """Division and hierarchy answers keyed by company name."""

    def __init__(
        self,
        divisions: Optional[Dict[str, DivisionInference]] = None,
        hierarchies: Optional[Dict[str, HierarchyResults]] = None
    ):
        self.divisions = divisions or {}
        self.hierarchies = hierarchies or {}
        self.division_calls: List[str] = []
        self.hierarchy_calls: List[str] = []

    def extract_structured_data(self, text, schema_spec, system_prompt=None, user_message=None):
        raise NotImplementedError

    def infer_division(self, company_name: str, description: str) -> Optional[DivisionInference]:
        self.division_calls.append(company_name)
        return self.divisions.get(company_name)

    def extract_hierarchy(self, company_name, division, description, search_results) -> Optional[HierarchyResults]:
        self.hierarchy_calls.append(company_name)
        return self.hierarchies.get(company_name)


def make_posting(**overrides) -> JobPosting:
    """A posting that passes validation unless overridden."""
    data = {
        "job_id": "job-acme-1",
        "title": "Senior Data Engineer",
        "company_name": "Acme Corp",
        "location": "Charlotte, NC",
        "via": "LinkedIn",
        "share_link": "https://www.google.com/search?ibp=htl;jobs#job-acme-1",
        "description": "Build and run data pipelines for the analytics platform.",
        "detected_extensions": {"posted_at": "3 days ago"},
    }
    data.update(overrides)
    return JobPosting.model_validate(data)
