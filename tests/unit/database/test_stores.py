"""
Tests for the SQLAlchemy job and company stores over in-memory SQLite.
"""
from datetime import timedelta

import pytest

from core.utils import CompanyFingerprinter
from database.models import JobSummaryRecord
from etl.schemas import CompanyProfile, HierarchyItem, HierarchyResults, JobHighlight, JobSummary


def _summary(now, job_id="job-1", company="Acme Corp", **overrides):
    data = dict(
        job_id=job_id,
        company_id=CompanyFingerprinter.calculate(company),
        company_name=company,
        job_title="Data Engineer",
        location="Charlotte, NC",
        job_description="Pipelines.",
        division="Data Platform",
        confidence=80,
        job_highlights=[JobHighlight(title="Qualifications", items=["SQL", "Python"])],
        posted_at=now,
        created_at=now,
        updated_at=now,
    )
    data.update(overrides)
    return JobSummary(**data)


class TestSqlJobSummaryStore:

    def test_add_then_get_round_trips(self, job_store, now):
        summary = _summary(now)
        job_store.add(summary)

        loaded = job_store.get("job-1")

        assert loaded == summary
        assert loaded.posted_at.tzinfo is not None
        assert loaded.job_highlights[0].items == ["SQL", "Python"]

    def test_get_missing_returns_none(self, job_store):
        assert job_store.get("nope") is None

    def test_get_requires_job_id(self, job_store):
        with pytest.raises(ValueError):
            job_store.get("")

    def test_add_existing_job_id_updates_in_place(self, job_store, session_factory, now):
        job_store.add(_summary(now))
        job_store.add(_summary(now, job_description="Changed.", id="another-id"))

        loaded = job_store.get("job-1")
        with session_factory() as session:
            count = session.query(JobSummaryRecord).count()

        assert count == 1
        assert loaded.job_description == "Changed."

    def test_get_since_filters_on_updated_at(self, job_store, now):
        job_store.add(_summary(now, job_id="old", updated_at=now - timedelta(days=40)))
        job_store.add(_summary(now, job_id="new", updated_at=now - timedelta(days=1)))

        recent = job_store.get_since(now - timedelta(days=30))

        assert [s.job_id for s in recent] == ["new"]

    def test_get_posted_since_filters_on_posted_at(self, job_store, now):
        job_store.add(_summary(now, job_id="a", posted_at=now - timedelta(days=2)))
        job_store.add(_summary(now, job_id="b", posted_at=now - timedelta(days=45)))

        assert [s.job_id for s in job_store.get_posted_since(now - timedelta(days=30))] == ["a"]

    def test_delete(self, job_store, now):
        summary = _summary(now)
        job_store.add(summary)

        assert job_store.delete(summary) is True
        assert job_store.get("job-1") is None
        assert job_store.delete_by_job_id("job-1") is False


class TestSqlCompanyProfileStore:

    def _profile(self, now, name="Acme Corp", **overrides):
        data = dict(
            company_id=CompanyFingerprinter.calculate(name),
            company_name=name,
            division="Data Platform",
            divisions=["Data Platform"],
            hierarchy_results=HierarchyResults(org_hierarchy=[HierarchyItem(name="Jane Roe", title="CDO")]),
            domain_name="acme.com",
            created_at=now,
            updated_at=now,
        )
        data.update(overrides)
        return CompanyProfile(**data)

    def test_add_then_get_round_trips(self, company_store, now):
        profile = self._profile(now)
        company_store.add(profile)

        loaded = company_store.get(profile.company_id)

        assert loaded == profile
        assert loaded.hierarchy_results.org_hierarchy[0].name == "Jane Roe"

    def test_upsert_on_company_id(self, company_store, now):
        profile = self._profile(now)
        company_store.add(profile)
        company_store.update(profile.model_copy(update={"divisions": ["Data Platform", "Risk"]}))

        assert company_store.get(profile.company_id).divisions == ["Data Platform", "Risk"]

    def test_get_since(self, company_store, now):
        company_store.add(self._profile(now, name="Old Co", updated_at=now - timedelta(days=60)))
        company_store.add(self._profile(now, name="New Co"))

        assert [p.company_name for p in company_store.get_since(now - timedelta(days=30))] == ["New Co"]

    def test_delete(self, company_store, now):
        profile = self._profile(now)
        company_store.add(profile)

        assert company_store.delete(profile) is True
        assert company_store.get(profile.company_id) is None
