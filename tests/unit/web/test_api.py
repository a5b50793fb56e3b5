#!/usr/bin/env python3
"""
Unit tests for the web API: paginated reads, error format, the
request-path pipeline trigger and the manual pipeline endpoints.
"""

import unittest
from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import Mock

from fastapi.testclient import TestClient

from core.cache import MemoryCacheService
from core.config_loader import AppConfig
from core.display_repository import DisplayRepository
from core.utils import CompanyFingerprinter, utc_now
from database.database import create_session_factory, init_db
from database.repositories import SqlCompanyProfileStore, SqlJobSummaryStore
from etl.schemas import CompanyProfile, JobSummary
from web.backend.app import create_app


class ApiTestCase(unittest.TestCase):

    def setUp(self):
        self.engine, session_factory = create_session_factory("sqlite:///:memory:")
        init_db(self.engine)
        self.job_store = SqlJobSummaryStore(session_factory)
        self.company_store = SqlCompanyProfileStore(session_factory)

        now = utc_now()
        for i in range(12):
            self.job_store.add(JobSummary(
                job_id=f"job-{i}",
                company_id=CompanyFingerprinter.calculate("Acme Corp"),
                company_name="Acme Corp",
                job_title="Data Engineer",
                location="Charlotte, NC",
                posted_at=now - timedelta(hours=i),
            ))
        self.company_store.add(CompanyProfile(
            company_id=CompanyFingerprinter.calculate("Acme Corp"),
            company_name="Acme Corp",
            division="Data Platform",
            divisions=["Data Platform"],
        ))

        self.trigger = Mock()
        self.trigger.maybe_run.return_value = False
        self.trigger.status.return_value = {
            "running": False,
            "last_run_at": None,
            "last_error": None,
            "interval_seconds": 3600,
        }
        self.ctx = SimpleNamespace(
            config=AppConfig(),
            display_repository=DisplayRepository(self.job_store, self.company_store, MemoryCacheService()),
            trigger=self.trigger,
        )
        self.client = TestClient(create_app(self.ctx))

    def tearDown(self):
        self.engine.dispose()


class TestReadEndpoints(ApiTestCase):

    def test_health(self):
        response = self.client.get("/health")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "healthy")

    def test_jobs_first_page_newest_first(self):
        response = self.client.get("/api/jobs")

        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertTrue(data["success"])
        self.assertEqual(data["total"], 12)
        self.assertEqual(data["page_size"], 10)
        self.assertEqual([j["job_id"] for j in data["jobs"]][:3], ["job-0", "job-1", "job-2"])

    def test_jobs_page_past_the_end_is_empty(self):
        response = self.client.get("/api/jobs", params={"page": 5, "page_size": 10})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["jobs"], [])

    def test_invalid_page_size_is_400(self):
        response = self.client.get("/api/jobs", params={"page_size": 0})

        self.assertEqual(response.status_code, 400)
        body = response.json()
        self.assertFalse(body["success"])
        self.assertEqual(body["type"], "InvalidPagingException")

    def test_negative_page_is_400(self):
        response = self.client.get("/api/companies", params={"page": -1})
        self.assertEqual(response.status_code, 400)

    def test_explicit_from_date_filters(self):
        since = (utc_now() - timedelta(hours=2, minutes=30)).isoformat()

        response = self.client.get("/api/jobs", params={"from_date": since})

        self.assertEqual([j["job_id"] for j in response.json()["jobs"]], ["job-0", "job-1", "job-2"])

    def test_companies(self):
        response = self.client.get("/api/companies")

        self.assertEqual(response.status_code, 200)
        companies = response.json()["companies"]
        self.assertEqual(len(companies), 1)
        self.assertEqual(companies[0]["divisions"], ["Data Platform"])

    def test_stats(self):
        stats = self.client.get("/api/stats").json()["stats"]

        self.assertEqual(stats["total_jobs"], 12)
        self.assertEqual(stats["total_companies"], 1)
        self.assertFalse(stats["pipeline_running"])


class TestPipelineTrigger(ApiTestCase):

    def test_every_request_consults_the_trigger(self):
        self.client.get("/health")
        self.client.get("/api/jobs")

        self.assertEqual(self.trigger.maybe_run.call_count, 2)

    def test_trigger_failure_does_not_fail_the_request(self):
        self.trigger.maybe_run.side_effect = RuntimeError("executor gone")

        response = self.client.get("/health")

        self.assertEqual(response.status_code, 200)

    def test_manual_run(self):
        self.trigger.run_now.return_value = True

        response = self.client.post("/api/pipeline/run")

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["success"])
        self.trigger.run_now.assert_called_once()

    def test_manual_run_while_running_is_409(self):
        self.trigger.run_now.return_value = False

        response = self.client.post("/api/pipeline/run")

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()["type"], "PipelineLockedException")

    def test_status(self):
        response = self.client.get("/api/pipeline/status")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["interval_seconds"], 3600)


if __name__ == '__main__':
    unittest.main()
