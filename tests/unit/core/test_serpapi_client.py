"""
Unit tests for SerpApiClient.

Tests verify:
- Request parameters sent to the provider
- Read-through caching of successful responses
- One extra page is followed when a next_page_token is present
- Provider failures come back as empty lists and are never cached
- Retry policy: transient failures retried, 4xx and bad bodies not
"""
import json
import pytest
import requests
from unittest.mock import Mock, patch
from tenacity import wait_none

from core.cache import MemoryCacheService
from core.config_loader import ConfigurationError, SerpApiConfig
from core.serpapi_client import SerpApiClient


def _response(payload, status=200, text=None):
    resp = Mock()
    resp.status_code = status
    resp.text = json.dumps(payload) if text is None else text
    resp.json.return_value = payload
    resp.raise_for_status.return_value = None
    return resp


def _error_response(status):
    resp = _response({}, status=status)
    resp.raise_for_status.side_effect = requests.HTTPError(f"{status} error", response=resp)
    return resp


JOB = {
    "job_id": "abc123",
    "title": "Data Engineer",
    "company_name": "Acme Corp",
    "location": "Charlotte, NC",
    "via": "LinkedIn",
    "description": "Pipelines.",
    "detected_extensions": {"posted_at": "2 days ago"},
}


@pytest.fixture(autouse=True)
def no_retry_wait():
    with patch.object(SerpApiClient._search.retry, "wait", wait_none()):
        yield


@pytest.fixture
def session():
    return Mock()


@pytest.fixture
def cache():
    return MemoryCacheService(default_ttl_seconds=60)


@pytest.fixture
def client(session, cache):
    return SerpApiClient(api_key="secret", cache=cache, session=session)


class TestConstruction:

    def test_missing_api_key_fails_fast(self):
        with pytest.raises(ConfigurationError):
            SerpApiClient(api_key=None)

    def test_missing_endpoint_fails_fast(self):
        with pytest.raises(ConfigurationError):
            SerpApiClient(api_key="secret", endpoint="")

    def test_from_config(self):
        config = SerpApiConfig(api_key="secret", cache_ttl_minutes=5, follow_next_page=False)
        client = SerpApiClient.from_config(config)
        assert client.cache_ttl_seconds == 300
        assert client.follow_next_page is False


class TestFetchJobs:

    def test_sends_google_jobs_query(self, client, session):
        session.get.return_value = _response({"jobs_results": [JOB]})

        postings = client.fetch_jobs("Data Engineer", "Charlotte, North Carolina, United States")

        assert [p.job_id for p in postings] == ["abc123"]
        _, kwargs = session.get.call_args
        assert kwargs["params"]["engine"] == "google_jobs"
        assert kwargs["params"]["q"] == "Data Engineer"
        assert kwargs["params"]["location"] == "Charlotte, North Carolina, United States"
        assert kwargs["params"]["api_key"] == "secret"
        assert kwargs["timeout"] == 30

    def test_second_call_is_served_from_cache(self, client, session):
        session.get.return_value = _response({"jobs_results": [JOB]})

        first = client.fetch_jobs("Data Engineer", "Charlotte")
        second = client.fetch_jobs("Data Engineer", "Charlotte")

        assert first == second
        assert session.get.call_count == 1

    def test_follows_one_next_page(self, client, session):
        page_two_job = dict(JOB, job_id="def456")
        session.get.side_effect = [
            _response({"jobs_results": [JOB], "serpapi_pagination": {"next_page_token": "tok"}}),
            _response({"jobs_results": [page_two_job], "serpapi_pagination": {"next_page_token": "tok2"}}),
        ]

        postings = client.fetch_jobs("Data Engineer", "Charlotte")

        assert [p.job_id for p in postings] == ["abc123", "def456"]
        assert session.get.call_count == 2
        assert session.get.call_args_list[1][1]["params"]["next_page_token"] == "tok"

    def test_next_page_failure_keeps_first_page(self, client, session):
        session.get.side_effect = [
            _response({"jobs_results": [JOB], "serpapi_pagination": {"next_page_token": "tok"}}),
            _error_response(400),
        ]

        postings = client.fetch_jobs("Data Engineer", "Charlotte")

        assert [p.job_id for p in postings] == ["abc123"]

    def test_provider_error_returns_empty_and_is_not_cached(self, client, session, cache):
        session.get.return_value = _response({"error": "Invalid API key."})

        assert client.fetch_jobs("Data Engineer", "Charlotte") == []
        assert client.fetch_jobs("Data Engineer", "Charlotte") == []
        assert session.get.call_count == 2

    def test_empty_body_returns_empty(self, client, session):
        session.get.return_value = _response(None, text="  ")

        assert client.fetch_jobs("Data Engineer", "Charlotte") == []
        assert session.get.call_count == 1

    def test_client_error_is_not_retried(self, client, session):
        session.get.return_value = _error_response(401)

        assert client.fetch_jobs("Data Engineer", "Charlotte") == []
        assert session.get.call_count == 1

    def test_timeout_is_retried(self, client, session):
        session.get.side_effect = [
            requests.Timeout("slow"),
            _response({"jobs_results": [JOB]}),
        ]

        postings = client.fetch_jobs("Data Engineer", "Charlotte")

        assert len(postings) == 1
        assert session.get.call_count == 2

    def test_server_error_gives_up_after_three_attempts(self, client, session):
        session.get.return_value = _error_response(503)

        assert client.fetch_jobs("Data Engineer", "Charlotte") == []
        assert session.get.call_count == 3

    def test_blank_query_is_rejected(self, client):
        with pytest.raises(ValueError):
            client.fetch_jobs("  ", "Charlotte")

    def test_null_fields_become_empty_strings(self, client, session):
        session.get.return_value = _response({"jobs_results": [dict(JOB, via=None, description=None)]})

        posting = client.fetch_jobs("Data Engineer", "Charlotte")[0]

        assert posting.via == ""
        assert posting.description == ""


class TestFetchOrganicResults:

    def test_parses_organic_results(self, client, session):
        session.get.return_value = _response({
            "organic_results": [
                {"position": 1, "title": "Acme", "link": "https://www.acme.com/", "snippet": "Jane Roe, CEO"}
            ]
        })

        results = client.fetch_organic_results("Acme Corp official site", "United States")

        assert results[0].link == "https://www.acme.com/"
        assert session.get.call_args[1]["params"]["engine"] == "google"

    def test_transport_error_returns_empty(self, client, session):
        session.get.side_effect = requests.ConnectionError("down")

        assert client.fetch_organic_results("Acme Corp official site", "United States") == []
