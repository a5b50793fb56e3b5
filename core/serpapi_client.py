"""SerpApi client with connection reuse, retry logic and response caching."""

import logging
from typing import Optional, Dict, Any, List

import requests
from pydantic import ValidationError
from tenacity import (
    retry,
    stop_after_attempt,
    wait_fixed,
    retry_if_exception,
    before_sleep_log
)

from core.cache import CacheService, make_cache_key
from core.config_loader import ConfigurationError, SerpApiConfig
from etl.schemas import GoogleJobsResult, GoogleSearchResult, JobPosting, OrganicResult

logger = logging.getLogger(__name__)


def _is_retryable_error(exc: Exception) -> bool:
    """
    Determine if an exception is retryable.

    Only retries on:
    - Timeouts
    - Server errors (5xx)
    - Connection errors without a response

    Does NOT retry on client errors (4xx) or unparseable bodies.
    """
    # requests' JSONDecodeError is both a RequestException and a ValueError
    if isinstance(exc, ValueError):
        return False

    if isinstance(exc, requests.Timeout):
        return True

    if isinstance(exc, requests.HTTPError):
        response = getattr(exc, 'response', None)
        if response is not None:
            return response.status_code >= 500
        return True

    if isinstance(exc, requests.RequestException):
        response = getattr(exc, 'response', None)
        if response is not None and 400 <= response.status_code < 500:
            return False
        return True

    return False


class SerpApiClient:
    """
    Client for the SerpApi search endpoint.

    Responsibilities:
    - Own a requests.Session for connection reuse
    - Retry transient failures
    - Read through the shared cache so repeated searches cost nothing
    - Never raise for provider problems: callers get an empty list
    """

    def __init__(
        self,
        api_key: Optional[str],
        endpoint: Optional[str] = "https://serpapi.com/search.json",
        cache: Optional[CacheService] = None,
        request_timeout_seconds: int = 30,
        cache_ttl_minutes: int = 720,
        follow_next_page: bool = True,
        language: str = "en",
        session: Optional[requests.Session] = None
    ):
        """
        Initialize SerpApi client.

        Args:
            api_key: SerpApi key (required)
            endpoint: Search endpoint URL (required)
            cache: Shared cache; None disables response caching
            request_timeout_seconds: Timeout for individual HTTP requests
            cache_ttl_minutes: How long a successful response stays cached
            follow_next_page: Fetch one extra page when the response has a next_page_token
            language: Value sent as ``hl``
        """
        if not api_key:
            raise ConfigurationError("serpapi.api_key is required (set SERPAPI_API_KEY)")
        if not endpoint:
            raise ConfigurationError("serpapi.endpoint is required")

        self.api_key = api_key
        self.endpoint = endpoint
        self.cache = cache
        self.request_timeout_seconds = request_timeout_seconds
        self.cache_ttl_seconds = cache_ttl_minutes * 60
        self.follow_next_page = follow_next_page
        self.language = language

        self.session = session or requests.Session()

        logger.info(
            f"SerpApiClient initialized: endpoint={self.endpoint}, "
            f"timeout={request_timeout_seconds}s, cache_ttl={cache_ttl_minutes}m"
        )

    @classmethod
    def from_config(cls, config: SerpApiConfig, cache: Optional[CacheService] = None) -> "SerpApiClient":
        return cls(
            api_key=config.api_key,
            endpoint=config.endpoint,
            cache=cache,
            request_timeout_seconds=config.request_timeout_seconds,
            cache_ttl_minutes=config.cache_ttl_minutes,
            follow_next_page=config.follow_next_page,
            language=config.language
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_fixed(2),
        retry=retry_if_exception(_is_retryable_error),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True
    )
    def _search(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """Run one search request and return the decoded JSON body."""
        response = self.session.get(
            self.endpoint,
            params={**params, "api_key": self.api_key},
            timeout=self.request_timeout_seconds
        )
        response.raise_for_status()

        if not response.text or not response.text.strip():
            raise ValueError("Empty response body")

        data = response.json()
        if not isinstance(data, dict):
            raise ValueError(f"Unexpected response type: {type(data).__name__}")
        return data

    def _cached(self, key: str) -> Optional[Dict[str, Any]]:
        if self.cache is None:
            return None
        cached = self.cache.try_get(key)
        return cached if isinstance(cached, dict) else None

    def _store(self, key: str, data: Dict[str, Any]) -> None:
        if self.cache is not None:
            self.cache.put(key, data, self.cache_ttl_seconds)

    @staticmethod
    def _require(query: str, location: str) -> None:
        if not query or not query.strip():
            raise ValueError("query is required")
        if not location or not location.strip():
            raise ValueError("location is required")

    def fetch_jobs(self, query: str, location: str) -> List[JobPosting]:
        """
        Fetch postings from the Google Jobs engine.

        Returns an empty list on transport failure, non-success status,
        empty or malformed body, or a provider error message.
        """
        self._require(query, location)
        cache_key = make_cache_key("serpapi:jobs", query, location)

        cached = self._cached(cache_key)
        if cached is not None:
            try:
                postings = GoogleJobsResult.model_validate(cached).jobs_results
                logger.info(f"Cache hit for jobs search '{query}' in '{location}': {len(postings)} postings")
                return postings
            except ValidationError as e:
                logger.warning(f"Discarding unreadable cached jobs response: {e}")

        params = {
            "engine": "google_jobs",
            "q": query,
            "location": location,
            "hl": self.language,
        }

        logger.info(f"Searching jobs for '{query}' in '{location}'")
        try:
            data = self._search(params)
            result = GoogleJobsResult.model_validate(data)
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Jobs search failed for '{query}' in '{location}': {e}")
            return []

        if result.error:
            logger.warning(f"Jobs search returned an error for '{query}': {result.error}")
            return []

        if self.follow_next_page and result.next_page_token:
            data = self._with_next_page(params, data, result.next_page_token)
            result = GoogleJobsResult.model_validate(data)

        self._store(cache_key, data)
        logger.info(f"Jobs search for '{query}' returned {len(result.jobs_results)} postings")
        return result.jobs_results

    def _with_next_page(self, params: Dict[str, Any], data: Dict[str, Any], token: str) -> Dict[str, Any]:
        """Append one more page of postings; page-two failures keep page one."""
        try:
            next_data = self._search({**params, "next_page_token": token})
            next_result = GoogleJobsResult.model_validate(next_data)
        except (requests.RequestException, ValueError) as e:
            logger.warning(f"Next page fetch failed, keeping first page: {e}")
            return data

        if next_result.error:
            logger.warning(f"Next page returned an error, keeping first page: {next_result.error}")
            return data

        merged = dict(data)
        merged["jobs_results"] = list(data.get("jobs_results") or []) + list(next_data.get("jobs_results") or [])
        merged["serpapi_pagination"] = next_data.get("serpapi_pagination")
        return merged

    def fetch_organic_results(self, query: str, location: str) -> List[OrganicResult]:
        """Fetch organic web results from the Google engine. Empty on any failure."""
        self._require(query, location)
        cache_key = make_cache_key("serpapi:organic", query, location)

        cached = self._cached(cache_key)
        if cached is not None:
            try:
                return GoogleSearchResult.model_validate(cached).organic_results
            except ValidationError as e:
                logger.warning(f"Discarding unreadable cached search response: {e}")

        params = {
            "engine": "google",
            "q": query,
            "location": location,
            "hl": self.language,
        }

        logger.info(f"Searching web for '{query}'")
        try:
            data = self._search(params)
            result = GoogleSearchResult.model_validate(data)
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Web search failed for '{query}': {e}")
            return []

        if result.error:
            logger.warning(f"Web search returned an error for '{query}': {result.error}")
            return []

        self._store(cache_key, data)
        return result.organic_results

    def close(self):
        """Close the session and release resources."""
        self.session.close()
        logger.info("SerpApiClient session closed")

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
        return False
