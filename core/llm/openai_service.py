"""
OpenAI Service - LLM implementation using the OpenAI API.

Provides division inference and organizational hierarchy extraction via
JSON Schema structured output. Works with any OpenAI-compatible endpoint.
"""
from typing import Dict, Any, Optional, Tuple
import copy
import logging
import re

import openai
from openai import OpenAI
from pydantic import ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)
from tenacity import RetryCallState

from core.cache import CacheService, make_cache_key
from core.config_loader import ConfigurationError, LlmConfig
from core.llm.interfaces import LLMProvider
from core.llm.schema_models import DIVISION_SCHEMA, HIERARCHY_SCHEMA
from core.llm.system_prompts import (
    DIVISION_SYSTEM_PROMPT,
    DIVISION_USER_TEMPLATE,
    HIERARCHY_SYSTEM_PROMPT,
    HIERARCHY_USER_TEMPLATE,
)
from core.utils import extract_json_object, lowercase_keys, stable_hash
from etl.schemas import DivisionInference, HierarchyResults

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Retry helpers
# ---------------------------------------------------------------------------

def _log_retry(retry_state: RetryCallState) -> None:
    """Log a warning before each retry sleep."""
    exc = retry_state.outcome.exception()
    wait = retry_state.next_action.sleep if retry_state.next_action else 0
    if isinstance(exc, openai.RateLimitError):
        logger.warning(
            "Rate limit hit (attempt %s). Waiting %.1fs before retry. Details: %s",
            retry_state.attempt_number, wait, exc,
        )
    else:
        logger.warning(
            "Transient API error (attempt %s). Waiting %.1fs before retry. Details: %s",
            retry_state.attempt_number, wait, exc,
        )


def _parse_reset_duration(value: str) -> float:
    """Parse an OpenAI reset-timer header value like '1s', '500ms', '1m30s' into seconds."""
    total = 0.0
    for amount, unit in re.findall(r"([\d.]+)(ms|s|m|h)", value):
        a = float(amount)
        if unit == "ms":
            total += a / 1000
        elif unit == "s":
            total += a
        elif unit == "m":
            total += a * 60
        else:  # h
            total += a * 3600
    return total


def _wait_from_rate_limit_headers(exc: openai.RateLimitError) -> float:
    """Longest declared wait from retry-after / x-ratelimit-reset-* headers, 0.0 if none."""
    try:
        headers = exc.response.headers
        candidates: list[float] = []

        retry_after = headers.get("retry-after", "")
        if retry_after:
            try:
                candidates.append(float(retry_after))
            except ValueError:
                pass

        for header in ("x-ratelimit-reset-requests", "x-ratelimit-reset-tokens"):
            parsed = _parse_reset_duration(headers.get(header, ""))
            if parsed > 0:
                candidates.append(parsed)

        return max(candidates) if candidates else 0.0
    except Exception:
        return 0.0


def _wait_respecting_retry_after(retry_state: RetryCallState) -> float:
    """Honour server-declared rate-limit timers, otherwise capped exponential backoff."""
    exc = retry_state.outcome.exception()
    if isinstance(exc, openai.RateLimitError):
        wait = _wait_from_rate_limit_headers(exc)
        if wait > 0:
            wait = min(wait, 120)  # safety cap at 2 min
            logger.info("Rate limit headers indicate %.1fs wait.", wait)
            return wait

    exp = wait_exponential(multiplier=1, min=2, max=60)
    return exp(retry_state)


def _llm_retry(**kwargs):
    """Return a tenacity @retry decorator for LLM API calls."""
    return retry(
        retry=retry_if_exception_type((
            openai.RateLimitError,
            openai.APITimeoutError,
            openai.APIConnectionError,
            openai.InternalServerError,
        )),
        wait=_wait_respecting_retry_after,
        stop=stop_after_attempt(5),
        before_sleep=_log_retry,
        reraise=True,
        **kwargs,
    )


def _unwrap_schema_spec(spec: Dict[str, Any]) -> Tuple[str, bool, Dict[str, Any]]:
    """Split a schema spec into (name, strict, raw JSON schema).

    Accepts either a wrapped spec {'name': str, 'strict': bool, 'schema': {...}}
    or a raw JSON schema dict.
    """
    if isinstance(spec, dict) and "schema" in spec and "name" in spec:
        return spec.get("name", "extraction_response"), bool(spec.get("strict", False)), spec["schema"]
    return "extraction_response", False, spec


class OpenAIService(LLMProvider):
    """
    OpenAI LLM Service.

    Results are cached in the shared cache keyed by company and a hash of
    the prompt inputs, so re-ingesting an unchanged posting costs nothing.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: str = "gpt-4o-mini",
        temperature: float = 0.0,
        timeout_seconds: float = 60.0,
        cache: Optional[CacheService] = None,
        cache_ttl_hours: int = 24 * 7,
        max_description_chars: int = 1500
    ):
        if not api_key:
            raise ConfigurationError("llm.api_key is required (set OPENAI_API_KEY)")

        client_kwargs: Dict[str, Any] = {'api_key': api_key, 'timeout': timeout_seconds}
        if base_url:
            client_kwargs['base_url'] = base_url

        self.client = OpenAI(**client_kwargs)
        self.model = model
        self.temperature = temperature
        self.cache = cache
        self.cache_ttl_seconds = cache_ttl_hours * 3600
        self.max_description_chars = max_description_chars

    @classmethod
    def from_config(cls, config: LlmConfig, cache: Optional[CacheService] = None) -> "OpenAIService":
        return cls(
            api_key=config.api_key,
            base_url=config.base_url,
            model=config.model,
            temperature=config.temperature,
            timeout_seconds=config.timeout_seconds,
            cache=cache,
            cache_ttl_hours=config.cache_ttl_hours,
            max_description_chars=config.max_description_chars
        )

    @_llm_retry()
    def extract_structured_data(
        self,
        text: str,
        schema_spec: Dict,
        system_prompt: Optional[str] = None,
        user_message: Optional[str] = None
    ) -> Dict[str, Any]:
        """Extract structured data using JSON Schema mode.

        Args:
            text: Text to extract from (used when no user_message is given)
            schema_spec: Either a wrapped spec {'name', 'strict', 'schema'} or raw JSON schema
            system_prompt: Optional system prompt
            user_message: Optional custom user message
        """
        name, strict, raw_schema = _unwrap_schema_spec(schema_spec)
        runtime_schema = copy.deepcopy(raw_schema)

        if runtime_schema.get("type") != "object" or "properties" not in runtime_schema:
            raise ValueError(f"Not a valid JSON Schema object. Top-level keys: {list(runtime_schema.keys())}")

        if user_message is None:
            user_message = f"Extract the data into the requested JSON format.\n\n{text}"

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": user_message})

        response = self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=self.temperature,
            response_format={
                "type": "json_schema",
                "json_schema": {
                    "name": name,
                    "schema": runtime_schema,
                    "strict": strict,
                },
            },
        )

        try:
            content = response.choices[0].message.content
        except (IndexError, AttributeError) as e:
            logger.error(f"Malformed chat completion response: {e}")
            raise ValueError("Malformed chat completion response") from e

        data = extract_json_object(content)
        if data is None:
            raise ValueError("Chat completion did not contain a JSON object")
        return data

    def _cached(self, key: str) -> Optional[Any]:
        return self.cache.try_get(key) if self.cache is not None else None

    def _store(self, key: str, value: Any) -> None:
        if self.cache is not None:
            self.cache.put(key, value, self.cache_ttl_seconds)

    def infer_division(self, company_name: str, description: str) -> Optional[DivisionInference]:
        """Ask the model which division owns a posting. None on failure."""
        if company_name is None or description is None:
            raise ValueError("company_name and description are required")

        description = description[:self.max_description_chars]

        cache_key = make_cache_key("llm:division", company_name, stable_hash(description))
        cached = self._cached(cache_key)
        if cached is not None:
            try:
                return DivisionInference.model_validate(cached)
            except ValidationError as e:
                logger.warning(f"Discarding unreadable cached division for {company_name}: {e}")

        user_message = DIVISION_USER_TEMPLATE.format(
            company_name=company_name,
            description=description
        )

        try:
            data = self.extract_structured_data(
                description,
                DIVISION_SCHEMA,
                system_prompt=DIVISION_SYSTEM_PROMPT,
                user_message=user_message
            )
            result = DivisionInference.model_validate(lowercase_keys(data))
        except (openai.OpenAIError, ValueError) as e:
            logger.error(f"Division inference failed for {company_name}: {e}")
            return None

        logger.info(
            f"Division for {company_name}: '{result.division}' "
            f"(confidence {result.confidence})"
        )
        self._store(cache_key, result.model_dump())
        return result

    def extract_hierarchy(
        self,
        company_name: str,
        division: str,
        description: str,
        search_results: str
    ) -> Optional[HierarchyResults]:
        """Extract a named reporting chain from search snippets. None on failure."""
        if company_name is None:
            raise ValueError("company_name is required")

        description = (description or "")[:self.max_description_chars]
        search_results = (search_results or "")[:self.max_description_chars]

        cache_key = make_cache_key(
            "llm:hierarchy", company_name, division, stable_hash(description, search_results)
        )
        cached = self._cached(cache_key)
        if cached is not None:
            try:
                return HierarchyResults.model_validate(cached)
            except ValidationError as e:
                logger.warning(f"Discarding unreadable cached hierarchy for {company_name}: {e}")

        user_message = HIERARCHY_USER_TEMPLATE.format(
            company_name=company_name,
            division=division or "Unspecified",
            description=description,
            search_results=search_results
        )

        try:
            data = self.extract_structured_data(
                search_results,
                HIERARCHY_SCHEMA,
                system_prompt=HIERARCHY_SYSTEM_PROMPT,
                user_message=user_message
            )
            result = HierarchyResults.model_validate(lowercase_keys(data))
        except (openai.OpenAIError, ValueError) as e:
            logger.error(f"Hierarchy extraction failed for {company_name}: {e}")
            return None

        logger.info("=" * 60)
        logger.info(f"HIERARCHY EXTRACTION ({self.model}): {company_name}")
        logger.info("-" * 60)
        for item in result.org_hierarchy:
            logger.info(f"{item.name} - {item.title}")
        logger.info("=" * 60)

        self._store(cache_key, result.model_dump())
        return result
