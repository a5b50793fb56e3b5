import unittest
import os
import yaml
from unittest.mock import patch, mock_open

from pydantic import ValidationError

from core.config_loader import load_config, AppConfig, IngestionConfig, SearchConfig


class TestConfigLoader(unittest.TestCase):

    def setUp(self):
        self.sample_config = {
            "database": {"url": "sqlite:///test.db"},
            "cache": {"backend": "redis", "redis_url": "redis://cache:6379/1"},
            "serpapi": {"api_key": "serp-key", "cache_ttl_minutes": 60},
            "llm": {"api_key": "llm-key", "model": "gpt-4o"},
            "ingestion": {
                "searches": [
                    {"query": "Data Engineer", "location": "Charlotte, North Carolina, United States"},
                    {"query": "Analytics Engineer", "location": "Columbia, South Carolina, United States"},
                ],
                "agency_markers": ["staffing"],
            },
            "schedule": {"interval_seconds": 600},
        }
        self.config_yaml = yaml.dump(self.sample_config)

    def _load(self, config_yaml, env=None):
        with patch("builtins.open", mock_open(read_data=config_yaml)):
            with patch("os.path.exists", return_value=True):
                with patch.dict(os.environ, env or {}, clear=True):
                    return load_config("dummy_path.yaml")

    def test_load_config_from_yaml(self):
        config = self._load(self.config_yaml)
        self.assertIsInstance(config, AppConfig)
        self.assertEqual(config.database.url, "sqlite:///test.db")
        self.assertEqual(config.cache.backend, "redis")
        self.assertEqual(config.serpapi.api_key, "serp-key")
        self.assertEqual(config.serpapi.cache_ttl_minutes, 60)
        self.assertEqual(config.llm.model, "gpt-4o")
        self.assertEqual(config.schedule.interval_seconds, 600)
        self.assertEqual(config.ingestion.agency_markers, ["staffing"])
        self.assertEqual(len(config.ingestion.get_searches()), 2)

    def test_env_var_overrides(self):
        config = self._load(self.config_yaml, {
            "DATABASE_URL": "sqlite:///env.db",
            "SERPAPI_API_KEY": "env-serp-key",
            "OPENAI_API_KEY": "env-llm-key",
            "WEB_PORT": "9000",
        })
        self.assertEqual(config.database.url, "sqlite:///env.db")
        self.assertEqual(config.serpapi.api_key, "env-serp-key")
        self.assertEqual(config.llm.api_key, "env-llm-key")
        self.assertEqual(config.web.port, 9000)

    def test_env_override_creates_missing_section(self):
        config = self._load(yaml.dump({"database": {"url": "sqlite:///x.db"}}), {"REDIS_URL": "redis://other:6379/0"})
        self.assertEqual(config.cache.redis_url, "redis://other:6379/0")

    def test_empty_file_yields_defaults(self):
        config = self._load("")
        self.assertEqual(config.database.url, "sqlite:///leadscout.db")
        self.assertEqual(config.cache.backend, "memory")
        self.assertEqual(config.serpapi.endpoint, "https://serpapi.com/search.json")
        self.assertIsNone(config.serpapi.api_key)
        self.assertEqual(config.llm.model, "gpt-4o-mini")
        self.assertEqual(config.reconciliation.lookback_days, 30)
        self.assertEqual(config.display.snapshot_ttl_seconds, 300)
        self.assertEqual(config.schedule.interval_seconds, 3600)

    def test_missing_file_yields_defaults(self):
        with patch("os.path.exists", return_value=False):
            with patch.dict(os.environ, {}, clear=True):
                config = load_config("does-not-exist.yaml")
        self.assertEqual(config.ingestion.query, "Data Engineer")

    def test_zero_interval_is_rejected(self):
        with self.assertRaises(ValidationError):
            self._load(yaml.dump({"schedule": {"interval_seconds": 0}}))


class TestIngestionConfig(unittest.TestCase):

    def test_default_search_comes_from_query_and_location(self):
        config = IngestionConfig()
        searches = config.get_searches()
        self.assertEqual(searches, [SearchConfig(query="Data Engineer", location="Charlotte, North Carolina, United States")])

    def test_default_policy_values(self):
        config = IngestionConfig()
        self.assertIn("teksystems", config.agency_markers)
        self.assertEqual([r.code for r in config.target_regions], ["NC", "SC"])
        self.assertEqual(config.excluded_location_terms, ["remote"])
        self.assertEqual(config.excluded_title_terms, ["center"])


if __name__ == '__main__':
    unittest.main()
