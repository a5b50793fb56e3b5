import yaml
import os
from typing import List, Optional, Dict, Any
from pydantic import BaseModel, Field, field_validator


class ConfigurationError(ValueError):
    """Raised when a required setting is missing or unusable."""
    pass


class DatabaseConfig(BaseModel):
    url: str = "sqlite:///leadscout.db"


class CacheConfig(BaseModel):
    backend: str = "memory"  # "memory" or "redis"
    redis_url: str = "redis://localhost:6379/0"
    password: Optional[str] = None
    default_ttl_seconds: int = 3600


class SerpApiConfig(BaseModel):
    api_key: Optional[str] = None
    endpoint: str = "https://serpapi.com/search.json"
    request_timeout_seconds: int = 30
    cache_ttl_minutes: int = 720
    follow_next_page: bool = True
    language: str = "en"


class LlmConfig(BaseModel):
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    model: str = "gpt-4o-mini"
    temperature: float = 0.0
    timeout_seconds: float = 60.0
    cache_ttl_hours: int = 24 * 7
    max_description_chars: int = 1500


class SearchConfig(BaseModel):
    query: str
    location: str


class RegionConfig(BaseModel):
    code: str
    name: str


class IngestionConfig(BaseModel):
    """Search terms and the validation policy applied to every posting."""
    query: str = "Data Engineer"
    location: str = "Charlotte, North Carolina, United States"
    searches: List[SearchConfig] = Field(default_factory=list)
    default_title: str = "Data Engineer"

    # Postings matching any of these are rejected
    excluded_location_terms: List[str] = Field(default_factory=lambda: ["remote"])
    excluded_title_terms: List[str] = Field(default_factory=lambda: ["center"])
    agency_markers: List[str] = Field(default_factory=lambda: [
        "recruit", "staffing", "talent", "cybercoder", "jobright",
        "dice", "robert half", "insight global", "teksystems",
    ])

    # Postings must resolve to one of these
    target_regions: List[RegionConfig] = Field(default_factory=lambda: [
        RegionConfig(code="NC", name="North Carolina"),
        RegionConfig(code="SC", name="South Carolina"),
    ])

    # " - Data" style suffixes that are departments, not part of the title
    department_suffixes: List[str] = Field(default_factory=lambda: ["data"])

    def get_searches(self) -> List[SearchConfig]:
        """Configured searches, falling back to the single query/location pair."""
        if self.searches:
            return list(self.searches)
        return [SearchConfig(query=self.query, location=self.location)]


class ReconciliationConfig(BaseModel):
    lookback_days: int = 30
    refresh_interval_hours: int = 24
    infer_hierarchy: bool = True
    hierarchy_keywords: List[str] = Field(default_factory=lambda: [
        "lead", "manager", "director", "ceo", "president", "vp",
        "vice president", "head", "chief", "data", "engineer",
    ])


class DisplayConfig(BaseModel):
    snapshot_ttl_seconds: int = 300
    lookback_days: int = 30
    default_page_size: int = 10


class ScheduleConfig(BaseModel):
    interval_seconds: int = 3600

    @field_validator("interval_seconds")
    @classmethod
    def _positive_interval(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("schedule.interval_seconds must be greater than zero")
        return value


class WebConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 8080


class LoggingConfig(BaseModel):
    level: str = "INFO"


class AppConfig(BaseModel):
    database: DatabaseConfig = DatabaseConfig()
    cache: CacheConfig = CacheConfig()
    serpapi: SerpApiConfig = SerpApiConfig()
    llm: LlmConfig = LlmConfig()
    ingestion: IngestionConfig = IngestionConfig()
    reconciliation: ReconciliationConfig = ReconciliationConfig()
    display: DisplayConfig = DisplayConfig()
    schedule: ScheduleConfig = ScheduleConfig()
    web: WebConfig = WebConfig()
    logging: LoggingConfig = LoggingConfig()


# env var -> (section, key)
ENV_OVERRIDES = {
    "DATABASE_URL": ("database", "url"),
    "REDIS_URL": ("cache", "redis_url"),
    "CACHE_BACKEND": ("cache", "backend"),
    "SERPAPI_API_KEY": ("serpapi", "api_key"),
    "SERPAPI_ENDPOINT": ("serpapi", "endpoint"),
    "OPENAI_API_KEY": ("llm", "api_key"),
    "LLM_BASE_URL": ("llm", "base_url"),
    "WEB_HOST": ("web", "host"),
    "WEB_PORT": ("web", "port"),
    "LOG_LEVEL": ("logging", "level"),
}


def _apply_env_overrides(data: Dict[str, Any]) -> Dict[str, Any]:
    for env_name, (section, key) in ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            if not isinstance(data.get(section), dict):
                data[section] = {}
            data[section][key] = value
    return data


def load_config(config_path: Optional[str] = None) -> AppConfig:
    config_path = config_path or os.environ.get("LEADSCOUT_CONFIG", "config.yaml")

    # If not found at relative path (e.g. running from root), try the project root
    if not os.path.exists(config_path):
        base_dir = os.path.dirname(os.path.abspath(__file__))
        config_path = os.path.join(base_dir, "..", "config.yaml")

    data: Dict[str, Any] = {}
    if os.path.exists(config_path):
        with open(config_path, "r") as f:
            data = yaml.safe_load(f) or {}

    return AppConfig(**_apply_env_overrides(data))
