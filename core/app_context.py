from dataclasses import dataclass
from typing import Optional, TYPE_CHECKING

from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from core.cache import CacheService, init_cache
from core.config_loader import AppConfig, CacheConfig
from core.display_repository import DisplayRepository
from core.llm.openai_service import OpenAIService
from core.serpapi_client import SerpApiClient
from database.database import create_session_factory, init_db
from database.repositories import SqlCompanyProfileStore, SqlJobSummaryStore
from etl.orchestrator import JobIngestionService
from etl.reconciliation import CompanyProfileService

if TYPE_CHECKING:
    from pipeline.control import PipelineTrigger


@dataclass
class AppContext:
    """Application context container that holds all wired dependencies.

    Every collaborator is built once here and handed to its consumers, so
    the CLI, the web app and the background trigger share one cache, one
    engine and one set of stores.
    """
    config: AppConfig
    engine: Engine
    session_factory: sessionmaker
    cache: CacheService
    job_store: SqlJobSummaryStore
    company_store: SqlCompanyProfileStore
    search_client: SerpApiClient
    ai_service: OpenAIService
    ingestion_service: JobIngestionService
    reconciliation_service: CompanyProfileService
    display_repository: DisplayRepository
    trigger: Optional["PipelineTrigger"] = None

    @classmethod
    def build(cls, config: AppConfig, create_tables: bool = True) -> "AppContext":
        """Build an AppContext from config.

        Args:
            config: Loaded application configuration
            create_tables: Create missing tables on the configured database

        Returns:
            Fully wired AppContext instance, trigger included
        """
        cache = cls._build_cache(config.cache)

        engine, session_factory = create_session_factory(config.database.url)
        if create_tables:
            init_db(engine)
        job_store = SqlJobSummaryStore(session_factory)
        company_store = SqlCompanyProfileStore(session_factory)

        search_client = SerpApiClient.from_config(config.serpapi, cache)
        ai_service = OpenAIService.from_config(config.llm, cache)

        ingestion_service = JobIngestionService(
            search_client,
            ai_service,
            job_store,
            config=config.ingestion
        )
        reconciliation_service = CompanyProfileService(
            job_store,
            company_store,
            search_client=search_client,
            ai_service=ai_service,
            config=config.reconciliation
        )
        display_repository = DisplayRepository(
            job_store,
            company_store,
            cache,
            snapshot_ttl_seconds=config.display.snapshot_ttl_seconds
        )

        ctx = cls(
            config=config,
            engine=engine,
            session_factory=session_factory,
            cache=cache,
            job_store=job_store,
            company_store=company_store,
            search_client=search_client,
            ai_service=ai_service,
            ingestion_service=ingestion_service,
            reconciliation_service=reconciliation_service,
            display_repository=display_repository
        )

        from pipeline.runner import build_trigger
        ctx.trigger = build_trigger(ctx)
        return ctx

    @staticmethod
    def _build_cache(cache_config: CacheConfig) -> CacheService:
        """Build the shared cache backend from configuration."""
        return init_cache(
            backend=cache_config.backend,
            redis_url=cache_config.redis_url,
            password=cache_config.password,
            default_ttl_seconds=cache_config.default_ttl_seconds
        )

    def close(self) -> None:
        """Release background workers, HTTP sessions and pooled connections."""
        if self.trigger is not None:
            self.trigger.shutdown(wait=False)
        self.search_client.close()
        self.engine.dispose()
