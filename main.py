import argparse
import logging
import sys

from core.config_loader import load_config, AppConfig
from database.database import create_session_factory, init_db
from database.repositories import SqlCompanyProfileStore, SqlJobSummaryStore

logger = logging.getLogger(__name__)


def configure_logging(config: AppConfig) -> None:
    logging.basicConfig(
        level=getattr(logging, config.logging.level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def cmd_init_db(config: AppConfig) -> int:
    engine, _ = create_session_factory(config.database.url)
    init_db(engine)
    engine.dispose()
    return 0


def cmd_run(config: AppConfig) -> int:
    """Run one ingestion + reconciliation cycle in the foreground."""
    from core.app_context import AppContext
    from pipeline.runner import run_pipeline

    ctx = AppContext.build(config)
    try:
        result = run_pipeline(ctx)
    finally:
        ctx.close()

    if not result.success:
        logger.error(f"Pipeline failed: {result.error}")
        return 1

    ingestion = result.ingestion
    reconciliation = result.reconciliation
    logger.info(
        f"Jobs: fetched={ingestion.fetched} created={ingestion.created} updated={ingestion.updated} "
        f"duplicates={ingestion.duplicates} rejected={ingestion.rejected} failed={ingestion.failed}"
    )
    logger.info(
        f"Companies: created={reconciliation.created} updated={reconciliation.updated} "
        f"unchanged={reconciliation.unchanged} failed={reconciliation.failed}"
    )
    return 0


def cmd_serve(config: AppConfig) -> int:
    from web.backend.app import main as serve

    serve(config)
    return 0


def cmd_delete_job(config: AppConfig, job_id: str) -> int:
    engine, session_factory = create_session_factory(config.database.url)
    try:
        deleted = SqlJobSummaryStore(session_factory).delete_by_job_id(job_id)
    finally:
        engine.dispose()
    if not deleted:
        logger.warning(f"No job summary with job id {job_id}")
        return 1
    return 0


def cmd_delete_company(config: AppConfig, company_id: str) -> int:
    engine, session_factory = create_session_factory(config.database.url)
    try:
        deleted = SqlCompanyProfileStore(session_factory).delete_by_company_id(company_id)
    finally:
        engine.dispose()
    if not deleted:
        logger.warning(f"No company profile with company id {company_id}")
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="LeadScout job posting ingestion")
    parser.add_argument('--config', type=str, default=None,
                        help='Path to config.yaml (default: $LEADSCOUT_CONFIG or ./config.yaml)')
    sub = parser.add_subparsers(dest='command', required=True)

    sub.add_parser('init-db', help='Create database tables')
    sub.add_parser('run', help='Run one ingestion + reconciliation cycle')
    sub.add_parser('serve', help='Start the web API (runs the pipeline on schedule)')

    delete_job = sub.add_parser('delete-job', help='Delete a job summary')
    delete_job.add_argument('--job-id', required=True, help='Provider job id')

    delete_company = sub.add_parser('delete-company', help='Delete a company profile')
    delete_company.add_argument('--company-id', required=True, help='Company fingerprint')

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    config = load_config(args.config)
    configure_logging(config)

    if args.command == 'init-db':
        return cmd_init_db(config)
    if args.command == 'run':
        return cmd_run(config)
    if args.command == 'serve':
        return cmd_serve(config)
    if args.command == 'delete-job':
        return cmd_delete_job(config, args.job_id)
    return cmd_delete_company(config, args.company_id)


if __name__ == "__main__":
    sys.exit(main())
