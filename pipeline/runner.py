"""Shared ingestion pipeline runner.

Used by the CLI ``run`` command, the web trigger and the manual
``POST /api/pipeline/run`` endpoint.
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional, TYPE_CHECKING

from etl.orchestrator import IngestionResult
from etl.reconciliation import ReconciliationResult
from pipeline.control import PipelineTrigger

if TYPE_CHECKING:
    from core.app_context import AppContext


logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Result of one ingestion + reconciliation run."""
    success: bool
    ingestion: Optional[IngestionResult] = None
    reconciliation: Optional[ReconciliationResult] = None
    error: Optional[str] = None
    execution_time: float = 0.0


def run_pipeline(ctx: "AppContext") -> PipelineResult:
    """Ingest new postings, reconcile company profiles, then invalidate display snapshots.

    Reconciliation runs even when ingestion fetched nothing, since it works
    over every job updated within its lookback window.
    """
    pipeline_start = time.time()

    logger.info("=" * 60)
    logger.info("STARTING INGESTION PIPELINE")
    logger.info("=" * 60)

    try:
        step_start = time.time()
        logger.info("=== STEP 1: Ingesting job postings ===")
        ingestion = ctx.ingestion_service.run()
        logger.info(f"Step 1 completed in {time.time() - step_start:.2f}s")

        step_start = time.time()
        logger.info("=== STEP 2: Reconciling company profiles ===")
        reconciliation = ctx.reconciliation_service.run()
        logger.info(f"Step 2 completed in {time.time() - step_start:.2f}s")

        ctx.display_repository.refresh()
    except Exception as e:
        logger.exception("Ingestion pipeline failed")
        return PipelineResult(
            success=False,
            error=str(e),
            execution_time=time.time() - pipeline_start
        )

    execution_time = time.time() - pipeline_start
    logger.info("=" * 60)
    logger.info(f"PIPELINE COMPLETED in {execution_time:.2f}s")
    logger.info("=" * 60)

    return PipelineResult(
        success=True,
        ingestion=ingestion,
        reconciliation=reconciliation,
        execution_time=execution_time
    )


def build_trigger(ctx: "AppContext") -> PipelineTrigger:
    """Trigger that runs the pipeline for ``ctx`` at the configured interval."""
    return PipelineTrigger(
        run_callable=lambda: run_pipeline(ctx),
        interval_seconds=ctx.config.schedule.interval_seconds
    )
