#!/usr/bin/env python3
"""
Pipeline endpoints - trigger and monitor the ingestion pipeline.
"""

import logging

from fastapi import APIRouter, Depends

from core.app_context import AppContext
from ..dependencies import get_context
from ..exceptions import PipelineLockedException, ServiceException
from ..models.responses import PipelineTaskResponse, PipelineStatusResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/pipeline", tags=["pipeline"])


@router.post("/run", response_model=PipelineTaskResponse)
def run_pipeline_endpoint(ctx: AppContext = Depends(get_context)):
    """
    Start an ingestion + reconciliation run in the background.

    Returns immediately; poll ``/api/pipeline/status`` for completion.
    The schedule interval is ignored, but only one run may be in flight.
    """
    if ctx.trigger is None:
        raise ServiceException("Pipeline trigger is not configured")

    if not ctx.trigger.run_now():
        raise PipelineLockedException("Pipeline is already running")

    logger.info("Manual pipeline run requested")
    return PipelineTaskResponse(success=True, message="Pipeline started")


@router.get("/status", response_model=PipelineStatusResponse)
def get_pipeline_status(ctx: AppContext = Depends(get_context)):
    """Current trigger state: running flag, last completion and last error."""
    if ctx.trigger is None:
        raise ServiceException("Pipeline trigger is not configured")
    return PipelineStatusResponse(**ctx.trigger.status())
