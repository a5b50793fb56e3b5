#!/usr/bin/env python3
"""
Stats endpoints - counts over the display window.
"""

from fastapi import APIRouter, Depends

from core.app_context import AppContext
from ..dependencies import get_context, resolve_from_date
from ..models.responses import StatsResponse

router = APIRouter(prefix="/api/stats", tags=["stats"])


@router.get("", response_model=StatsResponse)
def get_stats(ctx: AppContext = Depends(get_context)):
    """
    Get job and company counts for the configured display window,
    plus the trigger's last run time.
    """
    since = resolve_from_date(ctx, None)
    display = ctx.display_repository
    status = ctx.trigger.status() if ctx.trigger is not None else {}

    return StatsResponse(
        success=True,
        stats={
            'from_date': since.isoformat(),
            'total_jobs': display.count_jobs(since),
            'total_companies': display.count_companies(since),
            'last_run_at': status['last_run_at'].isoformat() if status.get('last_run_at') else None,
            'pipeline_running': status.get('running', False)
        }
    )
